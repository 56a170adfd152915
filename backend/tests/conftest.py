import asyncio
import json

import httpx
import pytest

from dress_rental.clients.supabase import SupabaseClient
from dress_rental.core.exceptions import TransportError
from dress_rental.schemas.scan import AssignmentResult


class FakeDecoder:
    """Records the start/stop/clear sequence; optionally fails."""

    def __init__(self, fail_start: Exception | None = None, fail_stop: Exception | None = None):
        self.calls: list[str] = []
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.constraints = None
        self.config = None
        self.on_decode = None
        self.on_decode_error = None

    async def start(self, constraints, config, on_decode, on_decode_error):
        self.calls.append("start")
        if self.fail_start:
            raise self.fail_start
        self.constraints = constraints
        self.config = config
        self.on_decode = on_decode
        self.on_decode_error = on_decode_error

    async def stop(self):
        self.calls.append("stop")
        if self.fail_stop:
            raise self.fail_stop

    def clear(self):
        self.calls.append("clear")


class FakeAssignmentService:
    """Scripted AssignmentService that tracks concurrency.

    ``outcomes`` is consumed in order; each item is an AssignmentResult or an
    exception to raise. Once exhausted every call succeeds.
    """

    def __init__(self, outcomes=None, delay: float = 0.0):
        self.outcomes = list(outcomes or [])
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.gate: asyncio.Event | None = None

    async def assign(self, order_id: str, qr_code: str) -> AssignmentResult:
        self.calls.append((order_id, qr_code))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            outcome = self.outcomes.pop(0) if self.outcomes else ok_result()
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        finally:
            self.in_flight -= 1


def ok_result(assigned=1, requested=2) -> AssignmentResult:
    return AssignmentResult(
        success=True,
        message="Producto asignado correctamente",
        product_name="Vestido Elegante Azul",
        size="M",
        assigned_count=assigned,
        requested_count=requested,
        is_complete=assigned >= requested,
    )


def rejected_result(error="Producto no disponible") -> AssignmentResult:
    return AssignmentResult(success=False, error=error)


def transport_error() -> TransportError:
    return TransportError("Backend request failed: connection refused")


@pytest.fixture
def decoder():
    return FakeDecoder()


@pytest.fixture
def service():
    return FakeAssignmentService()


# ── Backend doubles (httpx.MockTransport) ─────────────────────────────────────

ORDER_ID = "7b6d5c1e-0000-4000-8000-000000000001"


def order_row(estado="pendiente", **overrides) -> dict:
    row = {
        "id": ORDER_ID,
        "numero_pedido": "PED-001",
        "estado": estado,
        "cliente_id": "c-1",
        "direccion_entrega": "Calle Principal 123",
        "subtotal": 300,
        "descuento": 50,
        "deposito": 100,
        "deposito_pagado": False,
        "total": 250,
        "fecha_pedido": "2025-12-01",
    }
    row.update(overrides)
    return row


def line_item_row(item_id, product_id, name, size, cantidad, qr_codes=()) -> dict:
    return {
        "id": item_id,
        "pedido_id": ORDER_ID,
        "variacion_id": f"var-{product_id}-{size}",
        "cantidad": cantidad,
        "precio_unitario": 150,
        "notas": None,
        "variaciones_producto": {
            "talla": size,
            "producto_id": product_id,
            "productos": {"id": product_id, "nombre": name},
        },
        "asignacion_productos": [
            {
                "id": f"asig-{qr}",
                "producto_individual_id": f"unit-{qr}",
                "productos_individuales": {"qr_code": qr},
            }
            for qr in qr_codes
        ],
    }


class FakeBackend:
    """In-memory stand-in for the PostgREST endpoints the service uses."""

    def __init__(self, order: dict | None = None, items: list[dict] | None = None):
        self.order = order if order is not None else order_row()
        self.items = items if items is not None else []
        self.rpc_responses: list = []
        self.requests: list[httpx.Request] = []
        self.fail_with: int | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with:
            return httpx.Response(self.fail_with, json={"message": "boom"})

        path = request.url.path
        if path.endswith("/rpc/asignar_producto_por_qr"):
            body = json.loads(request.content)
            if self.rpc_responses:
                return httpx.Response(200, json=self.rpc_responses.pop(0))
            return httpx.Response(200, json={
                "success": True,
                "message": f"Asignado {body['p_qr_code']}",
                "producto": "Vestido Elegante Azul",
                "talla": "M",
                "asignados": 1,
                "solicitados": 2,
            })
        if path.endswith("/pedidos"):
            if self.order is None or request.url.params.get("id") != f"eq.{self.order['id']}":
                return httpx.Response(200, json=[])
            if request.method == "PATCH":
                self.order.update(json.loads(request.content))
            return httpx.Response(200, json=[self.order])
        if path.endswith("/detalle_pedido"):
            return httpx.Response(200, json=self.items)
        return httpx.Response(404, json={"message": "not found"})


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
async def supabase(backend):
    client = SupabaseClient(
        "http://backend.test",
        "anon-key",
        transport=httpx.MockTransport(backend.handler),
    )
    yield client
    await client.aclose()
