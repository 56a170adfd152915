"""Dress Rental — async client for the hosted backend (PostgREST + RPC).

Every failure that is not a business answer (connection errors, timeouts,
non-2xx statuses, bodies that are not JSON) is raised as ``TransportError``.
"""
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from dress_rental.core.exceptions import OrderNotFoundError, TransportError
from dress_rental.schemas.order import Assignment, Order, OrderLineItem, OrderStatus
from dress_rental.schemas.scan import AssignmentResult

logger = logging.getLogger(__name__)

ASSIGN_RPC = "asignar_producto_por_qr"

LINE_ITEM_SELECT = (
    "*,"
    "variaciones_producto(talla,producto_id,productos(id,nombre)),"
    "asignacion_productos(id,producto_individual_id,productos_individuales(qr_code))"
)


def parse_assignment_result(payload: Any) -> AssignmentResult:
    """Map the RPC's JSON (Spanish or English keys) onto ``AssignmentResult``."""
    if isinstance(payload, list) and len(payload) == 1:
        payload = payload[0]
    if not isinstance(payload, dict) or "success" not in payload:
        raise TransportError(f"Malformed assignment response: {payload!r}")

    def pick(*keys):
        for key in keys:
            if payload.get(key) is not None:
                return payload[key]
        return None

    try:
        return AssignmentResult(
            success=bool(payload["success"]),
            message=pick("message", "mensaje"),
            error=pick("error"),
            product_name=pick("product_name", "producto", "productName"),
            size=pick("size", "talla"),
            assigned_count=pick("assigned_count", "asignados", "assignedCount"),
            requested_count=pick("requested_count", "solicitados", "requestedCount"),
            is_complete=pick("is_complete", "completo", "isComplete"),
        )
    except ValidationError as e:
        raise TransportError(f"Malformed assignment response: {e}") from e


def parse_line_item(row: dict) -> OrderLineItem:
    """Flatten a ``detalle_pedido`` row with its embedded variation and assignments."""
    variation = row.get("variaciones_producto") or {}
    product = variation.get("productos") or {}
    assignments = []
    for a in row.get("asignacion_productos") or []:
        unit = a.get("productos_individuales") or {}
        assignments.append(Assignment(
            detalle_pedido_id=row["id"],
            producto_individual_id=a.get("producto_individual_id"),
            qr_code=unit.get("qr_code"),
        ))
    return OrderLineItem(
        id=row["id"],
        pedido_id=row["pedido_id"],
        variacion_id=row.get("variacion_id"),
        producto_id=product.get("id") or variation.get("producto_id"),
        producto_nombre=product.get("nombre"),
        talla=variation.get("talla"),
        cantidad=row.get("cantidad", 1),
        precio_unitario=row.get("precio_unitario", 0),
        notas=row.get("notas"),
        assignments=assignments,
    )


class SupabaseClient:
    """Thin wrapper over ``httpx.AsyncClient`` speaking PostgREST."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json: Any = None,
        headers: dict | None = None,
    ) -> Any:
        try:
            resp = await self._client.request(method, path, params=params, json=json, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning("Backend %s %s returned %s", method, path, e.response.status_code)
            raise TransportError(
                f"Backend returned {e.response.status_code} for {method} {path}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            logger.warning("Backend %s %s failed: %s", method, path, e)
            raise TransportError(f"Backend request failed: {e}") from e

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"Backend returned non-JSON body for {method} {path}") from e

    # ── RPC ──────────────────────────────────────────────────────────────

    async def assign_unit_by_qr(self, order_id: str, qr_code: str) -> AssignmentResult:
        payload = await self._request(
            "POST", f"/rpc/{ASSIGN_RPC}",
            json={"p_pedido_id": order_id, "p_qr_code": qr_code},
        )
        return parse_assignment_result(payload)

    # ── Orders ───────────────────────────────────────────────────────────

    async def get_order(self, order_id: str) -> Order:
        rows = await self._request("GET", "/pedidos", params={"id": f"eq.{order_id}", "select": "*"})
        if not rows:
            raise OrderNotFoundError(order_id)
        try:
            return Order.model_validate(rows[0])
        except ValidationError as e:
            raise TransportError(f"Malformed order row: {e}") from e

    async def get_line_items(self, order_id: str) -> list[OrderLineItem]:
        rows = await self._request(
            "GET", "/detalle_pedido",
            params={
                "pedido_id": f"eq.{order_id}",
                "select": LINE_ITEM_SELECT,
                "order": "created_at.asc",
            },
        )
        try:
            return [parse_line_item(r) for r in rows or []]
        except (KeyError, ValidationError) as e:
            raise TransportError(f"Malformed line item row: {e}") from e

    async def update_order_status(self, order_id: str, status: OrderStatus) -> Order:
        rows = await self._request(
            "PATCH", "/pedidos",
            params={"id": f"eq.{order_id}"},
            json={"estado": status.value},
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise OrderNotFoundError(order_id)
        try:
            return Order.model_validate(rows[0])
        except ValidationError as e:
            raise TransportError(f"Malformed order row: {e}") from e
