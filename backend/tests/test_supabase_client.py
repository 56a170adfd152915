import json

import httpx
import pytest

from conftest import ORDER_ID, line_item_row, order_row
from dress_rental.clients.supabase import SupabaseClient, parse_assignment_result
from dress_rental.core.exceptions import OrderNotFoundError, TransportError
from dress_rental.schemas.order import OrderStatus
from dress_rental.services.assignment_service import BackendAssignmentService


async def test_assign_calls_rpc_with_order_and_code(supabase, backend):
    result = await BackendAssignmentService(supabase).assign(ORDER_ID, " QR-0001 \n")

    request = backend.requests[-1]
    assert request.method == "POST"
    assert request.url.path == "/rest/v1/rpc/asignar_producto_por_qr"
    assert json.loads(request.content) == {"p_pedido_id": ORDER_ID, "p_qr_code": "QR-0001"}
    assert request.headers["apikey"] == "anon-key"
    assert result.success is True
    assert result.product_name == "Vestido Elegante Azul"
    assert (result.assigned_count, result.requested_count) == (1, 2)


async def test_business_rejection_is_returned_not_raised(supabase, backend):
    backend.rpc_responses.append({"success": False, "error": "El producto no está disponible"})

    result = await supabase.assign_unit_by_qr(ORDER_ID, "QR-0002")

    assert result.success is False
    assert result.error == "El producto no está disponible"


async def test_server_error_is_transport_error(supabase, backend):
    backend.fail_with = 500

    with pytest.raises(TransportError) as exc:
        await supabase.assign_unit_by_qr(ORDER_ID, "QR-0003")
    assert exc.value.status_code == 500


async def test_network_failure_is_transport_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = SupabaseClient("http://backend.test", "k", transport=httpx.MockTransport(refuse))
    try:
        with pytest.raises(TransportError):
            await client.assign_unit_by_qr(ORDER_ID, "QR-0004")
    finally:
        await client.aclose()


@pytest.mark.parametrize("payload", [None, [], {"message": "ok"}, "done"])
def test_malformed_rpc_payload_is_transport_error(payload):
    with pytest.raises(TransportError):
        parse_assignment_result(payload)


def test_english_keys_are_accepted():
    result = parse_assignment_result([{
        "success": True,
        "message": "Assigned",
        "productName": "Cocktail Negro",
        "size": "L",
        "assignedCount": 1,
        "requestedCount": 1,
        "isComplete": True,
    }])

    assert result.product_name == "Cocktail Negro"
    assert result.is_complete is True


async def test_get_line_items_flattens_embedded_rows(supabase, backend):
    backend.items = [line_item_row("d1", "p-1", "Vestido Elegante Azul", "M", 2, ["QR-1"])]

    items = await supabase.get_line_items(ORDER_ID)

    assert len(items) == 1
    assert items[0].producto_id == "p-1"
    assert items[0].talla == "M"
    assert items[0].cantidad == 2
    assert [a.qr_code for a in items[0].assignments] == ["QR-1"]
    assert backend.requests[-1].url.params["pedido_id"] == f"eq.{ORDER_ID}"


async def test_get_order_missing_raises_not_found(supabase, backend):
    backend.order = None

    with pytest.raises(OrderNotFoundError):
        await supabase.get_order(ORDER_ID)


async def test_order_with_inconsistent_total_is_malformed(supabase, backend):
    backend.order = order_row(total=999)

    with pytest.raises(TransportError):
        await supabase.get_order(ORDER_ID)


async def test_update_status_patches_estado(supabase, backend):
    order = await supabase.update_order_status(ORDER_ID, OrderStatus.ALISTADO)

    request = backend.requests[-1]
    assert request.method == "PATCH"
    assert json.loads(request.content) == {"estado": "alistado"}
    assert request.headers["prefer"] == "return=representation"
    assert order.estado == OrderStatus.ALISTADO
