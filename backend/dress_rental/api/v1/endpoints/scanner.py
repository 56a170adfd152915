"""Dress Rental — WebSocket scanner endpoint.

One ScanCoordinator per connection. The browser runs the camera and QR
decoding (see ``services.decoder`` for the frame protocol); the server
serializes the assignment calls and pushes back:

  {"type": "session", ...ScanSessionSnapshot}
  {"type": "fulfillment", "data": OrderFulfillmentResponse}
"""
import logging

from fastapi import APIRouter, Depends, WebSocket
from starlette.websockets import WebSocketState

from dress_rental.api.deps import Backend
from dress_rental.config import Settings, get_settings
from dress_rental.core.exceptions import DressRentalError
from dress_rental.schemas.scan import ScanHistoryEntry, ScanSessionSnapshot
from dress_rental.services.assignment_service import BackendAssignmentService
from dress_rental.services.decoder import WebSocketDecoder
from dress_rental.services.order_service import OrderService
from dress_rental.services.scan_coordinator import ScanConfig, ScanCoordinator

logger = logging.getLogger(__name__)
router = APIRouter()

SCANNER_FAILED_CLOSE_CODE = 4003


def _can_send(websocket: WebSocket) -> bool:
    # client_state stays CONNECTED after the server sends its own close frame.
    return (
        websocket.client_state == WebSocketState.CONNECTED
        and websocket.application_state == WebSocketState.CONNECTED
    )


@router.websocket("/ws/orders/{order_id}/scan")
async def ws_scan(
    websocket: WebSocket,
    order_id: str,
    client: Backend,
    settings: Settings = Depends(get_settings),
):
    await websocket.accept()
    decoder = WebSocketDecoder(websocket)
    orders = OrderService(client)

    async def push_state(snapshot: ScanSessionSnapshot) -> None:
        if _can_send(websocket):
            await websocket.send_json({"type": "session", **snapshot.model_dump(mode="json")})

    async def push_fulfillment(entry: ScanHistoryEntry | None = None) -> None:
        try:
            view = await orders.get_fulfillment(order_id)
        except DressRentalError as e:
            logger.warning("Could not refresh order %s: %s", order_id, e)
            return
        if _can_send(websocket):
            await websocket.send_json({"type": "fulfillment", "data": view.model_dump(mode="json")})

    coordinator = ScanCoordinator(
        order_id,
        lambda: decoder,
        BackendAssignmentService(client),
        ScanConfig.from_settings(settings),
        on_assigned=push_fulfillment,
        on_update=push_state,
    )

    started = False
    try:
        started = await coordinator.start()
        if started:
            await push_fulfillment()
            await decoder.wait_closed()
    finally:
        await coordinator.close()

    if _can_send(websocket):
        await websocket.close(code=1000 if started else SCANNER_FAILED_CLOSE_CODE)
