"""Dress Rental — OrderService: fulfillment view and gated status transitions."""
import logging

from dress_rental.clients.supabase import SupabaseClient
from dress_rental.core.exceptions import TransitionNotAllowed
from dress_rental.schemas.fulfillment import (
    GroupedFulfillmentResponse,
    OrderFulfillmentResponse,
)
from dress_rental.schemas.order import Order, OrderLineItem
from dress_rental.services.fulfillment_aggregator import (
    FulfillmentAggregator,
    lines_from_quantity_rows,
)
from dress_rental.services.order_status import ACTION_TARGETS, available_actions

logger = logging.getLogger(__name__)


def build_fulfillment_view(order: Order, items: list[OrderLineItem]) -> OrderFulfillmentResponse:
    """Aggregate ``detalle_pedido`` rows into the order's fulfillment view."""
    groups = FulfillmentAggregator.group(lines_from_quantity_rows(items))
    requested, assigned = FulfillmentAggregator.totals(groups)
    fully_assigned = FulfillmentAggregator.is_fully_assigned(groups)
    return OrderFulfillmentResponse(
        order_id=order.id,
        numero_pedido=order.numero_pedido,
        status=order.estado,
        groups=[GroupedFulfillmentResponse.from_group(g) for g in groups],
        total_requested=requested,
        total_assigned=assigned,
        is_fully_assigned=fully_assigned,
        available_actions=available_actions(order.estado, fully_assigned),
    )


class OrderService:
    """Reads order detail from the backend and applies status actions."""

    def __init__(self, client: SupabaseClient):
        self._client = client

    async def get_fulfillment(self, order_id: str) -> OrderFulfillmentResponse:
        order = await self._client.get_order(order_id)
        items = await self._client.get_line_items(order_id)
        return build_fulfillment_view(order, items)

    async def apply_action(self, order_id: str, action: str) -> OrderFulfillmentResponse:
        """Re-read the order, check the action is on offer, then update the status."""
        view = await self.get_fulfillment(order_id)
        if action not in view.available_actions:
            raise TransitionNotAllowed(action, view.status.value)

        target = ACTION_TARGETS[action]
        await self._client.update_order_status(order_id, target)
        logger.info("Order %s moved %s → %s", order_id, view.status.value, target.value)
        return await self.get_fulfillment(order_id)
