"""Dress Rental — Fulfillment (requested vs. assigned) schemas."""
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from dress_rental.schemas.order import OrderStatus


class GroupState(str, Enum):
    PENDIENTE = "pendiente"
    PARCIAL = "parcial"
    ASIGNADO = "asignado"


class FulfillmentLine(BaseModel):
    """Shape-agnostic input row for the aggregator."""

    product_id: str
    size: str
    product_label: str = ""
    size_label: str = ""
    requested_count: int = Field(default=0, ge=0)
    # Units bound to this line; None means "one per listed QR code".
    assigned_units: int | None = Field(default=None, ge=0)
    assigned_qr_codes: list[str] = []

    @property
    def key(self) -> tuple[str, str]:
        return (self.product_id, self.size)

    @property
    def assigned_count(self) -> int:
        if self.assigned_units is None:
            return len(self.assigned_qr_codes)
        return self.assigned_units


class GroupedFulfillment(BaseModel):
    variation_key: tuple[str, str]
    product_label: str
    size_label: str
    total_requested: int = 0
    total_assigned: int = 0
    assigned_qr_codes: list[str] = []

    @property
    def is_complete(self) -> bool:
        return self.total_assigned >= self.total_requested

    @property
    def state(self) -> GroupState:
        if self.total_assigned == 0:
            return GroupState.PENDIENTE
        if self.total_assigned < self.total_requested:
            return GroupState.PARCIAL
        return GroupState.ASIGNADO


class GroupedFulfillmentResponse(BaseModel):
    product_id: str
    size: str
    product_label: str
    size_label: str
    total_requested: int
    total_assigned: int
    assigned_qr_codes: list[str]
    state: GroupState

    @classmethod
    def from_group(cls, group: GroupedFulfillment) -> "GroupedFulfillmentResponse":
        return cls(
            product_id=group.variation_key[0],
            size=group.variation_key[1],
            product_label=group.product_label,
            size_label=group.size_label,
            total_requested=group.total_requested,
            total_assigned=group.total_assigned,
            assigned_qr_codes=list(group.assigned_qr_codes),
            state=group.state,
        )


StatusAction = Literal["mark_ready", "mark_sent", "mark_delivered"]


class OrderFulfillmentResponse(BaseModel):
    order_id: str
    numero_pedido: str | None = None
    status: OrderStatus
    groups: list[GroupedFulfillmentResponse] = []
    total_requested: int = 0
    total_assigned: int = 0
    is_fully_assigned: bool = False
    available_actions: list[StatusAction] = []


class StatusTransitionRequest(BaseModel):
    action: StatusAction
