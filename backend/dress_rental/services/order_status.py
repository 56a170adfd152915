"""Dress Rental — Order status policy.

Actions move an order exactly one step forward; nothing here ever offers a
way back. The backend still has the final say on whether an update is legal.
"""
from dress_rental.schemas.order import OrderStatus

# Normal flow, in order. cancelado / devuelto are terminal side exits.
STATUS_FLOW: tuple[OrderStatus, ...] = (
    OrderStatus.PENDIENTE,
    OrderStatus.CONFIRMADO,
    OrderStatus.ALISTADO,
    OrderStatus.ENVIADO,
    OrderStatus.ENTREGADO,
)

TERMINAL_STATUSES = frozenset({
    OrderStatus.ENTREGADO,
    OrderStatus.CANCELADO,
    OrderStatus.DEVUELTO,
})

ACTION_TARGETS: dict[str, OrderStatus] = {
    "mark_ready": OrderStatus.ALISTADO,
    "mark_sent": OrderStatus.ENVIADO,
    "mark_delivered": OrderStatus.ENTREGADO,
}


def status_rank(status: OrderStatus) -> int | None:
    """Position in the normal flow, or None for side exits."""
    try:
        return STATUS_FLOW.index(status)
    except ValueError:
        return None


def is_before(status: OrderStatus, milestone: OrderStatus) -> bool:
    rank, target = status_rank(status), status_rank(milestone)
    return rank is not None and target is not None and rank < target


def available_actions(status: OrderStatus, fully_assigned: bool) -> list[str]:
    """Actions the operator may trigger, as a pure function of (status, fully_assigned)."""
    if status in TERMINAL_STATUSES:
        return []
    actions = []
    if fully_assigned and is_before(status, OrderStatus.ALISTADO):
        actions.append("mark_ready")
    if status == OrderStatus.ALISTADO:
        actions.append("mark_sent")
    if status == OrderStatus.ENVIADO:
        actions.append("mark_delivered")
    return actions
