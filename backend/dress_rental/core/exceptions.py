"""Dress Rental — Error taxonomy.

Business rejections from the assignment RPC are *not* exceptions; they come
back as ``AssignmentResult(success=False)``. Everything here is unexpected
or policy-related.
"""


class DressRentalError(Exception):
    """Base class for service errors."""


class TransportError(DressRentalError):
    """Network failure, non-2xx response or malformed payload from the backend."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class OrderNotFoundError(DressRentalError):
    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class TransitionNotAllowed(DressRentalError):
    """Requested status action is not offered for the order's current state."""

    def __init__(self, action: str, status: str):
        super().__init__(f"Action '{action}' is not available while order is '{status}'")
        self.action = action
        self.status = status


class DecoderUnavailableError(DressRentalError):
    """Camera / decoder could not be constructed or acquired."""
