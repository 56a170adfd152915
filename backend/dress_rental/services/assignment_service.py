"""Dress Rental — AssignmentService: QR scan → unit assigned to an order.

The backend RPC does the real work atomically (availability check, one
assignment per unit, quantity caps). This side only forwards the call.
"""
from typing import Protocol

from dress_rental.clients.supabase import SupabaseClient
from dress_rental.schemas.scan import AssignmentResult


class AssignmentService(Protocol):
    async def assign(self, order_id: str, qr_code: str) -> AssignmentResult:
        """Return the business outcome; raise ``TransportError`` on transport failure."""
        ...


class BackendAssignmentService:
    """AssignmentService backed by ``asignar_producto_por_qr``."""

    def __init__(self, client: SupabaseClient):
        self._client = client

    async def assign(self, order_id: str, qr_code: str) -> AssignmentResult:
        return await self._client.assign_unit_by_qr(order_id, qr_code.strip())
