"""Dress Rental — Scanner session schemas."""
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class ScanState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    PROCESSING = "processing"
    STOPPED = "stopped"
    FAILED = "failed"


class AssignmentResult(BaseModel):
    """Outcome of one ``asignar_producto_por_qr`` call.

    Business rejections come back with ``success=False`` and ``error`` set.
    """

    success: bool
    message: str | None = None
    error: str | None = None
    product_name: str | None = None
    size: str | None = None
    assigned_count: int | None = None
    requested_count: int | None = None
    is_complete: bool | None = None


class ScanHistoryEntry(BaseModel):
    qr_code: str
    success: bool
    message: str
    product_name: str | None = None
    size: str | None = None
    assigned_count: int | None = None
    requested_count: int | None = None
    is_complete: bool | None = None
    scanned_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_result(cls, qr_code: str, result: AssignmentResult) -> "ScanHistoryEntry":
        if result.success:
            message = result.message or "Producto asignado"
        else:
            message = result.error or result.message or "No se pudo asignar el producto"
        return cls(
            qr_code=qr_code,
            success=result.success,
            message=message,
            product_name=result.product_name,
            size=result.size,
            assigned_count=result.assigned_count,
            requested_count=result.requested_count,
            is_complete=result.is_complete,
        )


class ScanSessionSnapshot(BaseModel):
    """What the operator sees: state, banners, counters and recent scans."""

    order_id: str
    state: ScanState
    error: str | None = None
    transport_error: str | None = None
    processing: bool = False
    success_count: int = 0
    error_count: int = 0
    history: list[ScanHistoryEntry] = []
