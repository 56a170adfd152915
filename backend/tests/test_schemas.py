import pytest
from pydantic import ValidationError

from dress_rental.config import Settings
from dress_rental.schemas.order import Order, PhysicalUnit, UnitStatus
from dress_rental.schemas.scan import AssignmentResult, ScanHistoryEntry


def test_order_total_must_equal_subtotal_minus_discount():
    order = Order(id="o-1", subtotal=300, descuento=50, total=250)
    assert order.estado.value == "pendiente"

    with pytest.raises(ValidationError):
        Order(id="o-1", subtotal=300, descuento=50, total=300)


@pytest.mark.parametrize("status,assignable", [
    (UnitStatus.DISPONIBLE, True),
    (UnitStatus.EN_TRANSITO, False),
    (UnitStatus.FUERA_STOCK, False),
    (UnitStatus.RETIRADO, False),
])
def test_only_available_units_are_assignable(status, assignable):
    assert PhysicalUnit(qr_code="QR-1", estado=status).is_assignable is assignable


def test_history_entry_message_fallbacks():
    ok = ScanHistoryEntry.from_result("QR-1", AssignmentResult(success=True))
    rejected = ScanHistoryEntry.from_result("QR-2", AssignmentResult(success=False))

    assert ok.message == "Producto asignado"
    assert rejected.message == "No se pudo asignar el producto"
    assert rejected.success is False


@pytest.mark.parametrize("overrides", [
    {"SCAN_HISTORY_CAPACITY": 0},
    {"SCAN_HISTORY_CAPACITY": -1},
    {"SCAN_COOLDOWN_MS": -5},
])
def test_scanner_settings_are_bounded(overrides):
    with pytest.raises(ValidationError):
        Settings(**overrides)
