"""Dress Rental — Order, line item and physical unit schemas.

Field names follow the backend tables (``pedidos``, ``detalle_pedido``,
``productos_individuales``, ``asignacion_productos``).
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class OrderStatus(str, Enum):
    PENDIENTE = "pendiente"
    CONFIRMADO = "confirmado"
    ALISTADO = "alistado"
    ENVIADO = "enviado"
    ENTREGADO = "entregado"
    CANCELADO = "cancelado"
    DEVUELTO = "devuelto"


class UnitStatus(str, Enum):
    DISPONIBLE = "disponible"
    FUERA_STOCK = "fuera_stock"
    EN_TRANSITO = "en_transito"
    DEVUELTO = "devuelto"
    RETIRADO = "retirado"


class Order(BaseModel):
    """Rental order (``pedidos`` row)."""

    id: str
    numero_pedido: str | None = None
    estado: OrderStatus = OrderStatus.PENDIENTE
    cliente_id: str | None = None

    direccion_entrega: str | None = None
    distrito_entrega: str | None = None
    referencia_entrega: str | None = None
    fecha_pedido: date | None = None
    fecha_entrega: date | None = None
    fecha_evento: date | None = None
    fecha_devolucion: date | None = None

    subtotal: Decimal = Decimal("0")
    descuento: Decimal = Decimal("0")
    deposito: Decimal = Decimal("0")
    deposito_pagado: bool = False
    total: Decimal = Decimal("0")
    notas: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None

    @model_validator(mode="after")
    def _check_total(self) -> "Order":
        if self.total != self.subtotal - self.descuento:
            raise ValueError(
                f"total {self.total} != subtotal {self.subtotal} - descuento {self.descuento}"
            )
        return self


class PhysicalUnit(BaseModel):
    """One QR-tagged garment (``productos_individuales`` row).

    ``qr_code`` is generated by the backend on insert; clients send a
    placeholder and read the real code back.
    """

    id: str | None = None
    qr_code: str
    estado: UnitStatus = UnitStatus.DISPONIBLE
    variacion_id: str | None = None

    @property
    def is_assignable(self) -> bool:
        return self.estado == UnitStatus.DISPONIBLE


class Assignment(BaseModel):
    """Binding of one physical unit to one line item."""

    detalle_pedido_id: str
    producto_individual_id: str | None = None
    qr_code: str | None = None


class OrderLineItem(BaseModel):
    """Requested product+size within an order (``detalle_pedido`` row)."""

    id: str
    pedido_id: str
    variacion_id: str | None = None
    producto_id: str | None = None
    producto_nombre: str | None = None
    talla: str | None = None
    cantidad: int = Field(default=1, ge=0)
    precio_unitario: Decimal = Decimal("0")
    notas: str | None = None
    assignments: list[Assignment] = []
