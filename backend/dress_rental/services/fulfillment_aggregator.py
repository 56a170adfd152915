"""Dress Rental — FulfillmentAggregator.

Groups an order's line items by (product, requested size) and counts
requested vs. assigned units. Two backend row shapes exist; adapters below
normalise both into ``FulfillmentLine`` so the aggregator never sees them.
"""
from collections.abc import Iterable, Sequence

from dress_rental.schemas.fulfillment import FulfillmentLine, GroupedFulfillment
from dress_rental.schemas.order import OrderLineItem


def _line_key(item: OrderLineItem) -> tuple[str, str, str, str]:
    product_id = item.producto_id or item.variacion_id or item.id
    size = item.talla or ""
    return product_id, size, item.producto_nombre or product_id, size


def _qr_codes(item: OrderLineItem) -> list[str]:
    # Assignments whose unit has no readable code still count, but are not listed.
    return [a.qr_code for a in item.assignments if a.qr_code]


def lines_from_unit_rows(items: Iterable[OrderLineItem]) -> list[FulfillmentLine]:
    """One row per requested unit: each row requests 1, assigned if it has a unit."""
    lines = []
    for item in items:
        product_id, size, label, size_label = _line_key(item)
        lines.append(FulfillmentLine(
            product_id=product_id,
            size=size,
            product_label=label,
            size_label=size_label,
            requested_count=1,
            assigned_units=min(1, len(item.assignments)),
            assigned_qr_codes=_qr_codes(item)[:1],
        ))
    return lines


def lines_from_quantity_rows(items: Iterable[OrderLineItem]) -> list[FulfillmentLine]:
    """One row per product+size with ``cantidad`` plus a list of assignments."""
    lines = []
    for item in items:
        product_id, size, label, size_label = _line_key(item)
        lines.append(FulfillmentLine(
            product_id=product_id,
            size=size,
            product_label=label,
            size_label=size_label,
            requested_count=item.cantidad,
            assigned_units=len(item.assignments),
            assigned_qr_codes=_qr_codes(item),
        ))
    return lines


class FulfillmentAggregator:
    """Pure, synchronous; safe to call on every refresh."""

    @staticmethod
    def group(lines: Iterable[FulfillmentLine]) -> list[GroupedFulfillment]:
        """One group per distinct key, in order of first occurrence."""
        groups: dict[tuple[str, str], GroupedFulfillment] = {}
        for line in lines:
            group = groups.get(line.key)
            if group is None:
                group = GroupedFulfillment(
                    variation_key=line.key,
                    product_label=line.product_label or line.product_id,
                    size_label=line.size_label or line.size,
                )
                groups[line.key] = group
            group.total_requested += line.requested_count
            group.assigned_qr_codes.extend(line.assigned_qr_codes)
            group.total_assigned += line.assigned_count
        return list(groups.values())

    @staticmethod
    def totals(groups: Sequence[GroupedFulfillment]) -> tuple[int, int]:
        """(total requested, total assigned)."""
        requested = sum(g.total_requested for g in groups)
        assigned = sum(g.total_assigned for g in groups)
        return requested, assigned

    @staticmethod
    def is_fully_assigned(groups: Sequence[GroupedFulfillment]) -> bool:
        # An empty order is never fully assigned.
        requested, assigned = FulfillmentAggregator.totals(groups)
        return requested > 0 and assigned == requested
