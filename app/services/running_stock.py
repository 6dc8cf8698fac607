from __future__ import annotations

from dataclasses import dataclass, replace

from app.models import MovementType
from app.services.unified_records import InventoryMovementRecord, UnifiedInventoryRecord


@dataclass(frozen=True)
class MovementSummary:
    total_in: int
    total_out: int
    net_quantity: int


def signed_quantity(record: InventoryMovementRecord) -> int:
    qty = record.quantity or 0
    if record.movement_type == MovementType.IN.value:
        return qty
    if record.movement_type == MovementType.OUT.value:
        return -qty
    return 0


def compute_cumulative_stock(
    records: list[UnifiedInventoryRecord],
    *,
    sort_order: str | None = None,
) -> list[UnifiedInventoryRecord]:
    """Attach ``cumulative_stock_at_time`` to every physical movement.

    ``records`` must hold each product's complete movement history up to the
    latest movement of interest; a history that starts mid-way yields offset
    balances. Movements sharing a timestamp are applied in input order, so
    repeated runs over the same input give the same balances.

    Non-movement records pass through untouched. With ``sort_order`` None
    the input order is kept, otherwise the output is ordered by timestamp.
    """
    if sort_order not in (None, 'asc', 'desc'):
        raise ValueError('Sort order must be asc or desc')

    chronological = sorted(range(len(records)), key=lambda idx: (records[idx].unified_timestamp, idx))
    running_by_product: dict[str | None, int] = {}
    decorated: list[UnifiedInventoryRecord] = list(records)

    for idx in chronological:
        record = records[idx]
        if not isinstance(record, InventoryMovementRecord):
            continue
        balance = running_by_product.get(record.product_id, 0) + signed_quantity(record)
        running_by_product[record.product_id] = balance
        decorated[idx] = replace(record, cumulative_stock_at_time=balance)

    if sort_order is None:
        return decorated
    ordered = [decorated[idx] for idx in chronological]
    if sort_order == 'desc':
        ordered.reverse()
    return ordered


def compute_current_stock(records: list[UnifiedInventoryRecord]) -> dict[str, int]:
    totals: dict[str, int] = {}
    for record in records:
        if not isinstance(record, InventoryMovementRecord) or record.product_id is None:
            continue
        totals[record.product_id] = totals.get(record.product_id, 0) + signed_quantity(record)
    return {product_id: max(total, 0) for product_id, total in totals.items()}


def summarize_movements(records: list[UnifiedInventoryRecord]) -> MovementSummary:
    total_in = 0
    total_out = 0
    for record in records:
        if not isinstance(record, InventoryMovementRecord):
            continue
        if record.movement_type == MovementType.IN.value:
            total_in += record.quantity or 0
        elif record.movement_type == MovementType.OUT.value:
            total_out += record.quantity or 0
    return MovementSummary(total_in=total_in, total_out=total_out, net_quantity=total_in - total_out)
