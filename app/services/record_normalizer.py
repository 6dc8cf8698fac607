from __future__ import annotations

from decimal import Decimal

from app.services.delivery_classifier import (
    DEFAULT_FULL_DELIVERY_TOLERANCE,
    build_transaction_details,
    select_primary_product,
)
from app.services.inventory_store import MovementRow, OrderItemRow, OrderRow, ProductRow, TransactionRow
from app.services.unified_records import (
    AmountOnlyTransactionRecord,
    InventoryMovementRecord,
    ProductSnapshot,
    TransactionDetails,
    UnifiedInventoryRecord,
    epoch_millis,
    unknown_record_type,
)


def _snapshot(product: ProductRow | None) -> ProductSnapshot | None:
    if product is None:
        return None
    return ProductSnapshot(
        id=product.id,
        product_name=product.product_name,
        product_code=product.product_code,
        current_stock=product.current_stock,
    )


def _movement_amount(row: MovementRow) -> Decimal:
    if row.total_amount is not None:
        return row.total_amount
    if row.quantity and row.unit_price is not None:
        return Decimal(row.quantity) * row.unit_price
    return Decimal('0')


def default_installment_memo(delivery_sequence: int | None) -> str:
    if delivery_sequence is None:
        return '分納入力'
    return f'分納入力 {delivery_sequence}回目'


def normalize_movement(
    row: MovementRow,
    products_by_id: dict[str, ProductRow],
    details_by_transaction_id: dict[str, TransactionDetails] | None = None,
) -> InventoryMovementRecord:
    details = None
    if row.transaction_id and details_by_transaction_id:
        details = details_by_transaction_id.get(row.transaction_id)
    return InventoryMovementRecord(
        id=row.id,
        unified_timestamp=epoch_millis(row.created_at),
        created_at=row.created_at,
        product_id=row.product_id,
        products=_snapshot(products_by_id.get(row.product_id)) if row.product_id else None,
        movement_type=row.movement_type,
        quantity=row.quantity,
        total_amount=_movement_amount(row),
        memo=row.memo,
        unit_price=row.unit_price,
        transaction_id=row.transaction_id,
        delivery_scheduled_date=row.delivery_scheduled_date,
        transaction_details=details,
    )


def normalize_transaction(
    row: TransactionRow,
    *,
    orders_by_id: dict[str, OrderRow],
    items_by_order_id: dict[str, list[OrderItemRow]],
    products_by_id: dict[str, ProductRow],
    tolerance: Decimal = DEFAULT_FULL_DELIVERY_TOLERANCE,
) -> AmountOnlyTransactionRecord:
    order = orders_by_id.get(row.parent_order_id) if row.parent_order_id else None
    primary = select_primary_product(items_by_order_id.get(row.parent_order_id, [])) if row.parent_order_id else None
    product = products_by_id.get(primary.product_id) if primary is not None else None
    return AmountOnlyTransactionRecord(
        id=row.id,
        unified_timestamp=epoch_millis(row.created_at),
        created_at=row.created_at,
        product_id=primary.product_id if primary is not None else None,
        products=_snapshot(product),
        total_amount=row.total_amount or Decimal('0'),
        accounting_amount=row.total_amount,
        installment_no=row.delivery_sequence,
        memo=row.memo or default_installment_memo(row.delivery_sequence),
        unit_price=primary.unit_price if primary is not None else None,
        transaction_no=row.transaction_no,
        correlation_id=row.parent_order_id,
        transaction_details=build_transaction_details(row, order, tolerance=tolerance),
    )


def keep_record(record: UnifiedInventoryRecord) -> bool:
    if isinstance(record, InventoryMovementRecord):
        return record.products is not None
    if isinstance(record, AmountOnlyTransactionRecord):
        return record.products is not None or record.total_amount > 0
    raise unknown_record_type(record)


def group_items_by_order(items: list[OrderItemRow]) -> dict[str, list[OrderItemRow]]:
    by_order: dict[str, list[OrderItemRow]] = {}
    for item in items:
        by_order.setdefault(item.purchase_order_id, []).append(item)
    return by_order


def normalize_records(
    *,
    movements: list[MovementRow],
    transactions: list[TransactionRow],
    products: list[ProductRow],
    orders: list[OrderRow],
    order_items: list[OrderItemRow],
    tolerance: Decimal = DEFAULT_FULL_DELIVERY_TOLERANCE,
) -> list[UnifiedInventoryRecord]:
    products_by_id = {row.id: row for row in products}
    orders_by_id = {row.id: row for row in orders}
    items_by_order_id = group_items_by_order(order_items)

    transaction_records = [
        normalize_transaction(
            row,
            orders_by_id=orders_by_id,
            items_by_order_id=items_by_order_id,
            products_by_id=products_by_id,
            tolerance=tolerance,
        )
        for row in transactions
    ]
    details_by_transaction_id = {
        record.id: record.transaction_details
        for record in transaction_records
        if record.transaction_details is not None
    }
    movement_records = [normalize_movement(row, products_by_id, details_by_transaction_id) for row in movements]

    merged: list[UnifiedInventoryRecord] = [*movement_records, *transaction_records]
    return [record for record in merged if keep_record(record)]
