from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from app.services.inventory_store import OrderItemRow, OrderRow, TransactionRow
from app.services.unified_records import DeliveryType, TransactionDetails

DEFAULT_FULL_DELIVERY_TOLERANCE = Decimal('1')


class OrderDeliveryStatus(str, Enum):
    IN_PROGRESS = 'in_progress'
    AMOUNT_COMPLETE = 'amount_complete'
    FULLY_DELIVERED = 'fully_delivered'


@dataclass(frozen=True)
class DeliveryStatusResult:
    status: OrderDeliveryStatus
    is_fully_delivered: bool
    is_all_items_delivered: bool
    remaining_amount: Decimal
    completion_percentage: int


def _to_decimal(value: Decimal | int | float | None) -> Decimal:
    if value is None:
        return Decimal('0')
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def order_total_missing(order: OrderRow) -> bool:
    return order.total_amount is None or _to_decimal(order.total_amount) == 0


def classify_delivery(
    transaction: TransactionRow,
    order: OrderRow,
    *,
    tolerance: Decimal = DEFAULT_FULL_DELIVERY_TOLERANCE,
) -> DeliveryType:
    if tolerance < 0:
        raise ValueError('Full delivery tolerance cannot be negative')
    if order_total_missing(order) or not transaction.total_amount:
        return DeliveryType.PARTIAL
    difference = abs(_to_decimal(order.total_amount) - _to_decimal(transaction.total_amount))
    if difference <= tolerance:
        return DeliveryType.FULL
    return DeliveryType.PARTIAL


def build_transaction_details(
    transaction: TransactionRow,
    order: OrderRow | None,
    *,
    tolerance: Decimal = DEFAULT_FULL_DELIVERY_TOLERANCE,
) -> TransactionDetails:
    if order is None:
        return TransactionDetails(
            order_no=None,
            delivery_type=DeliveryType.AMOUNT_ONLY,
            delivery_amount=transaction.total_amount,
            order_total_amount=None,
            transaction_type=transaction.transaction_type,
        )
    return TransactionDetails(
        order_no=order.order_no,
        delivery_type=classify_delivery(transaction, order, tolerance=tolerance),
        delivery_amount=transaction.total_amount,
        order_total_amount=order.total_amount,
        transaction_type=transaction.transaction_type,
        order_total_missing=order_total_missing(order),
    )


def select_primary_product(items: list[OrderItemRow]) -> OrderItemRow | None:
    primary: OrderItemRow | None = None
    primary_value = Decimal('0')
    for item in items:
        value = _to_decimal(item.quantity) * _to_decimal(item.unit_price)
        # Strict comparison keeps the first line on ties.
        if primary is None or value > primary_value:
            primary = item
            primary_value = value
    return primary


def delivery_ratio(delivered_amount: Decimal, order_total: Decimal | None) -> Decimal | None:
    total = _to_decimal(order_total)
    if total == 0:
        return None
    return (_to_decimal(delivered_amount) / total).quantize(Decimal('0.0001'))


def calculate_delivery_status(
    *,
    order_total: Decimal | None,
    confirmed_amount: Decimal,
    draft_amount: Decimal = Decimal('0'),
    ordered_quantities: dict[str, int] | None = None,
    delivered_quantities: dict[str, int] | None = None,
) -> DeliveryStatusResult:
    """Summarize how far an order has been delivered.

    Amount completion only needs the confirmed and draft installment totals.
    Item completion additionally compares every ordered quantity against the
    quantity delivered so far; without the two quantity maps it stays False.
    """
    total = _to_decimal(order_total)
    confirmed = _to_decimal(confirmed_amount)
    remaining = total - confirmed - _to_decimal(draft_amount)
    if total > 0:
        percentage = int((confirmed / total * 100).to_integral_value(rounding=ROUND_HALF_UP))
    else:
        percentage = 0

    is_fully_delivered = remaining == 0 and confirmed > 0

    is_all_items_delivered = False
    if is_fully_delivered and ordered_quantities:
        delivered = delivered_quantities or {}
        is_all_items_delivered = all(
            delivered.get(product_id, 0) >= qty for product_id, qty in ordered_quantities.items()
        )

    if not is_fully_delivered:
        status = OrderDeliveryStatus.IN_PROGRESS
    elif is_all_items_delivered:
        status = OrderDeliveryStatus.FULLY_DELIVERED
    else:
        status = OrderDeliveryStatus.AMOUNT_COMPLETE

    return DeliveryStatusResult(
        status=status,
        is_fully_delivered=is_fully_delivered,
        is_all_items_delivered=is_all_items_delivered,
        remaining_amount=remaining,
        completion_percentage=percentage,
    )
