from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from app.models import MovementType
from app.services.sort_utils import extract_po_number, product_name_sort_key
from app.services.unified_records import (
    AmountOnlyTransactionRecord,
    InventoryMovementRecord,
    RecordType,
    UnifiedInventoryRecord,
    epoch_millis,
    product_name_of,
    unknown_record_type,
)

ALL = 'all'
INSTALLMENT_KEYWORDS = frozenset({'分納', '分納入力'})

RECORD_TYPE_CHOICES = frozenset({ALL, *(member.value for member in RecordType)})
MOVEMENT_TYPE_CHOICES = frozenset({ALL, *(member.value for member in MovementType)})
DELIVERY_FILTER_CHOICES = frozenset({ALL, 'partial_delivery', 'manual'})
SORT_BY_CHOICES = frozenset({'created_at', 'product_name'})
SORT_ORDER_CHOICES = frozenset({'asc', 'desc'})


@dataclass(frozen=True)
class FilterSpec:
    search_term: str | None = None
    record_type: str = ALL
    movement_type: str = ALL
    delivery_filter: str = ALL
    start_date: date | None = None
    end_date: date | None = None
    installment_no: str | None = None
    order_no: str | None = None
    sort_by: str = 'created_at'
    sort_order: str = 'desc'


def validate_filter_spec(spec: FilterSpec) -> None:
    if spec.record_type not in RECORD_TYPE_CHOICES:
        raise ValueError(f'Unknown record type: {spec.record_type}')
    if spec.movement_type not in MOVEMENT_TYPE_CHOICES:
        raise ValueError(f'Unknown movement type: {spec.movement_type}')
    if spec.delivery_filter not in DELIVERY_FILTER_CHOICES:
        raise ValueError(f'Unknown delivery filter: {spec.delivery_filter}')
    if spec.sort_by not in SORT_BY_CHOICES:
        raise ValueError(f'Unknown sort field: {spec.sort_by}')
    if spec.sort_order not in SORT_ORDER_CHOICES:
        raise ValueError(f'Unknown sort order: {spec.sort_order}')
    if spec.start_date and spec.end_date and spec.end_date < spec.start_date:
        raise ValueError('End date must be on or after start date')


def local_day_start(day: date, tz: tzinfo | None = None) -> datetime:
    if tz is None:
        return datetime.combine(day, time.min).astimezone()
    return datetime.combine(day, time.min, tzinfo=tz)


def day_bounds(
    start_date: date | None,
    end_date: date | None,
    tz: tzinfo | None = None,
) -> tuple[datetime | None, datetime | None]:
    """Half-open datetime range covering whole local days, end day included."""
    start_at = local_day_start(start_date, tz) if start_date else None
    end_at = local_day_start(end_date + timedelta(days=1), tz) if end_date else None
    return start_at, end_at


def parse_installment_no(raw: str | None) -> int | None:
    value = (raw or '').strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _resolved_order_no(record: UnifiedInventoryRecord) -> str | None:
    if record.transaction_details is None:
        return None
    return record.transaction_details.order_no


def _contains(haystack: str | None, needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def matches_search(record: UnifiedInventoryRecord, search_term: str | None) -> bool:
    # Blank terms disable the search; anything else is matched as typed.
    if not (search_term or '').strip():
        return True
    needle = search_term.lower()

    # TODO: confirm with the product owner whether the installment keywords should
    # keep matching every accounting record instead of acting as a plain substring.
    if isinstance(record, AmountOnlyTransactionRecord) and needle in INSTALLMENT_KEYWORDS:
        return True

    products = record.products
    return (
        _contains(products.product_name if products else None, needle)
        or _contains(products.product_code if products else None, needle)
        or _contains(record.memo, needle)
        or _contains(_resolved_order_no(record), needle)
        or _contains(extract_po_number(record.memo), needle)
    )


def matches_record_type(record: UnifiedInventoryRecord, record_type: str) -> bool:
    return record_type == ALL or record.record_type.value == record_type


def matches_movement_type(record: UnifiedInventoryRecord, movement_type: str) -> bool:
    if movement_type == ALL:
        return True
    if isinstance(record, AmountOnlyTransactionRecord):
        return True
    if isinstance(record, InventoryMovementRecord):
        return record.movement_type == movement_type
    raise unknown_record_type(record)


def matches_delivery_filter(record: UnifiedInventoryRecord, delivery_filter: str) -> bool:
    if delivery_filter == ALL:
        return True
    if isinstance(record, AmountOnlyTransactionRecord):
        return True
    if isinstance(record, InventoryMovementRecord):
        linked = record.transaction_id is not None
        return linked if delivery_filter == 'partial_delivery' else not linked
    raise unknown_record_type(record)


def matches_order_no(record: UnifiedInventoryRecord, order_no: str | None) -> bool:
    term = (order_no or '').strip()
    if not term:
        return True
    needle = term.lower()
    return _contains(_resolved_order_no(record), needle) or _contains(record.memo, needle)


def apply_filters(
    records: list[UnifiedInventoryRecord],
    spec: FilterSpec,
    *,
    tz: tzinfo | None = None,
) -> list[UnifiedInventoryRecord]:
    validate_filter_spec(spec)
    start_at, end_at = day_bounds(spec.start_date, spec.end_date, tz)
    start_ms = epoch_millis(start_at) if start_at else None
    end_ms = epoch_millis(end_at) if end_at else None
    installment_no = parse_installment_no(spec.installment_no)

    out: list[UnifiedInventoryRecord] = []
    for record in records:
        if not matches_record_type(record, spec.record_type):
            continue
        if not matches_movement_type(record, spec.movement_type):
            continue
        if not matches_delivery_filter(record, spec.delivery_filter):
            continue
        if start_ms is not None and record.unified_timestamp < start_ms:
            continue
        if end_ms is not None and record.unified_timestamp >= end_ms:
            continue
        if installment_no is not None and record.installment_no != installment_no:
            continue
        if not matches_order_no(record, spec.order_no):
            continue
        if not matches_search(record, spec.search_term):
            continue
        out.append(record)
    return out


def _type_rank(record: UnifiedInventoryRecord) -> int:
    if isinstance(record, InventoryMovementRecord):
        return 0
    if isinstance(record, AmountOnlyTransactionRecord):
        return 1
    raise unknown_record_type(record)


def sort_records(
    records: list[UnifiedInventoryRecord],
    *,
    sort_by: str = 'created_at',
    sort_order: str = 'desc',
) -> list[UnifiedInventoryRecord]:
    if sort_by not in SORT_BY_CHOICES:
        raise ValueError(f'Unknown sort field: {sort_by}')
    if sort_order not in SORT_ORDER_CHOICES:
        raise ValueError(f'Unknown sort order: {sort_order}')

    if sort_by == 'product_name':
        def key(record: UnifiedInventoryRecord):
            return (*product_name_sort_key(product_name_of(record)), record.unified_timestamp, _type_rank(record), record.id)
    else:
        def key(record: UnifiedInventoryRecord):
            return (record.unified_timestamp, _type_rank(record), record.id)

    return sorted(records, key=key, reverse=sort_order == 'desc')


def filter_and_sort(
    records: list[UnifiedInventoryRecord],
    spec: FilterSpec,
    *,
    tz: tzinfo | None = None,
) -> list[UnifiedInventoryRecord]:
    filtered = apply_filters(records, spec, tz=tz)
    return sort_records(filtered, sort_by=spec.sort_by, sort_order=spec.sort_order)
