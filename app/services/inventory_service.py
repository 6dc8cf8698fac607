from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import tzinfo
from decimal import Decimal
from zoneinfo import ZoneInfo

from app.config import settings
from app.services.integrity_validator import OrderReconciliation, reconcile_order_installments
from app.services.inventory_store import InventoryStore
from app.services.record_fetchers import (
    RawInventorySnapshot,
    distinct_ids,
    fetch_inventory_snapshot,
    fetch_order_installments,
)
from app.services.record_normalizer import normalize_records, normalize_transaction
from app.services.running_stock import compute_cumulative_stock
from app.services.unified_filter import FilterSpec, day_bounds, filter_and_sort, validate_filter_spec
from app.services.unified_records import AmountOnlyTransactionRecord, RecordType, UnifiedInventoryRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnifiedInventoryResult:
    records: list[UnifiedInventoryRecord]


def configured_timezone() -> tzinfo | None:
    if not settings.local_timezone:
        return None
    return ZoneInfo(settings.local_timezone)


def build_unified_records(
    snapshot: RawInventorySnapshot,
    *,
    tolerance: Decimal | None = None,
) -> list[UnifiedInventoryRecord]:
    """Normalize, classify and attach running balances; no store access."""
    merged = normalize_records(
        movements=snapshot.movements,
        transactions=snapshot.transactions,
        products=snapshot.products,
        orders=snapshot.orders,
        order_items=snapshot.order_items,
        tolerance=settings.full_delivery_tolerance if tolerance is None else tolerance,
    )
    return compute_cumulative_stock(merged)


async def load_inventory_snapshot(
    store: InventoryStore,
    spec: FilterSpec,
    *,
    tz: tzinfo | None = None,
    accounting_timeout_seconds: float | None = None,
    log: logging.Logger | None = None,
) -> RawInventorySnapshot:
    validate_filter_spec(spec)
    start_at, end_at = day_bounds(spec.start_date, spec.end_date, tz)
    return await fetch_inventory_snapshot(
        store,
        movements_end_at=end_at,
        transactions_start_at=start_at,
        transactions_end_at=end_at,
        accounting_timeout_seconds=(
            settings.accounting_fetch_timeout_seconds if accounting_timeout_seconds is None else accounting_timeout_seconds
        ),
        log=log,
    )


async def get_unified_inventory(
    store: InventoryStore,
    spec: FilterSpec | None = None,
    *,
    tz: tzinfo | None = None,
    tolerance: Decimal | None = None,
    accounting_timeout_seconds: float | None = None,
    log: logging.Logger | None = None,
) -> UnifiedInventoryResult:
    log = log or logger
    spec = spec or FilterSpec()
    tz = tz if tz is not None else configured_timezone()

    snapshot = await load_inventory_snapshot(
        store,
        spec,
        tz=tz,
        accounting_timeout_seconds=accounting_timeout_seconds,
        log=log,
    )
    unified = build_unified_records(snapshot, tolerance=tolerance)
    records = filter_and_sort(unified, spec, tz=tz)

    movement_count = sum(1 for record in records if record.record_type == RecordType.INVENTORY_MOVEMENT)
    log.info(
        'Unified inventory built: movements=%d installments=%d merged=%d returned=%d (movements=%d installments=%d) degraded=%s',
        len(snapshot.movements),
        len(snapshot.transactions),
        len(unified),
        len(records),
        movement_count,
        len(records) - movement_count,
        ','.join(snapshot.degraded_sources) or 'none',
    )
    return UnifiedInventoryResult(records=records)


async def get_order_reconciliation(
    store: InventoryStore,
    records: list[UnifiedInventoryRecord],
    *,
    tolerance: Decimal | None = None,
    minor_band: Decimal | None = None,
    major_band: Decimal | None = None,
) -> list[OrderReconciliation]:
    """Reconcile every order referenced by ``records`` against its full installment history.

    ``records`` only decides which orders are reported. Their installments
    are read again without date bounds so a filtered view never makes a paid
    order look short.
    """
    order_ids = distinct_ids(
        record.correlation_id for record in records if isinstance(record, AmountOnlyTransactionRecord)
    )
    installments, orders = await fetch_order_installments(store, order_ids)
    orders_by_id = {row.id: row for row in orders}
    history = [
        normalize_transaction(
            row,
            orders_by_id=orders_by_id,
            items_by_order_id={},
            products_by_id={},
            tolerance=settings.full_delivery_tolerance if tolerance is None else tolerance,
        )
        for row in installments
    ]
    return reconcile_order_installments(
        history,
        minor_band=settings.minor_discrepancy_band if minor_band is None else minor_band,
        major_band=settings.major_discrepancy_band if major_band is None else major_band,
    )
