from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum

from app.services.delivery_classifier import delivery_ratio
from app.services.unified_records import (
    AmountOnlyTransactionRecord,
    InventoryMovementRecord,
    IntegrityStatus,
    UnifiedInventoryRecord,
    product_name_of,
    record_key,
    unknown_record_type,
)

logger = logging.getLogger(__name__)

DEFAULT_PERFECT_THRESHOLD = Decimal('1')
DEFAULT_MINOR_DISCREPANCY_BAND = Decimal('100')
DEFAULT_MAJOR_DISCREPANCY_BAND = Decimal('10000')


class IntegrityIssue(str, Enum):
    QUANTITY_MISSING = 'quantity_missing'
    MOVEMENT_TYPE_MISSING = 'movement_type_missing'
    AMOUNT_MISSING = 'amount_missing'
    INSTALLMENT_NO_MISSING = 'installment_no_missing'
    PRODUCT_INCOMPLETE = 'product_incomplete'


class DiscrepancySeverity(str, Enum):
    PERFECT = 'perfect'
    MINOR = 'minor'
    MAJOR = 'major'
    CRITICAL = 'critical'


@dataclass(frozen=True)
class IntegrityReport:
    consistent: list[UnifiedInventoryRecord]
    inconsistencies: list[UnifiedInventoryRecord]
    issues: dict[str, tuple[IntegrityIssue, ...]]


@dataclass(frozen=True)
class OrderReconciliation:
    order_id: str
    order_no: str | None
    order_total: Decimal
    delivered_total: Decimal
    difference: Decimal
    ratio: Decimal | None
    installment_count: int
    severity: DiscrepancySeverity


def record_issues(record: UnifiedInventoryRecord) -> list[IntegrityIssue]:
    issues: list[IntegrityIssue] = []
    if isinstance(record, InventoryMovementRecord):
        if not record.quantity:
            issues.append(IntegrityIssue.QUANTITY_MISSING)
        if not record.movement_type:
            issues.append(IntegrityIssue.MOVEMENT_TYPE_MISSING)
    elif isinstance(record, AmountOnlyTransactionRecord):
        if not record.accounting_amount:
            issues.append(IntegrityIssue.AMOUNT_MISSING)
        if not record.installment_no:
            issues.append(IntegrityIssue.INSTALLMENT_NO_MISSING)
    else:
        raise unknown_record_type(record)

    if not product_name_of(record):
        issues.append(IntegrityIssue.PRODUCT_INCOMPLETE)
    return issues


def _needs_review(record: UnifiedInventoryRecord) -> bool:
    details = record.transaction_details
    return details is not None and details.order_total_missing


def validate_integrity(
    records: list[UnifiedInventoryRecord],
    *,
    log: logging.Logger | None = None,
) -> IntegrityReport:
    """Partition records into consistent and conflicting sets.

    Every input record lands in exactly one of the two lists, re-stamped with
    its ``data_integrity_status``. Records whose parent order has no total
    stay consistent but are marked ``minor_discrepancy`` for review. Input
    records are not modified.
    """
    log = log or logger
    consistent: list[UnifiedInventoryRecord] = []
    inconsistencies: list[UnifiedInventoryRecord] = []
    issues_by_key: dict[str, tuple[IntegrityIssue, ...]] = {}

    for record in records:
        issues = record_issues(record)
        if issues:
            key = record_key(record)
            issues_by_key[key] = tuple(issues)
            inconsistencies.append(replace(record, data_integrity_status=IntegrityStatus.MAJOR_CONFLICT))
            log.warning('Integrity issue on %s: %s', key, ', '.join(issue.value for issue in issues))
            continue
        status = IntegrityStatus.MINOR_DISCREPANCY if _needs_review(record) else IntegrityStatus.CONSISTENT
        consistent.append(replace(record, data_integrity_status=status))

    return IntegrityReport(consistent=consistent, inconsistencies=inconsistencies, issues=issues_by_key)


def classify_discrepancy(
    difference: Decimal,
    *,
    perfect_threshold: Decimal = DEFAULT_PERFECT_THRESHOLD,
    minor_band: Decimal = DEFAULT_MINOR_DISCREPANCY_BAND,
    major_band: Decimal = DEFAULT_MAJOR_DISCREPANCY_BAND,
) -> DiscrepancySeverity:
    if not perfect_threshold <= minor_band <= major_band:
        raise ValueError('Discrepancy bands must be ordered perfect <= minor <= major')
    magnitude = abs(difference)
    if magnitude < perfect_threshold:
        return DiscrepancySeverity.PERFECT
    if magnitude <= minor_band:
        return DiscrepancySeverity.MINOR
    if magnitude <= major_band:
        return DiscrepancySeverity.MAJOR
    return DiscrepancySeverity.CRITICAL


_SEVERITY_RANK = {
    DiscrepancySeverity.CRITICAL: 0,
    DiscrepancySeverity.MAJOR: 1,
    DiscrepancySeverity.MINOR: 2,
    DiscrepancySeverity.PERFECT: 3,
}


@dataclass
class _OrderTally:
    order_no: str | None
    order_total: Decimal
    delivered_total: Decimal = Decimal('0')
    installment_count: int = 0


def reconcile_order_installments(
    records: list[UnifiedInventoryRecord],
    *,
    perfect_threshold: Decimal = DEFAULT_PERFECT_THRESHOLD,
    minor_band: Decimal = DEFAULT_MINOR_DISCREPANCY_BAND,
    major_band: Decimal = DEFAULT_MAJOR_DISCREPANCY_BAND,
) -> list[OrderReconciliation]:
    """Compare summed installment amounts against each parent order's total.

    Every installment of an order has to be in ``records`` for the result to
    be meaningful; callers pass the order's full history, not a date-filtered
    page. Orders without a resolved, non-zero total are skipped. Worst
    severities come first.
    """
    tallies: dict[str, _OrderTally] = {}
    for record in records:
        if not isinstance(record, AmountOnlyTransactionRecord) or record.correlation_id is None:
            continue
        details = record.transaction_details
        if details is None or details.order_total_missing or details.order_total_amount is None:
            continue
        tally = tallies.setdefault(
            record.correlation_id,
            _OrderTally(order_no=details.order_no, order_total=details.order_total_amount),
        )
        tally.delivered_total += record.accounting_amount or Decimal('0')
        tally.installment_count += 1

    rows: list[OrderReconciliation] = []
    for order_id, tally in tallies.items():
        difference = tally.delivered_total - tally.order_total
        rows.append(
            OrderReconciliation(
                order_id=order_id,
                order_no=tally.order_no,
                order_total=tally.order_total,
                delivered_total=tally.delivered_total,
                difference=difference,
                ratio=delivery_ratio(tally.delivered_total, tally.order_total),
                installment_count=tally.installment_count,
                severity=classify_discrepancy(
                    difference,
                    perfect_threshold=perfect_threshold,
                    minor_band=minor_band,
                    major_band=major_band,
                ),
            )
        )

    rows.sort(key=lambda row: (_SEVERITY_RANK[row.severity], -abs(row.difference), row.order_no or '', row.order_id))
    return rows
