"""Merged view over physical stock movements and accounting-only installments.

Both record kinds share ``unified_timestamp`` (epoch milliseconds of the
source row's ``created_at``) as their single ordering key. ``record_type`` is
a class-level discriminant; consumers branch on it and reject anything else.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Union


class RecordType(str, Enum):
    INVENTORY_MOVEMENT = 'inventory_movement'
    AMOUNT_ONLY_TRANSACTION = 'amount_only_transaction'


class SourceSystem(str, Enum):
    INVENTORY = 'inventory'
    ACCOUNTING = 'accounting'


class DeliveryType(str, Enum):
    FULL = 'full'
    PARTIAL = 'partial'
    AMOUNT_ONLY = 'amount_only'


class IntegrityStatus(str, Enum):
    CONSISTENT = 'consistent'
    MINOR_DISCREPANCY = 'minor_discrepancy'
    MAJOR_CONFLICT = 'major_conflict'


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def epoch_millis(value: datetime) -> int:
    if value.tzinfo is None:
        # Naive timestamps are read as local time.
        value = value.astimezone()
    return (value - _EPOCH) // timedelta(milliseconds=1)


@dataclass(frozen=True)
class ProductSnapshot:
    id: str
    product_name: str | None
    product_code: str | None
    current_stock: int = 0


@dataclass(frozen=True)
class TransactionDetails:
    order_no: str | None
    delivery_type: DeliveryType
    delivery_amount: Decimal | None
    order_total_amount: Decimal | None
    transaction_type: str | None = None
    order_total_missing: bool = False


@dataclass(frozen=True)
class InventoryMovementRecord:
    record_type: ClassVar[RecordType] = RecordType.INVENTORY_MOVEMENT
    source_system: ClassVar[SourceSystem] = SourceSystem.INVENTORY

    id: str
    unified_timestamp: int
    created_at: datetime
    product_id: str | None
    products: ProductSnapshot | None
    movement_type: str | None
    quantity: int | None
    total_amount: Decimal
    memo: str | None = None
    unit_price: Decimal | None = None
    transaction_id: str | None = None
    delivery_scheduled_date: date | None = None
    transaction_details: TransactionDetails | None = None
    cumulative_stock_at_time: int | None = None
    data_integrity_status: IntegrityStatus = IntegrityStatus.CONSISTENT

    @property
    def physical_quantity(self) -> int:
        return self.quantity or 0

    @property
    def installment_no(self) -> int | None:
        return None


@dataclass(frozen=True)
class AmountOnlyTransactionRecord:
    record_type: ClassVar[RecordType] = RecordType.AMOUNT_ONLY_TRANSACTION
    source_system: ClassVar[SourceSystem] = SourceSystem.ACCOUNTING

    id: str
    unified_timestamp: int
    created_at: datetime
    product_id: str | None
    products: ProductSnapshot | None
    total_amount: Decimal
    accounting_amount: Decimal | None
    installment_no: int | None
    memo: str | None = None
    unit_price: Decimal | None = None
    transaction_no: str | None = None
    correlation_id: str | None = None
    transaction_details: TransactionDetails | None = None
    data_integrity_status: IntegrityStatus = IntegrityStatus.CONSISTENT

    @property
    def physical_quantity(self) -> int:
        return 0


UnifiedInventoryRecord = Union[InventoryMovementRecord, AmountOnlyTransactionRecord]


def record_key(record: UnifiedInventoryRecord) -> str:
    return f'{record.record_type.value}:{record.id}'


def product_name_of(record: UnifiedInventoryRecord) -> str | None:
    if record.products is None:
        return None
    return record.products.product_name


def unknown_record_type(record: object) -> TypeError:
    return TypeError(f'Unsupported unified inventory record: {type(record).__name__}')
