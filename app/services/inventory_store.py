from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol


@dataclass(frozen=True)
class ProductRow:
    id: str
    product_name: str | None
    product_code: str | None
    current_stock: int = 0


@dataclass(frozen=True)
class MovementRow:
    id: str
    product_id: str | None
    movement_type: str | None
    quantity: int | None
    created_at: datetime
    unit_price: Decimal | None = None
    total_amount: Decimal | None = None
    memo: str | None = None
    transaction_id: str | None = None
    delivery_scheduled_date: date | None = None


@dataclass(frozen=True)
class TransactionRow:
    id: str
    parent_order_id: str | None
    total_amount: Decimal | None
    created_at: datetime
    delivery_sequence: int | None = None
    transaction_no: str | None = None
    memo: str | None = None
    status: str = 'confirmed'
    transaction_type: str = 'purchase'


@dataclass(frozen=True)
class OrderRow:
    id: str
    order_no: str | None
    total_amount: Decimal | None
    partner_id: str | None = None
    status: str | None = None


@dataclass(frozen=True)
class OrderItemRow:
    purchase_order_id: str
    product_id: str
    quantity: int
    unit_price: Decimal


class InventoryStore(Protocol):
    """Read-only view over the movements, transactions, products and orders tables.

    Datetime bounds are half-open: ``start_at <= created_at < end_at``.
    Accounting queries only return confirmed purchase transactions that
    belong to a parent order; passing ``order_ids`` narrows them to those
    parent orders.
    """

    async def query_physical_movements(
        self,
        *,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        movement_type: str | None = None,
    ) -> list[MovementRow]: ...

    async def query_accounting_transactions(
        self,
        *,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        order_ids: list[str] | None = None,
    ) -> list[TransactionRow]: ...

    async def query_products_by_ids(self, ids: list[str]) -> list[ProductRow]: ...

    async def query_orders_by_ids(self, ids: list[str]) -> list[OrderRow]: ...

    async def query_order_items_by_order_ids(self, ids: list[str]) -> list[OrderItemRow]: ...
