from __future__ import annotations

from datetime import datetime

from app.models import TransactionStatus, TransactionType
from app.services.inventory_store import MovementRow, OrderItemRow, OrderRow, ProductRow, TransactionRow


def _within(created_at: datetime, start_at: datetime | None, end_at: datetime | None) -> bool:
    if start_at is not None and created_at < start_at:
        return False
    if end_at is not None and created_at >= end_at:
        return False
    return True


class MemoryInventoryStore:
    def __init__(
        self,
        *,
        products: list[ProductRow] | None = None,
        movements: list[MovementRow] | None = None,
        transactions: list[TransactionRow] | None = None,
        orders: list[OrderRow] | None = None,
        order_items: list[OrderItemRow] | None = None,
    ) -> None:
        self.products = list(products or [])
        self.movements = list(movements or [])
        self.transactions = list(transactions or [])
        self.orders = list(orders or [])
        self.order_items = list(order_items or [])

    async def query_physical_movements(
        self,
        *,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        movement_type: str | None = None,
    ) -> list[MovementRow]:
        return [
            row
            for row in self.movements
            if _within(row.created_at, start_at, end_at)
            and (movement_type is None or row.movement_type == movement_type)
        ]

    async def query_accounting_transactions(
        self,
        *,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        order_ids: list[str] | None = None,
    ) -> list[TransactionRow]:
        wanted = set(order_ids) if order_ids is not None else None
        return [
            row
            for row in self.transactions
            if row.transaction_type == TransactionType.PURCHASE.value
            and row.status == TransactionStatus.CONFIRMED.value
            and row.parent_order_id is not None
            and (wanted is None or row.parent_order_id in wanted)
            and _within(row.created_at, start_at, end_at)
        ]

    async def query_products_by_ids(self, ids: list[str]) -> list[ProductRow]:
        wanted = set(ids)
        return [row for row in self.products if row.id in wanted]

    async def query_orders_by_ids(self, ids: list[str]) -> list[OrderRow]:
        wanted = set(ids)
        return [row for row in self.orders if row.id in wanted]

    async def query_order_items_by_order_ids(self, ids: list[str]) -> list[OrderItemRow]:
        wanted = set(ids)
        return [row for row in self.order_items if row.purchase_order_id in wanted]
