from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import Row, Select, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import (
    InventoryMovement,
    Product,
    PurchaseOrder,
    PurchaseOrderItem,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from app.services.inventory_store import MovementRow, OrderItemRow, OrderRow, ProductRow, TransactionRow


def movements_query(
    *,
    start_at: datetime | None = None,
    end_at: datetime | None = None,
    movement_type: str | None = None,
) -> Select:
    stmt = select(
        InventoryMovement.id,
        InventoryMovement.product_id,
        InventoryMovement.movement_type,
        InventoryMovement.quantity,
        InventoryMovement.unit_price,
        InventoryMovement.total_amount,
        InventoryMovement.memo,
        InventoryMovement.created_at,
        InventoryMovement.transaction_id,
        InventoryMovement.delivery_scheduled_date,
    )
    if start_at is not None:
        stmt = stmt.where(InventoryMovement.created_at >= start_at)
    if end_at is not None:
        stmt = stmt.where(InventoryMovement.created_at < end_at)
    if movement_type is not None:
        stmt = stmt.where(InventoryMovement.movement_type == movement_type)
    return stmt.order_by(InventoryMovement.created_at.asc(), InventoryMovement.id.asc())


def accounting_transactions_query(
    *,
    start_at: datetime | None = None,
    end_at: datetime | None = None,
    order_ids: list[str] | None = None,
) -> Select:
    stmt = select(
        Transaction.id,
        Transaction.parent_order_id,
        Transaction.total_amount,
        Transaction.delivery_sequence,
        Transaction.created_at,
        Transaction.transaction_no,
        Transaction.memo,
        Transaction.status,
        Transaction.transaction_type,
    ).where(
        Transaction.transaction_type == TransactionType.PURCHASE.value,
        Transaction.status == TransactionStatus.CONFIRMED.value,
        Transaction.parent_order_id.is_not(None),
    )
    if order_ids is not None:
        stmt = stmt.where(Transaction.parent_order_id.in_(order_ids))
    if start_at is not None:
        stmt = stmt.where(Transaction.created_at >= start_at)
    if end_at is not None:
        stmt = stmt.where(Transaction.created_at < end_at)
    return stmt.order_by(Transaction.created_at.asc(), Transaction.id.asc())


class SqlInventoryStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def _fetch_all(self, stmt: Select) -> Sequence[Row]:
        # A session runs one statement at a time and the fetchers query
        # concurrently, so every statement gets its own session.
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return result.all()

    async def query_physical_movements(
        self,
        *,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        movement_type: str | None = None,
    ) -> list[MovementRow]:
        rows = await self._fetch_all(movements_query(start_at=start_at, end_at=end_at, movement_type=movement_type))
        return [
            MovementRow(
                id=row.id,
                product_id=row.product_id,
                movement_type=row.movement_type,
                quantity=row.quantity,
                unit_price=row.unit_price,
                total_amount=row.total_amount,
                memo=row.memo,
                created_at=row.created_at,
                transaction_id=row.transaction_id,
                delivery_scheduled_date=row.delivery_scheduled_date,
            )
            for row in rows
        ]

    async def query_accounting_transactions(
        self,
        *,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        order_ids: list[str] | None = None,
    ) -> list[TransactionRow]:
        if order_ids is not None and not order_ids:
            return []
        rows = await self._fetch_all(
            accounting_transactions_query(start_at=start_at, end_at=end_at, order_ids=order_ids)
        )
        return [
            TransactionRow(
                id=row.id,
                parent_order_id=row.parent_order_id,
                total_amount=row.total_amount,
                delivery_sequence=row.delivery_sequence,
                created_at=row.created_at,
                transaction_no=row.transaction_no,
                memo=row.memo,
                status=row.status,
                transaction_type=row.transaction_type,
            )
            for row in rows
        ]

    async def query_products_by_ids(self, ids: list[str]) -> list[ProductRow]:
        if not ids:
            return []
        rows = await self._fetch_all(
            select(Product.id, Product.product_name, Product.product_code, Product.current_stock).where(Product.id.in_(ids))
        )
        return [
            ProductRow(
                id=row.id,
                product_name=row.product_name,
                product_code=row.product_code,
                current_stock=row.current_stock,
            )
            for row in rows
        ]

    async def query_orders_by_ids(self, ids: list[str]) -> list[OrderRow]:
        if not ids:
            return []
        rows = await self._fetch_all(
            select(
                PurchaseOrder.id,
                PurchaseOrder.order_no,
                PurchaseOrder.total_amount,
                PurchaseOrder.partner_id,
                PurchaseOrder.status,
            ).where(PurchaseOrder.id.in_(ids))
        )
        return [
            OrderRow(
                id=row.id,
                order_no=row.order_no,
                total_amount=row.total_amount,
                partner_id=row.partner_id,
                status=row.status,
            )
            for row in rows
        ]

    async def query_order_items_by_order_ids(self, ids: list[str]) -> list[OrderItemRow]:
        if not ids:
            return []
        rows = await self._fetch_all(
            select(
                PurchaseOrderItem.purchase_order_id,
                PurchaseOrderItem.product_id,
                PurchaseOrderItem.quantity,
                PurchaseOrderItem.unit_price,
            )
            .where(PurchaseOrderItem.purchase_order_id.in_(ids))
            .order_by(PurchaseOrderItem.purchase_order_id.asc(), PurchaseOrderItem.id.asc())
        )
        return [
            OrderItemRow(
                purchase_order_id=row.purchase_order_id,
                product_id=row.product_id,
                quantity=row.quantity,
                unit_price=row.unit_price,
            )
            for row in rows
        ]
