import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select

from app.db import SessionLocal
from app.models import (
    InventoryMovement,
    Partner,
    Product,
    PurchaseOrder,
    PurchaseOrderItem,
    Transaction,
)
from app.services.inventory_store import MovementRow, OrderItemRow, OrderRow, ProductRow, TransactionRow
from app.services.memory_inventory_store import MemoryInventoryStore

PARTNER_ID = 'partner-001'
_BASE = datetime(2024, 1, 10, 9, 0, tzinfo=timezone(timedelta(hours=9)))


def demo_products() -> list[ProductRow]:
    return [
        ProductRow(id='prod-001', product_name='ボールペン 黒', product_code='BP-001', current_stock=12),
        ProductRow(id='prod-002', product_name='A4コピー用紙', product_code='CP-A4', current_stock=40),
        ProductRow(id='prod-003', product_name='ホッチキス', product_code='HK-010', current_stock=5),
    ]


def demo_orders() -> list[OrderRow]:
    return [
        OrderRow(id='po-001', order_no='PO202401010001', total_amount=Decimal('50000'), partner_id=PARTNER_ID, status='confirmed'),
        OrderRow(id='po-002', order_no='PO202401020002', total_amount=Decimal('12000'), partner_id=PARTNER_ID, status='completed'),
    ]


def demo_order_items() -> list[OrderItemRow]:
    return [
        OrderItemRow(purchase_order_id='po-001', product_id='prod-002', quantity=100, unit_price=Decimal('400')),
        OrderItemRow(purchase_order_id='po-001', product_id='prod-003', quantity=10, unit_price=Decimal('1000')),
        OrderItemRow(purchase_order_id='po-002', product_id='prod-001', quantity=120, unit_price=Decimal('100')),
    ]


def demo_transactions() -> list[TransactionRow]:
    return [
        TransactionRow(
            id='tx-001',
            parent_order_id='po-001',
            total_amount=Decimal('30000'),
            created_at=_BASE + timedelta(days=1),
            delivery_sequence=1,
            transaction_no='TX-0001',
            memo='分納入力(1回目) - PO202401010001',
        ),
        TransactionRow(
            id='tx-002',
            parent_order_id='po-001',
            total_amount=Decimal('20000'),
            created_at=_BASE + timedelta(days=3),
            delivery_sequence=2,
            transaction_no='TX-0002',
            memo='分納入力(2回目) - PO202401010001',
        ),
        TransactionRow(
            id='tx-003',
            parent_order_id='po-002',
            total_amount=Decimal('12000'),
            created_at=_BASE + timedelta(days=2),
            delivery_sequence=1,
            transaction_no='TX-0003',
            memo=None,
        ),
    ]


def demo_movements() -> list[MovementRow]:
    return [
        MovementRow(
            id='mv-001',
            product_id='prod-001',
            movement_type='in',
            quantity=120,
            unit_price=Decimal('100'),
            total_amount=Decimal('12000'),
            memo='全納入庫 - PO202401020002',
            created_at=_BASE + timedelta(days=2, minutes=5),
            transaction_id='tx-003',
        ),
        MovementRow(
            id='mv-002',
            product_id='prod-001',
            movement_type='out',
            quantity=108,
            unit_price=Decimal('150'),
            memo='店舗出荷',
            created_at=_BASE + timedelta(days=4),
        ),
        MovementRow(
            id='mv-003',
            product_id='prod-002',
            movement_type='in',
            quantity=40,
            unit_price=Decimal('400'),
            memo='分納入力(2回目) - PO202401010001',
            created_at=_BASE + timedelta(days=3, minutes=5),
            transaction_id='tx-002',
        ),
    ]


def demo_store() -> MemoryInventoryStore:
    return MemoryInventoryStore(
        products=demo_products(),
        movements=demo_movements(),
        transactions=demo_transactions(),
        orders=demo_orders(),
        order_items=demo_order_items(),
    )


async def seed(session_factory=SessionLocal) -> None:
    async with session_factory() as db:
        existing = (await db.execute(select(Partner).where(Partner.id == PARTNER_ID))).scalar_one_or_none()
        if existing:
            return

        db.add(Partner(id=PARTNER_ID, name='文具商事', partner_type='supplier'))
        for row in demo_products():
            db.add(Product(id=row.id, product_name=row.product_name, product_code=row.product_code, current_stock=row.current_stock))
        for row in demo_orders():
            db.add(
                PurchaseOrder(
                    id=row.id,
                    order_no=row.order_no,
                    partner_id=row.partner_id,
                    total_amount=row.total_amount,
                    status=row.status,
                )
            )
        await db.flush()
        for row in demo_order_items():
            db.add(
                PurchaseOrderItem(
                    purchase_order_id=row.purchase_order_id,
                    product_id=row.product_id,
                    quantity=row.quantity,
                    unit_price=row.unit_price,
                )
            )
        for row in demo_transactions():
            db.add(
                Transaction(
                    id=row.id,
                    transaction_no=row.transaction_no,
                    transaction_type=row.transaction_type,
                    status=row.status,
                    parent_order_id=row.parent_order_id,
                    partner_id=PARTNER_ID,
                    total_amount=row.total_amount,
                    delivery_sequence=row.delivery_sequence,
                    memo=row.memo,
                    created_at=row.created_at,
                )
            )
        await db.flush()
        for row in demo_movements():
            db.add(
                InventoryMovement(
                    id=row.id,
                    product_id=row.product_id,
                    movement_type=row.movement_type,
                    quantity=row.quantity,
                    unit_price=row.unit_price,
                    total_amount=row.total_amount,
                    memo=row.memo,
                    transaction_id=row.transaction_id,
                    delivery_scheduled_date=row.delivery_scheduled_date,
                    created_at=row.created_at,
                )
            )
        await db.commit()


if __name__ == '__main__':
    asyncio.run(seed())
    print('Seed data inserted/verified.')
