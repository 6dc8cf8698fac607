from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class MovementType(str, Enum):
    IN = 'in'
    OUT = 'out'


class TransactionType(str, Enum):
    PURCHASE = 'purchase'
    SALE = 'sale'


class TransactionStatus(str, Enum):
    DRAFT = 'draft'
    CONFIRMED = 'confirmed'


class Partner(Base):
    __tablename__ = 'partners'

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    partner_type: Mapped[str] = mapped_column(Text, nullable=False, default='supplier', server_default='supplier')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Product(Base):
    __tablename__ = 'products'

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    product_code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    current_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class PurchaseOrder(Base):
    __tablename__ = 'purchase_orders'

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    order_no: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    partner_id: Mapped[str | None] = mapped_column(Text, ForeignKey('partners.id'))
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    status: Mapped[str] = mapped_column(Text, nullable=False, default='draft', server_default='draft')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class PurchaseOrderItem(Base):
    __tablename__ = 'purchase_order_items'

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True)
    purchase_order_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey('purchase_orders.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    product_id: Mapped[str] = mapped_column(Text, ForeignKey('products.id'), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default='0')
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal('0'), server_default='0')


class Transaction(Base):
    __tablename__ = 'transactions'
    __table_args__ = (
        Index('ix_transactions_parent_order_created', 'parent_order_id', 'created_at'),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    transaction_no: Mapped[str | None] = mapped_column(Text)
    transaction_type: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default='draft', server_default='draft')
    parent_order_id: Mapped[str | None] = mapped_column(Text, ForeignKey('purchase_orders.id', ondelete='SET NULL'))
    partner_id: Mapped[str | None] = mapped_column(Text, ForeignKey('partners.id'))
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    delivery_sequence: Mapped[int | None] = mapped_column(Integer)
    memo: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class InventoryMovement(Base):
    __tablename__ = 'inventory_movements'
    __table_args__ = (
        CheckConstraint("movement_type IN ('in', 'out')", name='inventory_movements_movement_type_chk'),
        CheckConstraint('quantity > 0', name='inventory_movements_quantity_positive_chk'),
        Index('ix_inventory_movements_product_created', 'product_id', 'created_at'),
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    product_id: Mapped[str] = mapped_column(Text, ForeignKey('products.id'), nullable=False)
    movement_type: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2))
    memo: Mapped[str | None] = mapped_column(Text)
    transaction_id: Mapped[str | None] = mapped_column(Text, ForeignKey('transactions.id', ondelete='SET NULL'))
    delivery_scheduled_date: Mapped[date | None] = mapped_column(Date)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
