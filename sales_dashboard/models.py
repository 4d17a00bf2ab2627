from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class PaymentStatus(str, Enum):
    PAID = 'PAID'
    REFUNDED = 'REFUNDED'
    PENDING = 'PENDING'
    VOID = 'VOID'


class ItemType(str, Enum):
    RETAIL = 'retail'
    RENTAL = 'rental'
    DELIVERY = 'delivery'
    DAMAGE_WAIVER = 'damage_waiver'
    THROWN_TRACK_INSURANCE = 'thrown_track_insurance'
    PREPAID_FUEL = 'prepaid_fuel'
    PREPAID_CLEANING = 'prepaid_cleaning'
    FEE = 'fee'


class RefundType(str, Enum):
    FULL = 'full'
    PARTIAL = 'partial'


REPORTABLE_STATUSES = (PaymentStatus.PAID.value, PaymentStatus.REFUNDED.value)


class Store(Base):
    __tablename__ = 'stores'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Category(Base):
    __tablename__ = 'categories'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class Product(Base):
    __tablename__ = 'products'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[str | None] = mapped_column(ForeignKey('categories.id'))

    category: Mapped[Category | None] = relationship()


class Order(Base):
    __tablename__ = 'orders'
    __table_args__ = (Index('ix_orders_status_payment_date', 'payment_status', 'payment_date'),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    store_id: Mapped[str | None] = mapped_column(ForeignKey('stores.id'))
    payment_status: Mapped[str] = mapped_column(String(32), nullable=False)
    payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    payment_method: Mapped[str | None] = mapped_column(Text)
    discount_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    gross_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    refund_type: Mapped[str | None] = mapped_column(String(16))
    refund_reason: Mapped[str | None] = mapped_column(Text)

    store: Mapped[Store | None] = relationship()
    items: Mapped[list[OrderItem]] = relationship(back_populates='order')


class OrderItem(Base):
    __tablename__ = 'order_items'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    order_id: Mapped[str] = mapped_column(ForeignKey('orders.id'), nullable=False, index=True)
    product_id: Mapped[str | None] = mapped_column(ForeignKey('products.id'))
    category_id: Mapped[str | None] = mapped_column(ForeignKey('categories.id'))
    item_type: Mapped[str] = mapped_column(String(32), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default='1')
    subtotal: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    gross_sales: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    discount_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    shipping_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    processing_fees: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))
    sales_tax: Mapped[Decimal | None] = mapped_column(Numeric(12, 2))

    order: Mapped[Order] = relationship(back_populates='items')
    product: Mapped[Product | None] = relationship()
    category: Mapped[Category | None] = relationship()
