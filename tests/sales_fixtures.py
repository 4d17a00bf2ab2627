from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sales_dashboard.models import Base, Category, Order, OrderItem, Product, Store

TODAY = date(2026, 10, 19)


def _at(year: int, month: int, day: int, hour: int = 12) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def make_session_factory() -> sessionmaker:
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False)


def seed_sales(db: Session) -> None:
    """Two stores, two categories, three products, and orders in every reporting state."""
    db.add_all(
        [
            Store(id='s1', name='Downtown'),
            Store(id='s2', name='Airport'),
            Category(id='c1', name='Go Karts'),
            Category(id='c2', name='Apparel'),
        ]
    )
    db.flush()
    db.add_all(
        [
            Product(id='p1', name='Kart Rental', category_id='c1'),
            Product(id='p2', name='Racing Helmet', category_id='c2'),
            Product(id='p3', name='Gloves', category_id='c2'),
        ]
    )
    db.flush()

    db.add_all(
        [
            Order(
                id='o1',
                store_id='s1',
                payment_status='PAID',
                payment_date=_at(2026, 10, 18, 10),
                payment_method='card',
                discount_amount=Decimal('10.00'),
                gross_amount=Decimal('260.00'),
            ),
            Order(
                id='o2',
                store_id='s1',
                payment_status='REFUNDED',
                payment_date=_at(2026, 10, 17),
                payment_method='cash',
                refund_type='full',
                refund_reason='Wrong size',
            ),
            Order(
                id='o3',
                store_id='s2',
                payment_status='PAID',
                payment_date=_at(2026, 9, 1, 9),
                payment_method='ACH',
                discount_amount=Decimal('0'),
                gross_amount=Decimal('100.00'),
            ),
            Order(id='o4', store_id='s1', payment_status='PENDING', payment_date=_at(2026, 10, 18)),
            Order(id='o5', store_id='s1', payment_status='PAID', payment_date=None),
            Order(
                id='o6',
                store_id='s2',
                payment_status='PAID',
                payment_date=_at(2026, 10, 10),
                payment_method='Check',
                discount_amount=Decimal('5.00'),
                gross_amount=Decimal('55.00'),
            ),
        ]
    )
    db.flush()

    db.add_all(
        [
            OrderItem(
                id='i1',
                order_id='o1',
                product_id='p1',
                category_id='c1',
                item_type='rental',
                quantity=1,
                subtotal=Decimal('200.00'),
                gross_sales=Decimal('210.00'),
                discount_amount=Decimal('10.00'),
                processing_fees=Decimal('6.00'),
                sales_tax=Decimal('16.00'),
            ),
            OrderItem(
                id='i2',
                order_id='o1',
                item_type='damage_waiver',
                quantity=1,
                subtotal=Decimal('25.00'),
                sales_tax=Decimal('2.00'),
            ),
            OrderItem(id='i3', order_id='o1', item_type='delivery', quantity=1, subtotal=Decimal('35.00')),
            OrderItem(
                id='i4',
                order_id='o2',
                product_id='p2',
                category_id='c2',
                item_type='retail',
                quantity=1,
                subtotal=Decimal('40.00'),
                shipping_cost=Decimal('5.00'),
                sales_tax=Decimal('3.20'),
            ),
            OrderItem(
                id='i5',
                order_id='o3',
                product_id='p2',
                category_id='c2',
                item_type='retail',
                quantity=2,
                subtotal=Decimal('100.00'),
                shipping_cost=Decimal('10.00'),
                sales_tax=Decimal('8.00'),
            ),
            OrderItem(
                id='i6',
                order_id='o6',
                product_id='p3',
                category_id='c2',
                item_type='retail',
                quantity=1,
                subtotal=Decimal('50.00'),
            ),
            OrderItem(
                id='i7',
                order_id='o6',
                item_type='thrown_track_insurance',
                quantity=1,
                subtotal=Decimal('15.00'),
            ),
            OrderItem(
                id='i8',
                order_id='o4',
                product_id='p3',
                category_id='c2',
                item_type='retail',
                quantity=1,
                subtotal=Decimal('999.00'),
            ),
            OrderItem(
                id='i9',
                order_id='o5',
                product_id='p3',
                category_id='c2',
                item_type='retail',
                quantity=1,
                subtotal=Decimal('999.00'),
            ),
        ]
    )
    db.commit()
