from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select

from sales_dashboard.db import SessionLocal, engine
from sales_dashboard.models import Base, Category, Order, OrderItem, PaymentStatus, Product, Store


def _get_or_create(db, model, **values):
    instance = db.execute(select(model).filter_by(**values)).scalars().first()
    if not instance:
        instance = model(**values)
        db.add(instance)
        db.flush()
    return instance


def seed() -> None:
    Base.metadata.create_all(engine)

    with SessionLocal() as db:
        store = _get_or_create(db, Store, name='Downtown')
        karts = _get_or_create(db, Category, name='Go Karts')
        apparel = _get_or_create(db, Category, name='Apparel')
        kart_rental = _get_or_create(db, Product, name='Kart Rental - 1 Day', category_id=karts.id)
        helmet = _get_or_create(db, Product, name='Racing Helmet', category_id=apparel.id)

        existing = db.execute(select(Order.id).where(Order.store_id == store.id)).first()
        if existing:
            db.commit()
            return

        now = datetime.now(timezone.utc)
        paid = Order(
            store_id=store.id,
            payment_status=PaymentStatus.PAID.value,
            payment_date=now - timedelta(days=3),
            payment_method='card',
            discount_amount=Decimal('10.00'),
            gross_amount=Decimal('260.00'),
        )
        refunded = Order(
            store_id=store.id,
            payment_status=PaymentStatus.REFUNDED.value,
            payment_date=now - timedelta(days=2),
            payment_method='cash',
            gross_amount=Decimal('45.00'),
            refund_type='full',
            refund_reason='Wrong size',
        )
        db.add_all([paid, refunded])
        db.flush()

        db.add_all(
            [
                OrderItem(
                    order_id=paid.id,
                    product_id=kart_rental.id,
                    category_id=karts.id,
                    item_type='rental',
                    quantity=1,
                    subtotal=Decimal('200.00'),
                    gross_sales=Decimal('210.00'),
                    discount_amount=Decimal('10.00'),
                    processing_fees=Decimal('6.00'),
                    sales_tax=Decimal('16.00'),
                ),
                OrderItem(
                    order_id=paid.id,
                    item_type='damage_waiver',
                    quantity=1,
                    subtotal=Decimal('25.00'),
                    sales_tax=Decimal('2.00'),
                ),
                OrderItem(
                    order_id=paid.id,
                    item_type='delivery',
                    quantity=1,
                    subtotal=Decimal('35.00'),
                ),
                OrderItem(
                    order_id=refunded.id,
                    product_id=helmet.id,
                    category_id=apparel.id,
                    item_type='retail',
                    quantity=1,
                    subtotal=Decimal('40.00'),
                    shipping_cost=Decimal('5.00'),
                    sales_tax=Decimal('3.20'),
                ),
            ]
        )
        db.commit()


if __name__ == '__main__':
    seed()
    print('Seed data inserted/verified.')
