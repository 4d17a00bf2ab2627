from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sales_dashboard.models import (
    REPORTABLE_STATUSES,
    Category,
    ItemType,
    Order,
    OrderItem,
    PaymentStatus,
    Product,
    Store,
)
from sales_dashboard.services.sales_filters import SalesFilters, is_set

logger = logging.getLogger(__name__)

ADD_ON_ITEM_TYPES = (ItemType.DAMAGE_WAIVER.value, ItemType.THROWN_TRACK_INSURANCE.value)


class SalesDataAccessError(RuntimeError):
    """Raised when rows for a report cannot be fetched from the order store."""


class ReportKind(str, Enum):
    SERIES = 'series'
    TOP_PRODUCTS = 'top_products'
    TOP_CATEGORIES = 'top_categories'
    SUMMARY = 'summary'
    REVENUE = 'revenue'
    PRODUCT_DETAIL = 'product_detail'
    TAX_PAYMENTS = 'tax_payments'
    DISCOUNTS = 'discounts'
    REFUNDS = 'refunds'


@dataclass(frozen=True)
class BasePredicate:
    statuses: tuple[str, ...]
    exclude_add_ons: bool = False
    require_product: bool = False
    require_category: bool = False
    positive_discount: bool = False


BASE_PREDICATES: dict[ReportKind, BasePredicate] = {
    ReportKind.SERIES: BasePredicate(statuses=REPORTABLE_STATUSES),
    ReportKind.TOP_PRODUCTS: BasePredicate(statuses=REPORTABLE_STATUSES, exclude_add_ons=True, require_product=True),
    ReportKind.TOP_CATEGORIES: BasePredicate(statuses=REPORTABLE_STATUSES, exclude_add_ons=True, require_category=True),
    ReportKind.SUMMARY: BasePredicate(statuses=REPORTABLE_STATUSES),
    ReportKind.REVENUE: BasePredicate(statuses=REPORTABLE_STATUSES),
    ReportKind.PRODUCT_DETAIL: BasePredicate(statuses=REPORTABLE_STATUSES, require_product=True),
    ReportKind.TAX_PAYMENTS: BasePredicate(statuses=REPORTABLE_STATUSES),
    ReportKind.DISCOUNTS: BasePredicate(statuses=(PaymentStatus.PAID.value,), positive_discount=True),
    ReportKind.REFUNDS: BasePredicate(statuses=(PaymentStatus.REFUNDED.value,)),
}


@dataclass(frozen=True)
class ItemRow:
    order_id: str
    payment_status: str
    payment_date: datetime | None
    item_type: str
    quantity: int | None
    subtotal: Decimal | None
    gross_sales: Decimal | None
    discount_amount: Decimal | None
    shipping_cost: Decimal | None
    processing_fees: Decimal | None
    sales_tax: Decimal | None
    product_id: str | None = None
    product_name: str | None = None
    category_id: str | None = None
    category_name: str | None = None


@dataclass(frozen=True)
class OrderRow:
    id: str
    payment_status: str
    payment_date: datetime | None
    payment_method: str | None
    discount_amount: Decimal | None
    gross_amount: Decimal | None
    refund_type: str | None
    refund_reason: str | None
    items: tuple[ItemRow, ...] = ()


@dataclass(frozen=True)
class LookupRow:
    id: str
    name: str
    category_id: str | None = None


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def item_filter_conditions(filters: SalesFilters) -> list:
    conditions = []
    if is_set(filters.category):
        conditions.append(OrderItem.category_id == filters.category)
    if is_set(filters.product):
        conditions.append(OrderItem.product_id == filters.product)
    if filters.item_type in {ItemType.RENTAL.value, ItemType.RETAIL.value}:
        conditions.append(OrderItem.item_type == filters.item_type)

    for exclude_flag, only_flag, item_type in (
        ('exclude_waiver', 'waiver_only', ItemType.DAMAGE_WAIVER),
        ('exclude_insurance', 'insurance_only', ItemType.THROWN_TRACK_INSURANCE),
        ('exclude_delivery', 'delivery_only', ItemType.DELIVERY),
    ):
        if getattr(filters, exclude_flag):
            conditions.append(OrderItem.item_type != item_type.value)
        if getattr(filters, only_flag):
            conditions.append(OrderItem.item_type == item_type.value)
    return conditions


def order_filter_conditions(
    filters: SalesFilters,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list:
    conditions = []
    if is_set(filters.store):
        conditions.append(Order.store_id == filters.store)
    if start_date:
        conditions.append(Order.payment_date >= _day_start(start_date))
    if end_date:
        conditions.append(Order.payment_date < _day_start(end_date + timedelta(days=1)))
    return conditions


def base_conditions(kind: ReportKind) -> tuple[list, list]:
    """Order-level and item-level predicates every query of ``kind`` carries."""
    predicate = BASE_PREDICATES[kind]
    order_conditions = [
        Order.payment_status.in_(predicate.statuses),
        Order.payment_date.is_not(None),
    ]
    if predicate.positive_discount:
        order_conditions.append(Order.discount_amount > 0)

    item_conditions = []
    if predicate.exclude_add_ons:
        item_conditions.append(OrderItem.item_type.not_in(ADD_ON_ITEM_TYPES))
    if predicate.require_product:
        item_conditions.append(OrderItem.product_id.is_not(None))
    if predicate.require_category:
        item_conditions.append(OrderItem.category_id.is_not(None))
    return order_conditions, item_conditions


def build_item_query(
    kind: ReportKind,
    filters: SalesFilters,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> Select:
    order_conditions, item_conditions = base_conditions(kind)
    return (
        select(
            OrderItem.order_id,
            Order.payment_status,
            Order.payment_date,
            OrderItem.item_type,
            OrderItem.quantity,
            OrderItem.subtotal,
            OrderItem.gross_sales,
            OrderItem.discount_amount,
            OrderItem.shipping_cost,
            OrderItem.processing_fees,
            OrderItem.sales_tax,
            OrderItem.product_id,
            Product.name.label('product_name'),
            OrderItem.category_id,
            Category.name.label('category_name'),
        )
        .join(Order, Order.id == OrderItem.order_id)
        .outerjoin(Product, Product.id == OrderItem.product_id)
        .outerjoin(Category, Category.id == OrderItem.category_id)
        .where(
            *order_conditions,
            *item_conditions,
            *item_filter_conditions(filters),
            *order_filter_conditions(filters, start_date=start_date, end_date=end_date),
        )
        .order_by(Order.payment_date.asc(), OrderItem.order_id.asc(), OrderItem.id.asc())
    )


def build_order_query(
    kind: ReportKind,
    filters: SalesFilters,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> Select:
    order_conditions, item_conditions = base_conditions(kind)
    stmt = select(
        Order.id,
        Order.payment_status,
        Order.payment_date,
        Order.payment_method,
        Order.discount_amount,
        Order.gross_amount,
        Order.refund_type,
        Order.refund_reason,
    ).where(
        *order_conditions,
        *order_filter_conditions(filters, start_date=start_date, end_date=end_date),
    )
    item_conditions = item_conditions + item_filter_conditions(filters)
    if item_conditions:
        stmt = stmt.where(Order.id.in_(select(OrderItem.order_id).where(*item_conditions)))
    return stmt.order_by(Order.payment_date.asc(), Order.id.asc())


def _execute(db: Session, stmt: Select, label: str) -> list:
    try:
        return list(db.execute(stmt).all())
    except SQLAlchemyError as exc:
        logger.error('Fetching %s rows failed: %s', label, exc)
        raise SalesDataAccessError(f'Failed to fetch {label} rows') from exc


def _item_row(row) -> ItemRow:
    return ItemRow(
        order_id=row.order_id,
        payment_status=row.payment_status,
        payment_date=row.payment_date,
        item_type=row.item_type,
        quantity=row.quantity,
        subtotal=row.subtotal,
        gross_sales=row.gross_sales,
        discount_amount=row.discount_amount,
        shipping_cost=row.shipping_cost,
        processing_fees=row.processing_fees,
        sales_tax=row.sales_tax,
        product_id=row.product_id,
        product_name=row.product_name,
        category_id=row.category_id,
        category_name=row.category_name,
    )


def fetch_order_items(
    db: Session,
    kind: ReportKind,
    filters: SalesFilters,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[ItemRow]:
    stmt = build_item_query(kind, filters, start_date=start_date, end_date=end_date)
    rows = [_item_row(row) for row in _execute(db, stmt, kind.value)]
    logger.debug('Fetched %d order item rows for %s', len(rows), kind.value)
    return rows


def fetch_orders(
    db: Session,
    kind: ReportKind,
    filters: SalesFilters,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    include_items: bool = True,
) -> list[OrderRow]:
    order_rows = _execute(db, build_order_query(kind, filters, start_date=start_date, end_date=end_date), kind.value)
    if not order_rows:
        return []

    items_by_order: dict[str, list[ItemRow]] = {}
    if include_items:
        # Nested items carry the same item-level filters as the order match.
        item_stmt = build_item_query(kind, filters, start_date=start_date, end_date=end_date).where(
            OrderItem.order_id.in_([row.id for row in order_rows])
        )
        for row in _execute(db, item_stmt, f'{kind.value} items'):
            items_by_order.setdefault(row.order_id, []).append(_item_row(row))

    orders = [
        OrderRow(
            id=row.id,
            payment_status=row.payment_status,
            payment_date=row.payment_date,
            payment_method=row.payment_method,
            discount_amount=row.discount_amount,
            gross_amount=row.gross_amount,
            refund_type=row.refund_type,
            refund_reason=row.refund_reason,
            items=tuple(items_by_order.get(row.id, ())),
        )
        for row in order_rows
    ]
    logger.debug('Fetched %d order rows for %s', len(orders), kind.value)
    return orders


def fetch_categories(db: Session) -> list[LookupRow]:
    rows = _execute(db, select(Category.id, Category.name).order_by(Category.name.asc()), 'categories')
    return [LookupRow(id=row.id, name=row.name) for row in rows]


def fetch_products(db: Session, category_id: str | None = None) -> list[LookupRow]:
    stmt = select(Product.id, Product.name, Product.category_id).order_by(Product.name.asc())
    if is_set(category_id):
        stmt = stmt.where(Product.category_id == category_id)
    rows = _execute(db, stmt, 'products')
    return [LookupRow(id=row.id, name=row.name, category_id=row.category_id) for row in rows]


def fetch_stores(db: Session) -> list[LookupRow]:
    rows = _execute(db, select(Store.id, Store.name).order_by(Store.name.asc()), 'stores')
    return [LookupRow(id=row.id, name=row.name) for row in rows]
