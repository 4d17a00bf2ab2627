from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Sequence

from sales_dashboard.models import ItemType, PaymentStatus, RefundType
from sales_dashboard.services.sales_query_service import ItemRow, OrderRow

ZERO = Decimal('0')
CENT = Decimal('0.01')

CURRENT = 'current'
PREVIOUS = 'previous'

UNKNOWN_PRODUCT = 'Unknown Product'
UNKNOWN_CATEGORY = 'Unknown Category'
UNSPECIFIED_REASON = 'Not specified'

PAYMENT_METHOD_BUCKETS = {
    'cash': 'cash',
    'card': 'card',
    'credit': 'card',
    'debit': 'card',
    'credit card': 'card',
    'debit card': 'card',
    'credit_card': 'card',
    'debit_card': 'card',
    'credit/debit': 'card',
    'credit/debit card': 'card',
    'ach': 'ach',
    'check': 'check',
    'cheque': 'check',
    'account': 'account',
    'on account': 'account',
    'on_account': 'account',
    'house account': 'account',
}


def _decimal_or_zero(raw_value: object) -> Decimal:
    if raw_value is None or raw_value == '':
        return ZERO
    try:
        return Decimal(str(raw_value))
    except (InvalidOperation, TypeError, ValueError):
        return ZERO


def _int_or_zero(raw_value: object) -> int:
    try:
        return int(raw_value or 0)
    except (TypeError, ValueError):
        return 0


def _ratio(numerator: Decimal, denominator: Decimal | int) -> Decimal:
    if not denominator:
        return ZERO
    return (Decimal(numerator) / Decimal(denominator)).quantize(CENT, rounding=ROUND_HALF_UP)


def _is_reportable(payment_status: str, payment_date: object) -> bool:
    return payment_date is not None and payment_status in {PaymentStatus.PAID.value, PaymentStatus.REFUNDED.value}


def _is_refunded(payment_status: str) -> bool:
    return payment_status == PaymentStatus.REFUNDED.value


def payment_day(value: datetime | date | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def line_amount(item: ItemRow, *, exclude_shipping: bool = False) -> Decimal:
    """Revenue of one line item: subtotal, shipping and processing fees. Sales tax is never included."""
    shipping = ZERO if exclude_shipping else _decimal_or_zero(item.shipping_cost)
    return _decimal_or_zero(item.subtotal) + shipping + _decimal_or_zero(item.processing_fees)


def signed_amount(item: ItemRow, *, exclude_shipping: bool = False) -> Decimal:
    amount = line_amount(item, exclude_shipping=exclude_shipping)
    return -amount if _is_refunded(item.payment_status) else amount


def gross_line_amount(item: ItemRow, *, exclude_shipping: bool = False) -> Decimal:
    base = _decimal_or_zero(item.gross_sales) or _decimal_or_zero(item.subtotal)
    shipping = ZERO if exclude_shipping else _decimal_or_zero(item.shipping_cost)
    return base + shipping + _decimal_or_zero(item.processing_fees)


@dataclass(frozen=True)
class SalesDataPoint:
    date: date
    sales: Decimal
    period: str


@dataclass(frozen=True)
class ComparisonPoint:
    day_index: int
    date: date
    current: Decimal
    previous: Decimal


@dataclass(frozen=True)
class PeriodComparison:
    current_total: Decimal
    previous_total: Decimal
    growth_rate: Decimal
    current_average: Decimal
    points: list[ComparisonPoint]


def rolling_window(today: date, days: int) -> list[tuple[date, str]]:
    """``2 * days`` calendar days ending yesterday; the later half is the current period."""
    return [
        (today - timedelta(days=offset), CURRENT if offset <= days else PREVIOUS)
        for offset in range(days * 2, 0, -1)
    ]


def _month_days(year: int, month: int) -> list[date]:
    return [date(year, month, day) for day in range(1, monthrange(year, month)[1] + 1)]


def last_month_window(today: date) -> list[tuple[date, str]]:
    last_month_end = today.replace(day=1) - timedelta(days=1)
    month_before_end = last_month_end.replace(day=1) - timedelta(days=1)
    previous = [(day, PREVIOUS) for day in _month_days(month_before_end.year, month_before_end.month)]
    current = [(day, CURRENT) for day in _month_days(last_month_end.year, last_month_end.month)]
    return previous + current


def build_daily_series(
    items: Iterable[ItemRow],
    window: Sequence[tuple[date, str]],
    *,
    exclude_shipping: bool = False,
) -> list[SalesDataPoint]:
    sales_by_day: dict[date, Decimal] = {}
    for item in items:
        if not _is_reportable(item.payment_status, item.payment_date):
            continue
        day = payment_day(item.payment_date)
        sales_by_day[day] = sales_by_day.get(day, ZERO) + signed_amount(item, exclude_shipping=exclude_shipping)

    return [SalesDataPoint(date=day, sales=sales_by_day.get(day, ZERO), period=period) for day, period in window]


def summarize_period_comparison(series: Sequence[SalesDataPoint]) -> PeriodComparison:
    current = [point for point in series if point.period == CURRENT]
    previous = [point for point in series if point.period == PREVIOUS]

    current_total = sum((point.sales for point in current), ZERO)
    previous_total = sum((point.sales for point in previous), ZERO)
    growth_rate = _ratio((current_total - previous_total) * 100, previous_total) if previous_total > 0 else ZERO

    points = [
        ComparisonPoint(
            day_index=index + 1,
            date=point.date,
            current=point.sales,
            previous=previous[index].sales if index < len(previous) else ZERO,
        )
        for index, point in enumerate(current)
    ]
    return PeriodComparison(
        current_total=current_total,
        previous_total=previous_total,
        growth_rate=growth_rate,
        current_average=_ratio(current_total, len(current) or 1),
        points=points,
    )


@dataclass(frozen=True)
class TopGroup:
    id: str
    name: str
    total_sales: Decimal
    order_count: int


def aggregate_top_groups(
    items: Iterable[ItemRow],
    *,
    by: str,
    limit: int,
    exclude_shipping: bool = False,
) -> list[TopGroup]:
    if by not in {'product', 'category'}:
        raise ValueError('Top groups can be built by product or category')
    fallback_name = UNKNOWN_PRODUCT if by == 'product' else UNKNOWN_CATEGORY
    add_on_types = {ItemType.DAMAGE_WAIVER.value, ItemType.THROWN_TRACK_INSURANCE.value}

    groups: dict[str, dict[str, object]] = {}
    for item in items:
        if not _is_reportable(item.payment_status, item.payment_date) or item.item_type in add_on_types:
            continue
        group_id = item.product_id if by == 'product' else item.category_id
        if group_id is None:
            continue
        group_name = item.product_name if by == 'product' else item.category_name
        bucket = groups.setdefault(group_id, {'name': group_name or fallback_name, 'total': ZERO, 'orders': set()})
        bucket['total'] = bucket['total'] + signed_amount(item, exclude_shipping=exclude_shipping)
        bucket['orders'].add(item.order_id)

    ranked = sorted(
        (
            TopGroup(id=group_id, name=bucket['name'], total_sales=bucket['total'], order_count=len(bucket['orders']))
            for group_id, bucket in groups.items()
        ),
        key=lambda group: group.total_sales,
        reverse=True,
    )
    return ranked[: max(limit, 0)]


@dataclass(frozen=True)
class SalesSummary:
    gross_sales: Decimal
    total_discounts: Decimal
    net_sales: Decimal
    total_refunds: Decimal
    total_net_sales: Decimal
    transaction_count: int
    items_sold: int
    average_sale_value: Decimal
    average_items_per_sale: Decimal


def summarize_sales(items: Iterable[ItemRow], *, exclude_shipping: bool = False) -> SalesSummary:
    gross = ZERO
    discounts = ZERO
    paid_net = ZERO
    refunded_net = ZERO
    items_sold = 0
    order_ids: set[str] = set()

    for item in items:
        if not _is_reportable(item.payment_status, item.payment_date):
            continue
        net = line_amount(item, exclude_shipping=exclude_shipping)
        if _is_refunded(item.payment_status):
            refunded_net += net
            continue
        gross += gross_line_amount(item, exclude_shipping=exclude_shipping)
        discounts += _decimal_or_zero(item.discount_amount)
        paid_net += net
        items_sold += _int_or_zero(item.quantity)
        order_ids.add(item.order_id)

    # Refunds come off paid net here rather than through per-line signed amounts.
    transaction_count = len(order_ids)
    return SalesSummary(
        gross_sales=gross,
        total_discounts=discounts,
        net_sales=paid_net,
        total_refunds=refunded_net,
        total_net_sales=paid_net - refunded_net,
        transaction_count=transaction_count,
        items_sold=items_sold,
        average_sale_value=_ratio(paid_net, transaction_count),
        average_items_per_sale=_ratio(Decimal(items_sold), transaction_count),
    )


REVENUE_BUCKET_BY_ITEM_TYPE = {
    ItemType.RETAIL.value: 'retail_sales',
    ItemType.RENTAL.value: 'rental_revenue',
    ItemType.DELIVERY.value: 'delivery_revenue',
    ItemType.DAMAGE_WAIVER.value: 'damage_waiver_revenue',
    ItemType.THROWN_TRACK_INSURANCE.value: 'track_insurance_revenue',
    ItemType.PREPAID_FUEL.value: 'prepaid_fuel_revenue',
    ItemType.PREPAID_CLEANING.value: 'prepaid_cleaning_revenue',
}
OTHER_REVENUE_BUCKET = 'fees_other_revenue'


@dataclass(frozen=True)
class RevenueBreakdown:
    retail_sales: Decimal = ZERO
    rental_revenue: Decimal = ZERO
    delivery_revenue: Decimal = ZERO
    damage_waiver_revenue: Decimal = ZERO
    track_insurance_revenue: Decimal = ZERO
    prepaid_fuel_revenue: Decimal = ZERO
    prepaid_cleaning_revenue: Decimal = ZERO
    fees_other_revenue: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return (
            self.retail_sales
            + self.rental_revenue
            + self.delivery_revenue
            + self.damage_waiver_revenue
            + self.track_insurance_revenue
            + self.prepaid_fuel_revenue
            + self.prepaid_cleaning_revenue
            + self.fees_other_revenue
        )


def revenue_bucket(item_type: str | None) -> str:
    return REVENUE_BUCKET_BY_ITEM_TYPE.get(item_type or '', OTHER_REVENUE_BUCKET)


def build_revenue_breakdown(items: Iterable[ItemRow], *, exclude_shipping: bool = False) -> RevenueBreakdown:
    totals = {bucket: ZERO for bucket in (*REVENUE_BUCKET_BY_ITEM_TYPE.values(), OTHER_REVENUE_BUCKET)}
    for item in items:
        if not _is_reportable(item.payment_status, item.payment_date):
            continue
        bucket = revenue_bucket(item.item_type)
        totals[bucket] += signed_amount(item, exclude_shipping=exclude_shipping)
    return RevenueBreakdown(**totals)


@dataclass(frozen=True)
class TaxAndPayments:
    total_sales_tax: Decimal
    cash_payments: Decimal
    card_payments: Decimal
    ach_payments: Decimal
    check_payments: Decimal
    account_payments: Decimal
    other_payments: Decimal

    @property
    def total_payments(self) -> Decimal:
        return (
            self.cash_payments
            + self.card_payments
            + self.ach_payments
            + self.check_payments
            + self.account_payments
            + self.other_payments
        )


def payment_method_bucket(payment_method: str | None) -> str:
    return PAYMENT_METHOD_BUCKETS.get((payment_method or '').strip().lower(), 'other')


def build_tax_and_payments(orders: Iterable[OrderRow], *, exclude_shipping: bool = False) -> TaxAndPayments:
    total_tax = ZERO
    payments = {bucket: ZERO for bucket in ('cash', 'card', 'ach', 'check', 'account', 'other')}

    for order in orders:
        if not _is_reportable(order.payment_status, order.payment_date):
            continue
        order_total = sum((line_amount(item, exclude_shipping=exclude_shipping) for item in order.items), ZERO)
        order_tax = sum((_decimal_or_zero(item.sales_tax) for item in order.items), ZERO)
        # Sign flips once per order, after the nested items are summed.
        if _is_refunded(order.payment_status):
            order_total = -order_total
            order_tax = -order_tax
        total_tax += order_tax
        payments[payment_method_bucket(order.payment_method)] += order_total

    return TaxAndPayments(
        total_sales_tax=total_tax,
        cash_payments=payments['cash'],
        card_payments=payments['card'],
        ach_payments=payments['ach'],
        check_payments=payments['check'],
        account_payments=payments['account'],
        other_payments=payments['other'],
    )


@dataclass(frozen=True)
class DiscountsReport:
    total_discounts: Decimal
    total_gross: Decimal
    discounted_transactions: int
    discount_percentage: Decimal
    average_discount_per_transaction: Decimal


def build_discounts_report(orders: Iterable[OrderRow]) -> DiscountsReport:
    total_discounts = ZERO
    total_gross = ZERO
    count = 0
    for order in orders:
        if order.payment_status != PaymentStatus.PAID.value or order.payment_date is None:
            continue
        discount = _decimal_or_zero(order.discount_amount)
        if discount <= 0:
            continue
        total_discounts += discount
        total_gross += _decimal_or_zero(order.gross_amount)
        count += 1

    return DiscountsReport(
        total_discounts=total_discounts,
        total_gross=total_gross,
        discounted_transactions=count,
        discount_percentage=_ratio(total_discounts * 100, total_gross),
        average_discount_per_transaction=_ratio(total_discounts, count),
    )


@dataclass(frozen=True)
class RefundReasonTotal:
    reason: str
    count: int
    amount: Decimal


@dataclass(frozen=True)
class RefundsReport:
    total_refund_amount: Decimal
    refund_count: int
    full_refunds: int
    partial_refunds: int
    by_reason: list[RefundReasonTotal] = field(default_factory=list)


def build_refunds_report(orders: Iterable[OrderRow], *, exclude_shipping: bool = False) -> RefundsReport:
    total = ZERO
    refund_count = 0
    full_refunds = 0
    partial_refunds = 0
    reasons: dict[str, dict[str, object]] = {}

    for order in orders:
        if order.payment_status != PaymentStatus.REFUNDED.value or order.payment_date is None:
            continue
        order_total = sum((line_amount(item, exclude_shipping=exclude_shipping) for item in order.items), ZERO)
        total += order_total
        refund_count += 1

        refund_type = (order.refund_type or '').lower()
        if refund_type == RefundType.FULL.value:
            full_refunds += 1
        elif refund_type == RefundType.PARTIAL.value:
            partial_refunds += 1

        bucket = reasons.setdefault(order.refund_reason or UNSPECIFIED_REASON, {'count': 0, 'amount': ZERO})
        bucket['count'] = bucket['count'] + 1
        bucket['amount'] = bucket['amount'] + order_total

    return RefundsReport(
        total_refund_amount=total,
        refund_count=refund_count,
        full_refunds=full_refunds,
        partial_refunds=partial_refunds,
        by_reason=[
            RefundReasonTotal(reason=reason, count=bucket['count'], amount=bucket['amount'])
            for reason, bucket in reasons.items()
        ],
    )


@dataclass(frozen=True)
class ProductSalesDetail:
    product_id: str
    product_name: str
    sku: str
    category_name: str
    quantity_sold: int
    gross_sales: Decimal
    discount_amount: Decimal
    net_sales: Decimal
    tax_amount: Decimal
    sales_count: int
    refund_quantity: int
    refund_amount: Decimal
    average_selling_price: Decimal
    net_quantity_sold: int


def display_sku(product_id: str, *, prefix: str = 'SKU') -> str:
    compact = ''.join(char for char in str(product_id) if char.isalnum())
    return f'{prefix}-{compact[:8].upper()}'


def build_product_sales_details(
    items: Iterable[ItemRow],
    *,
    exclude_shipping: bool = False,
    sku_prefix: str = 'SKU',
) -> list[ProductSalesDetail]:
    products: dict[str, dict[str, object]] = {}

    for item in items:
        if item.product_id is None or not _is_reportable(item.payment_status, item.payment_date):
            continue
        bucket = products.setdefault(
            item.product_id,
            {
                'name': item.product_name or UNKNOWN_PRODUCT,
                'category': item.category_name or UNKNOWN_CATEGORY,
                'quantity': 0,
                'gross': ZERO,
                'discount': ZERO,
                'net': ZERO,
                'tax': ZERO,
                'sales_count': 0,
                'refund_quantity': 0,
                'refund_amount': ZERO,
            },
        )
        quantity = _int_or_zero(item.quantity)
        net = line_amount(item, exclude_shipping=exclude_shipping)

        if _is_refunded(item.payment_status):
            bucket['refund_quantity'] = bucket['refund_quantity'] + quantity
            bucket['refund_amount'] = bucket['refund_amount'] + net
            continue

        bucket['quantity'] = bucket['quantity'] + quantity
        bucket['gross'] = bucket['gross'] + gross_line_amount(item, exclude_shipping=exclude_shipping)
        bucket['discount'] = bucket['discount'] + _decimal_or_zero(item.discount_amount)
        bucket['net'] = bucket['net'] + net
        bucket['tax'] = bucket['tax'] + _decimal_or_zero(item.sales_tax)
        bucket['sales_count'] = bucket['sales_count'] + 1

    return [
        ProductSalesDetail(
            product_id=product_id,
            product_name=bucket['name'],
            sku=display_sku(product_id, prefix=sku_prefix),
            category_name=bucket['category'],
            quantity_sold=bucket['quantity'],
            gross_sales=bucket['gross'],
            discount_amount=bucket['discount'],
            net_sales=bucket['net'],
            tax_amount=bucket['tax'],
            sales_count=bucket['sales_count'],
            refund_quantity=bucket['refund_quantity'],
            refund_amount=bucket['refund_amount'],
            # Per sale line, not per unit.
            average_selling_price=_ratio(bucket['net'], bucket['sales_count']),
            net_quantity_sold=bucket['quantity'] - bucket['refund_quantity'],
        )
        for product_id, bucket in products.items()
    ]


PRODUCT_SORT_FIELDS = {
    'quantity': lambda detail: detail.quantity_sold,
    'gross': lambda detail: detail.gross_sales,
    'net': lambda detail: detail.net_sales,
    'discount': lambda detail: detail.discount_amount,
    'refund': lambda detail: detail.refund_amount,
    'name': lambda detail: detail.product_name.lower(),
}


def sort_product_details(
    details: Sequence[ProductSalesDetail],
    *,
    sort_field: str = 'net',
    direction: str = 'desc',
) -> list[ProductSalesDetail]:
    key = PRODUCT_SORT_FIELDS.get(sort_field)
    if key is None:
        raise ValueError(f'Sort field must be one of {", ".join(PRODUCT_SORT_FIELDS)}')
    if direction not in {'asc', 'desc'}:
        raise ValueError('Sort direction must be asc or desc')
    return sorted(details, key=key, reverse=direction == 'desc')


def top_products_by_net(details: Sequence[ProductSalesDetail], count: int) -> list[ProductSalesDetail]:
    return sort_product_details(details, sort_field='net', direction='desc')[: max(count, 0)]


def bottom_products_by_net(details: Sequence[ProductSalesDetail], count: int) -> list[ProductSalesDetail]:
    return sort_product_details(details, sort_field='net', direction='asc')[: max(count, 0)]
