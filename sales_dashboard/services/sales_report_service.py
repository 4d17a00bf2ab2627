from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from sales_dashboard.config import settings
from sales_dashboard.services.sales_aggregation_service import (
    DiscountsReport,
    PeriodComparison,
    ProductSalesDetail,
    RefundsReport,
    RevenueBreakdown,
    SalesDataPoint,
    SalesSummary,
    TaxAndPayments,
    TopGroup,
    aggregate_top_groups,
    build_daily_series,
    build_discounts_report,
    build_product_sales_details,
    build_refunds_report,
    build_revenue_breakdown,
    build_tax_and_payments,
    last_month_window,
    rolling_window,
    summarize_period_comparison,
    summarize_sales,
)
from sales_dashboard.services.sales_filters import SalesFilters, resolve_date_range
from sales_dashboard.services.sales_query_service import (
    LookupRow,
    ReportKind,
    fetch_categories,
    fetch_order_items,
    fetch_orders,
    fetch_products,
    fetch_stores,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrendReport:
    series: list[SalesDataPoint]
    comparison: PeriodComparison


def _today(today: date | None) -> date:
    return today or date.today()


def _series_for_window(
    db: Session,
    filters: SalesFilters,
    window: list[tuple[date, str]],
) -> list[SalesDataPoint]:
    items = fetch_order_items(db, ReportKind.SERIES, filters, start_date=window[0][0], end_date=window[-1][0])
    return build_daily_series(items, window, exclude_shipping=filters.exclude_shipping)


def get_rolling_30_days(db: Session, filters: SalesFilters, *, today: date | None = None) -> list[SalesDataPoint]:
    return _series_for_window(db, filters, rolling_window(_today(today), 30))


def get_7_day_comparison(db: Session, filters: SalesFilters, *, today: date | None = None) -> list[SalesDataPoint]:
    return _series_for_window(db, filters, rolling_window(_today(today), 7))


def get_last_month_comparison(
    db: Session,
    filters: SalesFilters,
    *,
    today: date | None = None,
) -> list[SalesDataPoint]:
    return _series_for_window(db, filters, last_month_window(_today(today)))


TREND_REPORTS = {
    'rolling-30': get_rolling_30_days,
    '7-day': get_7_day_comparison,
    'last-month': get_last_month_comparison,
}


def get_trend_report(db: Session, report: str, filters: SalesFilters, *, today: date | None = None) -> TrendReport:
    builder = TREND_REPORTS.get(report)
    if builder is None:
        raise ValueError(f'Trend report must be one of {", ".join(TREND_REPORTS)}')
    series = builder(db, filters, today=today)
    return TrendReport(series=series, comparison=summarize_period_comparison(series))


def get_top_products(db: Session, limit: int | None = None, filters: SalesFilters | None = None) -> list[TopGroup]:
    filters = filters or SalesFilters()
    items = fetch_order_items(db, ReportKind.TOP_PRODUCTS, filters)
    return aggregate_top_groups(
        items,
        by='product',
        limit=settings.top_products_limit if limit is None else limit,
        exclude_shipping=filters.exclude_shipping,
    )


def get_top_categories(db: Session, limit: int | None = None, filters: SalesFilters | None = None) -> list[TopGroup]:
    filters = filters or SalesFilters()
    items = fetch_order_items(db, ReportKind.TOP_CATEGORIES, filters)
    return aggregate_top_groups(
        items,
        by='category',
        limit=settings.top_categories_limit if limit is None else limit,
        exclude_shipping=filters.exclude_shipping,
    )


def _bounds(filters: SalesFilters, today: date | None) -> dict[str, date | None]:
    start_date, end_date = resolve_date_range(filters, _today(today))
    return {'start_date': start_date, 'end_date': end_date}


def get_sales_summary(db: Session, filters: SalesFilters, *, today: date | None = None) -> SalesSummary:
    items = fetch_order_items(db, ReportKind.SUMMARY, filters, **_bounds(filters, today))
    return summarize_sales(items, exclude_shipping=filters.exclude_shipping)


def get_revenue_breakdown(db: Session, filters: SalesFilters, *, today: date | None = None) -> RevenueBreakdown:
    items = fetch_order_items(db, ReportKind.REVENUE, filters, **_bounds(filters, today))
    return build_revenue_breakdown(items, exclude_shipping=filters.exclude_shipping)


def get_tax_and_payments(db: Session, filters: SalesFilters, *, today: date | None = None) -> TaxAndPayments:
    orders = fetch_orders(db, ReportKind.TAX_PAYMENTS, filters, **_bounds(filters, today))
    return build_tax_and_payments(orders, exclude_shipping=filters.exclude_shipping)


def get_discounts_report(db: Session, filters: SalesFilters, *, today: date | None = None) -> DiscountsReport:
    orders = fetch_orders(db, ReportKind.DISCOUNTS, filters, include_items=False, **_bounds(filters, today))
    return build_discounts_report(orders)


def get_refunds_report(db: Session, filters: SalesFilters, *, today: date | None = None) -> RefundsReport:
    orders = fetch_orders(db, ReportKind.REFUNDS, filters, **_bounds(filters, today))
    return build_refunds_report(orders, exclude_shipping=filters.exclude_shipping)


def get_product_sales_details(
    db: Session,
    filters: SalesFilters,
    *,
    today: date | None = None,
) -> list[ProductSalesDetail]:
    items = fetch_order_items(db, ReportKind.PRODUCT_DETAIL, filters, **_bounds(filters, today))
    details = build_product_sales_details(
        items,
        exclude_shipping=filters.exclude_shipping,
        sku_prefix=settings.sku_prefix,
    )
    logger.debug('Built product detail for %d products from %d rows', len(details), len(items))
    return details


def get_categories(db: Session) -> list[LookupRow]:
    return fetch_categories(db)


def get_products(db: Session, category_id: str | None = None) -> list[LookupRow]:
    return fetch_products(db, category_id)


def get_stores(db: Session) -> list[LookupRow]:
    return fetch_stores(db)
