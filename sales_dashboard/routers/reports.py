from __future__ import annotations

from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from sales_dashboard.db import get_db
from sales_dashboard.services.sales_aggregation_service import sort_product_details
from sales_dashboard.services.sales_filters import ALL, DateRangeOption, SalesFilters
from sales_dashboard.services.sales_report_service import (
    get_categories,
    get_discounts_report,
    get_product_sales_details,
    get_products,
    get_refunds_report,
    get_revenue_breakdown,
    get_sales_summary,
    get_stores,
    get_tax_and_payments,
    get_top_categories,
    get_top_products,
    get_trend_report,
)

router = APIRouter(prefix='/reports', tags=['reports'])


def sales_filters(
    store: str = ALL,
    item_type: str = ALL,
    category: str = ALL,
    product: str = ALL,
    exclude_waiver: bool = False,
    waiver_only: bool = False,
    exclude_insurance: bool = False,
    insurance_only: bool = False,
    exclude_delivery: bool = False,
    delivery_only: bool = False,
    exclude_shipping: bool = False,
    date_range: DateRangeOption = DateRangeOption.ALL,
    start_date: date | None = None,
    end_date: date | None = None,
) -> SalesFilters:
    try:
        return SalesFilters(
            store=store,
            item_type=item_type,
            category=category,
            product=product,
            exclude_waiver=exclude_waiver,
            waiver_only=waiver_only,
            exclude_insurance=exclude_insurance,
            insurance_only=insurance_only,
            exclude_delivery=exclude_delivery,
            delivery_only=delivery_only,
            exclude_shipping=exclude_shipping,
            date_range=date_range,
            start_date=start_date,
            end_date=end_date,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.get('/trend/{report}')
def trend_report(
    report: str,
    filters: SalesFilters = Depends(sales_filters),
    db: Session = Depends(get_db),
):
    try:
        result = get_trend_report(db, report, filters)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return asdict(result)


@router.get('/top-products')
def top_products(
    limit: int | None = Query(default=None, ge=1, le=100),
    filters: SalesFilters = Depends(sales_filters),
    db: Session = Depends(get_db),
):
    return [asdict(group) for group in get_top_products(db, limit, filters)]


@router.get('/top-categories')
def top_categories(
    limit: int | None = Query(default=None, ge=1, le=100),
    filters: SalesFilters = Depends(sales_filters),
    db: Session = Depends(get_db),
):
    return [asdict(group) for group in get_top_categories(db, limit, filters)]


@router.get('/summary')
def sales_summary(filters: SalesFilters = Depends(sales_filters), db: Session = Depends(get_db)):
    return asdict(get_sales_summary(db, filters))


@router.get('/revenue-breakdown')
def revenue_breakdown(filters: SalesFilters = Depends(sales_filters), db: Session = Depends(get_db)):
    breakdown = get_revenue_breakdown(db, filters)
    return {**asdict(breakdown), 'total': breakdown.total}


@router.get('/tax-payments')
def tax_and_payments(filters: SalesFilters = Depends(sales_filters), db: Session = Depends(get_db)):
    report = get_tax_and_payments(db, filters)
    return {**asdict(report), 'total_payments': report.total_payments}


@router.get('/discounts')
def discounts(filters: SalesFilters = Depends(sales_filters), db: Session = Depends(get_db)):
    return asdict(get_discounts_report(db, filters))


@router.get('/refunds')
def refunds(filters: SalesFilters = Depends(sales_filters), db: Session = Depends(get_db)):
    return asdict(get_refunds_report(db, filters))


@router.get('/products')
def product_sales(
    sort_field: str = 'net',
    direction: str = 'desc',
    filters: SalesFilters = Depends(sales_filters),
    db: Session = Depends(get_db),
):
    details = get_product_sales_details(db, filters)
    try:
        ordered = sort_product_details(details, sort_field=sort_field, direction=direction)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return [asdict(detail) for detail in ordered]


@router.get('/lookups/categories')
def category_lookup(db: Session = Depends(get_db)):
    return [{'id': row.id, 'name': row.name} for row in get_categories(db)]


@router.get('/lookups/products')
def product_lookup(category_id: str | None = None, db: Session = Depends(get_db)):
    return [{'id': row.id, 'name': row.name, 'category_id': row.category_id} for row in get_products(db, category_id)]


@router.get('/lookups/stores')
def store_lookup(db: Session = Depends(get_db)):
    return [{'id': row.id, 'name': row.name} for row in get_stores(db)]
