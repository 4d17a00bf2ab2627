from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import date, timedelta
from enum import Enum

ALL = 'all'

ITEM_TYPE_FILTERS = (ALL, 'rental', 'retail')

# exclude flag -> only flag
TOGGLE_PAIRS = {
    'exclude_waiver': 'waiver_only',
    'exclude_insurance': 'insurance_only',
    'exclude_delivery': 'delivery_only',
}
_PAIRED_FLAG = {**TOGGLE_PAIRS, **{only: exclude for exclude, only in TOGGLE_PAIRS.items()}}


class DateRangeOption(str, Enum):
    ALL = 'all'
    TODAY = 'today'
    YESTERDAY = 'yesterday'
    THIS_WEEK = 'this_week'
    LAST_WEEK = 'last_week'
    THIS_MONTH = 'this_month'
    LAST_MONTH = 'last_month'
    THIS_YEAR = 'this_year'
    LAST_YEAR = 'last_year'
    ROLLING_30 = 'rolling_30'
    CUSTOM = 'custom'


@dataclass(frozen=True)
class SalesFilters:
    """Slice of orders and order items a report aggregates over.

    Id options take ``'all'`` for no restriction. At most one flag of each
    exclude/only pair may be set; use :meth:`with_toggle` to flip a flag so
    its partner is cleared.
    """

    store: str = ALL
    item_type: str = ALL
    category: str = ALL
    product: str = ALL
    exclude_waiver: bool = False
    waiver_only: bool = False
    exclude_insurance: bool = False
    insurance_only: bool = False
    exclude_delivery: bool = False
    delivery_only: bool = False
    exclude_shipping: bool = False
    date_range: DateRangeOption = DateRangeOption.ALL
    start_date: date | None = None
    end_date: date | None = None

    def __post_init__(self) -> None:
        if self.item_type not in ITEM_TYPE_FILTERS:
            raise ValueError(f'Item type filter must be one of {", ".join(ITEM_TYPE_FILTERS)}')
        for exclude_flag, only_flag in TOGGLE_PAIRS.items():
            if getattr(self, exclude_flag) and getattr(self, only_flag):
                raise ValueError(f'{exclude_flag} and {only_flag} cannot both be set')
        if not isinstance(self.date_range, DateRangeOption):
            object.__setattr__(self, 'date_range', DateRangeOption(self.date_range))
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError('Start date must be on or before end date')

    def with_toggle(self, name: str, value: bool) -> SalesFilters:
        paired = _PAIRED_FLAG.get(name)
        if paired is None:
            if name != 'exclude_shipping':
                raise ValueError(f'Unknown toggle: {name}')
            return replace(self, exclude_shipping=value)
        return replace(self, **{name: value, paired: False})

    def with_category(self, category: str) -> SalesFilters:
        return replace(self, category=category or ALL, product=ALL)

    def active_filter_count(self) -> int:
        defaults = SalesFilters()
        count = 0
        for field in fields(self):
            if field.name in {'date_range', 'start_date', 'end_date'}:
                continue
            if getattr(self, field.name) != getattr(defaults, field.name):
                count += 1
        return count


def is_set(value: str | None) -> bool:
    return bool(value) and value != ALL


def _month_start(day: date) -> date:
    return day.replace(day=1)


def _previous_month_bounds(today: date) -> tuple[date, date]:
    end = _month_start(today) - timedelta(days=1)
    return _month_start(end), end


def resolve_date_range(filters: SalesFilters, today: date) -> tuple[date | None, date | None]:
    """Inclusive calendar-day bounds for the filter's period, ``None`` meaning open."""
    option = filters.date_range
    if option == DateRangeOption.TODAY:
        return today, today
    if option == DateRangeOption.YESTERDAY:
        yesterday = today - timedelta(days=1)
        return yesterday, yesterday
    if option == DateRangeOption.THIS_WEEK:
        return today - timedelta(days=today.weekday()), today
    if option == DateRangeOption.LAST_WEEK:
        this_monday = today - timedelta(days=today.weekday())
        return this_monday - timedelta(days=7), this_monday - timedelta(days=1)
    if option == DateRangeOption.THIS_MONTH:
        return _month_start(today), today
    if option == DateRangeOption.LAST_MONTH:
        return _previous_month_bounds(today)
    if option == DateRangeOption.THIS_YEAR:
        return date(today.year, 1, 1), today
    if option == DateRangeOption.LAST_YEAR:
        return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)
    if option == DateRangeOption.ROLLING_30:
        return today - timedelta(days=30), today - timedelta(days=1)
    if option == DateRangeOption.CUSTOM:
        return filters.start_date, filters.end_date
    return None, None
