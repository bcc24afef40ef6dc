import math
from datetime import date, datetime

from ledger.errors import InvalidRange, NotFoundError, ValidationError

MIN_YEAR = 1900


def parse_period(month, year) -> tuple[int, int]:
    """Return (month, year) as ints, month in 1-12 and year in 1900..this year."""
    try:
        month_int = int(month)
        year_int = int(year)
    except (TypeError, ValueError):
        raise InvalidRange('Invalid month or year')
    if month_int < 1 or month_int > 12 or year_int < MIN_YEAR or year_int > date.today().year:
        raise InvalidRange('Invalid month or year')
    return month_int, year_int


def parse_amount(value, field='amount') -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a number')
    if not math.isfinite(amount) or amount < 0:
        raise ValidationError(f'{field} must be a non-negative number')
    return amount


def parse_category(value) -> str:
    category = (value or '').strip()
    if not category:
        raise ValidationError('Category is required')
    return category


def parse_date(value) -> date:
    try:
        return datetime.strptime((value or '').strip(), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError('Invalid date format, expected YYYY-MM-DD')


def parse_id(value, label) -> int:
    """Ids arrive as form strings; anything that is not a positive int cannot exist."""
    try:
        ident = int(value)
    except (TypeError, ValueError):
        raise NotFoundError(f'{label} not found')
    if ident < 1:
        raise NotFoundError(f'{label} not found')
    return ident
