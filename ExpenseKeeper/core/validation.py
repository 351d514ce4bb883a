"""Field validation for expense and category input.

Validators return a user-facing message for invalid input or None when the value is
valid. :func:`validate_expense` collects the messages of a whole expense form and raises
:class:`~ExpenseKeeper.status.status.ValidationException` carrying them per field.
"""
import datetime
import math
import re
from typing import Any, Dict, Optional

from ..settings import locale
from ..status import status
from . import dates

MAX_FUTURE_DAYS = 3
BASE_AMOUNT_DECIMALS = 8

CURRENCY_CODE_PATTERN = re.compile(r'^[A-Z]{3}$')
ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def to_number(value: Any) -> Optional[float]:
    """Convert form input to a float, None if missing or not a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def validate_currency_code(code: Optional[str]) -> Optional[str]:
    if not code or not code.strip():
        return 'Currency code is required.'

    normalised = code.strip().upper()
    if not CURRENCY_CODE_PATTERN.match(normalised):
        return 'Currency code must be three letters.'
    if not locale.is_known_currency(normalised):
        return 'Currency code must be a valid ISO-4217 code.'
    return None


def validate_positive_amount(amount: Any, label: str = 'Amount') -> Optional[str]:
    number = to_number(amount)
    if number is None:
        return f'{label} is required.'
    if not math.isfinite(number) or number <= 0:
        return f'{label} must be greater than zero.'
    return None


def validate_positive_rate(rate: Any, label: str = 'FX rate') -> Optional[str]:
    return validate_positive_amount(rate, label)


def validate_base_amount(value: Any) -> Optional[str]:
    number = to_number(value)
    if number is None or not math.isfinite(number):
        return 'Base amount could not be computed.'
    if number < 0:
        return 'Base amount cannot be negative.'
    return None


def validate_iso_date(value: Optional[str], now: Optional[datetime.datetime] = None) -> Optional[str]:
    """Validate an ISO date that lies no more than three days in the future.

    Args:
        value (str): The date, ``YYYY-MM-DD``.
        now (datetime.datetime, optional): Reference time, UTC. Defaults to now.

    Returns:
        str: The validation message, or None if the date is valid.
    """
    if not value:
        return 'Date is required.'
    if not ISO_DATE_PATTERN.match(value):
        return 'Date must be in ISO format YYYY-MM-DD.'

    try:
        parsed = datetime.datetime.strptime(value, dates.ISO_DATE_FORMAT).date()
    except ValueError:
        return 'Date must be valid.'

    limit = dates.utc_today(now) + datetime.timedelta(days=MAX_FUTURE_DAYS)
    if parsed > limit:
        return f'Date cannot be more than {MAX_FUTURE_DAYS} days in the future.'
    return None


def validate_category_name(name: Optional[str]) -> Optional[str]:
    if not name or not name.strip():
        return 'Category name is required.'
    return None


def compute_base_amount(amount: Any, rate: Any) -> Optional[float]:
    """Multiply an amount by its exchange rate, rounded to 8 decimal places.

    Returns:
        float: The base amount, or None if either input is not a finite number.
    """
    amount = to_number(amount)
    rate = to_number(rate)
    if amount is None or rate is None:
        return None

    product = amount * rate
    if not math.isfinite(product):
        return None
    return round(product, BASE_AMOUNT_DECIMALS)


def validate_expense(values: Dict[str, Any], now: Optional[datetime.datetime] = None) -> Dict[str, Any]:
    """Validate expense form values and return a normalised payload.

    Args:
        values (dict): Form values keyed by ``description``, ``amount_native``, ``currency_code``,
            ``fx_rate_to_base``, ``date``, ``category_id`` and ``notes``. Numbers may be given as
            strings.
        now (datetime.datetime, optional): Reference time for the date check.

    Returns:
        dict: Keyword arguments accepted by the expenses repository, with a derived
        ``base_amount``.

    Raises:
        status.ValidationException: If any field is invalid.
    """
    errors: Dict[str, str] = {}

    description = (values.get('description') or '').strip()
    if not description:
        errors['description'] = 'Description is required.'

    checks = (
        ('amount_native', validate_positive_amount(values.get('amount_native'), 'Amount')),
        ('fx_rate_to_base', validate_positive_rate(values.get('fx_rate_to_base'), 'FX rate')),
        ('currency_code', validate_currency_code(values.get('currency_code'))),
    )
    for field, message in checks:
        if message:
            errors[field] = message

    base_amount = compute_base_amount(values.get('amount_native'), values.get('fx_rate_to_base'))
    message = validate_base_amount(base_amount)
    if message:
        errors['base_amount'] = message

    message = validate_iso_date(values.get('date'), now=now)
    if message:
        errors['date'] = message

    if errors:
        raise status.ValidationException(errors)

    notes = (values.get('notes') or '').strip()
    return {
        'description': description,
        'amount_native': to_number(values['amount_native']),
        'currency_code': values['currency_code'].strip().upper(),
        'fx_rate_to_base': to_number(values['fx_rate_to_base']),
        'base_amount': base_amount,
        'date': values['date'],
        'category_id': values.get('category_id'),
        'notes': notes or None,
    }
