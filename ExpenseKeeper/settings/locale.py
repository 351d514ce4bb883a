"""
Currency data and display formatting using Babel.

"""
import functools
import logging
from typing import Dict, List, Optional, Tuple

from babel import Locale, numbers

DEFAULT_LOCALE: str = 'en_GB'


@functools.cache
def load_currencies() -> Dict[str, str]:
    """
    Return the known ISO-4217 currency codes mapped to their English names.

    Returns:
        dict[str, str]: Currency code to display name, e.g. ``{'GBP': 'British Pound'}``.
    """
    locale_obj = Locale.parse('en')
    currencies = {}
    for code in numbers.list_currencies():
        if len(code) != 3 or not code.isalpha() or not code.isupper():
            continue
        currencies[code] = numbers.get_currency_name(code, locale=locale_obj)
    logging.debug(f'Loaded {len(currencies)} currencies.')
    return currencies


def is_known_currency(code: str) -> bool:
    """Check whether a normalised currency code is a known ISO-4217 code."""
    return code in load_currencies()


def find_currency_name(code: Optional[str]) -> Optional[str]:
    """
    Look up the display name of a currency.

    Args:
        code (str): A currency code in any case, surrounding whitespace is ignored.

    Returns:
        str: The currency name, or None if the code is empty or unknown.
    """
    if not code:
        return None
    return load_currencies().get(code.strip().upper())


def get_currency_options() -> List[Tuple[str, str]]:
    """Return ``(code, name)`` pairs sorted by code."""
    return sorted(load_currencies().items())


def format_currency_value(value: float, currency_code: str, locale: str = DEFAULT_LOCALE) -> str:
    """
    Format a float as a currency string using the locale conventions.

    Args:
        value (float): The numeric value to be formatted.
        currency_code (str): ISO-4217 code, e.g. 'EUR'.
        locale (str): Locale string, e.g. 'fr_FR'.

    Returns:
        str: The formatted currency string.
    """
    try:
        locale_obj = Locale.parse(locale)
        return numbers.format_currency(value, currency=currency_code, locale=locale_obj)
    except (ValueError, TypeError) as e:
        logging.debug(f'Error formatting currency: {e}')
        return f'{value:.2f} {currency_code}'
