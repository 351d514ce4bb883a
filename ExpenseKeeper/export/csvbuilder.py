"""Expense CSV documents.

The output is a UTF-8 BOM followed by a fixed header and one row per expense, every line
terminated with CRLF. Fields containing a quote, comma, line break, or leading or trailing
whitespace are quoted with inner quotes doubled (RFC 4180).
"""
import datetime
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from ..core import dates, money
from ..core.models import Category, Expense

HEADER_COLUMNS: Sequence[str] = (
    'id',
    'description',
    'amount_native',
    'currency_code',
    'fx_rate_to_base',
    'base_amount',
    'date',
    'category',
    'notes',
)

UTF8_BOM = '\ufeff'
LINE_ENDING = '\r\n'

FILENAME_TEMPLATE = 'expenses_backup_{timestamp}.csv'

_needs_quoting = re.compile(r'[",\r\n]|^\s|\s$')


@dataclass(frozen=True)
class CsvDocument:
    filename: str
    content: str


def escape_cell(value: Any) -> str:
    if value is None:
        return ''
    value = str(value)
    if _needs_quoting.search(value):
        return '"' + value.replace('"', '""') + '"'
    return value


def format_filename(generated_at: datetime.datetime) -> str:
    """Return ``expenses_backup_YYYYMMDD_HHMMSS.csv`` using the UTC time of ``generated_at``."""
    if generated_at.tzinfo is not None:
        generated_at = generated_at.astimezone(datetime.timezone.utc)
    return FILENAME_TEMPLATE.format(timestamp=generated_at.strftime('%Y%m%d_%H%M%S'))


def build_csv(expenses: Iterable[Expense], categories: Iterable[Category] = (),
              generated_at: Optional[datetime.datetime] = None) -> CsvDocument:
    """Build the CSV backup of a list of expenses.

    Args:
        expenses (Iterable[Expense]): Rows to write, in output order.
        categories (Iterable[Category]): Categories used to resolve category names.
        generated_at (datetime.datetime, optional): Time used for the filename. Defaults to now.

    Returns:
        CsvDocument: The filename and the text content, BOM included.
    """
    category_names = {category.id: category.name for category in categories}

    lines = [','.join(HEADER_COLUMNS)]
    for expense in expenses:
        category_name = category_names.get(expense.category_id, '') if expense.category_id is not None else ''
        row = (
            str(expense.id),
            expense.description,
            money.format_money(expense.amount_native),
            expense.currency_code,
            money.format_fx_rate(expense.fx_rate_to_base),
            money.format_money(expense.base_amount),
            expense.date,
            category_name,
            expense.notes or '',
        )
        lines.append(','.join(escape_cell(cell) for cell in row))

    content = UTF8_BOM + LINE_ENDING.join(lines) + LINE_ENDING
    return CsvDocument(
        filename=format_filename(generated_at or dates.utc_now()),
        content=content,
    )
