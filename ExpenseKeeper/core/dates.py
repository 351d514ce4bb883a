"""Date helpers: ISO timestamps, date range presets and British date display."""
import datetime
import enum
import re
from typing import Dict, Optional, Tuple

from dateutil.relativedelta import relativedelta

ISO_DATE_FORMAT = '%Y-%m-%d'

DateRange = Tuple[Optional[str], Optional[str]]


class DatePreset(enum.StrEnum):
    """Quick date range filters."""
    Last7Days = 'last7Days'
    Last30Days = 'last30Days'
    ThisMonth = 'thisMonth'
    AllTime = 'allTime'


DATE_PRESET_LABELS: Dict[DatePreset, str] = {
    DatePreset.Last7Days: 'Last 7 days',
    DatePreset.Last30Days: 'Last 30 days',
    DatePreset.ThisMonth: 'This month',
    DatePreset.AllTime: 'All time',
}

CUSTOM_PRESET = 'custom'


def utc_now() -> datetime.datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def now_str(now: Optional[datetime.datetime] = None) -> str:
    """Return a UTC timestamp in the ``YYYY-MM-DDTHH:MM:SS.mmmZ`` form used by the database.

    Args:
        now (datetime.datetime, optional): The time to format. Defaults to now.
    """
    now = (now or utc_now()).astimezone(datetime.timezone.utc)
    return now.strftime('%Y-%m-%dT%H:%M:%S.') + f'{now.microsecond // 1000:03d}Z'


def utc_today(now: Optional[datetime.datetime] = None) -> datetime.date:
    """Return today's date in UTC."""
    now = now or utc_now()
    if now.tzinfo is not None:
        now = now.astimezone(datetime.timezone.utc)
    return now.date()


def compute_preset_range(preset: DatePreset, now: Optional[datetime.datetime] = None) -> DateRange:
    """Compute the inclusive ``(start, end)`` ISO date range of a preset.

    Args:
        preset (DatePreset): The preset.
        now (datetime.datetime, optional): Reference time. Defaults to now.

    Returns:
        tuple: ISO start and end dates, both None for ``allTime``.
    """
    today = utc_today(now)

    if preset == DatePreset.Last7Days:
        start = today - relativedelta(days=6)
    elif preset == DatePreset.Last30Days:
        start = today - relativedelta(days=29)
    elif preset == DatePreset.ThisMonth:
        start = today + relativedelta(day=1)
    else:
        return None, None

    return start.isoformat(), today.isoformat()


def detect_preset(start_date: Optional[str], end_date: Optional[str],
                  now: Optional[datetime.datetime] = None) -> str:
    """Return the preset matching a date range, or ``'custom'``."""
    if not start_date and not end_date:
        return DatePreset.AllTime

    for preset in (DatePreset.Last7Days, DatePreset.Last30Days, DatePreset.ThisMonth):
        if compute_preset_range(preset, now) == (start_date, end_date):
            return preset
    return CUSTOM_PRESET


def format_date_range_label(start_date: Optional[str], end_date: Optional[str]) -> str:
    if start_date and end_date:
        return f'{start_date} – {end_date}'
    if start_date:
        return f'From {start_date}'
    if end_date:
        return f'Up to {end_date}'
    return 'All time'


def format_date_british(iso_date: str) -> str:
    """Convert ``YYYY-MM-DD`` to ``DD/MM/YYYY``; other input is returned unchanged."""
    if not iso_date:
        return ''
    parts = iso_date.split('-')
    if len(parts) != 3 or not all(parts):
        return iso_date
    year, month, day = parts
    return f'{day}/{month}/{year}'


def format_date_range_british(start_date: Optional[str], end_date: Optional[str]) -> str:
    start = format_date_british(start_date) if start_date else None
    end = format_date_british(end_date) if end_date else None
    if start and end:
        return f'{start} to {end}'
    if start:
        return f'From {start}'
    if end:
        return f'Up to {end}'
    return 'All time'


def parse_british_date_input(value: str) -> Optional[str]:
    """Parse a ``DD/MM/YYYY`` style input into an ISO date.

    ISO input passes through, two digit years are read as 20YY and ``/``, ``-``, ``.`` or
    whitespace may separate the parts.

    Args:
        value (str): User input.

    Returns:
        str: The ISO date, ``''`` for empty input, or None if the input cannot be parsed.
    """
    trimmed = value.strip()
    if not trimmed:
        return ''

    if re.fullmatch(r'\d{4}-\d{2}-\d{2}', trimmed):
        return trimmed

    parts = [p for p in re.split(r'[/\-.\s]+', trimmed) if p]
    if len(parts) != 3:
        return None

    day, month, year = parts
    if not (re.fullmatch(r'\d{1,2}', day) and re.fullmatch(r'\d{1,2}', month)
            and re.fullmatch(r'\d{2,4}', year)):
        return None

    if len(year) == 2:
        year = f'20{year}'

    try:
        parsed = datetime.date(int(year), int(month), int(day))
    except ValueError:
        return None
    return parsed.isoformat()
