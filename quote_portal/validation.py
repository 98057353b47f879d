# quote_portal/validation.py
"""Field rules for quote submissions.

Every validator is a plain predicate: it takes a raw value, never raises and
returns ``True`` only when the value is acceptable.  The same rule table is
applied by the submission pipeline and, independently, by the ``Quote``
model when attributes are assigned.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone

ROOF_TYPES = ('Metal', 'TPO', 'Foam', 'Other')

STATE_CODES = frozenset({
    'AL', 'AK', 'AZ', 'AR', 'CA', 'CO', 'CT', 'DE', 'FL', 'GA',
    'HI', 'ID', 'IL', 'IN', 'IA', 'KS', 'KY', 'LA', 'ME', 'MD',
    'MA', 'MI', 'MN', 'MS', 'MO', 'MT', 'NE', 'NV', 'NH', 'NJ',
    'NM', 'NY', 'NC', 'ND', 'OH', 'OK', 'OR', 'PA', 'RI', 'SC',
    'SD', 'TN', 'TX', 'UT', 'VT', 'VA', 'WA', 'WV', 'WI', 'WY',
})

MIN_TEXT_LENGTH = 2
MAX_TEXT_LENGTH = 100
MAX_ROOF_SIZE = 1_000_000
PROJECT_WINDOW_YEARS = 2

NAME_RE = re.compile(r"[A-Za-z\s\-']+")
# Plain decimals only: no exponents, underscores or inf/nan spellings.
DECIMAL_RE = re.compile(r'[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)')
STATE_RE = re.compile(r'[A-Za-z]{2}')
# Anything outside this set is removed from free text before validation.
DISALLOWED_TEXT_RE = re.compile(r"[^A-Za-z0-9\s\-'.,&\"/()#]")

FREE_TEXT_FIELDS = ('contractorName', 'company', 'projectCity')


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def sanitize_text(value):
    """Trim ``value`` and strip characters outside the free-text charset."""
    if not isinstance(value, str):
        return value
    return DISALLOWED_TEXT_RE.sub('', value.strip()).strip()


def _text_length_ok(value) -> bool:
    if not isinstance(value, str):
        return False
    return MIN_TEXT_LENGTH <= len(value.strip()) <= MAX_TEXT_LENGTH


def valid_name(value) -> bool:
    return _text_length_ok(value) and NAME_RE.fullmatch(value.strip()) is not None


def valid_company(value) -> bool:
    return _text_length_ok(value)


def valid_city(value) -> bool:
    if not isinstance(value, str) or not value.strip():
        return False
    return NAME_RE.fullmatch(value.strip()) is not None


def to_number(value) -> float | None:
    """Coerce ints, floats and numeric strings; anything else is ``None``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        raw = value
    elif isinstance(value, str) and DECIMAL_RE.fullmatch(value.strip()):
        raw = value.strip()
    else:
        return None
    try:
        number = float(raw)
    except OverflowError:
        # ints beyond float range
        return None
    return number if math.isfinite(number) else None


def valid_roof_size(value) -> bool:
    number = to_number(value)
    return number is not None and 0 < number <= MAX_ROOF_SIZE


def valid_roof_type(value) -> bool:
    return isinstance(value, str) and value in ROOF_TYPES


def valid_state_code(value) -> bool:
    if not isinstance(value, str):
        return False
    code = value.strip()
    return STATE_RE.fullmatch(code) is not None and code.upper() in STATE_CODES


def _utc_date(moment: datetime) -> date | None:
    if moment.tzinfo is not None:
        try:
            moment = moment.astimezone(timezone.utc)
        except OverflowError:
            return None
    return moment.date()


def to_date(value) -> date | None:
    """Parse ``value`` as a calendar date.

    Accepts ``date`` and ``datetime`` objects and ISO-8601 strings, with or
    without a time part.  Timestamps carrying an offset are read as their
    UTC date.
    """
    if isinstance(value, datetime):
        return _utc_date(value)
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return _utc_date(datetime.fromisoformat(text.replace('Z', '+00:00')))
    except ValueError:
        return None


def add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # Feb 29 -> Feb 28
        return day.replace(year=day.year + years, day=28)


def valid_project_date(value, today: date | None = None) -> bool:
    day = to_date(value)
    if day is None:
        return False
    today = today or utc_today()
    return today <= day <= add_years(today, PROJECT_WINDOW_YEARS)


# field -> (label, validator, message)
RULES = {
    'contractorName': (
        'Contractor name', valid_name,
        'Contractor name must be 2-100 characters and contain only letters, '
        'spaces, hyphens and apostrophes',
    ),
    'company': (
        'Company name', valid_company,
        'Company name must be between 2 and 100 characters',
    ),
    'roofSize': (
        'Roof size', valid_roof_size,
        'Roof size must be greater than 0 and at most 1,000,000 square feet',
    ),
    'roofType': (
        'Roof type', valid_roof_type,
        'Invalid roof type. Must be Metal, TPO, Foam, or Other',
    ),
    'projectCity': (
        'Project city', valid_city,
        'City name must contain only letters, spaces, hyphens and apostrophes',
    ),
    'projectState': (
        'Project state', valid_state_code,
        'Please use a 2-letter US state code (e.g., CA)',
    ),
    'projectDate': (
        'Project date', valid_project_date,
        'Project date must be between today and 2 years from now',
    ),
}


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def check_field(field: str, value, today: date | None = None) -> str | None:
    """Return the error message for ``field`` or ``None`` if it passes."""
    label, validator, message = RULES[field]
    if _is_blank(value):
        return f'{label} is required'
    ok = validator(value, today) if validator is valid_project_date else validator(value)
    return None if ok else message


def validate_quote(data: dict, today: date | None = None) -> list[dict]:
    """Check every field of ``data`` and collect all failures."""
    errors = []
    for field in RULES:
        message = check_field(field, data.get(field), today)
        if message:
            errors.append({'field': field, 'message': message})
    return errors
