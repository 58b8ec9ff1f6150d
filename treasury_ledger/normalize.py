"""
Value normalization for ledger records.

Bank exports, spreadsheet round-trips and the remote ledger all render the
same dates and amounts differently ("07/11/2025" vs "2025-11-07T00:00:00.000Z",
"1,234.50" vs 1234.5). The helpers here reduce those representations to a
single canonical form so records can be compared and summed safely.

None of the functions in this module raise on bad data: unparseable input
degrades to an empty string or zero and processing continues.
"""

import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

UNCATEGORIZED = 'Uncategorized'

# DD/MM/YYYY as exported by the bank spreadsheet
_DMY_PATTERN = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$')
_ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
_ISO_DATETIME_PATTERN = re.compile(r'^(\d{4}-\d{2}-\d{2})T\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?$')
# Spreadsheet backends sometimes hand back "2024-10-19 23:00:00"
_SPACED_DATETIME_PATTERN = re.compile(r'^(\d{4}-\d{2}-\d{2})\s+\d{2}:\d{2}:\d{2}')
_NUMERIC_PATTERN = re.compile(r'^[+-]?(?:(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d*)?|\.\d+)$')


def _is_missing(value):
    """True for None, NaN and NaT (but never for strings)."""
    if value is None:
        return True
    if isinstance(value, str):
        return False
    return pd.api.types.is_scalar(value) and bool(pd.isna(value))


def is_blank(value):
    """True for missing values and whitespace-only strings."""
    if _is_missing(value):
        return True
    return isinstance(value, str) and value.strip() == ''


def _is_number(value):
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool)


def _is_finite(number):
    if isinstance(number, (int, np.integer)):
        return True
    return bool(np.isfinite(number))


def normalize_date(value):
    """
    Convert the supported date representations to YYYY-MM-DD.

    Args:
        value (str, datetime, date, pd.Timestamp or None): Raw date value

    Returns:
        str: Canonical date, '' for missing input, or the trimmed input when
            the format is not recognized

    Notes:
        - DD/MM/YYYY with 1 or 2 digit day and month
        - YYYY-MM-DD, optionally followed by THH:MM[:SS[.sss]] and an
          optional Z or +HH:MM offset
        - YYYY-MM-DD HH:MM:SS
        - The time component is dropped without timezone conversion
    """
    if _is_missing(value):
        return ''

    if isinstance(value, (datetime, date)):
        return value.strftime('%Y-%m-%d')

    date_str = str(value).strip()
    if date_str == '':
        return ''

    match = _DMY_PATTERN.match(date_str)
    if match:
        day, month, year = match.groups()
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"

    if _ISO_DATE_PATTERN.match(date_str):
        return date_str

    match = _ISO_DATETIME_PATTERN.match(date_str) or _SPACED_DATETIME_PATTERN.match(date_str)
    if match:
        return match.group(1)

    logger.debug(f"Unrecognized date format, passing through: {date_str}")
    return date_str


def is_canonical_date(date_str):
    """True when date_str is already in YYYY-MM-DD form."""
    return isinstance(date_str, str) and bool(_ISO_DATE_PATTERN.match(date_str))


def _canonical_number(number):
    """Render a Decimal without trailing zeros or exponent notation."""
    if number == number.to_integral_value():
        return str(int(number))
    return format(number.normalize(), 'f')


def normalize_value(value):
    """
    Normalize a field value for comparison.

    Dates are converted with normalize_date, numbers (including numeric strings
    with thousands separators) are re-rendered canonically so that "1,234.50",
    "1234.5" and 1234.5 all give "1234.5". Anything else is trimmed.

    Args:
        value: Raw field value

    Returns:
        str: Canonical string ('' for missing values)
    """
    if _is_missing(value):
        return ''

    if isinstance(value, (datetime, date)):
        return normalize_date(value)

    if _is_number(value):
        if not _is_finite(value):
            return ''
        return _canonical_number(Decimal(str(value)))

    str_value = str(value).strip()
    if str_value == '':
        return ''

    as_date = normalize_date(str_value)
    if as_date != str_value:
        return as_date

    if _NUMERIC_PATTERN.match(str_value):
        return _canonical_number(Decimal(str_value.replace(',', '')))

    return str_value


def _clean_amount_text(amount):
    """Strip currency symbols and separators; '(5.00)' becomes '-5.00'."""
    cleaned = re.sub(r'[$,\s]', '', amount)
    if cleaned.startswith('(') and cleaned.endswith(')'):
        cleaned = '-' + cleaned[1:-1]
    return cleaned


def parse_amount(amount):
    """Parse an amount leniently.

    Args:
        amount (str, int, float or None): Raw amount

    Returns:
        float: Parsed amount; 0.0 for empty, missing, infinite or invalid input
    """
    if _is_missing(amount):
        return 0.0
    if _is_number(amount):
        return float(amount) if _is_finite(amount) else 0.0

    cleaned = _clean_amount_text(str(amount))
    if cleaned == '':
        return 0.0
    try:
        result = float(cleaned)
    except ValueError:
        logger.debug(f"Invalid amount format, treating as 0: {amount!r}")
        return 0.0
    return result if _is_finite(result) else 0.0


def parse_decimal(amount):
    """Parse an amount into an exact Decimal.

    Same leniency as parse_amount: anything that is not a finite number
    becomes Decimal('0').
    """
    if _is_missing(amount):
        return Decimal('0')
    if isinstance(amount, Decimal):
        return amount if amount.is_finite() else Decimal('0')
    if _is_number(amount):
        if not _is_finite(amount):
            return Decimal('0')
        return Decimal(str(amount))

    cleaned = _clean_amount_text(str(amount))
    if cleaned == '':
        return Decimal('0')
    try:
        result = Decimal(cleaned)
    except InvalidOperation:
        logger.debug(f"Invalid amount format, treating as 0: {amount!r}")
        return Decimal('0')
    return result if result.is_finite() else Decimal('0')


def format_currency(amount):
    """
    Format an amount with two decimal places.

    Examples:
        4 -> "4.00", "4.5" -> "4.50", "1,234" -> "1234.00"

    Returns:
        str: Formatted amount, or '' when the input is empty or not numeric
    """
    if _is_missing(amount):
        return ''
    if _is_number(amount):
        return f"{parse_amount(amount):.2f}" if _is_finite(amount) else ''

    text = str(amount).strip()
    if text == '':
        return ''
    try:
        float(_clean_amount_text(text))
    except ValueError:
        return ''
    return f"{parse_amount(text):.2f}"


def parse_date(value):
    """Parse a date value into a Timestamp.

    Returns:
        pd.Timestamp or None: None when the value is missing or not in one of
            the formats understood by normalize_date
    """
    normalized = normalize_date(value)
    if not is_canonical_date(normalized):
        return None
    parsed = pd.to_datetime(normalized, format='%Y-%m-%d', errors='coerce')
    if pd.isna(parsed):
        return None
    return parsed


def standardize_tag(tag):
    """
    Standardize a tag value (Category or Trip/Event).

    Args:
        tag (str): Raw tag value

    Returns:
        str: Trimmed tag, or "Uncategorized" when missing or blank
    """
    if is_blank(tag):
        return UNCATEGORIZED
    return str(tag).strip()
