"""Date parsing, formatting and validation for record date fields."""

from __future__ import annotations

import re
from typing import Optional

from citekit.records.schema import DateValue, PartialDate


_MONTH = r"(0?[1-9]|1[0-2])"
_DAY = r"(0?[1-9]|[12]\d|3[01])"
_SINGLE = rf"\d{{4}}(-{_MONTH}(-{_DAY})?)?"

SINGLE_DATE_PATTERN = re.compile(rf"^{_SINGLE}$")
RANGE_DATE_PATTERN = re.compile(rf"^{_SINGLE}(/{_SINGLE})?$")

_ISO_RE = re.compile(r"^(\d{4})(?:-(\d{1,2})(?:-(\d{1,2}))?)?(?:T[\d:.]+Z?)?$")
_MONTH_YEAR_RE = re.compile(r"^([A-Za-z]+)\.?,?\s+(\d{4})$")
_DAY_MONTH_YEAR_RE = re.compile(r"^(\d{1,2})\s+([A-Za-z]+)\.?,?\s+(\d{4})$")
_MONTH_DAY_YEAR_RE = re.compile(r"^([A-Za-z]+)\.?\s+(\d{1,2}),?\s+(\d{4})$")
_YEAR_IN_TEXT_RE = re.compile(r"\d{4}")

MONTH_NAMES = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
}


def is_valid_date(value: Optional[str]) -> bool:
    """Blank or `YYYY[-MM[-DD]]`."""
    if value is None or not value.strip():
        return True
    return SINGLE_DATE_PATTERN.match(value.strip()) is not None


def is_valid_date_or_range(value: Optional[str]) -> bool:
    """Blank, a single date, or `A/B` with both ends single dates."""
    if value is None or not value.strip():
        return True
    return RANGE_DATE_PATTERN.match(value.strip()) is not None


def parse_month(text: Optional[str]) -> Optional[int]:
    """Numeric month or English month name/abbreviation; `None` when unrecognized."""
    if text is None:
        return None
    token = text.strip().lower().rstrip(".")
    if not token:
        return None
    if token.isdigit():
        number = int(token)
        return number if 1 <= number <= 12 else None
    if token in MONTH_NAMES:
        return MONTH_NAMES[token]
    if len(token) < 3:
        return None
    for name, number in MONTH_NAMES.items():
        if name.startswith(token):
            return number
    return None


def _checked(year: int, month: Optional[int], day: Optional[int]) -> Optional[PartialDate]:
    if month is not None and not 1 <= month <= 12:
        return None
    if day is not None:
        if month is None:
            return None
        if not 1 <= day <= 31:
            return None
    return PartialDate(year=year, month=month, day=day)


def _parse_single(text: str) -> Optional[PartialDate]:
    text = text.strip()
    if not text:
        return None

    m = _ISO_RE.match(text)
    if m:
        year = int(m.group(1))
        month = int(m.group(2)) if m.group(2) else None
        day = int(m.group(3)) if m.group(3) else None
        return _checked(year, month, day)

    m = _MONTH_YEAR_RE.match(text)
    if m:
        month = parse_month(m.group(1))
        return _checked(int(m.group(2)), month, None) if month else None

    m = _DAY_MONTH_YEAR_RE.match(text)
    if m:
        month = parse_month(m.group(2))
        return _checked(int(m.group(3)), month, int(m.group(1))) if month else None

    m = _MONTH_DAY_YEAR_RE.match(text)
    if m:
        month = parse_month(m.group(1))
        return _checked(int(m.group(3)), month, int(m.group(2))) if month else None

    return None


def parse_date(text: Optional[str]) -> Optional[DateValue]:
    """Parse a full or partial date, or a `start/end` range.

    Returns `None` for blank or unparsable text. An open-ended range
    (`2020/`) yields the start date only.
    """
    if text is None or not text.strip():
        return None

    raw = text.strip()
    if "/" in raw:
        left, right = raw.split("/", 1)
        start = _parse_single(left)
        if start is None:
            return None
        if not right.strip() or right.strip() == "..":
            return DateValue(start=start)
        end = _parse_single(right)
        if end is None:
            return None
        return DateValue(start=start, end=end)

    start = _parse_single(raw)
    return DateValue(start=start) if start is not None else None


def parse_year_month(year: Optional[str], month: Optional[str]) -> Optional[DateValue]:
    """Build a date from separate `year` and `month` source fields.

    An unrecognized month is dropped and the year kept.
    """
    if year is None or not year.strip():
        return None
    m = _YEAR_IN_TEXT_RE.search(year)
    if m is None:
        return None
    return DateValue(start=PartialDate(year=int(m.group(0)), month=parse_month(month)))


def format_date(value: Optional[DateValue]) -> str:
    """`YYYY[-MM[-DD]]`, or `start/end` for a range; `""` when absent."""
    if value is None:
        return ""
    return value.to_string()
