"""Records package.

Normalized citation records, their field descriptors, validation and scoped
lookup.
"""

from .schema import DateValue, Name, NormalizedRecord, PartialDate, RecordBuilder, RecordType
from .dates import format_date, is_valid_date, is_valid_date_or_range, parse_date, parse_year_month
from .names import format_name_family_first, format_name_given_first, parse_names
from .validation import enforce_valid_record, is_valid_id, validate_record
from .repository import RecordRepository, RecordResolver, ResolvedRecord

__all__ = [
    "DateValue",
    "Name",
    "NormalizedRecord",
    "PartialDate",
    "RecordBuilder",
    "RecordType",

    "format_date",
    "is_valid_date",
    "is_valid_date_or_range",
    "parse_date",
    "parse_year_month",

    "format_name_family_first",
    "format_name_given_first",
    "parse_names",

    "enforce_valid_record",
    "is_valid_id",
    "validate_record",

    "RecordRepository",
    "RecordResolver",
    "ResolvedRecord",
]
