"""Record-integrity checks applied before a record is stored."""

from __future__ import annotations

import re
from typing import Callable, Mapping, Optional

from loguru import logger

from citekit.errors import ErrorCode, ErrorList, RecordValidationError
from citekit.records.fields import DATE_FIELDS, find_date_field
from citekit.records.schema import NormalizedRecord


ID_PATTERN = re.compile(r"^[a-zA-Z.0-9:\-_]{2,50}$")

OwnerLookup = Callable[[str], Optional[str]]


def is_valid_id(record_id: Optional[str]) -> bool:
    return bool(record_id) and ID_PATTERN.match(record_id) is not None


def validate_record(
    record: NormalizedRecord,
    *,
    owner: Optional[str] = None,
    find_owner: Optional[OwnerLookup] = None,
    raw_dates: Optional[Mapping[str, str]] = None,
    errors: Optional[ErrorList] = None,
) -> ErrorList:
    """Collect integrity errors for `record`.

    Args:
        record: The record about to be stored.
        owner: Node that will own the record. A record with the same id owned
            by the same node is an update, not a duplicate.
        find_owner: Returns the owner of an existing record with a given id.
        raw_dates: Date values as stored text keyed by field name; when
            omitted the record's parsed dates are checked.
        errors: Accumulator to append to.
    """
    if errors is None:
        errors = ErrorList()

    record_id = (record.id or "").strip()
    if not record_id:
        errors.add(ErrorCode.EMPTY_ID)
    elif not ID_PATTERN.match(record_id):
        errors.add(ErrorCode.INVALID_ID_FORMAT, record_id)
    elif find_owner is not None:
        existing_owner = find_owner(record_id)
        if existing_owner is not None and existing_owner != owner:
            errors.add(ErrorCode.ID_ALREADY_EXISTS, record_id, existing_owner)

    if raw_dates is not None:
        for name, value in raw_dates.items():
            descriptor = find_date_field(name)
            if descriptor is None:
                logger.debug(f"Ignoring unknown date field {name!r}")
                continue
            if not descriptor.is_valid(value):
                errors.add(ErrorCode.INVALID_DATE, descriptor.name, value)
    else:
        for descriptor in DATE_FIELDS:
            text = descriptor.get_string(record)
            if not descriptor.is_valid(text):
                errors.add(ErrorCode.INVALID_DATE, descriptor.name, text)

    return errors


def enforce_valid_record(
    record: NormalizedRecord,
    *,
    owner: Optional[str] = None,
    find_owner: Optional[OwnerLookup] = None,
    raw_dates: Optional[Mapping[str, str]] = None,
) -> None:
    """Raise `RecordValidationError` for the first integrity problem found."""
    errors = validate_record(record, owner=owner, find_owner=find_owner, raw_dates=raw_dates)
    if errors:
        first = errors.errors[0]
        logger.warning(f"Rejecting record {record.id!r}: {first}")
        raise RecordValidationError(first.code, *first.params)
