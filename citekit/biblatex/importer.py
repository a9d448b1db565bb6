"""BibTeX/BibLaTeX import.

Parses source text with bibtexparser, cleans every field value (LaTeX to
unicode, braces and line breaks removed, whitespace collapsed), classifies
each entry by its type token and converts it into a `NormalizedRecord`.
Name lists keep their braces until each name has been split.

Failures never abort a batch: an unsupported type skips that entry, an
unparsable date drops that field, and each problem is recorded in the
returned `ErrorList`.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import bibtexparser
from bibtexparser.bparser import BibTexParser
from bibtexparser.customization import convert_to_unicode
from loguru import logger

from citekit.biblatex.rules import COMMON_RULES, NAME_SOURCES, classify
from citekit.errors import ErrorCode, ErrorList, UnsupportedTypeError
from citekit.records.schema import NormalizedRecord, RecordBuilder
from citekit.tracing import safe_set_current_span_attributes


_WHITESPACE_RE = re.compile(r"\s+")
_MAX_SOURCE_IN_ERROR = 200


@dataclass(frozen=True)
class SourceEntry:
    """One parsed source entry with cleaned, lower-cased field names."""
    type: str
    key: str
    fields: Dict[str, str] = field(default_factory=dict)


def clean_value(value: Optional[str], keep_braces: bool = False) -> str:
    if value is None:
        return ""
    text = str(value).replace("\r", "").replace("\n", " ")
    if not keep_braces:
        text = text.replace("{", "").replace("}", "")
    return _WHITESPACE_RE.sub(" ", text).strip()


def _convert_record(record: Dict[str, str]) -> Dict[str, str]:
    """LaTeX to unicode for every field except name lists, which keep their braces."""
    names = {name: record.pop(name) for name in list(record) if name.lower() in NAME_SOURCES}
    record = convert_to_unicode(record)
    record.update(names)
    return record


def _make_parser() -> BibTexParser:
    parser = BibTexParser(common_strings=True, ignore_nonstandard_types=False)
    parser.customization = _convert_record
    return parser


def parse_source(text: str, errors: ErrorList) -> List[SourceEntry]:
    """Parse raw BibTeX text into `SourceEntry` objects.

    A parser failure, or non-blank text with no entries, records
    `PARSE_BIBTEX` and returns an empty list.
    """
    if text is None:
        raise TypeError("BibTeX text must not be None")
    if not text.strip():
        return []

    normalized = _WHITESPACE_RE.sub(" ", text.replace("\r", " ").replace("\n", " "))
    excerpt = text[:_MAX_SOURCE_IN_ERROR]
    try:
        database = bibtexparser.loads(normalized, parser=_make_parser())
    except Exception as e:
        logger.warning(f"An error occurred while parsing BibTeX data: {e}")
        errors.add(ErrorCode.PARSE_BIBTEX, str(e), excerpt)
        return []

    entries: List[SourceEntry] = []
    for raw in database.entries:
        entry_type = str(raw.get("ENTRYTYPE", "")).strip().lower()
        key = str(raw.get("ID", "")).strip()
        cleaned = {}
        for name, value in raw.items():
            if name in ("ENTRYTYPE", "ID"):
                continue
            name = str(name).strip().lower()
            cleaned[name] = clean_value(value, keep_braces=name in NAME_SOURCES)
        entries.append(SourceEntry(type=entry_type, key=key, fields=cleaned))

    if not entries:
        errors.add(ErrorCode.PARSE_BIBTEX, "No usable content", excerpt)
    return entries


def convert_entry(entry: SourceEntry, errors: ErrorList) -> Optional[NormalizedRecord]:
    """Convert one source entry; `None` when its type is unsupported."""
    try:
        mapping = classify(entry.type)
    except UnsupportedTypeError as e:
        logger.warning(f"Skipping entry {entry.key!r}: unsupported type {e.token!r}")
        errors.add(ErrorCode.UNSUPPORTED_ENTRY_TYPE, e.token)
        return None

    record_id = entry.key if entry.key.strip() else str(uuid.uuid4())
    builder = RecordBuilder(mapping.record_type, record_id)

    for rule in COMMON_RULES:
        rule.apply(builder, entry.fields, errors)
    mapping.apply(builder, entry.fields, errors)

    record = builder.build()
    logger.debug(f"Converted @{entry.type}{{{entry.key}}} to {record.type.value}")
    return record


def import_records(text: str) -> Tuple[List[NormalizedRecord], ErrorList]:
    """Import every convertible entry of `text`.

    Returns the records in source order together with the errors recorded
    while parsing and converting.
    """
    errors = ErrorList()
    records: List[NormalizedRecord] = []

    for entry in parse_source(text, errors):
        record = convert_entry(entry, errors)
        if record is not None:
            records.append(record)

    logger.info(f"Imported {len(records)} record(s) with {len(errors)} error(s)")
    safe_set_current_span_attributes(
        {
            "biblatex.records": len(records),
            "biblatex.errors": len(errors),
        }
    )
    return records, errors
