"""BibLaTeX to record field mapping rules.

A rule names one target field, the source fields it reads (first non-blank
wins) and how the text is converted. Every entry runs `COMMON_RULES` first,
then the rules of its type mapping, so type-specific rules overwrite common
ones on the same target.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from loguru import logger

from citekit.errors import ErrorCode, ErrorList, UnsupportedTypeError
from citekit.records import fields as F
from citekit.records.dates import parse_date, parse_year_month
from citekit.records.names import parse_names
from citekit.records.schema import RecordBuilder, RecordType


class RuleKind(str, Enum):
    STRING = "string"
    DATE = "date"
    DATE_THEN_YEAR_MONTH = "date-then-year-month"
    NAMES = "names"


@dataclass(frozen=True)
class FieldRule:
    target: Any
    sources: Tuple[str, ...]
    kind: RuleKind = RuleKind.STRING

    def first_value(self, entry_fields: Mapping[str, str]) -> Optional[str]:
        for source in self.sources:
            value = entry_fields.get(source)
            if value is not None and value.strip():
                return value.strip()
        return None

    def apply(self, builder: RecordBuilder, entry_fields: Mapping[str, str], errors: ErrorList) -> None:
        """Write the converted value into `builder`; blank input leaves it untouched."""
        value = self.first_value(entry_fields)

        if self.kind == RuleKind.DATE_THEN_YEAR_MONTH and value is None:
            date = parse_year_month(entry_fields.get("year"), entry_fields.get("month"))
            if date is not None:
                self.target.set(builder, date)
            return

        if value is None:
            return

        if self.kind == RuleKind.STRING:
            self.target.set(builder, value)
        elif self.kind == RuleKind.NAMES:
            self.target.set(builder, parse_names(value))
        else:
            date = parse_date(value)
            if date is None:
                logger.debug(f"Unparsable date for {self.target.name}: {value!r}")
                errors.add(ErrorCode.INVALID_DATE, self.target.name, value)
                return
            self.target.set(builder, date)


def _s(target: F.StringField, *sources: str) -> FieldRule:
    return FieldRule(target, sources, RuleKind.STRING)


ABSTRACT = _s(F.ABSTRACT, "abstract")
ANNOTE = _s(F.STATUS, "annote")
AUTHOR = FieldRule(F.AUTHOR, ("author",), RuleKind.NAMES)
BOOK_AUTHOR = FieldRule(F.CONTAINER_AUTHOR, ("bookauthor",), RuleKind.NAMES)
BOOK_TITLE = _s(F.CONTAINER_TITLE, "booktitle")
CHAPTER = _s(F.TITLE, "part", "chapter")
DOI = _s(F.DOI, "doi")
EDITION = _s(F.EDITION, "edition")
EDITOR = FieldRule(F.EDITOR, ("editor",), RuleKind.NAMES)
EVENT = _s(F.EVENT, "eventtitle", "booktitle")
EVENT_DATE = FieldRule(F.EVENT_DATE, ("eventdate",), RuleKind.DATE)
EVENT_PLACE = _s(F.EVENT_PLACE, "venue")
HOLDER = _s(F.PUBLISHER, "holder")
ISBN = _s(F.ISBN, "isbn")
ISSN = _s(F.ISSN, "issn")
ISSUE = _s(F.ISSUE, "issue")
ISSUE_TITLE = _s(F.CONTAINER_TITLE, "issuetitle", "journaltitle", "journal")
ISSUED = FieldRule(F.ISSUED, ("date", "eventdate"), RuleKind.DATE_THEN_YEAR_MONTH)
JOURNAL = _s(F.COLLECTION_TITLE, "journaltitle", "journal")
LANGUAGE = _s(F.LANGUAGE, "language", "lang")
NOTE = _s(F.NOTE, "note")
NUMBER = _s(F.NUMBER, "number")
PAGES = _s(F.PAGE, "pages")
PAGETOTAL = _s(F.NUMBER_OF_PAGES, "pagetotal")
PUBLISHER = _s(F.PUBLISHER, "howpublished", "school", "institution", "organization", "publisher")
PUBLISHER_PLACE = _s(F.PUBLISHER_PLACE, "address", "location")
SERIES = _s(F.COLLECTION_TITLE, "series")
STATUS = _s(F.STATUS, "status")
TITLE = _s(F.TITLE, "title")
TRANSLATOR = FieldRule(F.TRANSLATOR, ("translator",), RuleKind.NAMES)
TYPE = _s(F.GENRE, "type")
URL = _s(F.URL, "url")
URL_DATE = FieldRule(F.ACCESSED, ("urldate",), RuleKind.DATE)
VERSION = _s(F.VERSION, "version")
VOLUME = _s(F.VOLUME, "volume")
VOLUMES = _s(F.NUMBER_OF_VOLUMES, "volumes")

# source fields holding name lists; their braces are kept until each name is split
NAME_SOURCES = frozenset(AUTHOR.sources + BOOK_AUTHOR.sources + EDITOR.sources + TRANSLATOR.sources)

# Order matters: later rules on the same target overwrite earlier ones.
COMMON_RULES: Tuple[FieldRule, ...] = (
    EDITOR,
    PUBLISHER,
    AUTHOR,
    TITLE,
    ISSUED,
    TRANSLATOR,
    SERIES,
    NUMBER,
    VOLUME,
    EDITION,
    VOLUMES,
    ISSUE,
    ISBN,
    ISSN,
    CHAPTER,
    PAGES,
    PAGETOTAL,
    TYPE,
    VERSION,
    PUBLISHER_PLACE,
    DOI,
    URL,
    URL_DATE,
    LANGUAGE,
    NOTE,
    ABSTRACT,
    STATUS,
    ANNOTE,
)


@dataclass(frozen=True)
class TypeMapping:
    """Target record type, extra rules and forced values for one source type."""
    record_type: RecordType
    rules: Tuple[FieldRule, ...] = ()
    forced: Tuple[Tuple[F.StringField, str], ...] = ()
    # forced values are skipped when this source field is non-blank
    forced_unless: Optional[str] = None

    def apply(self, builder: RecordBuilder, entry_fields: Mapping[str, str], errors: ErrorList) -> None:
        builder.type(self.record_type)
        for rule in self.rules:
            rule.apply(builder, entry_fields, errors)
        if self.forced_unless is not None:
            guard = entry_fields.get(self.forced_unless)
            if guard is not None and guard.strip():
                return
        for target, value in self.forced:
            target.set(builder, value)


_EVENT_RULES = (EVENT, EVENT_DATE, EVENT_PLACE)

_ARTICLE_JOURNAL = TypeMapping(RecordType.ARTICLE_JOURNAL, (JOURNAL, ISSUE_TITLE))
_BOOK = TypeMapping(RecordType.BOOK)
_CHAPTER_IN_BOOK = TypeMapping(RecordType.CHAPTER, (BOOK_TITLE, BOOK_AUTHOR))
_CHAPTER_IN_COLLECTION = TypeMapping(RecordType.CHAPTER, (BOOK_TITLE,))
_PROCEEDINGS = TypeMapping(RecordType.BOOK, _EVENT_RULES)
_PAPER_CONFERENCE = TypeMapping(RecordType.PAPER_CONFERENCE, (BOOK_TITLE,) + _EVENT_RULES)
_REPORT = TypeMapping(RecordType.REPORT)
_WEBPAGE = TypeMapping(RecordType.WEBPAGE)
_LEGISLATION = TypeMapping(RecordType.LEGISLATION, (BOOK_TITLE,))
_MOTION_PICTURE = TypeMapping(RecordType.MOTION_PICTURE, (BOOK_TITLE,))
_MUSICAL_SCORE = TypeMapping(RecordType.MUSICAL_SCORE, (BOOK_TITLE,))
_GRAPHIC = TypeMapping(RecordType.GRAPHIC, (BOOK_TITLE,))

TYPE_TABLE: Dict[str, TypeMapping] = {
    "article": _ARTICLE_JOURNAL,
    "suppperiodical": _ARTICLE_JOURNAL,
    "book": _BOOK,
    "mvbook": _BOOK,
    "collection": _BOOK,
    "mvcollection": _BOOK,
    "reference": _BOOK,
    "mvreference": _BOOK,
    "inbook": _CHAPTER_IN_BOOK,
    "bookinbook": _CHAPTER_IN_BOOK,
    "suppbook": _CHAPTER_IN_BOOK,
    "booklet": TypeMapping(RecordType.PAMPHLET),
    "incollection": _CHAPTER_IN_COLLECTION,
    "inreference": _CHAPTER_IN_COLLECTION,
    "suppcollection": _CHAPTER_IN_COLLECTION,
    "manual": TypeMapping(RecordType.BOOK, forced=((F.GENRE, "manual"),)),
    "software": TypeMapping(RecordType.ARTICLE, (BOOK_TITLE,), forced=((F.GENRE, "software"),)),
    "misc": TypeMapping(RecordType.ARTICLE, (BOOK_TITLE,)),
    "online": _WEBPAGE,
    "www": _WEBPAGE,
    "electronic": _WEBPAGE,
    "patent": TypeMapping(RecordType.PATENT, (HOLDER,)),
    "periodical": TypeMapping(RecordType.BOOK, (ISSUE_TITLE,)),
    "proceedings": _PROCEEDINGS,
    "mvproceedings": _PROCEEDINGS,
    "inproceedings": _PAPER_CONFERENCE,
    "conference": _PAPER_CONFERENCE,
    "report": _REPORT,
    "techreport": _REPORT,
    "thesis": TypeMapping(RecordType.THESIS),
    "mastersthesis": TypeMapping(RecordType.THESIS, forced=((F.GENRE, "Master's thesis"),), forced_unless="type"),
    "phdthesis": TypeMapping(RecordType.THESIS, forced=((F.GENRE, "PhD thesis"),), forced_unless="type"),
    "unpublished": TypeMapping(RecordType.ARTICLE, forced=((F.STATUS, "unpublished"),)),
    "legal": TypeMapping(RecordType.TREATY, (BOOK_TITLE,)),
    "standard": TypeMapping(RecordType.TREATY, (BOOK_TITLE,), forced=((F.GENRE, "standard"),)),
    "jurisdiction": _LEGISLATION,
    "legislation": _LEGISLATION,
    "video": _MOTION_PICTURE,
    "movie": _MOTION_PICTURE,
    "audio": _MUSICAL_SCORE,
    "music": _MUSICAL_SCORE,
    "review": TypeMapping(RecordType.REVIEW, (JOURNAL, ISSUE_TITLE, BOOK_TITLE)),
    "commentary": TypeMapping(RecordType.LEGAL_CASE, (BOOK_TITLE,)),
    "artwork": _GRAPHIC,
    "image": _GRAPHIC,
    "letter": TypeMapping(RecordType.PERSONAL_COMMUNICATION, (BOOK_TITLE,)),
    "performance": TypeMapping(RecordType.BROADCAST, (BOOK_TITLE,)),
}


def classify(type_token: str) -> TypeMapping:
    """Look up the mapping for a source entry type (case-insensitive)."""
    token = (type_token or "").strip().lower()
    mapping = TYPE_TABLE.get(token)
    if mapping is None:
        raise UnsupportedTypeError(token)
    return mapping


def supported_types() -> Tuple[str, ...]:
    return tuple(sorted(TYPE_TABLE))
