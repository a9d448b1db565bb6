"""Static field descriptor tables.

Every record field is described once: its CSL key, the record attribute that
holds it, and how to read it from a record or write it into a builder.
Import rules, export, validation, storage and CSL-JSON conversion all go
through these tables.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from citekit.records.dates import format_date, is_valid_date, is_valid_date_or_range
from citekit.records.schema import DateValue, Name, NormalizedRecord, RecordBuilder, RecordType


@dataclass(frozen=True)
class StringField:
    name: str
    attr: str
    large: bool = False

    def get(self, record: NormalizedRecord) -> str:
        return getattr(record, self.attr)

    def set(self, builder: RecordBuilder, value: Optional[str]) -> None:
        builder.set(self.attr, value if value is not None else "")


@dataclass(frozen=True)
class DateField:
    name: str
    attr: str
    validator: Callable[[Optional[str]], bool] = is_valid_date

    def get(self, record: NormalizedRecord) -> Optional[DateValue]:
        return getattr(record, self.attr)

    def get_string(self, record: NormalizedRecord) -> str:
        return format_date(self.get(record))

    def set(self, builder: RecordBuilder, value: Optional[DateValue]) -> None:
        builder.set(self.attr, value)

    def is_valid(self, value: Optional[str]) -> bool:
        return self.validator(value)


@dataclass(frozen=True)
class NameField:
    name: str
    attr: str

    def get(self, record: NormalizedRecord) -> Tuple[Name, ...]:
        return getattr(record, self.attr)

    def set(self, builder: RecordBuilder, value: Iterable[Name]) -> None:
        builder.set(self.attr, tuple(value or ()))


@dataclass(frozen=True)
class CategoriesField:
    name: str = "categories"
    attr: str = "categories"

    def get(self, record: NormalizedRecord) -> Tuple[str, ...]:
        return record.categories

    def set(self, builder: RecordBuilder, value: Iterable[str]) -> None:
        builder.set(self.attr, tuple(v for v in (value or ()) if v))


@dataclass(frozen=True)
class TypeField:
    name: str = "type"
    attr: str = "type"

    def get(self, record: NormalizedRecord) -> RecordType:
        return record.type

    def set(self, builder: RecordBuilder, value: RecordType) -> None:
        builder.type(value)


# Strings
ABSTRACT = StringField("abstract", "abstract", large=True)
ARCHIVE = StringField("archive", "archive")
ARCHIVE_LOCATION = StringField("archive_location", "archive_location")
ARCHIVE_PLACE = StringField("archive-place", "archive_place")
AUTHORITY = StringField("authority", "authority")
CALL_NUMBER = StringField("call-number", "call_number")
CHAPTER_NUMBER = StringField("chapter-number", "chapter_number")
COLLECTION_NUMBER = StringField("collection-number", "collection_number")
COLLECTION_TITLE = StringField("collection-title", "collection_title")
CONTAINER_TITLE = StringField("container-title", "container_title")
CONTAINER_TITLE_SHORT = StringField("container-title-short", "container_title_short")
DIMENSIONS = StringField("dimensions", "dimensions")
DOI = StringField("DOI", "doi")
EDITION = StringField("edition", "edition")
EVENT = StringField("event", "event")
EVENT_PLACE = StringField("event-place", "event_place")
GENRE = StringField("genre", "genre")
ISBN = StringField("ISBN", "isbn")
ISSN = StringField("ISSN", "issn")
ISSUE = StringField("issue", "issue")
JOURNAL_ABBREVIATION = StringField("journalAbbreviation", "journal_abbreviation")
JURISDICTION = StringField("jurisdiction", "jurisdiction")
LANGUAGE = StringField("language", "language")
MEDIUM = StringField("medium", "medium")
NOTE = StringField("note", "note", large=True)
NUMBER = StringField("number", "number")
NUMBER_OF_PAGES = StringField("number-of-pages", "number_of_pages")
NUMBER_OF_VOLUMES = StringField("number-of-volumes", "number_of_volumes")
PAGE = StringField("page", "page")
PUBLISHER = StringField("publisher", "publisher")
PUBLISHER_PLACE = StringField("publisher-place", "publisher_place")
REFERENCES = StringField("references", "references", large=True)
REVIEWED_TITLE = StringField("reviewed-title", "reviewed_title")
SCALE = StringField("scale", "scale")
SECTION = StringField("section", "section")
SHORT_TITLE = StringField("shortTitle", "short_title")
SOURCE = StringField("source", "source")
STATUS = StringField("status", "status")
TITLE = StringField("title", "title")
TITLE_SHORT = StringField("title-short", "title_short")
URL = StringField("URL", "url", large=True)
VERSION = StringField("version", "version")
VOLUME = StringField("volume", "volume")

STRING_FIELDS: Tuple[StringField, ...] = (
    ABSTRACT, ARCHIVE, ARCHIVE_LOCATION, ARCHIVE_PLACE, AUTHORITY, CALL_NUMBER,
    CHAPTER_NUMBER, COLLECTION_NUMBER, COLLECTION_TITLE, CONTAINER_TITLE,
    CONTAINER_TITLE_SHORT, DIMENSIONS, DOI, EDITION, EVENT, EVENT_PLACE, GENRE,
    ISBN, ISSN, ISSUE, JOURNAL_ABBREVIATION, JURISDICTION, LANGUAGE, MEDIUM, NOTE,
    NUMBER, NUMBER_OF_PAGES, NUMBER_OF_VOLUMES, PAGE, PUBLISHER, PUBLISHER_PLACE,
    REFERENCES, REVIEWED_TITLE, SCALE, SECTION, SHORT_TITLE, SOURCE, STATUS, TITLE,
    TITLE_SHORT, URL, VERSION, VOLUME,
)

# Dates
ACCESSED = DateField("accessed", "accessed")
EVENT_DATE = DateField("event-date", "event_date", validator=is_valid_date_or_range)
ISSUED = DateField("issued", "issued")
ORIGINAL_DATE = DateField("original-date", "original_date")
SUBMITTED = DateField("submitted", "submitted")

DATE_FIELDS: Tuple[DateField, ...] = (ACCESSED, EVENT_DATE, ISSUED, ORIGINAL_DATE, SUBMITTED)

# Names
AUTHOR = NameField("author", "author")
COLLECTION_EDITOR = NameField("collection-editor", "collection_editor")
COMPOSER = NameField("composer", "composer")
CONTAINER_AUTHOR = NameField("container-author", "container_author")
DIRECTOR = NameField("director", "director")
EDITORIAL_DIRECTOR = NameField("editorial-director", "editorial_director")
EDITOR = NameField("editor", "editor")
ILLUSTRATOR = NameField("illustrator", "illustrator")
INTERVIEWER = NameField("interviewer", "interviewer")
RECIPIENT = NameField("recipient", "recipient")
REVIEWED_AUTHOR = NameField("reviewed-author", "reviewed_author")
TRANSLATOR = NameField("translator", "translator")

NAME_FIELDS: Tuple[NameField, ...] = (
    AUTHOR, COLLECTION_EDITOR, COMPOSER, CONTAINER_AUTHOR, DIRECTOR, EDITORIAL_DIRECTOR,
    EDITOR, ILLUSTRATOR, INTERVIEWER, RECIPIENT, REVIEWED_AUTHOR, TRANSLATOR,
)

CATEGORIES = CategoriesField()
TYPE = TypeField()


def _lookup(table: Iterable[Any], name: str) -> Optional[Any]:
    wanted = (name or "").strip().lower()
    for descriptor in table:
        if descriptor.name.lower() == wanted or descriptor.attr.lower() == wanted:
            return descriptor
    return None


def find_string_field(name: str) -> Optional[StringField]:
    return _lookup(STRING_FIELDS, name)


def find_date_field(name: str) -> Optional[DateField]:
    return _lookup(DATE_FIELDS, name)


def find_name_field(name: str) -> Optional[NameField]:
    return _lookup(NAME_FIELDS, name)


def record_to_csl_json(record: NormalizedRecord) -> Dict[str, Any]:
    """CSL-JSON dict with only populated fields."""
    out: Dict[str, Any] = {"id": record.id, "type": record.type.value}
    for f in STRING_FIELDS:
        value = f.get(record)
        if value:
            out[f.name] = value
    for f in DATE_FIELDS:
        value = f.get(record)
        if value is not None:
            out[f.name] = value.to_dict()
    for f in NAME_FIELDS:
        names = f.get(record)
        if names:
            out[f.name] = [n.to_dict() for n in names]
    if record.categories:
        out[CATEGORIES.name] = list(record.categories)
    return out


def record_from_csl_json(data: Dict[str, Any]) -> NormalizedRecord:
    """Inverse of `record_to_csl_json`; unknown keys are ignored."""
    if not isinstance(data, dict):
        raise TypeError("CSL-JSON record must be a dict")

    builder = RecordBuilder(RecordType.from_string(str(data.get("type", ""))), str(data.get("id") or ""))
    for f in STRING_FIELDS:
        value = data.get(f.name)
        if value is not None:
            f.set(builder, str(value))
    for f in DATE_FIELDS:
        value = data.get(f.name)
        if isinstance(value, dict):
            f.set(builder, DateValue.from_dict(value))
    for f in NAME_FIELDS:
        value = data.get(f.name)
        if isinstance(value, list):
            f.set(builder, [Name.from_dict(n) for n in value if isinstance(n, dict)])
    categories = data.get(CATEGORIES.name)
    if isinstance(categories, list):
        CATEGORIES.set(builder, [str(c) for c in categories])
    return builder.build()
