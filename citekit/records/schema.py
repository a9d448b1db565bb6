"""Normalized citation record model.

The record shape follows CSL-JSON: one type from the CSL vocabulary, a
citation key, scalar text fields, date fields, name lists and category tags.
Absent text fields are stored as empty strings so that a record survives a
store/load cycle unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class RecordType(str, Enum):
    """CSL item types."""
    ARTICLE = "article"
    ARTICLE_JOURNAL = "article-journal"
    ARTICLE_MAGAZINE = "article-magazine"
    ARTICLE_NEWSPAPER = "article-newspaper"
    BILL = "bill"
    BOOK = "book"
    BROADCAST = "broadcast"
    CHAPTER = "chapter"
    DATASET = "dataset"
    ENTRY = "entry"
    ENTRY_DICTIONARY = "entry-dictionary"
    ENTRY_ENCYCLOPEDIA = "entry-encyclopedia"
    FIGURE = "figure"
    GRAPHIC = "graphic"
    INTERVIEW = "interview"
    LEGAL_CASE = "legal_case"
    LEGISLATION = "legislation"
    MANUSCRIPT = "manuscript"
    MAP = "map"
    MOTION_PICTURE = "motion_picture"
    MUSICAL_SCORE = "musical_score"
    PAMPHLET = "pamphlet"
    PAPER_CONFERENCE = "paper-conference"
    PATENT = "patent"
    POST = "post"
    POST_WEBLOG = "post-weblog"
    PERSONAL_COMMUNICATION = "personal_communication"
    REPORT = "report"
    REVIEW = "review"
    REVIEW_BOOK = "review-book"
    SONG = "song"
    SPEECH = "speech"
    THESIS = "thesis"
    TREATY = "treaty"
    WEBPAGE = "webpage"

    @classmethod
    def from_string(cls, value: str) -> "RecordType":
        """Case-insensitive lookup accepting both `-` and `_` separators."""
        wanted = (value or "").strip().lower()
        for member in cls:
            if member.value == wanted:
                return member
        alt = wanted.replace("_", "-")
        for member in cls:
            if member.value.replace("_", "-") == alt:
                return member
        raise ValueError(f"Unknown record type: {value!r}")


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class Name:
    """A person name split into CSL name parts."""
    family: Optional[str] = None
    given: Optional[str] = None
    dropping_particle: Optional[str] = None
    non_dropping_particle: Optional[str] = None
    suffix: Optional[str] = None

    def __post_init__(self):
        for f in fields(self):
            object.__setattr__(self, f.name, _blank_to_none(getattr(self, f.name)))

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_dict(self) -> dict:
        out: Dict[str, str] = {}
        if self.family:
            out["family"] = self.family
        if self.given:
            out["given"] = self.given
        if self.dropping_particle:
            out["dropping-particle"] = self.dropping_particle
        if self.non_dropping_particle:
            out["non-dropping-particle"] = self.non_dropping_particle
        if self.suffix:
            out["suffix"] = self.suffix
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "Name":
        return cls(
            family=data.get("family"),
            given=data.get("given"),
            dropping_particle=data.get("dropping-particle", data.get("dropping_particle")),
            non_dropping_particle=data.get("non-dropping-particle", data.get("non_dropping_particle")),
            suffix=data.get("suffix"),
        )


@dataclass(frozen=True)
class PartialDate:
    """A date with year precision at least: `Y`, `Y-M` or `Y-M-D`."""
    year: int
    month: Optional[int] = None
    day: Optional[int] = None

    def __post_init__(self):
        if self.day is not None and self.month is None:
            raise ValueError("A day requires a month")

    def parts(self) -> List[int]:
        out = [self.year]
        if self.month is not None:
            out.append(self.month)
            if self.day is not None:
                out.append(self.day)
        return out

    def to_string(self) -> str:
        text = f"{self.year:04d}"
        if self.month is not None:
            text += f"-{self.month:02d}"
            if self.day is not None:
                text += f"-{self.day:02d}"
        return text

    @classmethod
    def from_parts(cls, parts: List[Any]) -> "PartialDate":
        values = [int(p) for p in parts]
        if not values:
            raise ValueError("Empty date parts")
        return cls(
            year=values[0],
            month=values[1] if len(values) > 1 else None,
            day=values[2] if len(values) > 2 else None,
        )


@dataclass(frozen=True)
class DateValue:
    """A single partial date or a range of two."""
    start: PartialDate
    end: Optional[PartialDate] = None

    @property
    def is_range(self) -> bool:
        return self.end is not None

    def to_string(self) -> str:
        if self.end is None:
            return self.start.to_string()
        return f"{self.start.to_string()}/{self.end.to_string()}"

    def to_dict(self) -> dict:
        parts = [self.start.parts()]
        if self.end is not None:
            parts.append(self.end.parts())
        return {"date-parts": parts}

    @classmethod
    def from_dict(cls, data: dict) -> "DateValue":
        parts = data.get("date-parts") or []
        if not parts:
            raise ValueError("Missing date-parts")
        start = PartialDate.from_parts(parts[0])
        end = PartialDate.from_parts(parts[1]) if len(parts) > 1 else None
        return cls(start=start, end=end)


@dataclass(frozen=True)
class NormalizedRecord:
    """Canonical bibliographic record used throughout rendering."""
    type: RecordType
    id: str

    # scalar text fields
    abstract: str = ""
    archive: str = ""
    archive_location: str = ""
    archive_place: str = ""
    authority: str = ""
    call_number: str = ""
    chapter_number: str = ""
    collection_number: str = ""
    collection_title: str = ""
    container_title: str = ""
    container_title_short: str = ""
    dimensions: str = ""
    doi: str = ""
    edition: str = ""
    event: str = ""
    event_place: str = ""
    genre: str = ""
    isbn: str = ""
    issn: str = ""
    issue: str = ""
    journal_abbreviation: str = ""
    jurisdiction: str = ""
    language: str = ""
    medium: str = ""
    note: str = ""
    number: str = ""
    number_of_pages: str = ""
    number_of_volumes: str = ""
    page: str = ""
    publisher: str = ""
    publisher_place: str = ""
    references: str = ""
    reviewed_title: str = ""
    scale: str = ""
    section: str = ""
    short_title: str = ""
    source: str = ""
    status: str = ""
    title: str = ""
    title_short: str = ""
    url: str = ""
    version: str = ""
    volume: str = ""

    # dates
    accessed: Optional[DateValue] = None
    event_date: Optional[DateValue] = None
    issued: Optional[DateValue] = None
    original_date: Optional[DateValue] = None
    submitted: Optional[DateValue] = None

    # name lists
    author: Tuple[Name, ...] = ()
    collection_editor: Tuple[Name, ...] = ()
    composer: Tuple[Name, ...] = ()
    container_author: Tuple[Name, ...] = ()
    director: Tuple[Name, ...] = ()
    editorial_director: Tuple[Name, ...] = ()
    editor: Tuple[Name, ...] = ()
    illustrator: Tuple[Name, ...] = ()
    interviewer: Tuple[Name, ...] = ()
    recipient: Tuple[Name, ...] = ()
    reviewed_author: Tuple[Name, ...] = ()
    translator: Tuple[Name, ...] = ()

    categories: Tuple[str, ...] = ()

    def with_id(self, new_id: str) -> "NormalizedRecord":
        return replace(self, id=new_id)

    def to_dict(self) -> dict:
        """CSL-JSON representation (only populated fields)."""
        from citekit.records.fields import record_to_csl_json

        return record_to_csl_json(self)

    @classmethod
    def from_dict(cls, data: dict) -> "NormalizedRecord":
        from citekit.records.fields import record_from_csl_json

        return record_from_csl_json(data)


class RecordBuilder:
    """Mutable accumulator producing a `NormalizedRecord`.

    Field rules write into a builder in declared order; a later write to the
    same attribute replaces the earlier one.
    """

    _ATTRS = frozenset(f.name for f in fields(NormalizedRecord))

    def __init__(self, record_type: RecordType = RecordType.ARTICLE, record_id: str = ""):
        self._values: Dict[str, Any] = {"type": record_type, "id": record_id}

    def set(self, attr: str, value: Any) -> "RecordBuilder":
        if attr not in self._ATTRS:
            raise AttributeError(f"Unknown record attribute: {attr}")
        if isinstance(value, list):
            value = tuple(value)
        self._values[attr] = value
        return self

    def get(self, attr: str, default: Any = None) -> Any:
        return self._values.get(attr, default)

    def type(self, record_type: RecordType) -> "RecordBuilder":
        return self.set("type", record_type)

    def id(self, record_id: str) -> "RecordBuilder":
        return self.set("id", record_id)

    def genre(self, genre: str) -> "RecordBuilder":
        return self.set("genre", genre)

    def build(self) -> NormalizedRecord:
        values = dict(self._values)
        for attr, value in list(values.items()):
            if value is None and attr not in ("accessed", "event_date", "issued", "original_date", "submitted"):
                # string fields are never None; name lists and categories are empty tuples
                default = NormalizedRecord.__dataclass_fields__[attr].default
                values[attr] = default
        return NormalizedRecord(**values)
