"""Citation formatters.

A formatter is bound to one ordered record set, one style and one locale.
Citations are registered key by key; numeric styles number records in
registration order. Rendered text carries placeholder markers for link
targets that the renderer substitutes afterwards:

- `CITE_TARGET_MARK` in inline citations, replaced by the bibliography node
  (or by nothing for a same-page anchor);
- `ENTRY_TARGET_MARK` in bibliography entries, replaced by the node owning
  the record.

`PlainTextFormatter` is the built-in implementation. It renders a numeric
style (`ieee`) and an author-date style with a small set of locale terms.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from citekit.records.names import initials
from citekit.records.schema import Name, NormalizedRecord, RecordType


CITE_TARGET_MARK = "CITEKIT_CITE_TARGET_MARK"
ENTRY_TARGET_MARK = "CITEKIT_ENTRY_TARGET_MARK"


class FormatterError(LookupError):
    """Raised for an unknown style or a citation of an unknown key."""


@dataclass(frozen=True)
class BibliographyItem:
    key: str
    text: str


@dataclass(frozen=True)
class Bibliography:
    items: Tuple[BibliographyItem, ...] = ()
    prefix: str = ""
    suffix: str = ""

    @property
    def keys(self) -> List[str]:
        return [item.key for item in self.items]

    @property
    def entries(self) -> List[str]:
        return [item.text for item in self.items]


class CitationFormatter(Protocol):
    def register_citation(self, key: str, locator: str = "") -> str:
        ...

    def render_bibliography(self) -> Bibliography:
        ...


FormatterFactory = Callable[[Sequence[NormalizedRecord], str, str], CitationFormatter]


LOCALE_TERMS: Dict[str, Dict[str, str]] = {
    "en-US": {
        "and": "and",
        "et_al": "et al.",
        "no_date": "n.d.",
        "page": "p.",
        "pages": "pp.",
        "volume": "vol.",
        "number": "no.",
        "edition": "ed.",
        "accessed": "accessed",
    },
    "fr-FR": {
        "and": "et",
        "et_al": "et al.",
        "no_date": "s. d.",
        "page": "p.",
        "pages": "p.",
        "volume": "vol.",
        "number": "n°",
        "edition": "éd.",
        "accessed": "consulté le",
    },
    "de-DE": {
        "and": "und",
        "et_al": "u. a.",
        "no_date": "o. J.",
        "page": "S.",
        "pages": "S.",
        "volume": "Bd.",
        "number": "Nr.",
        "edition": "Aufl.",
        "accessed": "abgerufen am",
    },
}

NUMERIC_STYLES = frozenset({"ieee", "numeric", "vancouver"})
AUTHOR_DATE_STYLES = frozenset({"author-date", "apa", "harvard", "chicago-author-date"})


def resolve_locale(locale: Optional[str]) -> Dict[str, str]:
    """Exact locale, then same language, then `en-US`."""
    wanted = (locale or "").replace("_", "-")
    if wanted in LOCALE_TERMS:
        return LOCALE_TERMS[wanted]
    language = wanted.split("-")[0].lower()
    for name, terms in LOCALE_TERMS.items():
        if name.split("-")[0].lower() == language:
            return terms
    return LOCALE_TERMS["en-US"]


def _year(record: NormalizedRecord) -> str:
    if record.issued is None:
        return ""
    if record.issued.end is not None and record.issued.end.year != record.issued.start.year:
        return f"{record.issued.start.year}-{record.issued.end.year}"
    return str(record.issued.start.year)


def _family(name: Name) -> str:
    particle = name.non_dropping_particle
    if particle and name.family:
        return f"{particle} {name.family}"
    return name.family or name.given or ""


def _join_names(names: List[str], terms: Dict[str, str], serial_comma: bool = True) -> str:
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    if len(names) == 2:
        return f"{names[0]} {terms['and']} {names[1]}"
    sep = ", " if serial_comma else " "
    return ", ".join(names[:-1]) + f"{sep}{terms['and']} " + names[-1]


def _contributors(record: NormalizedRecord) -> Tuple[Name, ...]:
    return record.author or record.editor or record.composer or record.director


class PlainTextFormatter:
    """Plain-text formatter for numeric and author-date styles."""

    max_names = 6

    def __init__(self, records: Sequence[NormalizedRecord], style: str = "ieee", locale: str = "en-US"):
        if records is None:
            raise TypeError("records must not be None")
        wanted = (style or "").strip().lower()
        if wanted not in NUMERIC_STYLES and wanted not in AUTHOR_DATE_STYLES:
            raise FormatterError(f"Unknown citation style: {style}")

        self.style = wanted
        self.locale = locale
        self.terms = resolve_locale(locale)
        self._records: Dict[str, NormalizedRecord] = {r.id: r for r in records}
        self._registered: List[str] = []

    @property
    def numeric(self) -> bool:
        return self.style in NUMERIC_STYLES

    def _record(self, key: str) -> NormalizedRecord:
        record = self._records.get(key)
        if record is None:
            raise FormatterError(f"Unknown citation key: {key}")
        return record

    def _number(self, key: str) -> int:
        if key not in self._registered:
            self._registered.append(key)
        return self._registered.index(key) + 1

    def _locator(self, locator: str) -> str:
        locator = (locator or "").strip()
        if not locator:
            return ""
        if locator[0].isdigit():
            term = self.terms["pages"] if "-" in locator or "," in locator else self.terms["page"]
            return f"{term} {locator}"
        return locator

    def register_citation(self, key: str, locator: str = "") -> str:
        record = self._record(key)
        number = self._number(key)
        located = self._locator(locator)

        if self.numeric:
            label = f"[{number}, {located}]" if located else f"[{number}]"
        else:
            label = f"({self._short_author(record)}, {_year(record) or self.terms['no_date']}"
            label += f", {located})" if located else ")"
        return f"[{label}]({CITE_TARGET_MARK}#{key})"

    def _short_author(self, record: NormalizedRecord) -> str:
        names = _contributors(record)
        if not names:
            return record.title or record.id
        if len(names) == 1:
            return _family(names[0])
        if len(names) == 2:
            return f"{_family(names[0])} {self.terms['and']} {_family(names[1])}"
        return f"{_family(names[0])} {self.terms['et_al']}"

    # -- bibliography entries --------------------------------------------

    def _ieee_names(self, names: Tuple[Name, ...]) -> str:
        formatted = []
        for name in names[: self.max_names]:
            init = initials(name.given)
            family = _family(name)
            formatted.append(f"{init} {family}".strip())
        if len(names) > self.max_names:
            return ", ".join(formatted) + f", {self.terms['et_al']}"
        return _join_names(formatted, self.terms)

    def _author_date_names(self, names: Tuple[Name, ...]) -> str:
        formatted = []
        for name in names[: self.max_names]:
            init = initials(name.given)
            family = _family(name)
            formatted.append(f"{family}, {init}" if init else family)
        if len(names) > self.max_names:
            return ", ".join(formatted) + f", {self.terms['et_al']}"
        return _join_names(formatted, self.terms)

    def _details(self, record: NormalizedRecord) -> List[str]:
        parts = []
        if record.volume:
            parts.append(f"{self.terms['volume']} {record.volume}")
        if record.issue or record.number:
            parts.append(f"{self.terms['number']} {record.issue or record.number}")
        if record.page:
            parts.append(f"{self.terms['pages']} {record.page}")
        return parts

    def _ieee_entry(self, record: NormalizedRecord, number: int) -> str:
        parts: List[str] = []
        names = self._ieee_names(_contributors(record))
        if names:
            parts.append(names)

        container_types = (
            RecordType.ARTICLE_JOURNAL,
            RecordType.ARTICLE_MAGAZINE,
            RecordType.ARTICLE_NEWSPAPER,
            RecordType.CHAPTER,
            RecordType.PAPER_CONFERENCE,
        )
        if record.title:
            if record.type in container_types or record.container_title:
                parts.append(f"\"{record.title},\"")
            else:
                parts.append(f"*{record.title}*")
        if record.container_title:
            parts.append(f"*{record.container_title}*")
        if record.edition:
            parts.append(f"{record.edition} {self.terms['edition']}")
        parts.extend(self._details(record))
        if record.genre:
            parts.append(record.genre)
        if record.publisher_place and record.publisher:
            parts.append(f"{record.publisher_place}: {record.publisher}")
        elif record.publisher:
            parts.append(record.publisher)
        year = _year(record)
        if year:
            parts.append(year)

        body = ""
        for part in parts:
            if not body:
                body = part
            elif body.endswith(",\""):
                # a quoted title carries its own comma
                body += f" {part}"
            else:
                body += f", {part}"
        if body.endswith(",\""):
            body = body[:-2] + ".\""
        elif body:
            body += "."
        text = f"[{number}] {body}".rstrip()
        if record.doi:
            text += f" doi: {record.doi}."
        elif record.url:
            text += f" [Online]. Available: {record.url}"
        return f"{text} [{record.id}]({ENTRY_TARGET_MARK})"

    def _author_date_entry(self, record: NormalizedRecord) -> str:
        names = self._author_date_names(_contributors(record))
        year = _year(record) or self.terms["no_date"]
        head = f"{names} ({year})." if names else f"({year})."

        parts = [head]
        if record.title:
            parts.append(f"{record.title}.")
        if record.container_title:
            detail = f"*{record.container_title}*"
            if record.volume:
                detail += f", {record.volume}"
                if record.issue:
                    detail += f"({record.issue})"
            if record.page:
                detail += f", {record.page}"
            parts.append(f"{detail}.")
        if record.publisher:
            parts.append(f"{record.publisher}.")
        if record.doi:
            parts.append(f"https://doi.org/{record.doi}")
        elif record.url:
            parts.append(record.url)
        return f"{' '.join(parts)} [{record.id}]({ENTRY_TARGET_MARK})"

    def _sort_key(self, record: NormalizedRecord) -> Tuple[str, str, str]:
        names = _contributors(record)
        first = _family(names[0]).lower() if names else (record.title or "").lower()
        return first, _year(record), (record.title or "").lower()

    def render_bibliography(self) -> Bibliography:
        """Entries for every registered key."""
        records = [self._records[key] for key in self._registered]
        if self.numeric:
            items = tuple(
                BibliographyItem(key=r.id, text=self._ieee_entry(r, i + 1))
                for i, r in enumerate(records)
            )
        else:
            items = tuple(
                BibliographyItem(key=r.id, text=self._author_date_entry(r))
                for r in sorted(records, key=self._sort_key)
            )
        return Bibliography(items=items, prefix="", suffix="")


def plain_text_formatter(records: Sequence[NormalizedRecord], style: str, locale: str) -> CitationFormatter:
    return PlainTextFormatter(records, style=style, locale=locale)
