"""Record to BibLaTeX export."""

from __future__ import annotations

from typing import Dict, Iterable, Optional, Tuple

from loguru import logger

from citekit.records.dates import format_date
from citekit.records.schema import Name, NormalizedRecord, RecordType


_TYPE_BY_RECORD_TYPE: Dict[RecordType, str] = {
    RecordType.ARTICLE_MAGAZINE: "article",
    RecordType.ARTICLE_NEWSPAPER: "article",
    RecordType.ARTICLE_JOURNAL: "article",
    RecordType.BROADCAST: "performance",
    RecordType.CHAPTER: "inbook",
    RecordType.BILL: "misc",
    RecordType.DATASET: "misc",
    RecordType.ENTRY: "misc",
    RecordType.ENTRY_DICTIONARY: "misc",
    RecordType.ENTRY_ENCYCLOPEDIA: "misc",
    RecordType.MAP: "misc",
    RecordType.FIGURE: "image",
    RecordType.GRAPHIC: "image",
    RecordType.LEGAL_CASE: "commentary",
    RecordType.LEGISLATION: "legislation",
    RecordType.MOTION_PICTURE: "movie",
    RecordType.SPEECH: "music",
    RecordType.SONG: "music",
    RecordType.MUSICAL_SCORE: "music",
    RecordType.PAMPHLET: "booklet",
    RecordType.PAPER_CONFERENCE: "inproceedings",
    RecordType.PATENT: "patent",
    RecordType.PERSONAL_COMMUNICATION: "letter",
    RecordType.REPORT: "techreport",
    RecordType.REVIEW: "review",
    RecordType.REVIEW_BOOK: "review",
    RecordType.POST: "online",
    RecordType.POST_WEBLOG: "online",
    RecordType.WEBPAGE: "online",
}

_PUBLISHER_FIELD_BY_TYPE = {
    "booklet": "howpublished",
    "misc": "howpublished",
    "thesis": "school",
    "mastersthesis": "school",
    "phdthesis": "school",
    "report": "institution",
    "techreport": "institution",
    "online": "organization",
    "manual": "organization",
}

_CONTAINER_AS_BOOKTITLE = frozenset(
    {
        "software",
        "misc",
        "legal",
        "standard",
        "legislation",
        "movie",
        "music",
        "commentary",
        "image",
        "letter",
        "performance",
    }
)


def escape_text(text: str) -> str:
    """Protect upper-case letters from BibTeX case folding."""
    return "".join(f"{{{c}}}" if c.isupper() else c for c in text)


def escape_name_part(text: Optional[str]) -> str:
    if not text:
        return ""
    return "".join(f"{{{c}}}" if c.isupper() or c == "," else c for c in text)


def format_name(name: Name) -> str:
    """`particles family[,suffix][, given]` with escaped parts."""
    family = ""
    if name.dropping_particle:
        family += escape_name_part(name.dropping_particle) + " "
    if name.non_dropping_particle:
        family += escape_name_part(name.non_dropping_particle) + " "
    parts = [family + escape_name_part(name.family)]
    if name.suffix:
        parts.append(escape_name_part(name.suffix))
    if name.given:
        parts.append(" " + escape_name_part(name.given))
    return ",".join(parts)


def format_names(names: Iterable[Name]) -> str:
    return " and ".join(format_name(n) for n in names)


def choose_export_type(record: NormalizedRecord) -> str:
    """Map a record to its BibLaTeX entry type."""
    rtype = record.type
    genre = record.genre or ""

    if rtype == RecordType.ARTICLE:
        if genre == "software":
            return "software"
        if genre == "unpublished" or record.status == "unpublished":
            return "unpublished"
        return "misc"

    if rtype in (RecordType.BOOK, RecordType.MANUSCRIPT):
        entry_type = "book"
        if record.container_title:
            entry_type = "periodical"
        if genre == "manual":
            entry_type = "manual"
        if record.event or record.event_place or record.event_date is not None:
            entry_type = "proceedings"
        return entry_type

    if rtype == RecordType.THESIS:
        lowered = genre.strip().lower()
        if lowered == "master's thesis":
            return "mastersthesis"
        if lowered == "phd thesis":
            return "phdthesis"
        return "thesis"

    if rtype == RecordType.TREATY:
        return "standard" if genre.lower() == "standard" else "legal"

    return _TYPE_BY_RECORD_TYPE.get(rtype, "article")


def build_export_entry(record: NormalizedRecord) -> Tuple[str, Dict[str, str]]:
    """Return the BibLaTeX entry type and its populated fields."""
    entry_type = choose_export_type(record)
    fields: Dict[str, str] = {}

    def put(name: str, value: Optional[str]) -> None:
        if value is not None and value.strip():
            fields[name] = value

    def put_escaped(name: str, value: Optional[str]) -> None:
        if value is not None and value.strip():
            fields[name] = escape_text(value)

    def put_names(name: str, names: Tuple[Name, ...]) -> None:
        if names:
            fields[name] = format_names(names)

    put_names("author", record.author)
    put_names("editor", record.editor)
    put_escaped(_PUBLISHER_FIELD_BY_TYPE.get(entry_type, "publisher"), record.publisher)
    put_escaped("title", record.title)

    put("date", format_date(record.issued))
    if record.issued is not None:
        start, end = record.issued.start, record.issued.end
        if end is None:
            put("year", str(start.year))
        else:
            put("year", f"{start.year}/{end.year}")
        if start.month is not None:
            put("month", str(start.month))
            if start.day is not None:
                put("day", str(start.day))

    put_names("translator", record.translator)
    put_escaped("series", record.collection_title)
    put("number", record.number)
    put("volume", record.volume)
    put("edition", record.edition)
    put("volumes", record.number_of_volumes)
    put_escaped("issue", record.issue)
    put("isbn", record.isbn)
    put("issn", record.issn)
    put("pages", record.page)
    put("pagetotal", record.number_of_pages)
    put("type", record.genre)
    put("version", record.version)
    put_escaped("address", record.publisher_place)
    put("status", record.status)
    put("doi", record.doi)
    put("url", record.url)
    put("urldate", format_date(record.accessed))
    put("language", record.language)
    put_escaped("note", record.note)
    put("abstract", record.abstract)

    if entry_type == "article":
        put_escaped("journaltitle", record.collection_title)
        put_escaped("issuetitle", record.container_title)
    elif entry_type == "inbook":
        put_names("bookauthor", record.container_author)
        put_escaped("booktitle", record.container_title)
    elif entry_type == "patent":
        put_escaped("holder", record.publisher)
    elif entry_type == "periodical":
        put_escaped("issuetitle", record.container_title)
    elif entry_type in ("proceedings", "inproceedings"):
        booktitle = record.event if entry_type == "proceedings" else record.container_title
        put_escaped("booktitle", booktitle)
        put_escaped("eventtitle", record.event)
        put_escaped("venue", record.event_place)
        put("eventdate", format_date(record.event_date))
    elif entry_type in _CONTAINER_AS_BOOKTITLE:
        put_escaped("booktitle", record.container_title)
    elif entry_type == "review":
        put_escaped("journaltitle", record.collection_title)
        put_escaped("issuetitle", record.container_title)
        put_escaped("booktitle", record.container_title)

    return entry_type, fields


def serialize_entry(entry_type: str, record_id: str, fields: Dict[str, str]) -> str:
    lines = [f"@{entry_type}{{{record_id}"]
    lines.extend(f"{key} = {{{fields[key]}}}" for key in sorted(fields))
    return ",\n    ".join(lines) + "\n}"


def export_record(record: NormalizedRecord) -> str:
    """Serialize one record as a BibLaTeX entry."""
    logger.debug(f"Exporting record {record.id!r} ({record.type.value})")
    entry_type, fields = build_export_entry(record)
    return serialize_entry(entry_type, record.id, fields)


def export_records(records: Iterable[NormalizedRecord]) -> str:
    return "\n\n".join(export_record(r) for r in records)
