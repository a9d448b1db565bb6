"""BibLaTeX package.

Rule-based conversion between BibTeX/BibLaTeX text and normalized records.
"""

from .rules import COMMON_RULES, FieldRule, RuleKind, TypeMapping, classify
from .importer import SourceEntry, convert_entry, import_records, parse_source
from .exporter import build_export_entry, export_record, export_records

__all__ = [
    "COMMON_RULES",
    "FieldRule",
    "RuleKind",
    "TypeMapping",
    "classify",

    "SourceEntry",
    "convert_entry",
    "import_records",
    "parse_source",

    "build_export_entry",
    "export_record",
    "export_records",
]
