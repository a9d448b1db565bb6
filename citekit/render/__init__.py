"""Render package.

Citation scopes, formatters and the renderer that substitutes link targets.
"""

from .scope import Scope
from .formatter import (
    CITE_TARGET_MARK,
    ENTRY_TARGET_MARK,
    Bibliography,
    BibliographyItem,
    CitationFormatter,
    FormatterError,
    FormatterFactory,
    PlainTextFormatter,
    plain_text_formatter,
)
from .renderer import CitationRenderer, render_entry

__all__ = [
    "Scope",

    "CITE_TARGET_MARK",
    "ENTRY_TARGET_MARK",
    "Bibliography",
    "BibliographyItem",
    "CitationFormatter",
    "FormatterError",
    "FormatterFactory",
    "PlainTextFormatter",
    "plain_text_formatter",

    "CitationRenderer",
    "render_entry",
]
