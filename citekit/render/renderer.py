"""Citation and bibliography rendering for one aggregation index."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Union

from loguru import logger

from citekit.errors import ErrorCode, ErrorList
from citekit.index.cite_keys import CiteKey, decode
from citekit.records.repository import ResolvedRecord
from citekit.records.schema import NormalizedRecord
from citekit.render.formatter import (
    CITE_TARGET_MARK,
    ENTRY_TARGET_MARK,
    Bibliography,
    CitationFormatter,
    FormatterError,
    FormatterFactory,
    plain_text_formatter,
)
from citekit.render.scope import Scope


PAGE_SEPARATOR = "----"


class CitationRenderer:
    """Formatter session bound to the resolved records of one index.

    Every record is registered in aggregated order when the session is
    created so that citation numbers follow the order in which keys first
    appear in the tree, whatever the order of the citations rendered later.
    """

    def __init__(
        self,
        records: Sequence[ResolvedRecord],
        style: str,
        locale: str,
        *,
        bibliography_node: Optional[str] = None,
        formatter_factory: FormatterFactory = plain_text_formatter,
        errors: Optional[ErrorList] = None,
    ):
        if records is None:
            raise TypeError("records must not be None")
        self.errors = errors if errors is not None else ErrorList()
        self.bibliography_node = bibliography_node
        self._targets: Dict[str, str] = {r.record.id: r.target or "" for r in records}
        self._formatter: Optional[CitationFormatter] = None

        try:
            self._formatter = formatter_factory([r.record for r in records], style, locale)
            for resolved in records:
                self._formatter.register_citation(resolved.record.id)
        except FormatterError as e:
            logger.warning(f"Can not create citation formatter for style {style!r}: {e}")
            self.errors.add(ErrorCode.FORMATTER, str(e))
            self._formatter = None

    @property
    def available(self) -> bool:
        return self._formatter is not None

    def cite(
        self,
        keys: Union[str, Sequence[CiteKey]],
        scope: Scope = Scope.CITED,
        hidden: bool = False,
    ) -> List[str]:
        """Render inline citations for a cite string such as `a,b[p. 4]`.

        Hidden citations produce no text. Page-scope citations point at the
        current page; all others point at the bibliography node.
        """
        cite_keys = decode(keys) if isinstance(keys, str) else list(keys)
        if hidden or not cite_keys or self._formatter is None:
            return []

        target = "" if scope == Scope.PAGE else (self.bibliography_node or "")
        results = []
        for cite_key in cite_keys:
            try:
                text = self._formatter.register_citation(cite_key.key, cite_key.locator)
            except FormatterError as e:
                logger.warning(f"Could not make citation for {cite_key.key!r}: {e}")
                self.errors.add(ErrorCode.FORMATTER, cite_key.key)
                continue
            results.append(text.replace(CITE_TARGET_MARK, target))
        return results

    def bibliography(self) -> Bibliography:
        if self._formatter is None:
            return Bibliography()
        return self._formatter.render_bibliography()

    def render_bibliography(self, scope: Scope, page_keys: Optional[Sequence[str]] = None) -> str:
        """Bibliography text for `scope`.

        `cited` lists every registered record, `page` only `page_keys` after a
        separator line, `hidden` nothing.
        """
        if scope == Scope.HIDDEN or self._formatter is None:
            return ""

        bibliography = self._formatter.render_bibliography()
        lookup = None if scope != Scope.PAGE else set(page_keys or ())

        lines: List[str] = []
        if scope == Scope.PAGE:
            lines.append(PAGE_SEPARATOR)
        if bibliography.prefix:
            lines.append(bibliography.prefix)
        for item in bibliography.items:
            if lookup is not None and item.key not in lookup:
                continue
            lines.append(item.text.replace(ENTRY_TARGET_MARK, self._targets.get(item.key, "")))
        if bibliography.suffix:
            lines.append(bibliography.suffix)
        return "\n".join(lines)


def render_entry(
    record: NormalizedRecord,
    target: Optional[str],
    style: str,
    locale: str,
    formatter_factory: FormatterFactory = plain_text_formatter,
    errors: Optional[ErrorList] = None,
) -> str:
    """Stand-alone rendering of a single record, linked to its own node."""
    renderer = CitationRenderer(
        [ResolvedRecord(record=record, target=target)],
        style,
        locale,
        formatter_factory=formatter_factory,
        errors=errors,
    )
    items = renderer.bibliography().items
    if not items:
        return ""
    return items[0].text.strip().replace(ENTRY_TARGET_MARK, target or "")
