"""
Bibliography Service
====================
Facade wiring import/export, per-node citation declarations, aggregation
indexes and rendering.

Typical flow for rendering a node:

1. the node's cite strings are decoded and stored as its local declaration;
2. saving a changed declaration expires the enclosing index;
3. the index is recomputed on read and its records are handed to a
   `CitationRenderer`, which produces inline citations and the bibliography
   for the requested scope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from citekit.biblatex.exporter import export_record
from citekit.biblatex.importer import import_records
from citekit.config import BIBLIOGRAPHY, BibliographyConfig
from citekit.errors import ErrorCode, ErrorList
from citekit.index.aggregation import AggregationIndex, IndexRegistry
from citekit.index.cite_keys import decode_unique_keys
from citekit.index.local import LocalDeclaration
from citekit.index.storage import NodeStore
from citekit.index.tree import TreeProvider
from citekit.records.repository import RecordRepository
from citekit.records.schema import NormalizedRecord
from citekit.render.formatter import FormatterFactory, plain_text_formatter
from citekit.render.renderer import CitationRenderer, render_entry
from citekit.render.scope import Scope
from citekit.tracing import get_tracer, init_tracing, safe_set_current_span_attributes


@dataclass
class RenderResult:
    """Output of rendering one node."""
    node_id: str
    scope: Scope
    citations: List[List[str]] = field(default_factory=list)
    bibliography: str = ""
    errors: ErrorList = field(default_factory=ErrorList)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "scope": self.scope.value,
            "citations": [list(c) for c in self.citations],
            "bibliography": self.bibliography,
            "errors": self.errors.to_dict(),
        }


class BibliographyService:
    """Entry point for applications embedding citekit."""

    def __init__(
        self,
        tree: TreeProvider,
        store: NodeStore,
        repository: Optional[RecordRepository] = None,
        *,
        config: Optional[BibliographyConfig] = None,
        formatter_factory: FormatterFactory = plain_text_formatter,
    ):
        init_tracing()
        self.tree = tree
        self.store = store
        self.repository = repository if repository is not None else RecordRepository()
        self.config = config or BIBLIOGRAPHY
        self.formatter_factory = formatter_factory
        self.registry = IndexRegistry(tree, store, self.repository, self.config)

    # -- records ---------------------------------------------------------

    def import_bibtex(
        self,
        text: str,
        scope: str,
        target: Optional[str] = None,
    ) -> Tuple[List[NormalizedRecord], ErrorList]:
        """Import BibTeX text into `scope`; rejected records are reported, not raised."""
        with get_tracer(__name__).start_as_current_span("service.import_bibtex"):
            records, errors = import_records(text)
            stored = self.repository.add_all(scope, records, target, errors)
            if stored:
                self.registry.invalidate_all()
            safe_set_current_span_attributes(
                {
                    "import.scope": scope,
                    "import.parsed": len(records),
                    "import.stored": len(stored),
                    "import.errors": len(errors),
                }
            )
        logger.info(f"Stored {len(stored)}/{len(records)} imported record(s) in scope {scope!r}")
        return stored, errors

    def add_record(self, record: NormalizedRecord, scope: str, target: Optional[str] = None) -> None:
        """Store one record, raising `RecordValidationError` when rejected."""
        self.repository.add(scope, record, target)
        self.registry.invalidate_all()

    def remove_record(self, scope: str, key: str) -> bool:
        removed = self.repository.remove(scope, key)
        if removed:
            self.registry.invalidate_all()
        return removed

    def export_bibtex(self, scope: str, keys: Optional[Sequence[str]] = None) -> Tuple[str, ErrorList]:
        """Export records of `scope` (all, or `keys` in the given order)."""
        errors = ErrorList()
        if keys is None:
            records = [r.record for r in self.repository.records(scope)]
        else:
            records = []
            for key in keys:
                resolved = self.repository.resolve(scope, key)
                if resolved is None:
                    errors.add(ErrorCode.RECORD_NOT_FOUND, key)
                    continue
                records.append(resolved.record)
        return "\n\n".join(export_record(r) for r in records), errors

    def render_record(self, scope: str, key: str, locale: Optional[str] = None) -> Tuple[str, ErrorList]:
        """Pre-render one record in the default style, linked to its owning node."""
        errors = ErrorList()
        resolved = self.repository.resolve(scope, key)
        if resolved is None:
            errors.add(ErrorCode.RECORD_NOT_FOUND, key)
            return "", errors
        text = render_entry(
            resolved.record,
            resolved.target,
            self.config.style,
            locale or self.config.locale,
            formatter_factory=self.formatter_factory,
            errors=errors,
        )
        return text, errors

    # -- declarations ----------------------------------------------------

    def get_index(self, node_id: str) -> AggregationIndex:
        return self.registry.get_index(node_id)

    def create_index(
        self,
        node_id: str,
        *,
        style: Optional[str] = None,
        scope: Optional[str] = None,
        extra_scopes: Optional[List[str]] = None,
    ) -> AggregationIndex:
        index = self.registry.create_index(node_id)
        if style is not None or scope is not None or extra_scopes is not None:
            index.configure(style=style, scope=scope, extra_scopes=extra_scopes)
        return index

    def declare_citations(
        self,
        node_id: str,
        cites: Sequence[str],
        is_bibliography: Optional[bool] = None,
    ) -> bool:
        """Replace the node's declared keys with those of `cites`.

        Returns whether the declaration changed. A change expires the
        enclosing index.
        """
        local = LocalDeclaration.load(self.store, node_id)
        local.set_keys(decode_unique_keys(",".join(c for c in cites if c)))
        if is_bibliography is not None:
            local.set_bibliography(is_bibliography)
        return local.save(self.store, on_saved=self.registry.invalidate_for)

    # -- rendering -------------------------------------------------------

    def render_node(
        self,
        node_id: str,
        cites: Sequence[str],
        scope: Optional[str] = None,
        hidden: Optional[Sequence[bool]] = None,
        locale: Optional[str] = None,
    ) -> RenderResult:
        """Render the citations and the bibliography of one node.

        Args:
            node_id: Node being rendered.
            cites: Cite strings found on the node, in document order.
            scope: Bibliography scope requested on the node; falls back to the
                index scope, then to the configured default.
            hidden: Per-cite hidden flags, parallel to `cites`.
            locale: Output locale; defaults to the configured locale.
        """
        requested = Scope.parse(scope)
        index = self.registry.get_index(node_id)
        if requested == Scope.UNDEFINED:
            requested = index.scope

        # only a node rendering the full bibliography is the bibliography node
        self.declare_citations(node_id, cites, is_bibliography=requested == Scope.CITED)
        index = self.registry.get_index(node_id)

        errors = ErrorList()
        if index.is_expired:
            index.recompute(errors)
        else:
            errors.extend(index.last_errors)
        local = LocalDeclaration.load(self.store, node_id)

        renderer = CitationRenderer(
            index.get_resolved_records(),
            index.style,
            locale or self.config.locale,
            bibliography_node=index.get_bibliography_node(),
            formatter_factory=self.formatter_factory,
            errors=errors,
        )

        flags = list(hidden or [])
        citations = []
        for i, cite in enumerate(cites):
            is_hidden = flags[i] if i < len(flags) else False
            citations.append(renderer.cite(cite, requested, hidden=is_hidden))

        bibliography = renderer.render_bibliography(requested, page_keys=local.keys)
        return RenderResult(
            node_id=node_id,
            scope=requested,
            citations=citations,
            bibliography=bibliography,
            errors=errors,
        )

    def find_nodes_citing(self, node_id: str, key: str) -> List[str]:
        """Nodes under `node_id`'s index that declare `key`."""
        return self.registry.get_index(node_id).find_nodes_citing(key)
