"""
Citation Key Aggregation
========================
Per-subtree cache of the citation keys declared under an index root node.

An `AggregationIndex` is either fresh or expired. `invalidate()` only ever
sets the expired flag and takes no lock, so it may be called from any thread
and repeated calls collapse. `recompute()` walks the subtree depth-first in
the tree provider's order, collects declared keys in first-seen order,
locates the bibliography node, and resolves each key through the index's own
record scope and then its extra scopes. Recomputation is serialized per
index instance. Reads take no lock only when the index is fresh and no
recompute is running; otherwise they wait for the snapshot being built.

`IndexRegistry` hands out one `AggregationIndex` per root node so that the
per-instance lock covers every caller working on the same subtree.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from loguru import logger

from citekit.config import BIBLIOGRAPHY, BibliographyConfig
from citekit.errors import ErrorCode, ErrorList
from citekit.index.local import LocalDeclaration, deserialize_keys, serialize_keys
from citekit.index.storage import NodeStore, StoredObject
from citekit.index.tree import TreeProvider, ancestors, walk
from citekit.records.repository import RecordResolver, ResolvedRecord
from citekit.records.schema import NormalizedRecord
from citekit.render.scope import Scope
from citekit.tracing import get_tracer, safe_set_current_span_attributes


INDEX_KIND = "citekit.index"
FIELD_KEYS = "keys"
FIELD_RECORDS = "records"
FIELD_BIBLIOGRAPHY = "bibliography"
FIELD_EXPIRED = "expired"
FIELD_STYLE = "style"
FIELD_SCOPE = "scope"
FIELD_EXTRA_SCOPES = "extra_scopes"


@dataclass(frozen=True)
class AggregationSnapshot:
    """Immutable result of one recompute, published atomically."""
    keys: Tuple[str, ...] = ()
    records: Tuple[ResolvedRecord, ...] = ()
    bibliography_node: Optional[str] = None


def _serialize_records(records: Tuple[ResolvedRecord, ...]) -> str:
    return json.dumps(
        [{"record": r.record.to_dict(), "target": r.target} for r in records],
        ensure_ascii=False,
    )


def _deserialize_records(text: str, errors: ErrorList) -> Optional[Tuple[ResolvedRecord, ...]]:
    if not text:
        return ()
    try:
        payload = json.loads(text)
        return tuple(
            ResolvedRecord(record=NormalizedRecord.from_dict(item["record"]), target=item.get("target"))
            for item in payload
        )
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Could not decode stored records: {type(e).__name__}: {e}")
        errors.add(ErrorCode.JSON_DECODING, str(e))
        return None


class AggregationIndex:
    """Ordered citation keys and resolved records for one subtree."""

    def __init__(
        self,
        root_id: str,
        tree: TreeProvider,
        store: NodeStore,
        resolver: RecordResolver,
        *,
        own_scope: Optional[str] = None,
        config: Optional[BibliographyConfig] = None,
    ):
        if tree is None or store is None or resolver is None:
            raise TypeError("tree, store and resolver are required")

        self.root_id = root_id
        self.own_scope = own_scope or root_id
        self._tree = tree
        self._store = store
        self._resolver = resolver
        self._config = config or BIBLIOGRAPHY
        self._lock = threading.Lock()
        self._last_errors = ErrorList()

        obj = store.get_object(root_id, INDEX_KIND)
        if obj is None:
            obj = store.new_object(root_id, INDEX_KIND)
            obj.set_int(FIELD_EXPIRED, 1)
            store.save(root_id)
            logger.debug(f"Created aggregation index on {root_id!r}")
        self._obj: StoredObject = obj

        self._snapshot = AggregationSnapshot()
        self._expired = True
        self._recomputing = False
        self._load_persisted()

    def _load_persisted(self) -> None:
        errors = ErrorList()
        records = _deserialize_records(self._obj.get_large_string(FIELD_RECORDS), errors)
        if records is None:
            self._last_errors = errors
            return
        self._snapshot = AggregationSnapshot(
            keys=tuple(deserialize_keys(self._obj.get_large_string(FIELD_KEYS))),
            records=records,
            bibliography_node=self._obj.get_string(FIELD_BIBLIOGRAPHY) or None,
        )
        self._expired = self._obj.get_int(FIELD_EXPIRED, 1) == 1

    # -- overrides -------------------------------------------------------

    @property
    def style(self) -> str:
        return self._obj.get_string(FIELD_STYLE).strip() or self._config.style

    @property
    def scope(self) -> Scope:
        scope = Scope.parse(self._obj.get_string(FIELD_SCOPE))
        if scope == Scope.UNDEFINED:
            scope = Scope.parse(self._config.scope)
        return scope if scope != Scope.UNDEFINED else Scope.CITED

    @property
    def extra_scopes(self) -> List[str]:
        """Index-level extra scopes first, then configured defaults."""
        out: List[str] = []
        for scope in self._obj.get_string_list(FIELD_EXTRA_SCOPES) + list(self._config.extra_scopes):
            if scope and scope != self.own_scope and scope not in out:
                out.append(scope)
        return out

    def configure(
        self,
        *,
        style: Optional[str] = None,
        scope: Optional[str] = None,
        extra_scopes: Optional[List[str]] = None,
    ) -> None:
        """Store index-level overrides; blank values fall back to defaults."""
        if style is not None:
            self._obj.set_string(FIELD_STYLE, style.strip())
        if scope is not None:
            self._obj.set_string(FIELD_SCOPE, scope.strip().lower())
        if extra_scopes is not None:
            self._obj.set_string_list(FIELD_EXTRA_SCOPES, [s.strip() for s in extra_scopes if s and s.strip()])
            # resolution depends on the scope list
            self._expired = True
            self._obj.set_int(FIELD_EXPIRED, 1)
        self._store.save(self.root_id)

    # -- state -----------------------------------------------------------

    @property
    def is_expired(self) -> bool:
        """True until the snapshot of the running or next recompute is published."""
        return self._expired or self._recomputing

    @property
    def last_errors(self) -> ErrorList:
        return self._last_errors

    def invalidate(self) -> None:
        """Mark the index expired. Idempotent and lock-free."""
        self._expired = True
        self._obj.set_int(FIELD_EXPIRED, 1)
        self._store.save(self.root_id)

    def recompute(self, errors: Optional[ErrorList] = None) -> ErrorList:
        """Rebuild keys and records when expired; a no-op on fresh state."""
        if errors is None:
            errors = ErrorList()
        if not self.is_expired:
            return errors

        with self._lock:
            if not self._expired:
                return errors
            # raised before the flag is cleared so readers never see both down mid-walk
            self._recomputing = True
            # cleared first so an invalidation arriving during the walk is kept
            self._expired = False
            try:
                with get_tracer(__name__).start_as_current_span("aggregation.recompute"):
                    snapshot = self._collect(errors)
                    self._snapshot = snapshot
                    self._persist(snapshot)
                    safe_set_current_span_attributes(
                        {
                            "aggregation.root": self.root_id,
                            "aggregation.keys": len(snapshot.keys),
                            "aggregation.records": len(snapshot.records),
                            "aggregation.errors": len(errors),
                        }
                    )
            except Exception:
                self._expired = True
                raise
            finally:
                self._recomputing = False

        self._last_errors = errors
        logger.info(
            f"Recomputed index {self.root_id!r}: {len(self._snapshot.keys)} key(s), "
            f"{len(self._snapshot.records)} record(s)"
        )
        return errors

    def _collect(self, errors: ErrorList) -> AggregationSnapshot:
        keys: List[str] = []
        seen = set()
        bibliography_node: Optional[str] = None

        for node_id in walk(self._tree, self.root_id):
            local = LocalDeclaration.load(self._store, node_id)
            for key in local.keys:
                if key not in seen:
                    seen.add(key)
                    keys.append(key)
            if local.is_bibliography:
                if bibliography_node is None:
                    bibliography_node = node_id
                else:
                    logger.warning(
                        f"Multiple bibliography nodes under {self.root_id!r}: "
                        f"keeping {bibliography_node!r}, ignoring {node_id!r}"
                    )
                    errors.add(ErrorCode.MULTIPLE_BIBLIOGRAPHY_NODES, bibliography_node, node_id)

        scopes = [self.own_scope] + self.extra_scopes
        records: List[ResolvedRecord] = []
        for key in keys:
            resolved = self._resolve(key, scopes)
            if resolved is None:
                logger.warning(f"Citation key {key!r} not found in scopes {scopes}")
                errors.add(ErrorCode.RECORD_NOT_FOUND, key)
                continue
            records.append(resolved)

        return AggregationSnapshot(keys=tuple(keys), records=tuple(records), bibliography_node=bibliography_node)

    def _resolve(self, key: str, scopes: List[str]) -> Optional[ResolvedRecord]:
        for scope in scopes:
            resolved = self._resolver.resolve(scope, key)
            if resolved is not None:
                return resolved
        return None

    def _persist(self, snapshot: AggregationSnapshot) -> None:
        self._obj.set_large_string(FIELD_KEYS, serialize_keys(snapshot.keys))
        self._obj.set_large_string(FIELD_RECORDS, _serialize_records(snapshot.records))
        self._obj.set_string(FIELD_BIBLIOGRAPHY, snapshot.bibliography_node or "")
        self._obj.set_int(FIELD_EXPIRED, 1 if self._expired else 0)
        self._store.save(self.root_id)

    def _fresh(self) -> AggregationSnapshot:
        if self.is_expired:
            self.recompute()
        return self._snapshot

    # -- reads -----------------------------------------------------------

    def get_ordered_keys(self) -> List[str]:
        return list(self._fresh().keys)

    def get_resolved_records(self) -> List[ResolvedRecord]:
        return list(self._fresh().records)

    def get_bibliography_node(self) -> Optional[str]:
        return self._fresh().bibliography_node

    def find_nodes_citing(self, key: str) -> List[str]:
        """Nodes of this subtree whose own declaration lists `key`, in walk order."""
        return [
            node_id
            for node_id in walk(self._tree, self.root_id)
            if key in LocalDeclaration.load(self._store, node_id).keys
        ]

    def __repr__(self) -> str:
        return f"AggregationIndex(root_id={self.root_id!r}, expired={self.is_expired!r})"


class IndexRegistry:
    """One `AggregationIndex` instance per root node."""

    def __init__(
        self,
        tree: TreeProvider,
        store: NodeStore,
        resolver: RecordResolver,
        config: Optional[BibliographyConfig] = None,
    ):
        if tree is None or store is None or resolver is None:
            raise TypeError("tree, store and resolver are required")
        self._tree = tree
        self._store = store
        self._resolver = resolver
        self._config = config or BIBLIOGRAPHY
        self._indexes: Dict[str, AggregationIndex] = {}
        self._lock = threading.Lock()

    def index_root(self, node_id: str) -> str:
        """Nearest ancestor-or-self carrying an index, else the top-most ancestor."""
        chain = [node_id] + ancestors(self._tree, node_id)
        for candidate in chain:
            if self.has_index(candidate):
                return candidate
        return chain[-1]

    def has_index(self, node_id: str) -> bool:
        with self._lock:
            if node_id in self._indexes:
                return True
        return self._store.get_object(node_id, INDEX_KIND) is not None

    def create_index(self, node_id: str) -> AggregationIndex:
        """Make `node_id` an index root, expiring the index that covered it before."""
        previous = self.index_root(node_id)
        index = self._get_or_create(node_id)
        if previous != node_id and self.has_index(previous):
            self._get_or_create(previous).invalidate()
        return index

    def get_index(self, node_id: str) -> AggregationIndex:
        return self._get_or_create(self.index_root(node_id))

    def _get_or_create(self, root_id: str) -> AggregationIndex:
        with self._lock:
            index = self._indexes.get(root_id)
            if index is None:
                index = AggregationIndex(root_id, self._tree, self._store, self._resolver, config=self._config)
                self._indexes[root_id] = index
            return index

    def invalidate_for(self, node_id: str) -> AggregationIndex:
        index = self.get_index(node_id)
        index.invalidate()
        return index

    def invalidate_all(self) -> None:
        """Expire every known index, e.g. after records were added or removed."""
        with self._lock:
            indexes = list(self._indexes.values())
        for index in indexes:
            index.invalidate()

    def drop(self, root_id: str) -> None:
        """Forget the index owned by a removed node."""
        with self._lock:
            self._indexes.pop(root_id, None)
