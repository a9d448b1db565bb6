"""Scoped record storage and lookup.

A scope is a named collection of records, typically one per document
collection root (the index's own scope) plus any extra sources configured on
an index. Each stored record remembers the node that owns it so rendered
bibliographies can link to it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from loguru import logger

from citekit.errors import ErrorList, RecordValidationError
from citekit.records.schema import NormalizedRecord
from citekit.records.validation import enforce_valid_record


@dataclass(frozen=True)
class ResolvedRecord:
    record: NormalizedRecord
    target: Optional[str] = None


class RecordResolver(Protocol):
    def resolve(self, scope: str, key: str) -> Optional[ResolvedRecord]:
        ...


class RecordRepository:
    """In-memory `RecordResolver` with integrity checks on insert."""

    def __init__(self):
        self._scopes: Dict[str, Dict[str, ResolvedRecord]] = {}
        self._lock = threading.Lock()

    def _owner_of(self, scope: str, key: str) -> Optional[str]:
        stored = self._scopes.get(scope, {}).get(key)
        if stored is None:
            return None
        return stored.target or ""

    def add(self, scope: str, record: NormalizedRecord, target: Optional[str] = None) -> ResolvedRecord:
        """Store `record` in `scope`, raising `RecordValidationError` when rejected."""
        with self._lock:
            enforce_valid_record(
                record,
                owner=target or "",
                find_owner=lambda key: self._owner_of(scope, key),
            )
            stored = ResolvedRecord(record=record, target=target)
            self._scopes.setdefault(scope, {})[record.id] = stored
        logger.debug(f"Stored record {record.id!r} in scope {scope!r}")
        return stored

    def add_all(
        self,
        scope: str,
        records: Iterable[NormalizedRecord],
        target: Optional[str] = None,
        errors: Optional[ErrorList] = None,
    ) -> List[NormalizedRecord]:
        """Store every valid record; rejections are recorded in `errors`."""
        if records is None:
            raise TypeError("records must not be None")
        if errors is None:
            errors = ErrorList()

        stored: List[NormalizedRecord] = []
        for record in records:
            try:
                self.add(scope, record, target)
            except RecordValidationError as e:
                errors.add(e.code, *e.params)
                continue
            stored.append(record)
        return stored

    def remove(self, scope: str, key: str) -> bool:
        with self._lock:
            return self._scopes.get(scope, {}).pop(key, None) is not None

    def resolve(self, scope: str, key: str) -> Optional[ResolvedRecord]:
        return self._scopes.get(scope, {}).get(key)

    def find(self, key: str, scopes: Sequence[str]) -> Optional[ResolvedRecord]:
        """First match for `key` across `scopes`, in order."""
        for scope in scopes:
            found = self.resolve(scope, key)
            if found is not None:
                return found
        return None

    def records(self, scope: str) -> List[ResolvedRecord]:
        return list(self._scopes.get(scope, {}).values())

    def scopes(self) -> List[str]:
        return list(self._scopes)
