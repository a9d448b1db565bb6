"""Per-node citation declarations.

A node declares the citation keys it uses and whether it is the node that
renders the bibliography. Declarations are dirty-tracked: saving an
unchanged declaration does nothing, and a declaration with no keys and no
bibliography flag is removed from the node instead of being stored empty.
"""

from __future__ import annotations

import json
from typing import Callable, Iterable, List, Optional

from loguru import logger

from citekit.index.storage import NodeStore


LOCAL_DECLARATION_KIND = "citekit.local"
FIELD_KEYS = "keys"
FIELD_IS_BIBLIOGRAPHY = "is_bibliography"


def serialize_keys(keys: Iterable[str]) -> str:
    return json.dumps(list(keys))


def deserialize_keys(text: str) -> List[str]:
    if not text:
        return []
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Could not decode stored citation keys: {e}")
        return []
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if isinstance(v, str) and v]


class LocalDeclaration:
    """Citation keys and bibliography flag of a single node."""

    def __init__(self, node_id: str, keys: Optional[List[str]] = None, is_bibliography: bool = False):
        self.node_id = node_id
        self._keys: List[str] = list(keys or [])
        self._is_bibliography = bool(is_bibliography)
        self._dirty = False

    @classmethod
    def load(cls, store: NodeStore, node_id: str) -> "LocalDeclaration":
        if store is None:
            raise TypeError("store must not be None")
        obj = store.get_object(node_id, LOCAL_DECLARATION_KIND)
        if obj is None:
            return cls(node_id)
        return cls(
            node_id,
            keys=deserialize_keys(obj.get_large_string(FIELD_KEYS)),
            is_bibliography=obj.get_int(FIELD_IS_BIBLIOGRAPHY) == 1,
        )

    @property
    def keys(self) -> List[str]:
        return list(self._keys)

    @property
    def is_bibliography(self) -> bool:
        return self._is_bibliography

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def is_empty(self) -> bool:
        return not self._keys and not self._is_bibliography

    def set_keys(self, keys: Iterable[str]) -> None:
        new_keys = [k for k in keys if k]
        if new_keys != self._keys:
            self._dirty = True
        self._keys = new_keys

    def add_keys(self, keys: Iterable[str]) -> None:
        """Append keys not already declared, preserving order."""
        merged = list(self._keys)
        for key in keys:
            if key and key not in merged:
                merged.append(key)
        self.set_keys(merged)

    def set_bibliography(self, is_bibliography: bool) -> None:
        if self._is_bibliography != bool(is_bibliography):
            self._dirty = True
        self._is_bibliography = bool(is_bibliography)

    def save(self, store: NodeStore, on_saved: Optional[Callable[[str], None]] = None) -> bool:
        """Persist when changed; returns whether anything was written.

        `on_saved` receives the node id after a write, typically to expire the
        enclosing aggregation index.
        """
        if store is None:
            raise TypeError("store must not be None")
        if not self._dirty:
            return False

        if self.is_empty:
            store.remove_object(self.node_id, LOCAL_DECLARATION_KIND)
            logger.debug(f"Removed empty declaration on {self.node_id!r}")
        else:
            obj = store.get_object(self.node_id, LOCAL_DECLARATION_KIND)
            if obj is None:
                obj = store.new_object(self.node_id, LOCAL_DECLARATION_KIND)
            obj.set_int(FIELD_IS_BIBLIOGRAPHY, 1 if self._is_bibliography else 0)
            obj.set_large_string(FIELD_KEYS, serialize_keys(self._keys))
        store.save(self.node_id)
        self._dirty = False

        if on_saved is not None:
            on_saved(self.node_id)
        return True

    def __repr__(self) -> str:
        return (
            f"LocalDeclaration(node_id={self.node_id!r}, keys={self._keys!r}, "
            f"is_bibliography={self._is_bibliography!r})"
        )
