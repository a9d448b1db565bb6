"""Per-node object storage.

Each node can carry typed objects (an index, a local declaration) identified
by a kind string. Mutations stay in memory until `save(node_id)` is called
for the node; no transactions are assumed.
"""

from __future__ import annotations

import copy
import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import quote

from loguru import logger


@dataclass
class StoredObject:
    """A typed key/value object attached to a node."""
    kind: str
    values: Dict[str, Any] = field(default_factory=dict)

    def get_string(self, name: str, default: str = "") -> str:
        value = self.values.get(name)
        return value if isinstance(value, str) else default

    def set_string(self, name: str, value: Optional[str]) -> None:
        self.values[name] = value or ""

    # Large strings share the representation; the distinction is storage width only.
    get_large_string = get_string
    set_large_string = set_string

    def get_int(self, name: str, default: int = 0) -> int:
        value = self.values.get(name)
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def set_int(self, name: str, value: int) -> None:
        self.values[name] = int(value)

    def get_string_list(self, name: str) -> List[str]:
        value = self.values.get(name)
        if not isinstance(value, list):
            return []
        return [v for v in value if isinstance(v, str)]

    def set_string_list(self, name: str, values: List[str]) -> None:
        self.values[name] = [str(v) for v in values]

    def to_dict(self) -> dict:
        return {"kind": self.kind, "values": copy.deepcopy(self.values)}

    @classmethod
    def from_dict(cls, data: dict) -> "StoredObject":
        values = data.get("values")
        return cls(kind=str(data.get("kind", "")), values=dict(values) if isinstance(values, dict) else {})


class NodeStore(Protocol):
    def get_object(self, node_id: str, kind: str) -> Optional[StoredObject]:
        ...

    def new_object(self, node_id: str, kind: str) -> StoredObject:
        ...

    def remove_object(self, node_id: str, kind: str) -> bool:
        ...

    def save(self, node_id: str) -> None:
        ...


class _WorkingSetStore:
    """Shared working-set logic: objects are loaded per node and written back on save."""

    def __init__(self):
        self._working: Dict[str, Dict[str, StoredObject]] = {}
        self._lock = threading.RLock()
        self.save_count = 0

    def _load(self, node_id: str) -> Dict[str, StoredObject]:
        raise NotImplementedError

    def _persist(self, node_id: str, objects: Dict[str, StoredObject]) -> None:
        raise NotImplementedError

    def _objects(self, node_id: str) -> Dict[str, StoredObject]:
        with self._lock:
            objects = self._working.get(node_id)
            if objects is None:
                objects = self._load(node_id)
                self._working[node_id] = objects
            return objects

    def get_object(self, node_id: str, kind: str) -> Optional[StoredObject]:
        return self._objects(node_id).get(kind)

    def new_object(self, node_id: str, kind: str) -> StoredObject:
        with self._lock:
            obj = StoredObject(kind=kind)
            self._objects(node_id)[kind] = obj
            return obj

    def remove_object(self, node_id: str, kind: str) -> bool:
        with self._lock:
            return self._objects(node_id).pop(kind, None) is not None

    def save(self, node_id: str) -> None:
        with self._lock:
            self._persist(node_id, self._objects(node_id))
            self.save_count += 1
        logger.debug(f"Saved node {node_id!r}")

    def discard(self, node_id: str) -> None:
        """Drop unsaved changes for a node."""
        with self._lock:
            self._working.pop(node_id, None)


class InMemoryNodeStore(_WorkingSetStore):
    """Store whose persisted state is a dict snapshot."""

    def __init__(self):
        super().__init__()
        self._persisted: Dict[str, Dict[str, dict]] = {}

    def _load(self, node_id: str) -> Dict[str, StoredObject]:
        snapshot = self._persisted.get(node_id, {})
        return {kind: StoredObject.from_dict(data) for kind, data in snapshot.items()}

    def _persist(self, node_id: str, objects: Dict[str, StoredObject]) -> None:
        if objects:
            self._persisted[node_id] = {kind: obj.to_dict() for kind, obj in objects.items()}
        else:
            self._persisted.pop(node_id, None)

    def persisted(self, node_id: str) -> Dict[str, dict]:
        return copy.deepcopy(self._persisted.get(node_id, {}))


class JsonNodeStore(_WorkingSetStore):
    """Filesystem-first store: one JSON file per node under `root`."""

    def __init__(self, root: Path):
        super().__init__()
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, node_id: str) -> Path:
        return self.root / f"{quote(node_id, safe='')}.json"

    def _load(self, node_id: str) -> Dict[str, StoredObject]:
        path = self._path(node_id)
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read node objects for {node_id!r}: {type(e).__name__}")
            return {}
        if not isinstance(payload, dict):
            return {}
        raw_objects = payload.get("objects")
        if not isinstance(raw_objects, dict):
            return {}
        return {
            kind: StoredObject.from_dict(data)
            for kind, data in raw_objects.items()
            if isinstance(data, dict)
        }

    def _persist(self, node_id: str, objects: Dict[str, StoredObject]) -> None:
        path = self._path(node_id)
        if not objects:
            if path.exists():
                path.unlink()
            return
        payload = {
            "node": node_id,
            "objects": {kind: obj.to_dict() for kind, obj in objects.items()},
        }
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(path)
