"""Document tree access.

The aggregator only needs ordered children and a parent lookup. `InMemoryTree`
keeps nodes keyed by id with explicit ordered child lists; structural edits
touch only the lists of the nodes involved.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Protocol, Set


class TreeProvider(Protocol):
    def get_children(self, node_id: str) -> List[str]:
        ...

    def get_parent(self, node_id: str) -> Optional[str]:
        ...


class InMemoryTree:
    """Arena-style tree: node ids map to a parent id and ordered child ids."""

    def __init__(self):
        self._parent: Dict[str, Optional[str]] = {}
        self._children: Dict[str, List[str]] = {}

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._parent

    def __len__(self) -> int:
        return len(self._parent)

    def add_node(self, node_id: str, parent: Optional[str] = None, position: Optional[int] = None) -> None:
        if not node_id:
            raise ValueError("node_id must be non-empty")
        if node_id in self._parent:
            raise ValueError(f"Node already exists: {node_id}")
        if parent is not None and parent not in self._parent:
            raise KeyError(f"Unknown parent node: {parent}")

        self._parent[node_id] = parent
        self._children[node_id] = []
        if parent is not None:
            siblings = self._children[parent]
            if position is None:
                siblings.append(node_id)
            else:
                siblings.insert(position, node_id)

    def move_node(self, node_id: str, new_parent: Optional[str], position: Optional[int] = None) -> None:
        if node_id not in self._parent:
            raise KeyError(f"Unknown node: {node_id}")
        if new_parent is not None:
            if new_parent not in self._parent:
                raise KeyError(f"Unknown parent node: {new_parent}")
            if new_parent == node_id or node_id in self.ancestors(new_parent):
                raise ValueError("Cannot move a node below itself")

        old_parent = self._parent[node_id]
        if old_parent is not None:
            self._children[old_parent].remove(node_id)
        self._parent[node_id] = new_parent
        if new_parent is not None:
            siblings = self._children[new_parent]
            if position is None:
                siblings.append(node_id)
            else:
                siblings.insert(position, node_id)

    def remove_node(self, node_id: str) -> List[str]:
        """Remove a node and its subtree; returns removed ids in walk order."""
        if node_id not in self._parent:
            raise KeyError(f"Unknown node: {node_id}")
        removed = list(walk(self, node_id))
        parent = self._parent[node_id]
        if parent is not None:
            self._children[parent].remove(node_id)
        for nid in removed:
            self._parent.pop(nid, None)
            self._children.pop(nid, None)
        return removed

    def get_children(self, node_id: str) -> List[str]:
        return list(self._children.get(node_id, ()))

    def get_parent(self, node_id: str) -> Optional[str]:
        return self._parent.get(node_id)

    def roots(self) -> List[str]:
        return [nid for nid, parent in self._parent.items() if parent is None]

    def ancestors(self, node_id: str) -> List[str]:
        return ancestors(self, node_id)


def ancestors(tree: TreeProvider, node_id: str) -> List[str]:
    """Parent first, top-most ancestor last."""
    out: List[str] = []
    seen: Set[str] = {node_id}
    current = tree.get_parent(node_id)
    while current is not None and current not in seen:
        out.append(current)
        seen.add(current)
        current = tree.get_parent(current)
    return out


def walk(tree: TreeProvider, root: str) -> Iterator[str]:
    """Depth-first pre-order walk honoring the provider's child order."""
    stack = [root]
    visited: Set[str] = set()
    while stack:
        node_id = stack.pop()
        if node_id in visited:
            continue
        visited.add(node_id)
        yield node_id
        stack.extend(reversed(tree.get_children(node_id)))
