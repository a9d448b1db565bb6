"""Index package.

Document tree access, per-node storage, local citation declarations and the
per-subtree aggregation index.
"""

from .tree import InMemoryTree, TreeProvider, ancestors, walk
from .storage import InMemoryNodeStore, JsonNodeStore, NodeStore, StoredObject
from .cite_keys import CiteKey, decode, decode_unique_keys
from .local import LOCAL_DECLARATION_KIND, LocalDeclaration
from .aggregation import INDEX_KIND, AggregationIndex, AggregationSnapshot, IndexRegistry

__all__ = [
    "InMemoryTree",
    "TreeProvider",
    "ancestors",
    "walk",

    "InMemoryNodeStore",
    "JsonNodeStore",
    "NodeStore",
    "StoredObject",

    "CiteKey",
    "decode",
    "decode_unique_keys",

    "LOCAL_DECLARATION_KIND",
    "LocalDeclaration",

    "INDEX_KIND",
    "AggregationIndex",
    "AggregationSnapshot",
    "IndexRegistry",
]
