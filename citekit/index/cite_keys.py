"""Citation key strings such as `key1,key2[p. 10]`."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class CiteKey:
    key: str
    locator: str = ""

    @classmethod
    def parse(cls, text: str) -> "CiteKey":
        """Parse one `key[locator]` element; the locator is optional."""
        value = text.strip()
        pos = value.find("[")
        if pos == -1:
            return cls(key=value)
        locator = value[pos + 1:]
        if locator.endswith("]"):
            locator = locator[:-1]
        return cls(key=value[:pos].strip(), locator=locator.strip())


def decode(keys: Optional[str]) -> List[CiteKey]:
    """Split a comma-separated cite string, dropping empty keys."""
    if not keys:
        return []
    results = []
    for element in keys.split(","):
        cite_key = CiteKey.parse(element)
        if cite_key.key:
            results.append(cite_key)
    return results


def decode_unique_keys(keys: Optional[str]) -> List[str]:
    """Keys of `keys` in first-seen order without duplicates."""
    seen = set()
    results = []
    for cite_key in decode(keys):
        if cite_key.key not in seen:
            seen.add(cite_key.key)
            results.append(cite_key.key)
    return results
