"""Citation visibility scopes."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Scope(str, Enum):
    """Where citations are listed.

    `cited` lists every key aggregated under the index, `page` only the keys
    declared on the rendering node, `hidden` registers citations without
    producing text.
    """
    CITED = "cited"
    HIDDEN = "hidden"
    PAGE = "page"
    UNDEFINED = ""

    @classmethod
    def parse(cls, value: Optional[str]) -> "Scope":
        wanted = (value or "").strip().lower()
        for scope in cls:
            if scope.value == wanted:
                return scope
        return cls.UNDEFINED
