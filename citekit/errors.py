"""Error taxonomy and per-operation error accumulation.

Recoverable problems (an unsupported entry type, a malformed date, a
citation key that does not resolve) are collected in an `ErrorList` that the
operation returns alongside its result, so batch imports and aggregations
report partial success. Only contract violations raise.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Tuple


class ErrorCode(str, Enum):
    """Stable identifiers for recoverable errors."""
    PARSE_BIBTEX = "citekit.error.parse-bibtex"
    UNSUPPORTED_ENTRY_TYPE = "citekit.error.unsupported-entry-type"
    INVALID_DATE = "citekit.error.invalid-date"
    EMPTY_ID = "citekit.error.empty-id"
    INVALID_ID_FORMAT = "citekit.error.invalid-id-format"
    ID_ALREADY_EXISTS = "citekit.error.id-already-exists"
    RECORD_NOT_FOUND = "citekit.error.record-not-found"
    MULTIPLE_BIBLIOGRAPHY_NODES = "citekit.error.multiple-bibliography-nodes"
    JSON_DECODING = "citekit.error.json-decoding"
    FORMATTER = "citekit.error.formatter"


class UnsupportedTypeError(ValueError):
    """Raised by the classifier when a source type token is not in the table."""

    def __init__(self, token: str):
        super().__init__(f"Unsupported entry type: {token}")
        self.token = token


class RecordValidationError(ValueError):
    """Raised when a record is rejected at the integrity boundary."""

    def __init__(self, code: ErrorCode, *params: Any):
        super().__init__(f"{code.value} {list(params)}")
        self.code = code
        self.params = params


@dataclass(frozen=True)
class BibError:
    """A single recoverable error."""
    code: ErrorCode
    params: Tuple[Any, ...] = ()

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "params": [p if isinstance(p, (str, int, float, bool)) or p is None else str(p) for p in self.params],
        }

    def __str__(self) -> str:
        return f"{self.code.value} {list(self.params)}"


@dataclass
class ErrorList:
    """Explicit error accumulator threaded through one operation."""
    errors: List[BibError] = field(default_factory=list)

    def add(self, code: ErrorCode, *params: Any) -> BibError:
        error = BibError(code=code, params=tuple(params))
        self.errors.append(error)
        return error

    def extend(self, other: "ErrorList") -> None:
        self.errors.extend(other.errors)

    def codes(self) -> List[ErrorCode]:
        return [e.code for e in self.errors]

    def by_code(self, code: ErrorCode) -> List[BibError]:
        return [e for e in self.errors if e.code == code]

    def clear(self) -> None:
        self.errors.clear()

    def __iter__(self) -> Iterator[BibError]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)

    def __bool__(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": len(self.errors),
            "errors": [e.to_dict() for e in self.errors],
        }
