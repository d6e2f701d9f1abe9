"""Call Result: the two-slot envelope returned by every contract call.

Invariants:
    - A CallResult produced by ExecutionContract.execute has exactly one slot populated
    - error is authoritative: error is not None means failure, whatever value holds
    - coerce_outcome accepts a CallResult or a mapping with exactly {"value", "error"}

Design Decisions:
    - Frozen dataclass over BaseModel: slots hold already-validated data of any
      shape, re-validating them here would duplicate the schema step
    - to_dict() emits JSON-ready data so HTTP and CLI shells never touch pydantic
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic_core import to_jsonable_python

from safecall.core.errors import ContractViolationError, INVALID_ENVELOPE_MESSAGE

ResponseT = TypeVar("ResponseT")
ErrorT = TypeVar("ErrorT")

_ENVELOPE_KEYS = frozenset({"value", "error"})


@dataclass(frozen=True)
class CallResult(Generic[ResponseT, ErrorT]):
    """Uniform outcome of a call: value on success, error on failure."""
    value: ResponseT | None = None
    error: ErrorT | None = None

    @classmethod
    def success(cls, value: ResponseT) -> "CallResult[ResponseT, ErrorT]":
        return cls(value=value, error=None)

    @classmethod
    def failure(cls, error: ErrorT) -> "CallResult[ResponseT, ErrorT]":
        return cls(value=None, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        """JSON-compatible {"value": ..., "error": ...}."""
        return {
            "value": to_jsonable_python(self.value),
            "error": to_jsonable_python(self.error),
        }


def coerce_outcome(outcome: Any) -> CallResult:
    """Normalize a handler's return into a CallResult or raise ContractViolationError."""
    if isinstance(outcome, CallResult):
        return outcome
    if isinstance(outcome, Mapping) and set(outcome.keys()) == _ENVELOPE_KEYS:
        return CallResult(value=outcome["value"], error=outcome["error"])
    raise ContractViolationError(
        INVALID_ENVELOPE_MESSAGE,
        issues=[{"type": "envelope", "received": type(outcome).__name__}],
    )
