"""Error Constructor: maps a human-readable message to a schema-conformant error value.

Invariants:
    - A factory accepted by verify_error_factory produced a value that validates
      against the error schema
    - message_error_factory only fits error schemas satisfiable by {"message": str}

Design Decisions:
    - Factory is an injected capability (ErrorFactory), the {"message"} coercion is
      only the default for the conventional error shape
    - Default factory validates through the error schema instead of casting, so the
      returned value is the schema's own type (model instance, not a bare dict)
"""

from collections.abc import Callable
from typing import Any, TypeVar

from safecall.core.errors import ContractConfigurationError, UNKNOWN_ERROR_MESSAGE
from safecall.core.schema import Schema

ErrorT = TypeVar("ErrorT")

ErrorFactory = Callable[[str], ErrorT]


class MessageCoercionError(ValueError):
    """The error schema rejected {"message": ...}."""


def message_error_factory(error_schema: Schema[ErrorT]) -> ErrorFactory[ErrorT]:
    """Default factory: {"message": message} validated through error_schema."""

    def make_error(message: str) -> ErrorT:
        parsed = error_schema.parse({"message": message})
        if not parsed.success:
            raise MessageCoercionError(
                f"Error schema {error_schema.name} rejects a bare message "
                f"(issues at: {', '.join(parsed.issue_locations) or '<root>'})"
            )
        return parsed.data

    return make_error


def verify_error_factory(
    factory: Any, error_schema: Schema[ErrorT],
) -> ErrorT:
    """Probe factory once. Returns the probe error, which doubles as the fallback value.

    Raises ContractConfigurationError if the factory is not callable, raises,
    or returns a value outside the error schema.
    """
    if not callable(factory):
        raise ContractConfigurationError(
            f"error_factory must be callable, got {type(factory).__name__}",
            "error_factory",
        )
    try:
        probe = factory(UNKNOWN_ERROR_MESSAGE)
    except Exception as e:
        raise ContractConfigurationError(
            f"error_factory failed on probe message: {e}", "error_factory",
        ) from e
    parsed = error_schema.parse(probe)
    if not parsed.success:
        raise ContractConfigurationError(
            f"error_factory output does not satisfy error schema {error_schema.name}",
            "error_factory",
        )
    return parsed.data
