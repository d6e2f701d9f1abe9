"""Schema Registry: typed, stateless shape checkers built on pydantic TypeAdapter.

Invariants:
    - parse() never raises on shape mismatch: it reports success/failure in a ParseResult
    - A successful parse returns the normalized value (model instance, coerced container)
    - Schemas are immutable once built; the same Schema is shared by every call
    - SchemaRegistry always holds exactly three schemas: input, response, error

Design Decisions:
    - TypeAdapter over BaseModel-only: any annotation pydantic understands is a schema
      (models, lists, unions, Annotated constraints)
    - Strict validation by default: "1" is not an int, a str is not an object
      (ADR: callers must not depend on lax coercion happening at the boundary)
"""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError, PydanticUserError

from safecall.core.errors import ContractConfigurationError

T = TypeVar("T")
InputT = TypeVar("InputT")
ResponseT = TypeVar("ResponseT")
ErrorT = TypeVar("ErrorT")


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Outcome of a single validation: success flag, normalized data, issues."""
    success: bool
    data: T | None = None
    issues: list[dict] = field(default_factory=list)

    @property
    def issue_locations(self) -> list[str]:
        return [".".join(str(p) for p in issue.get("loc", ())) for issue in self.issues]


class Schema(Generic[T]):
    """A named shape checker. Wraps a pydantic TypeAdapter for one annotation."""

    def __init__(
        self, shape: Any, *, strict: bool = True, name: str | None = None,
    ):
        try:
            self._adapter = (
                shape if isinstance(shape, TypeAdapter) else TypeAdapter(shape)
            )
        except (PydanticSchemaGenerationError, PydanticUserError, TypeError) as e:
            raise ContractConfigurationError(
                f"Cannot build a schema from {shape!r}: {e}", "schema",
            ) from e
        self.shape = shape
        self.strict = strict
        self.name = name or getattr(shape, "__name__", None) or repr(shape)

    def parse(self, value: Any) -> ParseResult[T]:
        """Validate value. Returns ParseResult, never raises ValidationError."""
        try:
            data = self._adapter.validate_python(value, strict=self.strict)
        except ValidationError as e:
            return ParseResult(
                success=False,
                issues=e.errors(include_url=False, include_input=False),
            )
        return ParseResult(success=True, data=data)

    def is_valid(self, value: Any) -> bool:
        return self.parse(value).success

    def json_schema(self) -> dict:
        """JSON Schema document, for reflection and API documentation."""
        return self._adapter.json_schema()

    def __repr__(self) -> str:
        return f"Schema({self.name}, strict={self.strict})"


def as_schema(shape: Any, *, strict: bool = True) -> Schema:
    """Coerce a model, annotation, TypeAdapter or Schema into a Schema."""
    if isinstance(shape, Schema):
        return shape
    return Schema(shape, strict=strict)


@dataclass(frozen=True)
class SchemaRegistry(Generic[InputT, ResponseT, ErrorT]):
    """The three schemas a contract is bound to."""
    input: Schema[InputT]
    response: Schema[ResponseT]
    error: Schema[ErrorT]

    @classmethod
    def build(
        cls, input_schema: Any, response_schema: Any, error_schema: Any,
        *, strict: bool = True,
    ) -> "SchemaRegistry":
        return cls(
            input=as_schema(input_schema, strict=strict),
            response=as_schema(response_schema, strict=strict),
            error=as_schema(error_schema, strict=strict),
        )

    def describe(self) -> dict:
        """JSON Schemas of all three shapes, keyed by role."""
        return {
            "input": self.input.json_schema(),
            "response": self.response.json_schema(),
            "error": self.error.json_schema(),
        }
