"""Execution Contract: wraps an async handler into a schema-checked call that never raises.

Invariants:
    - execute() always returns a CallResult with exactly one slot populated
    - The populated slot validates against its schema (response or error)
    - Input failing the input schema never reaches the handler
    - Every error value comes from the error factory or from the handler's own
      error, validated against the error schema
    - No Exception subclass escapes execute(); asyncio.CancelledError does
    - No state is shared between calls: schemas, handler and factory are read-only

Design Decisions:
    - Per-call failures are CallResult values, not exceptions: callers branch on
      result.ok (ADR: uniform result shape for HTTP and CLI shells)
    - Output contract violations raise ContractViolationError internally and are
      absorbed at the boundary with a message distinct from business errors
    - Optional deadline via asyncio.wait_for: timeout is its own error kind
    - build_contract validates its own parameters; construction is the only place
      the contract raises
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar, Union

from safecall.core.call_result import CallResult, coerce_outcome
from safecall.core.error_factory import (
    ErrorFactory, message_error_factory, verify_error_factory,
)
from safecall.core.errors import (
    ContractConfigurationError,
    ContractViolationError,
    ErrorContext,
    ErrorKind,
    ExecutionTimeoutError,
    INVALID_ERROR_MESSAGE,
    INVALID_INPUT_MESSAGE,
    INVALID_RESPONSE_MESSAGE,
    UNKNOWN_ERROR_MESSAGE,
)
from safecall.core.schema import SchemaRegistry, Schema

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT")
ResponseT = TypeVar("ResponseT")
ErrorT = TypeVar("ErrorT")


class CallState(str, Enum):
    """Per-call lifecycle. REJECTED and RESOLVED are the only terminal states."""
    PENDING = "pending"
    INPUT_VALIDATING = "input_validating"
    REJECTED = "rejected"
    HANDLER_RUNNING = "handler_running"
    OUTPUT_VALIDATING = "output_validating"
    FAULTED = "faulted"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class HandlerContext(Generic[InputT, ErrorT]):
    """What a handler receives: the validated input and the error constructor."""
    input: InputT
    error: ErrorFactory[ErrorT]


HandlerOutcome = Union[CallResult[ResponseT, ErrorT], Mapping[str, Any]]
Handler = Callable[[HandlerContext[InputT, ErrorT]], Awaitable[HandlerOutcome]]


@dataclass(frozen=True)
class _HandlerRaised:
    exc: Exception


class ExecutionContract(Generic[InputT, ResponseT, ErrorT]):
    """A handler bound to input/response/error schemas. Use build_contract()."""

    def __init__(
        self,
        schemas: SchemaRegistry[InputT, ResponseT, ErrorT],
        handler: Handler,
        error_factory: ErrorFactory[ErrorT],
        fallback_error: ErrorT,
        name: str,
        timeout_seconds: float | None = None,
    ):
        self._schemas = schemas
        self._handler = handler
        self._error_factory = error_factory
        self._fallback_error = fallback_error
        self.name = name
        self.timeout_seconds = timeout_seconds

    @property
    def input_schema(self) -> Schema[InputT]:
        return self._schemas.input

    @property
    def response_schema(self) -> Schema[ResponseT]:
        return self._schemas.response

    @property
    def error_schema(self) -> Schema[ErrorT]:
        return self._schemas.error

    def describe(self) -> dict:
        """Reflection: contract name, deadline and JSON Schemas."""
        return {
            "name": self.name,
            "timeout_seconds": self.timeout_seconds,
            "schemas": self._schemas.describe(),
        }

    async def execute(self, raw_input: Any) -> CallResult[ResponseT, ErrorT]:
        """Validate, run the handler, validate its outcome. Never raises Exception."""
        try:
            parsed = self._schemas.input.parse(raw_input)
        except Exception as e:
            # Validators may raise outside ValidationError (TypeError, KeyError)
            logger.error(
                f"Contract '{self.name}' input validator raised {type(e).__name__}: {e}",
                exc_info=True,
                extra=self._log_extra(CallState.REJECTED, ErrorKind.INVALID_INPUT),
            )
            return CallResult.failure(self._make_error(INVALID_INPUT_MESSAGE))
        if not parsed.success:
            logger.info(
                f"Contract '{self.name}' rejected input at: "
                f"{', '.join(parsed.issue_locations) or '<root>'}",
                extra=self._log_extra(CallState.REJECTED, ErrorKind.INVALID_INPUT),
            )
            return CallResult.failure(self._make_error(INVALID_INPUT_MESSAGE))

        try:
            outcome = await self._run_handler(parsed.data)
            result = self._validate_outcome(outcome)
        except ContractViolationError as e:
            logger.error(
                f"Contract '{self.name}' violated by handler: {e.message} {e.issues}",
                extra=self._log_extra(CallState.FAULTED, ErrorKind.CONTRACT_VIOLATION),
            )
            return CallResult.failure(self._make_error(e.message))
        except ExecutionTimeoutError as e:
            logger.warning(
                f"Contract '{self.name}': {e.message}",
                extra=self._log_extra(CallState.FAULTED, ErrorKind.TIMEOUT),
            )
            return CallResult.failure(self._make_error(e.message))
        except Exception as e:
            logger.error(
                f"Contract '{self.name}' handler raised {type(e).__name__}: {e}",
                exc_info=True,
                extra=self._log_extra(CallState.FAULTED, ErrorKind.UNHANDLED_EXCEPTION),
            )
            return CallResult.failure(self._make_error(str(e) or UNKNOWN_ERROR_MESSAGE))

        logger.debug(
            f"Contract '{self.name}' resolved (ok={result.ok})",
            extra=self._log_extra(
                CallState.RESOLVED, None if result.ok else ErrorKind.DECLARED,
            ),
        )
        return result

    async def _run_handler(self, validated_input: InputT) -> Any:
        if self.timeout_seconds is None:
            return await self._invoke(validated_input)
        try:
            settled = await asyncio.wait_for(
                self._settle(validated_input), timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ExecutionTimeoutError(
                self.timeout_seconds,
                self._error_context(CallState.HANDLER_RUNNING),
            ) from e
        if isinstance(settled, _HandlerRaised):
            raise settled.exc
        return settled

    async def _settle(self, validated_input: InputT) -> Any:
        """Handler exceptions come back as values so wait_for only times out on the deadline."""
        try:
            return await self._invoke(validated_input)
        except Exception as e:
            return _HandlerRaised(e)

    async def _invoke(self, validated_input: InputT) -> Any:
        outcome = self._handler(
            HandlerContext(input=validated_input, error=self._error_factory),
        )
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return outcome

    def _validate_outcome(self, outcome: Any) -> CallResult[ResponseT, ErrorT]:
        result = coerce_outcome(outcome)
        if result.error is not None:
            parsed = self._schemas.error.parse(result.error)
            if not parsed.success or parsed.data is None:
                raise ContractViolationError(
                    INVALID_ERROR_MESSAGE, parsed.issues,
                    self._error_context(CallState.OUTPUT_VALIDATING),
                )
            return CallResult.failure(parsed.data)

        parsed = self._schemas.response.parse(result.value)
        # A None success would leave both slots empty
        if not parsed.success or parsed.data is None:
            raise ContractViolationError(
                INVALID_RESPONSE_MESSAGE, parsed.issues,
                self._error_context(CallState.OUTPUT_VALIDATING),
            )
        return CallResult.success(parsed.data)

    def _make_error(self, message: str) -> ErrorT:
        """Build an error via the factory; fall back to the probed error if it misbehaves."""
        try:
            candidate = self._error_factory(message)
            parsed = self._schemas.error.parse(candidate)
        except Exception as e:
            logger.error(
                f"Contract '{self.name}' error factory raised: {e}",
                extra=self._log_extra(CallState.FAULTED, None),
            )
            return self._fallback_error
        if not parsed.success or parsed.data is None:
            logger.error(
                f"Contract '{self.name}' error factory produced a non-conforming error",
                extra=self._log_extra(CallState.FAULTED, None),
            )
            return self._fallback_error
        return parsed.data

    def _error_context(self, state: CallState) -> ErrorContext:
        return ErrorContext(contract=self.name, call_state=state.value)

    def _log_extra(self, state: CallState, kind: ErrorKind | None) -> dict:
        return {
            "contract": self.name,
            "call_state": state.value,
            "error_kind": kind.value if kind else None,
        }

    def __repr__(self) -> str:
        return f"ExecutionContract({self.name!r})"


def build_contract(
    input_schema: Any,
    response_schema: Any,
    error_schema: Any,
    handler: Handler,
    *,
    error_factory: ErrorFactory | None = None,
    name: str | None = None,
    timeout_seconds: float | None = None,
    strict: bool = True,
) -> ExecutionContract:
    """Bind a handler to its three schemas. Raises ContractConfigurationError on bad parameters.

    The raised error carries the contract name in its ErrorContext.
    """
    contract_name = name or getattr(handler, "__name__", "contract")
    try:
        schemas = SchemaRegistry.build(
            input_schema, response_schema, error_schema, strict=strict,
        )
        if not callable(handler):
            raise ContractConfigurationError(
                f"handler must be callable, got {type(handler).__name__}", "handler",
            )
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ContractConfigurationError(
                f"timeout_seconds must be positive, got {timeout_seconds}",
                "timeout_seconds",
            )
        factory = error_factory or message_error_factory(schemas.error)
        fallback_error = verify_error_factory(factory, schemas.error)
    except ContractConfigurationError as e:
        e.context.contract = contract_name
        e.context.debug_info = {"parameter": e.parameter}
        raise
    return ExecutionContract(
        schemas=schemas,
        handler=handler,
        error_factory=factory,
        fallback_error=fallback_error,
        name=contract_name,
        timeout_seconds=timeout_seconds,
    )
