"""Execution Contract: verifies totality, exclusivity and schema conformance of execute().

Tests:
    - Literal scenarios: valid id, declared "Invalid ID", malformed input, throwing
      handler, malformed success value
    - Input failures never reach the handler (call-counting stub)
    - Invalid response / invalid error / invalid envelope / exception / timeout
      each resolve with a distinct message
    - Every resolved result has exactly one slot, and that slot passes its schema
    - Construction rejects bad handlers, deadlines and error factories
"""

import asyncio
import logging

import pytest
from pydantic import BaseModel, field_validator

from safecall.core.call_result import CallResult
from safecall.core.contract import (
    CallState, ExecutionContract, HandlerContext, build_contract,
)
from safecall.core.errors import (
    ContractConfigurationError,
    INVALID_ENVELOPE_MESSAGE,
    INVALID_ERROR_MESSAGE,
    INVALID_INPUT_MESSAGE,
    INVALID_RESPONSE_MESSAGE,
    UNKNOWN_ERROR_MESSAGE,
)
from safecall.schemas.error import ErrorMessage


class IdInput(BaseModel):
    id: int


class Item(BaseModel):
    id: int
    name: str


class RichError(BaseModel):
    code: str
    message: str


class UnluckyInput(BaseModel):
    id: int

    @field_validator("id")
    @classmethod
    def refuse_thirteen(cls, v: int) -> int:
        if v == 13:
            raise TypeError("unlucky")
        return v


class TouchyError(BaseModel):
    message: str

    @field_validator("message")
    @classmethod
    def refuse_invalid_input(cls, v: str) -> str:
        if v == INVALID_INPUT_MESSAGE:
            raise TypeError("touchy")
        return v


async def _item_handler(ctx: HandlerContext[IdInput, ErrorMessage]):
    if ctx.input.id < 0:
        return CallResult.failure(ctx.error("Invalid ID"))
    return CallResult.success({"id": ctx.input.id, "name": "Test"})


def _contract(handler=_item_handler, **kwargs) -> ExecutionContract:
    return build_contract(IdInput, Item, ErrorMessage, handler, name="foo", **kwargs)


def _assert_well_formed(contract: ExecutionContract, result: CallResult) -> None:
    assert (result.value is None) != (result.error is None)
    if result.ok:
        assert contract.response_schema.is_valid(result.value)
    else:
        assert contract.error_schema.is_valid(result.error)


# ─── Literal scenarios ──────────────────────────────────────────

async def test_valid_input_returns_value():
    result = await _contract().execute({"id": 1})
    assert result.error is None
    assert result.value == Item(id=1, name="Test")
    assert result.to_dict() == {"value": {"id": 1, "name": "Test"}, "error": None}


async def test_declared_failure_returns_handler_error():
    result = await _contract().execute({"id": -1})
    assert result.value is None
    assert result.to_dict() == {"value": None, "error": {"message": "Invalid ID"}}


async def test_malformed_input_returns_invalid_input_without_calling_handler():
    calls = []

    async def counting(ctx):
        calls.append(ctx.input)
        return CallResult.success({"id": 1, "name": "x"})

    result = await _contract(counting).execute({"id": "not-a-number"})
    assert result.to_dict() == {"value": None, "error": {"message": INVALID_INPUT_MESSAGE}}
    assert calls == []


async def test_throwing_handler_returns_exception_message():
    async def boom(ctx):
        raise Exception("boom")

    result = await _contract(boom).execute({"id": 1})
    assert result.to_dict() == {"value": None, "error": {"message": "boom"}}


async def test_malformed_success_value_returns_invalid_response_message():
    async def bad_value(ctx):
        return {"value": "not-an-object", "error": None}

    result = await _contract(bad_value).execute({"id": 1})
    assert result.to_dict() == {
        "value": None, "error": {"message": INVALID_RESPONSE_MESSAGE},
    }


# ─── Input validation ───────────────────────────────────────────

@pytest.mark.parametrize("raw", [
    None, 42, "id=1", [], {}, {"id": "1"}, {"id": 1.5}, {"ident": 1},
])
async def test_input_failures_never_invoke_handler(raw):
    calls = []

    async def counting(ctx):
        calls.append(ctx)
        return CallResult.success({"id": 1, "name": "x"})

    result = await _contract(counting).execute(raw)
    assert result.error == ErrorMessage(message=INVALID_INPUT_MESSAGE)
    assert calls == []


async def test_handler_receives_validated_model_and_error_factory():
    seen = {}

    async def capture(ctx):
        seen["input"] = ctx.input
        seen["error"] = ctx.error("probe")
        return CallResult.success({"id": ctx.input.id, "name": "x"})

    await _contract(capture).execute({"id": 7})
    assert seen["input"] == IdInput(id=7)
    assert seen["error"] == ErrorMessage(message="probe")


async def test_input_may_be_a_model_instance():
    result = await _contract().execute(IdInput(id=3))
    assert result.value == Item(id=3, name="Test")


async def test_every_call_revalidates_input():
    contract = _contract()
    assert (await contract.execute({"id": 1})).ok
    assert not (await contract.execute({"id": "x"})).ok
    assert (await contract.execute({"id": 2})).ok


# ─── Output validation ──────────────────────────────────────────

async def test_malformed_error_object_returns_invalid_error_message():
    async def bad_error(ctx):
        return CallResult.failure({"reason": "not the error shape"})

    result = await _contract(bad_error).execute({"id": 1})
    assert result.error == ErrorMessage(message=INVALID_ERROR_MESSAGE)


async def test_error_wins_when_handler_fills_both_slots():
    async def both(ctx):
        return {"value": {"id": 1, "name": "x"}, "error": {"message": "nope"}}

    result = await _contract(both).execute({"id": 1})
    assert result.value is None
    assert result.error == ErrorMessage(message="nope")


async def test_plain_dict_error_is_normalized_to_schema_type():
    async def dict_error(ctx):
        return {"value": None, "error": {"message": "from dict"}}

    result = await _contract(dict_error).execute({"id": 1})
    assert isinstance(result.error, ErrorMessage)


async def test_empty_envelope_is_invalid_response():
    async def empty(ctx):
        return CallResult()

    result = await _contract(empty).execute({"id": 1})
    assert result.error == ErrorMessage(message=INVALID_RESPONSE_MESSAGE)


@pytest.mark.parametrize("outcome", [
    None, 42, "ok", {"value": {"id": 1, "name": "x"}}, {"res": 1, "err": None},
])
async def test_non_envelope_outcome_returns_invalid_envelope_message(outcome):
    async def weird(ctx):
        return outcome

    result = await _contract(weird).execute({"id": 1})
    assert result.error == ErrorMessage(message=INVALID_ENVELOPE_MESSAGE)


async def test_success_value_must_pass_strict_schema():
    async def stringly(ctx):
        return CallResult.success({"id": "1", "name": "x"})

    result = await _contract(stringly).execute({"id": 1})
    assert result.error == ErrorMessage(message=INVALID_RESPONSE_MESSAGE)


# ─── Exception containment ──────────────────────────────────────

async def test_exception_without_message_returns_unknown_error():
    async def silent(ctx):
        raise RuntimeError()

    result = await _contract(silent).execute({"id": 1})
    assert result.error == ErrorMessage(message=UNKNOWN_ERROR_MESSAGE)


async def test_exception_after_await_is_contained():
    async def late(ctx):
        await asyncio.sleep(0)
        raise ValueError("late failure")

    result = await _contract(late).execute({"id": 1})
    assert result.error == ErrorMessage(message="late failure")


async def test_sync_handler_is_supported():
    def sync_handler(ctx):
        return CallResult.success({"id": ctx.input.id, "name": "sync"})

    result = await _contract(sync_handler).execute({"id": 4})
    assert result.value == Item(id=4, name="sync")


async def test_sync_handler_exception_is_contained():
    def sync_boom(ctx):
        raise KeyError("k")

    result = await _contract(sync_boom).execute({"id": 4})
    assert not result.ok
    assert "k" in result.error.message


async def test_messages_distinguish_failure_kinds():
    async def bad_value(ctx):
        return CallResult.success("not-an-object")

    async def boom(ctx):
        raise Exception("boom")

    malformed = await _contract(bad_value).execute({"id": 1})
    thrown = await _contract(boom).execute({"id": 1})
    rejected = await _contract().execute({"id": "x"})
    messages = {malformed.error.message, thrown.error.message, rejected.error.message}
    assert len(messages) == 3


@pytest.mark.parametrize("behaviour", [
    "value", "declared", "bad_value", "bad_error", "raise", "none", "late_value",
])
@pytest.mark.parametrize("raw", [{"id": 1}, {"id": -1}, {"id": "x"}, None])
async def test_every_result_is_well_formed(behaviour, raw):
    async def handler(ctx):
        if behaviour == "value":
            return CallResult.success({"id": 1, "name": "x"})
        if behaviour == "declared":
            return CallResult.failure(ctx.error("declared"))
        if behaviour == "bad_value":
            return CallResult.success([1, 2, 3])
        if behaviour == "bad_error":
            return CallResult.failure(123)
        if behaviour == "raise":
            raise RuntimeError("raised")
        if behaviour == "late_value":
            await asyncio.sleep(0.01)
            return CallResult.success({"id": 2, "name": "late"})
        return None

    contract = _contract(handler)
    result = await contract.execute(raw)
    _assert_well_formed(contract, result)


# ─── Validators raising outside ValidationError ─────────────────

async def test_input_validator_raising_type_error_resolves_to_invalid_input():
    calls = []

    async def record(ctx):
        calls.append(ctx.input)
        return CallResult.success({"id": ctx.input.id, "name": "ok"})

    contract = build_contract(UnluckyInput, Item, ErrorMessage, record)
    result = await contract.execute({"id": 13})
    assert result.error == ErrorMessage(message=INVALID_INPUT_MESSAGE)
    assert calls == []
    assert (await contract.execute({"id": 7})).value == Item(id=7, name="ok")


async def test_error_schema_validator_raising_falls_back_to_probe_error():
    contract = build_contract(
        IdInput, Item, TouchyError, _item_handler,
        error_factory=lambda message: {"message": message},
    )
    result = await contract.execute({"id": "x"})
    assert result.error == TouchyError(message=UNKNOWN_ERROR_MESSAGE)


# ─── Timeouts and cancellation ──────────────────────────────────

async def test_deadline_resolves_hanging_handler_with_timeout_message():
    async def hang(ctx):
        await asyncio.Event().wait()

    result = await _contract(hang, timeout_seconds=0.05).execute({"id": 1})
    assert result.error == ErrorMessage(message="Execution timed out after 0.05s")


async def test_handler_finishing_before_deadline_succeeds():
    async def quick(ctx):
        await asyncio.sleep(0.01)
        return CallResult.success({"id": 1, "name": "quick"})

    result = await _contract(quick, timeout_seconds=1).execute({"id": 1})
    assert result.value == Item(id=1, name="quick")


async def test_handler_own_timeout_error_keeps_its_message_under_deadline():
    async def upstream(ctx):
        raise TimeoutError("upstream timed out")

    result = await _contract(upstream, timeout_seconds=5).execute({"id": 1})
    assert result.error == ErrorMessage(message="upstream timed out")


async def test_handler_own_timeout_error_without_deadline():
    async def upstream(ctx):
        raise asyncio.TimeoutError("upstream timed out")

    result = await _contract(upstream).execute({"id": 1})
    assert result.error == ErrorMessage(message="upstream timed out")


async def test_cancelling_execute_propagates_cancellation():
    started = asyncio.Event()

    async def hang(ctx):
        started.set()
        await asyncio.Event().wait()

    task = asyncio.create_task(_contract(hang).execute({"id": 1}))
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


# ─── Concurrency ────────────────────────────────────────────────

async def test_concurrent_calls_do_not_interfere():
    async def echo(ctx):
        await asyncio.sleep(0.001 * (ctx.input.id % 5))
        if ctx.input.id % 3 == 0:
            return CallResult.failure(ctx.error(f"fail {ctx.input.id}"))
        return CallResult.success({"id": ctx.input.id, "name": str(ctx.input.id)})

    contract = _contract(echo)
    results = await asyncio.gather(*(contract.execute({"id": i}) for i in range(30)))
    for i, result in enumerate(results):
        if i % 3 == 0:
            assert result.error == ErrorMessage(message=f"fail {i}")
        else:
            assert result.value == Item(id=i, name=str(i))


# ─── Error factory ──────────────────────────────────────────────

async def test_custom_error_factory_supports_rich_error_schema():
    contract = build_contract(
        IdInput, Item, RichError, _item_handler,
        error_factory=lambda message: RichError(code="E_CALL", message=message),
    )
    result = await contract.execute({"id": "x"})
    assert result.error == RichError(code="E_CALL", message=INVALID_INPUT_MESSAGE)


async def test_misbehaving_factory_falls_back_to_probe_error():
    def picky(message: str) -> ErrorMessage:
        if message != UNKNOWN_ERROR_MESSAGE:
            raise ValueError("picky factory")
        return ErrorMessage(message=message)

    contract = build_contract(
        IdInput, Item, ErrorMessage, _item_handler, error_factory=picky,
    )
    result = await contract.execute({"id": "x"})
    assert result.error == ErrorMessage(message=UNKNOWN_ERROR_MESSAGE)


# ─── Construction ───────────────────────────────────────────────

def test_default_factory_rejected_for_rich_error_schema():
    with pytest.raises(ContractConfigurationError) as exc_info:
        build_contract(IdInput, Item, RichError, _item_handler)
    assert exc_info.value.parameter == "error_factory"


def test_non_callable_handler_rejected():
    with pytest.raises(ContractConfigurationError) as exc_info:
        build_contract(IdInput, Item, ErrorMessage, "not a handler")
    assert exc_info.value.parameter == "handler"


def test_configuration_error_carries_contract_name():
    with pytest.raises(ContractConfigurationError) as exc_info:
        build_contract(IdInput, Item, RichError, _item_handler, name="bar")
    context = exc_info.value.to_response()["error"]["context"]
    assert context["contract"] == "bar"
    assert exc_info.value.context.debug_info == {"parameter": "error_factory"}


@pytest.mark.parametrize("timeout", [0, -1])
def test_non_positive_timeout_rejected(timeout):
    with pytest.raises(ContractConfigurationError):
        _contract(timeout_seconds=timeout)


def test_contract_exposes_schemas_for_reflection():
    contract = _contract()
    assert contract.name == "foo"
    assert contract.input_schema.is_valid({"id": 1})
    assert not contract.response_schema.is_valid({"id": 1})
    described = contract.describe()
    assert set(described["schemas"]) == {"input", "response", "error"}
    assert "id" in described["schemas"]["input"]["properties"]


def test_contract_name_defaults_to_handler_name():
    contract = build_contract(IdInput, Item, ErrorMessage, _item_handler)
    assert contract.name == "_item_handler"


# ─── Logging ────────────────────────────────────────────────────

async def test_contract_violation_logged_with_contract_name(caplog):
    async def bad_value(ctx):
        return CallResult.success("nope")

    with caplog.at_level(logging.ERROR, logger="safecall.core.contract"):
        await _contract(bad_value).execute({"id": 1})

    records = [r for r in caplog.records if getattr(r, "contract", None) == "foo"]
    assert records
    assert records[0].call_state == CallState.FAULTED.value
    assert records[0].error_kind == "contract_violation"
