"""
Sanity tests for the skill sandbox.

Run with:
$ pytest -q
"""

import asyncio

import pytest

from skillengine.agent.sandbox import run_skill
from skillengine.core.errors import SkillArgumentError
from skillengine.core.schema import SkillResult


async def _ok(ctx, args):
    """Return the sum of two numbers (used only for tests)."""
    return SkillResult(success=True, data=args["a"] + args["b"], message="ok")


async def _boom(ctx, args):
    raise RuntimeError("payment gateway exploded")


async def _silent_boom(ctx, args):
    raise KeyError


async def _bad_args(ctx, args):
    raise SkillArgumentError("'query' é obrigatório")


async def _slow(ctx, args):
    await asyncio.sleep(5)
    return SkillResult(success=True, message="too late")


async def _dict_result(ctx, args):
    return {"success": True, "message": "as dict"}


async def _garbage(ctx, args):
    return {"unexpected": 1}


@pytest.mark.asyncio
async def test_run_skill_success(ctx) -> None:
    """The sandbox should hand back the handler's own result."""

    result = await run_skill("add", _ok, ctx, {"a": 2, "b": 3})
    assert result.success is True
    assert result.data == 5


@pytest.mark.asyncio
async def test_run_skill_exception_becomes_failure(ctx) -> None:
    """Any exception is converted into ``success=False`` carrying the cause."""

    result = await run_skill("create_payment_link", _boom, ctx, {})
    assert result.success is False
    assert "payment gateway exploded" in result.message


@pytest.mark.asyncio
async def test_run_skill_exception_without_text(ctx) -> None:
    """Exceptions with no message still produce a non-empty failure message."""

    result = await run_skill("x", _silent_boom, ctx, None)
    assert result.success is False
    assert result.message == "KeyError"


@pytest.mark.asyncio
async def test_run_skill_argument_error(ctx) -> None:
    """Rejected arguments are reported back as a failure, not raised."""

    result = await run_skill("search_products", _bad_args, ctx, {})
    assert result.success is False
    assert "argumentos inválidos" in result.message
    assert "query" in result.message


@pytest.mark.asyncio
async def test_run_skill_timeout(ctx) -> None:
    """A hanging skill is abandoned after the timeout."""

    result = await run_skill("slow", _slow, ctx, {}, timeout=0.05)
    assert result.success is False
    assert "tempo limite" in result.message


@pytest.mark.asyncio
async def test_run_skill_accepts_dict_result(ctx) -> None:
    result = await run_skill("d", _dict_result, ctx, {})
    assert result == SkillResult(success=True, message="as dict")


@pytest.mark.asyncio
async def test_run_skill_malformed_result(ctx) -> None:
    result = await run_skill("g", _garbage, ctx, {})
    assert result.success is False
    assert result.message == "resultado inválido"


async def _unserializable(ctx, args):
    return SkillResult(success=True, data={"obj": object()}, message="ok")


@pytest.mark.asyncio
async def test_run_skill_unserializable_result(ctx) -> None:
    """A result that cannot be echoed to the model as JSON is a failure, not a crash."""

    result = await run_skill("list_all_products", _unserializable, ctx, {})
    assert result.success is False
    assert result.message == "resultado inválido"
