"""Runs one skill handler and turns every failure into a ``SkillResult``."""

import asyncio
import logging
from typing import (
    Any,
    Dict,
)

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError

from skillengine.core.errors import (
    SkillArgumentError,
    SkillExecutionError,
)
from skillengine.core.schema import SkillResult
from skillengine.skills import SkillHandler
from skillengine.skills.context import SkillContext

logger = logging.getLogger(__name__)


async def run_skill(
    name: str,
    handler: SkillHandler,
    ctx: SkillContext,
    args: Dict[str, Any] | None = None,
    timeout: float | None = None,
) -> SkillResult:
    """
    Invoke *handler* with *args* inside the sandbox.

    Parameters
    ----------
    name:
        The skill name, used for logging and failure messages.
    handler:
        The registered coroutine function.
    ctx:
        The turn's skill context.
    args:
        Parsed arguments.  If *None*, an empty dict is assumed.
    timeout:
        Seconds before the call is abandoned.  *None* means no bound.

    Returns
    -------
    SkillResult
        The handler's own result, or ``success=False`` carrying the cause.  This function never
        raises (cancellation of the enclosing task excepted).
    """

    if args is None:
        args = {}

    try:
        logger.debug("Executing skill '%s' with args=%s", name, args)
        result = await asyncio.wait_for(handler(ctx, args), timeout=timeout)
        if not isinstance(result, SkillResult):
            result = SkillResult.model_validate(result)
        # The result is echoed to the model as JSON; fail here rather than in the caller.
        result.model_dump_json(exclude_none=True)
        return result
    except asyncio.TimeoutError:
        # Also reached when the handler itself raises TimeoutError (same class on 3.11+).
        logger.warning("Skill '%s' timed out after %ss", name, timeout)
        limit = f" de {timeout:g}s" if timeout is not None else ""
        error = SkillExecutionError(name, f"tempo limite{limit} excedido")
    except SkillArgumentError as exc:
        # Bad model arguments are expected; no traceback needed.
        logger.info("Skill '%s' rejected its arguments: %s", name, exc)
        error = SkillExecutionError(name, f"argumentos inválidos: {exc}")
    except ValidationError as exc:
        logger.error("Skill '%s' returned a malformed result: %s", name, exc)
        error = SkillExecutionError(name, "resultado inválido")
    except PydanticSerializationError as exc:
        logger.error("Skill '%s' returned a result that is not JSON-serializable: %s", name, exc)
        error = SkillExecutionError(name, "resultado inválido")
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unhandled error in skill '%s'", name)
        error = SkillExecutionError(name, str(exc) or type(exc).__name__)

    return SkillResult.failure(error.cause)
