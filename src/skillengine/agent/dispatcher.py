"""Resolves skill names to handlers and routes parsed arguments through the sandbox."""

import json
import logging
import re
from typing import (
    Any,
    Dict,
    Iterable,
    Mapping,
)

from skillengine.agent.sandbox import run_skill
from skillengine.core.errors import ArgumentParseError
from skillengine.core.schema import (
    SkillDescriptor,
    SkillResult,
)
from skillengine.skills import (
    SKILL_CATALOG,
    SKILL_REGISTRY,
    SkillHandler,
)
from skillengine.skills.context import SkillContext

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def parse_arguments(raw: str | None) -> Dict[str, Any]:
    """
    Parse a tool call's raw argument text into a dict.

    Markdown code fences around the JSON are tolerated.  Empty input means "no arguments".

    Raises
    ------
    ArgumentParseError
        If the text is not a JSON object.
    """
    text = (raw or "").strip()
    if "```" in text:
        match = _CODE_FENCE.search(text)
        if match:
            text = match.group(1).strip()
    if not text:
        return {}

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ArgumentParseError(f"arguments are not valid JSON: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise ArgumentParseError(f"arguments must be a JSON object, got {type(parsed).__name__}")
    return parsed


class SkillDispatcher:
    """
    Routes calls to registered skill handlers.

    Only names present in *catalog* can run; the handler registry alone is not enough.
    """

    def __init__(
        self,
        handlers: Mapping[str, SkillHandler] | None = None,
        catalog: Iterable[SkillDescriptor] | None = None,
        timeout: float | None = None,
    ):
        self._handlers = dict(SKILL_REGISTRY if handlers is None else handlers)
        self._catalog = tuple(SKILL_CATALOG if catalog is None else catalog)
        self._names = frozenset(d.name for d in self._catalog)
        self._timeout = timeout

        unbacked = self._names - self._handlers.keys()
        if unbacked:
            logger.warning("Catalog skills without a handler: %s", sorted(unbacked))

    @property
    def catalog(self) -> tuple[SkillDescriptor, ...]:
        """Descriptors the model may call."""
        return self._catalog

    def is_known(self, skill_name: str) -> bool:
        """True when *skill_name* is declared in the catalog."""
        return skill_name in self._names

    async def execute(
        self, skill_name: str, args: Dict[str, Any], ctx: SkillContext
    ) -> SkillResult:
        """Run *skill_name* with *args*.  Never raises."""
        handler = self._handlers.get(skill_name) if self.is_known(skill_name) else None
        if handler is None:
            logger.warning("Refusing to execute unknown skill '%s'", skill_name)
            return SkillResult.failure(f"Skill desconhecida: {skill_name}")
        return await run_skill(skill_name, handler, ctx, args, timeout=self._timeout)
