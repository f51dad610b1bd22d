"""
Skill registry for the sales agent.

This module provides a decorator to register skill handlers and a registry to look them up by
name.  A handler is an ``async`` function taking the turn's :class:`SkillContext` and the parsed
argument dict, and returning a :class:`SkillResult`.

What the model may *request* is declared separately in :mod:`skillengine.skills.catalog`.  Adding
a skill means adding one descriptor there and one ``@register_skill`` handler here.
"""

import logging
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
)

from skillengine.core.schema import (
    SkillDescriptor,
    SkillResult,
)
from skillengine.skills.context import SkillContext

logger = logging.getLogger(__name__)

SkillHandler = Callable[[SkillContext, Dict[str, Any]], Awaitable[SkillResult]]

SKILL_REGISTRY: Dict[str, SkillHandler] = {}
"""Global registry of skill handlers."""


def register_skill(name: str) -> Callable[[SkillHandler], SkillHandler]:
    """
    Register a skill handler under *name*.

    Used as a decorator:
        @register_skill("apply_discount")
        async def apply_discount(ctx, args):
            ...

    Raises
    ------
    ValueError
        If a handler with the same name is already registered.
    """
    if name in SKILL_REGISTRY:
        raise ValueError(f"Skill '{name}' is already registered.")
    logger.debug("Registering skill '%s'", name)

    def wrapper(fn: SkillHandler) -> SkillHandler:
        SKILL_REGISTRY[name] = fn
        return fn

    return wrapper


def get_available_skills() -> List[SkillDescriptor]:
    """The skill catalog, in declaration order."""
    return list(SKILL_CATALOG)


# Handler modules register themselves on import.
from skillengine.skills import (  # noqa: E402,F401  pylint: disable=wrong-import-position
    leads,
    messaging,
    payments,
    pricing,
    products,
    scheduling,
    scripts,
)
from skillengine.skills.catalog import (  # noqa: E402  pylint: disable=wrong-import-position
    SKILL_CATALOG,
)
