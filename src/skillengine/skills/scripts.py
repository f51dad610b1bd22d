"""Objection answers and sales scripts retrieved from the knowledge store."""

from typing import (
    Any,
    Dict,
)

from skillengine.core.schema import SkillResult
from skillengine.services.knowledge import render_item
from skillengine.skills import register_skill
from skillengine.skills.context import SkillContext
from skillengine.skills.validation import require_text

_NO_TRAINED_ANSWER = "Nenhuma resposta treinada encontrada; use persuasão geral"


async def _lookup(ctx: SkillContext, query: str, category: str, found_label: str) -> SkillResult:
    found = await ctx.services.knowledge.search(ctx.workspace_id, query, 3, category)
    if not found.items:
        return SkillResult(success=True, data={"answers": []}, message=_NO_TRAINED_ANSWER)
    answers = [render_item(item) for item in found.items]
    return SkillResult(
        success=True,
        data={"answers": answers},
        message=f"{len(answers)} {found_label}",
    )


@register_skill("get_objection_response")
async def get_objection_response(ctx: SkillContext, args: Dict[str, Any]) -> SkillResult:
    return await _lookup(ctx, require_text(args, "objection"), "objection", "respostas encontradas")


@register_skill("get_sales_script")
async def get_sales_script(ctx: SkillContext, args: Dict[str, Any]) -> SkillResult:
    return await _lookup(ctx, require_text(args, "situation"), "script", "scripts encontrados")
