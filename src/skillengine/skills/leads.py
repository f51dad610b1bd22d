"""Lead upsert / read keyed by phone number."""

from typing import (
    Any,
    Dict,
)

from skillengine.core.schema import SkillResult
from skillengine.skills import register_skill
from skillengine.skills.context import SkillContext
from skillengine.skills.validation import (
    normalize_phone,
    optional_text,
)

LEAD_FIELDS = ("name", "email", "interest", "stage", "notes")


@register_skill("save_lead_info")
async def save_lead_info(ctx: SkillContext, args: Dict[str, Any]) -> SkillResult:
    fields = {key: optional_text(args, key) for key in LEAD_FIELDS if args.get(key) is not None}
    fields = {key: value for key, value in fields.items() if value}
    if not fields:
        return SkillResult.failure(f"Informe ao menos um campo do lead: {', '.join(LEAD_FIELDS)}")

    phone = normalize_phone(ctx.customer_phone)
    lead = await ctx.services.leads.upsert(ctx.workspace_id, phone, fields)
    return SkillResult(
        success=True,
        data=lead,
        message=f"Lead atualizado: {', '.join(sorted(fields))}",
    )


@register_skill("get_lead_history")
async def get_lead_history(ctx: SkillContext, args: Dict[str, Any]) -> SkillResult:
    phone = normalize_phone(optional_text(args, "phone") or ctx.customer_phone)
    interactions = await ctx.services.leads.history(ctx.workspace_id, phone)
    if not interactions:
        return SkillResult(success=True, data={"interactions": []}, message="Lead sem histórico")
    return SkillResult(
        success=True,
        data={"interactions": interactions},
        message=f"{len(interactions)} interações registradas",
    )
