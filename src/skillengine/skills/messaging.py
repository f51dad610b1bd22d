"""Outbound message preparation.  Delivery is the caller's job."""

from typing import (
    Any,
    Dict,
)

from skillengine.core.schema import (
    SkillAction,
    SkillResult,
)
from skillengine.skills import register_skill
from skillengine.skills.context import SkillContext
from skillengine.skills.validation import (
    normalize_phone,
    optional_text,
    require_text,
)

MAX_MESSAGE_LENGTH = 4096  # WhatsApp text body limit


@register_skill("send_whatsapp_message")
async def send_whatsapp_message(ctx: SkillContext, args: Dict[str, Any]) -> SkillResult:
    message = require_text(args, "message")
    if len(message) > MAX_MESSAGE_LENGTH:
        return SkillResult.failure(f"Mensagem excede {MAX_MESSAGE_LENGTH} caracteres")
    phone = normalize_phone(optional_text(args, "phone") or ctx.customer_phone)
    return SkillResult(
        success=True,
        data={"phone": phone, "message": message},
        message="Mensagem pronta para envio",
        action=SkillAction.SEND_WHATSAPP_MESSAGE,
    )
