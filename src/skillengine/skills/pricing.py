"""Discount computation.  Pure: no I/O."""

from typing import (
    Any,
    Dict,
)

from skillengine.core.schema import SkillResult
from skillengine.skills import register_skill
from skillengine.skills.context import SkillContext
from skillengine.skills.validation import (
    format_brl,
    require_number,
)

MAX_DISCOUNT_PERCENT = 30.0


def compute_discount(original_price: float, requested_percent: float) -> Dict[str, float]:
    """Clamp *requested_percent* to the ceiling and apply it to *original_price*."""
    discount = min(requested_percent, MAX_DISCOUNT_PERCENT)
    final_price = round(original_price * (1 - discount / 100), 2)
    return {"originalPrice": original_price, "discount": discount, "finalPrice": final_price}


@register_skill("apply_discount")
async def apply_discount(ctx: SkillContext, args: Dict[str, Any]) -> SkillResult:
    price = require_number(args, "originalPrice", minimum=0)
    requested = require_number(args, "discountPercent", minimum=0)
    data = compute_discount(price, requested)
    data["requestedDiscount"] = requested

    message = f"Desconto {data['discount']:g}%: {format_brl(data['finalPrice'])}"
    if requested > MAX_DISCOUNT_PERCENT:
        message += f" (máximo permitido é {MAX_DISCOUNT_PERCENT:g}%)"
    return SkillResult(success=True, data=data, message=message)
