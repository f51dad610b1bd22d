"""Payment link creation and status lookup."""

from typing import (
    Any,
    Dict,
    Optional,
    Tuple,
)

from skillengine.core.errors import DownstreamServiceError
from skillengine.core.schema import (
    SkillAction,
    SkillResult,
)
from skillengine.services.payments import PaymentRequest
from skillengine.skills import register_skill
from skillengine.skills.context import SkillContext
from skillengine.skills.validation import (
    format_brl,
    optional_text,
    require_number,
    require_text,
)

_CONFIRMED = {"CONFIRMED", "RECEIVED", "RECEIVED_IN_CASH"}
_REFUNDED = {"REFUNDED", "REFUND_REQUESTED"}


def describe_status(status: str) -> Tuple[str, Optional[SkillAction]]:
    """Map a provider status code to a customer-facing text and the caller action."""
    code = status.upper()
    if code in _CONFIRMED:
        return "Pagamento confirmado", SkillAction.PAYMENT_CONFIRMED
    if code in _REFUNDED:
        return "Pagamento estornado", None
    if code == "OVERDUE":
        return "Pagamento vencido, aguardando regularização", SkillAction.PAYMENT_PENDING
    return "Aguardando pagamento", SkillAction.PAYMENT_PENDING


@register_skill("create_payment_link")
async def create_payment_link(ctx: SkillContext, args: Dict[str, Any]) -> SkillResult:
    product = require_text(args, "productName")
    amount = require_number(args, "amount")
    if amount <= 0:
        return SkillResult.failure("O valor do pagamento deve ser maior que zero")

    request = PaymentRequest(
        workspace_id=ctx.workspace_id,
        customer_name=optional_text(args, "customerName"),
        customer_phone=ctx.customer_phone,
        amount=round(amount, 2),
        description=optional_text(args, "description") or product,
        idempotency_key=ctx.idempotency_key,
    )
    try:
        payment = await ctx.services.payments.create_payment(request)
    except DownstreamServiceError as exc:
        return SkillResult.failure(f"Não foi possível criar o link de pagamento: {exc.message}")

    return SkillResult(
        success=True,
        data={
            "paymentId": payment.id,
            "link": payment.link,
            "status": payment.status,
            "amount": request.amount,
        },
        message=f"Link de pagamento de {format_brl(request.amount)} criado: {payment.link}",
        action=SkillAction.SEND_PAYMENT_LINK,
    )


@register_skill("check_payment_status")
async def check_payment_status(ctx: SkillContext, args: Dict[str, Any]) -> SkillResult:
    payment_id = require_text(args, "paymentId")
    status = await ctx.services.payments.get_status(ctx.workspace_id, payment_id)
    message, action = describe_status(status.status)
    return SkillResult(
        success=True,
        data={"status": status.status, "value": status.value, "paidDate": status.paid_date},
        message=message,
        action=action,
    )
