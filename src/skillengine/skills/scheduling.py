"""Follow-ups and appointments.  Records are persisted; nothing runs inside the engine."""

from datetime import (
    date,
    datetime,
    timedelta,
)
from typing import (
    Any,
    Dict,
)

from skillengine.core.errors import SkillArgumentError
from skillengine.core.schema import (
    SkillAction,
    SkillResult,
)
from skillengine.skills import register_skill
from skillengine.skills.context import SkillContext
from skillengine.skills.validation import (
    normalize_phone,
    optional_text,
    parse_datetime,
    require_number,
    require_text,
)


def _aware(value: datetime, reference: datetime) -> datetime:
    """Naive timestamps are read in the clock's timezone."""
    if value.tzinfo is None:
        return value.replace(tzinfo=reference.tzinfo)
    return value


@register_skill("schedule_followup")
async def schedule_followup(ctx: SkillContext, args: Dict[str, Any]) -> SkillResult:
    message = require_text(args, "message")
    now = ctx.now()
    if args.get("datetime"):
        run_at = _aware(parse_datetime(require_text(args, "datetime")), now)
    elif args.get("delayHours") is not None:
        run_at = now + timedelta(hours=require_number(args, "delayHours"))
    else:
        raise SkillArgumentError("informe 'delayHours' ou 'datetime'")
    if run_at <= now:
        return SkillResult.failure("O follow-up deve ser agendado para o futuro")

    phone = normalize_phone(ctx.customer_phone)
    followup = await ctx.services.followups.schedule(ctx.workspace_id, phone, run_at, message)
    return SkillResult(
        success=True,
        data={"followupId": followup.id, "runAt": followup.run_at.isoformat()},
        message=f"Follow-up agendado para {run_at:%d/%m/%Y %H:%M}",
        action=SkillAction.FOLLOWUP_SCHEDULED,
    )


@register_skill("check_availability")
async def check_availability(ctx: SkillContext, args: Dict[str, Any]) -> SkillResult:
    raw = require_text(args, "date")
    try:
        day = date.fromisoformat(raw)
    except ValueError as exc:
        raise SkillArgumentError("'date' deve estar no formato AAAA-MM-DD") from exc

    slots = await ctx.services.calendar.availability(ctx.workspace_id, day)
    if not slots:
        message = f"Sem horários livres em {day:%d/%m/%Y}"
    else:
        message = f"Horários livres em {day:%d/%m/%Y}: {', '.join(slots)}"
    return SkillResult(
        success=True,
        data={"date": day.isoformat(), "availableSlots": slots},
        message=message,
    )


@register_skill("create_appointment")
async def create_appointment(ctx: SkillContext, args: Dict[str, Any]) -> SkillResult:
    start = parse_datetime(require_text(args, "datetime"))
    service = optional_text(args, "service") or "Atendimento"
    slot = start.strftime("%H:%M")

    free = await ctx.services.calendar.availability(ctx.workspace_id, start.date())
    if slot not in free:
        return SkillResult.failure(
            f"O horário {start:%d/%m/%Y %H:%M} não está disponível",
            data={"availableSlots": free},
        )

    appointment = await ctx.services.calendar.create_appointment(
        ctx.workspace_id,
        {
            "start": start,
            "service": service,
            "customerName": optional_text(args, "customerName"),
            "customerPhone": normalize_phone(ctx.customer_phone),
        },
    )
    return SkillResult(
        success=True,
        data={
            "appointmentId": appointment["id"],
            "datetime": start.isoformat(),
            "service": service,
        },
        message=f"Agendamento confirmado para {start:%d/%m/%Y %H:%M} ({service})",
        action=SkillAction.APPOINTMENT_CREATED,
    )
