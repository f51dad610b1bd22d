"""Per-call context handed to every skill handler."""

from dataclasses import (
    dataclass,
    field,
)
from datetime import (
    datetime,
    timezone,
)
from typing import Callable

from skillengine.services.calendar import CalendarStore
from skillengine.services.followups import FollowUpStore
from skillengine.services.knowledge import KnowledgeSearch
from skillengine.services.leads import LeadStore
from skillengine.services.payments import PaymentService


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SkillServices:
    """External collaborators the skills talk to.  Shared across turns."""

    knowledge: KnowledgeSearch
    payments: PaymentService
    leads: LeadStore
    calendar: CalendarStore
    followups: FollowUpStore


@dataclass(frozen=True)
class SkillContext:
    """Who the turn is for, plus the collaborators.  Created once per turn."""

    workspace_id: str
    customer_phone: str
    services: SkillServices
    idempotency_key: str | None = None
    clock: Callable[[], datetime] = field(default=_utcnow)

    def now(self) -> datetime:
        """Current timezone-aware time."""
        return self.clock()
