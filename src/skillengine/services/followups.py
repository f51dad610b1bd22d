"""Deferred follow-up records.  Execution belongs to an external scheduler."""

import uuid
from abc import (
    ABC,
    abstractmethod,
)
from datetime import datetime
from typing import List

from pydantic import BaseModel


class FollowUp(BaseModel):
    """A message to be sent to a customer later."""

    id: str
    workspace_id: str
    phone: str
    run_at: datetime
    message: str
    status: str = "scheduled"


class FollowUpStore(ABC):
    """Contract for the follow-up collaborator."""

    @abstractmethod
    async def schedule(
        self, workspace_id: str, phone: str, run_at: datetime, message: str
    ) -> FollowUp:
        """Persist a follow-up to run at *run_at*."""


class InMemoryFollowUpStore(FollowUpStore):
    """Process-local follow-up queue."""

    def __init__(self) -> None:
        self._items: List[FollowUp] = []

    async def schedule(
        self, workspace_id: str, phone: str, run_at: datetime, message: str
    ) -> FollowUp:
        item = FollowUp(
            id=f"fu_{uuid.uuid4().hex[:12]}",
            workspace_id=workspace_id,
            phone=phone,
            run_at=run_at,
            message=message,
        )
        self._items.append(item)
        return item

    def pending(self, workspace_id: str) -> List[FollowUp]:
        """Scheduled follow-ups of a workspace ordered by due time."""
        return sorted(
            (i for i in self._items if i.workspace_id == workspace_id and i.status == "scheduled"),
            key=lambda i: i.run_at,
        )
