"""Appointment book used by the scheduling skills."""

import logging
import uuid
from abc import (
    ABC,
    abstractmethod,
)
from datetime import (
    date,
    datetime,
)
from typing import (
    Any,
    Dict,
    List,
)

logger = logging.getLogger(__name__)


class CalendarStore(ABC):
    """Contract for the calendar / appointment collaborator."""

    @abstractmethod
    async def availability(self, workspace_id: str, day: date) -> List[str]:
        """Free ``HH:MM`` slots for *day*."""

    @abstractmethod
    async def create_appointment(
        self, workspace_id: str, details: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Persist an appointment; *details* carries at least ``start`` (a datetime)."""


class InMemoryCalendar(CalendarStore):
    """Hourly slots inside business hours; each booking takes one slot."""

    def __init__(self, start_hour: int = 9, end_hour: int = 18):
        if not 0 <= start_hour < end_hour <= 24:
            raise ValueError("business hours must satisfy 0 <= start < end <= 24")
        self._hours = range(start_hour, end_hour)
        self._appointments: Dict[str, List[Dict[str, Any]]] = {}

    async def availability(self, workspace_id: str, day: date) -> List[str]:
        booked = {
            appt["start"].strftime("%H:%M")
            for appt in self._appointments.get(workspace_id, [])
            if appt["start"].date() == day
        }
        return [f"{hour:02d}:00" for hour in self._hours if f"{hour:02d}:00" not in booked]

    async def create_appointment(
        self, workspace_id: str, details: Dict[str, Any]
    ) -> Dict[str, Any]:
        start: datetime = details["start"]
        record = {"id": f"appt_{uuid.uuid4().hex[:12]}", **details}
        self._appointments.setdefault(workspace_id, []).append(record)
        logger.info("Booked appointment %s at %s", record["id"], start.isoformat())
        return record
