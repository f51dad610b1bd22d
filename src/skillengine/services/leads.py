"""Lead / CRM collaborator keyed by workspace and phone number."""

import logging
from abc import (
    ABC,
    abstractmethod,
)
from datetime import (
    datetime,
    timezone,
)
from typing import (
    Any,
    Dict,
    List,
)

import httpx

from skillengine.core.errors import DownstreamServiceError

logger = logging.getLogger(__name__)


class LeadStore(ABC):
    """Contract for the lead store."""

    @abstractmethod
    async def upsert(self, workspace_id: str, phone: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Create or update the lead and return its current fields."""

    @abstractmethod
    async def history(self, workspace_id: str, phone: str) -> List[Dict[str, Any]]:
        """Return the lead's recorded interactions, oldest first."""


class InMemoryLeadStore(LeadStore):
    """Process-local lead store."""

    def __init__(self) -> None:
        self._leads: Dict[tuple[str, str], Dict[str, Any]] = {}
        self._interactions: Dict[tuple[str, str], List[Dict[str, Any]]] = {}

    async def upsert(self, workspace_id: str, phone: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        key = (workspace_id, phone)
        lead = self._leads.setdefault(key, {"phone": phone})
        lead.update(fields)
        self._interactions.setdefault(key, []).append(
            {
                "type": "lead_update",
                "fields": dict(fields),
                "at": datetime.now(timezone.utc).isoformat(),
            }
        )
        return dict(lead)

    async def history(self, workspace_id: str, phone: str) -> List[Dict[str, Any]]:
        return list(self._interactions.get((workspace_id, phone), []))

    def get(self, workspace_id: str, phone: str) -> Dict[str, Any] | None:
        """Current fields of a lead (admin / tests)."""
        lead = self._leads.get((workspace_id, phone))
        return dict(lead) if lead else None


class HttpLeadStore(LeadStore):
    """REST CRM adapter."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = httpx.AsyncClient(
            base_url=base_url, headers=headers, timeout=timeout, transport=transport
        )

    async def upsert(self, workspace_id: str, phone: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return await self._send("PUT", f"/workspaces/{workspace_id}/leads/{phone}", json=fields)

    async def history(self, workspace_id: str, phone: str) -> List[Dict[str, Any]]:
        body = await self._send("GET", f"/workspaces/{workspace_id}/leads/{phone}/history")
        return list(body.get("interactions", []))

    async def aclose(self) -> None:
        """Release the underlying connection pool."""
        await self._client.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            resp = await self._client.request(method, url, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("CRM rejected %s %s: %s", method, url, exc.response.status_code)
            raise DownstreamServiceError(
                "crm",
                exc.response.text[:200] or exc.response.reason_phrase,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("CRM unreachable (%s %s): %s", method, url, exc)
            raise DownstreamServiceError("crm", str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            raise DownstreamServiceError("crm", "invalid JSON in CRM response") from exc
