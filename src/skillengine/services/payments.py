"""Payment collaborator: create payment links and query their status."""

import logging
import uuid
from abc import (
    ABC,
    abstractmethod,
)
from datetime import datetime
from typing import (
    Any,
    Dict,
)

import httpx
from pydantic import BaseModel

from skillengine.core.errors import DownstreamServiceError

logger = logging.getLogger(__name__)


class PaymentRequest(BaseModel):
    """Data sent to the payment provider."""

    workspace_id: str
    customer_name: str = ""
    customer_phone: str
    amount: float
    description: str
    idempotency_key: str | None = None


class PaymentLink(BaseModel):
    """A created payment."""

    id: str
    link: str
    status: str


class PaymentStatus(BaseModel):
    """Provider view of an existing payment."""

    status: str
    value: float
    paid_date: str | None = None


class PaymentService(ABC):
    """Contract for the payment collaborator."""

    @abstractmethod
    async def create_payment(self, request: PaymentRequest) -> PaymentLink:
        """Create a payment and return its shareable link."""

    @abstractmethod
    async def get_status(self, workspace_id: str, payment_id: str) -> PaymentStatus:
        """Return the provider status of *payment_id*."""


class HttpPaymentService(PaymentService):
    """
    REST payment gateway adapter.

    ``POST /payments`` creates a charge, ``GET /payments/{id}`` reads it back.  When the request
    carries an idempotency key it is forwarded as the ``Idempotency-Key`` header.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = httpx.AsyncClient(
            base_url=base_url, headers=headers, timeout=timeout, transport=transport
        )

    async def create_payment(self, request: PaymentRequest) -> PaymentLink:
        headers = {"Idempotency-Key": request.idempotency_key} if request.idempotency_key else {}
        payload = {
            "workspaceId": request.workspace_id,
            "customerName": request.customer_name,
            "customerPhone": request.customer_phone,
            "amount": request.amount,
            "description": request.description,
        }
        body = await self._send("POST", "/payments", json=payload, headers=headers)
        return PaymentLink(
            id=str(body["id"]),
            link=body.get("invoiceUrl") or body.get("link") or "",
            status=str(body.get("status", "PENDING")),
        )

    async def get_status(self, workspace_id: str, payment_id: str) -> PaymentStatus:
        body = await self._send(
            "GET", f"/payments/{payment_id}", params={"workspaceId": workspace_id}
        )
        return PaymentStatus(
            status=str(body.get("status", "UNKNOWN")),
            value=float(body.get("value", 0) or 0),
            paid_date=body.get("paymentDate") or body.get("paidDate"),
        )

    async def aclose(self) -> None:
        """Release the underlying connection pool."""
        await self._client.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            resp = await self._client.request(method, url, **kwargs)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            message = _provider_message(exc.response)
            logger.warning("Payment provider rejected %s %s: %s", method, url, message)
            raise DownstreamServiceError(
                "payments", message, status_code=exc.response.status_code
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Payment provider unreachable (%s %s): %s", method, url, exc)
            raise DownstreamServiceError("payments", str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            raise DownstreamServiceError("payments", "invalid JSON in provider response") from exc


def _provider_message(response: httpx.Response) -> str:
    """Pull the human-readable error out of a provider error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            return str(errors[0].get("description") or errors[0])
        for key in ("message", "error", "detail"):
            if body.get(key):
                return str(body[key])
    return response.reason_phrase


class LocalPaymentService(PaymentService):
    """Generates links on the storefront domain and tracks them in memory."""

    def __init__(self, base_url: str = "http://localhost:3000"):
        self._base_url = base_url.rstrip("/")
        self._payments: Dict[tuple[str, str], Dict[str, Any]] = {}
        self._by_key: Dict[str, PaymentLink] = {}

    async def create_payment(self, request: PaymentRequest) -> PaymentLink:
        if request.idempotency_key and request.idempotency_key in self._by_key:
            return self._by_key[request.idempotency_key]
        payment_id = f"pay_{uuid.uuid4().hex[:12]}"
        link = PaymentLink(
            id=payment_id, link=f"{self._base_url}/payment/{payment_id}", status="PENDING"
        )
        self._payments[(request.workspace_id, payment_id)] = {
            "status": "PENDING",
            "value": request.amount,
            "paid_date": None,
        }
        if request.idempotency_key:
            self._by_key[request.idempotency_key] = link
        logger.info("Created local payment %s (%.2f)", payment_id, request.amount)
        return link

    async def get_status(self, workspace_id: str, payment_id: str) -> PaymentStatus:
        record = self._payments.get((workspace_id, payment_id))
        if record is None:
            raise DownstreamServiceError("payments", f"payment '{payment_id}' not found", 404)
        return PaymentStatus(**record)

    def mark_paid(self, workspace_id: str, payment_id: str) -> None:
        """Record a confirmation received from the payment webhook."""
        record = self._payments[(workspace_id, payment_id)]
        record["status"] = "CONFIRMED"
        record["paid_date"] = datetime.now().date().isoformat()
