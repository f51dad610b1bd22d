"""Fakes shared by the test-suite: a scripted model and in-memory collaborators."""

import json
import re
from datetime import (
    datetime,
    timezone,
)
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Union,
)

import pytest

from skillengine.agent.model_client import BaseModelClient
from skillengine.agent.orchestrator import SkillOrchestrator
from skillengine.core.errors import DownstreamServiceError
from skillengine.core.schema import (
    ModelRequest,
    ModelResponse,
    ToolCallRequest,
)
from skillengine.services.calendar import InMemoryCalendar
from skillengine.services.followups import InMemoryFollowUpStore
from skillengine.services.knowledge import (
    KnowledgeItem,
    KnowledgeSearch,
    SearchResult,
)
from skillengine.services.leads import InMemoryLeadStore
from skillengine.services.payments import (
    PaymentLink,
    PaymentRequest,
    PaymentService,
    PaymentStatus,
)
from skillengine.skills.context import (
    SkillContext,
    SkillServices,
)

WORKSPACE = "ws-1"
PHONE = "5511999999999"
FIXED_NOW = datetime(2025, 1, 20, 10, 0, tzinfo=timezone.utc)

_WORD = re.compile(r"\w{3,}")


class FakeKnowledge(KnowledgeSearch):
    """Keyword match over a small list of items."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.items: List[tuple[str, KnowledgeItem]] = []
        self.queries: List[tuple[str, str | None]] = []

    def add(self, category: str, content: str, workspace_id: str = WORKSPACE, **value: Any) -> None:
        item = KnowledgeItem(
            id=f"k{len(self.items)}", content=content, category=category, value=value
        )
        self.items.append((workspace_id, item))

    async def search(
        self, workspace_id: str, query: str, limit: int = 5, category: str | None = None
    ) -> SearchResult:
        self.queries.append((query, category))
        if self.fail:
            raise ConnectionError("knowledge store down")
        words = {w.lower() for w in _WORD.findall(query)}
        hits = [
            item
            for ws, item in self.items
            if ws == workspace_id
            and (category is None or item.category == category)
            and (not words or any(w in item.content.lower() for w in words))
        ][:limit]
        return SearchResult(items=hits, total_found=len(hits))


class FakePayments(PaymentService):
    """Records requests; can be told to fail like the real gateway."""

    def __init__(self) -> None:
        self.requests: List[PaymentRequest] = []
        self.error: DownstreamServiceError | None = None
        self.statuses: Dict[str, PaymentStatus] = {}

    async def create_payment(self, request: PaymentRequest) -> PaymentLink:
        self.requests.append(request)
        if self.error:
            raise self.error
        payment_id = f"pay_{len(self.requests)}"
        return PaymentLink(id=payment_id, link=f"https://pay.test/{payment_id}", status="PENDING")

    async def get_status(self, workspace_id: str, payment_id: str) -> PaymentStatus:
        return self.statuses[payment_id]


Scripted = Union[ModelResponse, Exception, Callable[[ModelRequest], ModelResponse]]


class ScriptedModel(BaseModelClient):
    """Returns scripted responses in order and keeps every request it saw."""

    def __init__(self, *script: Scripted) -> None:
        self.script = list(script)
        self.requests: List[ModelRequest] = []

    async def _complete(self, request: ModelRequest) -> ModelResponse:
        self.requests.append(request.model_copy(deep=True))
        if not self.script:
            raise AssertionError("model called more times than scripted")
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(request)
        return step


def tool_call(call_id: str, name: str, raw: str) -> ToolCallRequest:
    return ToolCallRequest(id=call_id, skill_name=name, raw_arguments=raw)


def reply_with_tool_results(request: ModelRequest) -> ModelResponse:
    """Second-phase fake: answers with the messages of the tool results."""
    notes = [json.loads(m.content)["message"] for m in request.messages if m.role == "tool"]
    return ModelResponse(content=" | ".join(notes))


@pytest.fixture
def knowledge() -> FakeKnowledge:
    store = FakeKnowledge()
    store.add("product", "Plano Pro - acesso completo à plataforma", name="Plano Pro", price=197.0)
    store.add("product", "Plano Basic - recursos essenciais", name="Plano Basic", price=97.0)
    store.add("objection", "Está caro? Mostre o retorno sobre o investimento em 30 dias.")
    return store


@pytest.fixture
def payments() -> FakePayments:
    return FakePayments()


@pytest.fixture
def services(knowledge: FakeKnowledge, payments: FakePayments) -> SkillServices:
    return SkillServices(
        knowledge=knowledge,
        payments=payments,
        leads=InMemoryLeadStore(),
        calendar=InMemoryCalendar(9, 18),
        followups=InMemoryFollowUpStore(),
    )


@pytest.fixture
def ctx(services: SkillServices) -> SkillContext:
    return SkillContext(
        workspace_id=WORKSPACE,
        customer_phone=PHONE,
        services=services,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def make_orchestrator(services: SkillServices) -> Callable[..., SkillOrchestrator]:
    def _make(model: BaseModelClient, **kwargs: Any) -> SkillOrchestrator:
        return SkillOrchestrator(model=model, services=services, **kwargs)

    return _make
