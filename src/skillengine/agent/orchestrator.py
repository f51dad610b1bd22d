"""
Two-phase orchestration of a conversational turn.

A turn moves through ``AWAITING_FIRST_DECISION`` (model decides whether to call skills),
``EXECUTING_SKILLS`` (calls dispatched sequentially, in request order) and
``AWAITING_GROUNDED_REPLY`` (model answers from the skill results).  A turn without tool calls
goes straight from the first decision to ``COMPLETED``.

Only a failed model call ends a turn early; everything else is turned into data that flows into
the reply.
"""

import asyncio
import dataclasses
import hashlib
import json
import logging
from dataclasses import (
    dataclass,
    field,
)
from enum import Enum
from typing import (
    Any,
    ClassVar,
    Dict,
    List,
    Sequence,
)

from skillengine.agent.assembler import TurnResultAssembler
from skillengine.agent.dispatcher import (
    SkillDispatcher,
    parse_arguments,
)
from skillengine.agent.model_client import BaseModelClient
from skillengine.config import settings
from skillengine.core.errors import (
    ArgumentParseError,
    ContextLookupError,
    ModelCallError,
)
from skillengine.core.schema import (
    AgentTurnResult,
    ChatMessage,
    ConversationTurn,
    ModelRequest,
    ModelResponse,
    SkillDescriptor,
    ToolCallRequest,
)
from skillengine.services.knowledge import build_sales_context
from skillengine.skills.context import (
    SkillContext,
    SkillServices,
)

logger = logging.getLogger(__name__)

APOLOGY = "Desculpe, tive um problema. Pode repetir?"


def intent_key(turn_key: str, skill_name: str, args: Dict[str, Any]) -> str:
    """Idempotency key for one skill call, stable across model retries."""
    canonical = json.dumps(args, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]
    return f"{turn_key}:{skill_name}:{digest}"


class TurnState(str, Enum):
    """Where a turn is in the two-phase model interaction."""

    AWAITING_FIRST_DECISION = "awaiting_first_decision"
    EXECUTING_SKILLS = "executing_skills"
    AWAITING_GROUNDED_REPLY = "awaiting_grounded_reply"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class _Turn:
    """Mutable state of a single turn.  Never shared between turns."""

    ctx: SkillContext
    system_prompt: str
    messages: List[ChatMessage]
    assembler: TurnResultAssembler = field(default_factory=TurnResultAssembler)
    state: TurnState = TurnState.AWAITING_FIRST_DECISION

    def advance(self, state: TurnState) -> None:
        logger.debug("Turn %s: %s -> %s", self.ctx.customer_phone, self.state.value, state.value)
        self.state = state


class SkillOrchestrator:
    """Drives the model through one turn with the skill catalog as callable tools."""

    SYSTEM_PROMPT: ClassVar[
        str
    ] = """\
Você é {agent_name}, vendedor IA persuasivo.

CONTEXTO:
{context}

CLIENTE: {customer_phone}

Use as ferramentas para: buscar produtos, verificar preços, criar links de pagamento, aplicar \
descontos, contornar objeções, registrar o lead e agendar follow-ups ou horários.
Nunca invente preços, links ou confirmações: use apenas o que as ferramentas retornarem.
Sempre tente FECHAR A VENDA. Responda em português brasileiro."""

    def __init__(
        self,
        model: BaseModelClient,
        services: SkillServices,
        dispatcher: SkillDispatcher | None = None,
        history_window: int | None = None,
        model_timeout: float | None = None,
        agent_name: str | None = None,
    ):
        self._model = model
        self._services = services
        self._dispatcher = dispatcher or SkillDispatcher(timeout=settings.SKILL_TIMEOUT_SECONDS)
        self._history_window = (
            settings.HISTORY_WINDOW if history_window is None else history_window
        )
        self._model_timeout = (
            settings.MODEL_TIMEOUT_SECONDS if model_timeout is None else model_timeout
        )
        self._agent_name = agent_name or settings.AGENT_NAME

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def get_available_skills(self) -> List[SkillDescriptor]:
        """The skill catalog offered to the model."""
        return list(self._dispatcher.catalog)

    async def process_with_skills(
        self,
        workspace_id: str,
        customer_phone: str,
        message: str,
        history: Sequence[ConversationTurn] | None = None,
        idempotency_key: str | None = None,
    ) -> AgentTurnResult:
        """
        Run one conversational turn.  Never raises.

        Parameters
        ----------
        workspace_id, customer_phone:
            Who the turn belongs to.
        message:
            The customer's new message.
        history:
            Prior turns, oldest first.  Only the last ``history_window`` are sent.
        idempotency_key:
            Optional caller key for this turn.  Side-effecting collaborators receive
            ``"<key>:<skill>:<argument digest>"``, so a retried turn or a duplicated call with the
            same arguments maps to the same key whatever tool call ids the model mints.
        """
        logger.info("Skill turn ws=%s: %r", workspace_id, message[:50])

        context = await self._load_context(workspace_id, message)
        turn = _Turn(
            ctx=SkillContext(
                workspace_id=workspace_id,
                customer_phone=customer_phone,
                services=self._services,
                idempotency_key=idempotency_key,
            ),
            system_prompt=self.SYSTEM_PROMPT.format(
                agent_name=self._agent_name,
                context=context or "Nenhum contexto.",
                customer_phone=customer_phone,
            ),
            messages=[*self._window(history or ()), ChatMessage(role="user", content=message)],
        )

        try:
            first = await self._call_model(turn, tool_choice="auto")
        except ModelCallError as exc:
            turn.advance(TurnState.FAILED)
            return turn.assembler.build(APOLOGY, error=str(exc))

        if not first.tool_calls:
            turn.advance(TurnState.COMPLETED)
            return turn.assembler.build(first.content or "")

        turn.advance(TurnState.EXECUTING_SKILLS)
        dispatched = await self._execute_calls(turn, first.tool_calls)
        if not dispatched:
            # Every call was unknown or malformed; nothing to ground a second reply on.
            turn.advance(TurnState.COMPLETED)
            return turn.assembler.build(first.content or "")

        turn.advance(TurnState.AWAITING_GROUNDED_REPLY)
        try:
            final = await self._call_model(turn, tool_choice="none")
        except ModelCallError as exc:
            turn.advance(TurnState.FAILED)
            return turn.assembler.build(APOLOGY, error=str(exc))

        turn.advance(TurnState.COMPLETED)
        return turn.assembler.build(final.content or "")

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    async def _load_context(self, workspace_id: str, message: str) -> str:
        try:
            return await build_sales_context(self._services.knowledge, workspace_id, message)
        except ContextLookupError as exc:
            logger.warning("Continuing without sales context: %s", exc)
            return ""

    def _window(self, history: Sequence[ConversationTurn]) -> List[ChatMessage]:
        if self._history_window <= 0:
            return []
        out: List[ChatMessage] = []
        for item in list(history)[-self._history_window :]:
            if item.role == "tool":
                # Providers reject tool messages that don't follow a tool call.
                note = f"[resultado de ferramenta] {item.content}"
                out.append(ChatMessage(role="assistant", content=note))
            else:
                out.append(ChatMessage(role=item.role, content=item.content))
        return out

    async def _call_model(self, turn: _Turn, tool_choice: str) -> ModelResponse:
        request = ModelRequest(
            system_prompt=turn.system_prompt,
            messages=turn.messages,
            tools=self.get_available_skills(),
            tool_choice=tool_choice,
        )
        try:
            return await asyncio.wait_for(
                self._model.complete(request), timeout=self._model_timeout
            )
        except ModelCallError:
            logger.error("Model call failed during %s", turn.state.value)
            raise
        except asyncio.TimeoutError as exc:
            logger.error(
                "Model call timed out after %ss during %s", self._model_timeout, turn.state.value
            )
            raise ModelCallError(f"model call timed out after {self._model_timeout:g}s") from exc
        except Exception as exc:  # noqa: BLE001
            logger.error("Model call failed during %s: %s", turn.state.value, exc)
            raise ModelCallError(f"{type(exc).__name__}: {exc}") from exc

    async def _execute_calls(
        self, turn: _Turn, calls: Sequence[ToolCallRequest]
    ) -> List[ToolCallRequest]:
        """Dispatch *calls* in order; returns the calls that actually ran."""
        dispatched: List[ToolCallRequest] = []
        results: List[ChatMessage] = []

        for call in calls:
            if not self._dispatcher.is_known(call.skill_name):
                logger.warning("Ignoring call to unknown skill '%s'", call.skill_name)
                continue
            try:
                args = parse_arguments(call.raw_arguments)
            except ArgumentParseError as exc:
                logger.warning("Skipping '%s' (%s): %s", call.skill_name, call.id, exc)
                continue

            logger.info("Skill: %s", call.skill_name)
            ctx = turn.ctx
            if ctx.idempotency_key:
                ctx = dataclasses.replace(
                    ctx, idempotency_key=intent_key(ctx.idempotency_key, call.skill_name, args)
                )
            result = await self._dispatcher.execute(call.skill_name, args, ctx)

            turn.assembler.record(call.skill_name, args, result)
            dispatched.append(call)
            results.append(
                ChatMessage(
                    role="tool",
                    tool_call_id=call.id,
                    content=result.model_dump_json(exclude_none=True),
                )
            )

        if dispatched:
            turn.messages.append(ChatMessage(role="assistant", tool_calls=dispatched))
            turn.messages.extend(results)
        return dispatched


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------
def build_services() -> SkillServices:
    """Collaborators wired from ``settings``."""
    # Lazy imports - adapters pull in chromadb / httpx clients
    from skillengine.services.calendar import (  # pylint: disable=import-outside-toplevel
        InMemoryCalendar,
    )
    from skillengine.services.followups import (  # pylint: disable=import-outside-toplevel
        InMemoryFollowUpStore,
    )
    from skillengine.services.knowledge import (  # pylint: disable=import-outside-toplevel
        ChromaKnowledgeStore,
    )
    from skillengine.services.leads import (  # pylint: disable=import-outside-toplevel
        HttpLeadStore,
        InMemoryLeadStore,
    )
    from skillengine.services.payments import (  # pylint: disable=import-outside-toplevel
        HttpPaymentService,
        LocalPaymentService,
    )

    payments = (
        HttpPaymentService(settings.PAYMENT_API_URL, settings.PAYMENT_API_KEY)
        if settings.PAYMENT_API_URL
        else LocalPaymentService(settings.PAYMENT_LINK_BASE_URL)
    )
    leads = (
        HttpLeadStore(settings.CRM_API_URL, settings.CRM_API_KEY)
        if settings.CRM_API_URL
        else InMemoryLeadStore()
    )
    return SkillServices(
        knowledge=ChromaKnowledgeStore(
            collection_name=settings.KNOWLEDGE_COLLECTION,
            host=settings.VECTOR_DB_HOST,
            port=settings.VECTOR_DB_PORT,
        ),
        payments=payments,
        leads=leads,
        calendar=InMemoryCalendar(settings.BUSINESS_HOURS_START, settings.BUSINESS_HOURS_END),
        followups=InMemoryFollowUpStore(),
    )


def build_orchestrator(provider: str | None = None) -> SkillOrchestrator:
    """Orchestrator with the configured model provider and collaborators."""
    from skillengine.agent.model_client import (  # pylint: disable=import-outside-toplevel
        load_model_client,
    )

    return SkillOrchestrator(model=load_model_client(provider), services=build_services())

