"""End-to-end turns against a scripted model."""

import asyncio
import dataclasses

import pytest

from skillengine.agent.dispatcher import SkillDispatcher
from skillengine.agent.model_client import BaseModelClient
from skillengine.agent.orchestrator import (
    APOLOGY,
    SkillOrchestrator,
    intent_key,
)
from skillengine.core.schema import (
    ConversationTurn,
    ModelResponse,
    SkillResult,
)
from skillengine.services.payments import LocalPaymentService
from skillengine.skills import SKILL_REGISTRY

from conftest import (
    PHONE,
    WORKSPACE,
    ScriptedModel,
    reply_with_tool_results,
    tool_call,
)


class SlowModel(BaseModelClient):
    async def _complete(self, request):
        await asyncio.sleep(5)
        return ModelResponse(content="late")


@pytest.mark.asyncio
async def test_direct_reply_without_tools(make_orchestrator) -> None:
    """A reply with no tool calls is final after a single model call."""

    model = ScriptedModel(ModelResponse(content="Entendo. Posso saber o motivo do cancelamento?"))
    result = await make_orchestrator(model).process_with_skills(
        WORKSPACE, PHONE, "Quero cancelar", []
    )

    assert result.response == "Entendo. Posso saber o motivo do cancelamento?"
    assert result.skills_used == []
    assert result.actions == []
    assert result.error is None
    assert len(model.requests) == 1
    assert model.requests[0].tool_choice == "auto"
    assert len(model.requests[0].tools) == len(SKILL_REGISTRY)


@pytest.mark.asyncio
async def test_price_question_is_grounded_in_lookup(make_orchestrator) -> None:
    model = ScriptedModel(
        ModelResponse(
            tool_calls=[
                tool_call("call_1", "get_product_details", '{"productName": "Plano Pro"}')
            ]
        ),
        reply_with_tool_results,
    )
    result = await make_orchestrator(model).process_with_skills(
        WORKSPACE, PHONE, "Quanto custa o Plano Pro?", []
    )

    assert result.skills_used == ["get_product_details"]
    assert result.actions[0].args == {"productName": "Plano Pro"}
    assert result.actions[0].result.success is True
    assert "R$ 197.00" in result.response

    first, second = model.requests
    assert "=== PRODUTOS RELEVANTES ===" in first.system_prompt
    assert "Plano Pro" in first.system_prompt
    assert PHONE in first.system_prompt
    assert second.tool_choice == "none"
    assert [m.role for m in second.messages] == ["user", "assistant", "tool"]
    assert second.messages[2].tool_call_id == "call_1"


@pytest.mark.asyncio
async def test_discount_request_is_capped(make_orchestrator) -> None:
    history = [
        ConversationTurn(role="user", content="Quanto custa o Plano Basic?"),
        ConversationTurn(role="assistant", content="O Plano Basic sai por R$ 100,00."),
    ]
    model = ScriptedModel(
        ModelResponse(
            tool_calls=[
                tool_call(
                    "call_1", "apply_discount", '{"originalPrice": 100, "discountPercent": 50}'
                )
            ]
        ),
        reply_with_tool_results,
    )
    result = await make_orchestrator(model).process_with_skills(
        WORKSPACE, PHONE, "Consegue um desconto de 50%?", history
    )

    assert result.skills_used == ["apply_discount"]
    action = result.actions[0]
    assert action.args["discountPercent"] == 50
    assert action.result.data["discount"] == 30
    assert action.result.data["finalPrice"] == 70
    assert [m.role for m in model.requests[0].messages] == ["user", "assistant", "user"]


@pytest.mark.asyncio
async def test_failing_skill_is_contained(make_orchestrator) -> None:
    async def broken(ctx, args):
        raise ConnectionError("CRM indisponível")

    dispatcher = SkillDispatcher(handlers={**SKILL_REGISTRY, "save_lead_info": broken})
    model = ScriptedModel(
        ModelResponse(tool_calls=[tool_call("c1", "save_lead_info", '{"name": "Ana"}')]),
        ModelResponse(content="Não consegui salvar seus dados agora, mas seguimos!"),
    )
    result = await make_orchestrator(model, dispatcher=dispatcher).process_with_skills(
        WORKSPACE, PHONE, "Meu nome é Ana", []
    )

    assert result.skills_used == ["save_lead_info"]
    assert result.actions[0].result.success is False
    assert "CRM indisponível" in result.actions[0].result.message
    assert result.response == "Não consegui salvar seus dados agora, mas seguimos!"
    assert result.error is None
    assert '"success":false' in model.requests[1].messages[-1].content


@pytest.mark.asyncio
async def test_unserializable_skill_result_is_contained(make_orchestrator) -> None:
    async def leaky(ctx, args):
        return SkillResult(success=True, data={"obj": object()}, message="ok")

    dispatcher = SkillDispatcher(handlers={**SKILL_REGISTRY, "list_all_products": leaky})
    model = ScriptedModel(
        ModelResponse(tool_calls=[tool_call("c1", "list_all_products", "{}")]),
        reply_with_tool_results,
    )
    result = await make_orchestrator(model, dispatcher=dispatcher).process_with_skills(
        WORKSPACE, PHONE, "Quais planos vocês têm?", []
    )

    assert result.skills_used == ["list_all_products"]
    assert result.actions[0].result.success is False
    assert result.response == "resultado inválido"
    assert result.error is None


@pytest.mark.asyncio
async def test_unknown_skill_is_never_dispatched(make_orchestrator) -> None:
    model = ScriptedModel(
        ModelResponse(
            tool_calls=[
                tool_call("c1", "drop_all_leads", "{}"),
                tool_call("c2", "list_all_products", "{}"),
            ]
        ),
        reply_with_tool_results,
    )
    result = await make_orchestrator(model).process_with_skills(
        WORKSPACE, PHONE, "Quais planos vocês têm?", []
    )

    assert result.skills_used == ["list_all_products"]
    echoed = model.requests[1].messages[-2]
    assert [c.skill_name for c in echoed.tool_calls] == ["list_all_products"]
    assert [m.tool_call_id for m in model.requests[1].messages if m.role == "tool"] == ["c2"]


@pytest.mark.asyncio
async def test_malformed_arguments_skip_only_that_call(make_orchestrator) -> None:
    model = ScriptedModel(
        ModelResponse(
            tool_calls=[
                tool_call("c1", "get_product_details", '{"productName": "Plano Pro"}'),
                tool_call("c2", "apply_discount", '{"originalPrice": 100, "discount'),
                tool_call("c3", "search_products", '{"query": "plano"}'),
            ]
        ),
        reply_with_tool_results,
    )
    result = await make_orchestrator(model).process_with_skills(
        WORKSPACE, PHONE, "Me mostra os planos com desconto", []
    )

    assert result.skills_used == ["get_product_details", "search_products"]
    assert all(a.result.success for a in result.actions)
    tool_ids = [m.tool_call_id for m in model.requests[1].messages if m.role == "tool"]
    assert tool_ids == ["c1", "c3"]


@pytest.mark.asyncio
async def test_only_skipped_calls_returns_first_reply(make_orchestrator) -> None:
    model = ScriptedModel(
        ModelResponse(
            content="Qual valor você quer pagar?",
            tool_calls=[tool_call("c1", "create_payment_link", "amount=10")],
        )
    )
    result = await make_orchestrator(model).process_with_skills(
        WORKSPACE, PHONE, "Quero pagar", []
    )

    assert result.response == "Qual valor você quer pagar?"
    assert result.skills_used == []
    assert len(model.requests) == 1


@pytest.mark.asyncio
async def test_model_outage_returns_apology(make_orchestrator) -> None:
    model = ScriptedModel(ConnectionError("provider down"))
    result = await make_orchestrator(model).process_with_skills(WORKSPACE, PHONE, "Oi", [])

    assert result.response == APOLOGY
    assert result.skills_used == []
    assert result.error
    assert "provider down" in result.error


@pytest.mark.asyncio
async def test_model_timeout_returns_apology(make_orchestrator) -> None:
    result = await make_orchestrator(SlowModel(), model_timeout=0.05).process_with_skills(
        WORKSPACE, PHONE, "Oi", []
    )
    assert result.response == APOLOGY
    assert "timed out" in result.error


@pytest.mark.asyncio
async def test_second_call_failure_keeps_trace(make_orchestrator, payments) -> None:
    model = ScriptedModel(
        ModelResponse(
            tool_calls=[
                tool_call(
                    "c1", "create_payment_link", '{"productName": "Plano Pro", "amount": 197}'
                )
            ]
        ),
        TimeoutError("read timeout"),
    )
    result = await make_orchestrator(model).process_with_skills(
        WORKSPACE, PHONE, "Manda o link", []
    )

    assert result.response == APOLOGY
    assert result.error
    assert result.skills_used == ["create_payment_link"]
    assert len(payments.requests) == 1


@pytest.mark.asyncio
async def test_context_failure_degrades(knowledge, make_orchestrator) -> None:
    knowledge.fail = True
    model = ScriptedModel(ModelResponse(content="Olá! Como posso ajudar?"))
    result = await make_orchestrator(model).process_with_skills(WORKSPACE, PHONE, "Oi", [])

    assert result.response == "Olá! Como posso ajudar?"
    assert result.error is None
    assert "Nenhum contexto." in model.requests[0].system_prompt


@pytest.mark.asyncio
async def test_history_is_windowed(make_orchestrator) -> None:
    history = [
        ConversationTurn(role="user" if i % 2 == 0 else "assistant", content=f"msg {i}")
        for i in range(14)
    ]
    history.append(ConversationTurn(role="tool", content='{"success": true}'))
    model = ScriptedModel(ModelResponse(content="ok"))
    await make_orchestrator(model, history_window=4).process_with_skills(
        WORKSPACE, PHONE, "e agora?", history
    )

    messages = model.requests[0].messages
    assert [m.content for m in messages[:3]] == ["msg 11", "msg 12", "msg 13"]
    assert messages[3].role == "assistant"
    assert messages[3].content.startswith("[resultado de ferramenta]")
    assert messages[4].content == "e agora?"


@pytest.mark.asyncio
async def test_idempotency_key_reaches_payment_service(make_orchestrator, payments) -> None:
    model = ScriptedModel(
        ModelResponse(
            tool_calls=[
                tool_call(
                    "call_7", "create_payment_link", '{"productName": "Plano Pro", "amount": 197}'
                )
            ]
        ),
        reply_with_tool_results,
    )
    result = await make_orchestrator(model).process_with_skills(
        WORKSPACE, PHONE, "Pode mandar o link", [], idempotency_key="msg-42"
    )

    key = payments.requests[0].idempotency_key
    assert key == intent_key(
        "msg-42", "create_payment_link", {"productName": "Plano Pro", "amount": 197}
    )
    assert key.startswith("msg-42:create_payment_link:")
    assert "call_7" not in key
    assert result.actions[0].result.action == "SEND_PAYMENT_LINK"


def test_get_available_skills(make_orchestrator) -> None:
    skills = make_orchestrator(ScriptedModel()).get_available_skills()
    names = {s.name for s in skills}
    assert {"apply_discount", "create_payment_link", "send_whatsapp_message"} <= names


@pytest.mark.asyncio
async def test_retried_turn_reuses_payment_link(services) -> None:
    """New tool call ids on a retry must not produce a second payment link."""

    local = dataclasses.replace(services, payments=LocalPaymentService("https://loja.test"))
    attempts = [
        ("call_abc", '{"productName": "Plano Pro", "amount": 197}'),
        ("call_xyz", '{"amount": 197, "productName": "Plano Pro"}'),
    ]
    links = []
    for call_id, raw in attempts:
        model = ScriptedModel(
            ModelResponse(tool_calls=[tool_call(call_id, "create_payment_link", raw)]),
            ModelResponse(content="Link enviado!"),
        )
        result = await SkillOrchestrator(model=model, services=local).process_with_skills(
            WORKSPACE, PHONE, "Pode mandar o link", [], idempotency_key="msg-42"
        )
        links.append(result.actions[0].result.data["link"])

    assert links[0] == links[1]
    assert links[0].startswith("https://loja.test/payment/pay_")


@pytest.mark.asyncio
async def test_different_arguments_get_different_keys(make_orchestrator, payments) -> None:
    pro = '{"productName": "Plano Pro", "amount": 197}'
    basic = '{"productName": "Plano Basic", "amount": 97}'
    model = ScriptedModel(
        ModelResponse(
            tool_calls=[
                tool_call("c1", "create_payment_link", pro),
                tool_call("c2", "create_payment_link", basic),
            ]
        ),
        reply_with_tool_results,
    )
    await make_orchestrator(model).process_with_skills(
        WORKSPACE, PHONE, "Quero os dois planos", [], idempotency_key="msg-43"
    )

    first, second = (r.idempotency_key for r in payments.requests)
    assert first != second
