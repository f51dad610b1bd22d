"""
Declarative skill catalog.

This is the sole source of truth for what the model may call.  It is built once at import time
and never mutated.
"""

from typing import (
    Any,
    Dict,
    Tuple,
)

from skillengine.core.schema import SkillDescriptor


def _params(required: Tuple[str, ...] = (), **properties: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "object", "properties": properties, "required": list(required)}


SKILL_CATALOG: Tuple[SkillDescriptor, ...] = (
    # --- catalog / product query ---
    SkillDescriptor(
        name="search_products",
        description="Busca produtos relevantes para a pergunta do cliente",
        parameters=_params(
            ("query",),
            query={"type": "string", "description": "Termo de busca"},
        ),
    ),
    SkillDescriptor(
        name="get_product_details",
        description="Obtém preço e detalhes de um produto específico",
        parameters=_params(
            ("productName",),
            productName={"type": "string", "description": "Nome do produto"},
        ),
    ),
    SkillDescriptor(
        name="list_all_products",
        description="Lista todos os produtos cadastrados",
        parameters=_params(),
    ),
    # --- payments ---
    SkillDescriptor(
        name="create_payment_link",
        description="Cria um link de pagamento para o cliente",
        parameters=_params(
            ("productName", "amount"),
            productName={"type": "string"},
            amount={"type": "number", "description": "Valor em reais"},
            customerName={"type": "string"},
            description={"type": "string"},
        ),
    ),
    SkillDescriptor(
        name="check_payment_status",
        description="Consulta o status de um pagamento",
        parameters=_params(("paymentId",), paymentId={"type": "string"}),
    ),
    # --- discount ---
    SkillDescriptor(
        name="apply_discount",
        description="Aplica desconto sobre um preço (máx 30%)",
        parameters=_params(
            ("originalPrice", "discountPercent"),
            originalPrice={"type": "number"},
            discountPercent={"type": "number"},
        ),
    ),
    # --- objections / scripts ---
    SkillDescriptor(
        name="get_objection_response",
        description="Busca resposta treinada para uma objeção do cliente",
        parameters=_params(("objection",), objection={"type": "string"}),
    ),
    SkillDescriptor(
        name="get_sales_script",
        description="Busca script de vendas para uma situação",
        parameters=_params(
            ("situation",),
            situation={"type": "string", "description": "Ex: abertura, fechamento, follow-up"},
        ),
    ),
    # --- leads ---
    SkillDescriptor(
        name="save_lead_info",
        description="Salva ou atualiza informações do lead",
        parameters=_params(
            (),
            name={"type": "string"},
            email={"type": "string"},
            interest={"type": "string"},
            stage={"type": "string", "description": "Ex: novo, qualificado, negociacao, cliente"},
            notes={"type": "string"},
        ),
    ),
    SkillDescriptor(
        name="get_lead_history",
        description="Consulta o histórico de interações do lead",
        parameters=_params((), phone={"type": "string"}),
    ),
    # --- outbound message ---
    SkillDescriptor(
        name="send_whatsapp_message",
        description="Prepara uma mensagem de WhatsApp para envio",
        parameters=_params(
            ("message",),
            phone={"type": "string", "description": "Telefone do destinatário"},
            message={"type": "string"},
        ),
    ),
    # --- follow-up / appointments ---
    SkillDescriptor(
        name="schedule_followup",
        description="Agenda um follow-up com o cliente",
        parameters=_params(
            ("message",),
            message={"type": "string"},
            delayHours={"type": "number", "description": "Horas a partir de agora"},
            datetime={"type": "string", "description": "Data/hora ISO 8601"},
        ),
    ),
    SkillDescriptor(
        name="check_availability",
        description="Consulta horários livres em uma data",
        parameters=_params(("date",), date={"type": "string", "description": "AAAA-MM-DD"}),
    ),
    SkillDescriptor(
        name="create_appointment",
        description="Agenda um horário para o cliente",
        parameters=_params(
            ("datetime",),
            datetime={"type": "string", "description": "Data/hora ISO 8601"},
            service={"type": "string"},
            customerName={"type": "string"},
        ),
    ),
)
