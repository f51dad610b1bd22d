"""
Schema definitions for model <-> orchestrator <-> skill messages.

These data models serve as the contract between the LLM, the orchestration loop and individual
skills.  We keep them separate from runtime logic so they can be imported anywhere without
side-effects.
"""

from enum import Enum
from typing import (
    Any,
    Dict,
    List,
    Literal,
    Optional,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


class SkillAction(str, Enum):
    """Side effect the caller should perform outside the engine."""

    SEND_PAYMENT_LINK = "SEND_PAYMENT_LINK"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    SEND_WHATSAPP_MESSAGE = "SEND_WHATSAPP_MESSAGE"
    FOLLOWUP_SCHEDULED = "FOLLOWUP_SCHEDULED"
    APPOINTMENT_CREATED = "APPOINTMENT_CREATED"


class SkillDescriptor(BaseModel):
    """What the model is permitted to request."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Unique skill name")
    description: str
    parameters: Dict[str, Any] = Field(default_factory=lambda: {"type": "object", "properties": {}})


class ToolCallRequest(BaseModel):
    """A call emitted by the model.  ``raw_arguments`` is untrusted text."""

    id: str
    skill_name: str
    raw_arguments: str = ""


class SkillResult(BaseModel):
    """Outcome of a single skill invocation.  Failures are values, never exceptions."""

    success: bool
    data: Any = None
    message: str
    action: Optional[SkillAction] = None

    @classmethod
    def failure(cls, message: str, data: Any = None) -> "SkillResult":
        """Shorthand for a failed result."""
        return cls(success=False, message=message, data=data)


class ConversationTurn(BaseModel):
    """One prior message of the conversation."""

    role: Literal["user", "assistant", "tool"]
    content: str


class ChatMessage(BaseModel):
    """Provider-neutral chat message used inside a turn."""

    role: Literal["user", "assistant", "tool"]
    content: Optional[str] = None
    tool_calls: List[ToolCallRequest] = Field(default_factory=list)
    tool_call_id: Optional[str] = None


class ModelRequest(BaseModel):
    """Everything a model client needs for one completion."""

    system_prompt: str
    messages: List[ChatMessage]
    tools: List[SkillDescriptor] = Field(default_factory=list)
    tool_choice: Literal["auto", "none"] = "auto"


class ModelResponse(BaseModel):
    """Provider-neutral completion result."""

    content: Optional[str] = None
    tool_calls: List[ToolCallRequest] = Field(default_factory=list)


class ActionRecord(BaseModel):
    """Audit entry for one dispatched skill."""

    skill: str
    args: Dict[str, Any] = Field(default_factory=dict)
    result: SkillResult


class AgentTurnResult(BaseModel):
    """What a turn returns to the chat transport, audit log or UI."""

    response: str
    skills_used: List[str] = Field(default_factory=list)
    actions: List[ActionRecord] = Field(default_factory=list)
    error: Optional[str] = None
