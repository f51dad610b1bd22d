"""
Pydantic models for the skill engine API requests and responses.
"""

from typing import (
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)

from skillengine.core.schema import (
    ConversationTurn,
    SkillDescriptor,
)


# ---------------------------------------------------------------------------
# Pydantic request / response schema
# ---------------------------------------------------------------------------
class ProcessRequest(BaseModel):
    """One inbound customer message."""

    workspace_id: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=1)
    message: str = Field(..., description="Customer message")
    history: List[ConversationTurn] = Field(default_factory=list)
    idempotency_key: Optional[str] = Field(
        None, description="Caller key that makes payment creation safe to retry"
    )


class SkillsResponse(BaseModel):
    """Catalog listing."""

    skills: List[SkillDescriptor]
    count: int
