"""
HTTP surface of the skill engine.

It exposes the following endpoints:
- **GET /health**  - liveness probe for health checks.
- **GET /skills**  - the skill catalog (admin / introspection).
- **POST /agent**  - one conversational turn: {"workspace_id", "customer_phone", "message", ...}

The chat transport is expected to deliver the reply and perform the returned actions.
"""

import logging
from functools import lru_cache

from fastapi import (
    Depends,
    FastAPI,
)

from skillengine import __version__
from skillengine.agent.orchestrator import (
    SkillOrchestrator,
    build_orchestrator,
)
from skillengine.api.models import (
    ProcessRequest,
    SkillsResponse,
)
from skillengine.config import settings
from skillengine.core.schema import AgentTurnResult

logger = logging.getLogger(__name__)

_SECRET_SETTINGS = {"OPENAI_API_KEY", "ANTHROPIC_API_KEY", "PAYMENT_API_KEY", "CRM_API_KEY"}

app = FastAPI(
    title="Skill Engine API",
    version=__version__,
    description="Tool orchestration for the conversational sales agent",
)


@lru_cache(maxsize=1)
def get_orchestrator() -> SkillOrchestrator:
    """Process-wide orchestrator, built on first use."""
    logger.info("Building orchestrator (provider=%s)", settings.MODEL_PROVIDER)
    return build_orchestrator()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.get("/skills", response_model=SkillsResponse, summary="List available skills")
async def list_skills(
    orchestrator: SkillOrchestrator = Depends(get_orchestrator),
) -> SkillsResponse:
    skills = orchestrator.get_available_skills()
    return SkillsResponse(skills=skills, count=len(skills))


@app.post("/agent", response_model=AgentTurnResult, summary="Process a customer message")
async def agent_endpoint(
    req: ProcessRequest,
    orchestrator: SkillOrchestrator = Depends(get_orchestrator),
) -> AgentTurnResult:
    """Run one turn.  Failures are reported in the body, never as HTTP errors."""
    result = await orchestrator.process_with_skills(
        workspace_id=req.workspace_id,
        customer_phone=req.customer_phone,
        message=req.message,
        history=req.history,
        idempotency_key=req.idempotency_key,
    )
    if result.error:
        logger.warning("Turn for ws=%s ended with error: %s", req.workspace_id, result.error)
    return result


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in dev docker-compose).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn an optional dependency at pkg-import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting skill engine API at %s:%d (reload=%s, log_level=%s)",
        host,
        port,
        reload,
        log_level,
    )
    logger.debug("API settings: %s", settings.model_dump(exclude=_SECRET_SETTINGS))
    uvicorn.run(
        "skillengine.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower(),
    )
