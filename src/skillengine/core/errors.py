"""
Error taxonomy for the skill engine.

Only :class:`ModelCallError` is allowed to end a turn early.  Every other error is contained where
it happens and turned into data (an empty context, a skipped call, a failed ``SkillResult``).
"""


class SkillEngineError(RuntimeError):
    """Base class for engine errors."""


class ContextLookupError(SkillEngineError):
    """Raised when grounding context could not be retrieved."""


class ModelCallError(SkillEngineError):
    """Raised when the LLM request itself failed (network, auth, rate-limit, timeout)."""


class ArgumentParseError(SkillEngineError):
    """Raised when a tool call's raw arguments are not a JSON object."""


class SkillExecutionError(SkillEngineError):
    """An exception raised inside a skill implementation."""

    def __init__(self, skill: str, cause: str):
        super().__init__(f"Skill '{skill}' failed: {cause}")
        self.skill = skill
        self.cause = cause


class DownstreamServiceError(SkillExecutionError):
    """
    A failure reported by an external collaborator (payment gateway, CRM, ...).

    ``message`` keeps the collaborator's own error text.  Request headers and credentials are never
    stored on the exception.
    """

    def __init__(self, service: str, message: str, status_code: int | None = None):
        super().__init__(service, message)
        self.service = service
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.service} error ({self.status_code}): {self.message}"
        return f"{self.service} error: {self.message}"


class SkillArgumentError(ValueError):
    """Raised by skill handlers when a required argument is missing or malformed."""
