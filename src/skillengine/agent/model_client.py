"""
Model client interface.

This module is the only place that *directly* calls an LLM.  Everything else (orchestrator, skills,
collaborators) stays model-agnostic and talks in :class:`ModelRequest` / :class:`ModelResponse`.

We support two back-ends out of the box:

1. **OpenAI** chat completions with function tools.
2. **Anthropic** messages with ``tool_use`` / ``tool_result`` blocks.

Additional providers can be added by subclassing :class:`BaseModelClient` and registering via
:func:`register_model_client`.  Every client accepts an already-built SDK client so tests (and
callers with their own retry policy) can inject one.
"""

import json
import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Type,
)

from skillengine.config import settings
from skillengine.core.errors import ModelCallError
from skillengine.core.schema import (
    ChatMessage,
    ModelRequest,
    ModelResponse,
    ToolCallRequest,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_CLIENT_REGISTRY: dict[str, Type["BaseModelClient"]] = {}


def register_model_client(name: str) -> Callable:
    """Decorator to register a model client class under *name*."""

    def wrapper(cls: Type["BaseModelClient"]) -> Type["BaseModelClient"]:
        _CLIENT_REGISTRY[name] = cls
        return cls

    return wrapper


def load_model_client(name: str | None = None) -> "BaseModelClient":
    """
    Factory that returns an instantiated model client.

    Fallback order:
    1. *name* arg
    2. ``settings.MODEL_PROVIDER``
    3. default: ``"openai"``
    """

    target = name or getattr(settings, "MODEL_PROVIDER", "openai")
    cls = _CLIENT_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(f"Model provider '{target}' is not registered.")
    return cls()


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BaseModelClient(ABC):
    """Abstract chat-completion client with tool calling."""

    async def complete(self, request: ModelRequest) -> ModelResponse:
        """
        Run one completion.

        Raises
        ------
        ModelCallError
            On any provider, transport or decoding failure.
        """
        try:
            return await self._complete(request)
        except ModelCallError:
            raise
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("%s call failed: %s", type(self).__name__, exc)
            raise ModelCallError(f"{type(exc).__name__}: {exc}") from exc

    @abstractmethod
    async def _complete(self, request: ModelRequest) -> ModelResponse:
        """Provider-specific completion."""


# ---------------------------------------------------------------------------
# Concrete clients
# ---------------------------------------------------------------------------
@register_model_client("openai")
class OpenAIModelClient(BaseModelClient):
    """OpenAI chat completions with function tools."""

    def __init__(self, client: Any = None, model: str | None = None):
        if client is None:
            import openai  # pylint: disable=import-outside-toplevel

            client = openai.AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        self._client = client
        self._model = model or settings.OPENAI_MODEL

    @staticmethod
    def to_messages(request: ModelRequest) -> List[Dict[str, Any]]:
        """Translate neutral messages into the chat-completions format."""
        out: List[Dict[str, Any]] = [{"role": "system", "content": request.system_prompt}]
        for msg in request.messages:
            if msg.role == "tool":
                out.append(
                    {"role": "tool", "tool_call_id": msg.tool_call_id, "content": msg.content or ""}
                )
            elif msg.tool_calls:
                out.append(
                    {
                        "role": "assistant",
                        "content": msg.content,
                        "tool_calls": [
                            {
                                "id": call.id,
                                "type": "function",
                                "function": {
                                    "name": call.skill_name,
                                    "arguments": call.raw_arguments,
                                },
                            }
                            for call in msg.tool_calls
                        ],
                    }
                )
            else:
                out.append({"role": msg.role, "content": msg.content or ""})
        return out

    async def _complete(self, request: ModelRequest) -> ModelResponse:
        kwargs: Dict[str, Any] = {
            "model": self._model,
            "messages": self.to_messages(request),
            "temperature": settings.MODEL_TEMPERATURE,
        }
        if request.tools:
            kwargs["tools"] = [
                {"type": "function", "function": tool.model_dump()} for tool in request.tools
            ]
            kwargs["tool_choice"] = request.tool_choice

        resp = await self._client.chat.completions.create(**kwargs)
        message = resp.choices[0].message
        calls = [
            ToolCallRequest(
                id=tc.id,
                skill_name=tc.function.name,
                raw_arguments=tc.function.arguments or "",
            )
            for tc in (message.tool_calls or [])
        ]
        logger.debug("OpenAI response: content=%r tool_calls=%d", message.content, len(calls))
        return ModelResponse(content=message.content, tool_calls=calls)


@register_model_client("anthropic")
class AnthropicModelClient(BaseModelClient):
    """Anthropic Claude messages with tool use."""

    def __init__(self, client: Any = None, model: str | None = None):
        if client is None:
            import anthropic  # pylint: disable=import-outside-toplevel

            client = anthropic.AsyncAnthropic(api_key=settings.ANTHROPIC_API_KEY)
        self._client = client
        self._model = model or settings.ANTHROPIC_MODEL

    @staticmethod
    def _tool_input(call: ToolCallRequest) -> Dict[str, Any]:
        try:
            parsed = json.loads(call.raw_arguments or "{}")
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}

    @classmethod
    def to_messages(cls, messages: List[ChatMessage]) -> List[Dict[str, Any]]:
        """
        Translate neutral messages into Anthropic content blocks.

        Consecutive tool results are merged into a single ``user`` message, as the API requires.
        """
        out: List[Dict[str, Any]] = []
        for msg in messages:
            if msg.role == "tool":
                block = {
                    "type": "tool_result",
                    "tool_use_id": msg.tool_call_id,
                    "content": msg.content or "",
                }
                prev = out[-1] if out else None
                if prev and prev["role"] == "user" and isinstance(prev["content"], list):
                    prev["content"].append(block)
                else:
                    out.append({"role": "user", "content": [block]})
            elif msg.tool_calls:
                blocks: List[Dict[str, Any]] = []
                if msg.content:
                    blocks.append({"type": "text", "text": msg.content})
                blocks.extend(
                    {
                        "type": "tool_use",
                        "id": call.id,
                        "name": call.skill_name,
                        "input": cls._tool_input(call),
                    }
                    for call in msg.tool_calls
                )
                out.append({"role": "assistant", "content": blocks})
            else:
                out.append({"role": msg.role, "content": msg.content or ""})
        return out

    async def _complete(self, request: ModelRequest) -> ModelResponse:
        kwargs: Dict[str, Any] = {
            "model": self._model,
            "max_tokens": settings.MAX_TOKENS,
            "system": request.system_prompt,
            "messages": self.to_messages(request.messages),
            "temperature": settings.MODEL_TEMPERATURE,
        }
        if request.tools:
            kwargs["tools"] = [
                {"name": t.name, "description": t.description, "input_schema": t.parameters}
                for t in request.tools
            ]
            kwargs["tool_choice"] = {"type": request.tool_choice}

        response = await self._client.messages.create(**kwargs)

        texts: List[str] = []
        calls: List[ToolCallRequest] = []
        for block in response.content:
            if block.type == "text":
                texts.append(block.text)
            elif block.type == "tool_use":
                calls.append(
                    ToolCallRequest(
                        id=block.id,
                        skill_name=block.name,
                        raw_arguments=json.dumps(block.input, ensure_ascii=False),
                    )
                )
        logger.debug("Anthropic response: %d text blocks, %d tool calls", len(texts), len(calls))
        return ModelResponse(content="\n".join(texts) or None, tool_calls=calls)
