"""Language-model requests for analyses using the openai SDK or litellm.

Two request shapes are supported:

- ``ReasoningRequest`` → Responses API (``/v1/responses``), via the openai SDK
- ``ChatRequest``      → Chat Completions, via litellm (cloud providers) or the
                         openai SDK when an ``api_base`` is configured

Replies are converted to plain JSON and handed to an ordered chain of
extractors; the first one that finds text wins. Each request is a single
attempt: failures are translated into ``ModelRequestError`` subclasses and
raised to the caller.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

import litellm
import openai
from openai import OpenAI

from .config import CHAT_ENDPOINT, REASONING_ENDPOINT, AnalyzerConfig, LLMConfig
from .models import AnalysisMode
from .prompts import system_prompt

logger = logging.getLogger(__name__)

# Suppress litellm's verbose debug/info logging
litellm.suppress_debug_info = True


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ModelRequestError(Exception):
    """Base class for failed analysis requests."""

    user_message = "The analysis request failed. Please try again."


class QuotaExceededError(ModelRequestError):
    """The account has run out of quota."""

    user_message = (
        "Model quota exceeded. Please check your billing and usage limits."
    )

    def __init__(self) -> None:
        super().__init__("quota exceeded")


class RateLimitedError(ModelRequestError):
    """Too many requests; the provider asked us to slow down."""

    user_message = "Rate limit exceeded. Please wait a moment and try again."

    def __init__(self) -> None:
        super().__init__("rate limited")


class InvalidCredentialsError(ModelRequestError):
    """The API key was rejected."""

    user_message = "Invalid API key. Please check your API key configuration."

    def __init__(self) -> None:
        super().__init__("invalid credentials")


class TransportError(ModelRequestError):
    """Network failure, timeout, or unexpected HTTP status."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"transport error: {detail}")

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return f"Model API error: {self.detail}"


class MalformedResponseError(ModelRequestError):
    """The reply arrived but held no usable text."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"malformed response: {detail}")

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return f"Invalid model response: {self.detail}"


def _is_quota_error(exc: Exception) -> bool:
    """Check whether a 429 means "out of quota" rather than "slow down"."""
    if "insufficient_quota" in (getattr(exc, "code", None), getattr(exc, "type", None)):
        return True
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict) and error.get("type") == "insufficient_quota":
            return True
    return "insufficient_quota" in str(exc)


def translate_error(exc: Exception) -> ModelRequestError:
    """Map an SDK/transport exception onto the request error taxonomy."""
    if isinstance(exc, ModelRequestError):
        return exc
    if isinstance(exc, (openai.RateLimitError, litellm.exceptions.RateLimitError)):
        return QuotaExceededError() if _is_quota_error(exc) else RateLimitedError()
    if isinstance(exc, (openai.AuthenticationError, litellm.exceptions.AuthenticationError)):
        return InvalidCredentialsError()
    # APITimeoutError subclasses APIConnectionError, so check it first
    if isinstance(exc, (openai.APITimeoutError, litellm.exceptions.Timeout, TimeoutError)):
        return TransportError("request timed out")
    if isinstance(exc, (openai.APIConnectionError, litellm.exceptions.APIConnectionError, ConnectionError)):
        return TransportError(f"connection failed: {exc}")
    if isinstance(exc, openai.APIStatusError):
        return TransportError(f"HTTP {exc.status_code}: {exc.message}")
    return TransportError(f"{type(exc).__name__}: {exc}")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Message:
    role: str  # "system" | "user"
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ReasoningRequest:
    """Body of a Responses API call."""

    model: str
    input: tuple[Message, ...]
    max_output_tokens: int = 2000
    reasoning_effort: str = "low"
    endpoint: str = field(default=REASONING_ENDPOINT, init=False)

    def to_body(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "input": [message.to_dict() for message in self.input],
            "max_output_tokens": self.max_output_tokens,
            "reasoning": {"effort": self.reasoning_effort},
        }


@dataclass(frozen=True)
class ChatRequest:
    """Body of a Chat Completions call."""

    model: str
    messages: tuple[Message, ...]
    max_completion_tokens: int = 300
    endpoint: str = field(default=CHAT_ENDPOINT, init=False)

    def to_body(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [message.to_dict() for message in self.messages],
            "max_completion_tokens": self.max_completion_tokens,
        }


ModelRequest = Union[ReasoningRequest, ChatRequest]


def build_request(
    prompt: str,
    mode: AnalysisMode,
    llm_config: LLMConfig,
    analyzer_config: AnalyzerConfig | None = None,
) -> ModelRequest:
    """Build the request for an analysis prompt in the configured endpoint shape."""
    analyzer_config = analyzer_config or AnalyzerConfig()
    messages = (
        Message(role="system", content=system_prompt(mode)),
        Message(role="user", content=prompt),
    )
    if llm_config.endpoint == CHAT_ENDPOINT:
        return ChatRequest(
            model=llm_config.model,
            messages=messages,
            max_completion_tokens=analyzer_config.max_completion_tokens,
        )
    return ReasoningRequest(
        model=llm_config.model,
        input=messages,
        max_output_tokens=analyzer_config.max_output_tokens,
        reasoning_effort=analyzer_config.reasoning_effort,
    )


# ---------------------------------------------------------------------------
# Reply extraction
# ---------------------------------------------------------------------------

Extractor = Callable[[dict[str, Any]], str | None]


def _joined_blocks(blocks: Any, block_type: str) -> str | None:
    """Concatenate the text of all blocks of ``block_type``."""
    if not isinstance(blocks, list):
        return None
    text = "".join(
        block["text"]
        for block in blocks
        if isinstance(block, dict)
        and block.get("type") == block_type
        and isinstance(block.get("text"), str)
    )
    return text or None


def _output_messages(payload: dict[str, Any]) -> list[dict[str, Any]]:
    """Message items of a Responses API reply (reasoning items are skipped)."""
    output = payload.get("output")
    if not isinstance(output, list):
        return []
    return [item for item in output if isinstance(item, dict) and item.get("type") == "message"]


def _choice_part(payload: dict[str, Any], key: str) -> dict[str, Any]:
    """``choices[0][key]`` of a Chat Completions reply, or an empty dict."""
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return {}
    part = choices[0].get(key)
    return part if isinstance(part, dict) else {}


def _non_empty_string(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def extract_output_text_blocks(payload: dict[str, Any]) -> str | None:
    for item in _output_messages(payload):
        text = _joined_blocks(item.get("content"), "output_text")
        if text:
            return text
    return None


def extract_output_string(payload: dict[str, Any]) -> str | None:
    for item in _output_messages(payload):
        text = _non_empty_string(item.get("content"))
        if text:
            return text
    return None


def extract_message_string(payload: dict[str, Any]) -> str | None:
    return _non_empty_string(_choice_part(payload, "message").get("content"))


def extract_message_blocks(payload: dict[str, Any]) -> str | None:
    return _joined_blocks(_choice_part(payload, "message").get("content"), "text")


def extract_delta_string(payload: dict[str, Any]) -> str | None:
    return _non_empty_string(_choice_part(payload, "delta").get("content"))


def extract_delta_blocks(payload: dict[str, Any]) -> str | None:
    return _joined_blocks(_choice_part(payload, "delta").get("content"), "text")


REASONING_EXTRACTORS: tuple[Extractor, ...] = (
    extract_output_text_blocks,
    extract_output_string,
)

CHAT_EXTRACTORS: tuple[Extractor, ...] = (
    extract_message_string,
    extract_message_blocks,
    extract_delta_string,
    extract_delta_blocks,
)


def extract_text(payload: dict[str, Any], extractors: Sequence[Extractor]) -> str | None:
    """Run extractors in order and return the first text found."""
    for extractor in extractors:
        text = extractor(payload)
        if text:
            return text
    return None


def _reasoning_exhausted(payload: dict[str, Any]) -> bool:
    """True when every completion token went to hidden reasoning."""
    usage = payload.get("usage")
    if not isinstance(usage, dict):
        return False
    completion_tokens = usage.get("completion_tokens")
    details = usage.get("completion_tokens_details")
    if not isinstance(completion_tokens, int) or not isinstance(details, dict):
        return False
    reasoning_tokens = details.get("reasoning_tokens")
    return isinstance(reasoning_tokens, int) and reasoning_tokens >= completion_tokens


def _as_payload(response: Any) -> dict[str, Any]:
    """Convert an SDK response object to plain JSON."""
    if isinstance(response, dict):
        return response
    model_dump = getattr(response, "model_dump", None)
    if callable(model_dump):
        payload = model_dump()
        if isinstance(payload, dict):
            return payload
    raise MalformedResponseError(f"unexpected response type {type(response).__name__}")


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelReply:
    text: str
    model: str
    endpoint: str


class ModelClient:
    """Sends analysis requests to the configured model, one attempt each."""

    def __init__(self, config: LLMConfig):
        self.model = config.model
        self.api_base = config.api_base.rstrip("/") if config.api_base else None
        self.api_key = config.api_key

    def complete(self, request: ModelRequest, timeout: float | None = None) -> ModelReply:
        """Send ``request`` and return the reply text.

        Raises:
            ModelRequestError: on any transport, HTTP, or extraction failure
        """
        logger.debug(
            f"Model request: endpoint={request.endpoint} model={request.model} timeout={timeout}"
        )
        try:
            if isinstance(request, ReasoningRequest):
                payload = _as_payload(self._call_responses(request, timeout))
                extractors = REASONING_EXTRACTORS
            else:
                payload = _as_payload(self._call_chat(request, timeout))
                extractors = CHAT_EXTRACTORS
        except (openai.OpenAIError, ConnectionError, TimeoutError) as e:
            error = translate_error(e)
            logger.warning(f"Model request failed ({request.model}): {error}")
            raise error from e

        text = extract_text(payload, extractors)
        if text is None:
            if isinstance(request, ChatRequest) and _reasoning_exhausted(payload):
                raise MalformedResponseError(
                    "all tokens used for reasoning; increase max_completion_tokens"
                )
            logger.debug(f"Unrecognized reply shape: {sorted(payload)}")
            raise MalformedResponseError("no content in any recognized format")

        logger.info(f"Model reply received ({request.model}, {len(text)} chars)")
        return ModelReply(text=text, model=request.model, endpoint=request.endpoint)

    def _openai_client(self, timeout: float | None) -> OpenAI:
        kwargs: dict[str, Any] = {"max_retries": 0}
        if self.api_base:
            kwargs["base_url"] = self.api_base
            kwargs["api_key"] = self.api_key or "no-key-required"
        elif self.api_key:
            kwargs["api_key"] = self.api_key
        if timeout is not None:
            kwargs["timeout"] = timeout
        return OpenAI(**kwargs)

    def _call_responses(self, request: ReasoningRequest, timeout: float | None) -> Any:
        client = self._openai_client(timeout)
        return client.responses.create(**request.to_body())

    def _call_chat(self, request: ChatRequest, timeout: float | None) -> Any:
        body = request.to_body()
        if self.api_base:
            # Local/custom OpenAI-compatible server: use openai SDK directly
            # to avoid litellm model-name parsing and auth issues.
            client = self._openai_client(timeout)
            return client.chat.completions.create(**body)

        # Cloud provider: use litellm for routing (openai/, anthropic/, etc.)
        if self.api_key:
            body["api_key"] = self.api_key
        if timeout is not None:
            body["timeout"] = timeout
        return litellm.completion(**body)
