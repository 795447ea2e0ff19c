"""LLM generation layer for the proof helper.

Supports:
- Gemini "contents" API (google-genai) as the primary backend
- OpenAI Responses API with reasoning.effort (GPT-5 / o-series), or Chat Completions
- Anthropic Messages API

The backend is resolved once per engine invocation and passed around as a
value; SDK clients are created lazily per adapter instance.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional, Union

import anthropic
import openai
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from proof_helper import config
from proof_helper.errors import ConfigurationError
from proof_helper.models import Conversation, Role
from proof_helper.utils import CancellationToken, merge_usage

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
    genai_errors.ServerError,
)


class Provider(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class WireShape(str, Enum):
    RESPONSES = "responses"  # reasoning-effort request/response
    CHAT = "chat"  # conventional chat messages


@dataclass(frozen=True)
class GeminiBackend:
    model: str
    provider: ClassVar[Provider] = Provider.GEMINI


@dataclass(frozen=True)
class OpenAIBackend:
    model: str
    shape: WireShape
    reasoning_effort: str = config.DEFAULT_REASONING_EFFORT
    provider: ClassVar[Provider] = Provider.OPENAI


@dataclass(frozen=True)
class AnthropicBackend:
    model: str
    provider: ClassVar[Provider] = Provider.ANTHROPIC


Backend = Union[GeminiBackend, OpenAIBackend, AnthropicBackend]


def describe_backend(backend: Backend) -> str:
    return f'Provider: {backend.provider.value}, Model: "{backend.model}"'


# ============================================================================
# Backend resolution
# ============================================================================


def _env(environ: Mapping[str, str], *names: str) -> str:
    for name in names:
        value = (environ.get(name) or "").strip()
        if value:
            return value
    return ""


def resolve_reasoning_effort(environ: Optional[Mapping[str, str]] = None) -> str:
    """Effort from GPT5_REASONING_EFFORT; anything outside low/medium/high means low."""
    environ = os.environ if environ is None else environ
    effort = _env(environ, config.REASONING_EFFORT_VAR).lower()
    if effort in config.REASONING_EFFORTS:
        return effort
    return config.DEFAULT_REASONING_EFFORT


def select_wire_shape(model: str) -> WireShape:
    if model.lower().startswith(config.REASONING_MODEL_PREFIXES):
        return WireShape.RESPONSES
    return WireShape.CHAT


def _openai_backend(model: str, environ: Mapping[str, str]) -> OpenAIBackend:
    shape = select_wire_shape(model)
    effort = resolve_reasoning_effort(environ) if shape is WireShape.RESPONSES else config.DEFAULT_REASONING_EFFORT
    return OpenAIBackend(model=model, shape=shape, reasoning_effort=effort)


def _backend_from_string(value: str, environ: Mapping[str, str]) -> Backend:
    lowered = value.lower()
    if lowered.startswith(config.OPENAI_TAG):
        model = value[len(config.OPENAI_TAG):].strip()
        if not model:
            raise ConfigurationError(
                "OpenAI provider selected but model name is missing. Use openai:<model>."
            )
        if not _env(environ, config.OPENAI_API_KEY_VAR):
            raise ConfigurationError("OPENAI_API_KEY is required to use OpenAI models.")
        return _openai_backend(model, environ)

    if lowered.startswith(config.ANTHROPIC_TAG):
        model = value[len(config.ANTHROPIC_TAG):].strip()
        if not model:
            raise ConfigurationError(
                "Anthropic provider selected but model name is missing. Use anthropic:<model>."
            )
        if not _env(environ, config.ANTHROPIC_API_KEY_VAR):
            raise ConfigurationError("ANTHROPIC_API_KEY is required to use Anthropic models.")
        return AnthropicBackend(model=model)

    return GeminiBackend(model=value)


def resolve_backend(
    override: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Backend:
    """Pick the backend: explicit override, then PROOF_HELPER_MODEL, then credentials, then default."""
    environ = os.environ if environ is None else environ

    override = (override or "").strip()
    if override:
        return _backend_from_string(override, environ)

    raw = _env(environ, config.MODEL_OVERRIDE_VAR)
    if raw:
        return _backend_from_string(raw, environ)

    if _env(environ, config.OPENAI_API_KEY_VAR):
        return _openai_backend(config.DEFAULT_OPENAI_MODEL, environ)

    return GeminiBackend(model=config.DEFAULT_GEMINI_MODEL)


# ============================================================================
# Response parsing
# ============================================================================


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _join_texts(items: Any) -> str:
    if not isinstance(items, (list, tuple)):
        return ""
    texts = [_field(item, "text") for item in items]
    return "\n".join(t for t in texts if isinstance(t, str) and t)


def extract_output_text(resp: Any) -> str:
    """Pull output text from a Responses API body, tolerating SDK/shape differences."""
    direct = _field(resp, "output_text")
    if isinstance(direct, str) and direct.strip():
        return direct

    output = _field(resp, "output")
    if isinstance(output, (list, tuple)):
        joined = "\n".join(t for t in (_join_texts(_field(o, "content")) for o in output) if t)
        if joined.strip():
            return joined

    joined = _join_texts(_field(resp, "content"))
    if joined.strip():
        return joined

    return ""


def _usage_openai_responses(resp: Any) -> dict[str, int]:
    usage: dict[str, int] = {"openai_calls": 1}
    u = _field(resp, "usage")
    if u is None:
        return usage
    details = _field(u, "output_tokens_details")
    usage.update({
        "openai_input_tokens": int(_field(u, "input_tokens") or 0),
        "openai_output_tokens": int(_field(u, "output_tokens") or 0),
        "openai_reasoning_tokens": int(_field(details, "reasoning_tokens") or 0) if details else 0,
    })
    return usage


def _usage_openai_chat(resp: Any) -> dict[str, int]:
    usage: dict[str, int] = {"openai_calls": 1}
    u = _field(resp, "usage")
    if u is None:
        return usage
    usage.update({
        "openai_input_tokens": int(_field(u, "prompt_tokens") or 0),
        "openai_output_tokens": int(_field(u, "completion_tokens") or 0),
    })
    return usage


def _usage_gemini(resp: Any) -> dict[str, int]:
    usage: dict[str, int] = {"gemini_calls": 1}
    u = _field(resp, "usage_metadata")
    if u is None:
        return usage
    usage.update({
        "gemini_input_tokens": int(_field(u, "prompt_token_count") or 0),
        "gemini_output_tokens": int(_field(u, "candidates_token_count") or 0),
        "gemini_thinking_tokens": int(_field(u, "thoughts_token_count") or 0),
    })
    return usage


def _usage_anthropic(resp: Any) -> dict[str, int]:
    usage: dict[str, int] = {"anthropic_calls": 1}
    u = _field(resp, "usage")
    if u is None:
        return usage
    usage.update({
        "anthropic_input_tokens": int(_field(u, "input_tokens") or 0),
        "anthropic_output_tokens": int(_field(u, "output_tokens") or 0),
    })
    return usage


# ============================================================================
# Conversation mapping
# ============================================================================


def _role_messages(conversation: Conversation, *, model_role: str) -> list[dict[str, str]]:
    """One message per turn, parts joined by blank lines; empty turns dropped."""
    messages = []
    for turn in conversation:
        text = turn.text
        if not text:
            continue
        role = model_role if turn.role is Role.MODEL else "user"
        messages.append({"role": role, "content": text})
    return messages


def _merged_messages(conversation: Conversation, *, model_role: str) -> list[dict[str, str]]:
    """Like _role_messages but consecutive same-role turns are merged."""
    merged: list[dict[str, str]] = []
    for msg in _role_messages(conversation, model_role=model_role):
        if merged and merged[-1]["role"] == msg["role"]:
            merged[-1]["content"] += "\n\n" + msg["content"]
        else:
            merged.append(msg)
    return merged


def _gemini_contents(conversation: Conversation) -> list[genai_types.Content]:
    contents = []
    for turn in conversation:
        parts = [genai_types.Part(text=p) for p in turn.parts if p]
        if parts:
            contents.append(genai_types.Content(role=turn.role.value, parts=parts))
    return contents


# ============================================================================
# Adapter
# ============================================================================


class GenerationAdapter:
    """Single `generate` entry point over the configured backend.

    `resolve()` runs lazily on first use and caches the backend for the life
    of the adapter. Clients may be injected (tests, custom gateways).
    """

    def __init__(
        self,
        model_override: Optional[str] = None,
        *,
        environ: Optional[Mapping[str, str]] = None,
        gemini_client: Any = None,
        openai_client: Any = None,
        anthropic_client: Any = None,
        attempts: Optional[int] = None,
    ):
        self.model_override = model_override
        self._environ = environ
        self._backend: Optional[Backend] = None
        self._gemini_client = gemini_client
        self._openai_client = openai_client
        self._anthropic_client = anthropic_client
        self.attempts = attempts or config.GENERATION_ATTEMPTS
        self.usage: dict[str, int] = {}

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def resolve(self) -> Backend:
        if self._backend is None:
            self._backend = resolve_backend(self.model_override, self.environ)
            logger.info("Resolved generation backend: %s", describe_backend(self._backend))
        return self._backend

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    def _gemini(self) -> Any:
        if self._gemini_client is None:
            key = _env(self.environ, *config.GEMINI_API_KEY_VARS)
            if not key:
                raise ConfigurationError("GEMINI_API_KEY (or GOOGLE_API_KEY) is required to use Gemini models.")
            self._gemini_client = genai.Client(api_key=key)
        return self._gemini_client

    def _openai(self) -> Any:
        if self._openai_client is None:
            key = _env(self.environ, config.OPENAI_API_KEY_VAR)
            if not key:
                raise ConfigurationError("OPENAI_API_KEY is required to use OpenAI models.")
            base_url = _env(self.environ, *config.OPENAI_BASE_URL_VARS) or None
            self._openai_client = openai.OpenAI(api_key=key, base_url=base_url)
        return self._openai_client

    def _anthropic(self) -> Any:
        if self._anthropic_client is None:
            key = _env(self.environ, config.ANTHROPIC_API_KEY_VAR)
            if not key:
                raise ConfigurationError("ANTHROPIC_API_KEY is required to use Anthropic models.")
            self._anthropic_client = anthropic.Anthropic(api_key=key)
        return self._anthropic_client

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate(
        self,
        system_instruction: str,
        conversation: Conversation,
        cancel: CancellationToken,
    ) -> str:
        """Return the model's text for `conversation`; raises ProofCancelled if cancelled first."""
        cancel.raise_if_cancelled()
        backend = self.resolve()

        retrying = Retrying(
            stop=stop_after_attempt(self.attempts) | (lambda _state: cancel.cancelled),
            wait=wait_exponential_jitter(initial=config.RETRY_INITIAL_WAIT_S, max=config.RETRY_MAX_WAIT_S),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                text, usage = self._dispatch(backend, (system_instruction or "").strip(), conversation)

        merge_usage(self.usage, usage)
        return text

    def _dispatch(self, backend: Backend, system: str, conversation: Conversation) -> tuple[str, dict[str, int]]:
        if isinstance(backend, OpenAIBackend):
            return self._generate_openai(backend, system, conversation)
        if isinstance(backend, AnthropicBackend):
            return self._generate_anthropic(backend, system, conversation)
        return self._generate_gemini(backend, system, conversation)

    def _generate_gemini(self, backend: GeminiBackend, system: str, conversation: Conversation) -> tuple[str, dict[str, int]]:
        client = self._gemini()
        req_config = genai_types.GenerateContentConfig(
            system_instruction=system or None,
            temperature=config.TEMPERATURE,
            top_p=config.TOP_P,
            thinking_config=genai_types.ThinkingConfig(thinking_budget=config.GEMINI_THINKING_BUDGET),
        )
        resp = client.models.generate_content(
            model=backend.model,
            contents=_gemini_contents(conversation),
            config=req_config,
        )
        return (_field(resp, "text") or ""), _usage_gemini(resp)

    def _generate_openai(self, backend: OpenAIBackend, system: str, conversation: Conversation) -> tuple[str, dict[str, int]]:
        client = self._openai()
        messages = _role_messages(conversation, model_role="assistant")

        if backend.shape is WireShape.RESPONSES:
            kwargs: dict[str, Any] = {
                "model": backend.model,
                "reasoning": {"effort": backend.reasoning_effort},
                "input": [{**m, "type": "message"} for m in messages],
            }
            if system:
                kwargs["instructions"] = system
            resp = client.responses.create(**kwargs)
            return extract_output_text(resp), _usage_openai_responses(resp)

        chat_messages = ([{"role": "system", "content": system}] if system else []) + messages
        resp = client.chat.completions.create(
            model=backend.model,
            messages=chat_messages,
            temperature=config.TEMPERATURE,
            top_p=config.TOP_P,
        )
        choices = _field(resp, "choices") or []
        content = _field(_field(choices[0], "message"), "content") if choices else None
        return (content or ""), _usage_openai_chat(resp)

    def _generate_anthropic(self, backend: AnthropicBackend, system: str, conversation: Conversation) -> tuple[str, dict[str, int]]:
        client = self._anthropic()
        kwargs: dict[str, Any] = {
            "model": backend.model,
            "max_tokens": config.ANTHROPIC_MAX_TOKENS,
            "temperature": config.TEMPERATURE,
            "messages": _merged_messages(conversation, model_role="assistant"),
        }
        if system:
            kwargs["system"] = system
        resp = client.messages.create(**kwargs)

        text_parts = []
        for block in _field(resp, "content") or []:
            if _field(block, "type") == "text":
                text_parts.append(_field(block, "text") or "")
        return "".join(text_parts), _usage_anthropic(resp)
