"""LLM abstraction layer — provider-agnostic text completion.

The workflow generator only needs text-in/text-out: it sends the user's
(enhanced) request plus a fixed system instruction and gets back prose that
should contain a JSON draft of the workflow. Providers implement
ReasoningEngine and plug in without touching the generator.

Also owns ReasoningSettings so the provider choice and API keys are read
from the environment (or .env) the same way as the rest of the agent config.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("n8n_workflow_agent.reasoning")


# ---------------------------------------------------------------------------
# Shared data types
# ---------------------------------------------------------------------------


@dataclass
class Message:
    """A single conversation turn.

    role values:
      "user"      — the automation request (possibly enhanced)
      "assistant" — a previous model reply
    """

    role: str
    content: str


@dataclass
class EngineResponse:
    """Response from the reasoning engine."""

    content: str | None
    stop_reason: str = "end_turn"  # "end_turn" | "max_tokens"
    input_tokens: int = 0
    output_tokens: int = 0


# ---------------------------------------------------------------------------
# Abstract interface
# ---------------------------------------------------------------------------


class ReasoningEngine(ABC):
    """Abstract base class for any LLM provider."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        temperature: float = 0.2,
    ) -> EngineResponse:
        """Send a conversation to the LLM and return its reply.

        Args:
            messages:    Conversation history (user/assistant turns).
            system:      Optional system prompt injected before the conversation.
            temperature: Sampling temperature (0.0–1.0). Lower = more focused.
        """
        ...

    @property
    @abstractmethod
    def provider(self) -> str:
        """Provider name recorded with each generation, e.g. 'anthropic'."""
        ...

    @property
    @abstractmethod
    def model(self) -> str:
        ...

    @property
    def model_id(self) -> str:
        """Human-readable provider/model string for logging."""
        return f"{self.provider}/{self.model}"


# ---------------------------------------------------------------------------
# Claude (Anthropic) implementation
# ---------------------------------------------------------------------------


class ClaudeEngine(ReasoningEngine):
    """Reasoning engine backed by Anthropic's Claude API.

    Requires: pip install 'n8n-workflow-agent[claude]'
    """

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-5") -> None:
        try:
            import anthropic as _anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for ClaudeEngine. "
                "Install it with: pip install 'n8n-workflow-agent[claude]'"
            )
        if not api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY is required for ClaudeEngine. "
                "Set it in your environment or .env file."
            )
        self._client = _anthropic.AsyncAnthropic(api_key=api_key)
        self._model = model
        logger.info("ClaudeEngine initialized: %s", model)

    @property
    def provider(self) -> str:
        return "anthropic"

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        temperature: float = 0.2,
    ) -> EngineResponse:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "max_tokens": 8192,
            "temperature": temperature,
        }
        if system:
            kwargs["system"] = system

        logger.debug("ClaudeEngine.complete: %d messages", len(messages))
        response = await self._client.messages.create(**kwargs)

        text_parts = [block.text for block in response.content if block.type == "text"]
        usage = getattr(response, "usage", None)
        return EngineResponse(
            content="".join(text_parts) or None,
            stop_reason=response.stop_reason or "end_turn",
            input_tokens=getattr(usage, "input_tokens", 0) or 0,
            output_tokens=getattr(usage, "output_tokens", 0) or 0,
        )


# ---------------------------------------------------------------------------
# OpenAI implementation
# ---------------------------------------------------------------------------


class OpenAIEngine(ReasoningEngine):
    """Reasoning engine backed by the OpenAI API (GPT-4o, etc.).

    Requires: pip install 'n8n-workflow-agent[openai]'
    """

    def __init__(self, api_key: str, model: str = "gpt-4o") -> None:
        try:
            import openai as _openai
        except ImportError:
            raise ImportError(
                "The 'openai' package is required for OpenAIEngine. "
                "Install it with: pip install 'n8n-workflow-agent[openai]'"
            )
        if not api_key:
            raise ValueError(
                "OPENAI_API_KEY is required for OpenAIEngine. "
                "Set it in your environment or .env file."
            )
        self._client = _openai.AsyncOpenAI(api_key=api_key)
        self._model = model
        logger.info("OpenAIEngine initialized: %s", model)

    @property
    def provider(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        temperature: float = 0.2,
    ) -> EngineResponse:
        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})
        oai_messages.extend({"role": m.role, "content": m.content} for m in messages)

        logger.debug("OpenAIEngine.complete: %d messages", len(messages))
        response = await self._client.chat.completions.create(
            model=self._model,
            messages=oai_messages,
            temperature=temperature,
        )
        choice = response.choices[0]
        usage = getattr(response, "usage", None)
        return EngineResponse(
            content=choice.message.content,
            stop_reason="max_tokens" if choice.finish_reason == "length" else "end_turn",
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
        )


# ---------------------------------------------------------------------------
# Reasoning engine settings
# ---------------------------------------------------------------------------


class ReasoningSettings(BaseSettings):
    """Settings for the swappable reasoning engine.

    Environment variables:
      REASONING_ENGINE      — LLM provider: "claude" | "openai" (default: "claude")
      REASONING_MODEL       — Model name override; leave unset for provider default
      ANTHROPIC_API_KEY     — Required when provider is "claude"
      OPENAI_API_KEY        — Required when provider is "openai"
      REASONING_TEMPERATURE — Sampling temperature 0.0–1.0 (default: 0.2)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    provider: str = Field(default="claude", validation_alias="REASONING_ENGINE")
    model: str | None = Field(default=None, validation_alias="REASONING_MODEL")
    anthropic_api_key: SecretStr = Field(
        default=SecretStr(""),
        validation_alias="ANTHROPIC_API_KEY",
        repr=False,
    )
    openai_api_key: SecretStr = Field(
        default=SecretStr(""),
        validation_alias="OPENAI_API_KEY",
        repr=False,
    )
    temperature: float = Field(default=0.2, validation_alias="REASONING_TEMPERATURE")

    @field_validator("provider", mode="before")
    @classmethod
    def lowercase_provider(cls, v: object) -> str:
        return str(v).lower()

    @field_validator("model", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: object) -> str | None:
        """Treat empty string REASONING_MODEL as unset (use provider default)."""
        if not v:
            return None
        return str(v)

    @field_validator("temperature")
    @classmethod
    def clamp_temperature(cls, v: float) -> float:
        return max(0.0, min(1.0, v))


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_engine(settings: ReasoningSettings) -> ReasoningEngine:
    """Instantiate the configured reasoning engine from ReasoningSettings."""
    match settings.provider:
        case "claude" | "anthropic":
            return ClaudeEngine(
                api_key=settings.anthropic_api_key.get_secret_value(),
                model=settings.model or "claude-sonnet-4-5",
            )
        case "openai" | "gpt":
            return OpenAIEngine(
                api_key=settings.openai_api_key.get_secret_value(),
                model=settings.model or "gpt-4o",
            )
        case _:
            raise ValueError(
                f"Unknown reasoning engine provider: {settings.provider!r}. "
                f"Valid options: 'claude', 'openai'"
            )
