"""Chat completions client used for structure proposal generation."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from time import perf_counter
from typing import Protocol
from urllib import error as urllib_error
from urllib import request as urllib_request

from squad_builder.config import get_settings

logger = logging.getLogger(__name__)


class StructureModelError(RuntimeError):
    """Raised when the model call fails or returns an unexpected response."""

    def __init__(self, message: str, *, execution_time_ms: int = 0) -> None:
        super().__init__(message)
        self.execution_time_ms = execution_time_ms


@dataclass(slots=True)
class TokenUsage:
    """Token accounting reported by the provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass(slots=True)
class ModelGeneration:
    """Raw text produced by one model call plus call metadata."""

    content: str
    model: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    execution_time_ms: int = 0
    finish_reason: str | None = None


class StructureModelClient(Protocol):
    """Protocol for pluggable text generation providers."""

    def generate(
        self,
        system_instructions: str,
        user_prompt: str,
        *,
        model: str,
        temperature: float,
        json_mode: bool = True,
    ) -> ModelGeneration:
        """Return the generated text for the prompt pair."""


@dataclass(slots=True)
class OpenAIChatCompletionsClient:
    """Minimal OpenAI Chat Completions client using stdlib HTTP."""

    api_key: str
    base_url: str = "https://api.openai.com/v1"
    timeout_seconds: int = 120

    def generate(
        self,
        system_instructions: str,
        user_prompt: str,
        *,
        model: str,
        temperature: float,
        json_mode: bool = True,
    ) -> ModelGeneration:
        """Call OpenAI and return the first choice with usage metadata."""

        payload: dict[str, object] = {
            "model": model,
            "temperature": temperature,
            "messages": [
                {"role": "system", "content": system_instructions},
                {"role": "user", "content": user_prompt},
            ],
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        url = f"{self.base_url.rstrip('/')}/chat/completions"
        req = urllib_request.Request(
            url=url,
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )

        started = perf_counter()
        logger.info("llm.request model=%s json_mode=%s", model, json_mode)
        try:
            with urllib_request.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
        except urllib_error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise StructureModelError(
                f"OpenAI HTTP {exc.code}: {detail}",
                execution_time_ms=_elapsed_ms(started),
            ) from exc
        except urllib_error.URLError as exc:
            raise StructureModelError(
                f"OpenAI request failed: {exc.reason}",
                execution_time_ms=_elapsed_ms(started),
            ) from exc
        execution_time_ms = _elapsed_ms(started)

        try:
            decoded = json.loads(raw)
            choice = decoded["choices"][0]
            content = choice["message"]["content"]
            if not isinstance(content, str):
                raise TypeError("OpenAI response content is not a string")
            usage = decoded.get("usage") or {}
            generation = ModelGeneration(
                content=content,
                model=str(decoded.get("model") or model),
                usage=TokenUsage(
                    input_tokens=int(usage.get("prompt_tokens") or 0),
                    output_tokens=int(usage.get("completion_tokens") or 0),
                    total_tokens=int(usage.get("total_tokens") or 0),
                ),
                execution_time_ms=execution_time_ms,
                finish_reason=choice.get("finish_reason"),
            )
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise StructureModelError(
                "OpenAI returned an unexpected response",
                execution_time_ms=execution_time_ms,
            ) from exc

        logger.info(
            "llm.response model=%s execution_time_ms=%d total_tokens=%d finish_reason=%s",
            generation.model,
            generation.execution_time_ms,
            generation.usage.total_tokens,
            generation.finish_reason,
        )
        return generation


def get_default_model_client() -> StructureModelClient:
    """Return the configured OpenAI client."""

    settings = get_settings()
    if not settings.openai_api_key:
        raise StructureModelError(
            "OPENAI_API_KEY is not configured. Set it in backend/.env before generating proposals."
        )
    return OpenAIChatCompletionsClient(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        timeout_seconds=settings.openai_timeout_seconds,
    )


def _elapsed_ms(started: float) -> int:
    return int((perf_counter() - started) * 1000)
