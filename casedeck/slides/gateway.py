# casedeck/slides/gateway.py
"""
AI gateway: the only component that talks to a language model.

Providers wrap one vendor API each and translate vendor failures into the
pipeline's typed errors. The gateway in front of them owns the daily budget,
the per-minute rate limit, transport timeouts and structured-output checks.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, Optional, Union

import anyio
import httpx
import orjson
from pydantic import ValidationError

from casedeck.config import Settings, get_settings
from casedeck.slides.errors import (
    BudgetExceeded,
    CaseDeckError,
    MisconfiguredCredentials,
    RateLimited,
    SchemaViolation,
    TransportFailure,
)
from casedeck.slides.schemas import SchemaDescriptor, get_schema

logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    name = "base"
    default_model = ""

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        response_format: Optional[SchemaDescriptor] = None,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        """Return the raw text of the model's reply."""
        pass


def _schema_instruction(descriptor: SchemaDescriptor) -> str:
    schema = orjson.dumps(descriptor.json_schema, option=orjson.OPT_INDENT_2).decode()
    return f"\n\nRespond with valid JSON matching this schema:\n{schema}"


class OpenAIProvider(LLMProvider):
    """OpenAI API provider using structured outputs."""

    name = "openai"
    default_model = "gpt-4o-mini"

    def __init__(self, api_key: str, model: Optional[str] = None, base_url: Optional[str] = None):
        try:
            import openai
        except ImportError:
            raise ImportError(
                "OpenAI package not installed. Install with: pip install openai"
            )

        self._sdk = openai
        self.client = openai.AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.model = model or self.default_model

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        response_format: Optional[SchemaDescriptor] = None,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        kwargs: Dict[str, Any] = {
            "model": model or self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if response_format:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": response_format.name,
                    "schema": response_format.json_schema,
                },
            }

        sdk = self._sdk
        try:
            response = await self.client.chat.completions.create(**kwargs)
        except sdk.AuthenticationError as exc:
            raise MisconfiguredCredentials("OpenAI rejected the API key") from exc
        except sdk.RateLimitError as exc:
            if "insufficient_quota" in str(exc):
                raise BudgetExceeded("OpenAI quota exhausted") from exc
            raise RateLimited("OpenAI rate limit reached") from exc
        except (sdk.APITimeoutError, sdk.APIConnectionError) as exc:
            raise TransportFailure(f"OpenAI unreachable: {exc}") from exc
        except sdk.APIStatusError as exc:
            raise TransportFailure(
                f"OpenAI returned HTTP {exc.status_code}", status=exc.status_code
            ) from exc

        return response.choices[0].message.content or ""


class AnthropicProvider(LLMProvider):
    """Anthropic Claude API provider."""

    name = "anthropic"
    default_model = "claude-3-haiku-20240307"

    def __init__(self, api_key: str, model: Optional[str] = None):
        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "Anthropic package not installed. Install with: pip install anthropic"
            )

        self._sdk = anthropic
        self.client = anthropic.AsyncAnthropic(api_key=api_key)
        self.model = model or self.default_model

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        response_format: Optional[SchemaDescriptor] = None,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        if response_format:
            system_prompt += _schema_instruction(response_format)

        sdk = self._sdk
        try:
            response = await self.client.messages.create(
                model=model or self.model,
                max_tokens=max_tokens,
                temperature=min(temperature, 1.0),
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except sdk.AuthenticationError as exc:
            raise MisconfiguredCredentials("Anthropic rejected the API key") from exc
        except sdk.RateLimitError as exc:
            raise RateLimited("Anthropic rate limit reached") from exc
        except (sdk.APITimeoutError, sdk.APIConnectionError) as exc:
            raise TransportFailure(f"Anthropic unreachable: {exc}") from exc
        except sdk.APIStatusError as exc:
            raise TransportFailure(
                f"Anthropic returned HTTP {exc.status_code}", status=exc.status_code
            ) from exc

        return "".join(
            getattr(part, "text", "") for part in response.content
        )


class OllamaProvider(LLMProvider):
    """Ollama local LLM provider."""

    name = "ollama"
    default_model = "llama3.2"

    def __init__(
        self,
        model: Optional[str] = None,
        base_url: str = "http://localhost:11434",
        timeout: float = 60.0,
    ):
        """
        Initialize Ollama provider.

        Args:
            model: Ollama model name (e.g., llama3.2, mistral)
            base_url: Ollama server URL
            timeout: Per-request timeout in seconds
        """
        self.model = model or self.default_model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        response_format: Optional[SchemaDescriptor] = None,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        payload: Dict[str, Any] = {
            "model": model or self.model,
            "system": system_prompt,
            "prompt": user_prompt,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }
        if response_format:
            payload["format"] = response_format.json_schema

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}/api/generate", json=payload)
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 429:
                raise RateLimited("Ollama is rate limiting requests") from exc
            if status in (401, 403):
                raise MisconfiguredCredentials("Ollama refused the request") from exc
            raise TransportFailure(f"Ollama returned HTTP {status}", status=status) from exc
        except httpx.HTTPError as exc:
            raise TransportFailure(f"Ollama unreachable: {exc}") from exc

        return result.get("response", "")


def extract_json(content: str) -> Any:
    """Parse a JSON reply, tolerating a surrounding markdown code fence."""
    text = content.strip()
    if "```" in text:
        start = text.find("```json")
        start = start + 7 if start != -1 else text.find("```") + 3
        end = text.find("```", start)
        text = text[start:end if end != -1 else None].strip()
    return orjson.loads(text)


class AIGateway:
    """Budgeted, rate-limited access to one provider."""

    def __init__(
        self,
        provider: LLMProvider,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.provider = provider
        self.settings = settings or get_settings()
        self.clock = clock
        self._day: Optional[str] = None
        self._day_count = 0
        self._recent: Deque[float] = deque()

    @property
    def calls_today(self) -> int:
        return self._day_count if self._day == self._today() else 0

    def _today(self) -> str:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc).strftime("%Y-%m-%d")

    def _charge(self) -> None:
        now = self.clock()
        today = self._today()
        if self._day != today:
            self._day = today
            self._day_count = 0

        if self._day_count >= self.settings.daily_request_limit:
            logger.warning(
                f"Daily request budget of {self.settings.daily_request_limit} exhausted"
            )
            raise BudgetExceeded(
                "Daily usage limit reached. Please try again tomorrow.",
                limit=self.settings.daily_request_limit,
            )

        while self._recent and now - self._recent[0] >= 60:
            self._recent.popleft()
        if len(self._recent) >= self.settings.requests_per_minute:
            logger.warning("Per-minute request limit reached")
            raise RateLimited(
                "Too many requests. Please wait a moment.",
                limit=self.settings.requests_per_minute,
            )

        self._day_count += 1
        self._recent.append(now)

    async def invoke(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        schema: Union[SchemaDescriptor, str, None] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Any:
        """
        Send one prompt to the provider.

        Returns the parsed object when ``schema`` is given (guaranteed to
        conform), otherwise the reply text.
        """
        descriptor = get_schema(schema) if isinstance(schema, str) else schema
        temperature = self.settings.llm_temperature if temperature is None else temperature
        max_tokens = max_tokens or self.settings.llm_max_tokens

        self._charge()
        started = time.perf_counter()
        try:
            with anyio.fail_after(self.settings.llm_timeout_seconds):
                content = await self.provider.generate(
                    system_prompt or "",
                    prompt,
                    response_format=descriptor,
                    model=model,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
        except TimeoutError as exc:
            raise TransportFailure(
                f"{self.provider.name} timed out after {self.settings.llm_timeout_seconds}s"
            ) from exc
        except CaseDeckError:
            raise
        except Exception as exc:
            logger.error(f"{self.provider.name} call failed: {exc}")
            raise TransportFailure(f"{self.provider.name} call failed: {exc}") from exc

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            f"{self.provider.name} call model={model or 'default'} "
            f"schema={descriptor.name if descriptor else 'none'} took {elapsed_ms}ms"
        )

        if descriptor is None:
            return content

        try:
            data = extract_json(content)
        except orjson.JSONDecodeError as exc:
            raise SchemaViolation(
                f"Reply is not valid JSON for {descriptor.name}", schema=descriptor.name
            ) from exc
        try:
            descriptor.model.model_validate(data)
        except ValidationError as exc:
            raise SchemaViolation(
                f"Reply does not match {descriptor.name}",
                schema=descriptor.name,
                problems=exc.error_count(),
            ) from exc
        return data


def build_provider(settings: Settings) -> LLMProvider:
    """Create the configured provider, raising when it cannot be used."""
    provider = settings.llm_provider.lower()
    if provider == "openai":
        if not settings.openai_api_key:
            raise MisconfiguredCredentials("OPENAI_API_KEY is not configured")
        instance: LLMProvider = OpenAIProvider(
            api_key=settings.openai_api_key,
            model=settings.llm_model,
            base_url=settings.llm_base_url,
        )
    elif provider == "anthropic":
        if not settings.anthropic_api_key:
            raise MisconfiguredCredentials("ANTHROPIC_API_KEY is not configured")
        instance = AnthropicProvider(
            api_key=settings.anthropic_api_key, model=settings.llm_model
        )
    elif provider == "ollama":
        instance = OllamaProvider(
            model=settings.llm_model,
            base_url=settings.llm_base_url or "http://localhost:11434",
            timeout=settings.llm_timeout_seconds,
        )
    elif provider == "none":
        raise MisconfiguredCredentials("No LLM provider configured (LLM_PROVIDER=none)")
    else:
        raise MisconfiguredCredentials(f"Unknown LLM provider: {settings.llm_provider}")

    logger.info(f"Initialized {instance.name} provider with model: {instance.model}")
    return instance


def build_gateway(settings: Settings | None = None) -> AIGateway:
    settings = settings or get_settings()
    return AIGateway(build_provider(settings), settings)
