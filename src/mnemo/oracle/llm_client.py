"""LLM client over the Anthropic and OpenAI SDKs."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial

from mnemo.core.config import LLMConfig
from mnemo.core.errors import ConfigError, ErrorCode, OracleError

logger = logging.getLogger(__name__)

RETRY_DELAY_SECONDS = 5


@dataclass
class LLMResponse:
    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class LLMClient:
    """Sends a single-turn prompt to the configured provider.

    - "anthropic": anthropic SDK
    - "openai": openai SDK against OpenAI
    - "openai-compatible": openai SDK against ``base_url`` (Ollama, vLLM, ...)

    Transient errors (rate limit, connection, timeout) get one retry after
    a short pause; anything else raises ``OracleError`` immediately.
    """

    def __init__(self, config: LLMConfig) -> None:
        config.validate()
        self.config = config
        self._client = self._create_client()

    def _create_client(self):
        kwargs = {}
        api_key = self.config.resolve_api_key()
        if api_key:
            kwargs["api_key"] = api_key
        if self.config.base_url:
            kwargs["base_url"] = self.config.base_url

        if self.config.provider == "anthropic":
            import anthropic

            return anthropic.Anthropic(**kwargs)
        if self.config.provider in ("openai", "openai-compatible"):
            import openai

            return openai.OpenAI(**kwargs)
        raise ConfigError(
            f"Unknown LLM provider: {self.config.provider!r}",
            ErrorCode.CONFIG_INVALID,
            {"provider": self.config.provider},
        )

    def complete(self, prompt: str, max_tokens: int | None = None, purpose: str = "request") -> LLMResponse:
        """Send ``prompt`` as one user message and return the reply text.

        Raises:
            OracleError: the provider failed, or kept failing after a retry.
        """
        messages = [{"role": "user", "content": prompt}]
        tokens = max_tokens if max_tokens is not None else self.config.max_tokens

        if self.config.provider == "anthropic":
            import anthropic

            transient = (anthropic.RateLimitError, anthropic.APIConnectionError, anthropic.APITimeoutError)
            fatal = anthropic.APIError
            call = partial(self._call_anthropic, messages, tokens)
        else:
            import openai

            transient = (openai.RateLimitError, openai.APIConnectionError, openai.APITimeoutError)
            fatal = openai.APIError
            call = partial(self._call_openai, messages, tokens)

        return self._with_retry(call, transient, fatal, purpose)

    def _with_retry(
        self,
        call: Callable[[], LLMResponse],
        transient: tuple[type[Exception], ...],
        fatal: type[Exception],
        purpose: str,
    ) -> LLMResponse:
        for attempt in range(2):
            try:
                return call()
            except transient as exc:
                if attempt == 0:
                    logger.warning("Transient LLM error during %s, retrying in %ss: %s", purpose, RETRY_DELAY_SECONDS, exc)
                    time.sleep(RETRY_DELAY_SECONDS)
                    continue
                raise OracleError(
                    f"LLM {purpose} failed after 2 attempts: {exc}",
                    ErrorCode.LLM_CALL_FAILED,
                    {"provider": self.config.provider, "model": self.config.model},
                ) from exc
            except fatal as exc:
                raise OracleError(
                    f"LLM API error during {purpose}: {exc}",
                    ErrorCode.LLM_CALL_FAILED,
                    {"provider": self.config.provider, "model": self.config.model},
                ) from exc
        raise OracleError(f"LLM {purpose} failed", ErrorCode.LLM_CALL_FAILED)

    def _call_anthropic(self, messages: list[dict], max_tokens: int) -> LLMResponse:
        response = self._client.messages.create(
            model=self.config.model,
            max_tokens=max_tokens,
            temperature=self.config.temperature,
            messages=messages,
        )
        texts = [block.text for block in response.content or [] if isinstance(getattr(block, "text", None), str)]
        if not texts:
            raise self._empty_reply()
        return LLMResponse(
            content="".join(texts),
            model=getattr(response, "model", None) or self.config.model,
            input_tokens=getattr(response.usage, "input_tokens", 0),
            output_tokens=getattr(response.usage, "output_tokens", 0),
        )

    def _call_openai(self, messages: list[dict], max_tokens: int) -> LLMResponse:
        response = self._client.chat.completions.create(
            model=self.config.model,
            max_tokens=max_tokens,
            temperature=self.config.temperature,
            messages=messages,
        )
        if not response.choices or response.choices[0].message.content is None:
            raise self._empty_reply()
        usage = response.usage
        return LLMResponse(
            content=response.choices[0].message.content,
            model=response.model or self.config.model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )

    def _empty_reply(self) -> OracleError:
        return OracleError(
            "LLM returned no text content",
            ErrorCode.LLM_CALL_FAILED,
            {"provider": self.config.provider, "model": self.config.model},
        )
