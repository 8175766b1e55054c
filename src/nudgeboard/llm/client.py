# src/nudgeboard/llm/client.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import openai
from openai import OpenAI

from ..vocabulary.vocab_models import VocabularyEntry, parse_vocabulary_response
from .prompts import VOCABULARY_SYSTEM_PROMPT, vocabulary_user_prompt

logger = logging.getLogger(__name__)

# Every provider is reached through its OpenAI-compatible endpoint.
PROVIDER_BASE_URLS: dict[str, Optional[str]] = {
    "gemini": "https://generativelanguage.googleapis.com/v1beta/openai/",
    "openai": None,  # SDK default
    "anthropic": "https://api.anthropic.com/v1/",
}

# Providers whose compatibility layer honours response_format=json_object.
_JSON_MODE_PROVIDERS = frozenset({"gemini", "openai"})


class VocabularyGenerationError(RuntimeError):
    """User-facing failure of the AI generator (config, auth, network, ...)."""


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    provider: str
    api_key: str
    model: str
    base_url: Optional[str]


def provider_config_from_settings(settings: Any) -> ProviderConfig:
    """
    Select provider credentials from settings (ai_provider + <provider>_api_key/_model).

    Raises VocabularyGenerationError for an unknown provider or a missing key.
    """
    provider = str(getattr(settings, "ai_provider", "gemini") or "gemini").strip().lower()
    if provider not in PROVIDER_BASE_URLS:
        raise VocabularyGenerationError(f"Unsupported AI provider: {provider}")

    api_key = getattr(settings, f"{provider}_api_key", None)
    if not api_key or not str(api_key).strip():
        raise VocabularyGenerationError(
            f"{provider} API key not configured. Set NUDGE_{provider.upper()}_API_KEY in your .env."
        )

    model = str(getattr(settings, f"{provider}_model", "") or "").strip()
    if not model:
        raise VocabularyGenerationError(f"No model configured for provider {provider}.")

    return ProviderConfig(
        provider=provider,
        api_key=str(api_key).strip(),
        model=model,
        base_url=PROVIDER_BASE_URLS[provider],
    )


def _is_auth_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return exc.__class__.__name__ in {"UnauthorizedError"}


def _is_rate_limit_error(exc: Exception) -> bool:
    return isinstance(exc, openai.RateLimitError)


def _is_connection_error(exc: Exception) -> bool:
    # APITimeoutError subclasses APIConnectionError.
    return isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException))


def friendly_llm_error_message(err: Exception) -> str:
    if _is_auth_error(err):
        return "AI authentication failed. Check your API key."
    if _is_rate_limit_error(err):
        return "AI provider is rate-limited. Try again later."
    if _is_connection_error(err):
        return "AI provider network/timeout error. Try again later."
    return str(err).strip() or "AI error."


class VocabularyLLMClient:
    """
    Vocabulary content generator backed by the openai SDK.

    - One request per word, JSON output requested where the provider supports it.
    - No automatic retries: errors surface to the caller as VocabularyGenerationError.
    - The SDK client is created lazily so no secret is needed until first use.
    """

    def __init__(
        self,
        config: ProviderConfig,
        *,
        timeout_seconds: float = 30.0,
        client: Any | None = None,
    ) -> None:
        self._config = config
        self._timeout = httpx.Timeout(timeout_seconds, connect=min(5.0, timeout_seconds))
        self._client = client

    @classmethod
    def from_settings(cls, settings: Any) -> VocabularyLLMClient:
        return cls(
            provider_config_from_settings(settings),
            timeout_seconds=float(getattr(settings, "llm_timeout_seconds", 30.0)),
        )

    @property
    def provider(self) -> str:
        return self._config.provider

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = OpenAI(
                api_key=self._config.api_key,
                base_url=self._config.base_url,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    def _complete(self, word: str) -> str:
        kwargs: dict[str, Any] = {
            "model": self._config.model,
            "messages": [
                {"role": "system", "content": VOCABULARY_SYSTEM_PROMPT},
                {"role": "user", "content": vocabulary_user_prompt(word)},
            ],
            "temperature": 0.7,
            "max_tokens": 2048,
        }
        if self._config.provider in _JSON_MODE_PROVIDERS:
            kwargs["response_format"] = {"type": "json_object"}

        response = self._get_client().chat.completions.create(**kwargs)
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError):
            content = None
        return content or ""

    def generate(self, word: str) -> VocabularyEntry:
        w = (word or "").strip()
        if not w:
            raise VocabularyGenerationError("Word is required")

        logger.info("AI: generating vocabulary word=%r provider=%s model=%s", w, self.provider, self._config.model)
        try:
            raw = self._complete(w)
        except Exception as e:
            logger.info("AI: %s request failed (%s)", self.provider, e.__class__.__name__)
            raise VocabularyGenerationError(friendly_llm_error_message(e)) from e

        logger.debug("AI: raw response length=%d", len(raw))
        return parse_vocabulary_response(raw, w)
