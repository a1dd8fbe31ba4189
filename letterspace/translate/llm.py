"""
LLM-based text generation backends.

This module provides:
- Google Gemini generator over the public REST API (default backend)
- OpenAI chat generator
- Anthropic Claude generator

All backends share LLMConfig and resolve their API key from the explicit
argument, the config, or letterspace.keys.KeyManager (environment, OS
keyring, config file), in that order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from letterspace.keys import KeyManager
from letterspace.translate.base import GenerationResult, TextGenerator
from letterspace.translate.errors import AIServiceError
from letterspace.translate.tokens import TokenUsage

logger = logging.getLogger("letterspace-llm")


@dataclass
class LLMConfig:
    """Configuration for LLM generators."""
    model: str = "gemini-1.5-flash"
    temperature: float = 0.7
    top_k: int = 40
    top_p: float = 0.95
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    timeout: float = 60.0


class BaseLLMGenerator(TextGenerator):
    """Shared key resolution for API-backed generators."""

    SERVICE = ""

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        api_key: Optional[str] = None,
        token_usage: Optional[TokenUsage] = None,
    ):
        super().__init__(token_usage)
        self.config = config or LLMConfig()
        self._api_key = api_key or self.config.api_key
        self._client = None

    @property
    def api_key(self) -> Optional[str]:
        if self._api_key is None:
            self._api_key = KeyManager().get_key(self.SERVICE)
        return self._api_key

    def _require_key(self) -> str:
        key = self.api_key
        if not key:
            raise ValueError(
                f"{self.SERVICE.title()} API key required. Set the environment variable, "
                f"pass api_key, or run: letterspace keys set {self.SERVICE}"
            )
        return key


class GeminiGenerator(BaseLLMGenerator):
    """Google Gemini generator using the ``generateContent`` REST endpoint.

    Usage:
        generator = GeminiGenerator(api_key="AIza...")
        result = generator.generate_text("Say hello")
    """

    SERVICE = "gemini"
    DEFAULT_MODEL = "gemini-1.5-flash"
    DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        api_key: Optional[str] = None,
        token_usage: Optional[TokenUsage] = None,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(config, api_key, token_usage)
        self.session = session or requests.Session()

    @property
    def name(self) -> str:
        return f"gemini-{self.config.model}"

    @property
    def endpoint(self) -> str:
        base = (self.config.base_url or self.DEFAULT_BASE_URL).rstrip("/")
        return f"{base}/{self.config.model}:generateContent"

    def build_payload(self, prompt: str, max_tokens: int) -> dict:
        return {
            "contents": [
                {"role": "user", "parts": [{"text": prompt}]},
            ],
            "generationConfig": {
                "temperature": self.config.temperature,
                "topK": self.config.top_k,
                "topP": self.config.top_p,
                "maxOutputTokens": max_tokens,
            },
        }

    @staticmethod
    def parse_response(data: Any) -> tuple[str, int]:
        """Extract the generated text and total token count.

        Raises:
            AIServiceError: the payload carries an error or has no text
        """
        if not isinstance(data, dict):
            raise AIServiceError("Invalid response from Gemini API")
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            error = data.get("error")
            if isinstance(error, dict) and error.get("message"):
                raise AIServiceError(error["message"])
            raise AIServiceError("Invalid response from Gemini API")

        usage = data.get("usageMetadata") or {}
        prompt_tokens = usage.get("promptTokenCount", 0)
        response_tokens = usage.get("candidatesTokenCount", 0)
        total = usage.get("totalTokenCount", prompt_tokens + response_tokens)
        return text, int(total)

    def _generate(self, prompt: str, max_tokens: int) -> GenerationResult:
        key = self._require_key()
        try:
            response = self.session.post(
                self.endpoint,
                params={"key": key},
                json=self.build_payload(prompt, max_tokens),
                timeout=self.config.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise AIServiceError(f"Network error contacting Gemini: {e}") from e

        try:
            data = response.json()
        except ValueError:
            raise AIServiceError(f"Invalid response from Gemini API (HTTP {response.status_code})")

        text, tokens = self.parse_response(data)
        logger.debug(f"Gemini returned {len(text)} chars, {tokens} tokens")
        return GenerationResult(
            text=text,
            tokens_used=tokens,
            metadata={"backend": self.name, "model": self.config.model},
        )


class OpenAIGenerator(BaseLLMGenerator):
    """OpenAI chat-completions generator."""

    SERVICE = "openai"

    @property
    def name(self) -> str:
        return f"openai-{self.config.model}"

    def _get_client(self):
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            from openai import OpenAI

            kwargs = {"api_key": self._require_key(), "timeout": self.config.timeout}
            if self.config.base_url:
                kwargs["base_url"] = self.config.base_url
            self._client = OpenAI(**kwargs)
        return self._client

    def _generate(self, prompt: str, max_tokens: int) -> GenerationResult:
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self.config.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.config.temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            raise AIServiceError(f"OpenAI generation failed: {e}") from e

        usage = getattr(response, "usage", None)
        return GenerationResult(
            text=response.choices[0].message.content or "",
            tokens_used=getattr(usage, "total_tokens", 0) or 0,
            metadata={"backend": self.name, "model": self.config.model},
        )


class AnthropicGenerator(BaseLLMGenerator):
    """Anthropic Claude generator."""

    SERVICE = "anthropic"

    @property
    def name(self) -> str:
        return f"anthropic-{self.config.model}"

    def _get_client(self):
        """Lazy initialization of Anthropic client."""
        if self._client is None:
            import anthropic

            self._client = anthropic.Anthropic(api_key=self._require_key(), timeout=self.config.timeout)
        return self._client

    def _generate(self, prompt: str, max_tokens: int) -> GenerationResult:
        client = self._get_client()
        try:
            response = client.messages.create(
                model=self.config.model,
                max_tokens=max_tokens,
                temperature=self.config.temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            raise AIServiceError(f"Anthropic generation failed: {e}") from e

        usage = getattr(response, "usage", None)
        tokens = (getattr(usage, "input_tokens", 0) or 0) + (getattr(usage, "output_tokens", 0) or 0)
        return GenerationResult(
            text=response.content[0].text if response.content else "",
            tokens_used=tokens,
            metadata={"backend": self.name, "model": self.config.model},
        )
