"""
Base text generator interface and implementations.

This module defines:
- Abstract TextGenerator interface that all AI backends implement
- DummyGenerator for testing and offline use
- create_generator factory

Design Philosophy:
- Generators are stateless apart from their client: each call receives
  the complete prompt
- All generators return GenerationResult with token usage and metadata
- An optional TokenUsage budget is checked before every call and
  charged afterwards
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from letterspace.config import DEFAULT_MAX_TOKENS
from letterspace.translate.errors import AIServiceError, TokenLimitError
from letterspace.translate.tokens import TokenUsage, estimate_tokens


@dataclass
class GenerationResult:
    """Result of a text generation call.

    Attributes:
        text: The generated text
        tokens_used: Tokens charged for the call (actual when the API reports it)
        metadata: Additional info (model, backend, ...)
    """
    text: str
    tokens_used: int = 0
    metadata: dict = field(default_factory=dict)


class TextGenerator(ABC):
    """Abstract base class for text generation backends.

    Subclasses implement ``_generate``; ``generate_text`` wraps it with the
    token budget check.
    """

    def __init__(self, token_usage: Optional[TokenUsage] = None):
        self.token_usage = token_usage

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the backend name (e.g., 'gemini', 'openai', 'dummy')."""
        pass

    @abstractmethod
    def _generate(self, prompt: str, max_tokens: int) -> GenerationResult:
        pass

    def generate_text(self, prompt: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> GenerationResult:
        """Generate text for ``prompt``.

        Raises:
            TokenLimitError: the estimated cost exceeds the remaining budget
            AIServiceError: the backend failed
        """
        estimated = estimate_tokens(prompt, max_tokens)
        if self.token_usage is not None and not self.token_usage.can_use(estimated):
            raise TokenLimitError(
                "Monthly token limit reached. Please upgrade your subscription for more tokens."
            )
        result = self._generate(prompt, max_tokens)
        if not result.tokens_used:
            result.tokens_used = estimated
        if self.token_usage is not None:
            self.token_usage.record(result.tokens_used)
        return result


_QUOTED = re.compile(r'"(.*)"\s*$', re.DOTALL)


class DummyGenerator(TextGenerator):
    """A dummy generator for testing.

    Modes:
    - 'echo': Return the quoted payload of the prompt (or the whole prompt)
    - 'upper': Uppercase version of the payload
    - 'prefix': Add a [TRANSLATED] prefix to the payload
    - 'fail': Always raise AIServiceError
    """

    def __init__(self, mode: str = "prefix", token_usage: Optional[TokenUsage] = None):
        super().__init__(token_usage)
        self.mode = mode
        self.prompts: list[str] = []

    @property
    def name(self) -> str:
        return f"dummy-{self.mode}"

    @staticmethod
    def extract_payload(prompt: str) -> str:
        match = _QUOTED.search(prompt)
        return match.group(1) if match else prompt

    def _generate(self, prompt: str, max_tokens: int) -> GenerationResult:
        self.prompts.append(prompt)
        payload = self.extract_payload(prompt)
        if self.mode == "fail":
            raise AIServiceError("dummy backend failure")
        elif self.mode == "upper":
            text = payload.upper()
        elif self.mode == "echo":
            text = payload
        else:  # prefix
            text = f"[TRANSLATED] {payload}"
        return GenerationResult(text=text, metadata={"backend": self.name})


def create_generator(backend: str, **kwargs) -> TextGenerator:
    """Factory function to create a text generator by name.

    Args:
        backend: Backend name ('gemini', 'openai', 'anthropic', 'dummy', ...)
        **kwargs: Backend-specific arguments (api_key, model, token_usage, mode)

    Supported backends and aliases:
        - gemini, google: Google Gemini (default model gemini-1.5-flash)
        - openai, gpt: OpenAI chat models
        - anthropic, claude: Anthropic Claude models
        - dummy, echo, test: Offline test generator
    """
    backend_lower = backend.lower().replace("_", "-")
    token_usage = kwargs.get("token_usage")

    if backend_lower in ("dummy", "echo", "test"):
        mode = kwargs.get("mode") or ("echo" if backend_lower == "echo" else "prefix")
        return DummyGenerator(mode=mode, token_usage=token_usage)

    elif backend_lower in ("gemini", "google"):
        from letterspace.translate.llm import GeminiGenerator, LLMConfig
        config = kwargs.get("config") or LLMConfig(model=kwargs.get("model") or GeminiGenerator.DEFAULT_MODEL)
        return GeminiGenerator(config=config, api_key=kwargs.get("api_key"), token_usage=token_usage)

    elif backend_lower in ("openai", "gpt"):
        from letterspace.translate.llm import OpenAIGenerator, LLMConfig
        config = kwargs.get("config") or LLMConfig(model=kwargs.get("model") or "gpt-4o-mini")
        return OpenAIGenerator(config=config, api_key=kwargs.get("api_key"), token_usage=token_usage)

    elif backend_lower in ("anthropic", "claude"):
        from letterspace.translate.llm import AnthropicGenerator, LLMConfig
        config = kwargs.get("config") or LLMConfig(model=kwargs.get("model") or "claude-3-5-haiku-20241022")
        return AnthropicGenerator(config=config, api_key=kwargs.get("api_key"), token_usage=token_usage)

    else:
        available = ["gemini", "openai", "anthropic", "dummy"]
        raise ValueError(
            f"Unknown generator backend: {backend}. "
            f"Available backends: {', '.join(available)}"
        )
