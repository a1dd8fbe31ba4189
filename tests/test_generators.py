"""
Tests for text generation backends.

No network access: the Gemini generator is driven through a fake HTTP
session.

Run with: pytest tests/test_generators.py -v
"""

import pytest
import requests

from letterspace.settings import KeyValueStore
from letterspace.translate.base import DummyGenerator, create_generator
from letterspace.translate.errors import AIServiceError, TokenLimitError
from letterspace.translate.llm import (
    AnthropicGenerator,
    GeminiGenerator,
    LLMConfig,
    OpenAIGenerator,
)
from letterspace.translate.tokens import BASE_TOKEN_LIMIT, TokenUsage


class FakeResponse:
    def __init__(self, payload=None, status_code=200, invalid=False):
        self.payload = payload
        self.status_code = status_code
        self.invalid = invalid

    def json(self):
        if self.invalid:
            raise ValueError("not json")
        return self.payload


class FakeSession:
    """Records POST calls and replays a canned response."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, params=None, json=None, timeout=None):
        self.calls.append({"url": url, "params": params, "json": json, "timeout": timeout})
        if self.error:
            raise self.error
        return self.response


def gemini_reply(text, total_tokens=None):
    payload = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    if total_tokens is not None:
        payload["usageMetadata"] = {"totalTokenCount": total_tokens}
    return FakeResponse(payload)


@pytest.fixture
def usage(tmp_path):
    return TokenUsage(KeyValueStore(tmp_path / "settings.json"))


class TestDummyGenerator:
    """Tests for the offline generator."""

    PROMPT = 'Translate this.\n\nText to translate:\n"Hello world"'

    def test_prefix_mode(self):
        result = DummyGenerator().generate_text(self.PROMPT)
        assert result.text == "[TRANSLATED] Hello world"

    def test_echo_and_upper(self):
        assert DummyGenerator("echo").generate_text(self.PROMPT).text == "Hello world"
        assert DummyGenerator("upper").generate_text(self.PROMPT).text == "HELLO WORLD"

    def test_unquoted_prompt_echoed_whole(self):
        assert DummyGenerator("echo").generate_text("just this").text == "just this"

    def test_fail_mode(self):
        with pytest.raises(AIServiceError):
            DummyGenerator("fail").generate_text(self.PROMPT)

    def test_prompts_recorded(self):
        generator = DummyGenerator()
        generator.generate_text("one")
        generator.generate_text("two")
        assert generator.prompts == ["one", "two"]

    def test_estimated_tokens_recorded(self, usage):
        generator = DummyGenerator(token_usage=usage)
        result = generator.generate_text("x" * 40, max_tokens=100)

        assert result.tokens_used == 110
        assert usage.current_usage == 110

    def test_token_limit_blocks_call(self, usage):
        """An exhausted budget fails before the backend is called."""
        usage.record(BASE_TOKEN_LIMIT)
        generator = DummyGenerator(token_usage=usage)

        with pytest.raises(TokenLimitError):
            generator.generate_text(self.PROMPT)
        assert generator.prompts == []


class TestGeminiGenerator:
    """Tests for the Gemini REST client."""

    def make(self, session, **kwargs):
        return GeminiGenerator(api_key="test-key", session=session, **kwargs)

    def test_request_shape(self):
        session = FakeSession(gemini_reply("Hola"))
        self.make(session).generate_text("Say hi", max_tokens=256)

        call = session.calls[0]
        assert call["url"] == (
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent"
        )
        assert call["params"] == {"key": "test-key"}
        assert call["json"]["contents"][0]["parts"][0]["text"] == "Say hi"
        assert call["json"]["generationConfig"] == {
            "temperature": 0.7,
            "topK": 40,
            "topP": 0.95,
            "maxOutputTokens": 256,
        }

    def test_reported_tokens_used(self, usage):
        session = FakeSession(gemini_reply("Hola", total_tokens=37))
        result = self.make(session, token_usage=usage).generate_text("Say hi")

        assert result.text == "Hola"
        assert result.tokens_used == 37
        assert usage.current_usage == 37

    def test_api_error_message(self):
        session = FakeSession(FakeResponse({"error": {"code": 400, "message": "API key not valid"}}, 400))

        with pytest.raises(AIServiceError, match="API key not valid"):
            self.make(session).generate_text("Say hi")

    def test_invalid_payload(self):
        session = FakeSession(FakeResponse({"candidates": []}))

        with pytest.raises(AIServiceError, match="Invalid response"):
            self.make(session).generate_text("Say hi")

    def test_non_json_body(self):
        session = FakeSession(FakeResponse(status_code=502, invalid=True))

        with pytest.raises(AIServiceError, match="502"):
            self.make(session).generate_text("Say hi")

    def test_network_error(self):
        session = FakeSession(error=requests.exceptions.ConnectionError("offline"))

        with pytest.raises(AIServiceError, match="offline"):
            self.make(session).generate_text("Say hi")

    def test_custom_model_endpoint(self):
        generator = self.make(FakeSession(), config=LLMConfig(model="gemini-pro", base_url="http://localhost:9/v1/"))
        assert generator.endpoint == "http://localhost:9/v1/gemini-pro:generateContent"

    def test_missing_key(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setattr("letterspace.keys.KeyManager._check_keyring", lambda self: False)

        with pytest.raises(ValueError, match="API key required"):
            GeminiGenerator(session=FakeSession()).generate_text("Say hi")

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        session = FakeSession(gemini_reply("ok"))

        GeminiGenerator(session=session).generate_text("Say hi")
        assert session.calls[0]["params"] == {"key": "env-key"}


class TestCreateGenerator:
    """Tests for the generator factory."""

    def test_dummy_aliases(self):
        assert isinstance(create_generator("dummy"), DummyGenerator)
        assert create_generator("echo").mode == "echo"
        assert create_generator("test", mode="upper").mode == "upper"

    def test_llm_backends(self):
        assert isinstance(create_generator("gemini", api_key="k"), GeminiGenerator)
        assert isinstance(create_generator("google", api_key="k"), GeminiGenerator)
        assert isinstance(create_generator("gpt", api_key="k"), OpenAIGenerator)
        assert isinstance(create_generator("claude", api_key="k"), AnthropicGenerator)

    def test_model_override(self):
        assert create_generator("openai", api_key="k", model="gpt-4o").config.model == "gpt-4o"

    def test_token_usage_passed(self, usage):
        assert create_generator("dummy", token_usage=usage).token_usage is usage

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown generator backend"):
            create_generator("telepathy")
