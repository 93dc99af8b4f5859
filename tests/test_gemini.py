"""
Unit tests for the Gemini adapter.

The SDK model class is replaced with a stub; no network calls are made.
"""

from types import SimpleNamespace

import google.generativeai as genai
import pytest
from tenacity import wait_none

from voice_interview.core.exceptions import (
    LLMConnectionError,
    LLMRateLimitError,
    LLMResponseError,
    MissingAPIKeyError,
)
from voice_interview.infra.llm.gemini import GeminiClient, extract_response_text


class NoTextResponse:
    """Mimics the SDK raising from .text when the candidate has no parts."""

    def __init__(self, candidates=None):
        self.candidates = candidates or []

    @property
    def text(self):
        raise ValueError("response has no parts")


class StubModel:
    """Records construction and returns a scripted reply."""

    instances: list["StubModel"] = []
    outcome = None

    def __init__(self, model_name, system_instruction=None, generation_config=None):
        self.model_name = model_name
        self.system_instruction = system_instruction
        self.generation_config = generation_config
        self.calls = []
        StubModel.instances.append(self)

    async def generate_content_async(self, contents):
        self.calls.append(contents)
        if isinstance(StubModel.outcome, Exception):
            raise StubModel.outcome
        return StubModel.outcome


@pytest.fixture
def stub_model(monkeypatch):
    StubModel.instances = []
    StubModel.outcome = SimpleNamespace(text="Hello there")
    monkeypatch.setattr(genai, "configure", lambda **kwargs: None)
    monkeypatch.setattr(genai, "GenerativeModel", StubModel)
    monkeypatch.setattr(GeminiClient.generate.retry, "wait", wait_none())
    return StubModel


class TestExtractResponseText:
    """Tests for pulling text out of both response shapes."""

    def test_text_accessor(self):
        assert extract_response_text(SimpleNamespace(text="Hi")) == "Hi"

    def test_callable_text(self):
        assert extract_response_text({"text": lambda: "From call"}) == "From call"

    def test_candidates_shape_when_accessor_raises(self):
        part = SimpleNamespace(text="From parts")
        response = NoTextResponse([SimpleNamespace(content=SimpleNamespace(parts=[part]))])

        assert extract_response_text(response) == "From parts"

    def test_raw_dict_shape(self):
        response = {"candidates": [{"content": {"parts": [{"text": "Dict text"}]}}]}

        assert extract_response_text(response) == "Dict text"

    @pytest.mark.parametrize("response", [
        NoTextResponse(),
        {"candidates": []},
        {"candidates": [{"content": {"parts": []}}]},
        {"candidates": [{"content": {"parts": [{"text": ""}]}}]},
        SimpleNamespace(text=""),
        None,
    ])
    def test_no_text(self, response):
        assert extract_response_text(response) is None


class TestGeminiClient:
    """Tests for the async generate call."""

    def test_has_api_key(self):
        assert GeminiClient(api_key="k").has_api_key
        assert not GeminiClient(api_key="").has_api_key

    @pytest.mark.asyncio
    async def test_missing_key_raises(self):
        with pytest.raises(MissingAPIKeyError):
            await GeminiClient(api_key="").generate("hi", model_name="m", system_instruction="s")

    @pytest.mark.asyncio
    async def test_generate_builds_model(self, stub_model):
        client = GeminiClient(api_key="k")
        history = [{"role": "user", "parts": [{"text": "Hello"}]}]

        text = await client.generate(
            history,
            model_name="gemini-2.0-flash-lite",
            system_instruction="Be an interviewer.",
            temperature=0.4,
            max_output_tokens=100,
            top_k=1,
            top_p=1,
        )

        assert text == "Hello there"
        model = stub_model.instances[0]
        assert model.model_name == "gemini-2.0-flash-lite"
        assert model.system_instruction == "Be an interviewer."
        assert model.calls == [history]

    @pytest.mark.asyncio
    async def test_unexpected_shape(self, stub_model):
        stub_model.outcome = NoTextResponse()

        with pytest.raises(LLMResponseError, match="Unexpected AI response format"):
            await GeminiClient(api_key="k").generate("hi", model_name="m", system_instruction="s")

    @pytest.mark.asyncio
    async def test_connection_error_classified(self, stub_model):
        stub_model.outcome = RuntimeError("Connection reset by peer")

        with pytest.raises(LLMConnectionError):
            await GeminiClient(api_key="k").generate("hi", model_name="m", system_instruction="s")

    @pytest.mark.asyncio
    async def test_rate_limit_retried_then_raised(self, stub_model):
        stub_model.outcome = RuntimeError("429 Resource exhausted")

        with pytest.raises(LLMRateLimitError):
            await GeminiClient(api_key="k").generate("hi", model_name="m", system_instruction="s")

        assert len(stub_model.instances) == 3

    @pytest.mark.asyncio
    async def test_other_errors_are_response_errors(self, stub_model):
        stub_model.outcome = RuntimeError("invalid argument")

        with pytest.raises(LLMResponseError):
            await GeminiClient(api_key="k").generate("hi", model_name="m", system_instruction="s")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", [
        "Could not generate content: invalid argument",
        "Prompt too moderate to separate",
    ])
    async def test_words_containing_rate_are_not_rate_limits(self, stub_model, message):
        stub_model.outcome = RuntimeError(message)

        with pytest.raises(LLMResponseError):
            await GeminiClient(api_key="k").generate("hi", model_name="m", system_instruction="s")

        assert len(stub_model.instances) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("message", ["Resource exhausted: quota", "Rate limit reached"])
    async def test_quota_messages_are_rate_limits(self, stub_model, message):
        stub_model.outcome = RuntimeError(message)

        with pytest.raises(LLMRateLimitError):
            await GeminiClient(api_key="k").generate("hi", model_name="m", system_instruction="s")
