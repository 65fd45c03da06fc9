import httpx
import pytest
from openai import APIConnectionError, APITimeoutError

from app.core.exceptions import GenerationUnavailable
from app.services.llm_client import QuizGenerationClient

from conftest import model_output

REQUEST = httpx.Request("POST", "https://api.example.test/v1/chat/completions")


@pytest.fixture
def client():
    return QuizGenerationClient(api_key="sk-test", base_url="https://api.example.test/v1",
                                model="test-model", timeout=3)


def _answer_with(client, monkeypatch, result):
    prompts = []

    async def fake_call(prompt, max_tokens=2000, temperature=0.7):
        prompts.append(prompt)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(client, "_call_api", fake_call)
    return prompts


async def test_returns_raw_completion(client, monkeypatch):
    prompts = _answer_with(client, monkeypatch, f"  {model_output(fenced=True)}\n")

    raw = await client.generate_quiz_questions("networking")

    assert raw.startswith("```json")
    assert '"networking"' in prompts[0]


@pytest.mark.parametrize("content", ["", "   \n"])
async def test_empty_completion_is_unavailable(client, monkeypatch, content):
    _answer_with(client, monkeypatch, content)
    with pytest.raises(GenerationUnavailable, match="empty"):
        await client.generate_quiz_questions("networking")


async def test_provider_error_is_unavailable(client, monkeypatch):
    _answer_with(client, monkeypatch, APIConnectionError(request=REQUEST))
    with pytest.raises(GenerationUnavailable, match="Model call failed"):
        await client.generate_quiz_questions("networking")


async def test_provider_timeout_is_unavailable(client, monkeypatch):
    _answer_with(client, monkeypatch, APITimeoutError(request=REQUEST))
    with pytest.raises(GenerationUnavailable, match="timed out"):
        await client.generate_quiz_questions("networking")


def test_client_uses_given_settings(client):
    assert client.model == "test-model"
    assert client.timeout == 3
    assert client.client.max_retries == 0
