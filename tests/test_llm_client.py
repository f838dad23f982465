"""LLMClient over a patched LiteLLM."""

import os
from collections.abc import Iterator
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from promptlab.ai.client import LLMClient
from promptlab.ai.errors import AIProviderError, AITimeoutError, translate_provider_error
from promptlab.ai.models import TutorReply
from promptlab.config.settings import Settings


def _response(content: str | None, parsed: object = None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content, parsed=parsed))])


@pytest.fixture
def llm() -> Iterator[LLMClient]:
    with patch.dict(os.environ, {"PRIMARY_LLM_MODEL": "openai/gpt-4o-mini"}):
        yield LLMClient(Settings(_env_file=None))


@pytest.mark.asyncio
async def test_plain_completion(llm: LLMClient) -> None:
    with patch("promptlab.ai.client.litellm.acompletion", new=AsyncMock(return_value=_response("Hello"))) as mock:
        result = await llm.get_completion([{"role": "user", "content": "Hi"}], user_id="learner-1")

    assert result == "Hello"
    kwargs = mock.call_args.kwargs
    assert kwargs["model"] == "openai/gpt-4o-mini"
    assert kwargs["user"] == "learner-1"
    assert "response_format" not in kwargs


@pytest.mark.asyncio
async def test_json_completion(llm: LLMClient) -> None:
    content = 'Sure: {"score": 80}'
    with patch("promptlab.ai.client.litellm.acompletion", new=AsyncMock(return_value=_response(content))) as mock:
        result = await llm.get_completion([{"role": "user", "content": "Hi"}], format_json=True)

    assert result == {"score": 80}
    assert mock.call_args.kwargs["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_structured_completion(llm: LLMClient) -> None:
    content = '{"message": "What do you mean?", "ready_for_next_step": false}'
    with patch("promptlab.ai.client.litellm.acompletion", new=AsyncMock(return_value=_response(content))) as mock:
        result = await llm.get_completion([{"role": "user", "content": "Hi"}], response_model=TutorReply)

    assert result == TutorReply(message="What do you mean?", ready_for_next_step=False)
    response_format = mock.call_args.kwargs["response_format"]
    assert response_format["type"] == "json_schema"
    schema = response_format["json_schema"]["schema"]
    assert schema["required"] == ["message", "ready_for_next_step"]
    assert schema["additionalProperties"] is False


@pytest.mark.asyncio
async def test_timeout_is_translated(llm: LLMClient) -> None:
    with (
        patch("promptlab.ai.client.litellm.acompletion", new=AsyncMock(side_effect=TimeoutError("slow"))),
        pytest.raises(AITimeoutError),
    ):
        await llm.get_completion([{"role": "user", "content": "Hi"}])


@pytest.mark.asyncio
async def test_provider_failure_is_translated(llm: LLMClient) -> None:
    with (
        patch("promptlab.ai.client.litellm.acompletion", new=AsyncMock(side_effect=ValueError("bad key"))),
        pytest.raises(AIProviderError, match="bad key"),
    ):
        await llm.get_completion([{"role": "user", "content": "Hi"}])


def test_missing_model_configuration() -> None:
    with patch.dict(os.environ, {}, clear=True), pytest.raises(ValueError, match="PRIMARY_LLM_MODEL"):
        _ = Settings(_env_file=None).primary_llm_model


@pytest.mark.asyncio
async def test_structured_completion_without_model_is_provider_error() -> None:
    acompletion = AsyncMock()
    with (
        patch.dict(os.environ, {}, clear=True),
        patch("promptlab.ai.client.litellm.acompletion", new=acompletion),
        pytest.raises(AIProviderError, match="PRIMARY_LLM_MODEL"),
    ):
        await LLMClient(Settings(_env_file=None)).get_completion(
            [{"role": "user", "content": "Hi"}], response_model=TutorReply
        )

    acompletion.assert_not_called()


def test_translate_keeps_runtime_errors() -> None:
    error = AITimeoutError("already translated")
    assert translate_provider_error(error) is error
