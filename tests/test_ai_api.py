"""HTTP tests for /api/ai with a mocked LLM client."""

import json
import uuid
from unittest.mock import MagicMock

import pytest
from httpx import AsyncClient

from promptlab.ai.errors import AIProviderError, AITimeoutError
from promptlab.ai.models import PromptAnalysis, PromptComparison, TutorReply
from promptlab.ai.prompts import READY_MARKER, WRAP_UP_HINT
from promptlab.modules.models import Module


def _events(body: str) -> list[dict]:
    return [json.loads(chunk.removeprefix("data: ")) for chunk in body.split("\n\n") if chunk.strip()]


def _history(exchanges: int) -> list[dict[str, str]]:
    history = []
    for n in range(exchanges):
        history.append({"role": "assistant", "content": f"Question {n}?"})
        history.append({"role": "user", "content": f"Answer {n}."})
    return history


class TestSocratic:
    """POST /api/ai/socratic."""

    @pytest.mark.asyncio
    async def test_reply(self, client: AsyncClient, llm_client: MagicMock, modules: list[Module]) -> None:
        llm_client.get_completion.return_value = TutorReply(message="What led you there?", ready_for_next_step=False)

        response = await client.post(
            "/api/ai/socratic",
            json={
                "moduleId": str(modules[2].id),
                "userMessage": "A role changes the tone.",
                "conversationHistory": _history(1),
            },
        )

        assert response.status_code == 200
        assert response.json() == {"data": {"message": "What led you there?", "canProceed": False}}

        messages = llm_client.get_completion.call_args.args[0]
        assert messages[0]["role"] == "system"
        assert "Role prompting" in messages[0]["content"]
        assert messages[1:3] == _history(1)
        assert messages[-1] == {"role": "user", "content": "A role changes the tone."}

    @pytest.mark.asyncio
    async def test_marker_sets_can_proceed(
        self, client: AsyncClient, llm_client: MagicMock, modules: list[Module]
    ) -> None:
        llm_client.get_completion.return_value = TutorReply(
            message=f"Nicely put. {READY_MARKER}", ready_for_next_step=False
        )

        response = await client.post(
            "/api/ai/socratic",
            json={"moduleId": str(modules[0].id), "userMessage": "Be specific.", "conversationHistory": _history(3)},
        )

        assert response.json()["data"] == {"message": "Nicely put.", "canProceed": True}
        messages = llm_client.get_completion.call_args.args[0]
        assert messages[-1]["content"].endswith(WRAP_UP_HINT)

    @pytest.mark.asyncio
    async def test_unknown_module(self, client: AsyncClient, llm_client: MagicMock, modules: list[Module]) -> None:
        response = await client.post(
            "/api/ai/socratic",
            json={"moduleId": str(uuid.uuid4()), "userMessage": "Hello"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"
        llm_client.get_completion.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_failure_is_502(
        self, client: AsyncClient, llm_client: MagicMock, modules: list[Module]
    ) -> None:
        llm_client.get_completion.side_effect = AITimeoutError("took too long")

        response = await client.post(
            "/api/ai/socratic",
            json={"moduleId": str(modules[0].id), "userMessage": "Hello"},
        )

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "AI_ERROR"
        assert error["details"] == {"category": "timeout"}


class TestSocraticStream:
    """POST /api/ai/socratic/stream."""

    @pytest.mark.asyncio
    async def test_stream_chunks_and_final_event(
        self, client: AsyncClient, llm_client: MagicMock, modules: list[Module]
    ) -> None:
        reply = "Why do you think the audience matters? " * 3
        llm_client.get_completion.return_value = TutorReply(message=reply, ready_for_next_step=True)

        response = await client.post(
            "/api/ai/socratic/stream",
            json={"moduleId": str(modules[0].id), "userMessage": "Audience matters."},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = _events(response.text)
        assert "".join(event["content"] for event in events) == reply.strip()
        assert all(event["done"] is False for event in events[:-1])
        assert events[-1] == {"content": "", "done": True, "canProceed": True}

    @pytest.mark.asyncio
    async def test_stream_error_event(self, client: AsyncClient, llm_client: MagicMock, modules: list[Module]) -> None:
        llm_client.get_completion.side_effect = AIProviderError("down")

        response = await client.post(
            "/api/ai/socratic/stream",
            json={"moduleId": str(modules[0].id), "userMessage": "Hello"},
        )

        assert response.status_code == 200
        events = _events(response.text)
        assert len(events) == 1
        assert events[0]["done"] is True
        assert "error" in events[0]

    @pytest.mark.asyncio
    async def test_stream_unknown_module(self, client: AsyncClient, modules: list[Module]) -> None:
        response = await client.post(
            "/api/ai/socratic/stream",
            json={"moduleId": str(uuid.uuid4()), "userMessage": "Hello"},
        )

        assert response.status_code == 404


class TestPromptExercises:
    """Prompt analysis and comparison."""

    @pytest.mark.asyncio
    async def test_analyze_prompt(self, client: AsyncClient, llm_client: MagicMock, modules: list[Module]) -> None:
        llm_client.get_completion.return_value = PromptAnalysis(
            strengths=["Names the audience"],
            improvements=["Add a length limit"],
            score=72,
            feedback="Solid start.",
        )

        response = await client.post(
            "/api/ai/analyze-prompt",
            json={
                "moduleId": str(modules[0].id),
                "prompt": "Write a notice for library visitors.",
                "scenarioContext": "City library opening hours",
            },
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["score"] == 72
        assert data["strengths"] == ["Names the audience"]

        call = llm_client.get_completion.call_args
        assert call.kwargs["response_model"] is PromptAnalysis
        user_content = call.args[0][1]["content"]
        assert "Write a notice for library visitors." in user_content
        assert "City library opening hours" in user_content

    @pytest.mark.asyncio
    async def test_analyze_requires_prompt(self, client: AsyncClient, modules: list[Module]) -> None:
        response = await client.post("/api/ai/analyze-prompt", json={"moduleId": str(modules[0].id), "prompt": ""})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_compare(self, client: AsyncClient, llm_client: MagicMock, modules: list[Module]) -> None:
        llm_client.get_completion.return_value = PromptComparison(
            response_a="A short answer.",
            response_b="A structured answer.",
            analysis="B sets the format.",
            better_prompt="B",
        )

        response = await client.post(
            "/api/ai/compare",
            json={"moduleId": str(modules[3].id), "promptA": "Summarize this.", "promptB": "Summarize in 3 bullets."},
        )

        assert response.status_code == 200
        assert response.json()["data"] == {
            "responseA": "A short answer.",
            "responseB": "A structured answer.",
            "analysis": "B sets the format.",
            "betterPrompt": "B",
        }
        assert llm_client.get_completion.call_args.kwargs["max_tokens"] == 2048

    @pytest.mark.asyncio
    async def test_compare_provider_failure(
        self, client: AsyncClient, llm_client: MagicMock, modules: list[Module]
    ) -> None:
        llm_client.get_completion.side_effect = AIProviderError("boom")

        response = await client.post(
            "/api/ai/compare",
            json={"moduleId": str(modules[0].id), "promptA": "One", "promptB": "Two"},
        )

        assert response.status_code == 502
        assert response.json()["error"]["details"]["category"] == "provider_failure"
