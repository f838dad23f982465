"""AI exercises: stateless tutor turns, prompt analysis and prompt comparison."""

import json
import logging
from collections.abc import AsyncGenerator
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from promptlab.dialogues.state import DEFAULT_MIN_STUDENT_TURNS
from promptlab.exceptions import ResourceNotFoundError
from promptlab.modules.models import Module

from .client import LLMClient
from .errors import AIRuntimeError
from .models import PromptAnalysis, PromptComparison
from .prompts import PROMPT_ANALYSIS_SYSTEM_PROMPT, PROMPT_COMPARISON_SYSTEM_PROMPT
from .schemas import ComparisonRequest, ComparisonResponse, PromptAnalysisRequest, SocraticRequest, SocraticResponse
from .tutors import LLMTutor


logger = logging.getLogger(__name__)

# Characters per server-sent event
STREAM_CHUNK_SIZE = 50


class AIExerciseService:
    """LLM-backed helpers for the writing and comparison steps."""

    def __init__(
        self,
        session: AsyncSession,
        client: LLMClient,
        min_student_turns: int = DEFAULT_MIN_STUDENT_TURNS,
    ) -> None:
        self.session = session
        self.client = client
        self.tutor = LLMTutor(client)
        self.min_student_turns = min_student_turns

    async def get_module(self, module_id: UUID) -> Module:
        """Return an active module or raise ``ResourceNotFoundError``."""
        module = await self.session.scalar(
            select(Module).where(Module.id == module_id, Module.is_active.is_(True))
        )
        if module is None:
            raise ResourceNotFoundError("Module", module_id)
        return module

    async def socratic_reply(self, request: SocraticRequest, user_id: UUID) -> SocraticResponse:
        """Produce one tutor turn for a client-held conversation."""
        module = await self.get_module(request.module_id)
        message, ready = await self._tutor_reply(request, module.order_index, user_id)
        logger.info("Socratic response generated for module %s", module.id)
        return SocraticResponse(message=message, can_proceed=ready)

    async def stream_socratic_reply(
        self,
        request: SocraticRequest,
        order_index: int,
        user_id: UUID,
    ) -> AsyncGenerator[str, None]:
        """Yield the tutor turn as server-sent events.

        The final event carries ``done`` and ``canProceed``; failures end the
        stream with an ``error`` event.
        """
        try:
            message, ready = await self._tutor_reply(request, order_index, user_id)
        except AIRuntimeError as e:
            logger.warning("Socratic stream failed: %s", e)
            yield f"data: {json.dumps({'error': 'The AI service is temporarily unavailable', 'done': True})}\n\n"
            return

        for i in range(0, len(message), STREAM_CHUNK_SIZE):
            chunk = message[i : i + STREAM_CHUNK_SIZE]
            yield f"data: {json.dumps({'content': chunk, 'done': False})}\n\n"

        yield f"data: {json.dumps({'content': '', 'done': True, 'canProceed': ready})}\n\n"

    async def analyze_prompt(self, request: PromptAnalysisRequest, user_id: UUID) -> PromptAnalysis:
        """Score a learner-written prompt and list strengths and improvements."""
        module = await self.get_module(request.module_id)

        content = f"Module: {module.title}\n\nAnalyze the following prompt:\n\n{request.prompt}"
        if request.scenario_context:
            content += f"\n\nScenario context: {request.scenario_context}"

        analysis = await self.client.get_completion(
            [
                {"role": "system", "content": PROMPT_ANALYSIS_SYSTEM_PROMPT},
                {"role": "user", "content": content},
            ],
            response_model=PromptAnalysis,
            user_id=user_id,
        )
        logger.info("Prompt analyzed for module %s (score %d)", module.id, analysis.score)
        return analysis

    async def compare_prompts(self, request: ComparisonRequest, user_id: UUID) -> ComparisonResponse:
        """Compare two prompts and pick the more effective one."""
        module = await self.get_module(request.module_id)

        comparison = await self.client.get_completion(
            [
                {"role": "system", "content": PROMPT_COMPARISON_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        "Compare the following two prompts:\n\n"
                        f"**Prompt A:**\n{request.prompt_a}\n\n**Prompt B:**\n{request.prompt_b}"
                    ),
                },
            ],
            response_model=PromptComparison,
            max_tokens=2048,
            user_id=user_id,
        )
        logger.info("Prompts compared for module %s (better: %s)", module.id, comparison.better_prompt)
        return ComparisonResponse(
            response_a=comparison.response_a,
            response_b=comparison.response_b,
            analysis=comparison.analysis,
            better_prompt=comparison.better_prompt,
        )

    async def _tutor_reply(self, request: SocraticRequest, order_index: int, user_id: UUID) -> tuple[str, bool]:
        history = [turn.model_dump() for turn in request.conversation_history]
        return await self.tutor.reply(
            module_order_index=order_index,
            history=history,
            student_message=request.user_message,
            wrap_up=len(history) // 2 >= self.min_student_turns,
            user_id=user_id,
        )
