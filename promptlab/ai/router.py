"""AI exercise API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from promptlab.auth import CurrentAuth
from promptlab.core import Envelope, success
from promptlab.middleware.security import ai_route_limit

from .models import PromptAnalysis
from .schemas import ComparisonRequest, ComparisonResponse, PromptAnalysisRequest, SocraticRequest, SocraticResponse
from .service import AIExerciseService


router = APIRouter(prefix="/api/ai", tags=["ai"], dependencies=[Depends(ai_route_limit)])


def get_ai_service(request: Request, auth: CurrentAuth) -> AIExerciseService:
    """Build the service with the app's LLM client and the request session."""
    return AIExerciseService(
        auth.session,
        request.app.state.llm_client,
        min_student_turns=request.app.state.settings.DIALOGUE_MIN_STUDENT_TURNS,
    )


AIServiceDep = Annotated[AIExerciseService, Depends(get_ai_service)]


@router.post("/socratic")
async def socratic(
    request: SocraticRequest,
    auth: CurrentAuth,
    service: AIServiceDep,
) -> Envelope[SocraticResponse]:
    """Generate one Socratic tutor turn."""
    return success(await service.socratic_reply(request, auth.user_id))


@router.post("/socratic/stream", response_model=None)
async def socratic_stream(
    request: SocraticRequest,
    auth: CurrentAuth,
    service: AIServiceDep,
) -> StreamingResponse:
    """Generate one Socratic tutor turn as server-sent events."""
    # Resolve the module before streaming so a bad id is still a 404
    module = await service.get_module(request.module_id)
    return StreamingResponse(
        service.stream_socratic_reply(request, module.order_index, auth.user_id),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )


@router.post("/analyze-prompt")
async def analyze_prompt(
    request: PromptAnalysisRequest,
    auth: CurrentAuth,
    service: AIServiceDep,
) -> Envelope[PromptAnalysis]:
    """Analyze a learner-written prompt."""
    return success(await service.analyze_prompt(request, auth.user_id))


@router.post("/compare")
async def compare(
    request: ComparisonRequest,
    auth: CurrentAuth,
    service: AIServiceDep,
) -> Envelope[ComparisonResponse]:
    """Compare two prompts."""
    return success(await service.compare_prompts(request, auth.user_id))
