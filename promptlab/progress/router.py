"""Progress tracking API endpoints."""

from uuid import UUID

from fastapi import APIRouter

from promptlab.auth import CurrentAuth
from promptlab.core import Envelope, success

from .schemas import CompleteStepRequest, CompleteStepResponse, ProgressOverviewResponse
from .service import ProgressService


router = APIRouter(prefix="/api/progress", tags=["progress"])


@router.get("")
async def get_progress_overview(auth: CurrentAuth) -> Envelope[ProgressOverviewResponse]:
    """Get the learner's progress across all modules."""
    service = ProgressService(auth.session)
    return success(await service.get_overview(auth.user_id))


@router.post("/{progress_id}/complete-step")
async def complete_step(
    progress_id: UUID,
    request: CompleteStepRequest,
    auth: CurrentAuth,
) -> Envelope[CompleteStepResponse]:
    """Mark the current step done and move to the next one."""
    service = ProgressService(auth.session)
    return success(await service.complete_step(progress_id, request.step_type, auth.user_id))
