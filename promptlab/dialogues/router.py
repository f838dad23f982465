"""Socratic dialogue API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from promptlab.auth import CurrentAuth
from promptlab.core import Envelope, success
from promptlab.middleware.security import ai_route_limit

from .schemas import (
    CreateDialogueRequest,
    CreateDialogueResponse,
    DialogueResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from .service import DialogueService


router = APIRouter(prefix="/api/dialogues", tags=["dialogues"])


def get_dialogue_service(request: Request, auth: CurrentAuth) -> DialogueService:
    """Build the service with the app's tutor strategy and the request session."""
    settings = request.app.state.settings
    return DialogueService(
        auth.session,
        request.app.state.tutor,
        min_student_turns=settings.DIALOGUE_MIN_STUDENT_TURNS,
    )


DialogueServiceDep = Annotated[DialogueService, Depends(get_dialogue_service)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_dialogue(
    request: CreateDialogueRequest,
    auth: CurrentAuth,
    service: DialogueServiceDep,
) -> Envelope[CreateDialogueResponse]:
    """Open (or reopen) the dialogue of a progress record."""
    return success(await service.create_dialogue(request.progress_id, auth.user_id))


@router.post("/{dialogue_id}/messages", dependencies=[Depends(ai_route_limit)])
async def send_message(
    dialogue_id: UUID,
    request: SendMessageRequest,
    auth: CurrentAuth,
    service: DialogueServiceDep,
) -> Envelope[SendMessageResponse]:
    """Send a student answer and receive the tutor's reply."""
    return success(await service.send_message(dialogue_id, request.content, auth.user_id))


@router.get("/{dialogue_id}")
async def get_dialogue(
    dialogue_id: UUID,
    auth: CurrentAuth,
    service: DialogueServiceDep,
) -> Envelope[DialogueResponse]:
    """Get a dialogue transcript."""
    return success(await service.get_dialogue(dialogue_id, auth.user_id))
