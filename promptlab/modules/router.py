"""Module catalog API endpoints."""

from uuid import UUID

from fastapi import APIRouter, status

from promptlab.auth import CurrentAuth
from promptlab.core import Envelope, success

from .schemas import ModuleDetailResponse, ModulesListResponse, StartModuleResponse
from .service import ModuleService


router = APIRouter(prefix="/api/modules", tags=["modules"])


@router.get("")
async def list_modules(auth: CurrentAuth) -> Envelope[ModulesListResponse]:
    """List active modules with lock state and the caller's progress."""
    service = ModuleService(auth.session)
    return success(await service.list_modules(auth.user_id))


@router.get("/{module_id}")
async def get_module(module_id: UUID, auth: CurrentAuth) -> Envelope[ModuleDetailResponse]:
    """Get a module with its steps and scenarios."""
    service = ModuleService(auth.session)
    return success(await service.get_module_detail(module_id, auth.user_id))


@router.post("/{module_id}/start", status_code=status.HTTP_201_CREATED)
async def start_module(module_id: UUID, auth: CurrentAuth) -> Envelope[StartModuleResponse]:
    """Start a module; returns the existing progress when already started."""
    service = ModuleService(auth.session)
    return success(await service.start_module(module_id, auth.user_id))
