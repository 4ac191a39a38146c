"""
Session Routes
==============

Workspaces of the signed-in user and the active-workspace cookie.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Response

from feedhub.api.dependencies import AppSettings, CurrentUserDep, get_workspace_service
from feedhub.schemas.requests import ActiveWorkspaceRequest
from feedhub.services.workspaces import WorkspaceService
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

WorkspaceServiceDep = Annotated[WorkspaceService, Depends(get_workspace_service)]


@router.get("/workspaces", summary="List the caller's workspaces")
async def list_workspaces(user: CurrentUserDep, service: WorkspaceServiceDep) -> dict[str, Any]:
    workspaces = await service.list_workspaces(user.id)
    return {
        "workspaces": [
            {"id": w.id, "name": w.name, "slug": w.slug, "created_at": w.created_at}
            for w in workspaces
        ]
    }


@router.post("/session/active-workspace", summary="Select the active workspace")
async def set_active_workspace(
    body: ActiveWorkspaceRequest,
    response: Response,
    user: CurrentUserDep,
    service: WorkspaceServiceDep,
    settings: AppSettings,
) -> dict[str, Any]:
    """Check membership, then remember the workspace in an HTTP-only cookie."""
    await service.require_member(body.workspace_id, user.id)
    response.set_cookie(
        key=settings.workspace_cookie_name,
        value=str(body.workspace_id),
        max_age=settings.workspace_cookie_max_age,
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
        path="/",
    )
    logger.info("active_workspace_set", user_id=str(user.id), workspace_id=str(body.workspace_id))
    return {"workspace_id": body.workspace_id}
