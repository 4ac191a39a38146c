"""
Export Routes
=============

Endpoints:
- GET/POST /api/exports - list / create export profiles
- GET /api/exports/history - generated exports, newest first
- GET /api/exports/templates/{platform} - preset profile for a shop platform
- GET/PATCH/DELETE /api/exports/{id}
- POST /api/exports/{id}/generate - download the rendered document
- GET /api/exports/{id}/preview - first rows of the output
"""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from feedhub.api.dependencies import CurrentUserDep, WorkspaceId, get_export_service
from feedhub.db.models import ExportProfile
from feedhub.schemas.requests import ExportProfileCreateRequest, ExportProfileUpdateRequest
from feedhub.schemas.responses import ExportHistoryOut, ExportProfileOut
from feedhub.services.exports import ExportService, export_template

router = APIRouter()

ExportServiceDep = Annotated[ExportService, Depends(get_export_service)]


def profile_out(service: ExportService, profile: ExportProfile) -> ExportProfileOut:
    out = ExportProfileOut.model_validate(profile)
    return out.model_copy(update={"feed_url": service.feed_url(profile)})


@router.get("", summary="List export profiles")
async def list_profiles(workspace_id: WorkspaceId, service: ExportServiceDep) -> dict[str, Any]:
    profiles = await service.list_profiles(workspace_id)
    return {"profiles": [profile_out(service, p) for p in profiles]}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create an export profile")
async def create_profile(
    body: ExportProfileCreateRequest,
    workspace_id: WorkspaceId,
    user: CurrentUserDep,
    service: ExportServiceDep,
) -> dict[str, Any]:
    profile = await service.create_profile(workspace_id, user.id, body)
    return {"profile": profile_out(service, profile)}


@router.get("/history", summary="Export history")
async def export_history(workspace_id: WorkspaceId, service: ExportServiceDep) -> dict[str, Any]:
    history = await service.history(workspace_id)
    return {"history": [ExportHistoryOut.model_validate(h) for h in history]}


@router.get("/templates/{platform}", summary="Preset export profile for a platform")
async def get_template(platform: str, workspace_id: WorkspaceId) -> dict[str, Any]:
    return {"template": export_template(platform)}


@router.get("/{profile_id}", summary="Get an export profile")
async def get_profile(profile_id: UUID, workspace_id: WorkspaceId, service: ExportServiceDep) -> dict[str, Any]:
    return {"profile": profile_out(service, await service.get_profile(workspace_id, profile_id))}


@router.patch("/{profile_id}", summary="Update an export profile")
async def update_profile(
    profile_id: UUID,
    body: ExportProfileUpdateRequest,
    workspace_id: WorkspaceId,
    service: ExportServiceDep,
) -> dict[str, Any]:
    profile = await service.update_profile(workspace_id, profile_id, body)
    return {"profile": profile_out(service, profile)}


@router.delete("/{profile_id}", summary="Delete an export profile")
async def delete_profile(profile_id: UUID, workspace_id: WorkspaceId, service: ExportServiceDep) -> dict[str, Any]:
    await service.delete_profile(workspace_id, profile_id)
    return {"success": True}


@router.post("/{profile_id}/generate", summary="Generate and download an export")
async def generate_export(
    profile_id: UUID,
    workspace_id: WorkspaceId,
    user: CurrentUserDep,
    service: ExportServiceDep,
) -> Response:
    document = await service.generate(workspace_id, profile_id, user.id)
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{document.filename}"',
            "X-Item-Count": str(document.item_count),
        },
    )


@router.get("/{profile_id}/preview", summary="Preview the first rows of an export")
async def preview_export(profile_id: UUID, workspace_id: WorkspaceId, service: ExportServiceDep) -> dict[str, Any]:
    return await service.preview(workspace_id, profile_id)
