"""Custom field routes."""
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, status

from feedhub.api.dependencies import WorkspaceId, get_field_service
from feedhub.schemas.requests import (
    FieldCreateRequest,
    FieldUpdateRequest,
    FieldVisibilityRequest,
    ReorderRequest,
)
from feedhub.schemas.responses import CustomFieldOut
from feedhub.services.fields import FieldService

router = APIRouter()

FieldServiceDep = Annotated[FieldService, Depends(get_field_service)]


@router.get("", summary="List custom fields in display order")
async def list_fields(workspace_id: WorkspaceId, service: FieldServiceDep) -> dict[str, Any]:
    fields = await service.list_fields(workspace_id)
    return {"fields": [CustomFieldOut.model_validate(f) for f in fields]}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a custom field")
async def create_field(
    body: FieldCreateRequest, workspace_id: WorkspaceId, service: FieldServiceDep
) -> dict[str, Any]:
    return {"field": CustomFieldOut.model_validate(await service.create_field(workspace_id, body))}


@router.post("/reorder", summary="Reorder custom fields")
async def reorder_fields(
    body: ReorderRequest, workspace_id: WorkspaceId, service: FieldServiceDep
) -> dict[str, Any]:
    await service.reorder_fields(workspace_id, body.ids)
    return {"success": True}


@router.patch("/{field_id}", summary="Update a custom field")
async def update_field(
    field_id: UUID, body: FieldUpdateRequest, workspace_id: WorkspaceId, service: FieldServiceDep
) -> dict[str, Any]:
    field = await service.update_field(workspace_id, field_id, body)
    return {"field": CustomFieldOut.model_validate(field)}


@router.patch("/{field_id}/visibility", summary="Show or hide a custom field")
async def set_field_visibility(
    field_id: UUID, body: FieldVisibilityRequest, workspace_id: WorkspaceId, service: FieldServiceDep
) -> dict[str, Any]:
    field = await service.set_visibility(workspace_id, field_id, body.is_visible)
    return {"field": CustomFieldOut.model_validate(field)}


@router.delete("/{field_id}", summary="Delete a custom field and its mappings")
async def delete_field(field_id: UUID, workspace_id: WorkspaceId, service: FieldServiceDep) -> dict[str, Any]:
    await service.delete_field(workspace_id, field_id)
    return {"success": True}
