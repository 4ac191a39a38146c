"""Category tree routes."""
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, status

from feedhub.api.dependencies import WorkspaceId, get_category_service
from feedhub.schemas.requests import (
    CategoryCreateRequest,
    CategoryMoveRequest,
    CategoryUpdateRequest,
    ReorderRequest,
)
from feedhub.schemas.responses import CategoryOut
from feedhub.services.categories import CategoryService

router = APIRouter()

CategoryServiceDep = Annotated[CategoryService, Depends(get_category_service)]


@router.get("", summary="List categories ordered by path")
async def list_categories(workspace_id: WorkspaceId, service: CategoryServiceDep) -> dict[str, Any]:
    categories = await service.list_categories(workspace_id)
    return {"categories": [CategoryOut.model_validate(c) for c in categories]}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a category")
async def create_category(
    body: CategoryCreateRequest, workspace_id: WorkspaceId, service: CategoryServiceDep
) -> dict[str, Any]:
    category = await service.create_category(workspace_id, body)
    return {"category": CategoryOut.model_validate(category)}


@router.post("/move", summary="Move a category under another parent")
async def move_category(
    body: CategoryMoveRequest, workspace_id: WorkspaceId, service: CategoryServiceDep
) -> dict[str, Any]:
    category = await service.move_category(workspace_id, body.category_id, body.new_parent_id)
    return {"category": CategoryOut.model_validate(category)}


@router.post("/reorder", summary="Reorder categories")
async def reorder_categories(
    body: ReorderRequest, workspace_id: WorkspaceId, service: CategoryServiceDep
) -> dict[str, Any]:
    await service.reorder_categories(workspace_id, body.ids)
    return {"success": True}


@router.put("/{category_id}", summary="Rename and/or reparent a category")
async def update_category(
    category_id: UUID,
    body: CategoryUpdateRequest,
    workspace_id: WorkspaceId,
    service: CategoryServiceDep,
) -> dict[str, Any]:
    category = await service.update_category(workspace_id, category_id, body)
    return {"category": CategoryOut.model_validate(category)}


@router.delete("/{category_id}", summary="Delete a leaf category")
async def delete_category(
    category_id: UUID, workspace_id: WorkspaceId, service: CategoryServiceDep
) -> dict[str, Any]:
    await service.delete_category(workspace_id, category_id)
    return {"success": True}
