"""
Supplier Routes
===============

Endpoints:
- GET/POST /api/suppliers - list / create suppliers
- POST /api/suppliers/sync-all - sync every active supplier
- GET/PATCH/DELETE /api/suppliers/{id} - read / update / delete
- POST /api/suppliers/{id}/upload - store a feed file
- GET /api/suppliers/{id}/sample-keys - keys found in the feed head
- GET/PUT /api/suppliers/{id}/field-mappings
- PUT /api/suppliers/{id}/uid-source
- POST /api/suppliers/{id}/finalize - publish a draft and sync it
- POST /api/suppliers/{id}/ingest | sync | remap
- GET /api/suppliers/{id}/ingestions[/{ingestion_id}/errors]
- GET /api/suppliers/{id}/raw-data | mapped-data | stats
- GET/PUT /api/suppliers/{id}/category-mappings
"""

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile, status

from feedhub.api.dependencies import (
    AppSettings,
    CurrentUserDep,
    WorkspaceId,
    get_category_service,
    get_ingestion_service,
    get_mapping_service,
    get_session_factory,
    get_supplier_service,
)
from feedhub.schemas.requests import (
    CategoryMappingsRequest,
    FieldMappingsRequest,
    FinalizeSupplierRequest,
    SupplierCreateRequest,
    SupplierUpdateRequest,
    UidSourceRequest,
)
from feedhub.schemas.responses import (
    CategoryMappingOut,
    FeedErrorOut,
    FieldMappingOut,
    IngestionOut,
    ProductMappedOut,
    ProductRawOut,
    SupplierOut,
)
from feedhub.services.categories import CategoryService
from feedhub.services.ingestion import IngestionService, SessionFactory
from feedhub.services.mapping import MappingService
from feedhub.services.suppliers import SupplierService

router = APIRouter()

SupplierServiceDep = Annotated[SupplierService, Depends(get_supplier_service)]
IngestionServiceDep = Annotated[IngestionService, Depends(get_ingestion_service)]

Limit = Annotated[int, Query(ge=1, le=500)]
Offset = Annotated[int, Query(ge=0)]


@router.get("", summary="List suppliers")
async def list_suppliers(
    workspace_id: WorkspaceId,
    service: SupplierServiceDep,
    include_drafts: bool = True,
) -> dict[str, Any]:
    suppliers = await service.list_suppliers(workspace_id, include_drafts=include_drafts)
    return {"suppliers": [SupplierOut.model_validate(s) for s in suppliers]}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a supplier")
async def create_supplier(
    body: SupplierCreateRequest,
    workspace_id: WorkspaceId,
    user: CurrentUserDep,
    service: SupplierServiceDep,
) -> dict[str, Any]:
    supplier = await service.create_supplier(workspace_id, user.id, body)
    return {"supplier": SupplierOut.model_validate(supplier)}


@router.post("/sync-all", summary="Sync every active, published supplier")
async def sync_all(
    workspace_id: WorkspaceId,
    service: IngestionServiceDep,
    session_factory: Annotated[SessionFactory, Depends(get_session_factory)],
) -> dict[str, Any]:
    return {"summary": await service.sync_all(workspace_id, session_factory)}


@router.get("/{supplier_id}", summary="Get a supplier")
async def get_supplier(
    supplier_id: UUID, workspace_id: WorkspaceId, service: SupplierServiceDep
) -> dict[str, Any]:
    return {"supplier": SupplierOut.model_validate(await service.get_supplier(workspace_id, supplier_id))}


@router.patch("/{supplier_id}", summary="Update a supplier")
async def update_supplier(
    supplier_id: UUID,
    body: SupplierUpdateRequest,
    workspace_id: WorkspaceId,
    service: SupplierServiceDep,
) -> dict[str, Any]:
    supplier = await service.update_supplier(workspace_id, supplier_id, body)
    return {"supplier": SupplierOut.model_validate(supplier)}


@router.delete("/{supplier_id}", summary="Delete a supplier and everything it owns")
async def delete_supplier(
    supplier_id: UUID, workspace_id: WorkspaceId, service: SupplierServiceDep
) -> dict[str, Any]:
    await service.delete_supplier(workspace_id, supplier_id)
    return {"success": True}


@router.post("/{supplier_id}/upload", summary="Upload a feed file")
async def upload_feed(
    supplier_id: UUID,
    workspace_id: WorkspaceId,
    service: SupplierServiceDep,
    settings: AppSettings,
    file: Annotated[UploadFile, File()],
) -> dict[str, Any]:
    # one byte past the limit is enough to reject oversized files
    data = await file.read(settings.max_upload_size_bytes + 1)
    supplier = await service.upload_feed(workspace_id, supplier_id, file.filename or "feed", data)
    return {"supplier": SupplierOut.model_validate(supplier)}


@router.get("/{supplier_id}/sample-keys", summary="Keys found in the head of the feed")
async def sample_keys(
    supplier_id: UUID, workspace_id: WorkspaceId, service: SupplierServiceDep
) -> dict[str, Any]:
    return await service.sample_keys(workspace_id, supplier_id)


@router.get("/{supplier_id}/field-mappings", summary="List field mappings")
async def get_field_mappings(
    supplier_id: UUID, workspace_id: WorkspaceId, service: SupplierServiceDep
) -> dict[str, Any]:
    mappings = await service.get_field_mappings(workspace_id, supplier_id)
    return {"mappings": [FieldMappingOut.model_validate(m) for m in mappings]}


@router.put("/{supplier_id}/field-mappings", summary="Replace field mappings")
async def replace_field_mappings(
    supplier_id: UUID,
    body: FieldMappingsRequest,
    workspace_id: WorkspaceId,
    service: SupplierServiceDep,
) -> dict[str, Any]:
    mappings = await service.replace_field_mappings(workspace_id, supplier_id, body)
    return {"mappings": [FieldMappingOut.model_validate(m) for m in mappings]}


@router.put("/{supplier_id}/uid-source", summary="Set the unique id source key")
async def set_uid_source(
    supplier_id: UUID,
    body: UidSourceRequest,
    workspace_id: WorkspaceId,
    service: SupplierServiceDep,
) -> dict[str, Any]:
    supplier = await service.set_uid_source(workspace_id, supplier_id, body.uid_source_key)
    return {"supplier": SupplierOut.model_validate(supplier)}


@router.post("/{supplier_id}/finalize", summary="Publish a draft supplier and run its first sync")
async def finalize_supplier(
    supplier_id: UUID,
    body: FinalizeSupplierRequest,
    workspace_id: WorkspaceId,
    service: SupplierServiceDep,
) -> dict[str, Any]:
    result = await service.finalize(workspace_id, supplier_id, body)
    return {
        "result": {
            "supplier": SupplierOut.model_validate(result["supplier"]),
            "sync": result["sync"],
        }
    }


@router.post("/{supplier_id}/ingest", summary="Ingest the supplier feed")
async def ingest_supplier(
    supplier_id: UUID, workspace_id: WorkspaceId, service: IngestionServiceDep
) -> dict[str, Any]:
    return {"ingestion": await service.ingest_supplier(workspace_id, supplier_id)}


@router.post("/{supplier_id}/sync", summary="Ingest the feed and re-apply mappings")
async def sync_supplier(
    supplier_id: UUID, workspace_id: WorkspaceId, service: IngestionServiceDep
) -> dict[str, Any]:
    ingestion, remap = await service.sync_supplier(workspace_id, supplier_id)
    return {"ingestion": ingestion, "remap": remap}


@router.post("/{supplier_id}/remap", summary="Re-apply field mappings to raw rows")
async def remap_supplier(
    supplier_id: UUID,
    workspace_id: WorkspaceId,
    service: Annotated[MappingService, Depends(get_mapping_service)],
) -> dict[str, Any]:
    return {"remap": await service.remap_supplier(workspace_id, supplier_id)}


@router.get("/{supplier_id}/ingestions", summary="Ingestion history")
async def list_ingestions(
    supplier_id: UUID,
    workspace_id: WorkspaceId,
    service: SupplierServiceDep,
    limit: Limit = 50,
) -> dict[str, Any]:
    ingestions = await service.list_ingestions(workspace_id, supplier_id, limit=limit)
    return {"ingestions": [IngestionOut.model_validate(i) for i in ingestions]}


@router.get("/{supplier_id}/ingestions/{ingestion_id}/errors", summary="Per-item errors of an ingestion")
async def list_errors(
    supplier_id: UUID,
    ingestion_id: UUID,
    workspace_id: WorkspaceId,
    service: SupplierServiceDep,
    limit: Limit = 200,
    offset: Offset = 0,
) -> dict[str, Any]:
    errors = await service.list_errors(workspace_id, supplier_id, ingestion_id, limit=limit, offset=offset)
    return {"errors": [FeedErrorOut.model_validate(e) for e in errors]}


@router.get("/{supplier_id}/raw-data", summary="Raw rows, newest first")
async def raw_data(
    supplier_id: UUID,
    workspace_id: WorkspaceId,
    service: SupplierServiceDep,
    limit: Limit = 50,
    offset: Offset = 0,
) -> dict[str, Any]:
    rows, total = await service.raw_page(workspace_id, supplier_id, limit, offset)
    return {"products": [ProductRawOut.model_validate(r) for r in rows], "total": total}


@router.get("/{supplier_id}/mapped-data", summary="Mapped rows, newest first")
async def mapped_data(
    supplier_id: UUID,
    workspace_id: WorkspaceId,
    service: SupplierServiceDep,
    limit: Limit = 50,
    offset: Offset = 0,
) -> dict[str, Any]:
    rows, total = await service.mapped_page(workspace_id, supplier_id, limit, offset)
    return {"products": [ProductMappedOut.model_validate(r) for r in rows], "total": total}


@router.get("/{supplier_id}/stats", summary="Supplier counters")
async def supplier_stats(
    supplier_id: UUID, workspace_id: WorkspaceId, service: SupplierServiceDep
) -> dict[str, Any]:
    return {"stats": await service.stats(workspace_id, supplier_id)}


@router.get("/{supplier_id}/category-mappings", summary="List category mappings")
async def get_category_mappings(
    supplier_id: UUID,
    workspace_id: WorkspaceId,
    service: Annotated[CategoryService, Depends(get_category_service)],
) -> dict[str, Any]:
    mappings = await service.list_mappings(workspace_id, supplier_id)
    return {"mappings": [CategoryMappingOut.model_validate(m) for m in mappings]}


@router.put("/{supplier_id}/category-mappings", summary="Replace category mappings")
async def replace_category_mappings(
    supplier_id: UUID,
    body: CategoryMappingsRequest,
    workspace_id: WorkspaceId,
    service: Annotated[CategoryService, Depends(get_category_service)],
) -> dict[str, Any]:
    mappings = await service.replace_mappings(workspace_id, supplier_id, body)
    return {"mappings": [CategoryMappingOut.model_validate(m) for m in mappings]}
