"""
Supplier Service
================

Supplier lifecycle: drafts, uploads, key sniffing, field mappings, the
unique id source key, finalization, and read access to ingestion results.
"""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from feedhub.config.settings import Settings, get_settings
from feedhub.db.models import FeedError, FeedIngestion, FieldMapping, ProductMapped, ProductRaw, Supplier
from feedhub.db.repositories import (
    FieldMappingsRepository,
    FieldsRepository,
    IngestionsRepository,
    ProductsRepository,
    SuppliersRepository,
)
from feedhub.parsers import sniff_keys
from feedhub.schemas.domain import IngestionResult, SupplierStats, SyncResult
from feedhub.schemas.requests import (
    FieldMappingsRequest,
    FinalizeSupplierRequest,
    SupplierCreateRequest,
    SupplierUpdateRequest,
)
from feedhub.services.feed_source import FeedSourceService
from feedhub.services.ingestion import IngestionService
from feedhub.services.storage import LocalFeedStorage
from feedhub.utils.errors import ConflictError, FeedHubError, NotFoundError, ValidationError
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)

# Columns that are NOT NULL on suppliers
REQUIRED_SUPPLIER_FIELDS = frozenset({"name", "schedule_enabled", "status"})


def ingestion_result(ingestion: FeedIngestion) -> IngestionResult:
    return IngestionResult(
        ingestion_id=ingestion.id,
        supplier_id=ingestion.supplier_id,
        status=ingestion.status,
        feed_type=ingestion.feed_type,
        source_file=ingestion.source_file,
        items_total=ingestion.items_total,
        items_ok=ingestion.items_ok,
        items_error=ingestion.items_error,
        duration_ms=ingestion.duration_ms,
        error_message=ingestion.error_message,
    )


class SupplierService:
    """Supplier operations scoped to one workspace per call."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        storage: LocalFeedStorage | None = None,
        feed_source: FeedSourceService | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._storage = storage or LocalFeedStorage(self._settings.uploads_dir)
        self._feed_source = feed_source or FeedSourceService(self._settings, self._storage)
        self._suppliers = SuppliersRepository(session)
        self._fields = FieldsRepository(session)
        self._mappings = FieldMappingsRepository(session)
        self._ingestions = IngestionsRepository(session)
        self._products = ProductsRepository(session)

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    async def list_suppliers(self, workspace_id: UUID, include_drafts: bool = True) -> list[Supplier]:
        return await self._suppliers.list_for_workspace(workspace_id, include_drafts=include_drafts)

    async def get_supplier(self, workspace_id: UUID, supplier_id: UUID) -> Supplier:
        supplier = await self._suppliers.get(workspace_id, supplier_id)
        if supplier is None:
            raise NotFoundError("Supplier not found", details={"supplier_id": str(supplier_id)})
        return supplier

    async def create_supplier(
        self, workspace_id: UUID, user_id: UUID | None, request: SupplierCreateRequest
    ) -> Supplier:
        supplier = await self._suppliers.create(
            workspace_id,
            created_by=user_id,
            status="active",
            sync_status="sync_needed",
            **request.model_dump(),
        )
        logger.info(
            "supplier_created",
            workspace_id=str(workspace_id),
            supplier_id=str(supplier.id),
            source_type=supplier.source_type,
            is_draft=supplier.is_draft,
        )
        return supplier

    async def update_supplier(
        self, workspace_id: UUID, supplier_id: UUID, request: SupplierUpdateRequest
    ) -> Supplier:
        supplier = await self.get_supplier(workspace_id, supplier_id)
        changes = request.model_dump(exclude_unset=True)
        nulls = sorted(name for name in REQUIRED_SUPPLIER_FIELDS if name in changes and changes[name] is None)
        if nulls:
            raise ValidationError(f"{nulls[0]} must not be null", details={"fields": nulls})
        if supplier.source_type == "url" and "endpoint_url" in changes and not changes["endpoint_url"]:
            raise ValidationError("endpoint_url is required for url suppliers")
        if {"endpoint_url", "auth_username", "auth_password"} & changes.keys():
            changes["sync_status"] = "sync_needed"
        return await self._suppliers.update(supplier, **changes)

    async def delete_supplier(self, workspace_id: UUID, supplier_id: UUID) -> None:
        """Delete a supplier; rows referencing it cascade and its uploads are removed."""
        if not await self._suppliers.delete(workspace_id, supplier_id):
            raise NotFoundError("Supplier not found", details={"supplier_id": str(supplier_id)})
        self._storage.delete_supplier_files(workspace_id, supplier_id)
        logger.info("supplier_deleted", workspace_id=str(workspace_id), supplier_id=str(supplier_id))

    # -------------------------------------------------------------------------
    # Feed source
    # -------------------------------------------------------------------------

    async def upload_feed(
        self, workspace_id: UUID, supplier_id: UUID, filename: str, data: bytes
    ) -> Supplier:
        """Store an uploaded feed file and point the supplier at it."""
        supplier = await self.get_supplier(workspace_id, supplier_id)
        if not data:
            raise ValidationError("Uploaded file is empty")
        if len(data) > self._settings.max_upload_size_bytes:
            raise ValidationError(
                f"File exceeds the {self._settings.max_upload_size_mb} MB upload limit",
                details={"size": len(data)},
            )

        source_path = self._storage.save(workspace_id, supplier_id, filename, data)
        logger.info(
            "supplier_feed_uploaded",
            supplier_id=str(supplier_id),
            path=source_path,
            size=len(data),
        )
        return await self._suppliers.update(
            supplier, source_type="upload", source_path=source_path, sync_status="sync_needed"
        )

    async def sample_keys(self, workspace_id: UUID, supplier_id: UUID) -> dict[str, Any]:
        """Fetch the head of a supplier feed and list the keys its items carry."""
        supplier = await self.get_supplier(workspace_id, supplier_id)
        fetched = await self._feed_source.fetch(supplier, max_bytes=self._settings.sniff_max_bytes)
        feed_type = fetched.feed_type
        keys = sniff_keys(fetched.data, feed_type, max_keys=self._settings.sniff_max_keys)
        if not keys:
            raise ValidationError("Could not extract keys from sample", details={"type": feed_type})
        return {"type": feed_type, "keys": keys}

    # -------------------------------------------------------------------------
    # Mapping configuration
    # -------------------------------------------------------------------------

    async def get_field_mappings(self, workspace_id: UUID, supplier_id: UUID) -> list[FieldMapping]:
        await self.get_supplier(workspace_id, supplier_id)
        return await self._mappings.list_for_supplier(workspace_id, supplier_id)

    async def replace_field_mappings(
        self, workspace_id: UUID, supplier_id: UUID, request: FieldMappingsRequest
    ) -> list[FieldMapping]:
        await self.get_supplier(workspace_id, supplier_id)
        known = {f.key for f in await self._fields.list_for_workspace(workspace_id)}
        unknown = sorted({m.field_key for m in request.mappings} - known)
        if unknown:
            raise ValidationError("Unknown field keys", details={"field_keys": unknown})
        mappings = await self._mappings.replace_for_supplier(
            workspace_id, supplier_id, [m.model_dump() for m in request.mappings]
        )
        logger.info("field_mappings_replaced", supplier_id=str(supplier_id), count=len(mappings))
        return mappings

    async def set_uid_source(
        self, workspace_id: UUID, supplier_id: UUID, uid_source_key: str
    ) -> Supplier:
        """
        Set the key products are identified by.

        Raises:
            ConflictError: If a different key is already set
        """
        supplier = await self.get_supplier(workspace_id, supplier_id)
        if supplier.uid_source_key == uid_source_key:
            return supplier
        if supplier.uid_source_key:
            raise ConflictError(
                "uid_source_key cannot be changed once set",
                details={"uid_source_key": supplier.uid_source_key},
            )
        return await self._suppliers.update(supplier, uid_source_key=uid_source_key)

    async def finalize(
        self, workspace_id: UUID, supplier_id: UUID, request: FinalizeSupplierRequest
    ) -> dict[str, Any]:
        """Publish a draft supplier and run its first sync."""
        supplier = await self.get_supplier(workspace_id, supplier_id)
        if supplier.uid_source_key and supplier.uid_source_key != request.uid_source_key:
            raise ConflictError(
                "uid_source_key cannot be changed once set",
                details={"uid_source_key": supplier.uid_source_key},
            )
        if supplier.source_type == "url" and not supplier.endpoint_url:
            raise ValidationError("endpoint_url is required for url suppliers")
        if supplier.source_type == "upload" and not supplier.source_path:
            raise ValidationError("Upload a feed file before finalizing")

        supplier = await self._suppliers.update(
            supplier,
            name=request.name,
            description=request.description,
            uid_source_key=request.uid_source_key,
            schedule_cron=request.schedule_cron,
            schedule_enabled=request.schedule_enabled,
            is_draft=False,
        )
        await self._session.commit()

        service = IngestionService(self._session, self._settings, self._feed_source)
        try:
            ingestion, remap = await service.sync_supplier(workspace_id, supplier_id)
        except FeedHubError as e:
            logger.warning("supplier_finalize_sync_failed", supplier_id=str(supplier_id), error=e.message)
            sync = SyncResult(
                supplier_id=supplier_id, supplier_name=request.name, success=False, error=e.message
            )
        else:
            sync = SyncResult(
                supplier_id=supplier_id,
                supplier_name=request.name,
                success=True,
                ingestion=ingestion,
                remap=remap,
            )

        await self._session.refresh(supplier)
        return {"supplier": supplier, "sync": sync}

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    async def list_ingestions(
        self, workspace_id: UUID, supplier_id: UUID, limit: int = 50
    ) -> list[FeedIngestion]:
        await self.get_supplier(workspace_id, supplier_id)
        return await self._ingestions.list_for_supplier(workspace_id, supplier_id, limit=limit)

    async def list_errors(
        self,
        workspace_id: UUID,
        supplier_id: UUID,
        ingestion_id: UUID,
        limit: int = 200,
        offset: int = 0,
    ) -> list[FeedError]:
        ingestion = await self._ingestions.get(workspace_id, ingestion_id)
        if ingestion is None or ingestion.supplier_id != supplier_id:
            raise NotFoundError("Ingestion not found", details={"ingestion_id": str(ingestion_id)})
        return await self._ingestions.list_errors(workspace_id, ingestion_id, limit=limit, offset=offset)

    async def raw_page(
        self, workspace_id: UUID, supplier_id: UUID, limit: int, offset: int
    ) -> tuple[list[ProductRaw], int]:
        await self.get_supplier(workspace_id, supplier_id)
        return await self._products.page_raw(workspace_id, supplier_id, limit, offset)

    async def mapped_page(
        self, workspace_id: UUID, supplier_id: UUID, limit: int, offset: int
    ) -> tuple[list[ProductMapped], int]:
        await self.get_supplier(workspace_id, supplier_id)
        return await self._products.page_mapped(workspace_id, supplier_id, limit, offset)

    async def stats(self, workspace_id: UUID, supplier_id: UUID) -> SupplierStats:
        supplier = await self.get_supplier(workspace_id, supplier_id)
        latest = await self._ingestions.latest_for_supplier(workspace_id, supplier_id)
        return SupplierStats(
            supplier_id=supplier_id,
            raw_count=await self._products.count_raw(workspace_id, supplier_id),
            mapped_count=await self._products.count_mapped(workspace_id, supplier_id),
            last_sync_at=supplier.last_sync_at,
            sync_status=supplier.sync_status,
            last_ingestion=ingestion_result(latest) if latest is not None else None,
        )
