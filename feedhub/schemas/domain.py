"""
Domain Result Models
====================

Pydantic models returned by services and serialized as-is by the API.
"""

from datetime import datetime
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class IngestionResult(BaseModel):
    """Outcome of one ingestion run. ``items_total == items_ok + items_error``."""

    model_config = ConfigDict(from_attributes=True)

    ingestion_id: UUID
    supplier_id: UUID
    status: Literal["pending", "running", "completed", "failed"]
    feed_type: str | None = None
    source_file: str | None = None
    items_total: Annotated[int, Field(ge=0)] = 0
    items_ok: Annotated[int, Field(ge=0)] = 0
    items_error: Annotated[int, Field(ge=0)] = 0
    duration_ms: int | None = None
    error_message: str | None = None


class RemapResult(BaseModel):
    """Outcome of re-applying field mappings to a supplier's raw rows."""

    supplier_id: UUID
    rows_processed: int = 0
    rows_mapped: int = 0
    categorized: int = 0


class SyncResult(BaseModel):
    """Per-supplier entry of a sync-all run."""

    supplier_id: UUID
    supplier_name: str
    success: bool
    ingestion: IngestionResult | None = None
    remap: RemapResult | None = None
    error: str | None = None


class SyncAllSummary(BaseModel):
    """Aggregate of a sync-all run."""

    total: int
    successful: int
    failed: int
    results: list[SyncResult]


class FieldDefinition(BaseModel):
    """The parts of a custom field that mapping needs."""

    model_config = ConfigDict(from_attributes=True)

    key: str
    datatype: str = "text"
    use_for_category_mapping: bool = False


class ExportDocument(BaseModel):
    """A rendered export file."""

    content: str
    media_type: str
    extension: str
    filename: str
    item_count: int


class SupplierStats(BaseModel):
    """Counters shown on a supplier's detail page."""

    supplier_id: UUID
    raw_count: int
    mapped_count: int
    last_sync_at: datetime | None = None
    sync_status: str
    last_ingestion: IngestionResult | None = None
    extra: dict[str, Any] = Field(default_factory=dict)
