"""
Pydantic Response Models
========================

Serialized views of ORM rows. Secrets (supplier passwords) never leave
the service; only their presence is reported.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field


class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class SupplierOut(_Out):
    id: UUID
    workspace_id: UUID
    name: str
    description: str | None = None
    source_type: str
    endpoint_url: str | None = None
    source_path: str | None = None
    auth_username: str | None = None
    auth_password: str | None = Field(default=None, exclude=True)
    uid_source_key: str | None = None
    schedule_cron: str | None = None
    schedule_enabled: bool = False
    status: str
    sync_status: str
    last_sync_at: datetime | None = None
    error_message: str | None = None
    is_draft: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_auth_password(self) -> bool:
        return bool(self.auth_password)


class IngestionOut(_Out):
    id: UUID
    supplier_id: UUID
    status: str
    feed_type: str | None = None
    source_file: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int | None = None
    items_total: int = 0
    items_ok: int = 0
    items_error: int = 0
    error_message: str | None = None
    created_at: datetime | None = None


class FeedErrorOut(_Out):
    id: UUID
    ingestion_id: UUID
    item_index: int
    message: str
    raw: str | None = None


class ProductRawOut(_Out):
    id: UUID
    supplier_id: UUID
    external_id: str
    raw: dict[str, Any]
    imported_at: datetime | None = None


class ProductMappedOut(_Out):
    id: UUID
    supplier_id: UUID
    external_id: str
    fields: dict[str, Any]
    category_id: UUID | None = None
    imported_at: datetime | None = None


class CustomFieldOut(_Out):
    id: UUID
    key: str
    name: str
    datatype: str
    description: str | None = None
    is_required: bool = False
    is_visible: bool = True
    use_for_category_mapping: bool = False
    sort_order: int = 0


class FieldMappingOut(_Out):
    id: UUID
    source_key: str
    field_key: str
    transform_type: str = "direct"
    transform_config: dict[str, Any] = Field(default_factory=dict)


class CategoryOut(_Out):
    id: UUID
    parent_id: UUID | None = None
    name: str
    path: str
    sort_order: int = 0


class CategoryMappingOut(_Out):
    id: UUID
    supplier_id: UUID
    supplier_category: str
    category_id: UUID


class ExportProfileOut(_Out):
    id: UUID
    name: str
    description: str | None = None
    output_format: str
    platform: str | None = None
    field_selection: list[str]
    field_ordering: list[str]
    filters: dict[str, Any]
    file_naming: str
    delivery_method: str
    delivery_config: dict[str, Any]
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    feed_url: str | None = None


class ExportHistoryOut(_Out):
    id: UUID
    export_profile_id: UUID | None = None
    filename: str
    file_size: int
    item_count: int
    generation_time_ms: int
    created_at: datetime | None = None
