"""
Pydantic Request Models
=======================

API request schemas. Invalid enums and missing required fields are
rejected here and reach the client as 400 responses.
"""

from typing import Annotated, Any, Literal, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Datatype = Literal["text", "number", "bool", "date", "json"]
OutputFormat = Literal["csv", "json", "xml"]
DeliveryMethod = Literal["download", "feed", "webhook"]

NonEmptyStr = Annotated[str, Field(min_length=1, max_length=255)]


class _Request(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


# =============================================================================
# Session
# =============================================================================


class ActiveWorkspaceRequest(_Request):
    """Body of POST /api/session/active-workspace."""

    workspace_id: UUID


# =============================================================================
# Suppliers
# =============================================================================


class SupplierCreateRequest(_Request):
    """
    Body of POST /api/suppliers.

    ``url`` suppliers need an endpoint unless they are created as drafts;
    ``upload`` suppliers receive their file through the upload endpoint.
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "name": "Acme Wholesale",
                "source_type": "url",
                "endpoint_url": "https://feeds.acme.test/products.csv",
                "uid_source_key": "sku",
            }
        },
    )

    name: NonEmptyStr
    description: str | None = None
    source_type: Literal["url", "upload"] = "url"
    endpoint_url: Annotated[str | None, Field(max_length=2048)] = None
    auth_username: str | None = None
    auth_password: str | None = None
    uid_source_key: str | None = None
    schedule_cron: str | None = None
    schedule_enabled: bool = False
    is_draft: bool = False

    @field_validator("endpoint_url")
    @classmethod
    def validate_endpoint_url(cls, value: str | None) -> str | None:
        if value and not value.lower().startswith(("http://", "https://")):
            raise ValueError("endpoint_url must be an http(s) URL")
        return value or None

    @model_validator(mode="after")
    def require_endpoint_for_url(self) -> Self:
        if self.source_type == "url" and not self.endpoint_url and not self.is_draft:
            raise ValueError("endpoint_url is required for url suppliers")
        return self


class SupplierUpdateRequest(_Request):
    """Body of PATCH /api/suppliers/{id}. Only provided fields change."""

    name: NonEmptyStr | None = None
    description: str | None = None
    endpoint_url: str | None = None
    auth_username: str | None = None
    auth_password: str | None = None
    schedule_cron: str | None = None
    schedule_enabled: bool | None = None
    status: Literal["active", "paused", "error"] | None = None

    @field_validator("endpoint_url")
    @classmethod
    def validate_endpoint_url(cls, value: str | None) -> str | None:
        if value and not value.lower().startswith(("http://", "https://")):
            raise ValueError("endpoint_url must be an http(s) URL")
        return value


class FieldMappingItem(_Request):
    source_key: Annotated[str, Field(min_length=1, max_length=512)]
    field_key: Annotated[str, Field(min_length=1, max_length=100)]
    transform_type: str = "direct"
    transform_config: dict[str, Any] = Field(default_factory=dict)


class FieldMappingsRequest(_Request):
    """Body of PUT /api/suppliers/{id}/field-mappings. Replaces all mappings."""

    mappings: list[FieldMappingItem]

    @model_validator(mode="after")
    def unique_source_keys(self) -> Self:
        keys = [m.source_key for m in self.mappings]
        if len(keys) != len(set(keys)):
            raise ValueError("each source_key may be mapped only once")
        return self


class UidSourceRequest(_Request):
    uid_source_key: Annotated[str, Field(min_length=1, max_length=255)]


class FinalizeSupplierRequest(_Request):
    """Body of POST /api/suppliers/{id}/finalize."""

    name: NonEmptyStr
    uid_source_key: Annotated[str, Field(min_length=1, max_length=255)]
    description: str | None = None
    schedule_cron: str | None = None
    schedule_enabled: bool = False


class CategoryMappingItem(_Request):
    supplier_category: Annotated[str, Field(min_length=1)]
    category_id: UUID


class CategoryMappingsRequest(_Request):
    """Body of PUT /api/suppliers/{id}/category-mappings. Replaces all mappings."""

    mappings: list[CategoryMappingItem]


# =============================================================================
# Custom fields
# =============================================================================


class FieldCreateRequest(_Request):
    """Body of POST /api/fields. ``key`` defaults to a slug of ``name``."""

    name: NonEmptyStr
    key: Annotated[str | None, Field(max_length=100)] = None
    datatype: Datatype
    description: str | None = None
    is_required: bool = False
    is_visible: bool = True
    use_for_category_mapping: bool = False


class FieldUpdateRequest(_Request):
    name: NonEmptyStr | None = None
    datatype: Datatype | None = None
    description: str | None = None
    is_required: bool | None = None
    is_visible: bool | None = None
    use_for_category_mapping: bool | None = None


class FieldVisibilityRequest(_Request):
    is_visible: bool


class ReorderRequest(_Request):
    """Ids in their new order; positions become sort_order 1..n."""

    ids: Annotated[list[UUID], Field(min_length=1)]


# =============================================================================
# Categories
# =============================================================================


class CategoryCreateRequest(_Request):
    name: NonEmptyStr
    parent_id: UUID | None = None


class CategoryUpdateRequest(_Request):
    """Rename and/or reparent. An explicit ``"parent_id": null`` moves to the root."""

    name: NonEmptyStr | None = None
    parent_id: UUID | None = None


class CategoryMoveRequest(_Request):
    category_id: UUID
    new_parent_id: UUID | None = None


# =============================================================================
# Export profiles
# =============================================================================


class ExportProfileCreateRequest(_Request):
    """Body of POST /api/exports."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={
            "example": {
                "name": "Shop feed",
                "output_format": "xml",
                "field_selection": ["sku", "title", "price"],
                "filters": {"in_stock_only": True, "min_price": 1},
                "delivery_method": "feed",
            }
        },
    )

    name: NonEmptyStr
    description: str | None = None
    output_format: OutputFormat = "csv"
    platform: str | None = None
    field_selection: Annotated[list[str], Field(min_length=1)]
    field_ordering: list[str] = Field(default_factory=list)
    filters: dict[str, Any] = Field(default_factory=dict)
    file_naming: Annotated[str, Field(min_length=1, max_length=255)] = "export_{timestamp}"
    delivery_method: DeliveryMethod = "download"
    delivery_config: dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class ExportProfileUpdateRequest(_Request):
    name: NonEmptyStr | None = None
    description: str | None = None
    output_format: OutputFormat | None = None
    platform: str | None = None
    field_selection: Annotated[list[str] | None, Field(min_length=1)] = None
    field_ordering: list[str] | None = None
    filters: dict[str, Any] | None = None
    file_naming: Annotated[str | None, Field(min_length=1, max_length=255)] = None
    delivery_method: DeliveryMethod | None = None
    delivery_config: dict[str, Any] | None = None
    is_active: bool | None = None
