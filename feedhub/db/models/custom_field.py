"""Custom field and field mapping ORM models."""
import uuid
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from feedhub.db.base import Base, TimestampMixin, UUIDMixin

FIELD_DATATYPES = ("text", "number", "bool", "date", "json")


class CustomField(Base, UUIDMixin, TimestampMixin):
    """Workspace-defined output attribute with a declared datatype."""

    __tablename__ = "custom_fields"
    __table_args__ = (
        UniqueConstraint("workspace_id", "key", name="uq_custom_fields_key"),
        CheckConstraint(
            "datatype IN ('text', 'number', 'bool', 'date', 'json')",
            name="check_custom_field_datatype",
        ),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    datatype: Mapped[str] = mapped_column(String(10), nullable=False, server_default="text")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    use_for_category_mapping: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="false"
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    def __repr__(self) -> str:
        return f"<CustomField(key='{self.key}', datatype='{self.datatype}')>"


class FieldMapping(Base, UUIDMixin, TimestampMixin):
    """Routes one supplier source key to one custom field key."""

    __tablename__ = "field_mappings"
    __table_args__ = (
        UniqueConstraint(
            "workspace_id", "supplier_id", "source_key", name="uq_field_mappings_source_key"
        ),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    source_key: Mapped[str] = mapped_column(String(512), nullable=False)
    field_key: Mapped[str] = mapped_column(String(100), nullable=False)
    transform_type: Mapped[str] = mapped_column(String(50), nullable=False, server_default="direct")
    transform_config: Mapped[dict[str, Any]] = mapped_column(
        postgresql.JSONB(astext_type=Text), nullable=False, server_default="{}"
    )

    def __repr__(self) -> str:
        return f"<FieldMapping('{self.source_key}' -> '{self.field_key}')>"
