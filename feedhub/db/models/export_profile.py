"""Export profile and export history ORM models."""
import uuid
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String, Text
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from feedhub.db.base import Base, CreatedAtMixin, TimestampMixin, UUIDMixin

OUTPUT_FORMATS = ("csv", "json", "xml")
DELIVERY_METHODS = ("download", "feed", "webhook")


class ExportProfile(Base, UUIDMixin, TimestampMixin):
    """Named recipe for rendering mapped products as a document."""

    __tablename__ = "export_profiles"
    __table_args__ = (
        CheckConstraint("output_format IN ('csv', 'json', 'xml')", name="check_export_format"),
        CheckConstraint(
            "delivery_method IN ('download', 'feed', 'webhook')",
            name="check_export_delivery_method",
        ),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    output_format: Mapped[str] = mapped_column(String(10), nullable=False, server_default="csv")
    platform: Mapped[str | None] = mapped_column(String(100), nullable=True)
    field_selection: Mapped[list[str]] = mapped_column(
        postgresql.JSONB(astext_type=Text), nullable=False, server_default="[]"
    )
    field_ordering: Mapped[list[str]] = mapped_column(
        postgresql.JSONB(astext_type=Text), nullable=False, server_default="[]"
    )
    filters: Mapped[dict[str, Any]] = mapped_column(
        postgresql.JSONB(astext_type=Text), nullable=False, server_default="{}"
    )
    file_naming: Mapped[str] = mapped_column(
        String(255), nullable=False, server_default="export_{timestamp}"
    )
    delivery_method: Mapped[str] = mapped_column(
        String(20), nullable=False, server_default="download"
    )
    delivery_config: Mapped[dict[str, Any]] = mapped_column(
        postgresql.JSONB(astext_type=Text), nullable=False, server_default="{}"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")
    created_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<ExportProfile(id={self.id}, name='{self.name}', format='{self.output_format}')>"


class ExportHistory(Base, UUIDMixin, CreatedAtMixin):
    """Record of one generated export document."""

    __tablename__ = "export_history"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    export_profile_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("export_profiles.id", ondelete="SET NULL"), nullable=True
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    item_count: Mapped[int] = mapped_column(Integer, nullable=False)
    generation_time_ms: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<ExportHistory(filename='{self.filename}', items={self.item_count})>"
