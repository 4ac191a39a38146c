"""Supplier ORM model."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from feedhub.db.base import Base, TimestampMixin, UUIDMixin

SOURCE_TYPES = ("url", "upload")
SUPPLIER_STATUSES = ("active", "paused", "error")
SYNC_STATUSES = ("synced", "sync_needed", "syncing", "failed")


class Supplier(Base, UUIDMixin, TimestampMixin):
    """A feed source within a workspace.

    ``sync_status`` doubles as the per-supplier run guard: it is switched to
    ``syncing`` with a conditional UPDATE before an ingestion starts, and
    ``sync_started_at`` lets a stale guard expire.
    """

    __tablename__ = "suppliers"
    __table_args__ = (
        CheckConstraint("source_type IN ('url', 'upload')", name="check_supplier_source_type"),
        CheckConstraint("status IN ('active', 'paused', 'error')", name="check_supplier_status"),
        CheckConstraint(
            "sync_status IN ('synced', 'sync_needed', 'syncing', 'failed')",
            name="check_supplier_sync_status",
        ),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_type: Mapped[str] = mapped_column(String(20), nullable=False, server_default="url")
    endpoint_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    auth_username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    auth_password: Mapped[str | None] = mapped_column(String(255), nullable=True)
    uid_source_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    schedule_cron: Mapped[str | None] = mapped_column(String(100), nullable=True)
    schedule_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="active", index=True)
    sync_status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="sync_needed")
    sync_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_draft: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    created_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Supplier(id={self.id}, name='{self.name}', sync_status='{self.sync_status}')>"
