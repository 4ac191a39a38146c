"""Feed ingestion run and per-item error ORM models."""
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from feedhub.db.base import Base, CreatedAtMixin, UUIDMixin

INGESTION_STATUSES = ("pending", "running", "completed", "failed")


class FeedIngestion(Base, UUIDMixin, CreatedAtMixin):
    """One ingestion run of a supplier feed.

    Invariant once finished: items_total == items_ok + items_error.
    """

    __tablename__ = "feed_ingestions"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'running', 'completed', 'failed')",
            name="check_ingestion_status",
        ),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="pending")
    feed_type: Mapped[str | None] = mapped_column(String(10), nullable=True)
    source_file: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    items_total: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    items_ok: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    items_error: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<FeedIngestion(id={self.id}, supplier_id={self.supplier_id}, "
            f"status='{self.status}', ok={self.items_ok}, errors={self.items_error})>"
        )


class FeedError(Base, UUIDMixin, CreatedAtMixin):
    """An item that could not be ingested, with a truncated copy of its raw payload."""

    __tablename__ = "feed_errors"

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False
    )
    ingestion_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("feed_ingestions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_index: Mapped[int] = mapped_column(Integer, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    raw: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<FeedError(ingestion_id={self.ingestion_id}, item_index={self.item_index})>"
