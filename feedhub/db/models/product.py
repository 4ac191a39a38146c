"""Raw and mapped product ORM models."""
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from feedhub.db.base import Base, UUIDMixin


class ProductRaw(Base, UUIDMixin):
    """Supplier item exactly as it appeared in the feed, keyed by its external id."""

    __tablename__ = "products_raw"
    __table_args__ = (
        UniqueConstraint(
            "workspace_id", "supplier_id", "external_id", name="uq_products_raw_external"
        ),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingestion_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("feed_ingestions.id", ondelete="SET NULL"), nullable=True
    )
    external_id: Mapped[str] = mapped_column(String(512), nullable=False)
    raw: Mapped[dict[str, Any]] = mapped_column(
        postgresql.JSONB(astext_type=Text), nullable=False, server_default="{}"
    )
    source_file: Mapped[str | None] = mapped_column(Text, nullable=True)
    imported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<ProductRaw(supplier_id={self.supplier_id}, external_id='{self.external_id}')>"


class ProductMapped(Base, UUIDMixin):
    """Supplier item projected onto the workspace's custom fields."""

    __tablename__ = "products_mapped"
    __table_args__ = (
        UniqueConstraint(
            "workspace_id", "supplier_id", "external_id", name="uq_products_mapped_external"
        ),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingestion_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("feed_ingestions.id", ondelete="SET NULL"), nullable=True
    )
    external_id: Mapped[str] = mapped_column(String(512), nullable=False)
    fields: Mapped[dict[str, Any]] = mapped_column(
        postgresql.JSONB(astext_type=Text), nullable=False, server_default="{}"
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    source_file: Mapped[str | None] = mapped_column(Text, nullable=True)
    imported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<ProductMapped(supplier_id={self.supplier_id}, external_id='{self.external_id}')>"
