"""Workspace category tree and supplier category mapping ORM models."""
import uuid

from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from feedhub.db.base import Base, TimestampMixin, UUIDMixin


class Category(Base, UUIDMixin, TimestampMixin):
    """Node of the workspace category tree.

    ``path`` is the materialized " > "-joined chain of names from the root.
    """

    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("workspace_id", "path", name="uq_categories_path"),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("categories.id", ondelete="RESTRICT"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, path='{self.path}')>"


class CategoryMapping(Base, UUIDMixin, TimestampMixin):
    """Maps a supplier's category string to a workspace category."""

    __tablename__ = "category_mappings"
    __table_args__ = (
        UniqueConstraint(
            "workspace_id", "supplier_id", "supplier_category",
            name="uq_category_mappings_supplier_category",
        ),
    )

    workspace_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("suppliers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    supplier_category: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"), nullable=False
    )

    def __repr__(self) -> str:
        return f"<CategoryMapping('{self.supplier_category}' -> {self.category_id})>"
