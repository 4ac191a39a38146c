"""
Categories Repository
=====================

Data access for the workspace category tree and supplier category mappings.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from feedhub.db.models import Category, CategoryMapping, ProductMapped


class CategoriesRepository:
    """Repository for categories and category_mappings."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_workspace(self, workspace_id: UUID) -> list[Category]:
        result = await self._session.execute(
            select(Category)
            .where(Category.workspace_id == workspace_id)
            .order_by(Category.path, Category.sort_order)
        )
        return list(result.scalars().all())

    async def get(self, workspace_id: UUID, category_id: UUID) -> Category | None:
        result = await self._session.execute(
            select(Category).where(
                Category.id == category_id,
                Category.workspace_id == workspace_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_path(self, workspace_id: UUID, path: str) -> Category | None:
        result = await self._session.execute(
            select(Category).where(Category.workspace_id == workspace_id, Category.path == path)
        )
        return result.scalar_one_or_none()

    async def count_children(self, workspace_id: UUID, category_id: UUID) -> int:
        value = await self._session.scalar(
            select(func.count()).select_from(Category).where(
                Category.workspace_id == workspace_id,
                Category.parent_id == category_id,
            )
        )
        return value or 0

    async def max_sort_order(self, workspace_id: UUID, parent_id: UUID | None) -> int:
        parent_clause = (
            Category.parent_id.is_(None) if parent_id is None else Category.parent_id == parent_id
        )
        value = await self._session.scalar(
            select(func.max(Category.sort_order)).where(
                Category.workspace_id == workspace_id, parent_clause
            )
        )
        return value or 0

    async def create(self, workspace_id: UUID, **values: Any) -> Category:
        category = Category(workspace_id=workspace_id, **values)
        self._session.add(category)
        await self._session.flush()
        await self._session.refresh(category)
        return category

    async def flush(self) -> None:
        await self._session.flush()

    async def delete(self, category: Category) -> None:
        """Delete a leaf category, detaching mapped products and dropping its mappings."""
        await self._session.execute(
            update(ProductMapped)
            .where(ProductMapped.category_id == category.id)
            .values(category_id=None)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(
            delete(CategoryMapping).where(CategoryMapping.category_id == category.id)
        )
        await self._session.delete(category)
        await self._session.flush()

    async def list_mappings(self, workspace_id: UUID, supplier_id: UUID) -> list[CategoryMapping]:
        result = await self._session.execute(
            select(CategoryMapping)
            .where(
                CategoryMapping.workspace_id == workspace_id,
                CategoryMapping.supplier_id == supplier_id,
            )
            .order_by(CategoryMapping.supplier_category)
        )
        return list(result.scalars().all())

    async def replace_mappings(
        self, workspace_id: UUID, supplier_id: UUID, mappings: list[dict[str, Any]]
    ) -> list[CategoryMapping]:
        await self._session.execute(
            delete(CategoryMapping).where(
                CategoryMapping.workspace_id == workspace_id,
                CategoryMapping.supplier_id == supplier_id,
            )
        )
        rows = [
            CategoryMapping(workspace_id=workspace_id, supplier_id=supplier_id, **mapping)
            for mapping in mappings
        ]
        self._session.add_all(rows)
        await self._session.flush()
        return rows
