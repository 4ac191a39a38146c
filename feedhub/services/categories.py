"""
Category Service
================

Workspace category tree with materialized " > " paths.

Renaming or moving a category rewrites the paths of its whole subtree in
the request transaction, so ``path`` always matches the parent chain.
"""

from collections import defaultdict
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from feedhub.db.models import Category, CategoryMapping
from feedhub.db.repositories import CategoriesRepository, SuppliersRepository
from feedhub.schemas.requests import (
    CategoryCreateRequest,
    CategoryMappingsRequest,
    CategoryUpdateRequest,
)
from feedhub.utils.errors import ConflictError, NotFoundError, ValidationError
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)

PATH_SEPARATOR = " > "


def build_category_path(parent_path: str | None, name: str) -> str:
    """
    >>> build_category_path("Electronics", "Phones")
    'Electronics > Phones'
    >>> build_category_path(None, "Electronics")
    'Electronics'
    """
    name = name.strip()
    return f"{parent_path}{PATH_SEPARATOR}{name}" if parent_path else name


def collect_subtree(categories: Iterable[Any], root_id: UUID) -> list[Any]:
    """Root followed by all of its descendants, parents before children."""
    by_id = {c.id: c for c in categories}
    children: dict[UUID | None, list[Any]] = defaultdict(list)
    for category in by_id.values():
        children[category.parent_id].append(category)

    if root_id not in by_id:
        return []
    ordered = [by_id[root_id]]
    for node in ordered:
        ordered.extend(children.get(node.id, []))
    return ordered


def recompute_paths(subtree: list[Any], root_parent_path: str | None) -> dict[UUID, str]:
    """
    New path of every node in ``subtree`` (as returned by collect_subtree).

    The root's name is used as-is; callers apply a rename before calling.
    """
    paths: dict[UUID, str] = {}
    for node in subtree:
        parent_path = root_parent_path if node is subtree[0] else paths[node.parent_id]
        paths[node.id] = build_category_path(parent_path, node.name)
    return paths


class CategoryService:
    """Category tree operations for one workspace at a time."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._categories = CategoriesRepository(session)
        self._suppliers = SuppliersRepository(session)

    async def list_categories(self, workspace_id: UUID) -> list[Category]:
        return await self._categories.list_for_workspace(workspace_id)

    async def get_category(self, workspace_id: UUID, category_id: UUID) -> Category:
        category = await self._categories.get(workspace_id, category_id)
        if category is None:
            raise NotFoundError("Category not found", details={"category_id": str(category_id)})
        return category

    async def _parent_path(self, workspace_id: UUID, parent_id: UUID | None) -> str | None:
        if parent_id is None:
            return None
        parent = await self._categories.get(workspace_id, parent_id)
        if parent is None:
            raise ValidationError("Parent category not found", details={"parent_id": str(parent_id)})
        return parent.path

    async def create_category(
        self, workspace_id: UUID, request: CategoryCreateRequest
    ) -> Category:
        path = build_category_path(
            await self._parent_path(workspace_id, request.parent_id), request.name
        )
        if await self._categories.get_by_path(workspace_id, path) is not None:
            raise ConflictError(f"Category '{path}' already exists")

        category = await self._categories.create(
            workspace_id,
            parent_id=request.parent_id,
            name=request.name,
            path=path,
            sort_order=await self._categories.max_sort_order(workspace_id, request.parent_id) + 1,
        )
        logger.info("category_created", workspace_id=str(workspace_id), path=path)
        return category

    async def update_category(
        self, workspace_id: UUID, category_id: UUID, request: CategoryUpdateRequest
    ) -> Category:
        """Rename and/or reparent a category, rewriting its subtree's paths."""
        category = await self.get_category(workspace_id, category_id)
        name = request.name if request.name is not None else category.name
        parent_id = (
            request.parent_id if "parent_id" in request.model_fields_set else category.parent_id
        )
        return await self._relocate(workspace_id, category, name, parent_id)

    async def move_category(
        self, workspace_id: UUID, category_id: UUID, new_parent_id: UUID | None
    ) -> Category:
        category = await self.get_category(workspace_id, category_id)
        return await self._relocate(workspace_id, category, category.name, new_parent_id)

    async def _relocate(
        self, workspace_id: UUID, category: Category, name: str, parent_id: UUID | None
    ) -> Category:
        all_categories = await self._categories.list_for_workspace(workspace_id)
        subtree = collect_subtree(all_categories, category.id)
        subtree_ids = {node.id for node in subtree}
        if parent_id is not None and parent_id in subtree_ids:
            raise ValidationError("A category cannot be moved under itself or its descendants")

        parent_path = await self._parent_path(workspace_id, parent_id)
        if parent_id != category.parent_id:
            category.sort_order = await self._categories.max_sort_order(workspace_id, parent_id) + 1
        category.name = name.strip()
        category.parent_id = parent_id

        new_paths = recompute_paths(subtree, parent_path)
        taken = {c.path for c in all_categories if c.id not in subtree_ids}
        clashes = sorted(path for path in new_paths.values() if path in taken)
        if clashes:
            raise ConflictError(f"Category '{clashes[0]}' already exists")

        for node in subtree:
            node.path = new_paths[node.id]
        await self._categories.flush()

        logger.info(
            "category_relocated",
            workspace_id=str(workspace_id),
            category_id=str(category.id),
            path=category.path,
            subtree_size=len(subtree),
        )
        return category

    async def reorder_categories(self, workspace_id: UUID, ids: list[UUID]) -> None:
        """Assign sort_order 1..n following ``ids``."""
        by_id = {c.id: c for c in await self._categories.list_for_workspace(workspace_id)}
        missing = [str(i) for i in ids if i not in by_id]
        if missing:
            raise ValidationError("Unknown category ids", details={"ids": missing})
        for position, category_id in enumerate(ids, start=1):
            by_id[category_id].sort_order = position
        await self._categories.flush()

    async def delete_category(self, workspace_id: UUID, category_id: UUID) -> None:
        category = await self.get_category(workspace_id, category_id)
        if await self._categories.count_children(workspace_id, category_id):
            raise ConflictError("Cannot delete a category that has subcategories")
        await self._categories.delete(category)
        logger.info("category_deleted", workspace_id=str(workspace_id), category_id=str(category_id))

    # -------------------------------------------------------------------------
    # Supplier category mappings
    # -------------------------------------------------------------------------

    async def _require_supplier(self, workspace_id: UUID, supplier_id: UUID) -> None:
        if await self._suppliers.get(workspace_id, supplier_id) is None:
            raise NotFoundError("Supplier not found", details={"supplier_id": str(supplier_id)})

    async def list_mappings(self, workspace_id: UUID, supplier_id: UUID) -> list[CategoryMapping]:
        await self._require_supplier(workspace_id, supplier_id)
        return await self._categories.list_mappings(workspace_id, supplier_id)

    async def replace_mappings(
        self, workspace_id: UUID, supplier_id: UUID, request: CategoryMappingsRequest
    ) -> list[CategoryMapping]:
        await self._require_supplier(workspace_id, supplier_id)
        known = {c.id for c in await self._categories.list_for_workspace(workspace_id)}
        unknown = sorted({str(m.category_id) for m in request.mappings if m.category_id not in known})
        if unknown:
            raise ValidationError("Unknown category ids", details={"ids": unknown})

        # one mapping per supplier category; the last entry wins
        rows = {m.supplier_category: m.category_id for m in request.mappings}
        return await self._categories.replace_mappings(
            workspace_id,
            supplier_id,
            [{"supplier_category": key, "category_id": value} for key, value in rows.items()],
        )
