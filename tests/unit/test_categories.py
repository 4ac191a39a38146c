"""Unit tests for the category tree and supplier category mappings."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from feedhub.schemas.requests import (
    CategoryCreateRequest,
    CategoryMappingsRequest,
    CategoryUpdateRequest,
)
from feedhub.services.categories import (
    CategoryService,
    build_category_path,
    collect_subtree,
    recompute_paths,
)
from feedhub.utils.errors import ConflictError, NotFoundError, ValidationError


def node(name, parent=None, path=None, sort_order=1):
    return SimpleNamespace(
        id=uuid4(),
        name=name,
        parent_id=parent.id if parent else None,
        path=path or build_category_path(parent.path if parent else None, name),
        sort_order=sort_order,
    )


@pytest.fixture
def tree():
    electronics = node("Electronics")
    phones = node("Phones", electronics)
    android = node("Android", phones)
    garden = node("Garden")
    return SimpleNamespace(electronics=electronics, phones=phones, android=android, garden=garden)


@pytest.fixture
def service(tree):
    service = CategoryService(MagicMock())
    service._categories = AsyncMock()
    service._suppliers = AsyncMock()
    categories = [tree.electronics, tree.phones, tree.android, tree.garden]
    service._categories.list_for_workspace.return_value = categories
    by_id = {c.id: c for c in categories}
    service._categories.get.side_effect = lambda workspace_id, category_id: by_id.get(category_id)
    service._categories.max_sort_order.return_value = 3
    return service


class TestPaths:
    """Test path helpers."""

    def test_build_category_path(self) -> None:
        """Verify paths join names with ' > '."""
        assert build_category_path(None, " Electronics ") == "Electronics"
        assert build_category_path("Electronics", "Phones") == "Electronics > Phones"

    def test_collect_subtree(self, tree) -> None:
        """Verify the subtree lists parents before children."""
        categories = [tree.android, tree.garden, tree.phones, tree.electronics]
        subtree = collect_subtree(categories, tree.electronics.id)
        assert subtree == [tree.electronics, tree.phones, tree.android]
        assert collect_subtree(categories, uuid4()) == []

    def test_recompute_paths(self, tree) -> None:
        """Verify descendants follow a renamed or moved root."""
        categories = [tree.electronics, tree.phones, tree.android, tree.garden]
        subtree = collect_subtree(categories, tree.phones.id)
        paths = recompute_paths(subtree, "Garden")
        assert paths == {
            tree.phones.id: "Garden > Phones",
            tree.android.id: "Garden > Phones > Android",
        }


class TestCategoryService:
    """Test CategoryService with mocked repositories."""

    async def test_create_under_parent(self, service, tree, workspace_id) -> None:
        """Verify a child gets the parent path and the next sort order."""
        service._categories.get_by_path.return_value = None
        await service.create_category(
            workspace_id, CategoryCreateRequest(name="Tablets", parent_id=tree.electronics.id)
        )
        service._categories.create.assert_awaited_once_with(
            workspace_id,
            parent_id=tree.electronics.id,
            name="Tablets",
            path="Electronics > Tablets",
            sort_order=4,
        )

    async def test_create_duplicate_path(self, service, workspace_id) -> None:
        """Verify two categories cannot share a path."""
        service._categories.get_by_path.return_value = SimpleNamespace()
        with pytest.raises(ConflictError):
            await service.create_category(workspace_id, CategoryCreateRequest(name="Garden"))

    async def test_create_with_unknown_parent(self, service, workspace_id) -> None:
        """Verify an unknown parent is a validation error."""
        with pytest.raises(ValidationError):
            await service.create_category(
                workspace_id, CategoryCreateRequest(name="X", parent_id=uuid4())
            )

    async def test_rename_rewrites_subtree(self, service, tree, workspace_id) -> None:
        """Verify renaming updates every descendant path."""
        await service.update_category(
            workspace_id, tree.electronics.id, CategoryUpdateRequest(name="Tech")
        )
        assert tree.electronics.path == "Tech"
        assert tree.phones.path == "Tech > Phones"
        assert tree.android.path == "Tech > Phones > Android"
        assert tree.garden.path == "Garden"
        service._categories.flush.assert_awaited_once()

    async def test_move_to_new_parent(self, service, tree, workspace_id) -> None:
        """Verify a move reparents, reorders and rewrites paths."""
        moved = await service.move_category(workspace_id, tree.phones.id, tree.garden.id)
        assert moved.parent_id == tree.garden.id
        assert moved.sort_order == 4
        assert tree.android.path == "Garden > Phones > Android"

    async def test_move_to_root_with_explicit_null(self, service, tree, workspace_id) -> None:
        """Verify an explicit null parent moves the category to the root."""
        request = CategoryUpdateRequest.model_validate({"parent_id": None})
        await service.update_category(workspace_id, tree.phones.id, request)
        assert tree.phones.parent_id is None
        assert tree.android.path == "Phones > Android"

    async def test_move_under_descendant_rejected(self, service, tree, workspace_id) -> None:
        """Verify cycles are rejected."""
        with pytest.raises(ValidationError):
            await service.move_category(workspace_id, tree.electronics.id, tree.android.id)
        with pytest.raises(ValidationError):
            await service.move_category(workspace_id, tree.electronics.id, tree.electronics.id)

    async def test_rename_clash(self, service, tree, workspace_id) -> None:
        """Verify a rename colliding with another category is a conflict."""
        with pytest.raises(ConflictError):
            await service.update_category(
                workspace_id, tree.electronics.id, CategoryUpdateRequest(name="Garden")
            )

    async def test_reorder(self, service, tree, workspace_id) -> None:
        """Verify sort orders follow the given ids."""
        await service.reorder_categories(workspace_id, [tree.garden.id, tree.electronics.id])
        assert (tree.garden.sort_order, tree.electronics.sort_order) == (1, 2)

        with pytest.raises(ValidationError):
            await service.reorder_categories(workspace_id, [uuid4()])

    async def test_delete_with_children_rejected(self, service, tree, workspace_id) -> None:
        """Verify a category with subcategories cannot be deleted."""
        service._categories.count_children.return_value = 1
        with pytest.raises(ConflictError):
            await service.delete_category(workspace_id, tree.electronics.id)
        service._categories.delete.assert_not_called()

    async def test_delete_leaf(self, service, tree, workspace_id) -> None:
        """Verify a leaf category is deleted."""
        service._categories.count_children.return_value = 0
        await service.delete_category(workspace_id, tree.android.id)
        service._categories.delete.assert_awaited_once_with(tree.android)

    async def test_delete_missing(self, service, workspace_id) -> None:
        """Verify an unknown category is a 404."""
        with pytest.raises(NotFoundError):
            await service.delete_category(workspace_id, uuid4())


class TestCategoryMappings:
    """Test supplier category mapping replacement."""

    async def test_last_entry_wins(self, service, tree, workspace_id, supplier_id) -> None:
        """Verify duplicate supplier categories keep the last target."""
        service._suppliers.get.return_value = SimpleNamespace(id=supplier_id)
        request = CategoryMappingsRequest(
            mappings=[
                {"supplier_category": "Mobiles", "category_id": tree.electronics.id},
                {"supplier_category": "Mobiles", "category_id": tree.phones.id},
                {"supplier_category": "Lawn", "category_id": tree.garden.id},
            ]
        )
        await service.replace_mappings(workspace_id, supplier_id, request)
        service._categories.replace_mappings.assert_awaited_once_with(
            workspace_id,
            supplier_id,
            [
                {"supplier_category": "Mobiles", "category_id": tree.phones.id},
                {"supplier_category": "Lawn", "category_id": tree.garden.id},
            ],
        )

    async def test_unknown_category(self, service, workspace_id, supplier_id) -> None:
        """Verify mappings must target workspace categories."""
        service._suppliers.get.return_value = SimpleNamespace(id=supplier_id)
        request = CategoryMappingsRequest(
            mappings=[{"supplier_category": "Mobiles", "category_id": uuid4()}]
        )
        with pytest.raises(ValidationError):
            await service.replace_mappings(workspace_id, supplier_id, request)

    async def test_unknown_supplier(self, service, workspace_id, supplier_id) -> None:
        """Verify the supplier must exist in the workspace."""
        service._suppliers.get.return_value = None
        with pytest.raises(NotFoundError):
            await service.list_mappings(workspace_id, supplier_id)
