"""Unit tests for custom field management."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from feedhub.schemas.requests import FieldCreateRequest, FieldUpdateRequest
from feedhub.services.fields import FieldService, normalize_field_key
from feedhub.utils.errors import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def service():
    session = MagicMock()
    session.flush = AsyncMock()
    service = FieldService(session)
    service._fields = AsyncMock()
    service._mappings = AsyncMock()
    return service


class TestNormalizeFieldKey:
    """Test normalize_field_key()."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("Sale Price (EUR)", "sale_price_eur"), ("sku", "sku"), ("  In-Stock ", "in_stock"), ("%%", "")],
    )
    def test_keys(self, raw, expected) -> None:
        """Verify names become lowercase snake_case keys."""
        assert normalize_field_key(raw) == expected


class TestFieldService:
    """Test FieldService with mocked repositories."""

    async def test_create_derives_key(self, service, workspace_id) -> None:
        """Verify the key defaults to a slug of the name and sort order is appended."""
        service._fields.get_by_key.return_value = None
        service._fields.max_sort_order.return_value = 2

        await service.create_field(workspace_id, FieldCreateRequest(name="Sale Price", datatype="number"))

        kwargs = service._fields.create.await_args.kwargs
        assert kwargs["key"] == "sale_price"
        assert kwargs["datatype"] == "number"
        assert kwargs["sort_order"] == 3

    async def test_create_duplicate_key(self, service, workspace_id) -> None:
        """Verify keys are unique per workspace."""
        service._fields.get_by_key.return_value = SimpleNamespace(key="sku")
        with pytest.raises(ConflictError):
            await service.create_field(workspace_id, FieldCreateRequest(name="SKU", datatype="text"))

    async def test_create_empty_key(self, service, workspace_id) -> None:
        """Verify names without letters or digits are rejected."""
        with pytest.raises(ValidationError):
            await service.create_field(workspace_id, FieldCreateRequest(name="!!", datatype="text"))

    async def test_update_ignores_unset(self, service, workspace_id) -> None:
        """Verify only provided attributes are changed."""
        field = SimpleNamespace(id=uuid4(), key="price")
        service._fields.get.return_value = field
        await service.update_field(workspace_id, field.id, FieldUpdateRequest(name="Price"))
        service._fields.update.assert_awaited_once_with(field, name="Price")

    async def test_reorder(self, service, workspace_id) -> None:
        """Verify sort orders follow the given ids and unknown ids are rejected."""
        a, b = SimpleNamespace(id=uuid4(), sort_order=1), SimpleNamespace(id=uuid4(), sort_order=2)
        service._fields.list_for_workspace.return_value = [a, b]

        await service.reorder_fields(workspace_id, [b.id, a.id])
        assert (a.sort_order, b.sort_order) == (2, 1)

        with pytest.raises(ValidationError):
            await service.reorder_fields(workspace_id, [uuid4()])

    async def test_delete_removes_mappings(self, service, workspace_id) -> None:
        """Verify deleting a field drops the supplier mappings targeting it."""
        field = SimpleNamespace(id=uuid4(), key="price")
        service._fields.get.return_value = field
        await service.delete_field(workspace_id, field.id)
        service._mappings.delete_for_field_key.assert_awaited_once_with(workspace_id, "price")
        service._fields.delete.assert_awaited_once_with(field)

    async def test_missing_field(self, service, workspace_id) -> None:
        """Verify an unknown field is a 404."""
        service._fields.get.return_value = None
        with pytest.raises(NotFoundError):
            await service.set_visibility(workspace_id, uuid4(), False)
