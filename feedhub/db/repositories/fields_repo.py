"""
Fields Repository
=================

Data access for custom_fields and field_mappings.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from feedhub.db.models import CustomField, FieldMapping


class FieldsRepository:
    """Repository for workspace custom fields."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_workspace(self, workspace_id: UUID) -> list[CustomField]:
        result = await self._session.execute(
            select(CustomField)
            .where(CustomField.workspace_id == workspace_id)
            .order_by(CustomField.sort_order, CustomField.created_at)
        )
        return list(result.scalars().all())

    async def get(self, workspace_id: UUID, field_id: UUID) -> CustomField | None:
        result = await self._session.execute(
            select(CustomField).where(
                CustomField.id == field_id,
                CustomField.workspace_id == workspace_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_by_key(self, workspace_id: UUID, key: str) -> CustomField | None:
        result = await self._session.execute(
            select(CustomField).where(
                CustomField.workspace_id == workspace_id,
                CustomField.key == key,
            )
        )
        return result.scalar_one_or_none()

    async def max_sort_order(self, workspace_id: UUID) -> int:
        value = await self._session.scalar(
            select(func.max(CustomField.sort_order)).where(CustomField.workspace_id == workspace_id)
        )
        return value or 0

    async def create(self, workspace_id: UUID, **values: Any) -> CustomField:
        field = CustomField(workspace_id=workspace_id, **values)
        self._session.add(field)
        await self._session.flush()
        await self._session.refresh(field)
        return field

    async def update(self, field: CustomField, **values: Any) -> CustomField:
        for name, value in values.items():
            setattr(field, name, value)
        await self._session.flush()
        await self._session.refresh(field)
        return field

    async def delete(self, field: CustomField) -> None:
        await self._session.delete(field)
        await self._session.flush()


class FieldMappingsRepository:
    """Repository for supplier source-key to field-key mappings."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_supplier(self, workspace_id: UUID, supplier_id: UUID) -> list[FieldMapping]:
        result = await self._session.execute(
            select(FieldMapping)
            .where(
                FieldMapping.workspace_id == workspace_id,
                FieldMapping.supplier_id == supplier_id,
            )
            .order_by(FieldMapping.created_at, FieldMapping.source_key)
        )
        return list(result.scalars().all())

    async def replace_for_supplier(
        self, workspace_id: UUID, supplier_id: UUID, mappings: list[dict[str, Any]]
    ) -> list[FieldMapping]:
        """Replace all mappings of a supplier in the current transaction."""
        await self._session.execute(
            delete(FieldMapping).where(
                FieldMapping.workspace_id == workspace_id,
                FieldMapping.supplier_id == supplier_id,
            )
        )
        rows = [
            FieldMapping(workspace_id=workspace_id, supplier_id=supplier_id, **mapping)
            for mapping in mappings
        ]
        self._session.add_all(rows)
        await self._session.flush()
        return rows

    async def delete_for_field_key(self, workspace_id: UUID, field_key: str) -> None:
        await self._session.execute(
            delete(FieldMapping).where(
                FieldMapping.workspace_id == workspace_id,
                FieldMapping.field_key == field_key,
            )
        )
