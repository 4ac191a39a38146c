"""Custom field schema management."""
import re
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from feedhub.db.models import CustomField
from feedhub.db.repositories import FieldMappingsRepository, FieldsRepository
from feedhub.schemas.requests import FieldCreateRequest, FieldUpdateRequest
from feedhub.utils.errors import ConflictError, NotFoundError, ValidationError
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)

_KEY_INVALID_RE = re.compile(r"[^a-z0-9_]+")


def normalize_field_key(value: str) -> str:
    """
    >>> normalize_field_key("Sale Price (EUR)")
    'sale_price_eur'
    """
    return _KEY_INVALID_RE.sub("_", value.strip().lower()).strip("_")


class FieldService:
    """CRUD and ordering for a workspace's custom fields."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._fields = FieldsRepository(session)
        self._mappings = FieldMappingsRepository(session)

    async def list_fields(self, workspace_id: UUID) -> list[CustomField]:
        return await self._fields.list_for_workspace(workspace_id)

    async def get_field(self, workspace_id: UUID, field_id: UUID) -> CustomField:
        field = await self._fields.get(workspace_id, field_id)
        if field is None:
            raise NotFoundError("Field not found", details={"field_id": str(field_id)})
        return field

    async def create_field(self, workspace_id: UUID, request: FieldCreateRequest) -> CustomField:
        key = normalize_field_key(request.key or request.name)
        if not key:
            raise ValidationError("Field key must contain letters or digits")
        if await self._fields.get_by_key(workspace_id, key) is not None:
            raise ConflictError(f"Field '{key}' already exists")

        field = await self._fields.create(
            workspace_id,
            key=key,
            name=request.name,
            datatype=request.datatype,
            description=request.description,
            is_required=request.is_required,
            is_visible=request.is_visible,
            use_for_category_mapping=request.use_for_category_mapping,
            sort_order=await self._fields.max_sort_order(workspace_id) + 1,
        )
        logger.info("field_created", workspace_id=str(workspace_id), key=key)
        return field

    async def update_field(
        self, workspace_id: UUID, field_id: UUID, request: FieldUpdateRequest
    ) -> CustomField:
        field = await self.get_field(workspace_id, field_id)
        changes = request.model_dump(exclude_unset=True, exclude_none=True)
        return await self._fields.update(field, **changes)

    async def set_visibility(self, workspace_id: UUID, field_id: UUID, is_visible: bool) -> CustomField:
        field = await self.get_field(workspace_id, field_id)
        return await self._fields.update(field, is_visible=is_visible)

    async def reorder_fields(self, workspace_id: UUID, ids: list[UUID]) -> None:
        by_id = {f.id: f for f in await self._fields.list_for_workspace(workspace_id)}
        missing = [str(i) for i in ids if i not in by_id]
        if missing:
            raise ValidationError("Unknown field ids", details={"ids": missing})
        for position, field_id in enumerate(ids, start=1):
            by_id[field_id].sort_order = position
        await self._session.flush()

    async def delete_field(self, workspace_id: UUID, field_id: UUID) -> None:
        field = await self.get_field(workspace_id, field_id)
        await self._mappings.delete_for_field_key(workspace_id, field.key)
        await self._fields.delete(field)
        logger.info("field_deleted", workspace_id=str(workspace_id), key=field.key)
