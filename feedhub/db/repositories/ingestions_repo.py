"""
Ingestions Repository
=====================

Data access for feed_ingestions and feed_errors.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from feedhub.db.models import FeedError, FeedIngestion


class IngestionsRepository:
    """Repository for ingestion runs and their per-item errors."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, workspace_id: UUID, supplier_id: UUID, **values: Any) -> FeedIngestion:
        ingestion = FeedIngestion(
            workspace_id=workspace_id,
            supplier_id=supplier_id,
            status="pending",
            items_total=0,
            items_ok=0,
            items_error=0,
            **values,
        )
        self._session.add(ingestion)
        await self._session.flush()
        return ingestion

    async def get(self, workspace_id: UUID, ingestion_id: UUID) -> FeedIngestion | None:
        result = await self._session.execute(
            select(FeedIngestion).where(
                FeedIngestion.id == ingestion_id,
                FeedIngestion.workspace_id == workspace_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_supplier(
        self, workspace_id: UUID, supplier_id: UUID, limit: int = 50
    ) -> list[FeedIngestion]:
        result = await self._session.execute(
            select(FeedIngestion)
            .where(
                FeedIngestion.workspace_id == workspace_id,
                FeedIngestion.supplier_id == supplier_id,
            )
            .order_by(FeedIngestion.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def latest_for_supplier(self, workspace_id: UUID, supplier_id: UUID) -> FeedIngestion | None:
        rows = await self.list_for_supplier(workspace_id, supplier_id, limit=1)
        return rows[0] if rows else None

    async def add_errors(self, rows: list[dict[str, Any]]) -> None:
        """Bulk insert feed_errors rows (dicts with the column values)."""
        if rows:
            await self._session.execute(insert(FeedError), rows)

    async def list_errors(
        self, workspace_id: UUID, ingestion_id: UUID, limit: int = 200, offset: int = 0
    ) -> list[FeedError]:
        result = await self._session.execute(
            select(FeedError)
            .where(
                FeedError.workspace_id == workspace_id,
                FeedError.ingestion_id == ingestion_id,
            )
            .order_by(FeedError.item_index)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def update_by_id(self, ingestion_id: UUID, **values: Any) -> None:
        """Update an ingestion without needing a loaded instance (safe after a rollback)."""
        await self._session.execute(
            update(FeedIngestion)
            .where(FeedIngestion.id == ingestion_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
