"""
Suppliers Repository
====================

Data access for the suppliers table, including the compare-and-swap
run guard that keeps two ingestions of one supplier from overlapping.
"""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from feedhub.db.models import Supplier
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)


class SuppliersRepository:
    """Repository for suppliers table operations. Every query is workspace scoped."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, workspace_id: UUID, supplier_id: UUID) -> Supplier | None:
        result = await self._session.execute(
            select(Supplier).where(
                Supplier.id == supplier_id,
                Supplier.workspace_id == workspace_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_workspace(self, workspace_id: UUID, include_drafts: bool = True) -> list[Supplier]:
        query = select(Supplier).where(Supplier.workspace_id == workspace_id)
        if not include_drafts:
            query = query.where(Supplier.is_draft.is_(False))
        result = await self._session.execute(query.order_by(Supplier.created_at.desc()))
        return list(result.scalars().all())

    async def list_syncable(self, workspace_id: UUID) -> list[Supplier]:
        """Active, published suppliers, the set processed by sync-all."""
        result = await self._session.execute(
            select(Supplier)
            .where(
                Supplier.workspace_id == workspace_id,
                Supplier.status == "active",
                Supplier.is_draft.is_(False),
            )
            .order_by(Supplier.name)
        )
        return list(result.scalars().all())

    async def create(self, workspace_id: UUID, **values: Any) -> Supplier:
        supplier = Supplier(workspace_id=workspace_id, **values)
        self._session.add(supplier)
        await self._session.flush()
        await self._session.refresh(supplier)
        return supplier

    async def update(self, supplier: Supplier, **values: Any) -> Supplier:
        for name, value in values.items():
            setattr(supplier, name, value)
        await self._session.flush()
        await self._session.refresh(supplier)
        return supplier

    async def delete(self, workspace_id: UUID, supplier_id: UUID) -> bool:
        result = await self._session.execute(
            delete(Supplier).where(
                Supplier.id == supplier_id,
                Supplier.workspace_id == workspace_id,
            )
        )
        return result.rowcount > 0

    async def try_start_sync(
        self, workspace_id: UUID, supplier_id: UUID, lock_ttl_seconds: int
    ) -> bool:
        """
        Atomically mark a supplier as syncing.

        The UPDATE only matches when no other run holds the guard, or when
        the holder started longer than ``lock_ttl_seconds`` ago. Concurrent
        callers serialize on the row lock and re-check the predicate, so at
        most one of them sees a row returned.

        Returns:
            True when this caller now owns the run
        """
        now = datetime.now(timezone.utc)
        stale_before = now - timedelta(seconds=lock_ttl_seconds)
        result = await self._session.execute(
            update(Supplier)
            .where(
                Supplier.id == supplier_id,
                Supplier.workspace_id == workspace_id,
                or_(
                    Supplier.sync_status != "syncing",
                    Supplier.sync_started_at.is_(None),
                    Supplier.sync_started_at < stale_before,
                ),
            )
            .values(sync_status="syncing", sync_started_at=now)
            .returning(Supplier.id)
            .execution_options(synchronize_session=False)
        )
        acquired = result.scalar_one_or_none() is not None
        logger.debug("supplier_sync_guard", supplier_id=str(supplier_id), acquired=acquired)
        return acquired

    async def finish_sync(
        self,
        workspace_id: UUID,
        supplier_id: UUID,
        succeeded: bool,
        error_message: str | None = None,
    ) -> None:
        """Release the run guard, recording the outcome on the supplier."""
        values: dict[str, Any] = {
            "sync_status": "synced" if succeeded else "failed",
            "sync_started_at": None,
            "error_message": None if succeeded else error_message,
        }
        if succeeded:
            values["last_sync_at"] = datetime.now(timezone.utc)
        await self._session.execute(
            update(Supplier)
            .where(Supplier.id == supplier_id, Supplier.workspace_id == workspace_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
