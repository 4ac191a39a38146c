"""
Products Repository
===================

Data access for products_raw and products_mapped. Both tables are written
with PostgreSQL upserts keyed by (workspace_id, supplier_id, external_id),
so re-ingesting or re-mapping the same items never duplicates rows.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from feedhub.db.models import ProductMapped, ProductRaw
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)

_CONFLICT_KEYS = ["workspace_id", "supplier_id", "external_id"]


def dedupe_by_external_id(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Keep the last row per external_id.

    PostgreSQL rejects an upsert that touches the same conflict key twice
    in one statement, and the last occurrence in a feed wins.
    """
    latest: dict[str, dict[str, Any]] = {}
    for row in rows:
        latest.pop(row["external_id"], None)
        latest[row["external_id"]] = row
    return list(latest.values())


class ProductsRepository:
    """Repository for raw and mapped product rows."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert_raw(self, rows: list[dict[str, Any]]) -> int:
        """
        Insert or refresh raw rows.

        Args:
            rows: Dicts with workspace_id, supplier_id, ingestion_id,
                external_id, raw and source_file

        Returns:
            Number of distinct rows written
        """
        rows = dedupe_by_external_id(rows)
        if not rows:
            return 0

        stmt = insert(ProductRaw).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=_CONFLICT_KEYS,
            set_={
                "raw": stmt.excluded.raw,
                "ingestion_id": stmt.excluded.ingestion_id,
                "source_file": stmt.excluded.source_file,
                "imported_at": func.now(),
            },
        )
        await self._session.execute(stmt)
        logger.debug("raw_products_upserted", count=len(rows))
        return len(rows)

    async def upsert_mapped(self, rows: list[dict[str, Any]]) -> int:
        """Insert or refresh mapped rows (workspace_id, supplier_id, external_id, fields, category_id, ...)."""
        rows = dedupe_by_external_id(rows)
        if not rows:
            return 0

        stmt = insert(ProductMapped).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=_CONFLICT_KEYS,
            set_={
                "fields": stmt.excluded.fields,
                "category_id": stmt.excluded.category_id,
                "ingestion_id": stmt.excluded.ingestion_id,
                "source_file": stmt.excluded.source_file,
                "imported_at": func.now(),
            },
        )
        await self._session.execute(stmt)
        logger.debug("mapped_products_upserted", count=len(rows))
        return len(rows)

    async def recent_raw(self, workspace_id: UUID, supplier_id: UUID, limit: int) -> list[ProductRaw]:
        """Most recently imported raw rows of a supplier."""
        result = await self._session.execute(
            select(ProductRaw)
            .where(
                ProductRaw.workspace_id == workspace_id,
                ProductRaw.supplier_id == supplier_id,
            )
            .order_by(ProductRaw.imported_at.desc(), ProductRaw.external_id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def page_raw(
        self, workspace_id: UUID, supplier_id: UUID, limit: int, offset: int
    ) -> tuple[list[ProductRaw], int]:
        where = (ProductRaw.workspace_id == workspace_id, ProductRaw.supplier_id == supplier_id)
        total = await self._session.scalar(select(func.count()).select_from(ProductRaw).where(*where))
        result = await self._session.execute(
            select(ProductRaw)
            .where(*where)
            .order_by(ProductRaw.imported_at.desc(), ProductRaw.external_id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def page_mapped(
        self, workspace_id: UUID, supplier_id: UUID, limit: int, offset: int
    ) -> tuple[list[ProductMapped], int]:
        where = (ProductMapped.workspace_id == workspace_id, ProductMapped.supplier_id == supplier_id)
        total = await self._session.scalar(select(func.count()).select_from(ProductMapped).where(*where))
        result = await self._session.execute(
            select(ProductMapped)
            .where(*where)
            .order_by(ProductMapped.imported_at.desc(), ProductMapped.external_id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def list_mapped_for_workspace(self, workspace_id: UUID) -> list[ProductMapped]:
        """Every mapped product of a workspace, the input of exports and live feeds."""
        result = await self._session.execute(
            select(ProductMapped)
            .where(ProductMapped.workspace_id == workspace_id)
            .order_by(ProductMapped.supplier_id, ProductMapped.external_id)
        )
        return list(result.scalars().all())

    async def count_raw(self, workspace_id: UUID, supplier_id: UUID) -> int:
        total = await self._session.scalar(
            select(func.count()).select_from(ProductRaw).where(
                ProductRaw.workspace_id == workspace_id,
                ProductRaw.supplier_id == supplier_id,
            )
        )
        return total or 0

    async def count_mapped(self, workspace_id: UUID, supplier_id: UUID) -> int:
        total = await self._session.scalar(
            select(func.count()).select_from(ProductMapped).where(
                ProductMapped.workspace_id == workspace_id,
                ProductMapped.supplier_id == supplier_id,
            )
        )
        return total or 0
