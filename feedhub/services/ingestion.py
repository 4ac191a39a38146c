"""
Ingestion Service
=================

Runs supplier feed ingestions: fetch, detect, parse, derive external ids,
upsert raw rows in batches and record per-item errors.

Lifecycle of a run:
    supplier.sync_status: * -> syncing -> synced | failed
    feed_ingestions.status: pending -> running -> completed | failed

Only one run per supplier may hold ``syncing`` at a time. Items that fail
on their own are counted and stored in feed_errors; a failure of the whole
pipeline (download, unparseable document, database) marks the run failed
and is re-raised to the caller.
"""

import asyncio
import json
import time
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timezone
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from feedhub.config.settings import Settings, get_settings
from feedhub.db.repositories import IngestionsRepository, ProductsRepository, SuppliersRepository
from feedhub.parsers import FeedParser, ParsedFeedItem, create_parser_instance
from feedhub.schemas.domain import (
    IngestionResult,
    RemapResult,
    SyncAllSummary,
    SyncResult,
)
from feedhub.services.feed_source import FeedSourceService
from feedhub.services.mapping import MappingService, resolve_source_value
from feedhub.utils.errors import (
    FeedHubError,
    IngestionInProgressError,
    NotFoundError,
    ValidationError,
)
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def extract_external_id(fields: dict[str, Any], uid_source_key: str) -> str | None:
    """
    Derive an item's external id from the configured source key.

    Dotted keys walk nested objects; XML attributes are addressed as ``@name``.
    Structured values and blank strings do not count as identifiers.
    """
    value = resolve_source_value(fields, uid_source_key)
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def truncate_raw(value: Any, max_chars: int) -> str | None:
    """Serialize an item for feed_errors, cut to ``max_chars`` characters."""
    if value is None:
        return None
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)
    return text[:max_chars]


class IngestionService:
    """Ingests supplier feeds into products_raw."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        feed_source: FeedSourceService | None = None,
        mapping_service: MappingService | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._feed_source = feed_source or FeedSourceService(self._settings)
        self._mapping = mapping_service or MappingService(session, self._settings)
        self._suppliers = SuppliersRepository(session)
        self._ingestions = IngestionsRepository(session)
        self._products = ProductsRepository(session)

    def _make_parser(self, feed_type: str) -> FeedParser:
        if feed_type == "csv":
            return create_parser_instance("csv", chunk_size=self._settings.ingest_batch_size)
        if feed_type == "xml":
            return create_parser_instance("xml", max_bytes=self._settings.ingest_max_xml_bytes)
        return create_parser_instance(feed_type)

    async def ingest_supplier(self, workspace_id: UUID, supplier_id: UUID) -> IngestionResult:
        """
        Fetch and ingest one supplier feed.

        Raises:
            NotFoundError: Supplier not in the workspace
            ValidationError: Supplier has no uid_source_key
            IngestionInProgressError: Another run holds the supplier
            FeedHubError: Pipeline level failure (run is recorded as failed)
        """
        supplier = await self._suppliers.get(workspace_id, supplier_id)
        if supplier is None:
            raise NotFoundError("Supplier not found", details={"supplier_id": str(supplier_id)})
        if not supplier.uid_source_key:
            raise ValidationError(
                "uid_source_key is required before ingesting",
                details={"supplier_id": str(supplier_id)},
            )
        uid_source_key = supplier.uid_source_key

        acquired = await self._suppliers.try_start_sync(
            workspace_id, supplier_id, self._settings.sync_lock_ttl_seconds
        )
        if not acquired:
            raise IngestionInProgressError(
                "An ingestion is already running for this supplier",
                details={"supplier_id": str(supplier_id)},
            )
        await self._session.commit()

        started_at = datetime.now(timezone.utc)
        started = time.perf_counter()
        ingestion = await self._ingestions.create(workspace_id, supplier_id, started_at=started_at)
        ingestion_id = ingestion.id
        await self._session.commit()

        log = logger.bind(
            workspace_id=str(workspace_id),
            supplier_id=str(supplier_id),
            ingestion_id=str(ingestion_id),
        )
        log.info("ingestion_started", source_type=supplier.source_type)

        counts = {"total": 0, "ok": 0, "error": 0}
        feed_type: str | None = None
        try:
            fetched = await self._feed_source.fetch(supplier)
            feed_type = fetched.feed_type
            await self._ingestions.update_by_id(
                ingestion_id, status="running", feed_type=feed_type, source_file=fetched.hint
            )
            await self._session.commit()

            await self._ingest_items(
                self._make_parser(feed_type).parse(fetched.data),
                workspace_id=workspace_id,
                supplier_id=supplier_id,
                ingestion_id=ingestion_id,
                uid_source_key=uid_source_key,
                source_file=fetched.hint,
                counts=counts,
            )
        except Exception as e:
            await self._session.rollback()
            message = e.message if isinstance(e, FeedHubError) else str(e) or type(e).__name__
            duration_ms = int((time.perf_counter() - started) * 1000)
            await self._ingestions.update_by_id(
                ingestion_id,
                status="failed",
                completed_at=datetime.now(timezone.utc),
                duration_ms=duration_ms,
                items_total=counts["total"],
                items_ok=counts["ok"],
                items_error=counts["error"],
                error_message=message,
            )
            await self._suppliers.finish_sync(workspace_id, supplier_id, False, message)
            await self._session.commit()
            log.error(
                "ingestion_failed",
                error=message,
                error_type=type(e).__name__,
                items_total=counts["total"],
                items_ok=counts["ok"],
                items_error=counts["error"],
            )
            raise

        duration_ms = int((time.perf_counter() - started) * 1000)
        await self._ingestions.update_by_id(
            ingestion_id,
            status="completed",
            completed_at=datetime.now(timezone.utc),
            duration_ms=duration_ms,
            items_total=counts["total"],
            items_ok=counts["ok"],
            items_error=counts["error"],
        )
        await self._suppliers.finish_sync(workspace_id, supplier_id, True)
        await self._session.commit()
        log.info(
            "ingestion_completed",
            feed_type=feed_type,
            duration_ms=duration_ms,
            items_total=counts["total"],
            items_ok=counts["ok"],
            items_error=counts["error"],
        )

        return IngestionResult(
            ingestion_id=ingestion_id,
            supplier_id=supplier_id,
            status="completed",
            feed_type=feed_type,
            source_file=fetched.hint,
            items_total=counts["total"],
            items_ok=counts["ok"],
            items_error=counts["error"],
            duration_ms=duration_ms,
        )

    async def _ingest_items(
        self,
        items: Any,
        *,
        workspace_id: UUID,
        supplier_id: UUID,
        ingestion_id: UUID,
        uid_source_key: str,
        source_file: str,
        counts: dict[str, int],
    ) -> None:
        """Consume parsed items, writing raw rows and errors in committed batches."""
        batch_size = self._settings.ingest_batch_size
        raw_max = self._settings.ingest_error_raw_max_chars
        rows: list[dict[str, Any]] = []
        errors: list[dict[str, Any]] = []

        async def flush() -> None:
            if rows:
                await self._products.upsert_raw(rows)
                counts["ok"] += len(rows)
                rows.clear()
            if errors:
                await self._ingestions.add_errors(errors)
                counts["error"] += len(errors)
                errors.clear()
            await self._session.commit()

        item: ParsedFeedItem
        for item in items:
            counts["total"] += 1
            if item.error is not None:
                message, raw = item.error, item.raw
            else:
                external_id = extract_external_id(item.fields or {}, uid_source_key)
                if external_id is not None:
                    rows.append(
                        {
                            "workspace_id": workspace_id,
                            "supplier_id": supplier_id,
                            "ingestion_id": ingestion_id,
                            "external_id": external_id,
                            "raw": item.fields,
                            "source_file": source_file,
                        }
                    )
                    if len(rows) >= batch_size:
                        await flush()
                    continue
                message, raw = f"Missing unique identifier '{uid_source_key}'", item.fields

            errors.append(
                {
                    "workspace_id": workspace_id,
                    "supplier_id": supplier_id,
                    "ingestion_id": ingestion_id,
                    "item_index": item.index,
                    "message": message,
                    "raw": truncate_raw(raw, raw_max),
                }
            )
            if len(errors) >= batch_size:
                await flush()

        await flush()

    async def sync_supplier(
        self, workspace_id: UUID, supplier_id: UUID
    ) -> tuple[IngestionResult, RemapResult]:
        """Ingest a supplier feed, then re-apply its field mappings."""
        ingestion = await self.ingest_supplier(workspace_id, supplier_id)
        remap = await self._mapping.remap_supplier(workspace_id, supplier_id)
        await self._session.commit()
        return ingestion, remap

    async def sync_all(self, workspace_id: UUID, session_factory: SessionFactory) -> SyncAllSummary:
        """
        Sync every active, published supplier of a workspace.

        Suppliers run concurrently, at most ``sync_max_concurrency`` at a
        time, each in its own session. One supplier failing does not stop
        the others.
        """
        suppliers = await self._suppliers.list_syncable(workspace_id)
        semaphore = asyncio.Semaphore(self._settings.sync_max_concurrency)
        log = logger.bind(workspace_id=str(workspace_id))
        log.info("sync_all_started", suppliers=len(suppliers))

        async def run(supplier_id: UUID, supplier_name: str) -> SyncResult:
            async with semaphore:
                try:
                    async with session_factory() as session:
                        service = IngestionService(session, self._settings, self._feed_source)
                        ingestion, remap = await service.sync_supplier(workspace_id, supplier_id)
                except FeedHubError as e:
                    return SyncResult(
                        supplier_id=supplier_id,
                        supplier_name=supplier_name,
                        success=False,
                        error=e.message,
                    )
                except Exception as e:
                    log.exception("sync_all_supplier_crashed", supplier_id=str(supplier_id))
                    return SyncResult(
                        supplier_id=supplier_id,
                        supplier_name=supplier_name,
                        success=False,
                        error=str(e) or type(e).__name__,
                    )
                return SyncResult(
                    supplier_id=supplier_id,
                    supplier_name=supplier_name,
                    success=True,
                    ingestion=ingestion,
                    remap=remap,
                )

        results = await asyncio.gather(*(run(s.id, s.name) for s in suppliers))
        successful = sum(1 for r in results if r.success)
        summary = SyncAllSummary(
            total=len(results),
            successful=successful,
            failed=len(results) - successful,
            results=list(results),
        )
        log.info("sync_all_completed", total=summary.total, successful=summary.successful, failed=summary.failed)
        return summary
