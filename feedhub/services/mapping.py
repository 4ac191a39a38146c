"""
Mapping Service
===============

Projects raw supplier rows onto the workspace's custom fields.

For every custom field the source value is taken from the supplier's
field mapping (source_key -> field_key), or from the raw key equal to the
field key when no mapping exists. Values are coerced to the field's
datatype, and the category is resolved through the supplier's category
mappings using the field flagged ``use_for_category_mapping``.

Mapped rows are upserted on (workspace, supplier, external_id), so running
a remap twice over the same inputs yields the same rows.
"""

from typing import Any, Iterable, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from feedhub.config.settings import Settings, get_settings
from feedhub.db.repositories import (
    CategoriesRepository,
    FieldMappingsRepository,
    FieldsRepository,
    ProductsRepository,
    SuppliersRepository,
)
from feedhub.schemas.domain import FieldDefinition, RemapResult
from feedhub.services.coercion import DecimalSeparator, coerce_value
from feedhub.utils.errors import NotFoundError
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


def resolve_source_value(raw: dict[str, Any], key: str) -> Any:
    """
    Read ``key`` from a raw item.

    An exact key match wins. Otherwise ``key`` is followed as a dotted path
    through nested objects (numeric segments index into lists), so
    "price.amount" reads ``{"price": {"amount": 9}}``.

    Returns:
        The value, or None when the path does not exist
    """
    if key in raw:
        return raw[key]

    current: Any = raw
    for segment in key.split("."):
        if isinstance(current, dict):
            current = current.get(segment, _MISSING)
        elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            return None
        if current is _MISSING:
            return None
    return current


def build_source_lookup(mappings: Iterable[Any]) -> dict[str, str]:
    """field_key -> source_key. The first mapping targeting a field wins."""
    lookup: dict[str, str] = {}
    for mapping in mappings:
        lookup.setdefault(mapping.field_key, mapping.source_key)
    return lookup


def map_raw_item(
    raw: dict[str, Any],
    fields: Sequence[FieldDefinition],
    source_lookup: dict[str, str],
    category_lookup: dict[str, UUID] | None = None,
    decimal_separator: DecimalSeparator = "auto",
) -> tuple[dict[str, Any], UUID | None]:
    """
    Map one raw item to custom field values.

    Args:
        raw: Raw supplier item
        fields: Workspace field definitions
        source_lookup: field_key -> source_key from the supplier's mappings
        category_lookup: supplier category string -> workspace category id
        decimal_separator: Number coercion policy

    Returns:
        (fields dict keyed by field key, category id or None)
    """
    mapped: dict[str, Any] = {}
    category_id: UUID | None = None

    for field in fields:
        source_key = source_lookup.get(field.key, field.key)
        value = coerce_value(
            resolve_source_value(raw, source_key), field.datatype, decimal_separator
        )
        mapped[field.key] = value

        if field.use_for_category_mapping and category_id is None and category_lookup:
            if value is not None:
                category_id = category_lookup.get(str(value).strip())

    return mapped, category_id


class MappingService:
    """Re-applies field mappings to the stored raw rows of a supplier."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._suppliers = SuppliersRepository(session)
        self._fields = FieldsRepository(session)
        self._mappings = FieldMappingsRepository(session)
        self._categories = CategoriesRepository(session)
        self._products = ProductsRepository(session)

    async def remap_supplier(self, workspace_id: UUID, supplier_id: UUID) -> RemapResult:
        """
        Map the most recent raw rows of a supplier and upsert the results.

        Raises:
            NotFoundError: If the supplier is not in the workspace
        """
        supplier = await self._suppliers.get(workspace_id, supplier_id)
        if supplier is None:
            raise NotFoundError("Supplier not found", details={"supplier_id": str(supplier_id)})

        log = logger.bind(workspace_id=str(workspace_id), supplier_id=str(supplier_id))

        fields = [
            FieldDefinition.model_validate(field)
            for field in await self._fields.list_for_workspace(workspace_id)
        ]
        source_lookup = build_source_lookup(
            await self._mappings.list_for_supplier(workspace_id, supplier_id)
        )
        category_lookup = {
            mapping.supplier_category.strip(): mapping.category_id
            for mapping in await self._categories.list_mappings(workspace_id, supplier_id)
        }
        raw_rows = await self._products.recent_raw(
            workspace_id, supplier_id, self._settings.remap_row_limit
        )

        result = RemapResult(supplier_id=supplier_id, rows_processed=len(raw_rows))
        if not fields:
            log.warning("remap_skipped_no_fields", raw_rows=len(raw_rows))
            return result

        batch: list[dict[str, Any]] = []
        for row in raw_rows:
            values, category_id = map_raw_item(
                row.raw or {},
                fields,
                source_lookup,
                category_lookup,
                self._settings.number_decimal_separator,
            )
            if category_id is not None:
                result.categorized += 1
            batch.append(
                {
                    "workspace_id": workspace_id,
                    "supplier_id": supplier_id,
                    "ingestion_id": row.ingestion_id,
                    "external_id": row.external_id,
                    "fields": values,
                    "category_id": category_id,
                    "source_file": row.source_file,
                }
            )
            if len(batch) >= self._settings.ingest_batch_size:
                result.rows_mapped += await self._products.upsert_mapped(batch)
                batch = []

        result.rows_mapped += await self._products.upsert_mapped(batch)
        log.info(
            "remap_completed",
            rows_processed=result.rows_processed,
            rows_mapped=result.rows_mapped,
            categorized=result.categorized,
        )
        return result
