"""Export profile filters applied to mapped products before rendering."""
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence
from uuid import UUID

from feedhub.services.coercion import coerce_boolean, coerce_number

DEFAULT_PRICE_FIELD = "price"
DEFAULT_STOCK_FIELD = "in_stock"


@dataclass(frozen=True)
class ExportRecord:
    """A mapped product as seen by the export pipeline."""

    fields: Mapping[str, Any]
    category_id: UUID | None = None
    supplier_id: UUID | None = None
    external_id: str | None = None


@dataclass(frozen=True)
class ExportFilters:
    """Parsed ``export_profiles.filters``.

    Recognised keys: in_stock_only, min_price, max_price, categories,
    price_field, stock_field.
    """

    in_stock_only: bool = False
    min_price: float | None = None
    max_price: float | None = None
    categories: frozenset[str] = field(default_factory=frozenset)
    price_field: str = DEFAULT_PRICE_FIELD
    stock_field: str = DEFAULT_STOCK_FIELD

    @classmethod
    def from_profile(cls, filters: Mapping[str, Any] | None) -> "ExportFilters":
        filters = filters or {}
        categories = filters.get("categories") or []
        if isinstance(categories, str):
            categories = [categories]
        return cls(
            in_stock_only=bool(coerce_boolean(filters.get("in_stock_only"))),
            min_price=coerce_number(filters.get("min_price")),
            max_price=coerce_number(filters.get("max_price")),
            categories=frozenset(str(c) for c in categories if c),
            price_field=filters.get("price_field") or DEFAULT_PRICE_FIELD,
            stock_field=filters.get("stock_field") or DEFAULT_STOCK_FIELD,
        )

    def matches(self, record: ExportRecord) -> bool:
        if self.in_stock_only and coerce_boolean(record.fields.get(self.stock_field)) is not True:
            return False

        if self.min_price is not None or self.max_price is not None:
            price = coerce_number(record.fields.get(self.price_field))
            if price is None:
                return False
            if self.min_price is not None and price < self.min_price:
                return False
            if self.max_price is not None and price > self.max_price:
                return False

        if self.categories and str(record.category_id) not in self.categories:
            return False

        return True


def apply_export_filters(
    records: Sequence[ExportRecord], filters: Mapping[str, Any] | None
) -> list[ExportRecord]:
    """Keep the records matching an export profile's filters."""
    parsed = ExportFilters.from_profile(filters)
    return [record for record in records if parsed.matches(record)]
