"""Unit tests for export rendering, filters, naming and the live feed."""
import csv
import io
import json
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from feedhub.services.exports import (
    ExportRecord,
    ExportService,
    apply_export_filters,
    build_export_filename,
    export_template,
    generate_csv,
    generate_json,
    generate_xml,
    parse_profile_ref,
    render_export,
    render_rows,
    resolve_export_columns,
)
from feedhub.services.exports.generators import escape_xml, xml_element_name
from feedhub.utils.errors import ForbiddenError, NotFoundError, ValidationError

ROWS = [{"sku": "A1", "price": 9.99, "name": "Widget"}, {"sku": "A2", "price": 1200}]


def make_profile(**overrides):
    values = {
        "id": uuid4(),
        "workspace_id": uuid4(),
        "name": "Main feed",
        "output_format": "json",
        "platform": None,
        "file_naming": None,
        "field_selection": ["sku", "price"],
        "field_ordering": [],
        "filters": {},
        "delivery_method": "feed",
        "is_active": True,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestResolveExportColumns:
    """Test resolve_export_columns()."""

    def test_selection_only(self) -> None:
        """Verify the selection order is used when no ordering is set."""
        assert resolve_export_columns(["sku", "price"], []) == ["sku", "price"]

    def test_ordering_restricted_to_selection(self) -> None:
        """Verify the ordering decides order and the selection decides membership."""
        assert resolve_export_columns(["sku", "price"], ["price", "name", "sku"]) == ["price", "sku"]

    def test_ordering_only_and_duplicates(self) -> None:
        """Verify duplicates collapse and an ordering alone is used as is."""
        assert resolve_export_columns(None, ["b", "a", "b"]) == ["b", "a"]
        assert resolve_export_columns(None, None) == []


class TestGenerators:
    """Test the CSV, JSON and XML generators."""

    def test_json_document(self) -> None:
        """Verify JSON output holds exactly the columns, missing values as null."""
        assert json.loads(generate_json(ROWS, ["sku", "price"])) == [
            {"sku": "A1", "price": 9.99},
            {"sku": "A2", "price": 1200},
        ]
        assert json.loads(generate_json(ROWS, ["name"])) == [{"name": "Widget"}, {"name": None}]

    def test_csv_quoting(self) -> None:
        """Verify commas, quotes and newlines survive a CSV reader."""
        rows = [{"sku": "A1", "name": 'Big, "red"\nball', "tags": ["a", "b"], "ok": True}]
        text = generate_csv(rows, ["sku", "name", "tags", "ok", "missing"])
        assert text.startswith("sku,name,tags,ok,missing\n")
        parsed = list(csv.reader(io.StringIO(text)))
        assert parsed == [
            ["sku", "name", "tags", "ok", "missing"],
            ["A1", 'Big, "red"\nball', '["a","b"]', "true", ""],
        ]

    def test_xml_escaping(self) -> None:
        """Verify the five reserved characters are escaped."""
        assert escape_xml("""<a href="x">Tom & Jerry's</a>""") == (
            "&lt;a href=&quot;x&quot;&gt;Tom &amp; Jerry&#39;s&lt;/a&gt;"
        )
        assert escape_xml("bell\x07") == "bell"

    def test_xml_document(self) -> None:
        """Verify the XML document parses back with one element per column."""
        rows = [{"sku": "A&1", "sale price": 5, "2nd": "x"}]
        text = generate_xml(rows, ["sku", "sale price", "2nd"])
        assert text.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<products>')
        product = ET.fromstring(text.encode("utf-8")).find("product")
        assert product.findtext("sku") == "A&1"
        assert product.findtext("sale_price") == "5"
        assert product.findtext("_2nd") == "x"

    def test_xml_element_name(self) -> None:
        """Verify invalid element names are repaired."""
        assert xml_element_name("price") == "price"
        assert xml_element_name("xml_id") == "_xml_id"
        assert xml_element_name("") == "field"

    def test_unknown_format(self) -> None:
        """Verify render_rows rejects unknown formats."""
        with pytest.raises(ValueError):
            render_rows("xlsx", ROWS, ["sku"])


class TestExportFilters:
    """Test apply_export_filters()."""

    def _records(self):
        shoes, hats = uuid4(), uuid4()
        records = [
            ExportRecord(fields={"sku": "A1", "price": "9,99", "in_stock": "yes"}, category_id=shoes),
            ExportRecord(fields={"sku": "A2", "price": 1200, "in_stock": False}, category_id=hats),
            ExportRecord(fields={"sku": "A3", "in_stock": True}),
        ]
        return records, shoes

    def test_no_filters(self) -> None:
        """Verify empty filters keep everything."""
        records, _ = self._records()
        assert apply_export_filters(records, None) == records

    def test_in_stock_only(self) -> None:
        """Verify only records with a true stock flag are kept."""
        records, _ = self._records()
        kept = apply_export_filters(records, {"in_stock_only": True})
        assert [r.fields["sku"] for r in kept] == ["A1", "A3"]

    def test_price_range(self) -> None:
        """Verify prices are coerced and records without a price are dropped."""
        records, _ = self._records()
        kept = apply_export_filters(records, {"min_price": "5", "max_price": 100})
        assert [r.fields["sku"] for r in kept] == ["A1"]

    def test_categories(self) -> None:
        """Verify category filters match on category id."""
        records, shoes = self._records()
        kept = apply_export_filters(records, {"categories": [str(shoes)]})
        assert [r.fields["sku"] for r in kept] == ["A1"]


class TestFileNaming:
    """Test build_export_filename() and parse_profile_ref()."""

    NOW = datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc)

    def test_placeholders(self) -> None:
        """Verify placeholders expand and the extension is appended."""
        profile = make_profile(output_format="csv", platform="shopify", file_naming="{platform}_{date}")
        assert build_export_filename(profile, self.NOW) == "shopify_2024-03-05.csv"

    def test_default_name(self) -> None:
        """Verify profiles without a naming pattern get a timestamped name."""
        profile = make_profile(output_format="xml")
        assert build_export_filename(profile, self.NOW) == "export_2024-03-05T14-07-09.xml"

    def test_unsafe_characters_and_existing_extension(self) -> None:
        """Verify unsafe characters are replaced and the extension is not doubled."""
        profile = make_profile(output_format="json", file_naming="../My feed {format}.json")
        assert build_export_filename(profile, self.NOW) == "My_feed_json.json"

    def test_profile_ref(self) -> None:
        """Verify references with and without an extension."""
        profile_id = uuid4()
        assert parse_profile_ref(str(profile_id)) == (profile_id, None)
        assert parse_profile_ref(f"{profile_id}.XML") == (profile_id, "xml")

    @pytest.mark.parametrize("ref", ["not-a-uuid", "not-a-uuid.csv", f"{uuid4()}.xlsx"])
    def test_bad_profile_ref(self, ref) -> None:
        """Verify malformed references are reported as missing feeds."""
        with pytest.raises(NotFoundError):
            parse_profile_ref(ref)


class TestTemplates:
    """Test export_template()."""

    def test_known_platform(self) -> None:
        """Verify templates are case-insensitive and usable as a profile."""
        template = export_template("WooCommerce")
        assert template["platform"] == "woocommerce"
        assert template["output_format"] == "csv"
        assert template["field_selection"][:3] == ["title", "description", "sku"]
        assert template["field_selection"] == template["field_ordering"]

    def test_unknown_platform(self) -> None:
        """Verify unknown platforms are a 404."""
        with pytest.raises(NotFoundError):
            export_template("magento")


class TestRenderExport:
    """Test render_export()."""

    def test_json_example(self) -> None:
        """Verify the rendered document for a simple JSON profile."""
        records = [ExportRecord(fields=row) for row in ROWS]
        document = render_export(records, make_profile(), "main.json")
        assert json.loads(document.content) == [
            {"sku": "A1", "price": 9.99},
            {"sku": "A2", "price": 1200},
        ]
        assert document.media_type == "application/json; charset=utf-8"
        assert document.item_count == 2
        assert document.filename == "main.json"

    def test_unsupported_format(self) -> None:
        """Verify a profile with an unknown format is a validation error."""
        with pytest.raises(ValidationError):
            render_export([], make_profile(output_format="xlsx"), "x.xlsx")


class TestExportService:
    """Test ExportService with mocked repositories."""

    @pytest.fixture
    def service(self, settings):
        service = ExportService(MagicMock(), settings)
        service._exports = AsyncMock()
        service._products = AsyncMock()
        service._products.list_mapped_for_workspace.return_value = [
            SimpleNamespace(fields=row, category_id=None, supplier_id=uuid4(), external_id=row["sku"])
            for row in ROWS
        ]
        return service

    def test_feed_url(self, service) -> None:
        """Verify only feed profiles have a public URL."""
        profile = make_profile(output_format="xml")
        assert service.feed_url(profile) == f"https://hub.test/api/exports/feed/{profile.id}.xml"
        assert service.feed_url(make_profile(delivery_method="download")) is None

    async def test_live_feed(self, service) -> None:
        """Verify a live feed renders the profile's products."""
        profile = make_profile(output_format="csv", name="Main feed")
        service._exports.get_profile_unscoped.return_value = profile

        document = await service.live_feed(f"{profile.id}.csv")

        assert document.content == "sku,price\nA1,9.99\nA2,1200\n"
        assert document.filename == "Main_feed.csv"
        service._products.list_mapped_for_workspace.assert_awaited_once_with(profile.workspace_id)

    async def test_live_feed_missing_or_inactive(self, service) -> None:
        """Verify unknown and inactive profiles are 404."""
        service._exports.get_profile_unscoped.return_value = None
        with pytest.raises(NotFoundError):
            await service.live_feed(str(uuid4()))

        service._exports.get_profile_unscoped.return_value = make_profile(is_active=False)
        with pytest.raises(NotFoundError):
            await service.live_feed(str(uuid4()))

    async def test_live_feed_not_feed_delivery(self, service) -> None:
        """Verify download-only profiles are forbidden."""
        service._exports.get_profile_unscoped.return_value = make_profile(delivery_method="download")
        with pytest.raises(ForbiddenError):
            await service.live_feed(str(uuid4()))

    async def test_live_feed_extension_mismatch(self, service) -> None:
        """Verify the requested extension must match the profile format."""
        profile = make_profile(output_format="json")
        service._exports.get_profile_unscoped.return_value = profile
        with pytest.raises(ValidationError):
            await service.live_feed(f"{profile.id}.xml")

    async def test_generate_records_history(self, service, workspace_id) -> None:
        """Verify generating a document writes a history row."""
        profile = make_profile(output_format="json", file_naming="catalog")
        service._exports.get_profile.return_value = profile
        user_id = uuid4()

        document = await service.generate(workspace_id, profile.id, user_id)

        assert document.filename == "catalog.json"
        history = service._exports.add_history.await_args
        assert history.args == (workspace_id,)
        assert history.kwargs["export_profile_id"] == profile.id
        assert history.kwargs["item_count"] == 2
        assert history.kwargs["file_size"] == len(document.content.encode("utf-8"))
        assert history.kwargs["created_by"] == user_id

    async def test_preview(self, service, workspace_id) -> None:
        """Verify previews project rows to the profile columns."""
        service._exports.get_profile.return_value = make_profile(field_selection=["sku"])
        preview = await service.preview(workspace_id, uuid4())
        assert preview == {"columns": ["sku"], "products": [{"sku": "A1"}, {"sku": "A2"}], "total": 2}

    async def test_get_profile_missing(self, service, workspace_id) -> None:
        """Verify an unknown profile is a 404."""
        service._exports.get_profile.return_value = None
        with pytest.raises(NotFoundError):
            await service.get_profile(workspace_id, uuid4())

    async def test_update_rejects_empty_selection(self, service, workspace_id) -> None:
        """Verify a profile cannot be left without fields."""
        from feedhub.schemas.requests import ExportProfileUpdateRequest

        service._exports.get_profile.return_value = make_profile()
        with pytest.raises(ValidationError):
            await service.update_profile(
                workspace_id, uuid4(), ExportProfileUpdateRequest.model_construct(field_selection=[])
            )

    @pytest.mark.parametrize(
        "payload",
        [
            {"output_format": None},
            {"is_active": None},
            {"name": None},
            {"delivery_method": None},
            {"file_naming": None},
            {"filters": None},
        ],
    )
    async def test_update_rejects_null_required_fields(self, service, workspace_id, payload) -> None:
        """Verify explicit nulls on NOT NULL columns are validation errors."""
        from feedhub.schemas.requests import ExportProfileUpdateRequest

        service._exports.get_profile.return_value = make_profile()
        with pytest.raises(ValidationError) as exc_info:
            await service.update_profile(
                workspace_id, uuid4(), ExportProfileUpdateRequest.model_validate(payload)
            )
        assert exc_info.value.message == f"{next(iter(payload))} must not be null"
        service._exports.update_profile.assert_not_called()

    async def test_update_allows_clearing_optional_fields(self, service, workspace_id) -> None:
        """Verify nullable columns can still be cleared."""
        from feedhub.schemas.requests import ExportProfileUpdateRequest

        profile = make_profile()
        service._exports.get_profile.return_value = profile
        await service.update_profile(
            workspace_id,
            uuid4(),
            ExportProfileUpdateRequest.model_validate({"description": None, "platform": None}),
        )
        service._exports.update_profile.assert_awaited_once_with(profile, description=None, platform=None)
