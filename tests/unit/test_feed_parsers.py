"""Unit tests for the CSV, JSON and XML feed parsers."""
import json

import pytest

from feedhub.parsers import (
    CsvParser,
    JsonParser,
    XmlParser,
    create_parser_instance,
    get_parser,
    list_registered_parsers,
    register_parser,
)
from feedhub.parsers.xml_parser import element_to_value, find_item_elements
from feedhub.utils.errors import ParserError


def _fields(items):
    return [item.fields for item in items if item.error is None]


class TestParserRegistry:
    """Test the parser registry."""

    def test_builtin_parsers_registered(self) -> None:
        """Verify csv, json and xml are available."""
        assert {"csv", "json", "xml"} <= set(list_registered_parsers())
        assert get_parser("csv") is CsvParser

    def test_create_parser_instance_passes_kwargs(self) -> None:
        """Verify constructor arguments reach the parser."""
        parser = create_parser_instance("csv", chunk_size=7)
        assert isinstance(parser, CsvParser)
        assert parser.chunk_size == 7

    def test_unknown_feed_type(self) -> None:
        """Verify an unknown type raises ParserError."""
        with pytest.raises(ParserError):
            create_parser_instance("xlsx")

    def test_duplicate_registration_rejected(self) -> None:
        """Verify a feed type cannot be registered twice."""
        with pytest.raises(ValueError):
            register_parser("csv", CsvParser)

    def test_non_parser_class_rejected(self) -> None:
        """Verify only FeedParser subclasses can be registered."""
        with pytest.raises(TypeError):
            register_parser("bogus", dict)  # type: ignore[arg-type]


class TestCsvParser:
    """Test CsvParser.parse()."""

    def test_quoted_comma_value(self, sample_csv: bytes) -> None:
        """Verify quoted cells keep their commas and everything stays a string."""
        items = list(CsvParser().parse(sample_csv))
        assert _fields(items) == [
            {"sku": "A1", "price": "9.99"},
            {"sku": "A2", "price": "1,200"},
        ]
        assert [item.index for item in items] == [0, 1]

    def test_semicolon_delimiter_and_empty_cells(self) -> None:
        """Verify semicolon feeds parse and empty cells are empty strings."""
        items = list(CsvParser().parse(b"sku;name;price\nA1;;9\nA2;Gadget;\n"))
        assert _fields(items) == [
            {"sku": "A1", "name": "", "price": "9"},
            {"sku": "A2", "name": "Gadget", "price": ""},
        ]

    def test_leading_zeros_preserved(self) -> None:
        """Verify values are not converted to numbers."""
        items = list(CsvParser().parse(b"sku,ean\n007,0012345\n"))
        assert _fields(items) == [{"sku": "007", "ean": "0012345"}]

    def test_bom_stripped_from_header(self) -> None:
        """Verify the first column name does not carry a BOM."""
        items = list(CsvParser().parse("\ufeffsku,name\nA1,Widget\n".encode("utf-8")))
        assert _fields(items) == [{"sku": "A1", "name": "Widget"}]

    def test_chunks_keep_running_index(self) -> None:
        """Verify item indexes continue across pandas chunks."""
        data = b"sku\n" + b"\n".join(f"A{i}".encode() for i in range(5)) + b"\n"
        items = list(CsvParser(chunk_size=2).parse(data))
        assert [item.index for item in items] == [0, 1, 2, 3, 4]
        assert items[-1].fields == {"sku": "A4"}

    def test_row_with_too_many_fields_is_an_error_item(self) -> None:
        """Verify an over-long row is reported instead of aborting the feed."""
        items = list(CsvParser().parse(b"sku,price\nA1,1\nA2,2,extra\nA3,3\n"))
        assert _fields(items) == [{"sku": "A1", "price": "1"}, {"sku": "A3", "price": "3"}]
        errors = [item for item in items if item.error]
        assert len(errors) == 1
        assert "more than the header" in errors[0].error
        assert errors[0].raw == "A2,2,extra"

    def test_empty_document(self) -> None:
        """Verify empty input yields no items."""
        assert list(CsvParser().parse(b"")) == []
        assert list(CsvParser().parse(b"sku,price\n")) == []


class TestJsonParser:
    """Test JsonParser.parse()."""

    def test_top_level_array(self) -> None:
        """Verify each array member is an item."""
        items = list(JsonParser().parse(b'[{"sku": "A1"}, {"sku": "A2"}]'))
        assert _fields(items) == [{"sku": "A1"}, {"sku": "A2"}]

    def test_nested_wrapper(self) -> None:
        """Verify the item array is found inside nested wrapper objects."""
        payload = {"meta": {"page": 1}, "data": {"products": [{"sku": "A1"}]}}
        items = list(JsonParser().parse(json.dumps(payload).encode()))
        assert _fields(items) == [{"sku": "A1"}]

    def test_single_object(self) -> None:
        """Verify a lone object is one item."""
        items = list(JsonParser().parse(b'{"sku": "A1", "price": 2}'))
        assert _fields(items) == [{"sku": "A1", "price": 2}]

    def test_non_object_members_are_errors(self) -> None:
        """Verify scalars inside the array are counted as item errors."""
        items = list(JsonParser().parse(b'[{"sku": "A1"}, 42, "x"]'))
        assert len(items) == 3
        assert [item.error for item in items[1:]] == ["Item is not a JSON object"] * 2
        assert items[1].raw == "42"

    def test_ndjson_with_bad_line(self) -> None:
        """Verify NDJSON parses line by line and bad lines become errors."""
        data = b'{"sku": "A1"}\n{broken\n\n{"sku": "A2"}\n'
        items = list(JsonParser().parse(data))
        assert _fields(items) == [{"sku": "A1"}, {"sku": "A2"}]
        assert [item.index for item in items] == [0, 1, 2]
        assert items[1].error.startswith("Invalid JSON line")
        assert items[1].raw == "{broken"

    def test_empty_item_array(self) -> None:
        """Verify an empty item list under a wrapper yields no items."""
        assert list(JsonParser().parse(b'{"meta": {"count": 0}, "items": []}')) == []
        assert list(JsonParser().parse(b'{"data": {"products": []}}')) == []

    def test_unparseable_document(self) -> None:
        """Verify input that is neither JSON nor NDJSON raises ParserError."""
        with pytest.raises(ParserError):
            list(JsonParser().parse(b"<xml/>"))

    def test_scalar_document(self) -> None:
        """Verify a JSON scalar has no items."""
        with pytest.raises(ParserError):
            list(JsonParser().parse(b"42"))


class TestXmlParser:
    """Test XmlParser.parse()."""

    def test_products_feed(self) -> None:
        """Verify attributes, leaf text and nested elements are converted."""
        data = (
            b'<products>'
            b'<product id="1"><sku>A1</sku><price currency="EUR">9.99</price></product>'
            b'<product id="2"><sku>A2</sku><image>a.jpg</image><image>b.jpg</image></product>'
            b'</products>'
        )
        items = list(XmlParser().parse(data))
        assert _fields(items) == [
            {"@id": "1", "sku": "A1", "price": {"@currency": "EUR", "#text": "9.99"}},
            {"@id": "2", "sku": "A2", "image": ["a.jpg", "b.jpg"]},
        ]

    def test_rss_channel_items(self) -> None:
        """Verify rss/channel/item feeds select the item elements."""
        data = (
            b"<rss><channel><title>Shop</title>"
            b"<item><title>A</title></item><item><title>B</title></item>"
            b"</channel></rss>"
        )
        assert _fields(XmlParser().parse(data)) == [{"title": "A"}, {"title": "B"}]

    def test_namespaces_stripped(self) -> None:
        """Verify namespaced tags are addressed by local name."""
        data = (
            b'<feed xmlns="http://www.w3.org/2005/Atom" xmlns:g="http://base.google.com/ns/1.0">'
            b"<entry><g:id>A1</g:id></entry><entry><g:id>A2</g:id></entry>"
            b"</feed>"
        )
        assert _fields(XmlParser().parse(data)) == [{"id": "A1"}, {"id": "A2"}]

    def test_fallback_to_first_repeated_element(self) -> None:
        """Verify unknown shapes walk down to the first repeated child tag."""
        data = b"<export><batch><article><n>1</n></article><article><n>2</n></article></batch></export>"
        assert _fields(XmlParser().parse(data)) == [{"n": "1"}, {"n": "2"}]

    def test_fallback_searches_below_mixed_siblings(self) -> None:
        """Verify distinct siblings are walked into until a tag repeats."""
        data = b"<root><meta>x</meta><list><p><id>1</id></p><p><id>2</id></p></list></root>"
        assert _fields(XmlParser().parse(data)) == [{"id": "1"}, {"id": "2"}]

    def test_document_without_repeats_is_one_item(self) -> None:
        """Verify a feed holding a single item yields that item."""
        data = b"<shop><offer><id>7</id><name>Widget</name></offer></shop>"
        assert _fields(XmlParser().parse(data)) == [{"id": "7", "name": "Widget"}]

    def test_too_large(self) -> None:
        """Verify documents above the size cap are rejected."""
        with pytest.raises(ParserError):
            list(XmlParser(max_bytes=10).parse(b"<products><product/></products>"))

    def test_invalid_xml(self) -> None:
        """Verify malformed XML raises ParserError."""
        with pytest.raises(ParserError):
            list(XmlParser().parse(b"<products><product></products>"))

    def test_element_helpers(self) -> None:
        """Verify leaf elements become text and item lookup handles empty roots."""
        import xml.etree.ElementTree as ET

        assert element_to_value(ET.fromstring("<sku> A1 </sku>")) == "A1"
        assert find_item_elements(ET.fromstring("<empty/>")) == []
