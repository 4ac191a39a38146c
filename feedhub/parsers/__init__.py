"""Feed parsing: type detection, key sniffing and format parsers."""
from feedhub.parsers.base_parser import FeedParser, ParsedFeedItem
from feedhub.parsers.csv_parser import CsvParser
from feedhub.parsers.detection import DEFAULT_FEED_TYPE, FEED_TYPES, FeedType, detect_feed_type
from feedhub.parsers.json_parser import JsonParser
from feedhub.parsers.parser_registry import (
    create_parser_instance,
    get_parser,
    list_registered_parsers,
    register_parser,
)
from feedhub.parsers.sniffers import detect_delimiter, sniff_keys
from feedhub.parsers.xml_parser import XmlParser

# Register parsers
register_parser("csv", CsvParser)
register_parser("json", JsonParser)
register_parser("xml", XmlParser)

__all__ = [
    "DEFAULT_FEED_TYPE",
    "FEED_TYPES",
    "CsvParser",
    "FeedParser",
    "FeedType",
    "JsonParser",
    "ParsedFeedItem",
    "XmlParser",
    "create_parser_instance",
    "detect_delimiter",
    "detect_feed_type",
    "get_parser",
    "list_registered_parsers",
    "register_parser",
    "sniff_keys",
]
