"""Feed type detection from a file name / URL hint and a Content-Type header."""
from typing import Literal
from urllib.parse import urlsplit

FeedType = Literal["csv", "json", "xml"]

FEED_TYPES: tuple[FeedType, ...] = ("csv", "json", "xml")
DEFAULT_FEED_TYPE: FeedType = "json"

_EXTENSION_TYPES: dict[str, FeedType] = {
    ".csv": "csv",
    ".tsv": "csv",
    ".json": "json",
    ".ndjson": "json",
    ".jsonl": "json",
    ".xml": "xml",
    ".rss": "xml",
}


def _hint_path(hint: str) -> str:
    """Strip the query string and fragment so 'feed.csv?token=x' still reads as .csv."""
    if "://" in hint:
        return urlsplit(hint).path
    return hint.split("?", 1)[0].split("#", 1)[0]


def detect_feed_type(hint: str | None, content_type: str | None = None) -> FeedType:
    """Classify a feed as csv, json or xml.

    The extension of ``hint`` wins over ``content_type``. When neither is
    conclusive the feed is treated as JSON.

    Examples:
        >>> detect_feed_type("products.CSV", None)
        'csv'
        >>> detect_feed_type("https://x.test/export?fmt=1", "application/xml; charset=utf-8")
        'xml'
        >>> detect_feed_type(None, None)
        'json'
    """
    if hint:
        path = _hint_path(hint.strip()).lower()
        for extension, feed_type in _EXTENSION_TYPES.items():
            if path.endswith(extension):
                return feed_type

    if content_type:
        mime = content_type.lower()
        if "csv" in mime or "tab-separated-values" in mime:
            return "csv"
        if "json" in mime:
            return "json"
        if "xml" in mime or "rss" in mime:
            return "xml"

    return DEFAULT_FEED_TYPE
