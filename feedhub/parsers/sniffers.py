"""
Feed Key Sniffers
=================

Best-effort extraction of field names from the head of a feed, used to
populate the field-mapping step. The sample is usually a byte-truncated
prefix of the document, so every sniffer tolerates cut-off input and
returns an empty list instead of raising.
"""

import json
import re
from collections import Counter
from typing import Any, Iterable

from feedhub.parsers.detection import FeedType
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)

CSV_DELIMITERS: tuple[str, ...] = (",", ";", "\t", "|")
JSON_MAX_DEPTH = 3
# Wrapper keys whose empty array is an empty item list
JSON_ITEM_KEYS = frozenset({"items", "products", "data", "results", "records", "rows", "entries", "offers"})

# Wrapper elements that are never the repeated item of a feed
XML_CONTAINER_TAGS = frozenset({"rss", "channel", "feed", "items", "products", "root"})
XML_PREFERRED_ITEM_TAGS: tuple[str, ...] = ("item", "product", "entry", "offer", "row")

_XML_DECLARATION_RE = re.compile(r"<\?xml.*?\?>", re.IGNORECASE | re.DOTALL)
_XML_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_XML_OPEN_TAG_RE = re.compile(r"<([A-Za-z_][\w:.\-]*)\b([^>]*)>")
_XML_ATTRIBUTE_RE = re.compile(r"([A-Za-z_][\w:.\-]*)\s*=\s*[\"']")


def decode_sample(data: bytes) -> str:
    """Decode feed bytes as UTF-8, dropping a BOM and replacing broken sequences."""
    return data.decode("utf-8-sig", errors="replace")


def unique_keys(keys: Iterable[str], limit: int | None = None) -> list[str]:
    """Deduplicate keys preserving first occurrence, dropping blanks, capped at ``limit``."""
    seen: dict[str, None] = {}
    for key in keys:
        key = key.strip()
        if key and key not in seen:
            seen[key] = None
            if limit is not None and len(seen) >= limit:
                break
    return list(seen)


# =============================================================================
# CSV
# =============================================================================


def _first_non_blank_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line
    return ""


def detect_delimiter(text: str) -> str:
    """Pick the delimiter producing the most columns on the first non-blank line.

    Ties keep the earlier candidate, so a line without any candidate yields ",".
    """
    line = _first_non_blank_line(text)
    best, best_count = ",", 0
    for delimiter in CSV_DELIMITERS:
        count = len(line.split(delimiter))
        if count > best_count:
            best, best_count = delimiter, count
    return best


def sniff_csv_keys(data: bytes) -> list[str]:
    """Return header cells of a delimited text sample, unquoted and deduplicated."""
    text = decode_sample(data)
    header = _first_non_blank_line(text)
    if not header:
        return []
    delimiter = detect_delimiter(text)
    cells = [cell.strip().removeprefix('"').removesuffix('"') for cell in header.split(delimiter)]
    return unique_keys(cells)


# =============================================================================
# JSON / NDJSON
# =============================================================================


def find_item_array(payload: Any) -> list[Any] | None:
    """Locate the list of items inside a JSON document.

    A top-level array is the item list. For an object, the first value
    holding an array of objects wins, searched breadth first so
    ``{"data": {"products": [...]}}`` is found as well. Failing that, an
    empty array under a conventional item key means the feed has no items.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return None

    empty: list[Any] | None = None
    queue: list[dict[str, Any]] = [payload]
    while queue:
        node = queue.pop(0)
        for key, value in node.items():
            if not isinstance(value, list):
                continue
            if any(isinstance(x, dict) for x in value):
                return value
            if not value and empty is None and str(key).lower() in JSON_ITEM_KEYS:
                empty = value
        queue.extend(value for value in node.values() if isinstance(value, dict))
    return empty


def _first_object(payload: Any) -> dict[str, Any] | None:
    items = find_item_array(payload)
    if items is not None:
        return next((x for x in items if isinstance(x, dict)), None)
    return payload if isinstance(payload, dict) else None


def _first_array_object_prefix(text: str) -> dict[str, Any] | None:
    """Decode the first complete object of a (possibly truncated) top-level array."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            obj, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(obj, dict):
            return obj
        start = text.find("{", start + 1)
    return None


def _first_ndjson_object(text: str) -> dict[str, Any] | None:
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(obj, dict):
            return obj
    return None


def flatten_keys(obj: dict[str, Any], prefix: str = "", depth: int = 0) -> list[str]:
    """Dotted key paths of nested objects, descending at most ``JSON_MAX_DEPTH`` levels.

    Arrays and scalars are leaves.
    """
    keys: list[str] = []
    for name, value in obj.items():
        key = f"{prefix}.{name}" if prefix else str(name)
        if isinstance(value, dict) and value and depth < JSON_MAX_DEPTH:
            keys.extend(flatten_keys(value, key, depth + 1))
        else:
            keys.append(key)
    return keys


def sniff_json_keys(data: bytes) -> list[str]:
    """Return flattened keys of the first representative object in a JSON/NDJSON sample."""
    text = decode_sample(data).strip()
    if not text:
        return []

    try:
        obj = _first_object(json.loads(text))
    except json.JSONDecodeError:
        obj = _first_ndjson_object(text)
        if obj is None and text.startswith(("[", "{")):
            obj = _first_array_object_prefix(text)

    if not obj:
        return []
    return unique_keys(flatten_keys(obj))


# =============================================================================
# XML
# =============================================================================


def _local_name(tag: str) -> str:
    return tag.rsplit(":", 1)[-1]


def _pick_item_tag(counts: Counter[str]) -> str | None:
    for name in XML_PREFERRED_ITEM_TAGS:
        if counts.get(name, 0) > 1:
            return name
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def sniff_xml_keys(data: bytes) -> list[str]:
    """Guess the repeated item element and list its child tags and ``@attributes``.

    Works on the raw text with regular expressions so a truncated sample
    still yields keys.
    """
    body = _XML_DECLARATION_RE.sub("", decode_sample(data))
    body = _XML_COMMENT_RE.sub("", body)

    counts: Counter[str] = Counter()
    for match in _XML_OPEN_TAG_RE.finditer(body):
        name = match.group(1)
        if _local_name(name).lower() in XML_CONTAINER_TAGS:
            continue
        counts[name] += 1

    item_tag = _pick_item_tag(counts)
    if item_tag is None:
        return []

    opening = re.search(rf"<{re.escape(item_tag)}(?=[\s/>])([^>]*)>", body)
    if opening is None:
        return []
    closing = re.search(rf"</{re.escape(item_tag)}\s*>", body[opening.end():])
    inner = body[opening.end(): opening.end() + closing.start()] if closing else body[opening.end():]

    keys = [
        match.group(1)
        for match in _XML_OPEN_TAG_RE.finditer(inner)
        if match.group(1) != item_tag
    ]
    attributes = opening.group(1).rstrip("/")
    keys.extend(f"@{name}" for name in _XML_ATTRIBUTE_RE.findall(attributes))
    return unique_keys(keys)


# =============================================================================
# Dispatch
# =============================================================================

_SNIFFERS = {
    "csv": sniff_csv_keys,
    "json": sniff_json_keys,
    "xml": sniff_xml_keys,
}


def sniff_keys(data: bytes, feed_type: FeedType, max_keys: int = 200) -> list[str]:
    """Run the sniffer for ``feed_type`` and cap the result at ``max_keys``.

    Returns an empty list when nothing could be extracted.
    """
    sniffer = _SNIFFERS[feed_type]
    try:
        keys = sniffer(data)
    except (ValueError, RecursionError) as e:
        logger.warning("sniff_failed", feed_type=feed_type, error=str(e))
        return []
    return keys[:max_keys]
