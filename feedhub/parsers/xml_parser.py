"""XML feed parser implementation."""
import xml.etree.ElementTree as ET
from collections import Counter
from typing import Any, Iterator

from feedhub.parsers.base_parser import FeedParser, ParsedFeedItem
from feedhub.utils.errors import ParserError
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)

# Known feed shapes, tried in order before falling back to the first repeated element
ITEM_PATHS: tuple[tuple[str, ...], ...] = (
    ("products", "product"),
    ("productfeed", "product"),
    ("rss", "channel", "item"),
    ("items", "item"),
    ("catalog", "product"),
    ("feed", "entry"),
    ("offers", "offer"),
)


def local_name(tag: str) -> str:
    """Tag name without its ``{namespace}`` prefix."""
    return tag.rsplit("}", 1)[-1]


def element_to_value(element: ET.Element) -> Any:
    """Convert an element to plain Python data.

    Leaf elements without attributes become their stripped text. Otherwise a
    dict is built: attributes as ``@name``, children by local name (repeated
    children collected into a list) and mixed text under ``#text``.
    """
    children = list(element)
    text = (element.text or "").strip()

    if not children and not element.attrib:
        return text

    result: dict[str, Any] = {f"@{local_name(k)}": v for k, v in element.attrib.items()}
    for child in children:
        name = local_name(child.tag)
        value = element_to_value(child)
        if name in result:
            existing = result[name]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[name] = [existing, value]
        else:
            result[name] = value

    if text:
        result["#text"] = text
    return result


def _children_named(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if local_name(child.tag).lower() == name]


def _first_repeated(node: ET.Element) -> list[ET.Element] | None:
    """Depth-first search for the first element whose children repeat a tag."""
    children = list(node)
    if not children:
        return None
    counts = Counter(local_name(child.tag) for child in children)
    name, count = counts.most_common(1)[0]
    if count > 1:
        return [child for child in children if local_name(child.tag) == name]
    for child in children:
        found = _first_repeated(child)
        if found is not None:
            return found
    return None


def find_item_elements(root: ET.Element) -> list[ET.Element]:
    """Locate the repeated item elements of a feed document.

    Known feed shapes are tried first, then the first repeated tag found
    walking down from the root. A document without any repeated tag is a
    single item: the first element below the single-child wrappers.
    """
    root_name = local_name(root.tag).lower()
    for path in ITEM_PATHS:
        if path[0] != root_name:
            continue
        nodes = [root]
        for name in path[1:]:
            nodes = [child for node in nodes for child in _children_named(node, name)]
        if nodes:
            return nodes

    repeated = _first_repeated(root)
    if repeated is not None:
        return repeated

    node = root
    while len(node) == 1 and len(node[0]):
        node = node[0]
    return [node] if len(node) else []


class XmlParser(FeedParser):
    """Parser for XML product feeds."""

    def __init__(self, max_bytes: int = 25 * 1024 * 1024):
        self.max_bytes = max_bytes

    def get_parser_name(self) -> str:
        """Return parser identifier."""
        return "xml"

    def parse(self, data: bytes) -> Iterator[ParsedFeedItem]:
        if len(data) > self.max_bytes:
            raise ParserError(
                "XML feed is too large",
                details={"size_bytes": len(data), "max_bytes": self.max_bytes},
            )

        try:
            root = ET.fromstring(data)
        except ET.ParseError as e:
            raise ParserError(f"Invalid XML feed: {e}") from e

        elements = find_item_elements(root)
        for index, element in enumerate(elements):
            value = element_to_value(element)
            if not isinstance(value, dict):
                value = {"#text": value}
            yield ParsedFeedItem(index=index, fields=value)

        logger.info("xml_feed_parsed", items=len(elements), root=local_name(root.tag))
