"""JSON and NDJSON feed parser implementation."""
import json
from typing import Iterator

from feedhub.parsers.base_parser import FeedParser, ParsedFeedItem
from feedhub.parsers.sniffers import decode_sample, find_item_array
from feedhub.utils.errors import ParserError
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)


class JsonParser(FeedParser):
    """Parser for JSON arrays, wrapper objects and newline-delimited JSON."""

    def get_parser_name(self) -> str:
        """Return parser identifier."""
        return "json"

    def parse(self, data: bytes) -> Iterator[ParsedFeedItem]:
        text = decode_sample(data).strip()
        if not text:
            return

        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            yield from self._parse_ndjson(text)
            return

        items = find_item_array(payload)
        if items is None:
            if isinstance(payload, dict):
                items = [payload]
            else:
                raise ParserError("JSON feed contains no items")

        for index, item in enumerate(items):
            if isinstance(item, dict):
                yield ParsedFeedItem(index=index, fields=item)
            else:
                yield ParsedFeedItem(
                    index=index,
                    error="Item is not a JSON object",
                    raw=json.dumps(item, ensure_ascii=False, default=str),
                )

        logger.info("json_feed_parsed", items=len(items))

    def _parse_ndjson(self, text: str) -> Iterator[ParsedFeedItem]:
        index = 0
        decoded = 0
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                item = json.loads(line)
            except json.JSONDecodeError as e:
                yield ParsedFeedItem(index=index, error=f"Invalid JSON line: {e.msg}", raw=line)
            else:
                if isinstance(item, dict):
                    decoded += 1
                    yield ParsedFeedItem(index=index, fields=item)
                else:
                    yield ParsedFeedItem(index=index, error="Item is not a JSON object", raw=line)
            index += 1

        if decoded == 0:
            raise ParserError("Feed is neither valid JSON nor NDJSON")
        logger.info("ndjson_feed_parsed", items=index)
