"""CSV feed parser implementation."""
import csv
import io
from typing import Any, Iterator

import pandas as pd

from feedhub.parsers.base_parser import FeedParser, ParsedFeedItem
from feedhub.parsers.sniffers import decode_sample, detect_delimiter
from feedhub.utils.errors import ParserError
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)

DELIMITER_SNIFF_BYTES = 64 * 1024


class CsvParser(FeedParser):
    """Parser for delimited text feeds.

    Reads the document with pandas in chunks, every cell as a string.
    The delimiter is detected from the first non-blank line (comma,
    semicolon, tab or pipe). Lines with more cells than the header are
    reported as item errors instead of aborting the feed.
    """

    def __init__(self, chunk_size: int = 500):
        self.chunk_size = chunk_size

    def get_parser_name(self) -> str:
        """Return parser identifier."""
        return "csv"

    def parse(self, data: bytes) -> Iterator[ParsedFeedItem]:
        if not data.strip():
            return

        delimiter = detect_delimiter(decode_sample(data[:DELIMITER_SNIFF_BYTES]))
        log = logger.bind(delimiter=delimiter, size_bytes=len(data))
        bad_lines: list[list[str]] = []

        def on_bad_line(line: list[str]) -> None:
            bad_lines.append(line)
            return None

        try:
            reader = pd.read_csv(
                io.BytesIO(data),
                sep=delimiter,
                dtype=str,
                keep_default_na=False,
                encoding="utf-8-sig",
                encoding_errors="replace",
                skip_blank_lines=True,
                quoting=csv.QUOTE_MINIMAL,
                engine="python",
                on_bad_lines=on_bad_line,
                chunksize=self.chunk_size,
            )
        except pd.errors.EmptyDataError:
            log.info("csv_feed_empty")
            return
        except (pd.errors.ParserError, ValueError) as e:
            raise ParserError(f"Could not read CSV feed: {e}") from e

        index = 0
        try:
            for chunk in reader:
                for record in chunk.to_dict(orient="records"):
                    yield ParsedFeedItem(index=index, fields=_clean_record(record))
                    index += 1
                for line in bad_lines:
                    yield ParsedFeedItem(
                        index=index,
                        error=f"Row has {len(line)} fields, more than the header",
                        raw=delimiter.join(line),
                    )
                    index += 1
                bad_lines.clear()
        except pd.errors.EmptyDataError:
            log.info("csv_feed_empty")
            return
        except pd.errors.ParserError as e:
            raise ParserError(f"Could not read CSV feed at item {index}: {e}") from e

        log.info("csv_feed_parsed", items=index)


def _clean_record(record: dict[Any, Any]) -> dict[str, Any]:
    """Normalize a pandas record: string keys, missing cells as empty strings."""
    return {
        str(key).strip(): "" if value is None or (isinstance(value, float) and pd.isna(value)) else value
        for key, value in record.items()
    }
