"""Abstract parser interface for feed documents."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterator


@dataclass(frozen=True, slots=True)
class ParsedFeedItem:
    """One item seen in a feed.

    Exactly one of ``fields`` and ``error`` is set. Items that could not be
    decoded on their own carry an ``error`` and whatever ``raw`` text is
    available, so ingestion can count and record them.
    """

    index: int
    fields: dict[str, Any] | None = None
    error: str | None = None
    raw: str | None = None


class FeedParser(ABC):
    """Abstract base class for all feed format parsers.

    Implementations must provide:
    - parse(): Iterate items of a whole feed document
    - get_parser_name(): Return unique parser identifier
    """

    @abstractmethod
    def parse(self, data: bytes) -> Iterator[ParsedFeedItem]:
        """Yield every item of the document in feed order.

        Args:
            data: Complete feed document

        Raises:
            ParserError: If the document as a whole cannot be parsed
        """

    @abstractmethod
    def get_parser_name(self) -> str:
        """Return parser identifier ("csv", "json", "xml")."""
