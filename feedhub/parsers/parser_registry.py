"""Parser registry for dynamic parser registration and retrieval."""
from typing import Any

from feedhub.parsers.base_parser import FeedParser
from feedhub.utils.errors import ParserError

# Global registry mapping feed types to parser classes
_parser_registry: dict[str, type[FeedParser]] = {}


def register_parser(feed_type: str, parser_class: type[FeedParser]) -> None:
    """Register a parser class for a feed type.

    Raises:
        ValueError: If feed_type is already registered
        TypeError: If parser_class does not inherit from FeedParser
    """
    if not issubclass(parser_class, FeedParser):
        raise TypeError(f"Parser class {parser_class.__name__} must inherit from FeedParser")

    if feed_type in _parser_registry:
        raise ValueError(
            f"Parser for '{feed_type}' is already registered. "
            f"Existing: {_parser_registry[feed_type].__name__}"
        )

    _parser_registry[feed_type] = parser_class


def get_parser(feed_type: str) -> type[FeedParser] | None:
    """Get parser class for a feed type, or None when unknown."""
    return _parser_registry.get(feed_type)


def create_parser_instance(feed_type: str, **kwargs: Any) -> FeedParser:
    """Create a parser for a feed type.

    Raises:
        ParserError: If no parser is registered for the feed type
    """
    parser_class = get_parser(feed_type)
    if parser_class is None:
        available = ", ".join(_parser_registry) if _parser_registry else "none"
        raise ParserError(
            f"No parser registered for feed type '{feed_type}'. Available parsers: {available}"
        )

    return parser_class(**kwargs)


def list_registered_parsers() -> list[str]:
    """List all registered feed types."""
    return list(_parser_registry)
