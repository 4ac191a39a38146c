"""
Feed Source Service
===================

Fetches the bytes of a supplier feed: over HTTP(S) for ``url`` suppliers
(HTTP Basic auth when credentials are configured) or from upload storage
for ``upload`` suppliers.
"""

from dataclasses import dataclass
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from feedhub import __version__
from feedhub.config.settings import Settings, get_settings
from feedhub.parsers.detection import FeedType, detect_feed_type
from feedhub.services.storage import LocalFeedStorage
from feedhub.utils.errors import FeedFetchError, ValidationError
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FetchedFeed:
    """Feed bytes together with what is known about their origin."""

    data: bytes
    hint: str
    content_type: str
    truncated: bool = False

    @property
    def feed_type(self) -> FeedType:
        return detect_feed_type(self.hint, self.content_type)


class FeedSourceService:
    """Reads supplier feeds from their configured source."""

    def __init__(
        self,
        settings: Settings | None = None,
        storage: LocalFeedStorage | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._storage = storage or LocalFeedStorage(self._settings.uploads_dir)
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self._settings.fetch_timeout_seconds, connect=10.0),
            follow_redirects=True,
            transport=self._transport,
            headers={"User-Agent": f"feedhub/{__version__}"},
        )

    async def fetch(self, supplier: Any, max_bytes: int | None = None) -> FetchedFeed:
        """
        Fetch a supplier's feed.

        Args:
            supplier: Supplier with source_type, endpoint_url / source_path
                and optional auth_username / auth_password
            max_bytes: Stop after this many bytes (used for key sniffing)

        Raises:
            ValidationError: If the supplier has no usable source configured
            FeedFetchError: If the download fails
        """
        if supplier.source_type == "url":
            if not supplier.endpoint_url:
                raise ValidationError("endpoint_url is missing")
            return await self._fetch_url(supplier, max_bytes)

        if supplier.source_type == "upload":
            if not supplier.source_path:
                raise ValidationError("source_path is missing")
            if max_bytes is None:
                data, truncated = self._storage.read(supplier.source_path), False
            else:
                data = self._storage.read(supplier.source_path, max_bytes + 1)
                data, truncated = data[:max_bytes], len(data) > max_bytes
            return FetchedFeed(
                data=data, hint=supplier.source_path, content_type="", truncated=truncated
            )

        raise ValidationError(f"Unsupported source_type '{supplier.source_type}'")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((httpx.ConnectError, httpx.ConnectTimeout)),
        reraise=True,
    )
    async def _download(
        self, url: str, auth: tuple[str, str] | None, max_bytes: int | None
    ) -> tuple[httpx.Response, bytes, bool]:
        async with self._client() as client:
            async with client.stream("GET", url, auth=auth) as response:
                chunks: list[bytes] = []
                total = 0
                truncated = False
                if response.is_success:
                    async for chunk in response.aiter_bytes():
                        chunks.append(chunk)
                        total += len(chunk)
                        # one byte past the limit proves the feed is longer
                        if max_bytes is not None and total > max_bytes:
                            chunks[-1] = chunk[: len(chunk) - (total - max_bytes)]
                            truncated = True
                            break
                return response, b"".join(chunks), truncated

    async def _fetch_url(self, supplier: Any, max_bytes: int | None) -> FetchedFeed:
        url = supplier.endpoint_url
        auth = None
        if supplier.auth_username and supplier.auth_password:
            auth = (supplier.auth_username, supplier.auth_password)

        log = logger.bind(supplier_id=str(supplier.id), url=url)
        try:
            response, data, truncated = await self._download(url, auth, max_bytes)
        except httpx.HTTPError as e:
            log.warning("feed_fetch_failed", error=str(e))
            raise FeedFetchError(f"Failed to fetch: {e}", details={"url": url}) from e

        if not response.is_success:
            log.warning("feed_fetch_bad_status", status_code=response.status_code)
            raise FeedFetchError(
                f"Failed to fetch: {response.status_code} {response.reason_phrase}",
                details={"url": url, "status_code": response.status_code},
            )

        log.info("feed_fetched", size_bytes=len(data), truncated=truncated)
        return FetchedFeed(
            data=data,
            hint=url,
            content_type=response.headers.get("content-type", ""),
            truncated=truncated,
        )
