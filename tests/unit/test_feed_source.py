"""Unit tests for upload storage and remote feed fetching."""
import base64
from types import SimpleNamespace
from uuid import uuid4

import httpx
import pytest

from feedhub.services.feed_source import FeedSourceService, FetchedFeed
from feedhub.services.storage import LocalFeedStorage, safe_filename
from feedhub.utils.errors import FeedFetchError, ValidationError


def url_supplier(**overrides):
    values = {
        "id": uuid4(),
        "source_type": "url",
        "endpoint_url": "https://supplier.test/feed.xml",
        "source_path": None,
        "auth_username": None,
        "auth_password": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestLocalFeedStorage:
    """Test LocalFeedStorage."""

    def test_safe_filename(self) -> None:
        """Verify client file names are reduced to safe basenames."""
        assert safe_filename("../../etc/passwd") == "passwd"
        assert safe_filename("C:\\feeds\\My Feed.csv") == "My_Feed.csv"
        assert safe_filename("...") == "feed"

    def test_save_and_read(self, tmp_path, workspace_id, supplier_id, sample_csv) -> None:
        """Verify uploads are stored per supplier and read back."""
        storage = LocalFeedStorage(tmp_path)
        path = storage.save(workspace_id, supplier_id, "products.csv", sample_csv)

        assert path == f"{workspace_id}/{supplier_id}/products.csv"
        assert storage.read(path) == sample_csv
        assert storage.read(path, max_bytes=9) == b"sku,price"

    def test_traversal_blocked(self, tmp_path) -> None:
        """Verify stored paths cannot escape the storage root."""
        storage = LocalFeedStorage(tmp_path / "uploads")
        with pytest.raises(ValidationError):
            storage.read("../outside.csv")

    def test_missing_file(self, tmp_path) -> None:
        """Verify reading a missing upload is a fetch error."""
        with pytest.raises(FeedFetchError):
            LocalFeedStorage(tmp_path).read("nope/feed.csv")

    def test_delete_supplier_files(self, tmp_path, workspace_id, supplier_id) -> None:
        """Verify a supplier's upload directory is removed."""
        storage = LocalFeedStorage(tmp_path)
        storage.save(workspace_id, supplier_id, "a.csv", b"x")
        storage.delete_supplier_files(workspace_id, supplier_id)
        assert not (tmp_path / str(workspace_id) / str(supplier_id)).exists()
        storage.delete_supplier_files(workspace_id, supplier_id)


class TestFetchedFeed:
    """Test feed type detection on fetched feeds."""

    def test_feed_type(self) -> None:
        """Verify the hint extension wins and content type is the fallback."""
        assert FetchedFeed(b"", "https://x.test/feed.csv", "application/json").feed_type == "csv"
        assert FetchedFeed(b"", "https://x.test/export", "text/xml").feed_type == "xml"
        assert FetchedFeed(b"", "https://x.test/export", "").feed_type == "json"


class TestFeedSourceService:
    """Test FeedSourceService.fetch()."""

    def _service(self, settings, handler) -> FeedSourceService:
        return FeedSourceService(settings, transport=httpx.MockTransport(handler))

    async def test_url_with_basic_auth(self, settings) -> None:
        """Verify credentials are sent as HTTP Basic auth."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["authorization"] = request.headers.get("authorization")
            return httpx.Response(200, content=b"<products/>", headers={"content-type": "text/xml"})

        supplier = url_supplier(auth_username="user", auth_password="secret")
        feed = await self._service(settings, handler).fetch(supplier)

        expected = base64.b64encode(b"user:secret").decode()
        assert seen["authorization"] == f"Basic {expected}"
        assert feed.data == b"<products/>"
        assert feed.feed_type == "xml"
        assert feed.truncated is False

    async def test_url_without_credentials(self, settings) -> None:
        """Verify no Authorization header is sent without credentials."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["authorization"] = request.headers.get("authorization")
            return httpx.Response(200, content=b"[]")

        await self._service(settings, handler).fetch(url_supplier(auth_username="user"))
        assert seen["authorization"] is None

    async def test_bad_status(self, settings) -> None:
        """Verify non-2xx responses are fetch errors with the status."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        with pytest.raises(FeedFetchError) as exc_info:
            await self._service(settings, handler).fetch(url_supplier())
        assert exc_info.value.message == "Failed to fetch: 503 Service Unavailable"
        assert exc_info.value.details["status_code"] == 503

    async def test_max_bytes_truncates(self, settings) -> None:
        """Verify sampling stops after max_bytes."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"sku,price\n" * 100)

        feed = await self._service(settings, handler).fetch(
            url_supplier(endpoint_url="https://supplier.test/feed.csv"), max_bytes=15
        )
        assert feed.data == b"sku,price\nsku,p"
        assert feed.truncated is True

    async def test_feed_filling_max_bytes_is_complete(self, settings) -> None:
        """Verify a feed exactly max_bytes long is not flagged as truncated."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"sku,price\n")

        feed = await self._service(settings, handler).fetch(
            url_supplier(endpoint_url="https://supplier.test/feed.csv"), max_bytes=10
        )
        assert feed.data == b"sku,price\n"
        assert feed.truncated is False

    async def test_upload_sample_truncation(self, settings, workspace_id, supplier_id, sample_csv) -> None:
        """Verify stored feeds are only truncated when longer than max_bytes."""
        storage = LocalFeedStorage(settings.uploads_dir)
        path = storage.save(workspace_id, supplier_id, "feed.csv", sample_csv)
        service = FeedSourceService(settings, storage=storage)
        supplier = url_supplier(source_type="upload", source_path=path)

        exact = await service.fetch(supplier, max_bytes=len(sample_csv))
        assert (exact.data, exact.truncated) == (sample_csv, False)

        cut = await service.fetch(supplier, max_bytes=9)
        assert (cut.data, cut.truncated) == (b"sku,price", True)

    async def test_upload_source(self, settings, workspace_id, supplier_id, sample_csv) -> None:
        """Verify upload suppliers read from storage."""
        storage = LocalFeedStorage(settings.uploads_dir)
        path = storage.save(workspace_id, supplier_id, "feed.csv", sample_csv)
        service = FeedSourceService(settings, storage=storage)

        feed = await service.fetch(url_supplier(source_type="upload", source_path=path))

        assert feed.data == sample_csv
        assert feed.hint == path
        assert feed.feed_type == "csv"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"endpoint_url": None},
            {"source_type": "upload", "source_path": None},
            {"source_type": "ftp"},
        ],
    )
    async def test_unusable_source(self, settings, overrides) -> None:
        """Verify misconfigured sources are validation errors."""
        with pytest.raises(ValidationError):
            await FeedSourceService(settings).fetch(url_supplier(**overrides))
