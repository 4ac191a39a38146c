"""
Uploaded Feed Storage
=====================

Stores uploaded supplier feeds on a local volume under
``<uploads_dir>/<workspace_id>/<supplier_id>/<filename>``. Stored paths
are relative to the storage root and are resolved back with a
traversal check before reading.
"""

import re
from pathlib import Path
from uuid import UUID

from feedhub.config.settings import get_settings
from feedhub.utils.errors import FeedFetchError, ValidationError
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str) -> str:
    """Reduce a client supplied filename to a safe basename."""
    name = Path(filename.replace("\\", "/")).name
    name = _UNSAFE_FILENAME_RE.sub("_", name).strip("._")
    return name or "feed"


class LocalFeedStorage:
    """Filesystem storage for uploaded feeds."""

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root or get_settings().uploads_dir).resolve()

    def _resolve(self, relative_path: str) -> Path:
        """
        Resolve a stored path inside the storage root.

        Raises:
            ValidationError: If the path escapes the storage root
        """
        resolved = (self.root / relative_path).resolve()
        try:
            resolved.relative_to(self.root)
        except ValueError as e:
            logger.warning("storage_path_traversal_blocked", path=relative_path)
            raise ValidationError(
                "Stored path is outside the upload directory",
                details={"path": relative_path},
            ) from e
        return resolved

    def save(self, workspace_id: UUID, supplier_id: UUID, filename: str, data: bytes) -> str:
        """Write an uploaded feed and return its path relative to the storage root."""
        relative_path = f"{workspace_id}/{supplier_id}/{safe_filename(filename)}"
        target = self._resolve(relative_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.info("feed_upload_stored", path=relative_path, size_bytes=len(data))
        return relative_path

    def read(self, relative_path: str, max_bytes: int | None = None) -> bytes:
        """
        Read a stored feed, optionally only its first ``max_bytes``.

        Raises:
            FeedFetchError: If the file does not exist
        """
        path = self._resolve(relative_path)
        if not path.is_file():
            raise FeedFetchError(
                f"Download failed: {relative_path} not found",
                details={"path": relative_path},
            )
        with path.open("rb") as handle:
            return handle.read() if max_bytes is None else handle.read(max_bytes)

    def delete_supplier_files(self, workspace_id: UUID, supplier_id: UUID) -> None:
        """Remove every stored upload of a supplier."""
        directory = self._resolve(f"{workspace_id}/{supplier_id}")
        if not directory.is_dir():
            return
        for path in directory.iterdir():
            if path.is_file():
                path.unlink()
        directory.rmdir()
