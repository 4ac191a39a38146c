"""
Export Service
==============

Export profile management, document generation with history, previews
and the public live feed.
"""

import re
import time
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from feedhub.config.settings import Settings, get_settings
from feedhub.db.models import ExportHistory, ExportProfile
from feedhub.db.repositories import ExportsRepository, ProductsRepository
from feedhub.schemas.domain import ExportDocument
from feedhub.schemas.requests import ExportProfileCreateRequest, ExportProfileUpdateRequest
from feedhub.services.exports.filters import ExportRecord, apply_export_filters
from feedhub.services.exports.generators import MEDIA_TYPES, render_rows, resolve_export_columns
from feedhub.utils.errors import ForbiddenError, NotFoundError, ValidationError
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)

FEED_EXTENSIONS = ("csv", "json", "xml")

# Columns that are NOT NULL on export_profiles
REQUIRED_PROFILE_FIELDS = frozenset(
    {
        "name",
        "output_format",
        "field_selection",
        "field_ordering",
        "filters",
        "file_naming",
        "delivery_method",
        "delivery_config",
        "is_active",
    }
)

_FILENAME_UNSAFE_RE = re.compile(r"[^A-Za-z0-9._-]+")


def sanitize_filename(name: str, fallback: str = "export") -> str:
    cleaned = _FILENAME_UNSAFE_RE.sub("_", name.strip()).strip("._")
    return cleaned or fallback


def build_export_filename(profile: Any, now: datetime | None = None) -> str:
    """
    Expand ``file_naming`` and append the format extension.

    Placeholders: {timestamp}, {date}, {format}, {platform}.
    """
    now = now or datetime.now(timezone.utc)
    extension = profile.output_format
    name = (profile.file_naming or "export_{timestamp}")
    name = (
        name.replace("{timestamp}", now.strftime("%Y-%m-%dT%H-%M-%S"))
        .replace("{date}", now.strftime("%Y-%m-%d"))
        .replace("{format}", extension)
        .replace("{platform}", profile.platform or "custom")
    )
    name = sanitize_filename(name)
    if not name.lower().endswith(f".{extension}"):
        name = f"{name}.{extension}"
    return name


def parse_profile_ref(profile_ref: str) -> tuple[UUID, str | None]:
    """
    Split a live feed reference into profile id and optional extension.

    >>> parse_profile_ref("0b5c4a43-8c5e-4b7f-9a43-2f1a3a8f9d10.xml")[1]
    'xml'

    Raises:
        NotFoundError: If the id part is not a UUID or the extension is unknown
    """
    ref, extension = profile_ref, None
    stem, dot, suffix = profile_ref.rpartition(".")
    if dot:
        ref, extension = stem, suffix.lower()
        if extension not in FEED_EXTENSIONS:
            raise NotFoundError("Feed not found")
    try:
        return UUID(ref), extension
    except ValueError as e:
        raise NotFoundError("Feed not found") from e


def render_export(
    records: list[ExportRecord], profile: Any, filename: str
) -> ExportDocument:
    """Filter, project and render records for an export profile."""
    if profile.output_format not in MEDIA_TYPES:
        raise ValidationError(f"Unsupported export format '{profile.output_format}'")
    filtered = apply_export_filters(records, profile.filters)
    columns = resolve_export_columns(profile.field_selection, profile.field_ordering)
    content = render_rows(profile.output_format, [r.fields for r in filtered], columns)
    return ExportDocument(
        content=content,
        media_type=MEDIA_TYPES[profile.output_format],
        extension=profile.output_format,
        filename=filename,
        item_count=len(filtered),
    )


class ExportService:
    """Export profiles and the documents generated from them."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._exports = ExportsRepository(session)
        self._products = ProductsRepository(session)

    def feed_url(self, profile: ExportProfile) -> str | None:
        """Absolute live feed URL of a feed-delivery profile."""
        if profile.delivery_method != "feed":
            return None
        origin = self._settings.app_origin.rstrip("/")
        return f"{origin}/api/exports/feed/{profile.id}.{profile.output_format}"

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    async def list_profiles(self, workspace_id: UUID) -> list[ExportProfile]:
        return await self._exports.list_profiles(workspace_id)

    async def get_profile(self, workspace_id: UUID, profile_id: UUID) -> ExportProfile:
        profile = await self._exports.get_profile(workspace_id, profile_id)
        if profile is None:
            raise NotFoundError("Export profile not found", details={"profile_id": str(profile_id)})
        return profile

    async def create_profile(
        self, workspace_id: UUID, user_id: UUID | None, request: ExportProfileCreateRequest
    ) -> ExportProfile:
        profile = await self._exports.create_profile(
            workspace_id, created_by=user_id, **request.model_dump()
        )
        logger.info("export_profile_created", workspace_id=str(workspace_id), profile_id=str(profile.id))
        return profile

    async def update_profile(
        self, workspace_id: UUID, profile_id: UUID, request: ExportProfileUpdateRequest
    ) -> ExportProfile:
        profile = await self.get_profile(workspace_id, profile_id)
        changes = request.model_dump(exclude_unset=True)
        if "field_selection" in changes and not changes["field_selection"]:
            raise ValidationError("field_selection must not be empty")
        nulls = sorted(name for name in REQUIRED_PROFILE_FIELDS if name in changes and changes[name] is None)
        if nulls:
            raise ValidationError(f"{nulls[0]} must not be null", details={"fields": nulls})
        return await self._exports.update_profile(profile, **changes)

    async def delete_profile(self, workspace_id: UUID, profile_id: UUID) -> None:
        profile = await self.get_profile(workspace_id, profile_id)
        await self._exports.delete_profile(profile)
        logger.info("export_profile_deleted", workspace_id=str(workspace_id), profile_id=str(profile_id))

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    async def _records(self, workspace_id: UUID) -> list[ExportRecord]:
        products = await self._products.list_mapped_for_workspace(workspace_id)
        return [
            ExportRecord(
                fields=product.fields or {},
                category_id=product.category_id,
                supplier_id=product.supplier_id,
                external_id=product.external_id,
            )
            for product in products
        ]

    async def generate(
        self, workspace_id: UUID, profile_id: UUID, user_id: UUID | None = None
    ) -> ExportDocument:
        """Render a profile's document and record it in export_history."""
        profile = await self.get_profile(workspace_id, profile_id)
        started = time.perf_counter()
        document = render_export(
            await self._records(workspace_id), profile, build_export_filename(profile)
        )
        generation_time_ms = int((time.perf_counter() - started) * 1000)

        await self._exports.add_history(
            workspace_id,
            export_profile_id=profile.id,
            filename=document.filename,
            file_size=len(document.content.encode("utf-8")),
            item_count=document.item_count,
            generation_time_ms=generation_time_ms,
            created_by=user_id,
        )
        logger.info(
            "export_generated",
            workspace_id=str(workspace_id),
            profile_id=str(profile_id),
            items=document.item_count,
            generation_time_ms=generation_time_ms,
        )
        return document

    async def preview(self, workspace_id: UUID, profile_id: UUID) -> dict[str, Any]:
        """First rows of a profile's output, projected to its columns."""
        profile = await self.get_profile(workspace_id, profile_id)
        filtered = apply_export_filters(await self._records(workspace_id), profile.filters)
        columns = resolve_export_columns(profile.field_selection, profile.field_ordering)
        limit = self._settings.export_preview_limit
        return {
            "columns": columns,
            "products": [{key: r.fields.get(key) for key in columns} for r in filtered[:limit]],
            "total": len(filtered),
        }

    async def history(self, workspace_id: UUID) -> list[ExportHistory]:
        return await self._exports.list_history(workspace_id)

    async def live_feed(self, profile_ref: str) -> ExportDocument:
        """
        Render the public feed of a profile.

        Raises:
            NotFoundError: Unknown or inactive profile
            ForbiddenError: Profile is not delivered as a feed
            ValidationError: Requested extension differs from the profile format
        """
        profile_id, extension = parse_profile_ref(profile_ref)
        profile = await self._exports.get_profile_unscoped(profile_id)
        if profile is None or not profile.is_active:
            raise NotFoundError("Feed not found")
        if profile.delivery_method != "feed":
            raise ForbiddenError("Export profile is not configured for feed delivery")
        if extension is not None and extension != profile.output_format:
            raise ValidationError(
                f"Feed format is {profile.output_format}, not {extension}",
                details={"expected": profile.output_format},
            )

        filename = f"{sanitize_filename(profile.name, 'feed')}.{profile.output_format}"
        document = render_export(await self._records(profile.workspace_id), profile, filename)
        logger.info("live_feed_served", profile_id=str(profile_id), items=document.item_count)
        return document
