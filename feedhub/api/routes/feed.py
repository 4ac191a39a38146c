"""
Live Feed Route
===============

Public, unauthenticated endpoint serving the current export of a
feed-delivery profile: GET /api/exports/feed/{id}[.csv|.json|.xml]
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from feedhub.api.dependencies import AppSettings, get_export_service
from feedhub.services.exports import ExportService

router = APIRouter()


@router.get("/{profile_ref}", summary="Live export feed")
async def live_feed(
    profile_ref: str,
    service: Annotated[ExportService, Depends(get_export_service)],
    settings: AppSettings,
) -> Response:
    document = await service.live_feed(profile_ref)
    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={
            "Cache-Control": f"public, max-age={settings.feed_cache_max_age}",
            "Access-Control-Allow-Origin": "*",
            "Content-Disposition": f'inline; filename="{document.filename}"',
        },
    )
