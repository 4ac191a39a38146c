"""
Exports Repository
==================

Data access for export_profiles and export_history.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedhub.db.models import ExportHistory, ExportProfile


class ExportsRepository:
    """Repository for export profiles and generated export records."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_profiles(self, workspace_id: UUID) -> list[ExportProfile]:
        result = await self._session.execute(
            select(ExportProfile)
            .where(ExportProfile.workspace_id == workspace_id)
            .order_by(ExportProfile.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_profile(self, workspace_id: UUID, profile_id: UUID) -> ExportProfile | None:
        result = await self._session.execute(
            select(ExportProfile).where(
                ExportProfile.id == profile_id,
                ExportProfile.workspace_id == workspace_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_profile_unscoped(self, profile_id: UUID) -> ExportProfile | None:
        """Look a profile up by id alone. Only the public live feed does this."""
        return await self._session.get(ExportProfile, profile_id)

    async def create_profile(self, workspace_id: UUID, **values: Any) -> ExportProfile:
        profile = ExportProfile(workspace_id=workspace_id, **values)
        self._session.add(profile)
        await self._session.flush()
        await self._session.refresh(profile)
        return profile

    async def update_profile(self, profile: ExportProfile, **values: Any) -> ExportProfile:
        for name, value in values.items():
            setattr(profile, name, value)
        await self._session.flush()
        await self._session.refresh(profile)
        return profile

    async def delete_profile(self, profile: ExportProfile) -> None:
        await self._session.delete(profile)
        await self._session.flush()

    async def add_history(self, workspace_id: UUID, **values: Any) -> ExportHistory:
        record = ExportHistory(workspace_id=workspace_id, **values)
        self._session.add(record)
        await self._session.flush()
        return record

    async def list_history(self, workspace_id: UUID, limit: int = 100) -> list[ExportHistory]:
        result = await self._session.execute(
            select(ExportHistory)
            .where(ExportHistory.workspace_id == workspace_id)
            .order_by(ExportHistory.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
