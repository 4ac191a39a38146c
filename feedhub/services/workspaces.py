"""Workspace membership checks."""
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from feedhub.db.models import Workspace
from feedhub.db.repositories import WorkspaceRepository
from feedhub.utils.errors import WorkspaceAccessError
from feedhub.utils.logger import get_logger

logger = get_logger(__name__)


class WorkspaceService:
    def __init__(self, session: AsyncSession) -> None:
        self._workspaces = WorkspaceRepository(session)

    async def require_member(self, workspace_id: UUID, user_id: UUID) -> str:
        """
        Return the user's role in the workspace.

        Raises:
            WorkspaceAccessError: If the user is not a member
        """
        role = await self._workspaces.get_member_role(workspace_id, user_id)
        if role is None:
            logger.warning("workspace_access_denied", workspace_id=str(workspace_id), user_id=str(user_id))
            raise WorkspaceAccessError(
                "You do not have access to this workspace",
                details={"workspace_id": str(workspace_id)},
            )
        return role

    async def list_workspaces(self, user_id: UUID) -> list[Workspace]:
        return await self._workspaces.list_for_user(user_id)
