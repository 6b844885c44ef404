"""
ProjectRepository for database operations on Project model
"""

import secrets
import string
import time
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database_models import Project

_BASE36 = string.digits + string.ascii_lowercase


def generate_project_id() -> str:
    """project-<epoch ms>-<9 random base36 chars>"""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"project-{int(time.time() * 1000)}-{suffix}"


class ProjectRepository:
    """
    Repository class for Project database operations.
    Ownership is not checked here; callers compare project.user_id
    against the principal.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_user(self, user_id: str) -> List[Project]:
        """All projects owned by user_id, most recently updated first."""
        result = await self.db.execute(
            select(Project)
            .where(Project.user_id == user_id)
            .order_by(Project.updated_at.desc())
        )
        return list(result.scalars().all())

    async def get_by_id(self, project_id: str) -> Optional[Project]:
        result = await self.db.execute(
            select(Project).where(Project.id == project_id)
        )
        return result.scalar_one_or_none()

    async def create_project(
        self,
        user_id: str,
        name: str,
        description: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> Project:
        """
        Create a project owned by user_id.

        Args:
            user_id: Owner ID
            name: Project name (stored as given; callers trim)
            description: Optional description
            project_id: Explicit ID; one is generated when omitted

        Returns:
            Created Project object
        """
        project = Project(
            id=project_id or generate_project_id(),
            user_id=user_id,
            name=name,
            description=description,
        )
        self.db.add(project)
        await self.db.flush()
        await self.db.refresh(project)
        return project

    async def update_project(self, project: Project, updates: dict) -> Project:
        """
        Apply name/description updates. Any other key is ignored, so the
        owner can never change through this path.
        """
        for key in ("name", "description"):
            if key in updates:
                setattr(project, key, updates[key])

        await self.db.flush()
        await self.db.refresh(project)
        return project

    async def delete_project(self, project: Project) -> None:
        await self.db.delete(project)
        await self.db.flush()
