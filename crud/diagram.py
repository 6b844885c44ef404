"""
DiagramRepository for database operations on SavedDiagram model
"""

from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database_models import SavedDiagram


class DiagramRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_project(self, project_id: str) -> List[SavedDiagram]:
        """Saved diagrams for a project, newest first."""
        result = await self.db.execute(
            select(SavedDiagram)
            .where(SavedDiagram.project_id == project_id)
            .order_by(SavedDiagram.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_by_id(self, diagram_id: str) -> Optional[SavedDiagram]:
        result = await self.db.execute(
            select(SavedDiagram).where(SavedDiagram.id == diagram_id)
        )
        return result.scalar_one_or_none()

    async def create_diagram(self, diagram_data: dict) -> SavedDiagram:
        """
        Args:
            diagram_data: project_id, user_id, title and diagram_code are
                required; description, diagram_type and context are optional
        """
        diagram = SavedDiagram(
            project_id=diagram_data["project_id"],
            user_id=diagram_data["user_id"],
            title=diagram_data["title"],
            description=diagram_data.get("description") or None,
            diagram_code=diagram_data["diagram_code"],
            diagram_type=diagram_data.get("diagram_type") or None,
            context=diagram_data.get("context") or None,
        )
        self.db.add(diagram)
        await self.db.flush()
        await self.db.refresh(diagram)
        return diagram

    async def delete_diagram(self, diagram: SavedDiagram) -> None:
        await self.db.delete(diagram)
        await self.db.flush()
