import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from auth import Principal, get_principal
from crud.diagram import DiagramRepository
from crud.project import ProjectRepository
from database import get_db
from utils.responses import success_response, error_response, unauthorized_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/diagrams", tags=["diagrams"])


class SaveDiagramRequest(BaseModel):
    projectId: Optional[str] = None
    userId: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    diagramCode: Optional[str] = None
    diagramType: Optional[str] = None
    context: Optional[str] = None


@router.post("/save")
async def save_diagram(request: SaveDiagramRequest, db: AsyncSession = Depends(get_db)):
    if not (request.projectId and request.userId and request.title and request.diagramCode):
        return error_response("Missing required fields: projectId, userId, title, diagramCode", status=400)

    try:
        if await ProjectRepository(db).get_by_id(request.projectId) is None:
            return error_response("Project not found", status=404)

        diagram = await DiagramRepository(db).create_diagram({
            "project_id": request.projectId,
            "user_id": request.userId,
            "title": request.title,
            "description": request.description,
            "diagram_code": request.diagramCode,
            "diagram_type": request.diagramType,
            "context": request.context,
        })
        await db.commit()
        return success_response(diagram.to_dict())
    except Exception:
        await db.rollback()
        logger.exception("Error saving diagram")
        return error_response("Failed to save diagram", status=500)


@router.get("/{project_id}")
async def list_diagrams(project_id: str, db: AsyncSession = Depends(get_db)):
    """Saved diagrams for a project, newest first."""
    try:
        diagrams = await DiagramRepository(db).list_for_project(project_id)
        return success_response([d.to_dict() for d in diagrams])
    except Exception:
        logger.exception("Error retrieving diagrams")
        return error_response("Failed to retrieve diagrams", status=500)


@router.delete("/{project_id}")
async def delete_diagram(
    project_id: str,
    diagramId: Optional[str] = None,
    principal: Optional[Principal] = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete one diagram by ?diagramId=. The caller must own the parent
    project or have saved the diagram.
    """
    if not diagramId:
        return error_response("Diagram ID is required", status=400)

    if principal is None:
        return unauthorized_response()

    try:
        repo = DiagramRepository(db)
        diagram = await repo.get_by_id(diagramId)
        if not diagram or diagram.project_id != project_id:
            return error_response("Diagram not found", status=404)

        project = await ProjectRepository(db).get_by_id(diagram.project_id)
        owns_project = project is not None and project.user_id == principal.user_id
        if not owns_project and diagram.user_id != principal.user_id:
            return error_response("Unauthorized", status=403)

        await repo.delete_diagram(diagram)
        await db.commit()
        return success_response(message="Diagram deleted successfully")
    except Exception:
        await db.rollback()
        logger.exception("Error deleting diagram")
        return error_response("Failed to delete diagram", status=500)
