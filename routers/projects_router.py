"""
Project routes. Every handler is guarded; get/update/delete also check
that the caller owns the project.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from auth import Principal, get_principal
from crud.project import ProjectRepository
from database import get_db
from utils.responses import success_response, error_response, unauthorized_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["projects"])


class ProjectCreateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class ProjectUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class EnsureProjectRequest(BaseModel):
    projectId: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None


def _clean_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    return description.strip() or None


@router.get("")
async def list_projects(
    principal: Optional[Principal] = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """All projects owned by the caller, most recently updated first."""
    if principal is None:
        return unauthorized_response()

    try:
        projects = await ProjectRepository(db).list_for_user(principal.user_id)
        logger.info("Fetched projects", extra={"user_id": principal.user_id, "count": len(projects)})
        return success_response([p.to_dict() for p in projects])
    except Exception:
        logger.exception("Error fetching projects")
        return error_response("Failed to fetch projects", status=500)


@router.post("")
async def create_project(
    request: ProjectCreateRequest,
    principal: Optional[Principal] = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    if principal is None:
        return unauthorized_response()

    name = (request.name or "").strip()
    if not name:
        return error_response("Project name is required", status=400)

    try:
        project = await ProjectRepository(db).create_project(
            user_id=principal.user_id,
            name=name,
            description=_clean_description(request.description),
        )
        await db.commit()
        logger.info("Created project", extra={"user_id": principal.user_id, "project_id": project.id})
        return success_response(project.to_dict(), status=201)
    except Exception:
        await db.rollback()
        logger.exception("Error creating project")
        return error_response("Failed to create project", status=500)


@router.post("/ensure")
async def ensure_project(
    request: EnsureProjectRequest,
    principal: Optional[Principal] = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Create the project if it does not exist yet, otherwise return it.
    Used to move guest projects into the caller's account after login.
    """
    if principal is None:
        return unauthorized_response()

    if not request.projectId:
        return error_response("Project ID is required", status=400)

    try:
        repo = ProjectRepository(db)
        existing = await repo.get_by_id(request.projectId)

        if existing:
            if existing.user_id != principal.user_id:
                return error_response("Project exists but belongs to another user", status=403)
            return success_response(existing.to_dict(), message="Project already exists")

        project = await repo.create_project(
            user_id=principal.user_id,
            name=request.name or "Untitled Project",
            description=request.description or None,
            project_id=request.projectId,
        )
        await db.commit()
        logger.info("Ensured project", extra={"user_id": principal.user_id, "project_id": project.id})
        return success_response(project.to_dict(), message="Project created successfully")
    except Exception:
        await db.rollback()
        logger.exception("Error ensuring project exists")
        return error_response("Failed to ensure project exists", status=500)


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    principal: Optional[Principal] = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    if principal is None:
        return unauthorized_response()

    try:
        project = await ProjectRepository(db).get_by_id(project_id)
        if not project:
            return error_response("Project not found", status=404)
        if project.user_id != principal.user_id:
            return error_response("Unauthorized", status=403)
        return success_response(project.to_dict())
    except Exception:
        logger.exception("Error fetching project")
        return error_response("Failed to fetch project", status=500)


@router.patch("/{project_id}")
async def update_project(
    project_id: str,
    request: ProjectUpdateRequest,
    principal: Optional[Principal] = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Update name and/or description. The owner never changes."""
    if principal is None:
        return unauthorized_response()

    try:
        repo = ProjectRepository(db)
        project = await repo.get_by_id(project_id)
        if not project:
            return error_response("Project not found", status=404)
        if project.user_id != principal.user_id:
            return error_response("Unauthorized", status=403)

        updates = {}
        if request.name and request.name.strip():
            updates["name"] = request.name.strip()
        if "description" in request.model_fields_set:
            updates["description"] = _clean_description(request.description)

        project = await repo.update_project(project, updates)
        await db.commit()
        return success_response(project.to_dict())
    except Exception:
        await db.rollback()
        logger.exception("Error updating project")
        return error_response("Failed to update project", status=500)


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    principal: Optional[Principal] = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Delete a project; diagrams, reviews, widgets and chats go with it."""
    if principal is None:
        return unauthorized_response()

    try:
        repo = ProjectRepository(db)
        project = await repo.get_by_id(project_id)
        if not project:
            return error_response("Project not found", status=404)
        if project.user_id != principal.user_id:
            return error_response("Unauthorized", status=403)

        await repo.delete_project(project)
        await db.commit()
        return success_response(message="Project deleted successfully")
    except Exception:
        await db.rollback()
        logger.exception("Error deleting project")
        return error_response("Failed to delete project", status=500)
