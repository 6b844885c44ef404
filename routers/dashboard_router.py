"""
Dashboard routes: reviews left on a project's dashboard, and the widgets
rendered on it. Widgets are written from a tab's markdown by
/add-content and their data is edited through /widget/{id}/data.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from crud.dashboard import (
    DashboardReviewRepository,
    DashboardWidgetRepository,
    average_rating,
    group_widgets_by_tab,
)
from crud.project import ProjectRepository
from database import get_db
from utils.dashboard_parser import parse_tab_content
from utils.responses import success_response, error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])

MIN_RATING = 1
MAX_RATING = 5


class ReviewRequest(BaseModel):
    authorId: Optional[str] = None
    text: Optional[str] = None
    rating: Optional[int] = None


class AddContentRequest(BaseModel):
    projectId: Optional[str] = None
    userId: Optional[str] = None
    tabType: Optional[str] = None
    content: Optional[str] = None
    persona: Optional[str] = None


class WidgetDataRequest(BaseModel):
    projectId: Optional[str] = None
    data: Any = None


@router.post("/add-content")
async def add_content(request: AddContentRequest, db: AsyncSession = Depends(get_db)):
    """
    Parse a tab's markdown into widgets and replace that tab's widgets
    with them.
    """
    if not (request.projectId and request.userId and request.tabType and request.content):
        return error_response("Missing required fields: projectId, userId, tabType, content", status=400)

    try:
        if await ProjectRepository(db).get_by_id(request.projectId) is None:
            return error_response("Project not found", status=404)

        parsed = parse_tab_content(request.tabType, request.content)

        repo = DashboardWidgetRepository(db)
        await repo.delete_for_project(request.projectId, tab_type=request.tabType)
        widgets = []
        for widget in parsed:
            widgets.append(await repo.create_widget({
                "project_id": request.projectId,
                "user_id": request.userId,
                "tab_type": request.tabType,
                "widget_type": widget.widget_type,
                "title": widget.title,
                "order": widget.order,
                "data": widget.content,
                "raw_content": widget.raw_content,
            }))
        await db.commit()

        logger.info(
            "Dashboard content added",
            extra={"project_id": request.projectId, "tab_type": request.tabType, "widgets": len(widgets)},
        )
        return success_response({
            "widgetsCreated": len(widgets),
            "widgets": [w.to_dict() for w in widgets],
            "mode": "parsed",
        })
    except Exception:
        await db.rollback()
        logger.exception("Error adding content to dashboard")
        return error_response("Failed to add content to dashboard", status=500)


@router.get("/widget/{widget_id}/data")
async def get_widget_data(widget_id: str, db: AsyncSession = Depends(get_db)):
    try:
        widget = await DashboardWidgetRepository(db).get_by_id(widget_id)
        if widget is None:
            return error_response("Widget not found", status=404)
        return success_response(widget.data)
    except Exception:
        logger.exception("Error fetching widget data")
        return error_response("Failed to fetch widget data", status=500)


@router.put("/widget/{widget_id}/data")
async def update_widget_data(widget_id: str, request: WidgetDataRequest, db: AsyncSession = Depends(get_db)):
    """Replace a widget's data (checklist state, edited table rows)."""
    if not request.projectId or not request.data:
        return error_response("Missing required fields", status=400)

    try:
        repo = DashboardWidgetRepository(db)
        widget = await repo.get_by_id(widget_id)
        if widget is None or widget.project_id != request.projectId:
            return error_response("Widget not found", status=404)

        widget = await repo.update_data(widget, request.data)
        await db.commit()
        return success_response(widget.to_dict())
    except Exception:
        await db.rollback()
        logger.exception("Error updating widget data")
        return error_response("Failed to update widget data", status=500)


@router.get("/{project_id}/reviews")
async def list_reviews(project_id: str, db: AsyncSession = Depends(get_db)):
    try:
        reviews = await DashboardReviewRepository(db).list_for_project(project_id)
        return success_response({
            "reviews": [r.to_dict() for r in reviews],
            "averageRating": average_rating(reviews),
            "count": len(reviews),
        })
    except Exception:
        logger.exception("Error retrieving dashboard reviews")
        return error_response("Failed to retrieve dashboard reviews", status=500)


@router.post("/{project_id}/reviews")
async def create_review(project_id: str, request: ReviewRequest, db: AsyncSession = Depends(get_db)):
    if not request.authorId or not (request.text and request.text.strip()):
        return error_response("authorId and text are required", status=400)

    if request.rating is not None and not MIN_RATING <= request.rating <= MAX_RATING:
        return error_response("rating must be between 1 and 5", status=400)

    try:
        if await ProjectRepository(db).get_by_id(project_id) is None:
            return error_response("Project not found", status=404)

        review = await DashboardReviewRepository(db).create_review(
            project_id=project_id,
            author_id=request.authorId,
            text=request.text.strip(),
            rating=request.rating,
        )
        await db.commit()
        return success_response(review.to_dict())
    except Exception:
        await db.rollback()
        logger.exception("Error creating dashboard review")
        return error_response("Failed to create dashboard review", status=500)


@router.get("/{project_id}")
async def list_widgets(project_id: str, db: AsyncSession = Depends(get_db)):
    """Widgets ordered by tab then position, plus the same list grouped by tab."""
    try:
        widgets = await DashboardWidgetRepository(db).list_for_project(project_id)
        widgets_by_tab = group_widgets_by_tab(widgets)
        return success_response({
            "widgets": [w.to_dict() for w in widgets],
            "widgetsByTab": widgets_by_tab,
            "totalWidgets": len(widgets),
            "tabCount": len(widgets_by_tab),
        })
    except Exception:
        logger.exception("Error retrieving dashboard widgets")
        return error_response("Failed to retrieve dashboard widgets", status=500)


@router.delete("/{project_id}")
async def delete_widgets(project_id: str, widgetId: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    """Delete one widget when ?widgetId= is given, otherwise all of the project's widgets."""
    try:
        repo = DashboardWidgetRepository(db)
        if widgetId:
            widget = await repo.get_by_id(widgetId)
            if not widget or widget.project_id != project_id:
                return error_response("Widget not found", status=404)
            await repo.delete_widget(widget)
            await db.commit()
            return success_response(message="Widget deleted successfully")

        count = await repo.delete_for_project(project_id)
        await db.commit()
        return success_response(message=f"Deleted {count} widgets")
    except Exception:
        await db.rollback()
        logger.exception("Error deleting dashboard widget")
        return error_response("Failed to delete widget", status=500)
