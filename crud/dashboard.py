"""
Repositories for dashboard reviews and widgets
"""

from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from database_models import DashboardReview, DashboardWidget


class DashboardReviewRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_project(self, project_id: str) -> List[DashboardReview]:
        result = await self.db.execute(
            select(DashboardReview)
            .where(DashboardReview.project_id == project_id)
            .order_by(DashboardReview.created_at.desc())
        )
        return list(result.scalars().all())

    async def create_review(self, project_id: str, author_id: str, text: str, rating: Optional[int] = None) -> DashboardReview:
        review = DashboardReview(
            project_id=project_id,
            author_id=author_id,
            text=text,
            rating=rating,
        )
        self.db.add(review)
        await self.db.flush()
        await self.db.refresh(review)
        return review


def average_rating(reviews: List[DashboardReview]) -> Optional[float]:
    """Mean rating over all reviews, counting unrated ones as 0. None when empty."""
    if not reviews:
        return None
    return sum(r.rating or 0 for r in reviews) / len(reviews)


class DashboardWidgetRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_project(self, project_id: str) -> List[DashboardWidget]:
        result = await self.db.execute(
            select(DashboardWidget)
            .where(DashboardWidget.project_id == project_id)
            .order_by(DashboardWidget.tab_type.asc(), DashboardWidget.order.asc())
        )
        return list(result.scalars().all())

    async def get_by_id(self, widget_id: str) -> Optional[DashboardWidget]:
        result = await self.db.execute(
            select(DashboardWidget).where(DashboardWidget.id == widget_id)
        )
        return result.scalar_one_or_none()

    async def create_widget(self, widget_data: dict) -> DashboardWidget:
        widget = DashboardWidget(
            project_id=widget_data["project_id"],
            user_id=widget_data.get("user_id"),
            tab_type=widget_data["tab_type"],
            widget_type=widget_data["widget_type"],
            title=widget_data.get("title"),
            order=widget_data.get("order", 0),
            config=widget_data.get("config"),
            data=widget_data.get("data"),
            raw_content=widget_data.get("raw_content"),
        )
        self.db.add(widget)
        await self.db.flush()
        await self.db.refresh(widget)
        return widget

    async def delete_widget(self, widget: DashboardWidget) -> None:
        await self.db.delete(widget)
        await self.db.flush()

    async def update_data(self, widget: DashboardWidget, data) -> DashboardWidget:
        widget.data = data
        await self.db.flush()
        await self.db.refresh(widget)
        return widget

    async def delete_for_project(self, project_id: str, tab_type: Optional[str] = None) -> int:
        """Delete a project's widgets, or only one tab's; returns how many rows went."""
        query = delete(DashboardWidget).where(DashboardWidget.project_id == project_id)
        if tab_type is not None:
            query = query.where(DashboardWidget.tab_type == tab_type)
        result = await self.db.execute(query)
        return result.rowcount or 0


def group_widgets_by_tab(widgets: List[DashboardWidget]) -> dict:
    grouped: dict = {}
    for widget in widgets:
        grouped.setdefault(widget.tab_type, []).append(widget.to_dict())
    return grouped
