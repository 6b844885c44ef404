from sqlalchemy.ext.asyncio import AsyncSession
from database_models import Feedback


class FeedbackRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_feedback(self, feedback_data: dict) -> Feedback:
        """Store feedback; empty optional fields are stored as NULL."""
        feedback = Feedback(
            message=feedback_data["message"],
            persona=feedback_data.get("persona") or None,
            tab_type=feedback_data.get("tab_type") or None,
            project_id=feedback_data.get("project_id") or None,
            user_id=feedback_data.get("user_id") or None,
        )
        self.db.add(feedback)
        await self.db.flush()
        await self.db.refresh(feedback)
        return feedback
