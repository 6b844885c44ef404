import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from crud.feedback import FeedbackRepository
from database import get_db
from utils.responses import success_response, error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/feedback", tags=["feedback"])


class FeedbackRequest(BaseModel):
    message: Optional[str] = None
    persona: Optional[str] = None
    tabType: Optional[str] = None
    projectId: Optional[str] = None
    userId: Optional[str] = None


@router.post("")
async def submit_feedback(request: FeedbackRequest, db: AsyncSession = Depends(get_db)):
    if not request.message:
        return error_response("Feedback message is required", status=400)

    try:
        feedback = await FeedbackRepository(db).create_feedback({
            "message": request.message,
            "persona": request.persona,
            "tab_type": request.tabType,
            "project_id": request.projectId,
            "user_id": request.userId,
        })
        await db.commit()
        return success_response(feedback.to_dict())
    except Exception:
        await db.rollback()
        logger.exception("Error saving feedback")
        return error_response("Failed to save feedback", status=500)
