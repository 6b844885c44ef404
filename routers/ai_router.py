"""
AI routes: response feedback tally, response cache and chat history.

Callers without a session act as DEFAULT_CACHE_USER, which is how the
browser client used these routes before login existed.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from auth import Principal, get_principal
from crud.ai_cache import AiCacheRepository, DEFAULT_CACHE_USER, generate_prompt_hash
from crud.chat import ChatRepository, empty_chat_data
from crud.project import ProjectRepository
from database import get_db
from utils.responses import success_response, error_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])

# Process-local thumbs up/down tally; resets on restart
feedback_counts = {"up": 0, "down": 0}


def _cache_user(principal: Optional[Principal]) -> str:
    return principal.user_id if principal else DEFAULT_CACHE_USER


class CacheLookupRequest(BaseModel):
    prompt: Optional[str] = None
    projectId: Optional[str] = None
    persona: Optional[str] = None
    tabType: Optional[str] = None


class CacheStoreRequest(CacheLookupRequest):
    response: Optional[str] = None


class FeedbackVoteRequest(BaseModel):
    type: Optional[str] = None


class ChatMessageIn(BaseModel):
    text: str
    sender: str
    persona: Optional[str] = None
    timestamp: Optional[str] = None


class ChatSaveRequest(BaseModel):
    projectId: Optional[str] = None
    userId: Optional[str] = DEFAULT_CACHE_USER
    messages: Optional[List[ChatMessageIn]] = None
    projectInfo: Optional[Dict[str, Any]] = None
    persona: Optional[str] = None
    currentTab: Optional[str] = None
    tabContent: Optional[Dict[str, str]] = None
    tabContentGeneration: Optional[Dict[str, str]] = None


# ---------------------------------------------------------------------------
# Response feedback
# ---------------------------------------------------------------------------

@router.post("/feedback")
async def record_feedback(request: FeedbackVoteRequest):
    if request.type not in feedback_counts:
        return JSONResponse(status_code=400, content={"success": False, "message": "Invalid type"})

    feedback_counts[request.type] += 1
    logger.info("Feedback counts", extra={"up": feedback_counts["up"], "down": feedback_counts["down"]})
    return success_response()


# ---------------------------------------------------------------------------
# Response cache
# ---------------------------------------------------------------------------

@router.put("/cache/clear-all")
async def clear_all_cache(
    principal: Optional[Principal] = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    try:
        removed = await AiCacheRepository(db).clear_all(_cache_user(principal))
        await db.commit()
        logger.info("Cleared AI cache", extra={"removed": removed})
        return success_response(message="All AI response cache cleared successfully")
    except Exception:
        await db.rollback()
        logger.exception("Error clearing all cache data")
        return error_response("Failed to clear all cache data", status=500)


@router.put("/cache/clear/{project_id}")
async def clear_project_cache(
    project_id: str,
    principal: Optional[Principal] = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    try:
        removed = await AiCacheRepository(db).clear_for_project(project_id, _cache_user(principal))
        await db.commit()
        logger.info("Cleared AI cache for project", extra={"project_id": project_id, "removed": removed})
        return success_response(message="AI response cache cleared successfully for project")
    except Exception:
        await db.rollback()
        logger.exception("Error clearing cache data")
        return error_response("Failed to clear cache data", status=500)


@router.post("/cache/lookup")
async def lookup_cache(
    request: CacheLookupRequest,
    principal: Optional[Principal] = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Return the cached response for this prompt context, if any."""
    if not request.prompt:
        return error_response("Prompt is required", status=400)

    try:
        prompt_hash = generate_prompt_hash(
            request.prompt, _cache_user(principal), request.projectId, request.persona, request.tabType
        )
        entry = await AiCacheRepository(db).get_by_hash(prompt_hash)
        if entry is None:
            return {"success": True, "cached": False}
        return {
            "success": True,
            "cached": True,
            "response": entry.response,
            "cachedAt": entry.updated_at.isoformat(),
        }
    except Exception:
        logger.exception("Cache lookup failed")
        return error_response("Cache lookup failed", status=500)


@router.post("/cache/store")
async def store_cache(
    request: CacheStoreRequest,
    principal: Optional[Principal] = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    if not request.prompt or request.response is None:
        return error_response("Prompt and response are required", status=400)

    try:
        entry = await AiCacheRepository(db).store({
            "prompt": request.prompt,
            "response": request.response,
            "user_id": _cache_user(principal),
            "project_id": request.projectId,
            "persona": request.persona,
            "tab_type": request.tabType,
        })
        await db.commit()
        return success_response({"promptHash": entry.prompt_hash, "cachedAt": entry.updated_at.isoformat()})
    except Exception:
        await db.rollback()
        logger.exception("Failed to cache response")
        return error_response("Failed to cache response", status=500)


# ---------------------------------------------------------------------------
# Chat history
# ---------------------------------------------------------------------------

@router.post("/chat/save")
async def save_chat(request: ChatSaveRequest, db: AsyncSession = Depends(get_db)):
    """
    Store a chat snapshot. The project is created under userId when it
    does not exist yet; an existing project keeps its owner.
    """
    user_id = request.userId or DEFAULT_CACHE_USER
    if not request.projectId:
        return error_response("Project ID and user ID are required", status=400)

    try:
        projects = ProjectRepository(db)
        if await projects.get_by_id(request.projectId) is None:
            await projects.create_project(
                user_id=user_id,
                name=f"Project {request.projectId}",
                description="Auto-generated project for chat data",
                project_id=request.projectId,
            )

        chat = await ChatRepository(db).save_chat({
            "project_id": request.projectId,
            "user_id": user_id,
            "messages": [m.model_dump() for m in request.messages or []],
            "project_info": request.projectInfo,
            "persona": request.persona,
            "current_tab": request.currentTab,
            "tab_content": request.tabContent,
            "tab_content_generation": request.tabContentGeneration,
        })
        await db.commit()

        return success_response({
            "id": chat.id,
            "projectId": request.projectId,
            "userId": user_id,
            "messages": [m.model_dump() for m in request.messages or []],
            "projectInfo": request.projectInfo or {},
            "persona": request.persona or "",
            "currentTab": request.currentTab or "",
            "tabContent": request.tabContent or {},
            "tabContentGeneration": request.tabContentGeneration or {},
        })
    except Exception:
        await db.rollback()
        logger.exception("Error saving chat data")
        return error_response("Failed to save chat data", status=500)


@router.get("/chat/{project_id}")
async def load_chat(project_id: str, db: AsyncSession = Depends(get_db)):
    """Most recent chat snapshot for a project, or an empty one."""
    try:
        chat = await ChatRepository(db).latest_for_project(project_id)
        if chat is None:
            return success_response(empty_chat_data(project_id))
        return success_response(chat.to_dict())
    except Exception:
        logger.exception("Error loading chat data")
        return error_response("Failed to load chat data", status=500)


@router.put("/chat/clear/{project_id}")
async def clear_chat(project_id: str, db: AsyncSession = Depends(get_db)):
    try:
        await ChatRepository(db).clear_for_project(project_id)
        await db.commit()
        return success_response({"projectId": project_id}, message="Chat data cleared successfully")
    except Exception:
        await db.rollback()
        logger.exception("Error clearing chat data")
        return error_response("Failed to clear chat data", status=500)
