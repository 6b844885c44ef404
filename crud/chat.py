"""
ChatRepository: chat histories with their messages and tab state
"""

from datetime import datetime, timezone
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from database_models import ChatHistory, ChatMessage, TabContent, TabContentGeneration


def _parse_timestamp(value) -> Optional[datetime]:
    """ISO-8601 string (a trailing Z is accepted) to naive UTC datetime."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def empty_chat_data(project_id: str) -> dict:
    """Shape returned when a project has no saved chat yet."""
    return {
        "projectId": project_id,
        "userId": "",
        "messages": [],
        "projectInfo": {},
        "persona": "",
        "currentTab": "",
        "tabContent": {},
        "tabContentGeneration": {},
    }


class ChatRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def latest_for_project(self, project_id: str) -> Optional[ChatHistory]:
        """Most recently updated chat history, children eagerly loaded."""
        result = await self.db.execute(
            select(ChatHistory)
            .where(ChatHistory.project_id == project_id)
            .order_by(ChatHistory.updated_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def save_chat(self, chat_data: dict) -> ChatHistory:
        """
        Write one chat history row plus its messages, tab contents and
        generation states. Nothing is committed here; the request session
        commits or rolls back as a unit.

        Args:
            chat_data: project_id and user_id are required; messages,
                project_info, persona, current_tab, tab_content and
                tab_content_generation are optional
        """
        chat = ChatHistory(
            project_id=chat_data["project_id"],
            user_id=chat_data["user_id"],
            persona=chat_data.get("persona"),
            current_tab=chat_data.get("current_tab"),
            project_info=chat_data.get("project_info"),
        )
        self.db.add(chat)
        await self.db.flush()

        for message in chat_data.get("messages") or []:
            self.db.add(ChatMessage(
                chat_id=chat.id,
                text=message["text"],
                sender=message["sender"],
                persona=message.get("persona"),
                timestamp=_parse_timestamp(message.get("timestamp")) or datetime.utcnow(),
            ))

        for tab_type, content in (chat_data.get("tab_content") or {}).items():
            self.db.add(TabContent(chat_id=chat.id, tab_type=tab_type, content=content))

        for tab_type, status in (chat_data.get("tab_content_generation") or {}).items():
            self.db.add(TabContentGeneration(chat_id=chat.id, tab_type=tab_type, status=status))

        await self.db.flush()
        return chat

    async def clear_for_project(self, project_id: str) -> int:
        """Delete all chat histories of a project; children cascade."""
        result = await self.db.execute(
            delete(ChatHistory).where(ChatHistory.project_id == project_id)
        )
        return result.rowcount or 0
