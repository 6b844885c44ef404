"""
AiCacheRepository: prompt-hash keyed cache of AI responses
"""

import hashlib
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from database_models import AiResponseCache

# Owner used by clients that call the cache routes without a session
DEFAULT_CACHE_USER = "default-user"


def generate_prompt_hash(
    prompt: str,
    user_id: str,
    project_id: Optional[str] = None,
    persona: Optional[str] = None,
    tab_type: Optional[str] = None,
) -> str:
    """sha256 over prompt|user|project|persona|tab, missing parts as ''"""
    context = f"{prompt}|{user_id}|{project_id or ''}|{persona or ''}|{tab_type or ''}"
    return hashlib.sha256(context.encode("utf-8")).hexdigest()


class AiCacheRepository:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_hash(self, prompt_hash: str) -> Optional[AiResponseCache]:
        result = await self.db.execute(
            select(AiResponseCache).where(AiResponseCache.prompt_hash == prompt_hash)
        )
        return result.scalar_one_or_none()

    async def store(self, entry_data: dict) -> AiResponseCache:
        """
        Insert or update the entry for entry_data's prompt context.

        Args:
            entry_data: prompt, response and user_id are required;
                project_id, persona and tab_type are optional
        """
        prompt_hash = generate_prompt_hash(
            entry_data["prompt"],
            entry_data["user_id"],
            entry_data.get("project_id"),
            entry_data.get("persona"),
            entry_data.get("tab_type"),
        )
        entry = await self.get_by_hash(prompt_hash)
        if entry is None:
            entry = AiResponseCache(prompt_hash=prompt_hash)
            self.db.add(entry)

        entry.prompt = entry_data["prompt"]
        entry.response = entry_data["response"]
        entry.user_id = entry_data["user_id"]
        entry.project_id = entry_data.get("project_id")
        entry.persona = entry_data.get("persona")
        entry.tab_type = entry_data.get("tab_type")

        await self.db.flush()
        await self.db.refresh(entry)
        return entry

    async def clear_for_project(self, project_id: str, user_id: str) -> int:
        result = await self.db.execute(
            delete(AiResponseCache).where(
                AiResponseCache.project_id == project_id,
                AiResponseCache.user_id == user_id,
            )
        )
        return result.rowcount or 0

    async def clear_all(self, user_id: str) -> int:
        result = await self.db.execute(
            delete(AiResponseCache).where(AiResponseCache.user_id == user_id)
        )
        return result.rowcount or 0
