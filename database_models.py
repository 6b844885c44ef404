import uuid
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


class User(Base):
    """
    Registered account. The password hash never leaves this table.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    name = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "createdAt": _iso(self.created_at),
        }


class Project(Base):
    """
    Project owned by a single user. Ownership is checked per request by the
    routers, not enforced by the store.
    """
    __tablename__ = "projects"

    id = Column(String, primary_key=True)
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    diagrams = relationship("SavedDiagram", cascade="all, delete-orphan", passive_deletes=True)
    reviews = relationship("DashboardReview", cascade="all, delete-orphan", passive_deletes=True)
    widgets = relationship("DashboardWidget", cascade="all, delete-orphan", passive_deletes=True)
    chats = relationship("ChatHistory", cascade="all, delete-orphan", passive_deletes=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "description": self.description,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class SavedDiagram(Base):
    __tablename__ = "saved_diagrams"

    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    diagram_code = Column(Text, nullable=False)
    diagram_type = Column(String, nullable=True)
    context = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "userId": self.user_id,
            "title": self.title,
            "description": self.description,
            "diagramCode": self.diagram_code,
            "diagramType": self.diagram_type,
            "context": self.context,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Feedback(Base):
    """Free-form feedback; everything but the message is optional."""
    __tablename__ = "feedback"

    id = Column(String(36), primary_key=True, default=_uuid)
    message = Column(Text, nullable=False)
    persona = Column(String, nullable=True)
    tab_type = Column(String, nullable=True)
    project_id = Column(String, nullable=True)
    user_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "message": self.message,
            "persona": self.persona,
            "tabType": self.tab_type,
            "projectId": self.project_id,
            "userId": self.user_id,
            "createdAt": _iso(self.created_at),
        }


class DashboardReview(Base):
    __tablename__ = "dashboard_reviews"

    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(String, nullable=False)
    text = Column(Text, nullable=False)
    rating = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "authorId": self.author_id,
            "text": self.text,
            "rating": self.rating,
            "createdAt": _iso(self.created_at),
        }


class DashboardWidget(Base):
    __tablename__ = "dashboard_widgets"

    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=True)
    tab_type = Column(String, nullable=False)
    widget_type = Column(String, nullable=False)
    title = Column(String, nullable=True)
    order = Column(Integer, default=0, nullable=False)
    config = Column(JSON, nullable=True)
    data = Column(JSON, nullable=True)
    raw_content = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "userId": self.user_id,
            "tabType": self.tab_type,
            "widgetType": self.widget_type,
            "title": self.title,
            "order": self.order,
            "config": self.config,
            "data": self.data,
            "rawContent": self.raw_content,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class AiResponseCache(Base):
    """
    Cached AI response, keyed by a hash of the prompt and its context
    (user, project, persona, tab).
    """
    __tablename__ = "ai_response_cache"

    id = Column(String(36), primary_key=True, default=_uuid)
    prompt_hash = Column(String(64), unique=True, nullable=False, index=True)
    prompt = Column(Text, nullable=False)
    response = Column(Text, nullable=False)
    user_id = Column(String, nullable=False, index=True)
    project_id = Column(String, nullable=True, index=True)
    persona = Column(String, nullable=True)
    tab_type = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ChatHistory(Base):
    __tablename__ = "chat_histories"

    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False)
    persona = Column(String, nullable=True)
    current_tab = Column(String, nullable=True)
    project_info = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    messages = relationship(
        "ChatMessage",
        order_by="ChatMessage.timestamp",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    tab_contents = relationship("TabContent", cascade="all, delete-orphan", passive_deletes=True, lazy="selectin")
    tab_generations = relationship(
        "TabContentGeneration", cascade="all, delete-orphan", passive_deletes=True, lazy="selectin"
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "userId": self.user_id,
            "messages": [m.to_dict() for m in self.messages],
            "projectInfo": self.project_info or {},
            "persona": self.persona,
            "currentTab": self.current_tab,
            "tabContent": {t.tab_type: t.content for t in self.tab_contents},
            "tabContentGeneration": {g.tab_type: g.status for g in self.tab_generations},
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True, default=_uuid)
    chat_id = Column(String(36), ForeignKey("chat_histories.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    sender = Column(String, nullable=False)
    persona = Column(String, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "sender": self.sender,
            "persona": self.persona,
            "timestamp": _iso(self.timestamp),
        }


class TabContent(Base):
    __tablename__ = "tab_contents"

    id = Column(String(36), primary_key=True, default=_uuid)
    chat_id = Column(String(36), ForeignKey("chat_histories.id", ondelete="CASCADE"), nullable=False, index=True)
    tab_type = Column(String, nullable=False)
    content = Column(Text, nullable=False)


class TabContentGeneration(Base):
    __tablename__ = "tab_content_generations"

    id = Column(String(36), primary_key=True, default=_uuid)
    chat_id = Column(String(36), ForeignKey("chat_histories.id", ondelete="CASCADE"), nullable=False, index=True)
    tab_type = Column(String, nullable=False)
    status = Column(String, nullable=False)
