"""Pydantic schemas for research sessions and messages."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SessionCreate(BaseModel):
    title: Optional[str] = None
    industry: Optional[str] = None
    goal: Optional[str] = None


class SessionUpdate(BaseModel):
    """Fields a client may change on a session; anything else is ignored."""

    title: Optional[str] = None
    phase: Optional[str] = None
    phase_progress: Optional[int] = Field(None, ge=0, le=100)
    industry: Optional[str] = None
    selected_niche: Optional[str] = None
    selected_uvz: Optional[str] = None
    is_archived: Optional[bool] = None
    is_starred: Optional[bool] = None


class SessionResponse(BaseModel):
    id: str
    user_id: str
    title: str
    phase: str
    phase_progress: int
    industry: Optional[str] = None
    selected_niche: Optional[str] = None
    selected_uvz: Optional[str] = None
    message_count: int
    tool_calls_count: int
    is_archived: bool
    is_starred: bool
    created_at: datetime
    updated_at: datetime
    last_message_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MessageCreate(BaseModel):
    role: Optional[str] = None
    content: Optional[str] = None
    tool_calls: Optional[Any] = None
    tool_results: Optional[Any] = None


class MessageResponse(BaseModel):
    id: str
    session_id: str
    user_id: str
    role: str
    content: str
    tool_calls: Optional[Any] = None
    tool_results: Optional[Any] = None
    tokens_used: Optional[int] = None
    model_used: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
