"""Pydantic v2 schemas for the message pipeline and assistant APIs."""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class MessageRequest(BaseModel):
    clinic_id: Optional[UUID] = None
    text: str = Field(..., min_length=1, max_length=4000)


class MessageResponse(BaseModel):
    is_command: bool
    success: bool
    reply_text: str
    parsed: Optional[Dict[str, Any]] = None
    record_id: Optional[UUID] = None
    patient_is_new: Optional[bool] = None


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=8000)


class AssistantRequest(BaseModel):
    clinic_id: Optional[UUID] = None
    messages: List[ChatTurn] = Field(..., min_length=1)


class AssistantResponse(BaseModel):
    answer: str
