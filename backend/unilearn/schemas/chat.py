"""Chat request/response schemas."""

from typing import Optional
from pydantic import Field

from unilearn.schemas.common import APIModel


class ChatMessageResponse(APIModel):
    id: str
    user_id: str
    content: str
    type: str  # user | ai
    course_id: Optional[str] = None
    created_at: str


class ChatHistoryResponse(APIModel):
    messages: list[ChatMessageResponse]


class ChatRequest(APIModel):
    content: str
    course_id: Optional[str] = None


class ChatResponse(APIModel):
    user_message: ChatMessageResponse
    ai_message: ChatMessageResponse


class RagChatRequest(APIModel):
    message: str
    course_id: str


class RagChatResponse(APIModel):
    user_message: ChatMessageResponse
    ai_message: ChatMessageResponse
    is_rag_response: bool = Field(default=True, alias="isRAGResponse")
