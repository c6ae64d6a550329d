"""Chat router — general tutor chat and course-document (RAG) chat."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from unilearn.config import settings
from unilearn.database import get_db
from unilearn.dependencies import get_rag_service, get_tutor_service
from unilearn.middleware.auth import get_current_user
from unilearn.middleware.rate_limit import limiter
from unilearn.models.chat_message import ChatMessage
from unilearn.models.user import User
from unilearn.routers.courses import ensure_course_access, get_course_or_404
from unilearn.schemas.chat import (
    ChatHistoryResponse,
    ChatMessageResponse,
    ChatRequest,
    ChatResponse,
    RagChatRequest,
    RagChatResponse,
)
from unilearn.services.answering import RagService
from unilearn.services.tutor import TutorService

router = APIRouter(prefix="/api/chat", tags=["chat"])

HISTORY_LIMIT = 50


def _message_to_response(message: ChatMessage) -> ChatMessageResponse:
    return ChatMessageResponse(
        id=message.id,
        user_id=message.user_id,
        content=message.content,
        type=message.type,
        course_id=message.course_id,
        created_at=message.created_at.isoformat(),
    )


def _save_message(db: Session, user_id: str, content: str, type_: str, course_id: str | None) -> ChatMessage:
    message = ChatMessage(
        id=str(uuid.uuid4()),
        user_id=user_id,
        content=content,
        type=type_,
        course_id=course_id,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


@router.get("/messages", response_model=ChatHistoryResponse)
def list_messages(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """The caller's latest messages, oldest first."""
    latest = (
        db.query(ChatMessage)
        .filter(ChatMessage.user_id == current_user.id)
        .order_by(ChatMessage.created_at.desc())
        .limit(HISTORY_LIMIT)
        .all()
    )
    return ChatHistoryResponse(messages=[_message_to_response(m) for m in reversed(latest)])


@router.post("/message", response_model=ChatResponse)
@limiter.limit(settings.CHAT_RATE_LIMIT)
async def send_message(
    request: Request,
    req: ChatRequest,
    db: Session = Depends(get_db),
    tutor: TutorService = Depends(get_tutor_service),
    current_user: User = Depends(get_current_user),
):
    """General tutoring chat — no document retrieval."""
    if not req.content.strip():
        raise HTTPException(status_code=400, detail="Message content is required")

    user_message = _save_message(db, current_user.id, req.content, "user", req.course_id)
    reply = await tutor.reply(req.content)
    ai_message = _save_message(db, current_user.id, reply, "ai", req.course_id)

    return ChatResponse(
        user_message=_message_to_response(user_message),
        ai_message=_message_to_response(ai_message),
    )


@router.post("/rag", response_model=RagChatResponse)
@limiter.limit(settings.CHAT_RATE_LIMIT)
async def send_rag_message(
    request: Request,
    req: RagChatRequest,
    db: Session = Depends(get_db),
    rag: RagService = Depends(get_rag_service),
    current_user: User = Depends(get_current_user),
):
    """Answer from the course's uploaded documents."""
    if not req.message.strip() or not req.course_id.strip():
        raise HTTPException(status_code=400, detail="Query and courseId are required")

    course = get_course_or_404(db, req.course_id)
    ensure_course_access(db, course, current_user)

    answer = await rag.answer(req.message, req.course_id, current_user.id)

    user_message = _save_message(db, current_user.id, req.message, "user", req.course_id)
    ai_message = _save_message(db, current_user.id, answer, "ai", req.course_id)

    return RagChatResponse(
        user_message=_message_to_response(user_message),
        ai_message=_message_to_response(ai_message),
        is_rag_response=True,
    )
