"""Messaging routes."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..auth.models import User
from ..database.base import get_db
from ..dependencies import get_current_user
from .service import get_messages, list_conversations, send_message, serialize_message

router = APIRouter(prefix="/api/messages", tags=["messages"])


class MessageCreateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


@router.get("/conversations")
def conversations(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    context: str | None = None,
    status: str | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return list_conversations(db, user, page=page, limit=limit, context=context, status=status)


@router.get("/conversations/{conversation_id}/messages")
def conversation_messages(
    conversation_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return get_messages(db, user, conversation_id)


@router.post("/conversations/{conversation_id}/messages", status_code=201)
def post_message(
    conversation_id: str,
    body: MessageCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    message = send_message(db, user, conversation_id, body.content)
    db.commit()
    return serialize_message(message)
