# backend/app/routers/chats.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_admin, require_inspector
from ..db import get_db
from ..realtime import hub
from ..responses import envelope
from ..schemas import FindOrCreateIn, SendMessageIn
from ..serializers import case_summary, conversation_out, message_out, user_brief
from ..services import chat_service
from ..services.ownership import must_get_user

router = APIRouter(prefix="/chats", tags=["chats"])


@router.get("/fetch-chats")
def fetch_chats(p: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    rows = chat_service.user_conversations(db, p.user_id)
    return envelope("Chats fetched successfully", [conversation_out(c, viewer_id=p.user_id) for c in rows])


@router.get("/get-messages/{conversation_id}")
def get_messages(
    conversation_id: str,
    background: BackgroundTasks,
    p: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    conv = chat_service.must_get_conversation_for(db, conversation_id, p.user_id, allow_admin=p.is_admin)
    if p.user_id in (conv.user_one_id, conv.user_two_id):
        if chat_service.mark_as_read(db, conv.id, p.user_id):
            event = {"conversationId": conv.id, "readerId": p.user_id}
            background.add_task(hub.emit, conv.user_one_id, "messagesRead", event)
            background.add_task(hub.emit, conv.user_two_id, "messagesRead", event)
    rows = chat_service.messages(db, conv.id)
    return envelope("Messages fetched successfully", [message_out(m) for m in rows])


@router.post("/send-message", status_code=201)
def send_message(
    payload: SendMessageIn,
    background: BackgroundTasks,
    p: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    msg = message_out(chat_service.send_message(db, p.user_id, payload.receiver_id, payload.message_text))
    background.add_task(hub.emit, payload.receiver_id, "receiveMessage", msg)
    return envelope("Message sent successfully", msg)


@router.post("/find-or-create")
def find_or_create(payload: FindOrCreateIn, p: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    conv = chat_service.find_or_create_conversation(db, p.user_id, payload.user_id)
    return envelope("Conversation ready", conversation_out(conv, viewer_id=p.user_id))


@router.get("/get-admin-chats")
def admin_chats(p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    rows = chat_service.user_conversations(db, p.user_id)
    return envelope("Admin chats fetched successfully", [conversation_out(c) for c in rows])


@router.get("/get-chattable-users")
def chattable_users(
    search: Optional[str] = Query(default=None),
    p: Principal = Depends(require_admin),
    db: Session = Depends(get_db),
):
    rows = chat_service.chattable_users(db, p.user_id, search)
    return envelope("Users fetched successfully", [user_brief(u) for u in rows])


@router.get("/get-communication-history/{user_id}")
def communication_history(user_id: str, p: Principal = Depends(require_admin), db: Session = Depends(get_db)):
    other = must_get_user(db, user_id=user_id)
    conv = chat_service.find_conversation(db, p.user_id, other.id)
    return envelope(
        "Communication history fetched successfully",
        {
            "user": user_brief(other),
            "conversation": conversation_out(conv) if conv else None,
            "messages": [message_out(m) for m in chat_service.messages(db, conv.id)] if conv else [],
        },
    )


@router.get("/case/{case_id}/conversation")
def case_conversation(case_id: str, p: Principal = Depends(require_inspector), db: Session = Depends(get_db)):
    conv, case = chat_service.case_conversation(db, case_id, p.user_id)
    return envelope(
        "Case conversation fetched successfully",
        {
            "conversation": conversation_out(conv, viewer_id=p.user_id),
            "case": case_summary(case),
            "messages": [message_out(m) for m in chat_service.messages(db, conv.id)],
        },
    )
