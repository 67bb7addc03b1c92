# backend/app/services/chat_service.py
"""
Direct messaging. REST handlers and the websocket hub both call these
functions; neither transport has chat logic of its own.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..domain.clock import utcnow
from ..domain.ids import generate_unique_id
from ..domain.statuses import CHATTABLE_TYPES
from ..models import Case, Conversation, Message, User

log = logging.getLogger("utleieskade.chat")


def ordered_pair(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a <= b else (b, a)


def find_conversation(db: Session, a: str, b: str) -> Optional[Conversation]:
    one, two = ordered_pair(a, b)
    return db.scalar(select(Conversation).where(Conversation.user_one_id == one, Conversation.user_two_id == two))


def find_or_create_conversation(db: Session, a: str, b: str) -> Conversation:
    if a == b:
        raise HTTPException(status_code=400, detail="You cannot start a conversation with yourself")
    row = find_conversation(db, a, b)
    if row is not None:
        return row
    if db.get(User, b) is None or db.get(User, a) is None:
        raise HTTPException(status_code=404, detail="User not found")

    one, two = ordered_pair(a, b)
    row = Conversation(id=generate_unique_id("CONV"), user_one_id=one, user_two_id=two, created_at=utcnow())
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # concurrent creator won; the pair constraint guarantees one row
        db.rollback()
        row = find_conversation(db, a, b)
        if row is None:
            raise
        return row
    db.refresh(row)
    return row


def user_conversations(db: Session, user_id: str) -> list[Conversation]:
    return list(
        db.scalars(
            select(Conversation)
            .where(or_(Conversation.user_one_id == user_id, Conversation.user_two_id == user_id))
            .order_by(Conversation.last_message_at.desc(), Conversation.created_at.desc())
        ).all()
    )


def must_get_conversation_for(db: Session, conversation_id: str, user_id: str, *, allow_admin: bool = False) -> Conversation:
    row = db.get(Conversation, conversation_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    if user_id not in (row.user_one_id, row.user_two_id) and not allow_admin:
        raise HTTPException(status_code=403, detail="You are not a participant in this conversation")
    return row


def send_message(db: Session, sender_id: str, receiver_id: str, text: str) -> Message:
    text = (text or "").strip()
    if not receiver_id or not text:
        raise HTTPException(status_code=400, detail="Receiver ID and message text are required")

    conv = find_or_create_conversation(db, sender_id, receiver_id)
    now = utcnow()
    msg = Message(
        id=generate_unique_id("MSG"),
        conversation_id=conv.id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        text=text,
        sent_at=now,
    )
    db.add(msg)
    conv.last_message = text
    conv.last_message_at = now
    db.commit()
    db.refresh(msg)
    log.info("message sent", extra={"conversation_id": conv.id, "user_id": sender_id})
    return msg


def messages(db: Session, conversation_id: str) -> list[Message]:
    return list(
        db.scalars(
            select(Message).where(Message.conversation_id == conversation_id).order_by(Message.sent_at, Message.id)
        ).all()
    )


def mark_as_read(db: Session, conversation_id: str, reader_id: str) -> int:
    res = db.execute(
        update(Message)
        .where(
            Message.conversation_id == conversation_id,
            Message.receiver_id == reader_id,
            Message.is_read.is_(False),
        )
        .values(is_read=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return int(res.rowcount or 0)


def chattable_users(db: Session, exclude_id: str, search: Optional[str] = None) -> list[User]:
    stmt = select(User).where(User.id != exclude_id, User.user_type.in_(CHATTABLE_TYPES))
    if search:
        like = f"%{search.strip()}%"
        stmt = stmt.where(or_(User.first_name.ilike(like), User.last_name.ilike(like), User.email.ilike(like)))
    return list(db.scalars(stmt.order_by(User.first_name.asc())).all())


def case_conversation(db: Session, case_id: str, inspector_id: str) -> tuple[Conversation, Case]:
    case = db.get(Case, case_id)
    if case is None:
        raise HTTPException(status_code=404, detail="Case not found.")
    if case.inspector_id != inspector_id:
        raise HTTPException(status_code=403, detail="You are not assigned to this case")
    return find_or_create_conversation(db, inspector_id, case.tenant_id), case
