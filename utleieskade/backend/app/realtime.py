# backend/app/realtime.py
"""
Websocket chat channel.

Clients connect to /ws with the same bearer token the REST API uses, either as
?token=... or an Authorization header, and join a room keyed by their user id.

  in:  {"event": "sendMessage", "data": {"receiverId", "messageText"}}
       {"event": "markAsRead",  "data": {"conversationId"}}
  out: receiveMessage (receiver room), messageSent (sender), messagesRead (both
       participants), error (sender only)
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections import defaultdict
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from .auth import Principal, parse_bearer, principal_from_token
from .db import SessionLocal
from .middleware.request_id import bind_request_id, new_request_id
from .serializers import message_out
from .services import chat_service

log = logging.getLogger("utleieskade.realtime")

router = APIRouter(tags=["realtime"])


class ChatHub:
    def __init__(self) -> None:
        self._rooms: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def join(self, user_id: str, ws: WebSocket) -> None:
        async with self._lock:
            self._rooms[user_id].add(ws)

    async def leave(self, user_id: str, ws: WebSocket) -> None:
        async with self._lock:
            room = self._rooms.get(user_id)
            if room is not None:
                room.discard(ws)
                if not room:
                    self._rooms.pop(user_id, None)

    def online(self, user_id: str) -> bool:
        return bool(self._rooms.get(user_id))

    async def emit(self, user_id: str, event: str, data: Any) -> int:
        """Sends to every socket in the user's room; dead sockets are dropped."""
        async with self._lock:
            targets = list(self._rooms.get(user_id, ()))
        sent = 0
        for ws in targets:
            try:
                await ws.send_json({"event": event, "data": data})
                sent += 1
            except (RuntimeError, WebSocketDisconnect):
                await self.leave(user_id, ws)
        return sent


hub = ChatHub()


def _authenticate(token: str) -> Principal:
    with SessionLocal() as db:
        return principal_from_token(db, token)


def _send(sender_id: str, receiver_id: str, text: str) -> dict[str, Any]:
    with SessionLocal() as db:
        return message_out(chat_service.send_message(db, sender_id, receiver_id, text))


def _mark_read(conversation_id: str, reader_id: str) -> dict[str, Any]:
    with SessionLocal() as db:
        conv = chat_service.must_get_conversation_for(db, conversation_id, reader_id)
        count = chat_service.mark_as_read(db, conv.id, reader_id)
        return {
            "conversationId": conv.id,
            "readerId": reader_id,
            "count": count,
            "participants": [conv.user_one_id, conv.user_two_id],
        }


def _token_from(ws: WebSocket) -> Optional[str]:
    token = ws.query_params.get("token")
    if token:
        return token
    header = ws.headers.get("authorization")
    return parse_bearer(header) if header else None


async def _handle(p: Principal, ws: WebSocket, event: str, data: dict[str, Any]) -> None:
    if event == "sendMessage":
        receiver_id = str(data.get("receiverId") or "")
        msg = await run_in_threadpool(_send, p.user_id, receiver_id, str(data.get("messageText") or ""))
        await hub.emit(receiver_id, "receiveMessage", msg)
        await ws.send_json({"event": "messageSent", "data": msg})
    elif event == "markAsRead":
        out = await run_in_threadpool(_mark_read, str(data.get("conversationId") or ""), p.user_id)
        participants = out.pop("participants")
        for uid in participants:
            await hub.emit(uid, "messagesRead", out)
    elif event == "ping":
        await ws.send_json({"event": "pong", "data": None})
    else:
        await ws.send_json({"event": "error", "data": {"message": f"Unknown event: {event}"}})


@router.websocket("/ws")
async def chat_socket(ws: WebSocket):
    try:
        token = _token_from(ws)
        if not token:
            raise HTTPException(status_code=401, detail="Authentication error: token missing")
        p = await run_in_threadpool(_authenticate, token)
    except HTTPException as e:
        await ws.close(code=1008, reason=str(e.detail))
        return

    with bind_request_id(new_request_id("ws-")):
        await _session(p, ws)


async def _session(p: Principal, ws: WebSocket) -> None:
    await ws.accept()
    await hub.join(p.user_id, ws)
    log.info("socket connected", extra={"user_id": p.user_id})
    try:
        while True:
            raw = await ws.receive_text()
            try:
                frame = json.loads(raw)
            except ValueError:
                frame = None
            if not isinstance(frame, dict):
                await ws.send_json({"event": "error", "data": {"message": "Invalid frame"}})
                continue
            event = str(frame.get("event") or frame.get("type") or "")
            data = frame.get("data") if isinstance(frame.get("data"), dict) else {}
            try:
                await _handle(p, ws, event, data)
            except HTTPException as e:
                await ws.send_json({"event": "error", "data": {"message": str(e.detail)}})
    except WebSocketDisconnect:
        pass
    finally:
        await hub.leave(p.user_id, ws)
        log.info("socket disconnected", extra={"user_id": p.user_id})
