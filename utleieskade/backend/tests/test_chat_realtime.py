# backend/tests/test_chat_realtime.py
from __future__ import annotations

import pytest
from starlette.websockets import WebSocketDisconnect

from conftest import create_case, make_account


def test_send_message_creates_single_conversation(client, tenant, inspector):
    for text in ("Hello", "Are you there?"):
        r = client.post(
            "/chats/send-message", json={"receiverId": inspector.id, "messageText": text}, headers=tenant.headers
        )
        assert r.status_code == 201, r.text

    chats = client.get("/chats/fetch-chats", headers=inspector.headers).json()["data"]
    assert len(chats) == 1
    assert chats[0]["lastMessage"] == "Are you there?"
    assert chats[0]["otherUser"]["userId"] == tenant.id

    # reverse direction reuses the same pair
    r = client.post("/chats/send-message", json={"receiverId": tenant.id, "messageText": "Yes"}, headers=inspector.headers)
    assert r.json()["data"]["conversationId"] == chats[0]["conversationId"]


def test_get_messages_marks_received_as_read(client, tenant, inspector):
    conv_id = client.post(
        "/chats/send-message", json={"receiverId": inspector.id, "messageText": "Ping"}, headers=tenant.headers
    ).json()["data"]["conversationId"]

    msgs = client.get(f"/chats/get-messages/{conv_id}", headers=inspector.headers).json()["data"]
    assert [m["messageText"] for m in msgs] == ["Ping"]

    again = client.get(f"/chats/get-messages/{conv_id}", headers=tenant.headers).json()["data"]
    assert again[0]["isRead"] is True

    outsider = make_account("tenant")
    assert client.get(f"/chats/get-messages/{conv_id}", headers=outsider.headers).status_code == 403


def test_cannot_message_yourself_or_send_empty(client, tenant):
    r = client.post("/chats/send-message", json={"receiverId": tenant.id, "messageText": "me"}, headers=tenant.headers)
    assert r.status_code == 400
    r = client.post("/chats/send-message", json={"receiverId": "USER-x", "messageText": "  "}, headers=tenant.headers)
    assert r.status_code == 400


def test_admin_communication_history(client, admin, tenant):
    client.post("/chats/send-message", json={"receiverId": tenant.id, "messageText": "Welcome"}, headers=admin.headers)
    data = client.get(f"/chats/get-communication-history/{tenant.id}", headers=admin.headers).json()["data"]
    assert data["user"]["userId"] == tenant.id
    assert [m["messageText"] for m in data["messages"]] == ["Welcome"]

    users = client.get("/chats/get-chattable-users", headers=admin.headers).json()["data"]
    assert all(u["userType"] in ("tenant", "landlord", "inspector") for u in users)


def test_case_conversation_for_assigned_inspector(client, tenant, inspector):
    case_id = create_case(client, tenant)["caseId"]
    assert client.get(f"/chats/case/{case_id}/conversation", headers=inspector.headers).status_code == 403

    client.post(f"/inspectors/cases/{case_id}/claim", headers=inspector.headers)
    data = client.get(f"/chats/case/{case_id}/conversation", headers=inspector.headers).json()["data"]
    assert data["conversation"]["otherUser"]["userId"] == tenant.id
    assert data["case"]["caseId"] == case_id


def test_socket_rejects_missing_or_bad_token(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws"):
            pass
    assert exc.value.code == 1008

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws?token=not-a-jwt"):
            pass


def test_socket_send_message_and_mark_read(client, tenant, inspector):
    with client.websocket_connect(f"/ws?token={tenant.token}") as ws:
        ws.send_json({"event": "ping"})
        assert ws.receive_json() == {"event": "pong", "data": None}

        ws.send_json({"event": "sendMessage", "data": {"receiverId": inspector.id, "messageText": "Over the socket"}})
        sent = ws.receive_json()
        assert sent["event"] == "messageSent"
        assert sent["data"]["messageText"] == "Over the socket"
        conv_id = sent["data"]["conversationId"]

    with client.websocket_connect("/ws", headers={"Authorization": f"Bearer {inspector.token}"}) as ws:
        ws.send_json({"event": "markAsRead", "data": {"conversationId": conv_id}})
        read = ws.receive_json()
        assert read["event"] == "messagesRead"
        assert read["data"] == {"conversationId": conv_id, "readerId": inspector.id, "count": 1}


def test_socket_reports_errors_without_closing(client, tenant):
    with client.websocket_connect(f"/ws?token={tenant.token}") as ws:
        ws.send_text("{not json")
        assert ws.receive_json()["event"] == "error"

        ws.send_json({"event": "dance"})
        assert ws.receive_json()["data"]["message"] == "Unknown event: dance"

        ws.send_json({"event": "sendMessage", "data": {"receiverId": "", "messageText": ""}})
        assert ws.receive_json()["event"] == "error"

        ws.send_json({"event": "ping"})
        assert ws.receive_json()["event"] == "pong"
