from family_companion.main import managers


def test_connected_frame_and_ping(client):
    with client.websocket_connect("/ws?agent=grace") as websocket:
        hello = websocket.receive_json()
        assert hello["type"] == "connected"
        assert len(hello["connectionId"]) == 8

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}

    assert client.get("/connections").json()["total_active_connections"] == 0


def test_user_message_reply_and_note_to_other_clients(client):
    with client.websocket_connect("/ws?agent=grace") as grace, \
            client.websocket_connect("/ws?agent=alex") as alex:
        grace.receive_json()
        alex.receive_json()

        grace.send_json({"type": "user_message", "userId": 1, "agentId": "grace",
                         "message": "I feel so lonely today"})

        reply = grace.receive_json()
        assert reply["type"] == "agent_response"
        assert reply["response"]["emotionalState"] == "lonely"
        assert reply["response"]["agentCommunication"]["priority"] == "high"

        note = alex.receive_json()
        assert note["type"] == "agent_communication"
        assert note["fromAgent"] == "grace"
        assert note["toAgent"] == "alex"

        # the sender does not get its own note back
        grace.send_json({"type": "ping"})
        assert grace.receive_json() == {"type": "pong"}


def test_bad_frames_get_error_replies(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.receive_json()

        websocket.send_text("{not json")
        assert websocket.receive_json() == {"type": "error", "message": "Failed to process message"}

        websocket.send_json({"type": "user_message", "userId": 1, "agentId": "bob", "message": "hi"})
        assert websocket.receive_json() == {"type": "error", "message": "Failed to process message"}

        websocket.send_json({"type": "user_message", "userId": 999, "agentId": "grace", "message": "hi"})
        assert websocket.receive_json() == {"type": "error", "message": "Failed to process message"}

        websocket.send_json({"type": "dance"})
        assert websocket.receive_json() == {"type": "error", "message": "Unknown message type: dance"}

        # still usable after errors
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}


def test_keepalive_sent_when_client_is_quiet(client):
    managers['websocket'].receive_timeout = 0.05

    with client.websocket_connect("/ws") as websocket:
        websocket.receive_json()
        assert websocket.receive_json() == {"type": "keepalive"}

        websocket.send_json({"type": "ping"})
        frame = websocket.receive_json()
        while frame == {"type": "keepalive"}:
            frame = websocket.receive_json()
        assert frame == {"type": "pong"}
