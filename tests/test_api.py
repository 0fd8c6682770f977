LONELY = {"userId": 1, "agentId": "grace", "message": "I feel so lonely today"}


def test_status_reports_local_responder(client):
    response = client.get("/status")

    assert response.status_code == 200
    data = response.json()
    assert data["llm"] == "local"
    assert data["cache"] == "fallback"
    assert data["database"] == "connected"


def test_user_lookup(client):
    assert client.get("/api/users/1").json()["name"] == "Margaret Smith"
    assert client.get("/api/users/email/sarah@example.com").json()["role"] == "caregiver"

    missing = client.get("/api/users/999")
    assert missing.status_code == 404
    assert missing.json()["message"] == "User not found"


def test_agent_message_and_history(client):
    response = client.post("/api/agents/message", json=LONELY)

    assert response.status_code == 200
    body = response.json()
    assert body["emotionalState"] == "lonely"
    assert body["agentCommunication"]["toAgent"] == "alex"

    history = client.get("/api/conversations/1").json()
    assert history[0]["message"] == LONELY["message"]
    assert history[0]["metadata"]["memoryTags"] == body["memoryTags"]

    communications = client.get("/api/agents/communications").json()
    assert communications[0]["fromAgent"] == "grace"
    assert communications[0]["context"]["priority"] == "high"


def test_agent_message_is_broadcast_to_every_client(client):
    with client.websocket_connect("/ws?agent=alex") as websocket:
        assert websocket.receive_json()["type"] == "connected"

        client.post("/api/agents/message", json=LONELY)

        frame = websocket.receive_json()
        assert frame == {
            "type": "agent_communication",
            "fromAgent": "grace",
            "toAgent": "alex",
            "message": "Margaret Smith is feeling lonely. Recommend increased family contact.",
            "priority": "high",
        }


def test_agent_message_errors(client):
    missing = client.post("/api/agents/message", json={**LONELY, "userId": 999})
    assert missing.status_code == 404
    assert missing.json() == {"message": "User not found: 999"}
    assert client.post("/api/agents/message", json={**LONELY, "agentId": "bob"}).status_code == 422
    assert client.post("/api/agents/message", json={**LONELY, "message": ""}).status_code == 422
    unknown = client.get("/api/conversations/agent/bob")
    assert unknown.status_code == 400
    assert unknown.json() == {"message": "Unknown agent: bob"}


def test_insights_and_contact_time(client):
    insights = client.get("/api/agents/insights/1")
    assert insights.status_code == 200
    assert insights.json()["wellbeingScore"] == 70
    missing = client.get("/api/agents/insights/999")
    assert missing.status_code == 404
    assert missing.json() == {"message": "User not found: 999"}

    contact = client.get("/api/agents/contact-time/1").json()
    assert "Sunday at 15:00" in contact["reason"]


def test_family_memories_and_quiz(client):
    family = client.get("/api/family/2").json()
    assert family[0]["relationshipType"] == "child"

    memories = client.get("/api/memories/1").json()
    assert memories[0]["title"] == "Tommy's Soccer Game"

    quiz = client.get("/api/memories/1/quiz").json()
    assert len(quiz["options"]) == 4


def test_care_notification_created_and_shared(client):
    response = client.post("/api/care-notifications", json={
        "elderlyUserId": 1,
        "notificationType": "medication",
        "title": "New prescription",
        "description": "Blood pressure medication starts Monday",
        "metadata": {"pharmacy": "Main Street"},
    })

    assert response.status_code == 201
    body = response.json()
    assert body["notifiedFamilyMembers"] == ["2"]
    assert body["metadata"] == {"pharmacy": "Main Street"}

    titles = [n["title"] for n in client.get("/api/care-notifications/1").json()]
    assert "New prescription" in titles


def test_care_appointment(client):
    response = client.post("/api/care-coordination/appointment", json={
        "elderlyUserId": 1,
        "title": "Eye exam",
        "description": "Annual eye exam",
        "scheduledTime": "2030-03-01T10:00:00",
        "assistanceNeeded": True,
    })

    assert response.status_code == 201
    body = response.json()
    assert body["urgencyLevel"] == "high"
    assert body["notificationType"] == "appointment"


def test_care_reminder(client):
    response = client.post("/api/care-coordination/reminder", json={
        "userId": 1,
        "reminderType": "appointment",
        "title": "Cardiology",
        "description": "Follow-up with Dr. Patel",
        "scheduledTime": "2030-03-05T14:00:00",
        "careCoordination": {"careProvider": "City Heart Clinic"},
    })

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Care reminder processed and family notified"
    assert body["reminder"]["priority"] == "high"
    assert body["careNotification"]["careProvider"] == "City Heart Clinic"
    assert body["careNotification"]["notifiedFamilyMembers"] == ["2"]


def test_pending_reminders_only_due_ones(client):
    client.post("/api/care-coordination/reminder", json={
        "userId": 1,
        "reminderType": "medication",
        "title": "Morning pills",
        "description": "Take with breakfast",
        "scheduledTime": "2000-01-01T08:00:00",
    })

    pending = client.get("/api/reminders/1/pending").json()
    assert [r["title"] for r in pending] == ["Morning pills"]

    assert client.patch(f"/api/reminders/{pending[0]['id']}/complete").status_code == 200
    assert client.get("/api/reminders/1/pending").json() == []
    assert len(client.get("/api/reminders/1").json()) == 2
    assert client.patch("/api/reminders/999/complete").status_code == 404


def test_picture_frame_lookup(client):
    assert client.get("/api/picture-frame/1").json()["deviceId"] == "frame_001"
    assert client.get("/api/picture-frame/2").status_code == 404


def test_family_photo_pushed_to_frames(client):
    assert len(client.get("/api/recent-photos/1").json()) == 2

    with client.websocket_connect("/ws") as websocket:
        websocket.receive_json()

        response = client.post("/api/family-photos", json={
            "pictureFrameId": 1,
            "senderUserId": 2,
            "photoUrl": "https://example.com/beach.jpg",
            "caption": "Beach day",
        })
        assert response.status_code == 201

        frame = websocket.receive_json()
        assert frame["type"] == "new_photo"
        assert frame["frameId"] == 1
        assert frame["photo"]["caption"] == "Beach day"

    assert len(client.get("/api/recent-photos/1").json()) == 3


def test_family_photo_unknown_frame(client):
    response = client.post("/api/family-photos", json={
        "pictureFrameId": 42,
        "senderUserId": 2,
        "photoUrl": "https://example.com/x.jpg",
    })
    assert response.status_code == 404


def test_history_by_agent_carries_metadata(client):
    client.post("/api/agents/message", json=LONELY)

    history = client.get("/api/conversations/agent/grace").json()

    assert history[0]["agentId"] == "grace"
    assert history[0]["metadata"]["suggestedActions"] == ["call_family", "view_photos", "share_memories"]
