from datetime import datetime, timedelta

import pytest

from family_companion.agents.local_agent import LocalResponder
from family_companion.errors import UnknownAgentError, UserNotFoundError
from family_companion.managers.agent_manager import AgentService, should_trigger_agent_communication
from family_companion.managers.cache_manager import CacheManager
from family_companion.managers.llm_manager import LLMClient


class FakeLLM:
    """Stands in for LLMClient with a canned reply"""

    enabled = True

    def __init__(self, emotional_state="lonely", actions=None):
        self.emotional_state = emotional_state
        self.actions = actions or []
        self.note_requests = []

    async def generate_agent_response(self, personality, message, context):
        return {
            "message": f"{personality.name} hears you",
            "emotionalState": self.emotional_state,
            "suggestedActions": self.actions,
            "memoryTags": ["test"],
        }

    async def generate_agent_to_agent_communication(self, from_agent, to_agent, interaction):
        self.note_requests.append((from_agent.name, to_agent.name, interaction))
        return {"message": "Please check on Margaret", "priority": "high", "suggestedActions": ["call"]}


class QuietResponder:
    """Local responder with a fixed mood and no proposed note"""

    def __init__(self, emotional_state="content"):
        self.emotional_state = emotional_state

    def generate_response(self, agent_id, message, context):
        return {
            "message": "Noted.",
            "emotionalState": self.emotional_state,
            "suggestedActions": [],
            "memoryTags": [],
            "agentCommunication": None,
        }


def local_service(db, responder=None, cache=None):
    return AgentService(db, LLMClient(api_key=None), responder or LocalResponder(), cache)


@pytest.mark.parametrize("state, actions, expected", [
    ("lonely", [], True),
    ("Worried", [], True),
    ("happy", [], False),
    ("happy", ["Contact family this weekend"], True),
    ("content", ["schedule call with Sarah"], True),
    ("content", ["view_photos"], False),
    ("", [], False),
])
def test_should_trigger_agent_communication(state, actions, expected):
    assert should_trigger_agent_communication(state, actions) is expected


async def test_local_note_is_stored_and_returned(db):
    service = local_service(db)

    response = await service.process_user_message(1, "grace", "I feel so lonely today")

    assert response["emotionalState"] == "lonely"
    assert response["agentCommunication"]["toAgent"] == "alex"
    assert response["agentCommunication"]["priority"] == "high"

    communications = await db.get_agent_communications()
    assert len(communications) == 1
    stored = communications[0]
    assert (stored.from_agent, stored.to_agent) == ("grace", "alex")
    assert stored.context["originalUserMessage"] == "I feel so lonely today"
    assert stored.context["userId"] == 1

    conversations = await db.get_conversations(1)
    assert conversations[0].meta["memoryTags"] == response["memoryTags"]


async def test_no_note_when_nothing_concerning(db):
    service = local_service(db, QuietResponder("content"))

    response = await service.process_user_message(1, "alex", "Status update please")

    assert "agentCommunication" not in response
    assert await db.get_agent_communications() == []
    assert len(await db.get_conversations_by_agent("alex")) == 1


async def test_concerning_mood_without_llm_uses_template_note(db):
    service = local_service(db, QuietResponder("anxious"))

    response = await service.process_user_message(2, "alex", "Mom sounded off on the phone")

    assert response["agentCommunication"] == {
        "toAgent": "grace",
        "message": "Sarah Johnson seems anxious. Please consider checking in soon.",
        "priority": "high",
    }


async def test_llm_writes_the_note_when_enabled(db):
    llm = FakeLLM(emotional_state="sad")
    service = AgentService(db, llm, LocalResponder())

    response = await service.process_user_message(1, "grace", "I miss everyone")

    assert response["message"] == "Grace hears you"
    assert response["agentCommunication"]["message"] == "Please check on Margaret"
    from_name, to_name, interaction = llm.note_requests[0]
    assert (from_name, to_name) == ("Grace", "Alex")
    assert interaction["familyContext"]["familyMembers"][0]["name"] == "Sarah Johnson"


async def test_unknown_user_and_agent(db):
    service = local_service(db)

    with pytest.raises(UserNotFoundError):
        await service.process_user_message(999, "grace", "hello")
    with pytest.raises(UnknownAgentError):
        await service.process_user_message(1, "bob", "hello")


async def test_conversation_context_includes_family_and_memories(db):
    service = local_service(db)
    user = await db.get_user(1)

    context = await service.build_conversation_context(user)

    assert context.user_name == "Margaret Smith"
    assert [m.relationship for m in context.family_members] == ["child"]
    assert context.recent_memories[0].title == "Tommy's Soccer Game"


async def test_care_reminder_notifies_family(db):
    service = local_service(db)

    reminder, notification = await service.process_care_reminder(
        1, "care_facility", "Dental visit", "Cleaning at Smile Clinic",
        datetime.utcnow() + timedelta(days=2),
        {"careProvider": "Smile Clinic", "assistanceNeeded": True},
    )

    assert reminder.priority == "high"
    assert notification.urgency_level == "high"
    assert notification.care_provider == "Smile Clinic"
    assert notification.notified_family_members == ["2"]

    stored = await db.get_care_notification(notification.id)
    assert stored.notified_family_members == ["2"]

    notes = await db.get_agent_communications()
    assert notes[0].context["familyMemberId"] == 2
    assert notes[0].message.startswith("Care notification for Dental visit")


async def test_medication_reminder_has_no_notification(db):
    service = local_service(db)

    _, notification = await service.process_care_reminder(
        1, "medication", "Pills", "Evening pills", datetime.utcnow() + timedelta(hours=3)
    )

    assert notification is None


async def test_insights_for_quiet_user(db):
    insights = await local_service(db).generate_family_insights(1)

    assert insights["wellbeingScore"] == 70
    assert insights["recentActivity"] == "Limited recent activity"
    assert insights["suggestions"] == ["Encourage more regular conversations"]
    assert insights["alerts"] == []


async def test_insights_penalise_negative_moods(db):
    for _ in range(4):
        await db.create_conversation(user_id=1, agent_id="grace", message="...", emotional_state="sad")

    insights = await local_service(db).generate_family_insights(1)

    assert insights["wellbeingScore"] == 30
    assert "Consider scheduling more frequent check-ins" in insights["suggestions"]
    assert "Wellbeing score is low - consider immediate contact" in insights["alerts"]
    assert insights["recentActivity"] == "4 conversations in recent days"


async def test_insights_are_cached_until_user_talks_again(db):
    cache = CacheManager(use_fallback=True)
    service = local_service(db, QuietResponder("happy"), cache)

    first = await service.generate_family_insights(1)
    await db.create_conversation(user_id=1, agent_id="grace", message="...", emotional_state="happy")
    assert await service.generate_family_insights(1) == first

    await service.process_user_message(1, "grace", "Lovely day")
    refreshed = await service.generate_family_insights(1)
    assert refreshed["wellbeingScore"] == 80


async def test_insights_unknown_user(db):
    with pytest.raises(UserNotFoundError):
        await local_service(db).generate_family_insights(999)


async def test_contact_time_defaults_to_sunday_afternoon(db):
    # 2024-01-03 is a Wednesday
    now = datetime(2024, 1, 3, 10, 0)

    suggestion = await local_service(db).suggest_optimal_contact_time(1, now=now)

    assert suggestion["suggestedTime"] == "2024-01-07T15:00:00"
    assert suggestion["reason"] == "Based on conversation patterns, Sunday at 15:00 is typically a good time"
    assert suggestion["confidence"] == pytest.approx(0.1)


async def test_contact_time_follows_conversation_pattern(db):
    # Tuesdays at 9
    for week in range(3):
        await db.create_conversation(user_id=1, agent_id="grace", message="hi",
                                     timestamp=datetime(2024, 1, 2, 9, 30) - timedelta(weeks=week))
    now = datetime(2024, 1, 9, 12, 0)  # Tuesday, after 9:00

    suggestion = await local_service(db).suggest_optimal_contact_time(1, now=now)

    assert suggestion["suggestedTime"] == "2024-01-16T09:00:00"
    assert "Tuesday at 9:00" in suggestion["reason"]


async def test_memory_quiz_paths(db):
    service = local_service(db)

    assert (await service.create_memory_quiz(1))["correctAnswer"] == 1
    assert (await service.create_memory_quiz(999))["question"] == "What's your favorite family memory?"


async def test_cached_contact_time_recomputed_once_passed(db):
    cache = CacheManager(use_fallback=True)
    service = local_service(db, cache=cache)
    await cache.set_json(cache.contact_time_key(1), {
        "suggestedTime": "2000-01-02T15:00:00",
        "reason": "stale",
        "confidence": 0.1,
    })

    suggestion = await service.suggest_optimal_contact_time(1)

    assert suggestion["reason"] != "stale"
    assert datetime.fromisoformat(suggestion["suggestedTime"]) > datetime.utcnow()
    assert await service.suggest_optimal_contact_time(1) == suggestion
