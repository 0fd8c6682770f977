from datetime import datetime

from family_companion.models.database import CareNotification, Conversation, User


def test_meta_column_serialised_as_metadata():
    conversation = Conversation(user_id=1, agent_id="grace", message="hi",
                                meta={"memoryTags": ["family_context"]})

    data = conversation.to_dict()

    assert data["metadata"] == {"memoryTags": ["family_context"]}
    assert "meta" not in data
    assert data["agentId"] == "grace"


def test_care_notification_metadata_and_datetimes():
    notification = CareNotification(
        elderly_user_id=1,
        notification_type="appointment",
        title="Eye exam",
        description="Annual",
        scheduled_time=datetime(2030, 3, 1, 10, 0),
        meta={"room": "4B"},
    )

    data = notification.to_dict()

    assert data["metadata"] == {"room": "4B"}
    assert data["scheduledTime"] == "2030-03-01T10:00:00"
    assert data["elderlyUserId"] == 1


def test_plain_columns_camel_cased():
    user = User(username="m", email="m@example.com", name="M", role="elderly", preferred_agent="grace")

    assert user.to_dict()["preferredAgent"] == "grace"
