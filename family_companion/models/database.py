# family_companion/models/database.py

from sqlalchemy import Column, String, Integer, Boolean, DateTime, JSON, ForeignKey, Text, inspect
from sqlalchemy.orm import declarative_base
from sqlalchemy.ext.asyncio import create_async_engine
from datetime import datetime
import logging
import os

logger = logging.getLogger(__name__)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class SerializableMixin:
    """camelCase JSON rendering used on the wire"""

    # attribute name -> wire name, for columns whose attribute can't be the wire name
    __wire_names__ = {}

    def to_dict(self) -> dict:
        data = {}
        # mapper keys, not column keys: "meta" is stored in a column named "metadata"
        for column_attr in inspect(type(self)).column_attrs:
            attr = column_attr.key
            value = getattr(self, attr)
            if isinstance(value, datetime):
                value = value.isoformat()
            data[self.__wire_names__.get(attr, _camel(attr))] = value
        return data


Base = declarative_base(cls=SerializableMixin)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, unique=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False)  # 'elderly' or 'caregiver'
    preferred_agent = Column(String, nullable=True)  # 'grace' or 'alex'
    voice_enabled = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Conversation(Base):
    __tablename__ = "conversations"
    __wire_names__ = {"meta": "metadata"}

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    agent_id = Column(String, nullable=False, index=True)
    message = Column(Text, nullable=False)
    response = Column(Text, nullable=True)
    emotional_state = Column(String, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow)
    meta = Column("metadata", JSON, default=dict)  # suggestedActions, memoryTags


class FamilyConnection(Base):
    __tablename__ = "family_connections"

    id = Column(Integer, primary_key=True, autoincrement=True)
    elderly_user_id = Column(Integer, ForeignKey("users.id"))
    caregiver_user_id = Column(Integer, ForeignKey("users.id"))
    relationship_type = Column(String, nullable=False)  # 'child', 'spouse', ...
    last_contact_date = Column(DateTime, nullable=True)
    contact_frequency = Column(String, default="weekly")
    created_at = Column(DateTime, default=datetime.utcnow)


class Memory(Base):
    __tablename__ = "memories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    family_id = Column(Integer, ForeignKey("family_connections.id"), index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String, nullable=False)
    participants = Column(JSON, default=list)  # user ids as strings
    date_of_memory = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Reminder(Base):
    __tablename__ = "reminders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    reminder_type = Column(String, nullable=False)  # 'call', 'appointment', 'medication', 'care_facility'
    scheduled_time = Column(DateTime, nullable=False)
    completed = Column(Boolean, default=False)
    priority = Column(String, default="medium")
    care_coordination = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class CareNotification(Base):
    __tablename__ = "care_notifications"
    __wire_names__ = {"meta": "metadata"}

    id = Column(Integer, primary_key=True, autoincrement=True)
    elderly_user_id = Column(Integer, ForeignKey("users.id"), index=True)
    notification_type = Column(String, nullable=False)  # 'appointment', 'medication', 'emergency', 'care_update'
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    scheduled_time = Column(DateTime, nullable=True)
    care_provider = Column(String, nullable=True)
    family_invited = Column(Boolean, default=True)
    assistance_needed = Column(Boolean, default=False)
    urgency_level = Column(String, default="normal")  # 'low', 'normal', 'high', 'emergency'
    meta = Column("metadata", JSON, nullable=True)
    notified_family_members = Column(JSON, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)


class AgentCommunication(Base):
    __tablename__ = "agent_communications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    from_agent = Column(String, nullable=False)
    to_agent = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    context = Column(JSON, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow)


class PictureFrame(Base):
    __tablename__ = "picture_frames"

    id = Column(Integer, primary_key=True, autoincrement=True)
    elderly_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    device_id = Column(String, unique=True, nullable=False)
    device_name = Column(String, nullable=False)
    is_active = Column(Boolean, default=True)
    display_duration = Column(Integer, default=30)  # seconds per photo
    brightness = Column(Integer, default=80)
    transition_effect = Column(String, default="fade")
    created_at = Column(DateTime, default=datetime.utcnow)


class FamilyPhoto(Base):
    __tablename__ = "family_photos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    picture_frame_id = Column(Integer, ForeignKey("picture_frames.id"), nullable=False, index=True)
    sender_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    photo_url = Column(String, nullable=False)
    caption = Column(String, nullable=True)
    is_approved = Column(Boolean, default=True)
    display_order = Column(Integer, default=0)
    uploaded_at = Column(DateTime, default=datetime.utcnow)
    viewed_at = Column(DateTime, nullable=True)


def _ensure_sqlite_directory(database_url: str):
    if not database_url.startswith("sqlite"):
        return
    db_path = database_url.split(":///", 1)[-1]
    directory = os.path.dirname(db_path)
    if directory and db_path != ":memory:":
        os.makedirs(directory, exist_ok=True)


async def init_db(database_url: str):
    """Create all tables and return the engine"""
    logger.info("Initializing database...")
    _ensure_sqlite_directory(database_url)
    engine = create_async_engine(database_url, echo=False)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        await engine.dispose()
        raise

    logger.info("Database tables created successfully")
    return engine
