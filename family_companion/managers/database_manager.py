from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy import select, update, and_, or_, desc, func
from family_companion.models.database import (
    User, Conversation, FamilyConnection, Memory, Reminder,
    CareNotification, AgentCommunication, PictureFrame, FamilyPhoto
)
from typing import Optional, List
from datetime import datetime, timedelta
import logging

logger = logging.getLogger(__name__)


class DatabaseManager:
    def __init__(self, database_url: str):
        self.engine = create_async_engine(database_url, echo=False)
        self.async_session = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def close(self):
        await self.engine.dispose()

    async def _add(self, record):
        async with self.async_session() as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return record

    async def _get(self, model, record_id: int):
        async with self.async_session() as session:
            return await session.get(model, record_id)

    async def _all(self, query) -> list:
        async with self.async_session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    # === USERS ===

    async def get_user(self, user_id: int) -> Optional[User]:
        return await self._get(User, user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        users = await self._all(select(User).where(User.email == email))
        return users[0] if users else None

    async def create_user(self, **fields) -> User:
        return await self._add(User(**fields))

    # === CONVERSATIONS ===

    async def get_conversations(self, user_id: int, limit: int = 50) -> List[Conversation]:
        return await self._all(
            select(Conversation)
            .where(Conversation.user_id == user_id)
            .order_by(desc(Conversation.timestamp), desc(Conversation.id))
            .limit(limit)
        )

    async def get_conversations_by_agent(self, agent_id: str, limit: int = 50) -> List[Conversation]:
        return await self._all(
            select(Conversation)
            .where(Conversation.agent_id == agent_id)
            .order_by(desc(Conversation.timestamp), desc(Conversation.id))
            .limit(limit)
        )

    async def create_conversation(self, **fields) -> Conversation:
        return await self._add(Conversation(**fields))

    # === FAMILY CONNECTIONS ===

    async def get_family_connections(self, user_id: int) -> List[FamilyConnection]:
        """Connections where the user is on either side"""
        return await self._all(
            select(FamilyConnection)
            .where(or_(
                FamilyConnection.elderly_user_id == user_id,
                FamilyConnection.caregiver_user_id == user_id
            ))
            .order_by(FamilyConnection.id)
        )

    async def create_family_connection(self, **fields) -> FamilyConnection:
        return await self._add(FamilyConnection(**fields))

    # === MEMORIES ===

    async def get_memories(self, family_id: int) -> List[Memory]:
        return await self._all(
            select(Memory)
            .where(Memory.family_id == family_id)
            .order_by(desc(Memory.date_of_memory))
        )

    async def create_memory(self, **fields) -> Memory:
        return await self._add(Memory(**fields))

    # === REMINDERS ===

    async def get_reminders(self, user_id: int) -> List[Reminder]:
        return await self._all(
            select(Reminder)
            .where(Reminder.user_id == user_id)
            .order_by(desc(Reminder.scheduled_time))
        )

    async def get_pending_reminders(self, user_id: int) -> List[Reminder]:
        """Reminders that are due and not completed"""
        return await self._all(
            select(Reminder)
            .where(and_(
                Reminder.user_id == user_id,
                Reminder.completed.is_(False),
                Reminder.scheduled_time <= datetime.utcnow()
            ))
            .order_by(desc(Reminder.scheduled_time))
        )

    async def create_reminder(self, **fields) -> Reminder:
        return await self._add(Reminder(**fields))

    async def complete_reminder(self, reminder_id: int) -> bool:
        async with self.async_session() as session:
            result = await session.execute(
                update(Reminder).where(Reminder.id == reminder_id).values(completed=True)
            )
            await session.commit()
            return result.rowcount > 0

    # === CARE NOTIFICATIONS ===

    async def get_care_notifications(self, elderly_user_id: int) -> List[CareNotification]:
        return await self._all(
            select(CareNotification)
            .where(CareNotification.elderly_user_id == elderly_user_id)
            .order_by(desc(CareNotification.created_at), desc(CareNotification.id))
        )

    async def create_care_notification(self, **fields) -> CareNotification:
        return await self._add(CareNotification(**fields))

    async def update_care_notification_family_notified(self, notification_id: int, member_ids: List[int]):
        async with self.async_session() as session:
            await session.execute(
                update(CareNotification)
                .where(CareNotification.id == notification_id)
                .values(notified_family_members=[str(member_id) for member_id in member_ids])
            )
            await session.commit()

    async def get_care_notification(self, notification_id: int) -> Optional[CareNotification]:
        return await self._get(CareNotification, notification_id)

    # === AGENT COMMUNICATIONS ===

    async def get_agent_communications(self, limit: int = 50) -> List[AgentCommunication]:
        return await self._all(
            select(AgentCommunication)
            .order_by(desc(AgentCommunication.timestamp), desc(AgentCommunication.id))
            .limit(limit)
        )

    async def create_agent_communication(self, **fields) -> AgentCommunication:
        return await self._add(AgentCommunication(**fields))

    # === PICTURE FRAMES & PHOTOS ===

    async def get_picture_frame(self, elderly_user_id: int) -> Optional[PictureFrame]:
        frames = await self._all(
            select(PictureFrame).where(PictureFrame.elderly_user_id == elderly_user_id)
        )
        return frames[0] if frames else None

    async def get_picture_frame_by_id(self, frame_id: int) -> Optional[PictureFrame]:
        return await self._get(PictureFrame, frame_id)

    async def create_picture_frame(self, **fields) -> PictureFrame:
        return await self._add(PictureFrame(**fields))

    async def create_family_photo(self, **fields) -> FamilyPhoto:
        return await self._add(FamilyPhoto(**fields))

    async def get_recent_photos(self, elderly_user_id: int, limit: int = 10) -> List[FamilyPhoto]:
        frame = await self.get_picture_frame(elderly_user_id)
        if not frame:
            return []
        return await self._all(
            select(FamilyPhoto)
            .where(FamilyPhoto.picture_frame_id == frame.id)
            .order_by(desc(FamilyPhoto.uploaded_at))
            .limit(limit)
        )

    # === SAMPLE DATA ===

    async def seed_sample_data(self) -> bool:
        """Create a demo family on an empty database. Returns True when seeded."""
        async with self.async_session() as session:
            existing = await session.execute(select(func.count(User.id)))
            if existing.scalar_one() > 0:
                return False

        now = datetime.utcnow()
        logger.info("Seeding sample family data")

        elderly = await self.create_user(
            username="margaret_smith",
            email="margaret@example.com",
            name="Margaret Smith",
            role="elderly",
            preferred_agent="grace",
            voice_enabled=True
        )
        caregiver = await self.create_user(
            username="sarah_johnson",
            email="sarah@example.com",
            name="Sarah Johnson",
            role="caregiver",
            preferred_agent="alex",
            voice_enabled=True
        )

        connection = await self.create_family_connection(
            elderly_user_id=elderly.id,
            caregiver_user_id=caregiver.id,
            relationship_type="child",
            last_contact_date=now - timedelta(hours=2),
            contact_frequency="weekly"
        )

        await self.create_memory(
            family_id=connection.id,
            title="Tommy's Soccer Game",
            description="Grandson's first soccer game of the season. He scored the winning goal!",
            category="sports",
            participants=[str(elderly.id), str(caregiver.id)],
            date_of_memory=now - timedelta(days=7)
        )

        await self.create_reminder(
            user_id=elderly.id,
            title="Doctor Appointment",
            description="Annual checkup with Dr. Williams",
            reminder_type="appointment",
            scheduled_time=now + timedelta(days=1),
            priority="medium"
        )

        await self.create_care_notification(
            elderly_user_id=elderly.id,
            notification_type="appointment",
            title="Physical Therapy Session",
            description="Weekly physical therapy at Sunshine Care Center. "
                        "Family assistance may be helpful for transportation.",
            scheduled_time=now + timedelta(days=3),
            care_provider="Sunshine Care Center",
            family_invited=True,
            assistance_needed=True,
            urgency_level="normal"
        )

        frame = await self.create_picture_frame(
            elderly_user_id=elderly.id,
            device_id="frame_001",
            device_name="Living Room Frame",
            display_duration=10
        )
        await self.create_family_photo(
            picture_frame_id=frame.id,
            sender_user_id=caregiver.id,
            photo_url="https://images.unsplash.com/photo-1511895426328-dc8714191300?w=800&h=600&fit=crop",
            caption="Family gathering last weekend",
            uploaded_at=now
        )
        await self.create_family_photo(
            picture_frame_id=frame.id,
            sender_user_id=caregiver.id,
            photo_url="https://images.unsplash.com/photo-1609220136736-443140cffec6?w=800&h=600&fit=crop",
            caption="Beautiful sunset from the garden",
            uploaded_at=now - timedelta(days=1)
        )
        return True
