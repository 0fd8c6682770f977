# family_companion/managers/agent_manager.py

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional

from family_companion.agents.agent_configs import (
    ConversationContext,
    FamilyMember,
    MemorySummary,
    counterpart,
    default_memory_quiz,
    get_personality,
)
from family_companion.errors import UserNotFoundError
from family_companion.models.database import CareNotification

logger = logging.getLogger(__name__)

CONCERNING_STATES = {"sad", "lonely", "anxious", "confused", "worried"}
POSITIVE_STATES = {"happy", "excited", "content", "cheerful"}
NEGATIVE_STATES = {"sad", "lonely", "anxious", "worried", "confused"}

COMMUNICATION_TRIGGERS = [
    "contact family",
    "schedule call",
    "check wellbeing",
    "medical concern",
    "emotional support",
]

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def should_trigger_agent_communication(emotional_state: str, suggested_actions: List[str]) -> bool:
    """Concerning moods or family-facing actions are worth telling the other agent about"""
    if (emotional_state or "").lower() in CONCERNING_STATES:
        return True

    return any(
        trigger in action.lower()
        for action in suggested_actions
        for trigger in COMMUNICATION_TRIGGERS
    )


def _sunday_first_weekday(moment: datetime) -> int:
    return (moment.weekday() + 1) % 7


class AgentService:
    def __init__(self, database_manager, llm_client, local_responder, cache_manager=None,
                 insights_ttl: int = 300):
        self.db = database_manager
        self.llm = llm_client
        self.local = local_responder
        self.cache = cache_manager
        self.insights_ttl = insights_ttl

    async def process_user_message(self, user_id: int, agent_id: str, message: str) -> Dict[str, Any]:
        """Answer the user as the chosen persona and, when warranted, notify the other persona"""
        personality = get_personality(agent_id)

        user = await self.db.get_user(user_id)
        if not user:
            raise UserNotFoundError(user_id)

        context = await self.build_conversation_context(user)

        if self.llm.enabled:
            ai_response = await self.llm.generate_agent_response(personality, message, context)
        else:
            logger.info("Using local responder for agent reply")
            ai_response = self.local.generate_response(agent_id, message, context)

        await self.db.create_conversation(
            user_id=user_id,
            agent_id=agent_id,
            message=message,
            response=ai_response["message"],
            emotional_state=ai_response["emotionalState"],
            meta={
                "suggestedActions": ai_response["suggestedActions"],
                "memoryTags": ai_response["memoryTags"],
            }
        )
        if self.cache:
            await self.cache.invalidate_user(user_id)

        agent_communication = await self._agent_communication_for(
            agent_id, message, ai_response, context
        )

        response = {
            "message": ai_response["message"],
            "emotionalState": ai_response["emotionalState"],
            "suggestedActions": ai_response["suggestedActions"],
            "memoryTags": ai_response["memoryTags"],
        }
        if agent_communication:
            response["agentCommunication"] = agent_communication
        return response

    async def _agent_communication_for(self, agent_id: str, message: str,
                                       ai_response: Dict[str, Any],
                                       context: ConversationContext) -> Optional[Dict[str, Any]]:
        to_agent = counterpart(agent_id)
        emotional_state = ai_response["emotionalState"]
        proposed = ai_response.get("agentCommunication")

        if proposed:
            note = {
                "message": proposed["message"],
                "priority": proposed.get("priority", "medium"),
                "suggestedActions": ai_response["suggestedActions"],
            }
            to_agent = proposed.get("toAgent", to_agent)
        elif should_trigger_agent_communication(emotional_state, ai_response["suggestedActions"]):
            interaction = {
                "userInteraction": message,
                "emotionalState": emotional_state,
                "familyContext": context.family_context(),
            }
            if self.llm.enabled:
                note = await self.llm.generate_agent_to_agent_communication(
                    get_personality(agent_id), get_personality(to_agent), interaction
                )
            else:
                note = {
                    "message": f"{context.user_name} seems {emotional_state}. Please consider checking in soon.",
                    "priority": "high" if emotional_state.lower() in CONCERNING_STATES else "medium",
                    "suggestedActions": ai_response["suggestedActions"],
                }
        else:
            return None

        await self.db.create_agent_communication(
            from_agent=agent_id,
            to_agent=to_agent,
            message=note["message"],
            context={
                "priority": note["priority"],
                "suggestedActions": note["suggestedActions"],
                "originalUserMessage": message,
                "emotionalState": emotional_state,
                "userId": context.user_id,
            }
        )
        logger.info(f"Agent communication {agent_id} -> {to_agent} ({note['priority']})")

        return {
            "toAgent": to_agent,
            "message": note["message"],
            "priority": note["priority"],
        }

    async def build_conversation_context(self, user) -> ConversationContext:
        conversations = await self.db.get_conversations(user.id, 10)
        history = [
            {
                "message": c.message,
                "response": c.response or "",
                "timestamp": c.timestamp or datetime.utcnow(),
            }
            for c in conversations
        ]

        connections = await self.db.get_family_connections(user.id)
        family_members = []
        recent_memories = []
        for connection in connections:
            member_id = (connection.caregiver_user_id
                         if connection.elderly_user_id == user.id
                         else connection.elderly_user_id)
            member = await self.db.get_user(member_id) if member_id else None
            family_members.append(FamilyMember(
                name=member.name if member else "Unknown",
                relationship=connection.relationship_type,
                last_contact=connection.last_contact_date or datetime.utcnow(),
            ))

            memories = await self.db.get_memories(connection.id)
            recent_memories.extend(
                MemorySummary(
                    title=m.title,
                    description=m.description,
                    date=m.date_of_memory or datetime.utcnow(),
                )
                for m in memories[:3]
            )

        return ConversationContext(
            user_id=user.id,
            user_name=user.name,
            user_role=user.role,
            conversation_history=history,
            family_members=family_members,
            recent_memories=recent_memories,
        )

    # === CARE COORDINATION ===

    async def create_care_notification(self, elderly_user_id: int, notification_type: str,
                                       title: str, description: str,
                                       scheduled_time: Optional[datetime] = None,
                                       care_provider: Optional[str] = None,
                                       assistance_needed: bool = False) -> CareNotification:
        notification = await self.db.create_care_notification(
            elderly_user_id=elderly_user_id,
            notification_type=notification_type,
            title=title,
            description=description,
            scheduled_time=scheduled_time,
            care_provider=care_provider,
            assistance_needed=assistance_needed,
            family_invited=True,
            urgency_level="high" if assistance_needed else "normal",
        )
        return await self.notify_family_members(elderly_user_id, notification)

    async def notify_family_members(self, elderly_user_id: int,
                                    notification: CareNotification) -> CareNotification:
        """Leave Alex a note for every connected family member and record who was told"""
        connections = await self.db.get_family_connections(elderly_user_id)
        member_ids = []

        for connection in connections:
            member_id = (connection.elderly_user_id
                         if connection.caregiver_user_id == elderly_user_id
                         else connection.caregiver_user_id)
            if not member_id:
                continue

            member_ids.append(member_id)
            await self.db.create_agent_communication(
                from_agent="grace",
                to_agent="alex",
                message=f"Care notification for {notification.title}: {notification.description}",
                context={
                    "notificationId": notification.id,
                    "elderlyUserId": elderly_user_id,
                    "familyMemberId": member_id,
                    "urgencyLevel": notification.urgency_level,
                    "assistanceNeeded": notification.assistance_needed,
                    "scheduledTime": notification.scheduled_time.isoformat() if notification.scheduled_time else None,
                }
            )

        await self.db.update_care_notification_family_notified(notification.id, member_ids)
        notification.notified_family_members = [str(member_id) for member_id in member_ids]
        logger.info(f"Care notification {notification.id} shared with {len(member_ids)} family member(s)")
        return notification

    async def process_care_reminder(self, user_id: int, reminder_type: str, title: str,
                                    description: str, scheduled_time: datetime,
                                    care_coordination: Optional[Dict[str, Any]] = None):
        reminder = await self.db.create_reminder(
            user_id=user_id,
            title=title,
            description=description,
            reminder_type=reminder_type,
            scheduled_time=scheduled_time,
            priority="high",
            care_coordination=care_coordination,
        )

        notification = None
        if reminder_type in ("care_facility", "appointment"):
            coordination = care_coordination or {}
            notification = await self.create_care_notification(
                user_id,
                "appointment",
                title,
                description,
                scheduled_time,
                coordination.get("careProvider"),
                bool(coordination.get("assistanceNeeded", False)),
            )
        return reminder, notification

    # === INSIGHTS ===

    async def generate_family_insights(self, user_id: int) -> Dict[str, Any]:
        if self.cache:
            cached = await self.cache.get_json(self.cache.insights_key(user_id))
            if cached:
                return cached

        user = await self.db.get_user(user_id)
        if not user:
            raise UserNotFoundError(user_id)

        conversations = await self.db.get_conversations(user_id, 20)
        connections = await self.db.get_family_connections(user_id)
        pending_reminders = await self.db.get_pending_reminders(user_id)

        recent_states = [c.emotional_state.lower() for c in conversations if c.emotional_state][:5]
        positive_count = sum(1 for state in recent_states if state in POSITIVE_STATES)
        negative_count = sum(1 for state in recent_states if state in NEGATIVE_STATES)

        wellbeing_score = 70 + positive_count * 5 - negative_count * 10
        wellbeing_score = max(0, min(100, wellbeing_score))

        suggestions = []
        if negative_count > 2:
            suggestions.append("Consider scheduling more frequent check-ins")
        if len(conversations) < 3:
            suggestions.append("Encourage more regular conversations")
        if len(pending_reminders) > 3:
            suggestions.append("Help with reminder management")

        alerts = []
        if wellbeing_score < 40:
            alerts.append("Wellbeing score is low - consider immediate contact")
        if len(pending_reminders) > 5:
            alerts.append("Multiple pending reminders - assistance may be needed")

        last_contact = connections[0].last_contact_date if connections else None
        if last_contact and datetime.utcnow() - last_contact > timedelta(days=7):
            alerts.append("No contact in over a week")

        insights = {
            "wellbeingScore": wellbeing_score,
            "recentActivity": (f"{len(conversations)} conversations in recent days"
                               if conversations else "Limited recent activity"),
            "suggestions": suggestions,
            "alerts": alerts,
        }

        if self.cache:
            await self.cache.set_json(self.cache.insights_key(user_id), insights, ex=self.insights_ttl)
        return insights

    async def create_memory_quiz(self, family_id: int) -> Dict[str, Any]:
        memories = await self.db.get_memories(family_id)
        if not memories:
            return default_memory_quiz()

        if not self.llm.enabled:
            return self.local.generate_memory_quiz()

        return await self.llm.generate_memory_quiz([
            {
                "title": m.title,
                "description": m.description,
                "category": m.category,
                "dateOfMemory": (m.date_of_memory or datetime.utcnow()).isoformat(),
            }
            for m in memories
        ])

    async def get_agent_communications(self, limit: int = 10) -> List[Dict[str, Any]]:
        communications = await self.db.get_agent_communications(limit)
        return [c.to_dict() for c in communications]

    async def suggest_optimal_contact_time(self, user_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Next occurrence of the weekday and hour the user talks most"""
        use_cache = self.cache is not None and now is None
        if use_cache:
            cached = await self.cache.get_json(self.cache.contact_time_key(user_id))
            if cached and datetime.fromisoformat(cached["suggestedTime"]) > datetime.utcnow():
                return cached

        conversations = await self.db.get_conversations(user_id, 50)
        timestamps = [c.timestamp for c in conversations if c.timestamp]

        # most_common keeps first-seen order on ties, i.e. the most recent conversation wins
        hour_counts = Counter(t.hour for t in timestamps)
        day_counts = Counter(_sunday_first_weekday(t) for t in timestamps)
        best_hour = hour_counts.most_common(1)[0][0] if hour_counts else 15
        best_day = day_counts.most_common(1)[0][0] if day_counts else 0

        now = now or datetime.utcnow()
        days_until = (best_day - _sunday_first_weekday(now) + 7) % 7
        suggested = (now + timedelta(days=days_until)).replace(hour=best_hour, minute=0, second=0, microsecond=0)
        if suggested <= now:
            suggested += timedelta(days=7)

        confidence = min(0.9, (len(conversations) / 20) * 0.8 + 0.1)
        suggestion = {
            "suggestedTime": suggested.isoformat(),
            "reason": f"Based on conversation patterns, {DAY_NAMES[best_day]} at {best_hour}:00 is typically a good time",
            "confidence": confidence,
        }

        if use_cache:
            await self.cache.set_json(self.cache.contact_time_key(user_id), suggestion, ex=self.insights_ttl)
        return suggestion
