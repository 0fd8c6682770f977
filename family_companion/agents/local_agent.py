"""
Keyword-matching responder used when no LLM is configured.

Replies are canned per persona; a handful of keyword groups pick a targeted
reply, memory tags and suggested actions, and two of them (medical mentions
and loneliness) produce a note from Grace to Alex.
"""

import logging
import random
from typing import Dict, Any, List, Optional

from family_companion.agents.agent_configs import ConversationContext, validate_agent_id

logger = logging.getLogger(__name__)

GRACE_RESPONSES = [
    "I'm so glad you're here! How are you feeling today?",
    "That sounds wonderful, dear. Tell me more about that.",
    "I understand how you're feeling. You're doing great.",
    "Would you like me to help you call your family?",
    "Let's look at some beautiful family photos together.",
    "It's time for your medication reminder. Shall I help you with that?",
    "Your family loves you very much. They've been thinking about you.",
    "How about we set up a relaxing sleep schedule for tonight?",
    "I'm here whenever you need to talk. You're never alone.",
    "Your granddaughter sent you a lovely new photo today!",
]

ALEX_RESPONSES = [
    "I've updated the family status. Everyone is doing well.",
    "I'll coordinate with Grace to ensure optimal care timing.",
    "The wellbeing metrics show positive trends this week.",
    "I've scheduled a family call for the optimal time window.",
    "New care appointment scheduled with family notifications sent.",
    "Photo sharing is active. Your family member will see it soon.",
    "Grace reports good engagement levels with the elderly user.",
    "I recommend increased family contact based on emotional patterns.",
    "Care coordination is running smoothly across all family members.",
    "The sleep schedule optimization has shown positive results.",
]

EMOTIONAL_STATES = [
    "cheerful", "content", "nostalgic", "worried", "excited",
    "peaceful", "grateful", "reflective", "hopeful", "loving",
]

QUIZ_QUESTIONS = [
    "What was your favorite family vacation destination?",
    "Who taught you to cook your favorite recipe?",
    "What was the name of your first pet?",
    "Where did you meet your spouse?",
    "What was your favorite song to dance to?",
]


class KeywordRule:
    """One keyword group with the reply each persona gives"""

    def __init__(self, keywords, grace_reply, alex_reply, tag, grace_actions, alex_actions,
                 emotional_state=None, note=None):
        self.keywords = keywords
        self.grace_reply = grace_reply
        self.alex_reply = alex_reply
        self.tag = tag
        self.grace_actions = grace_actions
        self.alex_actions = alex_actions
        self.emotional_state = emotional_state
        # (message template, priority) sent from Grace to Alex
        self.note = note

    def matches(self, lower_message: str) -> bool:
        return any(keyword in lower_message for keyword in self.keywords)


# Checked in order; the first match wins
KEYWORD_RULES = [
    KeywordRule(
        ("family", "daughter", "son"),
        "Your family loves you so much. Would you like me to help you call them?",
        "I'll coordinate optimal family contact times and send updates to Grace.",
        "family_connection", ["call_family", "view_photos"], ["schedule_call", "send_notification"],
    ),
    KeywordRule(
        ("photo", "picture"),
        "Let's look at those beautiful family photos together!",
        "I'll ensure the new photos are sent to the picture frame immediately.",
        "photo_sharing", ["view_photos", "share_memories"], ["send_photo", "update_frame"],
    ),
    KeywordRule(
        ("sleep", "tired", "rest"),
        "Let's set up a peaceful sleep schedule with some calming music.",
        "I'll optimize the sleep schedule and coordinate with Grace for better rest.",
        "sleep_schedule", ["setup_sleep", "play_music"], ["optimize_schedule", "monitor_sleep"],
    ),
    KeywordRule(
        ("appointment", "doctor", "medical"),
        "I see you have an appointment coming up. I'll make sure your family knows if you need help.",
        "I'll coordinate the medical appointment and ensure family members are notified.",
        "medical_care", ["view_appointments", "call_family"], ["schedule_appointment", "notify_family"],
        note=("{user_name} mentioned a medical appointment. Please coordinate family support.", "medium"),
    ),
    KeywordRule(
        ("lonely", "sad", "miss"),
        "I understand, dear. You're not alone. Your family thinks about you every day.",
        "Grace reports emotional support needs. I'll increase family engagement activities.",
        "emotional_support", ["call_family", "view_photos", "share_memories"], ["increase_contact", "plan_visit"],
        emotional_state="lonely",
        note=("{user_name} is feeling lonely. Recommend increased family contact.", "high"),
    ),
    KeywordRule(
        ("help", "assistance"),
        "Of course! I'm here to help. What would you like assistance with?",
        "I'll coordinate the needed assistance and notify relevant family members.",
        "assistance_needed", ["provide_help", "call_family"], ["coordinate_help", "notify_caregivers"],
    ),
]


class LocalResponder:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def generate_response(self, agent_id: str, message: str, context: ConversationContext) -> Dict[str, Any]:
        is_grace = validate_agent_id(agent_id) == "grace"
        lower_message = message.lower()

        emotional_state = None
        suggested_actions: List[str] = []
        memory_tags: List[str] = []
        agent_communication = None

        rule = next((r for r in KEYWORD_RULES if r.matches(lower_message)), None)
        if rule:
            reply = rule.grace_reply if is_grace else rule.alex_reply
            memory_tags = [rule.tag]
            suggested_actions = list(rule.grace_actions if is_grace else rule.alex_actions)
            emotional_state = rule.emotional_state
            if rule.note and is_grace:
                template, priority = rule.note
                agent_communication = {
                    "toAgent": "alex",
                    "message": template.format(user_name=context.user_name),
                    "priority": priority,
                }
        else:
            reply = self.rng.choice(GRACE_RESPONSES if is_grace else ALEX_RESPONSES)

        if not emotional_state:
            emotional_state = self.rng.choice(EMOTIONAL_STATES)

        if context.family_members:
            memory_tags.append("family_context")

        logger.debug(f"Local {agent_id} reply matched rule: {rule.tag if rule else None}")

        return {
            "message": reply,
            "emotionalState": emotional_state,
            "suggestedActions": suggested_actions,
            "memoryTags": memory_tags,
            "agentCommunication": agent_communication,
        }

    def generate_memory_quiz(self) -> Dict[str, Any]:
        """Canned quiz built from a fixed question bank"""
        questions = QUIZ_QUESTIONS[:4]
        return {
            "question": questions[0],
            "options": ["A special celebration", "A family vacation", "A quiet moment together", "A funny story"],
            "correctAnswer": 1,
            "followUpQuestions": questions[1:3],
        }
