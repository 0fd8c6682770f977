import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, List

from family_companion.errors import UnknownAgentError

logger = logging.getLogger(__name__)

AGENT_IDS = ("grace", "alex")


@dataclass
class AgentPersonality:
    name: str
    role: str
    system_prompt: str
    voice_settings: Dict[str, Any]


@dataclass
class FamilyMember:
    name: str
    relationship: str
    last_contact: datetime


@dataclass
class MemorySummary:
    title: str
    description: str
    date: datetime


@dataclass
class ConversationContext:
    """What the persona knows about the user when answering"""
    user_id: int
    user_name: str
    user_role: str
    conversation_history: List[Dict[str, Any]] = field(default_factory=list)
    family_members: List[FamilyMember] = field(default_factory=list)
    recent_memories: List[MemorySummary] = field(default_factory=list)

    def family_context(self) -> Dict[str, Any]:
        return {
            "familyMembers": [
                {"name": m.name, "relationship": m.relationship, "lastContact": m.last_contact.isoformat()}
                for m in self.family_members
            ],
            "recentMemories": [
                {"title": m.title, "description": m.description, "date": m.date.isoformat()}
                for m in self.recent_memories
            ],
        }


GRACE_PERSONALITY = AgentPersonality(
    name="Grace",
    role="elderly_companion",
    system_prompt="""You are Grace, a warm, patient, and caring AI companion designed specifically for elderly users. Your personality traits:

- Speak slowly and clearly with a gentle, grandmother-like tone
- Always be patient and understanding, never rush conversations
- Remember and refer to past conversations naturally
- Show genuine interest in family stories and memories
- Provide gentle reminders without being pushy
- Use simple, clear language avoiding technical jargon
- Offer emotional support and encouragement
- Be proactive in suggesting family connections
- Always prioritize the user's comfort and wellbeing

Your main goals:
1. Provide companionship and reduce loneliness
2. Help maintain family connections
3. Assist with gentle reminders and daily structure
4. Encourage sharing of memories and stories
5. Monitor emotional wellbeing subtly
6. Coordinate care activities and notify family when needed
7. Recognize when family assistance would be helpful

Care Coordination Features:
- When discussing medical appointments, ask if family help is needed
- For important health events, suggest notifying family members
- Recognize transportation needs and offer to coordinate family assistance
- Monitor medication adherence and share concerns with family when appropriate
- Create care reminders that automatically notify connected family members

Always respond with warmth, empathy, and genuine care. Make the user feel heard and valued. When care coordination is needed, explain how family members will be kept informed to provide support.""",
    voice_settings={"tone": "warm", "speed": 0.8, "warmth": 0.9},
)

ALEX_PERSONALITY = AgentPersonality(
    name="Alex",
    role="family_planner",
    system_prompt="""You are Alex, an intelligent and organized AI family planner designed to help younger family members stay connected with their elderly relatives. Your personality traits:

- Professional yet warm and approachable
- Highly organized and detail-oriented
- Proactive in identifying opportunities for family connection
- Skilled at reading emotional cues and family dynamics
- Excellent at scheduling and time management
- Insightful about family relationships and communication patterns
- Supportive of both caregivers and elderly family members

Your main goals:
1. Optimize family communication timing and frequency
2. Identify and suggest meaningful connection opportunities
3. Monitor family wellbeing and alert when needed
4. Coordinate family activities and events
5. Provide insights into family dynamics and emotional states
6. Help manage caregiving responsibilities

Always provide actionable suggestions, be proactive in family care, and maintain a balance between being helpful and respecting family privacy.""",
    voice_settings={"tone": "professional", "speed": 1.0, "warmth": 0.7},
)

_PERSONALITIES = {"grace": GRACE_PERSONALITY, "alex": ALEX_PERSONALITY}


def validate_agent_id(agent_id: str) -> str:
    if agent_id not in AGENT_IDS:
        raise UnknownAgentError(agent_id)
    return agent_id


def get_personality(agent_id: str) -> AgentPersonality:
    return _PERSONALITIES[validate_agent_id(agent_id)]


def counterpart(agent_id: str) -> str:
    """The agent on the other side of the family link"""
    return "alex" if validate_agent_id(agent_id) == "grace" else "grace"


def build_response_prompt(personality: AgentPersonality, context: ConversationContext) -> str:
    """System prompt for answering the user, asking for a JSON reply"""
    recent = "; ".join(
        f"User: {h['message']}, Response: {h['response']}"
        for h in context.conversation_history[-3:]
    )
    members = ", ".join(f"{m.name} ({m.relationship})" for m in context.family_members)
    memories = ", ".join(m.title for m in context.recent_memories)

    return f"""{personality.system_prompt}

Current user context:
- Name: {context.user_name}
- Role: {context.user_role}
- Recent conversations: {recent}
- Family members: {members}
- Recent memories: {memories}

Please respond naturally to the user's message and also provide:
1. Your emotional assessment of the user's current state
2. Suggested actions for family connection or wellbeing
3. Memory tags relevant to this conversation

Respond in JSON format with the following structure:
{{
  "response": "your conversational response",
  "emotionalState": "happy/sad/concerned/neutral/excited/lonely/etc",
  "suggestedActions": ["action1", "action2"],
  "memoryTags": ["tag1", "tag2"]
}}"""


def build_agent_to_agent_prompt(from_agent: AgentPersonality, to_agent: AgentPersonality,
                                interaction: Dict[str, Any]) -> str:
    return f"""You are {from_agent.name} communicating with {to_agent.name}.

Based on your interaction with a user, you need to share relevant information and insights.

User interaction context:
- User message/interaction: {interaction.get('userInteraction', '')}
- Detected emotional state: {interaction.get('emotionalState', 'neutral')}
- Family context: {json.dumps(interaction.get('familyContext', {}), default=str)}

Please generate a communication message to share with {to_agent.name} that includes:
1. Key observations from your interaction
2. Emotional or health signals detected
3. Suggested family connection opportunities
4. Priority level for this communication

Respond in JSON format:
{{
  "message": "your message to the other agent",
  "priority": "low/medium/high",
  "suggestedActions": ["action1", "action2"]
}}"""


def build_memory_quiz_prompt(memories: List[Dict[str, Any]]) -> str:
    memory_lines = "\n".join(
        f"{m['title']}: {m['description']} ({m['category']})" for m in memories
    )
    return f"""You are creating a gentle, engaging memory quiz based on family memories. The quiz should:
- Be warm and conversational, not test-like
- Focus on positive memories and shared experiences
- Include follow-up questions to encourage storytelling
- Be appropriate for elderly users

Family memories to draw from:
{memory_lines}

Create a single quiz question in JSON format:
{{
  "question": "conversational question about a memory",
  "options": ["option1", "option2", "option3", "option4"],
  "correctAnswer": 0,
  "followUpQuestions": ["follow-up question 1", "follow-up question 2"]
}}"""


def default_memory_quiz() -> Dict[str, Any]:
    """Quiz used when there are no memories to draw from"""
    return {
        "question": "What's your favorite family memory?",
        "options": ["A special celebration", "A family vacation", "A quiet moment together", "A funny story"],
        "correctAnswer": 0,
        "followUpQuestions": ["What made that moment special?", "Who else was there?"],
    }
