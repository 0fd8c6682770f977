# family_companion/managers/llm_manager.py

import json
import logging
from typing import Dict, Any, List, Optional

from openai import AsyncOpenAI

from family_companion.agents.agent_configs import (
    AgentPersonality,
    ConversationContext,
    build_response_prompt,
    build_agent_to_agent_prompt,
    build_memory_quiz_prompt,
    default_memory_quiz,
)

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I'm sorry, I'm having trouble processing that right now. Could you try again?"


class LLMClient:
    """JSON-mode chat completions for persona replies, agent notes and memory quizzes"""

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o", client=None):
        self.model = model
        self.client = client
        if self.client is None and api_key:
            self.client = AsyncOpenAI(api_key=api_key)
        logger.info(f"LLMClient initialized (model={model}, enabled={self.enabled})")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def _complete_json(self, system_prompt: str, user_content: str,
                             temperature: float, max_tokens: int) -> Dict[str, Any]:
        completion = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content}
            ],
            response_format={"type": "json_object"},
            temperature=temperature,
            max_tokens=max_tokens,
        )
        raw = (completion.choices[0].message.content or "").strip()
        return json.loads(raw) if raw else {}

    async def generate_agent_response(self, personality: AgentPersonality, message: str,
                                      context: ConversationContext) -> Dict[str, Any]:
        try:
            result = await self._complete_json(
                build_response_prompt(personality, context), message,
                temperature=0.7, max_tokens=1000
            )
            return {
                "message": result.get("response") or "I'm here to help you. Could you tell me more?",
                "emotionalState": result.get("emotionalState") or "neutral",
                "suggestedActions": list(result.get("suggestedActions") or []),
                "memoryTags": list(result.get("memoryTags") or []),
            }
        except Exception as e:
            logger.error(f"Error generating agent response: {e}")
            return {
                "message": FALLBACK_REPLY,
                "emotionalState": "neutral",
                "suggestedActions": [],
                "memoryTags": [],
            }

    async def generate_agent_to_agent_communication(self, from_agent: AgentPersonality,
                                                    to_agent: AgentPersonality,
                                                    interaction: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = await self._complete_json(
                build_agent_to_agent_prompt(from_agent, to_agent, interaction),
                "Generate agent-to-agent communication based on the context provided.",
                temperature=0.6, max_tokens=500
            )
            priority = result.get("priority")
            return {
                "message": result.get("message") or "Shared user interaction context",
                "priority": priority if priority in ("low", "medium", "high") else "medium",
                "suggestedActions": list(result.get("suggestedActions") or []),
            }
        except Exception as e:
            logger.error(f"Error generating agent communication: {e}")
            return {
                "message": "Error in agent communication",
                "priority": "low",
                "suggestedActions": [],
            }

    async def generate_memory_quiz(self, memories: List[Dict[str, Any]]) -> Dict[str, Any]:
        try:
            result = await self._complete_json(
                build_memory_quiz_prompt(memories), "Generate a memory quiz question",
                temperature=0.8, max_tokens=400
            )
            return {
                "question": result.get("question") or "Tell me about a happy memory from your family",
                "options": result.get("options") or ["Option A", "Option B", "Option C", "Option D"],
                "correctAnswer": result.get("correctAnswer") or 0,
                "followUpQuestions": result.get("followUpQuestions") or ["What made that moment special?"],
            }
        except Exception as e:
            logger.error(f"Error generating memory quiz: {e}")
            return default_memory_quiz()

    async def close(self):
        if self.client is not None and hasattr(self.client, "close"):
            await self.client.close()
