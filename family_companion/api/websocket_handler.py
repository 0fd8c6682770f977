# family_companion/api/websocket_handler.py

import asyncio
import json
import logging
import time
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from family_companion.errors import CompanionError
from family_companion.models.schemas import UserMessage

logger = logging.getLogger(__name__)

PROCESSING_ERROR = "Failed to process message"


def agent_communication_frame(from_agent: str, response: dict) -> Optional[dict]:
    """Broadcast frame for the note carried by an agent response, if any"""
    note = response.get("agentCommunication")
    if not note:
        return None
    return {
        "type": "agent_communication",
        "fromAgent": from_agent,
        "toAgent": note["toAgent"],
        "message": note["message"],
        "priority": note["priority"],
    }


class WebSocketHandler:
    def __init__(self, hub, agent_service, receive_timeout: float = 60.0):
        self.hub = hub
        self.agent_service = agent_service
        self.receive_timeout = receive_timeout

    async def handle_connection(self, websocket: WebSocket, agent: Optional[str] = None):
        """Serve one client until it disconnects"""
        connection_start_time = time.time()
        connection_id = await self.hub.register(websocket, agent)

        try:
            await self.hub.send(connection_id, {
                "type": "connected",
                "connectionId": connection_id,
            })
            await self._message_listener_loop(connection_id, websocket)

        except WebSocketDisconnect:
            logger.info(f"Client {connection_id} disconnected normally")
        except Exception as e:
            logger.error(f"Connection error for {connection_id}: {e}")
        finally:
            logger.info(f"Connection {connection_id} lasted {time.time() - connection_start_time:.2f} seconds")
            self.hub.unregister(connection_id)

    async def _message_listener_loop(self, connection_id: str, websocket: WebSocket):
        while self.hub.is_connected(connection_id):
            try:
                message = await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=self.receive_timeout
                )
            except asyncio.TimeoutError:
                logger.debug(f"No message from {connection_id} in {self.receive_timeout}s, sending keepalive")
                if not await self.hub.send(connection_id, {"type": "keepalive"}):
                    logger.warning(f"Failed to send keepalive to {connection_id}, connection may be dead")
                    break
                continue

            self.hub.touch(connection_id)
            await self.handle_message(connection_id, message)

    async def handle_message(self, connection_id: str, message: str):
        """Dispatch one text frame from a client"""
        try:
            data = json.loads(message)
            msg_type = data.get("type") if isinstance(data, dict) else None
            logger.info(f"Received from {connection_id}: {msg_type}")

            if msg_type == "user_message":
                await self._handle_user_message(connection_id, UserMessage.model_validate(data))

            elif msg_type == "ping":
                await self.hub.send(connection_id, {"type": "pong"})

            else:
                logger.warning(f"Unknown message type from {connection_id}: {msg_type}")
                await self.hub.send(connection_id, {
                    "type": "error",
                    "message": f"Unknown message type: {msg_type}"
                })

        except (json.JSONDecodeError, ValidationError, CompanionError) as e:
            logger.warning(f"Rejected message from {connection_id}: {e}")
            await self.hub.send(connection_id, {"type": "error", "message": PROCESSING_ERROR})
        except Exception as e:
            logger.error(f"WebSocket message error from {connection_id}: {e}")
            await self.hub.send(connection_id, {"type": "error", "message": PROCESSING_ERROR})

    async def _handle_user_message(self, connection_id: str, request: UserMessage):
        response = await self.agent_service.process_user_message(
            request.user_id, request.agent_id, request.message
        )

        await self.hub.send(connection_id, {
            "type": "agent_response",
            "response": response
        })

        frame = agent_communication_frame(request.agent_id, response)
        if frame:
            await self.hub.broadcast(frame, exclude=[connection_id])
