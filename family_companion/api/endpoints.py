# family_companion/api/endpoints.py

from fastapi import APIRouter, HTTPException, Depends, Query
from typing import Dict, Any
import logging

from family_companion.agents.agent_configs import validate_agent_id
from family_companion.api.websocket_handler import agent_communication_frame
from family_companion.errors import CompanionError
from family_companion.models.schemas import (
    UserMessage,
    CareNotificationCreate,
    CareAppointmentRequest,
    CareReminderRequest,
    FamilyPhotoCreate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


# Dependency injection - overridden in main.py at startup
async def get_managers() -> Dict[str, Any]:
    """Get managers - will be overridden with actual implementation"""
    raise HTTPException(status_code=500, detail="Managers not initialized")


# ============================================================================
# USERS & HISTORY
# ============================================================================

@router.get("/users/{user_id}")
async def get_user(user_id: int, managers: Dict = Depends(get_managers)):
    user = await managers['database'].get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user.to_dict()


@router.get("/users/email/{email}")
async def get_user_by_email(email: str, managers: Dict = Depends(get_managers)):
    user = await managers['database'].get_user_by_email(email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user.to_dict()


@router.get("/conversations/agent/{agent_id}")
async def get_agent_conversations(agent_id: str, limit: int = Query(50, ge=1, le=500),
                                  managers: Dict = Depends(get_managers)):
    validate_agent_id(agent_id)
    conversations = await managers['database'].get_conversations_by_agent(agent_id, limit)
    return [c.to_dict() for c in conversations]


@router.get("/conversations/{user_id}")
async def get_conversations(user_id: int, limit: int = Query(50, ge=1, le=500),
                            managers: Dict = Depends(get_managers)):
    conversations = await managers['database'].get_conversations(user_id, limit)
    return [c.to_dict() for c in conversations]


@router.get("/family/{user_id}")
async def get_family_connections(user_id: int, managers: Dict = Depends(get_managers)):
    connections = await managers['database'].get_family_connections(user_id)
    return [c.to_dict() for c in connections]


@router.get("/memories/{family_id}")
async def get_memories(family_id: int, managers: Dict = Depends(get_managers)):
    memories = await managers['database'].get_memories(family_id)
    return [m.to_dict() for m in memories]


@router.get("/memories/{family_id}/quiz")
async def get_memory_quiz(family_id: int, managers: Dict = Depends(get_managers)):
    try:
        return await managers['agents'].create_memory_quiz(family_id)
    except Exception as e:
        logger.error(f"Error creating memory quiz for family {family_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to create memory quiz")


@router.get("/reminders/{user_id}")
async def get_reminders(user_id: int, managers: Dict = Depends(get_managers)):
    reminders = await managers['database'].get_reminders(user_id)
    return [r.to_dict() for r in reminders]


@router.get("/reminders/{user_id}/pending")
async def get_pending_reminders(user_id: int, managers: Dict = Depends(get_managers)):
    reminders = await managers['database'].get_pending_reminders(user_id)
    return [r.to_dict() for r in reminders]


@router.patch("/reminders/{reminder_id}/complete")
async def complete_reminder(reminder_id: int, managers: Dict = Depends(get_managers)):
    if not await managers['database'].complete_reminder(reminder_id):
        raise HTTPException(status_code=404, detail="Reminder not found")
    return {"message": "Reminder completed"}


# ============================================================================
# AGENTS
# ============================================================================

@router.post("/agents/message")
async def agent_message(request: UserMessage, managers: Dict = Depends(get_managers)):
    """Same flow as a websocket user_message; the note is broadcast to every client"""
    logger.info(f"Processing agent message: user={request.user_id} agent={request.agent_id}")
    try:
        response = await managers['agents'].process_user_message(
            request.user_id, request.agent_id, request.message
        )
    except CompanionError:
        raise
    except Exception as e:
        logger.error(f"Agent message processing error: {e}")
        raise HTTPException(status_code=500, detail="Failed to process message")

    frame = agent_communication_frame(request.agent_id, response)
    if frame:
        await managers['hub'].broadcast(frame)
    return response


@router.get("/agents/communications")
async def get_agent_communications(limit: int = Query(10, ge=1, le=200),
                                   managers: Dict = Depends(get_managers)):
    return await managers['agents'].get_agent_communications(limit)


@router.get("/agents/insights/{user_id}")
async def get_family_insights(user_id: int, managers: Dict = Depends(get_managers)):
    return await managers['agents'].generate_family_insights(user_id)


@router.get("/agents/contact-time/{user_id}")
async def get_contact_time(user_id: int, managers: Dict = Depends(get_managers)):
    return await managers['agents'].suggest_optimal_contact_time(user_id)


# ============================================================================
# CARE COORDINATION
# ============================================================================

@router.get("/care-notifications/{elderly_user_id}")
async def get_care_notifications(elderly_user_id: int, managers: Dict = Depends(get_managers)):
    notifications = await managers['database'].get_care_notifications(elderly_user_id)
    return [n.to_dict() for n in notifications]


@router.post("/care-notifications", status_code=201)
async def create_care_notification(request: CareNotificationCreate, managers: Dict = Depends(get_managers)):
    fields = request.model_dump()
    fields["meta"] = fields.pop("metadata")
    notification = await managers['database'].create_care_notification(**fields)
    notification = await managers['agents'].notify_family_members(request.elderly_user_id, notification)
    return notification.to_dict()


@router.post("/care-coordination/appointment", status_code=201)
async def create_care_appointment(request: CareAppointmentRequest, managers: Dict = Depends(get_managers)):
    notification = await managers['agents'].create_care_notification(
        request.elderly_user_id,
        "appointment",
        request.title,
        request.description,
        request.scheduled_time,
        request.care_provider,
        request.assistance_needed,
    )
    return notification.to_dict()


@router.post("/care-coordination/reminder", status_code=201)
async def create_care_reminder(request: CareReminderRequest, managers: Dict = Depends(get_managers)):
    reminder, notification = await managers['agents'].process_care_reminder(
        request.user_id,
        request.reminder_type,
        request.title,
        request.description,
        request.scheduled_time,
        request.care_coordination,
    )
    return {
        "message": "Care reminder processed and family notified",
        "reminder": reminder.to_dict(),
        "careNotification": notification.to_dict() if notification else None,
    }


# ============================================================================
# FAMILY PHOTOS
# ============================================================================

@router.get("/picture-frame/{elderly_user_id}")
async def get_picture_frame(elderly_user_id: int, managers: Dict = Depends(get_managers)):
    frame = await managers['database'].get_picture_frame(elderly_user_id)
    if not frame:
        raise HTTPException(status_code=404, detail="Picture frame not found")
    return frame.to_dict()


@router.get("/recent-photos/{elderly_user_id}")
async def get_recent_photos(elderly_user_id: int, limit: int = Query(10, ge=1, le=100),
                            managers: Dict = Depends(get_managers)):
    photos = await managers['database'].get_recent_photos(elderly_user_id, limit)
    return [p.to_dict() for p in photos]


@router.post("/family-photos", status_code=201)
async def share_family_photo(request: FamilyPhotoCreate, managers: Dict = Depends(get_managers)):
    """Store the photo and push it to every connected picture frame"""
    db_manager = managers['database']
    frame = await db_manager.get_picture_frame_by_id(request.picture_frame_id)
    if not frame:
        raise HTTPException(status_code=404, detail="Picture frame not found")

    photo = await db_manager.create_family_photo(**request.model_dump())
    await managers['hub'].broadcast({
        "type": "new_photo",
        "frameId": frame.id,
        "photo": photo.to_dict(),
    })
    return photo.to_dict()
