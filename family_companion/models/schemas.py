from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, Literal
from datetime import datetime

AgentId = Literal["grace", "alex"]


class WireModel(BaseModel):
    """Accepts both the camelCase wire names and the python field names"""
    model_config = ConfigDict(populate_by_name=True)


class UserMessage(WireModel):
    user_id: int = Field(alias="userId")
    agent_id: AgentId = Field(alias="agentId")
    message: str = Field(min_length=1)


class CareNotificationCreate(WireModel):
    elderly_user_id: int = Field(alias="elderlyUserId")
    notification_type: Literal["appointment", "medication", "emergency", "care_update"] = Field(alias="notificationType")
    title: str
    description: str
    scheduled_time: Optional[datetime] = Field(default=None, alias="scheduledTime")
    care_provider: Optional[str] = Field(default=None, alias="careProvider")
    family_invited: bool = Field(default=True, alias="familyInvited")
    assistance_needed: bool = Field(default=False, alias="assistanceNeeded")
    urgency_level: Literal["low", "normal", "high", "emergency"] = Field(default="normal", alias="urgencyLevel")
    metadata: Optional[Dict[str, Any]] = None


class CareAppointmentRequest(WireModel):
    elderly_user_id: int = Field(alias="elderlyUserId")
    title: str
    description: str
    scheduled_time: datetime = Field(alias="scheduledTime")
    care_provider: Optional[str] = Field(default=None, alias="careProvider")
    assistance_needed: bool = Field(default=False, alias="assistanceNeeded")


class CareReminderRequest(WireModel):
    user_id: int = Field(alias="userId")
    reminder_type: Literal["appointment", "medication", "care_facility"] = Field(alias="reminderType")
    title: str
    description: str
    scheduled_time: datetime = Field(alias="scheduledTime")
    care_coordination: Optional[Dict[str, Any]] = Field(default=None, alias="careCoordination")


class FamilyPhotoCreate(WireModel):
    picture_frame_id: int = Field(alias="pictureFrameId")
    sender_user_id: int = Field(alias="senderUserId")
    photo_url: str = Field(alias="photoUrl")
    caption: Optional[str] = None
    is_approved: bool = Field(default=True, alias="isApproved")
    display_order: int = Field(default=0, alias="displayOrder")
