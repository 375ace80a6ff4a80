"""
Notification DTOs
=================
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

ChannelStr = Literal["internal", "email", "whatsapp"]
NotificationStatusStr = Literal["pending", "sent", "failed", "delivered"]


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ticket_id: str
    user_id: str
    channel: ChannelStr
    type: str
    subject: Optional[str] = None
    message: str
    metadata: Dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("extra_data", "metadata")
    )
    status: NotificationStatusStr
    error_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse] = Field(default_factory=list)
    total: int = 0
