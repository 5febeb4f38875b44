from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

class MessageType(str, Enum):
    TEXT = "text"
    PAYMENT_INFO = "payment_info"
    PAYMENT_CONFIRMED = "payment_confirmed"
    SYSTEM = "system"

class SenderRole(str, Enum):
    REQUESTER = "requester"
    FULFILLER = "fulfiller"
    SYSTEM = "system" # reserved for the Notification Generator

class MessageCreate(BaseModel):
    order_id: int
    sender_id: str = Field(min_length=1)
    sender_name: Optional[str] = None
    sender_role: SenderRole
    text: str = ""
    type: MessageType = MessageType.TEXT

    @field_validator("sender_role")
    @classmethod
    def reject_system_role(cls, value: SenderRole):
        if value == SenderRole.SYSTEM:
            raise ValueError("the 'system' sender role is reserved")
        return value

    @field_validator("type")
    @classmethod
    def reject_system_type(cls, value: MessageType):
        if value == MessageType.SYSTEM:
            raise ValueError("'system' messages are generated by the server")
        return value

class MessageResponse(BaseModel):
    id: int
    order_id: int
    sender_id: str
    sender_name: Optional[str]
    sender_role: SenderRole
    text: str
    type: MessageType
    created_at: datetime

    class Config:
        from_attributes = True
