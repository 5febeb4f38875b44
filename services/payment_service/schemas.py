from typing import Optional

from pydantic import BaseModel, Field

from services.message_service.schemas import MessageResponse
from services.order_service.schemas import OrderResponse
from services.order_service.state_machine import ActorRole

class PaymentInfoRequest(BaseModel):
    actor_id: str = Field(min_length=1)
    actor_name: Optional[str] = None
    instructions: str

class PaymentConfirmationRequest(BaseModel):
    actor_id: str = Field(min_length=1)
    actor_name: Optional[str] = None
    actor_role: ActorRole = ActorRole.FULFILLER
    text: Optional[str] = None # defaults to the fixed acknowledgement

class HandshakeResponse(BaseModel):
    order: OrderResponse
    message: MessageResponse

    class Config:
        from_attributes = True
