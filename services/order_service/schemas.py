from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from .state_machine import ActorRole, OrderStatus, is_active, status_label as label_for

class LineItem(BaseModel):
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    assignee: Optional[str] = None

class OrderCreate(BaseModel):
    requester_id: str = Field(min_length=1)
    requester_name: str = Field(min_length=1)
    requester_email: Optional[str] = None
    fulfiller_id: str = Field(min_length=1)
    fulfiller_name: Optional[str] = None
    items: List[LineItem] = Field(min_length=1)
    total: Optional[float] = None # checked against the items when supplied
    special_instructions: Optional[str] = None
    shipping_address: Optional[dict[str, Any]] = None

    @field_validator("requester_email")
    @classmethod
    def normalise_email(cls, value: Optional[str]):
        if value is None:
            return None
        return value.strip().lower() or None

class StatusUpdate(BaseModel):
    status: OrderStatus
    actor_role: ActorRole
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    payment_instructions: Optional[str] = None # only meaningful for 'payment_pending'

class FulfillerInfo(BaseModel):
    id: str
    name: Optional[str] = None

class OrderResponse(BaseModel):
    id: int
    requester_id: str
    requester_name: str
    requester_email: Optional[str]
    fulfiller_id: str
    fulfiller_name: Optional[str]
    items: List[LineItem]
    total: float
    special_instructions: Optional[str]
    shipping_address: Optional[dict[str, Any]]
    status: OrderStatus
    payment_instructions: Optional[str]
    created_at: datetime
    updated_at: datetime
    fulfiller_info: Optional[FulfillerInfo] = None

    @computed_field
    @property
    def active(self) -> bool:
        return is_active(self.status)

    @computed_field
    @property
    def status_label(self) -> str:
        return label_for(self.status)

    class Config:
        from_attributes = True

class TransitionResponse(BaseModel):
    ok: bool
    order: OrderResponse
