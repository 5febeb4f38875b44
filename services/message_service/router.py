"""
Message API. Plain text messages are appended directly; payment_info and
payment_confirmed messages are handshake steps and go through the payment
handshake so the order status moves with them.
"""
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.state_machine import ActorRole
from services.payment_service.service import PaymentHandshakeService
from shared.config import settings
from shared.config.database import get_db
from shared.security import limiter
from shared.security.dependencies import verify_internal_api_key

from .schemas import MessageCreate, MessageResponse, MessageType
from .service import MessageService

router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "message", "status": "running"}


@router.post("/", response_model=MessageResponse)
@limiter.limit(settings.MESSAGE_RATE_LIMIT)
async def create_message(
    request: Request,                          # REQUIRED: slowapi reads the caller key from it
    payload: MessageCreate,
    db: AsyncSession = Depends(get_db),
):
    if payload.type == MessageType.PAYMENT_INFO:
        result = await PaymentHandshakeService.send_payment_info(
            db,
            payload.order_id,
            actor_id=payload.sender_id,
            actor_name=payload.sender_name,
            instructions=payload.text,
            actor_role=ActorRole(payload.sender_role.value),
        )
        return result.message

    if payload.type == MessageType.PAYMENT_CONFIRMED:
        result = await PaymentHandshakeService.confirm_payment(
            db,
            payload.order_id,
            actor_id=payload.sender_id,
            actor_name=payload.sender_name,
            actor_role=ActorRole(payload.sender_role.value),
            text=payload.text or None,
        )
        return result.message

    return await MessageService.append(
        db,
        order_id=payload.order_id,
        sender_id=payload.sender_id,
        sender_name=payload.sender_name,
        sender_role=payload.sender_role,
        text=payload.text,
        message_type=payload.type,
    )


@router.get("/", response_model=list[MessageResponse])
async def list_messages(
    order_id: int = Query(...),
    after_id: int | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    return await MessageService.list_messages(db, order_id, after_id=after_id)
