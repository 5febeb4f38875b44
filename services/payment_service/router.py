"""
Payment handshake endpoints. Both require X-Internal-API-Key; the acting
party is identified by the calling collaborator in the request body.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from services.message_service.schemas import MessageResponse
from services.order_service.schemas import OrderResponse
from shared.config.database import get_db
from shared.security.dependencies import verify_internal_api_key

from .schemas import HandshakeResponse, PaymentConfirmationRequest, PaymentInfoRequest
from .service import PaymentHandshakeService

router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "payment", "status": "running"}


def _to_response(result) -> HandshakeResponse:
    return HandshakeResponse(
        order=OrderResponse.model_validate(result.order),
        message=MessageResponse.model_validate(result.message),
    )


@router.post("/{order_id}/payment-info", response_model=HandshakeResponse)
async def send_payment_info(
    order_id: int, payload: PaymentInfoRequest, db: AsyncSession = Depends(get_db)
):
    result = await PaymentHandshakeService.send_payment_info(
        db,
        order_id,
        actor_id=payload.actor_id,
        actor_name=payload.actor_name,
        instructions=payload.instructions,
    )
    return _to_response(result)


@router.post("/{order_id}/confirmation", response_model=HandshakeResponse)
async def confirm_payment(
    order_id: int, payload: PaymentConfirmationRequest, db: AsyncSession = Depends(get_db)
):
    result = await PaymentHandshakeService.confirm_payment(
        db,
        order_id,
        actor_id=payload.actor_id,
        actor_role=payload.actor_role,
        actor_name=payload.actor_name,
        text=payload.text,
    )
    return _to_response(result)
