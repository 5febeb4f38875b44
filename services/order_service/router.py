from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from services.payment_service.service import PaymentHandshakeService
from shared.config.database import get_db
from shared.errors import ValidationError
from shared.security.dependencies import verify_admin_api_key, verify_internal_api_key
from .schemas import FulfillerInfo, OrderCreate, OrderResponse, StatusUpdate, TransitionResponse
from .service import OrderService
from .state_machine import OrderStatus, ensure_transition

# THIS PROTECTS THE ENTIRE SERVICE
router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "order", "status": "running"}


def _to_response(order, include_fulfiller: bool = False) -> OrderResponse:
    response = OrderResponse.model_validate(order)
    if include_fulfiller:
        info = FulfillerInfo(id=order.fulfiller_id, name=order.fulfiller_name)
        response = response.model_copy(update={"fulfiller_info": info})
    return response


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(order: OrderCreate, db: AsyncSession = Depends(get_db)):
    return await OrderService.create_order(db, order)

@router.get("/", response_model=list[OrderResponse])
async def list_orders(
    fulfiller_id: str | None = Query(default=None),
    requester_id: str | None = Query(default=None),
    requester_email: str | None = Query(default=None),
    view: Literal["active", "history"] | None = Query(default=None),
    include_fulfiller: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
):
    orders = await OrderService.list_orders(
        db,
        fulfiller_id=fulfiller_id,
        requester_id=requester_id,
        requester_email=requester_email,
        view=view,
    )
    return [_to_response(order, include_fulfiller) for order in orders]

@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    include_fulfiller: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService.get_order(db, order_id)
    return _to_response(order, include_fulfiller)

@router.patch("/{order_id}/status", response_model=TransitionResponse)
async def update_status(order_id: int, update: StatusUpdate, db: AsyncSession = Depends(get_db)):
    if update.status == OrderStatus.PAYMENT_PENDING:
        # Entering payment_pending is the first handshake step, never a bare status flip.
        # Non-edges are reported as such before the handshake looks at instructions.
        order = await OrderService.get_order(db, order_id)
        ensure_transition(order.status, update.status, update.actor_role, via_handshake=True)
        if not update.payment_instructions:
            raise ValidationError("payment_instructions are required to request payment")
        result = await PaymentHandshakeService.send_payment_info(
            db,
            order_id,
            actor_id=update.actor_id or update.actor_role.value,
            actor_name=update.actor_name,
            instructions=update.payment_instructions,
            actor_role=update.actor_role,
        )
        order = result.order
    else:
        if update.payment_instructions:
            raise ValidationError("payment_instructions only accompany a move to 'payment_pending'")
        order = await OrderService.transition(db, order_id, update.status, update.actor_role)
    return TransitionResponse(ok=True, order=_to_response(order))

@router.post("/{order_id}/restore", response_model=TransitionResponse)
async def restore_order(order_id: int, db: AsyncSession = Depends(get_db)):
    order = await OrderService.restore(db, order_id)
    return TransitionResponse(ok=True, order=_to_response(order))

# Administrative only; the lifecycle never deletes orders
@router.delete("/{order_id}", dependencies=[Depends(verify_admin_api_key)])
async def delete_order(order_id: int, db: AsyncSession = Depends(get_db)):
    await OrderService.delete_order(db, order_id)
    return {"ok": True, "deleted": True}
