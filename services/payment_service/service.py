"""
Payment handshake: two typed messages on the conversation log, each gating
one edge of the order state machine.

  send payment info  (accepted)        -> payment_info message      -> payment_pending
  confirm payment    (payment_pending) -> payment_confirmed message -> accepted

Each step is one database transaction: the order row is locked, the
precondition checked, the message inserted and the status changed, then a
single commit. Either the message and the status change both land or
neither does. The in-process order lock keeps steps on the same order from
interleaving with other transitions before they reach the database.
"""
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.message_service.models import Message
from services.message_service.schemas import MessageType, SenderRole
from services.message_service.service import PAYMENT_CONFIRMED_BODY, MessageService
from services.order_service.locks import order_locks
from services.order_service.models import Order
from services.order_service.repository import OrderRepository
from services.order_service.service import OrderService
from services.order_service.state_machine import ActorRole, OrderStatus
from shared.config import settings
from shared.errors import InvalidHandshakeState, InvalidTransition, NotFound, ValidationError
from shared.observability import market_payment_handshake_total, market_transition_rejections_total

logger = structlog.get_logger(__name__)


@dataclass
class HandshakeResult:
    order: Order
    message: Message


async def _lock_order(db: AsyncSession, order_id: int) -> Order:
    order = await OrderRepository.get_order_for_update(db, order_id)
    if order is None:
        raise NotFound(f"Order {order_id} not found")
    return order


def _require_status(order: Order, expected: OrderStatus, action: str):
    if order.status != expected.value:
        market_transition_rejections_total.labels(reason="invalid_handshake_state").inc()
        raise InvalidHandshakeState(
            f"Cannot {action} while order {order.id} is '{order.status}', expected '{expected.value}'"
        )


class PaymentHandshakeService:
    @staticmethod
    async def send_payment_info(
        db: AsyncSession,
        order_id: int,
        actor_id: str,
        instructions: str,
        actor_role: ActorRole = ActorRole.FULFILLER,
        actor_name: str | None = None,
    ) -> HandshakeResult:
        actor_role = ActorRole(actor_role)
        instructions = (instructions or "").strip()
        if not instructions:
            raise ValidationError("payment instructions must not be empty")
        if actor_role != ActorRole.FULFILLER:
            raise InvalidTransition("Only the fulfiller can send payment information")

        async with order_locks.hold(order_id):
            try:
                order = await _lock_order(db, order_id)
                _require_status(order, OrderStatus.ACCEPTED, "send payment info")

                message = await MessageService.write(
                    db,
                    order_id=order_id,
                    sender_id=actor_id,
                    sender_name=actor_name,
                    sender_role=SenderRole(actor_role.value),
                    text=instructions,
                    message_type=MessageType.PAYMENT_INFO,
                    commit=False,
                )
                # Commits the message together with the status change
                order = await OrderService.apply_transition(
                    db,
                    order,
                    OrderStatus.PAYMENT_PENDING,
                    actor_role,
                    via_handshake=True,
                    payment_instructions=instructions,
                )
            except Exception:
                await db.rollback()
                raise

        market_payment_handshake_total.labels(step="payment_info").inc()
        logger.info("payment_info_sent", order_id=order_id, message_id=message.id)
        return HandshakeResult(order=order, message=message)

    @staticmethod
    async def confirm_payment(
        db: AsyncSession,
        order_id: int,
        actor_id: str,
        actor_role: ActorRole = ActorRole.FULFILLER,
        actor_name: str | None = None,
        text: str | None = None,
    ) -> HandshakeResult:
        actor_role = ActorRole(actor_role)
        # Who may confirm is deployment policy; the reference setup allows only the fulfiller
        if actor_role.value not in settings.PAYMENT_CONFIRMATION_ROLES:
            raise InvalidTransition(f"A {actor_role.value} cannot confirm payments")

        async with order_locks.hold(order_id):
            try:
                order = await _lock_order(db, order_id)
                _require_status(order, OrderStatus.PAYMENT_PENDING, "confirm payment")

                message = await MessageService.write(
                    db,
                    order_id=order_id,
                    sender_id=actor_id,
                    sender_name=actor_name,
                    sender_role=SenderRole(actor_role.value),
                    text=text or PAYMENT_CONFIRMED_BODY,
                    message_type=MessageType.PAYMENT_CONFIRMED,
                    commit=False,
                )
                order = await OrderService.apply_transition(
                    db, order, OrderStatus.ACCEPTED, actor_role, via_handshake=True
                )
            except Exception:
                await db.rollback()
                raise

        market_payment_handshake_total.labels(step="payment_confirmed").inc()
        logger.info("payment_confirmed", order_id=order_id, message_id=message.id)
        return HandshakeResult(order=order, message=message)
