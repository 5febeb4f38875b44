import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.notification_service.service import NotificationService
from shared.config.database import utcnow
from shared.errors import InvalidTransition, NotFound, ValidationError
from shared.observability import market_order_transitions_total, market_transition_rejections_total
from .locks import order_locks
from .models import Order
from .repository import OrderRepository
from .schemas import OrderCreate
from .state_machine import (
    ACTIVE_STATUSES,
    HISTORY_STATUSES,
    ActorRole,
    OrderStatus,
    ensure_transition,
)

logger = structlog.get_logger(__name__)

# Tolerance when comparing a client-supplied total against the computed one
TOTAL_TOLERANCE = 0.005

class OrderService:
    @staticmethod
    async def create_order(db: AsyncSession, data: OrderCreate):
        total = round(sum(item.price for item in data.items), 2)
        if data.total is not None and abs(data.total - total) > TOTAL_TOLERANCE:
            raise ValidationError(f"total {data.total} does not match the line items ({total})")

        now = utcnow()
        order = Order(
            requester_id=data.requester_id,
            requester_name=data.requester_name,
            requester_email=data.requester_email,
            fulfiller_id=data.fulfiller_id,
            fulfiller_name=data.fulfiller_name,
            items=[item.model_dump() for item in data.items],
            total=total,
            special_instructions=data.special_instructions or None,
            shipping_address=data.shipping_address,
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        order = await OrderRepository.create_order(db, order)
        logger.info("order_created", order_id=order.id, requester_id=order.requester_id,
                    fulfiller_id=order.fulfiller_id, total=order.total)
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int):
        order = await OrderRepository.get_order(db, order_id)
        if order is None:
            raise NotFound(f"Order {order_id} not found")
        return order

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        fulfiller_id: str | None = None,
        requester_id: str | None = None,
        requester_email: str | None = None,
        view: str | None = None,
    ):
        statuses = None
        if view == "active":
            statuses = ACTIVE_STATUSES
        elif view == "history":
            statuses = HISTORY_STATUSES
        elif view is not None:
            raise ValidationError(f"Unknown view '{view}', expected 'active' or 'history'")
        if requester_email:
            requester_email = requester_email.strip().lower()
        return await OrderRepository.list_orders(
            db,
            fulfiller_id=fulfiller_id,
            requester_id=requester_id,
            requester_email=requester_email,
            statuses=statuses,
        )

    @staticmethod
    async def transition(db: AsyncSession, order_id: int, target: OrderStatus, actor_role: ActorRole):
        """Validate and apply one status change for an actor, then narrate it."""
        async with order_locks.hold(order_id):
            order = await OrderService.get_order(db, order_id)
            return await OrderService.apply_transition(db, order, target, actor_role)

    @staticmethod
    async def apply_transition(
        db: AsyncSession,
        order: Order,
        target: OrderStatus,
        actor_role: ActorRole,
        via_handshake: bool = False,
        **fields,
    ):
        """
        Apply a transition on an order the caller has already locked.

        The status write is committed before the Notification Generator runs;
        a notification failure never undoes it.
        """
        previous = OrderStatus(order.status)
        target, actor_role = OrderStatus(target), ActorRole(actor_role)
        try:
            ensure_transition(previous, target, actor_role, via_handshake=via_handshake)
        except InvalidTransition:
            market_transition_rejections_total.labels(reason="invalid_transition").inc()
            logger.info("transition_rejected", order_id=order.id, from_status=previous.value,
                        to_status=target.value, actor_role=actor_role.value)
            raise

        # updated_at never moves backwards, even if the clock does
        updated_at = max(utcnow(), order.updated_at)
        order_id = order.id
        committed = await OrderRepository.apply_transition(
            db, order, previous.value, target.value, updated_at, **fields
        )
        if not committed:
            market_transition_rejections_total.labels(reason="concurrent_update").inc()
            raise InvalidTransition(f"Order {order_id} changed concurrently; re-fetch before retrying")

        market_order_transitions_total.labels(from_status=previous.value, to_status=target.value).inc()
        logger.info("order_transitioned", order_id=order.id, from_status=previous.value,
                    to_status=target.value, actor_role=actor_role.value)

        await NotificationService.notify(order.id, previous, target, actor_role, committed_at=order.updated_at)
        return order

    @staticmethod
    async def restore(db: AsyncSession, order_id: int):
        """Requester re-opens a rejected or cancelled order from the history view."""
        return await OrderService.transition(db, order_id, OrderStatus.PENDING, ActorRole.REQUESTER)

    @staticmethod
    async def delete_order(db: AsyncSession, order_id: int):
        deleted = await OrderRepository.delete_order(db, order_id)
        if not deleted:
            raise NotFound(f"Order {order_id} not found")
        logger.warning("order_deleted", order_id=order_id)
