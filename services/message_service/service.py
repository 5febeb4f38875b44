"""
Conversation Log: the append-only, per-order message sequence.

Appends for one order are serialised (per-order lock in-process, row lock
on the order across processes) and every message gets a server timestamp
that is never earlier than the previous message of the same order, nor
earlier than the order's last status change. Together with the increasing
id this makes (created_at, id) a total order in which every read is a
prefix of every later read.
"""
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.locks import order_locks
from services.order_service.repository import OrderRepository
from shared.config.database import utcnow
from shared.errors import NotFound, ValidationError
from shared.observability import market_messages_appended_total
from .models import Message
from .repository import MessageRepository
from .schemas import MessageType, SenderRole

logger = structlog.get_logger(__name__)

SYSTEM_SENDER_ID = "system"
SYSTEM_SENDER_NAME = "System"
PAYMENT_CONFIRMED_BODY = "Payment received ✓"

# Types whose body is written by a person and therefore must not be blank
TEXT_REQUIRED = frozenset({MessageType.TEXT, MessageType.PAYMENT_INFO})


def prepare_text(text: str | None, message_type: MessageType) -> str:
    body = (text or "").strip()
    if body:
        return body
    if message_type in TEXT_REQUIRED:
        raise ValidationError(f"text must not be empty for '{message_type.value}' messages")
    if message_type == MessageType.PAYMENT_CONFIRMED:
        return PAYMENT_CONFIRMED_BODY
    raise ValidationError("system messages need a body")


class MessageService:
    @staticmethod
    async def append(
        db: AsyncSession,
        order_id: int,
        sender_id: str,
        sender_role: SenderRole,
        text: str,
        message_type: MessageType = MessageType.TEXT,
        sender_name: str | None = None,
        not_before: datetime | None = None,
    ):
        async with order_locks.hold(order_id):
            return await MessageService.write(
                db,
                order_id=order_id,
                sender_id=sender_id,
                sender_role=sender_role,
                text=text,
                message_type=message_type,
                sender_name=sender_name,
                not_before=not_before,
            )

    @staticmethod
    async def write(
        db: AsyncSession,
        order_id: int,
        sender_id: str,
        sender_role: SenderRole,
        text: str,
        message_type: MessageType = MessageType.TEXT,
        sender_name: str | None = None,
        not_before: datetime | None = None,
        commit: bool = True,
    ):
        """
        Append while the caller already holds the order's lock.

        With commit=False the message is only flushed, so it lands or is
        rolled back together with the rest of the caller's transaction.
        """
        message_type, sender_role = MessageType(message_type), SenderRole(sender_role)
        body = prepare_text(text, message_type)

        order = await OrderRepository.get_order_for_update(db, order_id)
        if order is None:
            raise NotFound(f"Order {order_id} not found")

        latest = await MessageRepository.latest_created_at(db, order_id)
        candidates = [utcnow(), order.updated_at, latest, not_before]
        created_at = max(ts for ts in candidates if ts is not None)

        message = Message(
            order_id=order_id,
            sender_id=sender_id,
            sender_name=sender_name,
            sender_role=sender_role.value,
            text=body,
            type=message_type.value,
            created_at=created_at,
        )
        message = await MessageRepository.create_message(db, message, commit=commit)

        market_messages_appended_total.labels(type=message_type.value).inc()
        logger.info("message_appended", order_id=order_id, message_id=message.id,
                    type=message_type.value, sender_role=sender_role.value)
        return message

    @staticmethod
    async def list_messages(db: AsyncSession, order_id: int, after_id: int | None = None):
        if await OrderRepository.get_order(db, order_id) is None:
            raise NotFound(f"Order {order_id} not found")
        return await MessageRepository.list_messages(db, order_id, after_id=after_id)
