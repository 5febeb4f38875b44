"""
Notification Generator.

After the state machine commits a transition it calls `notify`, which
appends a system-authored message narrating the change. Status correctness
wins over narrative completeness: a failed append is logged and retried in
the background, it never reaches the caller of the transition.
"""
import asyncio
from datetime import datetime

import structlog

from services.message_service.schemas import MessageType, SenderRole
from services.message_service.service import SYSTEM_SENDER_ID, SYSTEM_SENDER_NAME, MessageService
from shared.config import settings
from shared.config.database import AsyncSessionLocal
from shared.errors import NotFound
from shared.observability import market_notification_failures_total
from .templates import render_notification

logger = structlog.get_logger(__name__)

# Background retries still in flight; drained on shutdown
pending_retries: set = set()


class NotificationService:
    # Notifications use their own session so a failure leaves the caller's untouched
    session_factory = AsyncSessionLocal

    @staticmethod
    async def notify(order_id: int, previous, new, actor_role, committed_at: datetime | None = None):
        """
        Append the system message for (previous -> new).

        Runs while the caller holds the order lock, so it writes without
        re-acquiring it. Returns the message, or None when the edge has no
        template or the append failed and was handed to the retry loop.
        """
        text = render_notification(previous, new, actor_role)
        if text is None:
            return None
        try:
            async with NotificationService.session_factory() as db:
                return await MessageService.write(
                    db,
                    order_id=order_id,
                    sender_id=SYSTEM_SENDER_ID,
                    sender_name=SYSTEM_SENDER_NAME,
                    sender_role=SenderRole.SYSTEM,
                    text=text,
                    message_type=MessageType.SYSTEM,
                    not_before=committed_at,
                )
        except Exception as exc:
            # A failing notification MUST NOT fail the committed transition
            market_notification_failures_total.labels(stage="initial").inc()
            logger.error("notification_failed", order_id=order_id, error=str(exc))
            NotificationService.schedule_retry(order_id, text, committed_at)
            return None

    @staticmethod
    def schedule_retry(order_id: int, text: str, committed_at: datetime | None = None):
        task = asyncio.create_task(_retry_notification(order_id, text, committed_at))
        pending_retries.add(task)
        task.add_done_callback(pending_retries.discard)
        return task

    @staticmethod
    async def drain(timeout: float | None = None):
        """Wait for all scheduled retries to finish."""
        while pending_retries:
            tasks = list(pending_retries)
            done, still_pending = await asyncio.wait(tasks, timeout=timeout)
            if still_pending:
                logger.warning("notification_retries_unfinished", count=len(still_pending))
                for task in still_pending:
                    task.cancel()
                return


async def _retry_notification(order_id: int, text: str, committed_at: datetime | None):
    delay = settings.NOTIFICATION_RETRY_DELAY_SECONDS
    for attempt in range(1, settings.NOTIFICATION_RETRY_ATTEMPTS + 1):
        await asyncio.sleep(delay)
        try:
            async with NotificationService.session_factory() as db:
                message = await MessageService.append(
                    db,
                    order_id=order_id,
                    sender_id=SYSTEM_SENDER_ID,
                    sender_name=SYSTEM_SENDER_NAME,
                    sender_role=SenderRole.SYSTEM,
                    text=text,
                    message_type=MessageType.SYSTEM,
                    not_before=committed_at,
                )
            logger.info("notification_delivered", order_id=order_id, attempt=attempt, message_id=message.id)
            return message
        except NotFound:
            logger.warning("notification_dropped", order_id=order_id, reason="order no longer exists")
            return None
        except Exception as exc:
            market_notification_failures_total.labels(stage="retry").inc()
            logger.warning("notification_retry_failed", order_id=order_id, attempt=attempt, error=str(exc))
            delay *= 2

    market_notification_failures_total.labels(stage="abandoned").inc()
    logger.critical("notification_abandoned", order_id=order_id, text=text,
                    detail="Manual intervention may be required")
    return None
