"""
Poll-based conversation sync.

Each open conversation gets one explicit polling task. `start` returns a
handle and `stop(handle)` must be called when the view closes; a fetch that
is already in flight at that moment is allowed to finish, but its result is
thrown away.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Callable

import structlog

from services.order_service.state_machine import ActorRole, OrderStatus
from shared.config import settings
from shared.errors import CoordinatorError, NotFound, TransientIO
from .api import MarketplaceAPI
from .cache import ConversationCache, ConversationView, MessageView

logger = structlog.get_logger(__name__)


@dataclass(eq=False)
class PollHandle:
    order_id: int
    task: asyncio.Task | None = None
    closed: bool = False
    in_flight: bool = False
    wakeup: asyncio.Event = field(default_factory=asyncio.Event, repr=False)


@dataclass(frozen=True)
class ConversationSummary:
    order_id: int
    other_party_name: str
    items: str
    status: str
    last_activity: str


@dataclass
class ConversationSync:
    api: MarketplaceAPI
    cache: ConversationCache = field(default_factory=ConversationCache)
    interval: float = settings.POLL_INTERVAL_SECONDS
    on_update: Callable[[ConversationView], None] | None = None
    _handles: dict = field(default_factory=dict, init=False, repr=False)

    def view(self, order_id: int) -> ConversationView | None:
        return self.cache.view(order_id)

    async def open(self, order_id: int) -> PollHandle:
        """Load the conversation once, then keep it fresh in the background."""
        await self.refresh(order_id)
        return self.start(order_id)

    def start(self, order_id: int) -> PollHandle:
        handle = self._handles.get(order_id)
        if handle is not None and not handle.closed:
            return handle
        handle = PollHandle(order_id=order_id)
        handle.task = asyncio.create_task(self._run(handle))
        self._handles[order_id] = handle
        logger.debug("poll_started", order_id=order_id, interval=self.interval)
        return handle

    def stop(self, handle: PollHandle):
        """Tear the poll loop down; the view's local state is dropped with it."""
        handle.closed = True
        handle.wakeup.set()
        if handle.task is not None and not handle.in_flight:
            handle.task.cancel()
        if self._handles.get(handle.order_id) is handle:
            del self._handles[handle.order_id]
        self.cache.discard(handle.order_id)
        logger.debug("poll_stopped", order_id=handle.order_id)

    async def close(self):
        handles = list(self._handles.values())
        for handle in handles:
            self.stop(handle)
        tasks = [handle.task for handle in handles if handle.task is not None]
        if tasks:
            await asyncio.wait(tasks)

    async def refresh(self, order_id: int) -> bool:
        """Fetch log and status and merge them. True when the view changed."""
        messages, status = await self._fetch(order_id)
        return self._merge(order_id, messages, status)

    async def poll_once(self, order_id: int) -> bool:
        handle = self._handles.get(order_id)
        if handle is None:
            return await self.refresh(order_id)
        return await self._poll(handle)

    async def send(
        self,
        order_id: int,
        sender_id: str,
        sender_role: str,
        text: str,
        message_type: str = "text",
        sender_name: str | None = None,
    ) -> MessageView:
        # Appended locally only once the server has acknowledged it
        message = await self.api.send_message(
            order_id, sender_id, sender_role, text, message_type=message_type, sender_name=sender_name
        )
        self.cache.record_sent(order_id, message)
        return message

    async def conversations(self, role: str, party_id: str) -> list[ConversationSummary]:
        """Conversation list for one party, newest first; cancelled orders are left out."""
        role = ActorRole(role)
        if role == ActorRole.FULFILLER:
            orders = await self.api.list_orders(fulfiller_id=party_id)
        else:
            orders = await self.api.list_orders(requester_id=party_id, include_fulfiller=True)

        summaries = []
        for order in orders:
            if order["status"] == OrderStatus.CANCELLED.value:
                continue
            if role == ActorRole.FULFILLER:
                other = order.get("requester_name") or "Requester"
            else:
                other = order.get("fulfiller_name") or "Fulfiller"
            summaries.append(ConversationSummary(
                order_id=order["id"],
                other_party_name=other,
                items=", ".join(item["name"] for item in order.get("items", [])),
                status=order["status"],
                last_activity=order.get("updated_at") or order.get("created_at"),
            ))
        return summaries

    async def _fetch(self, order_id: int):
        messages = await self.api.list_messages(order_id)
        order = await self.api.get_order(order_id)
        return messages, order["status"]

    def _merge(self, order_id: int, messages, status) -> bool:
        changed = self.cache.merge(order_id, messages, status)
        if changed and self.on_update is not None:
            self.on_update(self.cache.view(order_id))
        return changed

    async def _poll(self, handle: PollHandle) -> bool:
        if handle.closed:
            return False
        handle.in_flight = True
        try:
            messages, status = await self._fetch(handle.order_id)
        finally:
            handle.in_flight = False
        if handle.closed:
            # The view closed while the request was running
            return False
        return self._merge(handle.order_id, messages, status)

    async def _run(self, handle: PollHandle):
        while not handle.closed:
            try:
                await asyncio.wait_for(handle.wakeup.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            if handle.closed:
                break
            try:
                await self._poll(handle)
            except NotFound:
                logger.warning("poll_order_gone", order_id=handle.order_id)
                handle.closed = True
            except TransientIO as exc:
                # Next cycle retries
                logger.info("poll_failed", order_id=handle.order_id, error=exc.detail)
            except CoordinatorError as exc:
                logger.warning("poll_rejected", order_id=handle.order_id, error=exc.code, detail=exc.detail)
            except Exception:
                # The loop outlives a bad cycle; the next one starts from a fresh fetch
                logger.exception("poll_crashed", order_id=handle.order_id)
