from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class MessageView:
    id: int
    order_id: int
    sender_id: str
    sender_role: str
    text: str
    type: str
    created_at: str
    sender_name: str | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "MessageView":
        return cls(
            id=payload["id"],
            order_id=payload["order_id"],
            sender_id=payload["sender_id"],
            sender_role=payload["sender_role"],
            text=payload["text"],
            type=payload["type"],
            created_at=payload["created_at"],
            sender_name=payload.get("sender_name"),
        )


@dataclass(frozen=True)
class ConversationView:
    """What a UI renders for one open conversation: the log plus order status."""

    order_id: int
    messages: tuple[MessageView, ...] = ()
    high_watermark: int | None = None
    status: str | None = None


class ConversationCache:
    """
    Client-local state, one immutable ConversationView per order id.

    `merge` is the only place a view is replaced. Views are never mutated in
    place, so a caller holding a view can compare it by identity to know
    whether anything changed.
    """

    def __init__(self):
        self._views: dict[int, ConversationView] = {}

    def view(self, order_id: int) -> ConversationView | None:
        return self._views.get(order_id)

    def discard(self, order_id: int):
        self._views.pop(order_id, None)

    def merge(self, order_id: int, messages: Sequence[MessageView], status: str | None = None) -> bool:
        """
        Fold a server read into the view. Returns True when the view changed.

        The log is append-only, so an equal tail id and an equal length mean
        the read holds exactly what is already rendered. The length check
        catches messages that landed between a send and its acknowledgement.
        A read that is behind the rendered view is dropped, so the view and
        its watermark only move forward.
        """
        current = self._views.get(order_id)
        if current is None:
            current = ConversationView(order_id=order_id)

        last_id = messages[-1].id if messages else None
        if self._is_stale(current, last_id, len(messages)):
            # Fetched before a newer view was rendered, e.g. before a send was acknowledged
            return False
        log_unchanged = last_id == current.high_watermark and len(messages) == len(current.messages)
        status_unchanged = status is None or status == current.status
        if log_unchanged and status_unchanged and order_id in self._views:
            return False

        self._views[order_id] = ConversationView(
            order_id=order_id,
            messages=current.messages if log_unchanged else tuple(messages),
            high_watermark=current.high_watermark if log_unchanged else last_id,
            status=current.status if status is None else status,
        )
        return True

    @staticmethod
    def _is_stale(current: ConversationView, last_id: int | None, length: int) -> bool:
        if length < len(current.messages):
            return True
        return current.high_watermark is not None and (last_id is None or last_id < current.high_watermark)

    def record_sent(self, order_id: int, message: MessageView) -> ConversationView:
        """Add a message the server just acknowledged, unless a poll already brought it."""
        current = self._views.get(order_id) or ConversationView(order_id=order_id)
        if any(existing.id == message.id for existing in current.messages):
            return current
        self.merge(order_id, current.messages + (message,))
        return self._views[order_id]
