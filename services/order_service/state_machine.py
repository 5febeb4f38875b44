"""
Order lifecycle state machine.

The transition table below is the only place that decides which status
changes are legal and which actor may perform them. Views, the API and the
payment handshake all ask this module instead of comparing status strings.

    pending --accept--> accepted --send payment info--> payment_pending
                          ^  |                               |
                          |  +--ship--> shipped --complete--> completed
                          +------------confirm payment-------+

    pending -> rejected; accepted|payment_pending -> cancelled
    rejected|cancelled -> pending   (requester restore)
"""
from dataclasses import dataclass
from enum import Enum

from shared.errors import InvalidTransition


class OrderStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PAYMENT_PENDING = "payment_pending"
    SHIPPED = "shipped"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ActorRole(str, Enum):
    REQUESTER = "requester"
    FULFILLER = "fulfiller"


@dataclass(frozen=True)
class Transition:
    source: OrderStatus
    target: OrderStatus
    actor: ActorRole
    handshake_only: bool = False


_FULFILLER = ActorRole.FULFILLER
_REQUESTER = ActorRole.REQUESTER

TRANSITIONS: dict[tuple[OrderStatus, OrderStatus], Transition] = {
    (t.source, t.target): t
    for t in (
        Transition(OrderStatus.PENDING, OrderStatus.ACCEPTED, _FULFILLER),
        Transition(OrderStatus.PENDING, OrderStatus.REJECTED, _FULFILLER),
        Transition(OrderStatus.ACCEPTED, OrderStatus.PAYMENT_PENDING, _FULFILLER, handshake_only=True),
        Transition(OrderStatus.PAYMENT_PENDING, OrderStatus.ACCEPTED, _FULFILLER),
        Transition(OrderStatus.ACCEPTED, OrderStatus.SHIPPED, _FULFILLER),
        Transition(OrderStatus.ACCEPTED, OrderStatus.CANCELLED, _FULFILLER),
        Transition(OrderStatus.PAYMENT_PENDING, OrderStatus.CANCELLED, _FULFILLER),
        Transition(OrderStatus.SHIPPED, OrderStatus.COMPLETED, _FULFILLER),
        Transition(OrderStatus.REJECTED, OrderStatus.PENDING, _REQUESTER),
        Transition(OrderStatus.CANCELLED, OrderStatus.PENDING, _REQUESTER),
    )
}

ACTIVE_STATUSES = frozenset({
    OrderStatus.PENDING,
    OrderStatus.ACCEPTED,
    OrderStatus.PAYMENT_PENDING,
    OrderStatus.SHIPPED,
})
HISTORY_STATUSES = frozenset(OrderStatus) - ACTIVE_STATUSES

# Edges the payment handshake drives; its own policy decides who may trigger them
HANDSHAKE_EDGES = frozenset({
    (OrderStatus.ACCEPTED, OrderStatus.PAYMENT_PENDING),
    (OrderStatus.PAYMENT_PENDING, OrderStatus.ACCEPTED),
})

STATUS_LABELS = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.ACCEPTED: "Accepted",
    OrderStatus.PAYMENT_PENDING: "Payment pending",
    OrderStatus.SHIPPED: "Shipped",
    OrderStatus.COMPLETED: "Completed",
    OrderStatus.REJECTED: "Rejected",
    OrderStatus.CANCELLED: "Cancelled",
}


def is_active(status) -> bool:
    """True while the order is still progressing, False once it is history."""
    return OrderStatus(status) in ACTIVE_STATUSES


def partition(orders):
    """Split orders into (active, history) lists, keeping their order."""
    active, history = [], []
    for order in orders:
        (active if is_active(order.status) else history).append(order)
    return active, history


def status_label(status) -> str:
    return STATUS_LABELS[OrderStatus(status)]


def allowed_targets(status, actor, include_handshake: bool = False) -> frozenset:
    """Statuses `actor` may move an order in `status` to."""
    status, actor = OrderStatus(status), ActorRole(actor)
    return frozenset(
        t.target
        for t in TRANSITIONS.values()
        if t.source == status and t.actor == actor and (include_handshake or not t.handshake_only)
    )


def ensure_transition(current, target, actor, via_handshake: bool = False) -> Transition:
    """Return the table edge for (current -> target) or raise InvalidTransition."""
    current, target, actor = OrderStatus(current), OrderStatus(target), ActorRole(actor)
    edge = TRANSITIONS.get((current, target))
    if edge is None:
        raise InvalidTransition(f"No transition from '{current.value}' to '{target.value}'")
    handshake_authorised = via_handshake and (current, target) in HANDSHAKE_EDGES
    if edge.actor != actor and not handshake_authorised:
        raise InvalidTransition(
            f"A {actor.value} cannot move an order from '{current.value}' to '{target.value}'"
        )
    if edge.handshake_only and not via_handshake:
        raise InvalidTransition(
            f"'{current.value}' -> '{target.value}' happens only through the payment handshake"
        )
    return edge
