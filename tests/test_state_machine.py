import itertools

import pytest

from services.order_service.state_machine import (
    ACTIVE_STATUSES,
    HISTORY_STATUSES,
    TRANSITIONS,
    ActorRole,
    OrderStatus,
    allowed_targets,
    ensure_transition,
    is_active,
    partition,
    status_label,
)
from shared.errors import InvalidTransition

S = OrderStatus

EXPECTED_EDGES = {
    (S.PENDING, S.ACCEPTED, ActorRole.FULFILLER),
    (S.PENDING, S.REJECTED, ActorRole.FULFILLER),
    (S.ACCEPTED, S.PAYMENT_PENDING, ActorRole.FULFILLER),
    (S.PAYMENT_PENDING, S.ACCEPTED, ActorRole.FULFILLER),
    (S.ACCEPTED, S.SHIPPED, ActorRole.FULFILLER),
    (S.ACCEPTED, S.CANCELLED, ActorRole.FULFILLER),
    (S.PAYMENT_PENDING, S.CANCELLED, ActorRole.FULFILLER),
    (S.SHIPPED, S.COMPLETED, ActorRole.FULFILLER),
    (S.REJECTED, S.PENDING, ActorRole.REQUESTER),
    (S.CANCELLED, S.PENDING, ActorRole.REQUESTER),
}


def test_table_matches_documented_edges():
    assert {(t.source, t.target, t.actor) for t in TRANSITIONS.values()} == EXPECTED_EDGES


@pytest.mark.parametrize(
    "current,target,actor",
    list(itertools.product(OrderStatus, OrderStatus, ActorRole)),
)
def test_ensure_transition_accepts_only_table_edges(current, target, actor):
    edge = (current, target, actor)
    handshake_only = (current, target) == (S.ACCEPTED, S.PAYMENT_PENDING)
    if edge in EXPECTED_EDGES and not handshake_only:
        assert ensure_transition(current, target, actor).target == target
    else:
        with pytest.raises(InvalidTransition):
            ensure_transition(current, target, actor)


def test_no_self_edges():
    for status in OrderStatus:
        for actor in ActorRole:
            with pytest.raises(InvalidTransition):
                ensure_transition(status, status, actor)


def test_payment_pending_entry_requires_handshake():
    with pytest.raises(InvalidTransition, match="payment handshake"):
        ensure_transition(S.ACCEPTED, S.PAYMENT_PENDING, ActorRole.FULFILLER)
    assert ensure_transition(S.ACCEPTED, S.PAYMENT_PENDING, ActorRole.FULFILLER, via_handshake=True)


def test_handshake_may_confirm_for_requester_policy():
    # Role policy for handshake edges is decided by the handshake, not the table
    edge = ensure_transition(S.PAYMENT_PENDING, S.ACCEPTED, ActorRole.REQUESTER, via_handshake=True)
    assert edge.target == S.ACCEPTED
    with pytest.raises(InvalidTransition):
        ensure_transition(S.ACCEPTED, S.SHIPPED, ActorRole.REQUESTER, via_handshake=True)


def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        ensure_transition("pending", "no-show", ActorRole.FULFILLER)


def test_only_pending_reachable_from_terminal_failures():
    for status in (S.REJECTED, S.CANCELLED):
        assert allowed_targets(status, ActorRole.REQUESTER) == {S.PENDING}
        assert allowed_targets(status, ActorRole.FULFILLER) == frozenset()


def test_completed_is_terminal():
    for actor in ActorRole:
        assert allowed_targets(S.COMPLETED, actor) == frozenset()


def test_allowed_targets_hides_handshake_edges_by_default():
    assert allowed_targets(S.ACCEPTED, ActorRole.FULFILLER) == {S.SHIPPED, S.CANCELLED}
    assert S.PAYMENT_PENDING in allowed_targets(S.ACCEPTED, ActorRole.FULFILLER, include_handshake=True)


def test_partition():
    assert ACTIVE_STATUSES | HISTORY_STATUSES == set(OrderStatus)
    assert not ACTIVE_STATUSES & HISTORY_STATUSES
    assert is_active("payment_pending")
    assert not is_active(S.REJECTED)

    class Row:
        def __init__(self, status):
            self.status = status

    rows = [Row("pending"), Row("completed"), Row("shipped"), Row("cancelled")]
    active, history = partition(rows)
    assert [r.status for r in active] == ["pending", "shipped"]
    assert [r.status for r in history] == ["completed", "cancelled"]


def test_status_labels_cover_every_status():
    assert status_label("payment_pending") == "Payment pending"
    assert all(status_label(s) for s in OrderStatus)
