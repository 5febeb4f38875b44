import pytest
from prometheus_client import REGISTRY

from services.message_service.repository import MessageRepository
from services.message_service.service import MessageService
from services.notification_service.service import NotificationService
from services.notification_service.templates import TRANSITION_TEMPLATES, render_notification
from services.order_service.service import OrderService
from services.order_service.state_machine import TRANSITIONS, ActorRole, OrderStatus
from services.payment_service.service import PaymentHandshakeService
from tests.conftest import FULFILLER

S = OrderStatus


def failures(stage: str) -> float:
    return REGISTRY.get_sample_value("market_notification_failures_total", {"stage": stage}) or 0.0


def test_every_edge_but_payment_request_has_a_sentence():
    narrated = set(TRANSITION_TEMPLATES)
    assert narrated == set(TRANSITIONS) - {(S.ACCEPTED, S.PAYMENT_PENDING)}
    assert render_notification(S.ACCEPTED, S.PAYMENT_PENDING) is None
    assert render_notification("pending", "accepted") == "Request accepted."


def test_templates_are_plain_sentences():
    for text in TRANSITION_TEMPLATES.values():
        assert text and text.endswith(".")


@pytest.fixture
def flaky_insert(monkeypatch):
    """Make the next `failures` message inserts raise, then behave normally."""
    original = MessageRepository.create_message
    state = {"remaining": 0}

    async def create_message(db, message, **kwargs):
        if state["remaining"] > 0:
            state["remaining"] -= 1
            raise RuntimeError("message store unavailable")
        return await original(db, message, **kwargs)

    monkeypatch.setattr(MessageRepository, "create_message", staticmethod(create_message))

    def arm(failures: int):
        state["remaining"] = failures
    return arm


async def test_transition_writes_system_message(db, make_order):
    order = await make_order()
    order = await OrderService.transition(db, order.id, S.ACCEPTED, ActorRole.FULFILLER)
    [message] = await MessageService.list_messages(db, order.id)
    assert message.type == "system"
    assert message.sender_role == "system"
    assert message.sender_id == "system"
    assert message.text == "Request accepted."
    assert message.created_at >= order.updated_at


async def test_failed_notification_does_not_fail_transition(db, make_order, flaky_insert):
    order = await make_order()
    before = failures("initial")
    flaky_insert(1)

    order = await OrderService.transition(db, order.id, S.ACCEPTED, ActorRole.FULFILLER)
    assert order.status == "accepted"
    assert (await OrderService.get_order(db, order.id)).status == "accepted"
    assert failures("initial") == before + 1

    await NotificationService.drain(timeout=5)
    [message] = await MessageService.list_messages(db, order.id)
    assert message.text == "Request accepted."
    assert message.created_at >= order.updated_at


async def test_notification_abandoned_after_all_attempts(db, make_order, flaky_insert):
    order = await make_order()
    before = failures("abandoned")
    flaky_insert(100)

    order = await OrderService.transition(db, order.id, S.REJECTED, ActorRole.FULFILLER)
    assert order.status == "rejected"
    await NotificationService.drain(timeout=5)

    flaky_insert(0)
    assert await MessageService.list_messages(db, order.id) == []
    assert failures("abandoned") == before + 1


async def test_retry_for_deleted_order_is_dropped(db, make_order, flaky_insert):
    order = await make_order()
    before = failures("abandoned")
    flaky_insert(1)
    await OrderService.transition(db, order.id, S.ACCEPTED, ActorRole.FULFILLER)
    await OrderService.delete_order(db, order.id)

    await NotificationService.drain(timeout=5)
    assert failures("abandoned") == before


async def test_payment_request_is_narrated_by_payment_info_only(db, make_order):
    order = await make_order()
    await OrderService.transition(db, order.id, S.ACCEPTED, ActorRole.FULFILLER)
    await PaymentHandshakeService.send_payment_info(db, order.id, FULFILLER, "IBAN DE00 1234")
    log = await MessageService.list_messages(db, order.id)
    assert [m.type for m in log] == ["system", "payment_info"]
