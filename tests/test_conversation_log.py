import asyncio

import pytest

from services.message_service.schemas import MessageType, SenderRole
from services.message_service.service import MessageService
from shared.errors import NotFound, ValidationError
from tests.conftest import FULFILLER, REQUESTER


async def post_text(client, order_id, sender_id, role, text):
    return await client.post("/messages/", json={
        "order_id": order_id,
        "sender_id": sender_id,
        "sender_name": sender_id.title(),
        "sender_role": role,
        "text": text,
    })


async def test_append_assigns_id_and_timestamp(client, make_order):
    order = await make_order()
    resp = await post_text(client, order.id, REQUESTER, "requester", "  Hello there  ")
    assert resp.status_code == 200
    message = resp.json()
    assert message["id"] > 0
    assert message["created_at"]
    assert message["text"] == "Hello there"
    assert message["type"] == "text"
    assert message["sender_role"] == "requester"


async def test_empty_text_is_rejected(client, make_order):
    order = await make_order()
    resp = await post_text(client, order.id, REQUESTER, "requester", "   ")
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_error"


@pytest.mark.parametrize("field,value", [("sender_role", "system"), ("type", "system"), ("type", "sticker")])
async def test_reserved_and_unknown_values_rejected_at_boundary(client, make_order, field, value):
    order = await make_order()
    payload = {"order_id": order.id, "sender_id": REQUESTER, "sender_role": "requester", "text": "hi"}
    payload[field] = value
    resp = await client.post("/messages/", json=payload)
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_error"


async def test_unknown_order(client):
    resp = await post_text(client, 404, REQUESTER, "requester", "anyone?")
    assert resp.status_code == 404
    listing = await client.get("/messages/", params={"order_id": 404})
    assert listing.status_code == 404


async def test_list_is_prefix_consistent(client, make_order):
    order = await make_order()
    for i in range(3):
        await post_text(client, order.id, REQUESTER, "requester", f"first {i}")
    first_read = (await client.get("/messages/", params={"order_id": order.id})).json()

    await post_text(client, order.id, FULFILLER, "fulfiller", "reply")
    await post_text(client, order.id, REQUESTER, "requester", "thanks")
    second_read = (await client.get("/messages/", params={"order_id": order.id})).json()

    assert second_read[: len(first_read)] == first_read
    assert [m["text"] for m in second_read[len(first_read):]] == ["reply", "thanks"]
    keys = [(m["created_at"], m["id"]) for m in second_read]
    assert keys == sorted(keys)
    assert len(set(keys)) == len(keys)


async def test_after_id_returns_only_the_tail(client, make_order):
    order = await make_order()
    first = (await post_text(client, order.id, REQUESTER, "requester", "one")).json()
    await post_text(client, order.id, FULFILLER, "fulfiller", "two")
    tail = (await client.get("/messages/", params={"order_id": order.id, "after_id": first["id"]})).json()
    assert [m["text"] for m in tail] == ["two"]


async def test_concurrent_appends_both_persist(client, make_order):
    order = await make_order()
    responses = await asyncio.gather(
        post_text(client, order.id, REQUESTER, "requester", "from requester"),
        post_text(client, order.id, FULFILLER, "fulfiller", "from fulfiller"),
    )
    assert all(r.status_code == 200 for r in responses)

    log = (await client.get("/messages/", params={"order_id": order.id})).json()
    assert {m["text"] for m in log} == {"from requester", "from fulfiller"}
    keys = [(m["created_at"], m["id"]) for m in log]
    assert keys == sorted(keys)


async def test_messages_of_other_orders_stay_separate(client, make_order):
    a = await make_order()
    b = await make_order()
    await post_text(client, a.id, REQUESTER, "requester", "for a")
    await post_text(client, b.id, REQUESTER, "requester", "for b")
    log_a = (await client.get("/messages/", params={"order_id": a.id})).json()
    assert [m["text"] for m in log_a] == ["for a"]


async def test_timestamps_never_go_backwards(db, make_order):
    order = await make_order()
    first = await MessageService.append(db, order.id, REQUESTER, SenderRole.REQUESTER, "one")
    # A message whose floor lies in the future pulls later messages along with it
    future = first.created_at.replace(year=first.created_at.year + 1)
    second = await MessageService.append(db, order.id, FULFILLER, SenderRole.FULFILLER, "two", not_before=future)
    third = await MessageService.append(db, order.id, REQUESTER, SenderRole.REQUESTER, "three")
    assert first.created_at <= second.created_at <= third.created_at
    assert second.created_at == future


async def test_payment_confirmed_body_defaults(db, make_order):
    order = await make_order()
    message = await MessageService.append(
        db, order.id, FULFILLER, SenderRole.FULFILLER, "", message_type=MessageType.PAYMENT_CONFIRMED
    )
    assert message.text == "Payment received ✓"


async def test_service_validation(db, make_order):
    order = await make_order()
    with pytest.raises(ValidationError):
        await MessageService.append(db, order.id, FULFILLER, SenderRole.FULFILLER, "",
                                    message_type=MessageType.PAYMENT_INFO)
    with pytest.raises(NotFound):
        await MessageService.append(db, 9999, FULFILLER, SenderRole.FULFILLER, "hi")
