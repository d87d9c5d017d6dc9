import asyncio

import pytest

from bunkerdesk.routes.realtime import format_sse
from bunkerdesk.utils.realtime import ChangeBroker, TooManyConnections, broker, publish_change


def test_publish_reaches_only_the_owning_users_matching_streams():
    broker = ChangeBroker(max_conn_per_user=5, queue_size=10)
    everything = broker.subscribe(1)
    contacts_only = broker.subscribe(1, ["contacts"])
    other_user = broker.subscribe(2)

    assert broker.publish(1, "calls", "INSERT", 7) == 1
    assert broker.publish(1, "contacts", "UPDATE", 3) == 2

    assert everything.queue.qsize() == 2
    assert contacts_only.queue.get_nowait() == {"table": "contacts", "event": "UPDATE", "id": 3}
    assert other_user.queue.empty()


def test_connection_cap_per_user():
    broker = ChangeBroker(max_conn_per_user=2)
    first = broker.subscribe(1)
    broker.subscribe(1)

    with pytest.raises(TooManyConnections):
        broker.subscribe(1)

    broker.unsubscribe(first)
    assert broker.connection_count(1) == 1
    broker.subscribe(1)


def test_full_queue_drops_new_events():
    broker = ChangeBroker(queue_size=1)
    sub = broker.subscribe(1)

    assert broker.publish(1, "tasks", "INSERT", 1) == 1
    assert broker.publish(1, "tasks", "INSERT", 2) == 0
    assert sub.dropped == 1
    assert sub.queue.get_nowait()["id"] == 1


def test_unknown_event_is_rejected():
    with pytest.raises(ValueError):
        ChangeBroker().publish(1, "tasks", "UPSERT", 1)


def test_subscriber_can_await_published_change():
    broker = ChangeBroker()

    async def scenario():
        sub = broker.subscribe(5)
        broker.publish(5, "saved_notes", "DELETE", 9)
        return await asyncio.wait_for(sub.queue.get(), timeout=1)

    assert asyncio.run(scenario()) == {"table": "saved_notes", "event": "DELETE", "id": 9}


def test_format_sse():
    assert format_sse({"type": "ping"}) == 'data: {"type": "ping"}\n\n'
    assert format_sse({"id": 1}, event="change") == 'event: change\ndata: {"id": 1}\n\n'


def test_stream_requires_token(client):
    async def run():
        response = await client.get("/api/realtime/stream")
        return response.status_code

    assert asyncio.run(run()) == 401


def test_stream_opens_with_ping_and_only_forwards_requested_tables(client, user):
    user_id, token = user

    async def run():
        async with client.request(
            "/api/realtime/stream", query_string={"token": token, "tables": "contacts"}
        ) as connection:
            await connection.send_complete()
            first = await asyncio.wait_for(connection.receive(), timeout=5)
            open_streams = broker.connection_count(user_id)

            publish_change(user_id, "calls", "INSERT", 1)
            publish_change(user_id, "contacts", "UPDATE", 42)
            second = await asyncio.wait_for(connection.receive(), timeout=5)

            await connection.disconnect()
        return connection.status_code, connection.headers, first, second, open_streams

    status, headers, first, second, open_streams = asyncio.run(run())

    assert status == 200
    assert headers["Content-Type"].startswith("text/event-stream")
    assert first == b'event: ping\ndata: {"type": "ping"}\n\n'
    assert second == b'event: change\ndata: {"table": "contacts", "event": "UPDATE", "id": 42}\n\n'
    assert open_streams == 1
    assert broker.connection_count(user_id) == 0
