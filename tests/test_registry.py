from conftest import FakeConnection
from live_auction.services.live import ConnectionRegistry, user_topic


async def test_broadcast_reaches_observers_and_users():
    registry = ConnectionRegistry()
    observer, alice = FakeConnection(), FakeConnection()
    registry.add(observer)
    registry.join(1, alice)

    delivered = await registry.broadcast("updateHighest", {"auctionId": 3})

    assert delivered == 2
    assert observer.messages == [{"event": "updateHighest", "data": {"auctionId": 3}}]
    assert alice.messages == observer.messages


async def test_user_topic_reaches_only_that_user():
    registry = ConnectionRegistry()
    observer, alice, bob = FakeConnection(), FakeConnection(), FakeConnection()
    registry.add(observer)
    registry.join(1, alice)
    registry.join(2, bob)

    delivered = await registry.send_to_user(1, "notification", {"id": 9})

    assert delivered == 1
    assert alice.events("notification")
    assert not observer.messages
    assert not bob.messages


async def test_same_user_on_two_connections_gets_both():
    registry = ConnectionRegistry()
    tab1, tab2 = FakeConnection(), FakeConnection()
    registry.join(1, tab1)
    registry.join(1, tab2)

    assert await registry.send_to_user(1, "notification", {}) == 2


async def test_leave_forgets_connection_and_topics():
    registry = ConnectionRegistry()
    alice = FakeConnection()
    registry.join(1, alice)
    registry.leave(alice)

    assert len(registry) == 0
    assert registry.subscribers(user_topic(1)) == []
    assert await registry.broadcast("auctionEnded", {}) == 0


def test_leave_unknown_connection_is_a_no_op():
    registry = ConnectionRegistry()
    registry.leave(FakeConnection())
    assert len(registry) == 0


async def test_failed_send_drops_connection_without_affecting_others():
    registry = ConnectionRegistry()
    broken, healthy = FakeConnection(fail=True), FakeConnection()
    registry.join(1, broken)
    registry.add(healthy)

    delivered = await registry.broadcast("auctionEnded", {"auctionId": 1})

    assert delivered == 1
    assert healthy.events("auctionEnded")
    assert len(registry) == 1
    assert registry.subscribers(user_topic(1)) == []
