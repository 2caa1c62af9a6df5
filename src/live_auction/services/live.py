"""Connection registry for the live channel.

Tracks connected clients and the per-user topics they joined, and fans events
out to them. Delivery is best effort: a connection that fails to receive is
dropped and never retried; offline users read persisted notifications instead.
"""
import asyncio
import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class LiveConnection(Protocol):
    """Anything that can push a JSON message to one client (e.g. a WebSocket)."""

    async def send_json(self, data: Any) -> None: ...


def user_topic(user_id: int) -> str:
    return f"user:{user_id}"


class ConnectionRegistry:
    """Who is connected and which user topics they joined."""

    def __init__(self) -> None:
        self._connections: set[LiveConnection] = set()
        self._topics: dict[str, set[LiveConnection]] = {}
        self._topics_by_conn: dict[LiveConnection, set[str]] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def add(self, conn: LiveConnection) -> None:
        """Register an observer: receives public broadcasts only."""
        self._connections.add(conn)
        self._topics_by_conn.setdefault(conn, set())

    def join(self, user_id: int, conn: LiveConnection) -> None:
        """Register conn and subscribe it to the user's private topic."""
        self.add(conn)
        topic = user_topic(user_id)
        self._topics.setdefault(topic, set()).add(conn)
        self._topics_by_conn[conn].add(topic)

    def leave(self, conn: LiveConnection) -> None:
        """Forget conn and every topic it joined. Unknown connections are ignored."""
        self._connections.discard(conn)
        for topic in self._topics_by_conn.pop(conn, set()):
            members = self._topics.get(topic)
            if members is None:
                continue
            members.discard(conn)
            if not members:
                del self._topics[topic]

    def subscribers(self, topic: str | None = None) -> list[LiveConnection]:
        if topic is None:
            return list(self._connections)
        return list(self._topics.get(topic, ()))

    async def broadcast(
        self, event: str, payload: dict[str, Any], topic: str | None = None
    ) -> int:
        """Send {"event", "data"} to every subscriber of topic (all clients if None).

        Returns the number of connections the message was delivered to.
        """
        targets = self.subscribers(topic)
        if not targets:
            return 0
        message = {"event": event, "data": payload}
        results = await asyncio.gather(
            *(conn.send_json(message) for conn in targets),
            return_exceptions=True,
        )
        delivered = 0
        for conn, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning("Dropping live connection after failed send of %s: %s", event, result)
                self.leave(conn)
            else:
                delivered += 1
        return delivered

    async def send_to_user(self, user_id: int, event: str, payload: dict[str, Any]) -> int:
        return await self.broadcast(event, payload, topic=user_topic(user_id))
