"""Live channel broadcaster for Duologue.

Each session has a topic that live subscribers (WebSocket connections,
the terminal renderer) join. Events are delivered in publish order to
whoever is subscribed at that moment; there is no buffering and no
replay for late joiners.

Delivery is best effort. A subscriber whose send raises or exceeds the
timeout is dropped, and publishing never raises into the caller.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Mapping, Union

from duologue.realtime.events import LiveEvent
from duologue.utils.logging import get_logger

logger = get_logger(__name__)

Send = Callable[[Dict[str, Any]], Awaitable[None]]


class LiveChannelBroadcaster:
    """In-memory publish/subscribe keyed by session id."""

    def __init__(self, send_timeout: float = 5.0):
        self.send_timeout = send_timeout
        self._topics: Dict[str, Dict[str, Send]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def join(self, session_id: str, subscriber_id: str, send: Send) -> None:
        self._topics.setdefault(session_id, {})[subscriber_id] = send
        logger.debug(
            f"Subscriber {subscriber_id} joined session {session_id} "
            f"({self.subscriber_count(session_id)} subscribers)"
        )

    def leave(self, session_id: str, subscriber_id: str) -> None:
        subscribers = self._topics.get(session_id)
        if not subscribers or subscriber_id not in subscribers:
            return
        del subscribers[subscriber_id]
        if not subscribers:
            self._topics.pop(session_id, None)
            self._locks.pop(session_id, None)
        logger.debug(f"Subscriber {subscriber_id} left session {session_id}")

    def subscriber_count(self, session_id: str) -> int:
        return len(self._topics.get(session_id, {}))

    async def publish(
        self, session_id: str, event: Union[LiveEvent, Mapping[str, Any]]
    ) -> int:
        """Deliver ``event`` to the current subscribers of ``session_id``.

        Returns:
            Number of subscribers the event reached.
        """
        subscribers = self._topics.get(session_id)
        if not subscribers:
            return 0

        payload = event.to_payload() if isinstance(event, LiveEvent) else dict(event)

        # Serializes publishers of one session so events keep their order
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        delivered = 0
        async with lock:
            for subscriber_id, send in list(subscribers.items()):
                try:
                    await asyncio.wait_for(send(payload), timeout=self.send_timeout)
                    delivered += 1
                except asyncio.TimeoutError:
                    logger.warning(
                        f"Dropping subscriber {subscriber_id} of session {session_id}: "
                        f"send timed out after {self.send_timeout}s"
                    )
                    self.leave(session_id, subscriber_id)
                except Exception as e:
                    logger.warning(
                        f"Dropping subscriber {subscriber_id} of session {session_id}: {e}"
                    )
                    self.leave(session_id, subscriber_id)
        return delivered
