"""
In-memory group topic registry and fan-out.

One topic per group id. Connections join and leave explicitly; nothing is
persisted and nothing is shared between processes, so a connection that is
not subscribed when an event is published never sees it. Clients recover by
re-listing messages after (re)joining.

All mutation happens on the event loop, so there is no locking. Each send is
bounded by ``settings.realtime_send_timeout``; a subscriber that fails or
stalls is dropped from every topic.
"""
import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional, Protocol

from app.config import settings
from app.modules.group_messages.schemas import GroupMessageResponse

logger = logging.getLogger(__name__)

GROUP_MESSAGE_EVENT = "group:message"


class Subscriber(Protocol):
    id: str

    async def send_json(self, data: Any) -> None:
        ...


class WebSocketConnection:
    """Wraps a websocket with a stable identifier; the broadcaster keys subscribers by it."""

    def __init__(self, websocket, user_id: Optional[str] = None):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.user_id = user_id

    async def send_json(self, data: Any) -> None:
        await self.websocket.send_json(data)

    def __repr__(self) -> str:
        return f"<WebSocketConnection {self.id} user={self.user_id}>"


class GroupBroadcaster:
    TOPIC_PREFIX = "group:"

    def __init__(self, send_timeout: Optional[float] = None):
        self._topics: Dict[str, Dict[str, Subscriber]] = {}
        self.send_timeout = send_timeout if send_timeout is not None else settings.realtime_send_timeout

    @staticmethod
    def topic(group_id: str) -> str:
        return f"{GroupBroadcaster.TOPIC_PREFIX}{group_id}"

    def join(self, group_id: str, subscriber: Subscriber) -> None:
        self._topics.setdefault(self.topic(group_id), {})[subscriber.id] = subscriber
        logger.debug(f"{subscriber.id} joined {self.topic(group_id)}")

    def leave(self, group_id: str, subscriber: Subscriber) -> bool:
        """Unsubscribe from one group. Returns False if it was not subscribed."""
        name = self.topic(group_id)
        subscribers = self._topics.get(name)
        if not subscribers or subscriber.id not in subscribers:
            return False
        del subscribers[subscriber.id]
        if not subscribers:
            del self._topics[name]
        logger.debug(f"{subscriber.id} left {name}")
        return True

    def disconnect(self, subscriber: Subscriber) -> List[str]:
        """Drop a subscriber from every topic; returns the topics it was in."""
        dropped = []
        for name in list(self._topics):
            subscribers = self._topics[name]
            if subscribers.pop(subscriber.id, None) is not None:
                dropped.append(name)
                if not subscribers:
                    del self._topics[name]
        return dropped

    def leave_user(self, group_id: str, user_id: str) -> int:
        """Unsubscribe every connection of one user from a group; returns how many were dropped."""
        dropped = 0
        for subscriber in self.subscribers(group_id):
            if getattr(subscriber, "user_id", None) == user_id and self.leave(group_id, subscriber):
                dropped += 1
        if dropped:
            logger.info(f"Dropped {dropped} connection(s) of user {user_id} from {self.topic(group_id)}")
        return dropped

    def close_group(self, group_id: str) -> int:
        """Forget a group's topic entirely (the group was deleted)."""
        return len(self._topics.pop(self.topic(group_id), {}))

    def groups_for_user(self, user_id: str) -> List[str]:
        """Group ids this user has at least one live subscription to"""
        return [
            name[len(self.TOPIC_PREFIX):]
            for name, subs in self._topics.items()
            if any(getattr(s, "user_id", None) == user_id for s in subs.values())
        ]

    def subscribers(self, group_id: str) -> List[Subscriber]:
        return list(self._topics.get(self.topic(group_id), {}).values())

    def topics_for(self, subscriber: Subscriber) -> List[str]:
        return [name for name, subs in self._topics.items() if subscriber.id in subs]

    async def publish(self, group_id: str, event: str, data: Dict[str, Any]) -> int:
        """
        Send ``{"event": event, "data": data}`` to every subscriber of the group.

        Sends run concurrently, each bounded by ``send_timeout``, and publish
        returns once all of them have finished or timed out, so consecutive
        publishes reach each subscriber in order. A subscriber whose send
        fails or times out is logged and dropped; the rest still receive the
        event. Returns the number of successful deliveries.
        """
        frame = {"event": event, "data": data}
        subscribers = self.subscribers(group_id)
        results = await asyncio.gather(*(self._deliver(group_id, s, frame) for s in subscribers))
        return sum(results)

    async def _deliver(self, group_id: str, subscriber: Subscriber, frame: Dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(subscriber.send_json(frame), timeout=self.send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(
                f"Dropping subscriber {subscriber.id} of {self.topic(group_id)}: "
                f"send took longer than {self.send_timeout}s"
            )
        except Exception as e:
            logger.warning(f"Dropping subscriber {subscriber.id} of {self.topic(group_id)}: {e}")
        self.disconnect(subscriber)
        return False

    async def publish_created(self, message: GroupMessageResponse) -> int:
        return await self.publish(message.group_id, GROUP_MESSAGE_EVENT, {
            "action": "created",
            "message": message.model_dump(mode="json"),
        })

    async def publish_deleted(self, group_id: str, message_id: str) -> int:
        return await self.publish(group_id, GROUP_MESSAGE_EVENT, {
            "action": "deleted",
            "messageId": message_id,
        })
