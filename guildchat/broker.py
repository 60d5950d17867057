"""Fan-out of live messages to the subscribers of each channel."""

from __future__ import annotations

import asyncio
import weakref
from collections import deque
from typing import Optional

from guildchat.models import ChannelMessage, MessageType

DEFAULT_CAPACITY = 10


class Subscription:
    """A receiver of the messages broadcast on one channel.

    Iterate over it asynchronously. When the receiver falls more than the
    channel's capacity behind, the oldest messages are skipped.
    """

    def __init__(self, channel_id: int, capacity: int, topic: Optional[_Topic]) -> None:
        self.channel_id = channel_id
        self.lagged = 0
        self._buffer: deque[ChannelMessage] = deque(maxlen=capacity)
        self._ready = asyncio.Event()
        self._topic = topic
        self._finished = False
        self._stopped = topic is None

    def _deliver(self, message: ChannelMessage) -> None:
        if len(self._buffer) == self._buffer.maxlen:
            self.lagged += 1
        self._buffer.append(message)
        self._ready.set()

    def _finish(self, immediately: bool) -> None:
        self._topic = None
        self._finished = True
        if immediately:
            self._stopped = True
        self._ready.set()

    def close(self) -> None:
        """Stop receiving; the subscription no longer counts as a listener."""
        if self._topic is not None:
            self._topic.subscribers.discard(self)
            self._topic = None
        self._stopped = True
        self._ready.set()

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> ChannelMessage:
        while True:
            if self._stopped:
                raise StopAsyncIteration
            if self._buffer:
                return self._buffer.popleft()
            if self._finished:
                raise StopAsyncIteration
            self._ready.clear()
            await self._ready.wait()

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class _Topic:
    def __init__(self, channel_id: int) -> None:
        self.channel_id = channel_id
        self.subscribers: weakref.WeakSet[Subscription] = weakref.WeakSet()

    def send(self, message: ChannelMessage) -> int:
        receivers = list(self.subscribers)
        for subscription in receivers:
            subscription._deliver(message)
        return len(receivers)

    def close(self, immediately: bool) -> None:
        for subscription in list(self.subscribers):
            subscription._finish(immediately)
        self.subscribers = weakref.WeakSet()


class Broker:
    """Keeps one broadcast queue per channel that has been subscribed to."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._topics: dict[int, _Topic] = {}
        self._shut_down = False

    def subscribe(self, channel_id: int) -> Subscription:
        """Start listening on a channel, opening it if needed."""
        if self._shut_down:
            return Subscription(channel_id, self._capacity, None)
        topic = self._topics.get(channel_id)
        if topic is None:
            topic = self._topics[channel_id] = _Topic(channel_id)
        subscription = Subscription(channel_id, self._capacity, topic)
        topic.subscribers.add(subscription)
        return subscription

    def publish(self, message: ChannelMessage) -> int:
        """Relay a client's message; a QUIT from the last listener closes the channel.

        Returns how many subscribers received it.
        """
        topic = self._topics.get(message.channel_id)
        if topic is None:
            return 0
        if message.message_type is MessageType.QUIT and len(topic.subscribers) <= 1:
            self._remove(message.channel_id)
            return 0
        return self._deliver(topic, message)

    def send(self, message: ChannelMessage) -> int:
        """Broadcast a stored message to the channel's subscribers, if any.

        Returns how many subscribers received it.
        """
        topic = self._topics.get(message.channel_id)
        if topic is None:
            return 0
        return self._deliver(topic, message)

    def has_channel(self, channel_id: int) -> bool:
        return channel_id in self._topics

    def subscriber_count(self, channel_id: int) -> int:
        topic = self._topics.get(channel_id)
        return 0 if topic is None else len(topic.subscribers)

    def close(self) -> None:
        """Shut down: every subscription ends at once."""
        self._shut_down = True
        for topic in self._topics.values():
            topic.close(immediately=True)
        self._topics.clear()

    def _deliver(self, topic: _Topic, message: ChannelMessage) -> int:
        count = topic.send(message)
        if count == 0:
            self._remove(topic.channel_id)
        return count

    def _remove(self, channel_id: int) -> None:
        topic = self._topics.pop(channel_id, None)
        if topic is not None:
            topic.close(immediately=False)