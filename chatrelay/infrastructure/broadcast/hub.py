# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""In-process fan-out of chat events to connected subscribers."""

from __future__ import annotations

import threading
import time
from collections import deque
from collections.abc import Callable
from enum import StrEnum

from chatrelay.domain.chat.entities import (
    ChatEvent,
    Message,
    PresenceUpdate,
    PublishReport,
    TypingUpdate,
)
from chatrelay.domain.chat.repositories import MessagePublisher, TypingNotifier
from chatrelay.shared.logging import logger


class SubscriberState(StrEnum):
    CONNECTING = "connecting"
    ACTIVE = "active"
    CLOSED = "closed"


class OfferResult(StrEnum):
    ENQUEUED = "enqueued"
    DROPPED_OLDEST = "dropped_oldest"
    # Subscriber was not active; nothing was queued.
    REJECTED = "rejected"


class Subscriber:
    """One live connection and its bounded outbound queue.

    The queue never blocks the producer: when it is full the oldest pending
    event is evicted to make room and ``dropped`` is incremented.
    """

    def __init__(
        self,
        connection_id: str,
        *,
        capacity: int,
        username: str | None = None,
        is_alive: Callable[[], bool] | None = None,
    ) -> None:
        if capacity < 1:
            raise ValueError("subscriber queue capacity must be >= 1")
        self.connection_id = connection_id
        self.username = username
        self.capacity = capacity
        self.dropped = 0
        self._is_alive = is_alive
        self._state = SubscriberState.CONNECTING
        self._queue: deque[ChatEvent] = deque(maxlen=capacity)
        self._cond = threading.Condition()

    @property
    def state(self) -> SubscriberState:
        return self._state

    def is_active(self) -> bool:
        return self._state is SubscriberState.ACTIVE

    def is_alive(self) -> bool:
        if self._is_alive is None:
            return True
        try:
            return bool(self._is_alive())
        except Exception:
            logger.exception(f"hub: liveness check failed connection_id={self.connection_id}")
            return False

    def activate(self) -> None:
        with self._cond:
            if self._state is SubscriberState.CONNECTING:
                self._state = SubscriberState.ACTIVE

    def offer(self, event: ChatEvent) -> OfferResult:
        with self._cond:
            if self._state is not SubscriberState.ACTIVE:
                return OfferResult.REJECTED
            overflow = len(self._queue) == self.capacity
            if overflow:
                self.dropped += 1
            self._queue.append(event)
            self._cond.notify()
        return OfferResult.DROPPED_OLDEST if overflow else OfferResult.ENQUEUED

    def get(self, timeout: float | None = None) -> ChatEvent | None:
        """Wait for the next event.

        Returns ``None`` on timeout, or once the subscriber is closed and its
        queue is empty.
        """

        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not self._queue:
                if self._state is SubscriberState.CLOSED:
                    return None
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return None
                self._cond.wait(remaining)
            return self._queue.popleft()

    def drain(self) -> list[ChatEvent]:
        with self._cond:
            pending = list(self._queue)
            self._queue.clear()
            return pending

    def pending(self) -> int:
        with self._cond:
            return len(self._queue)

    def close(self) -> None:
        with self._cond:
            self._state = SubscriberState.CLOSED
            self._queue.clear()
            self._cond.notify_all()


class BroadcastHub(MessagePublisher, TypingNotifier):
    """Registry of live subscribers.

    The map is only touched under ``_lock``. Fan-out copies it under the
    lock and delivers outside it, so subscribers joining after a publish
    started miss that event and ones leaving mid-publish are skipped.

    Presence and typing updates carry the full user list. They are computed
    and fanned out under ``_roster_lock`` so every subscriber sees them in the
    order the changes happened. Subscribers without a username never change
    presence.
    """

    def __init__(self, *, queue_capacity: int = 256) -> None:
        if queue_capacity < 1:
            raise ValueError("queue_capacity must be >= 1")
        self._queue_capacity = queue_capacity
        self._lock = threading.Lock()
        # Reentrant: a liveness check during fan-out may evict and re-announce.
        self._roster_lock = threading.RLock()
        self._subscribers: dict[str, Subscriber] = {}
        self._typing: set[str] = set()
        self._announced: tuple[str, ...] = ()

    def subscribe(
        self,
        connection_id: str,
        *,
        username: str | None = None,
        is_alive: Callable[[], bool] | None = None,
    ) -> Subscriber:
        subscriber = Subscriber(
            connection_id,
            capacity=self._queue_capacity,
            username=username,
            is_alive=is_alive,
        )
        subscriber.activate()
        with self._lock:
            previous = self._subscribers.get(connection_id)
            self._subscribers[connection_id] = subscriber
            total = len(self._subscribers)
        if previous is not None:
            logger.warning(f"hub: connection_id={connection_id} re-subscribed, closing previous")
            previous.close()
        logger.info(f"hub: subscribed connection_id={connection_id} user={username} total={total}")

        if username is not None or (previous is not None and previous.username is not None):
            self._announce(joined=subscriber if username is not None else None)
        return subscriber

    def unsubscribe(self, connection_id: str) -> None:
        with self._lock:
            subscriber = self._subscribers.pop(connection_id, None)
            total = len(self._subscribers)
        if subscriber is None:
            return
        subscriber.close()
        logger.info(
            f"hub: unsubscribed connection_id={connection_id} "
            f"dropped={subscriber.dropped} total={total}"
        )
        if subscriber.username is not None:
            self._announce(departed=subscriber.username)

    def publish(self, message: Message) -> PublishReport:
        return self._fan_out(message)

    def set_typing(self, username: str, typing: bool) -> PublishReport:
        with self._roster_lock:
            with self._lock:
                if typing == (username in self._typing):
                    return PublishReport()
                if typing:
                    self._typing.add(username)
                else:
                    self._typing.discard(username)
                users = tuple(sorted(self._typing))
            logger.debug(f"hub: typing user={username} typing={typing}")
            return self._fan_out(TypingUpdate(users=users))

    def get(self, connection_id: str) -> Subscriber | None:
        with self._lock:
            return self._subscribers.get(connection_id)

    def connection_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def online_users(self) -> list[str]:
        with self._lock:
            snapshot = tuple(self._subscribers.values())
        return sorted({s.username for s in snapshot if s.username and s.is_active()})

    def typing_users(self) -> list[str]:
        with self._lock:
            return sorted(self._typing)

    def _fan_out(self, event: ChatEvent) -> PublishReport:
        with self._lock:
            snapshot = tuple(self._subscribers.values())

        delivered = dropped = skipped = 0
        departed: list[str] = []
        for subscriber in snapshot:
            if not subscriber.is_active():
                skipped += 1
                continue
            if not subscriber.is_alive():
                skipped += 1
                if self._evict(subscriber) and subscriber.username is not None:
                    departed.append(subscriber.username)
                continue
            result = subscriber.offer(event)
            if result is OfferResult.REJECTED:
                skipped += 1
                continue
            delivered += 1
            if result is OfferResult.DROPPED_OLDEST:
                dropped += 1
                logger.warning(
                    f"hub: slow subscriber connection_id={subscriber.connection_id} "
                    f"queue full ({subscriber.capacity}), dropped oldest "
                    f"(total dropped={subscriber.dropped})"
                )

        # Announced after the loop so this event reaches everyone before the new roster.
        for username in departed:
            self._announce(departed=username)

        return PublishReport(delivered=delivered, dropped=dropped, skipped=skipped)

    def _announce(
        self, *, joined: Subscriber | None = None, departed: str | None = None
    ) -> None:
        with self._roster_lock:
            roster = tuple(self.online_users())
            if roster != self._announced:
                self._announced = roster
                self._fan_out(PresenceUpdate(users=roster))
            elif joined is not None:
                # Roster unchanged (another tab of an online user); still greet the newcomer.
                joined.offer(PresenceUpdate(users=roster))

            if departed is not None and departed not in roster:
                self.set_typing(departed, False)
            elif joined is not None:
                typing = self.typing_users()
                if typing:
                    joined.offer(TypingUpdate(users=tuple(typing)))

    def _evict(self, subscriber: Subscriber) -> bool:
        # Only remove the entry if it still belongs to this subscriber.
        with self._lock:
            evicted = self._subscribers.get(subscriber.connection_id) is subscriber
            if evicted:
                del self._subscribers[subscriber.connection_id]
        subscriber.close()
        logger.info(f"hub: evicted dead subscriber connection_id={subscriber.connection_id}")
        return evicted


__all__ = ["BroadcastHub", "OfferResult", "Subscriber", "SubscriberState"]
