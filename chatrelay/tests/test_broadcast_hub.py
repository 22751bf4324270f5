# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import threading
import time
from datetime import UTC, datetime

import pytest

from chatrelay.domain.chat.entities import Message, PresenceUpdate, TypingUpdate
from chatrelay.infrastructure.broadcast.hub import BroadcastHub, OfferResult, SubscriberState


def _message(n: int) -> Message:
    return Message(id=n, sender="alice", content=f"msg-{n}", timestamp=datetime.now(UTC))


def test_subscribe_registers_active_subscriber() -> None:
    hub = BroadcastHub(queue_capacity=4)

    sub = hub.subscribe("c1", username="alice")

    assert sub.state is SubscriberState.ACTIVE
    assert hub.connection_count() == 1
    assert hub.get("c1") is sub


def test_publish_reaches_every_active_subscriber_in_order() -> None:
    hub = BroadcastHub(queue_capacity=8)
    a = hub.subscribe("a")
    b = hub.subscribe("b")

    for n in range(1, 4):
        report = hub.publish(_message(n))
        assert report.delivered == 2
        assert report.dropped == 0

    assert [m.id for m in a.drain()] == [1, 2, 3]
    assert [m.id for m in b.drain()] == [1, 2, 3]


def test_slow_subscriber_keeps_newest_messages() -> None:
    hub = BroadcastHub(queue_capacity=2)
    slow = hub.subscribe("slow")

    reports = [hub.publish(_message(n)) for n in range(1, 4)]

    assert [r.dropped for r in reports] == [0, 0, 1]
    assert slow.dropped == 1
    assert [m.content for m in slow.drain()] == ["msg-2", "msg-3"]


def test_publish_never_blocks_on_a_reader_that_never_reads() -> None:
    hub = BroadcastHub(queue_capacity=1)
    stuck = hub.subscribe("stuck")

    started = time.monotonic()
    for n in range(500):
        hub.publish(_message(n))

    assert time.monotonic() - started < 5
    assert stuck.pending() == 1
    assert stuck.dropped == 499


def test_late_subscriber_misses_earlier_messages() -> None:
    hub = BroadcastHub()
    early = hub.subscribe("early")
    hub.publish(_message(1))

    late = hub.subscribe("late")
    hub.publish(_message(2))

    assert [m.id for m in early.drain()] == [1, 2]
    assert [m.id for m in late.drain()] == [2]


def test_unsubscribe_is_idempotent_and_closes() -> None:
    hub = BroadcastHub()
    sub = hub.subscribe("c1")
    hub.publish(_message(1))

    hub.unsubscribe("c1")
    hub.unsubscribe("c1")
    hub.unsubscribe("never-seen")

    assert sub.state is SubscriberState.CLOSED
    assert hub.connection_count() == 0
    assert sub.pending() == 0
    assert sub.get(timeout=0.01) is None
    assert hub.publish(_message(2)).delivered == 0


def test_subscriber_removed_during_publish_is_skipped() -> None:
    hub = BroadcastHub()

    def unsubscribe_b() -> bool:
        hub.unsubscribe("b")
        return True

    a = hub.subscribe("a", is_alive=unsubscribe_b)
    b = hub.subscribe("b")

    report = hub.publish(_message(1))

    assert report.delivered == 1
    assert report.skipped == 1
    assert [m.id for m in a.drain()] == [1]
    assert b.drain() == []


def test_dead_subscriber_is_evicted() -> None:
    hub = BroadcastHub()
    alive = {"flag": True}
    sub = hub.subscribe("c1", is_alive=lambda: alive["flag"])
    hub.subscribe("c2")

    alive["flag"] = False
    report = hub.publish(_message(1))

    assert report.skipped == 1
    assert report.delivered == 1
    assert sub.state is SubscriberState.CLOSED
    assert hub.get("c1") is None
    assert hub.connection_count() == 1


def test_resubscribe_replaces_previous_connection() -> None:
    hub = BroadcastHub()
    first = hub.subscribe("c1")

    second = hub.subscribe("c1")

    assert first.state is SubscriberState.CLOSED
    assert hub.get("c1") is second
    assert hub.connection_count() == 1


def test_online_users_are_distinct_and_sorted() -> None:
    hub = BroadcastHub()
    hub.subscribe("1", username="carol")
    hub.subscribe("2", username="alice")
    hub.subscribe("3", username="alice")
    hub.subscribe("4")

    assert hub.online_users() == ["alice", "carol"]

    hub.unsubscribe("1")
    assert hub.online_users() == ["alice"]


def test_get_waits_for_publish_from_another_thread() -> None:
    hub = BroadcastHub()
    sub = hub.subscribe("reader")

    timer = threading.Timer(0.05, hub.publish, args=(_message(7),))
    timer.start()
    try:
        received = sub.get(timeout=5)
    finally:
        timer.join()

    assert received is not None
    assert received.id == 7


def test_get_times_out_when_idle() -> None:
    sub = BroadcastHub().subscribe("idle")

    assert sub.get(timeout=0.01) is None
    assert sub.is_active()


def test_unsubscribe_wakes_blocked_reader() -> None:
    hub = BroadcastHub()
    sub = hub.subscribe("reader")
    result: list[Message | None] = []

    reader = threading.Thread(target=lambda: result.append(sub.get(timeout=10)))
    reader.start()
    time.sleep(0.05)
    hub.unsubscribe("reader")
    reader.join(timeout=5)

    assert not reader.is_alive()
    assert result == [None]


def test_concurrent_membership_changes_during_publish() -> None:
    hub = BroadcastHub(queue_capacity=16)
    stop = threading.Event()
    errors: list[BaseException] = []

    def churn(worker: int) -> None:
        try:
            n = 0
            while not stop.is_set():
                cid = f"{worker}-{n % 5}"
                hub.subscribe(cid, username=f"user{worker}")
                hub.unsubscribe(cid)
                n += 1
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    workers = [threading.Thread(target=churn, args=(w,)) for w in range(4)]
    for w in workers:
        w.start()
    try:
        for n in range(300):
            hub.publish(_message(n))
    finally:
        stop.set()
        for w in workers:
            w.join(timeout=5)

    assert errors == []
    assert hub.connection_count() == 0


def test_capacity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        BroadcastHub(queue_capacity=0)


def test_offer_reports_outcome() -> None:
    sub = BroadcastHub(queue_capacity=1).subscribe("c1")

    assert sub.offer(_message(1)) is OfferResult.ENQUEUED
    assert sub.offer(_message(2)) is OfferResult.DROPPED_OLDEST

    sub.close()
    assert sub.offer(_message(3)) is OfferResult.REJECTED
    assert sub.dropped == 1


def test_subscriber_closing_after_liveness_check_counts_as_skipped() -> None:
    hub = BroadcastHub()
    holder: dict[str, object] = {}

    def close_then_report_alive() -> bool:
        holder["sub"].close()
        return True

    holder["sub"] = hub.subscribe("c1", is_alive=close_then_report_alive)
    hub.subscribe("c2")

    report = hub.publish(_message(1))

    assert report.delivered == 1
    assert report.skipped == 1


def test_presence_is_pushed_on_join_and_leave() -> None:
    hub = BroadcastHub()
    alice = hub.subscribe("a", username="alice")
    assert alice.drain() == [PresenceUpdate(users=("alice",))]

    bob = hub.subscribe("b", username="bob")
    assert alice.drain() == [PresenceUpdate(users=("alice", "bob"))]
    assert bob.drain() == [PresenceUpdate(users=("alice", "bob"))]

    hub.unsubscribe("b")
    assert alice.drain() == [PresenceUpdate(users=("alice",))]


def test_second_stream_of_online_user_only_greets_newcomer() -> None:
    hub = BroadcastHub()
    first = hub.subscribe("tab-1", username="alice")
    first.drain()

    second = hub.subscribe("tab-2", username="alice")
    assert first.drain() == []
    assert second.drain() == [PresenceUpdate(users=("alice",))]

    # alice is still online through tab-2.
    hub.unsubscribe("tab-1")
    assert second.drain() == []


def test_anonymous_subscribers_do_not_change_presence() -> None:
    hub = BroadcastHub()
    watcher = hub.subscribe("watcher")

    hub.subscribe("other")
    hub.unsubscribe("other")

    assert watcher.drain() == []


def test_typing_changes_are_fanned_out_once() -> None:
    hub = BroadcastHub()
    watcher = hub.subscribe("watcher")

    hub.set_typing("alice", True)
    hub.set_typing("bob", True)
    repeat = hub.set_typing("bob", True)
    hub.set_typing("alice", False)

    assert repeat.delivered == 0
    assert watcher.drain() == [
        TypingUpdate(users=("alice",)),
        TypingUpdate(users=("alice", "bob")),
        TypingUpdate(users=("bob",)),
    ]
    assert hub.typing_users() == ["bob"]


def test_new_stream_sees_who_is_typing() -> None:
    hub = BroadcastHub()
    hub.set_typing("bob", True)

    alice = hub.subscribe("a", username="alice")

    assert alice.drain() == [PresenceUpdate(users=("alice",)), TypingUpdate(users=("bob",))]


def test_leaving_clears_typing() -> None:
    hub = BroadcastHub()
    watcher = hub.subscribe("watcher")
    hub.subscribe("b", username="bob")
    hub.set_typing("bob", True)
    watcher.drain()

    hub.unsubscribe("b")

    assert watcher.drain() == [PresenceUpdate(users=()), TypingUpdate(users=())]
    assert hub.typing_users() == []


def test_evicted_user_is_announced_after_the_event() -> None:
    hub = BroadcastHub()
    alive = {"bob": True}
    watcher = hub.subscribe("watcher", username="alice")
    hub.subscribe("b", username="bob", is_alive=lambda: alive["bob"])
    watcher.drain()

    alive["bob"] = False
    hub.publish(_message(1))

    events = watcher.drain()
    assert [type(e) for e in events] == [Message, PresenceUpdate]
    assert events[1] == PresenceUpdate(users=("alice",))
