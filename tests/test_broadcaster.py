import asyncio
from datetime import datetime, timezone

from app.modules.group_messages.schemas import GroupMessageResponse
from app.modules.realtime.broadcaster import GROUP_MESSAGE_EVENT, GroupBroadcaster
from tests.fakes import FailingSubscriber, RecordingSubscriber, StalledSubscriber


def test_join_leave_and_disconnect():
    broadcaster = GroupBroadcaster()
    sub = RecordingSubscriber("a")

    broadcaster.join("g1", sub)
    broadcaster.join("g2", sub)
    broadcaster.join("g1", sub)  # joining twice keeps a single subscription
    assert broadcaster.subscribers("g1") == [sub]
    assert sorted(broadcaster.topics_for(sub)) == ["group:g1", "group:g2"]

    assert broadcaster.leave("g1", sub) is True
    assert broadcaster.leave("g1", sub) is False
    assert broadcaster.subscribers("g1") == []

    assert broadcaster.disconnect(sub) == ["group:g2"]
    assert broadcaster.topics_for(sub) == []


def test_publish_reaches_only_the_groups_subscribers_in_order():
    broadcaster = GroupBroadcaster()
    a, b, other = RecordingSubscriber("a"), RecordingSubscriber("b"), RecordingSubscriber("other")
    broadcaster.join("g1", a)
    broadcaster.join("g1", b)
    broadcaster.join("g2", other)

    async def run():
        for n in range(3):
            await broadcaster.publish("g1", "tick", {"n": n})

    asyncio.run(run())

    expected = [{"event": "tick", "data": {"n": n}} for n in range(3)]
    assert a.frames == expected
    assert b.frames == expected
    assert other.frames == []


def test_failing_subscriber_is_dropped_without_blocking_others():
    broadcaster = GroupBroadcaster()
    broken, healthy = FailingSubscriber(), RecordingSubscriber("ok")
    broadcaster.join("g1", broken)
    broadcaster.join("g1", healthy)

    delivered = asyncio.run(broadcaster.publish("g1", "tick", {}))

    assert delivered == 1
    assert healthy.frames == [{"event": "tick", "data": {}}]
    assert broadcaster.subscribers("g1") == [healthy]


def test_late_joiner_misses_earlier_events():
    broadcaster = GroupBroadcaster()
    late = RecordingSubscriber("late")

    assert asyncio.run(broadcaster.publish("g1", "tick", {})) == 0
    broadcaster.join("g1", late)
    assert late.frames == []


def test_created_and_deleted_payloads():
    broadcaster = GroupBroadcaster()
    sub = RecordingSubscriber()
    broadcaster.join("g1", sub)
    message = GroupMessageResponse(
        id="m1", group_id="g1", sender_id="u1", text="hi",
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )

    async def run():
        await broadcaster.publish_created(message)
        await broadcaster.publish_deleted("g1", "m1")

    asyncio.run(run())

    created, deleted = sub.frames
    assert created["event"] == GROUP_MESSAGE_EVENT
    assert created["data"]["action"] == "created"
    assert created["data"]["message"]["id"] == "m1"
    assert created["data"]["message"]["text"] == "hi"
    assert deleted == {"event": GROUP_MESSAGE_EVENT, "data": {"action": "deleted", "messageId": "m1"}}


def test_stalled_subscriber_times_out_and_others_still_receive():
    broadcaster = GroupBroadcaster(send_timeout=0.05)
    stalled, healthy = StalledSubscriber(), RecordingSubscriber("ok")
    broadcaster.join("g1", stalled)
    broadcaster.join("g1", healthy)

    delivered = asyncio.run(asyncio.wait_for(broadcaster.publish("g1", "tick", {}), 1.0))

    assert delivered == 1
    assert healthy.frames == [{"event": "tick", "data": {}}]
    assert broadcaster.subscribers("g1") == [healthy]


def test_send_timeout_defaults_to_settings(monkeypatch):
    from app.config import settings
    monkeypatch.setattr(settings, "realtime_send_timeout", 0.25)
    assert GroupBroadcaster().send_timeout == 0.25


def test_leave_user_drops_only_that_users_connections():
    broadcaster = GroupBroadcaster()
    phone = RecordingSubscriber("phone", user_id="u1")
    laptop = RecordingSubscriber("laptop", user_id="u1")
    other = RecordingSubscriber("other", user_id="u2")
    for sub in (phone, laptop, other):
        broadcaster.join("g1", sub)
    broadcaster.join("g2", phone)

    assert broadcaster.groups_for_user("u1") == ["g1", "g2"]
    assert broadcaster.leave_user("g1", "u1") == 2
    assert broadcaster.subscribers("g1") == [other]
    assert broadcaster.groups_for_user("u1") == ["g2"]


def test_close_group_forgets_the_topic():
    broadcaster = GroupBroadcaster()
    broadcaster.join("g1", RecordingSubscriber("a"))
    broadcaster.join("g1", RecordingSubscriber("b"))

    assert broadcaster.close_group("g1") == 2
    assert broadcaster.subscribers("g1") == []
    assert broadcaster.close_group("g1") == 0
