"""Tests for the notification channel."""

from __future__ import annotations

from pagewise.services.notifications import NotificationChannel, NotificationLevel


def test_drain_returns_in_order_and_clears():
    channel = NotificationChannel()
    channel.info("one", 1)
    channel.error("two")

    drained = channel.drain()

    assert [(n.level, n.message, n.page_number) for n in drained] == [
        (NotificationLevel.INFO, "one", 1),
        (NotificationLevel.ERROR, "two", None),
    ]
    assert channel.drain() == []


def test_pending_is_bounded():
    channel = NotificationChannel(max_pending=2)
    for i in range(3):
        channel.success(f"n{i}")

    assert [n.message for n in channel.peek()] == ["n1", "n2"]


def test_listeners_receive_and_can_unsubscribe():
    channel = NotificationChannel()
    received = []
    unsubscribe = channel.subscribe(received.append)

    channel.warning("first")
    unsubscribe()
    channel.warning("second")

    assert [n.message for n in received] == ["first"]


def test_failing_listener_does_not_stop_others():
    channel = NotificationChannel()
    received = []

    def broken(notification):
        raise RuntimeError("listener down")

    channel.subscribe(broken)
    channel.subscribe(received.append)

    channel.info("still delivered")

    assert [n.message for n in received] == ["still delivered"]
    assert len(channel.peek()) == 1


def test_to_dict():
    notification = NotificationChannel().warning("Failed to save study progress")

    data = notification.to_dict()

    assert data["level"] == "warning"
    assert data["message"] == "Failed to save study progress"
    assert data["page_number"] is None
    assert "T" in data["created_at"]
