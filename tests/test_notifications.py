"""Tests for campus_sim.notifications — capped sink with dismiss/read/expire."""

from campus_sim.notifications import NotificationSink


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_push_records_kind_and_time() -> None:
    sink = NotificationSink(clock=FakeClock(42.0))
    note = sink.push("Hello", "success")
    assert note.kind == "success"
    assert note.created_at == 42.0
    assert sink.items == [note]


def test_capacity_drops_oldest() -> None:
    sink = NotificationSink(capacity=3)
    for i in range(5):
        sink.push(f"n{i}")
    assert [n.message for n in sink.items] == ["n2", "n3", "n4"]


def test_dismiss() -> None:
    sink = NotificationSink()
    a = sink.push("a")
    sink.push("b")
    assert sink.dismiss(a.id) is True
    assert [n.message for n in sink.items] == ["b"]
    assert sink.dismiss("missing") is False


def test_mark_read_and_unread() -> None:
    sink = NotificationSink()
    a = sink.push("a")
    b = sink.push("b")
    assert sink.mark_read(a.id) is True
    assert sink.unread() == [b]
    assert sink.mark_read("missing") is False


def test_expire_uses_ttl() -> None:
    clock = FakeClock(0.0)
    sink = NotificationSink(ttl_seconds=10, clock=clock)
    sink.push("old")
    clock.now = 8.0
    sink.push("new")
    clock.now = 15.0
    assert sink.expire() == 1
    assert [n.message for n in sink.items] == ["new"]


def test_expire_without_ttl_keeps_everything() -> None:
    sink = NotificationSink()
    sink.push("a")
    assert sink.expire(now=1e12) == 0
    assert len(sink) == 1


def test_to_list_is_serialisable() -> None:
    sink = NotificationSink()
    sink.push("a", "warning")
    [item] = sink.to_list()
    assert item["message"] == "a"
    assert item["kind"] == "warning"
    assert item["read"] is False
