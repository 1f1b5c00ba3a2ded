import pytest
from structlog.testing import capture_logs

from git_graph.event import ChangeBus


def test_emit_calls_subscribers_in_subscription_order():
    bus = ChangeBus()
    calls = []
    bus.subscribe(lambda v: calls.append(("a", v)))
    bus.subscribe(lambda v: calls.append(("b", v)))
    bus.subscribe(lambda v: calls.append(("c", v)))

    bus.emit(1)

    assert calls == [("a", 1), ("b", 1), ("c", 1)]


def test_subscribe_does_not_replay_last_value():
    bus = ChangeBus()
    bus.emit("before")

    seen = []
    bus.subscribe(seen.append)
    assert seen == []

    bus.emit("after")
    assert seen == ["after"]


def test_unsubscribed_callback_is_never_called_again():
    bus = ChangeBus()
    a, b = [], []
    sub_a = bus.subscribe(a.append)
    bus.subscribe(b.append)

    bus.emit(1)
    bus.unsubscribe(sub_a)
    bus.emit(2)

    assert a == [1]
    assert b == [1, 2]
    assert not sub_a.active


def test_unsubscribe_is_idempotent():
    bus = ChangeBus()
    sub = bus.subscribe(lambda v: None)

    bus.unsubscribe(sub)
    bus.unsubscribe(sub)
    sub.dispose()

    assert len(bus) == 0


def test_subscriptions_are_unique_per_call():
    bus = ChangeBus()
    calls = []
    sub1 = bus.subscribe(calls.append)
    bus.subscribe(calls.append)

    bus.emit("x")
    assert calls == ["x", "x"]

    bus.unsubscribe(sub1)
    bus.emit("y")
    assert calls == ["x", "x", "y"]


def test_raising_subscriber_does_not_block_later_subscribers():
    with capture_logs() as logs:
        bus = ChangeBus("test_bus")
        seen = []

        def boom(value):
            raise RuntimeError("subscriber failed")

        bus.subscribe(seen.append)
        bus.subscribe(boom)
        bus.subscribe(seen.append)

        bus.emit(42)  # must not raise

    assert seen == [42, 42]
    errors = [entry for entry in logs if entry["event"] == "subscriber_error"]
    assert len(errors) == 1
    assert errors[0]["error"] == "subscriber failed"
    assert errors[0]["bus"] == "test_bus"


def test_unsubscribe_during_emit_skips_removed_subscriber():
    bus = ChangeBus()
    calls = []
    later = None

    def first(value):
        calls.append("first")
        bus.unsubscribe(later)

    bus.subscribe(first)
    later = bus.subscribe(lambda v: calls.append("later"))

    bus.emit(None)

    assert calls == ["first"]


def test_subscribe_during_emit_waits_for_next_emission():
    bus = ChangeBus()
    calls = []

    def first(value):
        calls.append(("first", value))
        bus.subscribe(lambda v: calls.append(("added", v)))

    bus.subscribe(first)
    bus.emit(1)
    assert calls == [("first", 1)]


def test_emit_after_dispose_is_noop():
    bus = ChangeBus()
    calls = []
    sub = bus.subscribe(calls.append)

    bus.dispose()
    bus.emit(1)
    bus.unsubscribe(sub)

    assert calls == []
    assert bus.disposed
    assert len(bus) == 0


def test_subscribe_after_dispose_returns_inactive_handle():
    bus = ChangeBus()
    bus.dispose()

    calls = []
    sub = bus.subscribe(calls.append)
    bus.emit(1)

    assert not sub.active
    assert calls == []


@pytest.mark.parametrize("values", [[1], [1, 2, 3]])
def test_each_emission_delivered_exactly_once(values):
    bus = ChangeBus()
    seen = []
    bus.subscribe(seen.append)

    for value in values:
        bus.emit(value)

    assert seen == values


def test_bus_logger_binds_component_and_name(mock_logger):
    ChangeBus("git_executable", logger=mock_logger)
    mock_logger.bind.assert_called_once_with(component="ChangeBus", bus="git_executable")
