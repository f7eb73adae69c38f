import json

from battery_monitor import MonitorHandle, start_monitoring, stop_monitoring
from platform_services import (
    ACTION_BATTERY_CHANGED,
    ACTION_BATTERY_LOW,
    ACTION_POWER_CONNECTED,
    POWER_ACTIONS,
)


def _recording_handle():
    events = []
    handle = MonitorHandle(sink=lambda action, info: events.append((action, json.loads(info))))
    return handle, events


def test_start_registers_all_power_actions(services) -> None:
    handle, _ = _recording_handle()
    assert start_monitoring(services, handle) is True
    assert handle.active
    (actions, _callback), = services.receivers.values()
    assert sorted(actions) == sorted(POWER_ACTIONS)
    assert len(actions) == 5


def test_start_twice_registers_once(services) -> None:
    handle, _ = _recording_handle()
    assert start_monitoring(services, handle) is True
    token = handle.token
    assert start_monitoring(services, handle) is True
    assert services.registrations == 1
    assert handle.token == token


def test_stop_while_inactive_is_noop(services) -> None:
    handle, _ = _recording_handle()
    stop_monitoring(services, handle)
    stop_monitoring(services, handle)
    assert not handle.active
    assert services.receivers == {}


def test_event_forwards_fresh_battery_document(services) -> None:
    handle, events = _recording_handle()
    start_monitoring(services, handle)

    services.fire(ACTION_POWER_CONNECTED)
    services.battery["level"] = 14
    services.fire(ACTION_BATTERY_LOW)

    assert [a for a, _ in events] == [ACTION_POWER_CONNECTED, ACTION_BATTERY_LOW]
    assert events[0][1]["level"] == 50.0
    assert events[1][1]["level"] == 14.0
    assert handle.events_delivered == 2


def test_unavailable_battery_forwards_empty_document(services) -> None:
    handle, events = _recording_handle()
    start_monitoring(services, handle)
    services.battery = None
    services.fire(ACTION_BATTERY_CHANGED)
    assert events == [(ACTION_BATTERY_CHANGED, {})]


def test_stop_unregisters_and_drops_late_events(services) -> None:
    handle, events = _recording_handle()
    start_monitoring(services, handle)
    _, callback = services.receivers[handle.token]

    stop_monitoring(services, handle)
    assert not handle.active
    assert services.receivers == {}

    # The host may still deliver an event queued before unregistering
    callback(ACTION_BATTERY_CHANGED)
    assert events == []


def test_restart_after_stop_registers_again(services) -> None:
    handle, _ = _recording_handle()
    start_monitoring(services, handle)
    stop_monitoring(services, handle)
    start_monitoring(services, handle)
    assert services.registrations == 2
    assert handle.active


def test_failing_sink_does_not_break_dispatch(services) -> None:
    calls = []

    def _sink(action, info):
        calls.append(action)
        raise RuntimeError("consumer went away")

    handle = MonitorHandle(sink=_sink)
    start_monitoring(services, handle)
    services.fire(ACTION_BATTERY_CHANGED)
    services.fire(ACTION_BATTERY_CHANGED)
    assert calls == [ACTION_BATTERY_CHANGED, ACTION_BATTERY_CHANGED]
    assert handle.events_delivered == 0


def test_refused_registration_returns_false(services) -> None:
    services.refuse_registration = True
    handle, _ = _recording_handle()
    assert start_monitoring(services, handle) is False
    assert not handle.active


def test_sticky_event_during_registration_is_delivered(services) -> None:
    handle, events = _recording_handle()
    original = services.register_receiver

    def _sticky_register(actions, callback):
        callback(ACTION_BATTERY_CHANGED)
        return original(actions, callback)

    services.register_receiver = _sticky_register
    start_monitoring(services, handle)
    assert [a for a, _ in events] == [ACTION_BATTERY_CHANGED]


def test_handles_are_independent(services) -> None:
    first, first_events = _recording_handle()
    second, second_events = _recording_handle()
    start_monitoring(services, first)
    start_monitoring(services, second)
    stop_monitoring(services, first)

    services.fire(ACTION_BATTERY_CHANGED)
    assert first_events == []
    assert len(second_events) == 1


def test_stop_from_sticky_event_leaves_handle_inactive(services) -> None:
    original = services.register_receiver
    handle = MonitorHandle(sink=lambda action, info: stop_monitoring(services, handle))

    def _sticky_register(actions, callback):
        token = original(actions, callback)
        callback(ACTION_BATTERY_CHANGED)
        return token

    services.register_receiver = _sticky_register
    assert start_monitoring(services, handle) is False
    assert not handle.active
    assert services.receivers == {}

    services.fire(ACTION_BATTERY_CHANGED)
    assert handle.events_delivered == 1
