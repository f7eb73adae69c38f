import json
import threading

import pytest

import i18n
import main
from platform_services import ACTION_BATTERY_CHANGED


@pytest.fixture(autouse=True)
def english():
    i18n.init("en")


def test_json_single_document(services, capsys) -> None:
    main.print_documents(services, ["battery"], as_json=True)
    out = capsys.readouterr().out.strip()
    assert json.loads(out)["level"] == 50.0


def test_json_all_documents(services, capsys) -> None:
    main.print_documents(services, main.DOCUMENT_KINDS, as_json=True)
    report = json.loads(capsys.readouterr().out)
    assert list(report) == main.DOCUMENT_KINDS


def test_table_marks_unavailable_document(services) -> None:
    table = main.build_document_table("screen", {})
    assert table.row_count == 1

    table = main.build_document_table("battery", {"level": 50.0, "isCharging": True})
    assert table.row_count == 2


@pytest.mark.parametrize(
    "key,value,expected",
    [
        ("isCharging", True, "yes"),
        ("level", 49.6, "50%"),
        ("voltage", 4123, "4123 mV"),
        ("type", "wifi", "wifi"),
        ("totalMemory", 0, "0 B"),
    ],
)
def test_format_value(key, value, expected) -> None:
    assert main._format_value(key, value) == expected


def test_watch_prints_events_and_stops(services, capsys) -> None:
    stop = threading.Event()
    original = services.register_receiver

    def _register(actions, callback):
        token = original(actions, callback)
        callback(ACTION_BATTERY_CHANGED)
        stop.set()
        return token

    services.register_receiver = _register
    assert main.watch_battery(services, as_json=True, stop_event=stop) == 0
    line = capsys.readouterr().out.strip().splitlines()[0]
    event = json.loads(line)
    assert event["action"] == ACTION_BATTERY_CHANGED
    assert event["info"]["temperature"] == 23.5
    assert services.receivers == {}


def test_watch_json_lines_escape_action_names(services, capsys) -> None:
    stop = threading.Event()
    original = services.register_receiver

    def _register(actions, callback):
        token = original(actions, callback)
        callback('vendor.POWER"QUIRK')
        stop.set()
        return token

    services.register_receiver = _register
    assert main.watch_battery(services, as_json=True, stop_event=stop) == 0
    event = json.loads(capsys.readouterr().out.strip().splitlines()[0])
    assert event["action"] == 'vendor.POWER"QUIRK'
    assert event["info"]["level"] == 50.0


def test_watch_reports_refused_registration(services) -> None:
    services.refuse_registration = True
    assert main.watch_battery(services, as_json=True, stop_event=threading.Event()) == 1


def test_unknown_kind_is_rejected() -> None:
    with pytest.raises(SystemExit):
        main.main(["gpu"])
