#!/usr/bin/env python3
"""
device-info - print device telemetry documents, or watch power events
"""

import argparse
import json
import logging
import sys
import threading
from typing import Dict, List

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from battery_monitor import MonitorHandle, start_monitoring, stop_monitoring
from device_info import READERS, collect, get_device_info, get_document_info
from linux_services import LinuxPlatformServices
from platform_services import PlatformServices
import i18n

console = Console()

DOCUMENT_KINDS = list(READERS)

BYTE_FIELDS = {
    "totalMemory",
    "availableMemory",
    "memoryThreshold",
    "internalStorageTotal",
    "internalStorageFree",
    "externalStorageTotal",
    "externalStorageFree",
}


def _format_value(key: str, value) -> str:
    """Human-readable rendering of one document field."""
    if isinstance(value, bool):
        return i18n.t("cli.yes") if value else i18n.t("cli.no")
    if key in BYTE_FIELDS:
        return i18n.format_bytes_localized(value)
    if key == "temperature":
        return i18n.format_temperature(value)
    if key == "level":
        return i18n.format_percent(value)
    if key == "voltage":
        return i18n.format_millivolts(value)
    if isinstance(value, (int, float)):
        return i18n.format_number(value)
    return str(value)


def build_document_table(kind: str, document: Dict) -> Table:
    """Build a Rich Table for one document."""
    table = Table(show_header=False, box=None, padding=(0, 2), expand=True)
    table.add_column("Label", style="bold #E95420", no_wrap=True)
    table.add_column("Value", style="#ebdbb2")

    if not document:
        table.add_row(f"[dim]{i18n.t('cli.unavailable')}[/]", "")
        return table

    for key, value in document.items():
        label = i18n.t(f"field.{key}", default=key)
        table.add_row(label, _format_value(key, value))
    return table


def print_documents(services: PlatformServices, kinds: List[str], as_json: bool) -> None:
    if as_json:
        # stdout stays machine-readable: no rich markup
        print(get_device_info(services, kinds) if len(kinds) > 1
              else get_document_info(services, kinds[0]))
        return

    for kind, document in collect(services, kinds).items():
        console.print(
            Panel(
                build_document_table(kind, document),
                title=i18n.t(f"kind.{kind}", default=kind),
                border_style="#E95420",
            )
        )


def watch_battery(services: PlatformServices, as_json: bool, stop_event: threading.Event = None) -> int:
    """Print every power event until interrupted."""
    stop_event = stop_event or threading.Event()

    def _on_battery(action: str, battery_info: str):
        if as_json:
            line = {"action": action, "info": json.loads(battery_info)}
            print(json.dumps(line, separators=(",", ":")), flush=True)
        else:
            console.print(i18n.t("cli.event", action=action.rsplit(".", 1)[-1]), style="#fabd2f")
            console.print(f"  {battery_info}", style="#ebdbb2", highlight=False)

    handle = MonitorHandle(sink=_on_battery)
    if not start_monitoring(services, handle):
        console.print(f"❌ {i18n.t('cli.monitor_failed')}", style="bold red")
        return 1

    if not as_json:
        console.print(f"🔋 {i18n.t('cli.watching')}", style="#E95420")
    try:
        while not stop_event.wait(0.5):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        stop_monitoring(services, handle)
        if not as_json:
            console.print(i18n.t("cli.goodbye"), style="dim")
    return 0


def main(argv: List[str] = None) -> int:
    """Entry point"""
    i18n.init()

    parser = argparse.ArgumentParser(
        description=i18n.t("cli.arg_description"),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  device-info                     # All documents as tables
  device-info battery --json      # Battery document as a JSON object
  device-info --watch             # Stream power events
        """,
    )
    parser.add_argument(
        "kind",
        nargs="?",
        default="all",
        choices=DOCUMENT_KINDS + ["all"],
        help=i18n.t("cli.arg_kind"),
    )
    parser.add_argument("--json", action="store_true", help=i18n.t("cli.arg_json"))
    parser.add_argument("--watch", action="store_true", help=i18n.t("cli.arg_watch"))
    parser.add_argument("--debug", action="store_true", help=i18n.t("cli.arg_debug"))

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )

    services = LinuxPlatformServices()

    if args.watch:
        return watch_battery(services, args.json)

    kinds = DOCUMENT_KINDS if args.kind == "all" else [args.kind]
    try:
        print_documents(services, kinds, args.json)
    except Exception as e:
        console.print(f"❌ {i18n.t('cli.fatal_error', error=str(e))}", style="bold red")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
