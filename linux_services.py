#!/usr/bin/env python3
"""
Linux Services - PlatformServices backed by sysfs, procfs and os-release

Source map
──────────
• display            → /sys/class/drm/<card>-<connector>/{status,modes}
• battery / power    → /sys/class/power_supply/*  (type Battery, Mains, USB*, Wireless)
• active network     → default route in /proc/net/route, classified via /sys/class/net
• telephony          → ModemManager (`mmcli -m any -J`)
• memory             → /proc/meminfo + /proc/sys/vm/min_free_kbytes
• storage            → os.statvfs() on the data dir; external dir only if in /proc/mounts
• build / identity   → os-release, /sys/class/dmi/id, platform.uname(), machine-id
• power events       → one poller thread per receiver, diffing battery snapshots

When running as a snap, host files (os-release, machine-id) are read through
/var/lib/snapd/hostfs, which is always a bind mount of the real host root.
"""

import json
import logging
import os
import platform
import subprocess
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional

from classification import (
    NETWORK_CLASSES,
    NETWORK_TYPE_1xRTT,
    NETWORK_TYPE_EDGE,
    NETWORK_TYPE_EHRPD,
    NETWORK_TYPE_EVDO_0,
    NETWORK_TYPE_EVDO_A,
    NETWORK_TYPE_EVDO_B,
    NETWORK_TYPE_GPRS,
    NETWORK_TYPE_HSDPA,
    NETWORK_TYPE_HSPA,
    NETWORK_TYPE_HSPAP,
    NETWORK_TYPE_HSUPA,
    NETWORK_TYPE_LTE,
    NETWORK_TYPE_NR,
    NETWORK_TYPE_UMTS,
    NETWORK_TYPE_UNKNOWN,
    TYPE_BLUETOOTH,
    TYPE_ETHERNET,
    TYPE_MOBILE,
    TYPE_WIFI,
)
from platform_services import (
    ACTION_BATTERY_CHANGED,
    ACTION_BATTERY_LOW,
    ACTION_BATTERY_OKAY,
    ACTION_POWER_CONNECTED,
    ACTION_POWER_DISCONNECTED,
    BATTERY_HEALTH_COLD,
    BATTERY_HEALTH_DEAD,
    BATTERY_HEALTH_GOOD,
    BATTERY_HEALTH_OVER_VOLTAGE,
    BATTERY_HEALTH_OVERHEAT,
    BATTERY_HEALTH_UNKNOWN,
    BATTERY_HEALTH_UNSPECIFIED_FAILURE,
    BATTERY_PLUGGED_AC,
    BATTERY_PLUGGED_USB,
    BATTERY_PLUGGED_WIRELESS,
    BATTERY_STATUS_CHARGING,
    BATTERY_STATUS_DISCHARGING,
    BATTERY_STATUS_FULL,
    BATTERY_STATUS_NOT_CHARGING,
    BATTERY_STATUS_UNKNOWN,
    UNKNOWN,
    PlatformServices,
    ServiceUnavailableError,
)

logger = logging.getLogger(__name__)

_HOSTFS = "/var/lib/snapd/hostfs" if os.environ.get("SNAP") else ""

DEFAULT_POLL_INTERVAL = float(os.environ.get("DEVICE_INFO_POLL_INTERVAL", "5"))

# X11/Wayland logical DPI when the display does not say otherwise
DEFAULT_SCREEN_DPI = float(os.environ.get("DEVICE_INFO_SCREEN_DPI", "96"))
DENSITY_DEFAULT = 160

# Same thresholds the Android battery service uses for LOW / OKAY
LOW_BATTERY_LEVEL = 15
LOW_BATTERY_CLOSE_LEVEL = LOW_BATTERY_LEVEL + 5

# Not in the connectivity name table, so it classifies as "unknown"
TYPE_VPN = 17

_STATUS_CODES = {
    "Unknown": BATTERY_STATUS_UNKNOWN,
    "Charging": BATTERY_STATUS_CHARGING,
    "Discharging": BATTERY_STATUS_DISCHARGING,
    "Not charging": BATTERY_STATUS_NOT_CHARGING,
    "Full": BATTERY_STATUS_FULL,
}

_HEALTH_CODES = {
    "Unknown": BATTERY_HEALTH_UNKNOWN,
    "Good": BATTERY_HEALTH_GOOD,
    "Overheat": BATTERY_HEALTH_OVERHEAT,
    "Dead": BATTERY_HEALTH_DEAD,
    "Over voltage": BATTERY_HEALTH_OVER_VOLTAGE,
    "Unspecified failure": BATTERY_HEALTH_UNSPECIFIED_FAILURE,
    "Cold": BATTERY_HEALTH_COLD,
}

# ModemManager access technology → radio technology code
_MM_ACCESS_TECHNOLOGIES = {
    "gprs": NETWORK_TYPE_GPRS,
    "edge": NETWORK_TYPE_EDGE,
    "umts": NETWORK_TYPE_UMTS,
    "hsdpa": NETWORK_TYPE_HSDPA,
    "hsupa": NETWORK_TYPE_HSUPA,
    "hspa": NETWORK_TYPE_HSPA,
    "hspa-plus": NETWORK_TYPE_HSPAP,
    "1xrtt": NETWORK_TYPE_1xRTT,
    "evdo0": NETWORK_TYPE_EVDO_0,
    "evdoa": NETWORK_TYPE_EVDO_A,
    "evdob": NETWORK_TYPE_EVDO_B,
    "ehrpd": NETWORK_TYPE_EHRPD,
    "lte": NETWORK_TYPE_LTE,
    "5gnr": NETWORK_TYPE_NR,
}

_ABIS = {
    "x86_64": ["x86_64", "x86"],
    "amd64": ["x86_64", "x86"],
    "i686": ["x86"],
    "i386": ["x86"],
    "aarch64": ["arm64-v8a"],
    "arm64": ["arm64-v8a"],
    "armv7l": ["armeabi-v7a", "armeabi"],
    "armv6l": ["armeabi"],
    "riscv64": ["riscv64"],
}

_VPN_PREFIXES = ("tun", "tap", "wg", "vpn", "ipsec", "ppp")


def _read(path: Path) -> str:
    try:
        return path.read_text().strip()
    except Exception:
        return ""


def _read_int(path: Path, default: int = 0) -> int:
    try:
        return int(_read(path))
    except ValueError:
        return default


def _parse_key_values(text: str, sep: str = "=") -> Dict[str, str]:
    """Parse KEY=value lines (os-release, uevent) into a dict."""
    values: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if sep in line:
            key, _, value = line.partition(sep)
            values[key.strip()] = value.strip().strip('"')
    return values


def battery_level_pct(snapshot: Dict) -> float:
    scale = snapshot.get("scale", 100)
    return snapshot.get("level", 0) * 100 / scale if scale > 0 else 0.0


class PowerEventTracker:
    """
    Turns successive battery snapshots into power event names.

    • BATTERY_CHANGED     first snapshot (sticky), then any change
    • POWER_CONNECTED     plug source appears
    • POWER_DISCONNECTED  plug source goes away
    • BATTERY_LOW         unplugged and falls to LOW_BATTERY_LEVEL
    • BATTERY_OKAY        after a LOW, recovers to LOW_BATTERY_CLOSE_LEVEL
    """

    def __init__(self):
        self.last: Optional[Dict] = None
        self.low_sent = False

    def update(self, current: Optional[Dict]) -> List[str]:
        if current is None:
            return []

        events: List[str] = []
        last = self.last

        if last is None or current != last:
            events.append(ACTION_BATTERY_CHANGED)

        plugged_now = current.get("plugged", 0) != 0
        plugged_before = last is not None and last.get("plugged", 0) != 0
        if last is not None:
            if plugged_now and not plugged_before:
                events.append(ACTION_POWER_CONNECTED)
            elif plugged_before and not plugged_now:
                events.append(ACTION_POWER_DISCONNECTED)

        level = battery_level_pct(current)
        crossed_low = (
            last is None
            or plugged_before
            or battery_level_pct(last) > LOW_BATTERY_LEVEL
        )
        if (
            not plugged_now
            and not self.low_sent
            and current.get("status") != BATTERY_STATUS_UNKNOWN
            and level <= LOW_BATTERY_LEVEL
            and crossed_low
        ):
            events.append(ACTION_BATTERY_LOW)
            self.low_sent = True
        elif self.low_sent and level >= LOW_BATTERY_CLOSE_LEVEL:
            events.append(ACTION_BATTERY_OKAY)
            self.low_sent = False

        self.last = current
        return events


class _PowerSupplyWatcher(threading.Thread):
    """Polls the battery and dispatches matching events to one callback."""

    def __init__(
        self,
        services: "LinuxPlatformServices",
        actions: List[str],
        callback: Callable[[str], None],
        interval: float,
    ):
        super().__init__(name="power-supply-watcher", daemon=True)
        self._services = services
        self._actions = set(actions)
        self._callback = callback
        self._interval = interval
        self._halt = threading.Event()
        self._tracker = PowerEventTracker()

    def poll_once(self) -> List[str]:
        """Take one snapshot and deliver the events it produces."""
        try:
            snapshot = self._services.battery_status()
        except Exception as e:
            logger.debug(f"Battery poll failed: {e}")
            return []

        delivered = []
        for action in self._tracker.update(snapshot):
            if action not in self._actions or self._halt.is_set():
                continue
            try:
                self._callback(action)
                delivered.append(action)
            except Exception as e:
                logger.error(f"Power receiver raised on {action}: {e}", exc_info=True)
        return delivered

    def run(self):
        while not self._halt.is_set():
            self.poll_once()
            if self._halt.wait(self._interval):
                break

    def halt(self):
        self._halt.set()


class LinuxPlatformServices(PlatformServices):
    """Reads the local Linux host.  Roots are overridable for testing."""

    def __init__(
        self,
        sys_root: str = "/sys",
        proc_root: str = "/proc",
        etc_root: str = None,
        data_dir: str = None,
        external_dir: str = None,
        poll_interval: float = None,
        mmcli: str = "mmcli",
    ):
        self.sys_root = Path(sys_root)
        self.proc_root = Path(proc_root)
        self.etc_root = Path(etc_root or f"{_HOSTFS}/etc")
        self.data_dir = data_dir or os.environ.get("DEVICE_INFO_DATA_DIR", "/")
        self.external_dir = external_dir or os.environ.get("DEVICE_INFO_EXTERNAL_DIR") or None
        self.poll_interval = poll_interval if poll_interval is not None else DEFAULT_POLL_INTERVAL
        self.mmcli = mmcli
        self._watchers: set = set()

    # ── Display ────────────────────────────────────────────────────────────────

    def display_metrics(self) -> Optional[Dict]:
        """First connected DRM connector; None on a headless host."""
        drm = self.sys_root / "class" / "drm"
        if not drm.exists():
            return None

        for connector in sorted(drm.iterdir()):
            # card0 itself has no status; connectors are card0-eDP-1 etc.
            if "-" not in connector.name:
                continue
            if _read(connector / "status") != "connected":
                continue
            modes = _read(connector / "modes").splitlines()
            if not modes:
                continue
            width, _, height = modes[0].partition("x")
            try:
                width_px = int(width)
                height_px = int(height.rstrip("i"))
            except ValueError:
                continue

            dpi = DEFAULT_SCREEN_DPI
            density = dpi / DENSITY_DEFAULT
            return {
                "width_pixels": width_px,
                "height_pixels": height_px,
                "density": density,
                "density_dpi": int(round(dpi)),
                "scaled_density": density,
                "xdpi": dpi,
                "ydpi": dpi,
            }
        return None

    # ── Battery ────────────────────────────────────────────────────────────────

    def battery_status(self) -> Optional[Dict]:
        """System battery plus the active plug source; None without a battery."""
        psu_base = self.sys_root / "class" / "power_supply"
        if not psu_base.exists():
            return None

        battery = None
        plugged = 0
        for psu in sorted(psu_base.iterdir()):
            try:
                psu_real = psu.resolve()
            except Exception:
                continue
            psu_type = _read(psu_real / "type")

            if psu_type == "Battery":
                # Peripheral batteries (mice, headsets) report scope=Device
                if battery is None and _read(psu_real / "scope") != "Device":
                    battery = psu_real
            elif _read(psu_real / "online") == "1" and not plugged:
                if psu_type == "Mains":
                    plugged = BATTERY_PLUGGED_AC
                elif psu_type.startswith("USB"):
                    plugged = BATTERY_PLUGGED_USB
                elif psu_type == "Wireless":
                    plugged = BATTERY_PLUGGED_WIRELESS

        if battery is None:
            return None

        level = _read_int(battery / "capacity", -1)
        if level < 0:
            # Some firmwares only expose energy or charge counters
            for prefix in ("energy", "charge"):
                now = _read_int(battery / f"{prefix}_now", -1)
                full = _read_int(battery / f"{prefix}_full", -1)
                if now >= 0 and full > 0:
                    level = round(now / full * 100)
                    break

        voltage_uv = _read_int(battery / "voltage_now", -1)
        return {
            "level": level,
            "scale": 100,
            "status": _STATUS_CODES.get(_read(battery / "status"), BATTERY_STATUS_UNKNOWN),
            "plugged": plugged,
            "health": _HEALTH_CODES.get(_read(battery / "health"), BATTERY_HEALTH_UNKNOWN),
            # sysfs temp is already in tenths of a degree Celsius
            "temperature": _read_int(battery / "temp", 0),
            "voltage": voltage_uv // 1000 if voltage_uv >= 0 else 0,
        }

    # ── Network ────────────────────────────────────────────────────────────────

    def _default_route_interface(self) -> Optional[str]:
        try:
            lines = (self.proc_root / "net" / "route").read_text().splitlines()
        except Exception:
            return None
        for line in lines[1:]:
            fields = line.split()
            if len(fields) >= 2 and fields[1] == "00000000":
                return fields[0]
        return None

    def active_network(self) -> Optional[Dict]:
        """The interface carrying the default route; None when offline."""
        name = self._default_route_interface()
        if name is None:
            return None

        iface = self.sys_root / "class" / "net" / name
        uevent = _parse_key_values(_read(iface / "uevent"))
        devtype = uevent.get("DEVTYPE", "")
        operstate = _read(iface / "operstate")

        if (iface / "wireless").exists() or devtype == "wlan":
            net_type, type_name = TYPE_WIFI, "WIFI"
        elif devtype == "wwan" or name.startswith("wwan"):
            net_type, type_name = TYPE_MOBILE, "MOBILE"
        elif devtype == "bluetooth" or name.startswith("bnep"):
            net_type, type_name = TYPE_BLUETOOTH, "BLUETOOTH"
        elif any(name.startswith(p) for p in _VPN_PREFIXES):
            net_type, type_name = TYPE_VPN, "VPN"
        else:
            net_type, type_name = TYPE_ETHERNET, "ETHERNET"

        # Point-to-point links often report "unknown" while carrying traffic
        connected = operstate == "up" or (
            operstate == "unknown" and _read(iface / "carrier") == "1"
        )
        return {
            "type": net_type,
            "type_name": type_name,
            "subtype_name": "",
            "connected": connected,
            "interface": name,
        }

    # ── Telephony ──────────────────────────────────────────────────────────────

    def telephony(self) -> Dict:
        """Serving radio technology and operator from ModemManager."""
        try:
            result = subprocess.run(
                [self.mmcli, "-m", "any", "-J"],
                capture_output=True,
                text=True,
                timeout=5,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            raise ServiceUnavailableError(f"ModemManager not reachable: {e}") from e
        if result.returncode != 0:
            raise ServiceUnavailableError(result.stderr.strip() or "no modem")

        try:
            modem = json.loads(result.stdout)["modem"]
        except (ValueError, KeyError) as e:
            raise ServiceUnavailableError(f"Unexpected mmcli output: {e}") from e

        generic = modem.get("generic", {})
        gpp = modem.get("3gpp", {})
        codes = [
            _MM_ACCESS_TECHNOLOGIES[t]
            for t in generic.get("access-technologies", [])
            if t in _MM_ACCESS_TECHNOLOGIES
        ]
        # Several technologies can be listed; report the newest generation
        network_type = max(
            codes, key=lambda c: (NETWORK_CLASSES.get(c, 0), c), default=NETWORK_TYPE_UNKNOWN
        )
        operator = gpp.get("operator-name", "")
        return {
            "network_type": network_type,
            "operator_name": "" if operator == "--" else operator,
            # ModemManager reports the MCC, not an ISO country code
            "country_iso": "",
        }

    # ── Memory & storage ───────────────────────────────────────────────────────

    def memory_info(self) -> Dict:
        meminfo: Dict[str, int] = {}
        try:
            for line in (self.proc_root / "meminfo").read_text().splitlines():
                if ":" in line:
                    key, _, val = line.partition(":")
                    try:
                        meminfo[key.strip()] = int(val.split()[0])
                    except (ValueError, IndexError):
                        pass
        except OSError as e:
            raise ServiceUnavailableError(f"meminfo unreadable: {e}") from e

        total = meminfo.get("MemTotal", 0) * 1024
        available = meminfo.get("MemAvailable", meminfo.get("MemFree", 0)) * 1024
        threshold = _read_int(self.proc_root / "sys" / "vm" / "min_free_kbytes", 0) * 1024
        return {
            "total": total,
            "available": available,
            "low_memory": available <= threshold,
            "threshold": threshold,
        }

    @staticmethod
    def _statvfs(path: str) -> Dict:
        try:
            stat = os.statvfs(path)
        except OSError as e:
            raise ServiceUnavailableError(f"statvfs({path}) failed: {e}") from e
        return {
            "total": stat.f_blocks * stat.f_frsize,
            "free": stat.f_bfree * stat.f_frsize,
        }

    def internal_storage(self) -> Dict:
        return self._statvfs(self.data_dir)

    def _is_mounted(self, path: str) -> bool:
        target = os.path.normpath(path)
        try:
            for line in (self.proc_root / "mounts").read_text().splitlines():
                fields = line.split()
                if len(fields) >= 2 and fields[1] == target:
                    return True
        except OSError:
            return os.path.ismount(target)
        return False

    def external_storage(self) -> Optional[Dict]:
        if not self.external_dir or not self._is_mounted(self.external_dir):
            return None
        return self._statvfs(self.external_dir)

    # ── Build & identity ───────────────────────────────────────────────────────

    def _os_release(self) -> Dict[str, str]:
        for candidate in (self.etc_root / "os-release", Path(f"{_HOSTFS}/usr/lib/os-release")):
            text = _read(candidate)
            if text:
                return _parse_key_values(text)
        return {}

    def _dmi(self, name: str) -> str:
        return _read(self.sys_root / "class" / "dmi" / "id" / name) or UNKNOWN

    def build_info(self) -> Dict:
        """Build properties mapped from os-release, DMI and uname.

        Linux has no SDK level, so sdk_int is None.
        """
        os_release = self._os_release()
        uname = platform.uname()
        abis = _ABIS.get(uname.machine.lower(), [uname.machine or UNKNOWN])
        version_id = os_release.get("VERSION_ID", UNKNOWN)
        distro = os_release.get("ID", "linux")

        return {
            "sdk_int": None,
            "cpu_abi": abis[0],
            "supported_abis": abis,
            "release": version_id,
            "codename": os_release.get("VERSION_CODENAME", "REL"),
            "incremental": uname.release,
            "board": self._dmi("board_name"),
            "bootloader": self._dmi("bios_version"),
            "brand": self._dmi("sys_vendor"),
            "device": self._dmi("product_family"),
            "display": os_release.get("PRETTY_NAME", UNKNOWN),
            "fingerprint": f"{distro}/{version_id}/{uname.release}:{uname.machine}",
            "hardware": uname.machine or UNKNOWN,
            "host": uname.node or UNKNOWN,
            "id": os_release.get("BUILD_ID", version_id),
            "manufacturer": self._dmi("sys_vendor"),
            "model": self._dmi("product_name"),
            "product": distro,
            # product_serial is root-only on most systems
            "serial": self._dmi("product_serial"),
            "tags": os_release.get("VARIANT_ID", UNKNOWN),
            "type": "user",
            "user": os.environ.get("USER", UNKNOWN),
        }

    def identity(self) -> Dict:
        os_release = self._os_release()
        unique_id = _read(self.etc_root / "machine-id") or _read(
            self.sys_root / "class" / "dmi" / "id" / "product_uuid"
        )
        if not unique_id:
            raise ServiceUnavailableError("no machine-id")
        model = self._dmi("product_name")
        return {
            "unique_id": unique_id,
            "device_id": model,
            "system_name": os_release.get("NAME", platform.system() or "Linux"),
            "system_version": os_release.get("VERSION_ID", platform.release()),
            "model": model,
        }

    # ── Power events ───────────────────────────────────────────────────────────

    def register_receiver(self, actions: List[str], callback: Callable[[str], None]) -> object:
        watcher = _PowerSupplyWatcher(self, actions, callback, self.poll_interval)
        self._watchers.add(watcher)
        watcher.start()
        logger.debug(f"Power watcher started, interval={self.poll_interval}s")
        return watcher

    def unregister_receiver(self, token: object) -> None:
        if token not in self._watchers:
            raise ValueError("Receiver not registered")
        self._watchers.discard(token)
        token.halt()
        # A receiver may unregister itself from inside its own callback
        if token is not threading.current_thread():
            token.join(timeout=self.poll_interval + 1)
