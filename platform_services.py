#!/usr/bin/env python3
"""
Platform Services - the host capability interface the field readers query

Readers never talk to a concrete platform.  They receive an object that
implements PlatformServices and call the snapshot methods below.  Every
snapshot is a plain dict; None means the platform reports "absent" (no
sticky battery intent, no active network, no display).  A platform that
has no such service at all raises ServiceUnavailableError.
"""

from typing import Callable, Dict, List, Optional

# ── Battery codes (android.os.BatteryManager) ──────────────────────────────────

BATTERY_STATUS_UNKNOWN = 1
BATTERY_STATUS_CHARGING = 2
BATTERY_STATUS_DISCHARGING = 3
BATTERY_STATUS_NOT_CHARGING = 4
BATTERY_STATUS_FULL = 5

BATTERY_PLUGGED_AC = 1
BATTERY_PLUGGED_USB = 2
BATTERY_PLUGGED_WIRELESS = 4

BATTERY_HEALTH_UNKNOWN = 1
BATTERY_HEALTH_GOOD = 2
BATTERY_HEALTH_OVERHEAT = 3
BATTERY_HEALTH_DEAD = 4
BATTERY_HEALTH_OVER_VOLTAGE = 5
BATTERY_HEALTH_UNSPECIFIED_FAILURE = 6
BATTERY_HEALTH_COLD = 7

# ── Power event names (android.content.Intent) ─────────────────────────────────

ACTION_BATTERY_CHANGED = "android.intent.action.BATTERY_CHANGED"
ACTION_BATTERY_LOW = "android.intent.action.BATTERY_LOW"
ACTION_BATTERY_OKAY = "android.intent.action.BATTERY_OKAY"
ACTION_POWER_CONNECTED = "android.intent.action.ACTION_POWER_CONNECTED"
ACTION_POWER_DISCONNECTED = "android.intent.action.ACTION_POWER_DISCONNECTED"

POWER_ACTIONS = (
    ACTION_BATTERY_CHANGED,
    ACTION_BATTERY_LOW,
    ACTION_BATTERY_OKAY,
    ACTION_POWER_CONNECTED,
    ACTION_POWER_DISCONNECTED,
)

# ── SDK levels that gate individual fields ─────────────────────────────────────

SDK_JELLY_BEAN_MR1 = 17   # BATTERY_PLUGGED_WIRELESS
SDK_LOLLIPOP = 21         # Build.SUPPORTED_ABIS

# Placeholder the platform reports for build properties it cannot read
UNKNOWN = "unknown"


class DeviceInfoError(Exception):
    """Base class for device-info errors."""


class ServiceUnavailableError(DeviceInfoError):
    """The host has no such service, or it could not be reached."""


class SerializationError(DeviceInfoError):
    """A document holds a value that cannot be written as JSON."""


def sdk_at_least(build: Dict, level: int) -> bool:
    """True when the host's SDK level reaches `level`.

    Hosts that have no SDK level at all (sdk_int is None) are not gated.
    """
    sdk_int = build.get("sdk_int")
    if sdk_int is None:
        return True
    return sdk_int >= level


class PlatformServices:
    """Capability interface over the host's service registry.

    Subclasses implement every method.  Keys of the returned dicts are
    listed per method.
    """

    def display_metrics(self) -> Optional[Dict]:
        """width_pixels, height_pixels, density, density_dpi,
        scaled_density, xdpi, ydpi"""
        raise NotImplementedError

    def battery_status(self) -> Optional[Dict]:
        """Sticky battery state: level, scale, status, plugged, health,
        temperature (tenths of a degree), voltage (mV)"""
        raise NotImplementedError

    def active_network(self) -> Optional[Dict]:
        """type (int), type_name, subtype_name, connected"""
        raise NotImplementedError

    def telephony(self) -> Dict:
        """network_type (radio technology code), operator_name, country_iso"""
        raise NotImplementedError

    def memory_info(self) -> Dict:
        """total, available, low_memory, threshold (bytes)"""
        raise NotImplementedError

    def internal_storage(self) -> Dict:
        """total, free (bytes) of the data partition"""
        raise NotImplementedError

    def external_storage(self) -> Optional[Dict]:
        """total, free (bytes), or None when nothing is mounted"""
        raise NotImplementedError

    def build_info(self) -> Dict:
        """sdk_int, cpu_abi, supported_abis plus the build properties
        release, codename, incremental, board, bootloader, brand, device,
        display, fingerprint, hardware, host, id, manufacturer, model,
        product, serial, tags, type, user"""
        raise NotImplementedError

    def identity(self) -> Dict:
        """unique_id, device_id, system_name, system_version, model"""
        raise NotImplementedError

    def register_receiver(
        self, actions: List[str], callback: Callable[[str], None]
    ) -> object:
        """Subscribe `callback(action)` to the given event names.

        Returns an opaque token for unregister_receiver().
        """
        raise NotImplementedError

    def unregister_receiver(self, token: object) -> None:
        raise NotImplementedError
