from typing import Callable, Dict, List, Optional

import pytest

from classification import TYPE_WIFI
from platform_services import (
    BATTERY_HEALTH_GOOD,
    BATTERY_PLUGGED_USB,
    BATTERY_STATUS_CHARGING,
    PlatformServices,
    ServiceUnavailableError,
)


class FakePlatformServices(PlatformServices):
    """In-memory host whose snapshots tests can edit directly."""

    def __init__(self):
        self.display: Optional[Dict] = {
            "width_pixels": 1080,
            "height_pixels": 2340,
            "density": 2.75,
            "density_dpi": 440,
            "scaled_density": 2.75,
            "xdpi": 409.432,
            "ydpi": 411.891,
        }
        self.battery: Optional[Dict] = {
            "level": 50,
            "scale": 100,
            "status": BATTERY_STATUS_CHARGING,
            "plugged": BATTERY_PLUGGED_USB,
            "health": BATTERY_HEALTH_GOOD,
            "temperature": 235,
            "voltage": 4123,
        }
        self.network: Optional[Dict] = {
            "type": TYPE_WIFI,
            "type_name": "WIFI",
            "subtype_name": "",
            "connected": True,
        }
        self.radio: Optional[Dict] = None
        self.memory = {
            "total": 8 * 1024 ** 3,
            "available": 3 * 1024 ** 3,
            "low_memory": False,
            "threshold": 226 * 1024 ** 2,
        }
        self.internal = {"total": 128 * 1024 ** 3, "free": 64 * 1024 ** 3}
        self.external: Optional[Dict] = None
        self.build = {
            "sdk_int": 33,
            "cpu_abi": "arm64-v8a",
            "supported_abis": ["arm64-v8a", "armeabi-v7a", "armeabi"],
            "release": "13",
            "codename": "REL",
            "incremental": "9322313",
            "board": "oriole",
            "bootloader": "slider-1.2-9152140",
            "brand": "google",
            "device": "oriole",
            "display": "TQ2A.230305.008.C1",
            "fingerprint": "google/oriole/oriole:13/TQ2A.230305.008.C1/9322313:user/release-keys",
            "hardware": "oriole",
            "host": "abfarm-release",
            "id": "TQ2A.230305.008.C1",
            "manufacturer": "Google",
            "model": "Pixel 6",
            "product": "oriole",
            "serial": "unknown",
            "tags": "release-keys",
            "type": "user",
            "user": "android-build",
        }
        self.ident = {
            "unique_id": "c0ffee0123456789",
            "device_id": "oriole",
            "system_name": "Android",
            "system_version": "13",
            "model": "Pixel 6",
        }
        self.receivers: Dict[int, tuple] = {}
        self.registrations = 0
        self.refuse_registration = False

    def display_metrics(self):
        return self.display

    def battery_status(self):
        return self.battery

    def active_network(self):
        return self.network

    def telephony(self):
        if self.radio is None:
            raise ServiceUnavailableError("no telephony")
        return self.radio

    def memory_info(self):
        return self.memory

    def internal_storage(self):
        return self.internal

    def external_storage(self):
        return self.external

    def build_info(self):
        return self.build

    def identity(self):
        return self.ident

    def register_receiver(self, actions: List[str], callback: Callable[[str], None]):
        if self.refuse_registration:
            raise ServiceUnavailableError("receiver refused")
        self.registrations += 1
        token = self.registrations
        self.receivers[token] = (list(actions), callback)
        return token

    def unregister_receiver(self, token):
        del self.receivers[token]

    def fire(self, action: str) -> None:
        """Dispatch an event to every receiver whose filter matches."""
        for actions, callback in list(self.receivers.values()):
            if action in actions:
                callback(action)


@pytest.fixture
def services() -> FakePlatformServices:
    return FakePlatformServices()
