#!/usr/bin/env python3
"""
Device Info - field readers and the document assembler

Each read_* function maps one platform subsystem to a flat, ordered
document (a dict of scalars).  A reader never raises: a missing service,
an absent sticky intent or a bad value all give the empty document {}.
Callers treat {} as "unavailable", not as an error.

The get_*_info functions are the public operations.  They return the
document serialized as a JSON object string, "{}" when unavailable.
"""

import json
import logging
from typing import Callable, Dict, Iterable, List, Optional

from classification import TYPE_MOBILE, generation_for_network_type, network_type_name
from platform_services import (
    BATTERY_PLUGGED_AC,
    BATTERY_PLUGGED_USB,
    BATTERY_PLUGGED_WIRELESS,
    BATTERY_STATUS_CHARGING,
    BATTERY_STATUS_FULL,
    SDK_JELLY_BEAN_MR1,
    SDK_LOLLIPOP,
    PlatformServices,
    SerializationError,
    sdk_at_least,
)

logger = logging.getLogger(__name__)

EMPTY_DOCUMENT = "{}"

# Build properties copied verbatim into the system document, in output order
BUILD_FIELDS = (
    "release",
    "codename",
    "incremental",
    "board",
    "bootloader",
    "brand",
    "device",
    "display",
    "fingerprint",
    "hardware",
    "host",
    "id",
    "manufacturer",
    "model",
    "product",
    "serial",
    "tags",
    "type",
    "user",
)


# ── Field readers ──────────────────────────────────────────────────────────────

def read_screen(services: PlatformServices) -> Dict:
    """Pixel size, logical density and physical DPI of the default display."""
    try:
        metrics = services.display_metrics()
        if metrics is None:
            return {}
        return {
            "width": int(metrics["width_pixels"]),
            "height": int(metrics["height_pixels"]),
            "density": float(metrics["density"]),
            "densityDpi": int(metrics["density_dpi"]),
            "scaledDensity": float(metrics["scaled_density"]),
            "xdpi": float(metrics["xdpi"]),
            "ydpi": float(metrics["ydpi"]),
        }
    except Exception as e:
        logger.debug(f"Screen reader unavailable: {e}", exc_info=True)
        return {}


def is_charging(status: int) -> bool:
    return status in (BATTERY_STATUS_CHARGING, BATTERY_STATUS_FULL)


def battery_percentage(level: int, scale: int) -> float:
    return level * 100 / float(scale)


def read_battery(services: PlatformServices) -> Dict:
    """
    Charge, charging state, plug source, health, temperature and voltage
    from the sticky battery state.

    Wireless charging is only reported from SDK_JELLY_BEAN_MR1 on; older
    hosts always report False.
    """
    try:
        battery = services.battery_status()
        if battery is None:
            return {}

        scale = battery.get("scale", -1)
        if scale <= 0:
            logger.debug(f"Battery scale {scale} is not usable")
            return {}

        status = battery.get("status", -1)
        plugged = battery.get("plugged", -1)

        wireless = False
        if sdk_at_least(services.build_info(), SDK_JELLY_BEAN_MR1):
            wireless = plugged == BATTERY_PLUGGED_WIRELESS

        return {
            "level": battery_percentage(battery.get("level", -1), scale),
            "isCharging": is_charging(status),
            "usbCharge": plugged == BATTERY_PLUGGED_USB,
            "acCharge": plugged == BATTERY_PLUGGED_AC,
            "wirelessCharge": wireless,
            "health": battery.get("health", -1),
            "temperature": battery.get("temperature", -1) / 10.0,
            "voltage": battery.get("voltage", -1),
            "status": status,
        }
    except Exception as e:
        logger.debug(f"Battery reader unavailable: {e}", exc_info=True)
        return {}


def read_network(services: PlatformServices) -> Dict:
    """
    Connectivity of the active transport.  Cellular transports also carry
    the radio generation, carrier name and country code.
    """
    try:
        network = services.active_network()
        if network is None:
            return {"type": "none", "isConnected": False}

        info: Dict = {
            "isConnected": bool(network.get("connected", False)),
            "type": network_type_name(network.get("type", -1)),
            "typeName": network.get("type_name", ""),
            "subTypeName": network.get("subtype_name", ""),
        }

        if network.get("type") == TYPE_MOBILE:
            radio = services.telephony()
            info["networkGeneration"] = generation_for_network_type(
                radio.get("network_type", 0)
            )
            info["carrierName"] = radio.get("operator_name", "")
            info["countryCode"] = radio.get("country_iso", "")

        return info
    except Exception as e:
        logger.debug(f"Network reader unavailable: {e}", exc_info=True)
        return {}


def read_system(services: PlatformServices) -> Dict:
    """
    Memory pressure, storage, CPU ABIs and build properties.

    External storage keys are only present while external storage is
    mounted.  supportedAbis is a comma-separated list (SDK_LOLLIPOP on).
    """
    try:
        info: Dict = {}

        memory = services.memory_info()
        info["totalMemory"] = memory["total"]
        info["availableMemory"] = memory["available"]
        info["isLowMemory"] = bool(memory["low_memory"])
        info["memoryThreshold"] = memory["threshold"]

        internal = services.internal_storage()
        info["internalStorageTotal"] = internal["total"]
        info["internalStorageFree"] = internal["free"]

        external = services.external_storage()
        if external is not None:
            info["externalStorageTotal"] = external["total"]
            info["externalStorageFree"] = external["free"]

        build = services.build_info()
        info["cpuAbi"] = build.get("cpu_abi", "")
        if sdk_at_least(build, SDK_LOLLIPOP):
            info["supportedAbis"] = ",".join(build.get("supported_abis", []))

        info["sdkInt"] = build.get("sdk_int") or 0
        for field in BUILD_FIELDS:
            info[field] = build.get(field, "")

        return info
    except Exception as e:
        logger.debug(f"System reader unavailable: {e}", exc_info=True)
        return {}


def read_identity(services: PlatformServices) -> Dict:
    """Stable device identifiers and the OS name/version constants."""
    try:
        ident = services.identity()
        return {
            "uniqueId": ident["unique_id"],
            "deviceId": ident["device_id"],
            "systemName": ident["system_name"],
            "systemVersion": ident["system_version"],
            "model": ident["model"],
        }
    except Exception as e:
        logger.debug(f"Identity reader unavailable: {e}", exc_info=True)
        return {}


READERS: Dict[str, Callable[[PlatformServices], Dict]] = {
    "screen": read_screen,
    "battery": read_battery,
    "network": read_network,
    "system": read_system,
    "identity": read_identity,
}


# ── Document assembler ─────────────────────────────────────────────────────────

def assemble(*documents: Dict) -> Dict:
    """Merge documents into one, keeping first-seen key order.

    A key present in several documents takes the last value.
    """
    merged: Dict = {}
    for document in documents:
        merged.update(document)
    return merged


def collect(services: PlatformServices, kinds: Optional[Iterable[str]] = None) -> Dict[str, Dict]:
    """Run the named readers (all by default) and key their documents by kind."""
    selected: List[str] = list(kinds) if kinds is not None else list(READERS)
    unknown = [k for k in selected if k not in READERS]
    if unknown:
        raise ValueError(f"Unknown document kind(s): {', '.join(unknown)}")
    return {kind: READERS[kind](services) for kind in selected}


def to_json(document: Dict) -> str:
    """Serialize a document to a compact JSON object string.

    Raises SerializationError for values JSON cannot carry (NaN,
    infinities, objects of unknown type).
    """
    if not isinstance(document, dict):
        raise SerializationError(f"Expected a document, got {type(document).__name__}")
    try:
        return json.dumps(document, allow_nan=False, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise SerializationError(str(e)) from e


def _serialize(kind: str, document: Dict) -> str:
    try:
        return to_json(document)
    except SerializationError as e:
        logger.debug(f"Dropping {kind} document: {e}")
        return EMPTY_DOCUMENT


# ── Public operations ──────────────────────────────────────────────────────────

def get_screen_info(services: PlatformServices) -> str:
    return _serialize("screen", read_screen(services))


def get_battery_info(services: PlatformServices) -> str:
    return _serialize("battery", read_battery(services))


def get_network_info(services: PlatformServices) -> str:
    return _serialize("network", read_network(services))


def get_system_info(services: PlatformServices) -> str:
    return _serialize("system", read_system(services))


def get_identity_info(services: PlatformServices) -> str:
    return _serialize("identity", read_identity(services))


def get_device_info(services: PlatformServices, kinds: Optional[Iterable[str]] = None) -> str:
    """All requested documents in one JSON object, keyed by kind.

    A kind whose document cannot be serialized is reported as {}.
    """
    report = {}
    for kind, document in collect(services, kinds).items():
        report[kind] = json.loads(_serialize(kind, document))
    return to_json(report)


def get_document_info(services: PlatformServices, kind: str) -> str:
    """One document by kind name, serialized."""
    return _serialize(kind, collect(services, [kind])[kind])


def get_merged_device_info(services: PlatformServices, kinds: Optional[Iterable[str]] = None) -> str:
    """The requested documents merged into one flat document.

    Shared keys (e.g. "type" in network and system) keep the later kind's value.
    """
    return _serialize("merged", assemble(*collect(services, kinds).values()))
