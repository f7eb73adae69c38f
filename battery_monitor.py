"""
Battery Monitor - re-collects the battery document on power events

State lives on a caller-owned MonitorHandle rather than in module globals:

    handle = MonitorHandle(sink=lambda action, info: print(action, info))
    start_monitoring(services, handle)   # Inactive → Active
    ...
    stop_monitoring(services, handle)    # Active → Inactive

The host's event dispatcher calls back on its own thread; callbacks for one
receiver are serialized by the host, so the handle needs no lock.
"""

import logging
from typing import Callable, Optional

from device_info import get_battery_info
from platform_services import POWER_ACTIONS, PlatformServices

logger = logging.getLogger(__name__)

# sink(action, battery_json)
BatterySink = Callable[[str, str], None]

_REGISTERING = object()


class MonitorHandle:
    """Registration state for one battery subscription."""

    def __init__(self, sink: Optional[BatterySink] = None):
        self.sink = sink
        self.token: object = None
        self.events_delivered = 0

    @property
    def active(self) -> bool:
        return self.token is not None

    def __repr__(self):
        state = "active" if self.active else "inactive"
        return f"MonitorHandle({state}, delivered={self.events_delivered})"


def _make_receiver(services: PlatformServices, handle: MonitorHandle) -> Callable[[str], None]:
    """Return the callback the host invokes with each matching event name."""
    def _on_receive(action: str):
        if not handle.active:
            # Late delivery after stop_monitoring()
            return
        battery_info = get_battery_info(services)
        if handle.sink is None:
            logger.debug(f"No sink registered, dropping {action}")
            return
        try:
            handle.sink(action, battery_info)
            handle.events_delivered += 1
        except Exception as e:
            logger.error(f"Battery sink failed on {action}: {e}", exc_info=True)
    return _on_receive


def start_monitoring(services: PlatformServices, handle: MonitorHandle) -> bool:
    """Subscribe to the five power/battery events.

    Idempotent: an already active handle is left alone and True returned.
    Returns False, leaving the handle inactive, if the host refuses the
    registration or the sink stops monitoring from the sticky event.
    """
    if handle.active:
        return True

    # Hosts may deliver the sticky BATTERY_CHANGED before returning the token
    handle.token = _REGISTERING
    try:
        token = services.register_receiver(
            list(POWER_ACTIONS), _make_receiver(services, handle)
        )
    except Exception as e:
        handle.token = None
        logger.error(f"Could not register for power events: {e}")
        return False

    if handle.token is not _REGISTERING:
        # The sink stopped monitoring from within the sticky event
        try:
            services.unregister_receiver(token)
        except Exception as e:
            logger.warning(f"Failed to unregister power receiver: {e}")
        logger.info("Battery monitoring stopped during registration")
        return False
    handle.token = token
    logger.info("Battery monitoring started")
    return True


def stop_monitoring(services: PlatformServices, handle: MonitorHandle) -> None:
    """Unsubscribe and clear the handle; a no-op when inactive."""
    if not handle.active:
        return

    token, handle.token = handle.token, None
    if token is _REGISTERING:
        # start_monitoring() unregisters once the host hands back the token
        return
    try:
        services.unregister_receiver(token)
    except Exception as e:
        logger.warning(f"Failed to unregister power receiver: {e}")
    logger.info(f"Battery monitoring stopped after {handle.events_delivered} event(s)")
