"""
Static lookup tables from raw platform codes to readable categories.
"""

from typing import Dict

# android.net.ConnectivityManager.TYPE_*
TYPE_MOBILE = 0
TYPE_WIFI = 1
TYPE_BLUETOOTH = 7
TYPE_ETHERNET = 9

# android.telephony.TelephonyManager.NETWORK_TYPE_*
NETWORK_TYPE_UNKNOWN = 0
NETWORK_TYPE_GPRS = 1
NETWORK_TYPE_EDGE = 2
NETWORK_TYPE_UMTS = 3
NETWORK_TYPE_CDMA = 4
NETWORK_TYPE_EVDO_0 = 5
NETWORK_TYPE_EVDO_A = 6
NETWORK_TYPE_1xRTT = 7
NETWORK_TYPE_HSDPA = 8
NETWORK_TYPE_HSUPA = 9
NETWORK_TYPE_HSPA = 10
NETWORK_TYPE_IDEN = 11
NETWORK_TYPE_EVDO_B = 12
NETWORK_TYPE_LTE = 13
NETWORK_TYPE_EHRPD = 14
NETWORK_TYPE_HSPAP = 15
NETWORK_TYPE_NR = 20

NETWORK_TYPE_NAMES: Dict[int, str] = {
    TYPE_WIFI: "wifi",
    TYPE_MOBILE: "mobile",
    TYPE_ETHERNET: "ethernet",
    TYPE_BLUETOOTH: "bluetooth",
}

# Radio technology → numeric class (1 = 2G, 2 = 3G, 3 = 4G)
NETWORK_CLASSES: Dict[int, int] = {
    NETWORK_TYPE_GPRS: 1,
    NETWORK_TYPE_EDGE: 1,
    NETWORK_TYPE_CDMA: 1,
    NETWORK_TYPE_1xRTT: 1,
    NETWORK_TYPE_IDEN: 1,
    NETWORK_TYPE_UMTS: 2,
    NETWORK_TYPE_EVDO_0: 2,
    NETWORK_TYPE_EVDO_A: 2,
    NETWORK_TYPE_HSDPA: 2,
    NETWORK_TYPE_HSUPA: 2,
    NETWORK_TYPE_HSPA: 2,
    NETWORK_TYPE_EVDO_B: 2,
    NETWORK_TYPE_EHRPD: 2,
    NETWORK_TYPE_HSPAP: 2,
    NETWORK_TYPE_LTE: 3,
}

NETWORK_GENERATIONS: Dict[int, str] = {
    1: "2G",
    2: "3G",
    3: "4G",
}


def network_type_name(network_type: int) -> str:
    """Coarse connectivity name; unknown codes map to "unknown"."""
    return NETWORK_TYPE_NAMES.get(network_type, "unknown")


def network_class(radio_type: int) -> int:
    return NETWORK_CLASSES.get(radio_type, 0)


def network_generation(network_class_code: int) -> str:
    return NETWORK_GENERATIONS.get(network_class_code, "Unknown")


def generation_for_network_type(radio_type: int) -> str:
    """e.g. NETWORK_TYPE_LTE → "4G", NETWORK_TYPE_NR → "Unknown"."""
    return network_generation(network_class(radio_type))
