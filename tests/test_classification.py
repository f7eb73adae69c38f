import pytest

import classification
from classification import (
    NETWORK_CLASSES,
    generation_for_network_type,
    network_class,
    network_generation,
    network_type_name,
)


@pytest.mark.parametrize(
    "code,name",
    [
        (classification.TYPE_WIFI, "wifi"),
        (classification.TYPE_MOBILE, "mobile"),
        (classification.TYPE_ETHERNET, "ethernet"),
        (classification.TYPE_BLUETOOTH, "bluetooth"),
        (17, "unknown"),
        (-1, "unknown"),
    ],
)
def test_network_type_name(code, name) -> None:
    assert network_type_name(code) == name


@pytest.mark.parametrize(
    "radio,generation",
    [
        (classification.NETWORK_TYPE_GPRS, "2G"),
        (classification.NETWORK_TYPE_EDGE, "2G"),
        (classification.NETWORK_TYPE_CDMA, "2G"),
        (classification.NETWORK_TYPE_1xRTT, "2G"),
        (classification.NETWORK_TYPE_IDEN, "2G"),
        (classification.NETWORK_TYPE_UMTS, "3G"),
        (classification.NETWORK_TYPE_EVDO_0, "3G"),
        (classification.NETWORK_TYPE_EVDO_A, "3G"),
        (classification.NETWORK_TYPE_HSDPA, "3G"),
        (classification.NETWORK_TYPE_HSUPA, "3G"),
        (classification.NETWORK_TYPE_HSPA, "3G"),
        (classification.NETWORK_TYPE_EVDO_B, "3G"),
        (classification.NETWORK_TYPE_EHRPD, "3G"),
        (classification.NETWORK_TYPE_HSPAP, "3G"),
        (classification.NETWORK_TYPE_LTE, "4G"),
        (classification.NETWORK_TYPE_UNKNOWN, "Unknown"),
        (classification.NETWORK_TYPE_NR, "Unknown"),
        (999, "Unknown"),
    ],
)
def test_generation_for_network_type(radio, generation) -> None:
    assert generation_for_network_type(radio) == generation


def test_every_known_code_maps_to_one_generation() -> None:
    generations = {"2G", "3G", "4G", "Unknown"}
    for code in range(-1, 32):
        assert generation_for_network_type(code) in generations


def test_class_table_only_uses_known_classes() -> None:
    assert set(NETWORK_CLASSES.values()) == {1, 2, 3}
    assert network_class(12345) == 0
    assert network_generation(0) == "Unknown"
    assert network_generation(7) == "Unknown"
