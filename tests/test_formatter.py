from __future__ import annotations

import json

import pytest

from headset_battery.core.formatter import StatusFormatter
from headset_battery.core.types import StatusRecord, Tier
from headset_battery.exceptions import ConfigError

from conftest import make_device

_ORDER = [Tier.LOW, Tier.MEDIUM, Tier.HIGH, Tier.FULL]


@pytest.mark.parametrize("low", [0, 20, 20.5, 59, 60, 75, 94, 95, 100])
def test_tiers_are_total_and_monotonic(low) -> None:
    formatter = StatusFormatter(low_percentage=low)

    previous = None
    for p in range(0, 101):
        tier = formatter.tier_for(p)
        assert tier in _ORDER
        if previous is not None:
            assert _ORDER.index(tier) >= _ORDER.index(previous)
        previous = tier


def test_default_bands() -> None:
    formatter = StatusFormatter()

    assert formatter.tier_for(0) is Tier.LOW
    assert formatter.tier_for(20) is Tier.LOW
    assert formatter.tier_for(21) is Tier.MEDIUM
    assert formatter.tier_for(59) is Tier.MEDIUM
    assert formatter.tier_for(60) is Tier.HIGH
    assert formatter.tier_for(94) is Tier.HIGH
    assert formatter.tier_for(95) is Tier.FULL
    assert formatter.tier_for(100) is Tier.FULL


def test_high_low_percentage_swallows_medium_band() -> None:
    formatter = StatusFormatter(low_percentage=70)

    assert formatter.tier_for(70) is Tier.LOW
    assert formatter.tier_for(71) is Tier.HIGH
    assert formatter.tier_for(95) is Tier.FULL


@pytest.mark.parametrize("low", [-1, 101])
def test_low_percentage_out_of_range_rejected(low) -> None:
    with pytest.raises(ConfigError):
        StatusFormatter(low_percentage=low)


def test_no_device_gives_empty_record() -> None:
    record = StatusFormatter().format(None)

    assert record.tier is Tier.EMPTY
    assert record.text == ""
    assert record.percentage is None
    assert json.loads(record.to_json()) == {"text": "", "class": "empty"}


def test_low_battery_record() -> None:
    record = StatusFormatter().format(make_device("x", 5, label="WH-1000XM4"))

    assert record.tier is Tier.LOW
    assert "5" in record.text
    assert json.loads(record.to_json()) == {
        "text": "5%",
        "tooltip": "WH-1000XM4",
        "class": "low",
        "percentage": 5,
    }


def test_custom_low_class() -> None:
    record = StatusFormatter(low_class="critical").format(make_device("x", 10))

    assert record.tier is Tier.LOW
    assert record.to_dict()["class"] == "critical"


def test_unknown_percentage_has_no_number() -> None:
    record = StatusFormatter().format(make_device("x", None, label="Buds"))

    assert record.tier is Tier.UNKNOWN
    assert not any(ch.isdigit() for ch in record.text)
    assert "percentage" not in record.to_dict()
    assert record.to_dict()["tooltip"] == "Buds"


def test_out_of_range_percentage_is_clamped() -> None:
    record = StatusFormatter().format(make_device("x", 104))

    assert record.text == "100%"
    assert record.tier is Tier.FULL


def test_equality_ignores_percentage_and_tooltip() -> None:
    a = StatusRecord(text="50%", tier=Tier.MEDIUM, percentage=50, tooltip="A")
    b = StatusRecord(text="50%", tier=Tier.MEDIUM, percentage=49, tooltip="B")
    c = StatusRecord(text="51%", tier=Tier.MEDIUM, percentage=51, tooltip="A")

    assert a == b
    assert a != c


def test_degraded_record() -> None:
    record = StatusFormatter().degraded("no bus")

    assert record.tier is Tier.UNKNOWN
    assert "no bus" in record.tooltip


def test_degraded_record_differs_from_unknown_percentage() -> None:
    formatter = StatusFormatter()

    assert formatter.degraded("no bus") != formatter.format(make_device("x", None))
