"""Core data types for headset battery reporting."""

import json
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Tuple


class ProviderType(Enum):
    """How the battery data was obtained."""
    UPOWER = auto()
    SYSFS = auto()


class DeviceKind(Enum):
    """UPower device types.

    The UPower D-Bus documentation stops at PHONE, but the daemon itself
    reports the full list below.
    """
    UNKNOWN = 0
    LINE_POWER = 1
    BATTERY = 2
    UPS = 3
    MONITOR = 4
    MOUSE = 5
    KEYBOARD = 6
    PDA = 7
    PHONE = 8
    MEDIA_PLAYER = 9
    TABLET = 10
    COMPUTER = 11
    GAMING_INPUT = 12
    PEN = 13
    TOUCHPAD = 14
    MODEM = 15
    NETWORK = 16
    HEADSET = 17
    SPEAKERS = 18
    HEADPHONES = 19
    VIDEO = 20
    OTHER_AUDIO = 21
    REMOTE_CONTROL = 22
    PRINTER = 23
    SCANNER = 24
    CAMERA = 25
    WEARABLE = 26
    TOY = 27
    GENERIC = 28
    LAST = 29

    @classmethod
    def from_value(cls, value: int) -> "DeviceKind":
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def from_name(cls, name: str) -> "DeviceKind":
        """Look up a kind by its kebab-case name, e.g. ``other-audio``."""
        return cls[name.strip().replace("-", "_").upper()]

    @property
    def kebab_name(self) -> str:
        return self.name.lower().replace("_", "-")


@dataclass(frozen=True)
class DeviceId:
    """Identifier for a device across providers."""
    provider: ProviderType
    path: str
    serial: Optional[str] = None

    @property
    def stable_key(self) -> str:
        """Key for deduplication across providers.

        Bluetooth devices report their address as serial, so the same
        headset found by UPower and sysfs collapses to one entry.
        """
        if self.serial:
            return self.serial.lower()
        return self.path


@dataclass(frozen=True)
class CandidateDevice:
    """A connected device exposing a battery, seen at one instant."""
    device_id: DeviceId
    percentage: Optional[int]
    label: str
    kind: DeviceKind = DeviceKind.UNKNOWN

    @property
    def identity(self) -> str:
        return self.device_id.stable_key


DeviceSnapshot = Tuple[CandidateDevice, ...]


class Tier(Enum):
    """Coarse battery bucket, used by the bar to pick a glyph."""
    EMPTY = "empty"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    FULL = "full"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class StatusRecord:
    """One line of output for the status bar.

    Two records are equal when tier and text match; percentage and tooltip
    do not take part in the comparison.
    """
    text: str
    tier: Tier
    percentage: Optional[int] = field(default=None, compare=False)
    tooltip: Optional[str] = field(default=None, compare=False)
    css_class: str = field(default="", compare=False)

    def to_dict(self) -> dict:
        out = {"text": self.text}
        if self.tooltip is not None:
            out["tooltip"] = self.tooltip
        out["class"] = self.css_class or self.tier.value
        if self.percentage is not None:
            out["percentage"] = self.percentage
        return out

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))
