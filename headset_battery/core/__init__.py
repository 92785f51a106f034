"""Core abstractions for headset battery reporting."""

from headset_battery.core.types import (
    ProviderType,
    DeviceKind,
    DeviceId,
    CandidateDevice,
    DeviceSnapshot,
    Tier,
    StatusRecord,
)
from headset_battery.core.provider import BatteryProvider
from headset_battery.core.manager import DeviceManager
from headset_battery.core.selector import select
from headset_battery.core.formatter import StatusFormatter
from headset_battery.core.monitor import BatteryMonitor, TriggerQueue

__all__ = [
    "ProviderType",
    "DeviceKind",
    "DeviceId",
    "CandidateDevice",
    "DeviceSnapshot",
    "Tier",
    "StatusRecord",
    "BatteryProvider",
    "DeviceManager",
    "select",
    "StatusFormatter",
    "BatteryMonitor",
    "TriggerQueue",
]
