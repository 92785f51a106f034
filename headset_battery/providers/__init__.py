"""Battery provider implementations."""

from headset_battery.providers.upower import UPowerProvider
from headset_battery.providers.sysfs import SysfsProvider

__all__ = ["UPowerProvider", "SysfsProvider"]
