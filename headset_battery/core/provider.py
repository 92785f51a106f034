"""Abstract base class for battery providers."""

from abc import ABC, abstractmethod
from typing import Callable, FrozenSet, Iterable, Optional

from headset_battery.core.types import DeviceKind, DeviceSnapshot

DEFAULT_KINDS = frozenset({DeviceKind.HEADSET, DeviceKind.HEADPHONES})


class BatteryProvider(ABC):
    """A source of battery data for audio accessories.

    Implementations:
    - UPowerProvider: D-Bus UPower daemon
    - SysfsProvider: /sys/class/power_supply/
    """

    def __init__(self, kinds: Optional[Iterable[DeviceKind]] = None):
        self.kinds: FrozenSet[DeviceKind] = (
            frozenset(kinds) if kinds is not None else DEFAULT_KINDS
        )

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name (e.g., 'UPower')."""
        ...

    @property
    @abstractmethod
    def priority(self) -> int:
        """Lower = preferred. UPower=10, sysfs=20."""
        ...

    @abstractmethod
    def query(self) -> DeviceSnapshot:
        """Return the connected devices of a matching kind.

        Raises ProviderUnavailableError when the underlying service cannot
        be reached. An empty tuple means nothing is connected.
        """
        ...

    def supports_notifications(self) -> bool:
        """Whether this provider can call back when devices change."""
        return False

    def start_watching(self, on_change: Callable[[], None]) -> None:
        """Start monitoring for device property changes.

        Args:
            on_change: Called from the provider's own thread, no payload.

        Raises SubscriptionError if the subscription cannot be set up.
        """
        pass

    def stop_watching(self) -> None:
        """Stop monitoring for device events."""
        pass

    def close(self) -> None:
        """Clean up resources."""
        pass
