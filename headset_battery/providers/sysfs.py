"""sysfs battery provider — reads /sys/class/power_supply/ for headset batteries.

Catches USB and 2.4 GHz headsets whose kernel driver exposes a battery but
which UPower does not pick up.
Priority: 20.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from headset_battery.core.provider import BatteryProvider
from headset_battery.core.types import (
    CandidateDevice, DeviceId, DeviceKind, DeviceSnapshot, ProviderType,
)
from headset_battery.exceptions import ProviderUnavailableError, SubscriptionError

log = logging.getLogger(__name__)

_POWER_SUPPLY_DIR = Path("/sys/class/power_supply")

_HEADPHONE_KEYWORDS = ("headphone", "earbud", "buds", "airpods", "earphone")
_HEADSET_KEYWORDS = ("headset", "arctis", "cloud", "hs70", "hs80", "void",
                     "virtuoso", "blackshark", "kraken", "astro")


def _read_sysfs(path: Path) -> Optional[str]:
    """Read a sysfs attribute file, returning stripped content or None."""
    try:
        return path.read_text().strip()
    except OSError:
        return None


class SysfsProvider(BatteryProvider):
    """Battery provider reading /sys/class/power_supply/*/ for device batteries."""

    @property
    def name(self) -> str:
        return "sysfs"

    @property
    def priority(self) -> int:
        return 20

    def __init__(self, kinds=None, root: Path = _POWER_SUPPLY_DIR):
        super().__init__(kinds)
        self.root = root
        self._watch_callback: Optional[Callable[[], None]] = None
        self._watch_thread: Optional[threading.Thread] = None
        self._watching = False

    def query(self) -> DeviceSnapshot:
        if not self.root.is_dir():
            return ()

        try:
            entries = sorted(self.root.iterdir())
        except OSError as exc:
            raise ProviderUnavailableError(f"Cannot list {self.root}: {exc}") from exc

        results = []
        for entry in entries:
            if not entry.is_dir():
                continue
            device = self._read_device(entry)
            if device is not None:
                results.append(device)
        return tuple(results)

    def _read_device(self, ps_dir: Path) -> Optional[CandidateDevice]:
        """Read one power_supply entry, keeping device batteries of a wanted kind."""
        if _read_sysfs(ps_dir / "type") != "Battery":
            return None

        # The laptop's own battery has scope System or no scope at all
        if _read_sysfs(ps_dir / "scope") != "Device":
            return None

        model = _read_sysfs(ps_dir / "model_name") or ""
        manufacturer = _read_sysfs(ps_dir / "manufacturer") or ""
        kind = self.classify(ps_dir, model, manufacturer)
        if kind not in self.kinds:
            return None

        percentage: Optional[int] = None
        capacity = _read_sysfs(ps_dir / "capacity")
        if capacity is not None:
            try:
                percentage = int(capacity)
            except ValueError:
                log.debug("Ignoring capacity %r in %s", capacity, ps_dir)

        label = " ".join(part for part in (manufacturer, model) if part) or ps_dir.name
        serial = _read_sysfs(ps_dir / "serial_number") or None

        return CandidateDevice(
            device_id=DeviceId(
                provider=ProviderType.SYSFS,
                path=str(ps_dir),
                serial=serial,
            ),
            percentage=percentage,
            label=label,
            kind=kind,
        )

    @staticmethod
    def classify(ps_dir: Path, model: str, manufacturer: str) -> DeviceKind:
        """Guess the device kind from names, since sysfs does not say."""
        combined = f"{model} {manufacturer} {ps_dir.name}".lower()
        for kw in _HEADPHONE_KEYWORDS:
            if kw in combined:
                return DeviceKind.HEADPHONES
        for kw in _HEADSET_KEYWORDS:
            if kw in combined:
                return DeviceKind.HEADSET
        return DeviceKind.UNKNOWN

    def supports_notifications(self) -> bool:
        return True

    def start_watching(self, on_change: Callable[[], None]) -> None:
        try:
            import pyudev
            context = pyudev.Context()
            monitor = pyudev.Monitor.from_netlink(context)
            monitor.filter_by(subsystem="power_supply")
            monitor.start()
        except (ImportError, OSError) as exc:
            raise SubscriptionError(f"Cannot watch power_supply events: {exc}") from exc

        self._watch_callback = on_change
        self._watching = True

        def _watch():
            while self._watching:
                # Timeout so stop_watching() is noticed
                device = monitor.poll(timeout=1.0)
                if device is None or not self._watching:
                    continue
                log.debug("udev %s event for %s", device.action, device.sys_name)
                if self._watch_callback:
                    self._watch_callback()

        self._watch_thread = threading.Thread(target=_watch, name="udev-power-supply", daemon=True)
        self._watch_thread.start()

    def stop_watching(self) -> None:
        self._watching = False
        self._watch_callback = None
