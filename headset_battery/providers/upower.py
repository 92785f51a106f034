"""UPower battery provider — reads headset battery via D-Bus.

Covers Bluetooth headsets and headphones reported by BlueZ, plus USB
receivers with kernel battery support.
Priority: 10 (highest).
"""

import logging
import threading
from typing import Callable, List, Optional

from headset_battery.core.provider import BatteryProvider
from headset_battery.core.types import (
    CandidateDevice, DeviceId, DeviceKind, DeviceSnapshot, ProviderType,
)
from headset_battery.exceptions import ProviderUnavailableError, SubscriptionError

log = logging.getLogger(__name__)

# UPower BatteryLevel constants
_UPOWER_LEVEL_UNKNOWN = 0
_UPOWER_LEVEL_NONE = 1

_IFACE_DEVICE = "org.freedesktop.UPower.Device"
_IFACE_PROPS = "org.freedesktop.DBus.Properties"
_IFACE_UPOWER = "org.freedesktop.UPower"
_UPOWER_PATH = "/org/freedesktop/UPower"
_UPOWER_BUS = "org.freedesktop.UPower"


def _import_dbus():
    """Import dbus lazily so the module loads on machines without a session."""
    try:
        import dbus
        from dbus.mainloop.glib import DBusGMainLoop, threads_init
    except ImportError as exc:
        raise ProviderUnavailableError(f"dbus-python is not available: {exc}") from exc
    threads_init()
    return dbus, DBusGMainLoop


class UPowerProvider(BatteryProvider):
    """Battery provider using the UPower D-Bus daemon."""

    @property
    def name(self) -> str:
        return "UPower"

    @property
    def priority(self) -> int:
        return 10

    def __init__(self, kinds=None):
        super().__init__(kinds)
        self._bus = None
        self._dbus = None
        self._watch_callback: Optional[Callable[[], None]] = None
        self._signal_matches = []
        self._loop = None
        self._loop_thread: Optional[threading.Thread] = None

    def _get_bus(self):
        if self._bus is None:
            dbus, main_loop = _import_dbus()
            try:
                # Signals are only delivered with a main loop attached.
                self._bus = dbus.SystemBus(mainloop=main_loop())
            except dbus.exceptions.DBusException as exc:
                raise ProviderUnavailableError(
                    f"Could not connect to system D-Bus: {exc}"
                ) from exc
            self._dbus = dbus
        return self._bus

    def _enumerate(self) -> List[str]:
        bus = self._get_bus()
        try:
            upower_obj = bus.get_object(_UPOWER_BUS, _UPOWER_PATH)
            upower_iface = self._dbus.Interface(upower_obj, _IFACE_UPOWER)
            return [str(path) for path in upower_iface.EnumerateDevices()]
        except self._dbus.exceptions.DBusException as exc:
            raise ProviderUnavailableError(f"Failed to enumerate UPower devices: {exc}") from exc

    def _get_properties(self, dev_path: str) -> Optional[dict]:
        bus = self._get_bus()
        try:
            dev_obj = bus.get_object(_UPOWER_BUS, dev_path)
            props = self._dbus.Interface(dev_obj, _IFACE_PROPS)
            return dict(props.GetAll(_IFACE_DEVICE))
        except self._dbus.exceptions.DBusException:
            # Devices can vanish between EnumerateDevices and GetAll.
            log.debug("Failed to read UPower device %s", dev_path)
            return None

    def query(self) -> DeviceSnapshot:
        results = []
        for dev_path in self._enumerate():
            props = self._get_properties(dev_path)
            if props is None:
                continue
            device = self._device_from_properties(dev_path, props)
            if device is not None:
                results.append(device)
        return tuple(results)

    def _device_from_properties(self, dev_path: str, props: dict) -> Optional[CandidateDevice]:
        """Build a CandidateDevice if the device is present and of a wanted kind."""
        kind = DeviceKind.from_value(int(props.get("Type", 0)))
        if kind not in self.kinds:
            return None
        if not bool(props.get("IsPresent", True)):
            return None

        model = str(props.get("Model") or "")
        native_path = str(props.get("NativePath") or "")
        serial = str(props.get("Serial") or "")

        percentage: Optional[int] = None
        if "Percentage" in props:
            value = float(props["Percentage"])
            level = int(props.get("BatteryLevel", _UPOWER_LEVEL_NONE))
            # Devices that never reported a level show 0% with an unknown level.
            if not (value == 0 and level == _UPOWER_LEVEL_UNKNOWN):
                percentage = int(round(value))

        log.debug("UPower %s: kind=%s model=%r percentage=%s",
                  dev_path, kind.kebab_name, model, percentage)

        return CandidateDevice(
            device_id=DeviceId(
                provider=ProviderType.UPOWER,
                path=dev_path,
                serial=serial or None,
            ),
            percentage=percentage,
            label=model or native_path or dev_path.rsplit("/", 1)[-1],
            kind=kind,
        )

    def supports_notifications(self) -> bool:
        return True

    def start_watching(self, on_change: Callable[[], None]) -> None:
        try:
            bus = self._get_bus()
            from gi.repository import GLib
        except (ProviderUnavailableError, ImportError) as exc:
            raise SubscriptionError(f"Cannot watch UPower: {exc}") from exc

        self._watch_callback = on_change

        try:
            # DeviceAdded / DeviceRemoved on the daemon itself
            match_upower = bus.add_signal_receiver(
                self._on_device_change,
                dbus_interface=_IFACE_UPOWER,
                bus_name=_UPOWER_BUS,
            )
            # Percentage and friends on every device object
            match_props = bus.add_signal_receiver(
                self._on_device_change,
                signal_name="PropertiesChanged",
                dbus_interface=_IFACE_PROPS,
                bus_name=_UPOWER_BUS,
            )
        except self._dbus.exceptions.DBusException as exc:
            raise SubscriptionError(f"Failed to set up UPower signal watchers: {exc}") from exc
        self._signal_matches = [match_upower, match_props]

        self._loop = GLib.MainLoop()
        self._loop_thread = threading.Thread(
            target=self._loop.run, name="upower-signals", daemon=True
        )
        self._loop_thread.start()

    def stop_watching(self) -> None:
        self._watch_callback = None
        for match in self._signal_matches:
            match.remove()
        self._signal_matches.clear()
        if self._loop is not None:
            self._loop.quit()
            self._loop = None

    def close(self) -> None:
        self.stop_watching()
        self._bus = None

    def _on_device_change(self, *args):
        if self._watch_callback:
            self._watch_callback()
