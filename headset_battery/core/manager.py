"""Device manager - merges every enabled provider into one snapshot reader."""

import logging
from typing import Callable, Dict, List

from headset_battery.core.provider import BatteryProvider
from headset_battery.core.types import CandidateDevice, DeviceSnapshot
from headset_battery.exceptions import (
    ProviderError, ProviderUnavailableError, SubscriptionError,
)

log = logging.getLogger(__name__)


class DeviceManager:
    """Composite snapshot reader and change notification source.

    Providers are consulted in priority order; when two report the same
    physical device the higher priority one wins.
    """

    def __init__(self):
        self._providers: List[BatteryProvider] = []
        self._watching: List[BatteryProvider] = []

    @property
    def providers(self) -> List[BatteryProvider]:
        return list(self._providers)

    def register_provider(self, provider: BatteryProvider) -> None:
        """Register a battery provider, maintaining priority order."""
        self._providers.append(provider)
        self._providers.sort(key=lambda p: p.priority)

    def query(self) -> DeviceSnapshot:
        """Query all providers and deduplicate by stable key.

        Any provider failing fails the whole cycle, so an outage never
        silently switches the reported device to another provider's.
        """
        seen: Dict[str, CandidateDevice] = {}

        for provider in self._providers:
            try:
                found = provider.query()
            except ProviderUnavailableError:
                raise
            except Exception as exc:
                log.exception("Query failed for provider %s", provider.name)
                raise ProviderUnavailableError(f"{provider.name}: {exc}") from exc

            for device in found:
                if device.identity not in seen:
                    seen[device.identity] = device

        return tuple(seen.values())

    def start_watching(self, on_change: Callable[[], None]) -> None:
        """Subscribe to every provider that can notify.

        Raises SubscriptionError if none can, or if any subscription fails.
        """
        candidates = [p for p in self._providers if p.supports_notifications()]
        if not candidates:
            raise SubscriptionError("No provider supports change notifications")

        for provider in candidates:
            try:
                provider.start_watching(on_change)
            except SubscriptionError:
                self.stop_watching()
                raise
            self._watching.append(provider)
            log.debug("Watching %s for changes", provider.name)

    def stop_watching(self) -> None:
        for provider in self._watching:
            try:
                provider.stop_watching()
            except ProviderError:
                log.warning("Failed to stop watching %s", provider.name, exc_info=True)
        self._watching.clear()

    def close(self) -> None:
        """Stop watching and clean up all providers."""
        self.stop_watching()
        for provider in self._providers:
            provider.close()
