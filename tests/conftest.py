from __future__ import annotations

import threading
from typing import Callable, List, Optional

import pytest

from headset_battery.core.types import (
    CandidateDevice, DeviceId, DeviceKind, ProviderType,
)
from headset_battery.exceptions import ProviderUnavailableError, SubscriptionError


def make_device(identity: str, percentage: Optional[int], label: str = "Headset") -> CandidateDevice:
    return CandidateDevice(
        device_id=DeviceId(provider=ProviderType.UPOWER, path=identity),
        percentage=percentage,
        label=label,
        kind=DeviceKind.HEADSET,
    )


class FakeReader:
    """Scripted snapshot reader.

    Each query() pops the next response; once the script runs out the last
    response is repeated. A response that is an exception instance is
    raised instead of returned.
    """

    def __init__(self, responses: list):
        self._responses = list(responses)
        self._lock = threading.Lock()
        self.calls = 0
        self.watching = False
        self.on_change: Optional[Callable[[], None]] = None
        self.queried = threading.Condition()
        self.gate: Optional[threading.Event] = None
        self.fail_subscribe = False

    def query(self):
        with self.queried:
            self.calls += 1
            self.queried.notify_all()
        if self.gate is not None:
            self.gate.wait()
        with self._lock:
            response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    def wait_for_calls(self, n: int, timeout: float = 5.0) -> bool:
        with self.queried:
            return self.queried.wait_for(lambda: self.calls >= n, timeout=timeout)

    def start_watching(self, on_change):
        if self.fail_subscribe:
            raise SubscriptionError("no bus")
        self.watching = True
        self.on_change = on_change

    def stop_watching(self):
        self.watching = False
        self.on_change = None


class Recorder:
    """Collects emitted records and lets tests wait for them."""

    def __init__(self):
        self.records: List = []
        self._cond = threading.Condition()

    def __call__(self, record) -> None:
        with self._cond:
            self.records.append(record)
            self._cond.notify_all()

    def wait_for(self, n: int, timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: len(self.records) >= n, timeout=timeout)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


UNREACHABLE = ProviderUnavailableError("service unreachable")
