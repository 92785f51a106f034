"""Event merge loop: timer ticks and change notifications in, records out.

Producers (the interval timer and provider watch threads) only post to a
TriggerQueue. A single consumer, BatteryMonitor.run(), takes triggers one at
a time, refreshes, and emits a record whenever the displayed status changes.
"""

import logging
import threading
from typing import Callable, Optional, Set

from headset_battery.core.formatter import StatusFormatter
from headset_battery.core.selector import select
from headset_battery.core.types import DeviceSnapshot, StatusRecord
from headset_battery.exceptions import ProviderUnavailableError

log = logging.getLogger(__name__)

DEFAULT_FAILURE_THRESHOLD = 3


class TriggerQueue:
    """Coalescing trigger flag with one consumer.

    Any number of post() calls made before the consumer wakes up collapse
    into a single pending refresh.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._pending = False
        self._reasons: Set[str] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def post(self, reason: str) -> None:
        with self._cond:
            if self._closed:
                return
            self._pending = True
            self._reasons.add(reason)
            self._cond.notify_all()

    def wait(self) -> Optional[Set[str]]:
        """Block until a trigger is pending or the queue is closed.

        Returns the set of reasons that were merged into this trigger, or
        None once the queue is closed.
        """
        with self._cond:
            self._cond.wait_for(lambda: self._pending or self._closed)
            if self._closed:
                return None
            reasons = self._reasons
            self._pending = False
            self._reasons = set()
            return reasons

    def wait_until(self, predicate: Callable[[], bool]) -> bool:
        """Block until predicate() holds or the queue is closed.

        Whoever makes the predicate true must call wake().
        Returns False if the queue was closed first.
        """
        with self._cond:
            self._cond.wait_for(lambda: self._closed or predicate())
            return not self._closed

    def wake(self) -> None:
        with self._cond:
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()


class IntervalTimer:
    """Posts a 'timer' trigger every `interval` seconds on a daemon thread."""

    def __init__(self, interval: float, triggers: TriggerQueue):
        self.interval = interval
        self._triggers = triggers
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        def _tick():
            while not self._stop.wait(self.interval):
                self._triggers.post("timer")

        self._thread = threading.Thread(target=_tick, name="refresh-timer", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()


class BatteryMonitor:
    """Refreshes battery status on demand and emits changed records.

    Args:
        reader: Anything with query() -> DeviceSnapshot; in listen mode it
            also needs start_watching(on_change) and stop_watching().
        formatter: Builds StatusRecords from the selected device.
        emit: Called with every record that should be written out.
        interval: Seconds between timer refreshes. None or 0 disables the
            timer; notifications alone then drive the loop.
        failure_threshold: Consecutive reader failures before the degraded
            record is emitted.
    """

    def __init__(
        self,
        reader,
        formatter: StatusFormatter,
        emit: Callable[[StatusRecord], None],
        interval: Optional[float] = None,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
    ):
        self._reader = reader
        self._formatter = formatter
        self._emit = emit
        self.interval = interval
        self.failure_threshold = failure_threshold
        self._triggers = TriggerQueue()
        self.refresh_count = 0

    @property
    def triggers(self) -> TriggerQueue:
        return self._triggers

    def compute(self, snapshot: DeviceSnapshot) -> StatusRecord:
        return self._formatter.format(select(snapshot))

    def run_once(self) -> StatusRecord:
        """Query once and emit unconditionally.

        ProviderUnavailableError propagates to the caller.
        """
        record = self.compute(self._reader.query())
        self._emit(record)
        return record

    def stop(self) -> None:
        """Request shutdown. Safe to call from any thread or a signal handler."""
        self._triggers.close()

    def run(self) -> None:
        """Listen until stop() is called.

        SubscriptionError from the reader propagates before anything is
        emitted.
        """
        self._reader.start_watching(self._on_change)
        timer = None
        if self.interval:
            timer = IntervalTimer(self.interval, self._triggers)
            timer.start()

        self._triggers.post("startup")
        try:
            self._loop()
        finally:
            if timer is not None:
                timer.stop()
            self._reader.stop_watching()
            log.debug("Monitor stopped after %d refreshes", self.refresh_count)

    def _on_change(self) -> None:
        self._triggers.post("notification")

    def _loop(self) -> None:
        last: Optional[StatusRecord] = None
        failures = 0

        while True:
            reasons = self._triggers.wait()
            if reasons is None:
                return
            log.debug("Refreshing (%s)", ", ".join(sorted(reasons)))

            self.refresh_count += 1
            try:
                snapshot = self._query()
            except ProviderUnavailableError as exc:
                failures += 1
                log.warning("Battery query failed (%d in a row): %s", failures, exc)
                if failures < self.failure_threshold:
                    continue
                record = self._formatter.degraded(str(exc))
            else:
                if snapshot is None:
                    return
                failures = 0
                record = self.compute(snapshot)

            if self._triggers.closed:
                return
            if last is None or record != last:
                self._emit(record)
                last = record

    def _query(self) -> Optional[DeviceSnapshot]:
        """Run reader.query() on a worker thread.

        Returns None if shutdown was requested before the query finished;
        the worker is left to finish on its own.
        """
        result = {}

        def _work():
            try:
                result["snapshot"] = self._reader.query()
            except ProviderUnavailableError as exc:
                result["error"] = exc
            except Exception as exc:
                log.exception("Unexpected error while querying devices")
                result["error"] = ProviderUnavailableError(str(exc))
            finally:
                self._triggers.wake()

        threading.Thread(target=_work, name="device-query", daemon=True).start()
        if not self._triggers.wait_until(lambda: bool(result)):
            return None
        if "error" in result:
            raise result["error"]
        return result["snapshot"]
