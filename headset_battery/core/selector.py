"""Pick the one device whose battery gets reported."""

import logging
from typing import Optional

from headset_battery.core.types import CandidateDevice, DeviceSnapshot

log = logging.getLogger(__name__)


def _sort_key(device: CandidateDevice):
    unknown = device.percentage is None
    return (device.identity, device.label, unknown, device.percentage or 0)


def select(snapshot: DeviceSnapshot) -> Optional[CandidateDevice]:
    """Return the device to report on, or None for an empty snapshot.

    With several devices connected the one with the smallest identity wins,
    so the choice does not depend on enumeration order and an unchanged
    snapshot always gives the same answer.
    """
    if not snapshot:
        return None
    if len(snapshot) == 1:
        return snapshot[0]

    chosen = min(snapshot, key=_sort_key)
    log.debug(
        "%d candidate devices, reporting %s (%s)",
        len(snapshot), chosen.label, chosen.identity,
    )
    return chosen
