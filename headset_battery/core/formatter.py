"""Turn a selected device into a status bar record."""

from bisect import bisect_right
from typing import List, Optional, Tuple

from headset_battery.core.types import CandidateDevice, StatusRecord, Tier
from headset_battery.exceptions import ConfigError

# Lower bounds of the bands above LOW. LOW always starts at 0 and ends at
# the configured low percentage.
_HIGH_FROM = 60
_FULL_FROM = 95

UNKNOWN_TEXT = "?"
DEGRADED_TEXT = "!"


class StatusFormatter:
    """Maps battery percentages to tiers and builds StatusRecords.

    Args:
        low_percentage: Highest percentage still shown as LOW.
        low_class: CSS class emitted for the LOW tier.
    """

    def __init__(self, low_percentage: float = 20, low_class: str = "low"):
        if (isinstance(low_percentage, bool)
                or not isinstance(low_percentage, (int, float))
                or not 0 <= low_percentage <= 100):
            raise ConfigError(
                f"low percentage must be between 0 and 100, got {low_percentage}"
            )
        self.low_percentage = low_percentage
        self.low_class = low_class
        self._bounds, self._tiers = self._build_table(low_percentage)

    @staticmethod
    def _build_table(low_percentage: float) -> Tuple[List[float], List[Tier]]:
        """Return ascending lower bounds and the tier starting at each.

        Bands swallowed by a high low_percentage are dropped, which keeps
        the table monotonic.
        """
        medium_from = int(low_percentage) + 1
        bounds = [0, medium_from]
        tiers = [Tier.LOW, Tier.MEDIUM]
        for start, tier in ((_HIGH_FROM, Tier.HIGH), (_FULL_FROM, Tier.FULL)):
            if start > bounds[-1]:
                bounds.append(start)
                tiers.append(tier)
            else:
                tiers[-1] = tier
        return bounds, tiers

    def tier_for(self, percentage: int) -> Tier:
        p = min(max(percentage, 0), 100)
        return self._tiers[bisect_right(self._bounds, p) - 1]

    def css_class(self, tier: Tier) -> str:
        if tier is Tier.LOW:
            return self.low_class
        return tier.value

    def format(self, selected: Optional[CandidateDevice]) -> StatusRecord:
        if selected is None:
            return StatusRecord(text="", tier=Tier.EMPTY, css_class=Tier.EMPTY.value)

        if selected.percentage is None:
            return StatusRecord(
                text=UNKNOWN_TEXT,
                tier=Tier.UNKNOWN,
                tooltip=selected.label,
                css_class=Tier.UNKNOWN.value,
            )

        percentage = min(max(selected.percentage, 0), 100)
        tier = self.tier_for(percentage)
        return StatusRecord(
            text=f"{percentage}%",
            tier=tier,
            percentage=percentage,
            tooltip=selected.label,
            css_class=self.css_class(tier),
        )

    def degraded(self, reason: str) -> StatusRecord:
        """Record shown after repeated reader failures."""
        return StatusRecord(
            text=DEGRADED_TEXT,
            tier=Tier.UNKNOWN,
            tooltip=f"Battery service unavailable: {reason}",
            css_class=Tier.UNKNOWN.value,
        )
