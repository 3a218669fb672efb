"""
Rate policy.

Maps (lock-up duration, boost) to the total interest paid over the full
lock-up and computes payouts in integer smallest units.
"""

from dataclasses import dataclass

from accrual.config.settings import Settings, settings as default_settings
from accrual.exceptions import RateNotConfiguredError
from accrual.models.deposit_record import (
    FORTY_FIVE_DAYS,
    ONE_HUNDRED_EIGHTY_DAYS,
)
from accrual.models.enums import LockUpTier

LOCK_UP_DURATIONS: dict[LockUpTier, int] = {
    LockUpTier.SHORT: FORTY_FIVE_DAYS,
    LockUpTier.LONG: ONE_HUNDRED_EIGHTY_DAYS,
}


@dataclass(frozen=True)
class RateTable:
    """Total interest percentages per tier; None marks an undecided cell."""

    short: int
    short_boost: int
    long: int
    long_boost: int | None

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateTable":
        return cls(
            short=settings.rate_short_percent,
            short_boost=settings.rate_short_boost_percent,
            long=settings.rate_long_percent,
            long_boost=settings.rate_long_boost_percent,
        )

    def lookup(self, tier: LockUpTier, boosted: bool) -> int | None:
        if tier is LockUpTier.SHORT:
            return self.short_boost if boosted else self.short
        return self.long_boost if boosted else self.long


class RatePolicy:
    """Pure rate lookup and payout arithmetic."""

    def __init__(self, table: RateTable | None = None) -> None:
        """
        Initialize rate policy.

        Args:
            table: Rate table (default: built from settings)
        """
        self.table = table or RateTable.from_settings(default_settings)

    @staticmethod
    def duration_for(tier: LockUpTier) -> int:
        """Lock-up duration in seconds for a tier."""
        return LOCK_UP_DURATIONS[tier]

    @staticmethod
    def tier_for(lock_up_duration: int) -> LockUpTier:
        """
        Tier for a stored lock-up duration.

        Raises:
            ValueError: If the duration is not one of the two tiers
        """
        for tier, duration in LOCK_UP_DURATIONS.items():
            if duration == lock_up_duration:
                return tier
        raise ValueError(f"Unknown lock-up duration: {lock_up_duration}")

    def rate(self, lock_up_duration: int, boosted: bool) -> int:
        """
        Total interest percentage for a deposit.

        Args:
            lock_up_duration: Lock-up in seconds
            boosted: Membership boost flag

        Returns:
            Percentage paid over the whole lock-up

        Raises:
            RateNotConfiguredError: If the cell has no value
        """
        tier = self.tier_for(lock_up_duration)
        percent = self.table.lookup(tier, boosted)
        if percent is None:
            raise RateNotConfiguredError(
                f"No interest rate configured for {tier.value} lock-up "
                f"(boosted={boosted})"
            )
        return percent

    def is_configured(self, lock_up_duration: int, boosted: bool) -> bool:
        """Check whether the rate cell has a value."""
        return self.table.lookup(self.tier_for(lock_up_duration), boosted) is not None

    def interest(self, principal: int, lock_up_duration: int, boosted: bool) -> int:
        """Interest in smallest units, truncated toward zero."""
        return principal * self.rate(lock_up_duration, boosted) // 100

    def payout(self, principal: int, lock_up_duration: int, boosted: bool) -> int:
        """Principal plus interest."""
        return principal + self.interest(principal, lock_up_duration, boosted)
