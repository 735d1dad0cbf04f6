"""
oracle.py - Price oracles for native-currency valuation

Provides rate sources that the ValueConverter consumes.

Classes:
- StaticPriceOracle: A single settable rate, optionally stamped with a time
- TimeSeriesPriceOracle: Time-varying rates with historical observations

All rates are integers quoted as accounting units per whole native unit,
scaled by 10**precision (e.g., 2000 units at precision 8 is 200_000_000_000).
"""

from datetime import datetime
from typing import List, Optional, Tuple
from bisect import bisect_right

from .core import OracleReading


class StaticPriceOracle:
    """
    Price oracle with a single current rate.

    The rate is not validated here: a zero or negative rate is reported as-is
    so that the converter can reject it.
    """

    def __init__(self, rate: int, precision: int = 8, updated_at: Optional[datetime] = None):
        """
        Initialize with a fixed rate.

        Args:
            rate: Scaled rate (may be non-positive to model a broken feed)
            precision: Decimals carried by rate
            updated_at: Observation time reported with every reading
        """
        self.rate = rate
        self.precision = precision
        self.updated_at = updated_at
        self.reads = 0

    def latest_rate(self) -> OracleReading:
        """Return the current reading."""
        self.reads += 1
        return OracleReading(self.rate, self.precision, self.updated_at)

    def update_rate(self, rate: int, updated_at: Optional[datetime] = None):
        """Replace the current rate (and its observation time, if given)."""
        self.rate = rate
        if updated_at is not None:
            self.updated_at = updated_at

    def __repr__(self):
        return f"StaticPriceOracle(rate={self.rate}, precision={self.precision})"


class TimeSeriesPriceOracle:
    """
    Price oracle with time-varying rates.

    Stores historical observations and reports the most recent one at or
    before the oracle's clock. The clock is a callable so that it can be
    bound to a VaultService's logical time.

    Supports two initialization patterns:
    - Empty initialization for incremental observations via add_rate()
    - Batch initialization with a complete rate path for simulations
    """

    def __init__(
        self,
        rate_path: Optional[List[Tuple[datetime, int]]] = None,
        precision: int = 8,
        clock=None,
    ):
        """
        Initialize oracle.

        Args:
            rate_path: Optional list of (timestamp, rate) observations
            precision: Decimals carried by every rate
            clock: Zero-argument callable returning the current datetime.
                   Defaults to the latest observation time.

        Examples:
            oracle = TimeSeriesPriceOracle([
                (t0, 2000 * 10**8),
                (t1, 2100 * 10**8),
            ])
            vault = VaultService(oracle, transfer, ...)
            oracle.clock = lambda: vault.current_time
        """
        self.precision = precision
        self.clock = clock
        self.history: List[Tuple[datetime, int]] = []
        if rate_path:
            # Sort by timestamp to ensure chronological order
            self.history = sorted(rate_path, key=lambda x: x[0])

    def add_rate(self, timestamp: datetime, rate: int):
        """
        Add a rate observation.

        Args:
            timestamp: Time of the observation
            rate: Scaled rate at that time
        """
        self.history.append((timestamp, rate))
        self.history.sort(key=lambda x: x[0])

    def rate_at(self, timestamp: datetime) -> Optional[OracleReading]:
        """
        Get the observation at or before the specified timestamp.

        Returns None if no observation is available before the timestamp.
        Uses binary search for O(log n) lookup.
        """
        if not self.history:
            return None
        timestamps = [ts for ts, _ in self.history]
        idx = bisect_right(timestamps, timestamp)
        if idx == 0:
            return None
        observed_at, rate = self.history[idx - 1]
        return OracleReading(rate, self.precision, observed_at)

    def latest_rate(self) -> OracleReading:
        """
        Return the observation in force at the oracle's clock.

        A source with no observation yet reports a zero rate, which the
        converter rejects as an invalid reading.
        """
        if self.clock is None:
            if not self.history:
                return OracleReading(0, self.precision, None)
            observed_at, rate = self.history[-1]
            return OracleReading(rate, self.precision, observed_at)
        reading = self.rate_at(self.clock())
        if reading is None:
            return OracleReading(0, self.precision, None)
        return reading

    def get_all_timestamps(self) -> List[datetime]:
        """Get all observation timestamps in chronological order."""
        return [ts for ts, _ in self.history]

    def __repr__(self):
        return f"TimeSeriesPriceOracle({len(self.history)} observations, precision={self.precision})"
