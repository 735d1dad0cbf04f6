"""
converter.py - Conversion of native amounts into the accounting unit

The ValueConverter turns an amount of any asset, expressed in that asset's own
base units, into an AccountingValue (value * 10**6) used for cap and limit
comparisons.

Two paths:
    - NATIVE_ASSET: priced through the oracle.
          value = amount * rate * 10**6 // 10**(NATIVE_DECIMALS + precision)
      Multiplication happens before division so no precision is lost to an
      intermediate truncation. Every intermediate is checked against UINT_MAX.
    - Any other asset: pegged 1:1 to the accounting unit and only rescaled
      from ASSUMED_ASSET_DECIMALS to ACCOUNTING_DECIMALS. There is no
      per-asset price feed.

A zero amount converts to zero without touching the oracle.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from typing import Optional

from .core import (
    Asset, OracleReading, PriceOracle,
    NATIVE_ASSET, NATIVE_DECIMALS, ACCOUNTING_DECIMALS, ASSUMED_ASSET_DECIMALS,
    MAX_ORACLE_PRECISION,
    InvalidOracleReading,
    checked_mul, require_uint,
)


def scale_decimals(amount: int, from_decimals: int, to_decimals: int) -> int:
    """
    Rescale an integer amount between two decimal precisions.

    Scaling down truncates toward zero; scaling up is checked for overflow.

    Args:
        amount: Amount in from_decimals base units
        from_decimals: Source precision
        to_decimals: Target precision

    Returns:
        Amount in to_decimals base units
    """
    if from_decimals == to_decimals:
        return amount
    if from_decimals > to_decimals:
        return amount // 10 ** (from_decimals - to_decimals)
    return checked_mul(amount, 10 ** (to_decimals - from_decimals), "scaled amount")


def validate_reading(
    reading: OracleReading,
    as_of: Optional[datetime] = None,
    max_staleness: Optional[timedelta] = None,
) -> OracleReading:
    """
    Check that an oracle reading is usable.

    Args:
        reading: Reading returned by PriceOracle.latest_rate() (any object that
                 unpacks into (rate, precision) is accepted)
        as_of: Time the reading is used at (required when max_staleness is set)
        max_staleness: Maximum age of the reading, or None to skip the check

    Returns:
        The reading normalised to an OracleReading

    Raises:
        InvalidOracleReading: If the rate is not a positive integer, the
                              precision is not an integer in [0, MAX_ORACLE_PRECISION],
                              or the reading is stale or dated in the future
    """
    try:
        rate, precision = reading
    except (TypeError, ValueError) as e:
        raise InvalidOracleReading(f"Malformed oracle reading: {reading!r}") from e
    updated_at = getattr(reading, "updated_at", None)

    if isinstance(rate, bool) or not isinstance(rate, int):
        raise InvalidOracleReading(f"Oracle rate must be int, got {type(rate).__name__}")
    if rate <= 0:
        raise InvalidOracleReading(f"Oracle rate must be positive, got {rate}")
    if isinstance(precision, bool) or not isinstance(precision, int) or precision < 0:
        raise InvalidOracleReading(f"Oracle precision must be a non-negative int, got {precision!r}")
    if precision > MAX_ORACLE_PRECISION:
        raise InvalidOracleReading(
            f"Oracle precision {precision} exceeds maximum of {MAX_ORACLE_PRECISION}"
        )

    if max_staleness is not None:
        if updated_at is None:
            raise InvalidOracleReading("Oracle reading has no timestamp; staleness cannot be checked")
        if as_of is None:
            raise InvalidOracleReading("No reference time supplied for staleness check")
        if updated_at > as_of:
            raise InvalidOracleReading(f"Oracle reading from the future: {updated_at} > {as_of}")
        if as_of - updated_at > max_staleness:
            raise InvalidOracleReading(
                f"Oracle reading is stale: updated {updated_at}, now {as_of}, "
                f"max age {max_staleness}"
            )

    return OracleReading(rate, precision, updated_at)


class ValueConverter:
    """
    Converts asset amounts into AccountingValue.

    Only the native asset has a live price path. Pegged assets never consult
    the oracle, so a broken feed does not affect them.

    Example:
        converter = ValueConverter(StaticPriceOracle(2000 * 10**8, precision=8))
        converter.value_of(NATIVE_ASSET, 4 * 10**17)   # 800_000_000 (800.000000)
        converter.value_of("USDX", 5 * 10**18)         # 5_000_000 (5.000000)
    """

    def __init__(
        self,
        oracle: PriceOracle,
        max_staleness: Optional[timedelta] = None,
        asset_decimals: int = ASSUMED_ASSET_DECIMALS,
    ):
        """
        Create a converter.

        Args:
            oracle: Source of the native-currency rate
            max_staleness: Reject readings older than this (None disables the check)
            asset_decimals: Assumed precision of every pegged asset
        """
        if asset_decimals < 0:
            raise ValueError(f"asset_decimals must be non-negative, got {asset_decimals}")
        self.oracle = oracle
        self.max_staleness = max_staleness
        self.asset_decimals = asset_decimals

    def value_of(self, asset: Asset, amount: int, as_of: Optional[datetime] = None) -> int:
        """
        Convert a native-precision amount of asset into AccountingValue.

        Args:
            asset: Asset identifier (NATIVE_ASSET uses the oracle)
            amount: Amount in the asset's base units
            as_of: Reference time for the oracle staleness check

        Returns:
            Accounting value (value * 10**6), truncated toward zero

        Raises:
            InvalidOracleReading: If the native rate is unusable or the oracle
                                  raised while being read
            InvariantViolation: If an intermediate product leaves the integer width
        """
        require_uint(amount, "amount")
        if amount == 0:
            return 0
        if asset == NATIVE_ASSET:
            return self._native_value(amount, as_of)
        return scale_decimals(amount, self.asset_decimals, ACCOUNTING_DECIMALS)

    def _native_value(self, amount: int, as_of: Optional[datetime]) -> int:
        try:
            raw = self.oracle.latest_rate()
        except Exception as e:
            raise InvalidOracleReading(f"Oracle read failed: {e!r}") from e
        reading = validate_reading(raw, as_of, self.max_staleness)
        numerator = checked_mul(amount, reading.rate, "native valuation")
        numerator = checked_mul(numerator, 10 ** ACCOUNTING_DECIMALS, "native valuation")
        return numerator // 10 ** (NATIVE_DECIMALS + reading.precision)

    def __repr__(self):
        return f"ValueConverter(oracle={self.oracle!r}, asset_decimals={self.asset_decimals})"
