"""
Core types and pure functions for the custodial vault.

This module provides the foundational data structures and protocols for the vault:
1. Protocols: PriceOracle, AssetTransfer and EventSink for external collaborators
2. Immutable data structures: Mutation, OracleReading
3. Exceptions: VaultError and the domain-specific error types
4. Type aliases: Account, Asset, BalanceMap
5. Checked arithmetic: unsigned operations over a fixed integer width
6. Amount helpers: conversion between human Decimal amounts and base units

All functions in this module are pure. Nothing here holds vault state.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_DOWN, localcontext
from enum import Enum
from typing import (
    Dict, Optional, Protocol, runtime_checkable
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved asset identifier for the platform's native currency.
# Every other identifier denotes a distinct fungible asset.
NATIVE_ASSET = "native"

# Native currency is held in 18-decimal base units (wei-style).
NATIVE_DECIMALS = 18

# Accounting unit precision: values are stored as value * 10**6.
ACCOUNTING_DECIMALS = 6

# Pegged assets are assumed to use this many decimals; no per-asset lookup.
ASSUMED_ASSET_DECIMALS = 18

# Width of every stored quantity (balances, running total, limits).
UINT_BITS = 256
UINT_MAX = 2 ** UINT_BITS - 1

# Largest precision an oracle may report; 10**78 already exceeds UINT_MAX.
MAX_ORACLE_PRECISION = 77


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Opaque caller identity.
Account = str

# Opaque asset handle; NATIVE_ASSET is reserved.
Asset = str

# Mapping from asset to balance held by a single account.
BalanceMap = Dict[Asset, int]


# ============================================================================
# EXCEPTIONS
# ============================================================================

class VaultError(Exception):
    """Base exception for every rejected vault operation."""
    pass


class ZeroAmount(VaultError):
    """Raised when an operation is attempted with a zero amount."""
    pass


class CapExceeded(VaultError):
    """Raised when a deposit would push the running total above the global cap."""
    pass


class LimitExceeded(VaultError):
    """Raised when a single withdrawal is worth more than the per-operation ceiling."""
    pass


class InsufficientBalance(VaultError):
    """Raised when a withdrawal exceeds the account's stored balance for the asset."""
    pass


class InvalidOracleReading(VaultError):
    """Raised when the price oracle reports a non-positive, malformed or stale rate."""
    pass


class TransferFailed(VaultError):
    """Raised when the external transfer collaborator reports failure."""
    pass


class WrongDepositPath(VaultError):
    """Raised when the native asset is sent through the asset deposit entry point."""
    pass


class ReentrantCall(VaultError):
    """Raised when a transfer callback re-enters the vault while an operation is in flight."""
    pass


class InvariantViolation(Exception):
    """
    Raised when a stored quantity would leave the unsigned integer width.

    Not a VaultError: it is never an expected rejection. It signals an
    economic scale that correct limits make unreachable. The operation that
    triggered it is aborted with no state change.
    """
    pass


# ============================================================================
# CHECKED ARITHMETIC
# ============================================================================

def checked_add(a: int, b: int, what: str = "value") -> int:
    """Add two unsigned integers, raising InvariantViolation past UINT_MAX."""
    result = a + b
    if result > UINT_MAX:
        raise InvariantViolation(f"{what} overflow: {a} + {b} exceeds uint{UINT_BITS}")
    return result


def checked_sub(a: int, b: int, what: str = "value") -> int:
    """Subtract two unsigned integers, raising InvariantViolation below zero."""
    if b > a:
        raise InvariantViolation(f"{what} underflow: {a} - {b} is negative")
    return a - b


def checked_mul(a: int, b: int, what: str = "value") -> int:
    """Multiply two unsigned integers, raising InvariantViolation past UINT_MAX."""
    result = a * b
    if result > UINT_MAX:
        raise InvariantViolation(f"{what} overflow: {a} * {b} exceeds uint{UINT_BITS}")
    return result


def require_uint(value: int, name: str) -> int:
    """
    Validate that value is an integer inside [0, UINT_MAX].

    Raises:
        TypeError: If value is not an int (bool is rejected too)
        ValueError: If value is negative or wider than UINT_MAX
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    if value > UINT_MAX:
        raise ValueError(f"{name} exceeds uint{UINT_BITS}: {value}")
    return value


# ============================================================================
# MUTATIONS
# ============================================================================

class MutationKind(Enum):
    """
    Direction of a ledger mutation.

    The value is the sign applied to both the balance and the running total.
    """
    DEPOSIT = 1
    WITHDRAW = -1

    @property
    def sign(self) -> int:
        return self.value


@dataclass(frozen=True, slots=True)
class Mutation:
    """
    A single pre-validated change to the ledger.

    Attributes:
        kind: DEPOSIT adds, WITHDRAW subtracts.
        account: Account whose balance changes.
        asset: Asset whose balance changes.
        amount: Native-precision amount (always positive).
        value: Accounting value of the amount at the rate used for this operation.

    The ledger applies a Mutation and can revert it exactly, which is what the
    service uses to undo a committed change when the external transfer fails.
    """
    kind: MutationKind
    account: Account
    asset: Asset
    amount: int
    value: int

    def __post_init__(self):
        if not self.account or not self.account.strip():
            raise ValueError("Mutation account cannot be empty")
        if not self.asset or not self.asset.strip():
            raise ValueError("Mutation asset cannot be empty")
        require_uint(self.amount, "amount")
        require_uint(self.value, "value")
        if self.amount == 0:
            raise ZeroAmount("Mutation amount must be positive")

    def inverse(self) -> Mutation:
        """Return the mutation that exactly undoes this one."""
        opposite = MutationKind.WITHDRAW if self.kind is MutationKind.DEPOSIT else MutationKind.DEPOSIT
        return Mutation(opposite, self.account, self.asset, self.amount, self.value)

    def __repr__(self) -> str:
        arrow = "+" if self.kind is MutationKind.DEPOSIT else "-"
        return f"Mutation({arrow}{self.amount} {self.asset} @ {self.account}, value={self.value})"


# ============================================================================
# PROTOCOLS
# ============================================================================

@dataclass(frozen=True, slots=True)
class OracleReading:
    """
    One observation from a price oracle.

    Attributes:
        rate: Accounting units per whole native unit, scaled by 10**precision.
        precision: Number of decimals carried by rate.
        updated_at: When the observation was made (None if the source has no clock).
    """
    rate: int
    precision: int
    updated_at: Optional[datetime] = None

    def __iter__(self):
        # Unpacks as (rate, precision)
        return iter((self.rate, self.precision))


@runtime_checkable
class PriceOracle(Protocol):
    """
    Source of the native-currency exchange rate.

    The vault only consumes readings; it never writes to an oracle.
    """

    def latest_rate(self) -> OracleReading:
        """Return the most recent (rate, precision) observation."""
        ...


@runtime_checkable
class AssetTransfer(Protocol):
    """
    External mechanism that moves assets in and out of custody.

    Both methods return True on success and False on failure. Raising is also
    treated as failure by the service.
    """

    def pull(self, account: Account, asset: Asset, amount: int) -> bool:
        """Move a pre-authorised amount of a non-native asset from account into custody."""
        ...

    def push(self, account: Account, asset: Asset, amount: int) -> bool:
        """Move an amount of any asset out of custody to account."""
        ...


class EventSink(Protocol):
    """Receiver of observability events emitted after a committed operation."""

    def __call__(self, event) -> None:
        ...


# ============================================================================
# AMOUNT HELPERS
# ============================================================================

# Enough digits for any uint256 quantity plus its fractional part.
_AMOUNT_PRECISION = 100


def to_base_units(amount: Decimal, decimals: int) -> int:
    """
    Convert a human amount into integer base units.

    Args:
        amount: Amount in whole units (e.g., Decimal("0.4") native units)
        decimals: Precision of the target asset

    Returns:
        Integer base units (e.g., 400000000000000000 for 0.4 at 18 decimals)

    Raises:
        ValueError: If amount is negative, non-finite, or carries more
                    precision than the asset supports
    """
    if not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    if amount.is_nan() or amount.is_infinite():
        raise ValueError(f"Amount must be finite, got {amount}")
    if amount < 0:
        raise ValueError(f"Amount must be non-negative, got {amount}")
    with localcontext() as ctx:
        ctx.prec = _AMOUNT_PRECISION
        scaled = amount.scaleb(decimals)
        integral = scaled.to_integral_value(rounding=ROUND_DOWN)
    if integral != scaled:
        raise ValueError(f"{amount} has more than {decimals} decimal places")
    return int(integral)


def from_base_units(amount: int, decimals: int) -> Decimal:
    """Convert integer base units back into a Decimal amount in whole units."""
    with localcontext() as ctx:
        ctx.prec = _AMOUNT_PRECISION
        return Decimal(amount).scaleb(-decimals)


def format_value(value: int) -> str:
    """Render an accounting value with its six fractional digits."""
    quantizer = Decimal(1).scaleb(-ACCOUNTING_DECIMALS)
    with localcontext() as ctx:
        ctx.prec = _AMOUNT_PRECISION
        return str(from_base_units(value, ACCOUNTING_DECIMALS).quantize(quantizer))

