"""
limits.py - Global cap and per-withdrawal limit enforcement

Pure comparisons over AccountingValue. Both checks must be evaluated against
the running total as it stands BEFORE the mutation they guard.
"""

from __future__ import annotations
from dataclasses import dataclass

from .core import CapExceeded, LimitExceeded, format_value, require_uint


@dataclass(frozen=True, slots=True)
class Limits:
    """
    Immutable pair of limits fixed for the lifetime of a vault.

    Attributes:
        max_total_value: Global cap on the running total of deposited value.
        max_withdraw_value: Ceiling on the value of any single withdrawal.
    """
    max_total_value: int
    max_withdraw_value: int

    def __post_init__(self):
        require_uint(self.max_total_value, "max_total_value")
        require_uint(self.max_withdraw_value, "max_withdraw_value")


def check_cap(current_total: int, incoming_value: int, cap: int) -> None:
    """
    Ensure a deposit keeps the running total within the cap.

    Raises:
        CapExceeded: If current_total + incoming_value > cap
    """
    if current_total + incoming_value > cap:
        raise CapExceeded(
            f"Deposit of {format_value(incoming_value)} would bring total to "
            f"{format_value(current_total + incoming_value)} > cap {format_value(cap)}"
        )


def check_withdraw_limit(value: int, max_withdraw: int) -> None:
    """
    Ensure a single withdrawal is within the per-operation ceiling.

    Raises:
        LimitExceeded: If value > max_withdraw
    """
    if value > max_withdraw:
        raise LimitExceeded(
            f"Withdrawal of {format_value(value)} exceeds limit {format_value(max_withdraw)}"
        )


class LimitGuard:
    """Binds a Limits pair to the two checks."""

    def __init__(self, limits: Limits):
        self.limits = limits

    def check_deposit(self, current_total: int, incoming_value: int) -> None:
        check_cap(current_total, incoming_value, self.limits.max_total_value)

    def check_withdraw(self, value: int) -> None:
        check_withdraw_limit(value, self.limits.max_withdraw_value)

    def remaining_capacity(self, current_total: int) -> int:
        """Value that can still be deposited before the cap is reached."""
        return max(self.limits.max_total_value - current_total, 0)
