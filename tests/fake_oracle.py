"""
fake_oracle.py - Test Helpers for external collaborators

Provides a PriceOracle that returns any reading verbatim (including malformed
ones) and counts how often it is consulted.
"""

from __future__ import annotations
from typing import Any


class FakeOracle:
    """
    Oracle returning a preset reading.

    Example:
        oracle = FakeOracle((2000 * 10**8, 8))
        oracle.latest_rate()      # (200000000000, 8)
        oracle.reads              # 1
    """

    def __init__(self, reading: Any):
        self.reading = reading
        self.reads = 0

    def latest_rate(self) -> Any:
        self.reads += 1
        return self.reading


class ExplodingOracle:
    """Oracle that fails the test if it is ever consulted."""

    def latest_rate(self):
        raise AssertionError("oracle must not be consulted")
