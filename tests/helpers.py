"""
helpers.py - Shared constants and builders for vault tests
"""

from datetime import datetime
from decimal import Decimal

from vault import (
    VaultService, StaticPriceOracle, InMemoryTransfer,
    NATIVE_DECIMALS, to_base_units,
)


# 1 native unit = 2000.00000000 accounting units (precision 8)
RATE_2000 = 2000 * 10 ** 8
RATE_PRECISION = 8

ONE_NATIVE = 10 ** 18
ONE_TOKEN = 10 ** 18

# 1000.000000 and 500.000000 accounting units
CAP = 1_000_000_000
WITHDRAW_LIMIT = 500_000_000

USDX = "USDX"
T0 = datetime(2025, 1, 1)


def native(units: str) -> int:
    """Native base units for a decimal string, e.g. native("0.4")."""
    return to_base_units(Decimal(units), NATIVE_DECIMALS)


def make_vault(
    oracle=None,
    transfer=None,
    cap: int = CAP,
    limit: int = WITHDRAW_LIMIT,
    **kwargs,
) -> VaultService:
    """Create a quiet vault with test defaults."""
    kwargs.setdefault("initial_time", T0)
    return VaultService(
        oracle or StaticPriceOracle(RATE_2000, RATE_PRECISION),
        transfer or InMemoryTransfer(),
        max_total_value=cap,
        max_withdraw_value=limit,
        verbose=False,
        **kwargs,
    )


def snapshot(vault: VaultService) -> dict:
    """Capture every observable piece of ledger state."""
    ledger = vault.ledger
    return {
        "balances": {a: dict(held) for a, held in ledger.balances.items()},
        "total": ledger.total_deposited_value,
        "journal": len(vault.journal),
    }
