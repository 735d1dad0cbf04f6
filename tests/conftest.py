"""
conftest.py - Shared pytest fixtures for vault tests

Provides common fixtures used across unit, conformance and functional tests:
- Oracle at 2000 accounting units per native unit
- Transfer collaborator with funded and approved accounts
- Vaults (empty, funded) wired to an event log
"""

import pytest

from vault import StaticPriceOracle, InMemoryTransfer, EventLog

from tests.helpers import (
    RATE_2000, RATE_PRECISION, ONE_TOKEN, USDX, T0,
    native, make_vault,
)


@pytest.fixture
def oracle():
    """Static oracle at 2000 accounting units per native unit."""
    return StaticPriceOracle(RATE_2000, RATE_PRECISION, updated_at=T0)


@pytest.fixture
def transfer():
    """Transfer collaborator where alice and bob hold and approve 1000 USDX."""
    t = InMemoryTransfer()
    for account in ("alice", "bob"):
        t.fund(account, USDX, 1000 * ONE_TOKEN)
        t.approve(account, USDX, 1000 * ONE_TOKEN)
    return t


@pytest.fixture
def events():
    return EventLog()


@pytest.fixture
def vault(oracle, transfer, events):
    """Empty vault with cap 1000 and withdrawal limit 500."""
    return make_vault(oracle, transfer, event_sink=events)


@pytest.fixture
def funded_vault(vault):
    """Vault where alice has deposited 0.25 native (500.000000) and 100 USDX (100.000000)."""
    vault.deposit_native("alice", native("0.25"))
    vault.deposit_asset("alice", USDX, 100 * ONE_TOKEN)
    return vault
