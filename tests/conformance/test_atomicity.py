"""
Atomicity Conformance Tests

INVARIANT: Operations are all-or-nothing.

    ∀ operation O:
        O succeeds ⟹ balance, running total, journal and events all reflect O
        O fails    ⟹ balances, running total, journal and events are unchanged

This holds whichever stage rejects the operation, including the external
transfer that runs after the ledger has already been mutated.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from vault import (
    InMemoryTransfer, EventLog, StaticPriceOracle, VaultError, InvariantViolation,
    NATIVE_ASSET, UINT_MAX,
)

from tests.helpers import RATE_2000, USDX, make_vault, snapshot


step = st.tuples(
    st.sampled_from(["deposit_native", "deposit_asset", "withdraw_native", "withdraw_asset"]),
    st.integers(min_value=0, max_value=10 ** 18),
    st.booleans(),                                   # transfer fails
    st.sampled_from([RATE_2000, RATE_2000 * 2, 0, -1]),
)


def _run(vault, op, qty):
    if op == "deposit_native":
        vault.deposit_native("alice", qty)
    elif op == "deposit_asset":
        vault.deposit_asset("alice", USDX, qty)
    elif op == "withdraw_native":
        vault.withdraw("alice", NATIVE_ASSET, qty)
    else:
        vault.withdraw("alice", USDX, qty)


class TestAtomicityProperties:

    @given(st.lists(step, min_size=1, max_size=30))
    @settings(max_examples=100)
    def test_failed_operations_change_nothing(self, steps):
        oracle = StaticPriceOracle(RATE_2000)
        transfer = InMemoryTransfer()
        transfer.fund("alice", USDX, 10 ** 30)
        transfer.approve("alice", USDX, 10 ** 30)
        events = EventLog()
        vault = make_vault(oracle, transfer, cap=5_000_000_000, limit=1_000_000_000, event_sink=events)

        for op, qty, fail, rate in steps:
            oracle.update_rate(rate)
            transfer.fail_pulls = transfer.fail_pushes = fail
            before = snapshot(vault)
            event_count = len(events)
            try:
                _run(vault, op, qty)
            except (VaultError, InvariantViolation):
                assert snapshot(vault) == before
                assert len(events) == event_count
            else:
                assert len(vault.journal) == before["journal"] + 1
                assert len(events) == event_count + 2

    @given(st.integers(min_value=1, max_value=10 ** 18))
    @settings(max_examples=50)
    def test_failed_push_restores_state(self, qty):
        transfer = InMemoryTransfer()
        vault = make_vault(transfer=transfer, cap=UINT_MAX, limit=UINT_MAX)
        vault.deposit_native("alice", 10 ** 18)
        transfer.fail_pushes = True
        before = snapshot(vault)
        with pytest.raises(VaultError):
            vault.withdraw("alice", NATIVE_ASSET, qty)
        assert snapshot(vault) == before


class TestAtomicityExamples:

    def test_failed_first_pull_leaves_no_entry(self):
        transfer = InMemoryTransfer()
        vault = make_vault(transfer=transfer)
        before = snapshot(vault)
        with pytest.raises(VaultError):
            vault.deposit_asset("alice", USDX, 10 ** 18)
        assert snapshot(vault) == before
        assert vault.ledger.list_accounts() == set()

    def test_collaborator_exception_restores_state(self):
        transfer = InMemoryTransfer()
        vault = make_vault(transfer=transfer)
        vault.deposit_native("alice", 10 ** 17)

        def boom(*args):
            raise RuntimeError("bridge offline")

        transfer.hook = boom
        before = snapshot(vault)
        with pytest.raises(VaultError):
            vault.withdraw("alice", NATIVE_ASSET, 10 ** 16)
        assert snapshot(vault) == before
