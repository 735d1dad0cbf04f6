"""
Cap and Limit Conformance Tests

INVARIANTS:
    After every successful deposit:        total_deposited_value <= max_total_value
    For every successful withdrawal w:     value(w) <= max_withdraw_value

Rejected deposits and withdrawals leave the running total unchanged.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from vault import (
    InMemoryTransfer, EventLog, CapExceeded, LimitExceeded, InsufficientBalance,
    NATIVE_ASSET, UINT_MAX,
)

from tests.helpers import USDX, make_vault


asset = st.sampled_from([NATIVE_ASSET, USDX])
amount = st.integers(min_value=1, max_value=10 ** 18)


def _vault(cap, limit):
    transfer = InMemoryTransfer()
    transfer.fund("alice", USDX, UINT_MAX // 2)
    transfer.approve("alice", USDX, UINT_MAX // 2)
    return make_vault(transfer=transfer, cap=cap, limit=limit, event_sink=EventLog())


class TestCapMonotonicity:

    @given(
        st.integers(min_value=0, max_value=5_000_000_000),
        st.lists(st.tuples(asset, amount), min_size=1, max_size=25),
    )
    @settings(max_examples=100)
    def test_total_never_exceeds_cap(self, cap, deposits):
        vault = _vault(cap, UINT_MAX)
        for a, qty in deposits:
            before = vault.total_deposited_value
            try:
                if a == NATIVE_ASSET:
                    vault.deposit_native("alice", qty)
                else:
                    vault.deposit_asset("alice", a, qty)
            except CapExceeded:
                assert vault.total_deposited_value == before
            assert vault.total_deposited_value <= cap

    @given(st.integers(min_value=1, max_value=10 ** 9))
    def test_cap_boundary_is_inclusive(self, cap):
        vault = _vault(cap, UINT_MAX)
        vault.deposit_asset("alice", USDX, cap * 10 ** 12)
        assert vault.total_deposited_value == cap
        assert vault.remaining_capacity() == 0


class TestLimitEnforcement:

    @given(
        st.integers(min_value=0, max_value=1_000_000_000),
        st.lists(st.tuples(asset, amount), min_size=1, max_size=25),
    )
    @settings(max_examples=100)
    def test_no_successful_withdrawal_exceeds_limit(self, limit, withdrawals):
        vault = _vault(UINT_MAX, limit)
        vault.deposit_native("alice", 10 ** 21)
        vault.deposit_asset("alice", USDX, 10 ** 21)

        for a, qty in withdrawals:
            before = vault.total_deposited_value
            try:
                value = vault.withdraw("alice", a, qty)
            except (LimitExceeded, InsufficientBalance):
                assert vault.total_deposited_value == before
                continue
            assert value <= limit

        for entry in vault.journal[2:]:
            assert entry.mutation.value <= limit
