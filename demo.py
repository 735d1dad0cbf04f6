#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Vault Step by Step

This is a pedagogical demonstration of the custodial vault. Each step builds
on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:  Foundation   - The empty vault, native deposits, token deposits
  4-6:  Guards       - The deposit cap, the withdrawal limit, overdrafts
  7-8:  Failures     - Broken oracle feeds, failed transfers and rollback
  9-10: Accounting   - Rate drift, the journal and events

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
import sys

from vault import (
    VaultService, StaticPriceOracle, InMemoryTransfer, EventLog,
    VaultError, InvariantViolation,
    NATIVE_ASSET, NATIVE_DECIMALS,
    to_base_units, format_value,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)

    # 1 native unit = 2000.00000000 accounting units
    rate: int = 2000 * 10 ** 8
    rate_precision: int = 8

    # Accounting values carry six decimals
    max_total_value: int = 1_000_000_000     # 1000.000000
    max_withdraw_value: int = 500_000_000    # 500.000000

    token: str = "USDX"
    token_funding: Decimal = Decimal("1000")


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def native(amount: str) -> int:
    return to_base_units(Decimal(amount), NATIVE_DECIMALS)


def try_operation(label: str, fn, *args):
    """Run one vault call and report the outcome instead of raising."""
    print(f">>> {label}")
    try:
        value = fn(*args)
        print(f"    -> accounting value {format_value(value)}")
    except (VaultError, InvariantViolation) as e:
        print(f"    -> {type(e).__name__}")


def show_state(vault: VaultService, *accounts: str):
    print(f"Total deposited value: {format_value(vault.total_deposited_value)}")
    print(f"Remaining capacity:    {format_value(vault.remaining_capacity())}")
    for account in accounts:
        print(f"{account:>8}: {vault.get_balances(account)}")


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_empty_vault():
    """Create a vault wired to an oracle, a transfer collaborator and an event log."""
    step_header(1, "The Empty Vault",
        "Understand the three collaborators a vault is built from.")

    print("""
    A vault holds assets on behalf of accounts. It needs:

    ORACLE    - The exchange rate of the native currency
    TRANSFER  - Moves tokens in and out of custody
    EVENTS    - Receives a record of every completed operation

    Two limits protect it: a cap on total deposited value and a ceiling
    on the value of any single withdrawal.
    """)

    wait_for_enter()

    oracle = StaticPriceOracle(CONFIG.rate, CONFIG.rate_precision, updated_at=CONFIG.start_time)
    transfer = InMemoryTransfer()
    events = EventLog()
    funding = to_base_units(CONFIG.token_funding, 18)
    for account in ("alice", "bob"):
        transfer.fund(account, CONFIG.token, funding)
        transfer.approve(account, CONFIG.token, funding)

    vault = VaultService(
        oracle, transfer,
        max_total_value=CONFIG.max_total_value,
        max_withdraw_value=CONFIG.max_withdraw_value,
        event_sink=events,
        max_staleness=timedelta(days=1),
        initial_time=CONFIG.start_time,
        verbose=True,
    )

    section_header("Initial State")
    print(vault)
    show_state(vault, "alice", "bob")

    return vault, oracle, transfer, events


def step_02_native_deposit(vault: VaultService):
    """Deposit the native currency."""
    step_header(2, "Native Deposits",
        "Native deposits are valued through the oracle.")

    print("""
    0.25 native units at a rate of 2000 are worth 500 accounting units:

        value = amount * rate * 10^6 / 10^(18 + 8)
    """)

    wait_for_enter()

    try_operation("vault.deposit_native('alice', 0.25)", vault.deposit_native, "alice", native("0.25"))
    show_state(vault, "alice")
    return vault


def step_03_token_deposit(vault: VaultService, transfer: InMemoryTransfer):
    """Deposit a pegged token."""
    step_header(3, "Token Deposits",
        "Tokens are pulled from the depositor and valued 1:1.")

    wait_for_enter()

    amount = to_base_units(Decimal("100"), 18)
    try_operation("vault.deposit_asset('alice', 'USDX', 100)",
                  vault.deposit_asset, "alice", CONFIG.token, amount)
    try_operation("vault.deposit_asset('alice', 'native', 1)",
                  vault.deposit_asset, "alice", NATIVE_ASSET, native("1"))
    show_state(vault, "alice")
    print(f"alice still holds {transfer.holding('alice', CONFIG.token)} USDX base units outside")
    return vault


# ============================================================================
# PHASE 2: GUARDS (Steps 4-6)
# ============================================================================

def step_04_cap(vault: VaultService):
    step_header(4, "The Deposit Cap",
        "A deposit that would push the total over the cap is refused.")

    wait_for_enter()

    try_operation("vault.deposit_native('bob', 0.25)", vault.deposit_native, "bob", native("0.25"))
    try_operation("vault.deposit_native('bob', 0.0001)", vault.deposit_native, "bob", native("0.0001"))
    show_state(vault, "bob")
    return vault


def step_05_withdraw_limit(vault: VaultService):
    step_header(5, "The Withdrawal Limit",
        "No single withdrawal may be worth more than the limit.")

    wait_for_enter()

    try_operation("vault.withdraw('alice', 'native', 0.25)",
                  vault.withdraw, "alice", NATIVE_ASSET, native("0.25"))
    try_operation("vault.withdraw('alice', 'native', 0.1)",
                  vault.withdraw, "alice", NATIVE_ASSET, native("0.1"))
    show_state(vault, "alice")
    return vault


def step_06_overdraft(vault: VaultService):
    step_header(6, "Overdrafts",
        "Withdrawing more than the balance is refused.")

    wait_for_enter()

    balance = vault.balance_of("alice", CONFIG.token)
    try_operation("vault.withdraw('alice', 'USDX', balance + 1)",
                  vault.withdraw, "alice", CONFIG.token, balance + 1)
    return vault


# ============================================================================
# PHASE 3: FAILURES (Steps 7-8)
# ============================================================================

def step_07_broken_oracle(vault: VaultService, oracle: StaticPriceOracle):
    step_header(7, "A Broken Oracle",
        "A non-positive rate blocks native operations, never token ones.")

    wait_for_enter()

    oracle.update_rate(-1)
    try_operation("vault.deposit_native('bob', 0.01)", vault.deposit_native, "bob", native("0.01"))
    try_operation("vault.withdraw('alice', 'USDX', 10)",
                  vault.withdraw, "alice", CONFIG.token, to_base_units(Decimal("10"), 18))
    oracle.update_rate(CONFIG.rate)
    return vault


def step_08_failed_transfer(vault: VaultService, transfer: InMemoryTransfer):
    step_header(8, "Failed Transfers",
        "If the outbound transfer fails the ledger is restored.")

    wait_for_enter()

    before = vault.get_balances("alice")
    transfer.fail_pushes = True
    try_operation("vault.withdraw('alice', 'USDX', 10)",
                  vault.withdraw, "alice", CONFIG.token, to_base_units(Decimal("10"), 18))
    transfer.fail_pushes = False

    section_header("Key Insight")
    print(f"Balances before: {before}")
    print(f"Balances after:  {vault.get_balances('alice')}")
    return vault


# ============================================================================
# PHASE 4: ACCOUNTING (Steps 9-10)
# ============================================================================

def step_09_rate_drift(vault: VaultService, oracle: StaticPriceOracle):
    step_header(9, "Rate Drift",
        "Withdrawals reduce the total at the rate of the withdrawal.")

    print("""
    The running total is an approximation. Native deposits are added at
    the deposit-time rate and removed at the withdrawal-time rate, so a
    full exit after the price falls leaves value behind in the total.
    """)

    wait_for_enter()

    vault.advance_time(CONFIG.start_time + timedelta(hours=1))
    oracle.update_rate(1000 * 10 ** 8, updated_at=vault.current_time)
    remaining = vault.balance_of("alice", NATIVE_ASSET)
    try_operation("vault.withdraw('alice', 'native', <all>)",
                  vault.withdraw, "alice", NATIVE_ASSET, remaining)
    show_state(vault, "alice", "bob")
    return vault


def step_10_journal(vault: VaultService, events: EventLog):
    step_header(10, "The Journal and Events",
        "Every committed operation is journaled and announced.")

    wait_for_enter()

    section_header("Journal")
    for entry in vault.journal:
        print(f"  #{entry.sequence} {entry.timestamp} {entry.mutation}")

    section_header("Events")
    for event in events.events:
        print(f"  {event}")
    return vault


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       VAULT - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")

    vault, oracle, transfer, events = step_01_empty_vault()
    wait_for_enter()

    step_02_native_deposit(vault)
    step_03_token_deposit(vault, transfer)
    wait_for_enter()

    step_04_cap(vault)
    step_05_withdraw_limit(vault)
    step_06_overdraft(vault)
    wait_for_enter()

    step_07_broken_oracle(vault, oracle)
    step_08_failed_transfer(vault, transfer)
    wait_for_enter()

    step_09_rate_drift(vault, oracle)
    step_10_journal(vault, events)

    print(f"\n{'='*70}")
    print("TUTORIAL COMPLETE")
    print(f"{'='*70}")
    print("""
    Next steps:
      - See vault/service.py for the operation pipeline
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
