"""
ledger.py - Per-account, per-asset balance ledger

The Ledger is the only object that mutates balances and the running total of
deposited value. It performs no valuation and no limit enforcement: callers
hand it pre-validated Mutations carrying an already-computed accounting value.

Key responsibilities:
    - Maps (account, asset) to an unsigned balance, 0 for unseen pairs
    - Maintains total_deposited_value as an independent running counter
    - Applies a Mutation atomically (balance and total change together or not at all)
    - Reverts a previously applied Mutation exactly
    - Re-checks withdrawal underflow itself regardless of what the caller checked
"""

from __future__ import annotations
from collections import defaultdict
from typing import Dict, List, Set

from .core import (
    Account, Asset, BalanceMap,
    Mutation, MutationKind,
    InsufficientBalance,
    checked_add, checked_sub,
)


class Ledger:
    """
    Single-writer store of custodial balances.

    The running total is NOT derived from balances. Deposits add the value
    computed at deposit time and withdrawals subtract the value computed at
    withdrawal time, so after a rate change the total no longer equals any
    re-valuation of the balances.

    Thread Safety:
        Not thread-safe. VaultService serialises every access.

    Example:
        ledger = Ledger()
        ledger.deposit("alice", NATIVE_ASSET, 10**18, 2_000_000_000)
        ledger.balance_of("alice", NATIVE_ASSET)   # 10**18
        ledger.total_deposited_value                # 2_000_000_000
    """

    def __init__(self, name: str = "vault"):
        self.name = name
        self.balances: Dict[Account, Dict[Asset, int]] = {}
        self.total_deposited_value: int = 0
        # Inverted index mapping asset -> {account -> balance} for position lookups
        self._positions_by_asset: Dict[Asset, Dict[Account, int]] = defaultdict(dict)

    # ========================================================================
    # READ-ONLY QUERIES
    # ========================================================================

    def balance_of(self, account: Account, asset: Asset) -> int:
        """Return the balance of asset held for account (0 if never seen)."""
        return self.balances.get(account, {}).get(asset, 0)

    def get_balances(self, account: Account) -> BalanceMap:
        """Return a copy of every balance held for account."""
        return dict(self.balances.get(account, {}))

    def get_positions(self, asset: Asset) -> Dict[Account, int]:
        """Return all non-zero balances of asset across accounts."""
        return dict(self._positions_by_asset.get(asset, {}))

    def has_entry(self, account: Account, asset: Asset) -> bool:
        """Return True if (account, asset) has ever been credited, even if now zero."""
        return asset in self.balances.get(account, {})

    def list_accounts(self) -> Set[Account]:
        """Return every account that has ever held a balance."""
        return set(self.balances.keys())

    def list_assets(self) -> List[Asset]:
        """Return every asset that has ever been deposited, sorted."""
        assets: Set[Asset] = set()
        for held in self.balances.values():
            assets.update(held.keys())
        return sorted(assets)

    def total_held(self, asset: Asset) -> int:
        """
        Sum of balances of asset across all accounts.

        Accounts are sorted before summation for a deterministic order.
        """
        return sum(self.balances[a].get(asset, 0) for a in sorted(self.balances))

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def deposit(self, account: Account, asset: Asset, amount: int, value: int) -> Mutation:
        """
        Credit amount of asset to account and add value to the running total.

        Args:
            account: Receiving account
            asset: Asset deposited
            amount: Amount in the asset's base units (must be > 0)
            value: Accounting value of amount, computed by the caller

        Returns:
            The applied Mutation, which can be passed to revert()

        Raises:
            ZeroAmount: If amount is 0
            InvariantViolation: If the balance or total would overflow
        """
        mutation = Mutation(MutationKind.DEPOSIT, account, asset, amount, value)
        self.apply(mutation)
        return mutation

    def withdraw(self, account: Account, asset: Asset, amount: int, value: int) -> Mutation:
        """
        Debit amount of asset from account and subtract value from the running total.

        Args:
            account: Account being debited
            asset: Asset withdrawn
            amount: Amount in the asset's base units (must be > 0)
            value: Accounting value of amount at the withdrawal-time rate

        Returns:
            The applied Mutation, which can be passed to revert()

        Raises:
            ZeroAmount: If amount is 0
            InsufficientBalance: If amount exceeds the stored balance
            InvariantViolation: If the running total would go below zero
        """
        mutation = Mutation(MutationKind.WITHDRAW, account, asset, amount, value)
        self.apply(mutation)
        return mutation

    def apply(self, mutation: Mutation) -> None:
        """
        Apply a Mutation.

        Both new quantities are computed and checked before either is written,
        so a failure leaves the ledger untouched.
        """
        current = self.balance_of(mutation.account, mutation.asset)
        if mutation.kind is MutationKind.DEPOSIT:
            new_balance = checked_add(current, mutation.amount, "balance")
            new_total = checked_add(self.total_deposited_value, mutation.value, "total deposited value")
        else:
            if mutation.amount > current:
                raise InsufficientBalance(
                    f"{mutation.account} {mutation.asset}: withdraw {mutation.amount} > balance {current}"
                )
            new_balance = current - mutation.amount
            new_total = checked_sub(self.total_deposited_value, mutation.value, "total deposited value")

        self._set_balance(mutation.account, mutation.asset, new_balance)
        self.total_deposited_value = new_total

    def revert(self, mutation: Mutation, forget: bool = False) -> None:
        """
        Undo a Mutation previously passed to apply().

        Args:
            mutation: The mutation to undo
            forget: Also drop the (account, asset) entry if the reverted
                    mutation is what created it, so that no trace remains
        """
        self.apply(mutation.inverse())
        if forget and self.balance_of(mutation.account, mutation.asset) == 0:
            held = self.balances[mutation.account]
            del held[mutation.asset]
            if not held:
                del self.balances[mutation.account]

    def _set_balance(self, account: Account, asset: Asset, balance: int) -> None:
        # Zero balances stay in the map; only the position index drops them
        self.balances.setdefault(account, {})[asset] = balance
        if balance:
            self._positions_by_asset[asset][account] = balance
        else:
            self._positions_by_asset[asset].pop(account, None)

    # ========================================================================
    # COPYING
    # ========================================================================

    def clone(self) -> Ledger:
        """
        Create a fully independent copy of this ledger.

        Modifications to the clone do not affect the original and vice versa.
        """
        cloned = Ledger.__new__(Ledger)
        cloned.name = self.name
        cloned.total_deposited_value = self.total_deposited_value
        cloned.balances = {account: dict(held) for account, held in self.balances.items()}
        cloned._positions_by_asset = defaultdict(dict)
        for asset, positions in self._positions_by_asset.items():
            cloned._positions_by_asset[asset] = dict(positions)
        return cloned

    def __repr__(self) -> str:
        return (
            f"Ledger({self.name!r}, {len(self.balances)} accounts, "
            f"total_deposited_value={self.total_deposited_value})"
        )
