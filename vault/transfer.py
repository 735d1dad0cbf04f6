"""
transfer.py - Reference asset transfer collaborator

InMemoryTransfer models the outside world: what each account holds outside
custody and how much of each asset it has pre-authorised the vault to pull.
It implements the AssetTransfer protocol and is used by the demo and tests.
Deployments inject their own collaborator.

Native-currency deposits arrive with the call itself, so only pushes move
the native asset here.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .core import Account, Asset


@dataclass(frozen=True, slots=True)
class TransferRecord:
    direction: str  # "pull" or "push"
    account: Account
    asset: Asset
    amount: int
    succeeded: bool


class InMemoryTransfer:
    """
    Transfer collaborator backed by dictionaries.

    A pull succeeds only when the account holds the amount externally and has
    approved at least that much; it then consumes the allowance. A push always
    credits the account unless a failure is injected.

    Failure injection:
        fail_pulls / fail_pushes: when True, every call of that direction fails.
        hook: optional callable(direction, account, asset, amount) run before
              the transfer is decided. It may raise or call back into the vault.
    """

    def __init__(self):
        self.holdings: Dict[Tuple[Account, Asset], int] = {}
        self.allowances: Dict[Tuple[Account, Asset], int] = {}
        self.records: List[TransferRecord] = []
        self.fail_pulls = False
        self.fail_pushes = False
        self.hook: Optional[Callable[[str, Account, Asset, int], None]] = None

    def fund(self, account: Account, asset: Asset, amount: int) -> None:
        """Give account an external holding of asset."""
        key = (account, asset)
        self.holdings[key] = self.holdings.get(key, 0) + amount

    def approve(self, account: Account, asset: Asset, amount: int) -> None:
        """Set how much of asset the vault may pull from account."""
        self.allowances[(account, asset)] = amount

    def holding(self, account: Account, asset: Asset) -> int:
        return self.holdings.get((account, asset), 0)

    def allowance(self, account: Account, asset: Asset) -> int:
        return self.allowances.get((account, asset), 0)

    def pull(self, account: Account, asset: Asset, amount: int) -> bool:
        if self.hook is not None:
            self.hook("pull", account, asset, amount)
        key = (account, asset)
        ok = (
            not self.fail_pulls
            and self.allowances.get(key, 0) >= amount
            and self.holdings.get(key, 0) >= amount
        )
        if ok:
            self.allowances[key] -= amount
            self.holdings[key] -= amount
        self.records.append(TransferRecord("pull", account, asset, amount, ok))
        return ok

    def push(self, account: Account, asset: Asset, amount: int) -> bool:
        if self.hook is not None:
            self.hook("push", account, asset, amount)
        ok = not self.fail_pushes
        if ok:
            self.fund(account, asset, amount)
        self.records.append(TransferRecord("push", account, asset, amount, ok))
        return ok

    def __repr__(self):
        return f"InMemoryTransfer({len(self.records)} transfers)"
