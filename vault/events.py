"""
events.py - Observability events emitted by the vault

Events are just data. The vault emits them only after an operation has fully
committed (ledger updated and external transfer succeeded); a rejected or
rolled-back operation emits nothing.

Every committed deposit emits DepositCompleted then BalanceChanged.
Every committed withdrawal emits WithdrawCompleted then BalanceChanged.

Events are delivered outside the vault lock, so two threads may see them
interleaved out of commit order. `sequence` is the journal position of the
committing operation and restores that order.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Type, Union

from .core import Account, Asset


@dataclass(frozen=True, slots=True)
class DepositCompleted:
    account: Account
    asset: Asset
    amount: int
    accounting_value: int
    timestamp: Optional[datetime] = None
    sequence: Optional[int] = None


@dataclass(frozen=True, slots=True)
class WithdrawCompleted:
    account: Account
    asset: Asset
    amount: int
    timestamp: Optional[datetime] = None
    sequence: Optional[int] = None


@dataclass(frozen=True, slots=True)
class BalanceChanged:
    account: Account
    asset: Asset
    new_balance: int
    timestamp: Optional[datetime] = None
    sequence: Optional[int] = None


VaultEvent = Union[DepositCompleted, WithdrawCompleted, BalanceChanged]


class EventLog:
    """
    In-memory event sink.

    Callable, so it can be passed anywhere an EventSink is expected. Optional
    listeners are invoked for every recorded event, in registration order.

    Example:
        log = EventLog()
        vault = VaultService(oracle, transfer, cap, limit, event_sink=log)
        vault.deposit_native("alice", 10**18)
        log.of_type(DepositCompleted)
    """

    def __init__(self):
        self.events: List[VaultEvent] = []
        self._listeners: List[Callable[[VaultEvent], None]] = []

    def __call__(self, event: VaultEvent) -> None:
        self.events.append(event)
        for listener in self._listeners:
            listener(event)

    def subscribe(self, listener: Callable[[VaultEvent], None]) -> None:
        """Register a callable invoked for every subsequent event."""
        self._listeners.append(listener)

    def of_type(self, event_type: Type) -> List[VaultEvent]:
        """Return recorded events of a given class, oldest first."""
        return [e for e in self.events if isinstance(e, event_type)]

    def for_account(self, account: Account) -> List[VaultEvent]:
        """Return recorded events concerning account, oldest first."""
        return [e for e in self.events if e.account == account]

    def clear(self) -> None:
        self.events.clear()

    def __len__(self) -> int:
        return len(self.events)

    def __repr__(self):
        return f"EventLog({len(self.events)} events)"
