"""
service.py - VaultService: the public face of the custodial vault

Orchestrates every operation through the same fixed sequence:

    1. Validate  - reject zero amounts and wrong entry points
    2. Convert   - value the amount in accounting units (oracle for native)
    3. Guard     - global cap for deposits, per-withdrawal limit for withdrawals
    4. Mutate    - apply the change to the Ledger
    5. Transfer  - pull (asset deposits) or push (withdrawals) via the collaborator
    6. Notify    - emit events, only once everything above has succeeded

State is mutated strictly before the external transfer, so a collaborator that
calls back into the vault already sees the post-operation ledger. Such a
re-entrant call is refused outright (ReentrantCall). If the transfer fails or
raises, the mutation is reverted and the caller gets TransferFailed; no state
change from a rejected operation is ever observable.

All operations are serialised by one exclusive lock held from step 1 to step 5.
Events are emitted after the lock is released. A sink that raises is reported
in the verbose output and never turns a committed operation into a failed call.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterator, List, Optional
import threading

from .core import (
    Account, Asset, BalanceMap, Mutation, MutationKind,
    AssetTransfer, EventSink, PriceOracle,
    NATIVE_ASSET, ASSUMED_ASSET_DECIMALS,
    VaultError, ZeroAmount, TransferFailed, WrongDepositPath, ReentrantCall,
    InvariantViolation,
    format_value, require_uint,
)
from .converter import ValueConverter
from .events import BalanceChanged, DepositCompleted, VaultEvent, WithdrawCompleted
from .ledger import Ledger
from .limits import LimitGuard, Limits


@dataclass(frozen=True, slots=True)
class JournalEntry:
    """
    Record of one committed operation.

    Attributes:
        sequence: Monotonic, gap-free position in the journal
        timestamp: Logical time at which the operation committed
        mutation: The ledger change that was kept
        new_balance: Balance of (account, asset) right after the commit
    """
    sequence: int
    timestamp: datetime
    mutation: Mutation
    new_balance: int


class VaultService:
    """
    Multi-asset custodial vault with a global value cap and a per-withdrawal limit.

    Limits and the oracle are fixed at construction; there is no reconfiguration API.

    Thread Safety:
        Safe to share between threads. Every operation, including balance
        queries, runs under one exclusive lock.

    Example:
        oracle = StaticPriceOracle(2000 * 10**8, precision=8)
        transfer = InMemoryTransfer()
        vault = VaultService(
            oracle, transfer,
            max_total_value=1_000_000_000,       # 1000.000000
            max_withdraw_value=500_000_000,      # 500.000000
            verbose=False,
        )
        vault.deposit_native("alice", 4 * 10**17)     # worth 800.000000
        vault.withdraw("alice", NATIVE_ASSET, 10**17)
        vault.balance_of("alice", NATIVE_ASSET)       # 3 * 10**17
    """

    def __init__(
        self,
        oracle: PriceOracle,
        transfer: AssetTransfer,
        max_total_value: int,
        max_withdraw_value: int,
        event_sink: Optional[EventSink] = None,
        max_staleness: Optional[timedelta] = None,
        asset_decimals: int = ASSUMED_ASSET_DECIMALS,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
        name: str = "vault",
    ):
        """
        Create a vault.

        Args:
            oracle: Native-currency price source
            transfer: External asset transfer collaborator
            max_total_value: Global cap on deposited accounting value
            max_withdraw_value: Ceiling on the accounting value of one withdrawal
            event_sink: Callable receiving events after each committed operation
            max_staleness: Maximum oracle reading age (None disables the check)
            asset_decimals: Assumed precision of every pegged (non-native) asset
            initial_time: Starting logical time (default: 1970-01-01)
            verbose: Print one line per applied or rejected operation
            name: Vault identifier used in output

        Raises:
            TypeError, ValueError: If a limit is not an unsigned 256-bit integer
        """
        self.name = name
        self.limits = Limits(max_total_value, max_withdraw_value)
        self.guard = LimitGuard(self.limits)
        self.converter = ValueConverter(oracle, max_staleness, asset_decimals)
        self.ledger = Ledger(name)
        self.transfer = transfer
        self.event_sink = event_sink
        self.verbose = verbose
        self.journal: List[JournalEntry] = []
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)

        self._lock = threading.Lock()
        # Thread currently inside an operation, and the account it is operating on
        self._owner: Optional[int] = None
        self._in_flight: Optional[Account] = None

    # ========================================================================
    # CONFIGURATION AND TIME
    # ========================================================================

    @property
    def max_total_value(self) -> int:
        return self.limits.max_total_value

    @property
    def max_withdraw_value(self) -> int:
        return self.limits.max_withdraw_value

    @property
    def oracle(self) -> PriceOracle:
        return self.converter.oracle

    @property
    def current_time(self) -> datetime:
        """Current logical time of the vault."""
        return self._current_time

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the vault's logical clock.

        Raises:
            ValueError: If new_time is before the current time
        """
        with self._exclusive(None):
            if new_time < self._current_time:
                raise ValueError(
                    f"Cannot move time backwards: {new_time} < {self._current_time}"
                )
            self._current_time = new_time

    # ========================================================================
    # QUERIES
    # ========================================================================

    def balance_of(self, account: Account, asset: Asset) -> int:
        """
        Return the balance of asset held for account (0 if never seen).

        Raises:
            ReentrantCall: If called from a transfer callback for the account
                           whose operation is still in flight
        """
        if self._owner == threading.get_ident():
            if account == self._in_flight:
                raise ReentrantCall(
                    f"Balance of {account} queried while its operation is in flight"
                )
            return self.ledger.balance_of(account, asset)
        with self._lock:
            return self.ledger.balance_of(account, asset)

    def get_balances(self, account: Account) -> BalanceMap:
        """Return a copy of every balance held for account."""
        with self._exclusive(account):
            return self.ledger.get_balances(account)

    @property
    def total_deposited_value(self) -> int:
        """Running total of deposited accounting value."""
        with self._exclusive(None):
            return self.ledger.total_deposited_value

    def remaining_capacity(self) -> int:
        """Accounting value that can still be deposited before the cap is hit."""
        with self._exclusive(None):
            return self.guard.remaining_capacity(self.ledger.total_deposited_value)

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def deposit_native(self, account: Account, amount: int) -> int:
        """
        Record a native-currency deposit that arrived with this call.

        Args:
            account: Depositing account
            amount: Amount in native base units (18 decimals)

        Returns:
            Accounting value credited to the running total

        Raises:
            ZeroAmount, InvalidOracleReading, CapExceeded
        """
        return self._deposit(account, NATIVE_ASSET, amount, pull=False)

    def deposit_asset(self, account: Account, asset: Asset, amount: int) -> int:
        """
        Pull a pre-authorised amount of a non-native asset into custody.

        Returns:
            Accounting value credited to the running total

        Raises:
            WrongDepositPath: If asset is the native asset
            ZeroAmount, CapExceeded, TransferFailed
        """
        if asset == NATIVE_ASSET:
            error = WrongDepositPath("Native currency must be deposited with deposit_native()")
            self._log_rejection("deposit", account, asset, amount, error)
            raise error
        return self._deposit(account, asset, amount, pull=True)

    def withdraw(self, account: Account, asset: Asset, amount: int) -> int:
        """
        Debit account and push amount of asset out of custody.

        The running total is reduced by the value at the CURRENT rate, which
        may differ from the value added when the asset was deposited.

        Returns:
            Accounting value removed from the running total

        Raises:
            ZeroAmount, InvalidOracleReading, LimitExceeded,
            InsufficientBalance, TransferFailed
            InvariantViolation: If the withdrawal is worth more than the
                                whole running total
        """
        self._check_args(account, amount)
        with self._exclusive(account):
            try:
                self._require_nonzero(amount)
                value = self.converter.value_of(asset, amount, self._current_time)
                self.guard.check_withdraw(value)
                mutation = self.ledger.withdraw(account, asset, amount, value)
                self._transfer("push", mutation, existed=True)
            except (VaultError, InvariantViolation) as e:
                self._log_rejection("withdraw", account, asset, amount, e)
                raise
            entry = self._commit(mutation)
        self._notify(entry)
        return value

    def _deposit(self, account: Account, asset: Asset, amount: int, pull: bool) -> int:
        self._check_args(account, amount)
        with self._exclusive(account):
            try:
                self._require_nonzero(amount)
                value = self.converter.value_of(asset, amount, self._current_time)
                self.guard.check_deposit(self.ledger.total_deposited_value, value)
                existed = self.ledger.has_entry(account, asset)
                mutation = self.ledger.deposit(account, asset, amount, value)
                if pull:
                    self._transfer("pull", mutation, existed)
            except (VaultError, InvariantViolation) as e:
                self._log_rejection("deposit", account, asset, amount, e)
                raise
            entry = self._commit(mutation)
        self._notify(entry)
        return value

    # ========================================================================
    # INTERNALS
    # ========================================================================

    @contextmanager
    def _exclusive(self, account: Optional[Account]) -> Iterator[None]:
        """
        Hold the vault lock for the duration of one operation.

        A call made from the thread that already holds the lock can only come
        from inside a transfer callback, and is refused.
        """
        me = threading.get_ident()
        if self._owner == me:
            raise ReentrantCall(
                f"Re-entrant vault call while operation for {self._in_flight} is in flight"
            )
        with self._lock:
            self._owner = me
            self._in_flight = account
            try:
                yield
            finally:
                self._owner = None
                self._in_flight = None

    @staticmethod
    def _check_args(account: Account, amount: int) -> None:
        if not isinstance(account, str) or not account.strip():
            raise ValueError("Account cannot be empty")
        require_uint(amount, "amount")

    @staticmethod
    def _require_nonzero(amount: int) -> None:
        if amount == 0:
            raise ZeroAmount("Amount must be greater than zero")

    def _transfer(self, direction: str, mutation: Mutation, existed: bool) -> None:
        """
        Run the external transfer for an already-applied mutation.

        Any outcome other than a successful return reverts the mutation. A
        balance entry created by the mutation is dropped again.
        """
        move = self.transfer.pull if direction == "pull" else self.transfer.push
        succeeded = False
        try:
            succeeded = bool(move(mutation.account, mutation.asset, mutation.amount))
        except Exception as e:
            raise TransferFailed(
                f"{direction} of {mutation.amount} {mutation.asset} for {mutation.account} raised {e!r}"
            ) from e
        finally:
            if not succeeded:
                self.ledger.revert(mutation, forget=not existed)
        if not succeeded:
            raise TransferFailed(
                f"{direction} of {mutation.amount} {mutation.asset} for {mutation.account} failed"
            )

    def _commit(self, mutation: Mutation) -> JournalEntry:
        entry = JournalEntry(
            sequence=len(self.journal),
            timestamp=self._current_time,
            mutation=mutation,
            new_balance=self.ledger.balance_of(mutation.account, mutation.asset),
        )
        self.journal.append(entry)
        if self.verbose:
            verb = "deposit" if mutation.kind is MutationKind.DEPOSIT else "withdraw"
            print(f"✓ APPLIED: {verb} {mutation.amount} {mutation.asset} "
                  f"[{mutation.account}] value={format_value(mutation.value)} "
                  f"total={format_value(self.ledger.total_deposited_value)}")
        return entry

    def _log_rejection(self, op: str, account: Account, asset: Asset, amount: int, error: Exception) -> None:
        if self.verbose:
            print(f"✗ REJECTED: {op} {amount} {asset} [{account}]: {type(error).__name__}: {error}")

    def _notify(self, entry: JournalEntry) -> None:
        if self.event_sink is None:
            return
        m = entry.mutation
        events: List[VaultEvent] = []
        stamp = (entry.timestamp, entry.sequence)
        if m.kind is MutationKind.DEPOSIT:
            events.append(DepositCompleted(m.account, m.asset, m.amount, m.value, *stamp))
        else:
            events.append(WithdrawCompleted(m.account, m.asset, m.amount, *stamp))
        events.append(BalanceChanged(m.account, m.asset, entry.new_balance, *stamp))
        # Sink failures are reported, never raised: the operation has already committed
        for event in events:
            try:
                self.event_sink(event)
            except Exception as e:
                if self.verbose:
                    print(f"✗ EVENT: {type(event).__name__} #{entry.sequence} "
                          f"[{m.account}] not delivered: {type(e).__name__}: {e}")

    def __repr__(self) -> str:
        return (
            f"VaultService({self.name!r}, total={format_value(self.ledger.total_deposited_value)}, "
            f"cap={format_value(self.max_total_value)}, "
            f"withdraw_limit={format_value(self.max_withdraw_value)})"
        )
