"""
vault - Multi-Asset Custodial Ledger

Tracks per-account, per-asset balances, enforces a global value cap and a
per-withdrawal value limit expressed in a common accounting unit, and values
the native currency through an external price oracle.

Usage:
    from vault import (
        VaultService, StaticPriceOracle, InMemoryTransfer, EventLog, NATIVE_ASSET,
    )

    oracle = StaticPriceOracle(2000 * 10**8, precision=8)   # 2000 units per native unit
    transfer = InMemoryTransfer()
    events = EventLog()
    vault = VaultService(
        oracle, transfer,
        max_total_value=1_000_000_000,       # 1000.000000
        max_withdraw_value=500_000_000,      # 500.000000
        event_sink=events,
    )

    # Native deposit: the currency arrives with the call
    vault.deposit_native("alice", 4 * 10**17)          # worth 800.000000

    # Asset deposit: pulled from a pre-authorised allowance
    transfer.fund("bob", "USDX", 100 * 10**18)
    transfer.approve("bob", "USDX", 100 * 10**18)
    vault.deposit_asset("bob", "USDX", 100 * 10**18)   # worth 100.000000

    vault.withdraw("alice", NATIVE_ASSET, 10**17)
"""

# Core types
from .core import (
    Account,
    Asset,
    BalanceMap,
    Mutation,
    MutationKind,
    OracleReading,
    PriceOracle,
    AssetTransfer,
    EventSink,
    VaultError,
    ZeroAmount,
    CapExceeded,
    LimitExceeded,
    InsufficientBalance,
    InvalidOracleReading,
    TransferFailed,
    WrongDepositPath,
    ReentrantCall,
    InvariantViolation,
    checked_add,
    checked_sub,
    checked_mul,
    to_base_units,
    from_base_units,
    format_value,
    NATIVE_ASSET,
    NATIVE_DECIMALS,
    ACCOUNTING_DECIMALS,
    ASSUMED_ASSET_DECIMALS,
    UINT_MAX,
    MAX_ORACLE_PRECISION,
)

# Valuation
from .oracle import StaticPriceOracle, TimeSeriesPriceOracle
from .converter import ValueConverter, scale_decimals, validate_reading

# Limits
from .limits import Limits, LimitGuard, check_cap, check_withdraw_limit

# Ledger
from .ledger import Ledger

# Events
from .events import (
    DepositCompleted,
    WithdrawCompleted,
    BalanceChanged,
    VaultEvent,
    EventLog,
)

# Transfers
from .transfer import InMemoryTransfer, TransferRecord

# Service
from .service import VaultService, JournalEntry

__all__ = [
    # Core
    'Account', 'Asset', 'BalanceMap', 'Mutation', 'MutationKind', 'OracleReading',
    'PriceOracle', 'AssetTransfer', 'EventSink',
    'VaultError', 'ZeroAmount', 'CapExceeded', 'LimitExceeded', 'InsufficientBalance',
    'InvalidOracleReading', 'TransferFailed', 'WrongDepositPath', 'ReentrantCall',
    'InvariantViolation',
    'checked_add', 'checked_sub', 'checked_mul',
    'to_base_units', 'from_base_units', 'format_value',
    'NATIVE_ASSET', 'NATIVE_DECIMALS', 'ACCOUNTING_DECIMALS', 'ASSUMED_ASSET_DECIMALS',
    'UINT_MAX', 'MAX_ORACLE_PRECISION',
    # Valuation
    'StaticPriceOracle', 'TimeSeriesPriceOracle',
    'ValueConverter', 'scale_decimals', 'validate_reading',
    # Limits
    'Limits', 'LimitGuard', 'check_cap', 'check_withdraw_limit',
    # Ledger
    'Ledger',
    # Events
    'DepositCompleted', 'WithdrawCompleted', 'BalanceChanged', 'VaultEvent', 'EventLog',
    # Transfers
    'InMemoryTransfer', 'TransferRecord',
    # Service
    'VaultService', 'JournalEntry',
]

__version__ = '1.0.0'
