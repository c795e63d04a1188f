"""
Models package for the statement import system.
"""

from .account import (
    Account,
    AccountType,
)

from .money import Currency

from .transaction import (
    Transaction,
    TransactionCategory,
)

from .holding import (
    Holding,
    AssetType,
)

from .records import (
    NormalizedTransactionRecord,
    NormalizedHoldingRecord,
)

from .column_mapping import (
    ColumnMapping,
    ColumnRole,
    DataType,
)

from .import_job import (
    ImportProgress,
    ImportResult,
    ImportStatus,
)

from .transaction_file import FileFormat

__all__ = [
    'Account',
    'AccountType',
    'Currency',
    'Transaction',
    'TransactionCategory',
    'Holding',
    'AssetType',
    'NormalizedTransactionRecord',
    'NormalizedHoldingRecord',
    'ColumnMapping',
    'ColumnRole',
    'DataType',
    'ImportProgress',
    'ImportResult',
    'ImportStatus',
    'FileFormat',
]
