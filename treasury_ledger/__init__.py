"""
Treasury Ledger - reconciliation and analytics for a bank-statement ledger.

This package provides functionality to:
- Normalize dates and amounts from bank exports and the remote ledger
- Detect statement rows that are already in the ledger
- Consolidate split transactions into the working ledger
- Compute opening, adjusted and current balances
- Aggregate transactions by date bucket, category and trip for charts
- Hold derived ledger state that recomputes when its inputs change

Working-ledger rows use the columns:
- Date, Description, Document: as recorded on the statement
- Trip/Event, Category: tags assigned by the tag editor
- Income, Expense: at most one non-zero per row
- Type: "Manual" for pre-ledger history entries
- Split Group ID, Split Type: split bookkeeping (SOURCE, CHILD, REVERTED)
"""

from .normalize import (
    normalize_date,
    normalize_value,
    parse_amount,
    parse_decimal,
    format_currency,
)
from .records import to_ledger_row
from .duplicates import fingerprint, find_unique, mark_duplicates
from .splits import SplitRole, consolidate, merge_splits, validate_split
from .financials import compute_financials, effective_balance, summary_stats
from .analysis import aggregate, filter_transactions, to_csv
from .tags import apply_pending_ops, optimize_queue, to_api_operations
from .state import Store, LedgerStore

__all__ = [
    'normalize_date',
    'normalize_value',
    'parse_amount',
    'parse_decimal',
    'format_currency',
    'to_ledger_row',
    'fingerprint',
    'find_unique',
    'mark_duplicates',
    'SplitRole',
    'consolidate',
    'merge_splits',
    'validate_split',
    'compute_financials',
    'effective_balance',
    'summary_stats',
    'aggregate',
    'filter_transactions',
    'to_csv',
    'apply_pending_ops',
    'optimize_queue',
    'to_api_operations',
    'Store',
    'LedgerStore',
]
