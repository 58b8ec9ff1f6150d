"""
Balance calculations over the working ledger.

Manual transactions record history from before the ledger started. They are
included in every total, but their effect on the starting point is cancelled
through the manual offset so the current balance is not shifted twice:

    manual_offset            = manual_expense - manual_income
    adjusted_opening_balance = opening_balance + manual_offset
    current_balance          = adjusted_opening_balance + total_income - total_expense

All arithmetic is done with Decimal so these identities hold exactly.
"""

import logging
from decimal import Decimal

from treasury_ledger.normalize import parse_amount, parse_decimal
from treasury_ledger.records import EXPENSE, INCOME, TRIP, as_records, is_manual

logger = logging.getLogger(__name__)

ACTIVE_STATUS = 'Active'


def compute_financials(opening_balance, transactions):
    """
    Calculate manual offset, adjusted opening balance and current balance.

    Args:
        opening_balance (Decimal, float, str or None): Configured balance
            immediately before the earliest tracked transaction
        transactions (list or pd.DataFrame): Working-ledger rows

    Returns:
        dict: Decimal values keyed by manual_offset, adjusted_opening_balance,
            current_balance, total_income and total_expense

    Notes:
        - Missing or non-numeric balances and amounts count as 0
    """
    manual_income = Decimal('0')
    manual_expense = Decimal('0')
    total_income = Decimal('0')
    total_expense = Decimal('0')

    for item in as_records(transactions):
        income = parse_decimal(item.get(INCOME))
        expense = parse_decimal(item.get(EXPENSE))

        if is_manual(item):
            manual_income += income
            manual_expense += expense

        total_income += income
        total_expense += expense

    manual_offset = manual_expense - manual_income
    adjusted_opening_balance = parse_decimal(opening_balance) + manual_offset
    current_balance = adjusted_opening_balance + total_income - total_expense

    return {
        'manual_offset': manual_offset,
        'adjusted_opening_balance': adjusted_opening_balance,
        'current_balance': current_balance,
        'total_income': total_income,
        'total_expense': total_expense,
    }


def summary_stats(transactions):
    """Totals for a (usually filtered) set of transactions.

    Returns:
        dict: total_income, total_expense, net_change and transaction_count
    """
    records = as_records(transactions)
    total_income = sum(parse_amount(item.get(INCOME)) for item in records)
    total_expense = sum(parse_amount(item.get(EXPENSE)) for item in records)
    return {
        'total_income': total_income,
        'total_expense': total_expense,
        'net_change': total_income - total_expense,
        'transaction_count': len(records),
    }


def effective_balance(current_balance, transactions, trip_status_map=None):
    """
    Current balance minus money tied up in trips that are still active.

    Args:
        current_balance (Decimal, float or str): Treasury balance
        transactions (list or pd.DataFrame): Working-ledger rows
        trip_status_map (dict): Trip name -> status snapshot

    Returns:
        Decimal: current_balance less the net of every row whose trip is Active
    """
    trip_status_map = trip_status_map or {}
    active_net = Decimal('0')
    for item in as_records(transactions):
        trip = item.get(TRIP)
        if trip and trip_status_map.get(trip) == ACTIVE_STATUS:
            active_net += parse_decimal(item.get(INCOME)) - parse_decimal(item.get(EXPENSE))

    logger.debug(f"Active trip net contribution: {active_net}")
    return parse_decimal(current_balance) - active_net
