import pytest
import pandas as pd
from decimal import Decimal
from treasury_ledger.financials import compute_financials, summary_stats, effective_balance

class TestComputeFinancials:
    """Test suite for opening, adjusted and current balances"""

    def test_end_to_end(self, make_row):
        """Test a manual history entry followed by a ledger expense"""
        transactions = [
            make_row('2024-01-01', income=50, expense=0, Type='Manual'),
            make_row('2024-02-01', income=0, expense=20),
        ]
        result = compute_financials(100, transactions)
        assert result['manual_offset'] == Decimal('-50')
        assert result['adjusted_opening_balance'] == Decimal('50')
        assert result['total_income'] == Decimal('50')
        assert result['total_expense'] == Decimal('20')
        assert result['current_balance'] == Decimal('80')

    def test_sample_ledger(self, sample_ledger):
        """Test formatted amounts in a realistic ledger"""
        result = compute_financials('1,000.00', sample_ledger)
        assert result['manual_offset'] == Decimal('-500')
        assert result['adjusted_opening_balance'] == Decimal('500')
        assert result['total_income'] == Decimal('1500')
        assert result['total_expense'] == Decimal('243.50')
        assert result['current_balance'] == Decimal('1756.50')

    def test_identities_hold(self, sample_ledger, make_row):
        """Test the balance identities hold exactly"""
        transactions = sample_ledger + [make_row('2024-03-20', expense='0.10'), make_row('2024-03-21', expense='0.20')]
        result = compute_financials(Decimal('0.30'), transactions)
        assert result['adjusted_opening_balance'] == Decimal('0.30') + result['manual_offset']
        assert result['current_balance'] == (
            result['adjusted_opening_balance'] + result['total_income'] - result['total_expense']
        )

    def test_manual_only_ledger(self, make_row):
        """Test manual entries alone leave the current balance at the opening balance"""
        transactions = [
            make_row('2023-01-01', income='300', Type='Manual'),
            make_row('2023-02-01', expense='120.25', Type='Manual'),
        ]
        result = compute_financials(1000, transactions)
        assert result['current_balance'] == Decimal('1000')
        assert result['manual_offset'] == Decimal('-179.75')

    def test_bad_input_counts_as_zero(self, make_row):
        """Test missing opening balance and malformed amounts"""
        transactions = [make_row('2024-01-01', income='abc'), make_row('2024-01-02', expense=None)]
        result = compute_financials(None, transactions)
        assert result['current_balance'] == Decimal('0')
        assert result['total_income'] == Decimal('0')

    def test_empty_ledger(self):
        result = compute_financials('250', [])
        assert result['current_balance'] == Decimal('250')
        assert result['manual_offset'] == Decimal('0')

    def test_dataframe_input(self, sample_ledger, sample_ledger_df):
        """Test DataFrame input matches list input"""
        assert compute_financials(0, sample_ledger_df) == compute_financials(0, sample_ledger)

class TestSummaryStats:
    """Test suite for filtered-view totals"""

    def test_summary(self, sample_ledger):
        stats = summary_stats(sample_ledger)
        assert stats['total_income'] == pytest.approx(1500.0)
        assert stats['total_expense'] == pytest.approx(243.5)
        assert stats['net_change'] == pytest.approx(1256.5)
        assert stats['transaction_count'] == 4

    def test_empty(self):
        stats = summary_stats([])
        assert stats['net_change'] == 0
        assert stats['transaction_count'] == 0

class TestEffectiveBalance:
    """Test suite for the balance excluding active trips"""

    def test_active_trips_are_excluded(self, make_row):
        transactions = [
            make_row('2024-03-01', income='200', **{'Trip/Event': 'Camp'}),
            make_row('2024-03-02', expense='50', **{'Trip/Event': 'Camp'}),
            make_row('2024-03-03', expense='30', **{'Trip/Event': 'Ski'}),
            make_row('2024-03-04', expense='10'),
        ]
        statuses = {'Camp': 'Active', 'Ski': 'Completed'}
        assert effective_balance(Decimal('1000'), transactions, statuses) == Decimal('850')

    def test_without_status_map(self, sample_ledger):
        assert effective_balance('512.40', sample_ledger) == Decimal('512.40')
