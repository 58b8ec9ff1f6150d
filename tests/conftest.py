import pytest
import pandas as pd

# Working-ledger rows as returned by the ledger backend
ledger_sample_data = [
    {
        'Date': '2024-03-10',
        'Description': 'Hotel Paris',
        'Document': 'INV-301',
        'Trip/Event': 'Paris 2024',
        'Category': 'Lodging',
        'Income': '',
        'Expense': '240.00',
        'Type': '',
    },
    {
        'Date': '2024-03-02',
        'Description': 'Member dues',
        'Document': 'DEP-17',
        'Trip/Event': '',
        'Category': 'Dues',
        'Income': '1,000.00',
        'Expense': '',
        'Type': '',
    },
    {
        'Date': '2024-02-14',
        'Description': 'Coffee',
        'Document': '',
        'Trip/Event': '',
        'Category': '',
        'Income': '',
        'Expense': '3.50',
        'Type': '',
    },
    {
        'Date': '2023-12-31',
        'Description': 'Balance carried over',
        'Document': '',
        'Trip/Event': '',
        'Category': '',
        'Income': '500',
        'Expense': '',
        'Type': 'Manual',
    },
]

# Rows from the statement parser, before conversion to the ledger shape
imported_sample_data = [
    {'date': '10/03/2024', 'description': 'Hotel Paris', 'document': 'INV-301', 'cashIn': '', 'cashOut': '240'},
    {'date': '15/03/2024', 'description': 'Train tickets', 'document': 'INV-302', 'cashIn': '', 'cashOut': '89.90'},
    {'date': '2024-02-14T00:00:00.000Z', 'description': 'Coffee', 'document': '', 'cashIn': None, 'cashOut': '3.5'},
]

split_log_sample_data = [
    {
        'Date': '2024-03-10',
        'Description': 'Hotel Paris',
        'Expense': '240.00',
        'Split Group ID': 'grp-1',
        'Split Type': 'SOURCE',
    },
    {
        'Date': '2024-03-10',
        'Description': 'Hotel Paris (team A)',
        'Trip/Event': 'Paris 2024',
        'Category': 'Lodging',
        'Expense': '160.00',
        'Split Group ID': 'grp-1',
        'Split Type': 'CHILD',
    },
    {
        'Date': '2024-03-10',
        'Description': 'Hotel Paris (team B)',
        'Trip/Event': 'Lyon 2024',
        'Category': 'Lodging',
        'Expense': '80.00',
        'Split Group ID': 'grp-1',
        'Split Type': 'CHILD',
    },
]

@pytest.fixture
def sample_ledger():
    """Working-ledger rows covering income, expense, untagged and manual entries."""
    return [dict(row) for row in ledger_sample_data]

@pytest.fixture
def sample_ledger_df():
    """The sample ledger as a DataFrame."""
    return pd.DataFrame(ledger_sample_data)

@pytest.fixture
def sample_imported_rows():
    """Statement rows in the import shape; two of them are already in the ledger."""
    return [dict(row) for row in imported_sample_data]

@pytest.fixture
def split_ledger():
    """Raw ledger whose hotel row belongs to split group grp-1."""
    rows = [dict(row) for row in ledger_sample_data]
    rows[0]['Split Group ID'] = 'grp-1'
    return rows

@pytest.fixture
def sample_split_log():
    """SOURCE row and two CHILD rows for split group grp-1."""
    return [dict(row) for row in split_log_sample_data]

@pytest.fixture
def make_row():
    """Helper fixture to build a working-ledger row with defaults."""
    def _make_row(date, income='', expense='', **fields):
        row = {
            'Date': date,
            'Description': fields.pop('description', 'Test Transaction'),
            'Document': '',
            'Trip/Event': '',
            'Category': '',
            'Income': income,
            'Expense': expense,
            'Type': '',
        }
        row.update(fields)
        return row
    return _make_row
