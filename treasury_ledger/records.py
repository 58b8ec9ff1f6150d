"""
Record shapes exchanged with the import, tagging and storage collaborators.

Working-ledger rows use the column names of the remote ledger sheet verbatim.
Freshly imported rows (from the spreadsheet parser or the manual entry form)
use lower-camel names until they are converted with to_ledger_row.
"""

import pandas as pd

from treasury_ledger.normalize import normalize_date

# Working-ledger columns
DATE = 'Date'
DESCRIPTION = 'Description'
DOCUMENT = 'Document'
TRIP = 'Trip/Event'
CATEGORY = 'Category'
INCOME = 'Income'
EXPENSE = 'Expense'
TYPE = 'Type'
SPLIT_GROUP_ID = 'Split Group ID'
SPLIT_TYPE = 'Split Type'

# Computed sort key (Income - Expense), not stored
NET = 'Net'

LEDGER_COLUMNS = [
    DATE,
    DESCRIPTION,
    DOCUMENT,
    TRIP,
    CATEGORY,
    INCOME,
    EXPENSE,
    TYPE,
    SPLIT_GROUP_ID,
    SPLIT_TYPE,
]

MANUAL_TYPE = 'Manual'

# Imported-row fields, paired with the ledger column they become
IMPORT_FIELD_MAP = {
    'date': DATE,
    'description': DESCRIPTION,
    'document': DOCUMENT,
    'cashIn': INCOME,
    'cashOut': EXPENSE,
}


def as_records(data):
    """Return a list of dict records for a DataFrame or an iterable of mappings."""
    if data is None:
        return []
    if isinstance(data, pd.DataFrame):
        return data.to_dict('records')
    return [dict(row) for row in data]


def is_manual(record):
    return record.get(TYPE) == MANUAL_TYPE


def to_ledger_row(row, manual=False):
    """
    Convert an imported row to the working-ledger shape.

    Args:
        row (dict): Imported row with date, description, document, cashIn and
            cashOut fields
        manual (bool): Flag the row as a manual (pre-ledger history) entry.
            Rows carrying isManual=True are flagged as well.

    Returns:
        dict: New row with every ledger column present; empty strings for
            absent values
    """
    result = {column: '' for column in LEDGER_COLUMNS}
    for source, target in IMPORT_FIELD_MAP.items():
        value = row.get(source)
        result[target] = '' if value is None else value

    result[DATE] = normalize_date(row.get('date'))

    # Tags may already be present when the collaborator pre-tags rows
    for column in (TRIP, CATEGORY):
        if row.get(column):
            result[column] = row[column]

    if manual or row.get('isManual'):
        result[TYPE] = MANUAL_TYPE
    return result
