"""
Duplicate detection for statement imports.

Each transaction is reduced to a fingerprint: its normalized date, description,
document, income and expense joined with a delimiter that does not occur in
the data. Two records describe the same real-world event exactly when their
fingerprints are equal.

Fingerprint Format:
- {date}|{description}|{document}|{income}|{expense}
- Ledger rows contribute Date/Description/Document/Income/Expense
- Imported rows contribute date/description/document/cashIn/cashOut
"""

import logging

import pandas as pd

from treasury_ledger.normalize import normalize_date, normalize_value
from treasury_ledger.records import (
    DATE,
    DESCRIPTION,
    DOCUMENT,
    EXPENSE,
    INCOME,
    as_records,
)

logger = logging.getLogger(__name__)

FINGERPRINT_DELIMITER = '|'

# (ledger column, imported field) for each fingerprint component
_FINGERPRINT_FIELDS = [
    (DESCRIPTION, 'description'),
    (DOCUMENT, 'document'),
    (INCOME, 'cashIn'),
    (EXPENSE, 'cashOut'),
]


def _field(record, ledger_name, import_name):
    if ledger_name in record:
        return record[ledger_name]
    return record.get(import_name)


def fingerprint(record):
    """Build the duplicate-detection key for a ledger or imported record.

    Args:
        record (dict): Ledger row or imported row

    Returns:
        str: Delimited key of the five normalized components
    """
    parts = [normalize_date(_field(record, DATE, 'date'))]
    parts.extend(
        normalize_value(_field(record, ledger_name, import_name))
        for ledger_name, import_name in _FINGERPRINT_FIELDS
    )
    return FINGERPRINT_DELIMITER.join(parts)


def fingerprint_set(records):
    """Return the set of fingerprints for a DataFrame or list of records."""
    return {fingerprint(record) for record in as_records(records)}


def _duplicate_flags(new_records, existing_records):
    existing_keys = fingerprint_set(existing_records)
    logger.debug(f"Built {len(existing_keys)} fingerprints from existing ledger")

    if isinstance(new_records, pd.DataFrame):
        if new_records.empty:
            return pd.Series([], index=new_records.index, dtype=bool)
        keys = new_records.apply(lambda row: fingerprint(row.to_dict()), axis=1)
        return keys.isin(existing_keys)

    return [fingerprint(record) in existing_keys for record in new_records]


def find_unique(new_records, existing_records):
    """
    Filter new records down to those not already present in the ledger.

    Args:
        new_records (list or pd.DataFrame): Incoming records
        existing_records (list or pd.DataFrame): Known ledger records

    Returns:
        list or pd.DataFrame: The new records whose fingerprint is absent from
            existing_records, in input order (same type as new_records)

    Notes:
        - The existing fingerprint set is built once; each new record is a
          single set lookup
        - Inputs are not modified
    """
    if not isinstance(new_records, pd.DataFrame):
        new_records = list(new_records)
    flags = _duplicate_flags(new_records, existing_records)

    if isinstance(new_records, pd.DataFrame):
        unique = new_records[~flags].copy()
        duplicate_count = len(new_records) - len(unique)
    else:
        unique = [record for record, is_dup in zip(new_records, flags) if not is_dup]
        duplicate_count = len(flags) - len(unique)

    logger.info(f"Found {len(unique)} unique records and {duplicate_count} duplicates")
    return unique


def mark_duplicates(new_records, existing_records):
    """
    Flag each new record with isDuplicate instead of dropping duplicates.

    Returns:
        list or pd.DataFrame: Copies of new_records with an isDuplicate field
    """
    if not isinstance(new_records, pd.DataFrame):
        new_records = list(new_records)
    flags = _duplicate_flags(new_records, existing_records)

    if isinstance(new_records, pd.DataFrame):
        result = new_records.copy()
        result['isDuplicate'] = flags.astype(bool)
        return result

    return [dict(record, isDuplicate=is_dup) for record, is_dup in zip(new_records, flags)]
