"""
Split consolidation.

A split group replaces one ledger transaction (the SOURCE) with two or more
CHILD rows whose amounts partition it, each with its own description and tags.
The raw ledger keeps the source row; the split log holds the SOURCE and CHILD
rows written by the split editor. Merging the two produces the working ledger
used by every balance and chart calculation.

Split Log Roles:
- SOURCE: the original transaction, suppressed in the working ledger
- CHILD: a replacement row, emitted in place of the source
- REVERTED: the split was undone; the source is kept and children ignored
"""

import logging
from collections import OrderedDict, namedtuple
from decimal import Decimal
from enum import Enum

import pandas as pd

from treasury_ledger.normalize import is_blank, is_canonical_date, normalize_date, parse_amount, parse_decimal
from treasury_ledger.records import (
    DATE,
    EXPENSE,
    INCOME,
    NET,
    SPLIT_GROUP_ID,
    SPLIT_TYPE,
    as_records,
)

logger = logging.getLogger(__name__)

SPLIT_TOLERANCE = Decimal('0.01')


class SplitRole(str, Enum):
    SOURCE = 'SOURCE'
    CHILD = 'CHILD'
    REVERTED = 'REVERTED'


MergeResult = namedtuple('MergeResult', ['ledger', 'orphan_groups'])


def group_id(record):
    """Return the record's split group id, or None when it has none."""
    value = record.get(SPLIT_GROUP_ID)
    if is_blank(value):
        return None
    return str(value).strip()


def _index_split_log(split_log):
    """Return (source group ids, children by group id, reverted group ids)."""
    sources = set()
    reverted = set()
    children = {}

    for item in split_log:
        gid = group_id(item)
        if gid is None:
            continue
        role = item.get(SPLIT_TYPE)
        if role == SplitRole.SOURCE:
            sources.add(gid)
        elif role == SplitRole.CHILD:
            children.setdefault(gid, []).append(item)
        elif role == SplitRole.REVERTED:
            reverted.add(gid)

    return sources, children, reverted


def _date_key(record):
    date_str = normalize_date(record.get(DATE))
    return date_str if is_canonical_date(date_str) else None


def _net(record):
    return parse_amount(record.get(INCOME)) - parse_amount(record.get(EXPENSE))


def _text_key(record, field):
    value = record.get(field)
    return '' if is_blank(value) else str(value)


def sort_records(records, field=DATE, ascending=False):
    """
    Sort ledger rows by a column with a stable sort.

    Args:
        records (list): Ledger rows
        field (str): Column to sort by. 'Net' sorts by Income - Expense.
        ascending (bool): Smallest (or oldest) first when True

    Returns:
        list: New list; rows with equal keys keep their relative order

    Notes:
        - Date: rows without a usable date are placed last in input order
        - Income/Expense: rows with a positive value in that column come
          first in either direction; the remaining rows are ordered by the
          opposite column
        - Other columns compare as text, blanks as ''
    """
    records = list(records)
    reverse = not ascending

    if field == DATE:
        dated = []
        undated = []
        for record in records:
            (dated if _date_key(record) is not None else undated).append(record)
        return sorted(dated, key=_date_key, reverse=reverse) + undated

    if field == NET:
        return sorted(records, key=_net, reverse=reverse)

    if field in (INCOME, EXPENSE):
        other = EXPENSE if field == INCOME else INCOME
        positive = [r for r in records if parse_amount(r.get(field)) > 0]
        rest = [r for r in records if not parse_amount(r.get(field)) > 0]
        return (sorted(positive, key=lambda r: parse_amount(r.get(field)), reverse=reverse)
                + sorted(rest, key=lambda r: parse_amount(r.get(other)), reverse=reverse))

    return sorted(records, key=lambda r: _text_key(r, field), reverse=reverse)


def sort_by_date(records, ascending=False):
    """Sort records newest first (oldest first when ascending); undated rows last."""
    return sort_records(records, DATE, ascending)


def _as_input_type(raw_ledger, rows):
    """Return rows as a DataFrame when the ledger came in as one."""
    if not isinstance(raw_ledger, pd.DataFrame):
        return rows
    columns = list(raw_ledger.columns)
    for row in rows:
        columns.extend(key for key in row if key not in columns)
    return pd.DataFrame(rows, columns=columns)


def consolidate(raw_ledger, split_log):
    """
    Merge the raw ledger with the split log and report integrity gaps.

    Args:
        raw_ledger (list or pd.DataFrame): Ledger rows as stored
        split_log (list or pd.DataFrame): SOURCE/CHILD/REVERTED rows

    Returns:
        MergeResult: ledger is the working ledger sorted by date descending;
            orphan_groups lists SOURCE groups that had no CHILD rows (their
            original row is kept). ledger is a DataFrame (with a fresh
            index) when raw_ledger is one, otherwise a list of dicts.

    Notes:
        - A row is replaced when its group has a SOURCE entry (in the split
          log or on a raw row) and the row is not itself a CHILD; the group's
          children are emitted once even if several raw rows reference the
          group
        - Groups with a REVERTED entry are treated as not split
        - Output rows are copies; inputs are not modified
    """
    raw = as_records(raw_ledger)
    log = as_records(split_log)

    if not log:
        return MergeResult(_as_input_type(raw_ledger, sort_by_date(raw)), [])

    sources, children, reverted = _index_split_log(log)
    # Rows stored with an explicit role take part like split log entries
    raw_sources, _, raw_reverted = _index_split_log(raw)
    sources |= raw_sources
    reverted |= raw_reverted
    active_sources = sources - reverted
    if reverted & sources:
        logger.info(f"Ignoring {len(reverted & sources)} reverted split groups")

    merged = []
    processed = set()
    orphan_groups = []

    for row in raw:
        gid = group_id(row)
        if gid in active_sources and row.get(SPLIT_TYPE) != SplitRole.CHILD:
            if gid in processed:
                continue
            processed.add(gid)
            if gid in children:
                merged.extend(dict(child) for child in children[gid])
            else:
                logger.warning(f"SOURCE group {gid} has no CHILD entries. Keeping original transaction.")
                orphan_groups.append(gid)
                merged.append(row)
        else:
            merged.append(row)

    logger.debug(f"Merged {len(processed)} split groups into {len(merged)} working rows")
    return MergeResult(_as_input_type(raw_ledger, sort_by_date(merged)), orphan_groups)


def merge_splits(raw_ledger, split_log):
    """Return the working ledger for a raw ledger and split log.

    See consolidate for the rules; this drops the diagnostics.
    """
    return consolidate(raw_ledger, split_log).ledger


def split_amount(record):
    """
    Amount a row contributes to a split.

    Returns:
        Decimal: Income when non-zero, otherwise Expense; falls back to an
            Amount field (the split editor payload) when neither is set
    """
    income = parse_decimal(record.get(INCOME))
    if income:
        return income
    expense = parse_decimal(record.get(EXPENSE))
    if expense:
        return expense
    return parse_decimal(record.get('Amount'))


def validate_split(source, children, tolerance=SPLIT_TOLERANCE):
    """
    Check that child amounts partition the source amount.

    Args:
        source (dict): The transaction being split
        children (list): Proposed child rows
        tolerance (Decimal or float): Allowed absolute difference

    Returns:
        bool: True when there is at least one child and the children sum to
            the source amount within tolerance
    """
    children = list(children)
    if not children:
        return False
    total = sum((split_amount(child) for child in children), Decimal('0'))
    remaining = split_amount(source) - total
    return abs(remaining) < Decimal(str(tolerance))


def summarize_split_history(split_log):
    """
    Group the split log for display.

    Returns:
        list: One dict per group in first-seen order with keys group_id,
            source (the SOURCE row, or the first row when absent), children
            and reverted
    """
    groups = OrderedDict()
    for item in as_records(split_log):
        gid = group_id(item)
        if gid is None:
            continue
        groups.setdefault(gid, []).append(item)

    history = []
    for gid, rows in groups.items():
        source = next((r for r in rows if r.get(SPLIT_TYPE) == SplitRole.SOURCE), rows[0])
        history.append({
            'group_id': gid,
            'source': source,
            'children': [r for r in rows if r.get(SPLIT_TYPE) == SplitRole.CHILD],
            'reverted': any(r.get(SPLIT_TYPE) == SplitRole.REVERTED for r in rows),
        })
    return history
