"""
Aggregation of working-ledger rows for charts and tables.

Transactions are grouped along a primary dimension and optionally a secondary
one, and a metric is summed per group. The result is a chart-neutral
structure:

    {'labels': [primary keys...], 'series': [{'label': ..., 'data': [...]}]}

Dimensions:
- date: bucketed by day (YYYY-MM-DD), week (Monday, YYYY-MM-DD), month
  (YYYY-MM) or year (YYYY)
- category: the Category tag
- trip: the Trip/Event tag
Missing tags are grouped under "Uncategorized".

Metrics:
- income, expense, net (income - expense per row)
- balance: running balance per date bucket, seeded from the adjusted opening
  balance plus everything dated before the window start
"""

import logging

import pandas as pd

from treasury_ledger.financials import compute_financials
from treasury_ledger.normalize import (
    is_blank,
    parse_amount,
    parse_date,
    standardize_tag,
)
from treasury_ledger.records import (
    CATEGORY,
    DATE,
    EXPENSE,
    INCOME,
    TRIP,
    as_records,
)

logger = logging.getLogger(__name__)

DIMENSIONS = ('date', 'category', 'trip')
METRICS = ('income', 'expense', 'net', 'balance')
TIME_UNITS = ('day', 'week', 'month', 'year')
TIMEFRAMES = ('current_month', 'past_30_days', 'past_3_months', 'past_6_months', 'past_year', 'all_time')

NO_TAG = '__NO_TAG__'
ALL_STATUSES = 'All'
EARLIEST_DATE = pd.Timestamp(2000, 1, 1)

_BUCKET_FORMATS = {
    'day': '%Y-%m-%d',
    'week': '%Y-%m-%d',
    'month': '%Y-%m',
    'year': '%Y',
}

PRESETS = {
    'trip_cost_completed': {
        'timeframe': 'all_time',
        'metric': 'net',
        'primary': 'trip',
        'secondary': None,
        'trip_status': 'Completed',
    },
    'category_breakdown': {
        'timeframe': 'past_year',
        'metric': 'expense',
        'primary': 'category',
        'secondary': 'trip',
        'trip_status': ALL_STATUSES,
    },
    'monthly_trend': {
        'timeframe': 'past_year',
        'metric': 'net',
        'primary': 'date',
        'secondary': None,
        'time_unit': 'month',
        'trip_status': ALL_STATUSES,
    },
    'active_trip_status': {
        'timeframe': 'all_time',
        'metric': 'net',
        'primary': 'trip',
        'secondary': None,
        'trip_status': 'Active',
    },
}


def to_frame(transactions) -> pd.DataFrame:
    """
    Build the numeric working frame used for aggregation.

    Returns:
        pd.DataFrame: Columns date (datetime64, NaT when unparseable),
            category, trip, income, expense and net. Bad amounts are 0.
    """
    records = as_records(transactions)
    frame = pd.DataFrame({
        'date': pd.to_datetime(pd.Series([parse_date(r.get(DATE)) for r in records], dtype=object)),
        'category': [standardize_tag(r.get(CATEGORY)) for r in records],
        'trip': [standardize_tag(r.get(TRIP)) for r in records],
        'income': pd.Series([parse_amount(r.get(INCOME)) for r in records], dtype=float),
        'expense': pd.Series([parse_amount(r.get(EXPENSE)) for r in records], dtype=float),
    })
    frame['net'] = frame['income'] - frame['expense']
    return frame


def bucket_dates(dates, time_unit='month'):
    """
    Map a Series of timestamps to bucket labels.

    Args:
        dates (pd.Series): datetime64 values
        time_unit (str): 'day', 'week', 'month' or 'year'

    Returns:
        pd.Series: String labels; weeks are labelled by their Monday
    """
    if time_unit not in TIME_UNITS:
        raise ValueError(f"Invalid time unit: {time_unit}. Expected one of: {list(TIME_UNITS)}")
    if time_unit == 'week':
        dates = dates - pd.to_timedelta(dates.dt.weekday, unit='D')
    return dates.dt.strftime(_BUCKET_FORMATS[time_unit])


def date_bucket(value, time_unit='month'):
    """Bucket label for a single date value, or None when it has no usable date."""
    parsed = parse_date(value)
    if parsed is None:
        return None
    return bucket_dates(pd.Series([parsed]), time_unit).iloc[0]


def _dimension_keys(frame, dimension, time_unit):
    if dimension == 'date':
        return bucket_dates(frame['date'], time_unit)
    return frame[dimension]


def _validate(primary, secondary, metric, time_unit):
    if primary not in DIMENSIONS:
        raise ValueError(f"Invalid primary dimension: {primary}. Expected one of: {list(DIMENSIONS)}")
    if secondary is not None and secondary not in DIMENSIONS:
        raise ValueError(f"Invalid secondary dimension: {secondary}. Expected one of: {list(DIMENSIONS)}")
    if metric not in METRICS:
        raise ValueError(f"Invalid metric: {metric}. Expected one of: {list(METRICS)}")
    if time_unit not in TIME_UNITS:
        raise ValueError(f"Invalid time unit: {time_unit}. Expected one of: {list(TIME_UNITS)}")
    if metric == 'balance' and (primary != 'date' or secondary is not None):
        raise ValueError("The balance metric requires primary='date' and no secondary dimension")


def _balance_before(history, window_start):
    """Net of every history row dated strictly before window_start."""
    if window_start is None:
        return 0.0
    start = parse_date(window_start)
    if start is None:
        logger.warning(f"Unparseable window start, skipping history pre-sum: {window_start!r}")
        return 0.0
    frame = to_frame(history)
    return float(frame.loc[frame['date'] < start, 'net'].sum())


def aggregate(transactions, primary, secondary=None, metric='net', time_unit='month',
              window_start=None, all_transactions=None, opening_balance=0):
    """
    Group transactions and sum a metric per group.

    Args:
        transactions (list or pd.DataFrame): Rows to chart (usually filtered)
        primary (str): 'date', 'category' or 'trip'
        secondary (str, optional): Second dimension for stacked series;
            None or 'none' for a single series
        metric (str): 'income', 'expense', 'net' or 'balance'
        time_unit (str): Bucket size for the date dimension
        window_start (str or date, optional): First day of the charted window
            (balance metric only). Rows dated before it are left out of the
            buckets and counted in the starting balance instead.
        all_transactions (list or pd.DataFrame, optional): Full working ledger
            used to seed the balance; defaults to transactions
        opening_balance: Configured opening balance (balance metric only)

    Returns:
        dict: labels (sorted primary keys) and series (one per secondary key,
            sorted, with 0 where a bucket has no rows)

    Raises:
        ValueError: For unknown dimensions, metrics or time units, and for the
            balance metric combined with a non-date primary or a secondary
    """
    if secondary == 'none':
        secondary = None
    _validate(primary, secondary, metric, time_unit)

    frame = to_frame(transactions)
    if 'date' in (primary, secondary):
        dropped = int(frame['date'].isna().sum())
        if dropped:
            logger.debug(f"Skipping {dropped} rows without a usable date")
        frame = frame[frame['date'].notna()]

    value_column = 'net' if metric == 'balance' else metric
    if metric == 'balance' and window_start is not None:
        start = parse_date(window_start)
        if start is not None:
            # Earlier rows are already in the seed
            frame = frame[frame['date'] >= start]
    frame = frame.assign(primary=_dimension_keys(frame, primary, time_unit))

    if secondary is None:
        totals = frame.groupby('primary', sort=True)[value_column].sum()
        labels = [str(label) for label in totals.index]
        values = [float(value) for value in totals]

        if metric == 'balance':
            history = transactions if all_transactions is None else all_transactions
            running = float(compute_financials(opening_balance, history)['adjusted_opening_balance'])
            running += _balance_before(history, window_start)
            balances = []
            for value in values:
                running += value
                balances.append(running)
            return {'labels': labels, 'series': [{'label': 'Balance', 'data': balances}]}

        return {'labels': labels, 'series': [{'label': metric.upper(), 'data': values}]}

    if frame.empty:
        return {'labels': [], 'series': []}

    frame = frame.assign(secondary=_dimension_keys(frame, secondary, time_unit))
    pivot = frame.pivot_table(
        index='primary',
        columns='secondary',
        values=value_column,
        aggfunc='sum',
        fill_value=0,
    ).sort_index().sort_index(axis=1)

    labels = [str(label) for label in pivot.index]
    series = [
        {'label': str(key), 'data': [float(value) for value in pivot[key]]}
        for key in pivot.columns
    ]
    return {'labels': labels, 'series': series}


def is_in_trip_status(item, trip_status_map, trip_status):
    """
    Check a row against a trip status filter.

    Returns:
        bool: True for the 'All' (or empty) filter; otherwise the row's trip
            must be in the map with exactly that status
    """
    if not trip_status or trip_status == ALL_STATUSES:
        return True
    trip = item.get(TRIP)
    if is_blank(trip):
        return False
    actual = (trip_status_map or {}).get(trip)
    return bool(actual) and actual == trip_status


def _tag_selected(value, selected):
    if is_blank(value):
        return '' in selected or NO_TAG in selected
    return value in selected


def filter_transactions(transactions, start_date=None, end_date=None, categories=None,
                        trips=None, trip_status=None, trip_status_map=None):
    """
    Filter rows by date window, tags and trip status.

    Args:
        transactions (list or pd.DataFrame): Working-ledger rows
        start_date, end_date (str or date, optional): Inclusive window; rows
            without a usable date are excluded when either bound is given
        categories, trips (set, optional): Allowed tag values; empty or None
            means no filter. '' or '__NO_TAG__' selects untagged rows.
        trip_status (str, optional): 'All', 'Active', 'Completed' or
            'Investment'
        trip_status_map (dict, optional): Trip name -> status snapshot

    Returns:
        list or pd.DataFrame: Matching rows (same type as transactions)
    """
    records = as_records(transactions)
    start = parse_date(start_date) if start_date is not None else None
    end = parse_date(end_date) if end_date is not None else None
    check_dates = start_date is not None or end_date is not None

    mask = []
    for item in records:
        keep = True
        if check_dates:
            item_date = parse_date(item.get(DATE))
            if item_date is None:
                keep = False
            elif (start is not None and item_date < start) or (end is not None and item_date > end):
                keep = False
        if keep and categories and not _tag_selected(item.get(CATEGORY), categories):
            keep = False
        if keep and trips and not _tag_selected(item.get(TRIP), trips):
            keep = False
        if keep and not is_in_trip_status(item, trip_status_map, trip_status):
            keep = False
        mask.append(keep)

    if isinstance(transactions, pd.DataFrame):
        return transactions[pd.Series(mask, index=transactions.index, dtype=bool)].copy()
    return [item for item, keep in zip(records, mask) if keep]


def visible_trips(all_trips, trip_status_map, trip_status):
    """Trips shown under a trip status filter ('All' shows every trip)."""
    if trip_status == ALL_STATUSES:
        return list(all_trips)
    return [trip for trip in all_trips if (trip_status_map or {}).get(trip) == trip_status]


def date_range(timeframe, transactions=None, today=None):
    """
    Resolve a named timeframe to an inclusive (start, end) pair of days.

    Args:
        timeframe (str): One of TIMEFRAMES or 'custom'
        transactions (list or pd.DataFrame, optional): Used by 'all_time' to
            find the earliest date
        today (str or date, optional): Reference day. Defaults to today.

    Returns:
        tuple or None: (start, end) as pd.Timestamp; None for 'custom'.
            Unknown timeframes fall back to the past 30 days.
    """
    if timeframe == 'custom':
        return None

    today = parse_date(today) if today is not None else pd.Timestamp.today().normalize()

    if timeframe == 'current_month':
        start = today.replace(day=1)
        return start, start + pd.offsets.MonthEnd(0)
    if timeframe in ('past_3_months', 'past_6_months'):
        months = 3 if timeframe == 'past_3_months' else 6
        return today.replace(day=1) - pd.DateOffset(months=months), today
    if timeframe == 'past_year':
        return today - pd.DateOffset(years=1), today
    if timeframe == 'all_time':
        dates = to_frame(transactions)['date'].dropna()
        start = dates.min() if not dates.empty else EARLIEST_DATE
        return start, today

    if timeframe != 'past_30_days':
        logger.debug(f"Unknown timeframe {timeframe!r}, using past_30_days")
    return today - pd.Timedelta(days=30), today


def filter_by_timeframe(transactions, timeframe, today=None):
    """Rows inside a named timeframe; 'all_time' returns every row."""
    if timeframe == 'all_time':
        return transactions if isinstance(transactions, pd.DataFrame) else as_records(transactions)
    window = date_range(timeframe, transactions, today=today)
    if window is None:
        return transactions if isinstance(transactions, pd.DataFrame) else as_records(transactions)
    start, end = window
    return filter_transactions(transactions, start_date=start, end_date=end)


def preset_options(name):
    """Aggregation and filter settings for a named analysis preset."""
    if name not in PRESETS:
        raise ValueError(f"Unknown preset: {name}. Expected one of: {sorted(PRESETS)}")
    return dict(PRESETS[name])


def to_csv(result, primary, secondary=None, metric='net', time_unit='month'):
    """
    Export an aggregate result as CSV text.

    Args:
        result (dict): Output of aggregate
        primary, secondary, metric, time_unit: The options used for aggregate

    Returns:
        str: CSV with one row per label; with a secondary dimension there is
            one column per series plus a Total column
    """
    if secondary == 'none':
        secondary = None

    if primary == 'date':
        header = f"Date ({time_unit})"
    else:
        header = primary.capitalize()

    table = pd.DataFrame({header: result['labels']})
    if secondary is not None:
        for series in result['series']:
            table[series['label']] = series['data']
        table['Total'] = table.drop(columns=[header]).sum(axis=1)
    else:
        data = result['series'][0]['data'] if result['series'] else []
        table[metric.capitalize()] = data

    return table.to_csv(index=False, lineterminator='\n')
