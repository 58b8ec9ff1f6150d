"""
Synchronous key/value store with change notification.

Store holds values by key and calls subscribers synchronously, in
subscription order, whenever a key changes. Values are deep-copied on the way
in and on the way out, so callers never share mutable state with the store.

LedgerStore adds a fixed set of derived keys:

    working_ledger       <- raw_ledger, split_log        (merge_splits)
    orphan_split_groups  <- raw_ledger, split_log        (consolidate diagnostics)
    financials           <- working_ledger, opening_balance (compute_financials)

Derived keys are recomputed before the subscribers of the changed key run,
so every callback observes a consistent state.
"""

import copy
import logging

import pandas as pd

from treasury_ledger.financials import compute_financials
from treasury_ledger.splits import consolidate
from treasury_ledger.utils import load_config

logger = logging.getLogger(__name__)

RESERVED_KEYS = frozenset({'constructor', 'prototype'})

_MISSING = object()


def values_equal(a, b):
    """Structural equality for store values (dicts, lists, DataFrames, scalars)."""
    if a is b:
        return True
    if isinstance(a, (pd.DataFrame, pd.Series)) or isinstance(b, (pd.DataFrame, pd.Series)):
        return type(a) is type(b) and a.equals(b)
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(values_equal(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return (type(a) is type(b) and len(a) == len(b)
                and all(values_equal(x, y) for x, y in zip(a, b)))
    if isinstance(a, float) and isinstance(b, float) and a != a and b != b:
        return True
    try:
        return bool(a == b)
    except (TypeError, ValueError):
        return False


def check_key(key):
    """
    Validate a state key.

    Raises:
        TypeError: If key is not a string
        ValueError: If key is empty or reserved (dunder names, 'constructor',
            'prototype')
    """
    if not isinstance(key, str):
        raise TypeError(f"State key must be a string, got {type(key)}")
    if not key.strip():
        raise ValueError("State key cannot be empty")
    if key in RESERVED_KEYS or (key.startswith('__') and key.endswith('__')):
        raise ValueError(f"Reserved state key: {key}")


class Subscription:
    """Handle returned by Store.subscribe."""

    def __init__(self, store, key, callback):
        self._store = store
        self.key = key
        self.callback = callback

    def unsubscribe(self):
        """Stop receiving notifications. Calling it twice is harmless."""
        self._store._remove_subscriber(self.key, self.callback)


class Store:
    """Publish/subscribe state container with copy-in/copy-out isolation."""

    def __init__(self, initial=None):
        self._state = {}
        self._subscribers = {}
        self._propagating = []
        for key, value in (initial or {}).items():
            check_key(key)
            self._state[key] = copy.deepcopy(value)

    def subscribe(self, key, callback):
        """
        Register callback(value) for changes to key.

        Returns:
            Subscription: Call .unsubscribe() to stop notifications

        Raises:
            TypeError: If callback is not callable
        """
        check_key(key)
        if not callable(callback):
            raise TypeError(f"Subscriber for '{key}' must be callable, got {type(callback)}")
        self._subscribers.setdefault(key, []).append(callback)
        return Subscription(self, key, callback)

    def _remove_subscriber(self, key, callback):
        callbacks = self._subscribers.get(key, [])
        for index, registered in enumerate(callbacks):
            if registered is callback:
                del callbacks[index]
                return

    def get_state(self, key, default=None):
        """Return a deep copy of the value stored under key."""
        check_key(key)
        return copy.deepcopy(self._state.get(key, default))

    def set_state(self, key, value):
        """
        Store a value and notify subscribers when it changed.

        Returns:
            bool: False when value equals the current one (nothing happens)

        Raises:
            RuntimeError: If a subscriber changes a key whose change is still
                being propagated
        """
        check_key(key)
        return self._write(key, value)

    def _write(self, key, value):
        current = self._state.get(key, _MISSING)
        if current is not _MISSING and values_equal(current, value):
            return False
        if key in self._propagating:
            raise RuntimeError(
                f"Cyclic update of '{key}' while propagating: {' -> '.join(self._propagating)}"
            )

        self._state[key] = copy.deepcopy(value)

        self._propagating.append(key)
        try:
            self._after_write(key)
            for callback in list(self._subscribers.get(key, [])):
                callback(copy.deepcopy(self._state[key]))
        finally:
            self._propagating.pop()
        return True

    def _after_write(self, key):
        """Hook for subclasses to update derived keys before notification."""


# Keys
RAW_LEDGER = 'raw_ledger'
SPLIT_LOG = 'split_log'
OPENING_BALANCE = 'opening_balance'
WORKING_LEDGER = 'working_ledger'
ORPHAN_SPLIT_GROUPS = 'orphan_split_groups'
FINANCIALS = 'financials'

DERIVED_KEYS = {
    WORKING_LEDGER: (RAW_LEDGER, SPLIT_LOG),
    ORPHAN_SPLIT_GROUPS: (RAW_LEDGER, SPLIT_LOG),
    FINANCIALS: (WORKING_LEDGER, OPENING_BALANCE),
}


class LedgerStore(Store):
    """
    Store wired to keep the working ledger and balances up to date.

    Args:
        raw_ledger (list or pd.DataFrame, optional): Ledger rows as stored
        split_log (list or pd.DataFrame, optional): Split history rows
        opening_balance (optional): Defaults to the OPENING_BALANCE
            environment setting
    """

    def __init__(self, raw_ledger=None, split_log=None, opening_balance=None):
        if opening_balance is None:
            opening_balance = load_config()['opening_balance']
        super().__init__({
            RAW_LEDGER: raw_ledger if raw_ledger is not None else [],
            SPLIT_LOG: split_log if split_log is not None else [],
            OPENING_BALANCE: opening_balance,
        })
        # Writing working_ledger also fills financials
        self._recompute_working_ledger()

    def set_state(self, key, value):
        check_key(key)
        if key in DERIVED_KEYS:
            raise ValueError(f"'{key}' is derived from {list(DERIVED_KEYS[key])} and cannot be set directly")
        return self._write(key, value)

    def _after_write(self, key):
        if key in (RAW_LEDGER, SPLIT_LOG):
            self._recompute_working_ledger()
        elif key in (WORKING_LEDGER, OPENING_BALANCE):
            self._recompute_financials()

    def _recompute_working_ledger(self):
        result = consolidate(self._state.get(RAW_LEDGER), self._state.get(SPLIT_LOG))
        if result.orphan_groups:
            logger.warning(f"Split groups without children: {result.orphan_groups}")
        self._write(ORPHAN_SPLIT_GROUPS, result.orphan_groups)
        self._write(WORKING_LEDGER, result.ledger)

    def _recompute_financials(self):
        financials = compute_financials(
            self._state.get(OPENING_BALANCE),
            self._state.get(WORKING_LEDGER),
        )
        self._write(FINANCIALS, financials)
