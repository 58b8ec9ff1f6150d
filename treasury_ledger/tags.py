"""
Pending tag edits and tag statistics.

The tag editor queues operations (add, delete, rename, trip type and trip
status updates) before sending them to the ledger backend. Until they are
saved, views show "virtual" tag maps computed by replaying the queue over a
snapshot of the stored maps. Nothing here mutates its inputs.

Tag Types:
- Trip/Event: trips and events, each optionally mapped to a type and a status
- Category: spending categories
- Type: trip types (values of the trip -> type map)
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum

from treasury_ledger.normalize import is_blank, parse_amount
from treasury_ledger.records import CATEGORY, EXPENSE, INCOME, TRIP, as_records

logger = logging.getLogger(__name__)

TRIP_TAG = TRIP
CATEGORY_TAG = CATEGORY
TYPE_TAG = 'Type'


class TripStatus(str, Enum):
    ACTIVE = 'Active'
    COMPLETED = 'Completed'
    INVESTMENT = 'Investment'


@dataclass(frozen=True)
class AddTag:
    tag_type: str
    value: str


@dataclass(frozen=True)
class DeleteTag:
    tag_type: str
    value: str


@dataclass(frozen=True)
class RenameTag:
    tag_type: str
    old_value: str
    new_value: str


@dataclass(frozen=True)
class UpdateTripType:
    trip: str
    new_type: str


@dataclass(frozen=True)
class UpdateTripStatus:
    trip: str
    new_status: str


TAG_OPERATIONS = (AddTag, DeleteTag, RenameTag, UpdateTripType, UpdateTripStatus)


def _unknown_operation(op):
    return TypeError(f"Unknown tag operation: {op!r}")


def parse_operation(raw):
    """
    Build an operation from the editor's dict form.

    Args:
        raw (dict): {'type': 'add'|'delete'|'rename'|'updateTripType'|
            'updateTripStatus', 'tagType', 'value', 'oldValue', 'newValue'}

    Returns:
        One of AddTag, DeleteTag, RenameTag, UpdateTripType, UpdateTripStatus

    Raises:
        ValueError: If the operation type is not recognized
    """
    kind = raw.get('type')
    if kind == 'add':
        return AddTag(raw['tagType'], raw['value'])
    if kind == 'delete':
        return DeleteTag(raw['tagType'], raw['value'])
    if kind == 'rename':
        return RenameTag(raw['tagType'], raw['oldValue'], raw['newValue'])
    if kind == 'updateTripType':
        return UpdateTripType(raw['oldValue'], raw['newValue'])
    if kind == 'updateTripStatus':
        return UpdateTripStatus(raw['oldValue'], raw['newValue'])
    raise ValueError(f"Unknown tag operation type: {kind}")


def apply_to_trip_type_map(trip_type_map, queue):
    """Return the trip -> type map with pending operations applied."""
    virtual = dict(trip_type_map or {})

    for op in queue or ():
        if isinstance(op, UpdateTripType):
            if op.new_type == '':
                virtual.pop(op.trip, None)
            else:
                virtual[op.trip] = op.new_type
        elif isinstance(op, RenameTag):
            if op.tag_type == TRIP_TAG and virtual.get(op.old_value):
                virtual[op.new_value] = virtual.pop(op.old_value)
            elif op.tag_type == TYPE_TAG:
                virtual = {trip: (op.new_value if t == op.old_value else t) for trip, t in virtual.items()}
        elif isinstance(op, DeleteTag):
            if op.tag_type == TRIP_TAG:
                virtual.pop(op.value, None)
            elif op.tag_type == TYPE_TAG:
                virtual = {trip: t for trip, t in virtual.items() if t != op.value}
        elif isinstance(op, (AddTag, UpdateTripStatus)):
            continue
        else:
            raise _unknown_operation(op)

    return virtual


def apply_to_trip_status_map(trip_status_map, queue):
    """Return the trip -> status map with pending operations applied.

    New trips start Active; renamed trips keep their status (Active when they
    had none).
    """
    virtual = dict(trip_status_map or {})

    for op in queue or ():
        if isinstance(op, UpdateTripStatus):
            virtual[op.trip] = op.new_status
        elif isinstance(op, RenameTag):
            if op.tag_type == TRIP_TAG:
                status = virtual.pop(op.old_value, None) or TripStatus.ACTIVE.value
                virtual[op.new_value] = status
        elif isinstance(op, DeleteTag):
            if op.tag_type == TRIP_TAG:
                virtual.pop(op.value, None)
        elif isinstance(op, AddTag):
            if op.tag_type == TRIP_TAG:
                virtual[op.value] = TripStatus.ACTIVE.value
        elif isinstance(op, UpdateTripType):
            continue
        else:
            raise _unknown_operation(op)

    return virtual


def apply_pending_ops(trip_type_map, trip_status_map, queue):
    """
    Replay queued edits over snapshots of the stored tag maps.

    Args:
        trip_type_map (dict): Trip name -> type name
        trip_status_map (dict): Trip name -> status
        queue (list): Pending operations, oldest first

    Returns:
        tuple: (virtual trip type map, virtual trip status map); new dicts
    """
    return (
        apply_to_trip_type_map(trip_type_map, queue),
        apply_to_trip_status_map(trip_status_map, queue),
    )


def apply_pending_list(values, queue, tag_type):
    """Return the list of tag values of one tag type with pending edits applied."""
    virtual = list(values or [])

    for op in queue or ():
        if not isinstance(op, TAG_OPERATIONS):
            raise _unknown_operation(op)
        if not isinstance(op, (AddTag, DeleteTag, RenameTag)) or op.tag_type != tag_type:
            continue
        if isinstance(op, AddTag):
            if op.value not in virtual:
                virtual.append(op.value)
        elif isinstance(op, DeleteTag):
            virtual = [v for v in virtual if v != op.value]
        else:
            virtual = [op.new_value if v == op.old_value else v for v in virtual]

    return virtual


def _find(ops, predicate):
    for index, op in enumerate(ops):
        if predicate(op):
            return index
    return -1


def optimize_queue(queue):
    """
    Collapse redundant or cancelling operations.

    Examples:
        Add A, Delete A          -> (nothing)
        Add A, Rename A->B       -> Add B
        Rename A->B, Rename B->C -> Rename A->C
        Rename A->B, Rename B->A -> (nothing)
        Rename A->B, Delete B    -> Delete A
        Two updates of one trip  -> the later update

    Returns:
        list: New list of operations
    """
    optimized = []

    for op in queue or ():
        merged = False

        if isinstance(op, DeleteTag):
            index = _find(optimized, lambda o: isinstance(o, AddTag)
                          and o.value == op.value and o.tag_type == op.tag_type)
            if index != -1:
                del optimized[index]
                merged = True
            else:
                index = _find(optimized, lambda o: isinstance(o, RenameTag)
                              and o.new_value == op.value and o.tag_type == op.tag_type)
                if index != -1:
                    optimized[index] = DeleteTag(op.tag_type, optimized[index].old_value)
                    merged = True

        elif isinstance(op, RenameTag):
            index = _find(optimized, lambda o: isinstance(o, AddTag)
                          and o.value == op.old_value and o.tag_type == op.tag_type)
            if index != -1:
                optimized[index] = replace(optimized[index], value=op.new_value)
                merged = True
            else:
                index = _find(optimized, lambda o: isinstance(o, RenameTag)
                              and o.new_value == op.old_value and o.tag_type == op.tag_type)
                if index != -1:
                    previous = optimized[index]
                    if previous.old_value == op.new_value:
                        del optimized[index]
                    else:
                        optimized[index] = replace(previous, new_value=op.new_value)
                    merged = True

        elif isinstance(op, UpdateTripType):
            index = _find(optimized, lambda o: isinstance(o, UpdateTripType) and o.trip == op.trip)
            if index != -1:
                optimized[index] = op
                merged = True

        elif isinstance(op, UpdateTripStatus):
            index = _find(optimized, lambda o: isinstance(o, UpdateTripStatus) and o.trip == op.trip)
            if index != -1:
                optimized[index] = op
                merged = True

        elif not isinstance(op, AddTag):
            raise _unknown_operation(op)

        if not merged:
            optimized.append(op)

    return optimized


def to_api_operations(queue):
    """
    Format the optimized queue for the ledger backend.

    Returns:
        list: [old value, new value, operation name, tag type] per operation
    """
    operations = []
    for op in optimize_queue(queue):
        if isinstance(op, AddTag):
            operations.append([None, op.value, 'add', op.tag_type])
        elif isinstance(op, DeleteTag):
            operations.append([op.value, None, 'delete', op.tag_type])
        elif isinstance(op, RenameTag):
            operations.append([op.old_value, op.new_value, 'rename', op.tag_type])
        elif isinstance(op, UpdateTripType):
            operations.append([op.trip, op.new_type, 'updateTripType', TRIP_TAG])
        elif isinstance(op, UpdateTripStatus):
            operations.append([op.trip, op.new_status, 'updateTripStatus', TRIP_TAG])
        else:
            raise _unknown_operation(op)
    return operations


def _empty_stats():
    return {'count': 0, 'income': 0.0, 'expense': 0.0}


def _add_stats(target, source):
    target['count'] += source['count']
    target['income'] += source['income']
    target['expense'] += source['expense']


def tag_stats(transactions, trip_type_map=None, trip_status_map=None, type_list=None, queue=()):
    """
    Count, income and expense per tag, with pending edits applied.

    Args:
        transactions (list or pd.DataFrame): Working-ledger rows (already
            filtered to the timeframe of interest)
        trip_type_map (dict): Trip name -> type snapshot
        trip_status_map (dict): Trip name -> status snapshot
        type_list (list): Known trip types; each appears in the result even
            with no transactions
        queue (list): Pending operations

    Returns:
        dict: stats ({'Trip/Event': {...}, 'Category': {...}, 'Type': {...}}),
            trip_type_map and trip_status_map (the virtual maps)
    """
    stats = {TRIP_TAG: {}, CATEGORY_TAG: {}, TYPE_TAG: {}}

    for item in as_records(transactions):
        row_stats = {
            'count': 1,
            'income': parse_amount(item.get(INCOME)),
            'expense': parse_amount(item.get(EXPENSE)),
        }
        for tag_type in (TRIP_TAG, CATEGORY_TAG):
            tag = item.get(tag_type)
            if is_blank(tag):
                continue
            _add_stats(stats[tag_type].setdefault(tag, _empty_stats()), row_stats)

    # Trip and category edits first so type totals follow renamed trips
    for op in queue or ():
        if isinstance(op, RenameTag) and op.tag_type in (TRIP_TAG, CATEGORY_TAG):
            old_stats = stats[op.tag_type].pop(op.old_value, _empty_stats())
            _add_stats(stats[op.tag_type].setdefault(op.new_value, _empty_stats()), old_stats)
        elif isinstance(op, DeleteTag) and op.tag_type in (TRIP_TAG, CATEGORY_TAG):
            stats[op.tag_type].pop(op.value, None)

    virtual_types, virtual_statuses = apply_pending_ops(trip_type_map, trip_status_map, queue)

    for trip, trip_stats in stats[TRIP_TAG].items():
        trip_type = virtual_types.get(trip)
        if trip_type:
            _add_stats(stats[TYPE_TAG].setdefault(trip_type, _empty_stats()), trip_stats)

    for trip_type in apply_pending_list(type_list, queue, TYPE_TAG):
        stats[TYPE_TAG].setdefault(trip_type, _empty_stats())

    return {
        'stats': stats,
        'trip_type_map': virtual_types,
        'trip_status_map': virtual_statuses,
    }
