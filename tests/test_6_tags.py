import pytest
from treasury_ledger.tags import (
    AddTag,
    DeleteTag,
    RenameTag,
    UpdateTripType,
    UpdateTripStatus,
    TripStatus,
    apply_pending_ops,
    apply_pending_list,
    optimize_queue,
    parse_operation,
    tag_stats,
    to_api_operations,
)

@pytest.fixture
def trip_types():
    return {'Camp': 'Outdoor', 'Ski': 'Outdoor', 'Gala': 'Social'}

@pytest.fixture
def trip_statuses():
    return {'Camp': 'Active', 'Ski': 'Completed', 'Gala': 'Investment'}

class TestApplyPendingOps:
    """Test suite for replaying queued edits over the stored maps"""

    def test_empty_queue_returns_copies(self, trip_types, trip_statuses):
        types, statuses = apply_pending_ops(trip_types, trip_statuses, [])
        assert types == trip_types and types is not trip_types
        assert statuses == trip_statuses and statuses is not trip_statuses

    def test_inputs_not_modified(self, trip_types, trip_statuses):
        before = (dict(trip_types), dict(trip_statuses))
        apply_pending_ops(trip_types, trip_statuses, [DeleteTag('Trip/Event', 'Camp')])
        assert (trip_types, trip_statuses) == before

    def test_update_trip_type(self, trip_types, trip_statuses):
        types, _ = apply_pending_ops(trip_types, trip_statuses, [
            UpdateTripType('Camp', 'Training'),
            UpdateTripType('Gala', ''),
        ])
        assert types['Camp'] == 'Training'
        assert 'Gala' not in types

    def test_rename_trip_moves_type_and_status(self, trip_types, trip_statuses):
        types, statuses = apply_pending_ops(trip_types, trip_statuses, [RenameTag('Trip/Event', 'Camp', 'Summer Camp')])
        assert types['Summer Camp'] == 'Outdoor' and 'Camp' not in types
        assert statuses['Summer Camp'] == 'Active' and 'Camp' not in statuses

    def test_rename_and_delete_type(self, trip_types, trip_statuses):
        types, _ = apply_pending_ops(trip_types, trip_statuses, [RenameTag('Type', 'Outdoor', 'Adventure')])
        assert types == {'Camp': 'Adventure', 'Ski': 'Adventure', 'Gala': 'Social'}
        types, _ = apply_pending_ops(trip_types, trip_statuses, [DeleteTag('Type', 'Outdoor')])
        assert types == {'Gala': 'Social'}

    def test_new_trip_starts_active(self, trip_types, trip_statuses):
        _, statuses = apply_pending_ops(trip_types, trip_statuses, [AddTag('Trip/Event', 'Retreat')])
        assert statuses['Retreat'] == TripStatus.ACTIVE

    def test_update_status(self, trip_types, trip_statuses):
        _, statuses = apply_pending_ops(trip_types, trip_statuses, [UpdateTripStatus('Camp', 'Completed')])
        assert statuses['Camp'] == 'Completed'

    def test_unknown_operation(self, trip_types, trip_statuses):
        with pytest.raises(TypeError):
            apply_pending_ops(trip_types, trip_statuses, [('rename', 'Camp')])

    def test_pending_list(self):
        queue = [AddTag('Category', 'Travel'), RenameTag('Category', 'Food', 'Meals'), DeleteTag('Category', 'Misc'),
                 AddTag('Trip/Event', 'Retreat')]
        assert apply_pending_list(['Food', 'Misc'], queue, 'Category') == ['Meals', 'Travel']

class TestOptimizeQueue:
    """Test suite for collapsing redundant operations"""

    def test_add_then_delete_cancels(self):
        assert optimize_queue([AddTag('Category', 'A'), DeleteTag('Category', 'A')]) == []

    def test_add_then_rename(self):
        assert optimize_queue([AddTag('Category', 'A'), RenameTag('Category', 'A', 'B')]) == [AddTag('Category', 'B')]

    def test_rename_chain(self):
        queue = [RenameTag('Category', 'A', 'B'), RenameTag('Category', 'B', 'C')]
        assert optimize_queue(queue) == [RenameTag('Category', 'A', 'C')]

    def test_circular_rename_cancels(self):
        queue = [RenameTag('Category', 'A', 'B'), RenameTag('Category', 'B', 'A')]
        assert optimize_queue(queue) == []

    def test_rename_then_delete(self):
        queue = [RenameTag('Category', 'A', 'B'), DeleteTag('Category', 'B')]
        assert optimize_queue(queue) == [DeleteTag('Category', 'A')]

    def test_tag_types_are_independent(self):
        queue = [AddTag('Category', 'A'), DeleteTag('Trip/Event', 'A')]
        assert optimize_queue(queue) == queue

    def test_last_update_wins(self):
        queue = [UpdateTripStatus('Camp', 'Completed'), UpdateTripType('Camp', 'X'), UpdateTripStatus('Camp', 'Investment')]
        assert optimize_queue(queue) == [UpdateTripStatus('Camp', 'Investment'), UpdateTripType('Camp', 'X')]

    def test_api_operations(self):
        queue = [
            AddTag('Category', 'Travel'),
            DeleteTag('Category', 'Misc'),
            RenameTag('Trip/Event', 'Camp', 'Summer Camp'),
            UpdateTripType('Summer Camp', 'Outdoor'),
            UpdateTripStatus('Summer Camp', 'Completed'),
        ]
        assert to_api_operations(queue) == [
            [None, 'Travel', 'add', 'Category'],
            ['Misc', None, 'delete', 'Category'],
            ['Camp', 'Summer Camp', 'rename', 'Trip/Event'],
            ['Summer Camp', 'Outdoor', 'updateTripType', 'Trip/Event'],
            ['Summer Camp', 'Completed', 'updateTripStatus', 'Trip/Event'],
        ]

class TestParseOperation:
    """Test suite for building operations from the editor's dict form"""

    def test_known_types(self):
        assert parse_operation({'type': 'add', 'tagType': 'Category', 'value': 'A'}) == AddTag('Category', 'A')
        assert parse_operation({'type': 'rename', 'tagType': 'Type', 'oldValue': 'A', 'newValue': 'B'}) == \
            RenameTag('Type', 'A', 'B')
        assert parse_operation({'type': 'updateTripStatus', 'oldValue': 'Camp', 'newValue': 'Completed'}) == \
            UpdateTripStatus('Camp', 'Completed')

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            parse_operation({'type': 'merge'})

class TestTagStats:
    """Test suite for per-tag totals"""

    def test_stats_with_pending_rename(self, make_row, trip_types, trip_statuses):
        rows = [
            make_row('2024-01-01', expense='20', Category='Food', **{'Trip/Event': 'Camp'}),
            make_row('2024-01-02', income='100', **{'Trip/Event': 'Ski'}),
            make_row('2024-01-03', expense='5'),
        ]
        result = tag_stats(rows, trip_types, trip_statuses, type_list=['Outdoor', 'Social'],
                           queue=[RenameTag('Trip/Event', 'Camp', 'Summer Camp')])
        stats = result['stats']
        assert stats['Trip/Event']['Summer Camp'] == {'count': 1, 'income': 0.0, 'expense': 20.0}
        assert 'Camp' not in stats['Trip/Event']
        assert stats['Category'] == {'Food': {'count': 1, 'income': 0.0, 'expense': 20.0}}
        assert stats['Type']['Outdoor'] == {'count': 2, 'income': 100.0, 'expense': 20.0}
        assert stats['Type']['Social'] == {'count': 0, 'income': 0.0, 'expense': 0.0}
        assert result['trip_type_map']['Summer Camp'] == 'Outdoor'
        assert result['trip_status_map']['Summer Camp'] == 'Active'
