"""Unit tests for DynamoDB manager."""
from datetime import date, datetime, timezone
from unittest.mock import Mock

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from model.event import DateOnly, DateTime, event_id
from storage.dynamodb_manager import DynamoDBManager


@pytest.fixture
def dynamodb_table(monkeypatch):
    """Create a mock DynamoDB table for testing."""
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        table = dynamodb.create_table(
            TableName='test-dance-events',
            KeySchema=[
                {'AttributeName': 'event_id', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'event_id', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        yield table


@pytest.fixture
def dynamodb_manager(dynamodb_table):
    """Create DynamoDBManager instance with mock table."""
    return DynamoDBManager('test-dance-events')


def numbered(event_factory, count):
    return [
        event_factory(name=f'Bal {i}', links=(f'https://example.com/bal/{i}',))
        for i in range(count)
    ]


def test_get_all_events_empty_table(dynamodb_manager):
    """Test get_all_events returns empty dict for empty table."""
    assert dynamodb_manager.get_all_events() == {}


def test_write_and_read_roundtrip(dynamodb_manager, event_factory):
    """Test that stored events come back unchanged."""
    timed = event_factory(
        links=('https://example.com/contra',),
        time=DateTime(
            datetime(2024, 6, 18, 23, 0, tzinfo=timezone.utc),
            datetime(2024, 6, 19, 2, 0, tzinfo=timezone.utc),
        ),
        bands=('Supertrad',),
        callers=('Lisa Greenleaf',),
        organisation='CDSS',
        price='$10',
        cancelled=True,
    )
    whole_day = event_factory(time=DateOnly(date(2024, 7, 5), date(2024, 7, 7)), state='Utrecht')

    count = dynamodb_manager.batch_write_events(
        [(event_id(timed), timed), (event_id(whole_day), whole_day)]
    )

    assert count == 2
    events = dynamodb_manager.get_all_events()
    assert events == {event_id(timed): timed, event_id(whole_day): whole_day}


def test_items_carry_bookkeeping_fields(dynamodb_manager, dynamodb_table, event_factory):
    """Test that items are keyed by event_id and stamped with last_updated."""
    event = event_factory()
    dynamodb_manager.batch_write_events([(event_id(event), event)])

    item = dynamodb_table.get_item(Key={'event_id': event_id(event)})['Item']

    assert item['name'] == 'Balfolk Bal'
    assert item['styles'] == ['balfolk']
    assert 'last_updated' in item


def test_batch_write_events_large_batch(dynamodb_manager, event_factory):
    """Test batch_write_events with more than 25 events (batch limit)."""
    events = numbered(event_factory, 30)

    count = dynamodb_manager.batch_write_events([(event_id(e), e) for e in events])

    assert count == 30
    assert len(dynamodb_manager.get_all_events()) == 30


def test_batch_write_events_empty(dynamodb_manager):
    """Test batch_write_events with empty list."""
    assert dynamodb_manager.batch_write_events([]) == 0


def test_batch_delete_events(dynamodb_manager, event_factory):
    """Test batch_delete_events removes only the given events."""
    events = numbered(event_factory, 5)
    dynamodb_manager.batch_write_events([(event_id(e), e) for e in events])

    count = dynamodb_manager.batch_delete_events([event_id(e) for e in events[:3]])

    assert count == 3
    assert set(dynamodb_manager.get_all_events()) == {event_id(e) for e in events[3:]}


def test_batch_delete_events_empty(dynamodb_manager):
    """Test batch_delete_events with empty list."""
    assert dynamodb_manager.batch_delete_events([]) == 0


def test_undecodable_item_skipped(dynamodb_manager, dynamodb_table, event_factory):
    """Test that items which no longer decode are ignored."""
    event = event_factory()
    dynamodb_manager.batch_write_events([(event_id(event), event)])
    dynamodb_table.put_item(Item={'event_id': 'broken', 'name': 'No dates'})

    events = dynamodb_manager.get_all_events()

    assert list(events) == [event_id(event)]


def test_sync_events_into_empty_table(dynamodb_manager, event_factory):
    """Test that syncing into an empty table adds everything."""
    events = numbered(event_factory, 3)

    result = dynamodb_manager.sync_events(events)

    assert (result.added, result.updated, result.deleted) == (3, 0, 0)
    assert result.errors == []


def test_sync_events_add_update_delete(dynamodb_manager, event_factory):
    """Test a sync that adds, updates and deletes events."""
    kept, changed, removed = numbered(event_factory, 3)
    dynamodb_manager.sync_events([kept, changed, removed])

    changed_again = event_factory(name='Bal 1', links=changed.links, price='€8')
    added = event_factory(name='New bal', links=('https://example.com/new',))

    result = dynamodb_manager.sync_events([kept, changed_again, added])

    assert (result.added, result.updated, result.deleted) == (1, 1, 1)
    stored = dynamodb_manager.get_all_events()
    assert set(stored) == {event_id(kept), event_id(changed), event_id(added)}
    assert stored[event_id(changed)].price == '€8'


def test_sync_events_uses_given_existing_events(dynamodb_manager, event_factory):
    """Test that a preloaded snapshot is used instead of scanning."""
    events = numbered(event_factory, 2)
    existing = {event_id(e): e for e in events}

    result = dynamodb_manager.sync_events(events, existing_events=existing)

    # Nothing differs from the given snapshot, so nothing is written.
    assert (result.added, result.updated, result.deleted) == (0, 0, 0)
    assert dynamodb_manager.get_all_events() == {}


def test_sync_events_is_idempotent(dynamodb_manager, event_factory):
    """Test that a repeated sync is a no-op."""
    events = numbered(event_factory, 4)
    dynamodb_manager.sync_events(events)

    result = dynamodb_manager.sync_events(events)

    assert (result.added, result.updated, result.deleted) == (0, 0, 0)


def test_sync_events_reports_throttled_writes(dynamodb_manager, event_factory):
    """Test that failed batches are reported in the sync result."""
    dynamodb_manager.table.batch_writer = Mock(side_effect=ClientError(
        {'Error': {'Code': 'ProvisionedThroughputExceededException', 'Message': 'Rate exceeded'}},
        'BatchWriteItem'
    ))

    result = dynamodb_manager.sync_events(numbered(event_factory, 2), existing_events={})

    assert result.added == 0
    assert result.errors == ['Some events could not be written']
