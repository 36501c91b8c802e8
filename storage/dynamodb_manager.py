"""DynamoDB manager for persisting the event corpus."""
import logging
import time
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from model.event import Event, event_id
from model.serialization import event_from_dict, event_to_dict
from processor.models import SyncResult

logger = logging.getLogger(__name__)


class SyncIncompleteError(Exception):
    """Some writes or deletes of a sync failed, leaving the table partially updated."""


class DynamoDBManager:
    """Manager for DynamoDB operations."""

    BATCH_SIZE = 25  # DynamoDB batch operation limit

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBManager for table: {table_name}")

    def get_all_events(self) -> Dict[str, Event]:
        """
        Retrieve all stored events using Scan operation.

        Returns:
            Dictionary mapping event_id to Event objects
        """
        logger.info("Scanning DynamoDB table for all events")
        events = {}

        try:
            response = self.table.scan()
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))

            for item in items:
                event = self._item_to_event(item)
                if event:
                    events[item['event_id']] = event

            logger.info(f"Retrieved {len(events)} events from DynamoDB")
            return events

        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table: {e}")
            raise

    def sync_events(
        self,
        events: List[Event],
        existing_events: Optional[Dict[str, Event]] = None
    ) -> SyncResult:
        """
        Make the stored corpus equal to the given reconciled events.

        Args:
            events: Reconciled corpus to persist
            existing_events: Currently stored events keyed by event_id, if
                already loaded; scanned from the table otherwise

        Returns:
            SyncResult with counts of added, updated, deleted events
        """
        logger.info(f"Starting sync process with {len(events)} events")
        errors = []

        try:
            if existing_events is None:
                existing_events = self.get_all_events()

            new_events_dict = {event_id(event): event for event in events}

            events_to_add = [
                (key, event) for key, event in new_events_dict.items()
                if key not in existing_events
            ]
            events_to_update = [
                (key, event) for key, event in new_events_dict.items()
                if key in existing_events and event != existing_events[key]
            ]
            event_ids_to_delete = [
                key for key in existing_events.keys()
                if key not in new_events_dict
            ]

            logger.info(
                f"Sync plan: {len(events_to_add)} to add, "
                f"{len(events_to_update)} to update, "
                f"{len(event_ids_to_delete)} to delete"
            )

            added_count = self.batch_write_events(events_to_add)
            updated_count = self.batch_write_events(events_to_update)
            deleted_count = self.batch_delete_events(event_ids_to_delete)

            if added_count < len(events_to_add) or updated_count < len(events_to_update):
                errors.append("Some events could not be written")
            if deleted_count < len(event_ids_to_delete):
                errors.append("Some events could not be deleted")

            logger.info(
                f"Sync complete: {added_count} added, {updated_count} updated, "
                f"{deleted_count} deleted"
            )

            return SyncResult(
                added=added_count,
                updated=updated_count,
                deleted=deleted_count,
                errors=errors
            )

        except ClientError as e:
            error_msg = f"Error during sync operation: {e}"
            logger.error(error_msg)
            errors.append(error_msg)
            return SyncResult(added=0, updated=0, deleted=0, errors=errors)

    def batch_write_events(self, events: List[tuple]) -> int:
        """
        Write events to DynamoDB in batches of 25 items.

        Args:
            events: List of (event_id, Event) pairs to write

        Returns:
            Count of successfully written events
        """
        if not events:
            return 0

        logger.info(f"Writing {len(events)} events to DynamoDB")
        success_count = 0
        last_updated = int(time.time())

        for i in range(0, len(events), self.BATCH_SIZE):
            batch = events[i:i + self.BATCH_SIZE]

            try:
                with self.table.batch_writer() as writer:
                    for key, event in batch:
                        writer.put_item(Item=self._event_to_item(key, event, last_updated))
                success_count += len(batch)

            except ClientError as e:
                logger.error(
                    f"Error writing batch {i // self.BATCH_SIZE + 1}: {e}"
                )
                continue

        logger.info(f"Successfully wrote {success_count} events")
        return success_count

    def batch_delete_events(self, event_ids: List[str]) -> int:
        """
        Delete events from DynamoDB in batches of 25 items.

        Args:
            event_ids: List of event IDs to delete

        Returns:
            Count of successfully deleted events
        """
        if not event_ids:
            return 0

        logger.info(f"Deleting {len(event_ids)} events from DynamoDB")
        success_count = 0

        for i in range(0, len(event_ids), self.BATCH_SIZE):
            batch = event_ids[i:i + self.BATCH_SIZE]

            try:
                with self.table.batch_writer() as writer:
                    for key in batch:
                        writer.delete_item(Key={'event_id': key})
                success_count += len(batch)

            except ClientError as e:
                logger.error(
                    f"Error deleting batch {i // self.BATCH_SIZE + 1}: {e}"
                )
                continue

        logger.info(f"Successfully deleted {success_count} events")
        return success_count

    def _item_to_event(self, item: dict) -> Optional[Event]:
        """
        Convert DynamoDB item to Event object.

        Returns:
            Event object or None if conversion fails
        """
        try:
            return event_from_dict(item)
        except (KeyError, ValueError, TypeError) as e:
            logger.warning(f"Failed to convert item {item.get('event_id')} to Event: {e}")
            return None

    def _event_to_item(self, key: str, event: Event, last_updated: int) -> dict:
        """Convert Event object to DynamoDB item."""
        item = event_to_dict(event)
        item['event_id'] = key
        item['last_updated'] = last_updated
        return item
