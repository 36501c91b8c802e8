"""AWS Lambda handler running one dance event aggregation cycle."""
import json
import logging
import os
import time
from typing import Dict, Any

from importers.pipeline import ImportPipeline
from importers.registry import build_sources
from processor.reconcile import reconcile_with_stats
from storage.corpus import EventCorpus
from storage.dynamodb_manager import DynamoDBManager, SyncIncompleteError

# Corpus served to readers in this process; replaced at the end of each cycle.
CORPUS = EventCorpus()


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _error_response(message: str, error: Exception, start_time: float, **extra) -> Dict[str, Any]:
    body = {
        'message': message,
        'error': str(error),
        'error_type': type(error).__name__,
        'duration_seconds': round(time.time() - start_time, 2)
    }
    body.update(extra)
    return {'statusCode': 500, 'body': json.dumps(body)}


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Import all sources, reconcile with the stored corpus and persist the result.

    Args:
        event: EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    table_name = os.environ.get('TABLE_NAME', 'dance-events')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
    max_workers = int(os.environ.get('MAX_WORKERS', '4'))
    plug_events_token = os.environ.get('PLUG_EVENTS_TOKEN') or None

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info(
        "Aggregation cycle started",
        extra={
            'table_name': table_name,
            'timeout_seconds': timeout_seconds,
            'max_workers': max_workers
        }
    )

    try:
        pipeline = ImportPipeline(timeout=timeout_seconds)
        sources = build_sources(plug_events_token=plug_events_token)
        dynamodb_manager = DynamoDBManager(table_name=table_name)

        # Import errors never abort the cycle; failed sources just have no window.
        results = pipeline.import_all(sources, max_workers=max_workers)
        imported = [event for result in results for event in result.events]
        windows = {result.source: result.window for result in results if result.window}

        try:
            existing_events = dynamodb_manager.get_all_events()
        except Exception as e:
            logger.error(
                f"Failed to load stored events: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response(
                'Failed to load stored events', e, start_time,
                note='Previous events remain in DynamoDB'
            )

        merged, stats = reconcile_with_stats(existing_events.values(), imported, windows)

        try:
            sync_result = dynamodb_manager.sync_events(merged, existing_events=existing_events)
        except Exception as e:
            logger.error(
                f"Error during DynamoDB sync operation: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response(
                'Failed to sync events with DynamoDB', e, start_time,
                note='Previous events remain in DynamoDB'
            )

        if sync_result.errors:
            error = SyncIncompleteError('; '.join(sync_result.errors))
            logger.error(
                f"DynamoDB sync incomplete: {error}",
                extra={
                    'events_added': sync_result.added,
                    'events_updated': sync_result.updated,
                    'events_deleted': sync_result.deleted
                }
            )
            return _error_response(
                'Failed to sync events with DynamoDB', error, start_time,
                note='Stored events are partially updated and will be reconciled next cycle',
                errors=sync_result.errors
            )

        CORPUS.replace(merged)

        duration = time.time() - start_time
        logger.info(
            "Aggregation cycle completed",
            extra={
                'duration_seconds': round(duration, 2),
                'events_added': sync_result.added,
                'events_updated': sync_result.updated,
                'events_deleted': sync_result.deleted,
                'errors': sync_result.errors
            }
        )

        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': 'Sync completed successfully',
                'statistics': {
                    'sources': {
                        result.source: {
                            'ok': result.ok,
                            'events': len(result.events),
                            'skipped': result.skipped,
                            'dropped': result.dropped
                        }
                        for result in results
                    },
                    'events_imported': len(imported),
                    'corpus_size': len(merged),
                    'reconcile': {
                        'added': stats.added,
                        'updated': stats.updated,
                        'retained': stats.retained,
                        'dropped': stats.dropped
                    },
                    'events_added': sync_result.added,
                    'events_updated': sync_result.updated,
                    'events_deleted': sync_result.deleted,
                    'duration_seconds': round(duration, 2)
                },
                'failed_sources': [result.source for result in results if not result.ok],
                'errors': sync_result.errors
            })
        }

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Aggregation cycle failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _error_response('Sync failed', e, start_time)
