"""
Lambda Handlers - Entry points for AWS Lambda functions.

This module provides Lambda handlers for:
1. SQS Task Processing - Consumes messages sent by LambdaTaskService
2. Django API (via Mangum) - HTTP requests through API Gateway
3. Scheduled Events - EventBridge triggers driving the translation queue

The handlers use Django's setup to access models and services.
"""

import os
import json
import logging

# Configure Django before importing any models
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

import django
django.setup()

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def _response(**body):
    return {
        'statusCode': 200,
        'body': json.dumps(body),
    }


def sqs_task_handler(event, context):
    """
    AWS Lambda handler for SQS task messages.

    Event structure:
    {
        "Records": [
            {
                "messageId": "...",
                "body": "{\"task_id\": \"...\", \"task_name\": \"...\", \"payload\": {...}}"
            }
        ]
    }

    Failed records are reported through batchItemFailures so only they are
    redelivered (and eventually sent to the DLQ).
    """
    from apps.core.backends.local_backend import TASK_HANDLERS

    processed = 0
    failures = []

    for record in event.get('Records', []):
        try:
            message = json.loads(record['body'])
            task_id = message.get('task_id', 'unknown')
            task_name = message['task_name']
            payload = message.get('payload', {})

            logger.info(f"Processing task {task_name} (id={task_id})")

            handler = TASK_HANDLERS.get(task_name)
            if handler is None:
                # Unknown tasks are dropped rather than retried forever
                logger.error(f"No handler for task: {task_name}")
                continue

            result = handler(**payload)
            logger.info(f"Task {task_name} completed: {result}")
            processed += 1

        except Exception as e:
            logger.exception(f"Failed to process message: {e}")
            failures.append({'itemIdentifier': record.get('messageId')})

    return {
        'batchItemFailures': failures,
        'processed': processed,
    }


def scheduled_process_translation_queue(event, context):
    """
    EventBridge scheduled handler: process a batch of translation jobs.

    Schedule: Every minute
    """
    from apps.translations.worker import get_worker

    logger.info("Running scheduled process_translation_queue")
    return _response(completed=get_worker().process_batch())


def scheduled_recover_stalled_translations(event, context):
    """
    EventBridge scheduled handler: requeue jobs stuck in processing.

    Schedule: Every 15 minutes
    """
    from apps.translations.worker import get_worker

    logger.info("Running scheduled recover_stalled_translations")
    return _response(recovered=get_worker().recover_stalled_jobs())


def scheduled_retry_failed_translations(event, context):
    """
    EventBridge scheduled handler: requeue failed jobs with attempts left.

    Schedule: Hourly
    """
    from apps.translations.queue_service import TranslationQueueService

    logger.info("Running scheduled retry_failed_translations")
    return _response(requeued=TranslationQueueService.retry_failed_jobs())


# =============================================================================
# Django API Handler (Mangum)
# =============================================================================

_asgi_handler = None


def api_handler(event, context):
    """
    AWS Lambda handler for HTTP requests via API Gateway.

    Uses Mangum to wrap Django's ASGI application.
    """
    global _asgi_handler

    if _asgi_handler is None:
        from mangum import Mangum
        from config.asgi import application
        _asgi_handler = Mangum(application, lifespan="off")

    return _asgi_handler(event, context)
