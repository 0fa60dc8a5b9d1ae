"""
Lambda Task Backend - Async execution via AWS SQS + Lambda.

Messages are sent to SQS, which triggers lambda_handlers.sqs_handler.
Translation jobs can be routed to their own queue so a slower Lambda with
a longer timeout consumes them.

Usage:
    Set TASK_BACKEND=lambda in your .env file.

Environment Variables:
    TASK_QUEUE_URL: SQS queue URL for task messages
    TRANSLATION_QUEUE_URL: optional queue for process_translation_job
    AWS_REGION: AWS region (default: eu-west-3)
"""

import os
import json
import uuid
import logging
from typing import Any, Dict, Optional
from apps.core.task_service import TaskNames, TaskServiceInterface

logger = logging.getLogger(__name__)

# SQS caps DelaySeconds at 15 minutes
MAX_DELAY_SECONDS = 900


class LambdaTaskService(TaskServiceInterface):
    """Execute tasks via AWS SQS + Lambda."""

    def __init__(self):
        self._sqs_client = None
        self._queue_url = os.getenv('TASK_QUEUE_URL')
        self._translation_queue_url = os.getenv('TRANSLATION_QUEUE_URL')

        if not self._queue_url:
            logger.warning(
                "[LAMBDA] TASK_QUEUE_URL not set. "
                "Lambda backend will fail on send_task."
            )

    @property
    def sqs_client(self):
        """Lazy initialization of SQS client."""
        if self._sqs_client is None:
            import boto3
            self._sqs_client = boto3.client(
                'sqs',
                region_name=os.getenv('AWS_REGION', 'eu-west-3')
            )
        return self._sqs_client

    def queue_url_for(self, task_name: str) -> Optional[str]:
        if task_name == TaskNames.PROCESS_TRANSLATION_JOB and self._translation_queue_url:
            return self._translation_queue_url
        return self._queue_url

    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """Queue task via SQS."""
        task_id = str(uuid.uuid4())
        queue_url = self.queue_url_for(task_name)

        if not queue_url:
            raise RuntimeError(
                "TASK_QUEUE_URL environment variable not set. "
                "Cannot send tasks to Lambda backend."
            )

        message_body = json.dumps({
            "task_id": task_id,
            "task_name": task_name,
            "payload": payload,
        })

        logger.info(f"[LAMBDA] Sending task {task_name} to SQS (id={task_id})")

        try:
            response = self.sqs_client.send_message(
                QueueUrl=queue_url,
                MessageBody=message_body,
                DelaySeconds=min(delay_seconds, MAX_DELAY_SECONDS),
                MessageAttributes={
                    'TaskName': {
                        'DataType': 'String',
                        'StringValue': task_name,
                    },
                    'TaskId': {
                        'DataType': 'String',
                        'StringValue': task_id,
                    },
                },
            )
        except Exception as e:
            logger.exception(f"[LAMBDA] Failed to send task {task_name}: {e}")
            raise

        logger.info(
            f"[LAMBDA] Task {task_name} queued. "
            f"SQS MessageId: {response['MessageId']}"
        )
        return task_id
