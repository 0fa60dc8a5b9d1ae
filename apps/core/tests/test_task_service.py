"""Tests for TaskService backend selection and dispatch."""
import json
from unittest.mock import MagicMock, patch

from django.test import SimpleTestCase, override_settings

from apps.core.backends.celery_backend import CeleryTaskService
from apps.core.backends.lambda_backend import LambdaTaskService
from apps.core.backends.local_backend import TASK_HANDLERS
from apps.core.task_service import TaskNames, TaskService


class LocalBackendTest(SimpleTestCase):

    def test_every_task_has_a_local_handler(self):
        names = [v for k, v in vars(TaskNames).items() if not k.startswith('_')]
        for name in names:
            self.assertIn(name, TASK_HANDLERS)

    @override_settings(TASK_BACKEND='local')
    def test_dispatches_to_handler(self):
        handler = MagicMock(return_value='done')
        with patch.dict(TASK_HANDLERS, {TaskNames.PROCESS_TRANSLATION_JOB: handler}):
            task_id = TaskService.process_translation_job('1234')

        handler.assert_called_once_with(job_id='1234')
        self.assertTrue(task_id)

    @override_settings(TASK_BACKEND='local')
    def test_handler_errors_propagate(self):
        handler = MagicMock(side_effect=RuntimeError('boom'))
        with patch.dict(TASK_HANDLERS, {TaskNames.SEND_POLL_NOTIFICATION: handler}):
            with self.assertRaises(RuntimeError):
                TaskService.send_poll_notification('abcd')

    @override_settings(TASK_BACKEND='carrier-pigeon')
    def test_unknown_backend(self):
        with self.assertRaises(ValueError):
            TaskService.process_translation_queue()


class CeleryBackendTest(SimpleTestCase):

    @patch('apps.core.backends.celery_backend._get_celery_task')
    def test_passes_payload_key_as_argument(self, mock_get_task):
        task = MagicMock()
        mock_get_task.return_value = task

        task_id = CeleryTaskService().send_task(TaskNames.SEND_DOCUMENT_NOTIFICATION, {'document_id': 'doc-1'})

        task.apply_async.assert_called_once_with(args=['doc-1'], task_id=task_id)

    @patch('apps.core.backends.celery_backend._get_celery_task')
    def test_tasks_without_arguments(self, mock_get_task):
        task = MagicMock()
        mock_get_task.return_value = task

        CeleryTaskService().send_task(TaskNames.RETRY_FAILED_TRANSLATIONS, {}, delay_seconds=30)

        _, kwargs = task.apply_async.call_args
        self.assertEqual(kwargs['args'], [])
        self.assertEqual(kwargs['countdown'], 30)

    def test_unmapped_task(self):
        with self.assertRaises(ValueError):
            CeleryTaskService().send_task('unknown_task', {})


@patch.dict('os.environ', {
    'TASK_QUEUE_URL': 'https://sqs.eu-west-3.amazonaws.com/123/tasks',
    'TRANSLATION_QUEUE_URL': 'https://sqs.eu-west-3.amazonaws.com/123/translations',
})
class LambdaBackendTest(SimpleTestCase):

    def _service(self):
        service = LambdaTaskService()
        service._sqs_client = MagicMock()
        service._sqs_client.send_message.return_value = {'MessageId': 'm-1'}
        return service

    def test_sends_message_body(self):
        service = self._service()
        task_id = service.send_task(TaskNames.SEND_POLL_NOTIFICATION, {'poll_id': 'p-1'}, delay_seconds=5000)

        _, kwargs = service._sqs_client.send_message.call_args
        self.assertEqual(kwargs['QueueUrl'], 'https://sqs.eu-west-3.amazonaws.com/123/tasks')
        self.assertEqual(kwargs['DelaySeconds'], 900)
        body = json.loads(kwargs['MessageBody'])
        self.assertEqual(body, {'task_id': task_id, 'task_name': 'send_poll_notification', 'payload': {'poll_id': 'p-1'}})

    def test_translation_jobs_use_their_own_queue(self):
        service = self._service()
        service.send_task(TaskNames.PROCESS_TRANSLATION_JOB, {'job_id': 'j-1'})

        _, kwargs = service._sqs_client.send_message.call_args
        self.assertEqual(kwargs['QueueUrl'], 'https://sqs.eu-west-3.amazonaws.com/123/translations')

    @patch.dict('os.environ', {'TASK_QUEUE_URL': '', 'TRANSLATION_QUEUE_URL': ''})
    def test_missing_queue_url(self):
        with self.assertRaises(RuntimeError):
            LambdaTaskService().send_task(TaskNames.PROCESS_TRANSLATION_QUEUE, {})
