"""Tests for the translation worker loop and its recovery routines."""
from datetime import timedelta
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from apps.documents.models import Document
from apps.translations.models import DocumentTranslationJob, TranslationStatus
from apps.translations.worker import STALLED_MESSAGE, TranslationWorker

User = get_user_model()


class TranslationWorkerTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='admin@test.com', password='testpass123')
        self.document = Document.objects.create(
            title='Budget 2024',
            file='documents/finance/french/budget.xlsx',
            file_type='application/vnd.ms-excel',
            category='finance',
            language='french',
            created_by=self.user,
        )
        self.worker = TranslationWorker(interval_seconds=1, batch_size=2, stall_timeout_minutes=30)

    def _job(self, target_language, **fields):
        return DocumentTranslationJob.objects.create(
            document=self.document,
            source_language='french',
            target_language=target_language,
            **fields,
        )

    @patch('apps.translations.worker.TranslationQueueService.process_translation_job', return_value=True)
    def test_process_batch_respects_batch_size(self, mock_process):
        self._job('english')
        self._job('arabic')
        other = Document.objects.create(
            title='Annexe', file='documents/finance/french/annexe.xlsx',
            file_type='application/vnd.ms-excel', language='french',
        )
        DocumentTranslationJob.objects.create(document=other, source_language='french', target_language='english')

        self.assertEqual(self.worker.process_batch(), 2)
        self.assertEqual(mock_process.call_count, 2)

    @patch('apps.translations.worker.TranslationQueueService.process_translation_job', return_value=False)
    def test_process_batch_counts_only_completed(self, mock_process):
        self._job('english')
        self.assertEqual(self.worker.process_batch(), 0)

    def test_process_batch_with_empty_queue(self):
        self.assertEqual(self.worker.process_batch(), 0)

    def test_recover_stalled_jobs(self):
        stalled = self._job(
            'english',
            status=TranslationStatus.PROCESSING,
            started_at=timezone.now() - timedelta(minutes=45),
            attempts=1,
        )
        fresh = self._job(
            'arabic',
            status=TranslationStatus.PROCESSING,
            started_at=timezone.now() - timedelta(minutes=5),
            attempts=1,
        )

        self.assertEqual(self.worker.recover_stalled_jobs(), 1)

        stalled.refresh_from_db()
        fresh.refresh_from_db()
        self.assertEqual(stalled.status, TranslationStatus.PENDING)
        self.assertIsNone(stalled.started_at)
        self.assertEqual(stalled.error_message, STALLED_MESSAGE)
        self.assertEqual(fresh.status, TranslationStatus.PROCESSING)

    def test_health_check_reports_stalled_jobs(self):
        self._job(
            'english',
            status=TranslationStatus.PROCESSING,
            started_at=timezone.now() - timedelta(hours=2),
        )
        health = self.worker.health_check()

        self.assertFalse(health['is_running'])
        self.assertFalse(health['healthy'])
        self.assertEqual(health['stalled_jobs'], 1)
        self.assertEqual(health['stats']['processing'], 1)
        self.assertEqual(health['batch_size'], 2)

    @patch('apps.translations.worker.close_old_connections')
    @patch('apps.translations.worker.TranslationWorker.process_batch', return_value=0)
    def test_start_runs_until_max_iterations(self, mock_batch, mock_close):
        self.worker.interval_seconds = 0
        self.worker.start(max_iterations=3)

        self.assertEqual(mock_batch.call_count, 3)
        self.assertFalse(self.worker.is_running)

    @patch('apps.translations.worker.close_old_connections')
    @patch('apps.translations.worker.TranslationWorker.process_batch', side_effect=RuntimeError('db down'))
    def test_failing_tick_does_not_stop_loop(self, mock_batch, mock_close):
        self.worker.interval_seconds = 0
        self.worker.start(max_iterations=2)
        self.assertEqual(mock_batch.call_count, 2)

    @patch('apps.translations.worker.TranslationQueueService.process_translation_job', return_value=True)
    def test_manual_batch_after_stop(self, mock_process):
        self._job('english')
        self.worker.stop()
        self.assertEqual(self.worker.process_batch(), 1)

    def test_stalled_job_without_attempts_left_fails(self):
        exhausted = self._job(
            'english',
            status=TranslationStatus.PROCESSING,
            started_at=timezone.now() - timedelta(hours=1),
            attempts=3,
        )
        Document.objects.filter(id=self.document.id).update(translation_status='processing')

        self.assertEqual(self.worker.recover_stalled_jobs(), 1)

        exhausted.refresh_from_db()
        self.assertEqual(exhausted.status, TranslationStatus.FAILED)
        self.assertEqual(exhausted.error_message, STALLED_MESSAGE)
        self.assertEqual(self.worker.retry_failed_jobs(), 0)
        self.document.refresh_from_db()
        self.assertEqual(self.document.translation_status, 'failed')

    def test_recovery_refreshes_document_status(self):
        self._job(
            'english',
            status=TranslationStatus.PROCESSING,
            started_at=timezone.now() - timedelta(hours=1),
            attempts=1,
        )
        Document.objects.filter(id=self.document.id).update(translation_status='processing')

        self.worker.recover_stalled_jobs()

        self.document.refresh_from_db()
        self.assertEqual(self.document.translation_status, 'pending')
