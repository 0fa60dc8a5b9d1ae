"""Tests for the translation request workflow."""
from django.contrib.auth import get_user_model
from django.test import TestCase

from apps.documents.models import Document, DocumentTranslationStatus
from apps.governance.models import AuditLog
from apps.translations.models import DocumentTranslationJob, TranslationStatus
from apps.translations.services import (
    CANCELLED_MESSAGE,
    TranslationService,
    assess_quality,
    calculate_cost_cents,
    estimate_translation_cost,
)

User = get_user_model()


class CostAndQualityTest(TestCase):

    def test_estimate_includes_buffer(self):
        # 100 000 bytes -> 50 000 chars -> 50 * 0.02 USD = 1 USD -> 120 cents with buffer
        self.assertEqual(estimate_translation_cost(100_000, 'deepl'), 120)

    def test_unknown_service_uses_default_rate(self):
        self.assertEqual(calculate_cost_cents(1000, None), 3)

    def test_quality_prefers_similar_length(self):
        self.assertEqual(assess_quality('Bonjour tout le monde', 'Hello everyone, all'), 1.0)
        self.assertEqual(assess_quality('Bonjour tout le monde', 'Hi'), 0.8)
        self.assertEqual(assess_quality('Bonjour', ''), 0.7)


class TranslationServiceTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='owner@test.com', password='testpass123')
        self.document = Document.objects.create(
            title='Statuts',
            file='documents/legal/french/statuts.pdf',
            file_size=20_000,
            file_type='application/pdf',
            category='legal',
            language='french',
            created_by=self.user,
        )

    def test_request_translation(self):
        job = TranslationService.request_translation(self.document.id, 'english', self.user)

        self.assertEqual(job.status, TranslationStatus.PENDING)
        self.assertEqual(job.source_language, 'french')
        self.assertEqual(job.requested_by, self.user)
        self.assertGreater(job.estimated_cost_cents, 0)

        self.document.refresh_from_db()
        self.assertEqual(self.document.translation_status, DocumentTranslationStatus.PENDING)
        self.assertTrue(AuditLog.objects.filter(action='translate', entity_id=str(self.document.id)).exists())

    def test_request_translation_rejects_duplicates(self):
        TranslationService.request_translation(self.document.id, 'english', self.user)
        with self.assertRaisesMessage(ValueError, 'Translation already requested for this language'):
            TranslationService.request_translation(self.document.id, 'english', self.user)

    def test_request_translation_rejects_same_language(self):
        with self.assertRaises(ValueError):
            TranslationService.request_translation(self.document.id, 'french', self.user)

    def test_request_translation_unknown_document(self):
        with self.assertRaisesMessage(ValueError, 'Document not found'):
            TranslationService.request_translation('00000000-0000-0000-0000-000000000000', 'english', self.user)

    def test_lifecycle(self):
        job = TranslationService.request_translation(self.document.id, 'arabic', self.user)

        job = TranslationService.start_translation(job.id, 'deepl')
        self.assertEqual(job.status, TranslationStatus.PROCESSING)
        self.assertEqual(job.attempts, 1)

        TranslationService.update_progress(job.id, 50)
        job = TranslationService.complete_translation(job.id, 'نص', confidence_score=0.9)
        self.assertEqual(job.status, TranslationStatus.COMPLETED)
        self.assertEqual(job.progress, 100)
        self.assertIsNotNone(job.actual_cost_cents)

        with self.assertRaises(ValueError):
            TranslationService.start_translation(job.id, 'deepl')

    def test_progress_bounds(self):
        job = TranslationService.request_translation(self.document.id, 'english', self.user)
        with self.assertRaises(ValueError):
            TranslationService.update_progress(job.id, 101)

    def test_cancel_only_pending_and_never_retried(self):
        job = TranslationService.request_translation(self.document.id, 'english', self.user)
        job = TranslationService.cancel_translation(job.id)

        self.assertEqual(job.status, TranslationStatus.FAILED)
        self.assertEqual(job.error_message, CANCELLED_MESSAGE)
        self.assertFalse(job.can_retry)

        with self.assertRaisesMessage(ValueError, 'Can only cancel pending translations'):
            TranslationService.cancel_translation(job.id)

    def test_feedback_rating_bounds(self):
        job = TranslationService.request_translation(self.document.id, 'english', self.user)

        job = TranslationService.add_user_feedback(job.id, 4, 'Clear enough')
        self.assertEqual(job.user_rating, 4)
        self.assertEqual(job.user_feedback, 'Clear enough')

        with self.assertRaises(ValueError):
            TranslationService.add_user_feedback(job.id, 6)

    def test_stats(self):
        job = TranslationService.request_translation(self.document.id, 'english', self.user)
        TranslationService.request_translation(self.document.id, 'arabic', self.user)
        TranslationService.complete_translation(job.id, 'Articles', actual_cost_cents=10)

        stats = TranslationService.get_translation_stats()
        self.assertEqual(stats['total'], 2)
        self.assertEqual(stats['pending'], 1)
        self.assertEqual(stats['completed'], 1)
        self.assertEqual(stats['total_cost_cents'], 10)
        self.assertEqual(stats['average_cost_cents'], 10)

    def test_missing_job(self):
        with self.assertRaisesMessage(ValueError, 'Translation not found'):
            TranslationService.fail_translation('00000000-0000-0000-0000-000000000000', 'boom')
        self.assertEqual(DocumentTranslationJob.objects.count(), 0)
