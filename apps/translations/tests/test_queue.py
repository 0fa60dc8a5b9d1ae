"""
Tests for the translation job queue: job creation, claiming, processing
and retries.
"""
import shutil
import tempfile
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.test import TestCase, override_settings

from apps.documents.models import Document, DocumentTranslationStatus, TranslationQuality
from apps.identity.models import UserRole
from apps.translations.models import DocumentTranslationJob, TranslationStatus
from apps.translations.queue_service import TranslationQueueService
from apps.translations.services import TranslationService
from apps.translations.translator import TranslationProviderError

User = get_user_model()

MEDIA_ROOT = tempfile.mkdtemp()


def fake_translate(text, source_language, target_language, *args, **kwargs):
    return f"[{target_language}] {text}"


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class TranslationQueueTest(TestCase):

    @classmethod
    def tearDownClass(cls):
        shutil.rmtree(MEDIA_ROOT, ignore_errors=True)
        super().tearDownClass()

    def setUp(self):
        self.user = User.objects.create_user(
            username='editor@test.com',
            email='editor@test.com',
            password='testpass123',
            role=UserRole.CONTENT_EDITOR,
        )
        path = default_storage.save('documents/general/french/rules.txt', ContentFile(b'Bonjour\nAu revoir'))
        self.document = Document.objects.create(
            title='Règlement',
            description='Règlement intérieur',
            file=path,
            file_name='rules.txt',
            file_size=17,
            file_type='text/plain',
            language='french',
            created_by=self.user,
        )

    def test_create_jobs_skips_source_language(self):
        jobs = TranslationQueueService.create_translation_jobs(self.document, 'french')
        self.assertEqual(sorted(j.target_language for j in jobs), ['arabic', 'english'])

    def test_create_jobs_is_idempotent(self):
        TranslationQueueService.create_translation_jobs(self.document, 'french', ['english'])
        again = TranslationQueueService.create_translation_jobs(self.document, 'french', ['english'])
        self.assertEqual(again, [])
        self.assertEqual(DocumentTranslationJob.objects.filter(document=self.document).count(), 1)

    def test_pending_jobs_exclude_exhausted(self):
        jobs = TranslationQueueService.create_translation_jobs(self.document, 'french')
        DocumentTranslationJob.objects.filter(id=jobs[0].id).update(attempts=3)

        pending = TranslationQueueService.get_pending_jobs(10)
        self.assertEqual([j.id for j in pending], [jobs[1].id])

    def test_claim_job_only_once(self):
        job = TranslationQueueService.create_translation_jobs(self.document, 'french', ['english'])[0]

        self.assertTrue(TranslationQueueService.claim_job(job.id))
        self.assertFalse(TranslationQueueService.claim_job(job.id))

        job.refresh_from_db()
        self.assertEqual(job.status, TranslationStatus.PROCESSING)
        self.assertEqual(job.attempts, 1)
        self.assertIsNotNone(job.started_at)

    @patch('apps.translations.queue_service.translate_text', side_effect=fake_translate)
    def test_full_translation_creates_text_document(self, mock_translate):
        job = TranslationQueueService.create_translation_jobs(self.document, 'french', ['english'])[0]

        self.assertTrue(TranslationQueueService.process_translation_job(job.id))

        job.refresh_from_db()
        self.assertEqual(job.status, TranslationStatus.COMPLETED)
        self.assertEqual(job.progress, 100)
        self.assertIsNotNone(job.completed_at)
        self.assertEqual(job.translated_content, '[english] Bonjour\nAu revoir')

        translated = job.translated_document
        self.assertTrue(translated.is_translation)
        self.assertEqual(translated.original_document, self.document)
        self.assertEqual(translated.language, 'english')
        self.assertEqual(translated.file_type, 'text/plain')
        self.assertEqual(translated.translation_quality, TranslationQuality.MACHINE)
        self.assertEqual(translated.title, '[english] Règlement (English)')
        with default_storage.open(translated.file.name, 'rb') as handle:
            self.assertEqual(handle.read().decode('utf-8'), '[english] Bonjour\nAu revoir')

        self.document.refresh_from_db()
        self.assertEqual(self.document.translation_status, DocumentTranslationStatus.COMPLETED)

    @patch('apps.translations.queue_service.translate_text', side_effect=fake_translate)
    def test_completed_job_records_the_service_that_ran(self, mock_translate):
        job = TranslationService.request_translation(self.document.id, 'english', self.user, service='openai')
        self.assertEqual(job.service_used, 'openai')

        self.assertTrue(TranslationQueueService.process_translation_job(job.id))

        job.refresh_from_db()
        self.assertEqual(job.service_used, 'deepl')

    @patch('apps.translations.queue_service.translate_text', side_effect=fake_translate)
    def test_non_extractable_gets_metadata_translation(self, mock_translate):
        path = default_storage.save('documents/general/french/photo.jpg', ContentFile(b'\xff\xd8'))
        image = Document.objects.create(
            title='Plage', file=path, file_name='photo.jpg', file_size=2,
            file_type='image/jpeg', language='french', created_by=self.user,
        )
        job = TranslationQueueService.create_translation_jobs(image, 'french', ['english'])[0]

        self.assertTrue(TranslationQueueService.process_translation_job(job.id))

        translated = Document.objects.get(original_document=image)
        self.assertEqual(translated.file.name, image.file.name)
        self.assertEqual(translated.description, '[Original document in French]')
        self.assertFalse(translated.content_extractable)

    @patch('apps.translations.queue_service.translate_text', side_effect=fake_translate)
    def test_unreadable_pdf_falls_back_to_metadata(self, mock_translate):
        path = default_storage.save('documents/general/french/broken.pdf', ContentFile(b'not a pdf'))
        pdf = Document.objects.create(
            title='Procès-verbal', description='AG 2024', file=path, file_name='broken.pdf',
            file_size=9, file_type='application/pdf', language='french', created_by=self.user,
        )
        job = TranslationQueueService.create_translation_jobs(pdf, 'french', ['english'])[0]

        self.assertTrue(TranslationQueueService.process_translation_job(job.id))

        translated = Document.objects.get(original_document=pdf)
        self.assertEqual(translated.description, '[english] AG 2024 [French original]')

    @patch('apps.translations.queue_service.translate_text', side_effect=TranslationProviderError('DeepL API error: 456'))
    def test_provider_failure_marks_job_failed(self, mock_translate):
        job = TranslationQueueService.create_translation_jobs(self.document, 'french', ['english'])[0]

        self.assertFalse(TranslationQueueService.process_translation_job(job.id))

        job.refresh_from_db()
        self.assertEqual(job.status, TranslationStatus.FAILED)
        self.assertEqual(job.error_message, 'DeepL API error: 456')
        self.assertEqual(job.attempts, 1)

        self.document.refresh_from_db()
        self.assertEqual(self.document.translation_status, DocumentTranslationStatus.FAILED)

    def test_retry_failed_only_requeues_jobs_with_attempts_left(self):
        jobs = TranslationQueueService.create_translation_jobs(self.document, 'french')
        DocumentTranslationJob.objects.filter(id=jobs[0].id).update(status=TranslationStatus.FAILED, attempts=1)
        DocumentTranslationJob.objects.filter(id=jobs[1].id).update(status=TranslationStatus.FAILED, attempts=3)

        self.assertEqual(TranslationQueueService.retry_failed_jobs(), 1)

        jobs[0].refresh_from_db()
        jobs[1].refresh_from_db()
        self.assertEqual(jobs[0].status, TranslationStatus.PENDING)
        self.assertIsNone(jobs[0].error_message)
        self.assertEqual(jobs[1].status, TranslationStatus.FAILED)

    def test_stats(self):
        TranslationQueueService.create_translation_jobs(self.document, 'french')
        stats = TranslationQueueService.get_translation_stats()
        self.assertEqual(stats['pending'], 2)
        self.assertEqual(stats['total'], 2)
        self.assertEqual(stats['completed'], 0)
