import signal

from django.core.management.base import BaseCommand

from apps.translations.worker import TranslationWorker


class Command(BaseCommand):
    help = 'Runs the document translation worker loop'

    def add_arguments(self, parser):
        parser.add_argument(
            '--interval',
            type=int,
            default=None,
            help='Seconds between batches (default: TRANSLATION_WORKER_INTERVAL_SECONDS)',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=None,
            help='Jobs processed per batch (default: TRANSLATION_WORKER_BATCH_SIZE)',
        )
        parser.add_argument(
            '--once',
            action='store_true',
            help='Recover stalled jobs, process a single batch and exit',
        )
        parser.add_argument(
            '--retry-failed',
            action='store_true',
            help='Requeue failed jobs that still have attempts left before starting',
        )

    def handle(self, *args, **options):
        worker = TranslationWorker(
            interval_seconds=options['interval'],
            batch_size=options['batch_size'],
        )

        recovered = worker.recover_stalled_jobs()
        if recovered:
            self.stdout.write(self.style.WARNING(f'Recovered {recovered} stalled jobs'))

        if options['retry_failed']:
            retried = worker.retry_failed_jobs()
            self.stdout.write(f'Requeued {retried} failed jobs')

        if options['once']:
            completed = worker.process_batch()
            self.stdout.write(self.style.SUCCESS(f'Completed {completed} translation jobs'))
            return

        def _shutdown(signum, frame):
            worker.stop()

        signal.signal(signal.SIGINT, _shutdown)
        signal.signal(signal.SIGTERM, _shutdown)

        self.stdout.write(self.style.SUCCESS(
            f'Translation worker running every {worker.interval_seconds}s (Ctrl+C to stop)'
        ))
        worker.start()
