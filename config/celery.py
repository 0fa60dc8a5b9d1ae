"""
Celery configuration for the community portal.
"""
import os
from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('config')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

# Celery Beat Schedule
app.conf.beat_schedule = {
    'process-translation-queue': {
        'task': 'apps.translations.tasks.process_translation_queue',
        'schedule': crontab(minute='*'),
    },
    'recover-stalled-translations': {
        'task': 'apps.translations.tasks.recover_stalled_translations',
        'schedule': crontab(minute='*/15'),
    },
    'retry-failed-translations': {
        'task': 'apps.translations.tasks.retry_failed_translations',
        'schedule': crontab(minute='0'),
    },
}
