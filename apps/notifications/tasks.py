"""Celery tasks for Notifications app."""
import logging

from celery import shared_task

from .services import NotificationService

logger = logging.getLogger(__name__)


@shared_task
def send_document_notification(document_id):
    sent = NotificationService.send_document_notification(document_id)
    logger.info(f"[CELERY] Document {document_id} notification reached {sent} contacts")
    return sent


@shared_task
def send_poll_notification(poll_id):
    sent = NotificationService.send_poll_notification(poll_id)
    logger.info(f"[CELERY] Poll {poll_id} notification reached {sent} contacts")
    return sent
