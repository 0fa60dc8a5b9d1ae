"""
WhatsApp Business Cloud API client (Meta Graph API).

Credentials come from Django settings. A client without credentials can
still verify and parse webhooks; sending raises WhatsAppConfigurationError.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

GRAPH_API_URL = 'https://graph.facebook.com'
SIGNATURE_PREFIX = 'sha256='
FAILED_PREFIX = 'FAILED:'


class WhatsAppError(Exception):
    """Raised when the Graph API rejects a request or cannot be reached."""


class WhatsAppConfigurationError(WhatsAppError):
    """Raised when sending without a phone number id or access token."""


@dataclass(frozen=True)
class IncomingMessage:
    sender: str
    message_id: str
    type: str
    text: Optional[str]
    timestamp: int


@dataclass(frozen=True)
class StatusUpdate:
    message_id: str
    status: str
    recipient: str


class WhatsAppClient:

    def __init__(
        self,
        phone_number_id: Optional[str] = None,
        access_token: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self.phone_number_id = phone_number_id if phone_number_id is not None else settings.WHATSAPP_PHONE_NUMBER_ID
        self.access_token = access_token if access_token is not None else settings.WHATSAPP_ACCESS_TOKEN
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.WHATSAPP_WEBHOOK_SECRET
        self.api_version = api_version or settings.WHATSAPP_API_VERSION
        self.timeout = timeout or getattr(settings, 'HTTP_TIMEOUT_SECONDS', 30)
        self.session = requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.phone_number_id and self.access_token)

    @property
    def messages_url(self) -> str:
        return f"{GRAPH_API_URL}/{self.api_version}/{self.phone_number_id}/messages"

    # =========================================================================
    # Sending
    # =========================================================================

    def send_message(self, to: str, message_type: str, content: Dict[str, Any]) -> str:
        """Send one message and return its WhatsApp message id."""
        if not self.is_configured:
            raise WhatsAppConfigurationError("Missing WhatsApp phone number id or access token")

        body = {
            'messaging_product': 'whatsapp',
            'to': to,
            'type': message_type,
            message_type: content,
        }
        headers = {
            'Authorization': f'Bearer {self.access_token}',
            'Content-Type': 'application/json',
        }

        try:
            response = self.session.post(self.messages_url, json=body, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise WhatsAppError(f"Failed to send WhatsApp message: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400:
            detail = data.get('error', {}).get('message') or response.text[:200]
            raise WhatsAppError(f"Failed to send WhatsApp message: {detail}")

        try:
            return data['messages'][0]['id']
        except (KeyError, IndexError, TypeError) as e:
            raise WhatsAppError("Malformed WhatsApp response") from e

    def send_text_message(self, to: str, text: str) -> str:
        return self.send_message(to, 'text', {'body': text})

    def send_template_message(
        self,
        to: str,
        template_name: str,
        language_code: str = 'en',
        parameters: Optional[List[str]] = None,
    ) -> str:
        template: Dict[str, Any] = {
            'name': template_name,
            'language': {'code': language_code},
        }
        if parameters:
            template['components'] = [{
                'type': 'body',
                'parameters': [{'type': 'text', 'text': p} for p in parameters],
            }]
        return self.send_message(to, 'template', template)

    def send_document_message(self, to: str, document_url: str, filename: str, caption: Optional[str] = None) -> str:
        document = {'link': document_url, 'filename': filename}
        if caption:
            document['caption'] = caption
        return self.send_message(to, 'document', document)

    def send_image_message(self, to: str, image_url: str, caption: Optional[str] = None) -> str:
        image = {'link': image_url}
        if caption:
            image['caption'] = caption
        return self.send_message(to, 'image', image)

    def broadcast_to_numbers(self, phone_numbers: Iterable[str], text: str) -> List[str]:
        """
        Send the same text to each number. One result per number:
        '<number>:<message id>' on success, 'FAILED:<number>' otherwise.
        """
        results = []
        for number in phone_numbers:
            try:
                message_id = self.send_text_message(number, text)
                results.append(f"{number}:{message_id}")
            except WhatsAppError as e:
                logger.error(f"Failed to send to {number}: {e}")
                results.append(f"{FAILED_PREFIX}{number}")
        return results

    # =========================================================================
    # Webhooks
    # =========================================================================

    def verify_webhook_signature(self, payload: bytes, signature: Optional[str]) -> bool:
        """Check the x-hub-signature-256 header against the raw request body."""
        if not self.webhook_secret or not signature:
            return False
        expected = hmac.new(self.webhook_secret.encode('utf-8'), payload, hashlib.sha256).hexdigest()
        return hmac.compare_digest(f"{SIGNATURE_PREFIX}{expected}", signature)

    @staticmethod
    def _changes(body: Dict[str, Any]):
        for entry in body.get('entry') or []:
            for change in entry.get('changes') or []:
                if change.get('field') == 'messages':
                    yield change.get('value') or {}

    def parse_webhook(self, body: Dict[str, Any]) -> List[IncomingMessage]:
        messages = []
        for value in self._changes(body):
            for message in value.get('messages') or []:
                messages.append(IncomingMessage(
                    sender=message.get('from', ''),
                    message_id=message.get('id', ''),
                    type=message.get('type', ''),
                    text=(message.get('text') or {}).get('body'),
                    timestamp=int(message.get('timestamp') or 0),
                ))
        return messages

    def parse_status_updates(self, body: Dict[str, Any]) -> List[StatusUpdate]:
        """Delivery receipts (delivered, read, failed) for messages we sent."""
        updates = []
        for value in self._changes(body):
            for status in value.get('statuses') or []:
                updates.append(StatusUpdate(
                    message_id=status.get('id', ''),
                    status=status.get('status', ''),
                    recipient=status.get('recipient_id', ''),
                ))
        return updates


def get_whatsapp_client() -> WhatsAppClient:
    return WhatsAppClient()


def is_failed_result(result: str) -> bool:
    return result.startswith(FAILED_PREFIX)
