"""
WhatsApp assistant: answers owner questions from a keyword knowledge base.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .whatsapp_client import WhatsAppClient, WhatsAppError, get_whatsapp_client

logger = logging.getLogger(__name__)

# Scores at or below this are not considered a match
MIN_MATCH_SCORE = 3
QUESTION_PREFIX_CHARS = 10
QUESTION_PREFIX_SCORE = 10

RESPONSE_HEADER = "🏖️ *Costa Beach Community*"
RESPONSE_FOOTER = "_Need more help? Contact management or visit the Costa Beach portal._"


@dataclass(frozen=True)
class KnowledgeEntry:
    question: str
    answer: str
    keywords: Tuple[str, ...]
    category: str
    language: str


KNOWLEDGE_BASE: List[KnowledgeEntry] = [
    KnowledgeEntry(
        question="What is Costa Beach?",
        answer="🏖️ Costa Beach is a residential community offering modern living with "
               "excellent amenities and professional management services.",
        keywords=("costa beach", "what is", "about", "community"),
        category="general",
        language="en",
    ),
    KnowledgeEntry(
        question="How can I contact building management?",
        answer="📞 You can contact building management:\n• Through this WhatsApp assistant\n"
               "• Visit the management office during business hours\n"
               "• Submit requests through the Costa Beach portal\n• Email: management@costabeach.com",
        keywords=("contact", "management", "office", "help", "support"),
        category="contact",
        language="en",
    ),
    KnowledgeEntry(
        question="How do I access community documents?",
        answer="📄 To access community documents:\n1. Log into the Costa Beach portal\n"
               "2. Go to the Documents section\n"
               "3. Browse by category: Comité de Suivi, Société de Gestion, or Legal\n"
               "4. You'll receive WhatsApp notifications when new documents are uploaded",
        keywords=("documents", "access", "portal", "papers", "files"),
        category="documents",
        language="en",
    ),
    KnowledgeEntry(
        question="What types of documents are available?",
        answer="📋 Available document categories:\n• *Comité de Suivi*: Community committee documents\n"
               "• *Société de Gestion*: Management company documents\n"
               "• *Legal*: Legal documents and regulations\n\n"
               "Documents are available in French, English, and Arabic.",
        keywords=("document types", "categories", "comité", "société", "legal"),
        category="documents",
        language="en",
    ),
    KnowledgeEntry(
        question="How do I participate in community polls?",
        answer="🗳️ To participate in polls:\n1. Check for poll notifications on WhatsApp\n"
               "2. Visit the Costa Beach portal\n3. Go to the Polls section\n4. Vote on active polls\n"
               "5. View results after voting closes",
        keywords=("polls", "voting", "vote", "participate", "survey"),
        category="polls",
        language="en",
    ),
    KnowledgeEntry(
        question="How do I report a maintenance issue?",
        answer="🔧 To report maintenance issues:\n1. Contact building management immediately for urgent issues\n"
               "2. Submit non-urgent requests through the portal\n3. Provide a description and location\n"
               "4. Include photos if helpful",
        keywords=("maintenance", "repair", "broken", "fix", "issue", "problem"),
        category="maintenance",
        language="en",
    ),
    KnowledgeEntry(
        question="What are the building hours?",
        answer="🕐 Building Hours:\n• *Management Office*: Monday-Friday 9:00 AM - 6:00 PM\n"
               "• *Building Access*: 24/7 with key card\n• *Emergency Contact*: Available 24/7\n"
               "• *Maintenance*: Monday-Saturday 8:00 AM - 5:00 PM",
        keywords=("hours", "time", "open", "office", "when"),
        category="general",
        language="en",
    ),
    KnowledgeEntry(
        question="What should I do in an emergency?",
        answer="🚨 *EMERGENCY PROCEDURES*:\n\n*Fire*: Pull the alarm and evacuate immediately\n"
               "*Medical*: Call emergency services, then notify management\n"
               "*Security*: Contact building security\n*Utilities*: Contact management immediately",
        keywords=("emergency", "fire", "medical", "security", "urgent"),
        category="emergency",
        language="en",
    ),
    KnowledgeEntry(
        question="Comment puis-je contacter la gestion de l'immeuble?",
        answer="📞 Vous pouvez contacter la gestion de l'immeuble:\n• Via cet assistant WhatsApp\n"
               "• Visitez le bureau de gestion pendant les heures d'ouverture\n"
               "• Soumettez des demandes via le portail Costa Beach\n• Email: management@costabeach.com",
        keywords=("contact", "gestion", "bureau", "aide", "support"),
        category="contact",
        language="fr",
    ),
    KnowledgeEntry(
        question="Comment accéder aux documents communautaires?",
        answer="📄 Pour accéder aux documents communautaires:\n1. Connectez-vous au portail Costa Beach\n"
               "2. Allez à la section Documents\n"
               "3. Parcourez par catégorie: Comité de Suivi, Société de Gestion, ou Légal\n"
               "4. Vous recevrez des notifications WhatsApp lors de nouveaux téléchargements",
        keywords=("documents", "accès", "portail", "papiers", "fichiers"),
        category="documents",
        language="fr",
    ),
    KnowledgeEntry(
        question="Comment participer aux sondages?",
        answer="🗳️ Pour participer aux sondages:\n1. Surveillez les notifications WhatsApp\n"
               "2. Connectez-vous au portail Costa Beach\n3. Allez à la section Sondages\n"
               "4. Votez sur les sondages actifs",
        keywords=("sondage", "sondages", "voter", "vote", "participer"),
        category="polls",
        language="fr",
    ),
]

DEFAULT_RESPONSE = (
    "I'm here to help with information about Costa Beach community services, documents, "
    "polls, and general questions.\n\n"
    "💬 *Try asking:*\n• \"How do I access documents?\"\n• \"How do I vote in polls?\"\n"
    "• \"How do I report maintenance issues?\"\n• \"What are the building hours?\"\n\n"
    "For specific questions or immediate assistance, please contact building management."
)

ERROR_RESPONSE = (
    "I'm sorry, I encountered an error while processing your message.\n\n"
    "Please try again or contact building management directly for immediate assistance.\n\n"
    "📧 *Management*: management@costabeach.com"
)


def score_entry(entry: KnowledgeEntry, query: str) -> int:
    """Longer keyword hits weigh more; quoting the question's start adds a bonus."""
    score = sum(len(keyword) for keyword in entry.keywords if keyword.lower() in query)
    if entry.question.lower()[:QUESTION_PREFIX_CHARS] in query:
        score += QUESTION_PREFIX_SCORE
    return score


def search_knowledge_base(query: str, entries: Optional[List[KnowledgeEntry]] = None) -> Optional[KnowledgeEntry]:
    normalized = (query or '').lower().strip()
    if not normalized:
        return None

    best, best_score = None, MIN_MATCH_SCORE
    for entry in entries if entries is not None else KNOWLEDGE_BASE:
        score = score_entry(entry, normalized)
        if score > best_score:
            best, best_score = entry, score
    return best


def format_response(body: str) -> str:
    return f"{RESPONSE_HEADER}\n\n{body}\n\n{RESPONSE_FOOTER}"


def welcome_message(name: Optional[str] = None) -> str:
    greeting = f" {name}" if name else ''
    return (
        f"🏖️ *Welcome to Costa Beach Community{greeting}!*\n\n"
        "I'm your WhatsApp assistant, here to help with:\n\n"
        "📄 *Documents*: Access community documents and get notifications\n"
        "🗳️ *Polls*: Participate in community voting\n"
        "🔧 *Maintenance*: Report issues and get updates\n"
        "ℹ️ *Information*: General community information\n\n"
        "How can I help you today?"
    )


class WhatsAppAssistant:

    def __init__(self, client: Optional[WhatsAppClient] = None):
        self.client = client or get_whatsapp_client()

    def answer(self, text: str) -> str:
        entry = search_knowledge_base(text)
        return entry.answer if entry else DEFAULT_RESPONSE

    def handle_incoming_message(self, sender: str, text: str) -> str:
        """Reply to a text message; returns the reply sent."""
        reply = format_response(self.answer(text))
        self.client.send_text_message(sender, reply)
        logger.info(f"Assistant replied to {sender}")
        return reply

    def send_welcome_message(self, sender: str, name: Optional[str] = None) -> str:
        reply = format_response(welcome_message(name))
        self.client.send_text_message(sender, reply)
        return reply

    def send_error_response(self, sender: str) -> None:
        try:
            self.client.send_text_message(sender, f"{RESPONSE_HEADER}\n\n{ERROR_RESPONSE}")
        except WhatsAppError as e:
            logger.error(f"Failed to send error response to {sender}: {e}")
