"""
Multilingual WhatsApp message templates.

Texts are keyed by locale code (en, fr, ar); unknown locales fall back to
English.
"""
from typing import Optional

FALLBACK_LOCALE = 'en'

VERIFICATION_CODE = {
    'en': "Your Costabeach verification code is: {code}. This code will expire in 10 minutes.",
    'fr': "Votre code de vérification Costabeach est: {code}. Ce code expire dans 10 minutes.",
    'ar': "رمز التحقق الخاص بك في كوستا بيتش هو: {code}. ينتهي صلاحية هذا الرمز خلال 10 دقائق.",
}

WEEKLY_DIGEST = {
    'en': "📋 Weekly Costabeach Update ({week_range})\n\n📄 {new_documents} new documents\n"
          "🗳️ {new_polls} new polls\n\nView details: {link}",
    'fr': "📋 Mise à jour hebdomadaire Costabeach ({week_range})\n\n📄 {new_documents} nouveaux documents\n"
          "🗳️ {new_polls} nouveaux sondages\n\nVoir les détails: {link}",
    'ar': "📋 تحديث كوستا بيتش الأسبوعي ({week_range})\n\n📄 {new_documents} وثائق جديدة\n"
          "🗳️ {new_polls} استطلاعات جديدة\n\nعرض التفاصيل: {link}",
}

DOCUMENT_NOTIFICATION = {
    'en': "📄 New document available: \"{title}\"\nCategory: {category}\n\nView document: {link}",
    'fr': "📄 Nouveau document disponible: \"{title}\"\nCatégorie: {category}\n\nVoir le document: {link}",
    'ar': "📄 وثيقة جديدة متاحة: \"{title}\"\nالفئة: {category}\n\nعرض الوثيقة: {link}",
}

POLL_NOTIFICATION = {
    'en': "🗳️ New poll: \"{question}\"\n{end_date_line}\n\nVote now: {link}",
    'fr': "🗳️ Nouveau sondage: \"{question}\"\n{end_date_line}\n\nVotez maintenant: {link}",
    'ar': "🗳️ استطلاع جديد: \"{question}\"\n{end_date_line}\n\nصوت الآن: {link}",
}

POLL_END_DATE = {
    'en': "Ends: {end_date}",
    'fr': "Se termine le: {end_date}",
    'ar': "ينتهي في: {end_date}",
}

QA_WELCOME = {
    'en': "🤖 Welcome to Costabeach Assistant!\n\nI can help you find information about:\n"
          "• HOA documents\n• Building regulations\n• Community announcements\n• Meeting minutes\n\n"
          "Just ask me any question!",
    'fr': "🤖 Bienvenue dans l'Assistant Costabeach!\n\nJe peux vous aider à trouver des informations sur:\n"
          "• Documents de copropriété\n• Règlements du bâtiment\n• Annonces communautaires\n"
          "• Procès-verbaux de réunions\n\nPosez-moi simplement une question!",
    'ar': "🤖 مرحباً بك في مساعد كوستا بيتش!\n\nيمكنني مساعدتك في العثور على معلومات حول:\n"
          "• وثائق اتحاد الملاك\n• لوائح البناء\n• إعلانات المجتمع\n• محاضر الاجتماعات\n\n"
          "فقط اسألني أي سؤال!",
}

TEMPLATES = {
    'verification_code': VERIFICATION_CODE,
    'weekly_digest': WEEKLY_DIGEST,
    'document_notification': DOCUMENT_NOTIFICATION,
    'poll_notification': POLL_NOTIFICATION,
    'qa_welcome': QA_WELCOME,
}


def _pick(texts: dict, locale: str) -> str:
    return texts.get(locale) or texts[FALLBACK_LOCALE]


def render(template_name: str, locale: str = FALLBACK_LOCALE, **params) -> str:
    if template_name not in TEMPLATES:
        raise KeyError(template_name)
    return _pick(TEMPLATES[template_name], locale).format(**params)


def verification_code(code: str, locale: str = FALLBACK_LOCALE) -> str:
    return render('verification_code', locale, code=code)


def weekly_digest(new_documents: int, new_polls: int, week_range: str, link: str,
                  locale: str = FALLBACK_LOCALE) -> str:
    return render('weekly_digest', locale, new_documents=new_documents, new_polls=new_polls,
                  week_range=week_range, link=link)


def document_notification(title: str, category: str, link: str, locale: str = FALLBACK_LOCALE) -> str:
    return render('document_notification', locale, title=title, category=category, link=link)


def poll_notification(question: str, link: str, end_date: Optional[str] = None,
                      locale: str = FALLBACK_LOCALE) -> str:
    end_date_line = _pick(POLL_END_DATE, locale).format(end_date=end_date) if end_date else ''
    return render('poll_notification', locale, question=question, end_date_line=end_date_line, link=link)


def qa_welcome(locale: str = FALLBACK_LOCALE) -> str:
    return render('qa_welcome', locale)
