"""Languages supported by the portal and helpers to move between their codes."""
from django.db import models


class Language(models.TextChoices):
    FRENCH = 'french', 'French'
    ENGLISH = 'english', 'English'
    ARABIC = 'arabic', 'Arabic'


DEFAULT_LANGUAGE = Language.FRENCH

ALL_LANGUAGES = [Language.FRENCH, Language.ENGLISH, Language.ARABIC]

# ISO 639-1 codes used by the UI and in message templates
LANGUAGE_CODES = {
    Language.FRENCH: 'fr',
    Language.ENGLISH: 'en',
    Language.ARABIC: 'ar',
}


def get_language_label(language: str) -> str:
    """Human-readable English label, or the raw value if unknown."""
    try:
        return Language(language).label
    except ValueError:
        return language


def to_locale_code(language: str) -> str:
    return LANGUAGE_CODES.get(language, 'fr')


def from_locale_code(code: str) -> str:
    """Accept either a locale code ('fr') or a language value ('french')."""
    code = (code or '').lower()
    for language, locale_code in LANGUAGE_CODES.items():
        if code in (locale_code, language.value):
            return language.value
    raise ValueError(f"Unsupported language: {code}")
