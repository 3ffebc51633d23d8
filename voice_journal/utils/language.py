"""
Language code utilities for ElevenLabs transcription.

The speech-to-text service takes ISO 639-3 style 3-letter codes ("eng",
"deu", ...). Browser locales are 2-letter based ("de-DE"), so locale guesses
are mapped through a static table.
"""
from typing import Dict, Iterable, List, Optional

# Display order matches the settings screen
SUPPORTED_LANGUAGES: Dict[str, str] = {
    "eng": "English",
    "spa": "Spanish",
    "fra": "French",
    "deu": "German",
    "ita": "Italian",
    "por": "Portuguese",
    "rus": "Russian",
    "jpn": "Japanese",
    "kor": "Korean",
    "zho": "Chinese",
}

LOCALE_TO_SERVICE_CODE: Dict[str, str] = {
    "en": "eng",
    "es": "spa",
    "fr": "fra",
    "de": "deu",
    "it": "ita",
    "pt": "por",
    "ru": "rus",
    "ja": "jpn",
    "ko": "kor",
    "zh": "zho",
}


def validate_language_code(language: str) -> bool:
    """
    Validate if a language code is supported by the transcription service.

    Example:
        >>> validate_language_code("eng")
        True
        >>> validate_language_code("en")
        False
    """
    return language in SUPPORTED_LANGUAGES


def get_supported_languages() -> List[Dict[str, str]]:
    """Return the supported languages as code/name pairs."""
    return [{"code": code, "name": name} for code, name in SUPPORTED_LANGUAGES.items()]


def language_from_locale(locale: Optional[str]) -> Optional[str]:
    """
    Guess a service language code from a browser locale or Accept-Language header.

    Only the first (highest priority) locale is considered. Unmapped locales
    return None so callers fall through to their default.

    Example:
        >>> language_from_locale("de-DE,de;q=0.9,en;q=0.8")
        'deu'
        >>> language_from_locale("nl-NL") is None
        True
    """
    if not locale:
        return None
    first = locale.split(",")[0].split(";")[0].strip()
    prefix = first.replace("_", "-").split("-")[0].lower()
    return LOCALE_TO_SERVICE_CODE.get(prefix)


def _candidates(
    explicit: Optional[str],
    default_language: Optional[str],
    auto_detect: bool,
    locale: Optional[str],
) -> Iterable[Optional[str]]:
    yield explicit
    if auto_detect:
        yield language_from_locale(locale)
    else:
        yield default_language


def resolve_language(
    explicit: Optional[str] = None,
    default_language: Optional[str] = None,
    auto_detect: bool = True,
    locale: Optional[str] = None,
    fallback: str = "eng",
) -> str:
    """
    Pick the transcription language.

    Precedence: explicit code from the caller, then the user's manually
    selected language (only when auto-detect is off), then the locale guess
    (only when auto-detect is on), then ``fallback``. Unsupported codes are
    skipped.

    Args:
        explicit: Code passed with the request
        default_language: User settings' default language
        auto_detect: User settings' auto-detect flag
        locale: Browser locale or Accept-Language header value
        fallback: Code used when nothing else applies

    Returns:
        3-letter service language code
    """
    for candidate in _candidates(explicit, default_language, auto_detect, locale):
        if candidate and validate_language_code(candidate):
            return candidate
    return fallback
