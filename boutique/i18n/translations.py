"""Localized notification messages"""

import json
from pathlib import Path
from typing import Any

from boutique.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_LANGUAGES = {
    "pt": "Português",
    "en": "English",
}

DEFAULT_LANGUAGE = "en"

_LOCALES_PATH = Path(__file__).resolve().parent.parent / "locales"

# Cache for loaded translations
_translations: dict[str, dict[str, Any]] = {}


def normalize_language(language_code: str | None) -> str:
    """Normalize a language code ("pt-BR" -> "pt"), falling back to English."""
    if not language_code:
        return DEFAULT_LANGUAGE
    lang = language_code.split("-")[0].lower()
    return lang if lang in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def _load_translations(lang: str) -> dict[str, Any]:
    """Load translations for a language"""
    if lang in _translations:
        return _translations[lang]

    file_path = _LOCALES_PATH / f"{lang}.json"
    if not file_path.exists():
        if lang != DEFAULT_LANGUAGE:
            return _load_translations(DEFAULT_LANGUAGE)
        return {}

    try:
        with open(file_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Failed to load locale %s: %s", lang, type(e).__name__)
        return {}

    if not isinstance(data, dict):
        return {}
    _translations[lang] = data
    return data


def _lookup(translations: dict[str, Any], key: str) -> Any:
    current: Any = translations
    for part in key.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


def get_text(key: str, lang: str = DEFAULT_LANGUAGE, default: str | None = None, **kwargs) -> str:
    """
    Get translated text by key.

    Args:
        key: Translation key, dot notation for nesting (e.g. "cart.item_added")
        lang: Language code (e.g. "pt", "en", "pt-BR")
        default: Value returned when the key is missing everywhere
        **kwargs: Variables to format into the string

    Returns:
        Translated string or key/default if not found
    """
    lang = normalize_language(lang)

    text = _lookup(_load_translations(lang), key)
    if text is None and lang != DEFAULT_LANGUAGE:
        text = _lookup(_load_translations(DEFAULT_LANGUAGE), key)

    if not isinstance(text, str):
        return default if default is not None else key

    if kwargs:
        try:
            return text.format(**kwargs)
        except (KeyError, ValueError, AttributeError):
            return text

    return text


def reload_translations() -> None:
    """Clear translation cache and reload"""
    _translations.clear()
