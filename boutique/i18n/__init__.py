# Internationalization Module
from .translations import SUPPORTED_LANGUAGES, get_text, normalize_language

__all__ = ["SUPPORTED_LANGUAGES", "get_text", "normalize_language"]
