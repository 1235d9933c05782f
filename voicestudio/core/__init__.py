"""Core package.

Keep this file lightweight: importing `voicestudio.core` must not open the
database. The text pipeline lives in `voicestudio.core.text`.
"""

from .text import (
    SanitizationEmptyResult,
    sanitize_for_tts,
    sanitize_prompt,
    validate_text_length,
)

__all__ = ["SanitizationEmptyResult", "sanitize_for_tts", "sanitize_prompt", "validate_text_length"]
