"""Text cleanup for the speech provider.

Two entry points: `sanitize_for_tts` keeps paragraph breaks (they read as
pauses), `sanitize_prompt` flattens voice directions to one line.
`validate_text_length` bounds either result.
"""
from __future__ import annotations

import re


class SanitizationEmptyResult(ValueError):
    """Raised when nothing speakable is left after sanitizing a script."""

    def __init__(self, message: str = "Text is empty after sanitization") -> None:
        super().__init__(message)


# Typographic punctuation and symbols -> ASCII.
# No replacement value may contain a key, so a single pass is enough.
SMART_CHARACTERS: dict[str, str] = {
    # quotes
    "\u2019": "'",
    "\u2018": "'",
    "\u201A": "'",
    "\u201C": '"',
    "\u201D": '"',
    "\u201E": '"',
    # dashes
    "\u2013": "-",   # en dash
    "\u2014": "--",  # em dash
    "\u2015": "--",  # horizontal bar
    "\u2026": "...",
    # symbols
    "\u2022": "*",          # bullet
    "\u00B0": " degrees ",
    "\u2122": "TM",
    "\u00AE": "(R)",
    "\u00A9": "(C)",
    "\u00D7": "x",
    "\u00F7": "/",
    # spaces and separators
    "\u00A0": " ",   # no-break space
    "\u2009": " ",   # thin space
    "\u200A": " ",   # hair space
    "\u200B": "",    # zero-width space
    "\N{ZERO WIDTH NO-BREAK SPACE}": "",  # BOM
    "\u2028": "\n",
    "\u2029": "\n",
}

# Accented Latin letters -> unaccented ASCII.
ACCENTS: dict[str, str] = {
    "à": "a", "á": "a", "ä": "a", "â": "a", "ã": "a", "å": "a", "ā": "a",
    "è": "e", "é": "e", "ë": "e", "ê": "e", "ē": "e", "ė": "e", "ę": "e",
    "ì": "i", "í": "i", "ï": "i", "î": "i", "ī": "i", "į": "i",
    "ò": "o", "ó": "o", "ö": "o", "ô": "o", "õ": "o", "ō": "o",
    "ù": "u", "ú": "u", "ü": "u", "û": "u", "ū": "u",
    "ñ": "n", "ň": "n", "ń": "n",
    "ç": "c", "č": "c", "ć": "c",
    "ž": "z", "ź": "z", "ż": "z",
    "š": "s", "ś": "s",
    "ÿ": "y", "ý": "y",
    "À": "A", "Á": "A", "Ä": "A", "Â": "A", "Ã": "A", "Å": "A", "Ā": "A",
    "È": "E", "É": "E", "Ë": "E", "Ê": "E", "Ē": "E",
    "Ì": "I", "Í": "I", "Ï": "I", "Î": "I", "Ī": "I",
    "Ò": "O", "Ó": "O", "Ö": "O", "Ô": "O", "Õ": "O", "Ō": "O",
    "Ù": "U", "Ú": "U", "Ü": "U", "Û": "U", "Ū": "U",
    "Ñ": "N", "Ň": "N", "Ń": "N",
    "Ç": "C", "Č": "C", "Ć": "C",
    "Ž": "Z", "Ź": "Z", "Ż": "Z",
    "Š": "S", "Ś": "S",
    "Ÿ": "Y", "Ý": "Y",
}

_SMART_TABLE = str.maketrans(SMART_CHARACTERS)
_ACCENT_TABLE = str.maketrans(ACCENTS)

# Pre-compiled patterns
_CRLF = re.compile(r"\r\n?")                 # \r\n and lone \r
_EXTRA_BREAKS = re.compile(r"\n{3,}")
_NON_ASCII = re.compile(r"[^\x00-\x7F]")
_HSPACE = re.compile(r"[ \t]+")
_LEADING = re.compile(r"^ +", re.M)
_TRAILING = re.compile(r" +$", re.M)
_SENTENCE_END = ".?!"


def replace_smart_characters(text: str) -> str:
    return text.translate(_SMART_TABLE)


def normalize_line_breaks(text: str) -> str:
    """Uniform `\\n` breaks with at most one blank line between paragraphs.

    Lines are trimmed. A blank line survives only between a non-blank line
    and some following line; leading and trailing blanks are dropped.
    """
    s = _CRLF.sub("\n", text)
    s = _EXTRA_BREAKS.sub("\n\n", s)

    lines = [line.strip() for line in s.split("\n")]
    last = len(lines) - 1
    kept = []
    for i, line in enumerate(lines):
        if line == "" and not (0 < i < last and lines[i - 1] != ""):
            continue
        kept.append(line)
    return "\n".join(kept)


def sanitize_non_ascii(text: str) -> str:
    """Transliterate what we know and silently drop the rest above U+007F."""
    s = replace_smart_characters(text)
    s = s.translate(_ACCENT_TABLE)
    return _NON_ASCII.sub("", s)


def clean_whitespace(text: str) -> str:
    s = _HSPACE.sub(" ", text)
    s = _LEADING.sub("", s)
    s = _TRAILING.sub("", s)
    return s.strip()


def sanitize_for_tts(text: str) -> str:
    """Prepare a spoken script. Raises SanitizationEmptyResult if nothing is left."""
    if not text:
        return ""
    s = normalize_line_breaks(text)
    s = sanitize_non_ascii(s)
    s = clean_whitespace(s)
    # separators and invisible-only lines only turn into breaks or blanks above
    s = normalize_line_breaks(s)
    if not s.strip():
        raise SanitizationEmptyResult()
    return s


def sanitize_prompt(text: str) -> str:
    # An empty prompt is valid: no voice direction at all.
    if not text:
        return ""
    s = sanitize_non_ascii(text)
    s = s.replace("\n", " ")
    return clean_whitespace(s)


def validate_text_length(text: str, max_length: int) -> str:
    """Bound `text` to `max_length`, preferring sentence then word boundaries.

    The ellipsis paths may return up to `max_length + 3` characters.
    """
    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    sentence_end = max(truncated.rfind(ch) for ch in _SENTENCE_END)
    if sentence_end >= max_length * 0.8:
        return truncated[: sentence_end + 1].strip()

    last_space = truncated.rfind(" ")
    if last_space >= max_length * 0.9:
        return truncated[:last_space].strip() + "..."

    return truncated.strip() + "..."
