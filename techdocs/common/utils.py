"""Common text utilities.

Text handling contract
----------------------
* Incoming documents and user inputs have BOM markers stripped at the
  boundary so downstream processing does not see spurious characters.
* Keyword scoring, excerpts and highlighting share one tokenizer so a term
  that matched in the index is also found when building the excerpt.
"""

import re
import unicodedata

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def clean_text(text: str, *, normalize: bool = True, ascii_only: bool = False) -> str:
    """Remove BOM markers and optionally normalize/ASCII-fold text.

    Args:
        text: Input text that may contain BOM or special characters.
        normalize: Whether to apply NFKC normalization. Enabled by default.
        ascii_only: Whether to discard non-ASCII characters.

    Returns:
        Cleaned text with BOMs removed and optional normalization applied.
    """
    if not text:
        return ""

    cleaned = text.replace("\ufeff", "").replace("\ufffd", "")
    if normalize:
        cleaned = unicodedata.normalize("NFKC", cleaned)
    if ascii_only:
        cleaned = cleaned.encode("ascii", errors="ignore").decode("ascii")
    return cleaned


def normalize_text(text: str) -> str:
    """Clean text and strip surrounding whitespace."""
    return clean_text(text).strip()


def tokenize(text: str) -> list[str]:
    """Lowercased word tokens of ``text``."""
    return [token.lower() for token in _TOKEN_RE.findall(text or "")]


def query_terms(query: str, min_length: int = 2) -> list[str]:
    """Distinct query tokens in first-seen order, dropping very short ones."""
    seen: dict[str, None] = {}
    for token in tokenize(query):
        if len(token) >= min_length:
            seen.setdefault(token, None)
    return list(seen)
