"""
Email validation and junk filtering.

Catches placeholder, system, tracking-noise and image-extension addresses
before they reach the output.  The denylist is a list of regexes in
``mapsift.config`` and every helper accepts a replacement list.
"""

import re
from typing import Iterable, Optional
from urllib.parse import unquote

import mapsift.config as cfg

# ── Core email format regex ──────────────────────────────────────────────

_EMAIL_FORMAT_RE = re.compile(
    r"^[a-z0-9._%+\-]+@[a-z0-9.\-]+\.[a-z]{2,}$"
)


def is_valid_email(
    email: Optional[str],
    invalid_patterns: Optional[Iterable[str]] = None,
) -> bool:
    """
    Return True only if *email* passes length, format and denylist checks.
    """
    if not email:
        return False

    email = email.strip().lower()

    if not cfg.EMAIL_MIN_LENGTH <= len(email) <= cfg.EMAIL_MAX_LENGTH:
        return False

    # Exactly one "@" and a TLD of at least two letters
    if not _EMAIL_FORMAT_RE.match(email):
        return False

    patterns = cfg.INVALID_EMAIL_PATTERNS if invalid_patterns is None else invalid_patterns
    for pattern in patterns:
        if re.search(pattern, email, re.IGNORECASE):
            return False

    return True


def clean_email(
    raw: Optional[str],
    invalid_patterns: Optional[Iterable[str]] = None,
) -> Optional[str]:
    """
    Normalise and validate a raw email string.

    Returns the cleaned, lowercase email or None if invalid.
    """
    if not raw:
        return None
    cleaned = unquote(raw).strip().lower()
    if cleaned.startswith("mailto:"):
        cleaned = cleaned[len("mailto:"):]
    # Remove trailing query strings or anchors that sometimes stick
    cleaned = cleaned.split("?")[0].split("#")[0].rstrip(".")
    if is_valid_email(cleaned, invalid_patterns):
        return cleaned
    return None
