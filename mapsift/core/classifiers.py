"""
Field classifiers -- decide what a loose text fragment from a result card
actually is.

Google Maps cards are a soup of anonymous ``<span>``/``<div>`` elements, so
each fragment is run through small rule sets:

1. length bounds (reject paragraph dumps and single characters)
2. a deny-list of things known NOT to be that kind
3. an allow-list of domain patterns

``classify`` applies them in precedence order
category > address > phone > hours_status.  Everything here is pure.
"""

import re
from typing import Callable, Dict, Iterable, List, Optional

# ── Field kinds ───────────────────────────────────────────────────────────────

CATEGORY = "category"
ADDRESS = "address"
PHONE = "phone"
HOURS_STATUS = "hours_status"

PRECEDENCE = (CATEGORY, ADDRESS, PHONE, HOURS_STATUS)


def _compile(patterns: Iterable[str]) -> List[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


# ── Category rules ────────────────────────────────────────────────────────────

_CATEGORY_DENY = _compile([
    r"^sponsored$",
    r"^\d",                                  # ratings, street numbers
    r"^\(",                                  # review counts
    r"^open",
    r"^closed",
    r"^closes",
    r"^(temporarily|permanently) closed",
    r"^[$€£¥]+",                             # price level
    r"^(website|directions|call|share|save|more info|order online)$",
    r"^(book online|reserve a table|get quote|menu)$",
    r"^reviews?$",
    r"\bstars?\b",
    r"\breviews?\b",
    r"[·⋅•]",
    r"^(dine-in|takeout|take-out|delivery|no-contact delivery|curbside pickup)$",
    r"^(in-store shopping|in-store pickup|drive-through|on-?site services)$",
    r"^(online appointments|online estimates|onsite services)$",
    r"^[\W_]+$",
])

_CATEGORY_KEYWORDS = _compile([
    r"service", r"cleaning", r"restaurant", r"cafe", r"café", r"coffee",
    r"shop", r"store", r"salon", r"hotel", r"bar$", r"pub$", r"club",
    r"gym", r"spa$", r"clinic", r"hospital", r"school", r"bank", r"agency",
    r"office", r"center", r"centre", r"company", r"contractor", r"plumber",
    r"electrician", r"mechanic", r"repair", r"rental", r"dealer",
    r"supplier", r"market", r"bakery", r"pharmacy", r"dentist", r"doctor",
    r"lawyer", r"attorney", r"accountant", r"consultant", r"cleaners",
    r"pizzeria", r"studio", r"gallery", r"museum", r"florist", r"garage",
])

# Short capitalised phrase: "Bicycle repair", "Roofing contractor"
_GENERIC_CATEGORY = re.compile(r"^[A-Z][a-z]+(?:\s+[a-z]+)*$")
_CATEGORY_MAX_WORDS = 4


def is_category(text: Optional[str]) -> bool:
    """True when *text* reads like a business type."""
    text = (text or "").strip()
    if not 3 <= len(text) <= 60:
        return False
    if any(p.search(text) for p in _CATEGORY_DENY):
        return False
    if any(p.search(text) for p in _CATEGORY_KEYWORDS):
        return True
    return bool(_GENERIC_CATEGORY.match(text)) and len(text.split()) <= _CATEGORY_MAX_WORDS


# ── Address rules ─────────────────────────────────────────────────────────────

_HOURS_RE = re.compile(
    r"^(open|closed|opens|closes|temporarily closed|permanently closed"
    r"|hours might differ)",
    re.IGNORECASE,
)

_ADDRESS_DENY = _compile([
    r"^sponsored$",
    r"^\d+(?:[.,]\d+)?$",                    # pure numerics
    r"^\d[.,]\d\s*\(",                       # "4.5(212)"
    r"^\(\s*\d[\d,.\s]*\)$",                 # "(212)"
    r"\breviews?\b",
    r"\b(opens|closes)\b",
    r"^[\d+\-.\s()]+$",                      # phone-shaped
    r"·",
])

_ADDRESS_PATTERNS = _compile([
    r"^\d+\s+[A-Za-z]",                      # "123 Main St"
    r"\d+[A-Za-z]?\s+[A-Za-z]",              # "12B Baker St"
    r"straat", r"weg$", r"laan$", r"plein", r"gracht", r"kade",
    r"stra(ss|ß)e", r"gasse",
    r"street", r"road", r"avenue", r"drive", r"boulevard", r"lane",
    r"place", r"court", r"square", r"highway", r"parkway",
    r"\brue\b", r"\bcalle\b", r"\bvia\b", r"\bpiazza\b",
    r",\s*[A-Z][a-z]+",                      # ", Amsterdam"
])


def is_address(text: Optional[str]) -> bool:
    """True when *text* reads like a street address or locality."""
    text = (text or "").strip()
    if not 5 <= len(text) <= 150:
        return False
    if _HOURS_RE.match(text):
        return False
    if any(p.search(text) for p in _ADDRESS_DENY):
        return False
    return any(p.search(text) for p in _ADDRESS_PATTERNS)


# ── Phone rules ───────────────────────────────────────────────────────────────

_PHONE_CHARS = re.compile(r"^[\d+\-.\s()]+$")
_PHONE_STRIP = re.compile(r"[\s\-.()]")


def is_phone(text: Optional[str]) -> bool:
    """Digit-density test: 7-15 digits and nothing but phone characters."""
    text = (text or "").strip()
    if not 7 <= len(text) <= 25:
        return False
    if not _PHONE_CHARS.match(text):
        return False
    digits = sum(ch.isdigit() for ch in _PHONE_STRIP.sub("", text))
    return 7 <= digits <= 15


# ── Hours status rules ────────────────────────────────────────────────────────

def is_hours_status(text: Optional[str]) -> bool:
    """'Open ⋅ Closes 9 PM', 'Closed ⋅ Opens 8 AM', 'Open 24 hours'..."""
    text = (text or "").strip()
    if not 4 <= len(text) <= 120:
        return False
    return bool(_HOURS_RE.match(text))


_CLASSIFIERS: Dict[str, Callable[[Optional[str]], bool]] = {
    CATEGORY: is_category,
    ADDRESS: is_address,
    PHONE: is_phone,
    HOURS_STATUS: is_hours_status,
}


def classify(text: Optional[str], claimed: Iterable[str] = ()) -> Optional[str]:
    """
    Return the first field kind (in precedence order) that *text* matches,
    skipping kinds already *claimed* for the current card.
    """
    claimed = set(claimed)
    for kind in PRECEDENCE:
        if kind in claimed:
            continue
        if _CLASSIFIERS[kind](text):
            return kind
    return None


# ── Full-text token scanners ──────────────────────────────────────────────────

# "4.5(212)", "4,5 (1.234)", "4.5 stars"
_RATING_RE = re.compile(
    r"(?<![\d.,])(\d{1,2}(?:[.,]\d{1,2})?)\s*(?:stars?\b|\()",
    re.IGNORECASE,
)
_RATED_COUNT_RE = re.compile(r"\d[.,]\d\s*\(\s*(\d[\d,.\s]*)\s*\)")
_PAREN_COUNT_RE = re.compile(r"\(\s*(\d[\d,.\s]*)\s*\)")
_LABEL_COUNT_RE = re.compile(r"(\d[\d,.]*)\s*reviews?\b", re.IGNORECASE)


def parse_rating(text: Optional[str]) -> Optional[float]:
    """First rating token within 1.0-5.0; out-of-range tokens are skipped."""
    for match in _RATING_RE.finditer(text or ""):
        try:
            value = float(match.group(1).replace(",", "."))
        except ValueError:
            continue
        if 1.0 <= value <= 5.0:
            return value
    return None


def _to_int(raw: str) -> Optional[int]:
    digits = re.sub(r"\D", "", raw)
    return int(digits) if digits else None


def parse_review_count(text: Optional[str]) -> Optional[int]:
    """Review count from '4.5(1,234)', '1,234 reviews' or a bare '(1,234)'."""
    text = text or ""
    for pattern in (_RATED_COUNT_RE, _LABEL_COUNT_RE, _PAREN_COUNT_RE):
        match = pattern.search(text)
        if match:
            return _to_int(match.group(1))
    return None


# ── Full-text fallbacks (used only when fragment classification failed) ──────

_STREET_VOCAB = (
    r"straat|weg|laan|plein|gracht|kade|stra(?:ss|ß)e|gasse|"
    r"street|st\.|road|rd\.|avenue|ave\.?|drive|dr\.|boulevard|blvd|lane|"
    r"way|court|place|square|highway|parkway|"
    r"rue|calle|avenida|via|viale|piazza"
)

_FALLBACK_ADDRESS_TEMPLATES = [
    # "· 123 Main Street"
    re.compile(r"·\s*(\d+[^·⋅\n]*?(?:" + _STREET_VOCAB + r")[^·⋅\n]*)", re.IGNORECASE),
    # "· Damstraat 12"
    re.compile(
        r"·\s*([A-Z][^·⋅\n]*?(?:straat|weg|laan|plein|gracht|kade|stra(?:ss|ß)e|gasse)"
        r"\s*\d+[^·⋅\n]*)",
        re.IGNORECASE,
    ),
]

_FALLBACK_PHONE_TEMPLATES = [
    re.compile(r"(\+?\d{1,3}[\s\-]?\d{2,4}[\s\-]?\d{3}[\s\-]?\d{2,4})"),
    re.compile(r"(0\d{2}[\s\-]?\d{3}[\s\-]?\d{4})"),
    re.compile(r"(\d{3}[\s\-]?\d{3}[\s\-]?\d{4})"),
]
_FALLBACK_PHONE_MIN_DIGITS = 9


def fallback_address(text: Optional[str]) -> Optional[str]:
    for template in _FALLBACK_ADDRESS_TEMPLATES:
        match = template.search(text or "")
        if match:
            return match.group(1).strip()
    return None


def fallback_phone(text: Optional[str]) -> Optional[str]:
    for template in _FALLBACK_PHONE_TEMPLATES:
        match = template.search(text or "")
        if match and len(re.sub(r"[\s\-]", "", match.group(1))) >= _FALLBACK_PHONE_MIN_DIGITS:
            return match.group(1).strip()
    return None
