"""
Pattern library for website enrichment: email candidates (plain,
obfuscated, URL-encoded), social profile URLs, and contact-page links.

Nothing here validates an email -- candidates go through
``mapsift.enricher.filters`` afterwards.
"""

import re
from typing import Dict, Iterable, Iterator, List, Optional
from urllib.parse import unquote, urljoin, urlparse

import mapsift.config as cfg

# ── Email patterns ───────────────────────────────────────────────────────────

EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}")

# "foo [at] bar [dot] com", "foo (at) bar (dot) com", "foo @ bar . com"
OBFUSCATED_EMAIL_RES = [
    re.compile(
        r"([a-zA-Z0-9._%+\-]+)\s*\[\s*at\s*\]\s*([a-zA-Z0-9.\-]+)\s*\[\s*dot\s*\]\s*([a-zA-Z]{2,})",
        re.IGNORECASE,
    ),
    re.compile(
        r"([a-zA-Z0-9._%+\-]+)\s*\(\s*at\s*\)\s*([a-zA-Z0-9.\-]+)\s*\(\s*dot\s*\)\s*([a-zA-Z]{2,})",
        re.IGNORECASE,
    ),
    re.compile(r"([a-zA-Z0-9._%+\-]+)\s*@\s*([a-zA-Z0-9.\-]+)\s*\.\s*([a-zA-Z]{2,})"),
]

URLENCODED_EMAIL_RE = re.compile(r"\b([a-zA-Z0-9._+\-]+%40[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,})\b")


def email_candidates(text: Optional[str]) -> Iterator[str]:
    """Yield every raw email-looking string in *text*, obfuscations reversed."""
    text = text or ""
    for match in EMAIL_RE.finditer(text):
        yield match.group(0)
    for pattern in OBFUSCATED_EMAIL_RES:
        for match in pattern.finditer(text):
            yield "{}@{}.{}".format(*match.groups())
    for match in URLENCODED_EMAIL_RE.finditer(text):
        yield unquote(match.group(1))


# ── Social profiles ──────────────────────────────────────────────────────────

def _profile(host: str, path: str) -> re.Pattern:
    # The lookbehind stops "x.com" matching inside "dropbox.com".
    return re.compile(
        r"(?:https?://)?(?<![\w.\-])(?:www\.)?" + host + r"/" + path,
        re.IGNORECASE,
    )


SOCIAL_PATTERNS: Dict[str, List[re.Pattern]] = {
    "facebook": [
        _profile(r"facebook\.com", r"(?:pages/)?[a-zA-Z0-9._%\-]+/?"),
        _profile(r"fb\.com", r"[a-zA-Z0-9._%\-]+/?"),
    ],
    "instagram": [_profile(r"instagram\.com", r"[a-zA-Z0-9._%\-]+/?")],
    "linkedin": [_profile(r"linkedin\.com", r"(?:company|in)/[a-zA-Z0-9._%\-]+/?")],
    "twitter": [
        _profile(r"twitter\.com", r"[a-zA-Z0-9._%\-]+/?"),
        _profile(r"x\.com", r"[a-zA-Z0-9._%\-]+/?"),
    ],
    "youtube": [_profile(r"youtube\.com", r"(?:channel/|c/|user/|@)[a-zA-Z0-9._%\-/]+")],
    "tiktok": [_profile(r"tiktok\.com", r"@[a-zA-Z0-9._%\-]+/?")],
}


def normalise_profile_url(raw: str) -> str:
    url = raw.lower().rstrip("/")
    return url if url.startswith("http") else "https://" + url


def is_profile_url(url: str, excluded_paths: Optional[Iterable[str]] = None) -> bool:
    """False for bare domains and share/tracking endpoints."""
    excluded = cfg.SOCIAL_EXCLUDED_PATHS if excluded_paths is None else excluded_paths
    segments = [s for s in urlparse(url).path.split("/") if s]
    if not segments:
        return False
    first = segments[0].lower()
    return first not in excluded and first.split(".")[0] not in excluded


def extract_social(
    content: Optional[str],
    links: Iterable[str] = (),
    excluded_paths: Optional[Iterable[str]] = None,
) -> Dict[str, str]:
    """First usable profile URL per platform found in *content* + *links*."""
    haystack = (content or "") + " " + " ".join(links)
    social: Dict[str, str] = {}
    for platform, patterns in SOCIAL_PATTERNS.items():
        for pattern in patterns:
            for match in pattern.finditer(haystack):
                url = normalise_profile_url(match.group(0))
                if is_profile_url(url, excluded_paths):
                    social[platform] = url
                    break
            if platform in social:
                break
    return social


# ── Contact page ─────────────────────────────────────────────────────────────

def _bare_host(url: str) -> str:
    host = urlparse(url).hostname or ""
    return host[4:] if host.startswith("www.") else host


def find_contact_page(
    links: Iterable[str],
    base_url: str,
    hints: Optional[Iterable[str]] = None,
) -> Optional[str]:
    """First same-site link whose path contains a contact/about hint."""
    hints = list(cfg.CONTACT_PAGE_HINTS if hints is None else hints)
    base_host = _bare_host(base_url)
    if not base_host:
        return None
    for link in links:
        url = urljoin(base_url, link)
        host = _bare_host(url)
        if not host or not (base_host in host or host in base_host):
            continue
        path = urlparse(url).path.lower()
        if any(hint in path for hint in hints):
            return url
    return None
