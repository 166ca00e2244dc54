"""
Listing extraction -- turns the results feed into ``Business`` records.

One ``page.evaluate`` call snapshots every result card into plain data
(labels, text fragments, links, action-link clusters); all inference then
happens here in Python:

* identity URL + set-based de-duplication
* name from the most specific accessible label
* rating / review count tokens from the card text
* website via a confidence cascade
* category / address / phone / hours via the field classifiers
* sponsored flag, then full-text fallbacks for address and phone

If the feed has no ``role="article"`` cards at all, bare place links are
used instead and only ``name`` + ``url`` are filled.
"""

import re
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional
from urllib.parse import urlparse

import mapsift.config as cfg
from mapsift.core.classifiers import (
    ADDRESS,
    CATEGORY,
    HOURS_STATUS,
    PHONE,
    PRECEDENCE,
    classify,
    fallback_address,
    fallback_phone,
    is_hours_status,
    is_phone,
    parse_rating,
    parse_review_count,
)
from mapsift.core.strategies import first_success
from mapsift.models.business import UNKNOWN_NAME, Business

if TYPE_CHECKING:
    from loguru import Logger


# ── Browser-side snapshot ────────────────────────────────────────────────────

CARD_SNAPSHOT_JS = """
() => {
    const linkInfo = (a) => ({
        href: a.href || a.getAttribute('href') || '',
        ariaLabel: a.getAttribute('aria-label') || '',
        dataValue: a.getAttribute('data-value') || '',
        dataTooltip: a.getAttribute('data-tooltip') || '',
        title: a.getAttribute('title') || ''
    });

    const articles = Array.from(document.querySelectorAll('div[role="article"]')).map(article => {
        const link = article.querySelector('a[href*="/maps/place/"]');

        const fragments = [];
        for (const el of article.querySelectorAll('span, div')) {
            const direct = Array.from(el.childNodes)
                .filter(node => node.nodeType === Node.TEXT_NODE)
                .map(node => node.textContent.trim())
                .join(' ')
                .trim();
            if (direct) fragments.push(direct);
        }
        for (const span of article.querySelectorAll('span')) {
            if (span.children.length === 0) {
                const text = (span.textContent || '').trim();
                if (text) fragments.push(text);
            }
        }

        const clusters = [];
        for (const div of article.querySelectorAll('div')) {
            const hrefs = Array.from(div.querySelectorAll('a[href]'))
                .map(a => a.href || a.getAttribute('href') || '');
            if (hrefs.length >= 2 && hrefs.length <= 6) clusters.push(hrefs);
        }

        return {
            url: link ? link.href : null,
            articleLabel: article.getAttribute('aria-label') || '',
            linkLabel: link ? (link.getAttribute('aria-label') || '') : '',
            linkText: link ? (link.textContent || '').trim() : '',
            text: article.innerText || article.textContent || '',
            fragments: fragments,
            clusters: clusters,
            labels: Array.from(article.querySelectorAll('[aria-label]'))
                .map(el => el.getAttribute('aria-label'))
                .filter(Boolean),
            links: Array.from(article.querySelectorAll('a[href]')).map(linkInfo)
        };
    });

    const anchors = Array.from(document.querySelectorAll('a[href*="/maps/place/"]')).map(a => ({
        url: a.href,
        linkLabel: a.getAttribute('aria-label') || '',
        linkText: (a.textContent || '').trim()
    }));

    return {articles: articles, anchors: anchors};
}
"""

# ── Text helpers ─────────────────────────────────────────────────────────────

# Google concatenates "Name · Category · 4.5(212)" into a single label.
_NAME_SEPARATORS = re.compile(r"[·⋅•]")
_FRAGMENT_SEPARATOR = re.compile(r"\s*·\s*")
_NOISE_RE = re.compile(r"^(?:\d+(?:[.,]\d+)?|\(\s*[\d,.\s]+\))$")
_SPONSORED_RE = re.compile(r"\bsponsored\b", re.IGNORECASE)
_PHONE_LABEL_RE = re.compile(r"phone[:\s]*([+\d\s\-.()]+)", re.IGNORECASE)
_PROVIDER_HOST_RE = re.compile(cfg.PROVIDER_HOST_PATTERN)


def clean_name(raw: Optional[str]) -> Optional[str]:
    """Cut a label at its first separator; None when nothing is left."""
    if not raw:
        return None
    name = _NAME_SEPARATORS.split(raw, 1)[0].strip()
    return name or None


_NAME_STRATEGIES = [
    ("article-label", lambda card: clean_name(card.get("articleLabel"))),
    ("link-label", lambda card: clean_name(card.get("linkLabel"))),
    ("link-text", lambda card: clean_name(card.get("linkText"))),
]


def resolve_name(card: dict) -> str:
    _, name = first_success(_NAME_STRATEGIES, card)
    return name or UNKNOWN_NAME


def split_fragments(fragments: Iterable[str]) -> List[str]:
    """Break '·'-joined fragments apart and drop duplicates, keeping order."""
    seen = set()
    parts: List[str] = []
    for fragment in fragments:
        for part in _FRAGMENT_SEPARATOR.split(fragment or ""):
            part = part.strip()
            if part and part not in seen:
                seen.add(part)
                parts.append(part)
    return parts


def classify_fragments(fragments: Iterable[str], name: str) -> Dict[str, str]:
    """First category, address, phone and hours status found, in precedence."""
    found: Dict[str, str] = {}
    for text in split_fragments(fragments):
        if text == name or _NOISE_RE.match(text):
            continue
        kind = classify(text, claimed=found.keys())
        if kind:
            found[kind] = text
            if len(found) == len(PRECEDENCE):
                break
    return found


# ── Website resolution ───────────────────────────────────────────────────────

def normalise_href(href: Optional[str]) -> str:
    href = (href or "").strip()
    return "https:" + href if href.startswith("//") else href


def is_ad_redirect(href: str) -> bool:
    return cfg.AD_REDIRECT_MARKER in href


def is_social(href: str) -> bool:
    host = urlparse(normalise_href(href)).netloc.lower()
    return any(host == d or host.endswith("." + d) for d in cfg.SOCIAL_DOMAINS)


def is_provider_link(href: str) -> bool:
    """Link back into Google: www/maps hosts on google.<tld>, or a /maps path on another Google host."""
    parsed = urlparse(normalise_href(href))
    match = _PROVIDER_HOST_RE.match(parsed.hostname or "")
    if not match:
        return False
    return (match.group("sub") or "") in cfg.PROVIDER_SUBDOMAINS or parsed.path.startswith("/maps")


def is_website_candidate(href: Optional[str]) -> bool:
    """External http(s) link; Google ad redirects count as external."""
    href = (href or "").strip()
    if not href or href == "#" or href.startswith("javascript:"):
        return False
    if is_ad_redirect(href):
        return True
    if is_provider_link(href):
        return False
    return href.startswith(("http://", "https://", "//"))


def _qualifies(href: Optional[str]) -> bool:
    if not is_website_candidate(href):
        return False
    return is_ad_redirect(href) or not is_social(href)


def _labelled_action(card: dict) -> Optional[str]:
    for link in card.get("links") or []:
        if (
            link.get("dataValue") == "Website"
            or "Website" in (link.get("ariaLabel") or "")
            or "website" in (link.get("dataTooltip") or "").lower()
        ) and _qualifies(link.get("href")):
            return normalise_href(link["href"])
    return None


def _action_cluster(card: dict) -> Optional[str]:
    # Directions / Website / Call buttons sit together in a small group.
    for hrefs in card.get("clusters") or []:
        if not 2 <= len(hrefs) <= 6:
            continue
        for href in hrefs:
            if _qualifies(href):
                return normalise_href(href)
    return None


def _attribute_mention(card: dict) -> Optional[str]:
    for link in card.get("links") or []:
        attrs = " ".join(
            (link.get(key) or "") for key in ("ariaLabel", "dataValue", "dataTooltip", "title")
        ).lower()
        if "website" in attrs and _qualifies(link.get("href")):
            return normalise_href(link["href"])
    return None


def _by_elimination(card: dict) -> Optional[str]:
    external: List[str] = []
    for link in card.get("links") or []:
        href = link.get("href")
        if _qualifies(href):
            href = normalise_href(href)
            if href not in external:
                external.append(href)
    if len(external) == 1:
        return external[0]
    for href in external:
        if not any(marker in href for marker in cfg.TRACKING_MARKERS):
            return href
    return external[0] if external else None


_WEBSITE_STRATEGIES = [
    ("labelled-action", _labelled_action),
    ("action-cluster", _action_cluster),
    ("attribute-mention", _attribute_mention),
    ("elimination", _by_elimination),
]


def resolve_website(card: dict) -> Optional[str]:
    _, website = first_success(_WEBSITE_STRATEGIES, card)
    return website


# ── Card parsing ─────────────────────────────────────────────────────────────

def _labels_pass(labels: Iterable[str], fields: Dict[str, str]) -> None:
    """Pick up phone / hours that only appear in aria-labels."""
    for label in labels:
        if PHONE not in fields:
            match = _PHONE_LABEL_RE.search(label)
            if match and is_phone(match.group(1)):
                fields[PHONE] = match.group(1).strip()
        if HOURS_STATUS not in fields and is_hours_status(label):
            fields[HOURS_STATUS] = label.strip()


def parse_card(card: dict) -> Business:
    """Build a ``Business`` from one article snapshot."""
    url = card["url"].strip()
    name = resolve_name(card)
    text = card.get("text") or ""
    labels = card.get("labels") or []
    label_text = " ".join(labels)

    rating = parse_rating(text)
    if rating is None:
        rating = parse_rating(label_text)
    review_count = parse_review_count(text)
    if review_count is None:
        review_count = parse_review_count(label_text)

    fields = classify_fragments(card.get("fragments") or [], name)
    _labels_pass(labels, fields)
    if ADDRESS not in fields:
        address = fallback_address(text)
        if address:
            fields[ADDRESS] = address
    if PHONE not in fields:
        phone = fallback_phone(text)
        if phone:
            fields[PHONE] = phone

    return Business(
        url=url,
        name=name,
        rating=rating,
        review_count=review_count,
        category=fields.get(CATEGORY),
        address=fields.get(ADDRESS),
        phone=fields.get(PHONE),
        website=resolve_website(card),
        hours_status=fields.get(HOURS_STATUS),
        is_sponsored=bool(_SPONSORED_RE.search(text)),
    )


def parse_anchor(card: dict) -> Business:
    """Degraded record from a bare place link: name + url only."""
    name = clean_name(card.get("linkLabel")) or clean_name(card.get("linkText"))
    return Business(url=card["url"].strip(), name=name or UNKNOWN_NAME)


def _parse_all(cards, parse, max_results: float, log: "Logger", kind: str) -> List[Business]:
    seen: set = set()
    results: List[Business] = []
    for card in cards:
        if len(results) >= max_results:
            break
        try:
            url = (card.get("url") or "").strip()
            if not url or url in seen:
                continue
            seen.add(url)
            results.append(parse(card))
        except Exception as exc:
            log.warning("Failed to parse a {}: {}", kind, exc)
            continue
    return results


def parse_snapshot(snapshot: dict, max_results: float, *, log: "Logger") -> List[Business]:
    """Articles first; bare place links only when there are no articles at all."""
    articles = snapshot.get("articles") or []
    if articles:
        results = _parse_all(articles, parse_card, max_results, log, "card")
        log.info(
            "Extracted {} unique listings (from {} cards)", len(results), len(articles)
        )
        return results

    anchors = snapshot.get("anchors") or []
    log.warning("No result cards found -- falling back to {} place links", len(anchors))
    results = _parse_all(anchors, parse_anchor, max_results, log, "place link")
    log.info("Extracted {} listings in link-only mode", len(results))
    return results


def extract_listings(page, max_results: float, *, log: "Logger") -> List[Business]:
    """
    Parse every result card currently rendered in the feed.

    Parameters
    ----------
    page : Page
        Playwright page showing search results.
    max_results : float
        Cap on returned records (``math.inf`` for no cap).
    log : Logger
        loguru logger for this stage.

    Returns
    -------
    List[Business]
        De-duplicated records in document order.
    """
    snapshot = page.evaluate(CARD_SNAPSHOT_JS) or {}
    return parse_snapshot(snapshot, max_results, log=log)
