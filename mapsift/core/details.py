"""
Details pass -- open a business's own place page and fill in what the
result card did not show (price level, plus code, full address, ...).

Only non-empty values are merged, so a detail page that renders less than
the card never wipes data already collected.
"""

import re
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeout

import mapsift.config as cfg
from mapsift.core.classifiers import (
    is_category,
    is_hours_status,
    parse_rating,
)
from mapsift.core.parser import is_ad_redirect, is_website_candidate
from mapsift.models.business import Business
from mapsift.utils.timing import pause

if TYPE_CHECKING:
    from loguru import Logger


DETAILS_SNAPSHOT_JS = """
() => {
    const text = (el) => (el && el.textContent || '').trim();
    const h1 = document.querySelector('h1');
    const hours = document.querySelector('button[data-item-id*="hours"]');
    const category = document.querySelector('button[jsaction*="category"]');
    const price = document.querySelector('[aria-label*="Price"]');
    return {
        heading: text(h1),
        labels: Array.from(document.querySelectorAll('[aria-label]'))
            .map(el => el.getAttribute('aria-label'))
            .filter(Boolean),
        buttonLabels: Array.from(document.querySelectorAll('button[aria-label]'))
            .map(el => el.getAttribute('aria-label')),
        buttonTexts: Array.from(document.querySelectorAll('button'))
            .map(text)
            .filter(t => t && t.length <= 80),
        spans: Array.from(document.querySelectorAll('span'))
            .filter(span => span.children.length === 0)
            .map(text)
            .filter(t => t.length > 3 && t.length < 60),
        links: Array.from(document.querySelectorAll('a[href]')).map(a => ({
            href: a.href,
            ariaLabel: a.getAttribute('aria-label') || '',
            itemId: a.getAttribute('data-item-id') || ''
        })),
        hoursLabel: hours ? hours.getAttribute('aria-label') : null,
        categoryText: text(category) || null,
        priceLabel: price ? price.getAttribute('aria-label') : null
    };
}
"""

_REVIEWS_LABEL_RE = re.compile(r"^(\d[\d,.]*)\s*reviews?\b", re.IGNORECASE)

# aria-label prefix -> Business attribute
_LABELLED_FIELDS = {
    "Address:": "address",
    "Phone:": "phone",
    "Plus code:": "plus_code",
}


def _review_count(snapshot: dict) -> Optional[int]:
    for key in ("labels", "buttonTexts", "spans"):
        for value in snapshot.get(key) or []:
            match = _REVIEWS_LABEL_RE.match(value.strip())
            if match:
                return int(re.sub(r"\D", "", match.group(1)))
    return None


def _website(links: List[dict]) -> Optional[str]:
    def usable(href: str) -> bool:
        return is_website_candidate(href) and not is_ad_redirect(href)

    for link in links:
        if ("Website" in link.get("ariaLabel", "") or "authority" in link.get("itemId", "")) \
                and usable(link.get("href")):
            return link["href"]
    for link in links:
        if "website" in link.get("ariaLabel", "").lower() and usable(link.get("href")):
            return link["href"]
    return None


def parse_details(snapshot: dict) -> Dict[str, Any]:
    """Snake-case field dict ready for ``Business.merge_details``."""
    details: Dict[str, Any] = {"name": snapshot.get("heading") or None}

    for label in snapshot.get("labels") or []:
        if "star" in label.lower():
            details["rating"] = parse_rating(label)
            if details["rating"] is not None:
                break

    details["review_count"] = _review_count(snapshot)

    button_labels = snapshot.get("buttonLabels") or []
    for label in button_labels:
        for prefix, field in _LABELLED_FIELDS.items():
            if label and label.startswith(prefix):
                details[field] = label[len(prefix):].strip() or None

    details["website"] = _website(snapshot.get("links") or [])

    hours = snapshot.get("hoursLabel")
    if not hours:
        hours = next((label for label in button_labels if is_hours_status(label)), None)
    details["hours_status"] = hours

    category = snapshot.get("categoryText")
    if not category:
        category = next((span for span in snapshot.get("spans") or [] if is_category(span)), None)
    details["category"] = category

    details["price_level"] = snapshot.get("priceLabel")
    return details


def extract_details(page, business: Business, *, log: "Logger") -> List[str]:
    """
    Navigate to *business*'s place page and merge what it shows.

    Returns the names of the fields that changed; an empty list when the
    page could not be read.
    """
    log.info("  -> Details for: {}", business.name)
    try:
        page.goto(business.url, wait_until="domcontentloaded", timeout=cfg.NAVIGATION_TIMEOUT)
    except PlaywrightTimeout:
        log.warning("Place page slow to load: {}", business.url)
    except PlaywrightError as exc:
        log.warning("Could not open place page for {}: {}", business.name, exc)
        return []

    try:
        page.wait_for_selector("h1", timeout=cfg.DETAILS_TIMEOUT)
    except PlaywrightTimeout:
        log.warning("No heading on place page for {} -- reading what is there", business.name)
    pause(cfg.PANEL_SETTLE)

    try:
        snapshot = page.evaluate(DETAILS_SNAPSHOT_JS) or {}
    except PlaywrightError as exc:
        log.warning("Details snapshot failed for {}: {}", business.name, exc)
        return []

    updated = business.merge_details(parse_details(snapshot))
    log.info(
        "  Details merged for {} (rating: {}, reviews: {}, updated: {})",
        business.name,
        business.rating,
        business.review_count,
        ", ".join(updated) or "nothing",
    )
    return updated
