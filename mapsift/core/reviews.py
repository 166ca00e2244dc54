"""
Review extraction -- open one business's panel from the results feed, load
its reviews, read them, and put the feed back the way it was.

The panel walks through a fixed sequence of states::

    CLOSED -> LISTING_CLICKED -> SIDEBAR_LOADED -> REVIEWS_TAB_OPEN
           -> REVIEWS_SCROLLED -> EXTRACTED -> CLOSED

Every browser-side lookup is a cascade of small scripts combined with
``first_success``; parsing of the review snapshot happens in Python.
Whatever goes wrong, the panel is closed again so the next business can
be clicked.
"""

import math
import re
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, NamedTuple, Optional

from playwright.sync_api import TimeoutError as PlaywrightTimeout

import mapsift.config as cfg
from mapsift.core.classifiers import is_address, is_hours_status, is_phone
from mapsift.core.error_handler import check_bot_wall
from mapsift.core.scroller import reviews_scroller
from mapsift.core.strategies import CLICK_FIRST_JS, first_success, js_strategy
from mapsift.exceptions import BotWallDetected
from mapsift.models.business import Business, Review
from mapsift.utils.timing import pause

if TYPE_CHECKING:
    from loguru import Logger


# ── Browser-side scripts ─────────────────────────────────────────────────────

ON_FEED_JS = """
() => !!document.querySelector('[role="feed"]')
    || document.querySelectorAll('div[role="article"]').length > 0
"""

IN_DETAIL_JS = """
() => !!document.querySelector('h1') && !document.querySelector('[role="feed"]')
"""

SIDEBAR_READY_JS = """
() => !!document.querySelector('h1') || document.querySelectorAll('[role="tab"]').length > 0
"""

_NORMALISE_JS = "const normalise = (s) => (s || '').toLowerCase().replace(/[^a-z0-9]/g, '');"

CLICK_BY_URL_JS = """
(target) => {
    for (const link of document.querySelectorAll('a[href*="/maps/place/"]')) {
        if (link.href === target.url) { link.click(); return true; }
    }
    return false;
}
"""

CLICK_BY_URL_NAME_JS = """
(target) => {
    %s
    const name = normalise(target.name);
    if (!name) return false;
    for (const link of document.querySelectorAll('a[href*="/maps/place/"]')) {
        const match = link.href.match(/\\/maps\\/place\\/([^/]+)/);
        if (!match) continue;
        const place = normalise(decodeURIComponent(match[1]).replace(/\\+/g, ' '));
        if (place && (place.includes(name) || name.includes(place))) { link.click(); return true; }
    }
    return false;
}
""" % _NORMALISE_JS

CLICK_BY_ARTICLE_LABEL_JS = """
(target) => {
    %s
    const name = normalise(target.name);
    if (!name) return false;
    for (const article of document.querySelectorAll('div[role="article"]')) {
        const label = normalise(article.getAttribute('aria-label'));
        if (label && (label.includes(name) || name.includes(label))) {
            const link = article.querySelector('a[href*="/maps/place/"]');
            (link || article).click();
            return true;
        }
    }
    return false;
}
""" % _NORMALISE_JS

CLICK_BY_LINK_TEXT_JS = """
(target) => {
    %s
    const name = normalise(target.name);
    if (!name) return false;
    for (const link of document.querySelectorAll('a[href*="/maps/place/"]')) {
        const text = normalise(link.textContent || link.getAttribute('aria-label'));
        if (text && (text.includes(name) || name.includes(text))) { link.click(); return true; }
    }
    return false;
}
""" % _NORMALISE_JS

REVIEWS_TAB_JS = """
() => {
    for (const tab of document.querySelectorAll('[role="tab"]')) {
        const label = (tab.getAttribute('aria-label') || '').toLowerCase();
        const text = (tab.textContent || '').toLowerCase();
        if (label.includes('reviews') || text.includes('reviews')) { tab.click(); return true; }
    }
    return false;
}
"""

REVIEWS_BUTTON_JS = """
() => {
    for (const button of document.querySelectorAll('button')) {
        const label = (button.getAttribute('aria-label') || '').toLowerCase();
        const text = (button.textContent || '').toLowerCase();
        if (text.includes('write')) continue;
        if (label.includes('reviews') || (text.includes('reviews') && !text.includes('more reviews'))) {
            button.click();
            return true;
        }
    }
    return false;
}
"""

REVIEW_COUNT_BUTTON_JS = """
() => {
    for (const button of document.querySelectorAll('button')) {
        const label = button.getAttribute('aria-label') || '';
        const text = button.textContent || '';
        if (/\\d+\\s*reviews?/i.test(label) || /\\d+\\s*reviews?/i.test(text)) {
            button.click();
            return true;
        }
    }
    return false;
}
"""

# One entry per review container, outermost element only.
REVIEW_SNAPSHOT_JS = """
() => {
    const text = (el) => (el && el.textContent || '').trim();
    const attr = (el, name) => el ? (el.getAttribute(name) || '') : '';

    let containers = Array.from(document.querySelectorAll('div.jftiEf[data-review-id]'));
    if (!containers.length) {
        containers = Array.from(document.querySelectorAll('div[data-review-id]')).filter(el => {
            const parent = el.parentElement && el.parentElement.closest('[data-review-id]');
            return !parent || parent.getAttribute('data-review-id') !== el.getAttribute('data-review-id');
        });
    }
    if (!containers.length) {
        containers = Array.from(document.querySelectorAll('div.jftiEf'));
    }

    return containers.map(el => ({
        reviewId: el.getAttribute('data-review-id'),
        ariaLabel: attr(el, 'aria-label'),
        photoLabel: attr(el.querySelector('button[aria-label^="Photo of"]'), 'aria-label'),
        nameText: text(el.querySelector('.d4r55')),
        profileText: text(el.querySelector('a[href*="/maps/contrib/"], button[data-href*="/maps/contrib/"]')),
        subtitle: text(el.querySelector('.RfnDt')),
        starLabel: attr(el.querySelector('span[role="img"][aria-label*="star"]'), 'aria-label'),
        bodyText: text(el.querySelector('span.wiI7pd')),
        dateText: text(el.querySelector('span.rsqaWe')),
        likeLabel: attr(el.querySelector('button[aria-label*="like" i]'), 'aria-label'),
        leafTexts: Array.from(el.querySelectorAll('span, div'))
            .filter(node => node.children.length === 0)
            .map(text)
            .filter(Boolean)
    }));
}
"""

SHARE_CLICK_JS = """
(reviewId) => {
    const button = document.querySelector(`button[data-review-id="${reviewId}"][aria-label*="Share"]`);
    if (!button) return false;
    button.click();
    return true;
}
"""

SHARE_URL_JS = """
(markers) => {
    for (const input of document.querySelectorAll('input[type="text"], input[readonly], [role="textbox"]')) {
        const value = input.value || input.textContent || '';
        if (markers.some(marker => value.includes(marker))) return value.trim();
    }
    return null;
}
"""

GENERIC_BACK_JS = """
() => {
    for (const button of document.querySelectorAll('button')) {
        const label = (button.getAttribute('aria-label') || '').toLowerCase();
        if (label.includes('back') || label.includes('close')) { button.click(); return true; }
    }
    return false;
}
"""


# ── Result types ─────────────────────────────────────────────────────────────

class PanelState(str, Enum):
    CLOSED = "closed"
    LISTING_CLICKED = "listing_clicked"
    SIDEBAR_LOADED = "sidebar_loaded"
    REVIEWS_TAB_OPEN = "reviews_tab_open"
    REVIEWS_SCROLLED = "reviews_scrolled"
    EXTRACTED = "extracted"


OK = "ok"
LISTING_NOT_FOUND = "listing_not_found"
REVIEWS_TAB_MISSING = "reviews_tab_missing"
BLOCKED = "blocked"
ERROR = "error"


class ReviewResult(NamedTuple):
    reviews: List[Review]
    status: str
    click_method: Optional[str]


# ── Snapshot parsing ─────────────────────────────────────────────────────────

_STAR_RE = re.compile(r"(\d+)(?:[.,]0)?\s*star", re.IGNORECASE)
_LIKES_RE = re.compile(r"(\d+)\s*like", re.IGNORECASE)
_PHOTO_OF_RE = re.compile(r"^Photo of\s+(.+)$", re.IGNORECASE)
_RELATIVE_DATE_RE = re.compile(
    r"\b(?:a|an|one|\d+)\s+(?:second|minute|hour|day|week|month|year)s?\s+ago\b"
    r"|\byesterday\b|\bjust now\b",
    re.IGNORECASE,
)
_REVIEWER_SUBTITLE_RE = re.compile(r"local guide|\d+\s*(?:reviews?|photos?)", re.IGNORECASE)
_METADATA_RE = re.compile(
    r"local guide"
    r"|^(?:like|share|more|report review|translate|translated by google"
    r"|see original|response from the owner|new)$"
    r"|^\d+\s*(?:reviews?|photos?)$",
    re.IGNORECASE,
)
_SHORT_NAME_MAX = 40


def _review_rating(raw: dict) -> Optional[int]:
    match = _STAR_RE.search(raw.get("starLabel") or "")
    if not match:
        return None
    value = int(match.group(1))
    return value if 1 <= value <= 5 else None


def _photo_name(raw: dict) -> Optional[str]:
    match = _PHOTO_OF_RE.match((raw.get("photoLabel") or "").strip())
    return match.group(1).strip() if match else None


def _generic_name(raw: dict) -> Optional[str]:
    for text in raw.get("leafTexts") or []:
        text = text.strip()
        if (
            2 <= len(text) <= _SHORT_NAME_MAX
            and not any(ch.isdigit() for ch in text)
            and not _METADATA_RE.search(text)
            and not _RELATIVE_DATE_RE.search(text)
        ):
            return text
    return None


_NAME_STRATEGIES = [
    ("photo-label", _photo_name),
    ("container-label", lambda raw: (raw.get("ariaLabel") or "").strip() or None),
    ("name-element", lambda raw: (raw.get("nameText") or "").strip() or None),
    ("profile-link", lambda raw: (raw.get("profileText") or "").strip() or None),
    ("short-text", _generic_name),
]


def _review_text(raw: dict, exclude: Iterable[Optional[str]]) -> Optional[str]:
    exclude = {value for value in exclude if value}
    best = None
    for text in [raw.get("bodyText")] + list(raw.get("leafTexts") or []):
        text = (text or "").strip()
        if not text or text in exclude:
            continue
        if _METADATA_RE.search(text) or _RELATIVE_DATE_RE.fullmatch(text):
            continue
        if best is None or len(text) > len(best):
            best = text
    return best


def _review_date(raw: dict) -> Optional[str]:
    date_text = (raw.get("dateText") or "").strip()
    if date_text:
        return date_text
    for text in raw.get("leafTexts") or []:
        match = _RELATIVE_DATE_RE.search(text)
        if match:
            return match.group(0)
    return None


def _likes(raw: dict) -> Optional[int]:
    match = _LIKES_RE.search(raw.get("likeLabel") or "")
    return int(match.group(1)) if match else None


def looks_like_business_card(subtitle: Optional[str]) -> bool:
    """True when a container's subtitle describes a place, not a reviewer."""
    subtitle = (subtitle or "").strip()
    if not subtitle or _REVIEWER_SUBTITLE_RE.search(subtitle):
        return False
    return is_address(subtitle) or is_phone(subtitle) or is_hours_status(subtitle)


def parse_review(raw: dict, index: int) -> Optional[Review]:
    """
    Build a ``Review`` from one container snapshot.

    Returns None when the container has no usable 1-5 star rating or turns
    out to be a neighbouring business card.
    """
    rating = _review_rating(raw)
    if rating is None:
        return None
    subtitle = (raw.get("subtitle") or "").strip() or None
    if looks_like_business_card(subtitle):
        return None

    _, name = first_success(_NAME_STRATEGIES, raw)
    date = _review_date(raw)
    return Review(
        review_id=(raw.get("reviewId") or "").strip() or f"review-{index}",
        reviewer_name=name,
        reviewer_subtitle=subtitle,
        review_date=date,
        rating=rating,
        review_text=_review_text(raw, exclude=(name, subtitle, date)),
        likes_count=_likes(raw),
    )


def parse_review_snapshot(snapshot: List[dict], max_reviews: float, *, log: "Logger") -> List[Review]:
    """Parse containers in order, dropping duplicates and unusable ones."""
    reviews: List[Review] = []
    seen: set = set()
    for index, raw in enumerate(snapshot, start=1):
        if len(reviews) >= max_reviews:
            break
        try:
            review = parse_review(raw, index)
        except Exception as exc:
            log.warning("Failed to parse a review: {}", exc)
            continue
        if review is None:
            log.debug("Skipped review container {} (no rating or not a review)", index)
            continue
        if review.review_id in seen:
            continue
        seen.add(review.review_id)
        reviews.append(review)
    return reviews


# ── Panel driver ─────────────────────────────────────────────────────────────

class ReviewExtractor:
    """
    Reads reviews for businesses found in the currently displayed feed.

    Parameters
    ----------
    page : Page
        Playwright page showing the search results.
    log : Logger
        loguru logger for this stage.
    extract_share_links : bool
        Also open each review's share dialog to capture its public link.
    """

    def __init__(self, page, log: "Logger", extract_share_links: bool = False) -> None:
        self.page = page
        self.log = log
        self.extract_share_links = extract_share_links
        self.state = PanelState.CLOSED

    def _transition(self, state: PanelState) -> None:
        self.log.debug("Review panel: {} -> {}", self.state.value, state.value)
        self.state = state

    # -- stages ----------------------------------------------------------------

    def _click_listing(self, business: Business) -> Optional[str]:
        if not self.page.evaluate(ON_FEED_JS):
            self.log.warning("Not on the results feed -- pressing Escape")
            self.page.keyboard.press("Escape")
            pause(cfg.BACK_SETTLE)

        target = {"url": business.url, "name": business.name}
        method, _ = first_success([
            ("url-exact", js_strategy(self.page, CLICK_BY_URL_JS, target)),
            ("url-name", js_strategy(self.page, CLICK_BY_URL_NAME_JS, target)),
            ("article-label", js_strategy(self.page, CLICK_BY_ARTICLE_LABEL_JS, target)),
            ("link-text", js_strategy(self.page, CLICK_BY_LINK_TEXT_JS, target)),
        ])
        return method

    def _wait_for_sidebar(self) -> None:
        try:
            self.page.wait_for_function(SIDEBAR_READY_JS, timeout=cfg.PANEL_TIMEOUT)
        except PlaywrightTimeout as exc:
            self.log.warning("Sidebar may not have loaded fully: {}", exc)

    def _open_reviews_tab(self) -> Optional[str]:
        method, _ = first_success([
            ("tab-role", js_strategy(self.page, REVIEWS_TAB_JS)),
            ("reviews-button", js_strategy(self.page, REVIEWS_BUTTON_JS)),
            ("review-count", js_strategy(self.page, REVIEW_COUNT_BUTTON_JS)),
        ])
        return method

    def collect_reviews(self, max_reviews: float) -> List[Review]:
        snapshot = self.page.evaluate(REVIEW_SNAPSHOT_JS) or []
        return parse_review_snapshot(snapshot, max_reviews, log=self.log)

    # -- share links -----------------------------------------------------------

    def _close_dialog(self) -> None:
        closed = self.page.evaluate(CLICK_FIRST_JS, list(cfg.CLOSE_BUTTONS))
        if not closed:
            self.page.keyboard.press("Escape")
        pause(cfg.DIALOG_CLOSE_SETTLE)

    def share_link(self, review: Review) -> Optional[str]:
        if not self.page.evaluate(SHARE_CLICK_JS, review.review_id):
            return None
        try:
            pause(cfg.SHARE_DIALOG_SETTLE)
            return self.page.evaluate(SHARE_URL_JS, list(cfg.SHARE_URL_MARKERS))
        finally:
            self._close_dialog()

    def attach_share_links(self, reviews: List[Review]) -> int:
        """Fill ``share_link`` where possible; one failure never stops the rest."""
        found = 0
        for review in reviews:
            if review.review_id.startswith("review-"):
                continue
            try:
                url = self.share_link(review)
            except Exception as exc:
                self.log.warning("  Share link failed for {}: {}", review.reviewer_name, exc)
                continue
            if url:
                review.share_link = url
                found += 1
        self.log.info("  Share links: {}/{}", found, len(reviews))
        return found

    # -- closing ---------------------------------------------------------------

    def _back_button(self) -> bool:
        if not self.page.evaluate(CLICK_FIRST_JS, list(cfg.BACK_BUTTONS)):
            return False
        pause(cfg.BACK_SETTLE)
        return True

    def _escape(self) -> bool:
        self.page.keyboard.press("Escape")
        pause(cfg.BACK_SETTLE)
        return not self.page.evaluate(IN_DETAIL_JS)

    def _escape_and_any_button(self) -> bool:
        self.page.keyboard.press("Escape")
        pause(cfg.BACK_SETTLE)
        self.page.evaluate(GENERIC_BACK_JS)
        pause(cfg.BACK_SETTLE)
        return True

    def close_panel(self) -> bool:
        """Return to the results feed. True when the feed is visible again."""
        try:
            self._close_dialog()
            method, _ = first_success([
                ("back-button", self._back_button),
                ("escape", self._escape),
                ("escape+button", self._escape_and_any_button),
            ])
            self.log.debug("Panel closed via '{}'", method)
            back_on_feed = bool(self.page.evaluate(ON_FEED_JS))
        except Exception as exc:
            self.log.warning("Error closing panel: {}", exc)
            back_on_feed = False
        if not back_on_feed:
            self.log.warning("May not have returned to the results feed")
        self._transition(PanelState.CLOSED)
        return back_on_feed

    # -- public ----------------------------------------------------------------

    def extract(self, business: Business, max_reviews: Optional[float] = None) -> ReviewResult:
        """
        Run the full panel cycle for *business*.

        ``max_reviews`` of 0 or None means no limit.  Never raises; the
        status says how far the cycle got.
        """
        target = max_reviews or math.inf
        reviews: List[Review] = []
        click_method: Optional[str] = None
        status = ERROR
        self.state = PanelState.CLOSED

        try:
            click_method = self._click_listing(business)
            if not click_method:
                self.log.warning("Could not click on listing for: {}", business.name)
                return ReviewResult([], LISTING_NOT_FOUND, None)
            self.log.debug("Clicked listing via '{}'", click_method)
            self._transition(PanelState.LISTING_CLICKED)
            pause(cfg.PANEL_SETTLE)

            self._wait_for_sidebar()
            check_bot_wall(self.page)
            self._transition(PanelState.SIDEBAR_LOADED)

            tab_method = self._open_reviews_tab()
            if not tab_method:
                self.log.warning("Could not open reviews tab for: {}", business.name)
                status = REVIEWS_TAB_MISSING
                return ReviewResult([], status, click_method)
            self.log.info("  Opened reviews panel (method: {})", tab_method)
            self._transition(PanelState.REVIEWS_TAB_OPEN)
            pause(cfg.PANEL_SETTLE)

            reviews_scroller(self.page, self.log).run(target)
            self._transition(PanelState.REVIEWS_SCROLLED)

            reviews = self.collect_reviews(target)
            self._transition(PanelState.EXTRACTED)
            self.log.info("  Found {} reviews for {}", len(reviews), business.name)

            if self.extract_share_links and reviews:
                self.attach_share_links(reviews)
            status = OK
        except BotWallDetected as exc:
            self.log.warning("Blocked while opening {}: {}", business.name, exc)
            status = BLOCKED
        except Exception as exc:
            self.log.error("Error extracting reviews for {}: {}", business.name, exc)
            status = ERROR
        finally:
            if self.state is not PanelState.CLOSED:
                self.close_panel()

        return ReviewResult(reviews, status, click_method)
