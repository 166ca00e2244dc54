"""
Convergence-driven infinite scroll for the results feed and the reviews
panel.

Google never tells us how many items exist and lazy-loads them on its own
schedule, so the loop stops on *no visible progress* (stall convergence)
or a hard ceiling; the target is only an early exit.  The loop itself is
browser-agnostic -- ``feed_scroller`` / ``reviews_scroller`` bind it to a
Playwright page.
"""

import math
from typing import TYPE_CHECKING, Callable, NamedTuple

from playwright.sync_api import Error as PlaywrightError

import mapsift.config as cfg
from mapsift.core.strategies import first_success, js_strategy
from mapsift.utils.timing import pause, wheel_delta

if TYPE_CHECKING:
    from loguru import Logger


# ── Browser-side scripts ─────────────────────────────────────────────────────

FEED_ARTICLE_COUNT_JS = "() => document.querySelectorAll('div[role=\"article\"]').length"
FEED_LINK_COUNT_JS = (
    "() => new Set(Array.from(document.querySelectorAll('a[href*=\"/maps/place/\"]'))"
    ".map(a => a.href)).size"
)
FEED_CHILD_COUNT_JS = (
    "() => document.querySelectorAll('[role=\"feed\"] > div > div > a[aria-label]').length"
)

REVIEW_ID_COUNT_JS = (
    "() => new Set(Array.from(document.querySelectorAll('[data-review-id]'))"
    ".map(el => el.getAttribute('data-review-id'))).size"
)
REVIEW_CLASS_COUNT_JS = "() => document.querySelectorAll('div.jftiEf').length"
REVIEW_LABEL_COUNT_JS = """
() => {
    const photos = document.querySelectorAll('button[aria-label^="Photo of"]').length;
    if (photos > 0) return photos;
    return document.querySelectorAll('button[aria-label*="Share"][aria-label*="review"]').length;
}
"""

# Scroll the best container: known selector -> walk up from a content
# element -> any tall overflow container that holds the content marker.
SCROLL_JS = """
(opts) => {
    const overflows = (el) => {
        const style = window.getComputedStyle(el);
        return style.overflowY === 'auto' || style.overflowY === 'scroll';
    };
    const scrollIt = (el, method) => {
        const before = el.scrollTop;
        el.scrollTop = el.scrollHeight;
        const rect = el.getBoundingClientRect();
        return {
            height: el.scrollHeight,
            found: true,
            scrolled: el.scrollTop > before,
            method: method,
            x: rect.left + rect.width / 2,
            y: rect.top + rect.height / 2
        };
    };

    for (const selector of opts.selectors) {
        const el = document.querySelector(selector);
        if (el && el.scrollHeight > el.clientHeight) return scrollIt(el, 'selector');
    }

    const content = document.querySelector(opts.contentSelector);
    if (content) {
        let parent = content.parentElement;
        for (let i = 0; i < 10 && parent; i++) {
            if (overflows(parent) && parent.scrollHeight > parent.clientHeight + 50) {
                return scrollIt(parent, 'parent-walk');
            }
            parent = parent.parentElement;
        }
    }

    for (const div of document.querySelectorAll('div')) {
        if (overflows(div)
            && div.scrollHeight > div.clientHeight + 100
            && div.scrollHeight > opts.minHeight
            && div.querySelector(opts.contentSelector)) {
            return scrollIt(div, 'generic');
        }
    }
    return {height: 0, found: false, scrolled: false, method: 'none'};
}
"""

END_MARKER_JS = """
(opts) => {
    const text = document.body && document.body.innerText || '';
    if (opts.phrases.some(phrase => text.includes(phrase))) return true;
    if (opts.disabledSelector) {
        const button = document.querySelector(opts.disabledSelector);
        if (button && button.disabled === true) return true;
    }
    return false;
}
"""


class ScrollOutcome(NamedTuple):
    scroll_count: int
    reached_end: bool
    items_loaded: int


def scroll_ceiling(target: float, divisor: int, cap: int) -> int:
    """clamp(ceil(target / divisor) + buffer, floor, cap); unlimited -> cap."""
    if math.isinf(target):
        return cap
    estimate = math.ceil(target / divisor) + cfg.SCROLL_BUFFER
    return min(cap, max(cfg.SCROLL_FLOOR, estimate))


class ScrollController:
    """
    Bounded state machine over ``(count, stall counter, ceiling)``.

    Parameters
    ----------
    probe : callable
        Returns the number of items currently loaded.
    scroll : callable
        Issues one scroll and returns the container's scroll height
        (0 when no container was found).
    end_marker : callable
        True when the page shows an explicit "end of results" marker.
    """

    def __init__(
        self,
        probe: Callable[[], int],
        scroll: Callable[[], int],
        end_marker: Callable[[], bool],
        *,
        log: "Logger",
        divisor: int,
        cap: int,
        stall_limit: int,
        settle: tuple,
        stall_backoff: tuple,
        label: str = "items",
    ) -> None:
        self._probe = probe
        self._scroll = scroll
        self._end_marker = end_marker
        self._log = log
        self.divisor = divisor
        self.cap = cap
        self.stall_limit = stall_limit
        self.settle = settle
        self.stall_backoff = stall_backoff
        self.label = label

    def ceiling(self, target: float) -> int:
        return scroll_ceiling(target, self.divisor, self.cap)

    # -- guarded primitives ----------------------------------------------------

    def _count(self) -> int:
        try:
            return int(self._probe() or 0)
        except PlaywrightError as exc:
            self._log.debug("Count probe failed: {}", exc)
            return 0

    def _scroll_once(self) -> int:
        try:
            return int(self._scroll() or 0)
        except PlaywrightError as exc:
            self._log.warning("Scroll action failed: {}", exc)
            return 0

    def _at_end(self) -> bool:
        try:
            return bool(self._end_marker())
        except PlaywrightError as exc:
            self._log.debug("End-marker check failed: {}", exc)
            return False

    # -- loop ------------------------------------------------------------------

    def run(self, target: float) -> ScrollOutcome:
        """Scroll until *target* items are loaded or progress stops."""
        ceiling = self.ceiling(target)
        self._log.info(
            "Scrolling {} (target: {}, up to {} scrolls) ...",
            self.label,
            "unlimited" if math.isinf(target) else int(target),
            ceiling,
        )

        previous_height = previous_count = None
        stale_rounds = 0
        scroll_count = 0

        while scroll_count < ceiling:
            current_count = self._count()
            if current_count >= target:
                self._log.info(
                    "Target reached ({} {} after {} scrolls)",
                    current_count, self.label, scroll_count,
                )
                return ScrollOutcome(scroll_count, False, current_count)

            height = self._scroll_once()
            scroll_count += 1
            pause(self.settle)

            if self._at_end():
                final_count = self._count()
                self._log.info(
                    "Reached end of {} ({} loaded, {} scrolls)",
                    self.label, final_count, scroll_count,
                )
                return ScrollOutcome(scroll_count, True, final_count)

            if height == previous_height and current_count == previous_count:
                stale_rounds += 1
                self._log.debug(
                    "No progress ({} {}, stale rounds: {})",
                    current_count, self.label, stale_rounds,
                )
                if stale_rounds >= self.stall_limit:
                    self._log.info(
                        "No new {} for {} rounds -- stopping at {}",
                        self.label, stale_rounds, current_count,
                    )
                    return ScrollOutcome(scroll_count, True, current_count)
                pause(self.stall_backoff)
            else:
                stale_rounds = 0

            previous_height, previous_count = height, current_count

            if scroll_count % 10 == 0:
                self._log.info(
                    "  Scrolled {} times, ~{} {} loaded so far ...",
                    scroll_count, current_count, self.label,
                )

        final_count = self._count()
        self._log.info(
            "Scroll ceiling hit -- {} {} loaded after {} scrolls",
            final_count, self.label, scroll_count,
        )
        return ScrollOutcome(scroll_count, False, final_count)


# ── Page bindings ────────────────────────────────────────────────────────────

def feed_count(page) -> int:
    """Loaded result cards: articles -> unique place links -> feed children."""
    _, count = first_success([
        ("article", js_strategy(page, FEED_ARTICLE_COUNT_JS)),
        ("place-link", js_strategy(page, FEED_LINK_COUNT_JS)),
        ("feed-child", js_strategy(page, FEED_CHILD_COUNT_JS)),
    ])
    return count or 0


def review_count(page) -> int:
    """Loaded reviews: unique review ids -> card class -> label patterns."""
    _, count = first_success([
        ("review-id", js_strategy(page, REVIEW_ID_COUNT_JS)),
        ("review-class", js_strategy(page, REVIEW_CLASS_COUNT_JS)),
        ("review-label", js_strategy(page, REVIEW_LABEL_COUNT_JS)),
    ])
    return count or 0


def _scroll_action(page, log: "Logger", options: dict) -> Callable[[], int]:
    def _scroll() -> int:
        result = page.evaluate(SCROLL_JS, options) or {}
        if not result.get("found"):
            # No scrollable container located: wheel over the sidebar area.
            page.mouse.move(cfg.VIEWPORT_WIDTH // 5, cfg.VIEWPORT_HEIGHT // 2)
            page.mouse.wheel(0, wheel_delta(cfg.WHEEL_DISTANCE_MIN, cfg.WHEEL_DISTANCE_MAX))
            log.debug("No scroll container found -- used mouse wheel")
            return 0
        log.debug("Scrolled via '{}' (moved: {})", result.get("method"), result.get("scrolled"))
        return int(result.get("height") or 0)

    return _scroll


def _end_check(page, options: dict) -> Callable[[], bool]:
    def _check() -> bool:
        return bool(page.evaluate(END_MARKER_JS, options))

    return _check


def feed_scroller(page, log: "Logger") -> ScrollController:
    """Scroll controller for the search-results feed."""
    return ScrollController(
        probe=lambda: feed_count(page),
        scroll=_scroll_action(page, log, {
            "selectors": list(cfg.FEED_SCROLL_SELECTORS),
            "contentSelector": cfg.RESULT_ARTICLE,
            "minHeight": cfg.SCROLL_MIN_HEIGHT,
        }),
        end_marker=_end_check(page, {
            "phrases": list(cfg.FEED_END_PHRASES),
            "disabledSelector": None,
        }),
        log=log,
        divisor=cfg.FEED_SCROLL_DIVISOR,
        cap=cfg.FEED_SCROLL_CAP,
        stall_limit=cfg.FEED_STALL_LIMIT,
        settle=cfg.FEED_SETTLE,
        stall_backoff=cfg.FEED_STALL_BACKOFF,
        label="listings",
    )


def reviews_scroller(page, log: "Logger") -> ScrollController:
    """Scroll controller for an open reviews panel."""
    return ScrollController(
        probe=lambda: review_count(page),
        scroll=_scroll_action(page, log, {
            "selectors": list(cfg.REVIEW_SCROLL_SELECTORS),
            "contentSelector": "[data-review-id], div.jftiEf, button[aria-label^=\"Photo of\"]",
            "minHeight": cfg.SCROLL_MIN_HEIGHT,
        }),
        end_marker=_end_check(page, {
            "phrases": list(cfg.REVIEW_END_PHRASES),
            "disabledSelector": cfg.MORE_REVIEWS_BUTTON,
        }),
        log=log,
        divisor=cfg.REVIEW_SCROLL_DIVISOR,
        cap=cfg.REVIEW_SCROLL_CAP,
        stall_limit=cfg.REVIEW_STALL_LIMIT,
        settle=cfg.REVIEW_SETTLE,
        stall_backoff=cfg.REVIEW_STALL_BACKOFF,
        label="reviews",
    )
