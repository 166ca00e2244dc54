"""
Browser factory -- launches Playwright Chromium and opens a search.
"""

import urllib.parse
from typing import TYPE_CHECKING

from loguru import logger
from playwright.sync_api import BrowserContext, Page, sync_playwright
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeout

import mapsift.config as cfg
from mapsift.core.error_handler import check_bot_wall
from mapsift.core.strategies import CLICK_FIRST_JS
from mapsift.exceptions import NavigationError
from mapsift.utils.timing import pause

if TYPE_CHECKING:
    from loguru import Logger


def build_search_url(search_term: str) -> str:
    """Google Maps search URL for *search_term*, forced to English."""
    return cfg.GOOGLE_MAPS_SEARCH_URL.format(query=urllib.parse.quote(search_term.strip()))


def create_browser_context() -> tuple:
    """
    Launch a Chromium browser.

    Returns
    -------
    tuple
        (playwright_instance, browser, context, page)
        Caller is responsible for closing via ``close_browser()``.
    """
    pw = sync_playwright().start()

    browser = pw.chromium.launch(
        headless=cfg.HEADLESS,
        args=[
            "--disable-blink-features=AutomationControlled",
            "--no-sandbox",
        ],
    )

    context: BrowserContext = browser.new_context(
        viewport={
            "width": cfg.VIEWPORT_WIDTH,
            "height": cfg.VIEWPORT_HEIGHT,
        },
        locale=cfg.LOCALE,
        user_agent=cfg.USER_AGENT,
        extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
    )
    context.set_default_timeout(cfg.PAGE_LOAD_TIMEOUT)
    context.set_default_navigation_timeout(cfg.NAVIGATION_TIMEOUT)

    page: Page = context.new_page()

    logger.info("Browser context created (headless={})", cfg.HEADLESS)
    return pw, browser, context, page


def open_search(page, search_term: str, *, log: "Logger") -> None:
    """
    Navigate directly to the Google Maps results for *search_term*.

    Raises ``BotWallDetected`` when Google answers with its traffic check
    and ``NavigationError`` when the page cannot be loaded at all.  A
    missing results feed only warrants a warning.
    """
    url = build_search_url(search_term)

    # Don't use "networkidle" -- Google Maps streams map tiles and
    # analytics indefinitely, so networkidle never fires.
    try:
        page.goto(url, wait_until="domcontentloaded", timeout=cfg.NAVIGATION_TIMEOUT)
    except PlaywrightTimeout:
        log.warning("Search page slow to load -- continuing")
    except PlaywrightError as exc:
        raise NavigationError(f"Could not open {url}: {exc}") from exc
    log.info("Navigated to search results for '{}'", search_term)
    pause(cfg.SEARCH_SETTLE)

    # Cookie consent banner (EU)
    if page.evaluate(CLICK_FIRST_JS, list(cfg.ACCEPT_COOKIES)):
        log.info("Cookie consent dismissed")
        pause(cfg.CONSENT_SETTLE)

    check_bot_wall(page)

    try:
        page.wait_for_selector(
            f'{cfg.SIDEBAR_FEED}, [aria-label*="Results"]', timeout=cfg.FEED_TIMEOUT
        )
        log.info("Results feed loaded")
    except PlaywrightTimeout:
        log.warning("Results feed did not appear -- trying to extract anyway")


def close_browser(pw, browser) -> None:
    """Gracefully shut down the browser and Playwright."""
    try:
        browser.close()
    except PlaywrightError as exc:
        logger.debug("Browser close failed: {}", exc)
    try:
        pw.stop()
    except PlaywrightError as exc:
        logger.debug("Playwright stop failed: {}", exc)
    logger.info("Browser closed")
