import sys

import pytest
from loguru import logger
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeout

import mapsift.config as cfg
from mapsift.core.browser import build_search_url, open_search
from mapsift.core.error_handler import BOT_WALL_JS, check_bot_wall, setup_logging
from mapsift.core.strategies import CLICK_FIRST_JS
from mapsift.exceptions import BotWallDetected, NavigationError

from conftest import FakePage

SEARCH_URL = "https://www.google.com/maps/search/pizza%20in%20New%20York?hl=en"


def test_build_search_url():
    assert build_search_url("  pizza in New York ") == SEARCH_URL


def test_open_search_dismisses_consent(log, log_messages):
    page = FakePage({CLICK_FIRST_JS: True})

    open_search(page, "pizza in New York", log=log)

    assert page.visited == [SEARCH_URL]
    assert page.called(CLICK_FIRST_JS) == [list(cfg.ACCEPT_COOKIES)]
    assert "Cookie consent dismissed" in log_messages


def test_open_search_bot_wall(log):
    page = FakePage({BOT_WALL_JS: "unusual traffic from your computer network"})

    with pytest.raises(BotWallDetected):
        open_search(page, "pizza", log=log)


def test_open_search_navigation_failure(log):
    page = FakePage()
    page.goto_errors[build_search_url("pizza")] = PlaywrightError("net::ERR_INTERNET_DISCONNECTED")

    with pytest.raises(NavigationError):
        open_search(page, "pizza", log=log)


def test_open_search_tolerates_missing_feed(log, log_messages):
    page = FakePage()
    page.goto_errors[build_search_url("pizza")] = PlaywrightTimeout("Timeout 60000ms exceeded")
    page.wait_error = PlaywrightTimeout("Timeout 30000ms exceeded")

    open_search(page, "pizza", log=log)

    assert any("Results feed did not appear" in m for m in log_messages)


def test_check_bot_wall_passes_clean_page():
    page = FakePage()

    check_bot_wall(page)

    assert page.called(BOT_WALL_JS) == [[p.lower() for p in cfg.BOT_WALL_PHRASES]]


def test_setup_logging_creates_log_dir(tmp_path):
    log_dir = tmp_path / "logs"
    try:
        assert setup_logging("WARNING", log_dir) == log_dir
        assert log_dir.is_dir()
    finally:
        logger.remove()
        logger.add(sys.stderr)
