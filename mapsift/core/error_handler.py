"""
Logging setup and the bot-wall check.

Per-record failures are handled where they happen (one card, one review,
one business); this module only owns what is global to a run.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

import mapsift.config as cfg
from mapsift.exceptions import BotWallDetected

# Returns the first bot-wall phrase found in the page, or null.
BOT_WALL_JS = """
(phrases) => {
    const text = (document.body && document.body.innerText || '').toLowerCase();
    for (const phrase of phrases) {
        if (text.includes(phrase)) return phrase;
    }
    if (document.querySelector('iframe[src*="recaptcha"], #captcha-form, form[action*="sorry"]')) {
        return 'captcha';
    }
    return null;
}
"""


# -- Logging ---------------------------------------------------------------

def setup_logging(level: Optional[str] = None, log_dir: Optional[Path] = None) -> Path:
    """Configure loguru sinks (console + rotating file). Returns the log dir."""
    level = level or cfg.LOG_LEVEL
    log_dir = log_dir or cfg.LOGS_DIR
    log_dir.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level:<8}</level> | {message}",
    )
    logger.add(
        str(log_dir / "mapsift_{time:YYYY-MM-DD}.log"),
        rotation="10 MB",
        retention="7 days",
        level="DEBUG",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | {extra} | {message}",
    )
    logger.info("Logging initialised  ->  {}", log_dir)
    return log_dir


# -- Bot wall --------------------------------------------------------------

def check_bot_wall(page) -> None:
    """
    Raise ``BotWallDetected`` when the current page is Google's
    'unusual traffic' interstitial or a CAPTCHA.
    """
    marker = page.evaluate(BOT_WALL_JS, [p.lower() for p in cfg.BOT_WALL_PHRASES])
    if marker:
        raise BotWallDetected(f"Bot defence page detected ({marker})")
