"""
Ordered fallback heuristics ("try A, then B, then C").

Google Maps markup shifts constantly, so almost every lookup in this
package is a list of named strategies where the first one that produces
something wins.  ``first_success`` is the single combinator for that.
"""

from typing import Any, Callable, Iterable, Optional, Tuple

from loguru import logger
from playwright.sync_api import Error as PlaywrightError

Strategy = Tuple[str, Callable[..., Any]]


def first_success(
    strategies: Iterable[Strategy],
    *args: Any,
) -> Tuple[Optional[str], Any]:
    """
    Run *strategies* in order and return ``(name, value)`` of the first
    truthy result, or ``(None, None)`` when every strategy misses.

    A browser error inside a strategy counts as a miss; anything else is
    a bug and propagates.
    """
    for name, strategy in strategies:
        try:
            value = strategy(*args)
        except PlaywrightError as exc:
            logger.debug("Strategy '{}' failed: {}", name, exc)
            continue
        if value:
            return name, value
    return None, None


def js_strategy(page, script: str, arg: Any = None) -> Callable[[], Any]:
    """Wrap a browser-side script as a zero-argument strategy."""

    def _run() -> Any:
        return page.evaluate(script, arg)

    return _run


# Click the first element matching any of the given CSS selectors.
CLICK_FIRST_JS = """
(selectors) => {
    for (const selector of selectors) {
        const el = document.querySelector(selector);
        if (el) { el.click(); return true; }
    }
    return false;
}
"""
