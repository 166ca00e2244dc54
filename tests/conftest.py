"""
Shared fixtures: a scripted stand-in for the Playwright page and a
no-op sleep so tests never wait.
"""

from typing import Any, Dict, List, Optional

import pytest
from loguru import logger

import mapsift.utils.timing as timing


class FakeMouse:
    def __init__(self) -> None:
        self.moves: List[tuple] = []
        self.wheels: List[tuple] = []

    def move(self, x, y) -> None:
        self.moves.append((x, y))

    def wheel(self, delta_x, delta_y) -> None:
        self.wheels.append((delta_x, delta_y))


class FakeKeyboard:
    def __init__(self) -> None:
        self.presses: List[str] = []

    def press(self, key: str) -> None:
        self.presses.append(key)


class FakePage:
    """
    Answers ``evaluate`` from a dict keyed by script text.

    A value may be a plain result, or a callable taking the script
    argument (it may raise to simulate a browser error).  Unknown scripts
    evaluate to None.
    """

    def __init__(self, scripts: Optional[Dict[str, Any]] = None) -> None:
        self.scripts: Dict[str, Any] = dict(scripts or {})
        self.calls: List[tuple] = []
        self.visited: List[str] = []
        self.url: Optional[str] = None
        self.goto_errors: Dict[str, Exception] = {}
        self.wait_error: Optional[Exception] = None
        self.mouse = FakeMouse()
        self.keyboard = FakeKeyboard()

    def evaluate(self, script: str, arg: Any = None) -> Any:
        self.calls.append((script, arg))
        value = self.scripts.get(script)
        if callable(value):
            return value(arg)
        return value

    def called(self, script: str) -> List[Any]:
        """Arguments of every call to *script*."""
        return [arg for s, arg in self.calls if s == script]

    def goto(self, url: str, **kwargs) -> None:
        self.visited.append(url)
        self.url = url
        if url in self.goto_errors:
            raise self.goto_errors[url]

    def wait_for_function(self, script: str, timeout: Optional[int] = None) -> None:
        if self.wait_error:
            raise self.wait_error

    def wait_for_selector(self, selector: str, timeout: Optional[int] = None) -> None:
        if self.wait_error:
            raise self.wait_error


def sequence(*values):
    """Callable returning *values* in order, then repeating the last one."""
    remaining = list(values)

    def _next(_arg=None):
        if len(remaining) > 1:
            return remaining.pop(0)
        return remaining[0]

    return _next


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    slept: List[float] = []
    monkeypatch.setattr(timing, "_sleep", slept.append)
    return slept


@pytest.fixture
def fake_page():
    return FakePage()


@pytest.fixture
def log():
    return logger


@pytest.fixture
def log_messages():
    messages: List[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
