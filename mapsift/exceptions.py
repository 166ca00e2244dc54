"""Custom exceptions for mapsift."""


class MapsiftError(Exception):
    """Base exception for all mapsift errors."""
    pass


class InputError(MapsiftError):
    """Raised when the search request is unusable (e.g. blank query)."""
    pass


class BotWallDetected(MapsiftError):
    """Raised when Google serves an 'unusual traffic' or CAPTCHA page."""
    pass


class NavigationError(MapsiftError):
    """Raised when a page cannot be loaded at all (not a soft timeout)."""
    pass
