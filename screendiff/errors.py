"""Exception types raised across the capture pipeline."""

from __future__ import annotations


class ScreendiffError(Exception):
    """Base class for all screendiff errors."""


class BuildError(ScreendiffError):
    """Invalid options, unresolvable metadata, unknown group or action.

    Fatal: raised before any capture starts.
    """


class SessionError(ScreendiffError):
    """An automation session could not be started for a browser.

    Fatal to the batch that needed it, and therefore to the run.
    """

    def __init__(self, browser: str, message: str):
        super().__init__(f"Could not start session for browser '{browser}': {message}")
        self.browser = browser


class NavigationTransientError(ScreendiffError):
    """The target was temporarily unavailable (5xx, rebuilding, reset)."""


class CaptureQualityError(ScreendiffError):
    """The captured image is too small to be a real page."""

    LABEL = "Non-reachable or SSL error"

    def __init__(self, size: int):
        super().__init__(self.LABEL)
        self.size = size


class DiffPreconditionError(ScreendiffError):
    """Diffing cannot start, e.g. an uneven number of screenshots."""
