"""Exception types for dub-timeline."""

from __future__ import annotations

__all__ = ["EmptyInput", "InvalidContainer", "TimelineError", "UnsupportedFormat"]


class TimelineError(RuntimeError):
    """Base class for validation failures raised by the timeline core."""


class InvalidContainer(TimelineError):
    """
    Raised when a byte stream is not a usable RIFF/WAVE container: it is too
    short, the ``RIFF``/``WAVE`` markers are missing, the ``fmt `` chunk is
    malformed, or no ``data`` chunk is present.
    """


class UnsupportedFormat(TimelineError):
    """Raised when a WAV file stores samples at a bit depth other than 16."""


class EmptyInput(TimelineError):
    """Raised when a composition is requested without any segments."""
