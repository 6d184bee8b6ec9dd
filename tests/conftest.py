"""Global pytest fixtures for dub-timeline."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from dub_timeline.audio import AudioBuffer
from generate_sample import generate_tone


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    """Undo handler and level changes made by ``configure_logging``."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def tone_24k() -> AudioBuffer:
    """One second of a 440 Hz tone at 24 kHz."""
    return generate_tone(1.0, 440.0, 24_000)


@pytest.fixture
def tone_16k() -> AudioBuffer:
    """Half a second of a 220 Hz tone at 16 kHz."""
    return generate_tone(0.5, 220.0, 16_000)
