"""Tests for the immutable PCM16 buffer."""

from __future__ import annotations

import numpy as np
import pytest

from dub_timeline.audio.buffer import AudioBuffer, clamp_int16, round_half_up


def test_buffer_copies_and_freezes_samples() -> None:
    source = np.array([1, 2, 3], dtype=np.int16)
    buffer = AudioBuffer(16_000, source)

    source[0] = 99

    assert buffer.samples.tolist() == [1, 2, 3]
    with pytest.raises(ValueError):
        buffer.samples[0] = 5
    with pytest.raises(AttributeError):
        buffer.sample_rate = 8_000  # type: ignore[misc]


def test_buffer_duration_and_length() -> None:
    buffer = AudioBuffer(24_000, np.zeros(36_000, dtype=np.int16))

    assert len(buffer) == 36_000
    assert buffer.duration_seconds == pytest.approx(1.5)


def test_buffer_equality_is_by_value() -> None:
    assert AudioBuffer(8_000, [1, 2]) == AudioBuffer(8_000, np.array([1, 2], dtype=np.int32))
    assert AudioBuffer(8_000, [1, 2]) != AudioBuffer(16_000, [1, 2])
    assert AudioBuffer(8_000, [1, 2]) != AudioBuffer(8_000, [1, 3])


@pytest.mark.parametrize("values", [[32768], [-32769], [0, 70_000]])
def test_buffer_rejects_out_of_domain_samples(values: list[int]) -> None:
    with pytest.raises(ValueError, match="must lie in"):
        AudioBuffer(8_000, values)


@pytest.mark.parametrize("rate", [0, -1])
def test_buffer_rejects_non_positive_rate(rate: int) -> None:
    with pytest.raises(ValueError):
        AudioBuffer(rate, [0])


def test_buffer_rejects_float_and_multichannel_samples() -> None:
    with pytest.raises(ValueError, match="integers"):
        AudioBuffer(8_000, [0.5, 0.25])
    with pytest.raises(ValueError, match="one-dimensional"):
        AudioBuffer(8_000, [[1, 2], [3, 4]])


def test_silence_rounds_up_to_whole_samples() -> None:
    buffer = AudioBuffer.silence(0.00005, 24_000)

    assert len(buffer) == 2
    assert not buffer.samples.any()


def test_round_half_up_breaks_ties_towards_positive_infinity() -> None:
    assert round_half_up([0.5, 1.5, 2.5, -0.5, -1.5, -2.6]).tolist() == [1, 2, 3, 0, -1, -3]


def test_clamp_int16_saturates() -> None:
    clamped = clamp_int16([40_000, -40_000, 12])

    assert clamped.dtype == np.int16
    assert clamped.tolist() == [32767, -32768, 12]
