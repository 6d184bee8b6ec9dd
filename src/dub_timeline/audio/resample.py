"""Linear-interpolation resampling for mono PCM16 buffers."""

from __future__ import annotations

import numpy as np

from .buffer import AudioBuffer, round_half_up

__all__ = ["resample"]


def resample(buffer: AudioBuffer, target_rate: int) -> AudioBuffer:
    """Resample ``buffer`` to ``target_rate`` using linear interpolation.

    The output length is ``max(1, round(len(buffer) * target_rate / source_rate))``. Output
    sample ``i`` interpolates between the two source samples around ``i / ratio``; the
    interpolation of two int16 values never leaves the int16 domain, so no clamping is done.
    Equal rates return ``buffer`` itself.
    """
    if target_rate <= 0:
        raise ValueError(f"target_rate must be positive, got {target_rate!r}.")
    if buffer.sample_rate == target_rate:
        return buffer

    ratio = target_rate / buffer.sample_rate
    source = buffer.samples.astype(np.float64)
    old_length = source.shape[0]
    new_length = max(1, int(round_half_up(old_length * ratio)))

    if old_length == 0:
        return AudioBuffer(target_rate, np.zeros(new_length, dtype=np.int16))

    positions = np.arange(new_length, dtype=np.float64) / ratio
    left = np.floor(positions).astype(np.int64)
    np.minimum(left, old_length - 1, out=left)
    right = np.minimum(left + 1, old_length - 1)
    alpha = positions - left

    interpolated = source[left] * (1.0 - alpha) + source[right] * alpha
    return AudioBuffer(target_rate, round_half_up(interpolated))
