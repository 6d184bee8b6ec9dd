"""In-memory mono PCM16 audio buffers."""

from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

__all__ = [
    "INT16_MAX",
    "INT16_MIN",
    "AudioBuffer",
    "Pcm16",
    "clamp_int16",
    "round_half_up",
]

INT16_MIN = -32768
INT16_MAX = 32767

Pcm16 = NDArray[np.int16]


def round_half_up(values: ArrayLike) -> NDArray[np.int64]:
    """Round to the nearest integer, sending exact halves towards positive infinity.

    ``numpy.rint`` rounds halves to even; every rounding step in this package uses
    ``floor(x + 0.5)`` instead so downmixing and resampling agree on ties.
    """
    return np.floor(np.asarray(values, dtype=np.float64) + 0.5).astype(np.int64)


def clamp_int16(values: ArrayLike) -> Pcm16:
    """Clamp wide integer values into the int16 domain."""
    return np.clip(np.asarray(values, dtype=np.int64), INT16_MIN, INT16_MAX).astype(np.int16)


@dataclass(frozen=True, eq=False, slots=True)
class AudioBuffer:
    """Immutable mono PCM16 audio.

    ``samples`` is always a private, read-only ``int16`` array; any sequence passed to the
    constructor is validated against the int16 domain and copied.
    """

    sample_rate: int
    samples: Pcm16

    def __init__(self, sample_rate: int, samples: ArrayLike = ()) -> None:
        if int(sample_rate) != sample_rate or sample_rate <= 0:
            raise ValueError(f"sample_rate must be a positive integer, got {sample_rate!r}.")
        object.__setattr__(self, "sample_rate", int(sample_rate))
        object.__setattr__(self, "samples", _freeze_samples(samples))

    @classmethod
    def silence(cls, duration_seconds: float, sample_rate: int) -> AudioBuffer:
        """Return a zero-filled buffer lasting ``duration_seconds`` (rounded up)."""
        if duration_seconds < 0:
            raise ValueError("duration_seconds must be non-negative.")
        count = math.ceil(duration_seconds * sample_rate)
        return cls(sample_rate, np.zeros(count, dtype=np.int16))

    @property
    def duration_seconds(self) -> float:
        return len(self.samples) / float(self.sample_rate)

    def __len__(self) -> int:
        return int(self.samples.shape[0])

    def __iter__(self) -> Iterator[int]:
        return (int(value) for value in self.samples)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, AudioBuffer):
            return NotImplemented
        return self.sample_rate == other.sample_rate and np.array_equal(
            self.samples, other.samples
        )

    def __hash__(self) -> int:
        return hash((self.sample_rate, self.samples.tobytes()))

    def __repr__(self) -> str:
        return (
            f"AudioBuffer(sample_rate={self.sample_rate}, samples={len(self)}, "
            f"duration_seconds={self.duration_seconds:.3f})"
        )


def _freeze_samples(samples: ArrayLike) -> Pcm16:
    array = np.asarray(samples)
    if array.ndim != 1:
        raise ValueError(f"samples must be one-dimensional (mono), got shape {array.shape}.")
    if array.size and array.dtype != np.int16:
        if array.dtype.kind not in "iu":
            raise ValueError(f"samples must be integers, got dtype {array.dtype}.")
        low, high = int(array.min()), int(array.max())
        if low < INT16_MIN or high > INT16_MAX:
            raise ValueError(
                f"samples must lie in [{INT16_MIN}, {INT16_MAX}], got range [{low}, {high}]."
            )
    frozen = np.array(array, dtype=np.int16, copy=True)
    frozen.setflags(write=False)
    return frozen
