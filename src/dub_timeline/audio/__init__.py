"""Mono PCM16 buffers, the WAV codec and the linear resampler."""

from .buffer import INT16_MAX, INT16_MIN, AudioBuffer
from .resample import resample
from .wav import parse, pcm16_to_wav, read_wav, serialize, write_wav

__all__ = [
    "INT16_MAX",
    "INT16_MIN",
    "AudioBuffer",
    "parse",
    "pcm16_to_wav",
    "read_wav",
    "resample",
    "serialize",
    "write_wav",
]
