#!/usr/bin/env python3
"""Generate speech-like tone clips for testing the timeline compositor."""

from __future__ import annotations

import math

import numpy as np

from dub_timeline.audio import AudioBuffer, write_wav


def generate_tone(
    duration_seconds: float,
    frequency_hz: float = 440.0,
    sample_rate: int = 24_000,
    *,
    amplitude: float = 0.35,
) -> AudioBuffer:
    """Return a sine tone with a short linear attack and release.

    Args:
        duration_seconds: Clip length in seconds.
        frequency_hz: Tone frequency.
        sample_rate: Sample rate in Hz.
        amplitude: Peak level as a fraction of full scale.
    """
    total = max(1, round(duration_seconds * sample_rate))
    t = np.arange(total, dtype=np.float64) / sample_rate
    signal = np.sin(2 * math.pi * frequency_hz * t)

    attack = max(1, round(sample_rate * 0.01))
    release = max(1, round(sample_rate * 0.02))
    envelope = np.ones(total, dtype=np.float64)
    envelope[:attack] = np.arange(min(attack, total)) / attack
    tail = np.arange(total) > total - release
    envelope[tail] = (total - np.arange(total)[tail]) / release

    samples = np.round(signal * envelope * amplitude * 32767).astype(np.int16)
    return AudioBuffer(sample_rate, samples)


if __name__ == "__main__":
    import sys

    output_path = sys.argv[1] if len(sys.argv) > 1 else "tests/data/tone.wav"
    clip = generate_tone(1.0)
    write_wav(output_path, clip)
    print(f"Generated {clip.duration_seconds:.1f}s tone: {output_path}")
    print(f"  Sample rate: {clip.sample_rate} Hz")
    print("  Channels: 1 (mono)")
    print("  Bit depth: 16-bit PCM")
