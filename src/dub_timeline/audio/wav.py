"""Canonical RIFF/WAVE codec for mono 16-bit PCM audio.

Parsing accepts any well-formed PCM16 WAV stream (extra chunks, any channel count) and
downmixes it to mono. Serialisation always emits the minimal 44-byte canonical header::

    offset  size  field
    0       4     "RIFF"
    4       4     36 + data size
    8       4     "WAVE"
    12      4     "fmt "
    16      4     16 (fmt chunk size)
    20      2     1 (PCM)
    22      2     channels
    24      4     sample rate
    28      4     byte rate
    32      2     block align
    34      2     bits per sample
    36      4     "data"
    40      4     data size

All integers are little-endian.
"""

from __future__ import annotations

import os
import struct
import tempfile
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from ..exceptions import InvalidContainer, UnsupportedFormat
from ..utils.logging import get_logger
from .buffer import AudioBuffer, clamp_int16, round_half_up

LOGGER = get_logger(__name__)

__all__ = [
    "HEADER_SIZE",
    "WavFormat",
    "parse",
    "pcm16_to_wav",
    "read_wav",
    "serialize",
    "write_wav",
]

HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
PCM_FORMAT_TAG = 1

# Used when a stream carries a data chunk without a preceding fmt chunk.
DEFAULT_SAMPLE_RATE = 24_000
DEFAULT_CHANNELS = 1

_CHUNK_HEADER = struct.Struct("<4sI")
_FMT_BODY = struct.Struct("<HHIIHH")
_CANONICAL_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")
_SAMPLE_DTYPE = np.dtype("<i2")


@dataclass(frozen=True, slots=True)
class WavFormat:
    """Fields read from a ``fmt `` chunk."""

    channels: int = DEFAULT_CHANNELS
    sample_rate: int = DEFAULT_SAMPLE_RATE
    bits_per_sample: int = BITS_PER_SAMPLE


def parse(data: bytes) -> AudioBuffer:
    """Decode a PCM16 WAV byte stream into a mono :class:`AudioBuffer`.

    Raises:
        InvalidContainer: The stream is shorter than a canonical header, the ``RIFF`` or
            ``WAVE`` marker is missing, the ``fmt `` chunk is malformed, or there is no
            ``data`` chunk.
        UnsupportedFormat: The ``fmt `` chunk declares a bit depth other than 16.
    """
    view = memoryview(bytes(data))
    if len(view) < HEADER_SIZE:
        raise InvalidContainer(f"WAV stream too short: {len(view)} bytes, need {HEADER_SIZE}.")
    if view[0:4] != b"RIFF" or view[8:12] != b"WAVE":
        raise InvalidContainer("Missing RIFF/WAVE markers.")

    fmt = WavFormat()
    pcm: memoryview | None = None
    offset = 12
    while offset + _CHUNK_HEADER.size <= len(view):
        chunk_id, chunk_size = _CHUNK_HEADER.unpack_from(view, offset)
        body_start = offset + _CHUNK_HEADER.size
        body_end = body_start + chunk_size

        if chunk_id == b"fmt ":
            fmt = _parse_fmt(view[body_start:body_end])
        elif chunk_id == b"data":
            # Stale size fields from streaming writers overrun the stream; keep what exists.
            pcm = view[body_start : min(body_end, len(view))]
            break
        else:
            LOGGER.debug("Skipping WAV chunk %r (%d bytes)", chunk_id, chunk_size)

        # RIFF chunks are word aligned.
        offset = body_end + (chunk_size & 1)

    if pcm is None:
        raise InvalidContainer("WAV stream has no data chunk.")
    if fmt.bits_per_sample != BITS_PER_SAMPLE:
        raise UnsupportedFormat(
            f"Only 16-bit PCM WAV is supported, got {fmt.bits_per_sample}-bit samples."
        )

    usable = len(pcm) - len(pcm) % (_SAMPLE_DTYPE.itemsize * fmt.channels)
    interleaved = np.frombuffer(pcm[:usable], dtype=_SAMPLE_DTYPE)
    if fmt.channels == 1:
        return AudioBuffer(fmt.sample_rate, interleaved)
    return AudioBuffer(fmt.sample_rate, _downmix(interleaved, fmt.channels))


def serialize(buffer: AudioBuffer) -> bytes:
    """Encode ``buffer`` as a canonical mono 16-bit PCM WAV byte string."""
    return pcm16_to_wav(buffer.samples.astype(_SAMPLE_DTYPE).tobytes(), buffer.sample_rate)


def pcm16_to_wav(pcm: bytes, sample_rate: int, channels: int = 1) -> bytes:
    """Wrap raw interleaved little-endian PCM16 bytes in a canonical WAV header."""
    if channels < 1:
        raise ValueError("channels must be at least 1.")
    block_align = channels * (BITS_PER_SAMPLE // 8)
    header = _CANONICAL_HEADER.pack(
        b"RIFF",
        36 + len(pcm),
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT_TAG,
        channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        len(pcm),
    )
    return header + bytes(pcm)


def read_wav(path: str | Path) -> AudioBuffer:
    """Read and parse a WAV file from disk."""
    file_path = Path(path)
    data = file_path.read_bytes()
    try:
        return parse(data)
    except InvalidContainer as exc:
        raise InvalidContainer(f"{exc} ({file_path})") from exc
    except UnsupportedFormat as exc:
        raise UnsupportedFormat(f"{exc} ({file_path})") from exc


def write_wav(path: str | Path, buffer: AudioBuffer) -> Path:
    """Serialise ``buffer`` to ``path`` atomically and return the resolved path.

    The bytes are written to a temporary sibling file that replaces ``path`` only once
    fully flushed, so readers never observe a truncated WAV.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = serialize(buffer)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    LOGGER.debug("Wrote %d samples at %d Hz to %s", len(buffer), buffer.sample_rate, target)
    return target


def _parse_fmt(body: memoryview) -> WavFormat:
    if len(body) < _FMT_BODY.size:
        raise InvalidContainer(f"fmt chunk too short: {len(body)} bytes.")
    _format_tag, channels, sample_rate, _byte_rate, _block_align, bits = _FMT_BODY.unpack_from(
        body
    )
    if channels == 0 or sample_rate == 0:
        raise InvalidContainer(
            f"fmt chunk declares {channels} channels at {sample_rate} Hz."
        )
    return WavFormat(channels=channels, sample_rate=sample_rate, bits_per_sample=bits)


def _downmix(interleaved: np.ndarray, channels: int) -> np.ndarray:
    """Average interleaved frames across channels, rounding half up."""
    frames = interleaved.reshape(-1, channels).astype(np.int64)
    return clamp_int16(round_half_up(frames.sum(axis=1) / channels))
