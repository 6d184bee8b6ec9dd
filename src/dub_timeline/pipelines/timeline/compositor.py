"""Overlap-add assembly of synthesized speech clips onto one timeline."""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

import numpy as np

from ...audio.buffer import INT16_MAX, INT16_MIN, AudioBuffer, clamp_int16, round_half_up
from ...audio.resample import resample
from ...audio.wav import read_wav, write_wav
from ...config.load import load_config
from ...exceptions import EmptyInput
from ...utils.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)

__all__ = [
    "DEFAULT_TARGET_SAMPLE_RATE",
    "CompositionReport",
    "CompositionResult",
    "SegmentContribution",
    "SegmentPlacement",
    "SynthesizedSegment",
    "TimelineSettings",
    "compose",
    "compose_to_file",
    "compose_with_report",
    "load_placements",
]

DEFAULT_TARGET_SAMPLE_RATE = 24_000

_T = TypeVar("_T")
_R = TypeVar("_R")


@dataclass(frozen=True, slots=True)
class SegmentPlacement:
    """One utterance and the time window it occupies on the output timeline."""

    start_sec: float
    end_sec: float
    audio: AudioBuffer

    def __post_init__(self) -> None:
        if not (math.isfinite(self.start_sec) and math.isfinite(self.end_sec)):
            raise ValueError(
                f"Segment bounds must be finite, got [{self.start_sec}, {self.end_sec}]."
            )
        if self.start_sec < 0:
            raise ValueError(f"start_sec must be non-negative, got {self.start_sec}.")
        if self.end_sec < self.start_sec:
            raise ValueError(
                f"end_sec ({self.end_sec}) must not precede start_sec ({self.start_sec})."
            )


@dataclass(frozen=True, slots=True)
class SynthesizedSegment:
    """A synthesized clip on disk, as handed over by the speech-synthesis step."""

    index: int
    speaker: str
    start_sec: float
    end_sec: float
    wav_path: Path
    text: str = ""

    def load(self) -> SegmentPlacement:
        """Read the clip and wrap it in a :class:`SegmentPlacement`."""
        return SegmentPlacement(
            start_sec=self.start_sec,
            end_sec=self.end_sec,
            audio=read_wav(self.wav_path),
        )


@dataclass(slots=True)
class SegmentContribution:
    """How much of one segment landed on the timeline."""

    index: int
    start_index: int
    window_samples: int
    available_samples: int
    written_samples: int

    def to_dict(self) -> dict[str, int]:
        return {
            "index": self.index,
            "start_index": self.start_index,
            "window_samples": self.window_samples,
            "available_samples": self.available_samples,
            "written_samples": self.written_samples,
        }


@dataclass(slots=True)
class CompositionReport:
    """Summary of a composition run."""

    sample_rate: int
    total_samples: int
    contributions: list[SegmentContribution] = field(default_factory=list)
    clipped_samples: int = 0

    @property
    def duration_seconds(self) -> float:
        return self.total_samples / float(self.sample_rate)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable version."""
        return {
            "sample_rate": self.sample_rate,
            "total_samples": self.total_samples,
            "duration_seconds": self.duration_seconds,
            "clipped_samples": self.clipped_samples,
            "segments": [item.to_dict() for item in self.contributions],
        }


@dataclass(slots=True)
class CompositionResult:
    """The composed waveform together with its report."""

    audio: AudioBuffer
    report: CompositionReport


@dataclass(slots=True)
class TimelineSettings:
    """Compositor settings drawn from the ``timeline`` configuration section."""

    target_sample_rate: int = DEFAULT_TARGET_SAMPLE_RATE
    max_workers: int | None = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> TimelineSettings:
        timeline_cfg = config.get("timeline")
        if timeline_cfg is None:
            return cls()
        if not isinstance(timeline_cfg, Mapping):
            raise TypeError("Configuration 'timeline' must be a mapping.")

        try:
            rate = int(timeline_cfg.get("target_sample_rate", DEFAULT_TARGET_SAMPLE_RATE))
        except (TypeError, ValueError):
            raise TypeError(
                "Configuration 'timeline.target_sample_rate' must be an integer."
            ) from None

        workers_value = timeline_cfg.get("max_workers")
        try:
            max_workers = int(workers_value) if workers_value is not None else None
        except (TypeError, ValueError):
            raise TypeError(
                "Configuration 'timeline.max_workers' must be an integer if provided."
            ) from None
        return cls(target_sample_rate=rate, max_workers=max_workers)

    @classmethod
    def load(
        cls,
        env: str = "dev",
        *,
        config_dir: str | Path | None = None,
        overrides: Mapping[str, Any] | None = None,
        setup_logging: bool = True,
    ) -> TimelineSettings:
        """Load settings for ``env`` and, unless disabled, apply its ``logging`` section."""
        config = load_config(env, config_dir=config_dir, overrides=overrides)
        if setup_logging:
            configure_logging(config.get("logging"))
        settings = cls.from_config(config)
        LOGGER.debug("Loaded timeline settings for %r: %s", env, settings)
        return settings


def compose(
    segments: Sequence[SegmentPlacement],
    target_sample_rate: int = DEFAULT_TARGET_SAMPLE_RATE,
    minimum_duration_sec: float = 0.0,
    *,
    max_workers: int | None = None,
) -> AudioBuffer:
    """Mix ``segments`` into one mono waveform at ``target_sample_rate``.

    See :func:`compose_with_report` for the placement rules.
    """
    return compose_with_report(
        segments,
        target_sample_rate,
        minimum_duration_sec,
        max_workers=max_workers,
    ).audio


def compose_with_report(
    segments: Sequence[SegmentPlacement],
    target_sample_rate: int = DEFAULT_TARGET_SAMPLE_RATE,
    minimum_duration_sec: float = 0.0,
    *,
    max_workers: int | None = None,
) -> CompositionResult:
    """Mix ``segments`` into one waveform and report what each segment contributed.

    The timeline lasts as long as the longest of ``minimum_duration_sec``, every segment's
    ``end_sec``, and every segment's ``start_sec`` plus its audio duration. Each segment is
    resampled to ``target_sample_rate`` and its first ``min(len, window, room left)``
    samples are *added* to a 64-bit accumulator starting at ``round(start_sec * rate)``.
    The accumulator is clamped to int16 once every segment has been added, so the result
    does not depend on segment order.

    Resampling runs on a thread pool when ``max_workers`` is greater than one; the
    accumulation itself always happens in the calling thread.

    Raises:
        EmptyInput: ``segments`` is empty.
    """
    placements = list(segments)
    if not placements:
        raise EmptyInput("No segments were provided for composition.")
    if target_sample_rate <= 0:
        raise ValueError(f"target_sample_rate must be positive, got {target_sample_rate!r}.")
    if not math.isfinite(minimum_duration_sec):
        raise ValueError(f"minimum_duration_sec must be finite, got {minimum_duration_sec!r}.")

    total_duration = max(
        minimum_duration_sec,
        max(placement.end_sec for placement in placements),
        max(placement.start_sec + placement.audio.duration_seconds for placement in placements),
    )
    total_samples = max(1, math.ceil(total_duration * target_sample_rate))

    sources = _map_with_pool(
        lambda placement: resample(placement.audio, target_sample_rate),
        placements,
        max_workers,
    )

    accumulator = np.zeros(total_samples, dtype=np.int64)
    report = CompositionReport(sample_rate=target_sample_rate, total_samples=total_samples)
    for index, (placement, source) in enumerate(zip(placements, sources)):
        start_index = int(round_half_up(placement.start_sec * target_sample_rate))
        window = max(
            1, int(round_half_up((placement.end_sec - placement.start_sec) * target_sample_rate))
        )
        writable = max(0, min(len(source), window, total_samples - start_index))
        if writable:
            accumulator[start_index : start_index + writable] += source.samples[:writable]
        report.contributions.append(
            SegmentContribution(
                index=index,
                start_index=start_index,
                window_samples=window,
                available_samples=len(source),
                written_samples=writable,
            )
        )

    report.clipped_samples = int(
        np.count_nonzero((accumulator < INT16_MIN) | (accumulator > INT16_MAX))
    )
    audio = AudioBuffer(target_sample_rate, clamp_int16(accumulator))
    return CompositionResult(audio=audio, report=report)


def load_placements(
    segments: Iterable[SynthesizedSegment],
    *,
    max_workers: int | None = None,
) -> list[SegmentPlacement]:
    """Read every synthesized clip from disk; any failure aborts the whole load."""
    return _map_with_pool(SynthesizedSegment.load, list(segments), max_workers)


def compose_to_file(
    segments: Sequence[SegmentPlacement | SynthesizedSegment],
    output_path: str | Path,
    *,
    target_sample_rate: int | None = None,
    minimum_duration_sec: float = 0.0,
    max_workers: int | None = None,
    settings: TimelineSettings | None = None,
) -> Path:
    """Compose ``segments`` and persist the result as a canonical mono WAV.

    ``segments`` may mix in-memory placements and synthesized clips on disk. Nothing is
    written unless every clip loads and the composition succeeds. ``target_sample_rate``
    and ``max_workers`` fall back to ``settings`` (see :meth:`TimelineSettings.load`), then
    to the built-in defaults.
    """
    items = list(segments)
    if not items:
        raise EmptyInput("No segments were provided for composition.")

    settings = settings or TimelineSettings()
    rate = target_sample_rate if target_sample_rate is not None else settings.target_sample_rate
    workers = max_workers if max_workers is not None else settings.max_workers

    LOGGER.info(
        "Composing %d segments at %d Hz (minimum duration %.3fs).",
        len(items),
        rate,
        minimum_duration_sec,
    )
    to_load = [item for item in items if isinstance(item, SynthesizedSegment)]
    loaded = iter(load_placements(to_load, max_workers=workers))
    placements = [
        next(loaded) if isinstance(item, SynthesizedSegment) else item for item in items
    ]

    result = compose_with_report(
        placements,
        rate,
        minimum_duration_sec,
        max_workers=workers,
    )
    report = result.report
    if report.clipped_samples:
        LOGGER.warning(
            "%d samples clipped where overlapping segments exceeded the int16 range.",
            report.clipped_samples,
        )
    for contribution in report.contributions:
        if contribution.written_samples < contribution.available_samples:
            LOGGER.debug(
                "Segment %d truncated to %d of %d samples.",
                contribution.index,
                contribution.written_samples,
                contribution.available_samples,
            )

    target = write_wav(output_path, result.audio)
    LOGGER.info("Wrote timeline to %s: %s", target, report.to_dict())
    return target


def _map_with_pool(
    func: Callable[[_T], _R],
    items: Sequence[_T],
    max_workers: int | None,
) -> list[_R]:
    """Apply ``func`` to ``items`` in order, on a thread pool when ``max_workers > 1``."""
    if not max_workers or max_workers <= 1 or len(items) < 2:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(func, items))
