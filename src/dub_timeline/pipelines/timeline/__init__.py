"""Timeline assembly of synthesized speech segments."""

from .compositor import (
    DEFAULT_TARGET_SAMPLE_RATE,
    CompositionReport,
    CompositionResult,
    SegmentContribution,
    SegmentPlacement,
    SynthesizedSegment,
    TimelineSettings,
    compose,
    compose_to_file,
    compose_with_report,
    load_placements,
)

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
