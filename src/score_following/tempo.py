"""Tempo analysis of a performance from its alignment path.

The reference is assumed to play at a constant ``ref_tempo``, so each
reference frame maps to a fractional beat. Interpolating the live time at
every whole beat gives beat event times, from which per-measure and overall
tempi follow.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np

from .alignment.warping import path_to_times
from .config import MAX_BPM, MIN_BPM, TEMPO_SMOOTH_RADIUS
from .errors import InsufficientData

logger = logging.getLogger(__name__)


def beat_event_times(
    path: Sequence[Tuple[int, int]],
    frame_duration: float,
    ref_tempo: float,
) -> List[float]:
    """Live time at which each whole reference beat was reached.

    Args:
        path: Alignment path of (reference_index, live_index) pairs.
        frame_duration: Seconds per frame on both axes.
        ref_tempo: Tempo of the reference recording in BPM.

    Returns:
        Live times in seconds for beats 0, 1, ... up to the last beat the
        path reaches.
    """
    if ref_tempo <= 0:
        raise ValueError(f"ref_tempo must be positive, got {ref_tempo}")
    if len(path) == 0:
        return []

    ref_times, live_times = path_to_times(path, frame_duration)
    ref_beats = ref_times * ref_tempo / 60.0

    events = []
    idx = 0
    for beat in range(int(np.floor(ref_beats[-1])) + 1):
        while idx < len(ref_beats) and ref_beats[idx] < beat:
            idx += 1
        if idx == len(ref_beats):
            break
        prev = idx - 1 if idx > 0 else idx
        beat_diff = ref_beats[idx] - ref_beats[prev]
        ratio = (beat - ref_beats[prev]) / beat_diff if beat_diff > 0 else 0.0
        events.append(float(live_times[prev] + ratio * (live_times[idx] - live_times[prev])))
    return events


def tempo_by_measure(
    beat_times: Sequence[float],
    beats_per_measure: int,
    min_bpm: float = MIN_BPM,
    max_bpm: float = MAX_BPM,
) -> List[Tuple[int, float]]:
    """BPM of each complete measure, clamped to [min_bpm, max_bpm].

    A measure is complete when the downbeat of the following measure was
    reached. Measures that took no live time are skipped.

    Returns:
        List of (1-based measure number, bpm).
    """
    if beats_per_measure < 1:
        raise ValueError(f"beats_per_measure must be >= 1, got {beats_per_measure}")

    tempi = []
    measure = 0
    while (measure + 1) * beats_per_measure < len(beat_times):
        t0 = beat_times[measure * beats_per_measure]
        t1 = beat_times[(measure + 1) * beats_per_measure]
        if t1 > t0:
            bpm = beats_per_measure / (t1 - t0) * 60.0
            tempi.append((measure + 1, min(max(bpm, min_bpm), max_bpm)))
        measure += 1
    return tempi


def smooth_tempo(bpms: Sequence[float], radius: int = TEMPO_SMOOTH_RADIUS) -> List[float]:
    """Centered moving average, window shrinking at the edges."""
    smoothed = []
    for i in range(len(bpms)):
        window = bpms[max(0, i - radius):min(len(bpms), i + radius + 1)]
        smoothed.append(float(np.mean(window)))
    return smoothed


def overall_tempo(beat_times: Sequence[float], strict: bool = False) -> float:
    """Average BPM from the first to the last beat event.

    Returns 0.0 when fewer than two beats were reached or no time elapsed,
    unless ``strict``.

    Raises:
        InsufficientData: In strict mode, instead of returning 0.0.
    """
    if len(beat_times) < 2 or beat_times[-1] == beat_times[0]:
        if strict:
            raise InsufficientData(
                f"Need two beats spanning nonzero time, got {len(beat_times)} beat events"
            )
        return 0.0
    return (len(beat_times) - 1) / (beat_times[-1] - beat_times[0]) * 60.0


@dataclass
class TempoCurve:
    """Per-measure tempo of a performance."""

    ref_tempo: float
    beats_per_measure: int
    measures: List[int] = field(default_factory=list)
    raw_bpm: List[float] = field(default_factory=list)
    smoothed_bpm: List[float] = field(default_factory=list)
    overall_bpm: float = 0.0

    def bpm(self, smoothed: bool = True) -> List[float]:
        return self.smoothed_bpm if smoothed else self.raw_bpm


def compute_tempo_curve(
    path: Sequence[Tuple[int, int]],
    frame_duration: float,
    ref_tempo: float,
    beats_per_measure: int,
    radius: int = TEMPO_SMOOTH_RADIUS,
) -> TempoCurve:
    """Compute raw and smoothed per-measure tempo plus overall tempo."""
    beats = beat_event_times(path, frame_duration, ref_tempo)
    by_measure = tempo_by_measure(beats, beats_per_measure)
    raw = [bpm for _, bpm in by_measure]

    curve = TempoCurve(
        ref_tempo=ref_tempo,
        beats_per_measure=beats_per_measure,
        measures=[m for m, _ in by_measure],
        raw_bpm=raw,
        smoothed_bpm=smooth_tempo(raw, radius),
        overall_bpm=overall_tempo(beats),
    )
    logger.info(
        "Tempo curve: %d beats, %d measures, overall %.1f BPM (reference %.1f)",
        len(beats),
        len(curve.measures),
        curve.overall_bpm,
        ref_tempo,
    )
    return curve
