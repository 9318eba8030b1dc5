"""Intonation estimation: per-note played pitch around score timestamps.

For each note, f0 estimates from a short neighbourhood of analysis windows
are compared against the notated pitch. Octave errors are folded back,
outliers are discarded, and the median remaining deviation is reported
relative to the score pitch.
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np

from .config import (
    DEFAULT_AGGREGATE_SIZE,
    OCTAVE_OFF_THRESHOLD,
    SEMITONE_THRESHOLD,
    IntonationConfig,
)
from .pitch import calculate_f0s, hz_to_midi
from .score_events import ScoreEvent

logger = logging.getLogger(__name__)


def fold_deviation(
    diff: float,
    semitone_threshold: float = SEMITONE_THRESHOLD,
    octave_off_threshold: int = OCTAVE_OFF_THRESHOLD,
) -> Optional[float]:
    """Fold an octave error back into range, or None if the candidate is rejected."""
    if abs(diff) > 12:
        if abs(diff) // 12 > octave_off_threshold:
            return None
        diff = math.fmod(diff, 12)
    if abs(diff) > semitone_threshold:
        return None
    return diff


def estimate_pitches_at_timestamps(
    query_times: Sequence[float],
    pitches: Sequence[float],
    score_pitches: Sequence[float],
    sample_rate: int,
    hop_len: int,
    semitone_threshold: float = SEMITONE_THRESHOLD,
    octave_off_threshold: int = OCTAVE_OFF_THRESHOLD,
    aggregate_size: int = DEFAULT_AGGREGATE_SIZE,
) -> List[Optional[float]]:
    """Estimate the played pitch of each note from per-window MIDI pitches.

    The neighbourhood of note ``i`` starts at its window and spans half the
    distance to the next note's window (``aggregate_size`` windows for the
    last note), at least one window.

    Args:
        query_times: Note onset times in seconds, ascending.
        pitches: Fractional MIDI pitch per analysis window, NaN if unvoiced.
        score_pitches: Notated MIDI pitch per note.
        sample_rate: Sample rate the windows were computed at.
        hop_len: Samples between analysis windows.

    Returns:
        Estimated MIDI pitch per note, None where no candidate survives.
    """
    if len(query_times) != len(score_pitches):
        raise ValueError(
            f"Got {len(query_times)} timestamps but {len(score_pitches)} score pitches"
        )

    pitches = np.asarray(pitches, dtype=np.float64)
    window_nums = [math.floor(ts * sample_rate / hop_len) for ts in query_times]

    estimates: List[Optional[float]] = []
    for idx, window_num in enumerate(window_nums):
        score_pitch = score_pitches[idx]
        if window_num < 0 or window_num >= len(pitches):
            logger.debug("Pitch #%d: window %d outside %d windows", idx, window_num, len(pitches))
            estimates.append(None)
            continue

        size = aggregate_size
        if idx + 1 < len(window_nums):
            size = (window_nums[idx + 1] - window_num) // 2
        size = min(max(size, 1), len(pitches) - window_num)

        deviations = []
        for candidate in pitches[window_num:window_num + size]:
            if np.isnan(candidate):
                continue
            diff = fold_deviation(candidate - score_pitch, semitone_threshold, octave_off_threshold)
            if diff is not None:
                deviations.append(diff)

        estimate = float(score_pitch + np.median(deviations)) if deviations else None
        logger.debug(
            "Pitch #%d: window %d, direct %.2f, score %s, %d/%d kept -> %s",
            idx,
            window_num,
            pitches[window_num],
            score_pitch,
            len(deviations),
            size,
            estimate,
        )
        estimates.append(estimate)

    return estimates


def calculate_intonation(
    audio: np.ndarray,
    events: Optional[Sequence[ScoreEvent]] = None,
    ref_times: Optional[Sequence[float]] = None,
    score_pitches: Optional[Sequence[float]] = None,
    config: Optional[IntonationConfig] = None,
    use_predicted: bool = True,
) -> List[Optional[float]]:
    """Estimate the played pitch of every score note in a recording.

    Notes are given either as ``events`` or as parallel ``ref_times`` and
    ``score_pitches``, where ``ref_times`` are positions in ``audio``.
    Events are queried at their ``predicted_time`` (see
    ``attach_predicted_times``), so ``audio`` is the live recording. With
    ``use_predicted=False`` they are queried at ``ref_time`` instead, for
    measuring the reference recording itself.

    Raises:
        ValueError: If an event lacks a MIDI pitch or the time being queried.
    """
    config = config or IntonationConfig()
    if events is not None:
        if any(event.midi is None for event in events):
            raise ValueError("Every score event needs a MIDI pitch for intonation")
        if use_predicted:
            missing = sum(event.predicted_time is None for event in events)
            if missing:
                raise ValueError(
                    f"{missing} score events have no predicted live time; "
                    "attach an alignment first or pass use_predicted=False"
                )
            ref_times = [event.predicted_time for event in events]
        else:
            ref_times = [event.ref_time for event in events]
        score_pitches = [event.midi for event in events]
    if ref_times is None or score_pitches is None:
        raise ValueError("Provide either events or both ref_times and score_pitches")

    f0s = calculate_f0s(
        audio,
        config.sample_rate,
        config.win_len,
        config.hop_len,
        fmin=config.fmin,
        fmax=config.fmax,
    )
    pitches = hz_to_midi(f0s)
    logger.info("Estimating intonation of %d notes over %d windows", len(ref_times), len(pitches))

    return estimate_pitches_at_timestamps(
        ref_times,
        pitches,
        score_pitches,
        config.sample_rate,
        config.hop_len,
        semitone_threshold=config.semitone_threshold,
        octave_off_threshold=config.octave_off_threshold,
    )
