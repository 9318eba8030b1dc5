"""Evaluation metrics for live-to-reference alignment.

Compares warped (predicted) live note times against ground-truth live
times and checks structural properties of alignment paths.
"""

from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from ..config import ONSET_ERROR_THRESHOLD_MS
from .warping import calculate_warped_times


def frame_to_time(frame_idx: int, frame_duration: float) -> float:
    """Convert frame index to time in seconds.

    Args:
        frame_idx: Frame index.
        frame_duration: Seconds per frame (hop length / sample rate).

    Returns:
        Time in seconds.
    """
    return frame_idx * frame_duration


def time_to_frame(time_sec: float, frame_duration: float) -> int:
    """Convert time in seconds to frame index.

    Args:
        time_sec: Time in seconds.
        frame_duration: Seconds per frame.

    Returns:
        Frame index (rounded).
    """
    return int(round(time_sec / frame_duration))


def onset_error(
    predicted_onsets: np.ndarray,
    ground_truth_onsets: np.ndarray,
    threshold_ms: float = ONSET_ERROR_THRESHOLD_MS,
) -> Dict[str, float]:
    """Score warped note times against annotated live onsets.

    Errors are signed as ``predicted - ground_truth``, so a positive
    ``bias_ms`` means the follower reports notes after the performer
    played them.

    Returns:
        Dict with ``mean_abs_error_ms``, ``median_abs_error_ms``,
        ``max_abs_error_ms``, ``rmse_ms``, ``bias_ms``, ``percent_within_threshold``
        and ``num_late`` (predictions later than the threshold allows).
    """
    predicted_onsets = np.asarray(predicted_onsets, dtype=np.float64)
    ground_truth_onsets = np.asarray(ground_truth_onsets, dtype=np.float64)
    if predicted_onsets.shape != ground_truth_onsets.shape:
        raise ValueError(
            f"Cannot compare {len(predicted_onsets)} predictions "
            f"with {len(ground_truth_onsets)} annotated onsets"
        )

    signed_ms = (predicted_onsets - ground_truth_onsets) * 1000
    if signed_ms.size == 0:
        return {
            "mean_abs_error_ms": 0.0,
            "median_abs_error_ms": 0.0,
            "max_abs_error_ms": 0.0,
            "rmse_ms": 0.0,
            "bias_ms": 0.0,
            "percent_within_threshold": 100.0,
            "num_late": 0,
        }

    abs_ms = np.abs(signed_ms)
    return {
        "mean_abs_error_ms": float(abs_ms.mean()),
        "median_abs_error_ms": float(np.median(abs_ms)),
        "max_abs_error_ms": float(abs_ms.max()),
        "rmse_ms": float(np.sqrt(np.mean(signed_ms ** 2))),
        "bias_ms": float(signed_ms.mean()),
        "percent_within_threshold": float(100.0 * np.mean(abs_ms <= threshold_ms)),
        "num_late": int(np.sum(signed_ms > threshold_ms)),
    }


def evaluate_warped_times(
    path: Sequence[Tuple[int, int]],
    frame_duration: float,
    ref_times: Sequence[float],
    live_times: Sequence[Optional[float]],
    threshold_ms: float = ONSET_ERROR_THRESHOLD_MS,
) -> Dict[str, float]:
    """Evaluate an alignment path against ground-truth live note times.

    Reference note times are warped through ``path`` and scored with
    ``onset_error``. Notes without an annotated live time are counted in
    ``num_unannotated``; annotated notes the path cannot map (empty path)
    are counted in ``num_unmapped``. Both are left out of the statistics,
    and ``num_notes`` is the number actually scored.
    """
    if len(ref_times) != len(live_times):
        raise ValueError(
            f"Length mismatch: ref_times={len(ref_times)}, live_times={len(live_times)}"
        )

    predicted = calculate_warped_times(path, frame_duration, ref_times)
    scored = []
    unannotated = unmapped = 0
    for p, g in zip(predicted, live_times):
        if g is None:
            unannotated += 1
        elif p is None:
            unmapped += 1
        else:
            scored.append((p, g))

    metrics = onset_error(
        np.array([p for p, _ in scored]),
        np.array([g for _, g in scored]),
        threshold_ms,
    )
    metrics.update(num_notes=len(scored), num_unannotated=unannotated, num_unmapped=unmapped)
    return metrics


def is_valid_path(path: Sequence[Tuple[int, int]]) -> bool:
    """Check that a path only makes (1, 0), (0, 1) or (1, 1) steps."""
    allowed = {(1, 0), (0, 1), (1, 1)}
    return all(
        (r1 - r0, l1 - l0) in allowed
        for (r0, l0), (r1, l1) in zip(path[:-1], path[1:])
    )


def longest_run(path: Sequence[Tuple[int, int]], step: Tuple[int, int]) -> int:
    """Length of the longest run of consecutive identical ``step`` moves."""
    best = current = 0
    for (r0, l0), (r1, l1) in zip(path[:-1], path[1:]):
        if (r1 - r0, l1 - l0) == step:
            current += 1
            best = max(best, current)
        else:
            current = 0
    return best
