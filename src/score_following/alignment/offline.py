"""Offline alignment: replay the streaming follower over a whole recording."""

import logging
import math
from typing import TYPE_CHECKING

import numpy as np

from .otw import AlignmentPath

if TYPE_CHECKING:
    from ..follower import ScoreFollower

logger = logging.getLogger(__name__)


def precompute_alignment_path(
    audio: np.ndarray,
    frame_size: int,
    follower: "ScoreFollower",
) -> AlignmentPath:
    """Compute the full alignment path for a pre-loaded live recording.

    Steps the follower once per consecutive, non-overlapping frame of
    ``frame_size`` samples, zero-padding the final partial frame.

    Args:
        audio: Mono PCM samples of the live recording.
        frame_size: Samples per frame (the follower's window length).
        follower: A ScoreFollower, normally fresh or just reset.

    Returns:
        The path pairs added by this replay, in order.

    Raises:
        ValueError: If ``frame_size`` is not in ``[1, follower.win_len]``.
    """
    if not 0 < frame_size <= follower.win_len:
        raise ValueError(
            f"frame_size must be in [1, {follower.win_len}], got {frame_size}"
        )

    audio = np.asarray(audio, dtype=np.float64).reshape(-1)
    total_frames = math.ceil(len(audio) / frame_size)
    start = len(follower.path)
    logger.info(
        "Offline alignment: %d frames of %d samples", total_frames, frame_size
    )

    for i in range(total_frames):
        frame = audio[i * frame_size:(i + 1) * frame_size]
        if len(frame) < frame_size:
            frame = np.pad(frame, (0, frame_size - len(frame)))
        time_sec = follower.step(frame)
        logger.debug("Frame %d -> %.3fs, path head %s", i, time_sec, follower.path[-1])

    path = list(follower.path[start:])
    logger.info("Offline alignment complete: path length %d", len(path))
    return path
