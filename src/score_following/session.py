"""Feed a ScoreFollower from an audio capture callback.

Capture callbacks usually run on a thread owned by the audio backend and
must return quickly. LiveSession decouples them from alignment: producers
``submit`` frames into a queue and a single worker thread steps the
follower in arrival order.
"""

import logging
import queue
import threading
from typing import Callable, Optional

import numpy as np

from .errors import FeatureMismatch, ScoreFollowingError
from .follower import ScoreFollower

logger = logging.getLogger(__name__)

_STOP = object()

PositionCallback = Callable[[int, float], None]


class LiveSession:
    """Single-consumer worker around one ScoreFollower.

    Malformed frames are dropped and logged. Any other error halts the
    session; it is re-raised from ``stop()``.

    Args:
        follower: Follower to step. The session is its only caller while
            running.
        on_position: Called on the worker thread with (live frame index,
            reference position in seconds) after each accepted frame.
        maxsize: Queue bound; 0 means unbounded.
    """

    def __init__(
        self,
        follower: ScoreFollower,
        on_position: Optional[PositionCallback] = None,
        maxsize: int = 0,
    ):
        self.follower = follower
        self.on_position = on_position
        self.position: Optional[float] = None
        self.frames_processed = 0
        self.frames_dropped = 0
        self.error: Optional[BaseException] = None
        self._queue: "queue.Queue" = queue.Queue(maxsize=maxsize)
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "LiveSession":
        if self._thread is not None:
            raise ScoreFollowingError("Session already started")
        self._thread = threading.Thread(target=self._run, name="score-follower", daemon=True)
        self._thread.start()
        logger.info("Live session started")
        return self

    def submit(self, frame, block: bool = True, timeout: Optional[float] = None) -> None:
        """Queue one live frame. Safe to call from any thread.

        Raises:
            ScoreFollowingError: If the session is not running.
            queue.Full: If the queue is bounded and stays full.
        """
        if self.error is not None:
            raise ScoreFollowingError("Session halted") from self.error
        if not self.running:
            raise ScoreFollowingError("Session is not running")
        self._queue.put(np.array(frame, dtype=np.float64), block=block, timeout=timeout)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Process frames already queued, then stop the worker.

        Raises:
            The exception that halted the session, if any.
        """
        if self._thread is not None:
            while self._thread.is_alive():
                try:
                    self._queue.put(_STOP, timeout=0.1)
                    break
                except queue.Full:
                    continue
            self._thread.join(timeout)
            logger.info(
                "Live session stopped: %d frames processed, %d dropped",
                self.frames_processed,
                self.frames_dropped,
            )
        if self.error is not None:
            raise self.error

    def _run(self) -> None:
        while True:
            frame = self._queue.get()
            if frame is _STOP:
                return
            try:
                position = self.follower.step(frame)
            except FeatureMismatch as e:
                self.frames_dropped += 1
                logger.warning("Dropped live frame: %s", e)
                continue
            except Exception as e:
                logger.error("Live session halted: %s", e)
                self.error = e
                return

            self.position = position
            frame_idx = self.frames_processed
            self.frames_processed += 1
            if self.on_position is not None:
                try:
                    self.on_position(frame_idx, position)
                except Exception as e:
                    logger.error("Position callback failed, halting session: %s", e)
                    self.error = e
                    return

    def __enter__(self) -> "LiveSession":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.stop()
        else:
            try:
                self.stop()
            except Exception:
                logger.exception("Live session error while unwinding")
