"""Online time warping against a precomputed reference sequence.

The engine consumes one live feature per ``insert`` and keeps only a band
of ``2 * search_width + 1`` accumulated costs per live frame, for the last
``window_depth`` live frames. It never builds the full cost matrix.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np

from ..config import DEFAULT_DIAG_WEIGHT, DEFAULT_MAX_RUN_COUNT, DEFAULT_SEARCH_WIDTH
from ..errors import FeatureMismatch
from ..features.base import FeatureExtractor

logger = logging.getLogger(__name__)


AlignmentPath = List[Tuple[int, int]]


class Direction(Enum):
    REFERENCE = "reference"
    LIVE = "live"
    BOTH = "both"


# (reference, live) increments
STEPS = {
    Direction.REFERENCE: (1, 0),
    Direction.LIVE: (0, 1),
    Direction.BOTH: (1, 1),
}

# Candidates are scanned in this order and the first minimum wins.
TIE_BREAK_ORDER = (Direction.BOTH, Direction.LIVE, Direction.REFERENCE)


@dataclass(frozen=True)
class RunState:
    """Which single axis advanced last and how many consecutive times."""

    axis: Optional[Direction] = None
    count: int = 0

    def allows(self, direction: Direction, max_run_count: int) -> bool:
        if direction is Direction.BOTH:
            return True
        return not (direction is self.axis and self.count >= max_run_count)

    def advanced(self, direction: Direction) -> "RunState":
        if direction is Direction.BOTH:
            return RunState()
        if direction is self.axis:
            return RunState(direction, self.count + 1)
        return RunState(direction, 1)


class CostWindow:
    """Bounded store of accumulated costs keyed by (reference, live) index.

    Each live column holds the costs for the contiguous reference band it
    was computed over. Cells outside the retained columns or bands read as
    +inf.
    """

    def __init__(self, depth: int):
        self.depth = depth
        self._columns: Dict[int, Tuple[int, np.ndarray]] = {}

    def get(self, ref_idx: int, live_idx: int) -> float:
        column = self._columns.get(live_idx)
        if column is None:
            return np.inf
        lo, costs = column
        k = ref_idx - lo
        if 0 <= k < len(costs):
            return float(costs[k])
        return np.inf

    def put(self, live_idx: int, lo: int, costs: np.ndarray) -> None:
        self._columns[live_idx] = (lo, costs)

    def evict(self, live_idx: int) -> None:
        """Keep only the ``depth`` most recent columns up to ``live_idx``."""
        oldest = live_idx - self.depth + 1
        for t in [t for t in self._columns if t < oldest]:
            del self._columns[t]

    def column(self, live_idx: int) -> Optional[Tuple[int, np.ndarray]]:
        return self._columns.get(live_idx)

    def clear(self) -> None:
        self._columns.clear()

    def __len__(self) -> int:
        return len(self._columns)

    def __contains__(self, live_idx: int) -> bool:
        return live_idx in self._columns


class OnlineTimeWarping:
    """Incremental DTW of a live feature stream against a reference.

    Args:
        reference: Reference features of shape [N, D].
        extractor: Feature extractor whose ``compare_many`` defines the local
            distance.
        search_width: Half-width ``c`` of the reference band per live frame.
        max_run_count: Consecutive single-axis moves allowed before the other
            axis (or the diagonal) is forced.
        diag_weight: Multiplier applied to the diagonal predecessor cost.
        window_depth: Live columns retained for backtracking.
            Defaults to ``search_width``.

    Raises:
        FeatureMismatch: If the reference is empty, not 2-D, or not finite.
    """

    def __init__(
        self,
        reference: np.ndarray,
        extractor: FeatureExtractor,
        search_width: int = DEFAULT_SEARCH_WIDTH,
        max_run_count: int = DEFAULT_MAX_RUN_COUNT,
        diag_weight: float = DEFAULT_DIAG_WEIGHT,
        window_depth: Optional[int] = None,
    ):
        reference = np.asarray(reference, dtype=np.float64)
        if reference.ndim != 2 or reference.shape[0] == 0:
            raise FeatureMismatch(
                f"Reference must be a non-empty [N, D] array, got shape {reference.shape}"
            )
        if not np.all(np.isfinite(reference)):
            raise FeatureMismatch("Reference features contain NaN or inf values")

        self.reference = reference
        self.extractor = extractor
        self.search_width = search_width
        self.max_run_count = max_run_count
        self.diag_weight = diag_weight
        self.window = CostWindow(window_depth or search_width)

        self.ref_idx = 0
        self.live_idx = -1
        self.run_state = RunState()
        self.path: AlignmentPath = []

    @property
    def ref_length(self) -> int:
        return self.reference.shape[0]

    def insert(self, live_feature: np.ndarray) -> int:
        """Consume one live feature and return the current reference index.

        Raises:
            FeatureMismatch: If the feature is malformed. No state changes.
        """
        feature = self._validate(live_feature)
        t = self.live_idx + 1
        lo, costs = self._compute_column(feature, t)

        if t == 0:
            ref_idx, run_state, points = 0, self.run_state, [(0, 0)]
        else:
            ref_idx, run_state, points = self._choose_moves(t, lo, costs)

        self.window.put(t, lo, costs)
        self.window.evict(t)
        self.live_idx = t
        self.ref_idx = ref_idx
        self.run_state = run_state
        self.path.extend(points)

        logger.debug("OTW step t=%d -> %s", t, points)
        return ref_idx

    def _validate(self, live_feature) -> np.ndarray:
        try:
            feature = np.asarray(live_feature, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise FeatureMismatch(f"Live feature is not numeric: {e}") from e

        expected = self.reference.shape[1]
        if feature.shape != (expected,):
            raise FeatureMismatch(f"Expected feature of shape ({expected},), got {feature.shape}")
        if not np.all(np.isfinite(feature)):
            raise FeatureMismatch("Live feature contains NaN or inf values")
        return feature

    def _compute_column(self, feature: np.ndarray, t: int) -> Tuple[int, np.ndarray]:
        """Accumulated costs of live column ``t`` over the band around ref_idx."""
        lo = max(0, self.ref_idx - self.search_width)
        hi = min(self.ref_length - 1, self.ref_idx + self.search_width)
        dist = self.extractor.compare_many(self.reference[lo:hi + 1], feature)

        costs = np.empty(hi - lo + 1)
        for k, i in enumerate(range(lo, hi + 1)):
            down = costs[k - 1] if k > 0 else np.inf
            left = self.window.get(i, t - 1)
            diag = self.diag_weight * self.window.get(i - 1, t - 1)
            best = min(down, left, diag)
            if t == 0 and i == 0:
                # No predecessor at the origin
                best = 0.0
            costs[k] = dist[k] + best
        return lo, costs

    def _choose_moves(
        self, t: int, lo: int, costs: np.ndarray
    ) -> Tuple[int, RunState, AlignmentPath]:
        """Walk from the frontier (ref_idx, t - 1) until live column t is reached.

        Reference-only moves stay in column t - 1, so several moves may be made
        for one live frame; the run-length limit bounds them.
        """

        def cost_at(i: int, col: int) -> float:
            if col == t:
                k = i - lo
                return float(costs[k]) if 0 <= k < len(costs) else np.inf
            return self.window.get(i, col)

        j = self.ref_idx
        run_state = self.run_state
        points: AlignmentPath = []

        while True:
            candidates = []
            for direction in TIE_BREAK_ORDER:
                di, dt = STEPS[direction]
                if j + di > self.ref_length - 1:
                    continue
                if not run_state.allows(direction, self.max_run_count):
                    continue
                candidates.append((cost_at(j + di, t - 1 + dt), direction))

            if candidates:
                _, direction = min(candidates, key=lambda c: c[0])
            else:
                # Reference exhausted and live run at its limit
                direction = Direction.LIVE

            di, dt = STEPS[direction]
            j += di
            run_state = run_state.advanced(direction)
            points.append((j, t - 1 + dt))
            if dt == 1:
                return j, run_state, points

    def get_backwards_path(self, b: int) -> AlignmentPath:
        """Backtrack up to ``b`` steps from the frontier through the window.

        Each step takes the cheapest predecessor, with the diagonal weighted
        as in the recurrence; ties prefer diagonal, then down, then left.
        Stops early at the origin or when no predecessor is retained.
        """
        j, t = self.ref_idx, self.live_idx
        path: AlignmentPath = []
        if t < 0:
            return path

        while len(path) < b and (j, t) != (0, 0):
            candidates = [
                (self.diag_weight * self.window.get(j - 1, t - 1), j - 1, t - 1),
                (self.window.get(j - 1, t), j - 1, t),
                (self.window.get(j, t - 1), j, t - 1),
            ]
            cost, prev_j, prev_t = min(candidates, key=lambda c: c[0])
            if not np.isfinite(cost):
                break
            path.append((prev_j, prev_t))
            j, t = prev_j, prev_t

        return path

    def reset(self) -> None:
        self.window.clear()
        self.ref_idx = 0
        self.live_idx = -1
        self.run_state = RunState()
        self.path = []
