"""Score event tables: per-note beat positions and timestamps.

A score event CSV has a header row and one row per note. Column 0 is the
0-based beat index, column 5 the note's time in the reference recording
and column 6 its time in a ground-truth live recording (may be empty). A
column headed ``midi`` supplies the notated pitch when present.
"""

import bisect
import csv
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from .alignment.warping import calculate_warped_times

logger = logging.getLogger(__name__)

BEAT_COLUMN = 0
REF_TIME_COLUMN = 5
LIVE_TIME_COLUMN = 6
MIDI_HEADER = "midi"


@dataclass
class ScoreEvent:
    """One note of the score.

    Attributes:
        beat: 1-based beat position of the note onset.
        ref_time: Onset time in the reference recording (seconds).
        midi: Notated MIDI pitch, if known.
        live_time: Ground-truth onset time in a live recording, if known.
        predicted_time: Live onset time estimated from an alignment path.
    """

    beat: float
    ref_time: float
    midi: Optional[float] = None
    live_time: Optional[float] = None
    predicted_time: Optional[float] = None


def _optional_float(value: str) -> Optional[float]:
    value = value.strip()
    return float(value) if value else None


def parse_score_csv(text: str) -> List[ScoreEvent]:
    """Parse score event CSV text into ScoreEvents.

    Raises:
        ValueError: If a row has too few columns or a non-numeric field.
    """
    rows = [row for row in csv.reader(io.StringIO(text.strip())) if any(cell.strip() for cell in row)]
    if not rows:
        return []

    header = [cell.strip().lower() for cell in rows[0]]
    midi_column = header.index(MIDI_HEADER) if MIDI_HEADER in header else None

    events = []
    for line_num, row in enumerate(rows[1:], start=2):
        if len(row) <= LIVE_TIME_COLUMN:
            raise ValueError(
                f"Line {line_num}: expected at least {LIVE_TIME_COLUMN + 1} columns, got {len(row)}"
            )
        try:
            events.append(
                ScoreEvent(
                    beat=float(row[BEAT_COLUMN]) + 1,
                    ref_time=float(row[REF_TIME_COLUMN]),
                    midi=(
                        _optional_float(row[midi_column])
                        if midi_column is not None and midi_column < len(row)
                        else None
                    ),
                    live_time=_optional_float(row[LIVE_TIME_COLUMN]),
                )
            )
        except ValueError as e:
            raise ValueError(f"Line {line_num}: {e}") from e

    return events


def load_score_events(path: Union[str, Path]) -> List[ScoreEvent]:
    """Read and parse a score event CSV file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Score event file not found: {path}")
    events = parse_score_csv(path.read_text())
    logger.info("Loaded %d score events from %s", len(events), path.name)
    return events


def attach_predicted_times(
    events: List[ScoreEvent],
    path: Sequence[Tuple[int, int]],
    frame_duration: float,
) -> List[ScoreEvent]:
    """Fill ``predicted_time`` of each event by warping its reference time."""
    predicted = calculate_warped_times(path, frame_duration, [e.ref_time for e in events])
    for event, predicted_time in zip(events, predicted):
        event.predicted_time = predicted_time
    return events


def beat_at_reference_time(events: Sequence[ScoreEvent], ref_time: float) -> Optional[float]:
    """Beat of the last note starting at or before ``ref_time`` in the reference.

    Events must be sorted by ``ref_time``. Returns None before the first note.
    """
    idx = bisect.bisect_right([e.ref_time for e in events], ref_time)
    return events[idx - 1].beat if idx > 0 else None


def current_beat(events: Sequence[ScoreEvent], live_time: float) -> Optional[float]:
    """Beat of the last note whose predicted live onset has been reached.

    Events without a predicted time are ignored. Returns None before the
    first predicted onset.
    """
    beat = None
    for event in events:
        if event.predicted_time is None:
            continue
        if event.predicted_time > live_time:
            break
        beat = event.beat
    return beat
