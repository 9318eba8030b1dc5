import logging

import numpy as np
import pytest

from src.score_following.config import DEFAULT_WIN_LEN
from src.score_following.errors import ScoreFollowingError
from src.score_following.session import LiveSession


def test_processes_frames_in_order(tone_follower, tone, split_frames):
    positions = []
    session = LiveSession(tone_follower, on_position=lambda idx, pos: positions.append((idx, pos)))
    session.start()
    for frame in split_frames(tone):
        session.submit(frame)
    session.stop()

    assert session.frames_processed == 11
    assert [idx for idx, _ in positions] == list(range(11))
    assert tone_follower.path == [(i, i) for i in range(11)]
    assert session.position == pytest.approx(10 * tone_follower.frame_duration)


def test_malformed_frame_is_dropped(tone_follower, tone, split_frames, caplog):
    caplog.set_level(logging.WARNING)
    frames = split_frames(tone)
    bad = np.full(DEFAULT_WIN_LEN, np.nan)

    with LiveSession(tone_follower) as session:
        session.submit(frames[0])
        session.submit(bad)
        for frame in frames[1:]:
            session.submit(frame)

    assert session.frames_dropped == 1
    assert session.frames_processed == 11
    assert tone_follower.path == [(i, i) for i in range(11)]
    assert "Dropped live frame" in caplog.text


def test_unexpected_error_halts_and_reraises(tone_follower, tone, monkeypatch):
    def broken(frame):
        raise RuntimeError("capture device lost")

    monkeypatch.setattr(tone_follower, "step", broken)
    session = LiveSession(tone_follower).start()
    session.submit(tone[:DEFAULT_WIN_LEN])
    with pytest.raises(RuntimeError, match="capture device lost"):
        session.stop()
    with pytest.raises(ScoreFollowingError):
        session.submit(tone[:DEFAULT_WIN_LEN])


def test_callback_error_halts(tone_follower, tone):
    def callback(idx, position):
        raise ValueError("bad callback")

    session = LiveSession(tone_follower, on_position=callback).start()
    session.submit(tone[:DEFAULT_WIN_LEN])
    with pytest.raises(ValueError, match="bad callback"):
        session.stop()


def test_submit_requires_running_session(tone_follower, tone):
    session = LiveSession(tone_follower)
    with pytest.raises(ScoreFollowingError):
        session.submit(tone[:DEFAULT_WIN_LEN])
    session.start()
    session.stop()
    assert not session.running
    with pytest.raises(ScoreFollowingError):
        session.submit(tone[:DEFAULT_WIN_LEN])


def test_cannot_start_twice(tone_follower):
    session = LiveSession(tone_follower).start()
    with pytest.raises(ScoreFollowingError):
        session.start()
    session.stop()


def test_submitted_frames_are_copied(tone_follower, tone, split_frames):
    frames = split_frames(tone)
    buffer = frames[0].copy()
    session = LiveSession(tone_follower).start()
    session.submit(buffer)
    buffer[:] = np.nan
    session.stop()
    assert session.frames_processed == 1
    assert session.frames_dropped == 0
