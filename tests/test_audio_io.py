import io

import numpy as np
import pytest
import requests
import soundfile as sf

from src.score_following.audio_io import (
    decode_audio,
    fetch_bytes,
    load_reference_audio,
    resample_audio,
    to_mono,
)
from src.score_following.errors import ReferenceLoadError


def wav_bytes(audio, sr):
    buffer = io.BytesIO()
    sf.write(buffer, audio, sr, format="WAV", subtype="FLOAT")
    return buffer.getvalue()


class FakeResponse:
    def __init__(self, content=b"", status_code=200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_to_mono():
    stereo = np.stack([np.ones(10), np.zeros(10)], axis=1)
    assert np.allclose(to_mono(stereo), 0.5)
    assert to_mono(np.ones((10, 1))).shape == (10,)
    assert to_mono(np.ones(10)).shape == (10,)


def test_resample_audio(tone):
    assert resample_audio(tone, 44100, 44100) is tone
    assert len(resample_audio(tone, 44100, 22050)) == 22050


def test_decode_bytes(tone):
    audio, sr = decode_audio(wav_bytes(tone, 44100))
    assert sr == 44100
    assert audio.shape == (44100, 1)
    assert np.allclose(audio[:, 0], tone)


def test_decode_garbage():
    with pytest.raises(ReferenceLoadError):
        decode_audio(b"\x00\x01garbage")


def test_load_stereo_file_downmixes_and_resamples(tone, tmp_path):
    path = tmp_path / "stereo.wav"
    sf.write(path, np.stack([tone, tone], axis=1), 44100, subtype="FLOAT")
    audio = load_reference_audio(path, target_sr=22050)
    assert audio.ndim == 1
    assert audio.dtype == np.float32
    assert len(audio) == 22050


def test_load_array(tone):
    audio = load_reference_audio(tone)
    assert np.array_equal(audio, tone)


def test_load_array_with_nan():
    with pytest.raises(ReferenceLoadError):
        load_reference_audio(np.array([0.0, np.nan, 0.0]))


def test_load_missing_path(tmp_path):
    with pytest.raises(ReferenceLoadError, match="not found"):
        load_reference_audio(tmp_path / "nope.wav")


def test_load_url(tone, monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append(url)
        return FakeResponse(wav_bytes(tone, 44100))

    monkeypatch.setattr(requests, "get", fake_get)
    audio = load_reference_audio("https://example.com/piece.wav")
    assert calls == ["https://example.com/piece.wav"]
    assert len(audio) == len(tone)


def test_fetch_http_error(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse(status_code=404))
    with pytest.raises(ReferenceLoadError) as excinfo:
        fetch_bytes("https://example.com/missing.wav")
    assert isinstance(excinfo.value.__cause__, requests.HTTPError)
