"""Reference audio loading: fetch, decode, downmix and resample.

Accepts a local path, an http(s) URL, raw encoded bytes, or an in-memory
sample array. Every failure surfaces as ReferenceLoadError.
"""

import io
import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import librosa
import numpy as np
import requests
import soundfile as sf

from .config import DEFAULT_SAMPLE_RATE
from .errors import ReferenceLoadError

logger = logging.getLogger(__name__)


ReferenceSource = Union[str, Path, bytes, np.ndarray]

REQUEST_TIMEOUT = 30.0  # seconds


def to_mono(audio: np.ndarray) -> np.ndarray:
    """Average channels of a [samples, channels] array into one channel."""
    audio = np.asarray(audio, dtype=np.float32)
    if audio.ndim == 2:
        if audio.shape[1] == 1:
            return audio[:, 0]
        return audio.mean(axis=1)
    return audio


def resample_audio(audio: np.ndarray, src_rate: int, dest_rate: int) -> np.ndarray:
    """Resample mono audio; returns the input unchanged if rates match."""
    if src_rate == dest_rate:
        return audio
    return librosa.resample(audio, orig_sr=src_rate, target_sr=dest_rate).astype(np.float32)


def fetch_bytes(url: str, timeout: float = REQUEST_TIMEOUT) -> bytes:
    """Download a reference recording.

    Raises:
        ReferenceLoadError: On connection errors or non-2xx responses.
    """
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise ReferenceLoadError(f"Failed to fetch {url}: {e}") from e
    return response.content


def decode_audio(data: Union[str, Path, bytes]) -> Tuple[np.ndarray, int]:
    """Decode a file path or encoded bytes into ([samples, channels], sr)."""
    source = io.BytesIO(data) if isinstance(data, bytes) else str(data)
    label = "<bytes>" if isinstance(data, bytes) else str(data)
    try:
        audio, sr = sf.read(source, dtype="float32", always_2d=True)
    except (RuntimeError, OSError, ValueError) as e:
        raise ReferenceLoadError(
            f"Failed to decode audio: {label} ({type(e).__name__}: {e})"
        ) from e
    return audio, sr


def load_reference_audio(
    source: ReferenceSource,
    target_sr: int = DEFAULT_SAMPLE_RATE,
    source_sr: Optional[int] = None,
) -> np.ndarray:
    """Load reference audio as mono float32 at ``target_sr``.

    Args:
        source: File path, http(s) URL, encoded audio bytes, or a sample
            array of shape [samples] or [samples, channels].
        target_sr: Session sample rate.
        source_sr: Sample rate of ``source`` when it is an array. Defaults
            to ``target_sr``.

    Returns:
        1D float32 array of mono audio at target_sr.

    Raises:
        ReferenceLoadError: If the audio cannot be fetched or decoded, or
            is empty.
    """
    if isinstance(source, np.ndarray):
        audio = source if source.ndim == 2 else source.reshape(-1)
        sr = source_sr or target_sr
        label = "<array>"
    elif isinstance(source, bytes):
        audio, sr = decode_audio(source)
        label = "<bytes>"
    elif isinstance(source, str) and source.startswith(("http://", "https://")):
        audio, sr = decode_audio(fetch_bytes(source))
        label = source
    else:
        path = Path(source)
        if not path.exists():
            raise ReferenceLoadError(f"Reference audio not found: {path}")
        audio, sr = decode_audio(path)
        label = str(path)

    audio = to_mono(audio)
    if audio.size == 0:
        raise ReferenceLoadError(f"Loaded empty reference audio: {label}")
    if not np.all(np.isfinite(audio)):
        raise ReferenceLoadError(f"Reference audio contains NaN or inf samples: {label}")

    try:
        audio = resample_audio(audio, sr, target_sr)
    except Exception as e:
        raise ReferenceLoadError(f"Failed to resample {label} from {sr} Hz to {target_sr} Hz") from e

    logger.info(
        "Loaded reference %s: %.2fs at %d Hz", label, len(audio) / target_sr, target_sr
    )
    return audio
