"""Audio file loading."""

import logging
from math import gcd
from pathlib import Path

import numpy as np
import soundfile as sf
from scipy import signal

from ..errors import ValidationError

logger = logging.getLogger(__name__)


def load_audio(file_path: str | Path, target_sample_rate: int = 16000) -> tuple[np.ndarray, int]:
    """
    Load an audio file as mono float32.

    Args:
        file_path: Path to an audio file readable by libsndfile
        target_sample_rate: Sample rate to resample to

    Returns:
        Tuple of (audio samples, sample rate)
    """
    path = Path(file_path)
    if not path.exists():
        raise ValidationError(f"Audio file not found: {path}")

    try:
        audio, sample_rate = sf.read(str(path), dtype="float32")
    except RuntimeError as e:
        raise ValidationError(f"Could not read audio file {path}: {e}") from e

    # Average channels to mono
    if audio.ndim > 1:
        audio = np.mean(audio, axis=1)

    if sample_rate != target_sample_rate:
        logger.debug(f"Resampling {path.name} from {sample_rate}Hz to {target_sample_rate}Hz")
        audio = resample(audio, sample_rate, target_sample_rate)
        sample_rate = target_sample_rate

    return audio.astype(np.float32), sample_rate


def resample(audio: np.ndarray, orig_sample_rate: int, target_sample_rate: int) -> np.ndarray:
    """Polyphase resampling between integer sample rates."""
    if orig_sample_rate <= 0 or target_sample_rate <= 0:
        raise ValidationError(
            f"Sample rates must be positive, got {orig_sample_rate} -> {target_sample_rate}"
        )
    if orig_sample_rate == target_sample_rate:
        return np.asarray(audio, dtype=np.float32)
    divisor = gcd(orig_sample_rate, target_sample_rate)
    resampled = signal.resample_poly(audio, target_sample_rate // divisor, orig_sample_rate // divisor)
    return resampled.astype(np.float32)
