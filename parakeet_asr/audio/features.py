"""Log-mel spectrogram features for the encoder."""

import logging
from typing import Optional

import numpy as np
import torch

from ..config import AudioConfig

logger = logging.getLogger(__name__)

LOG_FLOOR = 1e-10


def hz_to_mel(hz):
    return 2595.0 * np.log10(1.0 + np.asarray(hz) / 700.0)


def mel_to_hz(mel):
    return 700.0 * (10.0 ** (np.asarray(mel) / 2595.0) - 1.0)


def mel_filterbank(sample_rate: int, fft_size: int, mel_bins: int) -> np.ndarray:
    """Triangular HTK-mel filterbank ``[mel_bins, fft_size // 2 + 1]`` from 0 Hz to Nyquist."""
    # Integer FFT bin edges (floor rule); torchaudio's melscale_fbanks interpolates in Hz instead
    num_bins = fft_size // 2 + 1
    mel_points = np.linspace(hz_to_mel(0.0), hz_to_mel(sample_rate / 2.0), mel_bins + 2)
    bin_indices = np.floor((fft_size + 1) * mel_to_hz(mel_points) / sample_rate).astype(int)

    filterbank = np.zeros((mel_bins, num_bins), dtype=np.float32)
    for m in range(mel_bins):
        f_start, f_center, f_end = bin_indices[m], bin_indices[m + 1], bin_indices[m + 2]

        if f_center > f_start:
            for f in range(max(f_start, 0), min(f_center, num_bins)):
                filterbank[m, f] = (f - f_start) / (f_center - f_start)

        if f_end > f_center:
            for f in range(max(f_center, 0), min(f_end, num_bins)):
                filterbank[m, f] = (f_end - f) / (f_end - f_center)

    return filterbank


class MelFeatureExtractor:
    """Computes log-mel features with torch.stft."""

    def __init__(self, config: AudioConfig):
        self.sample_rate = config.sample_rate
        self.fft_size = config.fft_size
        self.hop_length = config.hop_length
        self.mel_bins = config.mel_bins

        self._window = torch.hann_window(self.fft_size)
        self._filterbank = torch.from_numpy(
            mel_filterbank(self.sample_rate, self.fft_size, self.mel_bins)
        )

    def num_frames(self, num_samples: int) -> int:
        """Feature frames produced for a number of samples."""
        if num_samples <= 0:
            return 0
        return num_samples // self.hop_length + 1

    def extract(self, samples: np.ndarray, valid_samples: Optional[int] = None) -> tuple[np.ndarray, int]:
        """
        Compute log-mel features for a (padded) chunk.

        Args:
            samples: Mono float32 audio
            valid_samples: Unpadded sample count; defaults to all samples

        Returns:
            Tuple of (features ``[mel_bins, frames]``, valid frame count).
            Frames past the valid count are zero.
        """
        samples = np.asarray(samples, dtype=np.float32)
        if valid_samples is None:
            valid_samples = len(samples)
        valid_samples = max(0, min(int(valid_samples), len(samples)))

        if len(samples) < self.fft_size:
            samples = np.pad(samples, (0, self.fft_size - len(samples)))

        audio = torch.from_numpy(samples)
        with torch.no_grad():
            spectrum = torch.stft(
                audio,
                n_fft=self.fft_size,
                hop_length=self.hop_length,
                win_length=self.fft_size,
                window=self._window,
                center=True,
                return_complex=True,
            )
            power = spectrum.abs() ** 2
            log_mel = torch.log(torch.clamp(self._filterbank @ power, min=LOG_FLOOR))

        features = log_mel.numpy().astype(np.float32)
        valid_frames = min(features.shape[1], self.num_frames(valid_samples))
        features[:, valid_frames:] = 0.0
        return features, valid_frames
