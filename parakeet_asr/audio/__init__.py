"""Audio front end: file loading and feature extraction."""

from .features import MelFeatureExtractor
from .loader import load_audio, resample

__all__ = ["MelFeatureExtractor", "load_audio", "resample"]
