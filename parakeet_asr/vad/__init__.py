"""Voice activity detection and speech segmentation."""

from .detector import VoiceActivityDetector
from .segmenter import SpeechSpan, detect_spans, frames_for_ms

__all__ = ["SpeechSpan", "VoiceActivityDetector", "detect_spans", "frames_for_ms"]
