"""Voice activity detection over whole recordings."""

import logging
from typing import Optional

import numpy as np

from ..backends.base import VadBackend
from ..config import VadConfig
from .segmenter import SpeechSpan, detect_spans, frames_for_ms

logger = logging.getLogger(__name__)


class VoiceActivityDetector:
    """Runs a stateful VAD backend frame by frame and segments the result."""

    def __init__(self, backend: VadBackend, config: VadConfig, sample_rate: int = 16000):
        self.backend = backend
        self.config = config
        self.sample_rate = sample_rate
        self.frame_samples = backend.frame_samples
        self.frame_duration_sec = self.frame_samples / sample_rate

    def frame_probabilities(self, samples: np.ndarray) -> list[float]:
        """
        Compute one speech probability per complete frame.

        The recurrent state starts from zero on every call. A failed frame
        scores 0.0 and the previous state carries over to the next frame.

        Args:
            samples: Mono float32 audio at ``sample_rate``

        Returns:
            Probabilities for ``len(samples) // frame_samples`` frames
        """
        num_frames = len(samples) // self.frame_samples
        state = self.backend.initial_state()
        probabilities = []
        failures = 0

        for i in range(num_frames):
            frame = samples[i * self.frame_samples:(i + 1) * self.frame_samples]
            result = self.backend.process_frame(frame, state)
            if not result.ok:
                failures += 1
                probabilities.append(0.0)
                continue
            probabilities.append(result.value.probability)
            state = result.value.state

        if failures:
            logger.warning(f"VAD absorbed {failures} backend errors over {num_frames} frames")
        return probabilities

    def detect_speech(
        self,
        samples: np.ndarray,
        threshold: Optional[float] = None,
        min_silence_ms: Optional[int] = None,
        min_speech_ms: Optional[int] = None,
    ) -> list[SpeechSpan]:
        """Detect speech spans; audio shorter than one frame has none."""
        if len(samples) < self.frame_samples:
            logger.debug("Audio shorter than one VAD frame, no speech spans")
            return []

        if threshold is None:
            threshold = self.config.threshold
        if min_silence_ms is None:
            min_silence_ms = self.config.min_silence_ms
        if min_speech_ms is None:
            min_speech_ms = self.config.min_speech_ms

        probabilities = self.frame_probabilities(samples)
        spans = detect_spans(
            probabilities,
            frame_duration_sec=self.frame_duration_sec,
            threshold=threshold,
            min_silence_frames=frames_for_ms(min_silence_ms, self.frame_duration_sec),
            min_speech_frames=frames_for_ms(min_speech_ms, self.frame_duration_sec),
            min_speech_duration_sec=min_speech_ms / 1000.0,
        )

        logger.debug(f"VAD found {len(spans)} speech spans in {len(probabilities)} frames")
        return spans
