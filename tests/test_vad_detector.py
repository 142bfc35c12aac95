"""Tests for the voice activity detector."""

import numpy as np
import pytest

from parakeet_asr.config import VadConfig
from parakeet_asr.vad.detector import VoiceActivityDetector

from .conftest import ScriptedVad


def speech_audio(pattern, frame_samples=160):
    """Build audio where each pattern entry is one loud (1) or silent (0) frame."""
    return np.concatenate([
        np.full(frame_samples, 0.5 if on else 0.0, dtype=np.float32) for on in pattern
    ])


class TestVoiceActivityDetector:
    """Tests for VoiceActivityDetector class."""

    @pytest.fixture
    def vad_config(self):
        """Create test VAD config with 2-frame speech and 3-frame silence runs."""
        return VadConfig(frame_samples=160, threshold=0.5, min_silence_ms=30, min_speech_ms=20)

    @pytest.fixture
    def backend(self):
        return ScriptedVad(frame_samples=160)

    @pytest.fixture
    def detector(self, backend, vad_config):
        return VoiceActivityDetector(backend, vad_config, sample_rate=16000)

    def test_init(self, detector):
        """Test frame geometry."""
        assert detector.frame_samples == 160
        assert detector.frame_duration_sec == pytest.approx(0.01)

    def test_frame_probabilities(self, detector):
        """Test one probability per complete frame."""
        audio = np.concatenate([speech_audio([1, 0, 1]), np.zeros(100, dtype=np.float32)])

        probs = detector.frame_probabilities(audio)

        assert probs == [1.0, 0.0, 1.0]

    def test_state_threads_and_resets(self, detector, backend):
        """Test state carried frame to frame and zeroed per call."""
        audio = speech_audio([1, 1, 1])

        detector.frame_probabilities(audio)
        detector.frame_probabilities(audio)

        levels = [state.hidden.flat[0] for state in backend.states]
        assert levels == [0.0, 1.0, 2.0, 0.0, 1.0, 2.0]

    def test_failed_frame_scores_zero(self, vad_config):
        """Test a backend failure scores 0.0 and keeps the previous state."""
        backend = ScriptedVad(frame_samples=160, fail_frames={1})
        detector = VoiceActivityDetector(backend, vad_config)

        probs = detector.frame_probabilities(speech_audio([1, 1, 1]))

        assert probs == [1.0, 0.0, 1.0]
        levels = [state.hidden.flat[0] for state in backend.states]
        assert levels == [0.0, 1.0, 1.0]

    def test_detect_speech(self, detector):
        """Test spans from a speech/silence pattern."""
        pattern = [0] * 5 + [1] * 10 + [0] * 5 + [1] * 6
        audio = speech_audio(pattern)

        spans = detector.detect_speech(audio)

        assert len(spans) == 2
        assert spans[0].start_time == pytest.approx(0.05)
        # Closed three silent frames after speech, at the start of the silence run
        assert spans[0].end_time == pytest.approx(0.14)
        assert spans[1].start_time == pytest.approx(0.20)
        assert spans[1].end_time == pytest.approx(0.26)

    def test_detect_speech_overrides(self, detector):
        """Test per-call threshold override."""
        audio = speech_audio([1] * 10)

        assert detector.detect_speech(audio, threshold=1.0) != []
        assert len(detector.detect_speech(audio, min_speech_ms=200)) == 0

    def test_short_audio(self, detector, backend):
        """Test audio shorter than one frame has no spans and no backend calls."""
        spans = detector.detect_speech(np.ones(100, dtype=np.float32))

        assert spans == []
        assert backend.states == []
