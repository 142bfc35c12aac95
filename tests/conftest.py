"""Pytest configuration and shared fixtures."""

import tempfile
from pathlib import Path

import numpy as np
import pytest

from parakeet_asr.asr.vocabulary import Vocabulary
from parakeet_asr.backends.base import (
    BackendResult,
    EncoderOutput,
    JointOutput,
    PredictionOutput,
    RecurrentState,
    VadOutput,
)
from parakeet_asr.config import AudioConfig, Config, ModelConfig, VadConfig
from parakeet_asr.errors import BackendInferenceError

BLANK_ID = 8
TOKENS = ["<unk>", " the", " cat", "s", " sat", "<|nospeech|>", "", " on"]


# ==================== Backend Stubs ====================

class StubPrediction:
    """Prediction network whose output encodes the last token."""

    def __init__(self, hidden_size=4, fail_tokens=()):
        self.hidden_size = hidden_size
        self.fail_tokens = set(fail_tokens)
        self.calls = []

    def initial_state(self):
        return RecurrentState.zeros((1, 1, self.hidden_size))

    def predict(self, token_id, state):
        self.calls.append((token_id, state))
        if token_id in self.fail_tokens:
            return BackendResult.failure(BackendInferenceError("prediction", "stub failure"))
        return BackendResult.success(PredictionOutput(
            hidden=np.full(self.hidden_size, float(token_id), dtype=np.float32),
            state=RecurrentState(hidden=state.hidden + 1, cell=state.cell + 1),
        ))


class ScriptedJoint:
    """Joint network replaying (token, duration, prob) tuples; None is a failure."""

    def __init__(self, script=(), default=(BLANK_ID, 1, 1.0)):
        self.script = list(script)
        self.default = default
        self.frames = []
        self.hiddens = []

    def joint(self, encoder_frame, prediction_hidden):
        index = len(self.frames)
        self.frames.append(np.array(encoder_frame))
        self.hiddens.append(np.array(prediction_hidden))
        step = self.script[index] if index < len(self.script) else self.default
        if step is None:
            return BackendResult.failure(BackendInferenceError("joint", "stub failure"))
        token_id, duration, prob = step
        return BackendResult.success(JointOutput(token_id=token_id, duration=duration, probability=prob))


class ValueJoint:
    """Emits the token whose id is the frame value, then jumps past the window."""

    def joint(self, encoder_frame, prediction_hidden):
        value = int(round(float(encoder_frame[0])))
        if value > 0:
            return BackendResult.success(JointOutput(token_id=value, duration=1000, probability=1.0))
        return BackendResult.success(JointOutput(token_id=BLANK_ID, duration=1, probability=1.0))


class PassthroughFeatures:
    """Feature extractor that hands the padded samples straight through."""

    def __init__(self):
        self.calls = []

    def extract(self, samples, valid_samples=None):
        self.calls.append((len(samples), valid_samples))
        return np.asarray(samples, dtype=np.float32)[None, :], valid_samples


class StrideEncoder:
    """Encoder taking every ``hop``-th feature value as a one-dimensional frame."""

    def __init__(self, hop=160, fail=False, fail_calls=()):
        self.hop = hop
        self.fail = fail
        self.fail_calls = set(fail_calls)
        self.num_calls = 0

    def encode(self, features, valid_length):
        index = self.num_calls
        self.num_calls += 1
        if self.fail or index in self.fail_calls:
            return BackendResult.failure(BackendInferenceError("encoder", "stub failure"))
        hidden = features[0, ::self.hop][:, None]
        frames = -(-valid_length // self.hop)
        return BackendResult.success(EncoderOutput(hidden=hidden, valid_length=frames))


class ScriptedVad:
    """VAD scoring a frame 1.0 when it has any signal, else 0.0."""

    def __init__(self, frame_samples=160, fail_frames=()):
        self.frame_samples = frame_samples
        self.fail_frames = set(fail_frames)
        self.states = []

    def initial_state(self):
        return RecurrentState.zeros((1, 2))

    def process_frame(self, frame, state):
        index = len(self.states)
        self.states.append(state)
        if index in self.fail_frames:
            return BackendResult.failure(BackendInferenceError("vad", "stub failure"))
        prob = 1.0 if np.abs(frame).max() > 0 else 0.0
        return BackendResult.success(VadOutput(
            probability=prob,
            state=RecurrentState(hidden=state.hidden + 1, cell=state.cell),
        ))


# ==================== Path Fixtures ====================

@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_config_file(temp_dir):
    """Create a temporary config file."""
    config_path = temp_dir / "settings.yaml"
    config_content = """
model:
  model_dir: "{model_dir}"
  blank_id: 8
  device: "cpu"

audio:
  sample_rate: 16000
  window_samples: 1600

vad:
  threshold: 0.6
  min_silence_ms: 30
  min_speech_ms: 20

logging:
  level: "DEBUG"
  file: null
""".format(model_dir=str(temp_dir / "models"))

    config_path.write_text(config_content)
    return config_path


# ==================== Model Fixtures ====================

@pytest.fixture
def vocabulary():
    """Small vocabulary with the blank appended after the regular tokens."""
    return Vocabulary(TOKENS, blank_id=BLANK_ID)


@pytest.fixture
def small_config(temp_dir):
    """Config with a 0.1 s decoding window and 10 ms VAD frames."""
    return Config(
        model=ModelConfig(model_dir=str(temp_dir / "models"), blank_id=BLANK_ID),
        audio=AudioConfig(sample_rate=16000, window_samples=1600),
        vad=VadConfig(frame_samples=160, threshold=0.5, min_silence_ms=30, min_speech_ms=20),
    )


@pytest.fixture
def sample_audio():
    """Generate one second of low-level noise."""
    rng = np.random.default_rng(0)
    return (rng.standard_normal(16000) * 0.1).astype(np.float32)
