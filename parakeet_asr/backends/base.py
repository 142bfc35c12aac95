"""Value types and call contracts shared by all inference backends.

Backends are black-box numeric functions. Every per-step call returns a
``BackendResult`` instead of raising, so the decode and segmentation loops
can apply their skip-and-continue policy without exception handling.
Recurrent state is a value: it is passed into each call and the updated
state comes back in the result.
"""

from dataclasses import dataclass
from typing import Generic, Optional, Protocol, TypeVar

import numpy as np

from ..errors import BackendInferenceError

T = TypeVar("T")


@dataclass(frozen=True)
class RecurrentState:
    """Hidden/cell pair of a stateful sequence model."""
    hidden: np.ndarray
    cell: np.ndarray

    @classmethod
    def zeros(cls, shape: tuple[int, ...]) -> "RecurrentState":
        """Create an all-zero state, used at the start of every run."""
        return cls(
            hidden=np.zeros(shape, dtype=np.float32),
            cell=np.zeros(shape, dtype=np.float32),
        )


@dataclass(frozen=True)
class BackendResult(Generic[T]):
    """Outcome of one backend call: a value or an error, never both."""
    value: Optional[T] = None
    error: Optional[BackendInferenceError] = None

    @classmethod
    def success(cls, value: T) -> "BackendResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BackendInferenceError) -> "BackendResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class EncoderOutput:
    """Encoder activations ``[T, D]`` plus the usable frame count."""
    hidden: np.ndarray
    valid_length: int

    def __post_init__(self):
        total = int(self.hidden.shape[0])
        self.valid_length = max(0, min(int(self.valid_length), total))

    @property
    def num_frames(self) -> int:
        return int(self.hidden.shape[0])


@dataclass(frozen=True)
class PredictionOutput:
    """Prediction network output and the state to use for the next step."""
    hidden: np.ndarray
    state: RecurrentState


@dataclass(frozen=True)
class JointOutput:
    """Joint network decision for one encoder frame."""
    token_id: int
    duration: int
    probability: float


@dataclass(frozen=True)
class VadOutput:
    """Speech probability for one audio frame and the carried state."""
    probability: float
    state: RecurrentState


class EncoderBackend(Protocol):
    """Encoder over a fixed-size feature window."""

    def encode(self, features: np.ndarray, valid_length: int) -> BackendResult[EncoderOutput]:
        """
        Encode one feature window.

        Args:
            features: Log-mel features ``[mel_bins, frames]``, zero padded
            valid_length: Number of unpadded feature frames

        Returns:
            Result holding the hidden matrix ``[T', D]`` and encoder valid length
        """
        ...


class PredictionBackend(Protocol):
    """Prediction (decoder) network of a transducer."""

    def initial_state(self) -> RecurrentState: ...

    def predict(self, token_id: int, state: RecurrentState) -> BackendResult[PredictionOutput]: ...


class JointBackend(Protocol):
    """Joint network combining one encoder frame with the prediction output."""

    def joint(self, encoder_frame: np.ndarray, prediction_hidden: np.ndarray) -> BackendResult[JointOutput]: ...


class VadBackend(Protocol):
    """Stateful frame-level speech classifier."""

    frame_samples: int

    def initial_state(self) -> RecurrentState: ...

    def process_frame(self, frame: np.ndarray, state: RecurrentState) -> BackendResult[VadOutput]: ...
