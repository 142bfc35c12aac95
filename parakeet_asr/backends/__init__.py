"""Inference backend contracts and their TorchScript implementations."""

from .base import (
    BackendResult,
    EncoderBackend,
    EncoderOutput,
    JointBackend,
    JointOutput,
    PredictionBackend,
    PredictionOutput,
    RecurrentState,
    VadBackend,
    VadOutput,
)
from .torch_backends import BackendBundle, check_model_dir, load_backends

__all__ = [
    "BackendBundle",
    "BackendResult",
    "EncoderBackend",
    "EncoderOutput",
    "JointBackend",
    "JointOutput",
    "PredictionBackend",
    "PredictionOutput",
    "RecurrentState",
    "VadBackend",
    "VadOutput",
    "check_model_dir",
    "load_backends",
]
