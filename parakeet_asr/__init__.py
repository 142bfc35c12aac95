"""Long-form speech transcription with Parakeet TDT transducer models."""

from .config import Config, load_config
from .engine import (
    TranscriptionEngine,
    TranscriptionOptions,
    TranscriptionResult,
    TranscriptSegment,
)
from .errors import (
    BackendInferenceError,
    InitializationError,
    TranscriptionError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "BackendInferenceError",
    "Config",
    "InitializationError",
    "TranscriptSegment",
    "TranscriptionEngine",
    "TranscriptionError",
    "TranscriptionOptions",
    "TranscriptionResult",
    "ValidationError",
    "load_config",
]
