"""Exception types for the transcription pipeline."""


class TranscriptionError(Exception):
    """Base class for all transcription errors."""


class InitializationError(TranscriptionError):
    """A backend, model file or vocabulary could not be loaded."""


class ValidationError(TranscriptionError, ValueError):
    """Input audio or parameters are malformed."""


class BackendInferenceError(TranscriptionError):
    """A single backend call failed.

    Never raised out of the decode or segmentation loops; carried inside a
    ``BackendResult`` instead.
    """

    def __init__(self, backend: str, message: str):
        super().__init__(f"{backend}: {message}")
        self.backend = backend
