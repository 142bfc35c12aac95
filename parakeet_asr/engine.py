"""Transcription engine: chunking, VAD dispatch and transcript assembly."""

import logging
import threading
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import numpy as np

from .asr.decoder import TransducerDecoder
from .asr.vocabulary import Vocabulary, load_vocabulary
from .audio.features import MelFeatureExtractor
from .audio.loader import load_audio, resample
from .backends.base import EncoderBackend, JointBackend, PredictionBackend, VadBackend
from .backends.torch_backends import load_backends
from .config import Config
from .errors import InitializationError, TranscriptionError, ValidationError
from .vad.detector import VoiceActivityDetector
from .vad.segmenter import SpeechSpan

logger = logging.getLogger(__name__)


@dataclass
class TranscriptSegment:
    """Text of one decoded chunk with absolute timestamps in seconds."""
    start_time: float
    end_time: float
    text: str


@dataclass
class TranscriptionResult:
    """Transcript of one request."""
    text: str
    duration_ms: float
    segments: list[TranscriptSegment] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dict."""
        return {
            "text": self.text,
            "duration_ms": round(self.duration_ms, 2),
            "segments": [asdict(segment) for segment in self.segments],
        }


@dataclass
class TranscriptionOptions:
    """Per-request overrides; None falls back to the VAD configuration."""
    use_vad: bool = True
    threshold: Optional[float] = None
    min_silence_ms: Optional[int] = None
    min_speech_ms: Optional[int] = None


class TranscriptionEngine:
    """
    Transcribes audio of any length with a fixed-window transducer model.

    Audio that fits in one encoder window is decoded directly. Longer audio
    is cut into speech spans by the VAD and every span is decoded in
    consecutive window-sized chunks. An engine owns its backends and must
    not be used from two requests at once; create one engine per caller.
    """

    def __init__(
        self,
        config: Config,
        vocabulary: Vocabulary,
        encoder: EncoderBackend,
        prediction: PredictionBackend,
        joint: JointBackend,
        vad: Optional[VadBackend] = None,
        feature_extractor: Optional[MelFeatureExtractor] = None,
    ):
        self.config = config
        self.sample_rate = config.audio.sample_rate
        self.window_samples = config.audio.window_samples
        self.vocabulary = vocabulary
        self.encoder = encoder
        self.feature_extractor = feature_extractor or MelFeatureExtractor(config.audio)
        self.decoder = TransducerDecoder(
            prediction,
            joint,
            blank_id=vocabulary.blank_id,
            vocab_size=len(vocabulary),
            max_symbols_factor=config.model.max_symbols_factor,
        )

        self.vad: Optional[VoiceActivityDetector] = None
        if vad is not None:
            self.vad = VoiceActivityDetector(vad, config.vad, self.sample_rate)

        self._busy = threading.Lock()

    @classmethod
    def from_config(cls, config: Config) -> "TranscriptionEngine":
        """Load the vocabulary and all backends named by the configuration."""
        logger.info(f"Initializing transcription engine from {config.model.path}")
        try:
            vocabulary = load_vocabulary(config.model)
            backends = load_backends(config)
        except InitializationError:
            raise
        except Exception as e:
            logger.error(f"Failed to initialize transcription engine: {e}")
            raise InitializationError(f"Failed to initialize transcription engine: {e}") from e

        return cls(
            config,
            vocabulary,
            encoder=backends.encoder,
            prediction=backends.prediction,
            joint=backends.joint,
            vad=backends.vad,
        )

    def transcribe(
        self,
        samples: np.ndarray,
        sample_rate: Optional[int] = None,
        options: Optional[TranscriptionOptions] = None,
    ) -> TranscriptionResult:
        """
        Transcribe mono audio samples.

        Args:
            samples: Mono float32 audio
            sample_rate: Rate of ``samples``; resampled if it differs from the engine rate
            options: Per-request VAD overrides

        Returns:
            TranscriptionResult whose text is the space-joined segment texts
        """
        samples = self._prepare(samples, sample_rate)
        if options is None:
            options = TranscriptionOptions()

        if not self._busy.acquire(blocking=False):
            raise TranscriptionError(
                "Engine is already transcribing; use a separate engine per concurrent caller"
            )
        try:
            start = time.perf_counter()
            segments = self._transcribe_segments(samples, options)
            duration_ms = (time.perf_counter() - start) * 1000.0
        finally:
            self._busy.release()

        text = " ".join(segment.text for segment in segments)
        logger.info(
            f"Transcribed {len(samples) / self.sample_rate:.1f}s of audio into "
            f"{len(segments)} segments in {duration_ms:.0f}ms"
        )
        return TranscriptionResult(text=text, duration_ms=duration_ms, segments=segments)

    def transcribe_file(
        self,
        file_path: str | Path,
        options: Optional[TranscriptionOptions] = None,
    ) -> TranscriptionResult:
        """Load an audio file and transcribe it."""
        samples, sample_rate = load_audio(file_path, self.sample_rate)
        return self.transcribe(samples, sample_rate, options)

    def decode_chunk(self, chunk: np.ndarray) -> str:
        """
        Decode at most one window of audio to text.

        The chunk is zero padded to the window size; the feature extractor
        and the encoder are given the true length so padding is ignored.
        An encoder failure is absorbed and yields empty text.
        """
        valid_samples = len(chunk)
        if valid_samples > self.window_samples:
            raise ValidationError(
                f"Chunk of {valid_samples} samples exceeds window of {self.window_samples}"
            )

        padded = np.zeros(self.window_samples, dtype=np.float32)
        padded[:valid_samples] = chunk

        features, valid_frames = self.feature_extractor.extract(padded, valid_samples)
        encoded = self.encoder.encode(features, valid_frames)
        if not encoded.ok:
            logger.warning(f"Encoder failed, chunk skipped: {encoded.error}")
            return ""

        tokens = self.decoder.decode(encoded.value)
        return self.vocabulary.render(tokens)

    def _prepare(self, samples: np.ndarray, sample_rate: Optional[int]) -> np.ndarray:
        samples = np.asarray(samples, dtype=np.float32)
        if samples.ndim != 1:
            raise ValidationError(f"Expected mono 1-D audio, got shape {samples.shape}")

        if sample_rate is None:
            sample_rate = self.sample_rate
        if sample_rate <= 0:
            raise ValidationError(f"Sample rate must be positive, got {sample_rate}")
        if sample_rate != self.sample_rate:
            logger.debug(f"Resampling input from {sample_rate}Hz to {self.sample_rate}Hz")
            samples = resample(samples, sample_rate, self.sample_rate)
        return samples

    def _transcribe_segments(
        self,
        samples: np.ndarray,
        options: TranscriptionOptions,
    ) -> list[TranscriptSegment]:
        if len(samples) == 0:
            return []

        if len(samples) <= self.window_samples:
            text = self.decode_chunk(samples)
            if not text:
                return []
            return [TranscriptSegment(0.0, len(samples) / self.sample_rate, text)]

        spans = self._speech_spans(samples, options)
        logger.info(f"Long audio: {len(spans)} speech spans")

        segments = []
        for span in spans:
            segments.extend(self._transcribe_span(samples, span))
        return segments

    def _speech_spans(self, samples: np.ndarray, options: TranscriptionOptions) -> list[SpeechSpan]:
        if options.use_vad and self.vad is not None:
            return self.vad.detect_speech(
                samples,
                threshold=options.threshold,
                min_silence_ms=options.min_silence_ms,
                min_speech_ms=options.min_speech_ms,
            )

        logger.info("VAD unavailable, splitting the whole input into windows")
        return [SpeechSpan(0.0, len(samples) / self.sample_rate)]

    def _transcribe_span(self, samples: np.ndarray, span: SpeechSpan) -> list[TranscriptSegment]:
        start_sample = max(0, int(round(span.start_time * self.sample_rate)))
        end_sample = min(len(samples), int(round(span.end_time * self.sample_rate)))

        segments = []
        for offset in range(0, end_sample - start_sample, self.window_samples):
            chunk_start = start_sample + offset
            chunk = samples[chunk_start:min(chunk_start + self.window_samples, end_sample)]

            text = self.decode_chunk(chunk)
            logger.debug(f"Chunk at {span.start_time + offset / self.sample_rate:.2f}s: {text!r}")
            if not text:
                continue

            segments.append(TranscriptSegment(
                start_time=span.start_time + offset / self.sample_rate,
                end_time=span.start_time + (offset + len(chunk)) / self.sample_rate,
                text=text,
            ))
        return segments
