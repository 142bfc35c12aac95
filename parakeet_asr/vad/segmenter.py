"""Hysteresis segmentation of per-frame speech probabilities."""

from dataclasses import dataclass
from typing import Sequence

from ..errors import ValidationError


@dataclass(frozen=True)
class SpeechSpan:
    """A detected speech span in seconds."""
    start_time: float
    end_time: float

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time


def frames_for_ms(duration_ms: float, frame_duration_sec: float) -> int:
    """Convert a duration to a whole number of frames, at least one."""
    return max(1, int(duration_ms / (frame_duration_sec * 1000)))


def detect_spans(
    probabilities: Sequence[float],
    frame_duration_sec: float,
    threshold: float,
    min_silence_frames: int,
    min_speech_frames: int,
    min_speech_duration_sec: float,
) -> list[SpeechSpan]:
    """
    Turn frame speech probabilities into ordered, non-overlapping spans.

    A span opens after ``min_speech_frames`` consecutive frames at or above
    ``threshold`` and starts at the first of them. It closes after
    ``min_silence_frames`` consecutive frames below the threshold and ends
    where that silence run began. A span still open at the end of the input
    ends at the last frame boundary. Spans shorter than
    ``min_speech_duration_sec`` are dropped.

    Args:
        probabilities: Speech probability per frame, each in [0, 1]
        frame_duration_sec: Duration of one frame
        threshold: Probability at or above which a frame counts as speech
        min_silence_frames: Silence run needed to close a span
        min_speech_frames: Speech run needed to open a span
        min_speech_duration_sec: Shortest span kept

    Returns:
        Speech spans ordered by start time
    """
    if frame_duration_sec <= 0:
        raise ValidationError(f"Frame duration must be positive, got {frame_duration_sec}")
    if not 0.0 <= threshold <= 1.0:
        raise ValidationError(f"Threshold must be in [0, 1], got {threshold}")
    if min_speech_duration_sec < 0:
        raise ValidationError(f"Minimum speech duration must be >= 0, got {min_speech_duration_sec}")

    min_silence_frames = max(1, int(min_silence_frames))
    min_speech_frames = max(1, int(min_speech_frames))

    spans: list[SpeechSpan] = []

    def close(start_frame: int, end_frame: int) -> None:
        start_time = start_frame * frame_duration_sec
        end_time = end_frame * frame_duration_sec
        if end_time > start_time and end_time - start_time >= min_speech_duration_sec:
            spans.append(SpeechSpan(start_time=start_time, end_time=end_time))

    in_speech = False
    speech_start = 0
    speech_count = 0
    silence_count = 0

    for i, prob in enumerate(probabilities):
        is_speech = prob >= threshold

        if not in_speech:
            if is_speech:
                speech_count += 1
                if speech_count >= min_speech_frames:
                    in_speech = True
                    speech_start = max(0, i - min_speech_frames + 1)
                    silence_count = 0
            else:
                speech_count = 0
        else:
            if not is_speech:
                silence_count += 1
                if silence_count >= min_silence_frames:
                    close(speech_start, i - min_silence_frames)
                    in_speech = False
                    speech_count = 0
            else:
                silence_count = 0

    if in_speech:
        close(speech_start, len(probabilities))

    return spans
