"""Greedy decoding for token-and-duration transducer (TDT) models."""

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from ..backends.base import EncoderOutput, JointBackend, PredictionBackend

logger = logging.getLogger(__name__)


@dataclass
class DecodeResult:
    """Tokens from one decode run plus loop bookkeeping."""
    tokens: list[int] = field(default_factory=list)
    frame_positions: list[int] = field(default_factory=list)  # t at the start of each iteration
    valid_length: int = 0
    backend_errors: int = 0
    hit_iteration_cap: bool = False

    @property
    def iterations(self) -> int:
        return len(self.frame_positions)


class TransducerDecoder:
    """
    Greedy decoder alternating the joint and prediction networks.

    Each iteration reads the encoder frame at time ``t``, asks the joint
    network for a token and a duration, emits non-blank tokens (advancing the
    prediction network's recurrent state), and moves ``t`` forward by the
    duration. ``t`` advances by at least one frame per iteration, so a run
    over ``N`` valid frames takes at most ``N`` iterations. The
    ``max_symbols_factor * N`` iteration cap is a second guard only.

    Backend failures never raise: a failed joint call advances one frame, a
    failed prediction call keeps the emitted token, advances one frame and
    reuses the previous prediction output.
    """

    def __init__(
        self,
        prediction: PredictionBackend,
        joint: JointBackend,
        blank_id: int,
        vocab_size: int,
        max_symbols_factor: int = 10,
    ):
        self.prediction = prediction
        self.joint = joint
        self.blank_id = blank_id
        self.vocab_size = vocab_size
        self.max_symbols_factor = max_symbols_factor

    def decode(self, encoder_output: np.ndarray | EncoderOutput, valid_length: Optional[int] = None) -> list[int]:
        """
        Decode one encoder window to token ids.

        Args:
            encoder_output: Encoder activations ``[T, D]`` or an ``EncoderOutput``
            valid_length: Usable frame count; frames past it are padding

        Returns:
            Emitted token ids in order
        """
        return self.decode_with_stats(encoder_output, valid_length).tokens

    def decode_with_stats(
        self,
        encoder_output: np.ndarray | EncoderOutput,
        valid_length: Optional[int] = None,
    ) -> DecodeResult:
        """Decode and return the tokens together with loop bookkeeping."""
        if not isinstance(encoder_output, EncoderOutput):
            hidden = np.asarray(encoder_output)
            encoder_output = EncoderOutput(hidden=hidden, valid_length=hidden.shape[0])
        hidden = encoder_output.hidden
        if valid_length is None:
            valid_length = encoder_output.valid_length

        num_frames = max(0, min(int(valid_length), encoder_output.num_frames))
        result = DecodeResult(valid_length=num_frames)
        if num_frames == 0:
            logger.debug("No valid encoder frames to decode")
            return result

        # Fresh state per run, seeded with the blank token
        seed = self.prediction.predict(self.blank_id, self.prediction.initial_state())
        if not seed.ok:
            logger.warning(f"Prediction network seed failed: {seed.error}")
            result.backend_errors += 1
            return result
        prediction_hidden = seed.value.hidden
        state = seed.value.state

        max_iterations = num_frames * self.max_symbols_factor
        t = 0

        while t < num_frames:
            if result.iterations >= max_iterations:
                result.hit_iteration_cap = True
                logger.warning(f"Decode stopped at iteration cap ({max_iterations}) at frame {t}")
                break
            result.frame_positions.append(t)

            decision = self.joint.joint(hidden[t], prediction_hidden)
            if not decision.ok:
                result.backend_errors += 1
                logger.debug(f"Joint call failed at frame {t}: {decision.error}")
                t += 1
                continue

            token_id = decision.value.token_id
            step = max(1, decision.value.duration)

            if token_id == self.blank_id or not 0 <= token_id < self.vocab_size:
                t += step
                continue

            result.tokens.append(token_id)

            advanced = self.prediction.predict(token_id, state)
            if not advanced.ok:
                result.backend_errors += 1
                logger.debug(f"Prediction call failed at frame {t}: {advanced.error}")
                t += 1
                continue
            prediction_hidden = advanced.value.hidden
            state = advanced.value.state

            t += step

        if result.backend_errors:
            logger.warning(f"Decode absorbed {result.backend_errors} backend errors")
        logger.debug(
            f"Decoded {len(result.tokens)} tokens from {num_frames} frames "
            f"in {result.iterations} iterations"
        )
        return result
