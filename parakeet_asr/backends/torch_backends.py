"""TorchScript implementations of the inference backends."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import torch

from ..config import Config, ModelConfig, VadConfig
from ..errors import BackendInferenceError, InitializationError
from .base import (
    BackendResult,
    EncoderOutput,
    JointOutput,
    PredictionOutput,
    RecurrentState,
    VadOutput,
)

logger = logging.getLogger(__name__)

JOINT_DECISION = "decision"
JOINT_LOGITS = "logits"


def load_torchscript(path: str | Path, device: str = "cpu") -> torch.nn.Module:
    """Load a TorchScript module in eval mode."""
    path = Path(path)
    logger.info(f"Loading model: {path}")
    if not path.exists():
        raise InitializationError(f"Model file not found: {path}")
    try:
        module = torch.jit.load(str(path), map_location=device)
        module.eval()
    except Exception as e:
        logger.error(f"Failed to load model {path}: {e}")
        raise InitializationError(f"Failed to load model {path}: {e}") from e
    return module


def _scalar(value) -> float:
    if isinstance(value, torch.Tensor):
        return float(value.reshape(-1)[0].item())
    return float(value)


class TorchEncoderBackend:
    """Encoder taking ``(mel[1, M, F], mel_length[1])``."""

    def __init__(self, module: torch.nn.Module, device: str = "cpu"):
        self._module = module
        self.device = torch.device(device)

    def encode(self, features: np.ndarray, valid_length: int) -> BackendResult[EncoderOutput]:
        try:
            mel = torch.from_numpy(np.ascontiguousarray(features, dtype=np.float32))
            mel = mel.unsqueeze(0).to(self.device)
            length = torch.tensor([valid_length], dtype=torch.long, device=self.device)

            with torch.no_grad():
                encoded, encoded_length = self._module(mel, length)

            # [1, D, T] -> [T, D]
            hidden = encoded[0].transpose(0, 1).contiguous().cpu().numpy()
            return BackendResult.success(
                EncoderOutput(hidden=hidden, valid_length=int(_scalar(encoded_length)))
            )
        except Exception as e:
            return BackendResult.failure(BackendInferenceError("encoder", str(e)))


class TorchPredictionBackend:
    """LSTM prediction network taking ``(targets[1, 1], h[L, 1, H], c[L, 1, H])``."""

    def __init__(self, module: torch.nn.Module, num_layers: int, hidden_size: int, device: str = "cpu"):
        self._module = module
        self.num_layers = num_layers
        self.hidden_size = hidden_size
        self.device = torch.device(device)

    def initial_state(self) -> RecurrentState:
        return RecurrentState.zeros((self.num_layers, 1, self.hidden_size))

    def predict(self, token_id: int, state: RecurrentState) -> BackendResult[PredictionOutput]:
        try:
            targets = torch.tensor([[token_id]], dtype=torch.long, device=self.device)
            h = torch.from_numpy(state.hidden).to(self.device)
            c = torch.from_numpy(state.cell).to(self.device)

            with torch.no_grad():
                out, h_out, c_out = self._module(targets, h, c)

            return BackendResult.success(PredictionOutput(
                hidden=out.reshape(-1).cpu().numpy(),
                state=RecurrentState(
                    hidden=h_out.cpu().numpy().astype(np.float32),
                    cell=c_out.cpu().numpy().astype(np.float32),
                ),
            ))
        except Exception as e:
            return BackendResult.failure(BackendInferenceError("prediction", str(e)))


class TorchJointBackend:
    """
    Joint network taking ``(encoder_step[1, D, 1], decoder_step[1, H, 1])``.

    The output layout is resolved once at construction by probing the module
    with zero inputs. A 3-tuple is a decision head ``(token_id, duration,
    token_prob)``. A single tensor holds TDT logits: ``blank_id + 1`` token
    logits followed by one logit per entry of ``durations``.
    """

    def __init__(
        self,
        module: torch.nn.Module,
        encoder_dim: int,
        decoder_dim: int,
        blank_id: int,
        durations: list[int],
        device: str = "cpu",
    ):
        self._module = module
        self.encoder_dim = encoder_dim
        self.decoder_dim = decoder_dim
        self.num_tokens = blank_id + 1
        self.durations = list(durations)
        self.device = torch.device(device)
        self.layout = self._negotiate_layout()
        logger.info(f"Joint network output layout: {self.layout}")

    def _negotiate_layout(self) -> str:
        enc = torch.zeros(1, self.encoder_dim, 1, device=self.device)
        dec = torch.zeros(1, self.decoder_dim, 1, device=self.device)
        try:
            with torch.no_grad():
                output = self._module(enc, dec)
        except Exception as e:
            raise InitializationError(f"Joint network probe failed: {e}") from e

        if isinstance(output, (tuple, list)):
            if len(output) != 3:
                raise InitializationError(
                    f"Joint network returned {len(output)} outputs, expected 3"
                )
            return JOINT_DECISION

        expected = self.num_tokens + len(self.durations)
        if output.shape[-1] != expected:
            raise InitializationError(
                f"Joint logits have width {output.shape[-1]}, expected {expected}"
            )
        return JOINT_LOGITS

    def joint(self, encoder_frame: np.ndarray, prediction_hidden: np.ndarray) -> BackendResult[JointOutput]:
        try:
            enc = torch.from_numpy(np.asarray(encoder_frame, dtype=np.float32))
            dec = torch.from_numpy(np.asarray(prediction_hidden, dtype=np.float32))
            enc = enc.reshape(1, -1, 1).to(self.device)
            dec = dec.reshape(1, -1, 1).to(self.device)

            with torch.no_grad():
                output = self._module(enc, dec)

            if self.layout == JOINT_DECISION:
                token_id, duration, prob = output
                return BackendResult.success(JointOutput(
                    token_id=int(_scalar(token_id)),
                    duration=int(_scalar(duration)),
                    probability=_scalar(prob),
                ))

            logits = output.reshape(-1)
            token_probs = torch.softmax(logits[: self.num_tokens], dim=-1)
            prob, token_id = torch.max(token_probs, dim=-1)
            duration_index = int(torch.argmax(logits[self.num_tokens:]).item())
            return BackendResult.success(JointOutput(
                token_id=int(token_id.item()),
                duration=self.durations[duration_index],
                probability=float(prob.item()),
            ))
        except Exception as e:
            return BackendResult.failure(BackendInferenceError("joint", str(e)))


class TorchVadBackend:
    """Frame VAD taking ``(audio[1, N], h[1, S], c[1, S])``."""

    def __init__(self, module: torch.nn.Module, frame_samples: int, state_size: int, device: str = "cpu"):
        self._module = module
        self.frame_samples = frame_samples
        self.state_size = state_size
        self.device = torch.device(device)

    def initial_state(self) -> RecurrentState:
        return RecurrentState.zeros((1, self.state_size))

    def process_frame(self, frame: np.ndarray, state: RecurrentState) -> BackendResult[VadOutput]:
        try:
            if len(frame) != self.frame_samples:
                raise ValueError(f"expected {self.frame_samples} samples, got {len(frame)}")

            audio = torch.from_numpy(np.asarray(frame, dtype=np.float32)).reshape(1, -1).to(self.device)
            h = torch.from_numpy(state.hidden).to(self.device)
            c = torch.from_numpy(state.cell).to(self.device)

            with torch.no_grad():
                prob, h_out, c_out = self._module(audio, h, c)

            return BackendResult.success(VadOutput(
                probability=_scalar(prob),
                state=RecurrentState(
                    hidden=h_out.cpu().numpy().astype(np.float32),
                    cell=c_out.cpu().numpy().astype(np.float32),
                ),
            ))
        except Exception as e:
            return BackendResult.failure(BackendInferenceError("vad", str(e)))


@dataclass
class BackendBundle:
    """All backends one engine instance owns."""
    encoder: TorchEncoderBackend
    prediction: TorchPredictionBackend
    joint: TorchJointBackend
    vad: Optional[TorchVadBackend] = None


def check_model_dir(model_config: ModelConfig) -> dict[str, bool]:
    """Report which required model files exist in the model directory."""
    model_dir = model_config.path
    return {
        "encoder": (model_dir / model_config.encoder_file).exists(),
        "decoder": (model_dir / model_config.decoder_file).exists(),
        "joint": (model_dir / model_config.joint_file).exists(),
        "vocabulary": any((model_dir / name).exists() for name in model_config.vocab_files),
    }


def load_vad_backend(vad_config: VadConfig, path: Path, device: str = "cpu") -> Optional[TorchVadBackend]:
    """Load the VAD backend, or None when disabled or missing."""
    if not vad_config.enabled:
        logger.info("VAD disabled")
        return None
    if not path.exists():
        logger.warning(f"VAD model not found at {path}, long audio will be split without VAD")
        return None
    module = load_torchscript(path, device)
    return TorchVadBackend(module, vad_config.frame_samples, vad_config.state_size, device)


def load_backends(config: Config) -> BackendBundle:
    """Load every backend named by the configuration."""
    model = config.model
    model_dir = model.path
    if not model_dir.exists():
        raise InitializationError(f"Model directory not found: {model_dir}")

    encoder = TorchEncoderBackend(load_torchscript(model_dir / model.encoder_file, model.device), model.device)
    prediction = TorchPredictionBackend(
        load_torchscript(model_dir / model.decoder_file, model.device),
        num_layers=model.lstm_layers,
        hidden_size=model.decoder_dim,
        device=model.device,
    )
    joint = TorchJointBackend(
        load_torchscript(model_dir / model.joint_file, model.device),
        encoder_dim=model.encoder_dim,
        decoder_dim=model.decoder_dim,
        blank_id=model.blank_id,
        durations=model.durations,
        device=model.device,
    )
    vad = load_vad_backend(config.vad, config.vad_model_path, model.device)

    logger.info("Backends loaded")
    return BackendBundle(encoder=encoder, prediction=prediction, joint=joint, vad=vad)
