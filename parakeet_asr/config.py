"""Configuration management for parakeet-asr."""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass
class ModelConfig:
    """Transducer model files and dimensions."""
    model_dir: str = "~/.cache/parakeet-asr/models"
    encoder_file: str = "encoder.pt"
    decoder_file: str = "decoder.pt"
    joint_file: str = "joint.pt"
    vocab_files: list[str] = field(default_factory=lambda: [
        "vocab.txt",
        "tokens.txt",
        "parakeet_vocab.json",
        "parakeet_v3_vocab.json",
    ])
    blank_id: int = 8192
    encoder_dim: int = 1024
    decoder_dim: int = 640
    lstm_layers: int = 2
    durations: list[int] = field(default_factory=lambda: [0, 1, 2, 3, 4])
    device: str = "cpu"
    max_symbols_factor: int = 10

    @property
    def path(self) -> Path:
        """Resolved model directory."""
        return Path(self.model_dir).expanduser()


@dataclass
class AudioConfig:
    """Audio front-end configuration."""
    sample_rate: int = 16000
    window_samples: int = 240000  # 15 s, fixed encoder input
    mel_bins: int = 128
    fft_size: int = 512
    hop_length: int = 160


@dataclass
class VadConfig:
    """Voice activity detection configuration."""
    enabled: bool = True
    model_file: str = "silero_vad.pt"
    frame_samples: int = 576  # 36 ms @ 16 kHz
    state_size: int = 128
    threshold: float = 0.5
    min_silence_ms: int = 300
    min_speech_ms: int = 250


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Config:
    """Main configuration container."""
    model: ModelConfig = field(default_factory=ModelConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    vad: VadConfig = field(default_factory=VadConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Config file not found: {path}, using defaults")
            return cls()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls(
            model=ModelConfig(**data.get("model", {})),
            audio=AudioConfig(**data.get("audio", {})),
            vad=VadConfig(**data.get("vad", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "model": asdict(self.model),
            "audio": asdict(self.audio),
            "vad": asdict(self.vad),
            "logging": asdict(self.logging),
        }

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        log_level = getattr(logging, self.logging.level.upper(), logging.INFO)

        handlers = [logging.StreamHandler()]

        if self.logging.file:
            log_path = Path(self.logging.file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path))

        logging.basicConfig(
            level=log_level,
            format=self.logging.format,
            handlers=handlers,
        )

    @property
    def vad_model_path(self) -> Path:
        """VAD model file, resolved against the model directory."""
        return self.model.path / self.vad.model_file


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from file or environment."""
    if path is None:
        path = os.environ.get("PARAKEET_ASR_CONFIG", "config/settings.yaml")
    return Config.from_yaml(path)
