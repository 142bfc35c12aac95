"""Tests for the command line entry point."""

import json
from unittest.mock import MagicMock, patch

import pytest

from parakeet_asr.config import Config, ModelConfig
from parakeet_asr.engine import TranscriptionResult, TranscriptSegment
from parakeet_asr.errors import InitializationError, ValidationError
from parakeet_asr.main import build_parser, main


@pytest.fixture
def config(temp_dir):
    return Config(model=ModelConfig(model_dir=str(temp_dir)))


@pytest.fixture
def mock_load(config):
    """Patch config loading and logging setup."""
    with patch("parakeet_asr.main.load_config", return_value=config) as mock_load:
        with patch.object(Config, "setup_logging"):
            yield mock_load


@pytest.fixture
def mock_engine():
    """Patch engine construction with a canned result."""
    with patch("parakeet_asr.main.TranscriptionEngine") as mock_engine_class:
        engine = MagicMock()
        engine.transcribe_file.return_value = TranscriptionResult(
            text="hello world",
            duration_ms=42.0,
            segments=[TranscriptSegment(0.0, 1.0, "hello world")],
        )
        mock_engine_class.from_config.return_value = engine
        yield engine


class TestBuildParser:
    """Tests for argument parsing."""

    def test_transcribe_args(self):
        """Test transcribe options."""
        args = build_parser().parse_args(["transcribe", "a.wav", "b.wav", "--no-vad", "--threshold", "0.7"])

        assert args.command == "transcribe"
        assert args.files == ["a.wav", "b.wav"]
        assert args.no_vad is True
        assert args.threshold == 0.7
        assert args.json is False

    def test_command_required(self):
        """Test that a subcommand is required."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestStatus:
    """Tests for the status command."""

    def test_missing_models(self, mock_load, capsys):
        """Test status with an empty model directory."""
        assert main(["status"]) == 1

        out = capsys.readouterr().out
        assert "encoder: missing" in out
        assert "vad: missing" in out

    def test_all_present(self, mock_load, temp_dir, capsys):
        """Test status with every required file."""
        for name in ("encoder.pt", "decoder.pt", "joint.pt", "vocab.txt"):
            (temp_dir / name).write_text("")

        assert main(["status"]) == 0
        assert "joint: found" in capsys.readouterr().out

    def test_model_dir_override(self, mock_load, config, temp_dir):
        """Test --model-dir replaces the configured directory."""
        main(["--model-dir", str(temp_dir / "other"), "status"])

        assert config.model.model_dir == str(temp_dir / "other")


class TestTranscribe:
    """Tests for the transcribe command."""

    def test_text_output(self, mock_load, mock_engine, capsys):
        """Test plain text output for one file."""
        assert main(["transcribe", "speech.wav"]) == 0

        assert capsys.readouterr().out.strip() == "hello world"
        path, options = mock_engine.transcribe_file.call_args.args
        assert path == "speech.wav"
        assert options.use_vad is True

    def test_multiple_files(self, mock_load, mock_engine, capsys):
        """Test each file is labelled."""
        main(["transcribe", "a.wav", "b.wav", "--no-vad"])

        out = capsys.readouterr().out
        assert "a.wav:" in out
        assert "b.wav:" in out
        options = mock_engine.transcribe_file.call_args.args[1]
        assert options.use_vad is False

    def test_json_output(self, mock_load, mock_engine, capsys):
        """Test JSON output with segments."""
        main(["transcribe", "speech.wav", "--json"])

        data = json.loads(capsys.readouterr().out)
        assert data["file"] == "speech.wav"
        assert data["text"] == "hello world"
        assert data["segments"][0]["end_time"] == 1.0

    def test_initialization_error(self, mock_load, capsys):
        """Test a model loading failure exits with status 1."""
        with patch("parakeet_asr.main.TranscriptionEngine") as mock_engine_class:
            mock_engine_class.from_config.side_effect = InitializationError("no models")

            assert main(["transcribe", "speech.wav"]) == 1

    def test_validation_error(self, mock_load, mock_engine):
        """Test a bad input file exits with status 1."""
        mock_engine.transcribe_file.side_effect = ValidationError("Audio file not found")

        assert main(["transcribe", "missing.wav"]) == 1
