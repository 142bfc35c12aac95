"""Command line entry point for parakeet-asr."""

import argparse
import json
import logging
import sys
from typing import Optional

from .backends.torch_backends import check_model_dir
from .config import Config, load_config
from .engine import TranscriptionEngine, TranscriptionOptions
from .errors import TranscriptionError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="parakeet-asr",
        description="Parakeet TDT speech-to-text",
    )
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--model-dir",
        default=None,
        help="Directory containing model files (overrides config)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    transcribe = subparsers.add_parser("transcribe", help="Transcribe audio files")
    transcribe.add_argument("files", nargs="+", help="Audio files to transcribe")
    transcribe.add_argument(
        "--no-vad",
        action="store_true",
        help="Split long audio into fixed windows instead of speech spans",
    )
    transcribe.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="VAD speech probability threshold",
    )
    transcribe.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON with segment timestamps",
    )

    subparsers.add_parser("status", help="Check that model files are present")
    return parser


def run_status(config: Config) -> int:
    """Print which model files are present."""
    present = check_model_dir(config.model)
    vad_present = config.vad_model_path.exists()

    print(f"Model directory: {config.model.path}")
    for name, found in present.items():
        print(f"  {name}: {'found' if found else 'missing'}")
    print(f"  vad: {'found' if vad_present else 'missing'}")

    return 0 if all(present.values()) else 1


def run_transcribe(config: Config, args: argparse.Namespace) -> int:
    """Transcribe each file and print the result."""
    engine = TranscriptionEngine.from_config(config)
    options = TranscriptionOptions(use_vad=not args.no_vad, threshold=args.threshold)

    for path in args.files:
        logger.info(f"Transcribing {path}")
        result = engine.transcribe_file(path, options)

        if args.json:
            print(json.dumps({"file": path, **result.to_dict()}, ensure_ascii=False))
        else:
            if len(args.files) > 1:
                print(f"{path}:")
            print(result.text)

    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    if args.model_dir:
        config.model.model_dir = args.model_dir
    config.setup_logging()

    try:
        if args.command == "status":
            return run_status(config)
        return run_transcribe(config, args)
    except TranscriptionError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
