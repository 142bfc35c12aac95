"""Sub-word token vocabulary and text rendering."""

import json
import logging
from pathlib import Path
from typing import Iterable, Mapping

from ..config import ModelConfig
from ..errors import InitializationError

logger = logging.getLogger(__name__)

BLANK_TOKEN = "<blk>"
SPECIAL_TOKENS = frozenset({"<blk>", "<blank>", "<pad>", "<unk>", "<|nospeech|>"})


def is_special_token(token: str) -> bool:
    """Check whether a token is a non-lexical marker."""
    return token in SPECIAL_TOKENS or token.startswith("<|")


class Vocabulary:
    """Immutable id -> token table with a designated blank id."""

    def __init__(self, tokens: Iterable[str], blank_id: int):
        tokens = list(tokens)
        if blank_id == len(tokens):
            # Blank appended after the regular tokens
            tokens.append(BLANK_TOKEN)
        if not 0 <= blank_id < len(tokens):
            raise InitializationError(
                f"Blank id {blank_id} outside vocabulary of {len(tokens)} tokens"
            )
        self._tokens = tuple(tokens)
        self.blank_id = blank_id

    @classmethod
    def from_file(cls, path: str | Path, blank_id: int) -> "Vocabulary":
        """Load one token per line; the line index is the token id."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                tokens = [line.rstrip("\r\n") for line in f]
        except OSError as e:
            raise InitializationError(f"Failed to open vocabulary file: {path}") from e
        return cls(tokens, blank_id)

    @classmethod
    def from_mapping(cls, mapping: Mapping, blank_id: int) -> "Vocabulary":
        """Materialize a sparse ``{id: token}`` map; gaps become empty strings."""
        try:
            entries = {int(index): token for index, token in mapping.items()}
        except (TypeError, ValueError) as e:
            raise InitializationError(f"Non-integer token id in vocabulary: {e}") from e
        if not entries:
            return cls([], blank_id)
        if min(entries) < 0:
            raise InitializationError(f"Negative token id in vocabulary: {min(entries)}")

        tokens = [""] * (max(entries) + 1)
        for index, token in entries.items():
            tokens[index] = token

        gaps = len(tokens) - len(entries)
        if gaps:
            logger.debug(f"Vocabulary has {gaps} unmapped ids, filled with empty tokens")
        return cls(tokens, blank_id)

    @classmethod
    def from_json(cls, path: str | Path, blank_id: int) -> "Vocabulary":
        """Load a JSON ``{"id": "token"}`` vocabulary."""
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                mapping = json.load(f)
        except (OSError, ValueError) as e:
            raise InitializationError(f"Failed to read vocabulary file {path}: {e}") from e
        return cls.from_mapping(mapping, blank_id)

    def __len__(self) -> int:
        return len(self._tokens)

    def __getitem__(self, token_id: int) -> str:
        return self._tokens[token_id]

    def is_valid(self, token_id: int) -> bool:
        """Check whether an id is inside the vocabulary range."""
        return 0 <= token_id < len(self._tokens)

    def render(self, token_ids: Iterable[int]) -> str:
        """
        Render decoded token ids as text.

        Out-of-range ids, empty tokens and special markers are skipped. Word
        boundaries are carried as leading spaces inside the tokens, so the
        remaining tokens are concatenated verbatim and the result trimmed.
        """
        pieces = []
        for token_id in token_ids:
            if not self.is_valid(token_id):
                continue
            token = self._tokens[token_id]
            if not token or is_special_token(token):
                continue
            pieces.append(token)
        return "".join(pieces).strip()


def load_vocabulary(config: ModelConfig) -> Vocabulary:
    """Load the first vocabulary file found in the model directory."""
    for name in config.vocab_files:
        path = config.path / name
        if not path.exists():
            continue
        logger.info(f"Loading vocabulary: {path}")
        if path.suffix == ".json":
            vocabulary = Vocabulary.from_json(path, config.blank_id)
        else:
            vocabulary = Vocabulary.from_file(path, config.blank_id)
        logger.info(f"Vocabulary loaded: {len(vocabulary)} tokens")
        return vocabulary

    raise InitializationError(
        f"Missing vocabulary file ({', '.join(config.vocab_files)}) in {config.path}"
    )
