"""Transducer decoding and token vocabulary."""

from .decoder import DecodeResult, TransducerDecoder
from .vocabulary import Vocabulary, load_vocabulary

__all__ = ["DecodeResult", "TransducerDecoder", "Vocabulary", "load_vocabulary"]
