"""
Resilient structured-output decoding.

Following principles:
- Pure functions, no shared mutable state
- Every stage fails safe, the pipeline never aborts
- "Decoded", "absent" and "placeholder" stay distinguishable
"""

from .extractor import extract_payload, reconstruct_flat_object
from .fallback import infer_shape_hint, is_synthesized, synthesize_fallback
from .normalizer import normalize
from .pipeline import (
    StructuredOutputDecoder,
    decode,
    decode_as,
    decode_or_fallback,
    decode_strict,
    decode_with_trace,
)
from .repair import repair
from .stages import DecodeOptions, DecodeResult, DecodeStage, StageOutcome

__all__ = [
    "DecodeOptions",
    "DecodeResult",
    "DecodeStage",
    "StageOutcome",
    "StructuredOutputDecoder",
    "decode",
    "decode_as",
    "decode_or_fallback",
    "decode_strict",
    "decode_with_trace",
    "extract_payload",
    "infer_shape_hint",
    "is_synthesized",
    "normalize",
    "reconstruct_flat_object",
    "repair",
    "synthesize_fallback",
]
