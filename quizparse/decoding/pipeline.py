"""
Decode pipeline - owns control flow explicitly.

Stages run in strict priority order, each behind a fail-safe boundary:

    direct parse -> normalize + parse -> repair + parse
                 -> extract + repair + parse -> flat reconstruction

The first stage that produces a value wins. When none does the result is
absent; a placeholder is only ever produced by ``decode_or_fallback``.
"""

from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from quizparse.decoding.extractor import extract_payload, reconstruct_flat_object
from quizparse.decoding.fallback import synthesize_fallback
from quizparse.decoding.normalizer import envelope_text, normalize, strip_fence
from quizparse.decoding.repair import repair
from quizparse.decoding.stages import (
    DEFAULT_OPTIONS,
    DecodeOptions,
    DecodeResult,
    DecodeStage,
    parse_json,
    run_stage,
)
from quizparse.models import ShapeHint
from quizparse.utils.errors import NoStructuredContentError, ShapeValidationError, StageError
from quizparse.utils.logging import get_logger, preview

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

EMPTY_LIST_SENTINEL = "[]"


def is_empty_response(text: Any) -> bool:
    """Empty, whitespace-only or the "[]" sentinel: a valid "no content" answer."""
    if not isinstance(text, str):
        return True
    stripped = text.strip()
    return not stripped or stripped == EMPTY_LIST_SENTINEL


class StructuredOutputDecoder:
    """
    Turns free-text model output into a parsed JSON value.

    Stateless apart from its frozen options, so one instance can be shared
    by any number of concurrent callers.
    """

    def __init__(self, options: Optional[DecodeOptions] = None):
        self.options = options or DEFAULT_OPTIONS

    def decode(self, text: Any) -> Any:
        """
        Decode ``text``; returns the value or None when nothing was found.

        Use ``decode_with_trace`` to tell a decoded JSON ``null`` from absence.
        """
        return self.decode_with_trace(text).value

    def decode_with_trace(self, text: Any) -> DecodeResult:
        """Decode ``text`` and report which stage produced the value."""
        try:
            return self._run(text)
        except Exception as e:
            # Stages are individually guarded; this only catches bugs in the glue.
            logger.error(f"Decode pipeline failed unexpectedly: {type(e).__name__}")
            return DecodeResult.absent()

    def decode_strict(self, text: Any) -> Any:
        """
        Like ``decode`` but raises when nothing could be decoded.

        Raises:
            NoStructuredContentError: When every stage failed or input was empty
        """
        result = self.decode_with_trace(text)
        if not result.found:
            raw = text if isinstance(text, str) else ""
            raise NoStructuredContentError(preview(raw, self.options.preview_chars), len(raw))
        return result.value

    def decode_as(self, text: Any, model: Type[ModelT], strict: bool = False) -> Optional[ModelT]:
        """
        Decode and validate against a pydantic model.

        Args:
            text: Raw model text
            model: Caller's shape model
            strict: Raise instead of returning None on failure

        Returns:
            A model instance, or None when decoding or validation failed

        Raises:
            NoStructuredContentError: strict mode, nothing decoded
            ShapeValidationError: strict mode, value does not fit ``model``
        """
        result = self.decode_with_trace(text)
        if not result.found:
            if strict:
                raw = text if isinstance(text, str) else ""
                raise NoStructuredContentError(preview(raw, self.options.preview_chars), len(raw))
            return None
        try:
            return model.model_validate(result.value)
        except ValidationError as e:
            logger.warning(
                f"Decoded value does not fit {model.__name__}",
                extra={"stage": result.stage.value, "error_count": e.error_count()},
            )
            if strict:
                errors = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]
                raise ShapeValidationError(model.__name__, errors) from e
            return None

    def decode_or_fallback(
        self,
        text: Any,
        hint: Optional[ShapeHint] = None,
        topic: Optional[str] = None,
    ) -> DecodeResult:
        """
        Decode, or synthesize a marked placeholder when nothing was found.

        The placeholder's stage is ``DecodeStage.FALLBACK`` so callers and
        telemetry can still tell it apart from decoded data.
        """
        result = self.decode_with_trace(text)
        if result.found:
            return result
        placeholder = synthesize_fallback(text if isinstance(text, str) else "", hint=hint, topic=topic)
        return DecodeResult(value=placeholder, stage=DecodeStage.FALLBACK, found=True)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _run(self, text: Any) -> DecodeResult:
        # Step 1: nothing to decode
        if is_empty_response(text):
            logger.debug("Empty model response, nothing to decode")
            return DecodeResult.absent()

        result = self._decode(text, unwrap=self.options.unwrap_envelope)
        if not result.found:
            logger.warning(
                "No structured content decoded",
                extra={"preview": preview(text, self.options.preview_chars), "length": len(text)},
            )
        return result

    def _decode(self, text: str, unwrap: bool, flat: bool = True) -> DecodeResult:
        options = self.options

        # Step 2: direct parse
        direct = run_stage(DecodeStage.DIRECT, parse_json, text)
        if direct.advanced:
            return self._accept(direct.value, DecodeStage.DIRECT, unwrap)

        normalized = text

        # Step 3: normalize and parse
        if options.normalize:
            outcome = run_stage(DecodeStage.NORMALIZED, self._normalize, text)
            if outcome.advanced:
                normalized = outcome.value
                if is_empty_response(normalized):
                    return DecodeResult.absent()
                parsed = run_stage(DecodeStage.NORMALIZED, parse_json, normalized)
                if parsed.advanced:
                    return self._accept(parsed.value, DecodeStage.NORMALIZED, unwrap)

        # Step 4: repair and parse
        if options.repair:
            parsed = run_stage(DecodeStage.REPAIRED, self._repair_and_parse, normalized)
            if parsed.advanced:
                return self._accept(parsed.value, DecodeStage.REPAIRED, unwrap)

        # Step 5: extract the payload span, repair it, parse
        if options.extract:
            parsed = run_stage(DecodeStage.EXTRACTED, self._extract_and_parse, normalized)
            if parsed.advanced:
                return self._accept(parsed.value, DecodeStage.EXTRACTED, unwrap)

        # Step 6: labelled lines
        if flat and options.flat:
            outcome = run_stage(DecodeStage.FLAT, self._flat, text)
            if outcome.advanced:
                logger.warning(
                    "Reconstructed flat object from labelled lines",
                    extra={"fields": len(outcome.value)},
                )
                return DecodeResult(outcome.value, DecodeStage.FLAT, True)

        return DecodeResult.absent()

    def _accept(self, value: Any, stage: DecodeStage, unwrap: bool) -> DecodeResult:
        """Take a parsed value, looking one level into an inference envelope."""
        inner = envelope_text(value) if unwrap else None
        if inner is None:
            return DecodeResult(value, stage, True)
        if is_empty_response(inner):
            if isinstance(value, dict) and "generated_text" not in value:
                # A content-only object with empty content is an ordinary document
                return DecodeResult(value, stage, True)
            logger.debug("Inference envelope carries an empty response")
            return DecodeResult.absent()

        logger.debug(f"Decoding text of inference envelope found at stage {stage.value}")
        # Only an object or array found in the envelope text replaces the envelope
        result = self._decode(inner, unwrap=False, flat=False)
        if result.found and isinstance(result.value, (dict, list)):
            return result
        return DecodeResult(value, stage, True)

    def _normalize(self, text: str) -> str:
        normalized = normalize(text, unwrap=False)
        if not normalized:
            raise StageError(DecodeStage.NORMALIZED.value, "nothing left after normalization")
        return normalized

    def _repair_and_parse(self, text: str) -> Any:
        return parse_json(repair(text))

    def _extract_and_parse(self, text: str) -> Any:
        span = extract_payload(text, prefer_object=self.options.prefer_object)
        if span == text and self.options.repair:
            # Nothing narrower than what the repair stage already tried
            raise StageError(DecodeStage.EXTRACTED.value, "no payload boundary found")
        return parse_json(repair(span))

    def _flat(self, text: str) -> Any:
        return reconstruct_flat_object(strip_fence(text.strip()))


_default_decoder = StructuredOutputDecoder()


def decode(text: Any, options: Optional[DecodeOptions] = None) -> Any:
    """Decode model text with the full pipeline; None means nothing was found."""
    decoder = StructuredOutputDecoder(options) if options else _default_decoder
    return decoder.decode(text)


def decode_with_trace(text: Any, options: Optional[DecodeOptions] = None) -> DecodeResult:
    decoder = StructuredOutputDecoder(options) if options else _default_decoder
    return decoder.decode_with_trace(text)


def decode_strict(text: Any, options: Optional[DecodeOptions] = None) -> Any:
    decoder = StructuredOutputDecoder(options) if options else _default_decoder
    return decoder.decode_strict(text)


def decode_as(
    text: Any,
    model: Type[ModelT],
    strict: bool = False,
    options: Optional[DecodeOptions] = None,
) -> Optional[ModelT]:
    decoder = StructuredOutputDecoder(options) if options else _default_decoder
    return decoder.decode_as(text, model, strict=strict)


def decode_or_fallback(
    text: Any,
    hint: Optional[ShapeHint] = None,
    topic: Optional[str] = None,
    options: Optional[DecodeOptions] = None,
) -> DecodeResult:
    decoder = StructuredOutputDecoder(options) if options else _default_decoder
    return decoder.decode_or_fallback(text, hint=hint, topic=topic)
