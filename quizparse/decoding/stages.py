"""
Stage plumbing for the decode pipeline.

Every stage runs behind ``run_stage``: whatever happens inside, the caller
gets a ``StageOutcome`` back, never an exception.
"""

import json
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional

from quizparse.utils.errors import StageError
from quizparse.utils.logging import LogContext, get_logger

logger = get_logger(__name__)


class DecodeStage(str, Enum):
    """Pipeline stages, in the order they are attempted."""

    DIRECT = "direct"
    NORMALIZED = "normalized"
    REPAIRED = "repaired"
    EXTRACTED = "extracted"
    FLAT = "flat"
    FALLBACK = "fallback"
    NONE = "none"


@dataclass(frozen=True)
class StageOutcome:
    """Either a produced value or an explicit "did not advance" marker."""

    advanced: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def produced(cls, value: Any) -> "StageOutcome":
        return cls(advanced=True, value=value)

    @classmethod
    def skipped(cls, reason: str) -> "StageOutcome":
        return cls(advanced=False, error=reason)


@dataclass(frozen=True)
class DecodeResult:
    """
    Outcome of one decode call.

    ``found`` separates a decoded ``None`` (the text ``null``) from absence;
    ``stage`` records which stage produced the value.
    """

    value: Any = None
    stage: DecodeStage = DecodeStage.NONE
    found: bool = False

    @classmethod
    def absent(cls) -> "DecodeResult":
        return cls()

    @property
    def synthesized(self) -> bool:
        return self.stage is DecodeStage.FALLBACK

    @property
    def heuristic(self) -> bool:
        """True when the value came from flat reconstruction or fallback."""
        return self.stage in (DecodeStage.FLAT, DecodeStage.FALLBACK)


@dataclass(frozen=True)
class DecodeOptions:
    """
    Which stages the pipeline runs and how ties are broken.

    Direct parsing always runs. Turning everything else off except
    ``normalize`` gives the cheap "parse, or strip the fence and parse" mode.
    """

    normalize: bool = True
    repair: bool = True
    extract: bool = True
    flat: bool = True
    unwrap_envelope: bool = True
    prefer_object: bool = True
    preview_chars: int = 200

    @classmethod
    def from_settings(cls, settings) -> "DecodeOptions":
        return cls(
            repair=settings.enable_repair,
            extract=settings.enable_extraction,
            flat=settings.enable_flat,
            prefer_object=settings.prefer_object,
            preview_chars=settings.preview_chars,
        )

    @classmethod
    def minimal(cls) -> "DecodeOptions":
        """Direct parse plus normalization only."""
        return cls(repair=False, extract=False, flat=False)

    def with_changes(self, **changes: Any) -> "DecodeOptions":
        return replace(self, **changes)


DEFAULT_OPTIONS = DecodeOptions()


def parse_json(text: str) -> Any:
    """Standards-compliant parse; raises StageError instead of ValueError."""
    if not text or not text.strip():
        raise StageError("parse", "empty text")
    try:
        return json.loads(text)
    except (ValueError, RecursionError) as e:
        raise StageError("parse", f"{type(e).__name__}: {e}") from None


def run_stage(stage: DecodeStage, func: Callable[..., Any], *args: Any) -> StageOutcome:
    """
    Run one stage behind a fail-safe boundary.

    ``StageError`` is the expected way for a stage to decline; any other
    exception (including ``RecursionError`` from deeply nested input) is
    also turned into a skipped outcome.
    """
    with LogContext(stage=stage.value):
        try:
            value = func(*args)
        except StageError as e:
            logger.debug(f"Stage {stage.value} did not advance: {e.reason}")
            return StageOutcome.skipped(e.reason)
        except Exception as e:
            logger.debug(f"Stage {stage.value} raised {type(e).__name__}")
            return StageOutcome.skipped(f"{type(e).__name__}: {e}")
        logger.debug(f"Stage {stage.value} produced a value")
        return StageOutcome.produced(value)
