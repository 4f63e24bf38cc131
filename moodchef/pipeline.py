"""Turn raw model text into domain records, falling back when it can't.

``ResponsePipeline.run`` chains extract, repair, parse and normalize. A failure
at any stage is raised internally as a ``ResponseParseError`` subclass and
turned into a static fallback, so callers always get a complete record plus
a flag saying whether it came from the model.
"""

import json
import logging
import threading
from dataclasses import dataclass
from typing import Any

from moodchef import fallbacks, json_repair, normalizer
from moodchef.models import GenerationContext, ResponseShape

logger = logging.getLogger(__name__)

REASON_EXTRACTION_MISS = "extraction_miss"
REASON_PARSE_FAILURE = "parse_failure"
REASON_SHAPE_MISMATCH = "shape_mismatch"
REASON_UNEXPECTED = "unexpected_error"
REASON_AI_ERROR = "ai_error"


class ResponseParseError(Exception):
    """Base class for failures turning a model reply into a record."""
    reason = REASON_UNEXPECTED


class ExtractionMiss(ResponseParseError):
    """No JSON-like span in the reply."""
    reason = REASON_EXTRACTION_MISS


class ParseFailure(ResponseParseError):
    """The repaired candidate still isn't valid JSON."""
    reason = REASON_PARSE_FAILURE


class ShapeMismatch(ResponseParseError):
    """Valid JSON, but without the expected top-level key."""
    reason = REASON_SHAPE_MISMATCH


@dataclass
class PipelineResult:
    value: Any
    used_fallback: bool = False
    reason: str | None = None


class FallbackCounter:
    """Thread-safe count of fallback uses, keyed by (shape, reason)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counts: dict[tuple[str, str], int] = {}

    def increment(self, shape: ResponseShape, reason: str) -> None:
        key = (ResponseShape(shape).value, reason)
        with self._lock:
            self._counts[key] = self._counts.get(key, 0) + 1

    def get(self, shape: ResponseShape, reason: str) -> int:
        with self._lock:
            return self._counts.get((ResponseShape(shape).value, reason), 0)

    def total(self) -> int:
        with self._lock:
            return sum(self._counts.values())

    def snapshot(self) -> list[dict[str, Any]]:
        """Counts as a list of ``{"shape", "reason", "count"}`` dicts, sorted by key."""
        with self._lock:
            items = sorted(self._counts.items())
        return [{"shape": shape, "reason": reason, "count": count} for (shape, reason), count in items]

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()


def parse_json(raw_text: str | None) -> Any:
    """Extract, repair and parse the JSON in a model reply.

    Raises:
        ExtractionMiss: If the reply contains nothing JSON-like
        ParseFailure: If neither the repaired candidate nor a line-scanned
            one parses
    """
    candidate = json_repair.extract(raw_text)
    if candidate is None:
        raise ExtractionMiss("No JSON found in model response")

    try:
        return json.loads(json_repair.repair(candidate))
    except json.JSONDecodeError as e:
        first_error = e

    scanned = json_repair.scan_balanced_lines(raw_text)
    if scanned is not None:
        try:
            return json.loads(json_repair.repair(scanned))
        except json.JSONDecodeError:
            pass

    raise ParseFailure(f"Model response is not valid JSON after repair: {first_error}") from first_error


class ResponsePipeline:
    """Extract, repair, parse and normalize model replies.

    Holds no per-request state; one instance is shared by all services.
    """

    def __init__(self, counter: FallbackCounter | None = None):
        self.counter = counter or FallbackCounter()

    def run(
        self,
        raw_text: str | None,
        shape: ResponseShape,
        context: GenerationContext | None = None,
    ) -> PipelineResult:
        """Convert a model reply into the record(s) for ``shape``.

        Never raises: any failure yields the fallback for the same shape and
        context, with ``used_fallback`` set and ``reason`` naming the stage
        that failed.
        """
        context = context or GenerationContext()
        try:
            parsed = parse_json(raw_text)
            value = normalizer.normalize(parsed, shape, context)
            if value is None:
                raise ShapeMismatch(f"Response lacks the expected {ResponseShape(shape).value} structure")
            return PipelineResult(value=value)
        except ResponseParseError as e:
            return self.fallback(shape, context, e.reason, detail=str(e))
        except Exception as e:
            logger.exception("Unexpected error while parsing model response")
            return self.fallback(shape, context, REASON_UNEXPECTED, detail=str(e))

    def fallback(
        self,
        shape: ResponseShape,
        context: GenerationContext | None = None,
        reason: str = REASON_AI_ERROR,
        detail: str | None = None,
    ) -> PipelineResult:
        """Serve the static fallback for ``shape`` and record why."""
        shape = ResponseShape(shape)
        self.counter.increment(shape, reason)
        logger.warning(
            "Model response unusable, serving fallback",
            extra={"shape": shape.value, "reason": reason, "detail": detail},
        )
        return PipelineResult(
            value=fallbacks.fallback(shape, context),
            used_fallback=True,
            reason=reason,
        )
