"""
Parsing and validation of rubric evaluation responses.
"""

import logging
from typing import Any

from pydantic import ValidationError

from worksim_assessment.analysis.rubric_prompt import (
    RUBRIC_EVALUATION_PROMPT_VERSION,
    RoleFamilyRubric,
)
from worksim_assessment.analysis.schemas import (
    DetectedRedFlag,
    DimensionScoreOutput,
    HiringSignal,
    RubricAssessmentOutput,
    TimestampedBehavior,
)
from worksim_assessment.errors import RubricParseError
from worksim_assessment.models.llm_client import parse_json_loose

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _lower(value: Any, default: str) -> str:
    return value.strip().lower() if isinstance(value, str) and value.strip() else default


def _parse_behaviors(data: dict[str, Any]) -> tuple[list[TimestampedBehavior], list[str]]:
    """
    Read observable behaviors in either response format.

    The current format is a list of {timestamp, behavior} objects. The older
    format is a flat list of strings with a parallel "timestamps" list.
    """
    raw = data.get("observable_behaviors") or []
    if raw and isinstance(raw[0], dict) and "timestamp" in raw[0]:
        behaviors = [
            TimestampedBehavior(
                timestamp=str(item.get("timestamp") or ""),
                behavior=str(item.get("behavior") or ""),
            )
            for item in raw
            if isinstance(item, dict)
        ]
        return behaviors, [b.timestamp for b in behaviors]

    flat_timestamps = [str(ts) for ts in data.get("timestamps") or []]
    behaviors = [
        TimestampedBehavior(
            timestamp=flat_timestamps[i] if i < len(flat_timestamps) else "",
            behavior=str(item),
        )
        for i, item in enumerate(raw)
    ]
    return behaviors, flat_timestamps


def _parse_dimension(slug: str, data: Any, names: dict[str, str]) -> DimensionScoreOutput:
    if not isinstance(data, dict):
        raise RubricParseError(f"Invalid dimension score for {slug!r}")
    behaviors, timestamps = _parse_behaviors(data)
    return DimensionScoreOutput(
        dimension_slug=slug,
        dimension_name=names.get(slug.strip(), slug),
        score=data.get("score"),
        summary=data.get("summary") or "",
        confidence=_lower(data.get("confidence"), "medium"),
        rationale=data.get("rationale") or "",
        observable_behaviors=behaviors,
        timestamps=timestamps,
        trainable_gap=bool(data.get("trainable_gap") or False),
        green_flags=data.get("green_flags") or [],
        red_flags=data.get("red_flags") or [],
    )


def _parse_signals(items: Any) -> list[HiringSignal]:
    return [
        HiringSignal(
            dimension=item.get("dimension") or "",
            score=item.get("score") or 0,
            description=item.get("description") or "",
        )
        for item in items or []
        if isinstance(item, dict)
    ]


def parse_rubric_response(
    response_text: str,
    rubric: RoleFamilyRubric | None = None,
    role_family_slug: str = "engineering",
) -> RubricAssessmentOutput:
    """
    Parse and validate a rubric evaluation response.

    Args:
        response_text: Raw model output, optionally fenced with ```json.
        rubric: Rubric used for the prompt, to fill in dimension names.
        role_family_slug: Role family recorded when the response omits one.

    Returns:
        The validated rubric output.

    Raises:
        RubricParseError: If the response is not JSON or fails validation.
    """
    parsed = parse_json_loose(response_text)
    if not isinstance(parsed, dict):
        raise RubricParseError("Response is not a JSON object")

    if not _is_number(parsed.get("overall_score")):
        raise RubricParseError("Missing or invalid overall_score in response")

    dimension_scores = parsed.get("dimension_scores")
    if not isinstance(dimension_scores, dict):
        raise RubricParseError("Missing or invalid dimension_scores in response")

    overall_summary = parsed.get("overall_summary")
    if not isinstance(overall_summary, str) or not overall_summary.strip():
        raise RubricParseError("Missing or invalid overall_summary in response")

    seen: set[str] = set()
    for slug in dimension_scores:
        key = slug.strip()
        if key and key in seen:
            raise RubricParseError(f"Duplicate dimension {key!r} in dimension_scores")
        seen.add(key)

    names = {d.slug: d.name for d in rubric.dimensions} if rubric else {}

    try:
        return RubricAssessmentOutput(
            evaluation_version=parsed.get("evaluation_version") or RUBRIC_EVALUATION_PROMPT_VERSION,
            role_family_slug=parsed.get("role_family_slug") or role_family_slug,
            overall_score=parsed["overall_score"],
            overall_summary=overall_summary,
            dimension_scores=[
                _parse_dimension(slug, data, names) for slug, data in dimension_scores.items()
            ],
            detected_red_flags=[
                DetectedRedFlag(
                    slug=rf.get("slug") or "",
                    name=rf.get("name") or rf.get("slug") or "",
                    description=rf.get("description") or "",
                    evidence=rf.get("evidence") or "",
                    timestamps=rf.get("timestamps") or [],
                )
                for rf in parsed.get("detected_red_flags") or []
                if isinstance(rf, dict)
            ],
            top_strengths=_parse_signals(parsed.get("top_strengths")),
            growth_areas=_parse_signals(parsed.get("growth_areas")),
            evaluation_confidence=_lower(parsed.get("evaluation_confidence"), "medium"),
            insufficient_evidence_notes=parsed.get("insufficient_evidence_notes"),
        )
    except ValidationError as e:
        logger.warning(f"Rubric response failed validation: {e.error_count()} errors")
        raise RubricParseError(f"Rubric response failed validation: {e}") from e
