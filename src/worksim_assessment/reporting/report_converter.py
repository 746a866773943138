"""
Rubric-to-report conversion.

Pure transform from a validated rubric evaluation to the candidate-facing
report. No I/O; the same input always yields the same report.
"""

from datetime import datetime

from worksim_assessment.analysis.schemas import RubricAssessmentOutput
from worksim_assessment.reporting.dimension_mapping import category_for_slug
from worksim_assessment.reporting.schemas import (
    AssessmentReport,
    Recommendation,
    ReportMetrics,
    ReportNarrative,
    ReportTiming,
    ScoreLevel,
    SkillScore,
)
from worksim_assessment.schemas import utcnow

MAX_RECOMMENDATIONS = 3
MAX_ACTIONABLE_STEPS = 3
MAX_NOTABLE_OBSERVATIONS = 5
RECOMMENDATION_SCORE_THRESHOLD = 2
NOTABLE_SCORE_THRESHOLD = 3


def score_to_level(score: float) -> ScoreLevel:
    """
    Map a 1-4 score to its level label.

    Args:
        score: Score on the 1-4 scale.

    Returns:
        The level label.
    """
    if score >= 3.5:
        return "exceptional"
    if score >= 2.5:
        return "strong"
    if score >= 1.5:
        return "adequate"
    return "needs_improvement"


def _skill_scores(output: RubricAssessmentOutput) -> list[SkillScore]:
    """Build one skill score per category; the best score wins, ties keep the first."""
    by_category: dict[str, SkillScore] = {}
    for dim in output.dimension_scores:
        if dim.score is None:
            continue
        category = category_for_slug(dim.dimension_slug)
        existing = by_category.get(category)
        if existing is not None and existing.score >= dim.score:
            continue
        by_category[category] = SkillScore(
            category=category,
            score=dim.score,
            level=score_to_level(dim.score),
            evidence=[f"+ {flag}" for flag in dim.green_flags]
            + [f"- {flag}" for flag in dim.red_flags],
            notes=dim.rationale,
        )
    # dict keeps first-insertion order even when a later score replaces the value
    return list(by_category.values())


def _narrative(output: RubricAssessmentOutput) -> ReportNarrative:
    areas = [g.description for g in output.growth_areas]
    areas.extend(f"Red flag: {rf.evidence}" for rf in output.detected_red_flags)

    observations: list[str] = []
    for dim in output.dimension_scores:
        if dim.score is None or dim.score < NOTABLE_SCORE_THRESHOLD:
            continue
        if not dim.observable_behaviors:
            continue
        first = dim.observable_behaviors[0]
        observations.append(f"[{first.timestamp}] {first.behavior}")
        if len(observations) == MAX_NOTABLE_OBSERVATIONS:
            break

    return ReportNarrative(
        overall_summary=output.overall_summary,
        strengths=[s.description for s in output.top_strengths],
        areas_for_improvement=areas,
        notable_observations=observations,
    )


def _recommendations(skill_scores: list[SkillScore]) -> list[Recommendation]:
    weak = sorted(
        (s for s in skill_scores if s.score <= RECOMMENDATION_SCORE_THRESHOLD),
        key=lambda s: s.score,
    )
    return [
        Recommendation(
            category=skill.category,
            priority="high" if skill.score <= 1 else "medium",
            title=f"Improve {skill.category.replace('_', ' ')}",
            description=skill.notes,
            actionable_steps=[
                f"Address: {e[2:]}" for e in skill.evidence if e.startswith("- ")
            ][:MAX_ACTIONABLE_STEPS],
        )
        for skill in weak[:MAX_RECOMMENDATIONS]
    ]


def convert_rubric_to_report(
    output: RubricAssessmentOutput,
    assessment_id: str,
    candidate_name: str | None = None,
    timing: ReportTiming | None = None,
    coworkers_contacted: int | None = None,
    now: datetime | None = None,
) -> AssessmentReport:
    """
    Convert a rubric evaluation into the assessment report.

    Args:
        output: Validated rubric evaluation.
        assessment_id: Assessment the report belongs to.
        candidate_name: Candidate display name.
        timing: Duration metrics in minutes.
        coworkers_contacted: Number of distinct coworkers the candidate talked to.
        now: Generation time (defaults to the current UTC time).

    Returns:
        The assessment report.
    """
    skill_scores = _skill_scores(output)
    timing = timing or ReportTiming()

    return AssessmentReport(
        generated_at=now or utcnow(),
        assessment_id=assessment_id,
        candidate_name=candidate_name,
        overall_score=output.overall_score,
        overall_level=score_to_level(output.overall_score),
        skill_scores=skill_scores,
        narrative=_narrative(output),
        recommendations=_recommendations(skill_scores),
        metrics=ReportMetrics(
            total_duration_minutes=timing.total_duration_minutes,
            working_phase_minutes=timing.working_phase_minutes,
            coworkers_contacted=coworkers_contacted or 0,
            ai_tools_used=True,
            tests_status="unknown",
            code_review_score=None,
        ),
        version=output.evaluation_version,
    )
