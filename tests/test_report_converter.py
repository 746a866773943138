"""
Tests for converting rubric evaluations into assessment reports.
"""

from datetime import datetime

import pytest

from worksim_assessment.analysis.schemas import (
    DetectedRedFlag,
    DimensionScoreOutput,
    HiringSignal,
    RubricAssessmentOutput,
    TimestampedBehavior,
)
from worksim_assessment.reporting import convert_rubric_to_report, score_to_level
from worksim_assessment.reporting.dimension_mapping import category_for_slug
from worksim_assessment.reporting.schemas import AssessmentReport, ReportTiming

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _dim(slug: str, score: int | None, **kwargs) -> DimensionScoreOutput:
    return DimensionScoreOutput(dimension_slug=slug, score=score, **kwargs)


def _output(dimensions: list[DimensionScoreOutput], **kwargs) -> RubricAssessmentOutput:
    return RubricAssessmentOutput(
        overall_score=kwargs.pop("overall_score", 3.0),
        overall_summary=kwargs.pop("overall_summary", "Good work overall."),
        dimension_scores=dimensions,
        **kwargs,
    )


class TestScoreToLevel:
    """Tests for level thresholds."""

    @pytest.mark.parametrize(
        "score,level",
        [
            (4.0, "exceptional"),
            (3.5, "exceptional"),
            (3.49, "strong"),
            (2.5, "strong"),
            (2.49, "adequate"),
            (1.5, "adequate"),
            (1.49, "needs_improvement"),
            (1.0, "needs_improvement"),
        ],
    )
    def test_boundaries(self, score: float, level: str) -> None:
        assert score_to_level(score) == level


class TestCategoryMapping:
    def test_mapped_slug(self) -> None:
        assert category_for_slug("technical_execution") == "code_quality"
        assert category_for_slug("work_process") == "time_management"

    def test_unmapped_slug_is_its_own_category(self) -> None:
        assert category_for_slug("custom_dimension") == "custom_dimension"


class TestConvertRubricToReport:
    """Tests for convert_rubric_to_report."""

    def test_empty_dimensions(self) -> None:
        report = convert_rubric_to_report(_output([]), "a-1", now=NOW)

        assert report.skill_scores == []
        assert report.recommendations == []
        assert report.overall_level == "strong"
        assert report.generated_at == NOW

    def test_null_scores_are_skipped(self) -> None:
        report = convert_rubric_to_report(
            _output([_dim("communication", None), _dim("technical_execution", 3)]),
            "a-1",
            now=NOW,
        )

        assert [s.category for s in report.skill_scores] == ["code_quality"]

    def test_dedup_keeps_best_score(self) -> None:
        # practical_maturity and learning_velocity both map to technical_decision_making
        report = convert_rubric_to_report(
            _output(
                [
                    _dim("practical_maturity", 2, rationale="first"),
                    _dim("communication", 3),
                    _dim("learning_velocity", 4, rationale="second"),
                ]
            ),
            "a-1",
            now=NOW,
        )

        categories = [s.category for s in report.skill_scores]
        assert categories == ["technical_decision_making", "communication"]
        decision = report.skill_scores[0]
        assert decision.score == 4
        assert decision.notes == "second"

    def test_dedup_tie_keeps_first(self) -> None:
        report = convert_rubric_to_report(
            _output(
                [
                    _dim("practical_maturity", 3, rationale="first"),
                    _dim("learning_velocity", 3, rationale="second"),
                ]
            ),
            "a-1",
            now=NOW,
        )

        assert len(report.skill_scores) == 1
        assert report.skill_scores[0].notes == "first"

    def test_evidence_prefixes(self) -> None:
        report = convert_rubric_to_report(
            _output([_dim("communication", 3, green_flags=["Clear"], red_flags=["Terse"])]),
            "a-1",
            now=NOW,
        )

        assert report.skill_scores[0].evidence == ["+ Clear", "- Terse"]

    def test_recommendations_for_weak_categories(self) -> None:
        report = convert_rubric_to_report(
            _output(
                [
                    _dim("communication", 2, rationale="Quiet", red_flags=["Rarely asked"]),
                    _dim("technical_execution", 1, rationale="Broken build"),
                    _dim("work_process", 3),
                    _dim("collaboration_coachability", 2),
                    _dim("problem_decomposition_design", 2),
                ]
            ),
            "a-1",
            now=NOW,
        )

        recs = report.recommendations
        assert len(recs) == 3
        assert recs[0].category == "code_quality"
        assert recs[0].priority == "high"
        assert recs[0].description == "Broken build"
        assert all(r.priority == "medium" for r in recs[1:])
        assert recs[1].category == "communication"
        assert recs[1].title == "Improve communication"
        assert recs[1].actionable_steps == ["Address: Rarely asked"]
        assert recs[2].title == "Improve xfn collaboration"

    def test_actionable_steps_capped(self) -> None:
        report = convert_rubric_to_report(
            _output([_dim("communication", 1, red_flags=["a", "b", "c", "d"])]),
            "a-1",
            now=NOW,
        )

        assert report.recommendations[0].actionable_steps == ["Address: a", "Address: b", "Address: c"]

    def test_narrative(self) -> None:
        output = _output(
            [
                _dim(
                    "communication",
                    3,
                    observable_behaviors=[
                        TimestampedBehavior(timestamp="01:10", behavior="Asked about scope"),
                        TimestampedBehavior(timestamp="05:00", behavior="Second"),
                    ],
                ),
                _dim(
                    "work_process",
                    2,
                    observable_behaviors=[TimestampedBehavior(timestamp="09:00", behavior="Ignored")],
                ),
            ],
            top_strengths=[HiringSignal(dimension="communication", score=3, description="Clear")],
            growth_areas=[HiringSignal(dimension="work_process", score=2, description="Plan more")],
            detected_red_flags=[DetectedRedFlag(slug="no_tests", evidence="Never ran tests")],
        )

        narrative = convert_rubric_to_report(output, "a-1", now=NOW).narrative

        assert narrative.overall_summary == "Good work overall."
        assert narrative.strengths == ["Clear"]
        assert narrative.areas_for_improvement == ["Plan more", "Red flag: Never ran tests"]
        assert narrative.notable_observations == ["[01:10] Asked about scope"]

    def test_notable_observations_capped_at_five(self) -> None:
        dims = [
            _dim(f"custom_{i}", 4, observable_behaviors=[TimestampedBehavior(timestamp=f"00:0{i}", behavior=f"b{i}")])
            for i in range(7)
        ]

        report = convert_rubric_to_report(_output(dims), "a-1", now=NOW)

        assert len(report.narrative.notable_observations) == 5

    def test_metrics_and_metadata(self) -> None:
        report = convert_rubric_to_report(
            _output([], overall_score=1.2, evaluation_version="3.0.0"),
            "a-1",
            candidate_name="Jane",
            timing=ReportTiming(total_duration_minutes=90, working_phase_minutes=90),
            coworkers_contacted=2,
            now=NOW,
        )

        assert report.candidate_name == "Jane"
        assert report.overall_level == "needs_improvement"
        assert report.version == "3.0.0"
        assert report.metrics.total_duration_minutes == 90
        assert report.metrics.working_phase_minutes == 90
        assert report.metrics.coworkers_contacted == 2
        assert report.metrics.ai_tools_used is True
        assert report.metrics.tests_status == "unknown"
        assert report.metrics.code_review_score is None

    def test_deterministic(self) -> None:
        output = _output([_dim("communication", 2, red_flags=["x"]), _dim("technical_execution", 4)])

        first = convert_rubric_to_report(output, "a-1", now=NOW)
        second = convert_rubric_to_report(output, "a-1", now=NOW)

        assert first == second

    def test_document_uses_camel_case(self) -> None:
        report = convert_rubric_to_report(
            _output([_dim("communication", 2)]),
            "a-1",
            timing=ReportTiming(total_duration_minutes=10),
            now=NOW,
        )

        document = report.to_document()

        assert document["assessmentId"] == "a-1"
        assert document["skillScores"][0]["category"] == "communication"
        assert document["metrics"]["totalDurationMinutes"] == 10
        assert AssessmentReport.from_document(document) == report
