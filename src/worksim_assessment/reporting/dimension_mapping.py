"""
Mapping tables between rubric dimensions, assessment dimensions and report
categories.

Rubric dimensions are role-family specific slugs. Each maps onto one of the
shared assessment dimensions, which in turn maps onto a report category.
"""

from enum import Enum


class AssessmentDimension(str, Enum):
    """Role-independent dimensions that report categories are derived from."""

    COMMUNICATION = "COMMUNICATION"
    PROBLEM_SOLVING = "PROBLEM_SOLVING"
    TECHNICAL_KNOWLEDGE = "TECHNICAL_KNOWLEDGE"
    COLLABORATION = "COLLABORATION"
    ADAPTABILITY = "ADAPTABILITY"
    LEADERSHIP = "LEADERSHIP"
    CREATIVITY = "CREATIVITY"
    TIME_MANAGEMENT = "TIME_MANAGEMENT"


RUBRIC_TO_ASSESSMENT_DIMENSION: dict[str, AssessmentDimension] = {
    # Universal
    "communication": AssessmentDimension.COMMUNICATION,
    "practical_maturity": AssessmentDimension.ADAPTABILITY,
    "collaboration_coachability": AssessmentDimension.COLLABORATION,
    # Engineering
    "problem_decomposition_design": AssessmentDimension.PROBLEM_SOLVING,
    "technical_execution": AssessmentDimension.TECHNICAL_KNOWLEDGE,
    "learning_velocity": AssessmentDimension.ADAPTABILITY,
    "work_process": AssessmentDimension.TIME_MANAGEMENT,
    # Product management
    "problem_structuring": AssessmentDimension.PROBLEM_SOLVING,
    "prioritization_tradeoffs": AssessmentDimension.LEADERSHIP,
    "data_reasoning": AssessmentDimension.TECHNICAL_KNOWLEDGE,
    "stakeholder_influence": AssessmentDimension.COMMUNICATION,
    # Data science
    "analytical_reasoning": AssessmentDimension.PROBLEM_SOLVING,
    "technical_proficiency_ds": AssessmentDimension.TECHNICAL_KNOWLEDGE,
    "insight_communication": AssessmentDimension.COMMUNICATION,
    "methodology_rigor": AssessmentDimension.TECHNICAL_KNOWLEDGE,
    # Program management
    "program_structuring": AssessmentDimension.PROBLEM_SOLVING,
    "risk_identification": AssessmentDimension.ADAPTABILITY,
    "cross_team_coordination": AssessmentDimension.COLLABORATION,
    "execution_tracking": AssessmentDimension.TIME_MANAGEMENT,
    # Sales
    "discovery_qualification": AssessmentDimension.PROBLEM_SOLVING,
    "value_articulation": AssessmentDimension.COMMUNICATION,
    "objection_handling": AssessmentDimension.ADAPTABILITY,
    "closing_next_steps": AssessmentDimension.LEADERSHIP,
    # Customer success
    "onboarding_enablement": AssessmentDimension.COMMUNICATION,
    "escalation_handling": AssessmentDimension.ADAPTABILITY,
    "value_realization": AssessmentDimension.TECHNICAL_KNOWLEDGE,
    "relationship_management": AssessmentDimension.COLLABORATION,
}

DIMENSION_TO_CATEGORY: dict[AssessmentDimension, str] = {
    AssessmentDimension.COMMUNICATION: "communication",
    AssessmentDimension.PROBLEM_SOLVING: "problem_decomposition",
    AssessmentDimension.TECHNICAL_KNOWLEDGE: "code_quality",
    AssessmentDimension.COLLABORATION: "xfn_collaboration",
    AssessmentDimension.ADAPTABILITY: "technical_decision_making",
    AssessmentDimension.LEADERSHIP: "presentation",
    AssessmentDimension.CREATIVITY: "ai_leverage",
    AssessmentDimension.TIME_MANAGEMENT: "time_management",
}


def category_for_slug(dimension_slug: str) -> str:
    """
    Resolve the report category of a rubric dimension.

    Args:
        dimension_slug: Rubric dimension slug.

    Returns:
        The report category, or the slug itself when it is not mapped.
    """
    dimension = RUBRIC_TO_ASSESSMENT_DIMENSION.get(dimension_slug)
    if dimension is None:
        return dimension_slug
    return DIMENSION_TO_CATEGORY.get(dimension, dimension_slug)
