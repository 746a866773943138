"""
Rubric prompt builder.

Builds the evaluation prompt sent with a screen recording. The rubric for a
role family (dimensions with four behavioral levels, plus binary red flags)
is rendered into the prompt together with the JSON schema the model must
answer in.
"""

import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

RUBRIC_EVALUATION_PROMPT_VERSION = "3.0.0"


class RubricLevel(BaseModel):
    """One of the four behavioral levels of a dimension."""

    level: int = Field(..., ge=1, le=4)
    label: str
    pattern: str
    evidence: list[str] = Field(default_factory=list)


class RubricDimension(BaseModel):
    """A scored dimension with its level anchors."""

    slug: str
    name: str
    description: str
    is_universal: bool = False
    levels: list[RubricLevel] = Field(default_factory=list)


class RedFlagDefinition(BaseModel):
    """A binary red flag the evaluator should report when observed."""

    slug: str
    name: str
    description: str


class RoleFamilyRubric(BaseModel):
    """Everything needed to build the evaluation prompt for a role family."""

    slug: str
    name: str
    dimensions: list[RubricDimension] = Field(default_factory=list)
    red_flags: list[RedFlagDefinition] = Field(default_factory=list)


class VideoContext(BaseModel):
    """Optional context about the recorded session."""

    video_duration_minutes: int | None = None
    task_description: str | None = None
    expected_outcomes: list[str] = Field(default_factory=list)


_LEVEL_LABELS = {1: "Foundational", 2: "Competent", 3: "Advanced", 4: "Expert"}


def _levels(*patterns: tuple[str, list[str]]) -> list[RubricLevel]:
    return [
        RubricLevel(level=i, label=_LEVEL_LABELS[i], pattern=pattern, evidence=evidence)
        for i, (pattern, evidence) in enumerate(patterns, start=1)
    ]


UNIVERSAL_DIMENSIONS = [
    RubricDimension(
        slug="communication",
        name="Communication",
        description="Clarity, listening, adaptation to audience, ability to explain and defend decisions.",
        is_universal=True,
        levels=_levels(
            (
                "Struggles to convey ideas clearly; communication creates friction.",
                ["Responses are vague or hard to follow", "Does not ask questions when requirements are unclear"],
            ),
            (
                "Communicates clearly enough to move work forward.",
                ["Asks basic clarifying questions when needed", "Can explain their work when asked"],
            ),
            (
                "Communicates with structure and intent, explaining the why as well as the what.",
                ["Shares reasoning while working", "Explains trade-offs and alternatives"],
            ),
            (
                "Communication builds confidence and clarity for everyone involved.",
                ["Raises status and blockers without being asked", "Defends decisions while staying open to feedback"],
            ),
        ),
    ),
    RubricDimension(
        slug="practical_maturity",
        name="Practical Maturity",
        description="Judgment around trade-offs, scope, constraints, and pragmatic decision-making.",
        is_universal=True,
        levels=_levels(
            (
                "Does not account for real-world constraints; effort is misallocated.",
                ["Spends most of the time on low-priority details", "Cannot identify any trade-offs when asked"],
            ),
            (
                "Shows awareness of constraints and delivers a roughly proportional solution.",
                ["Addresses core requirements before extras", "Can name at least one trade-off"],
            ),
            (
                "Actively manages scope and trade-offs throughout the session.",
                ["Cuts scope when time is short", "Uses simple solutions when they are sufficient"],
            ),
            (
                "Every decision reflects awareness of constraints, impact and what matters most.",
                ["Delivers a complete solution within constraints", "Explains the debt they introduced"],
            ),
        ),
    ),
    RubricDimension(
        slug="collaboration_coachability",
        name="Collaboration & Coachability",
        description="How the candidate responds to feedback, asks for help, and interacts with teammates.",
        is_universal=True,
        levels=_levels(
            (
                "Does not engage constructively with others; feedback is ignored or resisted.",
                ["Never reaches out to coworkers", "Dismisses feedback"],
            ),
            (
                "Engages respectfully and incorporates feedback when given.",
                ["Asks for help when stuck", "Applies explicit feedback"],
            ),
            (
                "Treats interactions as collaborative and seeks input actively.",
                ["Asks coworkers targeted questions early", "Discusses feedback rather than just accepting it"],
            ),
            (
                "Makes the people around them more effective.",
                ["Shares context others need", "Turns feedback into visible improvements"],
            ),
        ),
    ),
]

ENGINEERING_RUBRIC = RoleFamilyRubric(
    slug="engineering",
    name="Software Engineering",
    dimensions=[
        *UNIVERSAL_DIMENSIONS,
        RubricDimension(
            slug="problem_decomposition_design",
            name="Problem Decomposition & Design",
            description="How the candidate structures problems, breaks them into parts, and designs solutions.",
            levels=_levels(
                (
                    "Jumps into implementation without understanding or structuring the problem.",
                    ["Starts coding without clarifying questions", "Solution misses major stated requirements"],
                ),
                (
                    "Identifies the core problem and works through it in a roughly logical order.",
                    ["Asks a few clarifying questions during kickoff", "Some visible planning"],
                ),
                (
                    "Deliberately structures the problem before solving it.",
                    ["Breaks the problem into subproblems before coding", "Identifies edge cases without prompting"],
                ),
                (
                    "Structures problems with rigor that accounts for dependencies, risks and future implications.",
                    ["Plans work by dependency and risk", "Explains rejected alternative designs"],
                ),
            ),
        ),
        RubricDimension(
            slug="technical_execution",
            name="Technical Execution",
            description="Quality, correctness, and efficiency of code produced.",
            levels=_levels(
                (
                    "Produces code that does not work or needs significant help to function.",
                    ["Core functionality is broken"],
                ),
                ("Produces working code that solves the core problem.", ["Happy path works"]),
                (
                    "Produces clean, correct code that handles more than the happy path.",
                    ["Handles errors and edge cases", "Adds meaningful tests"],
                ),
                (
                    "Produces code that reads as production quality.",
                    ["Efficient and well-structured", "Deliberate naming and organization"],
                ),
            ),
        ),
        RubricDimension(
            slug="learning_velocity",
            name="Learning Velocity",
            description="Speed of adapting to new information, tools, or feedback during the session.",
            levels=_levels(
                ("Does not adapt when new information is available.", ["Repeats the same mistake"]),
                ("Adapts when given explicit guidance.", ["Changes course after being told"]),
                (
                    "Picks up on signals quickly and generalizes learning across contexts.",
                    ["Applies a hint beyond the case it was given for"],
                ),
                (
                    "Integrates new information almost immediately and improves visibly within the session.",
                    ["Gets productive in an unfamiliar codebase quickly"],
                ),
            ),
        ),
        RubricDimension(
            slug="work_process",
            name="Work Process",
            description="Use of AI tools, time management, testing, and reading requirements.",
            levels=_levels(
                ("No discernible workflow; approach is disorganized.", ["Never runs the code"]),
                (
                    "Follows a recognizable workflow and uses tools with basic diligence.",
                    ["Tests manually before submitting"],
                ),
                (
                    "Works with a clear, deliberate process and uses tools strategically.",
                    ["Reviews AI output before using it"],
                ),
                (
                    "Workflow is efficient, disciplined and self-aware; tools are leveraged, not leaned on.",
                    ["Verifies work continuously", "Manages time against the brief"],
                ),
            ),
        ),
    ],
    red_flags=[
        RedFlagDefinition(
            slug="misrepresentation",
            name="Misrepresentation",
            description="Claims code does something it doesn't, or overstates what they built.",
        ),
        RedFlagDefinition(
            slug="unverified_ai_usage",
            name="Unverified AI Usage",
            description="Copies AI-generated code without reading, understanding, or testing it.",
        ),
        RedFlagDefinition(
            slug="feedback_dismissal",
            name="Feedback Dismissal",
            description="Repeatedly ignores or argues against valid feedback during PR defense.",
        ),
        RedFlagDefinition(
            slug="requirements_ignored",
            name="Requirements Ignored",
            description="Misses clearly stated requirements that were available in the brief.",
        ),
        RedFlagDefinition(
            slug="no_verification",
            name="No Verification",
            description="Submits code without any form of testing or checking.",
        ),
        RedFlagDefinition(
            slug="time_mismanagement",
            name="Time Mismanagement",
            description="Spends more than half of the coding time on setup, tangents, or non-core features.",
        ),
    ],
)

PRODUCT_MANAGEMENT_RUBRIC = RoleFamilyRubric(
    slug="product_management",
    name="Product Management",
    dimensions=[
        *UNIVERSAL_DIMENSIONS,
        RubricDimension(
            slug="problem_structuring",
            name="Problem Structuring",
            description=(
                "How the candidate frames problems, identifies root causes, and structures their "
                "thinking to define what to build and why."
            ),
            levels=_levels(
                (
                    "Jumps to solutions without clearly defining the problem or understanding the user.",
                    [
                        "Proposes features without articulating the underlying user problem",
                        "Cannot distinguish between symptoms and root causes",
                    ],
                ),
                (
                    "Identifies the core problem and attempts to frame it before proposing solutions.",
                    [
                        "Asks clarifying questions about user needs and business context",
                        "Uses some structure to organize thinking",
                    ],
                ),
                (
                    "Systematically frames problems from multiple angles: user, business and technical.",
                    [
                        "Defines the problem clearly before exploring solutions",
                        "Identifies assumptions and calls them out explicitly",
                    ],
                ),
                (
                    "Reframes problems in ways that reveal opportunities others would miss.",
                    [
                        "Challenges the premise of the problem when appropriate",
                        "Distinguishes between what they know, what they assume, and what they need to validate",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="prioritization_tradeoffs",
            name="Prioritization & Trade-offs",
            description=(
                "How the candidate decides what to build, what to cut, and how to sequence work "
                "given limited resources."
            ),
            levels=_levels(
                (
                    "Treats all items as equally important or defaults to personal preference.",
                    [
                        "Presents a list of features without ranking or sequencing",
                        "Cannot articulate why one item should come before another",
                    ],
                ),
                (
                    "Makes basic prioritization decisions using understandable criteria.",
                    [
                        "Ranks items by at least one axis (impact, urgency, effort)",
                        "Identifies must-haves vs. nice-to-haves",
                    ],
                ),
                (
                    "Makes deliberate prioritization decisions using multiple criteria and adapts as context changes.",
                    [
                        "Proactively cuts scope when constraints are tight",
                        "Acknowledges what they are choosing not to do and why",
                    ],
                ),
                (
                    "Prioritization connects what to build now to where the product needs to go.",
                    [
                        "Ties prioritization to measurable outcomes or hypotheses",
                        "Identifies the minimum viable experiment rather than the full solution",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="data_reasoning",
            name="Data Reasoning",
            description=(
                "How the candidate uses data to inform decisions, define success metrics, and "
                "validate assumptions."
            ),
            levels=_levels(
                (
                    "Does not reference data when making decisions; relies on intuition or opinion.",
                    [
                        "Proposes features without mentioning how success would be measured",
                        "Makes claims about user behavior without evidence",
                    ],
                ),
                (
                    "References data at a basic level and can define simple success metrics.",
                    [
                        "Identifies at least one metric for their proposed solution",
                        "Asks about existing data or user research",
                    ],
                ),
                (
                    "Uses data strategically to make decisions and define clear success criteria.",
                    [
                        "Defines success metrics before proposing the solution",
                        "Proposes experiments or tests to validate hypotheses",
                    ],
                ),
                (
                    "Thinks in hypotheses and evidence; data is a decision-making tool, not a reporting tool.",
                    [
                        "Frames decisions as testable hypotheses with clear success and failure criteria",
                        "Anticipates confounding factors or measurement challenges",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="stakeholder_influence",
            name="Stakeholder Influence",
            description=(
                "How the candidate navigates competing interests, builds alignment, and drives "
                "decisions across teams."
            ),
            levels=_levels(
                (
                    "Avoids conflict or defers entirely to others.",
                    [
                        "Does not acknowledge competing stakeholder interests",
                        "Avoids making a recommendation when stakeholders disagree",
                    ],
                ),
                (
                    "Recognizes different stakeholder perspectives and communicates their position clearly.",
                    [
                        "Listens to objections and responds to them",
                        "Makes a clear recommendation rather than presenting options without guidance",
                    ],
                ),
                (
                    "Builds alignment proactively, framing recommendations in terms each stakeholder values.",
                    [
                        "Anticipates objections and addresses them in the proposal",
                        "Proposes compromises that address multiple concerns",
                    ],
                ),
                (
                    "Drives alignment even in ambiguous or contentious situations.",
                    [
                        "Turns disagreements into structured decision-making processes",
                        "Gets buy-in from skeptics by genuinely incorporating their concerns",
                    ],
                ),
            ),
        ),
    ],
    red_flags=[
        RedFlagDefinition(
            slug="solution_before_problem",
            name="Solution Before Problem",
            description="Proposes features or solutions without ever defining or validating the underlying problem.",
        ),
        RedFlagDefinition(
            slug="no_success_criteria",
            name="No Success Criteria",
            description="Cannot define how they would know if their proposal succeeded or failed.",
        ),
        RedFlagDefinition(
            slug="stakeholder_avoidance",
            name="Stakeholder Avoidance",
            description="Avoids addressing competing stakeholder interests or refuses to make a recommendation.",
        ),
        RedFlagDefinition(
            slug="data_absence",
            name="Data Absence",
            description="Makes all decisions on opinion alone; never asks about or references data.",
        ),
        RedFlagDefinition(
            slug="scope_blindness",
            name="Scope Blindness",
            description="Proposes building everything with no prioritization or phasing.",
        ),
    ],
)

DATA_SCIENCE_RUBRIC = RoleFamilyRubric(
    slug="data_science",
    name="Data Science",
    dimensions=[
        *UNIVERSAL_DIMENSIONS,
        RubricDimension(
            slug="analytical_reasoning",
            name="Analytical Reasoning",
            description="How the candidate structures analysis, forms hypotheses, and draws conclusions from data.",
            levels=_levels(
                (
                    "Lacks structure in analysis; draws conclusions without supporting evidence.",
                    [
                        "Starts analysis without forming a hypothesis or plan",
                        "Cannot articulate what question the analysis is trying to answer",
                    ],
                ),
                (
                    "Follows a basic analytical structure and supports conclusions with evidence.",
                    [
                        "Defines the question before diving into data",
                        "Uses basic exploratory analysis (distributions, summaries, visualizations)",
                    ],
                ),
                (
                    "Conducts rigorous analysis with clear methodology and awareness of limitations.",
                    [
                        "Forms explicit hypotheses and tests them systematically",
                        "Considers confounding variables and alternative explanations",
                    ],
                ),
                (
                    "Analysis changes how stakeholders think about the problem while staying accessible.",
                    [
                        "Identifies the right question to ask, not just the obvious one",
                        "Uses sophisticated techniques where appropriate but explains them simply",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="technical_proficiency_ds",
            name="Technical Proficiency",
            description="Competence with analytical tools, statistical methods, and coding for data work.",
            levels=_levels(
                (
                    "Struggles with basic tools and methods needed for the analysis task.",
                    [
                        "Cannot write working queries or code to extract needed data",
                        "Misapplies basic statistical concepts (mean vs. median, significance)",
                    ],
                ),
                (
                    "Uses standard tools and methods correctly for routine analysis.",
                    [
                        "Writes working code or queries to extract and transform data",
                        "Uses basic statistics correctly",
                    ],
                ),
                (
                    "Applies appropriate techniques fluently and chooses the right method for the problem.",
                    [
                        "Selects the right statistical test or model for the question at hand",
                        "Code is clean, efficient, and reproducible",
                    ],
                ),
                (
                    "Technical execution is seamless; the tools serve the analysis.",
                    [
                        "Makes deliberate method choices and can justify them to a technical audience",
                        "Anticipates edge cases in data or methodology",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="insight_communication",
            name="Insight Communication",
            description=(
                "How the candidate translates analytical findings into actionable recommendations "
                "for non-technical audiences."
            ),
            levels=_levels(
                (
                    "Cannot translate findings into language non-technical stakeholders understand.",
                    [
                        "Presents raw numbers or charts without interpretation",
                        "Uses jargon that the audience does not understand",
                    ],
                ),
                (
                    "Presents findings clearly with basic interpretation.",
                    [
                        "States what the data shows in plain language",
                        "Visualizations are accurate and understandable",
                    ],
                ),
                (
                    "Tells a compelling data story; the audience leaves knowing what to do and why.",
                    [
                        "Structures the presentation around decisions, not just data",
                        "Highlights the most important finding first, then supports with detail",
                    ],
                ),
                (
                    "Turns complex analysis into clarity that stakeholders trust and act on.",
                    [
                        "Frames analysis in terms of business impact with quantified estimates",
                        "Creates visualizations that stakeholders reference and share",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="methodology_rigor",
            name="Methodology & Rigor",
            description="How the candidate selects, applies, and validates their analytical approach.",
            levels=_levels(
                (
                    "No visible methodology; analysis is ad hoc and unreproducible.",
                    [
                        "Cannot explain why they chose their analytical approach",
                        "Does not validate results or check for errors",
                    ],
                ),
                (
                    "Follows a reasonable approach and performs basic validation.",
                    [
                        "Can explain the general approach they are taking",
                        "Performs basic sanity checks on results",
                    ],
                ),
                (
                    "Selects methodology deliberately and validates results rigorously.",
                    [
                        "Explains why their approach is appropriate for the question",
                        "Performs cross-validation or robustness checks",
                    ],
                ),
                (
                    "Knows when to be rigorous and when to be pragmatic.",
                    [
                        "Designs the analysis to answer the most important question, not the easiest one",
                        "Anticipates and addresses critique before presenting",
                    ],
                ),
            ),
        ),
    ],
    red_flags=[
        RedFlagDefinition(
            slug="unsupported_conclusions",
            name="Unsupported Conclusions",
            description="Draws strong conclusions that are not supported by the data or analysis presented.",
        ),
        RedFlagDefinition(
            slug="methodology_absence",
            name="Methodology Absence",
            description="Cannot explain or justify the analytical approach used.",
        ),
        RedFlagDefinition(
            slug="data_quality_blindness",
            name="Data Quality Blindness",
            description="Ignores obvious data quality issues, missing data, or biases in the dataset.",
        ),
        RedFlagDefinition(
            slug="no_actionable_insight",
            name="No Actionable Insight",
            description="Presents data without any interpretation or recommendation for what to do next.",
        ),
        RedFlagDefinition(
            slug="overclaiming",
            name="Overclaiming",
            description="Claims causation from correlation or overstates confidence in findings.",
        ),
    ],
)

PROGRAM_MANAGEMENT_RUBRIC = RoleFamilyRubric(
    slug="program_management",
    name="Program Management",
    dimensions=[
        *UNIVERSAL_DIMENSIONS,
        RubricDimension(
            slug="program_structuring",
            name="Program Structuring",
            description=(
                "How the candidate organizes work streams, defines milestones, and creates clarity "
                "for complex, multi-team efforts."
            ),
            levels=_levels(
                (
                    "Cannot organize a multi-step effort; lacks structure or sequencing.",
                    [
                        "Presents work items as a flat list without dependencies or milestones",
                        "Cannot identify the critical path or key decision points",
                    ],
                ),
                (
                    "Creates a basic plan with milestones and identifies major dependencies.",
                    [
                        "Breaks the program into phases or milestones",
                        "Identifies key dependencies between teams or work streams",
                    ],
                ),
                (
                    "Structures programs with clear ownership, dependencies and decision points.",
                    [
                        "Defines clear ownership for each work stream",
                        "Maps dependencies explicitly and identifies where coordination is needed",
                    ],
                ),
                (
                    "Structures programs that let teams operate autonomously while staying aligned.",
                    [
                        "Designs program structure that adapts as scope or context changes",
                        "Anticipates coordination challenges before they arise",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="risk_identification",
            name="Risk Identification & Mitigation",
            description="How the candidate identifies, assesses, and plans for risks across a program.",
            levels=_levels(
                (
                    "Does not identify risks or assumes everything will go as planned.",
                    [
                        "Presents a plan without mentioning any risks or contingencies",
                        "When asked about risks, cannot name any",
                    ],
                ),
                (
                    "Identifies obvious risks and has a basic plan for the most critical ones.",
                    [
                        "Names a few risks without being prompted",
                        "Can describe what they would do if a key risk materializes",
                    ],
                ),
                (
                    "Systematically identifies risks across technical, people, process and external areas.",
                    [
                        "Assesses both likelihood and impact of risks",
                        "Has specific mitigation plans for high-priority risks",
                    ],
                ),
                (
                    "Risk management is embedded in how they run programs.",
                    [
                        "Designs program structure to minimize the blast radius of individual failures",
                        "Creates decision frameworks for responding to common risk types",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="cross_team_coordination",
            name="Cross-Team Coordination",
            description=(
                "How the candidate drives alignment and resolves conflicts across multiple teams "
                "with different priorities."
            ),
            levels=_levels(
                (
                    "Treats the program as a single-team effort.",
                    [
                        "Does not acknowledge that different teams have different priorities",
                        "Cannot articulate what other teams need from the program",
                    ],
                ),
                (
                    "Recognizes cross-team dependencies and sets up basic coordination.",
                    [
                        "Identifies which teams are involved and their primary contribution",
                        "Proposes regular check-ins or status updates",
                    ],
                ),
                (
                    "Creates mechanisms that keep teams coordinated without constant intervention.",
                    [
                        "Designs coordination mechanisms appropriate to the complexity",
                        "Surfaces misalignment before it causes problems",
                    ],
                ),
                (
                    "Teams stay aligned because of the systems and relationships they have built.",
                    [
                        "Creates shared context so teams can self-coordinate on routine decisions",
                        "Resolves cross-team conflicts in a way that both sides feel heard",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="execution_tracking",
            name="Execution Tracking & Accountability",
            description=(
                "How the candidate monitors progress, identifies blockers, and drives accountability "
                "without micromanaging."
            ),
            levels=_levels(
                (
                    "Does not track progress or identify blockers.",
                    [
                        "No system for tracking whether work is on schedule",
                        "Cannot report current status of key work streams",
                    ],
                ),
                (
                    "Tracks basic progress and identifies major blockers.",
                    [
                        "Maintains a status view of key milestones",
                        "Identifies when work is off track",
                    ],
                ),
                (
                    "Drives accountability through clear expectations and proactive tracking.",
                    [
                        "Creates tracking that surfaces problems early",
                        "Follows up on commitments without being asked",
                    ],
                ),
                (
                    "Teams hold themselves accountable because expectations and visibility are clear.",
                    [
                        "Creates transparency that motivates teams without creating surveillance",
                        "Identifies patterns across blockers and addresses systemic issues",
                    ],
                ),
            ),
        ),
    ],
    red_flags=[
        RedFlagDefinition(
            slug="no_structure",
            name="No Structure",
            description="Cannot organize multi-team work into a coherent plan with milestones and dependencies.",
        ),
        RedFlagDefinition(
            slug="conflict_avoidance",
            name="Conflict Avoidance",
            description="Avoids addressing cross-team conflicts or disagreements, allowing them to fester.",
        ),
        RedFlagDefinition(
            slug="status_blindness",
            name="Status Blindness",
            description="Cannot accurately report on program health; surprised by delays or blockers.",
        ),
        RedFlagDefinition(
            slug="over_process",
            name="Over-Processing",
            description="Creates excessive process and governance that slows teams down without adding value.",
        ),
        RedFlagDefinition(
            slug="accountability_gap",
            name="Accountability Gap",
            description="Does not follow up on commitments or drive resolution of blockers.",
        ),
    ],
)

SALES_RUBRIC = RoleFamilyRubric(
    slug="sales",
    name="Sales",
    dimensions=[
        *UNIVERSAL_DIMENSIONS,
        RubricDimension(
            slug="discovery_qualification",
            name="Discovery & Qualification",
            description=(
                "How the candidate uncovers customer needs, pain points, and buying context through "
                "questions and active listening."
            ),
            levels=_levels(
                (
                    "Does not uncover customer needs; pitches without understanding the buyer.",
                    [
                        "Starts pitching features before understanding the customer's situation",
                        "Asks no questions or only surface-level questions",
                    ],
                ),
                (
                    "Asks enough questions to identify the core need and basic qualifying information.",
                    [
                        "Asks about the customer's current situation and challenges",
                        "Identifies the primary pain point or need",
                    ],
                ),
                (
                    "Discovery reveals need, urgency, decision process and competitive landscape.",
                    [
                        "Uncovers both stated and unstated needs through layered questioning",
                        "Maps the decision-making process (who, how, timeline)",
                    ],
                ),
                (
                    "Discovery gives the customer new insight into their own problem.",
                    [
                        "Asks questions that reframe how the customer thinks about their problem",
                        "Uncovers needs the customer had not articulated",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="value_articulation",
            name="Value Articulation",
            description="How the candidate connects product capabilities to customer-specific value and outcomes.",
            levels=_levels(
                (
                    "Presents features without connecting them to the customer's needs.",
                    [
                        "Lists product features generically",
                        "Cannot explain why the customer should care about a specific capability",
                    ],
                ),
                (
                    "Connects product capabilities to the customer's stated needs.",
                    [
                        "References the customer's pain points when presenting the product",
                        "Explains benefits in terms the customer cares about",
                    ],
                ),
                (
                    "Articulates value in terms of measurable outcomes specific to this customer.",
                    [
                        "Quantifies the value proposition (ROI, time saved, cost reduced)",
                        "Tailors the presentation to the specific stakeholder's priorities",
                    ],
                ),
                (
                    "Builds a business case the customer can use internally to champion the purchase.",
                    [
                        "Creates a narrative that resonates with the whole buying committee",
                        "Gives the customer the language and data they need to sell internally",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="objection_handling",
            name="Objection Handling",
            description="How the candidate addresses concerns, pushback, and skepticism from prospects.",
            levels=_levels(
                (
                    "Becomes defensive or ignores concerns.",
                    [
                        "Dismisses or ignores customer objections",
                        "Becomes visibly flustered or defensive when challenged",
                    ],
                ),
                (
                    "Acknowledges objections and provides a reasonable response.",
                    [
                        "Listens to the objection without becoming defensive",
                        "Acknowledges the concern before responding",
                    ],
                ),
                (
                    "Turns objections into opportunities to deepen understanding and build trust.",
                    [
                        "Digs behind the objection to understand the real concern",
                        "Adjusts approach or evidence in response to objections",
                    ],
                ),
                (
                    "Anticipates objections and addresses them before they arise.",
                    [
                        "Raises and addresses common concerns proactively",
                        "Turns competitive objections into differentiation opportunities",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="closing_next_steps",
            name="Closing & Next Steps",
            description="How the candidate advances deals forward, creates urgency, and secures commitments.",
            levels=_levels(
                (
                    "Conversation ends without clear next steps.",
                    [
                        "Ends conversations without proposing a next step",
                        "Does not ask for commitment or advance the deal",
                    ],
                ),
                (
                    "Ends conversations with a clear next step and basic timeline.",
                    [
                        "Proposes a specific next step at the end of the conversation",
                        "Gets agreement on timing for the next interaction",
                    ],
                ),
                (
                    "Advances the deal through clear milestones and mutual commitments.",
                    [
                        "Maps the buying process and aligns next steps to it",
                        "Secures commitments from the customer, not just from themselves",
                    ],
                ),
                (
                    "Every interaction moves the decision forward with intent.",
                    [
                        "Builds a mutual close plan that both parties own",
                        "Identifies and addresses potential deal-killers early",
                    ],
                ),
            ),
        ),
    ],
    red_flags=[
        RedFlagDefinition(
            slug="pitch_without_discovery",
            name="Pitch Without Discovery",
            description="Starts pitching product features before understanding the customer's situation or needs.",
        ),
        RedFlagDefinition(
            slug="objection_dismissal",
            name="Objection Dismissal",
            description="Dismisses or ignores valid customer concerns rather than addressing them.",
        ),
        RedFlagDefinition(
            slug="no_next_steps",
            name="No Next Steps",
            description="Ends conversations without proposing or securing a clear next step.",
        ),
        RedFlagDefinition(
            slug="dishonesty",
            name="Dishonesty",
            description="Makes claims about the product that are inaccurate or misleading.",
        ),
        RedFlagDefinition(
            slug="customer_disregard",
            name="Customer Disregard",
            description="Shows no interest in the customer's actual needs; treats the interaction as purely transactional.",
        ),
    ],
)

CUSTOMER_SUCCESS_RUBRIC = RoleFamilyRubric(
    slug="customer_success",
    name="Customer Success",
    dimensions=[
        *UNIVERSAL_DIMENSIONS,
        RubricDimension(
            slug="onboarding_enablement",
            name="Onboarding & Enablement",
            description=(
                "How the candidate guides customers from purchase to productive use, setting them "
                "up for long-term success."
            ),
            levels=_levels(
                (
                    "Cannot guide a customer through setup or initial adoption.",
                    [
                        "No plan for how to get the customer to first value",
                        "Cannot explain key workflows in terms the customer understands",
                    ],
                ),
                (
                    "Follows a basic onboarding plan and gets the customer to initial activation.",
                    [
                        "Has a structured approach to onboarding",
                        "Explains key features and workflows clearly",
                    ],
                ),
                (
                    "Customizes onboarding to the customer's goals and drives adoption beyond basic usage.",
                    [
                        "Tailors onboarding to the customer's use case and success criteria",
                        "Sets clear expectations and milestones with the customer",
                    ],
                ),
                (
                    "Onboarding lays the foundation for a long-term partnership.",
                    [
                        "Accounts for the customer's organizational dynamics",
                        "Builds internal champions within the customer's organization",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="escalation_handling",
            name="Escalation Handling",
            description=(
                "How the candidate manages customer frustration, resolves issues, and maintains "
                "trust during problems."
            ),
            levels=_levels(
                (
                    "Escalations get worse rather than better.",
                    [
                        "Becomes defensive or dismissive when the customer is frustrated",
                        "Makes promises they cannot keep to calm the customer down",
                    ],
                ),
                (
                    "Handles escalations professionally and gets to resolution.",
                    [
                        "Acknowledges the customer's frustration empathetically",
                        "Takes ownership and communicates what they will do",
                    ],
                ),
                (
                    "Turns escalations into trust-building moments.",
                    [
                        "De-escalates quickly by validating the customer's experience",
                        "Identifies the root cause, not just the symptom",
                    ],
                ),
                (
                    "The customer trusts them more because of how problems are handled.",
                    [
                        "Anticipates potential escalations and addresses them early",
                        "Handles high-stakes escalations with composure",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="value_realization",
            name="Value Realization & Retention",
            description=(
                "How the candidate ensures customers achieve their desired outcomes and drives "
                "renewals and expansion."
            ),
            levels=_levels(
                (
                    "Does not track whether the customer is getting value.",
                    [
                        "Cannot articulate what success looks like for the customer",
                        "Does not monitor usage or health indicators",
                    ],
                ),
                (
                    "Monitors basic health indicators and engages customers to drive renewal.",
                    [
                        "Tracks product usage and identifies accounts at risk",
                        "Conducts regular check-ins or business reviews",
                    ],
                ),
                (
                    "Drives value realization so customers see measurable outcomes and expand.",
                    [
                        "Defines success metrics with the customer and tracks them together",
                        "Identifies expansion opportunities based on customer goals",
                    ],
                ),
                (
                    "Customers achieve outcomes beyond their original expectations.",
                    [
                        "Connects product value to the customer's strategic goals",
                        "Co-creates a success plan with the customer",
                    ],
                ),
            ),
        ),
        RubricDimension(
            slug="relationship_management",
            name="Relationship Management",
            description=(
                "How the candidate builds and maintains trust with key stakeholders across the "
                "customer's organization."
            ),
            levels=_levels(
                (
                    "Interactions are purely transactional.",
                    [
                        "Only contacts the customer when there is a problem or renewal approaching",
                        "Does not know key stakeholders beyond the primary contact",
                    ],
                ),
                (
                    "Maintains professional relationships with primary contacts.",
                    [
                        "Has regular touchpoints with key contacts",
                        "Remembers context from previous conversations",
                    ],
                ),
                (
                    "Builds multi-threaded relationships across the customer's organization.",
                    [
                        "Has relationships beyond the primary contact",
                        "Adapts communication style to different stakeholder types",
                    ],
                ),
                (
                    "The customer proactively involves them in strategic decisions.",
                    [
                        "Is invited to internal planning or strategy discussions",
                        "Has executive-level relationships that unlock strategic opportunities",
                    ],
                ),
            ),
        ),
    ],
    red_flags=[
        RedFlagDefinition(
            slug="customer_blame",
            name="Customer Blame",
            description="Blames the customer for issues rather than taking ownership of resolution.",
        ),
        RedFlagDefinition(
            slug="reactive_only",
            name="Reactive Only",
            description="Only engages with the customer when problems arise or renewal is due.",
        ),
        RedFlagDefinition(
            slug="false_promises",
            name="False Promises",
            description="Makes commitments about product capabilities or timelines that cannot be kept.",
        ),
        RedFlagDefinition(
            slug="churn_blindness",
            name="Churn Blindness",
            description="Does not recognize warning signs of customer dissatisfaction or disengagement.",
        ),
        RedFlagDefinition(
            slug="single_threaded",
            name="Single-Threaded",
            description="Only maintains a relationship with one contact at the customer, creating key-person risk.",
        ),
    ],
)

ROLE_FAMILY_RUBRICS: dict[str, RoleFamilyRubric] = {
    rubric.slug: rubric
    for rubric in (
        ENGINEERING_RUBRIC,
        PRODUCT_MANAGEMENT_RUBRIC,
        DATA_SCIENCE_RUBRIC,
        PROGRAM_MANAGEMENT_RUBRIC,
        SALES_RUBRIC,
        CUSTOMER_SUCCESS_RUBRIC,
    )
}


def load_rubric(role_family_slug: str | None) -> RoleFamilyRubric:
    """
    Get the rubric for a role family.

    Args:
        role_family_slug: Role family slug, e.g. "engineering".

    Returns:
        The registered rubric, or the engineering rubric for unknown slugs.
    """
    rubric = ROLE_FAMILY_RUBRICS.get(role_family_slug or "")
    if rubric is None:
        logger.warning(f"No rubric registered for role family {role_family_slug!r}, using engineering")
        return ENGINEERING_RUBRIC
    return rubric


def _dimension_section(dim: RubricDimension, index: int) -> str:
    levels = []
    for lvl in sorted(dim.levels, key=lambda level: level.level):
        bullets = "\n".join(f"  - {e}" for e in lvl.evidence)
        levels.append(
            f"**Level {lvl.level}: {lvl.label}**\n\n"
            f"*Pattern: {lvl.pattern}*\n\n"
            f"Evidence may include:\n{bullets}"
        )
    header = f"### {index + 1}. {dim.slug.upper()}: {dim.name}\n{dim.description}\n"
    return header + "\n" + "\n\n".join(levels)


def _red_flags_section(red_flags: list[RedFlagDefinition]) -> str:
    if not red_flags:
        return ""
    flags = "\n".join(f"- **{f.name}** (`{f.slug}`): {f.description}" for f in red_flags)
    return (
        "## RED FLAGS\n\n"
        "These are binary indicators. Report any that are observed, "
        "regardless of dimension scores.\n\n"
        f"{flags}"
    )


def _video_context_section(context: VideoContext | None) -> str:
    if context is None:
        return ""
    lines = []
    if context.video_duration_minutes:
        lines.append(f"- Video Duration: {context.video_duration_minutes} minutes")
    if context.task_description:
        lines.append(f"- Task Description: {context.task_description}")
    if context.expected_outcomes:
        outcomes = "\n".join(f"  - {o}" for o in context.expected_outcomes)
        lines.append(f"- Expected Outcomes:\n{outcomes}")
    if not lines:
        return ""
    return "## VIDEO CONTEXT\n\n" + "\n".join(lines)


def _output_schema(rubric: RoleFamilyRubric) -> str:
    dims = ",\n".join(
        f'''    "{d.slug}": {{
      "score": <integer 1-4 or null if insufficient evidence>,
      "summary": "<one sentence>",
      "confidence": "high" | "medium" | "low",
      "rationale": "<why this score was given, with specific evidence>",
      "observable_behaviors": [{{"timestamp": "MM:SS", "behavior": "<observed behavior>"}}],
      "trainable_gap": <boolean>,
      "green_flags": ["<positive signal>"],
      "red_flags": ["<concern>"]
    }}'''
        for d in rubric.dimensions
    )
    red_flags = (
        '  "detected_red_flags": [{"slug": "<red flag slug>", "evidence": "<evidence>", "timestamps": ["MM:SS"]}],'
        if rubric.red_flags
        else '  "detected_red_flags": [],'
    )
    return f"""```json
{{
  "evaluation_version": "{RUBRIC_EVALUATION_PROMPT_VERSION}",
  "overall_score": <number 1.0-4.0, average of non-null dimension scores>,
  "dimension_scores": {{
{dims}
  }},
{red_flags}
  "top_strengths": [{{"dimension": "<name>", "score": <1-4>, "description": "<1-2 sentences>"}}],
  "growth_areas": [{{"dimension": "<name>", "score": <1-4>, "description": "<1-2 sentences>"}}],
  "overall_summary": "<5-8 sentence narrative of the candidate's performance>",
  "evaluation_confidence": "high" | "medium" | "low",
  "insufficient_evidence_notes": "<explanation or null>"
}}
```"""


def build_rubric_evaluation_prompt(
    rubric: RoleFamilyRubric,
    video_context: VideoContext | None = None,
) -> str:
    """
    Build the evaluation prompt for a recorded work session.

    Args:
        rubric: Rubric of the candidate's role family.
        video_context: Optional information about the session.

    Returns:
        Complete prompt text.
    """
    dimension_sections = "\n\n---\n\n".join(
        _dimension_section(d, i) for i, d in enumerate(rubric.dimensions)
    )
    sections = [
        f"You are an objective, evidence-based evaluator assessing a candidate's recorded "
        f"work session for a **{rubric.name}** role. Your evaluation must be fair, "
        f"consistent, and grounded only in observable behavior.",
        "## RULES\n\n"
        "- Cite a timestamp (MM:SS) for every behavior you score, as a {timestamp, behavior} object.\n"
        "- Only evaluate behavior directly visible in the recording.\n"
        "- If a dimension cannot be evaluated, score it null and set confidence to \"low\".\n"
        "- Score each dimension independently on the 1-4 scale, by pattern rather than checklist.\n"
        "- Make no assumptions about seniority, background or demographics.",
        f"## {len(rubric.dimensions)}-DIMENSION RUBRIC ({rubric.name})\n\n{dimension_sections}",
        _red_flags_section(rubric.red_flags),
        _video_context_section(video_context),
        "## OUTPUT\n\nRespond with ONLY a valid JSON object matching this schema:\n\n"
        + _output_schema(rubric),
    ]
    return "\n\n---\n\n".join(section for section in sections if section)
