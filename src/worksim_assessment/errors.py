"""
Domain exceptions.

Raised by the orchestrators and mapped to HTTP responses by the API layer.
"""


class AssessmentError(Exception):
    """Base class for assessment domain errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AssessmentNotFoundError(AssessmentError):
    """The requested assessment does not exist."""

    status_code = 404

    def __init__(self, assessment_id: str) -> None:
        super().__init__("Assessment not found")
        self.assessment_id = assessment_id


class ReportNotFoundError(AssessmentError):
    """No report has been generated for the assessment yet."""

    status_code = 404

    def __init__(self, assessment_id: str) -> None:
        super().__init__("No report generated yet")
        self.assessment_id = assessment_id


class VideoAssessmentNotFoundError(AssessmentError):
    """The requested video assessment does not exist."""

    status_code = 404

    def __init__(self, video_assessment_id: str) -> None:
        super().__init__("Video assessment not found")
        self.video_assessment_id = video_assessment_id


class AssessmentAccessDeniedError(AssessmentError):
    """The requesting user does not own the assessment."""

    status_code = 403

    def __init__(self, message: str = "Unauthorized to access this assessment") -> None:
        super().__init__(message)


class InvalidAssessmentStateError(AssessmentError):
    """The assessment is not in the status required for the operation."""

    status_code = 400

    def __init__(self, actual_status: str, required_status: str) -> None:
        super().__init__(
            f"Cannot finalize assessment in {actual_status} status. "
            f"Must be in {required_status} status."
        )
        self.actual_status = actual_status
        self.required_status = required_status


class RecordingMissingError(AssessmentError):
    """The assessment has no screen recording to evaluate."""

    status_code = 400

    def __init__(self) -> None:
        super().__init__(
            "No video recording found for this assessment. "
            "Video evaluation cannot proceed without a recording."
        )


class RetryNotAllowedError(AssessmentError):
    """A video assessment cannot be retried in its current state."""

    status_code = 400


class EvaluationInProgressError(AssessmentError):
    """A video evaluation is already running; the caller should retry later."""

    status_code = 202

    def __init__(self, video_assessment_id: str) -> None:
        super().__init__("Video evaluation is still in progress. Please try again later.")
        self.video_assessment_id = video_assessment_id


class VideoEvaluationFailedError(AssessmentError):
    """Video evaluation failed, so no report can be produced."""

    status_code = 500

    def __init__(self, reason: str) -> None:
        super().__init__(f"Video evaluation failed: {reason}")
        self.reason = reason


class AnalysisError(Exception):
    """Exception raised when the analysis capability fails."""

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class PullRequestProviderError(Exception):
    """Exception raised when the pull request provider cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RubricParseError(AnalysisError):
    """The analysis response is not valid rubric output."""

    def __init__(self, message: str) -> None:
        super().__init__(message, retryable=False)


class AuthenticationRequiredError(AssessmentError):
    """The request carries no authenticated user."""

    status_code = 401

    def __init__(self) -> None:
        super().__init__("Unauthorized")


class InvalidRequestError(AssessmentError):
    """A required request parameter is missing."""

    status_code = 400
