"""
External integrations: pull request provider, report notifier and profile
photo generation.
"""

from worksim_assessment.integrations.notifier import (
    EmailResult,
    ReportNotifierBase,
    SendGridReportNotifier,
)
from worksim_assessment.integrations.pr_provider import (
    GitHubPrProvider,
    PrCiStatus,
    PrCleanupResult,
    PrSnapshot,
    PullRequestProviderBase,
)
from worksim_assessment.integrations.profile_photo import (
    ProfilePhotoResult,
    ProfilePhotoService,
    ProfilePhotoServiceBase,
)

__all__ = [
    "EmailResult",
    "GitHubPrProvider",
    "PrCiStatus",
    "PrCleanupResult",
    "PrSnapshot",
    "ProfilePhotoResult",
    "ProfilePhotoService",
    "ProfilePhotoServiceBase",
    "PullRequestProviderBase",
    "ReportNotifierBase",
    "SendGridReportNotifier",
]
