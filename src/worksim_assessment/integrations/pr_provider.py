"""
Pull request provider.

Closes candidate pull requests once an assessment is finalized, so the
scenario repository does not leak solutions, and captures a snapshot of the
pull request and its final CI status for later review.
"""

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Literal
from urllib.parse import urlparse

import httpx
from pydantic import Field

from worksim_assessment.config import get_settings
from worksim_assessment.errors import PullRequestProviderError
from worksim_assessment.schemas import CamelModel, utcnow

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"
MAX_DIFF_CHARS = 500_000

_PR_PATH_RE = re.compile(r"^/([^/]+)/([^/]+)/pull/(\d+)")

PrProvider = Literal["github", "gitlab", "bitbucket", "unknown"]
PrCleanupAction = Literal["closed", "none", "error"]
CiOverallStatus = Literal["success", "failure", "pending", "unknown"]


class PullRequestRef(CamelModel):
    """Owner, repository and number parsed from a pull request URL."""

    owner: str
    repo: str
    pull_number: int


class PrSnapshot(CamelModel):
    """Pull request content preserved for historical reference."""

    url: str
    provider: PrProvider = "github"
    fetched_at: datetime = Field(default_factory=utcnow)
    title: str | None = None
    body: str | None = None
    state: str | None = None
    head_ref: str | None = None
    base_ref: str | None = None
    commits: int | None = None
    additions: int | None = None
    deletions: int | None = None
    changed_files: int | None = None
    author: str | None = None
    diff: str | None = None
    fetch_error: str | None = None


class PrCleanupResult(CamelModel):
    """Outcome of closing a pull request."""

    success: bool
    action: PrCleanupAction
    message: str
    pr_snapshot: PrSnapshot | None = None


class CiCheck(CamelModel):
    """A single CI check run on the pull request head commit."""

    name: str
    status: str
    conclusion: str | None = None


class PrCiStatus(CamelModel):
    """Final CI status of a pull request."""

    pr_url: str
    fetched_at: datetime = Field(default_factory=utcnow)
    overall_status: CiOverallStatus = "unknown"
    checks_count: int = 0
    checks_passed: int = 0
    checks_failed: int = 0
    checks: list[CiCheck] = Field(default_factory=list)
    error: str | None = None


def parse_github_pr_url(url: str) -> PullRequestRef | None:
    """
    Parse a GitHub pull request URL.

    Args:
        url: URL like https://github.com/owner/repo/pull/123.

    Returns:
        The parsed reference, or None if the URL is not a GitHub pull request.
    """
    parsed = urlparse(url)
    if "github.com" not in (parsed.hostname or ""):
        return None
    match = _PR_PATH_RE.match(parsed.path)
    if not match:
        return None
    return PullRequestRef(owner=match.group(1), repo=match.group(2), pull_number=int(match.group(3)))


def detect_provider(url: str) -> PrProvider:
    """Guess the hosting provider of a pull request URL."""
    if "github.com" in url:
        return "github"
    if "gitlab" in url:
        return "gitlab"
    if "bitbucket" in url:
        return "bitbucket"
    return "unknown"


class PullRequestProviderBase(ABC):
    """Abstract base class for pull request providers."""

    @abstractmethod
    async def cleanup_pr_after_assessment(self, pr_url: str) -> PrCleanupResult:
        """
        Snapshot and close a pull request.

        Args:
            pr_url: Pull request URL submitted by the candidate.

        Returns:
            The cleanup outcome with the snapshot, when one could be taken.
        """
        ...

    @abstractmethod
    async def fetch_pr_ci_status(self, pr_url: str) -> PrCiStatus:
        """
        Read the CI status of a pull request's head commit.

        Args:
            pr_url: Pull request URL.

        Returns:
            The CI status.

        Raises:
            PullRequestProviderError: If the provider cannot be reached.
        """
        ...

    async def close(self) -> None:
        """Release provider resources."""
        return None


class GitHubPrProvider(PullRequestProviderBase):
    """
    GitHub REST API pull request provider.

    Only GitHub pull requests can be closed; other hosts yield action "none"
    with a snapshot that records why no content was fetched.
    """

    def __init__(
        self,
        token: str | None = None,
        api_url: str | None = None,
        timeout: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the provider.

        Args:
            token: GitHub token (uses config if not provided).
            api_url: REST API base URL (uses config if not provided).
            timeout: Request timeout in seconds (uses config if not provided).
            transport: Optional httpx transport, used by tests.
        """
        settings = get_settings()
        self._token = token if token is not None else settings.github_token
        self._api_url = api_url or settings.github_api_url
        self._timeout = timeout or settings.github_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._api_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Accept": "application/vnd.github+json",
                    "X-GitHub-Api-Version": GITHUB_API_VERSION,
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _pull_path(ref: PullRequestRef) -> str:
        return f"/repos/{ref.owner}/{ref.repo}/pulls/{ref.pull_number}"

    async def fetch_pr_content(self, pr_url: str) -> PrSnapshot:
        """
        Fetch pull request metadata and diff.

        Errors are recorded on the snapshot rather than raised.

        Args:
            pr_url: Pull request URL.

        Returns:
            The snapshot.
        """
        ref = parse_github_pr_url(pr_url)
        if ref is None:
            return PrSnapshot(url=pr_url, provider="unknown", fetch_error="Not a valid GitHub PR URL")
        if not self._token:
            return PrSnapshot(
                url=pr_url,
                fetch_error="GitHub token not configured - cannot fetch PR content",
            )

        client = await self._get_client()
        path = self._pull_path(ref)
        try:
            response = await client.get(path)
            if response.is_error:
                return PrSnapshot(
                    url=pr_url,
                    fetch_error=f"GitHub API error: {response.status_code} {response.reason_phrase}",
                )
            data: dict[str, Any] = response.json()

            diff: str | None = None
            diff_response = await client.get(path, headers={"Accept": "application/vnd.github.v3.diff"})
            if diff_response.is_success:
                diff = diff_response.text
                if len(diff) > MAX_DIFF_CHARS:
                    diff = (
                        diff[:MAX_DIFF_CHARS]
                        + f"\n\n[DIFF TRUNCATED - original was {len(diff_response.text)} bytes]"
                    )
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch PR content for {pr_url}: {e}")
            return PrSnapshot(url=pr_url, fetch_error=str(e) or "Unknown error fetching PR")

        return PrSnapshot(
            url=pr_url,
            title=data.get("title"),
            body=data.get("body"),
            state=data.get("state"),
            head_ref=(data.get("head") or {}).get("ref"),
            base_ref=(data.get("base") or {}).get("ref"),
            commits=data.get("commits"),
            additions=data.get("additions"),
            deletions=data.get("deletions"),
            changed_files=data.get("changed_files"),
            author=(data.get("user") or {}).get("login"),
            diff=diff,
        )

    async def close_pr(self, pr_url: str) -> PrCleanupResult:
        """
        Snapshot and close a GitHub pull request.

        GitHub does not allow deleting pull requests, so closing is the
        strongest cleanup available.

        Args:
            pr_url: Pull request URL.

        Returns:
            The cleanup outcome.
        """
        ref = parse_github_pr_url(pr_url)
        if ref is None:
            return PrCleanupResult(
                success=False,
                action="none",
                message="Not a GitHub PR URL - only GitHub PRs can be closed",
            )
        if not self._token:
            return PrCleanupResult(
                success=False,
                action="error",
                message="GitHub token not configured - cannot close PR",
            )

        snapshot = await self.fetch_pr_content(pr_url)
        client = await self._get_client()
        try:
            response = await client.patch(self._pull_path(ref), json={"state": "closed"})
        except httpx.HTTPError as e:
            return PrCleanupResult(
                success=False,
                action="error",
                message=str(e) or "Unknown error closing PR",
                pr_snapshot=snapshot,
            )

        if response.is_error:
            detail = ""
            try:
                detail = response.json().get("message", "")
            except ValueError:
                pass
            return PrCleanupResult(
                success=False,
                action="error",
                message=(
                    f"GitHub API error: {response.status_code} {response.reason_phrase}"
                    + (f" - {detail}" if detail else "")
                ),
                pr_snapshot=snapshot,
            )

        logger.info(f"Closed PR #{ref.pull_number} in {ref.owner}/{ref.repo}")
        return PrCleanupResult(
            success=True,
            action="closed",
            message=f"Successfully closed PR #{ref.pull_number} in {ref.owner}/{ref.repo}",
            pr_snapshot=snapshot,
        )

    async def cleanup_pr_after_assessment(self, pr_url: str) -> PrCleanupResult:
        """Close GitHub pull requests; other hosts are left untouched."""
        if detect_provider(pr_url) == "github":
            return await self.close_pr(pr_url)

        return PrCleanupResult(
            success=True,
            action="none",
            message="Non-GitHub PR - cleanup not supported, content snapshot not available",
            pr_snapshot=PrSnapshot(
                url=pr_url,
                provider=detect_provider(pr_url),
                fetch_error="Only GitHub PR cleanup is currently supported",
            ),
        )

    async def fetch_pr_ci_status(self, pr_url: str) -> PrCiStatus:
        """
        Summarize the check runs of the pull request head commit.

        Args:
            pr_url: Pull request URL.

        Returns:
            The CI status; "unknown" for non-GitHub URLs.

        Raises:
            PullRequestProviderError: If the GitHub API call fails.
        """
        ref = parse_github_pr_url(pr_url)
        if ref is None:
            return PrCiStatus(pr_url=pr_url, error="Not a valid GitHub PR URL")
        if not self._token:
            return PrCiStatus(pr_url=pr_url, error="GitHub token not configured")

        client = await self._get_client()
        try:
            pr_response = await client.get(self._pull_path(ref))
            pr_response.raise_for_status()
            head_sha = pr_response.json()["head"]["sha"]

            checks_response = await client.get(
                f"/repos/{ref.owner}/{ref.repo}/commits/{head_sha}/check-runs"
            )
            checks_response.raise_for_status()
            runs = checks_response.json().get("check_runs", [])
        except httpx.HTTPStatusError as e:
            raise PullRequestProviderError(
                f"GitHub API error: {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, KeyError, ValueError) as e:
            raise PullRequestProviderError(f"Failed to fetch CI status: {e}") from e

        checks = [
            CiCheck(
                name=run.get("name", ""),
                status=run.get("status", ""),
                conclusion=run.get("conclusion"),
            )
            for run in runs
        ]
        passed = sum(1 for c in checks if c.conclusion in ("success", "neutral", "skipped"))
        failed = sum(
            1
            for c in checks
            if c.conclusion in ("failure", "timed_out", "cancelled", "action_required")
        )

        if not checks:
            overall: CiOverallStatus = "unknown"
        elif failed:
            overall = "failure"
        elif any(c.status != "completed" for c in checks):
            overall = "pending"
        else:
            overall = "success"

        return PrCiStatus(
            pr_url=pr_url,
            overall_status=overall,
            checks_count=len(checks),
            checks_passed=passed,
            checks_failed=failed,
            checks=checks,
        )
