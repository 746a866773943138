"""
Tests for the GitHub pull request provider.
"""

import json

import httpx
import pytest

from worksim_assessment.errors import PullRequestProviderError
from worksim_assessment.integrations.pr_provider import (
    GitHubPrProvider,
    detect_provider,
    parse_github_pr_url,
)

PR_URL = "https://github.com/acme/app/pull/7"
PULL_PATH = "/repos/acme/app/pulls/7"

PULL_JSON = {
    "title": "Add pagination",
    "body": "Cursor based",
    "state": "open",
    "head": {"ref": "feature/pagination", "sha": "abc123"},
    "base": {"ref": "main"},
    "commits": 3,
    "additions": 120,
    "deletions": 8,
    "changed_files": 4,
    "user": {"login": "jane"},
}


class GitHubStub:
    """Records requests and answers like the GitHub REST API."""

    def __init__(self, check_runs=None, patch_status: int = 200, pull_status: int = 200) -> None:
        self.check_runs = check_runs or []
        self.patch_status = patch_status
        self.pull_status = pull_status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == PULL_PATH and request.method == "PATCH":
            if self.patch_status >= 400:
                return httpx.Response(self.patch_status, json={"message": "Resource not accessible"})
            return httpx.Response(200, json={**PULL_JSON, "state": "closed"})
        if path == PULL_PATH:
            if self.pull_status >= 400:
                return httpx.Response(self.pull_status, json={"message": "Not Found"})
            if request.headers.get("accept") == "application/vnd.github.v3.diff":
                return httpx.Response(200, text="diff --git a/api.py b/api.py")
            return httpx.Response(200, json=PULL_JSON)
        if path == "/repos/acme/app/commits/abc123/check-runs":
            return httpx.Response(200, json={"check_runs": self.check_runs})
        return httpx.Response(404, json={"message": "Not Found"})


def _provider(stub: GitHubStub, token: str = "t") -> GitHubPrProvider:
    return GitHubPrProvider(
        token=token,
        api_url="https://api.github.com",
        timeout=5,
        transport=httpx.MockTransport(stub),
    )


class TestUrlParsing:
    def test_parse_github_pr_url(self) -> None:
        ref = parse_github_pr_url("https://github.com/acme/app/pull/42/files")

        assert (ref.owner, ref.repo, ref.pull_number) == ("acme", "app", 42)

    @pytest.mark.parametrize(
        "url",
        [
            "https://gitlab.com/acme/app/-/merge_requests/3",
            "https://github.com/acme/app/issues/3",
            "not a url",
        ],
    )
    def test_parse_rejects_non_pull_requests(self, url) -> None:
        assert parse_github_pr_url(url) is None

    @pytest.mark.parametrize(
        "url,expected",
        [
            (PR_URL, "github"),
            ("https://gitlab.com/acme/app/-/merge_requests/3", "gitlab"),
            ("https://bitbucket.org/acme/app/pull-requests/3", "bitbucket"),
            ("https://example.com/review/3", "unknown"),
        ],
    )
    def test_detect_provider(self, url, expected) -> None:
        assert detect_provider(url) == expected


class TestCleanup:
    """Tests for cleanup_pr_after_assessment()."""

    @pytest.mark.asyncio
    async def test_closes_github_pull_request(self) -> None:
        stub = GitHubStub()
        provider = _provider(stub)

        result = await provider.cleanup_pr_after_assessment(PR_URL)
        await provider.close()

        assert result.success is True
        assert result.action == "closed"
        assert result.pr_snapshot.title == "Add pagination"
        assert result.pr_snapshot.head_ref == "feature/pagination"
        assert result.pr_snapshot.author == "jane"
        assert result.pr_snapshot.diff.startswith("diff --git")

        patch = next(r for r in stub.requests if r.method == "PATCH")
        assert json.loads(patch.content) == {"state": "closed"}
        assert patch.headers["authorization"] == "Bearer t"

    @pytest.mark.asyncio
    async def test_non_github_is_left_untouched(self) -> None:
        stub = GitHubStub()
        provider = _provider(stub)

        result = await provider.cleanup_pr_after_assessment("https://gitlab.com/acme/app/-/merge_requests/3")

        assert result.success is True
        assert result.action == "none"
        assert result.pr_snapshot.provider == "gitlab"
        assert stub.requests == []

    @pytest.mark.asyncio
    async def test_close_error_is_reported(self) -> None:
        provider = _provider(GitHubStub(patch_status=403))

        result = await provider.cleanup_pr_after_assessment(PR_URL)
        await provider.close()

        assert result.success is False
        assert result.action == "error"
        assert "403" in result.message
        assert "Resource not accessible" in result.message

    @pytest.mark.asyncio
    async def test_missing_token(self) -> None:
        stub = GitHubStub()
        provider = _provider(stub, token="")

        result = await provider.cleanup_pr_after_assessment(PR_URL)

        assert result.action == "error"
        assert stub.requests == []

    @pytest.mark.asyncio
    async def test_fetch_error_recorded_on_snapshot(self) -> None:
        provider = _provider(GitHubStub(pull_status=404))

        snapshot = await provider.fetch_pr_content(PR_URL)
        await provider.close()

        assert snapshot.title is None
        assert "404" in snapshot.fetch_error


class TestCiStatus:
    """Tests for fetch_pr_ci_status()."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "runs,expected",
        [
            ([], "unknown"),
            (
                [
                    {"name": "lint", "status": "completed", "conclusion": "success"},
                    {"name": "test", "status": "completed", "conclusion": "skipped"},
                ],
                "success",
            ),
            (
                [
                    {"name": "lint", "status": "completed", "conclusion": "success"},
                    {"name": "test", "status": "in_progress", "conclusion": None},
                ],
                "pending",
            ),
            (
                [
                    {"name": "lint", "status": "completed", "conclusion": "failure"},
                    {"name": "test", "status": "in_progress", "conclusion": None},
                ],
                "failure",
            ),
        ],
    )
    async def test_overall_status(self, runs, expected) -> None:
        provider = _provider(GitHubStub(check_runs=runs))

        status = await provider.fetch_pr_ci_status(PR_URL)
        await provider.close()

        assert status.overall_status == expected
        assert status.checks_count == len(runs)

    @pytest.mark.asyncio
    async def test_counts(self) -> None:
        runs = [
            {"name": "lint", "status": "completed", "conclusion": "success"},
            {"name": "unit", "status": "completed", "conclusion": "timed_out"},
            {"name": "e2e", "status": "completed", "conclusion": "neutral"},
        ]
        provider = _provider(GitHubStub(check_runs=runs))

        status = await provider.fetch_pr_ci_status(PR_URL)
        await provider.close()

        assert (status.checks_passed, status.checks_failed) == (2, 1)
        assert [c.name for c in status.checks] == ["lint", "unit", "e2e"]

    @pytest.mark.asyncio
    async def test_http_error_raises(self) -> None:
        provider = _provider(GitHubStub(pull_status=502))

        with pytest.raises(PullRequestProviderError) as exc_info:
            await provider.fetch_pr_ci_status(PR_URL)
        await provider.close()

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_non_github_url(self) -> None:
        provider = _provider(GitHubStub())

        status = await provider.fetch_pr_ci_status("https://example.com/review/3")

        assert status.overall_status == "unknown"
        assert status.error is not None
