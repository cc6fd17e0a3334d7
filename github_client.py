"""GitHub API client for publishing analysis reports."""

import logging
import functools
from dataclasses import dataclass

import requests
import requests.exceptions
from github import Auth, Github
from github.GithubException import GithubException

from config import validate_repo, with_retry
from renderers import Annotation, CheckRunPayload
from workflow_commands import emit_annotation

logger = logging.getLogger(__name__)

# GitHub rejects check-run output fields longer than this
MAX_CHECK_RUN_TEXT = 65535
_TRUNCATED_NOTE = "\n\n... (truncated)"


class PublishError(Exception):
    """A report could not be published to GitHub."""


def _error_message(e: GithubException) -> str:
    data = e.data if isinstance(getattr(e, "data", None), dict) else {}
    return data.get("message", str(e))


# ---------------------------------------------------------------------------
# Cached GitHub client
# ---------------------------------------------------------------------------
@functools.lru_cache(maxsize=4)
def get_github_client(token: str) -> Github:
    """Create or return a cached GitHub client for *token*."""
    if not token:
        raise PublishError(
            "GitHub token not found. Set the github-token input or GITHUB_TOKEN."
        )
    return Github(auth=Auth.Token(token))


# ---------------------------------------------------------------------------
# Read operations
# ---------------------------------------------------------------------------
@with_retry(
    max_retries=3,
    base_delay=1.0,
    retryable=(
        requests.exceptions.ConnectionError,
        requests.exceptions.Timeout,
    ),
)
def fetch_raw_diff(repo: str, pr_number: int, token: str) -> str:
    """
    Fetch the raw unified diff for the entire PR.

    This uses the REST API directly because PyGithub doesn't expose
    the raw diff format.

    Raises:
        ValueError: If PR not found or the token is missing
    """
    repo = validate_repo(repo)

    if not token:
        raise ValueError("GitHub token not found")

    url = f"https://api.github.com/repos/{repo}/pulls/{pr_number}"
    headers = {
        "Authorization": f"token {token}",
        "Accept": "application/vnd.github.v3.diff",
    }

    response = requests.get(url, headers=headers, timeout=30)

    if response.status_code == 404:
        raise ValueError(f"PR #{pr_number} not found in {repo}")
    response.raise_for_status()

    return response.text


# ---------------------------------------------------------------------------
# Write operations
# ---------------------------------------------------------------------------
def post_pr_comment(repo: str, pr_number: int, body: str, token: str) -> int:
    """
    Post a general comment on a PR (not attached to a specific line).

    Returns:
        Comment ID

    Raises:
        PublishError: If posting fails
    """
    repo = validate_repo(repo)
    client = get_github_client(token)

    try:
        repository = client.get_repo(repo)
        pr = repository.get_pull(pr_number)
        comment = pr.create_issue_comment(body)
        logger.info("Posted comment %d on PR #%d", comment.id, pr_number)
        return comment.id

    except GithubException as e:
        raise PublishError(f"Failed to post comment: {_error_message(e)}") from e


def _truncate(text: str, limit: int = MAX_CHECK_RUN_TEXT) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - len(_TRUNCATED_NOTE)] + _TRUNCATED_NOTE


def create_check_run(repo: str, payload: CheckRunPayload, token: str) -> int:
    """
    Create a completed check run on ``payload.head_sha``.

    Returns:
        Check run ID

    Raises:
        PublishError: If the check run cannot be created
    """
    repo = validate_repo(repo)
    client = get_github_client(token)

    try:
        repository = client.get_repo(repo)
        check_run = repository.create_check_run(
            name=payload.name,
            head_sha=payload.head_sha,
            status=payload.status,
            conclusion=payload.conclusion,
            output={
                "title": payload.output.title,
                "summary": _truncate(payload.output.summary),
                "text": _truncate(payload.output.text),
            },
        )
        logger.info(
            "Created check run %d (%s) on %s",
            check_run.id,
            payload.conclusion,
            payload.head_sha[:7],
        )
        return check_run.id

    except GithubException as e:
        raise PublishError(
            f"Failed to create check run: {_error_message(e)}"
        ) from e


# ---------------------------------------------------------------------------
# Publisher used by the pipeline
# ---------------------------------------------------------------------------
@dataclass
class GitHubPublisher:
    """Publishes rendered reports for one repository."""

    repo: str
    token: str

    def publish_comment(self, pr_number: int, body: str) -> int:
        return post_pr_comment(self.repo, pr_number, body, self.token)

    def publish_check_run(self, payload: CheckRunPayload) -> int:
        return create_check_run(self.repo, payload, self.token)

    def publish_annotations(self, annotations: list[Annotation]) -> int:
        """
        Emit each annotation as a workflow command.

        Every annotation is attempted; failures are reported together.

        Returns:
            Number of annotations emitted
        """
        emitted = 0
        failures: list[str] = []
        for annotation in annotations:
            try:
                emit_annotation(annotation)
                emitted += 1
            except OSError as e:
                failures.append(f"{annotation.path}:{annotation.start_line}: {e}")

        if failures:
            raise PublishError(
                f"Failed to emit {len(failures)} annotation(s): " + "; ".join(failures)
            )
        return emitted
