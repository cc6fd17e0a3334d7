"""Shared configuration and utilities for the EquilateralAgents action."""

import functools
import json
import logging
import os
import re
import time
from dataclasses import dataclass
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from aggregator import FailurePolicy
from workflow_commands import get_bool_input, get_input

# ---------------------------------------------------------------------------
# Environment & logging (initialised once on first import)
# ---------------------------------------------------------------------------
load_dotenv()

logging.basicConfig(
    level=(
        logging.DEBUG
        if os.getenv("ACTIONS_STEP_DEBUG", "false").lower() == "true"
        else logging.INFO
    ),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_WORKFLOW = "code-review"
DEFAULT_PROVIDER = "github"

LLMProvider = Literal["github", "openai", "anthropic", "none"]

# Repo format: "owner/repo"
_REPO_PATTERN = re.compile(r"^[\w.-]+/[\w.-]+$")


class ConfigError(ValueError):
    """Invalid or missing action configuration."""


# ---------------------------------------------------------------------------
# Action configuration
# ---------------------------------------------------------------------------
class ActionConfig(BaseModel):
    """Inputs of one action run, threaded explicitly through the pipeline."""

    workflow_type: str = DEFAULT_WORKFLOW
    project_path: str = "."
    llm_provider: LLMProvider = DEFAULT_PROVIDER
    ai_enabled: bool = False
    github_token: str = Field(default="", repr=False)
    create_pr_comment: bool = True
    create_check_run: bool = True
    fail_on_errors: bool = True
    failure_policy: FailurePolicy = FailurePolicy.SKIP
    test_command: str = ""
    max_workers: int = Field(default=1, ge=1)

    @property
    def ai_active(self) -> bool:
        """AI enhancement needs both the toggle and a real provider."""
        return self.ai_enabled and self.llm_provider != "none"


def load_config() -> ActionConfig:
    """
    Build an ActionConfig from the action inputs.

    Raises:
        ConfigError: If an input has an invalid value
    """
    report_failures = get_bool_input("report-task-failures", default=False)
    try:
        return ActionConfig(
            workflow_type=get_input("workflow-type") or DEFAULT_WORKFLOW,
            project_path=get_input("project-path") or ".",
            llm_provider=(get_input("llm-provider") or DEFAULT_PROVIDER).lower(),
            ai_enabled=get_bool_input("ai-enabled", default=False),
            github_token=get_input("github-token") or os.getenv("GITHUB_TOKEN", ""),
            create_pr_comment=get_bool_input("create-pr-comment", default=True),
            create_check_run=get_bool_input("create-check-run", default=True),
            fail_on_errors=get_bool_input("fail-on-errors", default=True),
            failure_policy=(
                FailurePolicy.CRITICAL if report_failures else FailurePolicy.SKIP
            ),
            test_command=get_input("test-command"),
            max_workers=get_input("max-workers") or 1,
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid action inputs: {e}") from e


# ---------------------------------------------------------------------------
# GitHub run context
# ---------------------------------------------------------------------------
@dataclass
class GitHubContext:
    """Where the action is running (repository, commit, pull request)."""

    repo: str = ""
    sha: str = ""
    ref: str = ""
    workflow: str = ""
    job: str = ""
    actor: str = ""
    event_name: str = ""
    pr_number: int | None = None

    @property
    def metadata(self) -> dict:
        return {
            "source": "github-action",
            "repository": self.repo,
            "sha": self.sha,
            "ref": self.ref,
            "workflow": self.workflow,
            "job": self.job,
            "actor": self.actor,
            "eventName": self.event_name,
            "pr": self.pr_number,
        }


def _load_event(event_path: str | None) -> dict:
    if not event_path:
        return {}
    try:
        with open(event_path, encoding="utf-8") as f:
            return json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.warning("Could not read event payload %s: %s", event_path, e)
        return {}


def load_github_context() -> GitHubContext:
    """Read the run context from the runner's GITHUB_* variables."""
    event = _load_event(os.getenv("GITHUB_EVENT_PATH"))
    pull_request = event.get("pull_request") or {}

    return GitHubContext(
        repo=os.getenv("GITHUB_REPOSITORY", ""),
        sha=os.getenv("GITHUB_SHA", ""),
        ref=os.getenv("GITHUB_REF", ""),
        workflow=os.getenv("GITHUB_WORKFLOW", ""),
        job=os.getenv("GITHUB_JOB", ""),
        actor=os.getenv("GITHUB_ACTOR", ""),
        event_name=os.getenv("GITHUB_EVENT_NAME", ""),
        pr_number=pull_request.get("number"),
    )


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------
def validate_repo(repo: str) -> str:
    """Validate repository string matches 'owner/repo' format.

    Returns *repo* unchanged on success; raises ``ValueError`` otherwise.
    """
    if not _REPO_PATTERN.match(repo):
        raise ValueError(
            f"Invalid repo format: {repo!r}. Expected 'owner/repo' "
            f"(e.g. 'octocat/hello-world')."
        )
    return repo


# ---------------------------------------------------------------------------
# Retry decorator
# ---------------------------------------------------------------------------
def with_retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    retryable: tuple[type[Exception], ...] = (Exception,),
):
    """Decorator: retry a function with exponential back-off."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            last_exc: Exception | None = None
            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except retryable as exc:
                    last_exc = exc
                    if attempt < max_retries - 1:
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            "Attempt %d/%d for %s failed: %s. Retrying in %.1fs...",
                            attempt + 1,
                            max_retries,
                            func.__name__,
                            exc,
                            delay,
                        )
                        time.sleep(delay)
            raise last_exc  # type: ignore[misc]

        return wrapper

    return decorator
