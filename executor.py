"""
Task executor - runs a workflow's tasks and returns outcomes in order.

Each task is dispatched to the agent registered under its ``agent_id``.
A failing task never stops the run: it becomes a failed TaskOutcome.
Only a failure to prepare the code under analysis is fatal.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from config import ActionConfig, GitHubContext
from diff_parser import (
    FileDiff,
    collect_project_files,
    files_under,
    filter_files,
    parse_diff,
    project_prefix,
)
from github_client import fetch_raw_diff
from models import TaskDescriptor, TaskOutcome, TaskResult

logger = logging.getLogger(__name__)


class ExecutorError(Exception):
    """The executor cannot run tasks at all."""


@dataclass
class AgentContext:
    """What every agent gets to look at."""

    project_path: str
    files: list[FileDiff] = field(default_factory=list)
    test_command: str = ""
    metadata: dict = field(default_factory=dict)


AgentHandler = Callable[[TaskDescriptor, AgentContext], Any]


# ---------------------------------------------------------------------------
# Context preparation
# ---------------------------------------------------------------------------
def prepare_context(config: ActionConfig, github: GitHubContext) -> AgentContext:
    """
    Collect the code to analyse.

    Uses the pull request diff when the run belongs to a PR and a token is
    available, otherwise every reviewable file under the project path.
    Either way only files inside the project path are analysed.

    Raises:
        ExecutorError: If the code cannot be collected
    """
    try:
        if github.pr_number and github.repo and config.github_token:
            logger.info("📥 Fetching PR #%d from %s...", github.pr_number, github.repo)
            raw_diff = fetch_raw_diff(github.repo, github.pr_number, config.github_token)
            all_files = parse_diff(raw_diff)
            files = files_under(filter_files(all_files), project_prefix(config.project_path))
            logger.info("   Found %d files, %d to analyse", len(all_files), len(files))
        else:
            logger.info("📂 Scanning project files in %s...", config.project_path)
            files = collect_project_files(config.project_path)
            logger.info("   Found %d files to analyse", len(files))
    except Exception as e:
        raise ExecutorError(f"Could not collect code to analyse: {e}") from e

    return AgentContext(
        project_path=config.project_path,
        files=files,
        test_command=config.test_command,
        metadata=github.metadata,
    )


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------
class TaskExecutor:
    """Runs task descriptors against registered agents."""

    def __init__(
        self,
        agents: Mapping[str, AgentHandler],
        load_context: Callable[[], AgentContext],
        max_workers: int = 1,
    ):
        self.agents = dict(agents)
        self.max_workers = max(1, max_workers)
        self._load_context = load_context
        self._context: AgentContext | None = None

    @property
    def context(self) -> AgentContext:
        return self.start()

    def start(self) -> AgentContext:
        """Load the agent context once; no-op workflows never call this."""
        if self._context is None:
            try:
                self._context = self._load_context()
            except ExecutorError:
                raise
            except Exception as e:
                raise ExecutorError(f"Could not prepare agent context: {e}") from e
        return self._context

    def run_task(self, task: TaskDescriptor) -> TaskOutcome:
        """Run one task; any failure is captured in the outcome."""
        handler = self.agents.get(task.agent_id)
        if handler is None:
            logger.warning("   No agent registered for %s", task.agent_id)
            return TaskOutcome.failure(task, f"No agent registered for {task.agent_id}")

        try:
            payload = handler(task, self.context)
            result = (
                payload
                if isinstance(payload, TaskResult)
                else TaskResult.model_validate(payload or {})
            )
        except ValidationError as e:
            logger.warning("   %s returned an invalid result: %s", task.agent_id, e)
            return TaskOutcome.failure(task, f"Invalid result: {e}")
        except Exception as e:
            logger.warning("   %s failed (%s): %s", task.agent_id, task.task_type, e)
            return TaskOutcome.failure(task, str(e) or type(e).__name__)

        logger.info(
            "   %s (%s): %d issue(s)", task.agent_id, task.task_type, len(result.issues)
        )
        return TaskOutcome.success(task, result)

    def execute(self, tasks: list[TaskDescriptor]) -> list[TaskOutcome]:
        """
        Run *tasks* and return outcomes in submission order.

        Raises:
            ExecutorError: If the agent context cannot be prepared
        """
        tasks = list(tasks)
        if not tasks:
            return []

        self.start()

        if self.max_workers == 1 or len(tasks) == 1:
            return [self.run_task(task) for task in tasks]

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            # map() yields results in input order regardless of completion order
            return list(pool.map(self.run_task, tasks))
