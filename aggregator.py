"""Normalize per-task outcomes into a single aggregated result."""

from enum import Enum

from models import AggregatedResult, Issue, TaskOutcome

SUMMARY_HEADER = "Analyzed {count} workflow tasks\n"


class FailurePolicy(str, Enum):
    """How a task that failed outright contributes to the issue set."""

    SKIP = "skip"  # no issues, no summary line
    CRITICAL = "critical"  # one synthesized critical issue


def failed_task_issue(outcome: TaskOutcome) -> Issue:
    """Critical issue standing in for a task that did not complete."""
    return Issue(
        severity="critical",
        file="unknown",
        message=f"task {outcome.agent_id} failed",
        title="Task failed",
    )


def build_summary(outcomes: list[TaskOutcome]) -> str:
    """
    Build the human-readable run summary.

    The header counts every task attempted; only successful tasks that
    reported a summary add a ``<agent_id>: <summary>`` line.
    """
    summary = SUMMARY_HEADER.format(count=len(outcomes))
    for outcome in outcomes:
        if outcome.succeeded and outcome.result.summary:
            summary += f"\n{outcome.agent_id}: {outcome.result.summary}"
    return summary


def collect_issues(
    outcomes: list[TaskOutcome],
    failure_policy: FailurePolicy = FailurePolicy.SKIP,
) -> list[Issue]:
    """Concatenate issues in task order; never re-sorted."""
    issues: list[Issue] = []
    for outcome in outcomes:
        if outcome.succeeded:
            issues.extend(outcome.result.issues)
        elif failure_policy is FailurePolicy.CRITICAL:
            issues.append(failed_task_issue(outcome))
    return issues


def normalize(
    outcomes: list[TaskOutcome],
    failure_policy: FailurePolicy = FailurePolicy.SKIP,
) -> AggregatedResult:
    """
    Convert ordered task outcomes into an AggregatedResult.

    Args:
        outcomes: Outcomes in the same order as the workflow's task list
        failure_policy: What a failed task contributes

    Returns:
        AggregatedResult with summary, issues and severity counts
    """
    outcomes = list(outcomes)
    return AggregatedResult.from_issues(
        summary=build_summary(outcomes),
        issues=collect_issues(outcomes, failure_policy),
        outcomes=outcomes,
    )
