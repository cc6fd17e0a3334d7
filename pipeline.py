"""
EquilateralAgents Run Coordinator - LangGraph-based workflow run

This module drives one action run as a state machine using LangGraph:
resolve the workflow, execute its tasks, aggregate the outcomes, render
the three reports, publish them, and decide whether the run failed.
"""

import logging
from dataclasses import dataclass, field, fields
from typing import Protocol

from langgraph.graph import END, START, StateGraph

from aggregator import normalize
from config import ActionConfig, GitHubContext
from models import AggregatedResult, TaskDescriptor, TaskOutcome
from renderers import (
    Annotation,
    CheckRunPayload,
    render_annotations,
    render_check_run,
    render_comment,
)
from workflows import resolve

logger = logging.getLogger(__name__)


class Executor(Protocol):
    def execute(self, tasks: list[TaskDescriptor]) -> list[TaskOutcome]: ...


class Publisher(Protocol):
    def publish_comment(self, pr_number: int, body: str) -> int: ...

    def publish_check_run(self, payload: CheckRunPayload) -> int: ...

    def publish_annotations(self, annotations: list[Annotation]) -> int: ...


# =============================================================================
# STATE DEFINITION
# =============================================================================
@dataclass
class RunState:
    """
    State that flows through the run graph.

    Each node reads what it needs and returns updates to specific fields.
    """

    # Input (required)
    workflow_type: str

    # Intermediate data (populated by nodes)
    tasks: list[TaskDescriptor] = field(default_factory=list)
    outcomes: list[TaskOutcome] = field(default_factory=list)
    result: AggregatedResult | None = None

    # Rendered reports
    annotations: list[Annotation] = field(default_factory=list)
    comment_body: str | None = None
    check_run: CheckRunPayload | None = None

    # Publishing
    comment_id: int | None = None
    check_run_id: int | None = None
    annotations_published: int = 0
    publish_errors: list[str] = field(default_factory=list)

    # Output
    error: str | None = None  # fatal orchestration error
    failed: bool = False  # whether the caller should signal failure
    failure_message: str | None = None


def _get(state, key: str):
    # LangGraph may pass state as dict or dataclass
    return state.get(key) if isinstance(state, dict) else getattr(state, key)


# =============================================================================
# GRAPH CONSTRUCTION
# =============================================================================
def build_run_graph(
    config: ActionConfig,
    github: GitHubContext,
    executor: Executor,
    publisher: Publisher,
) -> StateGraph:
    """Build the run graph; nodes close over the run's collaborators."""

    def resolve_workflow(state: RunState) -> dict:
        """Reads: workflow_type. Updates: tasks."""
        definition = resolve(state.workflow_type)
        tasks = list(definition.tasks)
        if tasks:
            logger.info(
                "📋 Workflow %s: %s",
                state.workflow_type,
                ", ".join(f"{t.agent_id}/{t.task_type}" for t in tasks),
            )
        else:
            logger.warning("📋 Workflow %s has no tasks - nothing to run", state.workflow_type)
        return {"tasks": tasks}

    def execute_tasks(state: RunState) -> dict:
        """Reads: tasks. Updates: outcomes, error."""
        if not state.tasks:
            return {"outcomes": []}

        logger.info("⚙️  Executing %d task(s)...", len(state.tasks))
        try:
            outcomes = executor.execute(state.tasks)
        except Exception as e:
            logger.error("Task execution failed: %s", e)
            return {"error": str(e) or type(e).__name__}

        if len(outcomes) != len(state.tasks):
            return {
                "error": (
                    f"Executor returned {len(outcomes)} outcome(s) "
                    f"for {len(state.tasks)} task(s)"
                )
            }

        failed = [o.agent_id for o in outcomes if not o.succeeded]
        if failed:
            logger.warning("   %d task(s) failed: %s", len(failed), ", ".join(failed))
        return {"outcomes": outcomes}

    def aggregate(state: RunState) -> dict:
        """Reads: outcomes. Updates: result, error."""
        logger.info("🔀 Aggregating results...")
        try:
            result = normalize(state.outcomes, config.failure_policy)
        except Exception as e:
            logger.error("Aggregation failed: %s", e)
            return {"error": str(e) or type(e).__name__}

        logger.info(
            "   %d issue(s): %d critical, %d warning, %d info",
            len(result.issues),
            result.critical_count,
            result.warning_count,
            result.info_count,
        )
        return {"result": result}

    def render_reports(state: RunState) -> dict:
        """Reads: result. Updates: annotations, comment_body, check_run, error."""
        try:
            return {
                "annotations": render_annotations(state.result),
                "comment_body": render_comment(state.result, config.ai_active),
                "check_run": render_check_run(state.result, github.sha),
            }
        except Exception as e:
            logger.error("Rendering failed: %s", e)
            return {"error": str(e) or type(e).__name__}

    def publish_reports(state: RunState) -> dict:
        """
        Reads: annotations, comment_body, check_run.
        Updates: comment_id, check_run_id, annotations_published, publish_errors.

        Every enabled channel is attempted even if another one fails.
        """
        logger.info("📝 Publishing reports...")
        updates: dict = {}
        errors: list[str] = []

        try:
            updates["annotations_published"] = publisher.publish_annotations(
                state.annotations
            )
        except Exception as e:
            logger.error("   ❌ Failed to publish annotations: %s", e)
            errors.append(f"annotations: {e}")

        if config.create_pr_comment and github.pr_number:
            try:
                updates["comment_id"] = publisher.publish_comment(
                    github.pr_number, state.comment_body
                )
                logger.info("   ✅ Posted PR comment #%d", updates["comment_id"])
            except Exception as e:
                logger.error("   ❌ Failed to post PR comment: %s", e)
                errors.append(f"comment: {e}")
        elif config.create_pr_comment:
            logger.info("   Not a pull request - skipping PR comment")

        if config.create_check_run:
            try:
                updates["check_run_id"] = publisher.publish_check_run(state.check_run)
                logger.info("   ✅ Created check run #%d", updates["check_run_id"])
            except Exception as e:
                logger.error("   ❌ Failed to create check run: %s", e)
                errors.append(f"check run: {e}")

        updates["publish_errors"] = errors
        return updates

    def decide_outcome(state: RunState) -> dict:
        """Reads: error, result. Updates: failed, failure_message."""
        if state.error:
            return {"failed": True, "failure_message": f"Action failed: {state.error}"}

        critical = state.result.critical_count if state.result else 0
        if config.fail_on_errors and critical > 0:
            return {"failed": True, "failure_message": f"Found {critical} critical issues"}

        return {"failed": False, "failure_message": None}

    def continue_unless_error(next_node: str):
        def route(state) -> str:
            return "decide_outcome" if _get(state, "error") else next_node

        return route

    graph = StateGraph(RunState)

    graph.add_node("resolve_workflow", resolve_workflow)
    graph.add_node("execute_tasks", execute_tasks)
    graph.add_node("aggregate", aggregate)
    graph.add_node("render_reports", render_reports)
    graph.add_node("publish_reports", publish_reports)
    graph.add_node("decide_outcome", decide_outcome)

    graph.add_edge(START, "resolve_workflow")
    graph.add_edge("resolve_workflow", "execute_tasks")

    # A fatal error skips straight to the decision: nothing is rendered or published
    for node, next_node in (
        ("execute_tasks", "aggregate"),
        ("aggregate", "render_reports"),
        ("render_reports", "publish_reports"),
    ):
        graph.add_conditional_edges(
            node,
            continue_unless_error(next_node),
            {next_node: next_node, "decide_outcome": "decide_outcome"},
        )

    graph.add_edge("publish_reports", "decide_outcome")
    graph.add_edge("decide_outcome", END)

    return graph


def run_workflow(
    config: ActionConfig,
    github: GitHubContext,
    executor: Executor,
    publisher: Publisher,
) -> RunState:
    """Run one workflow end to end and return the final state."""
    agent = build_run_graph(config, github, executor, publisher).compile()
    final_state = agent.invoke(RunState(workflow_type=config.workflow_type))

    names = {f.name for f in fields(RunState)}
    return RunState(**{k: v for k, v in final_state.items() if k in names})
