"""Static registry of workflow types and their ordered task lists."""

import logging
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from models import TaskDescriptor, WorkflowDefinition

logger = logging.getLogger(__name__)


# =============================================================================
# AGENTS
# =============================================================================
CODE_ANALYZER = "github-code-analyzer"
SECURITY_SCANNER = "github-security-scanner"
TEST_RUNNER = "github-test-runner"
DEPLOYMENT_VALIDATOR = "github-deployment-validator"

AGENT_IDS: frozenset[str] = frozenset(
    {CODE_ANALYZER, SECURITY_SCANNER, TEST_RUNNER, DEPLOYMENT_VALIDATOR}
)


class WorkflowType(str, Enum):
    CODE_REVIEW = "code-review"
    FULL_ANALYSIS = "full-analysis"
    PRE_DEPLOY = "pre-deploy"
    SECURITY_SCAN = "security-scan"


def _workflow(*tasks: tuple[str, str]) -> WorkflowDefinition:
    return WorkflowDefinition(
        tasks=tuple(
            TaskDescriptor(agent_id=agent_id, task_type=task_type)
            for agent_id, task_type in tasks
        )
    )


# =============================================================================
# WORKFLOWS: task order is the order issues are reported in
# =============================================================================
WORKFLOWS: Mapping[WorkflowType, WorkflowDefinition] = MappingProxyType(
    {
        WorkflowType.CODE_REVIEW: _workflow(
            (CODE_ANALYZER, "analyze"),
            (SECURITY_SCANNER, "scan"),
        ),
        WorkflowType.FULL_ANALYSIS: _workflow(
            (CODE_ANALYZER, "analyze"),
            (SECURITY_SCANNER, "scan"),
            (TEST_RUNNER, "test"),
        ),
        WorkflowType.PRE_DEPLOY: _workflow(
            (TEST_RUNNER, "test"),
            (SECURITY_SCANNER, "scan"),
            (DEPLOYMENT_VALIDATOR, "validate"),
        ),
        WorkflowType.SECURITY_SCAN: _workflow(
            (SECURITY_SCANNER, "security_scan"),
        ),
    }
)

EMPTY_WORKFLOW = WorkflowDefinition(tasks=())


def validate_registry(
    workflows: Mapping[WorkflowType, WorkflowDefinition] = WORKFLOWS,
    agent_ids: frozenset[str] = AGENT_IDS,
) -> None:
    """
    Check the registry is complete and only names known agents.

    Raises:
        ValueError: If a workflow type is missing, empty, or uses an
            unknown agent
    """
    for workflow_type in WorkflowType:
        definition = workflows.get(workflow_type)
        if definition is None or not definition.tasks:
            raise ValueError(f"Workflow {workflow_type.value!r} has no tasks")
        for task in definition.tasks:
            if task.agent_id not in agent_ids:
                raise ValueError(
                    f"Workflow {workflow_type.value!r} uses unknown agent "
                    f"{task.agent_id!r}"
                )


def resolve(workflow_type: str) -> WorkflowDefinition:
    """
    Resolve a workflow-type name to its task list.

    Unknown names resolve to an empty workflow rather than raising; the
    caller treats zero tasks as a no-op run.
    """
    try:
        key = WorkflowType(workflow_type)
    except ValueError:
        logger.warning("Unknown workflow type %r - no tasks to run", workflow_type)
        return EMPTY_WORKFLOW
    return WORKFLOWS[key]


validate_registry()
