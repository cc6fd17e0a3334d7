"""Data models for workflow task results and analysis issues."""

from typing import Any, Literal, NamedTuple, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Severity = Literal["critical", "warning", "info"]
SEVERITIES: tuple[str, ...] = ("critical", "warning", "info")

DEFAULT_FILE = "unknown"
DEFAULT_TITLE = "Issue found"


class Issue(BaseModel):
    """A single finding reported by an analysis task."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    severity: Severity = Field(default="info", description="critical, warning, info")
    file: str = Field(default=DEFAULT_FILE, description="Path of the affected file")
    line: int | None = Field(default=None, description="1-based line, None if unknown")
    message: str = Field(default="", description="What the issue is")
    title: str | None = Field(default=None, description="Short headline")

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value: Any) -> str:
        # Unrecognised severities are kept as info, never dropped
        if isinstance(value, str) and value.strip().lower() in SEVERITIES:
            return value.strip().lower()
        return "info"

    @field_validator("file", mode="before")
    @classmethod
    def _coerce_file(cls, value: Any) -> str:
        if value is None or value == "":
            return DEFAULT_FILE
        return str(value)

    @field_validator("line", mode="before")
    @classmethod
    def _coerce_line(cls, value: Any) -> int | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            line = int(value)
        except (TypeError, ValueError):
            return None
        return line if line > 0 else None

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return str(value)


class TaskDescriptor(BaseModel):
    """One unit of work within a workflow."""

    model_config = ConfigDict(frozen=True)

    agent_id: str
    task_type: str


class TaskResult(BaseModel):
    """Success payload of a task. Missing fields contribute nothing."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    summary: str | None = None
    issues: list[Issue] = Field(default_factory=list)

    @field_validator("summary", mode="before")
    @classmethod
    def _coerce_summary(cls, value: Any) -> str | None:
        return None if value is None else str(value)

    @field_validator("issues", mode="before")
    @classmethod
    def _coerce_issues(cls, value: Any) -> Any:
        return [] if value is None else value


class TaskOutcome(BaseModel):
    """Result of executing one TaskDescriptor: a payload or an error."""

    model_config = ConfigDict(frozen=True)

    agent_id: str
    task_type: str
    result: TaskResult | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "TaskOutcome":
        if (self.result is None) == (self.error is None):
            raise ValueError("TaskOutcome needs exactly one of result or error")
        return self

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, task: TaskDescriptor, result: TaskResult) -> "TaskOutcome":
        return cls(agent_id=task.agent_id, task_type=task.task_type, result=result)

    @classmethod
    def failure(cls, task: TaskDescriptor, error: str) -> "TaskOutcome":
        return cls(agent_id=task.agent_id, task_type=task.task_type, error=error)


class WorkflowDefinition(BaseModel):
    """Ordered task list for a workflow type."""

    model_config = ConfigDict(frozen=True)

    tasks: tuple[TaskDescriptor, ...] = ()


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------
class SeverityCounts(NamedTuple):
    critical: int
    warning: int
    info: int


class ClassifiedIssues(NamedTuple):
    """Issues partitioned by severity, relative order kept in each group."""

    critical: list[Issue]
    warning: list[Issue]
    info: list[Issue]


def classify(issues: Sequence[Issue]) -> ClassifiedIssues:
    """Partition *issues* by severity, preserving relative order."""
    groups: dict[str, list[Issue]] = {severity: [] for severity in SEVERITIES}
    for issue in issues:
        groups.get(issue.severity, groups["info"]).append(issue)
    return ClassifiedIssues(groups["critical"], groups["warning"], groups["info"])


def counts_of(issues: Sequence[Issue]) -> SeverityCounts:
    """Return the (critical, warning, info) counts for *issues*."""
    groups = classify(issues)
    return SeverityCounts(len(groups.critical), len(groups.warning), len(groups.info))


class AggregatedResult(BaseModel):
    """
    Normalized output of one workflow run.

    The single source of truth for every renderer. Built once by the
    aggregator and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    summary: str
    issues: tuple[Issue, ...] = ()
    critical_count: int = 0
    warning_count: int = 0
    info_count: int = 0
    outcomes: tuple[TaskOutcome, ...] = ()

    @model_validator(mode="after")
    def _counts_match_issues(self) -> "AggregatedResult":
        expected = counts_of(self.issues)
        actual = SeverityCounts(self.critical_count, self.warning_count, self.info_count)
        if actual != expected:
            raise ValueError(f"Severity counts {actual} do not match issues {expected}")
        return self

    @classmethod
    def from_issues(
        cls,
        summary: str,
        issues: Sequence[Issue],
        outcomes: Sequence[TaskOutcome] | None = None,
    ) -> "AggregatedResult":
        counts = counts_of(issues)
        return cls(
            summary=summary,
            issues=tuple(issues),
            critical_count=counts.critical,
            warning_count=counts.warning,
            info_count=counts.info,
            outcomes=tuple(outcomes or ()),
        )
