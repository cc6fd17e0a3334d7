"""
Report renderers - annotations, PR comment and check run.

All three read the same AggregatedResult and are pure: they format
payloads and never talk to GitHub themselves. A critical issue is a
``failure`` annotation, sits in the critical section of the comment, and
turns the check-run conclusion to ``failure``.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict

from models import DEFAULT_TITLE, AggregatedResult, Issue, classify

CHECK_RUN_NAME = "EquilateralAgents"
COMMENT_HEADER = "## 🤖 EquilateralAgents Analysis\n\n"
NO_ISSUES_LINE = "✅ No issues found!"
FOOTER = "*Powered by [EquilateralAgents](https://github.com/marketplace/equilateral-agents)"
AI_FOOTER_NOTE = " • AI-Enhanced Analysis Enabled"

# (heading, severity group) in the fixed comment order
_COMMENT_SECTIONS: tuple[tuple[str, str], ...] = (
    ("🔴 Critical", "critical"),
    ("🟡 Warnings", "warning"),
    ("ℹ️ Info", "info"),
)

AnnotationLevel = Literal["failure", "warning"]


# =============================================================================
# PAYLOAD MODELS
# =============================================================================
class Annotation(BaseModel):
    """An inline marker on one line of a file in the change."""

    model_config = ConfigDict(frozen=True)

    path: str
    start_line: int
    end_line: int
    level: AnnotationLevel
    message: str
    title: str


class CheckRunOutput(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    summary: str
    text: str


class CheckRunPayload(BaseModel):
    """Body of a check-run create call."""

    model_config = ConfigDict(frozen=True)

    name: str = CHECK_RUN_NAME
    head_sha: str
    status: Literal["completed"] = "completed"
    conclusion: Literal["success", "failure"]
    output: CheckRunOutput


# =============================================================================
# ANNOTATIONS
# =============================================================================
def annotation_level(issue: Issue) -> AnnotationLevel:
    return "failure" if issue.severity == "critical" else "warning"


def render_annotations(result: AggregatedResult) -> list[Annotation]:
    """One annotation per issue, in issue order. Unknown lines map to 1."""
    annotations: list[Annotation] = []
    for issue in result.issues:
        line = issue.line or 1
        annotations.append(
            Annotation(
                path=issue.file,
                start_line=line,
                end_line=line,
                level=annotation_level(issue),
                message=issue.message,
                title=issue.title or DEFAULT_TITLE,
            )
        )
    return annotations


# =============================================================================
# PR COMMENT
# =============================================================================
def format_issue_line(issue: Issue) -> str:
    """``- **<file>:<line or ?>** - <message>``"""
    return f"- **{issue.file}:{issue.line or '?'}** - {issue.message}"


def render_comment(result: AggregatedResult, ai_enabled: bool = False) -> str:
    """Format the aggregated result as a markdown PR comment."""
    parts: list[str] = [COMMENT_HEADER, f"### Summary\n{result.summary}\n"]

    if result.issues:
        parts.append(f"\n### Issues Found ({len(result.issues)})\n\n")
        groups = classify(result.issues)._asdict()
        for heading, severity in _COMMENT_SECTIONS:
            group = groups[severity]
            if not group:
                continue
            parts.append(f"#### {heading} ({len(group)})\n")
            parts.extend(f"{format_issue_line(issue)}\n" for issue in group)
            parts.append("\n")
    else:
        parts.append(f"\n{NO_ISSUES_LINE}\n")

    parts.append("\n---\n")
    parts.append(FOOTER)
    if ai_enabled:
        parts.append(AI_FOOTER_NOTE)
    parts.append("*")

    return "".join(parts)


# =============================================================================
# CHECK RUN
# =============================================================================
def check_run_title(critical_count: int) -> str:
    if critical_count > 0:
        return f"Found {critical_count} critical issues"
    return "All checks passed"


def render_check_run(result: AggregatedResult, head_sha: str) -> CheckRunPayload:
    """
    Build the check-run payload.

    Conclusion and title depend on the critical count only; warnings and
    info never fail the check. The full result goes into ``text`` for
    audit.
    """
    return CheckRunPayload(
        head_sha=head_sha,
        conclusion="failure" if result.critical_count > 0 else "success",
        output=CheckRunOutput(
            title=check_run_title(result.critical_count),
            summary=result.summary,
            text=result.model_dump_json(indent=2),
        ),
    )
