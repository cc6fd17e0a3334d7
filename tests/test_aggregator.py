"""Tests for normalizing task outcomes into an aggregated result."""

from aggregator import FailurePolicy, build_summary, normalize
from models import Issue, TaskDescriptor, TaskOutcome, TaskResult


def _ok(agent_id, summary=None, issues=None, task_type="analyze"):
    payload = {}
    if summary is not None:
        payload["summary"] = summary
    if issues is not None:
        payload["issues"] = issues
    return TaskOutcome.success(
        TaskDescriptor(agent_id=agent_id, task_type=task_type),
        TaskResult.model_validate(payload),
    )


def _failed(agent_id, error="boom"):
    return TaskOutcome.failure(TaskDescriptor(agent_id=agent_id, task_type="scan"), error)


def _issue(message, severity="warning"):
    return {"severity": severity, "file": "a.py", "line": 1, "message": message}


class TestNormalize:
    def test_zero_tasks(self):
        result = normalize([])

        assert result.summary == "Analyzed 0 workflow tasks\n"
        assert result.issues == ()
        assert (result.critical_count, result.warning_count, result.info_count) == (0, 0, 0)

    def test_issue_order_follows_task_order(self):
        outcomes = [
            _ok("A", issues=[_issue("i1", "info"), _issue("i2", "critical")]),
            _ok("B", issues=[_issue("i3", "warning")]),
        ]

        result = normalize(outcomes)

        assert [i.message for i in result.issues] == ["i1", "i2", "i3"]

    def test_summary_lines_per_agent(self):
        outcomes = [
            _ok("github-code-analyzer", summary="3 files reviewed"),
            _ok("github-security-scanner", summary="clean"),
        ]

        assert normalize(outcomes).summary == (
            "Analyzed 2 workflow tasks\n"
            "\ngithub-code-analyzer: 3 files reviewed"
            "\ngithub-security-scanner: clean"
        )

    def test_missing_fields_contribute_nothing(self):
        outcomes = [_ok("A"), _ok("B", summary=""), _ok("C", issues=[])]

        result = normalize(outcomes)

        assert result.summary == "Analyzed 3 workflow tasks\n"
        assert result.issues == ()

    def test_header_counts_failed_tasks(self):
        result = normalize([_ok("A", summary="done"), _failed("B")])
        assert result.summary.startswith("Analyzed 2 workflow tasks\n")

    def test_counts_match_issues(self):
        outcomes = [
            _ok("A", issues=[_issue("c", "critical"), _issue("w"), _issue("x", "odd")]),
        ]

        result = normalize(outcomes)

        assert result.critical_count == 1
        assert result.warning_count == 1
        assert result.info_count == 1
        assert result.critical_count + result.warning_count + result.info_count == len(
            result.issues
        )

    def test_outcomes_kept_for_audit(self):
        outcomes = [_ok("A"), _failed("B")]
        assert normalize(outcomes).outcomes == tuple(outcomes)

    def test_deterministic(self):
        outcomes = [_ok("A", summary="s", issues=[_issue("x")]), _failed("B")]
        assert normalize(outcomes) == normalize(list(outcomes))


class TestFailurePolicy:
    def test_skip_ignores_failed_tasks(self):
        result = normalize([_failed("B")], FailurePolicy.SKIP)

        assert result.issues == ()
        assert result.summary == "Analyzed 1 workflow tasks\n"

    def test_critical_synthesizes_issue_in_task_position(self):
        outcomes = [
            _ok("A", issues=[_issue("first")]),
            _failed("B"),
            _ok("C", issues=[_issue("last")]),
        ]

        result = normalize(outcomes, FailurePolicy.CRITICAL)

        assert [i.message for i in result.issues] == ["first", "task B failed", "last"]
        synthesized = result.issues[1]
        assert synthesized == Issue(
            severity="critical", file="unknown", message="task B failed", title="Task failed"
        )
        assert result.critical_count == 1

    def test_failed_task_adds_no_summary_line(self):
        assert build_summary([_failed("B")]) == "Analyzed 1 workflow tasks\n"
