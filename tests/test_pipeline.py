"""Tests for the run coordinator graph."""

from unittest.mock import MagicMock

import pytest

from aggregator import FailurePolicy
from config import ActionConfig, GitHubContext
from executor import ExecutorError
from models import TaskOutcome, TaskResult
from pipeline import RunState, run_workflow

CRITICAL = {"severity": "critical", "file": "a.js", "line": 10, "message": "SQL injection"}
WARNING = {"severity": "warning", "file": "b.js", "line": 5, "message": "unused var"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _executor(*payloads):
    """Executor whose i-th task returns payloads[i] (an Exception means failure)."""

    def execute(tasks):
        outcomes = []
        for task, payload in zip(tasks, payloads):
            if isinstance(payload, Exception):
                outcomes.append(TaskOutcome.failure(task, str(payload)))
            else:
                outcomes.append(TaskOutcome.success(task, TaskResult.model_validate(payload)))
        return outcomes

    executor = MagicMock()
    executor.execute.side_effect = execute
    return executor


def _publisher():
    publisher = MagicMock()
    publisher.publish_comment.return_value = 101
    publisher.publish_check_run.return_value = 202
    publisher.publish_annotations.side_effect = lambda annotations: len(annotations)
    return publisher


def _config(**overrides):
    defaults = dict(workflow_type="code-review", fail_on_errors=True)
    defaults.update(overrides)
    return ActionConfig(**defaults)


PR_CONTEXT = GitHubContext(repo="octo/app", sha="abc123", pr_number=42)


# ---------------------------------------------------------------------------
# Happy paths
# ---------------------------------------------------------------------------
class TestRunWorkflow:
    def test_clean_run_publishes_everything(self):
        executor = _executor({"summary": "ok"}, {"summary": "clean", "issues": [WARNING]})
        publisher = _publisher()

        state = run_workflow(_config(), PR_CONTEXT, executor, publisher)

        assert not state.failed
        assert state.failure_message is None
        assert state.result.summary == (
            "Analyzed 2 workflow tasks\n"
            "\ngithub-code-analyzer: ok"
            "\ngithub-security-scanner: clean"
        )
        assert state.comment_id == 101
        assert state.check_run_id == 202
        assert state.annotations_published == 1
        assert state.publish_errors == []

        pr_number, body = publisher.publish_comment.call_args.args
        assert pr_number == 42
        assert "#### 🟡 Warnings (1)" in body
        check_run = publisher.publish_check_run.call_args.args[0]
        assert check_run.conclusion == "success"
        assert check_run.head_sha == "abc123"

    def test_tasks_submitted_in_workflow_order(self):
        executor = _executor({}, {}, {})

        run_workflow(_config(workflow_type="pre-deploy"), PR_CONTEXT, executor, _publisher())

        tasks = executor.execute.call_args.args[0]
        assert [t.task_type for t in tasks] == ["test", "scan", "validate"]

    def test_critical_issue_fails_after_publishing(self):
        publisher = _publisher()
        executor = _executor({"issues": [CRITICAL]}, {})

        state = run_workflow(_config(), PR_CONTEXT, executor, publisher)

        assert state.failed
        assert state.failure_message == "Found 1 critical issues"
        publisher.publish_comment.assert_called_once()
        publisher.publish_check_run.assert_called_once()
        (annotation,) = publisher.publish_annotations.call_args.args[0]
        assert annotation.level == "failure"
        assert publisher.publish_check_run.call_args.args[0].conclusion == "failure"

    def test_loosely_typed_critical_issue_still_fails_the_check(self):
        executor = _executor({"summary": 3, "issues": [dict(CRITICAL, title=42)]}, {})
        publisher = _publisher()

        state = run_workflow(_config(), PR_CONTEXT, executor, publisher)

        assert isinstance(state, RunState)
        assert state.failed
        assert state.result.critical_count == 1
        assert publisher.publish_check_run.call_args.args[0].conclusion == "failure"

    def test_critical_issue_without_fail_on_errors(self):
        executor = _executor({"issues": [CRITICAL]}, {})

        state = run_workflow(_config(fail_on_errors=False), PR_CONTEXT, executor, _publisher())

        assert not state.failed
        assert state.result.critical_count == 1

    def test_ai_footer_follows_config(self):
        publisher = _publisher()
        config = _config(ai_enabled=True, llm_provider="anthropic")

        run_workflow(config, PR_CONTEXT, _executor({}, {}), publisher)

        body = publisher.publish_comment.call_args.args[1]
        assert "AI-Enhanced Analysis Enabled" in body

    def test_ai_footer_off_when_provider_none(self):
        publisher = _publisher()
        config = _config(ai_enabled=True, llm_provider="none")

        run_workflow(config, PR_CONTEXT, _executor({}, {}), publisher)

        assert "AI-Enhanced" not in publisher.publish_comment.call_args.args[1]

    def test_failed_task_policy(self):
        executor = _executor({}, RuntimeError("boom"))

        skipped = run_workflow(_config(), PR_CONTEXT, executor, _publisher())
        reported = run_workflow(
            _config(failure_policy=FailurePolicy.CRITICAL), PR_CONTEXT, executor, _publisher()
        )

        assert skipped.result.issues == ()
        assert not skipped.failed
        assert [i.message for i in reported.result.issues] == [
            "task github-security-scanner failed"
        ]
        assert reported.failed


# ---------------------------------------------------------------------------
# Channel toggles
# ---------------------------------------------------------------------------
class TestChannels:
    def test_comment_skipped_outside_pull_request(self):
        publisher = _publisher()
        github = GitHubContext(repo="octo/app", sha="abc123")

        state = run_workflow(_config(), github, _executor({}, {}), publisher)

        publisher.publish_comment.assert_not_called()
        publisher.publish_check_run.assert_called_once()
        assert state.comment_id is None

    def test_channels_disabled(self):
        publisher = _publisher()
        config = _config(create_pr_comment=False, create_check_run=False)

        run_workflow(config, PR_CONTEXT, _executor({"issues": [WARNING]}, {}), publisher)

        publisher.publish_comment.assert_not_called()
        publisher.publish_check_run.assert_not_called()
        publisher.publish_annotations.assert_called_once()

    @pytest.mark.parametrize(
        "broken", ["publish_annotations", "publish_comment", "publish_check_run"]
    )
    def test_one_channel_failure_does_not_stop_others(self, broken):
        publisher = _publisher()
        getattr(publisher, broken).side_effect = RuntimeError("502 Bad Gateway")
        executor = _executor({"issues": [CRITICAL]}, {})

        state = run_workflow(_config(), PR_CONTEXT, executor, publisher)

        publisher.publish_annotations.assert_called_once()
        publisher.publish_comment.assert_called_once()
        publisher.publish_check_run.assert_called_once()
        assert len(state.publish_errors) == 1
        assert "502 Bad Gateway" in state.publish_errors[0]
        # Publish failure never masks the critical-issue signal
        assert state.failed
        assert state.failure_message == "Found 1 critical issues"


# ---------------------------------------------------------------------------
# No-op and fatal paths
# ---------------------------------------------------------------------------
class TestNoOpAndFatal:
    def test_unknown_workflow_is_a_no_op(self):
        executor = _executor()
        publisher = _publisher()

        state = run_workflow(_config(workflow_type="unknown-type"), PR_CONTEXT, executor, publisher)

        executor.execute.assert_not_called()
        assert state.tasks == []
        assert state.result.summary == "Analyzed 0 workflow tasks\n"
        assert state.result.issues == ()
        assert state.result.critical_count == 0
        assert not state.failed
        assert "No issues found" in publisher.publish_comment.call_args.args[1]

    def test_executor_error_aborts_before_publishing(self):
        executor = MagicMock()
        executor.execute.side_effect = ExecutorError("cannot reach executor")
        publisher = _publisher()

        state = run_workflow(_config(), PR_CONTEXT, executor, publisher)

        assert state.failed
        assert state.failure_message == "Action failed: cannot reach executor"
        assert state.result is None
        publisher.publish_annotations.assert_not_called()
        publisher.publish_comment.assert_not_called()
        publisher.publish_check_run.assert_not_called()

    def test_misaligned_outcomes_are_fatal(self):
        executor = MagicMock()
        executor.execute.return_value = []
        publisher = _publisher()

        state = run_workflow(_config(), PR_CONTEXT, executor, publisher)

        assert state.failed
        assert "0 outcome(s) for 2 task(s)" in state.failure_message
        publisher.publish_check_run.assert_not_called()
