"""Built-in analysis agents - code analyzer, security scanner, tests, deploy checks."""

import logging
import shlex
import subprocess

from diff_parser import FileDiff
from executor import AgentContext, AgentHandler
from models import TaskDescriptor
from rules import CODE_RULES, DEPLOYMENT_RULES, SECURITY_RULES, LineRule, match_rules
from workflows import CODE_ANALYZER, DEPLOYMENT_VALIDATOR, SECURITY_SCANNER, TEST_RUNNER

logger = logging.getLogger(__name__)

TEST_TIMEOUT_SECONDS = 30 * 60
OUTPUT_TAIL_LINES = 20


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------
def scan_files(files: list[FileDiff], rules: tuple[LineRule, ...]) -> list[dict]:
    """
    Check every added line of *files* against *rules*.

    Returns:
        Issue payloads in file, line, then rule-table order
    """
    issues: list[dict] = []
    for file in files:
        for line_num, text in file.added_lines:
            for rule in match_rules(rules, text):
                issues.append(
                    {
                        "severity": rule.severity,
                        "file": file.filename,
                        "line": line_num,
                        "message": rule.message,
                        "title": rule.title,
                    }
                )
    return issues


def _summarize(verb: str, files: list[FileDiff], issues: list[dict]) -> str:
    critical = sum(1 for issue in issues if issue["severity"] == "critical")
    summary = f"{verb} {len(files)} file(s), found {len(issues)} issue(s)"
    if critical:
        summary += f" ({critical} critical)"
    return summary


# ---------------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------------
def code_analyzer(task: TaskDescriptor, context: AgentContext) -> dict:
    """
    Review changed code for bugs and leftovers.

    Looks for:
    - Bare ``except:`` clauses
    - Debugger statements
    - Mutable default arguments
    - TODO/FIXME markers and console output
    """
    logger.info("🔍 Code analysis: %d file(s)", len(context.files))
    issues = scan_files(context.files, CODE_RULES)
    return {"summary": _summarize("Reviewed", context.files, issues), "issues": issues}


def security_scanner(task: TaskDescriptor, context: AgentContext) -> dict:
    """
    Scan changed code for SECURITY issues only.

    Looks for:
    - Hardcoded secrets and private keys
    - SQL injection via string concatenation
    - eval() and insecure deserialization
    - Shell execution, disabled TLS verification, weak hashes
    """
    logger.info("🔒 Security scan (%s): %d file(s)", task.task_type, len(context.files))
    issues = scan_files(context.files, SECURITY_RULES)
    return {"summary": _summarize("Scanned", context.files, issues), "issues": issues}


def run_tests(task: TaskDescriptor, context: AgentContext) -> dict:
    """
    Run the project's test command.

    A non-zero exit is a critical issue. Without a configured command the
    task reports that tests were skipped.

    Raises:
        FileNotFoundError: If the test command does not exist
        subprocess.TimeoutExpired: If the tests run too long
    """
    if not context.test_command:
        return {"summary": "No test command configured - tests skipped"}

    logger.info("🧪 Running tests: %s", context.test_command)
    completed = subprocess.run(
        shlex.split(context.test_command),
        cwd=context.project_path,
        capture_output=True,
        text=True,
        timeout=TEST_TIMEOUT_SECONDS,
    )

    if completed.returncode == 0:
        return {"summary": f"Tests passed (`{context.test_command}`)"}

    output = (completed.stdout + completed.stderr).strip().splitlines()
    logger.info("   Test output (last %d lines):", OUTPUT_TAIL_LINES)
    for line in output[-OUTPUT_TAIL_LINES:]:
        logger.info("   | %s", line)

    return {
        "summary": f"Tests failed with exit code {completed.returncode}",
        "issues": [
            {
                "severity": "critical",
                "file": "unknown",
                "message": (
                    f"Test command `{context.test_command}` failed "
                    f"with exit code {completed.returncode}"
                ),
                "title": "Tests failed",
            }
        ],
    }


def deployment_validator(task: TaskDescriptor, context: AgentContext) -> dict:
    """Check changed code for things that must not be deployed."""
    logger.info("🚀 Deployment validation: %d file(s)", len(context.files))
    issues = scan_files(context.files, DEPLOYMENT_RULES)
    return {"summary": _summarize("Validated", context.files, issues), "issues": issues}


BUILTIN_AGENTS: dict[str, AgentHandler] = {
    CODE_ANALYZER: code_analyzer,
    SECURITY_SCANNER: security_scanner,
    TEST_RUNNER: run_tests,
    DEPLOYMENT_VALIDATOR: deployment_validator,
}
