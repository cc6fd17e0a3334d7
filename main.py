"""EquilateralAgents GitHub Action - entry point."""

import json
import logging
import os
import sys

from config import ConfigError, load_config, load_github_context
from agents import BUILTIN_AGENTS
from executor import TaskExecutor, prepare_context
from github_client import GitHubPublisher
from pipeline import RunState, run_workflow
from workflow_commands import debug, set_failed, set_output

logger = logging.getLogger(__name__)

# Environment variable each provider's credentials are expected in
_PROVIDER_KEYS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}


def report_ai_provider(provider: str) -> None:
    """Note at debug level which AI credentials the run can see."""
    if provider == "github":
        debug("Using GitHub AI (via token)")
        return
    key = _PROVIDER_KEYS.get(provider)
    if key and os.getenv(key):
        debug(f"{provider.capitalize()} API key detected")
    elif key:
        logger.warning("AI provider %s selected but %s is not set", provider, key)


def write_outputs(state: RunState) -> None:
    """Expose the run's results as step outputs."""
    result = state.result
    outcomes = [o.model_dump(mode="json") for o in state.outcomes]

    set_output("results", json.dumps({"results": outcomes}))
    if result is not None:
        set_output("summary", result.summary)
        set_output("issues-found", len(result.issues))
        set_output("critical-issues", result.critical_count)
    if state.comment_id is not None:
        set_output("pr-comment-id", state.comment_id)
    if state.check_run_id is not None:
        set_output("check-run-id", state.check_run_id)


def main() -> int:
    """Main entry point."""
    try:
        config = load_config()
        github = load_github_context()

        logger.info("🤖 EquilateralAgents GitHub Action")
        logger.info("Workflow: %s", config.workflow_type)
        logger.info("Project: %s", config.project_path)
        logger.info("AI Provider: %s", config.llm_provider)
        logger.info("Repository: %s", github.repo or "(none)")

        if config.ai_active:
            report_ai_provider(config.llm_provider)

        executor = TaskExecutor(
            BUILTIN_AGENTS,
            lambda: prepare_context(config, github),
            max_workers=config.max_workers,
        )
        publisher = GitHubPublisher(repo=github.repo, token=config.github_token)

        logger.info("Executing %s workflow...", config.workflow_type)
        state = run_workflow(config, github, executor, publisher)
        write_outputs(state)

    except ConfigError as e:
        set_failed(f"Configuration error: {e}")
        return 1
    except Exception as e:
        logger.exception("Unexpected error")
        set_failed(f"Action failed: {e}")
        return 1

    if state.failed:
        set_failed(state.failure_message)
        return 1

    logger.info("✅ Analysis complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
