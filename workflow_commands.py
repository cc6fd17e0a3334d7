"""
GitHub Actions runner interface - inputs, outputs and workflow commands.

Mirrors the small part of ``@actions/core`` the action needs. See:
https://docs.github.com/actions/using-workflows/workflow-commands-for-github-actions
"""

import logging
import os
import sys
import uuid

from renderers import Annotation

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Escaping
# ---------------------------------------------------------------------------
def escape_data(value: object) -> str:
    """Escape a workflow-command message."""
    if value is None:
        return ""
    return str(value).replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def escape_property(value: object) -> str:
    """Escape a workflow-command property value (also ``:`` and ``,``)."""
    return escape_data(value).replace(":", "%3A").replace(",", "%2C")


def format_command(command: str, message: str, properties: dict | None = None) -> str:
    """Render ``::command key=value,...::message``."""
    props = ""
    if properties:
        props = " " + ",".join(
            f"{key}={escape_property(value)}"
            for key, value in properties.items()
            if value is not None
        )
    return f"::{command}{props}::{escape_data(message)}"


def issue_command(command: str, message: str, properties: dict | None = None) -> None:
    sys.stdout.write(format_command(command, message, properties) + "\n")
    sys.stdout.flush()


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------
def get_input(name: str, required: bool = False) -> str:
    """
    Read an action input from ``INPUT_<NAME>``.

    Raises:
        ValueError: If *required* and the input is empty
    """
    value = os.getenv(f"INPUT_{name.replace(' ', '_').upper()}", "").strip()
    if required and not value:
        raise ValueError(f"Input required and not supplied: {name}")
    return value


def get_bool_input(name: str, default: bool = False) -> bool:
    """``true`` (any case) is True, empty falls back to *default*."""
    value = get_input(name)
    if not value:
        return default
    return value.lower() == "true"


# ---------------------------------------------------------------------------
# Outputs & status
# ---------------------------------------------------------------------------
def set_output(name: str, value: object) -> None:
    """Write a step output to the ``GITHUB_OUTPUT`` file. Dropped outside a runner."""
    text = "" if value is None else str(value)
    output_path = os.getenv("GITHUB_OUTPUT")

    if not output_path:
        logger.warning("GITHUB_OUTPUT is not set, dropping output %s", name)
        return

    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    with open(output_path, "a", encoding="utf-8") as f:
        f.write(f"{name}<<{delimiter}\n{text}\n{delimiter}\n")


def set_failed(message: str) -> None:
    """Report the step as failed; the caller exits non-zero."""
    logger.error(message)
    issue_command("error", message)


def debug(message: str) -> None:
    issue_command("debug", message)


def emit_annotation(annotation: Annotation) -> None:
    """Emit an inline annotation; ``failure`` maps to an error command."""
    command = "error" if annotation.level == "failure" else "warning"
    issue_command(
        command,
        annotation.message,
        {
            "title": annotation.title,
            "file": annotation.path,
            "line": annotation.start_line,
            "endLine": annotation.end_line,
        },
    )
