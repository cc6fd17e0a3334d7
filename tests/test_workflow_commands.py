"""Tests for action inputs, outputs and workflow commands."""

import pytest

from renderers import Annotation
from workflow_commands import (
    emit_annotation,
    format_command,
    get_bool_input,
    get_input,
    set_failed,
    set_output,
)


class TestInputs:
    def test_get_input_reads_uppercased_name(self, monkeypatch):
        monkeypatch.setenv("INPUT_WORKFLOW-TYPE", "  pre-deploy ")
        assert get_input("workflow-type") == "pre-deploy"

    def test_missing_input_is_empty(self, monkeypatch):
        monkeypatch.delenv("INPUT_PROJECT-PATH", raising=False)
        assert get_input("project-path") == ""

    def test_required_input(self, monkeypatch):
        monkeypatch.delenv("INPUT_GITHUB-TOKEN", raising=False)
        with pytest.raises(ValueError, match="github-token"):
            get_input("github-token", required=True)

    @pytest.mark.parametrize(
        "value, default, expected",
        [("true", False, True), ("TRUE", False, True), ("false", True, False),
         ("yes", True, False), ("", True, True), ("", False, False)],
    )
    def test_get_bool_input(self, monkeypatch, value, default, expected):
        monkeypatch.setenv("INPUT_FAIL-ON-ERRORS", value)
        assert get_bool_input("fail-on-errors", default=default) is expected


class TestCommands:
    def test_escaping(self):
        command = format_command(
            "warning", "50% done\nnext", {"file": "a,b:c.py", "line": 3, "title": None}
        )
        assert command == "::warning file=a%2Cb%3Ac.py,line=3::50%25 done%0Anext"

    def test_emit_failure_annotation(self, capsys):
        emit_annotation(
            Annotation(
                path="a.js",
                start_line=10,
                end_line=10,
                level="failure",
                message="SQL injection",
                title="Issue found",
            )
        )
        assert capsys.readouterr().out == (
            "::error title=Issue found,file=a.js,line=10,endLine=10::SQL injection\n"
        )

    def test_emit_warning_annotation(self, capsys):
        emit_annotation(
            Annotation(
                path="b.js", start_line=1, end_line=1, level="warning", message="m", title="t"
            )
        )
        assert capsys.readouterr().out.startswith("::warning ")

    def test_set_failed(self, capsys):
        set_failed("Found 2 critical issues")
        assert capsys.readouterr().out == "::error::Found 2 critical issues\n"


class TestOutputs:
    def test_set_output_writes_heredoc_block(self, tmp_path, monkeypatch):
        output_file = tmp_path / "output"
        monkeypatch.setenv("GITHUB_OUTPUT", str(output_file))

        set_output("summary", "line one\nline two")
        set_output("critical-issues", 2)

        lines = output_file.read_text().splitlines()
        assert lines[0].startswith("summary<<ghadelimiter_")
        delimiter = lines[0].split("<<", 1)[1]
        assert lines[1:4] == ["line one", "line two", delimiter]
        assert lines[4] == f"critical-issues<<{lines[4].split('<<', 1)[1]}"
        assert lines[5] == "2"

    def test_set_output_without_file_warns(self, monkeypatch, capsys, caplog):
        monkeypatch.delenv("GITHUB_OUTPUT", raising=False)

        set_output("issues-found", 3)

        assert capsys.readouterr().out == ""
        assert "dropping output issues-found" in caplog.text
