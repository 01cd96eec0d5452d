from __future__ import annotations

import sys
from unittest.mock import patch

import pytest

from requisition_parser.config import ToolConfig
from requisition_parser.exceptions import ToolExecutionError, ToolUnavailableError
from requisition_parser.process import INPUT_PLACEHOLDER, ProcessRunner, temp_file


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


def test_missing_tool_raises_unavailable() -> None:
    runner = ProcessRunner()

    with patch("requisition_parser.process.shutil.which", return_value=None):
        with pytest.raises(ToolUnavailableError) as excinfo:
            runner.run(["pdftotext", "-layout", "a.pdf", "-"])

    assert excinfo.value.tool == "pdftotext"


def test_run_returns_stdout() -> None:
    assert ProcessRunner().run(_python("print('hello')")).strip() == b"hello"


def test_non_zero_exit_raises() -> None:
    with pytest.raises(ToolExecutionError, match="exit code 3"):
        ProcessRunner().run(_python("import sys; sys.exit(3)"))


def test_timeout_raises() -> None:
    with pytest.raises(ToolExecutionError, match="timed out"):
        ProcessRunner().run(_python("import time; time.sleep(5)"), timeout=1)


def test_output_cap_raises() -> None:
    runner = ProcessRunner(ToolConfig(max_output_bytes=10))

    with pytest.raises(ToolExecutionError, match="exceeded"):
        runner.run(_python("print('x' * 100)"))


def test_run_on_bytes_feeds_temp_file_path() -> None:
    runner = ProcessRunner()
    code = "import sys; print(open(sys.argv[1]).read())"

    output = runner.run_on_bytes([sys.executable, "-c", code, INPUT_PLACEHOLDER], b"page text", ".txt")

    assert output.strip() == "page text"


def test_temp_file_is_removed_on_success_and_failure() -> None:
    with temp_file(b"data", ".pdf") as path:
        assert path.read_bytes() == b"data"
        assert path.suffix == ".pdf"
    assert not path.exists()

    with pytest.raises(RuntimeError):
        with temp_file(b"data") as failing_path:
            raise RuntimeError("tool crashed")
    assert not failing_path.exists()


def test_pdf_layout_text_invokes_pdftotext() -> None:
    runner = ProcessRunner()

    with patch.object(ProcessRunner, "run", return_value=b"layout text") as run:
        assert runner.pdf_layout_text(b"%PDF") == "layout text"

    command = run.call_args[0][0]
    assert command[:2] == ["pdftotext", "-layout"]
    assert command[2].endswith(".pdf")
    assert command[3] == "-"


def test_legacy_doc_without_converters_raises_unavailable() -> None:
    with patch.object(ProcessRunner, "is_available", return_value=False):
        with pytest.raises(ToolUnavailableError):
            ProcessRunner().legacy_doc_text(b"\xd0\xcf\x11\xe0")
