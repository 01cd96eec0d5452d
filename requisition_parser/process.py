"""Blocking, timeout-bounded invocation of external command-line tools."""

import os
import shutil
import subprocess
import tempfile
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Sequence

from requisition_parser.config import ToolConfig
from requisition_parser.exceptions import ToolExecutionError, ToolUnavailableError
from requisition_parser.logger import Timer, get_logger

logger = get_logger(__name__)

INPUT_PLACEHOLDER = "{input}"


@contextmanager
def temp_file(content: bytes = b"", suffix: str = "") -> Iterator[Path]:
    """Write ``content`` to a uniquely named temp file, deleted on exit."""
    path = Path(tempfile.gettempdir()) / f"rqp_{uuid.uuid4().hex}{suffix}"
    path.write_bytes(content)
    try:
        yield path
    finally:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning(
                "Failed to delete temp file",
                extra_data={"path": str(path), "error": str(exc)},
            )


class ProcessRunner:
    """Runs tools such as pdftotext with a timeout and an output cap."""

    def __init__(self, config: Optional[ToolConfig] = None):
        self.config = config or ToolConfig()

    @staticmethod
    def is_available(tool: str) -> bool:
        return shutil.which(tool) is not None

    def run(self, args: Sequence[str], timeout: Optional[int] = None) -> bytes:
        """Run a command and return its stdout.

        Args:
            args: Command and arguments
            timeout: Seconds before the process is killed (default from config)

        Returns:
            Raw stdout bytes

        Raises:
            ToolUnavailableError: If the executable is missing
            ToolExecutionError: On non-zero exit, timeout or oversized output
        """
        tool = args[0]
        timeout = timeout or self.config.timeout
        if not self.is_available(tool):
            raise ToolUnavailableError(tool)

        # stdout is spooled to disk so a runaway tool cannot exhaust memory
        with tempfile.TemporaryFile() as out, Timer(tool) as timer:
            try:
                completed = subprocess.run(
                    list(args),
                    stdout=out,
                    stderr=subprocess.PIPE,
                    timeout=timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired as exc:
                raise ToolExecutionError(tool, f"timed out after {timeout}s") from exc
            except OSError as exc:
                raise ToolExecutionError(tool, str(exc)) from exc

            if completed.returncode != 0:
                stderr = (completed.stderr or b"").decode("utf-8", errors="ignore").strip()
                raise ToolExecutionError(tool, f"exit code {completed.returncode}: {stderr[:200]}")

            size = out.seek(0, os.SEEK_END)
            if size > self.config.max_output_bytes:
                raise ToolExecutionError(
                    tool, f"output exceeded {self.config.max_output_bytes} bytes"
                )
            out.seek(0)
            stdout = out.read()

        logger.debug(
            "Tool invocation completed",
            extra_data={
                "tool": tool,
                "output_bytes": len(stdout),
                "elapsed_ms": timer.get_elapsed_ms(),
            },
        )
        return stdout

    def run_on_bytes(
        self,
        args: Sequence[str],
        content: bytes,
        suffix: str,
        timeout: Optional[int] = None,
    ) -> str:
        """Write ``content`` to a temp file, substitute its path for ``{input}`` and run.

        The temp file is removed whether the tool succeeds, fails or times out.
        """
        with temp_file(content, suffix) as path:
            command = [str(path) if arg == INPUT_PLACEHOLDER else arg for arg in args]
            output = self.run(command, timeout=timeout)
        return output.decode("utf-8", errors="ignore")

    def pdf_layout_text(self, content: bytes) -> str:
        """Layout-preserving text of a PDF (``pdftotext -layout``)."""
        return self.run_on_bytes(
            [self.config.pdftotext_cmd, "-layout", INPUT_PLACEHOLDER, "-"],
            content,
            suffix=".pdf",
        )

    def legacy_doc_text(self, content: bytes) -> str:
        """Plain text of a legacy .doc file via textutil (macOS) or LibreOffice."""
        if self.is_available(self.config.textutil_cmd):
            return self.run_on_bytes(
                [self.config.textutil_cmd, "-convert", "txt", INPUT_PLACEHOLDER, "-stdout"],
                content,
                suffix=".doc",
            ).strip()

        soffice = next((cmd for cmd in self.config.soffice_cmds if self.is_available(cmd)), None)
        if soffice is None:
            raise ToolUnavailableError("textutil/soffice")

        with temp_file(content, ".doc") as path, tempfile.TemporaryDirectory() as out_dir:
            self.run(
                [soffice, "--headless", "--convert-to", "txt:Text", str(path), "--outdir", out_dir]
            )
            out_path = Path(out_dir) / f"{path.stem}.txt"
            if not out_path.exists():
                raise ToolExecutionError(soffice, "no output file produced")
            if os.path.getsize(out_path) > self.config.max_output_bytes:
                raise ToolExecutionError(soffice, "output too large")
            return out_path.read_text(encoding="utf-8", errors="ignore").strip()
