"""Formatting engines that turn XSL-FO into paginated output."""

import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, Protocol

import structlog

from ..errors import ScreenError


logger = structlog.get_logger(__name__)

# Output type to FOP command-line output flag
FOP_OUTPUT_FLAGS: Dict[str, str] = {
    "application/pdf": "-pdf",
    "application/postscript": "-ps",
    "application/vnd.hp-PCL": "-pcl",
    "application/rtf": "-rtf",
    "text/plain": "-txt",
    "image/png": "-png",
    "image/tiff": "-tiff",
}


class TransformError(ScreenError):
    """Raised when an FO document cannot be transformed."""


class FormattingEngineError(ScreenError):
    """Raised when the engine itself is unusable (missing, unsupported output)."""


class FormattingEngine(Protocol):
    """Engine that formats an FO document into a binary content type."""

    def transform(self, fo: str, content_type: str) -> bytes:
        ...

    def clear_caches(self) -> None:
        ...


class FopCommandEngine:
    """Runs the Apache FOP command-line tool once per document."""

    def __init__(self, command: str = "fop", timeout: int = 120) -> None:
        self.command = command
        self.timeout = timeout

    def _executable(self) -> str:
        executable = shutil.which(self.command)
        if executable is None:
            raise FormattingEngineError(f"Formatting engine command not found: {self.command}")
        return executable

    def transform(self, fo: str, content_type: str) -> bytes:
        """Format ``fo`` into ``content_type``.

        Raises:
            FormattingEngineError: If the command is missing or the type unsupported
            TransformError: If FOP rejects the document or times out
        """
        output_flag = FOP_OUTPUT_FLAGS.get(content_type)
        if output_flag is None:
            raise FormattingEngineError(f"Unsupported output type for FOP: {content_type}")
        executable = self._executable()

        with tempfile.TemporaryDirectory(prefix="screenkit-fop-") as work_dir:
            source = Path(work_dir) / "input.fo"
            target = Path(work_dir) / "output"
            source.write_text(fo, encoding="utf-8")

            logger.debug("Running formatting engine", command=executable, content_type=content_type)
            try:
                completed = subprocess.run(
                    [executable, "-fo", str(source), output_flag, str(target)],
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                    check=False,
                )
            except subprocess.TimeoutExpired as e:
                raise TransformError(f"FOP timed out after {self.timeout}s") from e

            if completed.returncode != 0:
                raise TransformError(
                    f"FOP exited with code {completed.returncode}: {completed.stderr.strip()}"
                )
            if not target.is_file():
                raise TransformError("FOP produced no output")
            return target.read_bytes()

    def clear_caches(self) -> None:
        # every run is a fresh process, so there is no image cache to drop
        logger.debug("Cleared formatting engine caches", command=self.command)
