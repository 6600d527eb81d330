"""
Subprocess helpers for the external yt-dlp and ffmpeg binaries.

Commands never raise on failure: every outcome, including timeouts and a
missing binary, comes back as a ProcessResult so callers decide how to
clean up.
"""

import subprocess
from typing import List, NamedTuple


class ProcessResult(NamedTuple):
    """Outcome of an external command: (stdout, stderr, returncode)."""
    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def run_command(cmd: List[str], timeout: int) -> ProcessResult:
    """
    Run cmd without a shell and capture its text output.

    Args:
        cmd: Program and arguments
        timeout: Seconds before the process is killed

    Returns:
        ProcessResult; returncode is 1 with a descriptive stderr when the
        command timed out or could not be started
    """
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout
        )
        return ProcessResult(result.stdout, result.stderr, result.returncode)
    except subprocess.TimeoutExpired:
        return ProcessResult("", f"Command timed out after {timeout}s", 1)
    except OSError as e:
        return ProcessResult("", str(e), 1)
