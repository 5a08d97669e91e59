"""
Runs external tools (git, terraform, trivy) without a shell
"""

import logging
import shutil
import subprocess
from typing import List, Optional

from .errors import CommandError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def is_installed(executable: str) -> bool:
    return shutil.which(executable) is not None


def run_command(argv: List[str], cwd: Optional[str] = None,
                timeout: float = DEFAULT_TIMEOUT,
                check: bool = True) -> subprocess.CompletedProcess:
    """Run argv and capture its text output.

    Raises CommandError when the executable is missing, the call times
    out, or (with check=True) it exits non-zero. The error message is the
    tool's stderr when it wrote any.
    """
    if not argv:
        raise ValueError("run_command requires at least one argument")
    command = " ".join(argv[:2])

    if not is_installed(argv[0]):
        raise CommandError(command, f"executable not found on PATH: {argv[0]}")

    logger.debug(f"Running {' '.join(argv)} (cwd={cwd}, timeout={timeout:.1f}s)")
    try:
        result = subprocess.run(
            argv,
            cwd=cwd,
            timeout=timeout,
            capture_output=True,
            text=True,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandError(command, f"timed out after {timeout:.1f}s") from e
    except OSError as e:
        raise CommandError(command, str(e)) from e

    if check and result.returncode != 0:
        detail = (result.stderr or result.stdout or "").strip()
        raise CommandError(command, detail or f"exit status {result.returncode}",
                           returncode=result.returncode)
    return result
