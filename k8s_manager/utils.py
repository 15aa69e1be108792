"""Console output, log file and subprocess helpers for k8s-manager."""

import logging
import subprocess
import sys
from pathlib import Path
from typing import NoReturn, Optional

from rich.console import Console
from rich.text import Text

from .config import LOG_DATE_FORMAT

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

logger = logging.getLogger("k8s_manager")
output_logger = logging.getLogger("k8s_manager.output")

console = Console(highlight=False)

LEVELS = {
    "info": logging.INFO,
    "success": SUCCESS,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "debug": logging.DEBUG,
}

COLORS = {
    "info": "blue",
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "debug": "dim",
}

_console_threshold = logging.INFO


def setup_logging(log_file: Path, verbose: bool = False) -> None:
    """Send messages and raw kubectl output to ``log_file``.

    Any handlers left over from an earlier invocation in the same process
    are closed first.

    Args:
        log_file: File to append to
        verbose: Also show debug messages on the console
    """
    global _console_threshold
    _console_threshold = logging.DEBUG if verbose else logging.INFO

    for target in (logger, output_logger):
        for handler in list(target.handlers):
            if isinstance(handler, logging.FileHandler):
                target.removeHandler(handler)
                handler.close()

    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("[%(asctime)s] [%(levelname)s] %(message)s", LOG_DATE_FORMAT)
    )
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    raw = logging.FileHandler(log_file, encoding="utf-8")
    raw.setFormatter(logging.Formatter("%(message)s"))
    raw.terminator = ""
    output_logger.addHandler(raw)
    output_logger.setLevel(logging.INFO)
    output_logger.propagate = False


def log(msg: str, level: str = "info") -> None:
    """Print a colored message and mirror it into the log file."""
    levelno = LEVELS.get(level, logging.INFO)
    logger.log(levelno, msg)
    if levelno < _console_threshold:
        return
    label = logging.getLevelName(levelno)
    console.print(
        Text.assemble((f"[{label}]", COLORS.get(level, "blue")), " ", msg),
        soft_wrap=True,
    )


def log_section(title: str, first: bool = False) -> None:
    """Print a section header."""
    if not first:
        console.print()
    console.print(Text(f"{title}:", style="bold yellow"))


def echo_output(text: str) -> None:
    """Copy kubectl output to the console and the log file unchanged."""
    console.out(text, end="", highlight=False)
    output_logger.info(text)


def die(msg: str, code: int = 1) -> NoReturn:
    """Log an error message and exit."""
    log(msg, "error")
    sys.exit(code)


def run(
    cmd: str,
    check: bool = True,
    capture: bool = False,
    timeout: Optional[int] = None,
    input: Optional[str] = None,
) -> subprocess.CompletedProcess:
    """Run a shell command.

    Args:
        cmd: Command to run
        check: Raise exception on non-zero exit
        capture: Capture stdout/stderr
        timeout: Timeout in seconds
        input: Text fed to the command's stdin

    Returns:
        CompletedProcess instance
    """
    logger.debug("Running: %s", cmd)
    return subprocess.run(
        cmd,
        shell=True,
        check=check,
        capture_output=capture,
        text=True,
        timeout=timeout,
        input=input,
    )


def run_quiet(cmd: list[str], timeout: Optional[int] = None) -> tuple[bool, str]:
    """Run a command and return success status and output.

    Args:
        cmd: Command and arguments
        timeout: Timeout in seconds

    Returns:
        Tuple of (success, output)
    """
    try:
        result = subprocess.run(
            cmd,
            check=True,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
        return True, result.stdout
    except subprocess.CalledProcessError as e:
        return False, e.stderr or e.stdout or str(e)
    except subprocess.TimeoutExpired:
        return False, "Command timed out"
