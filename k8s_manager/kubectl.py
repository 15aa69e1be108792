"""Thin adapter around the kubectl binary."""

import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional

from rich.text import Text

from .utils import console, die, echo_output, log, logger, run_quiet


class Kubectl:
    """Runs kubectl and routes its output to the console and the log file.

    Every method takes the kubectl arguments without the binary name.
    Methods that run a command to completion report success as a bool;
    a missing binary is fatal.
    """

    def __init__(
        self,
        binary: str = "kubectl",
        verbose: bool = False,
        timeout: Optional[int] = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            binary: kubectl executable name or path
            verbose: Echo each command line before running it
            timeout: Timeout in seconds for probes and captured calls
        """
        self.binary = binary
        self.verbose = verbose
        self.timeout = timeout

    def available(self) -> bool:
        """Check whether the kubectl binary can be found."""
        return shutil.which(self.binary) is not None

    def command(self, *args: str) -> list[str]:
        """Build the full command line for ``args``."""
        return [self.binary, *args]

    def _announce(self, cmd: list[str]) -> None:
        line = " ".join(cmd)
        logger.debug("Running: %s", line)
        if self.verbose:
            console.print(Text(f"$ {line}", style="dim"), soft_wrap=True)

    def _missing(self) -> None:
        die(f"{self.binary} could not be found. Please install kubectl first.")

    def probe(self, *args: str) -> bool:
        """Run a command silently and report whether it succeeded."""
        success, _ = self.capture(*args)
        return success

    def capture(self, *args: str) -> tuple[bool, str]:
        """Run a command and return its success and stdout (stderr on failure)."""
        cmd = self.command(*args)
        self._announce(cmd)
        try:
            return run_quiet(cmd, timeout=self.timeout)
        except FileNotFoundError:
            self._missing()

    def stream(self, *args: str) -> bool:
        """Run a command, copying its combined output to console and log file.

        Blocks until the command exits. Ctrl-C stops the command and counts
        as success, which is how followed logs and port-forwards end.
        """
        cmd = self.command(*args)
        self._announce(cmd)
        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except FileNotFoundError:
            self._missing()

        try:
            for line in process.stdout:
                echo_output(line)
            return process.wait() == 0
        except KeyboardInterrupt:
            process.terminate()
            process.wait()
            console.print()
            log("Stopped", "warning")
            return True
        finally:
            process.stdout.close()

    def attach(self, *args: str) -> bool:
        """Run a command attached to this terminal (no output capture)."""
        cmd = self.command(*args)
        self._announce(cmd)
        try:
            return subprocess.run(cmd).returncode == 0
        except FileNotFoundError:
            self._missing()
        except KeyboardInterrupt:
            return True

    def write_to(self, path: Path, *args: str, append: bool = False) -> bool:
        """Run a command with stdout written to ``path``.

        Errors are copied to the console and log file.
        """
        cmd = self.command(*args)
        self._announce(cmd)
        mode = "a" if append else "w"
        with open(path, mode, encoding="utf-8") as f:
            try:
                result = subprocess.run(
                    cmd,
                    stdout=f,
                    stderr=subprocess.PIPE,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                )
            except FileNotFoundError:
                self._missing()
        if result.stderr:
            echo_output(result.stderr)
        return result.returncode == 0


def stdin_is_tty() -> bool:
    """Check whether stdin is an interactive terminal."""
    return sys.stdin is not None and sys.stdin.isatty()
