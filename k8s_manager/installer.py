"""Installer for k8s-manager.

Installs the tool into the user's bin directory and, when kubectl is
missing, offers to install it with the OS package manager.

Usage:
    k8s-manager-install                 # download the latest release
    cat k8s-manager | k8s-manager-install   # install from a pipe
"""

import os
import platform
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Optional

import click
import httpx

from k8s_manager.config import KUBECTL_DOCS_URL, PACKAGE_MANAGERS, SHELL_RC_FILES, Settings
from k8s_manager.utils import console, die, log, run


def detect_os(root: Path = Path("/")) -> str:
    """Detect the operating system identifier.

    Args:
        root: Filesystem root holding /etc

    Returns:
        The ``ID`` from os-release, "debian", "redhat", "darwin" or "unknown"
    """
    os_release = root / "etc" / "os-release"
    if os_release.is_file():
        for line in os_release.read_text(encoding="utf-8").splitlines():
            key, _, value = line.partition("=")
            if key.strip() == "ID":
                return value.strip().strip("\"'") or "unknown"
        return "unknown"
    if (root / "etc" / "debian_version").is_file():
        return "debian"
    if (root / "etc" / "redhat-release").is_file():
        return "redhat"
    if platform.system() == "Darwin":
        return "darwin"
    return "unknown"


def get_pkg_manager(os_name: str) -> str:
    """Get the package manager for an OS identifier.

    Returns:
        "apt-get", "dnf", "brew", "none" (macOS without Homebrew) or "unknown"
    """
    manager = PACKAGE_MANAGERS.get(os_name, "unknown")
    if manager == "brew" and shutil.which("brew") is None:
        return "none"
    return manager


def is_pipe_mode() -> bool:
    """Check whether the installer is reading its payload from a pipe."""
    return sys.stdin is None or not sys.stdin.isatty()


def kubectl_install_steps(pkg_manager: str, version: str) -> list[tuple[str, Optional[str]]]:
    """Get the shell commands that install kubectl with a package manager.

    Args:
        pkg_manager: Package manager name
        version: Kubernetes minor version of the package repository (e.g. "v1.31")

    Returns:
        List of (command, stdin text) tuples; empty for unsupported managers
    """
    if pkg_manager == "apt-get":
        repo = f"https://pkgs.k8s.io/core:/stable:/{version}/deb/"
        keyring = "/etc/apt/keyrings/kubernetes-apt-keyring.gpg"
        return [
            ("sudo apt-get update", None),
            ("sudo apt-get install -y apt-transport-https ca-certificates curl gpg", None),
            ("sudo mkdir -p -m 755 /etc/apt/keyrings", None),
            (f"curl -fsSL {repo}Release.key | sudo gpg --dearmor --yes -o {keyring}", None),
            (
                "sudo tee /etc/apt/sources.list.d/kubernetes.list",
                f"deb [signed-by={keyring}] {repo} /\n",
            ),
            ("sudo apt-get update", None),
            ("sudo apt-get install -y kubectl", None),
        ]
    if pkg_manager == "dnf":
        repo = f"https://pkgs.k8s.io/core:/stable:/{version}/rpm/"
        repo_file = (
            "[kubernetes]\n"
            "name=Kubernetes\n"
            f"baseurl={repo}\n"
            "enabled=1\n"
            "gpgcheck=1\n"
            f"gpgkey={repo}repodata/repomd.xml.key\n"
        )
        return [
            ("sudo tee /etc/yum.repos.d/kubernetes.repo", repo_file),
            ("sudo dnf install -y kubectl", None),
        ]
    if pkg_manager == "brew":
        return [("brew install kubectl", None)]
    return []


def install_kubectl(pkg_manager: str, version: str, pipe_mode: bool) -> bool:
    """Install kubectl with the given package manager.

    Unsupported package managers only print manual instructions.

    Returns:
        True if kubectl was installed
    """
    steps = kubectl_install_steps(pkg_manager, version)
    if not steps:
        log("Please install kubectl manually following the instructions at:", "warning")
        console.print(KUBECTL_DOCS_URL, markup=False)
        if not pipe_mode:
            click.pause("Press Enter to continue with the installation, or Ctrl+C to abort...")
        return False

    log("Installing kubectl...")
    for cmd, stdin_text in steps:
        try:
            run(cmd, input=stdin_text, capture=stdin_text is not None)
        except subprocess.CalledProcessError as e:
            log(f"Failed to install kubectl: {e}", "error")
            return False
    log("kubectl installed", "success")
    return True


def check_and_install_kubectl(settings: Settings, pipe_mode: bool, assume_yes: bool) -> None:
    """Offer to install kubectl when it is missing."""
    if shutil.which(settings.kubectl) is not None:
        log("kubectl is already installed", "success")
        return

    log("kubectl not found!", "warning")
    os_name = detect_os()
    pkg_manager = get_pkg_manager(os_name)

    if pipe_mode:
        if pkg_manager in ("unknown", "none"):
            log("Skipping kubectl installation in pipe mode for unsupported system", "warning")
            return
        install_kubectl(pkg_manager, settings.kubectl_version, pipe_mode)
        return

    if assume_yes or click.confirm("Would you like to install kubectl?", default=True):
        install_kubectl(pkg_manager, settings.kubectl_version, pipe_mode)


def ensure_bin_dir(bin_dir: Path) -> None:
    """Create the bin directory if it does not exist yet."""
    if bin_dir.is_dir():
        return
    try:
        bin_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        die(f"Could not create {bin_dir}: {e}")
    log(f"Created {bin_dir}")


def on_path(bin_dir: Path, path_env: Optional[str] = None) -> bool:
    """Check whether ``bin_dir`` is one of the PATH entries."""
    if path_env is None:
        path_env = os.environ.get("PATH", "")
    entries = [Path(entry) for entry in path_env.split(os.pathsep) if entry]
    return bin_dir in entries


def find_shell_rc(home: Path) -> Optional[Path]:
    """Get the first existing shell startup file in the user's home."""
    for name in SHELL_RC_FILES:
        candidate = home / name
        if candidate.is_file():
            return candidate
    return None


def path_export_line(bin_dir: Path) -> str:
    """Get the line that adds ``bin_dir`` to PATH."""
    return f'export PATH="$PATH:{bin_dir}"'


def ensure_on_path(bin_dir: Path, home: Path, path_env: Optional[str] = None) -> Optional[Path]:
    """Add ``bin_dir`` to PATH in the user's shell startup file.

    Nothing is written when the directory is already on PATH or the
    startup file already has the export line.

    Args:
        bin_dir: Directory to add
        home: User home directory
        path_env: PATH to check (defaults to the current environment)

    Returns:
        The startup file the user should source, or None if PATH already
        covers ``bin_dir`` or no startup file exists
    """
    if on_path(bin_dir, path_env):
        return None

    rc_file = find_shell_rc(home)
    if rc_file is None:
        log(f"No shell startup file found, add {bin_dir} to your PATH manually", "warning")
        return None

    line = path_export_line(bin_dir)
    try:
        content = rc_file.read_text(encoding="utf-8", errors="replace")
        if line in content.splitlines():
            return rc_file
        with open(rc_file, "a", encoding="utf-8") as f:
            if content and not content.endswith("\n"):
                f.write("\n")
            f.write(line + "\n")
    except OSError as e:
        die(f"Could not update {rc_file}: {e}")
    log(f"Added {bin_dir} to PATH in {rc_file}")
    return rc_file


def download(url: str, timeout: float) -> bytes:
    """Download the release asset at ``url``."""
    response = httpx.get(url, follow_redirects=True, timeout=timeout)
    response.raise_for_status()
    return response.content


def write_executable(target: Path, payload: bytes) -> None:
    """Atomically replace ``target`` with ``payload`` and mark it executable."""
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.chmod(tmp_name, 0o755)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def install_script(settings: Settings, target: Path, url: str, pipe_mode: bool) -> None:
    """Fetch the tool and install it at ``target``."""
    name = settings.install_name
    if pipe_mode:
        log(f"Installing {name} from pipe...")
        payload = sys.stdin.buffer.read()
    else:
        log(f"Downloading {name}...")
        try:
            payload = download(url, settings.download_timeout)
        except httpx.HTTPError as e:
            die(f"Download failed: {e}")

    if not payload:
        die("Installation failed: nothing to install")

    try:
        write_executable(target, payload)
    except OSError as e:
        die(f"Installation failed: {e}")


@click.command()
@click.option(
    "--bin-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory to install into (default: ~/.local/bin)",
)
@click.option("--url", default=None, help="Release asset to download")
@click.option("--skip-kubectl", is_flag=True, help="Do not check for kubectl")
@click.option("--yes", "-y", is_flag=True, help="Answer yes to all prompts")
def main(bin_dir: Optional[Path], url: Optional[str], skip_kubectl: bool, yes: bool) -> None:
    """Install k8s-manager into your local bin directory."""
    settings = Settings()
    bin_dir = (bin_dir or settings.bin_dir).expanduser()
    target = bin_dir / settings.install_name
    pipe_mode = is_pipe_mode()
    home = Path.home()

    ensure_bin_dir(bin_dir)
    rc_file = ensure_on_path(bin_dir, home)

    if not skip_kubectl:
        check_and_install_kubectl(settings, pipe_mode, yes)

    install_script(settings, target, url or settings.install_url, pipe_mode)

    if not os.access(target, os.X_OK):
        die("Installation failed")

    name = settings.install_name
    log("Installation successful!", "success")
    console.print(f"The script has been installed to: {target}", markup=False)
    console.print()
    console.print(f"To use the script, run: {name} [command] [options]", markup=False)
    console.print(f"For help, run: {name} help", markup=False)

    if rc_file is not None:
        console.print()
        console.print("[green]NOTE:[/green] Please restart your shell or run:")
        console.print(f"source {rc_file}", markup=False)


if __name__ == "__main__":
    main()
