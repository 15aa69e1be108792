"""Tests for the installer."""

import os
from pathlib import Path

import httpx
import pytest
from click.testing import CliRunner

from k8s_manager import installer
from k8s_manager.config import Settings

SCRIPT = "#!/bin/sh\necho k8s-manager\n"


@pytest.fixture
def home(tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    return home


@pytest.mark.parametrize(
    "os_release, expected",
    [
        ('NAME="Ubuntu"\nID=ubuntu\nID_LIKE=debian\n', "ubuntu"),
        ('NAME="Rocky Linux"\nID="rocky"\n', "rocky"),
        ("NAME=Mystery\n", "unknown"),
    ],
)
def test_detect_os_from_os_release(tmp_path: Path, os_release: str, expected: str) -> None:
    (tmp_path / "etc").mkdir()
    (tmp_path / "etc" / "os-release").write_text(os_release)
    assert installer.detect_os(tmp_path) == expected


def test_detect_os_fallbacks(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    etc = tmp_path / "etc"
    etc.mkdir()
    monkeypatch.setattr(installer.platform, "system", lambda: "Darwin")
    assert installer.detect_os(tmp_path) == "darwin"

    (etc / "redhat-release").write_text("Red Hat Enterprise Linux\n")
    assert installer.detect_os(tmp_path) == "redhat"

    (etc / "debian_version").write_text("12.5\n")
    assert installer.detect_os(tmp_path) == "debian"


def test_get_pkg_manager(monkeypatch: pytest.MonkeyPatch) -> None:
    assert installer.get_pkg_manager("mint") == "apt-get"
    assert installer.get_pkg_manager("almalinux") == "dnf"
    assert installer.get_pkg_manager("plan9") == "unknown"

    monkeypatch.setattr(installer.shutil, "which", lambda name: "/opt/homebrew/bin/brew")
    assert installer.get_pkg_manager("darwin") == "brew"
    monkeypatch.setattr(installer.shutil, "which", lambda name: None)
    assert installer.get_pkg_manager("darwin") == "none"


def test_kubectl_install_steps() -> None:
    apt = [cmd for cmd, _ in installer.kubectl_install_steps("apt-get", "v1.31")]
    assert apt[-1] == "sudo apt-get install -y kubectl"
    assert any("pkgs.k8s.io/core:/stable:/v1.31/deb/" in cmd for cmd in apt)

    dnf = installer.kubectl_install_steps("dnf", "v1.30")
    assert "baseurl=https://pkgs.k8s.io/core:/stable:/v1.30/rpm/" in dnf[0][1]
    assert dnf[-1] == ("sudo dnf install -y kubectl", None)

    assert installer.kubectl_install_steps("brew", "v1.31") == [("brew install kubectl", None)]
    assert installer.kubectl_install_steps("unknown", "v1.31") == []


def test_pipe_mode_skips_unsupported_systems(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    """Test that pipe mode never prompts and skips unknown package managers."""
    commands = []
    monkeypatch.setattr(installer.shutil, "which", lambda name: None)
    monkeypatch.setattr(installer, "detect_os", lambda: "plan9")
    monkeypatch.setattr(installer, "run", lambda cmd, **kwargs: commands.append(cmd))

    installer.check_and_install_kubectl(Settings(), pipe_mode=True, assume_yes=False)
    assert commands == []
    assert "Skipping kubectl installation" in capsys.readouterr().out


def test_pipe_mode_installs_with_package_manager(monkeypatch: pytest.MonkeyPatch) -> None:
    commands = []
    monkeypatch.setattr(installer.shutil, "which", lambda name: None)
    monkeypatch.setattr(installer, "detect_os", lambda: "fedora")
    monkeypatch.setattr(installer, "run", lambda cmd, **kwargs: commands.append(cmd))

    installer.check_and_install_kubectl(Settings(), pipe_mode=True, assume_yes=False)
    assert commands == ["sudo tee /etc/yum.repos.d/kubernetes.repo", "sudo dnf install -y kubectl"]


def test_kubectl_already_installed(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    monkeypatch.setattr(installer.shutil, "which", lambda name: "/usr/local/bin/kubectl")
    monkeypatch.setattr(installer, "detect_os", pytest.fail)
    installer.check_and_install_kubectl(Settings(), pipe_mode=False, assume_yes=False)
    assert "kubectl is already installed" in capsys.readouterr().out


def test_on_path(tmp_path: Path) -> None:
    bin_dir = tmp_path / "bin"
    assert installer.on_path(bin_dir, os.pathsep.join(["/usr/bin", str(bin_dir)])) is True
    assert installer.on_path(bin_dir, "/usr/bin") is False


def test_ensure_on_path_is_idempotent(home: Path) -> None:
    """Test that a second run does not duplicate the PATH export."""
    bashrc = home / ".bashrc"
    bashrc.write_text("alias ll='ls -l'")
    bin_dir = home / ".local" / "bin"

    assert installer.ensure_on_path(bin_dir, home, "/usr/bin") == bashrc
    assert installer.ensure_on_path(bin_dir, home, "/usr/bin") == bashrc

    lines = bashrc.read_text().splitlines()
    assert lines == ["alias ll='ls -l'", f'export PATH="$PATH:{bin_dir}"']


def test_ensure_on_path_prefers_zshrc(home: Path) -> None:
    (home / ".zshrc").write_text("")
    (home / ".bashrc").write_text("")
    bin_dir = home / "bin"
    assert installer.ensure_on_path(bin_dir, home, "/usr/bin") == home / ".zshrc"
    assert (home / ".bashrc").read_text() == ""


def test_ensure_on_path_skips_when_present(home: Path) -> None:
    bashrc = home / ".bashrc"
    bashrc.write_text("")
    bin_dir = home / "bin"
    assert installer.ensure_on_path(bin_dir, home, str(bin_dir)) is None
    assert bashrc.read_text() == ""


def test_ensure_on_path_without_rc_file(home: Path) -> None:
    assert installer.ensure_on_path(home / "bin", home, "/usr/bin") is None


def test_ensure_bin_dir(tmp_path: Path) -> None:
    bin_dir = tmp_path / "a" / "b"
    installer.ensure_bin_dir(bin_dir)
    installer.ensure_bin_dir(bin_dir)
    assert bin_dir.is_dir()


def test_ensure_bin_dir_failure(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("")
    with pytest.raises(SystemExit) as exc:
        installer.ensure_bin_dir(blocker / "bin")
    assert exc.value.code == 1


def test_write_executable_replaces(tmp_path: Path) -> None:
    target = tmp_path / "k8s-manager"
    installer.write_executable(target, b"old")
    installer.write_executable(target, b"new")
    assert target.read_bytes() == b"new"
    assert os.access(target, os.X_OK)
    assert [p.name for p in tmp_path.iterdir()] == ["k8s-manager"]


def test_download(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url == "https://example.test/k8s-manager"
        return httpx.Response(200, content=SCRIPT.encode())

    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(
        installer.httpx,
        "get",
        lambda url, **kwargs: httpx.Client(transport=transport).get(url),
    )
    assert installer.download("https://example.test/k8s-manager", 5) == SCRIPT.encode()


def test_download_failure_is_fatal(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fail(url, **kwargs):
        raise httpx.ConnectError("no route to host")

    monkeypatch.setattr(installer.httpx, "get", fail)
    with pytest.raises(SystemExit) as exc:
        installer.install_script(Settings(), tmp_path / "k8s-manager", "https://example.test", False)
    assert exc.value.code == 1
    assert not (tmp_path / "k8s-manager").exists()


def test_install_twice_from_pipe(home: Path) -> None:
    """Test that two piped installs leave one executable and one PATH line."""
    (home / ".bashrc").write_text("")
    bin_dir = home / ".local" / "bin"
    runner = CliRunner()
    env = {"HOME": str(home), "PATH": "/usr/bin"}
    args = ["--bin-dir", str(bin_dir), "--skip-kubectl"]

    first = runner.invoke(installer.main, args, input=SCRIPT, env=env)
    second = runner.invoke(installer.main, args, input=SCRIPT, env=env)

    assert first.exit_code == 0, first.output
    assert second.exit_code == 0, second.output
    assert "Installation successful!" in second.output
    assert "source " in second.output
    assert [p.name for p in bin_dir.iterdir()] == ["k8s-manager"]
    target = bin_dir / "k8s-manager"
    assert target.read_text() == SCRIPT
    assert os.access(target, os.X_OK)
    assert (home / ".bashrc").read_text().count("export PATH=") == 1


def test_install_with_empty_pipe_fails(home: Path) -> None:
    bin_dir = home / "bin"
    result = CliRunner().invoke(
        installer.main,
        ["--bin-dir", str(bin_dir), "--skip-kubectl"],
        input="",
        env={"HOME": str(home), "PATH": "/usr/bin"},
    )
    assert result.exit_code == 1
    assert "nothing to install" in result.output


def test_ensure_on_path_unreadable_rc_file(home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that an rc file that cannot be read is a clean failure."""
    (home / ".bashrc").write_text("")

    def deny(self, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "read_text", deny)
    with pytest.raises(SystemExit) as exc:
        installer.ensure_on_path(home / "bin", home, "/usr/bin")
    assert exc.value.code == 1
