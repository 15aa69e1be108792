"""Configuration constants and settings for k8s-manager."""

import tempfile
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Name the tool is installed and invoked as
INSTALL_NAME = "k8s-manager"

# Workload kinds probed for a named application, in priority order
WORKLOAD_KINDS = ["deployment", "statefulset", "daemonset"]

# Kinds that carry a replica count
SCALABLE_KINDS = ["deployment", "statefulset"]

# Sections shown by list-apps
APP_LISTINGS = [
    ("DEPLOYMENTS", "deployments"),
    ("STATEFULSETS", "statefulsets"),
    ("DAEMONSETS", "daemonsets"),
    ("PODS", "pods"),
    ("SERVICES", "services"),
    ("INGRESSES", "ingress"),
]

# Resource types summarised by cluster-status
CAPACITY_RESOURCES = "pod,svc,ing,deploy,sts,ds,pvc"

# Pod phases removed by cleanup
CLEANUP_PHASES = ["Succeeded", "Failed"]

# Resources written by backup, in file order
BACKUP_RESOURCES = ["all", "configmap,secret"]

DEFAULT_NAMESPACE = "default"
DEFAULT_LOG_TAIL = 50

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# OS identifier -> package manager used to install kubectl
PACKAGE_MANAGERS = {
    "ubuntu": "apt-get",
    "debian": "apt-get",
    "pop": "apt-get",
    "mint": "apt-get",
    "fedora": "dnf",
    "rhel": "dnf",
    "centos": "dnf",
    "rocky": "dnf",
    "almalinux": "dnf",
    "darwin": "brew",
}

# Shell startup files checked for the PATH export, first existing wins
SHELL_RC_FILES = [".zshrc", ".bashrc", ".profile"]

KUBECTL_DOCS_URL = "https://kubernetes.io/docs/tasks/tools/install-kubectl/"


class Settings(BaseSettings):
    """Runtime settings, overridable through K8S_MANAGER_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="K8S_MANAGER_", case_sensitive=False)

    # kubectl
    kubectl: str = "kubectl"
    request_timeout: int = 15
    rollout_timeout: int = 120

    # Seconds to wait before showing status after deploy/restart
    status_delay: float = 3.0

    # Logging
    log_dir: Path = Path(tempfile.gettempdir())

    # Installer
    bin_dir: Path = Path.home() / ".local" / "bin"
    install_name: str = INSTALL_NAME
    install_url: str = (
        "https://github.com/k8s-manager/k8s-manager/releases/latest/download/k8s-manager"
    )
    kubectl_version: str = "v1.31"
    download_timeout: float = 60.0


def log_file_path(settings: Settings, timestamp: str) -> Path:
    """Get the log file for an invocation started at ``timestamp``."""
    return settings.log_dir / f"k8s_manage_{timestamp}.log"


def backup_file_name(namespace: str, timestamp: str) -> str:
    """Get the backup file name for a namespace."""
    return f"k8s_backup_{namespace}_{timestamp}.yaml"
