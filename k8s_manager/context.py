"""Invocation options and kubeconfig context lookup."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from kubernetes import config as kube_config

from .config import DEFAULT_NAMESPACE, TIMESTAMP_FORMAT, Settings


def new_timestamp() -> str:
    """Generate the timestamp shared by an invocation's log and backup files."""
    return datetime.now().strftime(TIMESTAMP_FORMAT)


@dataclass
class Options:
    """Options resolved from the global flags, passed to every command.

    An empty ``namespace`` means none was selected.
    """

    namespace: str = ""
    verbose: bool = False
    timestamp: str = field(default_factory=new_timestamp)
    settings: Settings = field(default_factory=Settings)

    def namespace_args(self, all_by_default: bool = False) -> list[str]:
        """Get the kubectl namespace arguments for a command.

        Args:
            all_by_default: Span all namespaces when none is selected,
                instead of using the context's namespace

        Returns:
            ``-n <namespace>``, ``--all-namespaces`` or nothing
        """
        if self.namespace:
            return ["-n", self.namespace]
        if all_by_default:
            return ["--all-namespaces"]
        return []

    @property
    def namespace_label(self) -> str:
        """Namespace name used in messages."""
        return self.namespace or DEFAULT_NAMESPACE


def current_context(kubeconfig: Optional[str] = None) -> Optional[str]:
    """Get the name of the active kubeconfig context, if there is one."""
    try:
        _, active = kube_config.list_kube_config_contexts(config_file=kubeconfig)
    except (kube_config.ConfigException, OSError):
        return None
    if not active:
        return None
    return active.get("name")
