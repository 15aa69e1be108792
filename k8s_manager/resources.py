"""Workload and pod lookups."""

from pathlib import Path
from typing import Optional, Sequence

import yaml

from .config import WORKLOAD_KINDS
from .kubectl import Kubectl


def find_workload(
    kubectl: Kubectl,
    app: str,
    namespace_args: Sequence[str],
    kinds: Sequence[str] = WORKLOAD_KINDS,
) -> Optional[str]:
    """Find which workload kind an application is deployed as.

    Kinds are tried in order and the first one that exists wins.

    Args:
        kubectl: kubectl adapter
        app: Workload name
        namespace_args: Namespace arguments for kubectl
        kinds: Kinds to try, highest priority first

    Returns:
        The matching kind, or None if the application does not exist
    """
    for kind in kinds:
        if kubectl.probe("get", kind, app, *namespace_args):
            return kind
    return None


def app_pods(kubectl: Kubectl, app: str, namespace_args: Sequence[str]) -> list[str]:
    """Get the names of the pods labelled ``app=<app>``."""
    success, output = kubectl.capture(
        "get", "pods", *namespace_args,
        "-l", f"app={app}",
        "-o", "jsonpath={.items[*].metadata.name}",
    )
    if not success:
        return []
    return output.split()


def first_pod(kubectl: Kubectl, app: str, namespace_args: Sequence[str]) -> Optional[str]:
    """Get the first pod labelled ``app=<app>``, if any."""
    pods = app_pods(kubectl, app, namespace_args)
    return pods[0] if pods else None


def manifest_workload(path: Path) -> Optional[tuple[str, str]]:
    """Get the first workload defined in a manifest.

    Args:
        path: YAML manifest, possibly holding several documents

    Returns:
        Tuple of (lowercase kind, name), or None if the manifest defines no
        named workload or is not valid YAML
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            documents = list(yaml.safe_load_all(f))
    except (OSError, yaml.YAMLError):
        return None

    for doc in documents:
        if not isinstance(doc, dict):
            continue
        kind = str(doc.get("kind", "")).lower()
        metadata = doc.get("metadata")
        if kind in WORKLOAD_KINDS and isinstance(metadata, dict) and metadata.get("name"):
            return kind, str(metadata["name"])
    return None
