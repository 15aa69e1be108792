"""Command implementations for k8s-manager.

Each public method of :class:`Manager` is one CLI command. Methods return
True when the delegated kubectl call succeeded and False when it failed.
Missing arguments and missing resources end the process through ``die``.
"""

import time
from pathlib import Path
from typing import Optional, Sequence

from .config import (
    APP_LISTINGS,
    BACKUP_RESOURCES,
    CAPACITY_RESOURCES,
    CLEANUP_PHASES,
    DEFAULT_LOG_TAIL,
    DEFAULT_NAMESPACE,
    INSTALL_NAME,
    SCALABLE_KINDS,
    WORKLOAD_KINDS,
    backup_file_name,
)
from .context import Options
from .kubectl import Kubectl, stdin_is_tty
from .resources import app_pods, find_workload, first_pod, manifest_workload
from .utils import console, die, echo_output, log, log_section

USAGE = {
    "app-status": "app-status [APP]",
    "deploy": "deploy [FILE]",
    "delete": "delete [APP]",
    "scale": "scale [APP] [NUM]",
    "restart": "restart [APP]",
    "logs": "logs [APP]",
    "exec": "exec [APP] [CMD]",
    "port-forward": "port-forward [APP] [LOCAL:REMOTE]",
}


class Manager:
    """Runs k8s-manager commands against the current cluster."""

    def __init__(self, kubectl: Kubectl, options: Options, prog: str = INSTALL_NAME) -> None:
        """Initialize the manager.

        Args:
            kubectl: kubectl adapter used for every call
            options: Options resolved from the global flags
            prog: Program name shown in usage messages
        """
        self.kubectl = kubectl
        self.options = options
        self.prog = prog

    def _usage_error(self, what: str, command: str) -> None:
        die(f"{what} not provided. Usage: {self.prog} {USAGE[command]}")

    def _not_found(self, app: str) -> None:
        die(f"Application '{app}' not found in namespace '{self.options.namespace_label}'")

    def _require_workload(self, app: str, kinds: Sequence[str] = WORKLOAD_KINDS) -> str:
        kind = find_workload(self.kubectl, app, self.options.namespace_args(), kinds)
        if kind is None:
            self._not_found(app)
        return kind

    def _require_pod(self, app: str) -> str:
        pod = first_pod(self.kubectl, app, self.options.namespace_args())
        if pod is None:
            die(f"No pods found for application '{app}' in namespace '{self.options.namespace_label}'")
        return pod

    def _settle(self, kind: str, app: str, wait: bool) -> None:
        """Give a changed workload time to settle, then show its status."""
        settings = self.options.settings
        if wait:
            log(f"Waiting for {kind}/{app} to roll out...")
            if not self.kubectl.stream(
                "rollout", "status", f"{kind}/{app}",
                *self.options.namespace_args(),
                f"--timeout={settings.rollout_timeout}s",
            ):
                log(f"Rollout of {app} did not complete", "warning")
        else:
            time.sleep(settings.status_delay)
        if find_workload(self.kubectl, app, self.options.namespace_args(), [kind]) is None:
            log(f"Status for {app} is not available in namespace '{self.options.namespace_label}'", "warning")
            return
        self.app_status(app)

    def list_apps(self) -> bool:
        """List deployed workloads, pods, services and ingresses."""
        ns = self.options.namespace_args(all_by_default=True)
        log("Listing deployed applications...")
        for index, (title, resource) in enumerate(APP_LISTINGS):
            log_section(title, first=index == 0)
            self.kubectl.stream("get", resource, *ns, "-o", "wide")
        return True

    def app_status(self, app: Optional[str]) -> bool:
        """Show detailed status of one application."""
        if not app:
            self._usage_error("Application name", "app-status")
        ns = self.options.namespace_args()

        log(f"Getting status for application: {app}")
        kind = self._require_workload(app)

        log_section("BASIC INFO", first=True)
        _, output = self.kubectl.capture("get", "all", *ns)
        matching = [line for line in output.splitlines() if app in line]
        if matching:
            echo_output("\n".join(matching) + "\n")

        log_section("DETAILED STATUS")
        self.kubectl.stream("describe", kind, app, *ns)

        log_section("PODS")
        self.kubectl.stream("get", "pods", *ns, "-l", f"app={app}", "-o", "wide")

        log_section("EVENTS")
        self.kubectl.stream(
            "get", "events", *ns, "--field-selector", f"involvedObject.name={app}"
        )

        log_section("RESOURCE USAGE")
        for pod in app_pods(self.kubectl, app, ns):
            console.print(f"\nPod: {pod}", markup=False)
            self.kubectl.stream("top", "pod", pod, *ns)
        return True

    def cluster_status(self) -> bool:
        """Show node health, resource usage and a cluster-wide resource summary."""
        log("Getting cluster status...")

        log_section("NODES", first=True)
        self.kubectl.stream("get", "nodes", "-o", "wide")

        log_section("NODE RESOURCE USAGE")
        self.kubectl.stream("top", "nodes")

        log_section("CLUSTER INFO")
        self.kubectl.stream("cluster-info")

        log_section("COMPONENT STATUS")
        self.kubectl.stream("get", "componentstatuses")

        log_section("RESOURCE CAPACITY")
        self.kubectl.stream("get", CAPACITY_RESOURCES, "--all-namespaces")
        return True

    def deploy(self, file: Optional[str], wait: bool = False) -> bool:
        """Apply a manifest, then show the status of the workload it defines."""
        if not file:
            self._usage_error("YAML file", "deploy")
        path = Path(file)
        if not path.is_file():
            die(f"File {file} not found")

        log(f"Deploying application from {file}...")
        if not self.kubectl.stream("apply", "-f", file, *self.options.namespace_args()):
            log("Failed to deploy application", "error")
            return False

        log("Application deployed successfully", "success")
        target = manifest_workload(path)
        if target:
            kind, name = target
            self._settle(kind, name, wait)
        return True

    def delete(self, app: Optional[str]) -> bool:
        """Delete an application's workload."""
        if not app:
            self._usage_error("Application name", "delete")

        log(f"Deleting application: {app}")
        kind = self._require_workload(app)
        if self.kubectl.stream("delete", kind, app, *self.options.namespace_args()):
            log(f"Application {app} deleted successfully", "success")
            return True
        log(f"Failed to delete application {app}", "error")
        return False

    def scale(self, app: Optional[str], replicas: Optional[str]) -> bool:
        """Scale an application; zero replicas pauses it."""
        if not app or replicas is None or replicas == "":
            self._usage_error("Application name or replica count", "scale")
        if not (replicas.isascii() and replicas.isdigit()):
            die(f"Replica count must be a non-negative integer, got '{replicas}'")
        count = int(replicas)

        log(f"Scaling application {app} to {count} replicas...")
        kind = self._require_workload(app, SCALABLE_KINDS)
        if not self.kubectl.stream(
            "scale", kind, app, f"--replicas={count}", *self.options.namespace_args()
        ):
            log(f"Failed to scale application {app}", "error")
            return False

        if count == 0:
            log(f"Application {app} paused (scaled to 0 replicas)", "success")
        else:
            log(f"Application {app} scaled to {count} replicas", "success")
        return True

    def restart(self, app: Optional[str], wait: bool = False) -> bool:
        """Trigger a rolling restart, then show the application's status."""
        if not app:
            self._usage_error("Application name", "restart")

        log(f"Restarting application: {app}")
        kind = self._require_workload(app)
        if not self.kubectl.stream(
            "rollout", "restart", kind, app, *self.options.namespace_args()
        ):
            log(f"Failed to restart application {app}", "error")
            return False

        log(f"Application {app} restart initiated", "success")
        self._settle(kind, app, wait)
        return True

    def logs(
        self,
        app: Optional[str],
        tail: int = DEFAULT_LOG_TAIL,
        follow: bool = True,
        previous: bool = False,
    ) -> bool:
        """Show logs from the application's first pod."""
        if not app:
            self._usage_error("Application name", "logs")

        log(f"Showing logs for application: {app}")
        pod = self._require_pod(app)
        args = ["logs", pod, *self.options.namespace_args(), f"--tail={tail}"]
        if follow:
            args.append("-f")
        if previous:
            args.append("--previous")
        return self.kubectl.stream(*args)

    def exec(self, app: Optional[str], command: Sequence[str]) -> bool:
        """Run a command in the application's first pod."""
        if not app or not command:
            self._usage_error("Application name or command", "exec")

        log(f"Executing command in application: {app}")
        pod = self._require_pod(app)
        ns = self.options.namespace_args()
        if stdin_is_tty():
            success = self.kubectl.attach("exec", "-it", pod, *ns, "--", *command)
        else:
            success = self.kubectl.stream("exec", "-i", pod, *ns, "--", *command)
        if not success:
            log(f"Command failed in application {app}", "error")
        return success

    def port_forward(self, app: Optional[str], ports: Sequence[str]) -> bool:
        """Forward local ports to the application's first pod until interrupted."""
        if not app or not ports:
            self._usage_error("Application name or port mapping", "port-forward")

        log(f"Setting up port forwarding for application: {app}")
        pod = self._require_pod(app)
        return self.kubectl.stream("port-forward", pod, *self.options.namespace_args(), *ports)

    def backup(self, namespace: Optional[str] = None, output_dir: Optional[Path] = None) -> bool:
        """Write a namespace's resources, config maps and secrets to a YAML file."""
        if not namespace:
            namespace = self.options.namespace or DEFAULT_NAMESPACE
            log(f"No namespace specified, using '{namespace}'", "warning")

        backup_file = (output_dir or Path.cwd()) / backup_file_name(namespace, self.options.timestamp)
        log(f"Backing up resources in namespace: {namespace} to {backup_file}")

        success = True
        try:
            for index, resources in enumerate(BACKUP_RESOURCES):
                if index:
                    with open(backup_file, "a", encoding="utf-8") as f:
                        f.write("---\n")
                if not self.kubectl.write_to(
                    backup_file, "get", resources, "-n", namespace, "-o", "yaml", append=index > 0
                ):
                    success = False
        except OSError as e:
            die(f"Could not write backup file {backup_file}: {e.strerror or e}")

        if success:
            log(f"Backup completed successfully: {backup_file}", "success")
        else:
            log("Failed to complete backup", "error")
        return success

    def list_namespaces(self) -> bool:
        """List all namespaces."""
        log("Listing all namespaces...")
        return self.kubectl.stream("get", "namespaces", "-o", "wide")

    def cleanup(self) -> bool:
        """Delete pods that have succeeded or failed."""
        ns = self.options.namespace_args(all_by_default=True)
        log("Cleaning up completed/failed pods...")

        results = [
            self.kubectl.stream("delete", "pod", *ns, f"--field-selector=status.phase=={phase}")
            for phase in CLEANUP_PHASES
        ]
        if all(results):
            log("Cleanup completed", "success")
            return True
        log("Cleanup finished with errors", "error")
        return False
