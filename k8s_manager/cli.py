"""CLI interface for k8s-manager."""

from functools import update_wrapper
from pathlib import Path
from typing import Optional

import click

from k8s_manager import __version__
from k8s_manager.commands import Manager
from k8s_manager.config import DEFAULT_LOG_TAIL, log_file_path
from k8s_manager.context import Options, current_context
from k8s_manager.kubectl import Kubectl
from k8s_manager.utils import die, log, setup_logging

HELP_OPTIONS = ("-h", "--help")
VALUE_OPTIONS = ("-n", "--namespace")


class ManagerGroup(click.Group):
    """Command group that keeps the shell script's calling conventions.

    ``-h COMMAND`` shows help for that command, commands are listed in
    definition order and an unknown command is an error with exit code 1.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        args = list(args)
        index = 0
        while index < len(args):
            token = args[index]
            if token in HELP_OPTIONS:
                topic = args[index + 1] if index + 1 < len(args) else None
                if topic in self.commands:
                    args[index:index + 2] = [topic, "--help"]
                break
            if token in VALUE_OPTIONS:
                index += 2
                continue
            if not token.startswith("-"):
                break
            index += 1
        return super().parse_args(ctx, args)

    def resolve_command(self, ctx: click.Context, args: list[str]):
        name = args[0]
        if self.get_command(ctx, name) is None and not name.startswith("-"):
            start_logging(ctx)
            die(f"Invalid command. Use '{ctx.command_path} help' for usage information.")
        return super().resolve_command(ctx, args)

    def list_commands(self, ctx: click.Context) -> list[str]:
        return list(self.commands)

    def format_epilog(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
        super().format_epilog(ctx, formatter)
        formatter.write_paragraph()
        formatter.write_text(f"Current context: {current_context() or 'None'}")


def start_logging(ctx: click.Context) -> None:
    """Open this run's log file."""
    options = ctx.ensure_object(Options)
    setup_logging(
        log_file_path(options.settings, options.timestamp),
        verbose=ctx.params.get("verbose", False),
    )


def preflight(kubectl: Kubectl) -> None:
    """Make sure kubectl is installed and can reach a cluster."""
    if not kubectl.available():
        die("kubectl could not be found. Please install kubectl first.")
    if not kubectl.probe("cluster-info"):
        die("Unable to connect to Kubernetes cluster. Please check your configuration.")


def pass_manager(f):
    """Run preflight checks, then pass the Manager to the command.

    A command returning False exits with status 1.
    """

    @click.pass_context
    def new_func(ctx: click.Context, *args, **kwargs):
        manager = ctx.find_object(Manager)
        preflight(manager.kubectl)
        if ctx.invoke(f, manager, *args, **kwargs) is False:
            ctx.exit(1)

    return update_wrapper(new_func, f)


def _set_namespace(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> None:
    if value is not None:
        ctx.ensure_object(Options).namespace = value


def _all_namespaces(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    if value:
        ctx.ensure_object(Options).namespace = ""


@click.group(
    cls=ManagerGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": list(HELP_OPTIONS)},
)
@click.option(
    "--namespace",
    "-n",
    metavar="NAMESPACE",
    expose_value=False,
    callback=_set_namespace,
    help="Specify namespace (default: current context namespace)",
)
@click.option(
    "--all-namespaces",
    "-a",
    is_flag=True,
    expose_value=False,
    callback=_all_namespaces,
    help="Operate across all namespaces",
)
@click.option("--verbose", "-v", is_flag=True, help="Show verbose output")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Kubernetes Management Script.

    Everyday kubectl tasks behind short commands. Output is shown on the
    console and appended to a log file under the temporary directory.
    """
    options = ctx.ensure_object(Options)
    options.verbose = verbose
    start_logging(ctx)

    if ctx.invoked_subcommand is None:
        die(f"Invalid command. Use '{ctx.command_path} help' for usage information.")

    settings = options.settings
    kubectl = Kubectl(settings.kubectl, verbose=verbose, timeout=settings.request_timeout)
    ctx.obj = Manager(kubectl, options, prog=ctx.command_path)


@main.command("list-apps")
@pass_manager
def list_apps(manager: Manager) -> bool:
    """List all deployed applications."""
    return manager.list_apps()


@main.command("app-status")
@click.argument("app", required=False)
@pass_manager
def app_status(manager: Manager, app: Optional[str]) -> bool:
    """Show detailed status of a specific application."""
    return manager.app_status(app)


@main.command("cluster-status")
@pass_manager
def cluster_status(manager: Manager) -> bool:
    """Show cluster health and resource usage."""
    return manager.cluster_status()


@main.command()
@click.argument("file", required=False)
@click.option("--wait", is_flag=True, help="Wait for the rollout instead of a fixed delay")
@pass_manager
def deploy(manager: Manager, file: Optional[str], wait: bool) -> bool:
    """Deploy a new application from YAML file.

    After a successful apply the status of the first workload in FILE is
    shown.
    """
    return manager.deploy(file, wait=wait)


@main.command()
@click.argument("app", required=False)
@pass_manager
def delete(manager: Manager, app: Optional[str]) -> bool:
    """Delete an application."""
    return manager.delete(app)


@main.command(context_settings={"ignore_unknown_options": True})
@click.argument("app", required=False)
@click.argument("replicas", metavar="NUM", required=False)
@pass_manager
def scale(manager: Manager, app: Optional[str], replicas: Optional[str]) -> bool:
    """Scale an application to NUM replicas (0 to pause)."""
    return manager.scale(app, replicas)


@main.command()
@click.argument("app", required=False)
@click.option("--wait", is_flag=True, help="Wait for the rollout instead of a fixed delay")
@pass_manager
def restart(manager: Manager, app: Optional[str], wait: bool) -> bool:
    """Restart an application."""
    return manager.restart(app, wait=wait)


@main.command()
@click.argument("app", required=False)
@click.option(
    "--tail",
    "-t",
    type=int,
    default=DEFAULT_LOG_TAIL,
    show_default=True,
    help="Number of lines to show",
)
@click.option("--follow/--no-follow", default=True, show_default=True, help="Stream new log lines")
@click.option("--previous", "-p", is_flag=True, help="Show previous container logs")
@pass_manager
def logs(manager: Manager, app: Optional[str], tail: int, follow: bool, previous: bool) -> bool:
    """Show logs for an application."""
    return manager.logs(app, tail=tail, follow=follow, previous=previous)


@main.command(
    "exec",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.argument("app", required=False)
@click.argument("command", nargs=-1, type=click.UNPROCESSED)
@pass_manager
def exec_(manager: Manager, app: Optional[str], command: tuple[str, ...]) -> bool:
    """Execute a command in the application's container."""
    return manager.exec(app, command)


@main.command("port-forward")
@click.argument("app", required=False)
@click.argument("ports", metavar="LOCAL:REMOTE", nargs=-1)
@pass_manager
def port_forward(manager: Manager, app: Optional[str], ports: tuple[str, ...]) -> bool:
    """Set up port forwarding."""
    return manager.port_forward(app, ports)


@main.command()
@click.argument("namespace", required=False)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for the backup file (default: current directory)",
)
@pass_manager
def backup(manager: Manager, namespace: Optional[str], output_dir: Optional[Path]) -> bool:
    """Backup all resources in a namespace."""
    return manager.backup(namespace, output_dir=output_dir)


@main.command("list-ns")
@pass_manager
def list_ns(manager: Manager) -> bool:
    """List all namespaces."""
    return manager.list_namespaces()


@main.command()
@pass_manager
def cleanup(manager: Manager) -> bool:
    """Cleanup completed/failed pods."""
    return manager.cleanup()


@main.command("help")
@click.argument("command", required=False)
@click.pass_context
def help_(ctx: click.Context, command: Optional[str]) -> None:
    """Show this help message."""
    group_ctx = ctx.parent
    target = group_ctx.command.get_command(group_ctx, command) if command else None
    if target is None:
        if command:
            log(f"Unknown command '{command}'", "warning")
        click.echo(group_ctx.get_help())
        return
    with click.Context(target, info_name=command, parent=group_ctx) as sub_ctx:
        click.echo(target.get_help(sub_ctx))


if __name__ == "__main__":
    main()
