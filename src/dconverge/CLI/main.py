"""
Command Line Interface for dconverge.
"""
import logging
import os

import click
from docker.errors import DockerException

from ..MANAGERS.progress import ConsoleProgressWriter
from ..MANAGERS.service_orchestrator import ServiceOrchestrator
from ..MODELS.convergence_options import RecreatePolicy, RestartOptions, UpOptions
from ..MODELS.errors import ConvergenceError
from ..PARSERS.compose_parser import ComposeParser
from ..RUNTIME.docker_client import DockerRuntimeClient
from ..settings import settings


def make_client():
    """
    Runtime used by the commands, configured from DOCKER_HOST and friends.
    """
    return DockerRuntimeClient()


def _run(ctx, operation):
    """
    Parses the compose file and runs `operation(orchestrator, project)`.
    """
    file = ctx.obj['file']
    if not os.path.exists(file):
        raise click.ClickException(f"{file} not found.")
    try:
        project = ComposeParser(project_name=ctx.obj['project_name']).parse(file)
        orchestrator = ServiceOrchestrator(make_client(), writer=ConsoleProgressWriter())
        operation(orchestrator, project)
    except (ConvergenceError, DockerException) as e:
        raise click.ClickException(str(e))


@click.group()
@click.option('--file', '-f', default='docker-compose.yml', help='Compose file path')
@click.option('--project-name', '-p', default=None, help='Project name')
@click.option('--log-level', default=settings.log_level, show_default=True,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False))
@click.pass_context
def cli(ctx, file, project_name, log_level):
    """
    dconverge - converge containers toward a compose file.
    """
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    ctx.ensure_object(dict)
    ctx.obj['file'] = file
    ctx.obj['project_name'] = project_name


@cli.command()
@click.option('--force-recreate', is_flag=True, help='Recreate containers even if their configuration has not changed')
@click.option('--no-recreate', is_flag=True, help='Keep existing containers even if their configuration changed')
@click.option('--no-start', is_flag=True, help="Create containers but don't start them")
@click.option('--timeout', '-t', type=float, default=None, help='Shutdown timeout in seconds')
@click.argument('services', nargs=-1)
@click.pass_context
def up(ctx, force_recreate, no_recreate, no_start, timeout, services):
    """Create and start services defined in the compose file."""
    if force_recreate and no_recreate:
        raise click.UsageError("--force-recreate and --no-recreate are incompatible")
    recreate = RecreatePolicy.DIVERGED
    if force_recreate:
        recreate = RecreatePolicy.FORCE
    elif no_recreate:
        recreate = RecreatePolicy.NEVER
    options = UpOptions(services=list(services), recreate=recreate, timeout=timeout, no_start=no_start)
    _run(ctx, lambda orchestrator, project: orchestrator.up(project, options))


@cli.command()
@click.argument('services', nargs=-1)
@click.pass_context
def start(ctx, services):
    """Start existing containers."""
    _run(ctx, lambda orchestrator, project: orchestrator.start(project, list(services)))


@cli.command()
@click.option('--timeout', '-t', type=float, default=None, help='Shutdown timeout in seconds')
@click.argument('services', nargs=-1)
@click.pass_context
def restart(ctx, timeout, services):
    """Restart service containers."""
    options = RestartOptions(services=list(services), timeout=timeout)
    _run(ctx, lambda orchestrator, project: orchestrator.restart(project, options))


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
