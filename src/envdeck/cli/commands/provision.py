"""CLI commands for provisioning dev center environments.

Implements the 'envdeck provision' command group: create or update an
environment (``up``), delete it (``down``), and show its outputs (``show``).
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Coroutine, Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, TypeVar

import click

from envdeck.config.defaults import (
    DEFAULT_ENVIRONMENT_ENV_VAR,
    PROVISION_OUTPUTS_CONFIG_PATH,
)
from envdeck.config.loader import ConfigLoader
from envdeck.lib.console import ClickConsole
from envdeck.lib.errors import (
    ConfigError,
    DeploymentError,
    DestroyCancelledError,
)
from envdeck.lib.logging_config import get_logger, setup_logging
from envdeck.lib.ui.colors import highlight
from envdeck.models.provisioning import (
    DestroyOptions,
    OutputParameter,
    ProvisioningOptions,
)
from envdeck.provision.devcenter import create_azure_collaborators
from envdeck.provision.prompter import ClickPrompter
from envdeck.provision.provider import PROVIDER_KIND, DevCenterProvisionProvider
from envdeck.provision.state import EnvironmentStore

logger = get_logger(__name__)

T = TypeVar("T")


@contextmanager
def handle_provision_errors() -> Generator[None, None, None]:
    """Context manager for consistent error handling in provision commands.

    Exit codes:
        1: Destroy declined by the user
        2: Configuration error
        3: Provisioning/execution error
    """
    try:
        yield
    except DestroyCancelledError:
        click.secho("Destroy aborted.", fg="yellow")
        sys.exit(1)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        click.secho("Error: Configuration error", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(2)
    except DeploymentError as e:
        logger.error(f"Provisioning error: {e}")
        click.secho(f"Error: {e.operation} failed", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(3)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(3)


def run_operation(
    coro: Coroutine[Any, Any, T], operation: str, timeout: float | None = None
) -> T:
    """Run an async provider operation to completion.

    Raises:
        DeploymentError: If ``timeout`` seconds elapse first
    """

    async def _runner() -> T:
        try:
            return await asyncio.wait_for(coro, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise DeploymentError(
                operation=operation, message=f"timed out after {timeout:g} seconds"
            ) from e

    return asyncio.run(_runner())


def build_provider(
    project_dir: Path,
    environment: str,
    console: ClickConsole,
    interactive: bool,
    require_existing: bool = False,
) -> tuple[DevCenterProvisionProvider, ProvisioningOptions, Path]:
    """Load configuration and assemble the dev center provider.

    With ``require_existing`` the environment must already have a saved config.

    Returns:
        Tuple of (provider, provisioning options, project root)

    Raises:
        ConfigError: If the project or environment configuration is invalid
    """
    loader = ConfigLoader()
    project_file = loader.find_project_file(project_dir)
    project = loader.load_project(project_file)

    if project.infra.provider != PROVIDER_KIND:
        raise ConfigError(
            "infra.provider",
            f"Unsupported provisioning provider '{project.infra.provider}'. "
            f"Only '{PROVIDER_KIND}' is supported.",
        )

    project_root = project_file.parent
    store = EnvironmentStore(project_root)
    if require_existing:
        known = store.names()
        if environment not in known:
            raise ConfigError(
                "environment",
                f"Environment '{environment}' has not been provisioned. "
                f"Known environments: {', '.join(known) or 'none'}",
            )
    record = store.load(environment)
    config = loader.resolve_devcenter_config(project, record)
    client, manager = create_azure_collaborators(config, console)

    provider = DevCenterProvisionProvider(
        console=console,
        record=record,
        repository=store,
        config=config,
        client=client,
        manager=manager,
        prompter=ClickPrompter(client, interactive=interactive),
        watch_settings=loader.load_watch_settings(),
    )
    options = ProvisioningOptions(path=project.infra.path, provider=project.infra.provider)
    return provider, options, project_root


def _environment_option(func: Any) -> Any:
    return click.option(
        "--environment",
        "-e",
        required=True,
        envvar=DEFAULT_ENVIRONMENT_ENV_VAR,
        help=f"Environment name (defaults to ${DEFAULT_ENVIRONMENT_ENV_VAR})",
    )(func)


def _project_option(func: Any) -> Any:
    return click.option(
        "--cwd",
        "project_dir",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        default=".",
        help="Directory to search for envdeck.yaml",
    )(func)


def _verbosity_options(func: Any) -> Any:
    func = click.option(
        "--quiet", "-q", is_flag=True, help="Suppress progress output"
    )(func)
    return click.option(
        "--verbose", "-v", is_flag=True, help="Enable verbose debug logging"
    )(func)


@click.group(name="provision", invoke_without_command=True)
@click.pass_context
def provision(ctx: click.Context) -> None:
    """Provision Azure Deployment Environments.

    Subcommands:

        up      Create or update the environment
        down    Delete the environment
        show    Show the environment outputs

    Example:

        envdeck provision up -e dev

        envdeck provision down -e dev --force
    """
    ctx.ensure_object(dict)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@provision.command()
@_environment_option
@_project_option
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Give up after this many seconds",
)
@click.option(
    "--no-prompt",
    is_flag=True,
    help="Fail instead of prompting for missing values",
)
@_verbosity_options
def up(
    environment: str,
    project_dir: Path,
    timeout: float | None,
    no_prompt: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Create or update a dev center environment."""
    if not quiet:
        setup_logging(verbose=verbose, quiet=quiet)

    with handle_provision_errors():
        console = ClickConsole(quiet=quiet)
        provider, options, project_root = build_provider(
            project_dir, environment, console, interactive=not no_prompt
        )

        async def _deploy() -> Any:
            await provider.initialize(project_root, options)
            return await provider.deploy()

        result = run_operation(_deploy(), operation="deploy", timeout=timeout)

        for key, output in result.outputs.items():
            provider.record.set(f"{PROVISION_OUTPUTS_CONFIG_PATH}.{key}", output.value)
        provider.repository.save(provider.record)

        if quiet:
            click.echo("provisioned")
            sys.exit(0)

        click.echo()
        click.secho("Environment Provisioned", fg="green", bold=True)
        click.echo(f"  Environment: {highlight(environment)}")
        _display_outputs(result.outputs)
        click.echo()


@provision.command()
@_environment_option
@_project_option
@click.option(
    "--force",
    is_flag=True,
    help="Skip confirmation prompt",
)
@_verbosity_options
def down(
    environment: str,
    project_dir: Path,
    force: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Delete a dev center environment and all of its resources."""
    if not quiet:
        setup_logging(verbose=verbose, quiet=quiet)

    with handle_provision_errors():
        console = ClickConsole(quiet=quiet)
        provider, options, project_root = build_provider(
            project_dir, environment, console, interactive=True
        )

        async def _destroy() -> Any:
            await provider.initialize(project_root, options)
            return await provider.destroy(DestroyOptions(force=force))

        result = run_operation(_destroy(), operation="destroy")

        for key in result.invalidated_env_keys:
            provider.record.unset(f"{PROVISION_OUTPUTS_CONFIG_PATH}.{key}")
        provider.repository.save(provider.record)

        if quiet:
            click.echo("deleted")
            sys.exit(0)

        click.echo()
        click.secho("Environment Deleted", fg="green", bold=True)
        click.echo(f"  Environment: {highlight(environment)}")
        if result.invalidated_env_keys:
            click.echo(f"  Cleared outputs: {', '.join(result.invalidated_env_keys)}")
        click.echo()


@provision.command()
@_environment_option
@_project_option
@_verbosity_options
def show(environment: str, project_dir: Path, verbose: bool, quiet: bool) -> None:
    """Show the outputs of a provisioned environment."""
    if not quiet:
        setup_logging(verbose=verbose, quiet=quiet)

    with handle_provision_errors():
        console = ClickConsole(quiet=quiet)
        provider, options, project_root = build_provider(
            project_dir,
            environment,
            console,
            interactive=False,
            require_existing=True,
        )

        async def _state() -> Any:
            await provider.initialize(project_root, options)
            return await provider.state()

        result = run_operation(_state(), operation="state")

        if quiet:
            for key, output in result.outputs.items():
                click.echo(f"{key}={output.value}")
            sys.exit(0)

        click.echo()
        click.secho("Environment Status", bold=True)
        click.echo(f"  Environment: {highlight(environment)}")
        click.echo(f"  Dev Center:  {provider.config.name}")
        click.echo(f"  Project:     {provider.config.project}")
        _display_outputs(result.outputs)
        click.echo()


def _display_outputs(outputs: dict[str, OutputParameter]) -> None:
    if not outputs:
        click.echo("  Outputs:     (none)")
        return
    click.echo("  Outputs:")
    width = max(len(key) for key in outputs)
    for key in sorted(outputs):
        click.echo(f"    {key.ljust(width)}  {outputs[key].value}")
