"""Dev center provision provider.

Provisions Azure Deployment Environments: prompts for the environment
definition's parameters, creates or updates the remote environment, and keeps
the operator informed through the background ProgressWatcher while the
long-running operation completes.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from envdeck.config.defaults import (
    DEVCENTER_CONFIG_PATHS,
    PROVISION_PARAMETERS_CONFIG_PATH,
)
from envdeck.lib.errors import (
    ConfigError,
    DeploymentError,
    DestroyCancelledError,
    DestroyInterruptedError,
)
from envdeck.lib.logging_config import get_logger
from envdeck.lib.ui.colors import highlight, warning
from envdeck.lib.ui.spinner import StepResult
from envdeck.models.config import WatchSettings
from envdeck.models.devcenter import (
    DEFAULT_USER,
    DeploymentHandle,
    DevCenterConfig,
    EnvironmentDefinition,
    EnvironmentSnapshot,
    EnvironmentSpec,
)
from envdeck.models.environment_state import EnvironmentRecord
from envdeck.models.provisioning import (
    DeployResult,
    DestroyOptions,
    DestroyResult,
    InputParameter,
    ProvisioningOptions,
    StateResult,
)
from envdeck.provision.cancellation import CancellationScope
from envdeck.provision.protocols import (
    Console,
    DeploymentPredicate,
    DevCenterClient,
    EnvironmentManager,
    EnvironmentRepository,
    Prompter,
)
from envdeck.provision.watch import ProgressWatcher

logger = get_logger(__name__)

PROVIDER_KIND = "devcenter"


class DevCenterStatusSource:
    """Adapts the dev center client and environment manager for the watch loops."""

    def __init__(
        self,
        client: DevCenterClient,
        manager: EnvironmentManager,
        config: DevCenterConfig,
    ) -> None:
        self._client = client
        self._manager = manager
        self._config = config

    async def get_environment_snapshot(self, name: str) -> EnvironmentSnapshot | None:
        return await self._client.get_environment(self._config, name)

    async def find_deployment(
        self, snapshot: EnvironmentSnapshot, predicate: DeploymentPredicate
    ) -> DeploymentHandle | None:
        return await self._manager.find_deployment(self._config, snapshot, predicate)


class DevCenterProvisionProvider:
    """Provisioning provider for Azure Deployment Environments."""

    def __init__(
        self,
        *,
        console: Console,
        record: EnvironmentRecord,
        repository: EnvironmentRepository,
        config: DevCenterConfig,
        client: DevCenterClient,
        manager: EnvironmentManager,
        prompter: Prompter,
        watch_settings: WatchSettings | None = None,
        scope: CancellationScope | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            console: Output sink for messages and spinners
            record: Local configuration of the environment being provisioned
            repository: Persistence for ``record``
            config: Dev center settings resolved for the environment
            client: Dev center data plane client
            manager: Resource group / deployment reader
            prompter: Interactive prompts
            watch_settings: Progress tracking cadence and debug switch
            scope: Parent cancellation scope of the command, if any
        """
        self.console = console
        self.record = record
        self.repository = repository
        self.config = config
        self.client = client
        self.manager = manager
        self.prompter = prompter
        self.watch_settings = watch_settings or WatchSettings()
        self.scope = scope or CancellationScope()
        self.options = ProvisioningOptions()
        self.watcher: ProgressWatcher | None = None

    @property
    def environment_name(self) -> str:
        """Name of the environment being provisioned."""
        return self.record.name

    def name(self) -> str:
        """Return the display name of the provider."""
        return "Dev Center"

    async def initialize(self, project_path: Path, options: ProvisioningOptions) -> None:
        """Store provisioning options and make sure the environment is configured."""
        if not Path(options.path).is_absolute():
            options = options.model_copy(
                update={"path": str(Path(project_path) / options.path)}
            )
        self.options = options
        await self.ensure_env()

    async def ensure_env(self) -> None:
        """Prompt for missing dev center settings and persist the ones that were missing."""
        # Remember what was configured before prompting so only gaps get persisted
        before = self.config.model_copy()

        config = await self.prompter.prompt_for_config(self.config)
        if not config.environment_type:
            env_type = await self.prompter.prompt_environment_type(config)
            config = config.model_copy(update={"environment_type": env_type.name})
        if not config.user:
            config = config.model_copy(update={"user": DEFAULT_USER})
        self.config = config

        for field, path in DEVCENTER_CONFIG_PATHS.items():
            if not getattr(before, field) and getattr(config, field):
                self.record.set(path, getattr(config, field))

        self._save_record()

    async def state(self) -> StateResult:
        """Return the outputs of the provisioned environment."""
        self._ensure_valid_config()

        snapshot = await self._get_environment("state")
        try:
            outputs = await self.manager.outputs(self.config, snapshot)
        except Exception as e:
            raise DeploymentError(
                operation="state", message=f"failed getting environment outputs: {e}"
            ) from e

        return StateResult(outputs=outputs)

    async def deploy(self) -> DeployResult:
        """Create or update the environment from the configured definition."""
        self._ensure_valid_config()

        if has_infra_templates(Path(self.options.path)):
            self.console.message(
                warning(
                    f"WARNING: IaC templates were found at '{self.options.path}'. "
                    "IaC templates are not supported for Dev Center environments "
                    "and will be ignored.\n"
                )
            )

        try:
            definition = await self.client.get_environment_definition(self.config)
        except Exception as e:
            raise DeploymentError(
                operation="deploy",
                message=f"failed getting environment definition: {e}",
            ) from e

        param_values = await self.prompter.prompt_parameters(self.record, definition)
        for key, value in param_values.items():
            self.record.set(f"{PROVISION_PARAMETERS_CONFIG_PATH}.{key}", value)
        self._save_record()

        env_name = self.environment_name

        # An existing environment is updated in place
        try:
            existing = await self.client.get_environment(self.config, env_name)
        except Exception as e:
            logger.debug(f"Lookup of existing environment '{env_name}' failed: {e}")
            existing = None

        verb = "Creating" if existing is None else "Updating"
        spinner_message = f"{verb} devcenter environment {highlight(env_name)}"

        spec = EnvironmentSpec(
            catalog_name=self.config.catalog,
            environment_type=self.config.environment_type,
            environment_definition_name=self.config.environment_definition,
            parameters=param_values,
        )

        self.console.show_spinner(spinner_message)
        try:
            poller = await self.client.begin_put_environment(self.config, env_name, spec)
        except Exception as e:
            self.console.stop_spinner(spinner_message, StepResult.FAILED)
            raise DeploymentError(
                operation="deploy", message=f"failed creating environment: {e}"
            ) from e
        self.console.stop_spinner(spinner_message, StepResult.DONE)

        spinner_message = "Deploying dev center environment"
        self.console.show_spinner(spinner_message)

        with self.scope.child() as watch_scope:
            self.watcher = ProgressWatcher(
                status_source=DevCenterStatusSource(
                    self.client, self.manager, self.config
                ),
                progress_source=self.manager,
                settings=self.watch_settings,
            )
            self.watcher.start(env_name, watch_scope)

            try:
                await poller.wait()
            except asyncio.CancelledError:
                self.console.stop_spinner(spinner_message, StepResult.FAILED)
                raise
            except Exception as e:
                self.console.stop_spinner(spinner_message, StepResult.FAILED)
                raise DeploymentError(
                    operation="deploy", message=f"failed creating environment: {e}"
                ) from e

        try:
            snapshot = await self._get_environment("deploy")
        except DeploymentError:
            self.console.stop_spinner(spinner_message, StepResult.FAILED)
            raise

        self.console.stop_spinner(spinner_message, StepResult.DONE)

        try:
            outputs = await self.manager.outputs(self.config, snapshot)
        except Exception as e:
            raise DeploymentError(
                operation="deploy",
                message=f"failed getting environment outputs: {e}",
            ) from e

        return DeployResult(
            parameters=create_input_parameters(definition, param_values),
            outputs=outputs,
        )

    async def preview(self) -> None:
        """Preview is not supported for dev center environments."""
        raise DeploymentError(
            operation="preview", message="preview is not supported for devcenter"
        )

    async def destroy(self, options: DestroyOptions) -> DestroyResult:
        """Delete the remote environment and report the outputs it invalidates."""
        self._ensure_valid_config()

        env_name = self.environment_name
        spinner_message = f"Deleting devcenter environment {highlight(env_name)}"

        if not options.force:
            self._confirm_destroy(env_name, spinner_message)

        snapshot = await self._get_environment("destroy")

        # Outputs are collected first so they can be invalidated after delete
        try:
            outputs = await self.manager.outputs(self.config, snapshot)
        except Exception as e:
            raise DeploymentError(
                operation="destroy",
                message=f"failed getting environment outputs: {e}",
            ) from e

        self.console.show_spinner(spinner_message)
        try:
            poller = await self.client.begin_delete_environment(self.config, env_name)
            await poller.wait()
        except asyncio.CancelledError:
            self.console.stop_spinner(spinner_message, StepResult.FAILED)
            raise
        except Exception as e:
            self.console.stop_spinner(spinner_message, StepResult.FAILED)
            raise DeploymentError(
                operation="destroy", message=f"failed deleting environment: {e}"
            ) from e
        self.console.stop_spinner(spinner_message, StepResult.DONE)

        return DestroyResult(invalidated_env_keys=sorted(outputs))

    async def parameters(self) -> list[Any]:
        """Parameters are not supported for dev center (no-op)."""
        return []

    def _confirm_destroy(self, env_name: str, spinner_message: str) -> None:
        self.console.message(
            warning(
                "WARNING: This will delete the following Dev Center environment "
                "and all of its resources:\n"
            )
        )
        self.console.message(f"Dev Center: {highlight(self.config.name)}")
        self.console.message(f"Project: {highlight(self.config.project)}")
        self.console.message(
            f"Environment Type: {highlight(self.config.environment_type)}"
        )
        self.console.message(
            f"Environment Definition: {highlight(self.config.environment_definition)}"
        )
        self.console.message(f"Environment: {highlight(env_name)}\n")

        try:
            confirmed = self.console.confirm(
                "Are you sure you want to continue?", default=False
            )
        except (EOFError, KeyboardInterrupt, OSError) as e:
            self.console.message("")
            self.console.show_spinner(spinner_message)
            self.console.stop_spinner(spinner_message, StepResult.FAILED)
            raise DestroyInterruptedError(str(e) or type(e).__name__) from e

        self.console.message("")

        if not confirmed:
            self.console.show_spinner(spinner_message)
            self.console.stop_spinner(spinner_message, StepResult.SKIPPED)
            raise DestroyCancelledError()

    async def _get_environment(self, operation: str) -> EnvironmentSnapshot:
        try:
            snapshot = await self.client.get_environment(
                self.config, self.environment_name
            )
        except Exception as e:
            raise DeploymentError(
                operation=operation, message=f"failed getting environment: {e}"
            ) from e
        if snapshot is None:
            raise DeploymentError(
                operation=operation,
                message=f"environment '{self.environment_name}' was not found",
            )
        return snapshot

    def _ensure_valid_config(self) -> None:
        try:
            self.config.ensure_valid()
        except ValueError as e:
            raise ConfigError(
                "platform.config", f"invalid devcenter configuration, {e}"
            ) from e

    def _save_record(self) -> None:
        try:
            self.record = self.repository.save(self.record)
        except DeploymentError as e:
            raise DeploymentError(
                operation=e.operation,
                message=f"failed saving environment: {e.message}",
            ) from e


def create_input_parameters(
    definition: EnvironmentDefinition, values: dict[str, Any]
) -> dict[str, InputParameter]:
    """Pair each declared parameter with the value used for the deployment."""
    return {
        param.id: InputParameter(
            type=param.type.value,
            default_value=param.default,
            value=values.get(param.id),
        )
        for param in definition.parameters
    }


def has_infra_templates(path: Path) -> bool:
    """Return True if ``path`` is a directory containing any entries."""
    if not path.is_dir():
        return False
    try:
        return any(path.iterdir())
    except OSError:
        return False
