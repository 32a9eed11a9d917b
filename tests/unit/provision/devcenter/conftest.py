"""Fake Azure SDK modules for dev center adapter tests."""

from __future__ import annotations

import sys
import types
from typing import Any
from unittest.mock import MagicMock

import pytest


class DummyModel:
    """Simple container for Azure SDK model attributes."""

    def __init__(self, **kwargs: Any) -> None:
        for key, value in kwargs.items():
            setattr(self, key, value)


class DummyDevCenterClient:
    def __init__(self, endpoint: str, credential: object) -> None:
        self.endpoint = endpoint
        self.credential = credential
        self.get_environment = MagicMock()
        self.get_environment_definition = MagicMock()
        self.list_environment_types = MagicMock(return_value=[])
        self.begin_create_or_update_environment = MagicMock()
        self.begin_delete_environment = MagicMock()


class DummyResourceManagementClient:
    instances: list[DummyResourceManagementClient] = []

    def __init__(self, credential: object, subscription_id: str) -> None:
        self.credential = credential
        self.subscription_id = subscription_id
        self.deployments = MagicMock()
        self.deployment_operations = MagicMock()
        DummyResourceManagementClient.instances.append(self)


@pytest.fixture
def dummy_model() -> type[DummyModel]:
    """Return the SDK model stand-in class."""
    return DummyModel


@pytest.fixture
def azure_sdk(monkeypatch: pytest.MonkeyPatch) -> types.SimpleNamespace:
    """Install mocked Azure SDK modules into sys.modules."""
    core_exceptions_module = types.ModuleType("azure.core.exceptions")
    not_found = type("ResourceNotFoundError", (Exception,), {})
    core_exceptions_module.ResourceNotFoundError = not_found  # type: ignore[attr-defined]

    identity_module = types.ModuleType("azure.identity")
    credential_factory = MagicMock(return_value="credential")
    identity_module.DefaultAzureCredential = credential_factory  # type: ignore[attr-defined]

    devcenter_module = types.ModuleType("azure.developer.devcenter")
    devcenter_module.DevCenterClient = DummyDevCenterClient  # type: ignore[attr-defined]

    DummyResourceManagementClient.instances = []
    resource_module = types.ModuleType("azure.mgmt.resource")
    resource_module.ResourceManagementClient = DummyResourceManagementClient  # type: ignore[attr-defined]

    monkeypatch.setitem(sys.modules, "azure", types.ModuleType("azure"))
    monkeypatch.setitem(sys.modules, "azure.core", types.ModuleType("azure.core"))
    monkeypatch.setitem(sys.modules, "azure.core.exceptions", core_exceptions_module)
    monkeypatch.setitem(sys.modules, "azure.identity", identity_module)
    monkeypatch.setitem(sys.modules, "azure.developer", types.ModuleType("azure.developer"))
    monkeypatch.setitem(sys.modules, "azure.developer.devcenter", devcenter_module)
    monkeypatch.setitem(sys.modules, "azure.mgmt", types.ModuleType("azure.mgmt"))
    monkeypatch.setitem(sys.modules, "azure.mgmt.resource", resource_module)

    return types.SimpleNamespace(
        ResourceNotFoundError=not_found,
        DefaultAzureCredential=credential_factory,
        DevCenterClient=DummyDevCenterClient,
        ResourceManagementClient=DummyResourceManagementClient,
    )


@pytest.fixture
def block_azure_imports(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make every azure import fail."""
    import builtins

    real_import = builtins.__import__

    def fake_import(
        name: str,
        globals: dict[str, Any] | None = None,
        locals: dict[str, Any] | None = None,
        fromlist: tuple[str, ...] | list[str] = (),
        level: int = 0,
    ) -> Any:
        if name.startswith("azure"):
            raise ImportError("No module named azure")
        return real_import(name, globals, locals, fromlist, level)

    monkeypatch.setattr(builtins, "__import__", fake_import)
