"""Adapters — tool bindings for apt, docker, systemd, and the filesystem.

Public re-exports for convenient access.
"""

from sharespace_installer.adapters.base import Adapter, ExecutionContext
from sharespace_installer.adapters.mock import MockAdapter
from sharespace_installer.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
    "default_registry",
]


def default_registry(mock_mode: bool = False) -> AdapterRegistry:
    """Build a registry with every real adapter the installer uses."""
    from sharespace_installer.adapters.containers.docker import DockerAdapter
    from sharespace_installer.adapters.shell.command import ShellCommandAdapter
    from sharespace_installer.adapters.shell.filesystem import FilesystemAdapter
    from sharespace_installer.adapters.system.systemd import SystemdAdapter

    registry = AdapterRegistry(mock_mode=mock_mode)
    for adapter in (
        ShellCommandAdapter(),
        FilesystemAdapter(),
        DockerAdapter(),
        SystemdAdapter(),
    ):
        registry.register(adapter)
    return registry
