"""Command line entry points for the baro-monitor daemon."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# ``cli.app`` resolves to the module, not the Typer instance, so its
# collaborators stay reachable as module attributes.

__all__ = []
