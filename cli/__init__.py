"""Command line entry point for the BME280 exporter."""

from importlib import import_module
from types import ModuleType

__version__ = "0.1.0"


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# The Typer application lives in ``cli.app``; it is not re-exported here so
# that ``cli.app`` keeps resolving to the module and tests can patch it.

__all__ = ["__version__"]
