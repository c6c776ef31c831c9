"""
Capability contracts for extensions.

Extension modules and loadable plugins satisfy these structurally; they do
not need to inherit from them. Nothing in cordstore calls into them.
"""
from typing import Protocol, runtime_checkable


@runtime_checkable
class Module(Protocol):
    """A named, versioned extension module."""

    def name(self) -> str:
        """Return the name of the module."""
        ...

    def version(self) -> str:
        """Return the version of the module."""
        ...


@runtime_checkable
class Plugin(Protocol):
    """A unit that can be loaded and unloaded at runtime."""

    def id(self) -> str:
        """Return the ID of the plugin."""
        ...

    def is_loaded(self) -> bool:
        """Return whether the plugin is loaded."""
        ...

    def load(self) -> None:
        """Load the plugin. May raise."""
        ...

    def unload(self) -> None:
        """Unload the plugin. May raise."""
        ...
