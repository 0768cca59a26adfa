"""Interactive Python console with persistent, navigable history."""

__version__ = "0.1.0"
