"""Command-line UPnP control point."""

__version__ = "0.1.0"
