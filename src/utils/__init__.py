"""Utility modules for the wardrobe analysis pipeline."""

from .console import configure_console, console

__all__ = ["console", "configure_console"]
