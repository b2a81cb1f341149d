"""Stash: resource bookmarking with typed folders and drag-and-drop organisation."""

__version__ = "0.3.0"
