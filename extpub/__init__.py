"""Publish Safari builds of a browser extension from GitHub release assets."""

__version__ = "0.1.0"
