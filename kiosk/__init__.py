"""Order-taking backend for a coffee kiosk."""

__version__ = "0.1.0"
