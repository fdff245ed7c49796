"""Version information for copilot-usage."""

__version__ = "0.1.0"
