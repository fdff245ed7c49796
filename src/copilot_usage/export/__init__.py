"""Export Mode: single-shot status bar output."""

from copilot_usage.export.runner import run_export

__all__ = ["run_export"]
