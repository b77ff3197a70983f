"""Public schema exports."""

from .tools import ToolArguments, ToolResponse

__all__ = ["ToolArguments", "ToolResponse"]
