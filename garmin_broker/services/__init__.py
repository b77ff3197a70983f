"""Service layer exports."""

from .garmin_tokens import GarminTokenService
from .garmin_tools import GarminTools, ToolResult
from .token_cipher import TokenCipherService

__all__ = [
    "GarminTokenService",
    "GarminTools",
    "TokenCipherService",
    "ToolResult",
]
