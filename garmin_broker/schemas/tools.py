"""Schemas for the tool invocation boundary."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ToolArguments(BaseModel):
    """Arguments accepted by the read tools. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")

    date: Optional[str] = Field(
        None, description="Date in YYYY-MM-DD format. Defaults to today."
    )
    limit: Optional[int] = Field(
        None, description="Number of recent activities to return. Defaults to 5."
    )


class ToolResponse(BaseModel):
    """Structured result rendered for every tool call, success or not."""

    success: bool
    date: Optional[str] = None
    count: Optional[int] = None
    data: Any = None
    error: Optional[str] = None


__all__ = ["ToolArguments", "ToolResponse"]
