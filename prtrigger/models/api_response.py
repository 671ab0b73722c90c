"""API response data models."""

from typing import Any, Optional

from pydantic import BaseModel


class TriggerResponse(BaseModel):
    """Response from the event endpoint."""

    status: str
    message: str
    handle: Optional[Any] = None


class CompletionResponse(BaseModel):
    """Response from the build completion endpoint."""

    pull_id: int
    auto_close: bool
