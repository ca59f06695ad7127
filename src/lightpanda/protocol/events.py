"""Event definitions for the protocol layer.

Events are unsolicited notifications from the engine. They carry no ``id``
and may arrive at any time, including between a command and its response.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Event(BaseModel):
    """An event from engine to driver.

    Example:
        {
            "method": "Page.loadEventFired",
            "params": {"timestamp": 1712.5},
            "sessionId": "SID-1"
        }
    """

    model_config = ConfigDict(populate_by_name=True)

    method: str
    params: dict[str, Any] = Field(default_factory=dict)
    session_id: str | None = Field(default=None, alias="sessionId")

    def is_session_event(self) -> bool:
        """Check if this event belongs to an attached session."""
        return self.session_id is not None
