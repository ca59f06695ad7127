"""Command and response definitions for the protocol layer.

Commands are requests from the driver to the engine. Each command carries an
integer ``id`` that the engine echoes back in exactly one Response.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Command(BaseModel):
    """A command from driver to engine.

    Example:
        {
            "id": 7,
            "method": "Target.attachToTarget",
            "params": {"targetId": "FID-0000000001", "flatten": true}
        }

    Commands scoped to an attached target add ``"sessionId"``.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int
    method: str
    params: dict[str, Any] = Field(default_factory=dict)
    session_id: str | None = Field(default=None, alias="sessionId")

    def to_json(self) -> str:
        """Serialize for the wire, omitting an unset sessionId."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ResponseError(BaseModel):
    """The ``error`` member of a failed response."""

    model_config = ConfigDict(extra="allow")

    message: str = ""
    code: int | None = None
    data: Any = None


class Response(BaseModel):
    """A response from engine to driver.

    Exactly one of ``result`` and ``error`` is present:
        {"id": 7, "result": {"sessionId": "SID-1"}}
        {"id": 8, "error": {"code": -32000, "message": "No node with given id found"}}
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int
    result: dict[str, Any] | None = None
    error: ResponseError | None = None
    session_id: str | None = Field(default=None, alias="sessionId")

    def is_error(self) -> bool:
        return self.error is not None
