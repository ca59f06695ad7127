"""Classification of decoded frames into protocol messages."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from .commands import Response
from .events import Event

logger = logging.getLogger(__name__)


def decode_message(frame: Any) -> Response | Event | None:
    """Turn one decoded JSON frame into a Response or an Event.

    A frame with an ``id`` is a response, otherwise a frame with a ``method``
    is an event. Anything else, including frames that fail validation, is
    logged and returns None.
    """
    if not isinstance(frame, dict):
        logger.warning(f"Dropping non-object frame: {frame!r:.80}")
        return None

    try:
        if "id" in frame:
            return Response.model_validate(frame)
        if "method" in frame:
            return Event.model_validate(frame)
    except ValidationError as e:
        logger.warning(f"Dropping malformed frame: {e.error_count()} validation error(s)")
        logger.debug(f"Malformed frame: {frame!r:.200}")
        return None

    logger.warning(f"Dropping frame with neither id nor method: {frame!r:.80}")
    return None
