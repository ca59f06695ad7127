"""Unit tests for protocol messages and frame classification."""

import json
import logging

import pytest

from lightpanda.protocol import Command, Event, Response, decode_message


class TestCommand:
    """Test Command serialization."""

    def test_to_json_without_session(self) -> None:
        """sessionId is omitted when unset."""
        command = Command(id=1, method="Browser.getVersion")
        data = json.loads(command.to_json())

        assert data == {"id": 1, "method": "Browser.getVersion", "params": {}}

    def test_to_json_with_session(self) -> None:
        """sessionId uses the wire name."""
        command = Command(
            id=7, method="Page.navigate", params={"url": "about:blank"}, session_id="SID-1"
        )
        data = json.loads(command.to_json())

        assert data["sessionId"] == "SID-1"
        assert data["params"] == {"url": "about:blank"}
        assert "session_id" not in data

    def test_accepts_wire_alias(self) -> None:
        command = Command.model_validate({"id": 2, "method": "X.y", "sessionId": "SID-2"})

        assert command.session_id == "SID-2"


class TestResponse:
    def test_success(self) -> None:
        response = Response.model_validate({"id": 3, "result": {"targetId": "FID-1"}})

        assert response.id == 3
        assert response.result == {"targetId": "FID-1"}
        assert response.is_error() is False

    def test_error_keeps_extra_fields(self) -> None:
        response = Response.model_validate(
            {"id": 4, "error": {"code": -32000, "message": "boom", "data": "more", "x": 1}}
        )

        assert response.is_error() is True
        assert response.error is not None
        assert response.error.message == "boom"
        assert response.error.model_dump(exclude_none=True)["x"] == 1


class TestEvent:
    def test_defaults(self) -> None:
        event = Event.model_validate({"method": "Page.loadEventFired"})

        assert event.params == {}
        assert event.session_id is None
        assert event.is_session_event() is False

    def test_session_event(self) -> None:
        event = Event.model_validate(
            {"method": "Page.loadEventFired", "params": {"timestamp": 1.0}, "sessionId": "SID-1"}
        )

        assert event.is_session_event() is True


class TestDecodeMessage:
    """Test decode_message() routing rules."""

    def test_id_means_response(self) -> None:
        message = decode_message({"id": 1, "result": {}})

        assert isinstance(message, Response)

    def test_method_without_id_means_event(self) -> None:
        message = decode_message({"method": "Target.targetCreated", "params": {}})

        assert isinstance(message, Event)
        assert message.method == "Target.targetCreated"

    def test_id_takes_precedence_over_method(self) -> None:
        message = decode_message({"id": 5, "method": "Weird.echo", "result": {}})

        assert isinstance(message, Response)

    @pytest.mark.parametrize(
        "frame",
        [
            {"params": {}},
            {"id": "not-a-number", "result": {}},
            {"method": "Page.loadEventFired", "params": "oops"},
            ["not", "an", "object"],
        ],
    )
    def test_invalid_frames_dropped(self, frame, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="lightpanda.protocol.frames"):
            assert decode_message(frame) is None

        assert "Dropping" in caplog.text
