"""Unit tests for CommandRegistry."""

import asyncio

import pytest
import pytest_asyncio

from lightpanda.client import CommandRegistry
from lightpanda.errors import (
    CommandTimeoutError,
    ConnectionClosedError,
    MethodNotFoundError,
    NodeNotFoundError,
    ProtocolError,
    TransportClosedError,
)
from lightpanda.protocol import Response
from lightpanda.transport import MockTransport


@pytest_asyncio.fixture
async def transport():
    """Connected mock transport that never answers on its own."""
    transport = MockTransport(auto_respond=False)
    await transport.connect()
    yield transport
    await transport.close()


async def wait_sent(transport: MockTransport, count: int) -> None:
    while len(transport.sent) < count:
        await asyncio.sleep(0)


class TestBuild:
    def test_ids_start_at_one_and_increase(self) -> None:
        registry = CommandRegistry(MockTransport())

        ids = [registry.build("X.y").id for _ in range(5)]

        assert ids == [1, 2, 3, 4, 5]

    def test_build_carries_session(self) -> None:
        registry = CommandRegistry(MockTransport())

        command = registry.build("Page.enable", None, "SID-1")

        assert command.session_id == "SID-1"
        assert command.params == {}

    def test_separate_registries_have_separate_ids(self) -> None:
        first = CommandRegistry(MockTransport())
        second = CommandRegistry(MockTransport())

        first.build("X.y")
        first.build("X.y")

        assert second.build("X.y").id == 1


class TestIssue:
    @pytest.mark.asyncio
    async def test_returns_result(self, transport: MockTransport) -> None:
        registry = CommandRegistry(transport)
        task = asyncio.create_task(registry.issue("Browser.getVersion"))
        await wait_sent(transport, 1)

        assert registry.is_pending(1)
        registry.resolve(Response(id=1, result={"product": "Lightpanda"}))

        assert await task == {"product": "Lightpanda"}
        assert registry.pending_count == 0

    @pytest.mark.asyncio
    async def test_missing_result_is_empty_dict(self, transport: MockTransport) -> None:
        registry = CommandRegistry(transport)
        task = asyncio.create_task(registry.issue("Page.enable"))
        await wait_sent(transport, 1)

        registry.resolve(Response(id=1))

        assert await task == {}

    @pytest.mark.asyncio
    async def test_wire_format(self, transport: MockTransport) -> None:
        registry = CommandRegistry(transport)
        task = asyncio.create_task(
            registry.issue("Page.navigate", {"url": "about:blank"}, session_id="SID-1")
        )
        await wait_sent(transport, 1)
        registry.resolve(Response(id=1, result={}))
        await task

        assert transport.sent == [
            {
                "id": 1,
                "method": "Page.navigate",
                "params": {"url": "about:blank"},
                "sessionId": "SID-1",
            }
        ]

    @pytest.mark.asyncio
    async def test_out_of_order_responses(self, transport: MockTransport) -> None:
        """Each caller gets its own response whatever the arrival order."""
        registry = CommandRegistry(transport)
        tasks = [
            asyncio.create_task(registry.issue("Test.echo", {"n": n})) for n in range(1, 6)
        ]
        await wait_sent(transport, 5)

        for command_id in (3, 5, 1, 4, 2):
            registry.resolve(Response(id=command_id, result={"n": command_id}))

        results = await asyncio.gather(*tasks)
        sent_ids = {message["params"]["n"]: message["id"] for message in transport.sent}
        assert [result["n"] for result in results] == [sent_ids[n] for n in range(1, 6)]

    @pytest.mark.asyncio
    async def test_timeout_removes_pending(self, transport: MockTransport) -> None:
        registry = CommandRegistry(transport)

        with pytest.raises(CommandTimeoutError) as exc_info:
            await registry.issue("Test.silent", timeout=0.05)

        assert exc_info.value.method == "Test.silent"
        assert exc_info.value.timeout == 0.05
        assert registry.pending_count == 0

    @pytest.mark.asyncio
    async def test_default_timeout(self, transport: MockTransport) -> None:
        registry = CommandRegistry(transport, default_timeout=0.05)

        with pytest.raises(CommandTimeoutError, match="after 0.05s"):
            await registry.issue("Test.silent")

    @pytest.mark.asyncio
    async def test_late_response_discarded(self, transport: MockTransport) -> None:
        registry = CommandRegistry(transport)
        with pytest.raises(CommandTimeoutError):
            await registry.issue("Test.silent", timeout=0.01)

        assert registry.resolve(Response(id=1, result={})) is False

    @pytest.mark.asyncio
    async def test_node_not_found(self, transport: MockTransport) -> None:
        registry = CommandRegistry(transport)
        registry.build("Warm.up")
        task = asyncio.create_task(registry.issue("DOM.describeNode", {"nodeId": 999}))
        await wait_sent(transport, 1)

        registry.resolve(
            Response.model_validate({"id": 2, "error": {"message": "No node with given id found"}})
        )

        with pytest.raises(NodeNotFoundError) as exc_info:
            await task
        assert exc_info.value.method == "DOM.describeNode"

    @pytest.mark.asyncio
    async def test_method_not_found(self, transport: MockTransport) -> None:
        registry = CommandRegistry(transport)
        task = asyncio.create_task(registry.issue("Nope.nope"))
        await wait_sent(transport, 1)

        registry.resolve(
            Response.model_validate(
                {"id": 1, "error": {"code": -32601, "message": "'Nope.nope' wasn't found"}}
            )
        )

        with pytest.raises(MethodNotFoundError) as exc_info:
            await task
        assert exc_info.value.code == -32601

    @pytest.mark.asyncio
    async def test_generic_protocol_error(self, transport: MockTransport) -> None:
        registry = CommandRegistry(transport)
        task = asyncio.create_task(registry.issue("Runtime.evaluate"))
        await wait_sent(transport, 1)

        registry.resolve(
            Response.model_validate(
                {"id": 1, "error": {"code": -32000, "message": "Something broke", "data": "x"}}
            )
        )

        with pytest.raises(ProtocolError) as exc_info:
            await task
        assert type(exc_info.value) is ProtocolError
        assert exc_info.value.data == "x"

    @pytest.mark.asyncio
    async def test_send_on_closed_transport(self) -> None:
        registry = CommandRegistry(MockTransport())

        with pytest.raises(TransportClosedError):
            await registry.issue("Browser.getVersion")

        assert registry.pending_count == 0


class TestIssueNowait:
    @pytest.mark.asyncio
    async def test_returns_id_without_pending(self, transport: MockTransport) -> None:
        registry = CommandRegistry(transport)

        command_id = await registry.issue_nowait("Page.enable", session_id="SID-1")

        assert command_id == 1
        assert registry.pending_count == 0
        assert transport.sent[0]["sessionId"] == "SID-1"

    @pytest.mark.asyncio
    async def test_response_is_discarded(self, transport: MockTransport) -> None:
        registry = CommandRegistry(transport)
        command_id = await registry.issue_nowait("Page.enable")

        assert registry.resolve(Response(id=command_id, result={})) is False


class TestFailAll:
    @pytest.mark.asyncio
    async def test_fails_every_pending_command(self, transport: MockTransport) -> None:
        registry = CommandRegistry(transport)
        tasks = [asyncio.create_task(registry.issue("Test.silent")) for _ in range(3)]
        await wait_sent(transport, 3)

        assert registry.fail_all("Connection closed") == 3

        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert all(isinstance(result, ConnectionClosedError) for result in results)
        assert "Connection closed" in str(results[0])
        assert registry.pending_count == 0

    def test_nothing_pending(self) -> None:
        assert CommandRegistry(MockTransport()).fail_all("Connection closed") == 0
