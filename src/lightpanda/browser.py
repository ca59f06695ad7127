"""Browser: supervised or attached engine plus its default page session.

Two modes:
- Supervised (default): spawn the engine with ProcessSupervisor and connect to
  the address it announces
- Attached: Options.ws_url is set, no process is started

Either way a blank page target is created and attached with ``flatten: true``
so page-level commands can be sent over the same connection with its
``sessionId``.
"""

from __future__ import annotations

import logging
from typing import Any

from .client import Client, EventHandler
from .options import Options
from .process import ProcessSupervisor

logger = logging.getLogger(__name__)


class Browser:
    """One engine connection with a default page.

    Usage:
        async with Browser(timeout=10) as browser:
            version = await browser.command("Browser.getVersion")
            await browser.page_command("Page.enable")
    """

    def __init__(self, options: Options | None = None, **overrides: Any):
        base = options or Options()
        self.options = base.replace(**overrides) if overrides else base
        self.process: ProcessSupervisor | None = None
        self.client: Client | None = None
        self.target_id: str | None = None
        self.session_id: str | None = None
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        """Connect (spawning the engine if needed) and open the default page."""
        if self._started:
            return

        try:
            if self.options.has_ws_url:
                ws_url = self.options.endpoint
            else:
                self.process = ProcessSupervisor(self.options)
                ws_url = await self.process.start()

            self.client = await Client.connect(ws_url, self.options)
            await self.create_page()
        except BaseException:
            await self._teardown()
            raise

        self._started = True
        logger.info(f"Browser started (target={self.target_id}, session={self.session_id})")

    async def create_page(self, url: str = "about:blank") -> str:
        """Create a page target and attach to it.

        Returns:
            The session id of the attached page
        """
        client = self._require_client()
        result = await client.command("Target.createTarget", {"url": url})
        self.target_id = result["targetId"]

        attached = await client.command(
            "Target.attachToTarget",
            {"targetId": self.target_id, "flatten": True},
        )
        self.session_id = attached["sessionId"]
        return self.session_id

    async def command(self, method: str, **params: Any) -> dict[str, Any]:
        """Send a command to the root connection."""
        return await self._require_client().command(method, params)

    async def page_command(self, method: str, **params: Any) -> dict[str, Any]:
        """Send a command to the default page session."""
        return await self._require_client().command(method, params, session_id=self.session_id)

    def on(self, event: str, handler: EventHandler) -> EventHandler:
        return self._require_client().on(event, handler)

    def off(self, event: str, handler: EventHandler | None = None) -> None:
        self._require_client().off(event, handler)

    async def quit(self) -> None:
        """Close the connection and stop the engine. Safe to call more than once."""
        await self._teardown()
        if self._started:
            logger.info("Browser stopped")
        self._started = False

    async def restart(self) -> None:
        await self.quit()
        await self.start()

    def _require_client(self) -> Client:
        if self.client is None:
            raise RuntimeError("Browser is not started")
        return self.client

    async def _teardown(self) -> None:
        client, self.client = self.client, None
        process, self.process = self.process, None
        self.target_id = None
        self.session_id = None
        try:
            if client is not None:
                await client.close()
        finally:
            if process is not None:
                await process.stop()

    async def __aenter__(self) -> Browser:
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.quit()
