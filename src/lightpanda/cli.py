"""Lightpanda CDP command-line interface.

Starts the engine (or attaches to a running one with --ws-url) and talks raw
CDP to it.

Usage:
    lightpanda-cdp version                              # Browser.getVersion
    lightpanda-cdp command Target.getTargets            # Root-level command
    lightpanda-cdp command Page.navigate '{"url": "https://example.com"}' --page
    lightpanda-cdp events Page.loadEventFired --enable Page \\
        --navigate https://example.com --count 1       # Stream events as JSON lines

    lightpanda-cdp --ws-url ws://127.0.0.1:9222/ version
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Coroutine
from typing import Any, TypeVar

import click

from .browser import Browser
from .errors import LightpandaError
from .options import DEFAULT_HOST, DEFAULT_PORT, Options

T = TypeVar("T")


def _run(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, turning driver errors into exit status 1."""
    try:
        return asyncio.run(coro)
    except LightpandaError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted", err=True)
        sys.exit(130)


def _parse_params(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        params = json.loads(raw)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e}", param_hint="PARAMS") from e
    if not isinstance(params, dict):
        raise click.BadParameter("must be a JSON object", param_hint="PARAMS")
    return params


@click.group()
@click.option("--ws-url", default=None, help="Attach to a running engine instead of spawning one")
@click.option("--host", default=DEFAULT_HOST, help="Host for the spawned engine")
@click.option("--port", default=DEFAULT_PORT, type=int, help="Port for the spawned engine (0 = any)")
@click.option("--timeout", type=float, default=None, help="Command timeout in seconds")
@click.option("--process-timeout", type=float, default=None, help="Engine startup timeout in seconds")
@click.option(
    "--browser-path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Engine executable (default: LIGHTPANDA_PATH, PATH, cache)",
)
@click.option("-v", "--verbose", is_flag=True, help="Log protocol and engine output to stderr")
@click.pass_context
def main(
    ctx: click.Context,
    ws_url: str | None,
    host: str,
    port: int,
    timeout: float | None,
    process_timeout: float | None,
    browser_path: str | None,
    verbose: bool,
) -> None:
    """Drive the Lightpanda browser over the Chrome DevTools Protocol."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    options = Options(host=host, port=port, browser_path=browser_path, ws_url=ws_url)
    if timeout is not None:
        options.timeout = timeout
    if process_timeout is not None:
        options.process_timeout = process_timeout
    ctx.obj = options


@main.command("command")
@click.argument("method")
@click.argument("params", required=False)
@click.option("--page", is_flag=True, help="Send to the default page session")
@click.pass_obj
def command_cmd(options: Options, method: str, params: str | None, page: bool) -> None:
    """Send METHOD with optional PARAMS (a JSON object) and print the result.

    Examples:

        lightpanda-cdp command Browser.getVersion

        lightpanda-cdp command Runtime.evaluate '{"expression": "1 + 1"}' --page
    """
    parsed = _parse_params(params)

    async def send() -> dict[str, Any]:
        async with Browser(options) as browser:
            if page:
                return await browser.page_command(method, **parsed)
            return await browser.command(method, **parsed)

    result = _run(send())
    click.echo(json.dumps(result, indent=2))


@main.command()
@click.pass_obj
def version(options: Options) -> None:
    """Print the engine's protocol and product versions."""

    async def get_version() -> dict[str, Any]:
        async with Browser(options) as browser:
            return await browser.command("Browser.getVersion")

    result = _run(get_version())
    click.echo(json.dumps(result, indent=2))


@main.command()
@click.argument("names", nargs=-1, required=True)
@click.option("--count", "-n", type=int, default=None, help="Stop after N events")
@click.option("--duration", "-d", type=float, default=None, help="Stop after S seconds")
@click.option("--enable", "domains", multiple=True, help="Send <DOMAIN>.enable to the page first")
@click.option("--navigate", default=None, help="Navigate the page to URL after subscribing")
@click.pass_obj
def events(
    options: Options,
    names: tuple[str, ...],
    count: int | None,
    duration: float | None,
    domains: tuple[str, ...],
    navigate: str | None,
) -> None:
    """Print events named NAMES as JSON lines.

    Runs until --count events were printed, --duration elapsed, or Ctrl+C.
    """

    async def listen() -> None:
        async with Browser(options) as browser:
            queue: asyncio.Queue[tuple[str, dict[str, Any]]] = asyncio.Queue()
            for name in names:
                browser.on(name, lambda params, name=name: queue.put_nowait((name, params)))

            for domain in domains:
                await browser.page_command(f"{domain}.enable")
            if navigate:
                await browser.page_command("Page.navigate", url=navigate)

            loop = asyncio.get_running_loop()
            deadline = loop.time() + duration if duration is not None else None
            received = 0
            while count is None or received < count:
                remaining = None if deadline is None else deadline - loop.time()
                if remaining is not None and remaining <= 0:
                    break
                try:
                    name, params = await asyncio.wait_for(queue.get(), timeout=remaining)
                except TimeoutError:
                    break
                click.echo(json.dumps({"method": name, "params": params}))
                received += 1

    _run(listen())


if __name__ == "__main__":
    main()
