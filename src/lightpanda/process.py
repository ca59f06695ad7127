"""Supervision of the Lightpanda engine process.

The engine is started as ``lightpanda serve --host H --port P --log_level info``
in its own session (and so its own process group). It reports readiness by
logging a line such as:

    info(app): server running address=127.0.0.1:9222

Both stdout and stderr are read concurrently until a line with
``address=<ip>:<port>`` appears; that address (not the requested port, which
may have been 0) becomes the WebSocket endpoint. After readiness the pipes keep
being drained into the debug log so the engine never blocks on a full pipe.
"""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
import os
import re
import shutil
import signal
from enum import Enum
from pathlib import Path
from typing import Any

from .errors import ProcessNotFoundError, ProcessStartTimeoutError
from .options import Options

logger = logging.getLogger(__name__)

READY_PATTERN = re.compile(r"address=(\d{1,3}(?:\.\d{1,3}){3}:\d+)")

BINARY_NAME = "lightpanda"


class ProcessState(str, Enum):
    """Supervisor lifecycle."""

    IDLE = "idle"
    STARTING = "starting"
    READY = "ready"
    STOPPING = "stopping"
    STOPPED = "stopped"


def _is_executable(path: str | Path) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


def default_binary_path() -> Path:
    """Cache location used by installers: $XDG_CACHE_HOME/lightpanda/lightpanda."""
    cache_dir = os.environ.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return Path(cache_dir) / BINARY_NAME / BINARY_NAME


def find_binary() -> str:
    """Locate an executable engine binary.

    Looks at LIGHTPANDA_PATH, then PATH, then the default cache location.

    Raises:
        ProcessNotFoundError: If none of them holds an executable
    """
    env_path = os.environ.get("LIGHTPANDA_PATH")
    if env_path and _is_executable(env_path):
        return env_path

    on_path = shutil.which(BINARY_NAME)
    if on_path:
        return on_path

    cached = default_binary_path()
    if _is_executable(cached):
        return str(cached)

    raise ProcessNotFoundError(
        "Lightpanda binary not found. Set LIGHTPANDA_PATH or Options.browser_path."
    )


def parse_ready_address(text: str) -> str | None:
    """Return ``ip:port`` from a ready line, or None."""
    match = READY_PATTERN.search(text)
    return match.group(1) if match else None


class ProcessSupervisor:
    """Starts, watches and stops one engine process.

    Usage:
        supervisor = ProcessSupervisor(Options(port=0))
        ws_url = await supervisor.start()
        ...
        await supervisor.stop()
    """

    def __init__(self, options: Options | None = None):
        self.options = options or Options()
        self._process: asyncio.subprocess.Process | None = None
        self._state = ProcessState.IDLE
        self._ws_url: str | None = None
        self._output: list[str] = []
        self._readers: list[asyncio.Task[None]] = []
        self._ready: asyncio.Future[str | None] | None = None
        self._open_streams = 0

    @property
    def state(self) -> ProcessState:
        return self._state

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def ws_url(self) -> str | None:
        """Endpoint announced by the engine, once ready."""
        return self._ws_url

    @property
    def output(self) -> str:
        """Everything captured from stdout/stderr up to readiness."""
        return "".join(self._output)

    def build_args(self) -> list[str]:
        return [
            "serve",
            "--host",
            str(self.options.host),
            "--port",
            str(self.options.port),
            "--log_level",
            self.options.log_level,
        ]

    def resolve_binary(self) -> str:
        path = self.options.browser_path
        if path is None:
            return find_binary()
        if not _is_executable(path):
            raise ProcessNotFoundError(f"Lightpanda binary not executable: {path}")
        return path

    async def start(self) -> str:
        """Spawn the engine and wait until it is listening.

        Returns:
            The WebSocket endpoint, e.g. "ws://127.0.0.1:9222/"

        Raises:
            ProcessNotFoundError: If no usable executable is available
            ProcessStartTimeoutError: If no ready line appears in time
        """
        if self._state == ProcessState.READY and self._ws_url:
            return self._ws_url

        binary = self.resolve_binary()
        args = self.build_args()

        self._state = ProcessState.STARTING
        self._output = []
        self._ready = asyncio.get_running_loop().create_future()

        try:
            self._process = await asyncio.create_subprocess_exec(
                binary,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            self._state = ProcessState.STOPPED
            raise ProcessNotFoundError(f"Failed to launch {binary}: {e}") from e

        logger.info(f"Launched engine: {binary} {' '.join(args)} (pid={self._process.pid})")

        self._open_streams = 2
        self._readers = [
            asyncio.create_task(self._read_stream(self._process.stdout, "stdout")),
            asyncio.create_task(self._read_stream(self._process.stderr, "stderr")),
        ]

        timeout = self.options.process_timeout
        try:
            address = await asyncio.wait_for(self._ready, timeout=timeout)
        except TimeoutError:
            output = self.output
            await self.stop()
            raise ProcessStartTimeoutError(
                f"Lightpanda failed to start within {timeout} seconds.\nOutput: {output}",
                output=output,
            ) from None

        if address is None:
            returncode = await self._process.wait()
            output = self.output
            await self.stop()
            raise ProcessStartTimeoutError(
                f"Lightpanda exited with code {returncode} before becoming ready.\n"
                f"Output: {output}",
                output=output,
            )

        self._ws_url = f"ws://{address}/"
        self._state = ProcessState.READY
        logger.info(f"Engine ready at {self._ws_url} (pid={self._process.pid})")
        return self._ws_url

    async def stop(self) -> None:
        """Terminate the engine and reap it. No-op when not running."""
        process = self._process
        if process is None:
            if self._state != ProcessState.IDLE:
                self._state = ProcessState.STOPPED
            return

        self._state = ProcessState.STOPPING

        if process.returncode is None:
            self._signal(process, signal.SIGTERM)
            try:
                await asyncio.wait_for(process.wait(), timeout=self.options.kill_timeout)
            except TimeoutError:
                logger.warning(f"Engine did not exit after SIGTERM, killing (pid={process.pid})")
                self._signal(process, signal.SIGKILL)
                await process.wait()

        await self._finish_readers()

        logger.info(f"Engine stopped (pid={process.pid}, returncode={process.returncode})")
        self._process = None
        self._ws_url = None
        self._ready = None
        self._state = ProcessState.STOPPED

    def is_alive(self) -> bool:
        """Best-effort liveness probe."""
        process = self._process
        if process is None or process.returncode is not None:
            return False
        try:
            os.kill(process.pid, 0)
        except (ProcessLookupError, PermissionError):
            return False
        return True

    def _signal(self, process: asyncio.subprocess.Process, sig: int) -> None:
        # The engine leads its own process group; signal the group when possible
        with contextlib.suppress(ProcessLookupError, PermissionError):
            if hasattr(os, "killpg"):
                os.killpg(process.pid, sig)
            else:
                process.send_signal(sig)

    async def _read_stream(self, stream: asyncio.StreamReader | None, name: str) -> None:
        """Accumulate output, watch for the ready line, then keep draining."""
        if stream is None:
            self._stream_finished()
            return

        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        pending = ""
        try:
            while True:
                chunk = await stream.read(4096)
                if not chunk:
                    pending += decoder.decode(b"", final=True)
                    break
                text = decoder.decode(chunk)
                if not self._is_ready():
                    self._output.append(text)

                pending += text
                *lines, pending = pending.split("\n")
                for line in lines:
                    self._handle_line(line, name)

            if pending:
                self._handle_line(pending, name)
        finally:
            self._stream_finished()

    def _handle_line(self, line: str, name: str) -> None:
        line = line.rstrip("\r")
        if line:
            logger.debug(f"[engine {name}] {line}")
        if self._ready is not None and not self._ready.done():
            address = parse_ready_address(line)
            if address:
                self._ready.set_result(address)

    def _is_ready(self) -> bool:
        return self._ready is not None and self._ready.done()

    def _stream_finished(self) -> None:
        self._open_streams -= 1
        if self._open_streams <= 0 and self._ready is not None and not self._ready.done():
            self._ready.set_result(None)

    async def _finish_readers(self) -> None:
        readers, self._readers = self._readers, []
        if not readers:
            return
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(
                asyncio.gather(*readers, return_exceptions=True),
                timeout=1.0,
            )

    async def __aenter__(self) -> ProcessSupervisor:
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.stop()
