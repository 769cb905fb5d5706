"""
memsync/hook_server.py
Loopback hook intake server and its discovery file.
Exports: HookServer
"""

import asyncio
import contextlib
import logging
import secrets
import socket
from pathlib import Path

import uvicorn

from memsync.discovery import write_discovery_file
from memsync.main import create_app
from memsync.processor import HookEventProcessor

logger = logging.getLogger(__name__)

LOOPBACK_HOST = "127.0.0.1"
STARTUP_POLL_SECONDS = 0.02
STARTUP_TIMEOUT_SECONDS = 10.0
SHUTDOWN_TIMEOUT_SECONDS = 5.0


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the owning service."""

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class HookServer:
    """Serves the intake app on an OS-assigned loopback port."""

    def __init__(
        self,
        processor: HookEventProcessor,
        *,
        discovery_path: Path,
        host: str = LOOPBACK_HOST,
        token: str | None = None,
    ) -> None:
        self.processor = processor
        self.discovery_path = discovery_path
        self.host = host
        self.token = token or secrets.token_hex(24)
        self.port: int | None = None
        self._server: uvicorn.Server | None = None
        self._task: asyncio.Task | None = None
        self._socket: socket.socket | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> int:
        """
        Bind, serve and publish the discovery file.

        Returns:
            The bound port.
        Raises:
            RuntimeError: When the server fails to start.
        """
        if self.running:
            return self.port or 0
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((self.host, 0))
        self._socket = sock
        self.port = sock.getsockname()[1]

        config = uvicorn.Config(
            create_app(self.processor, self.token),
            log_level="warning",
            log_config=None,
            lifespan="off",
        )
        self._server = _EmbeddedServer(config)
        self._task = asyncio.create_task(self._server.serve(sockets=[sock]))

        waited = 0.0
        while not self._server.started:
            if self._task.done():
                self._close_socket()
                raise RuntimeError("Hook server exited during startup.") from self._task.exception()
            if waited >= STARTUP_TIMEOUT_SECONDS:
                await self._shutdown_server()
                raise RuntimeError("Hook server did not start in time.")
            await asyncio.sleep(STARTUP_POLL_SECONDS)
            waited += STARTUP_POLL_SECONDS

        write_discovery_file(self.discovery_path, self.port, self.token)
        logger.info("Hook server listening on %s:%d (discovery: %s).", self.host, self.port, self.discovery_path)
        return self.port

    async def stop(self) -> None:
        """Ask uvicorn to exit, wait for it, then dispose."""
        await self._shutdown_server()
        self.dispose()

    async def _shutdown_server(self) -> None:
        if self._server is not None:
            self._server.should_exit = True
        if self._task is not None:
            try:
                await asyncio.wait_for(self._task, timeout=SHUTDOWN_TIMEOUT_SECONDS)
            except asyncio.TimeoutError:
                logger.warning("Hook server did not stop in time; cancelling.")
                self._task.cancel()
            except Exception:
                logger.exception("Hook server stopped with an error.")
        self._task = None
        self._server = None
        self._close_socket()

    def _close_socket(self) -> None:
        if self._socket is not None:
            with contextlib.suppress(OSError):
                self._socket.close()
            self._socket = None

    def dispose(self) -> None:
        """Remove the discovery file and drop all pending correlation state."""
        try:
            self.discovery_path.unlink(missing_ok=True)
        except OSError:
            logger.exception("Failed to remove hook discovery file %s.", self.discovery_path)
        self.processor.clear()
