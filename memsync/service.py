"""
memsync/service.py
Long-running memsync service: wires the runtime, serves hooks, shuts down cleanly.
Exports: Runtime, build_runtime, serve, main
"""

import asyncio
import logging
import signal
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from memsync.correlator import InteractionCorrelator
from memsync.hook_server import HookServer
from memsync.memory.cache import ContextCache
from memsync.memory.client import MemoryStoreClient
from memsync.memory.provider import ContextProvider
from memsync.processor import HookEventProcessor
from memsync.shared import (
    cache_ttl_seconds,
    configure_logging,
    context_file_relpath,
    discovery_file_path,
    http_timeout_seconds,
    memory_api_key,
    memory_api_url,
    memory_user_id,
    refresh_interval_seconds,
    settle_delay_seconds,
    stats_after_sync_enabled,
    workspace_path,
)
from memsync.sync import INITIAL_REFRESH_QUERY, SyncSequencer

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    workspace: Path
    client: MemoryStoreClient
    cache: ContextCache
    provider: ContextProvider
    sequencer: SyncSequencer
    correlator: InteractionCorrelator
    processor: HookEventProcessor
    server: HookServer
    refresh_interval_seconds: float = 0.0


def build_runtime() -> Runtime:
    """
    Build every collaborator from environment settings.

    Raises:
        RuntimeError: When a setting has an invalid value.
    """
    workspace = workspace_path()
    user_id = memory_user_id()
    client = MemoryStoreClient(memory_api_url(), memory_api_key(), timeout=http_timeout_seconds())
    cache = ContextCache(ttl_seconds=cache_ttl_seconds())
    provider = ContextProvider(client, cache, user_id)
    sequencer = SyncSequencer(
        client,
        provider,
        user_id=user_id,
        context_file=context_file_relpath(),
        settle_delay_seconds=settle_delay_seconds(),
        stats_after_sync=stats_after_sync_enabled(),
    )
    correlator = InteractionCorrelator()
    processor = HookEventProcessor(correlator, sequencer, workspace)
    server = HookServer(processor, discovery_path=discovery_file_path())
    return Runtime(
        workspace=workspace,
        client=client,
        cache=cache,
        provider=provider,
        sequencer=sequencer,
        correlator=correlator,
        processor=processor,
        server=server,
        refresh_interval_seconds=refresh_interval_seconds(),
    )


async def shutdown(runtime: Runtime) -> None:
    """Dispose the sequencer, stop intake, then release cache and HTTP client."""
    runtime.sequencer.dispose()
    await runtime.server.stop()
    runtime.provider.clear_cache()
    await runtime.client.aclose()
    logger.info("memsync stopped.")


async def serve(runtime: Runtime, stop_event: asyncio.Event | None = None) -> None:
    """
    Run the service until `stop_event` is set (SIGINT/SIGTERM set it by default).

    Args:
        runtime: Wired collaborators from build_runtime().
        stop_event: Optional externally controlled shutdown trigger.
    """
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handler for %s not supported here.", sig)

    try:
        await runtime.server.start()
        if not await runtime.client.health_check():
            logger.warning("Memory store at %s is not healthy; context may be unavailable.", runtime.client.base_url)
        await runtime.processor.run_refresh(INITIAL_REFRESH_QUERY)
        runtime.sequencer.start_periodic_refresh(runtime.workspace, runtime.refresh_interval_seconds)
        logger.info("memsync running for workspace %s.", runtime.workspace)
        await stop_event.wait()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        await shutdown(runtime)


def main() -> int:
    """Entry point for `memsync`."""
    load_dotenv()
    configure_logging()
    try:
        runtime = build_runtime()
    except RuntimeError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1
    asyncio.run(serve(runtime))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
