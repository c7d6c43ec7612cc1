# src/reminder_scheduler/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds ServiceState, starts the bus, then runs:
- the lifecycle event consumer (optional),
- the due-task scanner (optional).

SIGINT/SIGTERM request a cooperative stop: the in-flight event or scan tick
finishes, then the transports are closed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from ..cli.bootstrap import create_service_state
from ..config import get_settings
from ..core.state import ServiceState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


async def _shutdown(state: ServiceState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    for name, part in (("consumer", state.source), ("producer", state.publisher)):
        stop = getattr(part, "stop", None)
        if stop is None:
            continue
        try:
            await stop()
        except Exception:
            logger.exception("Failed to stop %s.", name)

    # TaskStore uses short-lived sqlite connections per call; close is a no-op hook.
    state.task_store.close()


async def serve(state: ServiceState, stop: asyncio.Event) -> None:
    """Run the consumer and scanner until `stop` is set."""
    settings = state.settings
    consumer_enabled = bool(getattr(settings, "consumer_enabled", True))
    scanner_enabled = bool(getattr(settings, "scanner_enabled", True))

    try:
        # The scanner only starts once the store and the bus are up.
        start = getattr(state.publisher, "start", None)
        if start is not None:
            await start()
        if consumer_enabled:
            start = getattr(state.source, "start", None)
            if start is not None:
                await start()

        runners: list[asyncio.Task] = []
        if consumer_enabled:
            runners.append(
                asyncio.create_task(state.coordinator.run(state.source, stop=stop), name="lifecycle-consumer")
            )
        if scanner_enabled:
            runners.append(asyncio.create_task(state.scanner.run(stop=stop), name="due-task-scanner"))

        if not runners:
            logger.warning("Consumer and scanner are both disabled; idling until stopped.")
            await stop.wait()
        else:
            try:
                await asyncio.gather(*runners)
            finally:
                # One runner failing stops the other before the transports close.
                stop.set()
                for runner in runners:
                    runner.cancel()
                await asyncio.gather(*runners, return_exceptions=True)
    finally:
        await _shutdown(state)


async def _amain(settings) -> None:
    state = create_service_state(settings=settings)
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()

    def _handle_signal(signum: int) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        # Some platforms (Windows) do not support loop signal handlers.
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, _handle_signal, sig)

    await serve(state, stop)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)
    try:
        asyncio.run(_amain(settings))
    except Exception:
        logger.exception("%s failed.", settings.app_name)
        raise SystemExit(1)
    logger.info("Bye.")


if __name__ == "__main__":
    main()
