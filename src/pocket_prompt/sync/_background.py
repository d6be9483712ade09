"""Periodic background pull loop."""

from collections.abc import Callable

import anyio
import anyio.to_thread
from structlog.typing import FilteringBoundLogger

from pocket_prompt.exceptions import PocketPromptError, SyncTimeoutError
from pocket_prompt.utils import get_null_logger

from ._engine import SyncEngine
from ._models import PullResult


async def background_sync(
    engine: SyncEngine,
    interval: float,
    *,
    cancel_event: anyio.Event | None = None,
    on_pull: Callable[[PullResult], None] | None = None,
    logger: FilteringBoundLogger | None = None,
) -> None:
    """Pull remote changes every ``interval`` seconds until cancelled.

    Each pull runs in a worker thread. Cancellation (through the enclosing
    task group or ``cancel_event``) waits for an in-flight git command to
    finish rather than abandoning it. Failures never stop the loop: a run
    of timeouts produces a single warning, other errors are logged.

    Args:
        engine: Sync engine to drive. Ticks are skipped while it is disabled.
        interval: Seconds between pulls.
        cancel_event: Optional event that stops the loop when set.
        on_pull: Called with the result whenever a pull changed history.
        logger: Structured logger.
    """
    log = logger or get_null_logger()
    timeout_reported = False
    log.debug("background_sync_started", interval=interval)

    try:
        while True:
            if cancel_event is None:
                await anyio.sleep(interval)
            else:
                with anyio.move_on_after(interval):
                    await cancel_event.wait()
                if cancel_event.is_set():
                    return

            if not engine.enabled:
                continue

            try:
                result = await anyio.to_thread.run_sync(engine.pull_changes)
            except SyncTimeoutError as e:
                if not timeout_reported:
                    log.warning("background_sync_timeout", error=str(e))
                    timeout_reported = True
                continue
            except PocketPromptError as e:
                log.warning("background_sync_failed", error=str(e), error_type=type(e).__name__)
                continue

            timeout_reported = False
            if result.updated and on_pull is not None:
                try:
                    on_pull(result)
                except PocketPromptError as e:
                    log.warning("background_sync_callback_failed", error=str(e))
    finally:
        log.debug("background_sync_stopped")
