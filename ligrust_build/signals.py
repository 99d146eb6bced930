"""Signal handling for cancellation.

SIGINT already raises KeyboardInterrupt in the main thread. SIGTERM does
not, so a terminated run would skip the cleanup of half-written artifacts.
This module maps SIGTERM onto KeyboardInterrupt for the duration of a run.
"""

import logging
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from types import FrameType

logger = logging.getLogger(__name__)


def _raise_interrupt(signum: int, frame: FrameType | None) -> None:
    logger.warning("Received signal %d, interrupting", signum)
    raise KeyboardInterrupt


@contextmanager
def interrupt_on_sigterm() -> Iterator[None]:
    """Raise KeyboardInterrupt on SIGTERM while the block runs.

    The previous handler is restored on exit. Outside the main thread
    signal handlers cannot be installed and the block runs unchanged.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    original = signal.signal(signal.SIGTERM, _raise_interrupt)
    logger.debug("SIGTERM handler installed")
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, original)
        logger.debug("SIGTERM handler restored")


__all__ = ["interrupt_on_sigterm"]
