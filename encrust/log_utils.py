from __future__ import annotations

from .logger import get_logger


def log_best_effort(channel: str, exc: BaseException, *, message: str | None = None) -> None:
    """
    Record a failure in cleanup code (destructors, wipes) that must not raise.

    Logged at DEBUG on ``encrust.<channel>``; only the exception type and
    message are kept, never the traceback.
    """
    get_logger(channel).debug("%s: %s: %s", message or "Cleanup failed", type(exc).__name__, exc)


__all__ = ["log_best_effort"]
