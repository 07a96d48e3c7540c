"""officehub - notification core for the office task and issue tracker"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports so lightweight modules don't pull in FastAPI
def __getattr__(name: str):
    if name == "create_app":
        from officehub.api.app import create_app

        return create_app

    if name in ("EmailQueue", "DigestService", "DigestScheduler"):
        from officehub.notifications import digest, queue, scheduler

        if name == "EmailQueue":
            return queue.EmailQueue
        if name == "DigestService":
            return digest.DigestService
        if name == "DigestScheduler":
            return scheduler.DigestScheduler

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "create_app",
    "EmailQueue",
    "DigestService",
    "DigestScheduler",
]
