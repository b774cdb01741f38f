from __future__ import annotations
import logging
from .events import BaseEvent, PipelineFailed

_SKIP = ("ts", "run_id", "revision")


class LoggerObserver:
    """Mirrors lifecycle events into the run log; failures go out at ERROR."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        etype = event.__class__.__name__
        msg = ", ".join(f"{k}={v}" for k, v in d.items() if k not in _SKIP)

        level = logging.ERROR if isinstance(event, PipelineFailed) else logging.DEBUG
        self.logger.log(level, "[EVENT] %s: %s", etype, msg)
