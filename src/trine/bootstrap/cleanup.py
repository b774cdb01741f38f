# src/trine/bootstrap/cleanup.py

from __future__ import annotations

import logging
import signal
from contextlib import contextmanager
from typing import Iterator, List, Optional

from trine.engine.errors import EngineError
from trine.engine.interface import ContainerEngine
from trine.observers.dispatcher import EventBus
from trine.observers.events import new_ctx, stamp, TransientRemoved

log = logging.getLogger("trine")


class CleanupGuard:
    """
    Scope in which no transient container may outlive the run.

    On entry, containers left behind by earlier (crashed) runs are swept so
    they cannot collide with this one. On exit, whatever the reason, every
    transient container this engine still knows about is removed and the sweep
    runs again. Cleanup problems are logged; they never replace the exception
    that ended the run.
    """

    def __init__(
        self,
        engine: ContainerEngine,
        *,
        bus: Optional[EventBus] = None,
        run_ctx: Optional[dict] = None,
    ):
        self.engine = engine
        self.bus = bus or EventBus()
        self.run_ctx = run_ctx or new_ctx(revision="")
        self.removed: List[str] = []

    def _record(self, names: List[str]) -> None:
        for name in names:
            self.removed.append(name)
            self.bus.emit(TransientRemoved(name=name, **stamp(self.run_ctx)))

    def _sweep(self, *, strict: bool) -> None:
        try:
            self._record(self.engine.sweep_transients())
        except EngineError as exc:
            if strict:
                raise
            log.warning("transient container sweep failed: %s", exc)

    def __enter__(self) -> "CleanupGuard":
        self._sweep(strict=True)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        leftovers = self.engine.live_transients()
        if leftovers:
            log.warning("removing leftover transient containers: %s", ", ".join(leftovers))
            self._record(self.engine.release_transients())
        self._sweep(strict=exc_type is None)
        return False


@contextmanager
def exit_on_sigterm() -> Iterator[None]:
    """
    Turn SIGTERM into SystemExit for the duration of the block so ``finally``
    and ``__exit__`` handlers (CleanupGuard in particular) still run.
    """
    def _handler(signum, frame):
        raise SystemExit(128 + signum)

    try:
        previous = signal.signal(signal.SIGTERM, _handler)
    except ValueError:
        # not the main thread; leave signal handling alone
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)
