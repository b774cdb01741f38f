# src/trine/engine/interface.py

from __future__ import annotations

from pathlib import Path
from typing import List, Protocol, Sequence


class ContainerEngine(Protocol):
    """
    Everything the bootstrap pipeline needs from the outside world.

    Every method blocks until the underlying command finished and raises
    EngineError on failure. Methods that change an image return the tag the
    new content was committed under.
    """

    def build(self, hostname: str, identity: int) -> None:
        """Run the single-node image builder for one helper."""
        ...

    def image_exists(self, tag: str) -> bool: ...

    def extract(self, tag: str, path: str) -> bytes:
        """Read ``path`` from a throwaway container of ``tag``."""
        ...

    def inject(self, tag: str, path: str, data: bytes) -> str:
        """Write ``data`` to ``path`` inside ``tag`` and commit onto ``tag``."""
        ...

    def run_in_container(self, tag: str, argv: Sequence[str]) -> str:
        """Run ``argv`` inside ``tag`` and commit the result onto ``tag``."""
        ...

    def save(self, tag: str, archive: Path) -> Path: ...

    def live_transients(self) -> List[str]:
        """Names of transient containers created by this engine and not yet removed."""
        ...

    def release_transients(self) -> List[str]:
        """Best-effort removal of every live transient container."""
        ...

    def sweep_transients(self) -> List[str]:
        """Remove transient containers left behind by any run, including older ones."""
        ...
