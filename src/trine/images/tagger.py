# src/trine/images/tagger.py

"""
Image naming for helper images.

The tag scheme has to stay in sync with the one the external builder
(helper-image.sh) uses, otherwise the exchange and packaging steps look up
images that were never built.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from trine.engine.errors import EngineError
from trine.execution.runner import CommandRunner


@dataclass(frozen=True)
class ImageTagger:
    namespace: str
    project: str
    revision: str

    def tag(self, identity: int) -> str:
        if identity < 1:
            raise ValueError(f"identity must be >= 1, got {identity}")
        return f"{self.namespace}/{self.project}:{self.revision}-h{identity}"


def resolve_revision(
    source_dir: Path,
    runner: CommandRunner,
    *,
    length: int = 10,
) -> str:
    """Short hash of the last commit in ``source_dir``."""
    cp = runner.run(
        ["git", "log", "-n", "1", "--format=format:%H"],
        cwd=source_dir,
    )
    rev = (cp.stdout or "").strip()[:length]
    if not rev:
        raise EngineError(f"could not determine git revision in {source_dir}")
    return rev
