from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from trine.engine.interface import ContainerEngine
from trine.images.tagger import ImageTagger
from trine.observers.dispatcher import EventBus
from trine.observers.events import new_ctx, stamp, ArchiveSaved
from trine.topology.models import Topology

log = logging.getLogger("trine")


class Packager:
    """Exports each finished helper image to ``<output_dir>/<prefix>-<identity>.tar``."""

    def __init__(
        self,
        engine: ContainerEngine,
        tagger: ImageTagger,
        *,
        output_dir: Path,
        archive_prefix: str = "ipa",
        bus: Optional[EventBus] = None,
        run_ctx: Optional[dict] = None,
    ):
        self.engine = engine
        self.tagger = tagger
        self.output_dir = Path(output_dir)
        self.archive_prefix = archive_prefix
        self.bus = bus or EventBus()
        self.run_ctx = run_ctx or new_ctx(revision=tagger.revision)

    def archive_path(self, identity: int) -> Path:
        return self.output_dir / f"{self.archive_prefix}-{identity}.tar"

    def package_all(self, topology: Topology) -> List[Path]:
        archives = []
        for node in topology:
            tag = self.tagger.tag(node.identity)
            path = self.engine.save(tag, self.archive_path(node.identity))
            log.info("saved %s -> %s", tag, path)
            self.bus.emit(ArchiveSaved(identity=node.identity, tag=tag, path=str(path), **stamp(self.run_ctx)))
            archives.append(path)
        return archives
