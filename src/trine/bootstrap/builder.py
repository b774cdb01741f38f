# src/trine/bootstrap/builder.py

from __future__ import annotations

import logging
from typing import List, Optional

from trine.engine.errors import ImageMissingError
from trine.engine.interface import ContainerEngine
from trine.images.tagger import ImageTagger
from trine.observers.dispatcher import EventBus
from trine.observers.events import new_ctx, stamp, NodeBuilt
from trine.topology.models import Topology

log = logging.getLogger("trine")


def builder_hostnames(topology: Topology, *, shift: bool = False) -> List[str]:
    """
    Hostname handed to the builder for each helper, in identity order.

    With ``shift`` helper i gets the hostname of helper i-1 (helper 1 gets the
    last one). helper-image.sh was historically driven that way; whether that
    was deliberate is unknown, so it is only reproduced on request.
    """
    names = topology.hostnames
    if not shift:
        return names
    return [names[i - 1] for i in range(len(names))]


class NodeBuilder:
    def __init__(
        self,
        engine: ContainerEngine,
        tagger: ImageTagger,
        *,
        bus: Optional[EventBus] = None,
        run_ctx: Optional[dict] = None,
        shift_hostnames: bool = False,
    ):
        self.engine = engine
        self.tagger = tagger
        self.bus = bus or EventBus()
        self.run_ctx = run_ctx or new_ctx(revision=tagger.revision)
        self.shift_hostnames = shift_hostnames

    def build_all(self, topology: Topology) -> List[str]:
        tags = []
        hostnames = builder_hostnames(topology, shift=self.shift_hostnames)
        for node, hostname in zip(topology, hostnames):
            log.info(
                "Generating image #%d: host: %s, port: %d",
                node.identity, node.hostname, node.port,
            )
            self.engine.build(hostname, node.identity)

            tag = self.tagger.tag(node.identity)
            if not self.engine.image_exists(tag):
                raise ImageMissingError(
                    f"builder finished for helper {node.identity} but no image is tagged {tag}"
                )
            self.bus.emit(NodeBuilt(identity=node.identity, hostname=hostname, tag=tag, **stamp(self.run_ctx)))
            tags.append(tag)
        return tags

    def verify_all(self, topology: Topology) -> List[str]:
        """Check images from an earlier run exist, used when the build phase is skipped."""
        tags = [self.tagger.tag(node.identity) for node in topology]
        missing = [t for t in tags if not self.engine.image_exists(t)]
        if missing:
            raise ImageMissingError(
                f"images not found: {', '.join(missing)} (run the build phase first)"
            )
        return tags
