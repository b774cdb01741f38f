# src/trine/bootstrap/confgen.py

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from trine.engine.interface import ContainerEngine
from trine.images.tagger import ImageTagger
from trine.observers.dispatcher import EventBus
from trine.observers.events import new_ctx, stamp, ConfigGenerated
from trine.topology.models import Topology

log = logging.getLogger("trine")


def confgen_argv(
    binary: str,
    keys_dir: str,
    hostnames: Sequence[str],
    ports: Sequence[int],
) -> List[str]:
    return [
        binary,
        "confgen",
        "--keys-dir",
        keys_dir,
        "--hosts",
        *hostnames,
        "--ports",
        *(str(p) for p in ports),
    ]


class ConfigGenerator:
    """
    Runs the helper binary's ``confgen`` inside each image once all keys are in
    place. The ports passed here are the ones written into network.toml, not
    the ports the helpers were bootstrapped with.
    """

    def __init__(
        self,
        engine: ContainerEngine,
        tagger: ImageTagger,
        *,
        binary: str,
        keys_dir: str,
        ports: Sequence[int],
        bus: Optional[EventBus] = None,
        run_ctx: Optional[dict] = None,
    ):
        self.engine = engine
        self.tagger = tagger
        self.binary = binary
        self.keys_dir = keys_dir
        self.ports = list(ports)
        self.bus = bus or EventBus()
        self.run_ctx = run_ctx or new_ctx(revision=tagger.revision)

    def generate_all(self, topology: Topology) -> List[str]:
        if len(self.ports) != len(topology):
            raise ValueError(
                f"{len(self.ports)} confgen ports for {len(topology)} helpers"
            )
        argv = confgen_argv(self.binary, self.keys_dir, topology.hostnames, self.ports)

        tags = []
        for node in topology:
            tag = self.tagger.tag(node.identity)
            log.info("generating network config for helper %d", node.identity)
            self.engine.run_in_container(tag, argv)
            self.bus.emit(ConfigGenerated(identity=node.identity, tag=tag, **stamp(self.run_ctx)))
            tags.append(tag)
        return tags
