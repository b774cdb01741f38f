# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/trine/bootstrap/exchange.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from trine.config.models import ArtifactKind
from trine.engine.interface import ContainerEngine
from trine.images.tagger import ImageTagger
from trine.observers.dispatcher import EventBus
from trine.observers.events import new_ctx, stamp, TransferCompleted
from trine.topology.models import Node, Topology
from trine.topology.resolver import exchange_pairs

log = logging.getLogger("trine")


@dataclass(frozen=True)
class Transfer:
    source: Node
    destination: Node
    kind: ArtifactKind

    def __post_init__(self):
        if self.source.identity == self.destination.identity:
            raise ValueError(f"transfer from helper {self.source.identity} to itself")

    @property
    def path(self) -> str:
        # key files are always named after the helper that owns them
        return self.kind.path_for(self.source.identity)


class CredentialExchange:
    """
    Copies public key material between helper images so every helper ends up
    with the certificate and match key public key of all the others.

    For every artifact kind and every ordered pair of distinct helpers the file
    is read from the source image and committed into the destination image.
    There is no rollback: a failure leaves already updated images as they are.
    """

    def __init__(
        self,
        engine: ContainerEngine,
        tagger: ImageTagger,
        *,
        bus: Optional[EventBus] = None,
        run_ctx: Optional[dict] = None,
    ):
        self.engine = engine
        self.tagger = tagger
        self.bus = bus or EventBus()
        self.run_ctx = run_ctx or new_ctx(revision=tagger.revision)

    @staticmethod
    def plan(topology: Topology, kinds: Sequence[ArtifactKind]) -> List[Transfer]:
        transfers: List[Transfer] = []
        for kind in kinds:
            for src, dst in exchange_pairs(len(topology)):
                transfers.append(
                    Transfer(source=topology.node(src), destination=topology.node(dst), kind=kind)
                )
        return transfers

    def transfer(self, t: Transfer) -> None:
        src, dst = t.source.identity, t.destination.identity
        log.info("copying %s from %d to %d", t.path, src, dst)

        data = self.engine.extract(self.tagger.tag(src), t.path)
        self.engine.inject(self.tagger.tag(dst), t.path, data)

        self.bus.emit(
            TransferCompleted(kind=t.kind.name, path=t.path, source=src, destination=dst, **stamp(self.run_ctx))
        )

    def run(self, transfers: Sequence[Transfer]) -> int:
        for t in transfers:
            self.transfer(t)
        return len(transfers)

    def exchange(self, topology: Topology, kinds: Sequence[ArtifactKind]) -> int:
        return self.run(self.plan(topology, kinds))
