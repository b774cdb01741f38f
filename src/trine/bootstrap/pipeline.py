# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/trine/bootstrap/pipeline.py

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from trine.config.models import BootstrapConfig
from trine.engine.interface import ContainerEngine
from trine.images.tagger import ImageTagger
from trine.observers.dispatcher import EventBus
from trine.observers.events import (
    new_ctx,
    stamp,
    PipelineStarted,
    PhaseStarted,
    PhaseCompleted,
    PipelineFailed,
    PipelineSummary,
)
from trine.topology.models import Topology

from .builder import NodeBuilder
from .cleanup import CleanupGuard
from .confgen import ConfigGenerator
from .exchange import CredentialExchange
from .packager import Packager

log = logging.getLogger("trine")

# execution order is fixed; a run may only select a subset
PHASES = ("build", "exchange", "confgen", "package")


@dataclass
class PipelineReport:
    images: List[str] = field(default_factory=list)
    transfers: int = 0
    archives: List[Path] = field(default_factory=list)
    phases: List[str] = field(default_factory=list)


class BootstrapPipeline:
    """
    build -> exchange keys -> confgen -> save, strictly in that order.

    Fail fast: the first failing command aborts the run and nothing is rolled
    back. The whole run sits inside a CleanupGuard, so no transient container
    survives it.
    """

    def __init__(
        self,
        cfg: BootstrapConfig,
        engine: ContainerEngine,
        tagger: ImageTagger,
        *,
        output_dir: Path = Path("."),
        observers: Optional[List] = None,
        run_id: Optional[str] = None,
        shift_hostnames: bool = False,
    ):
        self.cfg = cfg
        self.engine = engine
        self.tagger = tagger
        self.output_dir = Path(output_dir)
        self.bus = EventBus(observers or [])
        self.run_ctx = new_ctx(revision=tagger.revision, run_id=run_id)

        self.builder = NodeBuilder(
            engine, tagger, bus=self.bus, run_ctx=self.run_ctx, shift_hostnames=shift_hostnames
        )
        self.exchange = CredentialExchange(engine, tagger, bus=self.bus, run_ctx=self.run_ctx)
        self.confgen = ConfigGenerator(
            engine,
            tagger,
            binary=cfg.confgen_binary,
            keys_dir=cfg.keys_dir,
            ports=cfg.confgen_ports,
            bus=self.bus,
            run_ctx=self.run_ctx,
        )
        self.packager = Packager(
            engine,
            tagger,
            output_dir=self.output_dir,
            archive_prefix=cfg.archive_prefix,
            bus=self.bus,
            run_ctx=self.run_ctx,
        )

    def _phase(self, name: str, report: PipelineReport, topology: Topology) -> None:
        self.bus.emit(PhaseStarted(phase=name, **stamp(self.run_ctx)))
        t0 = time.time()

        if name == "build":
            report.images = self.builder.build_all(topology)
        elif name == "exchange":
            report.transfers = self.exchange.exchange(topology, self.cfg.artifact_kinds)
        elif name == "confgen":
            self.confgen.generate_all(topology)
        elif name == "package":
            report.archives = self.packager.package_all(topology)

        report.phases.append(name)
        duration_ms = int((time.time() - t0) * 1000)
        self.bus.emit(PhaseCompleted(phase=name, duration_ms=duration_ms, **stamp(self.run_ctx)))

    def run(self, topology: Topology, phases: Optional[Iterable[str]] = None) -> PipelineReport:
        selected = set(phases) if phases is not None else set(PHASES)
        unknown = selected - set(PHASES)
        if unknown:
            raise ValueError(f"unknown phases: {', '.join(sorted(unknown))}")
        ordered = [p for p in PHASES if p in selected]

        report = PipelineReport()
        self.bus.emit(
            PipelineStarted(
                hostnames=topology.hostnames,
                ports=topology.ports,
                phases=ordered,
                **stamp(self.run_ctx),
            )
        )

        current: Optional[str] = None
        try:
            with CleanupGuard(self.engine, bus=self.bus, run_ctx=self.run_ctx):
                if "build" not in selected:
                    current = "verify"
                    report.images = self.builder.verify_all(topology)
                for name in ordered:
                    current = name
                    self._phase(name, report, topology)
                current = None
        except BaseException as exc:
            self.bus.emit(PipelineFailed(phase=current, error=str(exc) or exc.__class__.__name__, **stamp(self.run_ctx)))
            raise

        self.bus.emit(
            PipelineSummary(
                images=report.images,
                archives=[str(a) for a in report.archives],
                transfers=report.transfers,
                **stamp(self.run_ctx),
            )
        )
        return report
