# src/trine/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single bootstrap invocation
    revision: str     # source revision the images are tagged with

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def new_ctx(revision: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": _now(),
        "run_id": run_id or str(uuid.uuid4()),
        "revision": revision,
    }


def stamp(ctx: Dict[str, Any]) -> Dict[str, Any]:
    """Same run context with the timestamp taken now."""
    return {**ctx, "ts": _now()}


# ---------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PipelineStarted(BaseEvent):
    hostnames: List[str]
    ports: List[int]
    phases: List[str]

@dataclass(frozen=True)
class PhaseStarted(BaseEvent):
    phase: str

@dataclass(frozen=True)
class PhaseCompleted(BaseEvent):
    phase: str
    duration_ms: int

@dataclass(frozen=True)
class PipelineFailed(BaseEvent):
    phase: Optional[str]
    error: str

@dataclass(frozen=True)
class PipelineSummary(BaseEvent):
    images: List[str]
    archives: List[str]
    transfers: int


# ---------------------------------------------------------------------
# Per-node steps
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class NodeBuilt(BaseEvent):
    identity: int
    hostname: str
    tag: str

@dataclass(frozen=True)
class TransferCompleted(BaseEvent):
    kind: str
    path: str
    source: int
    destination: int

@dataclass(frozen=True)
class ConfigGenerated(BaseEvent):
    identity: int
    tag: str

@dataclass(frozen=True)
class ArchiveSaved(BaseEvent):
    identity: int
    tag: str
    path: str


# ---------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class TransientRemoved(BaseEvent):
    name: str
