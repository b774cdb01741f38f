# src/trine/topology/models.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Tuple


@dataclass(frozen=True)
class Node:
    """
    One helper party in the deployment.
    """
    identity: int                 # 1-based, embedded in image tag and key file names
    hostname: str                 # public DNS name or IP of the helper
    port: int                     # port the helper listens on

    def __str__(self) -> str:
        return f"h{self.identity}({self.hostname}:{self.port})"


@dataclass(frozen=True)
class Topology:
    nodes: Tuple[Node, ...]

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def node(self, identity: int) -> Node:
        return self.nodes[identity - 1]

    @property
    def hostnames(self) -> List[str]:
        return [n.hostname for n in self.nodes]

    @property
    def ports(self) -> List[int]:
        return [n.port for n in self.nodes]
