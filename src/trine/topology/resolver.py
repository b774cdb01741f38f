# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import List, Sequence, Tuple

from .models import Node, Topology


class TopologyUsageError(ValueError):
    pass


def _parse_token(token: str) -> Tuple[str, int]:
    host, sep, port = token.partition(":")
    if not sep or not host:
        raise TopologyUsageError(
            f"'{token}' is not of the form hostname:port"
        )
    try:
        value = int(port)
    except ValueError:
        raise TopologyUsageError(f"'{token}': port '{port}' is not a number") from None
    if not 0 < value < 65536:
        raise TopologyUsageError(f"'{token}': port {value} is out of range")
    return host, value


def resolve_topology(
    tokens: Sequence[str],
    *,
    default_hostname: str = "localhost",
    base_port: int = 1443,
    size: int = 3,
) -> Topology:
    """
    Turn the positional hostname:port arguments into a Topology.

    Rules:
    - No tokens -> every helper on ``default_hostname``, ports
      ``base_port, base_port + 1, ...``
    - Exactly ``size`` tokens -> one helper per token, in order
    - Anything else -> TopologyUsageError, nothing else happens
    """
    if not tokens:
        return Topology(
            tuple(
                Node(identity=i, hostname=default_hostname, port=base_port + i - 1)
                for i in range(1, size + 1)
            )
        )

    if len(tokens) != size:
        raise TopologyUsageError(
            f"expected 0 or {size} hostname:port arguments, got {len(tokens)}"
        )

    nodes = []
    for i, token in enumerate(tokens, start=1):
        host, port = _parse_token(token)
        nodes.append(Node(identity=i, hostname=host, port=port))
    return Topology(tuple(nodes))


def exchange_pairs(size: int) -> List[Tuple[int, int]]:
    """
    Ordered (from, to) identity pairs so that every helper sends to every
    other helper exactly once.

    Walks the ring: helper ``src`` sends to ``src+1``, ``src+2``, ... wrapping
    around, so with three helpers the order is 1->2, 1->3, 2->3, 2->1, 3->1, 3->2.
    """
    pairs: List[Tuple[int, int]] = []
    for src in range(size):
        for offset in range(1, size):
            pairs.append((src + 1, (src + offset) % size + 1))
    return pairs
