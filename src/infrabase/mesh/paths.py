# src/infrabase/mesh/paths.py
from __future__ import annotations

from itertools import product
from typing import Iterable, List, Optional, Tuple

from ..models import MachineAddress
from .links import LinkPriorityIndex

NetworkPair = Tuple[str, str]


def _distinct(items: Iterable[str]) -> List[str]:
    out: List[str] = []
    for item in items:
        if item not in out:
            out.append(item)
    return out


def resolve(
    index: LinkPriorityIndex,
    source_networks: Iterable[str],
    destination_addresses: Iterable[MachineAddress],
) -> List[NetworkPair]:
    """
    (source_network, dest_network) pairs usable to reach `destination_addresses`,
    best first.

    Pairs without a link entry are dropped, not ranked last. sorted() is stable,
    so equal priorities keep product order: source network outer, destination
    network inner. Rendered configs depend on that being reproducible.
    """
    sources = _distinct(source_networks)
    destinations = _distinct(a.network for a in destination_addresses)

    pairs = [(s, d) for s, d in product(sources, destinations) if index.allows(s, d)]
    return sorted(pairs, key=lambda pair: index.lookup(*pair))


def best_path(
    index: LinkPriorityIndex,
    source_networks: Iterable[str],
    destination_addresses: Iterable[MachineAddress],
) -> Optional[NetworkPair]:
    pairs = resolve(index, source_networks, destination_addresses)
    return pairs[0] if pairs else None
