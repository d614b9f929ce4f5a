# src/infrabase/mesh/links.py
from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

from ..models import NetworkLink

LinkRow = Union[NetworkLink, Tuple[str, str, int]]


class LinkPriorityIndex:
    """
    (network, other_network) -> priority, lower is preferred.

    Directed: ("home", "internet") says nothing about ("internet", "home").
    A pair missing from the index is not a permitted path at all.
    Built once per command from the network_links rows and never cached.
    """

    __slots__ = ("_map",)

    def __init__(self, mapping: Mapping[Tuple[str, str], int]):
        self._map = MappingProxyType(dict(mapping))

    @classmethod
    def build(cls, rows: Iterable[LinkRow]) -> "LinkPriorityIndex":
        mapping: Dict[Tuple[str, str], int] = {}
        for row in rows:
            if isinstance(row, NetworkLink):
                mapping[(row.network, row.other_network)] = row.priority
            else:
                network, other_network, priority = row
                mapping[(network, other_network)] = priority
        return cls(mapping)

    def lookup(self, network: str, other_network: str) -> Optional[int]:
        return self._map.get((network, other_network))

    def allows(self, network: str, other_network: str) -> bool:
        return (network, other_network) in self._map

    def __contains__(self, pair: object) -> bool:
        return pair in self._map

    def __len__(self) -> int:
        return len(self._map)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._map)

    def __repr__(self) -> str:
        return f"LinkPriorityIndex({dict(self._map)!r})"
