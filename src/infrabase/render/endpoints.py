# src/infrabase/render/endpoints.py
from __future__ import annotations

import ipaddress
from typing import List, Tuple

from ..models import IPAddress, WireguardPeer


def host_prefix(ip: IPAddress) -> str:
    """Single-host CIDR: /32 for IPv4, /128 for IPv6."""
    return f"{ip}/{ip.max_prefixlen}"


def allowed_ips(peer: WireguardPeer) -> List[str]:
    return [host_prefix(ip) for ip in peer.wireguard_addresses]


def format_endpoint(endpoint: Tuple[IPAddress, int]) -> str:
    address, port = endpoint
    if isinstance(address, ipaddress.IPv6Address):
        return f"[{address}]:{port}"
    return f"{address}:{port}"
