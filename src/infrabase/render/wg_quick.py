# src/infrabase/render/wg_quick.py
from __future__ import annotations

from typing import Iterable, List

from ..mesh import require_wireguard
from ..models import Machine, WireguardPeer
from .endpoints import allowed_ips, format_endpoint, host_prefix


def render_wg_quick(machine: Machine, peers: Iterable[WireguardPeer]) -> str:
    """
    wg-quick(8) config for `machine`. Raises MachineHasNoWireguard before
    producing anything if the [Interface] section can't be filled in.
    """
    require_wireguard(machine)

    lines: List[str] = [
        f"# infrabase-generated wg-quick config for {machine.hostname}",
        "",
        "[Interface]",
        f"Address = {host_prefix(machine.wireguard_ipv4_address)}, {host_prefix(machine.wireguard_ipv6_address)}",
        f"PrivateKey = {machine.wireguard_privkey}",
        f"ListenPort = {machine.wireguard_port}",
    ]
    for peer in peers:
        lines += [
            "",
            f"# {peer.hostname}",
            "[Peer]",
            f"PublicKey = {peer.wireguard_pubkey}",
            f"AllowedIPs = {', '.join(allowed_ips(peer))}",
        ]
        if peer.endpoint is not None:
            lines.append(f"Endpoint = {format_endpoint(peer.endpoint)}")
        if peer.keepalive is not None:
            lines.append(f"PersistentKeepalive = {peer.keepalive}")
    return "\n".join(lines) + "\n"
