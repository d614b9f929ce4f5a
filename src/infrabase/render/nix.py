# src/infrabase/render/nix.py
from __future__ import annotations

import ipaddress
from typing import Iterable, List

from ..models import Machine, MachineAddress, WireguardPeer
from .endpoints import allowed_ips, format_endpoint


def _escape(s: str) -> str:
    return s.replace("\\", "\\\\").replace('"', '\\"').replace("${", "\\${")


def to_nix(value) -> str:
    """Nix literal for a str, int, IP address or None."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return to_nix(str(value))
    if isinstance(value, str):
        return f'"{_escape(value)}"'
    raise TypeError(f"Cannot render {type(value).__name__} as Nix")


def _nix_address(a: MachineAddress) -> str:
    return (
        f"{a.network} = {{ ip = {to_nix(a.address)}; ssh_port = {to_nix(a.ssh_port)}; "
        f"wireguard_port = {to_nix(a.wireguard_port)}; }}; "
    )


def render_nix_data(machines: Iterable[Machine]) -> str:
    """Attribute set hostname -> machine data, in the order given."""
    machines = list(machines)
    width = max((len(m.hostname) for m in machines), default=0)
    lines: List[str] = ["{"]
    for m in machines:
        addresses = "".join(_nix_address(a) for a in m.addresses)
        lines.append(
            f"  {m.hostname.ljust(width)} = {{ "
            f"owner = {to_nix(m.owner)}; "
            f"wireguard_ipv4_address = {to_nix(m.wireguard_ipv4_address)}; "
            f"wireguard_ipv6_address = {to_nix(m.wireguard_ipv6_address)}; "
            f"wireguard_port = {to_nix(m.wireguard_port)}; "
            f"ssh_port = {to_nix(m.ssh_port)}; "
            f"provider_id = {to_nix(m.provider_id)}; "
            f"provider_reference = {to_nix(m.provider_reference)}; "
            f"addresses = {{ {addresses}}}; }};"
        )
    lines.append("}")
    return "\n".join(lines) + "\n"


def _nix_peer(peer: WireguardPeer) -> str:
    ips = " ".join(to_nix(ip) for ip in allowed_ips(peer))
    line = f"  {{ name = {to_nix(peer.hostname)}; allowedIPs = [ {ips} ]; publicKey = {to_nix(peer.wireguard_pubkey)}; "
    if peer.endpoint is not None:
        line += f"endpoint = {to_nix(format_endpoint(peer.endpoint))}; "
    if peer.keepalive is not None:
        line += f"persistentKeepalive = {peer.keepalive}; "
    return line + "}"


def render_nix_peers(peers: Iterable[WireguardPeer]) -> str:
    """A Nix list of peer attribute sets, one per line."""
    return "\n".join(["[", *(_nix_peer(p) for p in peers), "]"]) + "\n"
