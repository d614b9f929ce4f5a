# src/infrabase/mesh/peers.py
from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Tuple

from ..errors import MachineHasNoWireguard, NoSuchMachine, PortOutOfRange
from ..logging import get_logger
from ..models import IPAddress, KeepaliveMap, Machine, MachineAddress, SshTarget, WireguardPeer
from ..natsort import natural_key, natural_sorted
from .links import LinkPriorityIndex
from .paths import best_path

__all__ = [
    "get_machine",
    "require_wireguard",
    "check_port",
    "wireguard_endpoint",
    "build_peers",
    "select_ssh_targets",
]

log = get_logger()


def get_machine(machines: Mapping[str, Machine], hostname: str) -> Machine:
    try:
        return machines[hostname]
    except KeyError:
        raise NoSuchMachine(hostname) from None


def require_wireguard(machine: Machine) -> Machine:
    """Raise unless `machine` has everything an [Interface] section needs."""
    if machine.wireguard_ipv4_address is None:
        raise MachineHasNoWireguard(machine.hostname, "WireGuard IPv4 address")
    if machine.wireguard_ipv6_address is None:
        raise MachineHasNoWireguard(machine.hostname, "WireGuard IPv6 address")
    if machine.wireguard_port is None:
        raise MachineHasNoWireguard(machine.hostname, "WireGuard port")
    if not machine.wireguard_privkey:
        raise MachineHasNoWireguard(machine.hostname, "WireGuard private key")
    return machine


def check_port(port: int) -> int:
    if not 0 <= port <= 65535:
        raise PortOutOfRange(port)
    return port


def _address_on(machine: Machine, network: str) -> Optional[MachineAddress]:
    for a in machine.addresses:
        if a.network == network:
            return a
    return None


def _chosen_address(
    index: LinkPriorityIndex, source: Machine, candidate: Machine
) -> Optional[MachineAddress]:
    """Candidate address on the best (source -> candidate) path, seen from `source`."""
    pair = best_path(index, source.networks, candidate.addresses)
    if pair is None:
        return None
    return _address_on(candidate, pair[1])


def wireguard_endpoint(
    index: LinkPriorityIndex, source: Machine, candidate: Machine
) -> Optional[Tuple[IPAddress, int]]:
    """
    (address, port) `source` should send WireGuard packets to, or None when
    nothing resolves or the chosen address has no WireGuard port recorded.
    """
    address = _chosen_address(index, source, candidate)
    if address is None or address.wireguard_port is None:
        return None
    return address.address, check_port(address.wireguard_port)


def build_peers(
    machines: Mapping[str, Machine],
    index: LinkPriorityIndex,
    keepalives: KeepaliveMap,
    for_hostname: str,
) -> List[WireguardPeer]:
    """
    [Peer] entries for `for_hostname`, naturally sorted by hostname.

    Candidates without a public key or without any WireGuard address are left
    out; they can still show up in the SSH config.
    """
    source = get_machine(machines, for_hostname)

    peers: List[WireguardPeer] = []
    for candidate in machines.values():
        if candidate.hostname == for_hostname:
            continue
        if not candidate.wireguard_pubkey or not candidate.wireguard_addresses:
            log.debug(f"{for_hostname}: skipping {candidate.hostname} (no WireGuard)")
            continue

        endpoint = wireguard_endpoint(index, source, candidate)
        keepalive = keepalives.get((for_hostname, candidate.hostname))
        peers.append(
            WireguardPeer(
                hostname=candidate.hostname,
                wireguard_pubkey=candidate.wireguard_pubkey,
                wireguard_addresses=candidate.wireguard_addresses,
                endpoint=endpoint,
                keepalive=keepalive,
            )
        )

    peers.sort(key=lambda p: natural_key(p.hostname))
    log.debug(f"{for_hostname}: {len(peers)} WireGuard peer(s)")
    return peers


def select_ssh_targets(
    machines: Mapping[str, Machine],
    index: LinkPriorityIndex,
    for_hostname: str,
) -> Dict[str, SshTarget]:
    """
    hostname -> SshTarget for every machine `for_hostname` can SSH to,
    in natural hostname order.

    A non-WireGuard address is preferred in case WireGuard is down; the
    WireGuard address (with the machine-level SSH port) is used only when no
    link resolves. Machines ending up without an address or port are omitted.
    """
    source = get_machine(machines, for_hostname)

    targets: Dict[str, SshTarget] = {}
    for candidate in natural_sorted(machines.values(), key=lambda m: m.hostname):
        chosen = _chosen_address(index, source, candidate)
        if chosen is not None:
            address: Optional[IPAddress] = chosen.address
            port = chosen.ssh_port
        else:
            address = candidate.wireguard_ipv4_address or candidate.wireguard_ipv6_address
            port = candidate.ssh_port

        if address is None or port is None:
            log.debug(f"{for_hostname}: no SSH route to {candidate.hostname}")
            continue
        targets[candidate.hostname] = SshTarget(
            hostname=candidate.hostname,
            owner=candidate.owner,
            address=address,
            port=check_port(port),
        )
    return targets
