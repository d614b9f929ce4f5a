# src/infrabase/models.py
from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

# Pseudo-network for machines without any row in machine_addresses.
NO_NETWORK = "NONE"


@dataclass(frozen=True)
class MachineAddress:
    hostname: str
    network: str
    address: IPAddress
    ssh_port: Optional[int] = None
    wireguard_port: Optional[int] = None


@dataclass
class Machine:
    hostname: str
    owner: str
    added_time: Optional[datetime] = None
    provider_id: Optional[int] = None
    provider_reference: Optional[str] = None
    wireguard_ipv4_address: Optional[ipaddress.IPv4Address] = None
    wireguard_ipv6_address: Optional[ipaddress.IPv6Address] = None
    wireguard_port: Optional[int] = None
    wireguard_privkey: Optional[str] = None
    wireguard_pubkey: Optional[str] = None
    ssh_port: Optional[int] = None
    ssh_user: Optional[str] = None
    addresses: List[MachineAddress] = field(default_factory=list)

    @property
    def networks(self) -> List[str]:
        """Distinct networks this machine has addresses on, in address order; ["NONE"] if none."""
        seen: List[str] = []
        for a in self.addresses:
            if a.network not in seen:
                seen.append(a.network)
        return seen or [NO_NETWORK]

    @property
    def wireguard_addresses(self) -> Tuple[IPAddress, ...]:
        return tuple(ip for ip in (self.wireguard_ipv4_address, self.wireguard_ipv6_address) if ip is not None)

    def addresses_on(self, network: str) -> List[MachineAddress]:
        return [a for a in self.addresses if a.network == network]


@dataclass(frozen=True)
class NetworkLink:
    network: str
    other_network: str
    priority: int


@dataclass(frozen=True)
class WireguardKeepalive:
    source_machine: str
    target_machine: str
    interval_sec: int


@dataclass(frozen=True)
class Provider:
    id: int
    name: str
    email: str


@dataclass(frozen=True)
class WireguardPeer:
    hostname: str
    wireguard_pubkey: str
    wireguard_addresses: Tuple[IPAddress, ...]
    endpoint: Optional[Tuple[IPAddress, int]] = None
    keepalive: Optional[int] = None


@dataclass(frozen=True)
class SshTarget:
    hostname: str
    owner: str
    address: IPAddress
    port: int


# hostname -> Machine
MachinesMap = Dict[str, Machine]

# (source_machine, target_machine) -> interval
KeepaliveMap = Dict[Tuple[str, str], int]


@dataclass
class Inventory:
    """Everything a render command needs, read in one transaction."""
    machines: MachinesMap
    links: List[NetworkLink] = field(default_factory=list)
    keepalives: List[WireguardKeepalive] = field(default_factory=list)
    providers: List[Provider] = field(default_factory=list)

    @property
    def keepalive_map(self) -> KeepaliveMap:
        return {(k.source_machine, k.target_machine): k.interval_sec for k in self.keepalives}
