# src/infrabase/db/repository.py
"""
Reads and writes against the inventory tables. Callers own the session (and
therefore the transaction); nothing here commits.
"""

from __future__ import annotations

import ipaddress
from typing import Dict, List, Optional, Set

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from ..config import AddressRequest, MachineRequest
from ..errors import InvalidValue, MachineHasNoWireguard, NoSuchAddress, NoSuchMachine
from ..ipam import find_unused
from ..logging import get_logger
from ..models import (
    Inventory,
    IPAddress,
    Machine,
    MachineAddress,
    NetworkLink,
    Provider,
    WireguardKeepalive,
)
from ..natsort import natural_key, natural_sorted
from ..security.wireguard_keys import Keypair
from . import domains
from .models import (
    MachineAddressRow,
    MachineRow,
    NetworkLinkRow,
    NetworkRow,
    OwnerRow,
    ProviderRow,
    SshServerRow,
    WireguardInterfaceRow,
    WireguardKeepaliveRow,
)

log = get_logger()


# ---------------------------
# Row -> model
# ---------------------------

def _to_address(row: MachineAddressRow) -> MachineAddress:
    return MachineAddress(
        hostname=row.hostname,
        network=row.network,
        address=ipaddress.ip_address(row.address),
        ssh_port=row.ssh_port,
        wireguard_port=row.wireguard_port,
    )


def _to_machine(
    row: MachineRow,
    wg: Optional[WireguardInterfaceRow],
    ssh: Optional[SshServerRow],
) -> Machine:
    return Machine(
        hostname=row.hostname,
        owner=row.owner,
        added_time=row.added_time,
        provider_id=row.provider_id,
        provider_reference=row.provider_reference,
        wireguard_ipv4_address=ipaddress.IPv4Address(wg.wireguard_ipv4_address) if wg else None,
        wireguard_ipv6_address=ipaddress.IPv6Address(wg.wireguard_ipv6_address) if wg else None,
        wireguard_port=wg.wireguard_port if wg else None,
        wireguard_privkey=wg.wireguard_privkey if wg else None,
        wireguard_pubkey=wg.wireguard_pubkey if wg else None,
        ssh_port=ssh.ssh_port if ssh else None,
        ssh_user=ssh.ssh_user if ssh else None,
    )


# ---------------------------
# Snapshot
# ---------------------------

def load_machines(session: Session) -> Dict[str, Machine]:
    """hostname -> Machine with embedded addresses, in natural hostname order."""
    wg = {r.hostname: r for r in session.scalars(select(WireguardInterfaceRow))}
    ssh = {r.hostname: r for r in session.scalars(select(SshServerRow))}
    rows = natural_sorted(session.scalars(select(MachineRow)), key=lambda r: r.hostname)
    machines = {r.hostname: _to_machine(r, wg.get(r.hostname), ssh.get(r.hostname)) for r in rows}

    address_rows = session.scalars(
        select(MachineAddressRow).order_by(
            MachineAddressRow.hostname, MachineAddressRow.network, MachineAddressRow.address
        )
    )
    for a in address_rows:
        machine = machines.get(a.hostname)
        if machine is None:
            raise RuntimeError(f"Database gave us an address for a machine that doesn't exist: {a.hostname}")
        machine.addresses.append(_to_address(a))
    return machines


def list_links(session: Session) -> List[NetworkLink]:
    rows = session.scalars(select(NetworkLinkRow).order_by(NetworkLinkRow.name, NetworkLinkRow.other_network))
    return [NetworkLink(r.name, r.other_network, r.priority) for r in rows]


def list_keepalives(session: Session) -> List[WireguardKeepalive]:
    rows = session.scalars(
        select(WireguardKeepaliveRow).order_by(
            WireguardKeepaliveRow.source_machine, WireguardKeepaliveRow.target_machine
        )
    )
    return [WireguardKeepalive(r.source_machine, r.target_machine, r.interval_sec) for r in rows]


def list_providers(session: Session) -> List[Provider]:
    rows = session.scalars(select(ProviderRow).order_by(ProviderRow.id))
    return [Provider(r.id, r.name, r.email) for r in rows]


def list_networks(session: Session) -> List[str]:
    return list(session.scalars(select(NetworkRow.name).order_by(NetworkRow.name)))


def list_addresses(session: Session) -> List[MachineAddress]:
    rows = session.scalars(
        select(MachineAddressRow).order_by(MachineAddressRow.network, MachineAddressRow.address)
    )
    # sorted() is stable: within a hostname, the (network, address) order holds
    return sorted((_to_address(r) for r in rows), key=lambda a: natural_key(a.hostname))


def load_inventory(session: Session) -> Inventory:
    return Inventory(
        machines=load_machines(session),
        links=list_links(session),
        keepalives=list_keepalives(session),
        providers=list_providers(session),
    )


# ---------------------------
# Lookups
# ---------------------------

def _require_machine(session: Session, hostname: str) -> MachineRow:
    row = session.get(MachineRow, hostname)
    if row is None:
        raise NoSuchMachine(hostname)
    return row


def _require_network(session: Session, network: str) -> None:
    if session.get(NetworkRow, network) is None:
        raise InvalidValue(f"Unknown network {network!r}; add it with `infrabase network add`")


def existing_wireguard_ipv4_addresses(session: Session) -> Set[ipaddress.IPv4Address]:
    return {
        ipaddress.IPv4Address(a)
        for a in session.scalars(select(WireguardInterfaceRow.wireguard_ipv4_address))
    }


def existing_wireguard_ipv6_addresses(session: Session) -> Set[ipaddress.IPv6Address]:
    return {
        ipaddress.IPv6Address(a)
        for a in session.scalars(select(WireguardInterfaceRow.wireguard_ipv6_address))
    }


def get_wireguard_privkey(session: Session, hostname: str) -> str:
    _require_machine(session, hostname)
    wg = session.get(WireguardInterfaceRow, hostname)
    if wg is None:
        raise MachineHasNoWireguard(hostname, "a WireGuard interface")
    return wg.wireguard_privkey


# ---------------------------
# Machines
# ---------------------------

def add_machine(session: Session, request: MachineRequest, keypair: Keypair) -> Machine:
    """
    Insert a machine with its SSH server and WireGuard interface.

    Unassigned WireGuard addresses are picked from the configured pools; run
    this inside a serializable session_scope so the read of existing
    addresses and the insert can't interleave with another `add`.
    """
    domains.hostname(request.hostname)
    domains.short_text(request.owner, "owner")
    domains.username(request.ssh_user)
    domains.port(request.ssh_port, "SSH port")
    domains.port(request.wireguard_port, "WireGuard port")
    domains.wireguard_key(keypair.privkey)
    domains.wireguard_key(keypair.pubkey)

    if session.get(MachineRow, request.hostname) is not None:
        raise InvalidValue(f"Machine {request.hostname!r} already exists")
    if session.get(OwnerRow, request.owner) is None:
        raise InvalidValue(f"Unknown owner {request.owner!r}; add it with `infrabase owner add`")
    if request.provider_id is not None and session.get(ProviderRow, request.provider_id) is None:
        raise InvalidValue(f"Unknown provider id {request.provider_id}")

    taken_v4 = existing_wireguard_ipv4_addresses(session)
    ipv4 = request.wireguard_ipv4_address
    if ipv4 is None:
        ipv4 = find_unused(taken_v4, *request.ipv4_pool)
        log.info(f"{request.hostname}: allocated WireGuard IPv4 {ipv4}")
    elif ipv4 in taken_v4:
        raise InvalidValue(f"WireGuard IPv4 address {ipv4} is already in use")

    taken_v6 = existing_wireguard_ipv6_addresses(session)
    ipv6 = request.wireguard_ipv6_address
    if ipv6 is None:
        ipv6 = find_unused(taken_v6, *request.ipv6_pool)
        log.info(f"{request.hostname}: allocated WireGuard IPv6 {ipv6}")
    elif ipv6 in taken_v6:
        raise InvalidValue(f"WireGuard IPv6 address {ipv6} is already in use")

    session.add(MachineRow(
        hostname=request.hostname,
        owner=request.owner,
        provider_id=request.provider_id,
        provider_reference=request.provider_reference,
    ))
    session.flush()
    session.add(SshServerRow(hostname=request.hostname, ssh_port=request.ssh_port, ssh_user=request.ssh_user))
    session.add(WireguardInterfaceRow(
        hostname=request.hostname,
        wireguard_ipv4_address=str(ipv4),
        wireguard_ipv6_address=str(ipv6),
        wireguard_port=request.wireguard_port,
        wireguard_privkey=keypair.privkey,
        wireguard_pubkey=keypair.pubkey,
    ))
    session.flush()

    return Machine(
        hostname=request.hostname,
        owner=request.owner,
        provider_id=request.provider_id,
        provider_reference=request.provider_reference,
        wireguard_ipv4_address=ipv4,
        wireguard_ipv6_address=ipv6,
        wireguard_port=request.wireguard_port,
        wireguard_privkey=keypair.privkey,
        wireguard_pubkey=keypair.pubkey,
        ssh_port=request.ssh_port,
        ssh_user=request.ssh_user,
    )


def remove_machine(session: Session, hostname: str) -> None:
    """Remove every mention of `hostname` from the database."""
    _require_machine(session, hostname)
    session.execute(delete(WireguardInterfaceRow).where(WireguardInterfaceRow.hostname == hostname))
    session.execute(delete(SshServerRow).where(SshServerRow.hostname == hostname))
    session.execute(delete(MachineAddressRow).where(MachineAddressRow.hostname == hostname))
    session.execute(delete(WireguardKeepaliveRow).where(or_(
        WireguardKeepaliveRow.source_machine == hostname,
        WireguardKeepaliveRow.target_machine == hostname,
    )))
    session.execute(delete(MachineRow).where(MachineRow.hostname == hostname))
    log.info(f"Removed machine {hostname}")


# ---------------------------
# Addresses
# ---------------------------

def add_address(session: Session, request: AddressRequest) -> MachineAddress:
    _require_machine(session, request.hostname)
    domains.netname(request.network)
    _require_network(session, request.network)
    if request.ssh_port is not None:
        domains.port(request.ssh_port, "SSH port")
    if request.wireguard_port is not None:
        domains.port(request.wireguard_port, "WireGuard port")

    session.add(MachineAddressRow(
        hostname=request.hostname,
        network=request.network,
        address=str(request.address),
        ssh_port=request.ssh_port,
        wireguard_port=request.wireguard_port,
    ))
    session.flush()
    log.info(f"{request.hostname}: added {request.network}={request.address}")
    return MachineAddress(
        hostname=request.hostname,
        network=request.network,
        address=request.address,
        ssh_port=request.ssh_port,
        wireguard_port=request.wireguard_port,
    )


def remove_address(session: Session, hostname: str, network: str, address: IPAddress) -> None:
    result = session.execute(
        delete(MachineAddressRow).where(
            MachineAddressRow.hostname == hostname,
            MachineAddressRow.network == network,
            MachineAddressRow.address == str(address),
        )
    )
    if result.rowcount != 1:
        raise NoSuchAddress(hostname, network, str(address))
    log.info(f"{hostname}: removed {network}={address}")


# ---------------------------
# Catalog: networks, links, owners, providers, keepalives
# ---------------------------

def add_network(session: Session, name: str) -> None:
    domains.netname(name)
    if session.get(NetworkRow, name) is not None:
        raise InvalidValue(f"Network {name!r} already exists")
    session.add(NetworkRow(name=name))
    session.flush()


def add_link(session: Session, network: str, other_network: str, priority: int) -> NetworkLink:
    """Insert or re-prioritize the (network -> other_network) link."""
    _require_network(session, network)
    _require_network(session, other_network)
    row = session.get(NetworkLinkRow, (network, other_network))
    if row is None:
        session.add(NetworkLinkRow(name=network, other_network=other_network, priority=priority))
    else:
        row.priority = priority
    session.flush()
    return NetworkLink(network, other_network, priority)


def remove_link(session: Session, network: str, other_network: str) -> None:
    row = session.get(NetworkLinkRow, (network, other_network))
    if row is None:
        raise InvalidValue(f"Could not find link ({network!r}, {other_network!r}) in database")
    session.delete(row)
    session.flush()


def add_owner(session: Session, owner: str) -> None:
    domains.short_text(owner, "owner")
    if session.get(OwnerRow, owner) is not None:
        raise InvalidValue(f"Owner {owner!r} already exists")
    session.add(OwnerRow(owner=owner))
    session.flush()


def add_provider(session: Session, name: str, email: str) -> Provider:
    domains.short_text(name, "provider name")
    domains.email(email)
    row = ProviderRow(name=name, email=email)
    session.add(row)
    session.flush()
    return Provider(row.id, row.name, row.email)


def add_keepalive(session: Session, source_machine: str, target_machine: str, interval_sec: int) -> WireguardKeepalive:
    """Insert or update the keepalive `source_machine` sends to `target_machine`."""
    _require_machine(session, source_machine)
    _require_machine(session, target_machine)
    domains.keepalive_interval(interval_sec)
    row = session.get(WireguardKeepaliveRow, (source_machine, target_machine))
    if row is None:
        session.add(WireguardKeepaliveRow(
            source_machine=source_machine, target_machine=target_machine, interval_sec=interval_sec
        ))
    else:
        row.interval_sec = interval_sec
    session.flush()
    return WireguardKeepalive(source_machine, target_machine, interval_sec)
