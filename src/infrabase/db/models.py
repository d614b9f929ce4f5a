# src/infrabase/db/models.py
"""
SQLAlchemy tables for the machine inventory.

Addresses are stored as text in their canonical ipaddress form so equality
lookups (rm, uniqueness) behave the same on SQLite and PostgreSQL.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    PrimaryKeyConstraint,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NetworkRow(Base):
    """
    Named network segment. 'NONE' stands in for machines that have no rows in
    machine_addresses, so links from 'NONE' describe what those can reach.
    """
    __tablename__ = "networks"

    name = Column(String(32), primary_key=True)


class NetworkLinkRow(Base):
    """
    If network `name` can reach addresses on `other_network`, it must be listed
    here. A network needs a self-link for machines on it to reach each other.
    Lower priority wins when several pairs are possible.
    """
    __tablename__ = "network_links"

    name = Column(String(32), ForeignKey("networks.name"), nullable=False)
    other_network = Column(String(32), ForeignKey("networks.name"), nullable=False)
    priority = Column(Integer, nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("name", "other_network"),
    )


class OwnerRow(Base):
    __tablename__ = "owners"

    owner = Column(String(32), primary_key=True)


class ProviderRow(Base):
    """Hosting accounts"""
    __tablename__ = "providers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(32), nullable=False)
    email = Column(String(254), nullable=False)


class MachineRow(Base):
    __tablename__ = "machines"

    hostname = Column(String(32), primary_key=True)
    added_time = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    owner = Column(String(32), ForeignKey("owners.owner"), nullable=False)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=True)
    provider_reference = Column(Text, nullable=True)

    def __repr__(self):
        return f"<MachineRow(hostname={self.hostname}, owner={self.owner})>"


class WireguardInterfaceRow(Base):
    """Separate table because not every machine has a managed WireGuard interface."""
    __tablename__ = "wireguard_interfaces"

    hostname = Column(String(32), ForeignKey("machines.hostname"), primary_key=True)
    wireguard_ipv4_address = Column(String(15), nullable=False)
    wireguard_ipv6_address = Column(String(39), nullable=False)
    wireguard_port = Column(Integer, nullable=False)
    wireguard_privkey = Column(String(44), nullable=False, unique=True)
    wireguard_pubkey = Column(String(44), nullable=False, unique=True)

    __table_args__ = (
        CheckConstraint("wireguard_port > 0 AND wireguard_port <= 65535", name="ck_wireguard_port"),
    )


class SshServerRow(Base):
    """Separate table because not every machine runs an SSH server."""
    __tablename__ = "ssh_servers"

    hostname = Column(String(32), ForeignKey("machines.hostname"), primary_key=True)
    ssh_port = Column(Integer, nullable=False)
    ssh_user = Column(String(32), nullable=False, default="root")

    __table_args__ = (
        CheckConstraint("ssh_port > 0 AND ssh_port <= 65535", name="ck_ssh_port"),
    )


class WireguardKeepaliveRow(Base):
    __tablename__ = "wireguard_keepalives"

    source_machine = Column(String(32), ForeignKey("machines.hostname"), nullable=False)
    target_machine = Column(String(32), ForeignKey("machines.hostname"), nullable=False)
    # `man wg`: PersistentKeepalive is between 1 and 65535 inclusive
    interval_sec = Column(Integer, nullable=False)

    __table_args__ = (
        PrimaryKeyConstraint("source_machine", "target_machine"),
        CheckConstraint("interval_sec >= 1 AND interval_sec <= 65535", name="ck_interval_sec"),
    )


class MachineAddressRow(Base):
    """
    Use a different WireGuard port for each machine behind the same NAT:
    WireGuard remembers one endpoint per peer and will happily learn (IP, 904)
    even when the router forwards 905 -> 904.
    """
    __tablename__ = "machine_addresses"

    hostname = Column(String(32), ForeignKey("machines.hostname"), nullable=False)
    network = Column(String(32), ForeignKey("networks.name"), nullable=False)
    address = Column(String(45), nullable=False)
    ssh_port = Column(Integer, nullable=True)
    wireguard_port = Column(Integer, nullable=True)

    __table_args__ = (
        PrimaryKeyConstraint("hostname", "network", "address"),
        UniqueConstraint("address", "ssh_port"),
        UniqueConstraint("address", "wireguard_port"),
    )
