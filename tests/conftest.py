import base64
import ipaddress
import itertools

import pytest

from infrabase.db import init_db, make_engine, session_scope
from infrabase.models import Machine, MachineAddress
from infrabase.security.wireguard_keys import Keypair

_counter = itertools.count(1)


def fake_key(n: int) -> str:
    """Valid-looking WireGuard key: base64 of 32 bytes, 43 chars plus '='."""
    return base64.b64encode(n.to_bytes(2, "big") * 16).decode()


def fake_keypair() -> Keypair:
    n = next(_counter)
    return Keypair(privkey=fake_key(2 * n), pubkey=fake_key(2 * n + 1))


def addr(hostname, network, ip, ssh_port=None, wireguard_port=None):
    return MachineAddress(hostname, network, ipaddress.ip_address(ip), ssh_port, wireguard_port)


def machine(hostname, *addresses, wg4=None, wg6=None, pubkey="PUB", privkey="PRIV",
            wireguard_port=51820, ssh_port=22, owner="ops"):
    return Machine(
        hostname=hostname,
        owner=owner,
        wireguard_ipv4_address=ipaddress.IPv4Address(wg4) if wg4 else None,
        wireguard_ipv6_address=ipaddress.IPv6Address(wg6) if wg6 else None,
        wireguard_port=wireguard_port,
        wireguard_privkey=privkey,
        wireguard_pubkey=pubkey,
        ssh_port=ssh_port,
        addresses=list(addresses),
    )


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'infrabase.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with session_scope(engine) as s:
        yield s
