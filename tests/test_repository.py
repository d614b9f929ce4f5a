from ipaddress import IPv4Address, IPv6Address

import pytest
from sqlalchemy.exc import IntegrityError

from infrabase.config import AddressRequest, MachineRequest
from infrabase.db import repository, session_scope
from infrabase.errors import (
    InvalidValue,
    MachineHasNoWireguard,
    NoAddressAvailable,
    NoSuchAddress,
    NoSuchMachine,
)

from conftest import fake_keypair

POOL4 = (IPv4Address("10.0.0.1"), IPv4Address("10.0.0.3"))
POOL6 = (IPv6Address("fd00::1"), IPv6Address("fd00::3"))


def _request(hostname, **kw):
    base = dict(
        hostname=hostname,
        owner="ops",
        ssh_port=22,
        ssh_user="root",
        wireguard_port=51820,
        ipv4_pool=POOL4,
        ipv6_pool=POOL6,
    )
    base.update(kw)
    return MachineRequest(**base)


@pytest.fixture
def catalog(session):
    repository.add_owner(session, "ops")
    repository.add_network(session, "lan")
    repository.add_network(session, "internet")
    repository.add_link(session, "lan", "lan", 0)
    repository.add_link(session, "lan", "internet", 10)
    return session


def test_init_db_seeds_none_network(session):
    assert repository.list_networks(session) == ["NONE"]


def test_add_machine_allocates_sequentially(catalog):
    m1 = repository.add_machine(catalog, _request("web1"), fake_keypair())
    m2 = repository.add_machine(catalog, _request("web2"), fake_keypair())
    assert m1.wireguard_ipv4_address == IPv4Address("10.0.0.1")
    assert m2.wireguard_ipv4_address == IPv4Address("10.0.0.2")
    assert m2.wireguard_ipv6_address == IPv6Address("fd00::2")


def test_add_machine_fills_gaps_after_removal(catalog):
    for h in ("web1", "web2", "web3"):
        repository.add_machine(catalog, _request(h), fake_keypair())
    repository.remove_machine(catalog, "web2")
    m = repository.add_machine(catalog, _request("web4"), fake_keypair())
    assert m.wireguard_ipv4_address == IPv4Address("10.0.0.2")


def test_add_machine_pool_exhausted(catalog):
    for h in ("web1", "web2", "web3"):
        repository.add_machine(catalog, _request(h), fake_keypair())
    with pytest.raises(NoAddressAvailable):
        repository.add_machine(catalog, _request("web4"), fake_keypair())


def test_add_machine_explicit_address_in_use(catalog):
    repository.add_machine(catalog, _request("web1"), fake_keypair())
    with pytest.raises(InvalidValue, match="already in use"):
        repository.add_machine(
            catalog,
            _request("web2", wireguard_ipv4_address=IPv4Address("10.0.0.1"), ipv4_pool=None),
            fake_keypair(),
        )


def test_add_machine_validation(catalog):
    with pytest.raises(InvalidValue):
        repository.add_machine(catalog, _request("Not_Lowercase"), fake_keypair())
    with pytest.raises(InvalidValue, match="Unknown owner"):
        repository.add_machine(catalog, _request("web1", owner="nobody"), fake_keypair())
    repository.add_machine(catalog, _request("web1"), fake_keypair())
    with pytest.raises(InvalidValue, match="already exists"):
        repository.add_machine(catalog, _request("web1"), fake_keypair())


def test_load_inventory(catalog):
    repository.add_machine(catalog, _request("web10"), fake_keypair())
    repository.add_machine(catalog, _request("web2"), fake_keypair())
    repository.add_address(catalog, AddressRequest("web2", "lan", IPv4Address("192.168.1.2"), ssh_port=22))
    repository.add_keepalive(catalog, "web2", "web10", 25)

    inv = repository.load_inventory(catalog)
    assert list(inv.machines) == ["web2", "web10"]
    web2 = inv.machines["web2"]
    assert web2.networks == ["lan"]
    assert web2.addresses[0].address == IPv4Address("192.168.1.2")
    assert web2.wireguard_pubkey is not None
    assert inv.machines["web10"].networks == ["NONE"]
    assert inv.keepalive_map == {("web2", "web10"): 25}
    assert {(l.network, l.other_network) for l in inv.links} == {("lan", "lan"), ("lan", "internet")}


def test_remove_machine_removes_everything(catalog):
    repository.add_machine(catalog, _request("web1"), fake_keypair())
    repository.add_machine(catalog, _request("web2"), fake_keypair())
    repository.add_address(catalog, AddressRequest("web1", "lan", IPv4Address("192.168.1.1")))
    repository.add_keepalive(catalog, "web2", "web1", 25)

    repository.remove_machine(catalog, "web1")
    inv = repository.load_inventory(catalog)
    assert list(inv.machines) == ["web2"]
    assert inv.keepalives == []
    assert repository.list_addresses(catalog) == []
    with pytest.raises(NoSuchMachine):
        repository.remove_machine(catalog, "web1")


def test_address_add_and_remove(catalog):
    repository.add_machine(catalog, _request("web1"), fake_keypair())
    repository.add_address(catalog, AddressRequest("web1", "lan", IPv6Address("fd99::1"), wireguard_port=51820))
    [a] = repository.list_addresses(catalog)
    assert a.address == IPv6Address("fd99::1")
    assert a.wireguard_port == 51820

    repository.remove_address(catalog, "web1", "lan", IPv6Address("fd99:0::1"))
    assert repository.list_addresses(catalog) == []
    with pytest.raises(NoSuchAddress):
        repository.remove_address(catalog, "web1", "lan", IPv6Address("fd99::1"))


def test_address_requires_known_machine_and_network(catalog):
    with pytest.raises(NoSuchMachine):
        repository.add_address(catalog, AddressRequest("ghost", "lan", IPv4Address("192.168.1.9")))
    repository.add_machine(catalog, _request("web1"), fake_keypair())
    with pytest.raises(InvalidValue, match="Unknown network"):
        repository.add_address(catalog, AddressRequest("web1", "mars", IPv4Address("192.168.1.9")))


def test_address_unique_port_per_ip(catalog):
    repository.add_machine(catalog, _request("web1"), fake_keypair())
    repository.add_machine(catalog, _request("web2"), fake_keypair())
    repository.add_address(catalog, AddressRequest("web1", "internet", IPv4Address("198.51.100.1"), wireguard_port=904))
    with pytest.raises(IntegrityError):
        repository.add_address(
            catalog, AddressRequest("web2", "internet", IPv4Address("198.51.100.1"), wireguard_port=904)
        )
    catalog.rollback()


def test_wireguard_privkey(catalog):
    keys = fake_keypair()
    repository.add_machine(catalog, _request("web1"), keys)
    assert repository.get_wireguard_privkey(catalog, "web1") == keys.privkey
    with pytest.raises(NoSuchMachine):
        repository.get_wireguard_privkey(catalog, "ghost")


def test_wireguard_privkey_missing_interface(engine):
    from infrabase.db.models import MachineRow, OwnerRow

    with session_scope(engine) as s:
        s.add(OwnerRow(owner="ops"))
        s.flush()
        s.add(MachineRow(hostname="bare", owner="ops"))
    with session_scope(engine) as s:
        with pytest.raises(MachineHasNoWireguard):
            repository.get_wireguard_privkey(s, "bare")


def test_links_upsert_and_remove(catalog):
    repository.add_link(catalog, "lan", "internet", 3)
    links = {(l.network, l.other_network): l.priority for l in repository.list_links(catalog)}
    assert links[("lan", "internet")] == 3
    repository.remove_link(catalog, "lan", "internet")
    with pytest.raises(InvalidValue):
        repository.remove_link(catalog, "lan", "internet")
    with pytest.raises(InvalidValue, match="Unknown network"):
        repository.add_link(catalog, "lan", "mars", 1)


def test_providers(catalog):
    p = repository.add_provider(catalog, "hetzner", "ops@example.com")
    assert p.id is not None
    assert repository.list_providers(catalog) == [p]
    with pytest.raises(InvalidValue):
        repository.add_provider(catalog, "bad", "not-an-email")


def test_keepalive_upsert(catalog):
    repository.add_machine(catalog, _request("a"), fake_keypair())
    repository.add_machine(catalog, _request("b"), fake_keypair())
    repository.add_keepalive(catalog, "a", "b", 25)
    repository.add_keepalive(catalog, "a", "b", 15)
    [k] = repository.list_keepalives(catalog)
    assert k.interval_sec == 15
    with pytest.raises(InvalidValue):
        repository.add_keepalive(catalog, "a", "b", 0)


def test_session_scope_rolls_back(engine):
    with pytest.raises(InvalidValue):
        with session_scope(engine) as s:
            repository.add_owner(s, "ops")
            repository.add_network(s, "BAD NAME")
    with session_scope(engine) as s:
        repository.add_owner(s, "ops")
