# src/infrabase/ipam/allocator.py

from __future__ import annotations
import ipaddress
from typing import AbstractSet, Iterator, Optional

from ..errors import NoAddressAvailable
from ..models import IPAddress

_ALL_ONES = {
    4: int(ipaddress.IPv4Address("255.255.255.255")),
    6: int(ipaddress.IPv6Address("ffff:ffff:ffff:ffff:ffff:ffff:ffff:ffff")),
}


def increment(ip: IPAddress) -> Optional[IPAddress]:
    """
    Next address up, carrying across octets/segments.
    The all-ones address has no successor (no wraparound to 0.0.0.0 / ::).
    """
    value = int(ip)
    if value == _ALL_ONES[ip.version]:
        return None
    return type(ip)(value + 1)


def increment_ipv4(ip: ipaddress.IPv4Address) -> Optional[ipaddress.IPv4Address]:
    if ip.version != 4:
        raise ValueError(f"Expected an IPv4 address, got {ip}")
    return increment(ip)  # type: ignore[return-value]


def increment_ipv6(ip: ipaddress.IPv6Address) -> Optional[ipaddress.IPv6Address]:
    if ip.version != 6:
        raise ValueError(f"Expected an IPv6 address, got {ip}")
    return increment(ip)  # type: ignore[return-value]


def iter_range(start: IPAddress, end: IPAddress) -> Iterator[IPAddress]:
    """Yield start..end inclusive; stops early if the successor chain runs out."""
    if start.version != end.version:
        raise ValueError(f"Range endpoints differ in IP version: {start} / {end}")
    cur: Optional[IPAddress] = start
    while cur is not None and cur <= end:
        yield cur
        if cur == end:
            return
        cur = increment(cur)


def find_unused(existing: AbstractSet[IPAddress], start: IPAddress, end: IPAddress) -> IPAddress:
    """
    First address in [start, end] not in `existing`.

    Pure function: the caller reads `existing` and inserts the result inside one
    transaction, otherwise two concurrent allocations can pick the same address.
    """
    for candidate in iter_range(start, end):
        if candidate not in existing:
            return candidate
    raise NoAddressAvailable(start, end)
