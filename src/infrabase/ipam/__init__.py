from .allocator import (
    IPAddress,
    find_unused,
    increment,
    increment_ipv4,
    increment_ipv6,
    iter_range,
)

__all__ = [
    "IPAddress",
    "find_unused",
    "increment",
    "increment_ipv4",
    "increment_ipv6",
    "iter_range",
]
