# src/infrabase/db/domains.py
"""Column domains, checked before anything is written."""

from __future__ import annotations

import re

from ..errors import InvalidValue
from ..models import NO_NETWORK

HOSTNAME_RE = re.compile(r"\A[-_a-z0-9]{1,32}\Z")
NETNAME_RE = re.compile(r"\A[-_a-z0-9]{1,32}\Z")
WIREGUARD_KEY_RE = re.compile(r"\A[+/A-Za-z0-9]{43}=\Z")
# default /etc/adduser.conf NAME_REGEX
USERNAME_RE = re.compile(r"\A[a-z][-a-z0-9_]{1,31}\Z")
EMAIL_RE = re.compile(r"\A.+@.+\Z")


def _match(pattern: re.Pattern, value: str, what: str) -> str:
    if not isinstance(value, str) or not pattern.match(value):
        raise InvalidValue(f"Invalid {what}: {value!r}")
    return value


def hostname(value: str) -> str:
    return _match(HOSTNAME_RE, value, "hostname")


def netname(value: str) -> str:
    if value == NO_NETWORK:
        return value
    return _match(NETNAME_RE, value, "network name")


def wireguard_key(value: str) -> str:
    return _match(WIREGUARD_KEY_RE, value, "WireGuard key")


def username(value: str) -> str:
    return _match(USERNAME_RE, value, "username")


def email(value: str) -> str:
    if len(value) > 254:
        raise InvalidValue(f"Invalid email: {value!r}")
    return _match(EMAIL_RE, value, "email")


def short_text(value: str, what: str, max_len: int = 32) -> str:
    if not value or len(value) > max_len:
        raise InvalidValue(f"Invalid {what}: {value!r} (1-{max_len} characters)")
    return value


def port(value: int, what: str = "port") -> int:
    if not 1 <= value <= 65535:
        raise InvalidValue(f"Invalid {what}: {value} (1-65535)")
    return value


def keepalive_interval(value: int) -> int:
    if not 1 <= value <= 65535:
        raise InvalidValue(f"Invalid keepalive interval: {value} (1-65535 seconds)")
    return value
