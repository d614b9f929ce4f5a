# src/infrabase/config.py
from __future__ import annotations

import ipaddress
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Callable, Mapping, Optional, Tuple, TypeVar

import click
from dotenv import load_dotenv

from .errors import ConfigError

__all__ = [
    "APP_NAME",
    "Settings",
    "MachineRequest",
    "AddressRequest",
    "default_env_path",
    "load_env",
    "resolve_machine_request",
    "resolve_address_request",
    "peers_file_path",
]

APP_NAME = "infrabase"

T = TypeVar("T")


# ---------------------------
# Env file
# ---------------------------

def default_env_path() -> Path:
    """~/.config/infrabase/env on Linux (click picks the platform's config dir)."""
    return Path(click.get_app_dir(APP_NAME)) / "env"


def load_env(env_file: Optional[str | Path] = None) -> Optional[Path]:
    """
    Load environment variables from an env file. Already-set variables win.
    - If env_file (or $INFRABASE_ENV_FILE) is provided, it must exist.
    - Otherwise try the per-user config file, then ./.env.
    Returns the path that was loaded, if any.
    """
    explicit = env_file or os.getenv("INFRABASE_ENV_FILE")
    if explicit:
        env_path = Path(explicit)
        if not env_path.is_file():
            raise ConfigError(f"Unable to read configuration from {str(env_path)!r}")
        load_dotenv(dotenv_path=env_path)
        return env_path

    for candidate in (default_env_path(), Path.cwd() / ".env"):
        if candidate.is_file():
            load_dotenv(dotenv_path=candidate)
            return candidate
    return None


# ---------------------------
# Parsers
# ---------------------------

def _parse_ipv4(name: str, value: str) -> ipaddress.IPv4Address:
    try:
        return ipaddress.IPv4Address(value.strip())
    except ipaddress.AddressValueError as e:
        raise ConfigError(f"Could not parse {name} as an IPv4 address: {e}") from e


def _parse_ipv6(name: str, value: str) -> ipaddress.IPv6Address:
    try:
        return ipaddress.IPv6Address(value.strip())
    except ipaddress.AddressValueError as e:
        raise ConfigError(f"Could not parse {name} as an IPv6 address: {e}") from e


def _parse_port(name: str, value: str) -> int:
    try:
        port = int(value.strip())
    except ValueError as e:
        raise ConfigError(f"Could not parse {name} as a port number: {value!r}") from e
    if not 1 <= port <= 65535:
        raise ConfigError(f"{name} must be between 1 and 65535, got {port}")
    return port


def _parse_int(name: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError as e:
        raise ConfigError(f"Could not parse {name} as an integer: {value!r}") from e


def _parse_str(name: str, value: str) -> str:
    return value.strip()


def _get(environ: Mapping[str, str], name: str, parse: Callable[[str, str], T]) -> Optional[T]:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return None
    return parse(name, raw)


# ---------------------------
# Settings
# ---------------------------

@dataclass(frozen=True)
class Settings:
    """
    Every environment-sourced value, parsed once up front so the rest of the
    program never reads os.environ. Missing values are None; `require` turns
    that into a ConfigError when a command actually needs the value.
    """
    database_url: Optional[str] = None
    wireguard_ipv4_start: Optional[ipaddress.IPv4Address] = None
    wireguard_ipv4_end: Optional[ipaddress.IPv4Address] = None
    wireguard_ipv6_start: Optional[ipaddress.IPv6Address] = None
    wireguard_ipv6_end: Optional[ipaddress.IPv6Address] = None
    default_ssh_port: Optional[int] = None
    default_ssh_user: Optional[str] = None
    default_wireguard_port: Optional[int] = None
    default_owner: Optional[str] = None
    default_provider: Optional[int] = None
    wireguard_peers_path_template: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            database_url=_get(env, "DATABASE_URL", _parse_str),
            wireguard_ipv4_start=_get(env, "WIREGUARD_IPV4_START", _parse_ipv4),
            wireguard_ipv4_end=_get(env, "WIREGUARD_IPV4_END", _parse_ipv4),
            wireguard_ipv6_start=_get(env, "WIREGUARD_IPV6_START", _parse_ipv6),
            wireguard_ipv6_end=_get(env, "WIREGUARD_IPV6_END", _parse_ipv6),
            default_ssh_port=_get(env, "DEFAULT_SSH_PORT", _parse_port),
            default_ssh_user=_get(env, "DEFAULT_SSH_USER", _parse_str),
            default_wireguard_port=_get(env, "DEFAULT_WIREGUARD_PORT", _parse_port),
            default_owner=_get(env, "DEFAULT_OWNER", _parse_str),
            default_provider=_get(env, "DEFAULT_PROVIDER", _parse_int),
            wireguard_peers_path_template=_get(env, "WIREGUARD_PEERS_PATH_TEMPLATE", _parse_str),
        )

    @staticmethod
    def env_name(field_name: str) -> str:
        return field_name.upper()

    def require(self, field_name: str, *, friendly: Optional[str] = None):
        """Raise a clear error if a required setting is missing."""
        if field_name not in {f.name for f in fields(self)}:
            raise AttributeError(field_name)
        value = getattr(self, field_name)
        if value is None:
            name = self.env_name(field_name)
            prefix = f"{friendly}, and c" if friendly else "C"
            raise ConfigError(f"{prefix}ould not get variable {name!r} from environment")
        return value

    def ipv4_pool(self) -> Tuple[ipaddress.IPv4Address, ipaddress.IPv4Address]:
        return self.require("wireguard_ipv4_start"), self.require("wireguard_ipv4_end")

    def ipv6_pool(self) -> Tuple[ipaddress.IPv6Address, ipaddress.IPv6Address]:
        return self.require("wireguard_ipv6_start"), self.require("wireguard_ipv6_end")


# ---------------------------
# Flag-or-environment resolution
# ---------------------------

@dataclass(frozen=True)
class MachineRequest:
    """A fully resolved `add` request. Pools are set only when an address must be allocated."""
    hostname: str
    owner: str
    ssh_port: int
    ssh_user: str
    wireguard_port: int
    provider_id: Optional[int] = None
    provider_reference: Optional[str] = None
    wireguard_ipv4_address: Optional[ipaddress.IPv4Address] = None
    wireguard_ipv6_address: Optional[ipaddress.IPv6Address] = None
    ipv4_pool: Optional[Tuple[ipaddress.IPv4Address, ipaddress.IPv4Address]] = None
    ipv6_pool: Optional[Tuple[ipaddress.IPv6Address, ipaddress.IPv6Address]] = None


@dataclass(frozen=True)
class AddressRequest:
    hostname: str
    network: str
    address: ipaddress.IPv4Address | ipaddress.IPv6Address
    ssh_port: Optional[int] = None
    wireguard_port: Optional[int] = None


def _flag_or(settings: Settings, value, field_name: str, what: str):
    if value is not None:
        return value
    return settings.require(field_name, friendly=f"No {what} was provided")


def resolve_machine_request(
    settings: Settings,
    hostname: str,
    *,
    owner: Optional[str] = None,
    ssh_port: Optional[int] = None,
    ssh_user: Optional[str] = None,
    wireguard_ipv4_address: Optional[ipaddress.IPv4Address] = None,
    wireguard_ipv6_address: Optional[ipaddress.IPv6Address] = None,
    wireguard_port: Optional[int] = None,
    provider: Optional[int] = None,
    provider_reference: Optional[str] = None,
) -> MachineRequest:
    return MachineRequest(
        hostname=hostname,
        owner=_flag_or(settings, owner, "default_owner", "owner"),
        ssh_port=_flag_or(settings, ssh_port, "default_ssh_port", "SSH port"),
        ssh_user=_flag_or(settings, ssh_user, "default_ssh_user", "SSH user"),
        wireguard_port=_flag_or(settings, wireguard_port, "default_wireguard_port", "WireGuard port"),
        # DEFAULT_PROVIDER is optional; no provider at all is fine
        provider_id=provider if provider is not None else settings.default_provider,
        provider_reference=provider_reference,
        wireguard_ipv4_address=wireguard_ipv4_address,
        wireguard_ipv6_address=wireguard_ipv6_address,
        ipv4_pool=None if wireguard_ipv4_address is not None else settings.ipv4_pool(),
        ipv6_pool=None if wireguard_ipv6_address is not None else settings.ipv6_pool(),
    )


def resolve_address_request(
    settings: Settings,
    hostname: str,
    network: str,
    address: ipaddress.IPv4Address | ipaddress.IPv6Address,
    *,
    ssh_port: Optional[int] = None,
    wireguard_port: Optional[int] = None,
) -> AddressRequest:
    """Ports fall back to DEFAULT_SSH_PORT / DEFAULT_WIREGUARD_PORT, else stay unset."""
    return AddressRequest(
        hostname=hostname,
        network=network,
        address=address,
        ssh_port=ssh_port if ssh_port is not None else settings.default_ssh_port,
        wireguard_port=wireguard_port if wireguard_port is not None else settings.default_wireguard_port,
    )


# ---------------------------
# write-wg-peers output paths
# ---------------------------

PEERS_PATH_TOKENS = ("hostname", "wireguard_ipv4_address", "wireguard_ipv6_address")


def peers_file_path(template: str, hostname: str, wireguard_ipv4_address, wireguard_ipv6_address) -> Path:
    """Expand WIREGUARD_PEERS_PATH_TEMPLATE for one machine."""
    try:
        return Path(template.format(
            hostname=hostname,
            wireguard_ipv4_address=wireguard_ipv4_address,
            wireguard_ipv6_address=wireguard_ipv6_address,
        ))
    except (KeyError, IndexError, ValueError, AttributeError) as e:
        allowed = ", ".join("{" + t + "}" for t in PEERS_PATH_TOKENS)
        raise ConfigError(
            f"Bad template in WIREGUARD_PEERS_PATH_TEMPLATE: allowed tokens are {allowed}"
        ) from e
