# src/infrabase/errors.py
from __future__ import annotations

__all__ = [
    "InfrabaseError",
    "ConfigError",
    "InvalidValue",
    "NoSuchMachine",
    "NoSuchAddress",
    "MachineHasNoWireguard",
    "NoAddressAvailable",
    "PortOutOfRange",
    "KeyGenerationError",
]


class InfrabaseError(Exception):
    """Base for every error that should end a command with a message and exit 1."""


class ConfigError(InfrabaseError):
    """A required setting is missing or an environment value can't be parsed."""


class InvalidValue(InfrabaseError, ValueError):
    """A value does not fit its column domain (hostname, key, port, ...)."""


class NoSuchMachine(InfrabaseError):
    def __init__(self, hostname: str):
        super().__init__(f"Could not find machine {hostname!r} in database")
        self.hostname = hostname


class NoSuchAddress(InfrabaseError):
    def __init__(self, hostname: str, network: str, address: str):
        super().__init__(
            f"Could not find address ({hostname!r}, {network!r}, {address!r}) in database"
        )
        self.hostname = hostname
        self.network = network
        self.address = address


class MachineHasNoWireguard(InfrabaseError):
    def __init__(self, hostname: str, missing: str = "WireGuard interface"):
        super().__init__(f"Machine {hostname!r} does not have {missing}")
        self.hostname = hostname
        self.missing = missing


class NoAddressAvailable(InfrabaseError):
    def __init__(self, start, end):
        super().__init__(f"Could not find an unused address between {start} and {end}")
        self.start = start
        self.end = end


class PortOutOfRange(InfrabaseError):
    def __init__(self, port: int):
        super().__init__(f"Port {port} out of expected range 0-65535")
        self.port = port


class KeyGenerationError(InfrabaseError):
    """`wg genkey` / `wg pubkey` failed or is not installed."""
