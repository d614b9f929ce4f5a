# src/infrabase/cli/context.py
from __future__ import annotations

import ipaddress
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional

import click
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import make_engine, session_scope
from ..errors import InfrabaseError
from ..logging import get_logger


@dataclass
class AppContext:
    """Per-invocation state hung off click's ctx.obj."""
    settings: Settings
    env_path: Optional[Path] = None
    _engine: Optional[Engine] = field(default=None, repr=False)

    def engine(self) -> Engine:
        if self._engine is None:
            url = self.settings.require("database_url")
            get_logger().debug(f"Connecting to {url}")
            self._engine = make_engine(url)
        return self._engine


pass_app = click.make_pass_decorator(AppContext)


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Turn our errors into click errors: message on stderr, exit status 1."""
    try:
        yield
    except InfrabaseError as e:
        raise click.ClickException(str(e)) from e
    except IntegrityError as e:
        raise click.ClickException(f"Database rejected the change: {e.orig}") from e


@contextmanager
def transaction(app: AppContext, *, serializable: bool = False) -> Iterator[Session]:
    with reporting_errors():
        with session_scope(app.engine(), serializable=serializable) as session:
            yield session


class IPAddressType(click.ParamType):
    """IP address option/argument; `version` restricts to 4 or 6."""

    def __init__(self, version: Optional[int] = None):
        self.version = version
        self.name = f"ipv{version}" if version else "ip"

    def convert(self, value, param, ctx):
        if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
            return value
        try:
            ip = ipaddress.ip_address(value)
        except ValueError:
            self.fail(f"{value!r} is not a valid IP address", param, ctx)
        if self.version is not None and ip.version != self.version:
            self.fail(f"{value!r} is not an IPv{self.version} address", param, ctx)
        return ip


IP = IPAddressType()
IPV4 = IPAddressType(4)
IPV6 = IPAddressType(6)
PORT = click.IntRange(1, 65535)
