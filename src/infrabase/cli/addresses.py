# src/infrabase/cli/addresses.py
from __future__ import annotations

from typing import Optional

import click

from ..config import resolve_address_request
from ..db import repository
from ..render.tables import addresses_table
from .context import IP, PORT, AppContext, pass_app, transaction


@click.group("address")
def address_group():
    """Subcommands to work with addresses"""


@address_group.command("ls")
@pass_app
def address_ls_cmd(app: AppContext):
    """List addresses"""
    with transaction(app) as session:
        addresses = repository.list_addresses(session)
    click.echo(addresses_table(addresses), nl=False)


@address_group.command("add")
@click.argument("hostname")
@click.argument("network")
@click.argument("address", type=IP)
@click.option("--ssh-port", type=PORT, default=None, help="SSH port (default: $DEFAULT_SSH_PORT)")
@click.option("--wireguard-port", type=PORT, default=None, help="WireGuard port (default: $DEFAULT_WIREGUARD_PORT)")
@pass_app
def address_add_cmd(
    app: AppContext,
    hostname: str,
    network: str,
    address,
    ssh_port: Optional[int],
    wireguard_port: Optional[int],
):
    """Add an address"""
    request = resolve_address_request(
        app.settings, hostname, network, address, ssh_port=ssh_port, wireguard_port=wireguard_port
    )
    with transaction(app) as session:
        repository.add_address(session, request)


@address_group.command("rm")
@click.argument("hostname")
@click.argument("network")
@click.argument("address", type=IP)
@pass_app
def address_rm_cmd(app: AppContext, hostname: str, network: str, address):
    """Remove an address"""
    with transaction(app) as session:
        repository.remove_address(session, hostname, network, address)
