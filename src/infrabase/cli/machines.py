# src/infrabase/cli/machines.py
from __future__ import annotations

from typing import Optional

import click

from ..config import resolve_machine_request
from ..db import repository
from ..logging import get_logger
from ..render.nix import render_nix_data
from ..render.tables import machines_table
from ..security.wireguard_keys import generate_keypair
from .context import IPV4, IPV6, PORT, AppContext, pass_app, reporting_errors, transaction


@click.command("ls")
@pass_app
def ls_cmd(app: AppContext):
    """List machines"""
    with transaction(app) as session:
        machines = repository.load_machines(session)
    click.echo(machines_table(machines.values()), nl=False)


@click.command("add")
@click.argument("hostname")
@click.option("--owner", default=None, help="Owner (default: $DEFAULT_OWNER)")
@click.option("--ssh-port", type=PORT, default=None, help="SSH port (default: $DEFAULT_SSH_PORT)")
@click.option("--ssh-user", default=None, help="SSH user (default: $DEFAULT_SSH_USER)")
@click.option("--wireguard-ipv4-address", type=IPV4, default=None,
              help="WireGuard IPv4 address (default: first unused in $WIREGUARD_IPV4_START..$WIREGUARD_IPV4_END)")
@click.option("--wireguard-ipv6-address", type=IPV6, default=None,
              help="WireGuard IPv6 address (default: first unused in $WIREGUARD_IPV6_START..$WIREGUARD_IPV6_END)")
@click.option("--wireguard-port", type=PORT, default=None, help="WireGuard port (default: $DEFAULT_WIREGUARD_PORT)")
@click.option("--provider", type=int, default=None, help="Provider ID (default: $DEFAULT_PROVIDER)")
@click.option("--provider-reference", default=None, help="Provider's name for the machine")
@pass_app
def add_cmd(
    app: AppContext,
    hostname: str,
    owner: Optional[str],
    ssh_port: Optional[int],
    ssh_user: Optional[str],
    wireguard_ipv4_address,
    wireguard_ipv6_address,
    wireguard_port: Optional[int],
    provider: Optional[int],
    provider_reference: Optional[str],
):
    """Add a machine"""
    log = get_logger()
    with reporting_errors():
        request = resolve_machine_request(
            app.settings,
            hostname,
            owner=owner,
            ssh_port=ssh_port,
            ssh_user=ssh_user,
            wireguard_ipv4_address=wireguard_ipv4_address,
            wireguard_ipv6_address=wireguard_ipv6_address,
            wireguard_port=wireguard_port,
            provider=provider,
            provider_reference=provider_reference,
        )
        keypair = generate_keypair()

    with transaction(app, serializable=True) as session:
        machine = repository.add_machine(session, request, keypair)
    log.info(
        f"Added {machine.hostname} "
        f"(WireGuard {machine.wireguard_ipv4_address}, {machine.wireguard_ipv6_address})"
    )


@click.command("rm")
@click.argument("hostname")
@pass_app
def rm_cmd(app: AppContext, hostname: str):
    """Remove a machine"""
    with transaction(app) as session:
        repository.remove_machine(session, hostname)


@click.command("nix-data")
@pass_app
def nix_data_cmd(app: AppContext):
    """Print Nix data with information about all machines"""
    with transaction(app) as session:
        machines = repository.load_machines(session)
    click.echo(render_nix_data(machines.values()), nl=False)
