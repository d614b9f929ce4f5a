# src/infrabase/cli/catalog.py
"""Providers, networks, links and owners: the tables machines point at."""

from __future__ import annotations

import click

from ..db import init_db, repository
from ..logging import get_logger
from ..render.tables import links_table, networks_table, providers_table
from .context import AppContext, pass_app, reporting_errors, transaction


@click.command("init-db")
@pass_app
def init_db_cmd(app: AppContext):
    """Create any missing tables"""
    with reporting_errors():
        init_db(app.engine())


# ---------------------------
# provider
# ---------------------------

@click.group("provider")
def provider_group():
    """Subcommands to work with providers"""


@provider_group.command("ls")
@pass_app
def provider_ls_cmd(app: AppContext):
    """List providers"""
    with transaction(app) as session:
        providers = repository.list_providers(session)
    click.echo(providers_table(providers), nl=False)


@provider_group.command("add")
@click.argument("name")
@click.argument("email")
@pass_app
def provider_add_cmd(app: AppContext, name: str, email: str):
    """Add a provider and print its ID"""
    with transaction(app) as session:
        provider = repository.add_provider(session, name, email)
    click.echo(provider.id)


# ---------------------------
# network / link
# ---------------------------

@click.group("network")
def network_group():
    """Subcommands to work with networks"""


@network_group.command("ls")
@pass_app
def network_ls_cmd(app: AppContext):
    """List networks"""
    with transaction(app) as session:
        networks = repository.list_networks(session)
    click.echo(networks_table(networks), nl=False)


@network_group.command("add")
@click.argument("name")
@pass_app
def network_add_cmd(app: AppContext, name: str):
    """Add a network"""
    with transaction(app) as session:
        repository.add_network(session, name)


@click.group("link")
def link_group():
    """Subcommands to work with network links (which network can reach which)"""


@link_group.command("ls")
@pass_app
def link_ls_cmd(app: AppContext):
    """List network links"""
    with transaction(app) as session:
        links = repository.list_links(session)
    click.echo(links_table(links), nl=False)


@link_group.command("add")
@click.argument("network")
@click.argument("other_network")
@click.argument("priority", type=int)
@pass_app
def link_add_cmd(app: AppContext, network: str, other_network: str, priority: int):
    """Let NETWORK reach OTHER_NETWORK; lower PRIORITY is preferred"""
    with transaction(app) as session:
        repository.add_link(session, network, other_network, priority)
    get_logger().info(f"Link {network} -> {other_network} at priority {priority}")


@link_group.command("rm")
@click.argument("network")
@click.argument("other_network")
@pass_app
def link_rm_cmd(app: AppContext, network: str, other_network: str):
    """Remove a network link"""
    with transaction(app) as session:
        repository.remove_link(session, network, other_network)


# ---------------------------
# owner
# ---------------------------

@click.group("owner")
def owner_group():
    """Subcommands to work with owners"""


@owner_group.command("add")
@click.argument("owner")
@pass_app
def owner_add_cmd(app: AppContext, owner: str):
    """Add an owner"""
    with transaction(app) as session:
        repository.add_owner(session, owner)
