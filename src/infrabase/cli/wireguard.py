# src/infrabase/cli/wireguard.py
from __future__ import annotations

from typing import List, Tuple

import click

from ..config import peers_file_path
from ..db import repository
from ..logging import get_logger
from ..mesh import LinkPriorityIndex, build_peers, get_machine, require_wireguard
from ..natsort import natural_sorted
from ..progress import overall
from ..render.nix import render_nix_peers
from ..render.tables import keepalives_table
from ..render.wg_quick import render_wg_quick
from .context import AppContext, pass_app, reporting_errors, transaction


@click.command("wg-quick")
@click.option("--for", "for_hostname", required=True, help="Machine the config will be used on")
@pass_app
def wg_quick_cmd(app: AppContext, for_hostname: str):
    """Print a wg-quick config"""
    with transaction(app) as session:
        inventory = repository.load_inventory(session)
        machine = require_wireguard(get_machine(inventory.machines, for_hostname))
        index = LinkPriorityIndex.build(inventory.links)
        peers = build_peers(inventory.machines, index, inventory.keepalive_map, for_hostname)
        text = render_wg_quick(machine, peers)
    click.echo(text, nl=False)


@click.command("wg-privkey")
@click.argument("hostname")
@pass_app
def wg_privkey_cmd(app: AppContext, hostname: str):
    """Print a machine's private WireGuard key"""
    with transaction(app) as session:
        privkey = repository.get_wireguard_privkey(session, hostname)
    click.echo(privkey)


@click.command("write-wg-peers")
@click.option("--progress/--no-progress", default=True, show_default=True)
@pass_app
def write_wg_peers_cmd(app: AppContext, progress: bool):
    """Write out all WireGuard peers files used for NixOS configuration"""
    log = get_logger()
    with reporting_errors():
        template = app.settings.require("wireguard_peers_path_template")

    # render everything before touching the filesystem
    outputs: List[Tuple[str, str]] = []
    with transaction(app) as session:
        inventory = repository.load_inventory(session)
        index = LinkPriorityIndex.build(inventory.links)
        keepalives = inventory.keepalive_map
        for machine in natural_sorted(inventory.machines.values(), key=lambda m: m.hostname):
            if not machine.wireguard_pubkey or not machine.wireguard_addresses:
                log.debug(f"{machine.hostname}: no WireGuard interface, no peers file")
                continue
            path = peers_file_path(
                template,
                machine.hostname,
                machine.wireguard_ipv4_address,
                machine.wireguard_ipv6_address,
            )
            peers = build_peers(inventory.machines, index, keepalives, machine.hostname)
            outputs.append((str(path), render_nix_peers(peers)))

    with overall(len(outputs), "Writing peers files", enabled=progress) as bar:
        for path, text in outputs:
            try:
                with open(path, "w", encoding="utf-8") as f:
                    f.write(text)
            except OSError as e:
                raise click.ClickException(f"Could not write {path}: {e}") from e
            log.info(f"Wrote {path}")
            bar.update(1)


# ---------------------------
# wg-keepalive
# ---------------------------

@click.group("wg-keepalive")
def keepalive_group():
    """Subcommands to work with WireGuard persistent keepalives"""


@keepalive_group.command("ls")
@pass_app
def keepalive_ls_cmd(app: AppContext):
    """List WireGuard persistent keepalives"""
    with transaction(app) as session:
        keepalives = repository.list_keepalives(session)
    click.echo(keepalives_table(keepalives), nl=False)


@keepalive_group.command("add")
@click.argument("source_machine")
@click.argument("target_machine")
@click.argument("interval_sec", type=click.IntRange(1, 65535))
@pass_app
def keepalive_add_cmd(app: AppContext, source_machine: str, target_machine: str, interval_sec: int):
    """Set the keepalive SOURCE_MACHINE sends to TARGET_MACHINE"""
    with transaction(app) as session:
        repository.add_keepalive(session, source_machine, target_machine, interval_sec)
