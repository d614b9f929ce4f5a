# src/infrabase/cli/ssh.py
from __future__ import annotations

import click

from ..db import repository
from ..mesh import LinkPriorityIndex, select_ssh_targets
from ..render.ssh_config import render_ssh_config
from .context import AppContext, pass_app, transaction


@click.command("ssh-config")
@click.option("--for", "for_hostname", required=True, help="Machine the config will be used on")
@pass_app
def ssh_config_cmd(app: AppContext, for_hostname: str):
    """Print an SSH config"""
    with transaction(app) as session:
        inventory = repository.load_inventory(session)
        index = LinkPriorityIndex.build(inventory.links)
        targets = select_ssh_targets(inventory.machines, index, for_hostname)
    click.echo(render_ssh_config(for_hostname, targets.values()), nl=False)
