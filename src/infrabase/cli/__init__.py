# src/infrabase/cli/__init__.py
from __future__ import annotations

import click

from .. import __version__
from ..config import Settings, load_env
from ..logging import LOG_LEVELS, get_logger, setup_logging
from .addresses import address_group
from .catalog import init_db_cmd, link_group, network_group, owner_group, provider_group
from .context import AppContext, reporting_errors
from .machines import add_cmd, ls_cmd, nix_data_cmd, rm_cmd
from .ssh import ssh_config_cmd
from .wireguard import keepalive_group, wg_privkey_cmd, wg_quick_cmd, write_wg_peers_cmd


@click.group()
@click.version_option(__version__, prog_name="infrabase")
@click.option("--env-file", type=click.Path(dir_okay=False), default=None,
              help="Env file to load (default: $INFRABASE_ENV_FILE, the per-user config file, or ./.env).")
@click.option("--log-level", default="WARNING", show_default=True, type=click.Choice(LOG_LEVELS))
@click.option("--log-file", default=None, type=click.Path(dir_okay=False))
@click.option("-q", "--quiet", is_flag=True, help="No log output on stderr.")
@click.pass_context
def cli(ctx: click.Context, env_file, log_level, log_file, quiet):
    """the machine inventory system"""
    setup_logging(level=log_level, quiet=quiet, log_file=log_file)
    log = get_logger()
    with reporting_errors():
        env_path = load_env(env_file)
        settings = Settings.from_env()
    if env_path:
        log.debug(f"Loaded environment from {env_path}")
    ctx.obj = AppContext(settings=settings, env_path=env_path)


cli.add_command(ls_cmd)
cli.add_command(add_cmd)
cli.add_command(rm_cmd)
cli.add_command(nix_data_cmd)
cli.add_command(ssh_config_cmd)
cli.add_command(wg_quick_cmd)
cli.add_command(wg_privkey_cmd)
cli.add_command(write_wg_peers_cmd)
cli.add_command(keepalive_group)
cli.add_command(address_group)
cli.add_command(provider_group)
cli.add_command(network_group)
cli.add_command(link_group)
cli.add_command(owner_group)
cli.add_command(init_db_cmd)


def main():
    cli(prog_name="infrabase")


if __name__ == "__main__":
    main()
