from .nix import render_nix_data, render_nix_peers, to_nix
from .ssh_config import render_ssh_config
from .wg_quick import render_wg_quick

__all__ = [
    "to_nix",
    "render_nix_data",
    "render_nix_peers",
    "render_ssh_config",
    "render_wg_quick",
]
