from .links import LinkPriorityIndex
from .paths import best_path, resolve
from .peers import build_peers, get_machine, require_wireguard, select_ssh_targets

__all__ = [
    "LinkPriorityIndex",
    "resolve",
    "best_path",
    "build_peers",
    "select_ssh_targets",
    "get_machine",
    "require_wireguard",
]
