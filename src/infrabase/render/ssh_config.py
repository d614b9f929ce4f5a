# src/infrabase/render/ssh_config.py
from __future__ import annotations

from typing import Iterable, List

from ..models import SshTarget


def render_ssh_config(for_hostname: str, targets: Iterable[SshTarget]) -> str:
    """OpenSSH client config, one Host block per target in the order given."""
    lines: List[str] = [f"# infrabase-generated SSH config for {for_hostname}"]
    for t in targets:
        lines += [
            "",
            f"# owner: {t.owner}",
            f"Host {t.hostname}",
            f"  HostName {t.address}",
            f"  Port {t.port}",
        ]
    return "\n".join(lines) + "\n"
