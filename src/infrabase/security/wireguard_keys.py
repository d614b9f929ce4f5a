# src/infrabase/security/wireguard_keys.py
from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import List, Optional

from ..errors import KeyGenerationError


@dataclass(frozen=True)
class Keypair:
    privkey: str
    pubkey: str


def _strip_newline(s: str) -> str:
    return s[:-1] if s.endswith("\n") else s


def _run_wg(args: List[str], stdin: Optional[str] = None) -> str:
    try:
        result = subprocess.run(
            ["wg", *args],
            input=stdin,
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise KeyGenerationError("Could not find the `wg` binary; is wireguard-tools installed?") from e
    except subprocess.CalledProcessError as e:
        raise KeyGenerationError(f"`wg {' '.join(args)}` failed: {e.stderr.strip()}") from e
    return _strip_newline(result.stdout)


def generate_keypair() -> Keypair:
    """Fresh WireGuard keypair from `wg genkey` | `wg pubkey`."""
    privkey = _run_wg(["genkey"])
    pubkey = _run_wg(["pubkey"], stdin=privkey + "\n")
    return Keypair(privkey=privkey, pubkey=pubkey)
