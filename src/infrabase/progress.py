# src/infrabase/progress.py
from __future__ import annotations

from tqdm import tqdm


class _NoProgress:
    def __enter__(self): return self
    def __exit__(self, *a): return False
    def update(self, *a, **k): pass
    def set_postfix_str(self, *a, **k): pass


def overall(total: int, desc: str, enabled: bool = True):
    """A tqdm bar on stderr, or a stand-in with the same surface when disabled."""
    if not enabled:
        return _NoProgress()
    return tqdm(total=total, desc=desc, leave=False, dynamic_ncols=True)
