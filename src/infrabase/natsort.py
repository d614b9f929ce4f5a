# src/infrabase/natsort.py
from __future__ import annotations

import re
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar, Union

__all__ = ["natural_key", "natural_sorted"]

T = TypeVar("T")

_DIGITS = re.compile(r"(\d+)")


def natural_key(text: str) -> Tuple[Tuple[Union[str, int], ...], str]:
    """
    Sort key for human ordering: "host2" < "host10".

    re.split with a capturing group always yields text at even positions and
    digit runs at odd positions (leading/trailing text may be ""), so two keys
    never compare a str against an int. The raw string is the tie-break for
    names that only differ in leading zeros ("a01" vs "a1").
    """
    parts = _DIGITS.split(text)
    segments = tuple(int(p) if i % 2 else p for i, p in enumerate(parts))
    return segments, text


def natural_sorted(items: Iterable[T], key: Optional[Callable[[T], str]] = None) -> List[T]:
    if key is None:
        return sorted(items, key=natural_key)  # type: ignore[arg-type]
    return sorted(items, key=lambda item: natural_key(key(item)))
