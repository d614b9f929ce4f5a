# src/infrabase/render/tables.py
"""Column tables for the `ls` commands: header, dashed underline, rows; "-" for missing values."""

from __future__ import annotations

from typing import Iterable, List, Sequence

import pandas as pd

from ..models import Machine, MachineAddress, NetworkLink, Provider, WireguardKeepalive

MISSING = "-"
GUTTER = "  "


def _cell(value) -> str:
    if value is None:
        return MISSING
    return str(value)


def render_table(headers: Sequence[str], rows: Iterable[Sequence]) -> str:
    df = pd.DataFrame([[_cell(v) for v in row] for row in rows], columns=list(headers), dtype=object)
    widths = {h: max([len(h)] + [len(v) for v in df[h]]) for h in headers}

    def line(cells: Sequence[str]) -> str:
        return GUTTER.join(c.ljust(widths[h]) for h, c in zip(headers, cells)).rstrip()

    out: List[str] = [line(headers), line(["-" * len(h) for h in headers])]
    for row in df.itertuples(index=False, name=None):
        out.append(line(row))
    return "\n".join(out) + "\n"


def machines_table(machines: Iterable[Machine]) -> str:
    headers = ["HOSTNAME", "WG IPV4", "WG IPV6", "OWNER", "PROV", "REFERENCE", "ADDRESSES"]
    rows = [
        [
            m.hostname,
            m.wireguard_ipv4_address,
            m.wireguard_ipv6_address,
            m.owner,
            m.provider_id,
            m.provider_reference,
            " ".join(f"{a.network}={a.address}" for a in m.addresses),
        ]
        for m in machines
    ]
    return render_table(headers, rows)


def addresses_table(addresses: Iterable[MachineAddress]) -> str:
    rows = [[a.hostname, a.network, a.address, a.ssh_port, a.wireguard_port] for a in addresses]
    return render_table(["HOSTNAME", "NETWORK", "ADDRESS", "SSH", "WG"], rows)


def providers_table(providers: Iterable[Provider]) -> str:
    return render_table(["ID", "NAME", "EMAIL"], [[p.id, p.name, p.email] for p in providers])


def keepalives_table(keepalives: Iterable[WireguardKeepalive]) -> str:
    rows = [[k.source_machine, k.target_machine, k.interval_sec] for k in keepalives]
    return render_table(["SOURCE", "TARGET", "INTERVAL"], rows)


def links_table(links: Iterable[NetworkLink]) -> str:
    rows = [[l.network, l.other_network, l.priority] for l in links]
    return render_table(["NETWORK", "OTHER NETWORK", "PRIORITY"], rows)


def networks_table(networks: Iterable[str]) -> str:
    return render_table(["NETWORK"], [[n] for n in networks])
