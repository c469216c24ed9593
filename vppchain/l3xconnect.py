"""Chain elements that cross connect the client and server VPP interfaces at layer 3."""

from __future__ import annotations

import logging
import time
from typing import Iterable

from .chain import Element
from .connection import Connection, IPNet, NetworkServiceRequest, Payload
from .metadata import IFINDEX, Context
from .types import AddressFamily, is_v6_to_fib_proto, to_vpp_address
from .vppapi import FibPath, L3xc, L3xcDel, L3xcUpdate, VppConnection

_log = logging.getLogger(__name__)


def l3xc_update(
    from_sw_if_index: int,
    to_if_index: int,
    next_hops: Iterable[IPNet | None],
    is_ip6: bool,
) -> L3xcUpdate:
    """An update sending traffic from one interface to another via the first usable next hop."""
    proto = is_v6_to_fib_proto(is_ip6)
    paths: list[FibPath] = []
    for nh in next_hops:
        if nh is None:
            continue
        address = to_vpp_address(nh.ip)
        if is_ip6 and address.af == AddressFamily.IP4:
            continue
        paths.append(FibPath(sw_if_index=to_if_index, proto=proto, nh=address.un))
        break
    if not paths:
        paths = [FibPath(sw_if_index=to_if_index, proto=proto)]
    return L3xcUpdate(l3xc=L3xc(sw_if_index=from_sw_if_index, is_ip6=is_ip6, paths=paths))


def l3xc_updates(
    client_sw_if_index: int,
    server_sw_if_index: int,
    client_next_hops: list[IPNet | None],
    server_next_hops: list[IPNet | None],
) -> list[L3xcUpdate]:
    """The IPv4 and IPv6 updates for both directions of the cross connect."""
    return [
        l3xc_update(client_sw_if_index, server_sw_if_index, client_next_hops, False),
        l3xc_update(client_sw_if_index, server_sw_if_index, client_next_hops, True),
        l3xc_update(server_sw_if_index, client_sw_if_index, server_next_hops, False),
        l3xc_update(server_sw_if_index, client_sw_if_index, server_next_hops, True),
    ]


def _if_indices(ctx: Context) -> tuple[int, int] | None:
    client_if_index = IFINDEX.load(ctx, True)
    if client_if_index is None:
        return None
    server_if_index = IFINDEX.load(ctx, False)
    if server_if_index is None:
        return None
    return client_if_index, server_if_index


def create(ctx: Context, vpp_conn: VppConnection, conn: Connection) -> None:
    """Install the cross connect, if both interfaces are known."""
    indices = _if_indices(ctx)
    if indices is None:
        return
    client_if_index, server_if_index = indices
    ip_context = conn.context.ip_context
    updates = l3xc_updates(
        client_if_index,
        server_if_index,
        ip_context.src_ip_nets(),
        ip_context.dst_ip_nets(),
    )
    for update in updates:
        started = time.monotonic()
        vpp_conn.call(ctx, update)
        _log.debug(
            "L3xcUpdate completed: SwIfIndex=%d IsIP6=%s Paths[0].SwIfIndex=%d in %.6fs",
            update.l3xc.sw_if_index,
            update.l3xc.is_ip6,
            update.l3xc.paths[0].sw_if_index,
            time.monotonic() - started,
        )


def delete(ctx: Context, vpp_conn: VppConnection) -> None:
    """Remove the cross connect from both interfaces, if both are known."""
    indices = _if_indices(ctx)
    if indices is None:
        return
    for if_index in indices:
        for is_ip6 in (True, False):
            started = time.monotonic()
            vpp_conn.call(ctx, L3xcDel(sw_if_index=if_index, is_ip6=is_ip6))
            _log.debug(
                "L3xcDel completed: SwIfIndex=%d IsIP6=%s in %.6fs",
                if_index,
                is_ip6,
                time.monotonic() - started,
            )


class _L3XconnectElement(Element):
    def __init__(self, vpp_conn: VppConnection) -> None:
        self._vpp_conn = vpp_conn

    def request(self, ctx: Context, request: NetworkServiceRequest) -> Connection:
        if request.connection.payload != Payload.IP:
            return super().request(ctx, request)
        conn = super().request(ctx, request)
        try:
            create(ctx, self._vpp_conn, conn)
        except Exception as err:
            self._close_and_raise(ctx, conn, err)
        return conn

    def close(self, ctx: Context, conn: Connection) -> None:
        if conn.payload == Payload.IP:
            try:
                delete(ctx, self._vpp_conn)
            except Exception as err:
                _log.debug("removing l3 cross connect failed: %s", err)
        super().close(ctx, conn)


class L3XconnectClient(_L3XconnectElement):
    """Client element that cross connects IP connections."""

    is_client = True

    def request(self, ctx: Context, request: NetworkServiceRequest) -> Connection:
        return super().request(ctx, request)

    def close(self, ctx: Context, conn: Connection) -> None:
        super().close(ctx, conn)


class L3XconnectServer(_L3XconnectElement):
    """Server element that cross connects IP connections."""

    is_client = False

    def request(self, ctx: Context, request: NetworkServiceRequest) -> Connection:
        return super().request(ctx, request)

    def close(self, ctx: Context, conn: Connection) -> None:
        super().close(ctx, conn)