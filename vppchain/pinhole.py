"""Chain elements that open an ACL pinhole for tunnel traffic on interfaces that carry ACLs.

An ACL is added only when the tunnel interface already has ACLs in that direction.
It permits UDP to (ingress) or from (egress) the tunnel endpoint's port.
"""

from __future__ import annotations

import ipaddress
import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Union

from .chain import Element
from .connection import Connection, Mechanism, NetworkServiceRequest
from .metadata import Context
from .types import from_vpp_address_with_prefix, to_vpp_prefix
from .vppapi import (
    ACL_ACTION_PERMIT,
    IP_PROTO_UDP,
    NO_INDEX,
    ACLAddReplace,
    ACLDetails,
    ACLDump,
    ACLInterfaceListDump,
    ACLInterfaceSetACLList,
    ACLRule,
    IPAddressDump,
    SwInterfaceDump,
    VppConnection,
)

ACL_TAG = "nsm-pinhole"
MAX_PORT = 65535

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

_log = logging.getLogger(__name__)
_DIGITS = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class IPPortKey:
    """A tunnel endpoint: its IP address as text and its UDP port."""

    address: str
    port: int

    def ip(self) -> IPAddress | None:
        """The parsed address, or None if it does not parse."""
        try:
            return _normalize(self.address)
        except ValueError:
            return None


def _normalize(addr: IPAddress | str) -> IPAddress:
    ip = addr if isinstance(addr, (ipaddress.IPv4Address, ipaddress.IPv6Address)) else ipaddress.ip_address(addr)
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def from_mechanism(mechanism: Mechanism | None, is_client: bool) -> IPPortKey | None:
    """The local tunnel endpoint named by the mechanism, or None if it names none.

    The client side uses the source address and port, the server side the destination.
    """
    if mechanism is None or not mechanism.parameters:
        return None
    params = mechanism.parameters
    ip_key, port_key = (
        (Mechanism.SRC_IP, Mechanism.SRC_PORT) if is_client else (Mechanism.DST_IP, Mechanism.DST_PORT)
    )
    ip_str = params.get(ip_key, "")
    if not ip_str:
        return None
    port_str = params.get(port_key)
    if port_str is None or not _DIGITS.fullmatch(port_str):
        return None
    port = int(port_str)
    if port > MAX_PORT:
        return None
    return IPPortKey(ip_str, port)


def create_acl_add_replace(tunnel_ip: IPAddress | str, port: int, tag: str, egress: bool) -> ACLAddReplace:
    """A new-ACL request permitting UDP to the tunnel port, or from it when egress."""
    ip = _normalize(tunnel_ip)
    if ip.version == 4:
        default_net = ipaddress.ip_interface("0.0.0.0/0")
        tunnel_net = ipaddress.ip_interface(f"{ip}/32")
    else:
        default_net = ipaddress.ip_interface("::/0")
        tunnel_net = ipaddress.ip_interface(f"{ip}/128")
    src, dst = (tunnel_net, default_net) if egress else (default_net, tunnel_net)
    rule = ACLRule(
        is_permit=ACL_ACTION_PERMIT,
        proto=IP_PROTO_UDP,
        src_prefix=to_vpp_prefix(src),
        dst_prefix=to_vpp_prefix(dst),
        srcport_or_icmptype_first=0,
        srcport_or_icmptype_last=MAX_PORT,
        dstport_or_icmpcode_first=port,
        dstport_or_icmpcode_last=port,
    )
    return ACLAddReplace(acl_index=NO_INDEX, tag=tag, rules=[rule])


def _tunnel_ip_sw_if_index(ctx: Context, vpp_conn: VppConnection, tunnel_ip: IPAddress) -> int:
    started = time.monotonic()
    for details in vpp_conn.dump(ctx, SwInterfaceDump()):
        ip_dump = IPAddressDump(sw_if_index=details.sw_if_index, is_ipv6=tunnel_ip.version == 6)
        for ip_details in vpp_conn.dump(ctx, ip_dump):
            if _normalize(from_vpp_address_with_prefix(ip_details.prefix).ip) == tunnel_ip:
                _log.debug(
                    "SwInterfaceDump found interface %d with ip %s in %.6fs",
                    details.sw_if_index,
                    tunnel_ip,
                    time.monotonic() - started,
                )
                return details.sw_if_index
    _log.debug("SwInterfaceDump did not find interface with ip %s", tunnel_ip)
    raise LookupError(f"unable to find tunnelIP ({tunnel_ip}) on any vpp interface")


def _interface_acl_indices(ctx: Context, vpp_conn: VppConnection, sw_if_index: int) -> tuple[list[int], list[int]]:
    replies = vpp_conn.dump(ctx, ACLInterfaceListDump(sw_if_index=sw_if_index))
    if not replies:
        raise LookupError(f"no ACL interface list for swIfIndex {sw_if_index}")
    details = replies[0]
    _log.debug("ACLInterfaceListDump for swIfIndex %d", sw_if_index)
    return details.ingress, details.egress


def _acl_details(ctx: Context, vpp_conn: VppConnection, acl_indices: list[int]) -> list[ACLDetails]:
    result = []
    for acl_index in acl_indices:
        replies = vpp_conn.dump(ctx, ACLDump(acl_index=acl_index))
        if not replies:
            raise LookupError(f"no details for ACL {acl_index}")
        _log.debug("ACLDump completed for aclIndex %d", acl_index)
        result.append(replies[0])
    return result


def _add_acl_if_needed(
    ctx: Context,
    vpp_conn: VppConnection,
    tunnel_ip: IPAddress,
    port: int,
    tag: str,
    egress: bool,
    acl_details: list[ACLDetails],
) -> list[int]:
    indices = [detail.acl_index for detail in acl_details]
    if acl_details and not any(detail.tag == tag for detail in acl_details):
        reply = vpp_conn.call(ctx, create_acl_add_replace(tunnel_ip, port, tag, egress))
        _log.debug("ACLAddReplace completed with aclIndex %d", reply.acl_index)
        indices.insert(0, reply.acl_index)
    return indices


def create(
    ctx: Context,
    vpp_conn: VppConnection,
    tunnel_ip: IPAddress | str | None,
    port: int,
    tag: str,
) -> None:
    """Put a pinhole ACL in front of each non-empty ACL list of the tunnel IP's interface."""
    if tunnel_ip is None or port == 0:
        return
    ip = _normalize(tunnel_ip)
    sw_if_index = _tunnel_ip_sw_if_index(ctx, vpp_conn, ip)

    ingress_indices, egress_indices = _interface_acl_indices(ctx, vpp_conn, sw_if_index)
    ingress = _acl_details(ctx, vpp_conn, ingress_indices)
    egress = _acl_details(ctx, vpp_conn, egress_indices)

    acls = _add_acl_if_needed(ctx, vpp_conn, ip, port, tag, False, ingress)
    n_input = len(acls)
    acls += _add_acl_if_needed(ctx, vpp_conn, ip, port, tag, True, egress)

    if len(acls) == len(ingress) + len(egress):
        return
    started = time.monotonic()
    vpp_conn.call(ctx, ACLInterfaceSetACLList(sw_if_index=sw_if_index, acls=acls, n_input=n_input))
    _log.debug(
        "ACLInterfaceSetACLList completed: swIfIndex=%d acls=%s NInput=%d in %.6fs",
        sw_if_index,
        acls,
        n_input,
        time.monotonic() - started,
    )


class _PinholeElement(Element):
    def __init__(self, vpp_conn: VppConnection) -> None:
        self._vpp_conn = vpp_conn
        self._seen: set[IPPortKey] = set()
        self._seen_lock = threading.Lock()

    def _claim(self, key: IPPortKey) -> bool:
        with self._seen_lock:
            if key in self._seen:
                return False
            self._seen.add(key)
            return True

    def request(self, ctx: Context, request: NetworkServiceRequest) -> Connection:
        conn = super().request(ctx, request)
        key = from_mechanism(conn.mechanism, self.is_client)
        if key is not None and self._claim(key):
            try:
                create(ctx, self._vpp_conn, key.ip(), key.port, f"{ACL_TAG} port {key.port}")
            except Exception as err:
                self._close_and_raise(ctx, conn, err)
        return conn

    def close(self, ctx: Context, conn: Connection) -> None:
        super().close(ctx, conn)


class PinholeClient(_PinholeElement):
    """Client element that opens a pinhole for the connection's source endpoint."""

    is_client = True

    def request(self, ctx: Context, request: NetworkServiceRequest) -> Connection:
        return super().request(ctx, request)

    def close(self, ctx: Context, conn: Connection) -> None:
        super().close(ctx, conn)


class PinholeServer(_PinholeElement):
    """Server element that opens a pinhole for the connection's destination endpoint."""

    is_client = False

    def request(self, ctx: Context, request: NetworkServiceRequest) -> Connection:
        return super().request(ctx, request)

    def close(self, ctx: Context, conn: Connection) -> None:
        super().close(ctx, conn)