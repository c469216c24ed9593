"""Network service connection model: mechanisms, paths, IP context and requests."""

from __future__ import annotations

import copy
import ipaddress
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union

IPNet = Union[ipaddress.IPv4Interface, ipaddress.IPv6Interface]


class Payload(str, Enum):
    """Kind of traffic a connection carries."""

    ETHERNET = "ETHERNET"
    IP = "IP"

    def __str__(self) -> str:
        return self.value


@dataclass
class Mechanism:
    """A connection mechanism: its class, type and string parameters."""

    SRC_IP: ClassVar[str] = "src_ip"
    DST_IP: ClassVar[str] = "dst_ip"
    SRC_PORT: ClassVar[str] = "src_port"
    DST_PORT: ClassVar[str] = "dst_port"
    NETNS_URL: ClassVar[str] = "netnsURL"

    cls: str = ""
    type: str = ""
    parameters: dict[str, str] = field(default_factory=dict)


@dataclass
class PathSegment:
    """One hop of a connection's path."""

    name: str = ""
    id: str = ""
    token: str = ""
    metrics: dict[str, str] = field(default_factory=dict)


@dataclass
class Path:
    """The ordered path segments of a connection and the current position in it."""

    index: int = 0
    path_segments: list[PathSegment] = field(default_factory=list)


def _parse_cidrs(cidrs: list[str]) -> list[IPNet | None]:
    nets: list[IPNet | None] = []
    for cidr in cidrs:
        if "/" not in cidr:
            nets.append(None)
            continue
        try:
            nets.append(ipaddress.ip_interface(cidr))
        except ValueError:
            nets.append(None)
    return nets


@dataclass
class IPContext:
    """Addresses assigned to the source and destination ends of a connection."""

    src_ip_addrs: list[str] = field(default_factory=list)
    dst_ip_addrs: list[str] = field(default_factory=list)

    def src_ip_nets(self) -> list[IPNet | None]:
        """Source addresses in CIDR form; entries that do not parse give None."""
        return _parse_cidrs(self.src_ip_addrs)

    def dst_ip_nets(self) -> list[IPNet | None]:
        """Destination addresses in CIDR form; entries that do not parse give None."""
        return _parse_cidrs(self.dst_ip_addrs)


@dataclass
class ConnectionContext:
    """Context attached to a connection."""

    ip_context: IPContext = field(default_factory=IPContext)


@dataclass
class Connection:
    """A network service connection."""

    id: str = ""
    network_service: str = ""
    mechanism: Mechanism | None = None
    context: ConnectionContext = field(default_factory=ConnectionContext)
    labels: dict[str, str] = field(default_factory=dict)
    path: Path = field(default_factory=Path)
    payload: Payload | str = ""

    def clone(self) -> Connection:
        """A deep copy of the connection."""
        return copy.deepcopy(self)

    def prev_path_segment(self) -> PathSegment | None:
        """The segment before the current one, or None."""
        segments = self.path.path_segments
        index = self.path.index
        if not segments or index <= 0 or index - 1 >= len(segments):
            return None
        return segments[index - 1]

    def next_path_segment(self) -> PathSegment | None:
        """The segment after the current one, or None."""
        segments = self.path.path_segments
        index = self.path.index
        if not segments or index < 0 or index + 1 >= len(segments):
            return None
        return segments[index + 1]


@dataclass
class NetworkServiceRequest:
    """A request for a connection, with the mechanisms the requester accepts."""

    connection: Connection = field(default_factory=Connection)
    mechanism_preferences: list[Mechanism] = field(default_factory=list)