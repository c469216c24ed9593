"""Conversions between Python address types and VPP binary API address types."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Union

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
IPPrefix = Union[
    ipaddress.IPv4Network,
    ipaddress.IPv6Network,
    ipaddress.IPv4Interface,
    ipaddress.IPv6Interface,
]

_UNION_SIZE = 16
_MAC_SIZE = 6


class AddressFamily(IntEnum):
    """Address family of a VPP address."""

    IP4 = 0
    IP6 = 1


class FibPathNhProto(IntEnum):
    """Next-hop protocol of a FIB path."""

    IP4 = 0
    IP6 = 1
    MPLS = 2
    ETHERNET = 3
    BIER = 4


@dataclass(frozen=True)
class Address:
    """A VPP address: a family and a 16-byte address union."""

    af: AddressFamily = AddressFamily.IP4
    un: bytes = bytes(_UNION_SIZE)

    def __post_init__(self) -> None:
        if len(self.un) != _UNION_SIZE:
            raise ValueError(f"address union must be {_UNION_SIZE} bytes, got {len(self.un)}")


@dataclass(frozen=True)
class Prefix:
    """A VPP prefix: an address and a prefix length."""

    address: Address = field(default_factory=Address)
    length: int = 0


AddressWithPrefix = Prefix


def _as_ip(addr: IPAddress | str | bytes | int) -> IPAddress:
    ip = addr if isinstance(addr, (ipaddress.IPv4Address, ipaddress.IPv6Address)) else ipaddress.ip_address(addr)
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def to_vpp_address(addr: IPAddress | str | bytes | int) -> Address:
    """Convert an IP address to a VPP address."""
    ip = _as_ip(addr)
    if ip.version == 4:
        return Address(AddressFamily.IP4, ip.packed.ljust(_UNION_SIZE, b"\x00"))
    return Address(AddressFamily.IP6, ip.packed)


def to_vpp_prefix(prefix: IPPrefix | str | None) -> Prefix:
    """Convert a network or interface to a VPP prefix; None gives the zero prefix."""
    if prefix is None:
        return Prefix()
    if isinstance(prefix, str):
        prefix = ipaddress.ip_interface(prefix)
    if isinstance(prefix, (ipaddress.IPv4Interface, ipaddress.IPv6Interface)):
        ip = prefix.ip
        length = prefix.network.prefixlen
    elif isinstance(prefix, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        ip = prefix.network_address
        length = prefix.prefixlen
    else:
        raise TypeError(f"unsupported prefix type: {type(prefix).__name__}")
    return Prefix(address=to_vpp_address(ip), length=length)


def to_vpp_address_with_prefix(prefix: IPPrefix | str | None) -> Prefix:
    """Convert a network or interface to a VPP address-with-prefix."""
    return to_vpp_prefix(prefix)


def from_vpp_ip_address_union(un: bytes, is_v6: bool) -> IPAddress:
    """Read an IP address out of a VPP address union."""
    if is_v6:
        return ipaddress.IPv6Address(bytes(un[:16]))
    return ipaddress.IPv4Address(bytes(un[:4]))


def from_vpp_address(addr: Address) -> IPAddress:
    """Convert a VPP address to an IP address."""
    return from_vpp_ip_address_union(addr.un, addr.af == AddressFamily.IP6)


def from_vpp_prefix(prefix: Prefix) -> ipaddress.IPv4Interface | ipaddress.IPv6Interface:
    """Convert a VPP prefix to an interface, keeping any host bits of the address."""
    size = 128 if prefix.address.af == AddressFamily.IP6 else 32
    if not 0 <= prefix.length <= size:
        raise ValueError(f"prefix length {prefix.length} out of range for a {size}-bit address")
    ip = from_vpp_address(prefix.address)
    return ipaddress.ip_interface(f"{ip}/{prefix.length}")


def from_vpp_address_with_prefix(prefix: Prefix) -> ipaddress.IPv4Interface | ipaddress.IPv6Interface:
    """Convert a VPP address-with-prefix to an interface."""
    return from_vpp_prefix(prefix)


def _parse_mac(text: str) -> bytes:
    parts = text.replace("-", ":").split(":")
    try:
        octets = [int(part, 16) for part in parts]
    except ValueError as exc:
        raise ValueError(f"invalid hardware address: {text!r}") from exc
    if any(len(part) not in (1, 2) for part in parts) or any(not 0 <= o <= 255 for o in octets):
        raise ValueError(f"invalid hardware address: {text!r}")
    return bytes(octets)


def to_vpp_mac_address(hardware_addr: bytes | bytearray | str) -> bytes:
    """Convert a hardware address to a 6-byte VPP MAC address, truncating or zero-padding."""
    raw = _parse_mac(hardware_addr) if isinstance(hardware_addr, str) else bytes(hardware_addr)
    return raw[:_MAC_SIZE].ljust(_MAC_SIZE, b"\x00")


def is_v6_to_fib_proto(is_v6: bool) -> FibPathNhProto:
    """Return the FIB next-hop protocol for IPv6 or IPv4."""
    return FibPathNhProto.IP6 if is_v6 else FibPathNhProto.IP4