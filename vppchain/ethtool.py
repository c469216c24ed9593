"""Disable checksum offload on veth pairs through the ethtool ioctl."""

from __future__ import annotations

import array
import fcntl
import socket
import struct
from dataclasses import dataclass

SIOCETHTOOL = 0x8946
ETHTOOL_SRXCSUM = 0x00000015
ETHTOOL_STXCSUM = 0x00000017
MAX_IF_NAME_SIZE = 16
_IFREQ_SIZE = 40


class EthtoolError(Exception):
    """An ethtool request failed."""


@dataclass(frozen=True)
class Veth:
    """A veth pair: the link's name and its peer's name."""

    name: str
    peer_name: str


def _ethtool_set(iface: str, cmd: int) -> int:
    encoded = iface.encode()
    if len(encoded) + 1 > MAX_IF_NAME_SIZE:
        raise EthtoolError("interface name is too long")
    value = array.array("I", [cmd, 0])
    address, _ = value.buffer_info()
    request = bytearray(struct.pack(f"{MAX_IF_NAME_SIZE}sP", encoded, address).ljust(_IFREQ_SIZE, b"\x00"))
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        fcntl.ioctl(sock.fileno(), SIOCETHTOOL, request, True)
    return value[1]


def disable_veth_chksum_offload(veth: Veth) -> None:
    """Turn off TX and RX checksum offload on both ends of a veth pair."""
    for iface in (veth.name, veth.peer_name):
        for cmd in (ETHTOOL_STXCSUM, ETHTOOL_SRXCSUM):
            try:
                _ethtool_set(iface, cmd)
            except (OSError, EthtoolError) as err:
                raise EthtoolError(f"with retval 0: {err}") from err