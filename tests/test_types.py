import ipaddress

import pytest

from vppchain.types import (
    Address,
    AddressFamily,
    FibPathNhProto,
    Prefix,
    from_vpp_address,
    from_vpp_address_with_prefix,
    from_vpp_ip_address_union,
    from_vpp_prefix,
    is_v6_to_fib_proto,
    to_vpp_address,
    to_vpp_address_with_prefix,
    to_vpp_mac_address,
    to_vpp_prefix,
)


def test_ipv4_address_layout():
    addr = to_vpp_address("10.1.2.3")
    assert addr.af == AddressFamily.IP4
    assert addr.un[:4] == bytes([10, 1, 2, 3])
    assert addr.un[4:] == bytes(12)


def test_ipv6_address_layout():
    ip = ipaddress.IPv6Address("fe80::1")
    addr = to_vpp_address(ip)
    assert addr.af == AddressFamily.IP6
    assert addr.un == ip.packed


@pytest.mark.parametrize("text", ["192.168.0.1", "0.0.0.0", "2001:db8::5", "::"])
def test_address_round_trip(text):
    ip = ipaddress.ip_address(text)
    assert from_vpp_address(to_vpp_address(ip)) == ip


def test_ipv4_mapped_is_treated_as_ipv4():
    addr = to_vpp_address("::ffff:10.0.0.7")
    assert addr.af == AddressFamily.IP4
    assert from_vpp_address(addr) == ipaddress.IPv4Address("10.0.0.7")


def test_address_union_size_checked():
    with pytest.raises(ValueError):
        Address(AddressFamily.IP4, b"\x01\x02\x03\x04")


def test_from_union_reads_leading_bytes():
    un = bytes([172, 16, 0, 9]) + bytes(12)
    assert from_vpp_ip_address_union(un, False) == ipaddress.IPv4Address("172.16.0.9")
    assert from_vpp_ip_address_union(un, True) == ipaddress.IPv6Address(un)


def test_none_prefix_is_zero_prefix():
    assert to_vpp_prefix(None) == Prefix()
    assert to_vpp_prefix(None).length == 0


def test_prefix_from_network():
    net = ipaddress.ip_network("10.20.0.0/16")
    prefix = to_vpp_prefix(net)
    assert prefix.length == 16
    assert from_vpp_address(prefix.address) == net.network_address


@pytest.mark.parametrize("text", ["10.0.0.5/24", "2001:db8::7/64", "0.0.0.0/0", "1.2.3.4/32"])
def test_prefix_round_trip_keeps_host_bits(text):
    iface = ipaddress.ip_interface(text)
    assert from_vpp_prefix(to_vpp_prefix(iface)) == iface
    assert from_vpp_address_with_prefix(to_vpp_address_with_prefix(text)) == iface


def test_from_vpp_prefix_rejects_oversized_length():
    prefix = Prefix(address=to_vpp_address("10.0.0.1"), length=33)
    with pytest.raises(ValueError):
        from_vpp_prefix(prefix)


def test_to_vpp_prefix_rejects_unknown_type():
    with pytest.raises(TypeError):
        to_vpp_prefix(42)


def test_mac_from_string():
    assert to_vpp_mac_address("02:00:00:00:00:01") == bytes([2, 0, 0, 0, 0, 1])
    assert to_vpp_mac_address("02-00-00-00-00-01") == bytes([2, 0, 0, 0, 0, 1])


def test_mac_pads_and_truncates():
    assert to_vpp_mac_address(b"\x02\x01") == b"\x02\x01" + bytes(4)
    assert to_vpp_mac_address(bytes(range(1, 9))) == bytes(range(1, 7))


def test_mac_invalid_string():
    with pytest.raises(ValueError):
        to_vpp_mac_address("02:zz:00:00:00:01")


def test_fib_proto():
    assert is_v6_to_fib_proto(True) is FibPathNhProto.IP6
    assert is_v6_to_fib_proto(False) is FibPathNhProto.IP4