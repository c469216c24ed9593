from unittest import mock

import pytest

from vppchain.ethtool import SIOCETHTOOL, EthtoolError, Veth, disable_veth_chksum_offload


def _names(ioctl):
    return [bytes(call.args[2][:16]).rstrip(b"\x00").decode() for call in ioctl.call_args_list]


@mock.patch("vppchain.ethtool.socket.socket")
@mock.patch("vppchain.ethtool.fcntl.ioctl")
def test_both_ends_are_configured_twice(ioctl, _sock):
    result = disable_veth_chksum_offload(Veth("veth0", "veth1"))
    assert result is None
    assert _names(ioctl) == ["veth0", "veth0", "veth1", "veth1"]
    assert {call.args[1] for call in ioctl.call_args_list} == {SIOCETHTOOL}


@mock.patch("vppchain.ethtool.socket.socket")
@mock.patch("vppchain.ethtool.fcntl.ioctl")
def test_ioctl_failure_stops_and_wraps(ioctl, _sock):
    ioctl.side_effect = OSError(1, "Operation not permitted")
    with pytest.raises(EthtoolError, match="^with retval 0"):
        disable_veth_chksum_offload(Veth("veth0", "veth1"))
    assert ioctl.call_count == 1


@mock.patch("vppchain.ethtool.socket.socket")
@mock.patch("vppchain.ethtool.fcntl.ioctl")
def test_name_too_long_is_rejected(ioctl, _sock):
    with pytest.raises(EthtoolError, match="too long"):
        disable_veth_chksum_offload(Veth("a" * 16, "peer"))
    assert ioctl.call_count == 0


@mock.patch("vppchain.ethtool.socket.socket")
@mock.patch("vppchain.ethtool.fcntl.ioctl")
def test_longest_allowed_name(ioctl, _sock):
    result = disable_veth_chksum_offload(Veth("a" * 15, "b" * 15))
    assert result is None
    assert _names(ioctl) == ["a" * 15, "a" * 15, "b" * 15, "b" * 15]