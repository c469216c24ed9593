"""VPP binary API messages and an in-process connection that dispatches them."""

from __future__ import annotations

import queue
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Any, Callable, Iterable, Mapping

from .metadata import Context
from .types import FibPathNhProto, Prefix

NO_INDEX = 0xFFFFFFFF
ACL_ACTION_PERMIT = 1
IP_PROTO_UDP = 17
NOTIFICATION_BUFFER = 256

Handler = Callable[[Context, Any], Any]


class VppApiError(Exception):
    """An error code returned by VPP."""

    UNSPECIFIED = -1
    INVALID_REGISTRATION = -31

    def __init__(self, code: int, message: str = "") -> None:
        self.code = code
        super().__init__(message or f"VPP API error {code}")


class InterfaceFlags(IntFlag):
    """Interface status flags."""

    NONE = 0
    ADMIN_UP = 1
    LINK_UP = 2


class WireguardPeerFlags(IntFlag):
    """Wireguard peer status flags."""

    NONE = 0
    STATUS_DEAD = 1
    ESTABLISHED = 2


@dataclass
class SwInterfaceDump:
    """Request details of one interface, or of all when sw_if_index is None."""

    sw_if_index: int | None = None


@dataclass
class SwInterfaceDetails:
    sw_if_index: int
    flags: InterfaceFlags = InterfaceFlags.NONE
    interface_name: str = ""
    tag: str = ""


@dataclass
class SwInterfaceSetFlags:
    sw_if_index: int
    flags: InterfaceFlags


@dataclass
class SwInterfaceEvent:
    sw_if_index: int
    flags: InterfaceFlags = InterfaceFlags.NONE
    pid: int = 0
    deleted: bool = False


@dataclass
class WantInterfaceEvents:
    enable_disable: int = 1
    pid: int = 0


@dataclass
class SwInterfaceTagAddDel:
    sw_if_index: int
    tag: str
    is_add: bool = True


@dataclass
class IPAddressDump:
    sw_if_index: int
    is_ipv6: bool = False


@dataclass
class IPAddressDetails:
    sw_if_index: int
    prefix: Prefix = field(default_factory=Prefix)


@dataclass
class ACLRule:
    is_permit: int = ACL_ACTION_PERMIT
    proto: int = 0
    src_prefix: Prefix = field(default_factory=Prefix)
    dst_prefix: Prefix = field(default_factory=Prefix)
    srcport_or_icmptype_first: int = 0
    srcport_or_icmptype_last: int = 0
    dstport_or_icmpcode_first: int = 0
    dstport_or_icmpcode_last: int = 0


@dataclass
class ACLAddReplace:
    """Add an ACL (acl_index NO_INDEX) or replace an existing one."""

    acl_index: int = NO_INDEX
    tag: str = ""
    rules: list[ACLRule] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.rules)


@dataclass
class ACLAddReplaceReply:
    acl_index: int


@dataclass
class ACLDump:
    acl_index: int


@dataclass
class ACLDetails:
    acl_index: int
    tag: str = ""
    rules: list[ACLRule] = field(default_factory=list)


@dataclass
class ACLInterfaceListDump:
    sw_if_index: int


@dataclass
class ACLInterfaceListDetails:
    """ACLs applied to an interface: the first n_input are ingress, the rest egress."""

    sw_if_index: int
    n_input: int = 0
    acls: list[int] = field(default_factory=list)

    @property
    def ingress(self) -> list[int]:
        return self.acls[: self.n_input]

    @property
    def egress(self) -> list[int]:
        return self.acls[self.n_input :]


@dataclass
class ACLInterfaceSetACLList:
    sw_if_index: int
    acls: list[int] = field(default_factory=list)
    n_input: int = 0

    @property
    def count(self) -> int:
        return len(self.acls)


@dataclass
class SwInterfaceSetL2Xconnect:
    rx_sw_if_index: int
    tx_sw_if_index: int
    enable: bool


@dataclass
class FibPath:
    sw_if_index: int
    proto: FibPathNhProto = FibPathNhProto.IP4
    nh: bytes = bytes(16)


@dataclass
class L3xc:
    sw_if_index: int
    is_ip6: bool = False
    paths: list[FibPath] = field(default_factory=list)

    @property
    def n_paths(self) -> int:
        return len(self.paths)


@dataclass
class L3xcUpdate:
    l3xc: L3xc


@dataclass
class L3xcDel:
    sw_if_index: int
    is_ip6: bool


@dataclass
class WireguardPeersDump:
    peer_index: int


@dataclass
class WireguardPeersDetails:
    peer_index: int
    flags: WireguardPeerFlags = WireguardPeerFlags.NONE


@dataclass
class WantWireguardPeerEvents:
    peer_index: int
    sw_if_index: int = NO_INDEX
    enable_disable: int = 1
    pid: int = 0


@dataclass
class WireguardPeerEvent:
    peer_index: int
    flags: WireguardPeerFlags = WireguardPeerFlags.NONE
    pid: int = 0


@dataclass
class InterfaceCounters:
    """Traffic counters of one interface."""

    interface_index: int
    rx_bytes: int = 0
    tx_bytes: int = 0
    rx_packets: int = 0
    tx_packets: int = 0
    drops: int = 0


class Subscription:
    """A bounded queue of notifications of one event type."""

    def __init__(self, connection: VppConnection, event_type: type, maxsize: int = NOTIFICATION_BUFFER) -> None:
        self.event_type = event_type
        self._connection = connection
        self._queue: queue.Queue[Any] = queue.Queue(maxsize)
        self._closed = False

    def _deliver(self, event: Any) -> bool:
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            return False
        return True

    def get(self, timeout: float | None = None) -> Any | None:
        """The next notification, or None if none arrives within timeout."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        """Stop receiving notifications."""
        self._closed = True
        self._connection._unsubscribe(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class VppConnection:
    """Dispatches API messages to registered handlers and fans out notifications."""

    def __init__(self, handlers: Mapping[type, Handler] | None = None) -> None:
        self._handlers: dict[type, Handler] = dict(handlers or {})
        self._subscriptions: dict[type, list[Subscription]] = defaultdict(list)
        self._lock = threading.Lock()

    def register(self, message_type: type, handler: Handler) -> None:
        """Set the handler that answers messages of message_type."""
        self._handlers[message_type] = handler

    def _dispatch(self, ctx: Context, message: Any) -> Any:
        if ctx.err is not None:
            raise ctx.err
        handler = self._handlers.get(type(message))
        if handler is None:
            raise VppApiError(VppApiError.UNSPECIFIED, f"no handler for {type(message).__name__}")
        return handler(ctx, message)

    def call(self, ctx: Context, message: Any) -> Any:
        """Send a request and return its reply."""
        return self._dispatch(ctx, message)

    def dump(self, ctx: Context, message: Any) -> list[Any]:
        """Send a dump request and return all the details it produced."""
        result: Iterable[Any] | None = self._dispatch(ctx, message)
        return list(result or ())

    def subscribe(self, event_type: type) -> Subscription:
        """Start receiving notifications of event_type."""
        subscription = Subscription(self, event_type)
        with self._lock:
            self._subscriptions[event_type].append(subscription)
        return subscription

    def publish(self, event: Any) -> int:
        """Deliver a notification to its subscribers; returns how many took it."""
        with self._lock:
            subscribers = list(self._subscriptions.get(type(event), ()))
        return sum(subscription._deliver(event) for subscription in subscribers)

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscriptions.get(subscription.event_type, [])
            if subscription in subscribers:
                subscribers.remove(subscription)


class StatsConnection:
    """Reads interface counters from a stats source until disconnected."""

    def __init__(self, source: Callable[[], Iterable[InterfaceCounters]]) -> None:
        self._source = source
        self._connected = True

    @property
    def connected(self) -> bool:
        return self._connected

    def get_interface_stats(self) -> list[InterfaceCounters]:
        """Counters of every interface."""
        if not self._connected:
            raise ConnectionError("stats connection is closed")
        return list(self._source())

    def disconnect(self) -> None:
        """Close the connection."""
        self._connected = False