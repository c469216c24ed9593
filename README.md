# vppchain

Chain elements for a network service forwarder that programs a VPP data plane.
Each element takes part in a connection's `request` and `close`. It first hands
the call on to the rest of the chain. It then configures VPP for the connection
that came back. If that configuration fails, the element closes the connection
on a fresh context that shares the request's metadata, and re-raises the error.

## Elements

- `vppchain.pinhole`: `PinholeClient` and `PinholeServer` open a pinhole for
  tunnel traffic. They take the tunnel endpoint from the mechanism parameters:
  `src_ip`/`src_port` on the client side and `dst_ip`/`dst_port` on the server
  side. They find the VPP interface that carries that IP. For each direction in
  which that interface already has ACLs, they put an ACL in front that permits
  UDP to (ingress) or from (egress) the port. An endpoint is handled once per
  element. `from_mechanism`, `create_acl_add_replace` and `create` are also
  public.
- `vppchain.l3xconnect`: `L3XconnectClient` and `L3XconnectServer` cross connect
  the client and server interfaces for connections with `Payload.IP`. Both
  interfaces must be stored in the context's metadata under `IFINDEX`.
  - On request, they send four `L3xcUpdate` messages: IPv4 and IPv6, in each
    direction. The next hop is the first usable address from the connection's
    IP context.
  - On close, they send `L3xcDel` for both interfaces and both families.
  - Any other payload is passed through untouched.

## Building blocks

- `vppchain.chain`: `Element` is the base class, and its default passes
  requests and closes on. `Chain(*elements)` links elements in order. At the end
  of a chain, `request` returns the requested connection.
- `vppchain.connection`: the connection model. It holds `Connection`,
  `Mechanism`, `Path`, `PathSegment`, `IPContext`, `ConnectionContext`,
  `NetworkServiceRequest` and `Payload`.
- `vppchain.metadata`:
  - `Context` is a cancellable request context with an optional timeout. It
    holds separate client-side and server-side metadata maps.
  - `MetadataKey` is a typed key into those maps, with `store`, `load`,
    `delete`, `load_or_store` and `load_and_delete`.
  - Ready-made keys: `IFINDEX`, `LINK`, `PEER` and `WAIT_TILL_UP`.
- `vppchain.types`: conversions between `ipaddress` objects and VPP `Address`
  and `Prefix` values. Also `to_vpp_mac_address` and `is_v6_to_fib_proto`.
- `vppchain.mechutils`:
  - `to_ns_filename` reads the namespace file path from a `file://` netns URL.
  - `to_alias` names an interface `client-<id>` or `server-<id>` after the next
    or previous path segment.
- `vppchain.ethtool`: `disable_veth_chksum_offload(Veth(name, peer_name))`
  turns off TX and RX checksum offload on both ends of a veth pair. It uses the
  Linux ethtool ioctl.

## Talking to VPP

`vppchain.vppapi` defines the API messages as dataclasses, for example
`SwInterfaceDump`, `ACLAddReplace` and `L3xcUpdate`. It also defines
`VppConnection`, which every element uses to reach VPP:

- `register(message_type, handler)` sets the function that answers a message
  type. Handlers can also be passed to the constructor as a mapping.
- `call(ctx, message)` returns the handler's reply.
- `dump(ctx, message)` returns the handler's details as a list.
- `subscribe(event_type)` returns a `Subscription`. Read it with
  `get(timeout)`. `publish(event)` delivers an event to the subscribers of its
  type.
- A message with no handler raises `VppApiError`.
- A cancelled context raises its error.

`StatsConnection` reads `InterfaceCounters` from a callable until you call
`disconnect()`.

## Example

```python
from vppchain.chain import Chain
from vppchain.connection import (
    Connection, ConnectionContext, IPContext, NetworkServiceRequest, Payload,
)
from vppchain.l3xconnect import L3XconnectServer
from vppchain.metadata import IFINDEX, Context
from vppchain.vppapi import L3xcUpdate, VppConnection

updates = []
vpp_conn = VppConnection({L3xcUpdate: lambda ctx, msg: updates.append(msg)})
chain = Chain(L3XconnectServer(vpp_conn))

ctx = Context()
IFINDEX.store(ctx, True, 1)
IFINDEX.store(ctx, False, 2)
request = NetworkServiceRequest(
    Connection(
        id="conn-1",
        payload=Payload.IP,
        context=ConnectionContext(IPContext(["10.0.0.1/32"], ["10.0.0.2/32"])),
    )
)
conn = chain.request(ctx, request)
assert len(updates) == 4
```

## What this package does not do

- It has no client for a real VPP API socket or stats segment.
  `VppConnection` answers messages only through the handlers you register.
- It ships no forwarder program and no command.
- It does not tag interfaces, set them up, collect interface counters into
  path metrics, or cross connect Ethernet payloads at layer 2. Only ACL
  pinholes and layer 3 cross connects are provided as chain elements.

## Tests

```
pip install .[test]
pytest
```