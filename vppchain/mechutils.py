"""Helpers that turn kernel mechanisms and connections into names."""

from __future__ import annotations

from urllib.parse import urlparse

from .connection import Connection, Mechanism

NETNS_URL_SCHEME = "file"


def to_ns_filename(mechanism: Mechanism) -> str:
    """The network namespace file named by the mechanism's netns URL."""
    url = mechanism.parameters.get(Mechanism.NETNS_URL, "")
    parsed = urlparse(url)
    if parsed.scheme != NETNS_URL_SCHEME:
        raise ValueError(f"NetNSURL Scheme required to be {NETNS_URL_SCHEME!r} actual {parsed.scheme!r}")
    if not parsed.path:
        raise ValueError(f"NetNSURL.Path cannot be empty {parsed.path!r}")
    return parsed.path


def to_alias(conn: Connection, is_client: bool) -> str:
    """Interface alias for the client or server side of a forwarder connection."""
    if is_client:
        segment = conn.next_path_segment()
        return f"client-{segment.id if segment else ''}"
    segment = conn.prev_path_segment()
    return f"server-{segment.id if segment else ''}"