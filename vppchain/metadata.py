"""Request contexts and typed per-connection metadata stored in them."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any


class ContextCancelledError(Exception):
    """Raised or reported when a context has been cancelled."""


class DeadlineExceededError(ContextCancelledError):
    """Reported when a context's timeout has expired."""


class Context:
    """A cancellable request context carrying client and server metadata maps."""

    def __init__(self, timeout: float | None = None, values: dict[str, Any] | None = None) -> None:
        self.values: dict[str, Any] = dict(values or {})
        self._timeout = timeout
        self._state_lock = threading.Lock()
        self._map_lock = threading.RLock()
        self._maps: dict[bool, dict[Any, Any]] = {True: {}, False: {}}
        self._done = threading.Event()
        self._err: ContextCancelledError | None = None
        self._timer: threading.Timer | None = None
        if timeout is not None:
            if timeout <= 0:
                self._finish(DeadlineExceededError("context deadline exceeded"))
            else:
                self._timer = threading.Timer(
                    timeout, self._finish, args=(DeadlineExceededError("context deadline exceeded"),)
                )
                self._timer.daemon = True
                self._timer.start()

    def _finish(self, err: ContextCancelledError) -> None:
        with self._state_lock:
            if self._done.is_set():
                return
            self._err = err
            self._done.set()
        if self._timer is not None:
            self._timer.cancel()

    @property
    def done(self) -> threading.Event:
        """Event that is set once the context is cancelled or its deadline passes."""
        return self._done

    @property
    def err(self) -> ContextCancelledError | None:
        """Why the context ended, or None while it is live."""
        return self._err

    def metadata(self, is_client: bool) -> dict[Any, Any]:
        """The metadata map for the client or the server side."""
        return self._maps[bool(is_client)]

    def cancel(self) -> None:
        """Cancel the context."""
        self._finish(ContextCancelledError("context canceled"))

    def with_values(self) -> Context:
        """A fresh, live context sharing this one's metadata and values, with the same timeout."""
        clone = Context(self._timeout, self.values)
        clone.values = self.values
        clone._maps = self._maps
        clone._map_lock = self._map_lock
        return clone

    def __enter__(self) -> Context:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()


@dataclass(frozen=True, eq=False)
class MetadataKey:
    """A typed key into a context's per-connection metadata."""

    name: str
    value_type: type = object

    def _accepts(self, value: Any) -> bool:
        if self.value_type is int and isinstance(value, bool):
            return False
        return isinstance(value, self.value_type)

    def store(self, ctx: Context, is_client: bool, value: Any) -> None:
        """Store a value for this key."""
        if not self._accepts(value):
            raise TypeError(f"{self.name} expects {self.value_type.__name__}, got {type(value).__name__}")
        with ctx._map_lock:
            ctx.metadata(is_client)[self] = value

    def delete(self, ctx: Context, is_client: bool) -> None:
        """Remove the value for this key, if any."""
        with ctx._map_lock:
            ctx.metadata(is_client).pop(self, None)

    def load(self, ctx: Context, is_client: bool) -> Any | None:
        """The stored value, or None if absent or of the wrong type."""
        with ctx._map_lock:
            value = ctx.metadata(is_client).get(self)
        return value if value is not None and self._accepts(value) else None

    def load_or_store(self, ctx: Context, is_client: bool, value: Any) -> tuple[Any | None, bool]:
        """Return (existing, True) if a value is present, else store value and return (None, False).

        A present value of the wrong type gives (None, False) and is left in place.
        """
        if not self._accepts(value):
            raise TypeError(f"{self.name} expects {self.value_type.__name__}, got {type(value).__name__}")
        with ctx._map_lock:
            data = ctx.metadata(is_client)
            if self not in data:
                data[self] = value
                return None, False
            existing = data[self]
        if self._accepts(existing):
            return existing, True
        return None, False

    def load_and_delete(self, ctx: Context, is_client: bool) -> Any | None:
        """Remove the value and return it, or None if absent or of the wrong type."""
        with ctx._map_lock:
            value = ctx.metadata(is_client).pop(self, None)
        return value if value is not None and self._accepts(value) else None


IFINDEX = MetadataKey("ifindex", int)
LINK = MetadataKey("link", object)
PEER = MetadataKey("peer", object)
WAIT_TILL_UP = MetadataKey("up", bool)