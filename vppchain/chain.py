"""Chains of request/close elements, each passing on to the next."""

from __future__ import annotations

from typing import Callable, ClassVar, NoReturn

from .connection import Connection, NetworkServiceRequest
from .metadata import Context


class Element:
    """A chain element; by default it passes requests and closes to the next one."""

    is_client: ClassVar[bool] = False
    next_element: Element | None = None

    def request(self, ctx: Context, request: NetworkServiceRequest) -> Connection:
        """Pass the request on; at the end of the chain, return the requested connection."""
        if self.next_element is None:
            return request.connection
        return self.next_element.request(ctx, request)

    def close(self, ctx: Context, conn: Connection) -> None:
        """Pass the close on to the next element, if any."""
        if self.next_element is not None:
            self.next_element.close(ctx, conn)

    def _request_then(
        self,
        ctx: Context,
        request: NetworkServiceRequest,
        action: Callable[[Connection], None],
    ) -> Connection:
        """Pass the request on, then run action on the result; close and re-raise if it fails."""
        conn = Element.request(self, ctx, request)
        try:
            action(conn)
        except Exception as err:
            self._close_and_raise(ctx, conn, err)
        return conn

    def _close_and_raise(self, ctx: Context, conn: Connection, err: BaseException) -> NoReturn:
        """Close conn on a fresh context sharing ctx's metadata, then re-raise err."""
        close_ctx = ctx.with_values()
        try:
            self.close(close_ctx, conn)
        except Exception:
            raise err
        finally:
            close_ctx.cancel()
        raise err


class _ChainExit(Element):
    def __init__(self, owner: Chain) -> None:
        self._owner = owner

    def request(self, ctx: Context, request: NetworkServiceRequest) -> Connection:
        return Element.request(self._owner, ctx, request)

    def close(self, ctx: Context, conn: Connection) -> None:
        Element.close(self._owner, ctx, conn)


class Chain(Element):
    """Elements run in order; the last hands on to whatever follows the chain."""

    def __init__(self, *elements: Element) -> None:
        self.elements: list[Element] = list(elements)
        chain_exit = _ChainExit(self)
        for element, follower in zip(self.elements, [*self.elements[1:], chain_exit]):
            element.next_element = follower
        self._head: Element = self.elements[0] if self.elements else chain_exit

    def request(self, ctx: Context, request: NetworkServiceRequest) -> Connection:
        return self._head.request(ctx, request)

    def close(self, ctx: Context, conn: Connection) -> None:
        self._head.close(ctx, conn)