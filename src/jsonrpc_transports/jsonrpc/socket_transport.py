import asyncio as _asyncio
import collections.abc as _cabc
import logging as _log

import jsonrpc_transports.jsonrpc.connection as _jtjc
import jsonrpc_transports.jsonrpc.context as _jtjctx
import jsonrpc_transports.jsonrpc.envelope as _jtjenv
import jsonrpc_transports.jsonrpc.errors as _jtje
import jsonrpc_transports.jsonrpc.timeout as _jtjt
import jsonrpc_transports.jsonrpc.types as _tps

_LOGGER = _log.getLogger(__name__)


class SocketTransport:
    def __init__(self, context: _jtjctx.ClientContext) -> None:
        self._context = context

    async def acquire(self, url: str) -> _jtjc.SocketConnection:
        return await self._context.socket_pool.acquire(url)

    async def send(
        self,
        connection: _jtjc.SocketConnection,
        body: _tps.RequestBody,
        on_data: _cabc.Callable[[_jtjenv.ResponseEnvelope], None],
        on_error: _cabc.Callable[[_jtje.CallError], None],
    ) -> _jtjc.SocketConnection:
        """
        Send one request without waiting for the reply. Replies are handed to
        `on_data`, failures (remote errors included) to `on_error`. Which
        replies reach the callbacks depends on the connection's correlation.
        """
        request = self._context.build_request(body)
        handler = _jtjc.ResponseHandler(on_data, on_error)

        await connection.send_request(request, handler)

        return connection

    async def call(
        self,
        connection: _jtjc.SocketConnection,
        body: _tps.RequestBody,
        timeout_seconds: float | None = None,
    ) -> _jtjenv.ResponseEnvelope:
        """
        Send one request and wait for the reply the connection routes back.

        Same failures as `HttpTransport.call`. A call that times out stops
        listening but leaves the connection open.
        """
        future = _asyncio.get_running_loop().create_future()

        def on_data(envelope: _jtjenv.ResponseEnvelope) -> None:
            if not future.done():
                future.set_result(envelope)

        def on_error(error: _jtje.CallError) -> None:
            if not future.done():
                future.set_exception(error)

        handler = _jtjc.ResponseHandler(on_data, on_error)

        async def send_and_wait() -> _jtjenv.ResponseEnvelope:
            request = self._context.build_request(body)
            try:
                await connection.send_request(request, handler)
                return await future
            finally:
                if future.cancelled():
                    _LOGGER.debug("Abandoning request %s.", request["id"])
                connection.discard(request["id"], handler)

        return await _jtjt.with_timeout(
            send_and_wait,
            error=_jtje.RequestTimeoutError(body),
            timeout_seconds=self._context.resolve_timeout(timeout_seconds),
        )
