import asyncio as _asyncio
import collections.abc as _cabc
import logging as _log

import aiohttp as _ahttp

import jsonrpc_transports.jsonrpc.config as _jtjcfg
import jsonrpc_transports.jsonrpc.connection as _jtjc
import jsonrpc_transports.jsonrpc.envelope as _jtjenv
import jsonrpc_transports.jsonrpc.errors as _jtje
import jsonrpc_transports.websockets.types as _jtwt

_LOGGER = _log.getLogger(__name__)


type WebsocketConnector = _cabc.Callable[
    [str], _cabc.Awaitable[_jtwt.ClientWebsocket]
]


class SocketPool:
    """
    At most one open `SocketConnection` per URL.

    The pending connect is cached as soon as it starts, so callers acquiring
    the same URL while it is still connecting all wait for that one connect.
    Connections that failed or closed are evicted on the next `acquire`, as
    are connections idle for `idle_timeout_seconds` (if positive).

    Request ids sent on pooled connections come from `request_ids`, so every
    context sharing a pool draws from one counter and ids never collide on a
    shared socket.
    """

    def __init__(
        self,
        connect: WebsocketConnector,
        correlation: _jtjcfg.Correlation = _jtjcfg.Correlation.BY_ID,
        idle_timeout_seconds: float = 0.0,
        request_ids: _jtjenv.RequestIdGenerator | None = None,
    ) -> None:
        self._connect = connect
        self.request_ids = request_ids or _jtjenv.RequestIdGenerator()
        self._correlation = correlation
        self._idle_timeout_seconds = idle_timeout_seconds

        self._connection_tasks_by_url = dict[
            str, _asyncio.Task[_jtjc.SocketConnection]
        ]()

    def __contains__(self, url: object) -> bool:
        return url in self._connection_tasks_by_url

    def __len__(self) -> int:
        return len(self._connection_tasks_by_url)

    async def acquire(self, url: str) -> _jtjc.SocketConnection:
        await self._evict_unusable(keep=url)

        task = self._connection_tasks_by_url.get(url)
        if task is None:
            task = _asyncio.create_task(self._open_connection(url))
            self._connection_tasks_by_url[url] = task

        try:
            return await _asyncio.shield(task)
        except _jtje.TransportError:
            if self._connection_tasks_by_url.get(url) is task:
                del self._connection_tasks_by_url[url]
            raise

    async def evict(self, url: str) -> None:
        task = self._connection_tasks_by_url.pop(url, None)
        if task is None:
            return

        _LOGGER.info("Evicting connection to %s.", url)
        await self._close_task(task)

    async def close(self) -> None:
        tasks = list(self._connection_tasks_by_url.values())
        self._connection_tasks_by_url.clear()

        results = await _asyncio.gather(
            *(self._close_task(task) for task in tasks), return_exceptions=True
        )

        for result in results:
            if isinstance(result, Exception):
                _LOGGER.error("Error while closing a connection.", exc_info=result)

    async def _open_connection(self, url: str) -> _jtjc.SocketConnection:
        _LOGGER.info("Connecting to %s.", url)

        try:
            websocket = await self._connect(url)
        except (_ahttp.ClientError, OSError) as error:
            raise _jtje.TransportError(
                f"Could not connect to {url}.", str(error)
            ) from error

        connection = _jtjc.SocketConnection(url, websocket, self._correlation)
        connection.start()

        _LOGGER.info("Connected to %s.", url)

        return connection

    async def _evict_unusable(self, keep: str) -> None:
        for url, task in list(self._connection_tasks_by_url.items()):
            if not task.done():
                continue

            if task.cancelled() or task.exception() is not None:
                del self._connection_tasks_by_url[url]
                continue

            connection = task.result()
            if connection.closed:
                _LOGGER.info("Evicting closed connection to %s.", url)
                del self._connection_tasks_by_url[url]
            elif url != keep and self._is_idle(connection):
                _LOGGER.info("Evicting idle connection to %s.", url)
                del self._connection_tasks_by_url[url]
                await connection.close()

    def _is_idle(self, connection: _jtjc.SocketConnection) -> bool:
        if self._idle_timeout_seconds <= 0:
            return False

        return (
            connection.pending_count == 0
            and connection.idle_seconds() >= self._idle_timeout_seconds
        )

    @staticmethod
    async def _close_task(task: _asyncio.Task[_jtjc.SocketConnection]) -> None:
        if not task.done():
            task.cancel()
            await _asyncio.gather(task, return_exceptions=True)
            return

        if task.cancelled() or task.exception() is not None:
            return

        await task.result().close()
