import logging as _log
import types as _types
import typing as _tp

import aiohttp as _ahttp

import jsonrpc_transports.jsonrpc.config as _jtjcfg
import jsonrpc_transports.jsonrpc.envelope as _jtjenv
import jsonrpc_transports.jsonrpc.pool as _jtjp
import jsonrpc_transports.jsonrpc.types as _tps
import jsonrpc_transports.websockets.types as _jtwt

_LOGGER = _log.getLogger(__name__)


class ClientContext:
    """
    Everything transports share: the request id counter, the HTTP session and
    the socket pool. Transports built on the same context draw ids from the same
    counter. The counter belongs to the socket pool, so contexts given the same
    pool share it too.

    A session passed in stays owned by the caller; otherwise one is created on
    first use and closed by `aclose`.
    """

    def __init__(
        self,
        config: _jtjcfg.ClientConfig | None = None,
        *,
        session: _ahttp.ClientSession | None = None,
        socket_pool: _jtjp.SocketPool | None = None,
    ) -> None:
        self.config = config or _jtjcfg.ClientConfig()

        self._session = session
        self._owns_session = session is None

        self.socket_pool = socket_pool or _jtjp.SocketPool(
            self._ws_connect,
            self.config.correlation,
            self.config.socket_idle_timeout_seconds,
        )
        self.request_ids = self.socket_pool.request_ids

    @property
    def session(self) -> _ahttp.ClientSession:
        if self._session is None:
            self._session = _ahttp.ClientSession()

        return self._session

    def build_request(self, body: _tps.RequestBody) -> _tps.Request:
        return _jtjenv.build_request(body, self.request_ids)

    def resolve_timeout(self, timeout_seconds: float | None) -> float:
        if timeout_seconds is None:
            return self.config.request_timeout_seconds

        return timeout_seconds

    async def aclose(self) -> None:
        _LOGGER.info("Closing.")

        await self.socket_pool.close()

        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> _tp.Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: _types.TracebackType | None,
    ) -> None:
        await self.aclose()

    async def _ws_connect(self, url: str) -> _jtwt.ClientWebsocket:
        return await self.session.ws_connect(url)
