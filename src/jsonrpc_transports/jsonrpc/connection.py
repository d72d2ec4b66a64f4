import collections.abc as _cabc
import dataclasses as _dc
import json as _json
import logging as _log
import time as _time
import typing as _tp

import aiohttp as _ahttp

import jsonrpc_transports.jsonrpc.config as _jtjcfg
import jsonrpc_transports.jsonrpc.envelope as _jtjenv
import jsonrpc_transports.jsonrpc.errors as _jtje
import jsonrpc_transports.jsonrpc.types as _tps
import jsonrpc_transports.websockets.client as _jtwc
import jsonrpc_transports.websockets.types as _jtwt

_LOGGER = _log.getLogger(__name__)


@_dc.dataclass(frozen=True, eq=False)
class ResponseHandler:
    on_data: _cabc.Callable[[_jtjenv.ResponseEnvelope], None]
    on_error: _cabc.Callable[[_jtje.CallError], None]


class SocketConnection(_jtwt.MessageReceiver):
    """
    A persistent websocket together with the routing of its inbound responses.

    With `Correlation.BY_ID` every handler is registered under its request id
    and receives only the response carrying that id, once. With
    `Correlation.LAST_WRITER` the most recently registered handler receives
    every inbound message, whatever its id.
    """

    def __init__(
        self,
        url: str,
        websocket: _jtwt.ClientWebsocket,
        correlation: _jtjcfg.Correlation = _jtjcfg.Correlation.BY_ID,
    ) -> None:
        self.url = url
        self.correlation = correlation

        self._websocket_client = _jtwc.WebsocketClient(websocket, self)

        self._handlers_by_request_id = dict[int, ResponseHandler]()
        self._latest_handler: ResponseHandler | None = None

        self._last_used = _time.monotonic()

    @property
    def closed(self) -> bool:
        return self._websocket_client.closed

    @property
    def pending_count(self) -> int:
        if self.correlation == _jtjcfg.Correlation.LAST_WRITER:
            return 0 if self._latest_handler is None else 1

        return len(self._handlers_by_request_id)

    def idle_seconds(self) -> float:
        return _time.monotonic() - self._last_used

    def start(self) -> None:
        self._websocket_client.start()

    async def close(self) -> None:
        await self._websocket_client.close()

    async def send_request(
        self, request: _tps.Request, handler: ResponseHandler
    ) -> None:
        if self.closed:
            raise _jtje.TransportError(f"The connection to {self.url} is closed.")

        self._register(request["id"], handler)

        data = _json.dumps(request)

        _LOGGER.debug("Sending request %s.", data)
        try:
            await self._websocket_client.send_str(data)
        except (_ahttp.ClientError, ConnectionError) as error:
            self.discard(request["id"], handler)
            raise _jtje.TransportError(
                f"Could not send the request to {self.url}.", str(error)
            ) from error

        self._touch()

    def discard(self, request_id: int, handler: ResponseHandler) -> None:
        """
        Stop listening on behalf of `handler`. A reply arriving later is dropped.
        """
        if self._handlers_by_request_id.get(request_id) is handler:
            del self._handlers_by_request_id[request_id]

        if self._latest_handler is handler:
            self._latest_handler = None

    @_tp.override
    async def on_message_received(self, json: str | bytes) -> None:
        self._touch()

        try:
            envelope = _jtjenv.parse_response(json)
        except _jtje.ParseError as parse_error:
            self._on_unparseable_message_received(json, parse_error)
            return

        _LOGGER.debug("Got response %s.", envelope)

        handler = self._take_handler(envelope.id)
        if handler is None:
            _LOGGER.warning(
                "Dropping response with id %s: nobody is waiting for it.", envelope.id
            )
            return

        if envelope.is_error:
            handler.on_error(_jtje.RemoteError(envelope.error))
        else:
            handler.on_data(envelope)

    def _on_unparseable_message_received(
        self, json: str | bytes, parse_error: _jtje.ParseError
    ) -> None:
        handler = self._take_handler(_jtjenv.peek_request_id(json))
        if handler is None:
            _LOGGER.warning("Dropping unparseable message %s.", json)
            return

        handler.on_error(parse_error)

    @_tp.override
    async def on_connection_closed(self, exception: BaseException | None) -> None:
        handlers = list(self._handlers_by_request_id.values())
        self._handlers_by_request_id.clear()

        if self._latest_handler is not None:
            handlers.append(self._latest_handler)
            self._latest_handler = None

        if not handlers:
            return

        _LOGGER.info(
            "Connection to %s closed with %d call(s) pending.", self.url, len(handlers)
        )

        details = str(exception) if exception else ""
        for handler in handlers:
            error = _jtje.TransportError(
                f"The connection to {self.url} was closed.", details
            )
            handler.on_error(error)

    def _register(self, request_id: int, handler: ResponseHandler) -> None:
        if self.correlation == _jtjcfg.Correlation.LAST_WRITER:
            self._latest_handler = handler
        else:
            self._handlers_by_request_id[request_id] = handler

    def _take_handler(self, request_id: int | None) -> ResponseHandler | None:
        if self.correlation == _jtjcfg.Correlation.LAST_WRITER:
            return self._latest_handler

        if request_id is None:
            return None

        return self._handlers_by_request_id.pop(request_id, None)

    def _touch(self) -> None:
        self._last_used = _time.monotonic()
