import json as _json
import logging as _log

import aiohttp as _ahttp

import jsonrpc_transports.jsonrpc.context as _jtjctx
import jsonrpc_transports.jsonrpc.envelope as _jtjenv
import jsonrpc_transports.jsonrpc.errors as _jtje
import jsonrpc_transports.jsonrpc.timeout as _jtjt
import jsonrpc_transports.jsonrpc.types as _tps

_LOGGER = _log.getLogger(__name__)

_HEADERS = {"Content-Type": "application/json"}


class HttpTransport:
    def __init__(self, context: _jtjctx.ClientContext) -> None:
        self._context = context

    async def call(
        self,
        url: str,
        body: _tps.RequestBody,
        timeout_seconds: float | None = None,
    ) -> _jtjenv.ResponseEnvelope:
        """
        POST one request to `url` and return the full response envelope.

        Raises `RemoteError` with the response's `error` member if the remote
        reports a failure, `RequestTimeoutError` if `timeout_seconds` is
        positive and elapses first and `TransportError` if `url` can't be
        reached. `None` uses the context's configured timeout.
        """
        request = self._context.build_request(body)

        envelope = await _jtjt.with_timeout(
            lambda: self._post(url, request),
            error=_jtje.RequestTimeoutError(body),
            timeout_seconds=self._context.resolve_timeout(timeout_seconds),
        )

        if envelope.is_error:
            raise _jtje.RemoteError(envelope.error)

        return envelope

    async def _post(
        self, url: str, request: _tps.Request
    ) -> _jtjenv.ResponseEnvelope:
        data = _json.dumps(request)

        _LOGGER.debug("Posting request %s to %s.", data, url)
        try:
            async with self._context.session.post(
                url, data=data, headers=_HEADERS
            ) as response:
                status = response.status
                payload = await response.read()
        except _ahttp.ClientError as error:
            raise _jtje.TransportError(
                f"The request to {url} failed.", str(error)
            ) from error

        _LOGGER.debug("Got response %s (status %d).", payload, status)

        try:
            return _jtjenv.parse_response(payload)
        except _jtje.ParseError as parse_error:
            if status < 400:
                raise

            raise _jtje.TransportError(
                f"The request to {url} failed with status {status}.",
                payload.decode(errors="replace"),
            ) from parse_error
