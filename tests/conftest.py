"""Pytest fixtures: an in-process JSON-RPC server and in-memory websockets."""

import asyncio as _asyncio
import collections.abc as _cabc
import contextlib as _ctx
import json as _json
import typing as _tp

import aiohttp as _ahttp
import aiohttp.test_utils as _ahttpt
import aiohttp.web as _ahttpw
import jsonrpcserver as _jrpcs
import pytest
import pytest_asyncio


async def ping() -> _jrpcs.Result:
    return _jrpcs.Success("pong")


async def add(a: int, b: int) -> _jrpcs.Result:
    return _jrpcs.Success(a + b)


async def slow(seconds: float) -> _jrpcs.Result:
    await _asyncio.sleep(seconds)
    return _jrpcs.Success("late")


async def fail() -> _jrpcs.Result:
    return _jrpcs.Error(-32000, "boom", {"reason": "requested"})


METHODS = {"ping": ping, "add": add, "slow": slow, "fail": fail}


async def _on_rpc_request(request: _ahttpw.Request) -> _ahttpw.Response:
    response = await _jrpcs.async_dispatch(await request.text(), methods=METHODS)
    return _ahttpw.Response(text=response, content_type="application/json")


async def _on_not_found_request(request: _ahttpw.Request) -> _ahttpw.Response:
    data = await request.json()
    return _ahttpw.json_response(
        {
            "jsonrpc": "2.0",
            "id": data["id"],
            "error": {"code": -32601, "message": "not found"},
        }
    )


async def _on_content_type_request(request: _ahttpw.Request) -> _ahttpw.Response:
    data = await request.json()
    return _ahttpw.json_response(
        {"jsonrpc": "2.0", "id": data["id"], "result": request.content_type}
    )


async def _on_malformed_request(request: _ahttpw.Request) -> _ahttpw.Response:
    data = await request.json()
    return _ahttpw.json_response({"jsonrpc": "2.0", "id": data["id"]})


async def _on_broken_request(request: _ahttpw.Request) -> _ahttpw.Response:
    return _ahttpw.Response(status=502, text="Bad gateway")


async def _on_websocket_connection(
    request: _ahttpw.Request,
) -> _ahttpw.WebSocketResponse:
    websocket = _ahttpw.WebSocketResponse()
    await websocket.prepare(request)

    async def reply(data: str) -> None:
        response = await _jrpcs.async_dispatch(data, methods=METHODS)
        if response and not websocket.closed:
            await websocket.send_str(response)

    async with _asyncio.TaskGroup() as task_group:
        async for message in websocket:
            if message.type == _ahttp.WSMsgType.TEXT:
                task_group.create_task(reply(message.data))

    return websocket


@_ctx.asynccontextmanager
async def _serve() -> _cabc.AsyncIterator[_ahttpt.TestServer]:
    app = _ahttpw.Application()
    app.add_routes(
        [
            _ahttpw.post("/rpc", _on_rpc_request),
            _ahttpw.post("/not-found", _on_not_found_request),
            _ahttpw.post("/content-type", _on_content_type_request),
            _ahttpw.post("/malformed", _on_malformed_request),
            _ahttpw.post("/broken", _on_broken_request),
            _ahttpw.get("/ws", _on_websocket_connection),
        ]
    )

    server = _ahttpt.TestServer(app)
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


@pytest_asyncio.fixture
async def rpc_server() -> _cabc.AsyncIterator[_ahttpt.TestServer]:
    async with _serve() as server:
        yield server


class FakeMessage(_tp.NamedTuple):
    type: _ahttp.WSMsgType
    data: str


class FakeWebsocket:
    """In-memory stand-in for `aiohttp.ClientWebSocketResponse`."""

    def __init__(self) -> None:
        self.sent = list[dict[str, _tp.Any]]()
        self.closed = False
        self._inbound = _asyncio.Queue[FakeMessage | None]()

    async def send_str(self, data: str) -> None:
        if self.closed:
            raise ConnectionResetError("Cannot write to closing transport")
        self.sent.append(_json.loads(data))

    def push(self, payload: _tp.Any) -> None:
        data = payload if isinstance(payload, str) else _json.dumps(payload)
        self._inbound.put_nowait(FakeMessage(_ahttp.WSMsgType.TEXT, data))

    def reply(self, sent_index: int, **members: _tp.Any) -> None:
        self.push({"jsonrpc": "2.0", "id": self.sent[sent_index]["id"], **members})

    async def wait_until_sent(self, count: int) -> None:
        while len(self.sent) < count:
            await _asyncio.sleep(0)

    def drop(self) -> None:
        self._inbound.put_nowait(None)

    async def close(self) -> bool:
        if self.closed:
            return False
        self.closed = True
        self.drop()
        return True

    def exception(self) -> BaseException | None:
        return None

    def __aiter__(self) -> _cabc.AsyncIterator[FakeMessage]:
        return self._messages()

    async def _messages(self) -> _cabc.AsyncIterator[FakeMessage]:
        while (message := await self._inbound.get()) is not None:
            yield message


class FakeConnector:
    def __init__(self) -> None:
        self.websockets = list[FakeWebsocket]()
        self.refused_urls = set[str]()
        self.gate: _asyncio.Event | None = None
        self.refused_count = 0

    @property
    def connect_count(self) -> int:
        return len(self.websockets) + self.refused_count

    async def __call__(self, url: str) -> FakeWebsocket:
        if self.gate is not None:
            await self.gate.wait()

        if url in self.refused_urls:
            self.refused_count += 1
            raise _ahttp.ClientConnectionError(f"Connection refused: {url}")

        websocket = FakeWebsocket()
        self.websockets.append(websocket)
        return websocket


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()
