import asyncio as _asyncio
import logging as _log

import jsonrpc_transports.websockets.common as _jtwcom
import jsonrpc_transports.websockets.types as _jtwt

_LOGGER = _log.getLogger(__name__)


class WebsocketClient:
    def __init__(
        self,
        websocket: _jtwt.ClientWebsocket,
        message_receiver: _jtwt.MessageReceiver,
    ) -> None:
        self._websocket = websocket
        self._message_receiver = message_receiver
        self._reader_task: _asyncio.Task[None] | None = None

    @property
    def closed(self) -> bool:
        if self._websocket.closed:
            return True

        return self._reader_task is not None and self._reader_task.done()

    def start(self) -> None:
        if self._reader_task:
            raise RuntimeError("Already started.")

        _LOGGER.info("Starting.")

        coroutine = _jtwcom.start_receiving_messages(
            self._websocket, self._message_receiver
        )
        self._reader_task = _asyncio.create_task(coroutine)

    async def send_str(self, data: str) -> None:
        await self._websocket.send_str(data)

    async def join(self) -> None:
        if not self._reader_task:
            raise RuntimeError("Not started.")

        await self._reader_task

    async def close(self) -> None:
        _LOGGER.info("Closing.")

        await self._websocket.close()

        if self._reader_task:
            await self.join()
