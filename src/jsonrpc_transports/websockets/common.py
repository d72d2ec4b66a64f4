import logging as _log

import aiohttp as _ahttp

import jsonrpc_transports.websockets.types as _jtwt

_LOGGER = _log.getLogger(__name__)


async def start_receiving_messages(
    websocket: _jtwt.ReadWebSocket, message_receiver: _jtwt.MessageReceiver
) -> None:
    _LOGGER.info("Start receiving messages.")

    try:
        async for message in websocket:
            if message.type in (_ahttp.WSMsgType.TEXT, _ahttp.WSMsgType.BINARY):
                json = message.data
                _LOGGER.debug("Received message: %s.", json)
                await message_receiver.on_message_received(json)
            elif message.type == _ahttp.WSMsgType.ERROR:
                _LOGGER.error(
                    "WebSocket connection was closed with exception %s.",
                    websocket.exception(),
                )
    finally:
        _LOGGER.info("Websocket connection closed.")
        await message_receiver.on_connection_closed(websocket.exception())
