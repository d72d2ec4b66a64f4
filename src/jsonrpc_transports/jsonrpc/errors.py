import collections.abc as _cabc
import json as _json
import typing as _tp

import jsonrpc_transports.jsonrpc.types as _tps


class BaseError(Exception):
    def __init__(self, human_message: str, details: str = "") -> None:
        super().__init__(human_message)

        self.human_message = human_message
        self.details = details

    def __str__(self) -> str:
        if not self.details:
            return self.human_message

        return f"{self.human_message}\n\nDetails: {self.details}"


class RequestTimeoutError(BaseError):
    def __init__(self, body: _tps.RequestBody) -> None:
        super().__init__(
            "The request took too long to respond.",
            f"The request timed out. Request body: {_json.dumps(body, default=str)}",
        )

        self.body = body


class RemoteError(BaseError):
    """
    The `error` member of a response envelope, kept verbatim in `error`.
    """

    def __init__(self, error: _tp.Any) -> None:
        super().__init__(
            "The remote procedure call failed.", _json.dumps(error, default=str)
        )

        self.error = error

    @property
    def code(self) -> int | None:
        return self._get_member("code")

    @property
    def message(self) -> str | None:
        return self._get_member("message")

    @property
    def data(self) -> _tp.Any:
        return self._get_member("data")

    def _get_member(self, name: str) -> _tp.Any:
        if not isinstance(self.error, _cabc.Mapping):
            return None

        return self.error.get(name)


class ParseError(BaseError):
    pass


class TransportError(BaseError):
    pass


type CallError = RemoteError | RequestTimeoutError | ParseError | TransportError
