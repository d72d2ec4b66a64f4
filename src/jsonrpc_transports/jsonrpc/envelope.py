import collections.abc as _cabc
import json as _json
import typing as _tp

import jsonrpcclient as _jrpcc
import jsonrpcclient.id_generators as _jrpcci
import pydantic as _pyd

import jsonrpc_transports.jsonrpc.errors as _jtje
import jsonrpc_transports.jsonrpc.types as _tps


class RequestIdGenerator:
    """
    Monotonically increasing request ids. The first id handed out is `start`.
    """

    def __init__(self, start: int = 0) -> None:
        self._ids = _jrpcci.decimal(start)

    def __iter__(self) -> _cabc.Iterator[int]:
        return self

    def __next__(self) -> int:
        return next(self._ids)


class ResponseEnvelope(_pyd.BaseModel):
    model_config = _pyd.ConfigDict(frozen=True)

    protocol_version: str = _pyd.Field(alias="jsonrpc")
    id: _pyd.StrictInt | None
    result: _tp.Any = None
    error: _tp.Any = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @_pyd.model_validator(mode="after")
    def check_exactly_one_of_result_and_error(self) -> _tp.Self:
        has_result = "result" in self.model_fields_set

        if has_result and self.is_error:
            raise ValueError("Both 'result' and 'error' are present.")
        if not has_result and not self.is_error:
            raise ValueError("Neither 'result' nor 'error' is present.")

        return self

    def to_wire(self) -> dict[str, _tp.Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


def build_request(
    body: _tps.RequestBody, request_ids: _cabc.Iterator[int]
) -> _tps.Request:
    """
    `params` is sent whenever the body carries it, even empty. It is left out
    only when absent.
    """
    params = _convert_params(body.get("params"))

    request: _tps.Request = _jrpcc.request(
        body["method"], params=params, id=next(request_ids)
    )

    # jsonrpcclient leaves out empty params
    if params is not None and "params" not in request:
        request["params"] = params

    return request


def _convert_params(
    params: _tps.Params | None,
) -> list[_tps.Json] | dict[str, _tps.Json] | None:
    if params is None:
        return None

    if isinstance(params, _cabc.Mapping):
        return dict(params)

    return list(params)


def parse_response(data: str | bytes | _tp.Any) -> ResponseEnvelope:
    try:
        if isinstance(data, (str, bytes)):
            return ResponseEnvelope.model_validate_json(data)

        if isinstance(data, _cabc.Mapping):
            data = dict(data)

        return ResponseEnvelope.model_validate(data)
    except (_pyd.ValidationError, RecursionError) as error:
        raise _jtje.ParseError(
            "The response is not a valid JSON-RPC response.", str(error)
        ) from error


def peek_request_id(data: str | bytes) -> int | None:
    """
    Best effort lookup of the `id` member of a payload `parse_response` rejected.
    """
    try:
        payload = _json.loads(data)
    except (ValueError, RecursionError):
        return None

    if not isinstance(payload, dict):
        return None

    request_id = payload.get("id")
    if isinstance(request_id, bool) or not isinstance(request_id, int):
        return None

    return request_id
