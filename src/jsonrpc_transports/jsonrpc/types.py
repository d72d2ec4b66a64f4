import collections.abc as _cabc
import typing as _tp

type JsonScalar = bool | int | float | str | None
type JsonObject = _cabc.Mapping[str, "Json"]
type JsonStructured = _cabc.Sequence["Json"] | JsonObject
type Json = JsonScalar | JsonStructured

type Params = _cabc.Sequence[Json] | JsonObject


class RequestBody(_tp.TypedDict):
    method: str
    params: _tp.NotRequired[Params]


class Request(_tp.TypedDict):
    jsonrpc: str
    method: str
    params: _tp.NotRequired[list[Json] | JsonObject]
    id: int
