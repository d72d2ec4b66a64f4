import enum as _enum

import pydantic as _pyd


class Correlation(_enum.StrEnum):
    """
    How inbound socket messages are routed to pending calls.

    `BY_ID` completes the call whose request id matches the response id.
    `LAST_WRITER` hands every message to whichever call registered last.
    """

    BY_ID = "by_id"
    LAST_WRITER = "last_writer"


class ClientConfig(_pyd.BaseModel):
    model_config = _pyd.ConfigDict(frozen=True)

    # Used when a call doesn't pass its own timeout. Zero or less disables it.
    request_timeout_seconds: float = 0.0

    # Zero or less keeps idle sockets open until closed explicitly.
    socket_idle_timeout_seconds: float = 0.0

    correlation: Correlation = Correlation.BY_ID
