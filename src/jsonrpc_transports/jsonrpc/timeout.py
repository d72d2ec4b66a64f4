import asyncio as _asyncio
import collections.abc as _cabc


async def with_timeout[T](
    operation: _cabc.Callable[[], _cabc.Awaitable[T]],
    *,
    error: BaseException,
    timeout_seconds: float,
) -> T:
    """
    Await `operation()` and raise `error` if it doesn't complete within
    `timeout_seconds`. When the deadline passes the operation is cancelled.

    With `timeout_seconds <= 0` the operation is awaited as is: no deadline is
    scheduled and nothing can cancel it from here.
    """
    if timeout_seconds <= 0:
        return await operation()

    deadline = _asyncio.timeout(timeout_seconds)
    try:
        async with deadline:
            return await operation()
    except TimeoutError as timeout_error:
        if not deadline.expired():
            raise

        raise error from timeout_error
