import asyncio
import functools
import inspect
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Coroutine, TypeVar

from .typing import ParamSpec

R = TypeVar("R")
P = ParamSpec("P")

# blocking driver calls are serialized on a single worker thread; a copy run never issues concurrent calls
_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pysqlcopy")


def thread_dispatch(fn: Callable[P, R]) -> Callable[P, Coroutine[None, None, R]]:
    "A decorator to transform a synchronous function into an asynchronous function dispatched to a worker thread."

    if not callable(fn):
        raise TypeError("expected: a callable")

    if inspect.iscoroutinefunction(fn):
        raise TypeError("expected: a regular function; got: an async function")

    @functools.wraps(fn)
    async def invoke(*args: P.args, **kwargs: P.kwargs) -> R:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_executor, functools.partial(fn, *args, **kwargs))

    return invoke
