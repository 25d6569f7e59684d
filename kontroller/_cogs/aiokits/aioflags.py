"""
Flags for the external control of the operator: the stop-flag & the ready-flag.

The operator can be embedded into other applications, and those applications
can use their own synchronisation primitives, sync or async. Any of them
can be passed where a flag is expected; the operator will wait for it or raise it.
"""
import asyncio
import concurrent.futures
import threading
from typing import Any

from kontroller._cogs.aiokits import aiotasks

Flag = aiotasks.Future | asyncio.Event | concurrent.futures.Future[Any] | threading.Event


async def wait_flag(
        flag: Flag | None,
) -> Any:
    """
    Wait for a flag to be raised. Return its value, if the flag has one.

    The threading primitives are waited in the default executor of the loop.
    """
    if flag is None:
        pass
    elif isinstance(flag, asyncio.Future):
        return await flag
    elif isinstance(flag, asyncio.Event):
        return await flag.wait()
    elif isinstance(flag, concurrent.futures.Future):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, flag.result)
    elif isinstance(flag, threading.Event):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, flag.wait)
    else:
        raise TypeError(f"Unsupported type of a flag: {flag!r}")


async def raise_flag(
        flag: Flag | None,
) -> None:
    if flag is None:
        pass
    elif isinstance(flag, asyncio.Future):
        flag.set_result(None)
    elif isinstance(flag, asyncio.Event):
        flag.set()
    elif isinstance(flag, concurrent.futures.Future):
        flag.set_result(None)
    elif isinstance(flag, threading.Event):
        flag.set()
    else:
        raise TypeError(f"Unsupported type of a flag: {flag!r}")


def check_flag(
        flag: Flag | None,
) -> bool | None:
    """
    Check if a flag is raised. ``None`` if there is no flag at all.
    """
    if flag is None:
        return None
    elif isinstance(flag, (asyncio.Future, concurrent.futures.Future)):
        return flag.done()
    elif isinstance(flag, (asyncio.Event, threading.Event)):
        return flag.is_set()
    else:
        raise TypeError(f"Unsupported type of a flag: {flag!r}")
