from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx


@asynccontextmanager
async def borrow_client(
    client: httpx.AsyncClient | None, timeout: float
) -> AsyncIterator[httpx.AsyncClient]:
    """
    Yield the shared client when one was injected, otherwise a short-lived one
    that is closed on exit.
    """
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout) as own:
        yield own
