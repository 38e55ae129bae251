"""Bounded provider calls shared by every gateway capability."""

import asyncio
from typing import Any, Awaitable, Callable

from smartchef.utils.errors import GenerationFailure
from smartchef.utils.logger import logger


async def bounded(capability: str, awaitable: Awaitable[Any], timeout: float) -> Any:
    """Await a provider call with a timeout, mapping every provider error to GenerationFailure."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.warning(f"{capability} timed out after {timeout:g}s", extra={"capability": capability})
        raise GenerationFailure(capability, f"timed out after {timeout:g}s") from e
    except GenerationFailure:
        raise
    except Exception as e:
        logger.warning(f"{capability} provider error: {e}", extra={"capability": capability})
        raise GenerationFailure(capability, str(e) or e.__class__.__name__) from e


async def bounded_sync(capability: str, func: Callable[[], Any], timeout: float) -> Any:
    """Run a blocking SDK call in a worker thread, bounded like ``bounded``."""
    return await bounded(capability, asyncio.to_thread(func), timeout)
