"""
Helpers shared by the subprocess and RPC layers
"""

import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, TypeVar

T = TypeVar('T')

_sync_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="sync_call_")


async def run_sync(func: Callable[..., T], *args, **kwargs) -> T:
    """Run a blocking call (web3 HTTP request, subprocess) in the shared worker pool"""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_sync_executor, functools.partial(func, *args, **kwargs))
