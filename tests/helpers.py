import asyncio


def run(coro):
    """Drive a plugin coroutine to completion."""
    return asyncio.run(coro)
