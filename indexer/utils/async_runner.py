"""
Bridge from synchronous entry points (Celery tasks, views, management
commands) into the async pipeline.
"""

import asyncio


def run_async(coroutine):
    """Run a coroutine to completion on a fresh event loop."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coroutine)
    finally:
        loop.close()
