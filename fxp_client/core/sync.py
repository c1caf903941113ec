"""Blocking driver for the core coroutines.

Every network operation of the core is written once as a coroutine. Over a
blocking transport those coroutines never suspend, so they can be run to
completion in the calling thread without an event loop.
"""


def run_sync(coro):
    """Run a coroutine that completes without suspending and return its result."""
    try:
        coro.send(None)
    except StopIteration as done:
        return done.value
    coro.close()
    raise RuntimeError(
        "Coroutine tried to suspend in blocking mode; "
        "use an asyncio transport and await it instead"
    )
