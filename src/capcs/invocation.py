import functools
import inspect

import anyio


def is_async_fn(fn) -> bool:
    if fn is None:
        return False
    elif isinstance(fn, functools.partial):
        return is_async_fn(fn.func)
    elif hasattr(fn, '__wrapped__'):  # @functools.wraps()
        return is_async_fn(fn.__wrapped__)
    else:
        return inspect.iscoroutinefunction(fn)


def is_nonblocking(fn) -> bool:
    if isinstance(fn, functools.partial):
        return is_nonblocking(fn.func)
    return getattr(fn, '__nonblocking__', False)


def nonblocking(func):
    """Decorator that marks a given sync function as safe to call from the event loop."""
    func.__nonblocking__ = True
    return func


async def invoke(func, *args, **kwargs):
    """Call a sync or async predicate or event handler.

    Sync functions which are not marked as nonblocking run in a worker thread.
    """
    if is_async_fn(func):
        return await func(*args, **kwargs)
    elif is_nonblocking(func):
        return func(*args, **kwargs)
    else:
        return await anyio.to_thread.run_sync(
            functools.partial(func, *args, **kwargs)
        )
