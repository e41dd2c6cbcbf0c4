"""Call sync or async handlers uniformly.

Init handlers and action methods can be ``def`` or ``async def``::

    def _(ctx, data):
        ctx.render()

    async def add(ctx, data):
        await books.create(ctx.payload)
        ctx.render("#list")

Every call site that runs user code goes through :func:`invoke`.
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *handler* and await the result when it is awaitable."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
