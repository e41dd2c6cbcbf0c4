"""Shared type aliases used across zen modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Init handler or action method: ``(ctx, data) -> None``, sync or async
Handler: TypeAlias = Callable[..., Any]

# Route endpoint handler registered with the router
Endpoint: TypeAlias = Callable[..., Any]
