"""Test utilities for zen applications.

Provides an in-process test client and SSE testing helpers::

    from zen.testing import TestClient
"""

from zen.testing.client import TestClient
from zen.testing.sse import SSETestResult, parse_sse_frames

__all__ = [
    "SSETestResult",
    "TestClient",
    "parse_sse_frames",
]
