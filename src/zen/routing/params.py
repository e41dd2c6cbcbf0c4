"""Path parameter patterns.

``{name}`` matches one segment; ``{name:path}`` swallows the rest of
the path and is how the catch-all page route and ``/@/{module:path}``
are declared.
"""

import re

PARAM_PATTERNS: dict[str, str] = {
    "str": r"[^/]+",
    "path": r".+",
}

SEGMENT_RE = re.compile(PARAM_PATTERNS["str"])
