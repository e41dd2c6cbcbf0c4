"""Immutable query string parameters."""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qs


class QueryParams(Mapping[str, str]):
    """Parsed query string.

    Key order follows the query string, so ``first_key`` is the action
    method name in ``/@/books?add``. Blank values are kept: ``?add``
    parses to ``{"add": ""}``.
    """

    _data: dict[str, list[str]]
    _raw: bytes

    __slots__ = ("_data", "_raw")

    def __init__(self, query_string: bytes = b"") -> None:
        object.__setattr__(self, "_raw", query_string)
        parsed = parse_qs(query_string.decode("latin-1"), keep_blank_values=True)
        object.__setattr__(self, "_data", parsed)

    def __getitem__(self, key: str) -> str:
        return self._data[key][0]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"QueryParams({self.as_dict()!r})"

    def get(self, key: str, default: str | None = None) -> str | None:  # type: ignore[override]
        values = self._data.get(key)
        if values:
            return values[0]
        return default

    def get_list(self, key: str) -> list[str]:
        """Return every value for *key*."""
        return list(self._data.get(key, []))

    @property
    def first_key(self) -> str | None:
        """The first parameter name, or ``None`` for an empty query."""
        return next(iter(self._data), None)

    @property
    def raw(self) -> str:
        return self._raw.decode("latin-1")

    def as_dict(self) -> dict[str, str]:
        """Plain dict of first values."""
        return {key: values[0] for key, values in self._data.items()}
