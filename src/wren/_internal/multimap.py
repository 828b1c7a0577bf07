"""Structural type for the multi-valued mappings a request exposes.

``Headers``, ``QueryParams`` and ``FormData`` all satisfy it, so model
binding can read repeated keys (``?tag=a&tag=b``) without knowing which
one it was handed.
"""

from collections.abc import Iterator
from typing import Protocol, runtime_checkable


@runtime_checkable
class MultiValueMapping(Protocol):
    """Read-only ``str -> str`` mapping with repeatable keys.

    Indexing yields the first value; ``get_list`` yields every value.
    """

    def __getitem__(self, key: str) -> str: ...
    def __contains__(self, key: object) -> bool: ...
    def __iter__(self) -> Iterator[str]: ...
    def __len__(self) -> int: ...
    def get(self, key: str, default: str | None = None) -> str | None: ...
    def get_list(self, key: str) -> list[str]: ...
