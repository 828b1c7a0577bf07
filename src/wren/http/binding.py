"""Model binding: populate a dataclass from query, form, or JSON data.

Resolution rules (by HTTP method):

- **GET / HEAD**: bind from the query string
- **anything else**: bind from the body, JSON or form depending on the
  Content-Type header

Field names match case-insensitively, so a form posting ``Name=...``
binds to a ``name`` field. Missing keys use the field default (fields
without one are an error). Supported field types: ``str``, ``int``,
``float``, ``bool``, ``datetime``, ``X | None`` of those, and
``list[X]``, which collects every value of a repeated key (``?tag=a&tag=b``).
"""

from __future__ import annotations

import dataclasses
import types
from collections.abc import Mapping
from datetime import datetime
from typing import Any, get_args, get_origin, get_type_hints

from wren._internal.multimap import MultiValueMapping
from wren.errors import BadRequest
from wren.http.request import Request


class BindingError(BadRequest):
    """Raised when request data cannot be bound to a dataclass.

    Attributes:
        errors: Field name -> list of error messages.
    """

    def __init__(self, errors: dict[str, list[str]]) -> None:
        fields = ", ".join(sorted(errors))
        super().__init__(f"Model binding failed for: {fields}")
        object.__setattr__(self, "errors", errors)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).strip())


# Type coercion map for bind()
_COERCIONS: dict[type, Any] = {
    str: lambda v: str(v).strip(),
    int: int,
    float: float,
    bool: _to_bool,
    datetime: _to_datetime,
}


def _unwrap_optional(hint: Any) -> Any:
    """Extract the base type from ``X | None`` or plain ``X``."""
    if isinstance(hint, types.UnionType):
        args = [a for a in hint.__args__ if a is not type(None)]
        if args:
            return args[0]
    return hint


def _coerce_list(data: Mapping[str, Any], key: str, item_type: type) -> list[Any]:
    if isinstance(data, MultiValueMapping):
        raw_items: list[Any] = data.get_list(key)
    else:
        raw = data[key]
        raw_items = raw if isinstance(raw, list) else [raw]
    coerce = _COERCIONS.get(item_type)
    if coerce is None:
        return list(raw_items)
    return [coerce(item) for item in raw_items]


def bind[T](datacls: type[T], data: Mapping[str, Any]) -> T:
    """Create a *datacls* instance from a mapping.

    Raises ``BindingError`` listing every missing or unconvertible field.
    """
    if not dataclasses.is_dataclass(datacls):
        msg = f"{datacls!r} is not a dataclass"
        raise TypeError(msg)

    lowered = {str(key).lower(): key for key in data}
    hints = get_type_hints(datacls)
    errors: dict[str, list[str]] = {}
    values: dict[str, Any] = {}

    for f in dataclasses.fields(datacls):
        if not f.init:
            continue
        key = f.name if f.name in data else lowered.get(f.name.lower())
        if key is None:
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                errors.setdefault(f.name, []).append(f"{f.name} is required.")
            continue

        raw = data[key]
        if raw is None:
            values[f.name] = None
            continue

        base_type = _unwrap_optional(hints.get(f.name, str))
        if get_origin(base_type) is list:
            item_type = next(iter(get_args(base_type)), str)
            try:
                values[f.name] = _coerce_list(data, key, item_type)
            except (ValueError, TypeError):
                errors.setdefault(f.name, []).append(
                    f"Invalid value for {f.name}: expected a list of {item_type.__name__}."
                )
            continue

        coerce = _COERCIONS.get(base_type)
        if coerce is None:
            values[f.name] = raw
            continue
        try:
            values[f.name] = coerce(raw)
        except (ValueError, TypeError):
            errors.setdefault(f.name, []).append(
                f"Invalid value for {f.name}: expected {base_type.__name__}."
            )

    if errors:
        raise BindingError(errors)
    return datacls(**values)


async def bind_model[T](request: Request, datacls: type[T]) -> T:
    """Bind the request's query string or body to *datacls*.

    Usage::

        @dataclass(frozen=True, slots=True)
        class Car:
            name: str = ""
            wheels: int = 0

        car = await bind_model(ctx.request, Car)
    """
    if request.method in ("GET", "HEAD"):
        return bind(datacls, request.query)

    content_type = (request.content_type or "").lower()
    if "json" in content_type:
        try:
            payload = await request.json()
        except ValueError as exc:
            raise BadRequest(f"Malformed JSON body: {exc}") from exc
        if not isinstance(payload, dict):
            raise BadRequest("JSON body must be an object")
        return bind(datacls, payload)

    if request.has_form_content_type:
        return bind(datacls, await request.form())

    return bind(datacls, request.query)
