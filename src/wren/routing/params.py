"""Path template parsing and typed parameter conversion.

Templates use ``{name}`` or ``{name:type}`` segments::

    /user/{id:int}
    /files/{rest:path}

A template compiles once into a ``PathTemplate`` holding an anchored
regex; matching returns converted values or ``None``.
"""

import re
from dataclasses import dataclass
from typing import Any

from wren.errors import ConfigurationError

# (regex_pattern, python_type) for each supported converter
CONVERTERS: dict[str, tuple[str, type]] = {
    "str": (r"[^/]+", str),
    "int": (r"-?\d+", int),
    "float": (r"-?\d+(?:\.\d+)?", float),
    "path": (r".+", str),
}

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True, slots=True)
class PathTemplate:
    """A compiled path template."""

    template: str
    regex: re.Pattern[str]
    converters: tuple[tuple[str, type], ...]

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.converters)

    def match(self, path: str) -> dict[str, Any] | None:
        """Return converted parameters if *path* matches, else None."""
        m = self.regex.match(path)
        if m is None:
            return None
        params: dict[str, Any] = {}
        for name, target in self.converters:
            try:
                params[name] = target(m.group(name))
            except ValueError:
                return None
        return params


def compile_template(template: str, *, case_sensitive: bool = True) -> PathTemplate:
    """Compile *template* into a ``PathTemplate``.

    Raises ``ConfigurationError`` for unknown converters, bad parameter
    names, duplicate names, or a ``path`` segment that isn't last.
    """
    if "<" in template and ">" in template:
        msg = f"Route template {template!r} uses <param> syntax; use {{param}} instead."
        raise ConfigurationError(msg)

    parts = template.strip("/").split("/") if template.strip("/") else []
    pattern = ""
    converters: list[tuple[str, type]] = []

    for index, part in enumerate(parts):
        if part.startswith("{") and part.endswith("}"):
            name, _, kind = part[1:-1].partition(":")
            kind = kind or "str"
            if not _IDENTIFIER.match(name):
                msg = f"Invalid parameter name {name!r} in route template {template!r}"
                raise ConfigurationError(msg)
            if kind not in CONVERTERS:
                msg = (
                    f"Unknown converter {kind!r} in route template {template!r}. "
                    f"Known converters: {', '.join(sorted(CONVERTERS))}"
                )
                raise ConfigurationError(msg)
            if any(existing == name for existing, _ in converters):
                msg = f"Duplicate parameter {name!r} in route template {template!r}"
                raise ConfigurationError(msg)
            if kind == "path" and index != len(parts) - 1:
                msg = f"'path' parameter must be the last segment in {template!r}"
                raise ConfigurationError(msg)
            regex_part, target = CONVERTERS[kind]
            pattern += f"/(?P<{name}>{regex_part})"
            converters.append((name, target))
        else:
            pattern += "/" + re.escape(part)

    flags = 0 if case_sensitive else re.IGNORECASE
    regex = re.compile(f"^{pattern or '/'}$", flags)
    return PathTemplate(template=template, regex=regex, converters=tuple(converters))
