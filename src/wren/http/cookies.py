"""Cookie parsing and SetCookie serialization.

The read side (``parse_cookies``) is used by ``Request``; the write side
(``SetCookie``) rides on ``Response`` until the sender serializes it.
"""

from dataclasses import dataclass


def parse_cookies(header: str) -> dict[str, str]:
    """Parse a ``Cookie`` header value into a name-value dict.

    Returns an empty dict for empty or missing headers. Later duplicates
    never override the first occurrence.
    """
    if not header:
        return {}
    cookies: dict[str, str] = {}
    for pair in header.split(";"):
        pair = pair.strip()
        if "=" in pair:
            key, _, value = pair.partition("=")
            cookies.setdefault(key.strip(), value.strip())
    return cookies


@dataclass(frozen=True, slots=True)
class SetCookie:
    """A ``Set-Cookie`` directive attached to a Response."""

    name: str
    value: str
    max_age: int | None = None
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str | None = "lax"

    def to_header_value(self) -> str:
        """Serialize to a ``Set-Cookie`` header value string."""
        parts = [f"{self.name}={self.value}"]
        if self.max_age is not None:
            parts.append(f"Max-Age={self.max_age}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.secure:
            parts.append("Secure")
        if self.httponly:
            parts.append("HttpOnly")
        if self.samesite:
            parts.append(f"SameSite={self.samesite}")
        return "; ".join(parts)


def parse_set_cookie(header: str) -> SetCookie:
    """Parse a ``Set-Cookie`` header value back into a ``SetCookie``.

    Attributes wren never emits (``Expires`` and friends) are ignored.
    """
    pair, *attributes = header.split(";")
    name, _, value = pair.strip().partition("=")
    options: dict[str, object] = {"httponly": False, "samesite": None, "path": ""}
    for attribute in attributes:
        key, _, attr_value = attribute.strip().partition("=")
        match key.lower():
            case "max-age":
                options["max_age"] = int(attr_value)
            case "path":
                options["path"] = attr_value
            case "domain":
                options["domain"] = attr_value
            case "secure":
                options["secure"] = True
            case "httponly":
                options["httponly"] = True
            case "samesite":
                options["samesite"] = attr_value
    return SetCookie(name=name.strip(), value=value.strip(), **options)  # type: ignore[arg-type]
