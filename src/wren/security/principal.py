"""Claims-based principal.

A ``Principal`` is the authenticated identity attached to a request:
the authentication scheme that vouched for it and an ordered sequence
of claims. Name and roles are derived from the claims, the way the
cookie carries them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any


class ClaimTypes:
    """Well-known claim type identifiers."""

    NAME = "name"
    SURNAME = "surname"
    ROLE = "role"
    EMAIL = "email"


DEFAULT_ISSUER = "LOCAL AUTHORITY"


@dataclass(frozen=True, slots=True)
class Claim:
    """A single statement about the principal."""

    type: str
    value: str
    issuer: str = DEFAULT_ISSUER


@dataclass(frozen=True, slots=True)
class Principal:
    """An authenticated identity.

    Usage::

        user = Principal.from_claims(
            "Cookie",
            [Claim(ClaimTypes.NAME, "John"), Claim(ClaimTypes.ROLE, "Admin")],
        )
        user.name               # "John"
        user.is_in_role("Admin")  # True
    """

    scheme: str
    claims: tuple[Claim, ...] = ()

    @classmethod
    def from_claims(cls, scheme: str, claims: Iterable[Claim]) -> Principal:
        return cls(scheme=scheme, claims=tuple(claims))

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def name(self) -> str | None:
        """Value of the first name claim."""
        return self.find_first(ClaimTypes.NAME)

    @property
    def roles(self) -> frozenset[str]:
        return frozenset(c.value for c in self.claims if c.type == ClaimTypes.ROLE)

    @property
    def claims_map(self) -> Mapping[str, str]:
        """Claim type -> first value of that type."""
        result: dict[str, str] = {}
        for claim in self.claims:
            result.setdefault(claim.type, claim.value)
        return result

    def find_first(self, claim_type: str) -> str | None:
        for claim in self.claims:
            if claim.type == claim_type:
                return claim.value
        return None

    def is_in_role(self, role: str) -> bool:
        return role in self.roles

    # -- Serialization (cookie payload) --

    def to_dict(self) -> dict[str, Any]:
        return {
            "scheme": self.scheme,
            "claims": [[c.type, c.value, c.issuer] for c in self.claims],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Principal:
        """Rebuild a principal from ``to_dict()`` output.

        Raises ``ValueError`` on malformed payloads.
        """
        try:
            scheme = str(data["scheme"])
            claims = tuple(Claim(str(t), str(v), str(i)) for t, v, i in data["claims"])
        except (KeyError, TypeError, ValueError) as exc:
            msg = f"Malformed principal payload: {exc}"
            raise ValueError(msg) from exc
        return cls(scheme=scheme, claims=claims)
