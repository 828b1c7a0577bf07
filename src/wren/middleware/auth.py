"""Cookie authentication: a signed principal cookie.

The authenticated principal is serialized as JSON and signed using
``itsdangerous``; the signature carries an issue timestamp that drives
expiry and sliding renewal. The middleware validates the cookie on the
way in and attaches the principal to the request (``request.principal``,
``ctx.principal`` in stages). Signing in and out are stages, so they
compose into pipelines like any other::

    from wren.middleware.auth import CookieAuthConfig, CookieAuthentication

    auth = CookieAuthentication(CookieAuthConfig(secret_key="...", scheme="Cookie"))
    app = App(web_app)
    app.add_middleware(auth)

    login = pipe(auth.sign_in(principal), text("Successfully logged in"))
    logout = pipe(auth.sign_out(), text("Successfully logged out."))

Sliding expiration: once more than half of ``expire_time`` has passed
since the cookie was issued, any authenticated response re-issues it
with a fresh timestamp.
"""

import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from enum import StrEnum

from itsdangerous import BadData, URLSafeTimedSerializer

from wren.context import Context, Handler, Next, Result
from wren.errors import ConfigurationError
from wren.http.request import Request
from wren.http.response import Response
from wren.middleware.protocol import Next as MiddlewareNext
from wren.security.audit import emit_security_event
from wren.security.principal import Principal

logger = logging.getLogger("wren.security")


class CookieSecurePolicy(StrEnum):
    """When to set the ``Secure`` cookie attribute."""

    SAME_AS_REQUEST = "same_as_request"
    ALWAYS = "always"
    NEVER = "never"


@dataclass(frozen=True, slots=True)
class CookieAuthConfig:
    """Cookie authentication configuration.

    ``secret_key`` is required. Cookies are signed, not encrypted.
    The cookie is named after the scheme unless ``cookie_name`` is set.
    """

    secret_key: str
    scheme: str = "Cookie"
    cookie_name: str | None = None
    expire_time: timedelta = timedelta(days=7)
    sliding_expiration: bool = True
    httponly: bool = True
    secure_policy: CookieSecurePolicy = CookieSecurePolicy.SAME_AS_REQUEST
    samesite: str | None = "lax"
    path: str = "/"
    domain: str | None = None

    @property
    def resolved_cookie_name(self) -> str:
        return self.cookie_name or self.scheme


@dataclass(frozen=True, slots=True)
class _Ticket:
    """A validated cookie: who, and when it was issued."""

    principal: Principal
    issued_at: datetime


class CookieAuthentication:
    """Signed-cookie authentication middleware and sign-in/out stages."""

    __slots__ = ("_config", "_serializer")

    def __init__(self, config: CookieAuthConfig) -> None:
        if not config.secret_key:
            msg = "CookieAuthConfig.secret_key must not be empty."
            raise ConfigurationError(msg)
        if config.expire_time <= timedelta(0):
            msg = "CookieAuthConfig.expire_time must be positive."
            raise ConfigurationError(msg)

        self._config = config
        self._serializer = URLSafeTimedSerializer(
            config.secret_key, salt=f"wren.auth.{config.scheme}"
        )

    @property
    def config(self) -> CookieAuthConfig:
        return self._config

    @property
    def scheme(self) -> str:
        return self._config.scheme

    # -- Cookie read side --

    def _read_ticket(self, request: Request) -> _Ticket | None:
        """Deserialize and verify the auth cookie."""
        cfg = self._config
        cookie_value = request.cookies.get(cfg.resolved_cookie_name)
        if not cookie_value:
            return None

        try:
            data, issued_at = self._serializer.loads(
                cookie_value,
                max_age=int(cfg.expire_time.total_seconds()),
                return_timestamp=True,
            )
            principal = Principal.from_dict(data)
        except (BadData, ValueError) as exc:
            logger.info("Rejected %s cookie: %s", cfg.scheme, type(exc).__name__)
            emit_security_event(
                "auth.cookie.invalid",
                request=request,
                details={"scheme": cfg.scheme, "error": type(exc).__name__},
            )
            return None

        if principal.scheme != cfg.scheme:
            return None
        return _Ticket(principal=principal, issued_at=issued_at)

    def authenticate(self, request: Request) -> Principal | None:
        """Return the principal carried by the request's cookie, if valid."""
        ticket = self._read_ticket(request)
        return ticket.principal if ticket is not None else None

    # -- Cookie write side --

    def _is_secure(self, request: Request) -> bool:
        match self._config.secure_policy:
            case CookieSecurePolicy.ALWAYS:
                return True
            case CookieSecurePolicy.NEVER:
                return False
        return request.is_secure

    def encode(self, principal: Principal) -> str:
        """Signed, timestamped cookie value for *principal*."""
        return self._serializer.dumps(principal.to_dict())

    def issue(self, response: Response, request: Request, principal: Principal) -> Response:
        """Return *response* with a freshly signed cookie for *principal*."""
        cfg = self._config
        return response.with_cookie(
            name=cfg.resolved_cookie_name,
            value=self.encode(principal),
            max_age=int(cfg.expire_time.total_seconds()),
            path=cfg.path,
            domain=cfg.domain,
            secure=self._is_secure(request),
            httponly=cfg.httponly,
            samesite=cfg.samesite,
        )

    def expire(self, response: Response, request: Request) -> Response:
        """Return *response* with the auth cookie deleted."""
        cfg = self._config
        return response.with_cookie(
            name=cfg.resolved_cookie_name,
            value="",
            max_age=0,
            path=cfg.path,
            domain=cfg.domain,
            secure=self._is_secure(request),
            httponly=cfg.httponly,
            samesite=cfg.samesite,
        )

    # -- Stages --

    def sign_in(self, principal: Principal) -> Handler:
        """Stage: issue the cookie for *principal* and continue as them."""
        if principal.scheme != self._config.scheme:
            principal = replace(principal, scheme=self._config.scheme)

        async def stage(ctx: Context, next: Next) -> Result:
            request = ctx.request.with_principal(principal)
            response = self.issue(ctx.response, request, principal)
            logger.info("Signed in %s (%s)", principal.name, self._config.scheme)
            emit_security_event("auth.sign_in", request=request, user=principal.name)
            return await next(replace(ctx, request=request, response=response))

        return stage

    def sign_out(self) -> Handler:
        """Stage: delete the cookie and continue anonymously."""

        async def stage(ctx: Context, next: Next) -> Result:
            previous = ctx.principal
            request = ctx.request.with_principal(None)
            response = self.expire(ctx.response, request)
            emit_security_event(
                "auth.sign_out",
                request=request,
                user=previous.name if previous is not None else None,
            )
            return await next(replace(ctx, request=request, response=response))

        return stage

    # -- Middleware --

    def _needs_renewal(self, ticket: _Ticket) -> bool:
        if not self._config.sliding_expiration:
            return False
        elapsed = datetime.now(UTC) - ticket.issued_at
        return elapsed > self._config.expire_time / 2

    async def __call__(self, request: Request, next: MiddlewareNext) -> Response:
        """Authenticate from the cookie, dispatch, then renew if sliding."""
        ticket = self._read_ticket(request)
        if ticket is None:
            return await next(request.with_principal(None))

        response = await next(request.with_principal(ticket.principal))

        # A handler that signed in or out already set the cookie
        if response.cookie(self._config.resolved_cookie_name) is not None:
            return response
        if self._needs_renewal(ticket):
            return self.issue(response, request, ticket.principal)
        return response
