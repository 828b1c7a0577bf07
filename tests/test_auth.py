"""Tests for wren.middleware.auth: signed principal cookie."""

import time
from datetime import timedelta

import pytest
from itsdangerous import TimestampSigner

from wren.app import App
from wren.context import Context, Next, Result
from wren.errors import ConfigurationError
from wren.middleware.auth import CookieAuthConfig, CookieAuthentication, CookieSecurePolicy
from wren.responders import set_status, text
from wren.routing import GET, choose, pipe, requires_authentication, requires_role, route
from wren.security.audit import SecurityEvent, set_security_event_sink
from wren.security.principal import Claim, ClaimTypes, Principal
from wren.testing import TestClient

DAY = 24 * 60 * 60

access_denied = pipe(set_status(401), text("Access Denied"))

john = Principal.from_claims(
    "Cookie",
    [
        Claim(ClaimTypes.NAME, "John", "http://localhost"),
        Claim(ClaimTypes.ROLE, "Admin", "http://localhost"),
    ],
)


async def whoami(ctx: Context, next: Next) -> Result:
    principal = ctx.principal
    return await text(principal.name if principal is not None else "anonymous")(ctx, next)


def _app(auth: CookieAuthentication) -> App:
    app = App([
        pipe(GET, choose([
            pipe(route("/login"), auth.sign_in(john), text("in")),
            pipe(route("/login-whoami"), auth.sign_in(john), whoami),
            pipe(route("/logout"), auth.sign_out(), whoami),
            pipe(route("/me"), whoami),
            pipe(route("/admin"), requires_role("Admin", access_denied), text("admin")),
            pipe(route("/user"), requires_authentication(access_denied), whoami),
        ])),
    ])
    app.add_middleware(auth)
    return app


def _auth(**overrides: object) -> CookieAuthentication:
    return CookieAuthentication(CookieAuthConfig(secret_key="test-secret", **overrides))


def _encode_aged(
    monkeypatch: pytest.MonkeyPatch, auth: CookieAuthentication, age_seconds: int
) -> str:
    """Cookie value for *john* issued *age_seconds* ago."""
    issued = int(time.time()) - age_seconds
    monkeypatch.setattr(TimestampSigner, "get_timestamp", lambda self: issued)
    value = auth.encode(john)
    monkeypatch.undo()
    return value


class TestConfig:
    def test_empty_secret_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="secret_key"):
            CookieAuthentication(CookieAuthConfig(secret_key=""))

    def test_non_positive_lifetime_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="expire_time"):
            _auth(expire_time=timedelta(0))

    def test_cookie_named_after_scheme(self) -> None:
        assert CookieAuthConfig(secret_key="s").resolved_cookie_name == "Cookie"
        assert CookieAuthConfig(secret_key="s", scheme="Bearer").resolved_cookie_name == "Bearer"
        assert (
            CookieAuthConfig(secret_key="s", cookie_name="auth").resolved_cookie_name == "auth"
        )


class TestSignInOut:
    async def test_sign_in_sets_cookie(self) -> None:
        async with TestClient(_app(_auth())) as client:
            response = await client.get("/login")
            cookie = response.cookie("Cookie")
            assert cookie is not None
            assert cookie.httponly
            assert cookie.max_age == 7 * DAY
            assert cookie.path == "/"

    async def test_sign_in_applies_to_same_request(self) -> None:
        async with TestClient(_app(_auth())) as client:
            response = await client.get("/login-whoami")
            assert response.text == "John"

    async def test_cookie_authenticates_later_requests(self) -> None:
        async with TestClient(_app(_auth())) as client:
            await client.get("/login")
            assert (await client.get("/me")).text == "John"
            assert (await client.get("/admin")).text == "admin"

    async def test_sign_out_expires_cookie(self) -> None:
        async with TestClient(_app(_auth())) as client:
            await client.get("/login")
            response = await client.get("/logout")
            assert response.text == "anonymous"
            cookie = response.cookie("Cookie")
            assert cookie is not None
            assert cookie.value == ""
            assert cookie.max_age == 0
            assert (await client.get("/user")).status == 401

    async def test_anonymous(self) -> None:
        async with TestClient(_app(_auth())) as client:
            assert (await client.get("/me")).text == "anonymous"
            assert (await client.get("/admin")).status == 401


class TestSecurePolicy:
    async def test_same_as_request_http(self) -> None:
        async with TestClient(_app(_auth())) as client:
            cookie = (await client.get("/login")).cookie("Cookie")
            assert cookie is not None and not cookie.secure

    async def test_same_as_request_https(self) -> None:
        async with TestClient(_app(_auth())) as client:
            response = await client.request("GET", "/login", scheme="https")
            cookie = response.cookie("Cookie")
            assert cookie is not None and cookie.secure

    async def test_always(self) -> None:
        async with TestClient(_app(_auth(secure_policy=CookieSecurePolicy.ALWAYS))) as client:
            cookie = (await client.get("/login")).cookie("Cookie")
            assert cookie is not None and cookie.secure

    async def test_never(self) -> None:
        async with TestClient(_app(_auth(secure_policy=CookieSecurePolicy.NEVER))) as client:
            response = await client.request("GET", "/login", scheme="https")
            cookie = response.cookie("Cookie")
            assert cookie is not None and not cookie.secure


class TestValidation:
    async def test_tampered_cookie_is_anonymous(self) -> None:
        events: list[SecurityEvent] = []
        set_security_event_sink(events.append)
        try:
            async with TestClient(_app(_auth())) as client:
                await client.get("/login")
                client.cookies["Cookie"] = client.cookies["Cookie"][:-2] + "zz"
                assert (await client.get("/me")).text == "anonymous"
        finally:
            set_security_event_sink(None)
        assert "auth.cookie.invalid" in [e.name for e in events]

    async def test_other_secret_is_rejected(self) -> None:
        other = CookieAuthentication(CookieAuthConfig(secret_key="other-secret"))
        async with TestClient(_app(_auth())) as client:
            client.cookies["Cookie"] = other.encode(john)
            assert (await client.get("/me")).text == "anonymous"

    async def test_other_scheme_is_rejected(self) -> None:
        bearer = _auth(scheme="Bearer", cookie_name="Cookie")
        async with TestClient(_app(_auth())) as client:
            client.cookies["Cookie"] = bearer.encode(john)
            assert (await client.get("/me")).text == "anonymous"

    async def test_expired_cookie_is_anonymous(self, monkeypatch: pytest.MonkeyPatch) -> None:
        auth = _auth()
        value = _encode_aged(monkeypatch, auth, 8 * DAY)
        async with TestClient(_app(auth)) as client:
            client.cookies["Cookie"] = value
            assert (await client.get("/me")).text == "anonymous"

    def test_authenticate_reads_principal(self) -> None:
        from wren.http.headers import Headers
        from wren.http.query import QueryParams
        from wren.http.request import Request

        auth = _auth()
        request = Request(
            method="GET",
            path="/",
            headers=Headers(),
            query=QueryParams(),
            cookies={"Cookie": auth.encode(john)},
        )
        principal = auth.authenticate(request)
        assert principal == john


class TestSlidingExpiration:
    async def test_fresh_cookie_is_not_renewed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        auth = _auth()
        value = _encode_aged(monkeypatch, auth, 1 * DAY)
        async with TestClient(_app(auth)) as client:
            client.cookies["Cookie"] = value
            response = await client.get("/me")
            assert response.text == "John"
            assert response.cookie("Cookie") is None

    async def test_old_cookie_is_renewed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        auth = _auth()
        value = _encode_aged(monkeypatch, auth, 4 * DAY)
        async with TestClient(_app(auth)) as client:
            client.cookies["Cookie"] = value
            response = await client.get("/me")
            assert response.text == "John"
            renewed = response.cookie("Cookie")
            assert renewed is not None
            assert renewed.value != value
            assert renewed.max_age == 7 * DAY

    async def test_no_renewal_when_disabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        auth = _auth(sliding_expiration=False)
        value = _encode_aged(monkeypatch, auth, 4 * DAY)
        async with TestClient(_app(auth)) as client:
            client.cookies["Cookie"] = value
            response = await client.get("/me")
            assert response.cookie("Cookie") is None

    async def test_sign_out_wins_over_renewal(self, monkeypatch: pytest.MonkeyPatch) -> None:
        auth = _auth()
        value = _encode_aged(monkeypatch, auth, 4 * DAY)
        async with TestClient(_app(auth)) as client:
            client.cookies["Cookie"] = value
            response = await client.get("/logout")
            cookie = response.cookie("Cookie")
            assert cookie is not None
            assert cookie.max_age == 0


class TestSecurityEvents:
    async def test_sign_in_and_out_events(self) -> None:
        events: list[SecurityEvent] = []
        set_security_event_sink(events.append)
        try:
            async with TestClient(_app(_auth())) as client:
                await client.get("/login")
                await client.get("/logout")
        finally:
            set_security_event_sink(None)
        names = [e.name for e in events]
        assert names == ["auth.sign_in", "auth.sign_out"]
        assert events[0].user == "John"
        assert events[1].user == "John"
