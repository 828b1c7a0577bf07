"""Sample app: every wren building block in one route table.

A public index, a cookie login that grants the Admin role, guarded
user pages, kida views, timestamps captured once vs per request, file
uploads (buffered and streaming) and model binding.

Demonstrates:
- ``choose`` / ``pipe`` route tables with first-match-wins ordering
- ``requires_authentication`` / ``requires_role`` guards
- ``CookieAuthentication`` sign-in and sign-out stages
- ``routef`` typed path templates
- ``render_view`` / ``render_inline`` kida templates
- ``warbler`` for per-request values
- ``bind_model`` for dataclass binding
- a custom error handler stage

Run:
    python app.py
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from wren import App, AppConfig
from wren.context import Context, Handler, Next, Result
from wren.http.binding import bind_model
from wren.http.forms import FormData
from wren.middleware.auth import CookieAuthConfig, CookieAuthentication
from wren.responders import clear_response, json, set_status, text
from wren.routing import GET, POST, choose, pipe, requires_authentication, requires_role, route
from wren.routing import routef, warbler
from wren.security.principal import Claim, ClaimTypes, Principal
from wren.templating import render_inline, render_view

TEMPLATES_DIR = Path(__file__).parent / "templates"

AUTH_SCHEME = "Cookie"
ISSUER = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Person:
    name: str


@dataclass(frozen=True, slots=True)
class Car:
    """Fields missing from the request keep these defaults."""

    name: str = ""
    make: str = ""
    wheels: int = 0
    built: datetime = datetime.min


def now() -> str:
    return datetime.now().isoformat(sep=" ", timespec="microseconds")


@dataclass(frozen=True, slots=True)
class Startup:
    """Values captured once, when the route table is built."""

    started_at: str = field(default_factory=now)


# ---------------------------------------------------------------------------
# Error handler
# ---------------------------------------------------------------------------


def error_handler(exc: Exception, logger: logging.Logger) -> Handler:
    logger.error("An unhandled exception has occurred while executing the request.")
    return pipe(clear_response, set_status(500), text(str(exc)))


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

auth = CookieAuthentication(
    CookieAuthConfig(
        secret_key=os.environ.get("WREN_SECRET_KEY", "change-me-in-production"),
        scheme=AUTH_SCHEME,
    )
)

access_denied = pipe(set_status(401), text("Access Denied"))

must_be_user = requires_authentication(access_denied)

must_be_admin = pipe(
    requires_authentication(access_denied),
    requires_role("Admin", access_denied),
)

john = Principal.from_claims(
    AUTH_SCHEME,
    [
        Claim(ClaimTypes.NAME, "John", ISSUER),
        Claim(ClaimTypes.SURNAME, "Doe", ISSUER),
        Claim(ClaimTypes.ROLE, "Admin", ISSUER),
    ],
)

login_handler = pipe(auth.sign_in(john), text("Successfully logged in"))

logout_handler = pipe(auth.sign_out(), text("Successfully logged out."))

# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def user_handler(ctx: Context, next: Next) -> Result:
    name = ctx.principal.name if ctx.principal is not None else None
    return await text(name or "")(ctx, next)


def show_user_handler(id: int) -> Handler:
    return pipe(must_be_admin, text(f"User ID: {id}"))


async def fail(ctx: Context, next: Next) -> Result:
    raise RuntimeError("Something went wrong!")


async def submit_car(ctx: Context, next: Next) -> Result:
    car = await bind_model(ctx.request, Car)
    return await json(car)(ctx, next)


def _file_names(form: FormData) -> str:
    names = ""
    for upload in form.files:
        names = f"{names}\n{upload.filename}"
    return names


async def small_file_upload_handler(ctx: Context, next: Next) -> Result:
    if not ctx.request.has_form_content_type:
        return await pipe(set_status(400), text("Bad request"))(ctx, next)
    form = await ctx.request.form()
    return await text(_file_names(form))(ctx, next)


async def large_file_upload_handler(ctx: Context, next: Next) -> Result:
    form = await ctx.request.stream_form()
    return await text(_file_names(form))(ctx, next)


PERSON_VIEW = """<!DOCTYPE html>
<html>
<head><title>Person</title></head>
<body><p>Hello, {{ person.name }}</p></body>
</html>"""

# ---------------------------------------------------------------------------
# Route table
# ---------------------------------------------------------------------------


def build_routes(startup: Startup) -> list[Handler]:
    return [
        pipe(
            GET,
            choose([
                pipe(route("/"), text("index")),
                pipe(route("/ping"), text("pong")),
                pipe(route("/error"), fail),
                pipe(route("/login"), login_handler),
                pipe(route("/logout"), logout_handler),
                pipe(route("/user"), must_be_user, user_handler),
                routef("/user/{id:int}", show_user_handler),
                pipe(route("/razor"), render_view("Person", Person(name="Razor"))),
                pipe(route("/razorHello"), render_view("Hello", "")),
                pipe(route("/fileupload"), render_view("FileUpload", "")),
                pipe(route("/person"), render_inline(PERSON_VIEW, person=Person(name="Html Node"))),
                pipe(route("/once"), text(startup.started_at)),
                pipe(route("/everytime"), warbler(lambda ctx: text(now()))),
            ]),
        ),
        pipe(
            POST,
            choose([
                pipe(route("/small-upload"), small_file_upload_handler),
                pipe(route("/large-upload"), large_file_upload_handler),
            ]),
        ),
        pipe(route("/car"), submit_car),
    ]


config = AppConfig(template_dir=TEMPLATES_DIR)
app = App(
    build_routes(Startup()),
    config,
    not_found=pipe(set_status(404), text("Not Found")),
    error_handler=error_handler,
)
app.add_middleware(auth)


if __name__ == "__main__":
    app.run()
