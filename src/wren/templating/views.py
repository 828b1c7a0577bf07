"""Template responders.

``render_view`` renders a named template from the views directory with
a model; ``render_inline`` renders template source given in code::

    pipe(route("/razor"), render_view("Person", Person("Razor", "Engine")))
    pipe(route("/person"), render_inline("<p>{{ name }}</p>", name="Ada"))

Both finish the response as ``text/html``.
"""

from typing import Any

from wren.context import Context, Handler, Matched, Next, Result
from wren.errors import ConfigurationError
from wren.http.response import TEXT_HTML
from wren.templating.integration import minimal_environment

VIEW_SUFFIX = ".html"


def render_view(name: str, model: Any = None) -> Handler:
    """Finish with the view *name* rendered against ``model``.

    The template is looked up as ``{name}.html`` and sees *model* under
    the name ``model``.
    """
    template_name = name if name.endswith(VIEW_SUFFIX) else f"{name}{VIEW_SUFFIX}"

    async def responder(ctx: Context, next: Next) -> Result:
        if ctx.views is None:
            msg = (
                f"View {template_name!r} requires kida integration. "
                "Ensure a template_dir is configured in AppConfig."
            )
            raise ConfigurationError(msg)
        template = ctx.views.get_template(template_name)
        body = template.render({"model": model})
        return Matched(ctx.response.with_body(body).with_content_type(TEXT_HTML))

    return responder


def render_inline(source: str, **context: Any) -> Handler:
    """Finish with the template *source* rendered against *context*."""

    async def responder(ctx: Context, next: Next) -> Result:
        env = ctx.views or minimal_environment()
        body = env.from_string(source).render(context)
        return Matched(ctx.response.with_body(body).with_content_type(TEXT_HTML))

    return responder
