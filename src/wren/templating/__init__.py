"""kida views: environment setup and template responders."""

from wren.templating.integration import create_environment
from wren.templating.views import render_inline, render_view

__all__ = ["create_environment", "render_inline", "render_view"]
