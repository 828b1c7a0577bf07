"""Kida environment setup.

Creates a kida Environment from wren's AppConfig. The environment is
created once during App._freeze() and handed to every request through
``Context.views``.
"""

from kida import Environment, FileSystemLoader

from wren.config import AppConfig


def create_environment(config: AppConfig) -> Environment | None:
    """Create a kida Environment from app configuration.

    Returns ``None`` when ``config.template_dir`` is ``None``; view
    responders then fail with a ``ConfigurationError`` while inline
    templates still render.
    """
    if config.template_dir is None:
        return None

    return Environment(
        loader=FileSystemLoader(str(config.template_dir)),
        autoescape=config.autoescape,
        auto_reload=config.debug,
        trim_blocks=config.trim_blocks,
        lstrip_blocks=config.lstrip_blocks,
    )


def minimal_environment() -> Environment:
    """Create a bare kida Environment for inline template rendering.

    Used when no template_dir is configured but an inline template
    needs to be rendered.
    """
    return Environment()
