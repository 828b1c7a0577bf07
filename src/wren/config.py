"""Application configuration.

One frozen dataclass read by ``App`` when it freezes: server address
for ``App.run()``, where views live and how kida treats them, and the
log level for the development server.
"""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    Override only what differs from the defaults::

        config = AppConfig(debug=True, template_dir=Path(__file__).parent / "views")

    ``template_dir=None`` disables views; ``render_view`` then raises
    ``ConfigurationError``.
    """

    # Development server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Views (kida)
    template_dir: str | Path | None = "templates"
    autoescape: bool = True
    trim_blocks: bool = True
    lstrip_blocks: bool = True

    log_level: str = "info"
